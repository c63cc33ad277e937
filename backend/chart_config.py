"""YAML-backed configuration for the chart engine.

The configuration file defaults to ``chart_engine/chart_constants.yaml`` and
can be replaced by pointing the ``CHART_CONFIG`` environment variable at
another file. Values are exposed two ways::

    cfg().orbs.transit                 # attribute access
    get_config().get("orbs.transit")   # dotted-path lookup with default
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "chart_engine" / "chart_constants.yaml"


class ChartConfigError(Exception):
    """Raised when the configuration file is missing or incomplete."""


def _to_namespace(obj: Any) -> Any:
    if isinstance(obj, dict):
        return SimpleNamespace(**{str(k): _to_namespace(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_namespace(x) for x in obj]
    return obj


class ChartConfig:
    """Singleton wrapper around the parsed YAML constants."""

    _instance: Optional["ChartConfig"] = None

    REQUIRED_KEYS: List[str] = [
        "orbs.natal",
        "orbs.transit",
        "orbs.synastry",
        "scan.step_days",
        "scan.lunar_step_days",
        "scan.bisection_iterations",
        "bodies.natal",
        "bodies.retrograde",
        "bodies.ingress",
        "bodies.transit",
        "houses.system",
        "location.timezone",
        "location.cities_file",
    ]

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.environ.get("CHART_CONFIG") or DEFAULT_CONFIG_PATH)
        self._data = self._load(self.path)
        self._namespace = _to_namespace(self._data)

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ChartConfigError(f"Configuration file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ChartConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ChartConfigError(f"Configuration root must be a mapping: {path}")
        logger.debug(f"Loaded chart configuration from {path}")
        return data

    @classmethod
    def get_instance(cls) -> "ChartConfig":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next access re-reads the file."""
        cls._instance = None

    @property
    def config(self) -> SimpleNamespace:
        return self._namespace

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"orbs.transit"``."""
        node: Any = self._data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def validate_required_keys(self) -> None:
        missing = [key for key in self.REQUIRED_KEYS if self.get(key) is None]
        if missing:
            raise ChartConfigError(
                f"Missing required configuration keys in {self.path}: {', '.join(missing)}"
            )

        orbs = self._data["orbs"]
        for name in ("natal", "transit", "synastry"):
            value = orbs[name]
            if not isinstance(value, (int, float)) or not 0 <= value < 30:
                raise ChartConfigError(f"orbs.{name} must be a number in [0, 30), got {value!r}")

        for name in ("step_days", "lunar_step_days"):
            value = self._data["scan"][name]
            if not isinstance(value, (int, float)) or value <= 0:
                raise ChartConfigError(f"scan.{name} must be positive, got {value!r}")


def get_config() -> ChartConfig:
    return ChartConfig.get_instance()


def cfg() -> SimpleNamespace:
    """Shortcut for attribute-style access to the active configuration."""
    return get_config().config
