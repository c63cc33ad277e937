"""Exceptions raised by the chart engine."""


class ChartCalculationError(Exception):
    """Exception raised for calculation errors in the chart engine"""
    pass


class EphemerisNotReadyError(ChartCalculationError):
    """Raised when a calculation is attempted before the ephemeris is initialised"""
    pass
