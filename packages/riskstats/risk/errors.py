"""Exceptions raised by the risk computation modules."""


class RiskError(ValueError):
    """Base class for all risk computation errors."""


class InvalidSeriesError(RiskError):
    """Raised when a price or return series violates its invariants."""


class InsufficientDataError(RiskError):
    """Raised when there are not enough aligned observations for a statistic."""


class NonPositivePriceError(RiskError):
    """Raised when a price makes the requested return undefined."""

    def __init__(self, message: str, symbols: list[str] | None = None) -> None:
        super().__init__(message)
        self.symbols = symbols or []


class DimensionMismatchError(RiskError):
    """Raised when weights and covariance/returns do not line up."""


class InvalidWindowError(RiskError):
    """Raised when a rolling window is too small to define a volatility."""


class DivisionByZeroError(RiskError, ZeroDivisionError):
    """Raised when risk is decomposed against a zero portfolio volatility."""


class NumericalError(RiskError):
    """Raised on a negative portfolio variance or an invalid volatility value."""
