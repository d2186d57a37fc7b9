"""
Return Construction Module

Pure functions for aligning asset price histories into a price matrix and
computing periodic returns from it. All functions return new DataFrames and
never modify their inputs.
"""

import numpy as np
import pandas as pd
import structlog
from typing import Mapping, Union

from .errors import InsufficientDataError, InvalidSeriesError, NonPositivePriceError
from .types import AssetSeries, ReturnMethod

logger = structlog.get_logger(__name__)


def build_price_matrix(
    prices: Mapping[str, Union[AssetSeries, pd.Series]],
) -> pd.DataFrame:
    """Align price series on the intersection of their timestamps.

    Args:
        prices: Mapping of asset name to AssetSeries (a pd.Series indexed by
            timestamp is accepted and validated as an AssetSeries)

    Returns:
        DataFrame with DatetimeIndex (ascending) and one column per asset,
        in the order the assets were supplied

    Raises:
        InsufficientDataError: If no series are supplied or fewer than 2
            timestamps are common to all of them

    Note:
        Does NOT forward-fill prices as this creates false returns.
        Only uses timestamps present in every series.
    """
    if not prices:
        raise InsufficientDataError("No price series supplied")

    series_dict = {}
    for symbol, series in prices.items():
        if not isinstance(series, AssetSeries):
            series = AssetSeries(series)
        series_dict[symbol] = series.prices

    common = None
    for s in series_dict.values():
        common = s.index if common is None else common.intersection(s.index)
    common = common.sort_values()

    if len(common) < 2:
        logger.error(
            "build_price_matrix: insufficient common history",
            num_symbols=len(series_dict),
            common_dates=len(common),
            lengths={sym: len(s) for sym, s in series_dict.items()},
        )
        raise InsufficientDataError(
            f"Need at least 2 common timestamps across {len(series_dict)} series, got {len(common)}"
        )

    price_matrix = pd.DataFrame(
        {symbol: s.reindex(common).to_numpy(copy=True) for symbol, s in series_dict.items()},
        index=common,
    )

    dropped_rows = {
        sym: len(s) - len(common) for sym, s in series_dict.items() if len(s) > len(common)
    }
    if dropped_rows:
        logger.info(
            "build_price_matrix: truncated to common timestamps",
            dropped_rows=dropped_rows,
        )

    logger.info(
        "build_price_matrix: matrix built",
        num_symbols=len(price_matrix.columns),
        num_dates=len(price_matrix),
        date_range=f"{price_matrix.index.min()} to {price_matrix.index.max()}",
    )

    return price_matrix


def _check_price_matrix(price_matrix: pd.DataFrame, caller: str) -> None:
    if len(price_matrix) < 2:
        raise InsufficientDataError(
            f"Need at least 2 prices to compute a return, got {len(price_matrix)}"
        )
    if not np.isfinite(price_matrix.to_numpy(dtype=float)).all():
        raise InvalidSeriesError(f"{caller}: price matrix contains missing or non-finite prices")


def compute_log_returns(price_matrix: pd.DataFrame) -> pd.DataFrame:
    """Compute log returns from price matrix.

    log_return = ln(P_t / P_{t-1})

    Args:
        price_matrix: DataFrame with DatetimeIndex and symbol columns

    Returns:
        DataFrame with log returns (first row dropped)

    Raises:
        NonPositivePriceError: If any price is zero or negative
    """
    _check_price_matrix(price_matrix, "compute_log_returns")

    non_positive = (price_matrix <= 0).sum()
    if non_positive.any():
        affected = non_positive[non_positive > 0]
        logger.error(
            "compute_log_returns: zero or negative prices detected",
            affected_symbols=affected.to_dict(),
        )
        raise NonPositivePriceError(
            f"Zero or negative prices detected for symbols: {list(affected.index)}",
            symbols=list(affected.index),
        )

    log_returns = np.log(price_matrix / price_matrix.shift(1)).iloc[1:]

    logger.info(
        "compute_log_returns: returns computed",
        num_symbols=len(log_returns.columns),
        num_periods=len(log_returns),
    )

    return log_returns


def compute_simple_returns(price_matrix: pd.DataFrame) -> pd.DataFrame:
    """Compute simple returns: (P_t - P_{t-1}) / P_{t-1}

    Args:
        price_matrix: DataFrame with DatetimeIndex and symbol columns

    Returns:
        DataFrame with simple returns (first row dropped)

    Raises:
        NonPositivePriceError: If any price is zero
    """
    _check_price_matrix(price_matrix, "compute_simple_returns")

    zero_prices = (price_matrix == 0).sum()
    if zero_prices.any():
        affected = zero_prices[zero_prices > 0]
        logger.error(
            "compute_simple_returns: zero prices detected",
            affected_symbols=affected.to_dict(),
        )
        raise NonPositivePriceError(
            f"Zero prices detected for symbols: {list(affected.index)}",
            symbols=list(affected.index),
        )

    simple_returns = ((price_matrix - price_matrix.shift(1)) / price_matrix.shift(1)).iloc[1:]

    logger.info(
        "compute_simple_returns: returns computed",
        num_symbols=len(simple_returns.columns),
        num_periods=len(simple_returns),
    )

    return simple_returns


def build_returns(
    prices: Mapping[str, Union[AssetSeries, pd.Series]],
    method: Union[ReturnMethod, str] = ReturnMethod.LOG,
) -> pd.DataFrame:
    """Build the aligned return matrix for a set of assets.

    Aligns every series to the common timestamps, then computes one return
    per consecutive pair of prices. The result has one row fewer than the
    aligned price matrix; columns keep the order of ``prices``.

    Args:
        prices: Mapping of asset name to AssetSeries
        method: ReturnMethod.LOG / "log" or ReturnMethod.SIMPLE / "simple"

    Returns:
        DataFrame of returns indexed by the later timestamp of each pair

    Raises:
        InsufficientDataError: Fewer than 2 common timestamps
        NonPositivePriceError: Price <= 0 with LOG, price == 0 with SIMPLE
        ValueError: Unknown method
    """
    method = ReturnMethod.parse(method)
    price_matrix = build_price_matrix(prices)

    if method is ReturnMethod.LOG:
        return compute_log_returns(price_matrix)
    return compute_simple_returns(price_matrix)


def trim_to_window(returns: pd.DataFrame, window: int) -> pd.DataFrame:
    """Take the last `window` rows of returns.

    Args:
        returns: DataFrame of returns
        window: Number of periods to keep

    Returns:
        DataFrame with last `window` rows

    Raises:
        InsufficientDataError: If insufficient data for the requested window
        ValueError: If window is not positive
    """
    if window <= 0:
        raise ValueError(f"Window must be positive, got {window}")

    if returns.empty:
        raise InsufficientDataError("Cannot trim empty returns DataFrame")

    if len(returns) < window:
        raise InsufficientDataError(
            f"Insufficient data for window: have {len(returns)} periods, need {window}"
        )

    trimmed = returns.iloc[-window:].copy()

    logger.info(
        "trim_to_window: returns trimmed",
        original_length=len(returns),
        window=window,
        date_range=f"{trimmed.index.min()} to {trimmed.index.max()}",
    )

    return trimmed
