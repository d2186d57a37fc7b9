"""
Portfolio Volatility Module

Portfolio standard deviation from weights and a covariance matrix, its
rolling (windowed) variant over a return matrix, and the parametric tail
measures derived from it.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional, Union

import numpy as np
import pandas as pd
import structlog
from scipy import stats

from .covariance import sample_cov_array
from .errors import InvalidSeriesError, InvalidWindowError, NumericalError
from .types import CovLike, WeightsLike, align_weights, align_weights_and_cov

logger = structlog.get_logger(__name__)

# Negative variance tolerated as round-off, relative to |w|' |Sigma| |w|
NEGATIVE_VARIANCE_RTOL = 1e-12


def _sqrt_variance(portfolio_var: float, scale: float, caller: str) -> float:
    if portfolio_var < 0:
        if portfolio_var < -NEGATIVE_VARIANCE_RTOL * scale:
            logger.error(
                f"{caller}: negative portfolio variance",
                portfolio_var=portfolio_var,
            )
            raise NumericalError(
                f"Negative portfolio variance ({portfolio_var:.6e}). "
                "Covariance matrix is not positive semi-definite."
            )
        portfolio_var = 0.0

    return float(np.sqrt(portfolio_var))


def _quadratic_vol(w: np.ndarray, cov: np.ndarray, caller: str) -> float:
    portfolio_var = float(w @ cov @ w)
    scale = float(np.abs(w) @ np.abs(cov) @ np.abs(w))
    return _sqrt_variance(portfolio_var, scale, caller)


def portfolio_std_dev(weights: WeightsLike, cov: CovLike) -> float:
    """Compute portfolio volatility.

    vol = sqrt(w' * Sigma * w)

    The result has the periodicity of the covariance matrix (a monthly
    covariance gives a monthly volatility).

    Args:
        weights: Position weights (flat array, list or Series)
        cov: Covariance matrix (N x N array or labelled DataFrame)

    Returns:
        Portfolio volatility (as decimal, not %)

    Raises:
        DimensionMismatchError: If len(weights) != size of cov
        NumericalError: If w' * Sigma * w is negative beyond round-off
    """
    w, cov_arr, _ = align_weights_and_cov(weights, cov)
    return _quadratic_vol(w, cov_arr, "portfolio_std_dev")


def portfolio_std_dev_expanded(weights: WeightsLike, cov: CovLike) -> float:
    """Portfolio volatility from the explicit variance expansion.

    variance = sum_i w_i^2 * var_i + 2 * sum_{i<j} w_i * w_j * cov_ij

    Mathematically identical to portfolio_std_dev; kept as an independent
    formulation to cross-check the quadratic form.
    """
    w, cov_arr, _ = align_weights_and_cov(weights, cov)
    n = len(w)

    variance = 0.0
    scale = 0.0
    for i in range(n):
        variance += w[i] ** 2 * cov_arr[i, i]
        scale += w[i] ** 2 * abs(cov_arr[i, i])
        for j in range(i + 1, n):
            variance += 2 * w[i] * w[j] * cov_arr[i, j]
            scale += 2 * abs(w[i] * w[j] * cov_arr[i, j])

    return _sqrt_variance(variance, scale, "portfolio_std_dev_expanded")


def rolling_portfolio_std_dev(
    returns: pd.DataFrame,
    weights: WeightsLike,
    window: int,
    max_workers: Optional[int] = None,
) -> pd.Series:
    """Portfolio volatility over a rolling window of returns.

    For every start row i with i + window <= T, the sample covariance of rows
    [i, i + window) gives one volatility, keyed by the timestamp of row
    i + window - 1 (the last date of the window, so no value uses data from
    after its own date).

    Args:
        returns: DataFrame of returns (T x N)
        weights: Position weights aligned with returns columns
        window: Rows per window, at least 2
        max_workers: Threads to spread windows over (None or 1 = serial)

    Returns:
        Series named 'portfolio_vol' indexed by window end date, ascending;
        empty if T < window

    Raises:
        InvalidWindowError: If window is not an integer or is <= 1
        DimensionMismatchError: If len(weights) != number of columns
        InvalidSeriesError: If returns contain NaN or infinite values
    """
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise InvalidWindowError(f"Window must be an integer, got {window!r}")

    if window <= 1:
        raise InvalidWindowError(f"Window must be >= 2, got {window}")

    if max_workers is not None and max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    if not isinstance(returns, pd.DataFrame):
        raise TypeError(f"returns must be a pd.DataFrame, got {type(returns).__name__}")

    w, _ = align_weights(weights, list(returns.columns), returns.shape[1], against="returns columns")

    values = returns.to_numpy(dtype=float, copy=True)
    if not np.isfinite(values).all():
        raise InvalidSeriesError("NaN or infinite values detected in returns")

    num_rows = len(values)
    if num_rows < window:
        logger.info(
            "rolling_portfolio_std_dev: fewer rows than window",
            num_rows=num_rows,
            window=window,
        )
        return pd.Series([], index=returns.index[:0].copy(), dtype=float, name="portfolio_vol")

    def _window_vol(start: int) -> float:
        cov_arr = sample_cov_array(values[start:start + window])
        return _quadratic_vol(w, cov_arr, "rolling_portfolio_std_dev")

    num_windows = num_rows - window + 1
    vols = np.empty(num_windows)

    if max_workers is None or max_workers == 1 or num_windows == 1:
        for start in range(num_windows):
            vols[start] = _window_vol(start)
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, num_windows)) as pool:
            futures = {pool.submit(_window_vol, start): start for start in range(num_windows)}
            for future in as_completed(futures):
                vols[futures[future]] = future.result()

    rolling = pd.Series(vols, index=returns.index[window - 1:].copy(), name="portfolio_vol")

    logger.info(
        "rolling_portfolio_std_dev: rolling volatility computed",
        window=window,
        num_windows=num_windows,
        max_workers=max_workers or 1,
        date_range=f"{rolling.index.min()} to {rolling.index.max()}",
    )

    return rolling


def annualize_vol(
    vol: Union[float, pd.Series],
    periods_per_year: int = 252,
) -> Union[float, pd.Series]:
    """Scale a per-period volatility to annual: vol * sqrt(periods_per_year)."""
    if periods_per_year <= 0:
        raise ValueError(f"Periods per year must be positive, got {periods_per_year}")

    return vol * np.sqrt(periods_per_year)


def _tail_scale(
    weights: WeightsLike,
    cov: CovLike,
    confidence: float,
    horizon_periods: int,
    portfolio_value: float,
) -> float:
    """portfolio_value * sigma * sqrt(horizon_periods), after checking the tail inputs."""
    if not 0 < confidence < 1:
        raise ValueError(f"Confidence must be between 0 and 1, got {confidence}")
    if portfolio_value <= 0:
        raise ValueError(f"Portfolio value must be positive, got {portfolio_value}")
    if horizon_periods < 1:
        raise ValueError(f"Horizon must be >= 1, got {horizon_periods}")

    return portfolio_value * portfolio_std_dev(weights, cov) * np.sqrt(horizon_periods)


def parametric_var(
    weights: WeightsLike,
    cov: CovLike,
    confidence: float = 0.95,
    horizon_periods: int = 1,
    portfolio_value: float = 1.0,
) -> float:
    """Gaussian Value-at-Risk of the portfolio, as a positive loss.

    VaR = portfolio_value * q * sigma * sqrt(horizon_periods), where
    q = norm.ppf(confidence) and sigma is the volatility per period of cov.
    Returns are taken as zero mean. horizon_periods counts periods of the
    covariance matrix, so a monthly cov with horizon 3 gives a quarterly VaR.
    """
    scale = _tail_scale(weights, cov, confidence, horizon_periods, portfolio_value)
    return float(stats.norm.ppf(confidence) * scale)


def expected_shortfall(
    weights: WeightsLike,
    cov: CovLike,
    confidence: float = 0.95,
    horizon_periods: int = 1,
    portfolio_value: float = 1.0,
) -> float:
    """Gaussian Expected Shortfall: mean loss beyond the VaR of the same confidence.

    ES = portfolio_value * sigma * pdf(q) / (1 - confidence) * sqrt(horizon_periods)
    """
    scale = _tail_scale(weights, cov, confidence, horizon_periods, portfolio_value)
    tail_density = stats.norm.pdf(stats.norm.ppf(confidence))
    return float(scale * tail_density / (1 - confidence))
