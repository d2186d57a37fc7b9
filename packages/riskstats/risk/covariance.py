"""
Covariance Estimation Module

Sample covariance of a return matrix (the estimator the volatility and
decomposition engines are defined against), plus Ledoit-Wolf shrinkage as an
alternative and annualization of per-period covariances.
"""

import numpy as np
import pandas as pd
import structlog
from sklearn.covariance import LedoitWolf
from typing import Union

from .errors import InsufficientDataError, InvalidSeriesError

logger = structlog.get_logger(__name__)

PERIODS_PER_YEAR = {
    "daily": 252,
    "weekly": 52,
    "monthly": 12,
    "quarterly": 4,
    "annual": 1,
}


def _validated_values(returns: pd.DataFrame, caller: str) -> np.ndarray:
    if not isinstance(returns, pd.DataFrame):
        raise TypeError(f"returns must be a pd.DataFrame, got {type(returns).__name__}")

    if returns.shape[1] == 0:
        raise InsufficientDataError("Cannot estimate covariance from empty returns DataFrame")

    if len(returns) < 2:
        raise InsufficientDataError(f"Need at least 2 observations, got {len(returns)}")

    values = returns.to_numpy(dtype=float)

    if not np.isfinite(values).all():
        bad_counts = (~np.isfinite(values)).sum(axis=0)
        affected_symbols = [
            returns.columns[i]
            for i, count in enumerate(bad_counts)
            if count > 0
        ]
        logger.error(
            f"{caller}: NaN or infinite values in returns",
            affected_symbols=affected_symbols,
        )
        raise InvalidSeriesError(f"NaN or infinite values detected in returns for symbols: {affected_symbols}")

    return values


def sample_cov_array(values: np.ndarray) -> np.ndarray:
    """Unbiased sample covariance (ddof=1) of a T x N array, exactly symmetric."""
    cov_matrix = np.atleast_2d(np.cov(values, rowvar=False, ddof=1))
    return (cov_matrix + cov_matrix.T) / 2


def covariance(returns: pd.DataFrame) -> pd.DataFrame:
    """Sample covariance matrix of a return matrix.

    Uses the unbiased estimator (divides by T - 1), matching pandas
    ``DataFrame.cov`` and numpy ``np.cov``. Values are per period; see
    annualize_cov for scaling.

    Args:
        returns: DataFrame of returns (T x N) where T = time periods, N = assets

    Returns:
        N x N DataFrame with asset labels on both axes

    Raises:
        InsufficientDataError: If fewer than 2 rows or no columns
        InvalidSeriesError: If returns contain NaN or infinite values
    """
    values = _validated_values(returns, "covariance")
    cov_matrix = sample_cov_array(values)

    logger.info(
        "covariance: covariance estimated",
        num_assets=cov_matrix.shape[0],
        num_observations=len(returns),
    )

    return pd.DataFrame(cov_matrix, index=returns.columns, columns=returns.columns)


def ledoit_wolf_cov(returns: pd.DataFrame) -> pd.DataFrame:
    """Estimate covariance matrix using Ledoit-Wolf shrinkage.

    Uses sklearn's LedoitWolf estimator which automatically determines
    the optimal shrinkage intensity. Handles the T < N case gracefully.

    Args:
        returns: DataFrame of returns (T x N) where T = time periods, N = assets

    Returns:
        N x N DataFrame with asset labels on both axes

    Raises:
        InsufficientDataError: If fewer than 2 rows or no columns
        InvalidSeriesError: If returns contain NaN or infinite values
    """
    values = _validated_values(returns, "ledoit_wolf_cov")

    lw = LedoitWolf()
    cov_matrix = lw.fit(values).covariance_

    # Clamp negative eigenvalues left by floating error
    eigenvalues = np.linalg.eigvalsh(cov_matrix)
    min_eigenvalue = float(np.min(eigenvalues))

    if min_eigenvalue < -1e-8:
        logger.warning(
            "ledoit_wolf_cov: non-PSD matrix, clamping negative eigenvalues",
            min_eigenvalue=min_eigenvalue,
        )
        eigenvalues_clamped = np.maximum(eigenvalues, 0)
        eigvecs = np.linalg.eigh(cov_matrix)[1]
        cov_matrix = eigvecs @ np.diag(eigenvalues_clamped) @ eigvecs.T

    cov_matrix = (cov_matrix + cov_matrix.T) / 2

    logger.info(
        "ledoit_wolf_cov: covariance estimated",
        num_assets=cov_matrix.shape[0],
        num_observations=len(returns),
        shrinkage=float(lw.shrinkage_),
    )

    return pd.DataFrame(cov_matrix, index=returns.columns, columns=returns.columns)


def estimate_covariance(returns: pd.DataFrame, method: str = "sample") -> pd.DataFrame:
    """Unified interface for covariance estimation.

    Args:
        returns: DataFrame of returns (T x N)
        method: 'sample' for the unbiased sample estimator, 'lw' for Ledoit-Wolf

    Returns:
        N x N covariance DataFrame

    Raises:
        ValueError: If method is invalid or estimation fails
    """
    method = method.lower()

    if method == "sample":
        return covariance(returns)
    elif method == "lw":
        logger.info("estimate_covariance: using Ledoit-Wolf shrinkage")
        return ledoit_wolf_cov(returns)
    else:
        raise ValueError(f"Unknown covariance estimation method: {method}. Use 'sample' or 'lw'")


def annualize_cov(
    cov: Union[np.ndarray, pd.DataFrame],
    periods_per_year: int = 252,
) -> Union[np.ndarray, pd.DataFrame]:
    """Annualize a per-period covariance matrix.

    annualized covariance = per-period covariance * periods_per_year

    Args:
        cov: Per-period covariance matrix (N x N)
        periods_per_year: Observations per year (252 daily, 12 monthly, ...)

    Returns:
        Annualized covariance matrix, same type as the input
    """
    shape = np.shape(cov)

    if len(shape) != 2 or shape[0] != shape[1] or shape[0] == 0:
        raise ValueError(f"Covariance matrix must be square and non-empty, got shape {shape}")

    if periods_per_year <= 0:
        raise ValueError(f"Periods per year must be positive, got {periods_per_year}")

    return cov * periods_per_year
