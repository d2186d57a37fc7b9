"""
Risk Decomposition Module

Splits portfolio volatility into per-asset marginal, component and
percentage contributions.

    MCR_i = (w' * Sigma)_i / sigma_p
    CCR_i = w_i * MCR_i            (sum = sigma_p)
    PCR_i = CCR_i / sigma_p        (sum = 1)

The sums hold when sigma_p is the volatility of the same weights and
covariance matrix. decompose_risk takes sigma_p as an argument so that it can
be scaled against a volatility computed elsewhere; whether both come from the
same return window is not checked.
"""

import math

import pandas as pd
import structlog

from .errors import DivisionByZeroError, NumericalError
from .types import CovLike, RiskDecomposition, WeightsLike, align_weights_and_cov
from .volatility import portfolio_std_dev

logger = structlog.get_logger(__name__)

WEIGHT_SUM_TOL = 1e-6


def decompose_risk(
    weights: WeightsLike,
    cov: CovLike,
    portfolio_sd: float,
) -> RiskDecomposition:
    """Decompose portfolio volatility into per-asset contributions.

    Args:
        weights: Position weights (flat array, list or Series)
        cov: Covariance matrix (N x N array or labelled DataFrame)
        portfolio_sd: Portfolio volatility to decompose

    Returns:
        RiskDecomposition with marginal, component and percentage Series
        indexed by asset

    Raises:
        DimensionMismatchError: If len(weights) != size of cov
        DivisionByZeroError: If portfolio_sd is zero
        NumericalError: If portfolio_sd is negative or not finite
    """
    w, cov_arr, labels = align_weights_and_cov(weights, cov)

    if not math.isfinite(portfolio_sd) or portfolio_sd < 0:
        raise NumericalError(f"Portfolio volatility must be finite and >= 0, got {portfolio_sd}")

    if portfolio_sd == 0:
        logger.error("decompose_risk: zero portfolio volatility", num_assets=len(w))
        raise DivisionByZeroError(
            "Cannot decompose risk of a portfolio with zero volatility"
        )

    weight_sum = float(w.sum())
    if abs(weight_sum - 1.0) > WEIGHT_SUM_TOL:
        logger.warning(
            "decompose_risk: weights do not sum to 1",
            weight_sum=weight_sum,
        )

    marginal = (w @ cov_arr) / portfolio_sd
    component = marginal * w
    percentage = component / portfolio_sd

    index = pd.Index(labels)
    decomposition = RiskDecomposition(
        marginal=pd.Series(marginal, index=index, name="marginal"),
        component=pd.Series(component, index=index, name="component"),
        percentage=pd.Series(percentage, index=index, name="percentage"),
        portfolio_vol=float(portfolio_sd),
    )

    logger.info(
        "decompose_risk: contributions computed",
        num_assets=len(w),
        portfolio_vol=float(portfolio_sd),
        component_sum=float(component.sum()),
    )

    return decomposition


def marginal_contribution_to_risk(weights: WeightsLike, cov: CovLike) -> pd.Series:
    """Marginal Contribution to Risk (MCR) per position.

    Represents the change in portfolio volatility from a unit increase in
    position i, with sigma_p computed from the same weights and covariance.
    """
    return decompose_risk(weights, cov, portfolio_std_dev(weights, cov)).marginal


def component_contribution_to_risk(weights: WeightsLike, cov: CovLike) -> pd.Series:
    """Component Contribution to Risk (CCR) per position.

    Sum of CCR equals portfolio volatility.
    """
    return decompose_risk(weights, cov, portfolio_std_dev(weights, cov)).component


def pct_contribution_to_risk(weights: WeightsLike, cov: CovLike) -> pd.Series:
    """Fraction of portfolio volatility per position, summing to 1.

    Identical to each position's share of portfolio variance,
    w_i * (Sigma * w)_i / (w' * Sigma * w).
    """
    return decompose_risk(weights, cov, portfolio_std_dev(weights, cov)).percentage
