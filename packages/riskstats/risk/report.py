"""
Risk pack orchestration.

Runs the full pipeline (prices -> returns -> covariance -> volatility ->
decomposition, plus rolling volatility) with the configured settings and
returns JSON-serialisable pydantic models for a presentation layer.
"""

from __future__ import annotations

from datetime import date
from typing import List, Mapping, Optional, Union

import numpy as np
import pandas as pd
import structlog
from pydantic import BaseModel

from riskstats.config import Settings, get_settings

from .covariance import estimate_covariance
from .decomposition import decompose_risk
from .returns import build_returns, trim_to_window
from .types import AssetSeries, CovLike, WeightsLike, align_weights, align_weights_and_cov
from .volatility import (
    annualize_vol,
    expected_shortfall,
    parametric_var,
    portfolio_std_dev,
    rolling_portfolio_std_dev,
)

logger = structlog.get_logger(__name__)

ZERO_WEIGHT_TOL = 1e-9


class RiskContributor(BaseModel):
    """Risk contribution of one position, per period of the covariance matrix."""

    symbol: str
    weight: float
    mcr: float  # marginal contribution
    ccr: float  # component contribution, sums to portfolio vol
    ccr_pct: float  # fraction of portfolio vol, sums to 1
    standalone_vol: float


class RiskSummary(BaseModel):
    """Portfolio level risk figures."""

    vol: float
    vol_ann: float
    var: float
    es: float
    confidence: float
    num_positions: int
    weight_sum: float


class RollingVolPoint(BaseModel):
    """Portfolio volatility of the window ending on end_date."""

    end_date: date
    vol: float
    vol_ann: float


class RiskPack(BaseModel):
    """Everything computed for one portfolio and one price history."""

    asof_date: date
    start_date: date
    method: str
    cov_method: str
    window: int
    periods_per_year: int
    num_periods: int
    assets: List[str]
    summary: RiskSummary
    contributors: List[RiskContributor]
    rolling_vol: List[RollingVolPoint]


def build_risk_contributors(
    weights: WeightsLike,
    cov: CovLike,
    symbols: List[str],
    portfolio_sd: Optional[float] = None,
) -> List[RiskContributor]:
    """Build per-position risk contribution table.

    Args:
        weights: Position weights aligned with symbols
        cov: Per-period covariance matrix (N x N)
        symbols: Asset names, in weight order
        portfolio_sd: Volatility to decompose against (default: sqrt(w' Sigma w))

    Returns:
        List of RiskContributor, zero-weight positions skipped, sorted by
        |ccr| descending
    """
    w, cov_arr, _ = align_weights_and_cov(weights, cov)

    if len(symbols) != len(w):
        raise ValueError(
            f"Weights length {len(w)} doesn't match symbols length {len(symbols)}"
        )

    if portfolio_sd is None:
        portfolio_sd = portfolio_std_dev(w, cov_arr)

    decomposition = decompose_risk(w, cov_arr, portfolio_sd)
    standalone_vols = np.sqrt(np.clip(np.diag(cov_arr), 0.0, None))

    contributors = []
    for i, symbol in enumerate(symbols):
        if abs(w[i]) < ZERO_WEIGHT_TOL:
            continue

        contributors.append(RiskContributor(
            symbol=str(symbol),
            weight=float(w[i]),
            mcr=float(decomposition.marginal.iloc[i]),
            ccr=float(decomposition.component.iloc[i]),
            ccr_pct=float(decomposition.percentage.iloc[i]),
            standalone_vol=float(standalone_vols[i]),
        ))

    contributors.sort(key=lambda c: abs(c.ccr), reverse=True)

    logger.info(
        "build_risk_contributors: contributors built",
        num_contributors=len(contributors),
    )

    return contributors


def build_risk_summary(
    weights: WeightsLike,
    cov: CovLike,
    periods_per_year: int,
    confidence: float = 0.95,
    portfolio_value: float = 1.0,
) -> RiskSummary:
    """Build portfolio level risk figures.

    VaR and ES are one-period figures expressed in units of portfolio_value.
    """
    w, cov_arr, _ = align_weights_and_cov(weights, cov)

    vol = portfolio_std_dev(w, cov_arr)

    summary = RiskSummary(
        vol=vol,
        vol_ann=float(annualize_vol(vol, periods_per_year)),
        var=parametric_var(w, cov_arr, confidence=confidence, portfolio_value=portfolio_value),
        es=expected_shortfall(w, cov_arr, confidence=confidence, portfolio_value=portfolio_value),
        confidence=confidence,
        num_positions=int(np.sum(np.abs(w) > ZERO_WEIGHT_TOL)),
        weight_sum=float(w.sum()),
    )

    logger.info(
        "build_risk_summary: summary built",
        num_positions=summary.num_positions,
        vol=summary.vol,
        vol_ann=summary.vol_ann,
    )

    return summary


def compute_risk_pack(
    prices: Mapping[str, Union[AssetSeries, pd.Series]],
    weights: WeightsLike,
    settings: Optional[Settings] = None,
) -> RiskPack:
    """Orchestrate full risk computation.

    Steps:
    1. Build aligned returns (RISK_RETURN_METHOD), trimmed to RISK_LOOKBACK
    2. Estimate covariance (RISK_COV_METHOD)
    3. Portfolio volatility, VaR and ES
    4. Per-position risk contributions
    5. Rolling volatility (RISK_ROLLING_WINDOW, sample covariance per window)

    Weights are positional in the order of ``prices`` unless given as a
    Series labelled by asset name.
    """
    settings = settings or get_settings()
    symbols = [str(s) for s in prices.keys()]

    w, _ = align_weights(weights, symbols, len(symbols), against="assets")

    returns = build_returns(prices, settings.RISK_RETURN_METHOD)
    if settings.RISK_LOOKBACK:
        returns = trim_to_window(returns, settings.RISK_LOOKBACK)

    cov = estimate_covariance(returns, settings.RISK_COV_METHOD)

    summary = build_risk_summary(
        w,
        cov,
        periods_per_year=settings.RISK_PERIODS_PER_YEAR,
        confidence=settings.RISK_VAR_CONFIDENCE,
    )
    contributors = build_risk_contributors(w, cov, symbols, portfolio_sd=summary.vol)

    rolling = rolling_portfolio_std_dev(
        returns,
        w,
        window=settings.RISK_ROLLING_WINDOW,
        max_workers=settings.RISK_MAX_WORKERS,
    )
    rolling_ann = annualize_vol(rolling, settings.RISK_PERIODS_PER_YEAR)
    rolling_vol = [
        RollingVolPoint(end_date=ts.date(), vol=float(vol), vol_ann=float(rolling_ann.loc[ts]))
        for ts, vol in rolling.items()
    ]

    pack = RiskPack(
        asof_date=returns.index.max().date(),
        start_date=returns.index.min().date(),
        method=settings.RISK_RETURN_METHOD,
        cov_method=settings.RISK_COV_METHOD,
        window=settings.RISK_ROLLING_WINDOW,
        periods_per_year=settings.RISK_PERIODS_PER_YEAR,
        num_periods=len(returns),
        assets=symbols,
        summary=summary,
        contributors=contributors,
        rolling_vol=rolling_vol,
    )

    logger.info(
        "risk_pack_computed",
        num_assets=len(symbols),
        num_periods=pack.num_periods,
        vol_ann=summary.vol_ann,
        rolling_points=len(rolling_vol),
    )

    return pack
