"""
Risk Analytics Engine

Portfolio volatility and risk decomposition from asset price histories.
Pure computation modules operating on pandas DataFrames and numpy arrays.

Modules:
- returns: Price alignment and return calculations
- covariance: Sample and Ledoit-Wolf covariance, annualization
- volatility: Portfolio volatility, rolling volatility, VaR and ES
- decomposition: Marginal, component and percentage risk contributions
- report: Risk pack orchestration and output models
"""

from .errors import (
    RiskError,
    InvalidSeriesError,
    InsufficientDataError,
    NonPositivePriceError,
    DimensionMismatchError,
    InvalidWindowError,
    DivisionByZeroError,
    NumericalError,
)

from .types import (
    AssetSeries,
    ReturnMethod,
    RiskDecomposition,
)

# Returns module
from .returns import (
    build_price_matrix,
    build_returns,
    compute_log_returns,
    compute_simple_returns,
    trim_to_window,
)

# Covariance module
from .covariance import (
    PERIODS_PER_YEAR,
    covariance,
    ledoit_wolf_cov,
    estimate_covariance,
    annualize_cov,
)

# Volatility module
from .volatility import (
    portfolio_std_dev,
    portfolio_std_dev_expanded,
    rolling_portfolio_std_dev,
    annualize_vol,
    parametric_var,
    expected_shortfall,
)

# Decomposition module
from .decomposition import (
    decompose_risk,
    marginal_contribution_to_risk,
    component_contribution_to_risk,
    pct_contribution_to_risk,
)

# Report module
from .report import (
    RiskContributor,
    RiskSummary,
    RollingVolPoint,
    RiskPack,
    build_risk_contributors,
    build_risk_summary,
    compute_risk_pack,
)

__all__ = [
    # Errors
    'RiskError',
    'InvalidSeriesError',
    'InsufficientDataError',
    'NonPositivePriceError',
    'DimensionMismatchError',
    'InvalidWindowError',
    'DivisionByZeroError',
    'NumericalError',
    # Types
    'AssetSeries',
    'ReturnMethod',
    'RiskDecomposition',
    # Returns
    'build_price_matrix',
    'build_returns',
    'compute_log_returns',
    'compute_simple_returns',
    'trim_to_window',
    # Covariance
    'PERIODS_PER_YEAR',
    'covariance',
    'ledoit_wolf_cov',
    'estimate_covariance',
    'annualize_cov',
    # Volatility
    'portfolio_std_dev',
    'portfolio_std_dev_expanded',
    'rolling_portfolio_std_dev',
    'annualize_vol',
    'parametric_var',
    'expected_shortfall',
    # Decomposition
    'decompose_risk',
    'marginal_contribution_to_risk',
    'component_contribution_to_risk',
    'pct_contribution_to_risk',
    # Report
    'RiskContributor',
    'RiskSummary',
    'RollingVolPoint',
    'RiskPack',
    'build_risk_contributors',
    'build_risk_summary',
    'compute_risk_pack',
]
