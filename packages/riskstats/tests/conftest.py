"""
Shared test fixtures for the risk statistics test suite.

Provides consistent test data across all test modules:
- Sample price series (random walks) as AssetSeries
- Sample returns DataFrame with correlation structure
- Sample portfolio weights and covariance matrices
- The small three-asset monthly scenario
"""

import pytest
import numpy as np
import pandas as pd

from riskstats.risk.types import AssetSeries


@pytest.fixture
def sample_symbols():
    """Standard list of symbols used across tests.

    Returns:
        List[str]: List of 5 stock symbols
    """
    return ['AAPL', 'GOOGL', 'MSFT', 'TSLA', 'AMZN']


@pytest.fixture
def sample_prices(sample_symbols):
    """Random walk prices for 5 symbols over 300 trading days.

    Returns:
        Dict[str, AssetSeries]: symbol -> price history
    """
    np.random.seed(42)
    dates = pd.bdate_range('2023-01-01', periods=300)
    prices = {}

    for i, sym in enumerate(sample_symbols):
        base_price = 100 + i * 50
        returns = np.random.normal(0.0005, 0.02, len(dates))
        price_series = base_price * np.exp(np.cumsum(returns))
        prices[sym] = AssetSeries(pd.Series(price_series, index=dates))

    return prices


@pytest.fixture
def sample_returns(sample_symbols):
    """Returns DataFrame with correlation structure.

    Returns:
        pd.DataFrame: Returns matrix (252 x 5) with DatetimeIndex
            GOOGL and MSFT are correlated with AAPL
    """
    np.random.seed(42)
    dates = pd.bdate_range('2023-01-01', periods=252)

    data = np.random.normal(0, 0.02, (len(dates), len(sample_symbols)))

    data[:, 1] = 0.7 * data[:, 0] + 0.3 * data[:, 1]
    data[:, 2] = 0.5 * data[:, 0] + 0.5 * data[:, 2]

    return pd.DataFrame(data, index=dates, columns=sample_symbols)


@pytest.fixture
def sample_weights():
    """Sample portfolio weights (long-only, sum to 1).

    Returns:
        np.ndarray: Array of 5 weights summing to 1.0
    """
    return np.array([0.30, 0.25, 0.20, 0.15, 0.10])


@pytest.fixture
def sample_cov(sample_returns):
    """Sample covariance matrix from returns.

    Returns:
        np.ndarray: 5x5 covariance matrix
    """
    return sample_returns.cov().values


@pytest.fixture
def monthly_prices():
    """Three assets, four month-end prices each.

    Returns:
        Dict[str, AssetSeries]: A, B, C price histories
    """
    dates = pd.to_datetime(['2024-01-31', '2024-02-29', '2024-03-31', '2024-04-30'])
    return {
        'A': AssetSeries(pd.Series([100.0, 102.0, 101.0, 105.0], index=dates)),
        'B': AssetSeries(pd.Series([50.0, 49.0, 51.0, 50.0], index=dates)),
        'C': AssetSeries(pd.Series([10.0, 10.5, 10.4, 10.6], index=dates)),
    }


@pytest.fixture
def monthly_weights():
    return np.array([0.5, 0.3, 0.2])
