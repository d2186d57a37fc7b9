"""
Unit tests for decomposition.py - Risk Decomposition Module

Tests cover:
- Marginal / component / percentage contribution identities
- Zero, negative and mismatched portfolio volatility
- Label propagation and the convenience wrappers
"""

import pytest
import numpy as np
import pandas as pd
from numpy.testing import assert_allclose

from riskstats.risk.covariance import covariance
from riskstats.risk.decomposition import (
    component_contribution_to_risk,
    decompose_risk,
    marginal_contribution_to_risk,
    pct_contribution_to_risk,
)
from riskstats.risk.errors import (
    DimensionMismatchError,
    DivisionByZeroError,
    NumericalError,
    RiskError,
)
from riskstats.risk.returns import build_returns
from riskstats.risk.types import RiskDecomposition
from riskstats.risk.volatility import portfolio_std_dev


class TestDecomposeRisk:
    """Tests for decompose_risk function."""

    def test_returns_decomposition(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, sd)

        assert isinstance(result, RiskDecomposition)
        assert result.portfolio_vol == sd
        assert len(result.marginal) == len(sample_weights)

    def test_component_sum_equals_vol(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, sd)

        assert_allclose(result.component.sum(), sd, rtol=1e-9)

    def test_percentage_sum_equals_one(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, sd)

        assert_allclose(result.percentage.sum(), 1.0, rtol=1e-9)

    def test_marginal_formula(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, sd)

        expected = sample_cov @ sample_weights / sd
        assert_allclose(result.marginal.values, expected, rtol=1e-12)
        assert_allclose(result.component.values, expected * sample_weights, rtol=1e-12)

    def test_long_short_identities(self, sample_cov):
        weights = np.array([0.8, -0.3, 0.4, 0.5, -0.4])
        sd = portfolio_std_dev(weights, sample_cov)

        result = decompose_risk(weights, sample_cov, sd)

        assert_allclose(result.component.sum(), sd, rtol=1e-9)
        assert_allclose(result.percentage.sum(), 1.0, rtol=1e-9)

    def test_monthly_scenario(self, monthly_prices, monthly_weights):
        returns = build_returns(monthly_prices, method="log")
        cov = covariance(returns)
        sd = portfolio_std_dev(monthly_weights, cov)

        result = decompose_risk(monthly_weights, cov, sd)

        assert list(result.marginal.index) == ['A', 'B', 'C']
        assert_allclose(result.component.sum(), sd, rtol=1e-9)
        assert_allclose(result.percentage.sum(), 1.0, rtol=1e-9)

    def test_single_asset_owns_all_risk(self):
        cov = np.array([[0.0025]])

        result = decompose_risk([1.0], cov, portfolio_std_dev([1.0], cov))

        assert_allclose(result.percentage.iloc[0], 1.0)
        assert_allclose(result.component.iloc[0], 0.05)

    def test_zero_vol_raises(self):
        cov = np.array([[1.0, 1.0], [1.0, 1.0]])

        with pytest.raises(DivisionByZeroError, match="zero volatility"):
            decompose_risk([1.0, -1.0], cov, 0.0)

    def test_zero_vol_is_zero_division(self, sample_weights, sample_cov):
        with pytest.raises(ZeroDivisionError):
            decompose_risk(sample_weights, sample_cov, 0.0)

        with pytest.raises(RiskError):
            decompose_risk(sample_weights, sample_cov, 0.0)

    @pytest.mark.parametrize("sd", [-0.01, np.nan, np.inf])
    def test_invalid_sd_raises(self, sample_weights, sample_cov, sd):
        with pytest.raises(NumericalError):
            decompose_risk(sample_weights, sample_cov, sd)

    def test_mismatched_sd_scales_percentages(self, sample_weights, sample_cov):
        """Decomposing against 2 * sigma quarters the percentage sum."""
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, 2 * sd)

        assert_allclose(result.percentage.sum(), 0.25, rtol=1e-9)
        assert_allclose(result.component.sum(), sd / 2, rtol=1e-9)

    def test_dimension_mismatch_raises(self, sample_cov):
        with pytest.raises(DimensionMismatchError):
            decompose_risk([0.5, 0.5], sample_cov, 0.01)

    def test_labels_from_covariance(self, sample_returns, sample_weights):
        cov = covariance(sample_returns)
        sd = portfolio_std_dev(sample_weights, cov)

        result = decompose_risk(sample_weights, cov, sd)

        assert list(result.component.index) == list(sample_returns.columns)
        assert result.marginal.name == 'marginal'
        assert result.percentage.name == 'percentage'

    def test_positional_labels_without_names(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        result = decompose_risk(sample_weights, sample_cov, sd)

        assert list(result.component.index) == [0, 1, 2, 3, 4]

    def test_to_frame(self, sample_returns, sample_weights):
        cov = covariance(sample_returns)
        sd = portfolio_std_dev(sample_weights, cov)

        frame = decompose_risk(sample_weights, cov, sd).to_frame()

        assert list(frame.columns) == ['marginal', 'component', 'percentage']
        assert list(frame.index) == list(sample_returns.columns)

    def test_unnormalized_weights_still_decompose(self, sample_cov):
        weights = np.array([0.6, 0.5, 0.4, 0.3, 0.2])
        sd = portfolio_std_dev(weights, sample_cov)

        result = decompose_risk(weights, sample_cov, sd)

        assert_allclose(result.percentage.sum(), 1.0, rtol=1e-9)


class TestContributionWrappers:
    """Tests for MCR / CCR / PCR convenience functions."""

    def test_mcr_matches_decomposition(self, sample_weights, sample_cov):
        sd = portfolio_std_dev(sample_weights, sample_cov)

        mcr = marginal_contribution_to_risk(sample_weights, sample_cov)

        assert_allclose(mcr.values, decompose_risk(sample_weights, sample_cov, sd).marginal.values)

    def test_ccr_sum_equals_vol(self, sample_weights, sample_cov):
        ccr = component_contribution_to_risk(sample_weights, sample_cov)

        assert_allclose(ccr.sum(), portfolio_std_dev(sample_weights, sample_cov), rtol=1e-9)

    def test_pcr_equals_variance_share(self, sample_weights, sample_cov):
        pcr = pct_contribution_to_risk(sample_weights, sample_cov)

        variance = sample_weights @ sample_cov @ sample_weights
        expected = sample_weights * (sample_cov @ sample_weights) / variance

        assert_allclose(pcr.values, expected, rtol=1e-10)

    def test_labelled_weights(self, sample_returns, sample_weights):
        cov = covariance(sample_returns)
        weights = pd.Series(sample_weights, index=sample_returns.columns).iloc[::-1]

        pcr = pct_contribution_to_risk(weights, cov)

        assert list(pcr.index) == list(sample_returns.columns)
        assert_allclose(pcr['AAPL'], pct_contribution_to_risk(sample_weights, cov).iloc[0])
