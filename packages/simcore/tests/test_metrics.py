"""
Unit tests for metrics.py - Portfolio Metrics Module

Tests cover:
- Covariance-based volatility
- Weighted return/beta/risk and their empty defaults
- The advanced metrics bundle (Sharpe, Sortino, Treynor, Calmar, VaR/CVaR)
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from simcore.analytics.matrices import build_covariance_matrix
from simcore.analytics.metrics import (
    advanced_metrics,
    normal_tail_factors,
    portfolio_volatility,
    weighted_beta,
    weighted_return,
    weighted_risk,
)
from simcore.analytics.models import Asset, PortfolioMetrics


class TestPortfolioVolatility:
    """Tests for portfolio_volatility function."""

    def test_single_asset(self):
        """For a single asset (w=[1]), vol equals the asset vol in percent."""
        vol = portfolio_volatility(np.array([1.0]), np.array([[0.04]]))
        assert_allclose(vol, 20.0)

    def test_non_negative_for_random_weights(self, sample_assets, sample_corr):
        """Volatility is never negative for weights summing to 1."""
        cov = build_covariance_matrix(sample_assets, sample_corr)
        rng = np.random.default_rng(0)
        for _ in range(50):
            w = rng.dirichlet(np.ones(len(sample_assets)))
            assert portfolio_volatility(w, cov) >= 0

    def test_negative_variance_clamped(self):
        """Numerically negative variance yields 0 rather than NaN."""
        cov = np.array([[0.01, 0.02], [0.02, 0.01]])
        vol = portfolio_volatility(np.array([1.0, -1.0]), cov)
        assert vol == 0.0

    def test_empty(self):
        """Empty covariance gives zero volatility."""
        assert portfolio_volatility(np.array([]), np.zeros((0, 0))) == 0.0

    def test_short_weights_padded(self):
        """A short weight vector is zero-padded instead of raising."""
        vol = portfolio_volatility(np.array([1.0]), np.diag([0.04, 0.09]))
        assert_allclose(vol, 20.0)


class TestWeightedAttributes:
    """Tests for weighted_return, weighted_beta and weighted_risk."""

    def test_weighted_return(self, sample_assets, sample_weights):
        """Return is the weight-dot-expected-return."""
        expected = 0.30 * 12 + 0.25 * 11 + 0.20 * 7 + 0.15 * 9 + 0.10 * 6
        assert weighted_return(sample_assets, sample_weights) == pytest.approx(expected)

    def test_weighted_beta(self, sample_assets, sample_weights):
        """Beta is the weight-dot-beta."""
        expected = 0.30 * 1.2 + 0.25 * 1.1 + 0.20 * 0.7 + 0.15 * 0.9 + 0.10 * 0.6
        assert weighted_beta(sample_assets, sample_weights) == pytest.approx(expected)

    def test_weighted_risk(self, sample_assets, sample_weights):
        """Risk is the weight-dot-volatility (no diversification)."""
        expected = 0.30 * 25 + 0.25 * 22 + 0.20 * 15 + 0.15 * 28 + 0.10 * 14
        assert weighted_risk(sample_assets, sample_weights) == pytest.approx(expected)

    def test_empty_defaults(self):
        """Empty input: return and risk 0, beta defaults to the market."""
        assert weighted_return([], []) == 0.0
        assert weighted_risk([], []) == 0.0
        assert weighted_beta([], []) == 1.0


class TestAdvancedMetrics:
    """Tests for advanced_metrics function."""

    def test_single_asset_sharpe(self, single_asset):
        """10% return, 20% vol, 4.5% rf gives Sharpe (10 - 4.5) / 20 = 0.275."""
        m = advanced_metrics(single_asset, [1.0])

        assert m.volatility == pytest.approx(20.0)
        assert m.sharpe_ratio == pytest.approx(0.275)

    def test_single_asset_full_bundle(self, single_asset):
        """Every derived ratio for the single-asset case."""
        m = advanced_metrics(single_asset, [1.0])
        z, es = normal_tail_factors(0.95)

        assert m.expected_return == pytest.approx(10.0)
        assert m.beta_portfolio == pytest.approx(1.0)
        assert m.alpha_portfolio == pytest.approx(0.0)  # CAPM return is 10%
        assert m.max_drawdown == pytest.approx(50.0)
        assert m.calmar_ratio == pytest.approx(0.2)
        assert m.treynor_ratio == pytest.approx(5.5)
        assert m.information_ratio == pytest.approx(0.0)
        assert m.sortino_ratio == 0.0  # no holding below rf
        assert m.var_95 == pytest.approx(10.0 - z * 20.0)
        assert m.cvar_95 == pytest.approx(10.0 - es * 20.0)

    def test_tail_factors(self):
        """Normal quantile and expected-shortfall factor at 95%."""
        z, es = normal_tail_factors(0.95)
        assert z == pytest.approx(1.645, abs=1e-3)
        assert es == pytest.approx(2.063, abs=1e-3)

    def test_cvar_below_var(self, sample_assets, sample_weights, sample_corr):
        """Expected shortfall is always worse than VaR."""
        m = advanced_metrics(sample_assets, sample_weights, sample_corr)
        assert m.cvar_95 < m.var_95

    def test_diversified_vol_below_weighted_risk(self, sample_assets, sample_weights, sample_corr):
        """With correlations below 1, portfolio vol is below the weighted average."""
        m = advanced_metrics(sample_assets, sample_weights, sample_corr)
        assert m.volatility < weighted_risk(sample_assets, sample_weights)

    def test_sortino_uses_downside_holdings(self):
        """Downside deviation comes from holdings returning less than rf."""
        assets = [
            Asset(symbol='A', risk=20.0, expected_return=10.0),
            Asset(symbol='B', risk=20.0, expected_return=2.5),
        ]
        m = advanced_metrics(assets, [0.5, 0.5])

        downside = (4.5 - 2.5) * 0.5
        assert m.sortino_ratio == pytest.approx((6.25 - 4.5) / downside)

    def test_custom_rates(self, single_asset):
        """Risk-free rate and market return are overridable."""
        m = advanced_metrics(single_asset, [1.0], risk_free_rate=2.0, market_return=8.0)
        assert m.sharpe_ratio == pytest.approx(0.4)
        assert m.alpha_portfolio == pytest.approx(2.0)

    def test_zero_beta_treynor_guard(self):
        """Treynor is 0 when portfolio beta is 0."""
        m = advanced_metrics([Asset(symbol='C', beta=0.0, expected_return=5.0)], [1.0])
        assert m.treynor_ratio == 0.0

    def test_empty_portfolio(self):
        """Empty input gives the all-zero bundle."""
        assert advanced_metrics([], []) == PortfolioMetrics()
