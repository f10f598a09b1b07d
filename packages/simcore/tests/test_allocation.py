"""
Unit tests for allocation.py - Allocation Heuristics

Tests cover:
- Weight / allocation conversions and weight alignment
- The four strategy generators and their clamping bands
- Strategy validation tiers and ordering checks
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from simcore.analytics.allocation import (
    align_weights,
    allocation_to_weights,
    generate_allocations,
    max_return_allocation,
    min_variance_allocation,
    optimal_allocation,
    risk_parity_allocation,
    validate_strategies,
    weights_to_allocation,
)
from simcore.analytics.models import Asset, PortfolioMetrics


def _identical_assets(n):
    return [Asset(symbol=f'S{i}', sector='Same', risk=18.0, expected_return=10.0) for i in range(n)]


class TestConversions:
    """Tests for align_weights and the allocation/weight conversions."""

    def test_round_trip(self, sample_assets, sample_weights):
        """Weights -> allocation -> weights preserves values."""
        alloc = weights_to_allocation(sample_weights, sample_assets)
        assert_allclose(allocation_to_weights(alloc, sample_assets), sample_weights)

    def test_missing_symbols_are_zero(self, sample_assets):
        """Symbols absent from the map get weight 0."""
        w = allocation_to_weights({'AAPL': 60, 'KO': 40}, sample_assets)
        assert_allclose(w, [0.6, 0, 0, 0, 0.4])

    def test_align_pads_and_truncates(self):
        """Short vectors are zero-padded, long ones truncated."""
        assert_allclose(align_weights([0.5], 3), [0.5, 0, 0])
        assert_allclose(align_weights([0.2, 0.3, 0.5], 2), [0.2, 0.3])
        assert len(align_weights(None, 2)) == 2


class TestStrategies:
    """Tests for the allocation generators."""

    @pytest.mark.parametrize("generator", [optimal_allocation, min_variance_allocation, risk_parity_allocation])
    def test_identical_assets_near_uniform(self, generator):
        """Identical assets receive equal weights."""
        alloc = generator(_identical_assets(5))
        assert_allclose(list(alloc.values()), 20.0)

    def test_optimal_clamped(self, sample_assets):
        """Optimal weights stay within [2, 35]."""
        alloc = optimal_allocation(sample_assets)
        assert all(2.0 <= v <= 35.0 for v in alloc.values())

    def test_optimal_dominant_asset_capped(self):
        """A dominant score is capped at 35 without renormalising the rest."""
        assets = [
            Asset(symbol='STAR', expected_return=40.0, risk=10.0),
            Asset(symbol='DUD1', expected_return=1.0, risk=40.0),
            Asset(symbol='DUD2', expected_return=1.0, risk=40.0),
        ]
        alloc = optimal_allocation(assets)
        assert alloc['STAR'] == 35.0
        assert sum(alloc.values()) < 100.0

    def test_optimal_all_zero_scores(self):
        """With no positive expected return every holding gets the floor."""
        assets = [Asset(symbol='A', expected_return=0.0), Asset(symbol='B', expected_return=-3.0)]
        assert optimal_allocation(assets) == {'A': 2.0, 'B': 2.0}

    def test_min_variance_prefers_low_risk(self, sample_assets):
        """Lower-volatility holdings get larger weights."""
        alloc = min_variance_allocation(sample_assets)
        assert alloc['KO'] > alloc['XOM']
        assert all(5.0 <= v <= 40.0 for v in alloc.values())

    def test_risk_parity_sums_to_100(self, sample_assets):
        """Risk parity is unclamped and fully normalised."""
        alloc = risk_parity_allocation(sample_assets)
        assert sum(alloc.values()) == pytest.approx(100.0)

    def test_max_return_top_performers(self, sample_assets):
        """Assets within 10% of the best return are equal-weighted."""
        alloc = max_return_allocation(sample_assets)
        assert alloc == {'AAPL': 50.0, 'MSFT': 50.0, 'JNJ': 0.0, 'XOM': 0.0, 'KO': 0.0}

    def test_max_return_negative_returns(self):
        """The band is measured on |max| so negative portfolios are not empty."""
        assets = [
            Asset(symbol='A', expected_return=-5.0),
            Asset(symbol='B', expected_return=-5.2),
            Asset(symbol='C', expected_return=-10.0),
        ]
        assert max_return_allocation(assets) == {'A': 50.0, 'B': 50.0, 'C': 0.0}

    def test_generate_allocations_keys(self, sample_assets):
        """All four strategies are produced."""
        allocs = generate_allocations(sample_assets)
        assert set(allocs) == {
            'optimal_portfolio',
            'minimum_variance_portfolio',
            'risk_parity_portfolio',
            'maximum_return_portfolio',
        }

    def test_empty(self):
        """Empty asset lists give empty maps."""
        for generator in (optimal_allocation, min_variance_allocation,
                          risk_parity_allocation, max_return_allocation):
            assert generator([]) == {}


class TestValidateStrategies:
    """Tests for validate_strategies function."""

    @staticmethod
    def _metrics(vol, ret, sharpe):
        return PortfolioMetrics(volatility=vol, expected_return=ret, sharpe_ratio=sharpe)

    def _consistent(self):
        return {
            'optimal_portfolio': self._metrics(15.0, 10.0, 0.6),
            'minimum_variance_portfolio': self._metrics(12.0, 8.0, 0.5),
            'maximum_return_portfolio': self._metrics(20.0, 12.0, 0.4),
        }

    def test_extreme_correlation_blocks(self, sample_assets):
        """Average correlation above 0.75 is a critical error."""
        result = validate_strategies(self._consistent(), sample_assets, 0.8)
        assert not result['is_valid']
        assert not result['can_show_frontier']
        assert result['critical_errors'][0]['type'] == 'extreme_correlation'

    @pytest.mark.parametrize("avg_corr,expected", [(0.65, 'high_correlation'), (0.5, 'moderate_correlation')])
    def test_correlation_warning_tiers(self, sample_assets, avg_corr, expected):
        """Lower tiers warn without blocking."""
        result = validate_strategies(self._consistent(), sample_assets, avg_corr)
        assert result['is_valid']
        assert expected in [w['type'] for w in result['warnings']]

    def test_consistent_strategies_clean(self, sample_assets):
        """Well-ordered strategies over diverse assets raise nothing."""
        result = validate_strategies(self._consistent(), sample_assets, 0.3)
        assert result['warnings'] == []
        assert result['critical_errors'] == []

    def test_ordering_warnings(self, sample_assets):
        """Out-of-order risk, return and Sharpe are all flagged."""
        metrics = {
            'optimal_portfolio': self._metrics(10.0, 13.0, 0.2),
            'minimum_variance_portfolio': self._metrics(14.0, 8.0, 0.9),
            'maximum_return_portfolio': self._metrics(20.0, 11.0, 0.4),
        }
        types = [w['type'] for w in validate_strategies(metrics, sample_assets, 0.3)['warnings']]
        assert {'risk_ordering', 'return_ordering', 'sharpe_ordering'} <= set(types)

    def test_low_diversity(self, same_sector_assets):
        """Identical assets trigger the low-diversity warning."""
        result = validate_strategies(self._consistent(), same_sector_assets, 0.3)
        assert 'low_diversity' in [w['type'] for w in result['warnings']]
