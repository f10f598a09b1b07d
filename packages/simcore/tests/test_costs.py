"""
Unit tests for costs.py - Transaction Cost and Rebalancing Analysis
"""

import pytest

from simcore.analytics.costs import rebalancing_impact, transaction_costs


class TestTransactionCosts:
    """Tests for transaction_costs function."""

    def test_basic_cost(self):
        """Moving 10 points in each of two names at 10 bps costs 0.02% of the book."""
        result = transaction_costs({'A': 50, 'B': 50}, {'A': 40, 'B': 60})

        assert result['trade_count'] == 2
        assert result['total_cost'] == pytest.approx(0.02)
        assert result['trades'][0]['change'] == pytest.approx(10)

    def test_small_changes_ignored(self):
        """Changes of 0.01 points or less are not traded."""
        result = transaction_costs({'A': 50.005, 'B': 49.995}, {'A': 50, 'B': 50})

        assert result['trade_count'] == 0
        assert result['total_cost'] == 0.0

    def test_exits_are_charged(self):
        """A symbol only in the old allocation is sold and costed."""
        result = transaction_costs({'A': 100}, {'A': 50, 'B': 50})
        assert {t['symbol'] for t in result['trades']} == {'A', 'B'}

    def test_bps_scales_linearly(self):
        """Doubling bps doubles the cost."""
        base = transaction_costs({'A': 100}, {}, bps=10)
        double = transaction_costs({'A': 100}, {}, bps=20)
        assert double['total_cost'] == pytest.approx(2 * base['total_cost'])

    def test_none_allocations(self):
        """Missing allocations are treated as empty."""
        assert transaction_costs(None, None)['trade_count'] == 0


class TestRebalancingImpact:
    """Tests for rebalancing_impact function."""

    @pytest.mark.parametrize("frequency,rebalances", [
        ('monthly', 60), ('quarterly', 20), ('semi-annual', 10), ('annual', 5),
    ])
    def test_rebalance_counts(self, frequency, rebalances):
        """Five years at each frequency."""
        result = rebalancing_impact({'A': 50, 'B': 50}, {'A': 40, 'B': 60}, frequency)
        assert result['rebalances'] == rebalances
        assert len(result['timeline']) == rebalances

    def test_accumulates(self):
        """Accumulated cost is per-period cost times the rebalance count."""
        result = rebalancing_impact({'A': 50, 'B': 50}, {'A': 40, 'B': 60}, 'quarterly')

        assert result['accumulated_cost'] == pytest.approx(20 * 0.02)
        assert result['timeline'][-1]['accumulated_cost'] == pytest.approx(result['accumulated_cost'])

    def test_unknown_frequency_defaults_to_annual(self):
        """Unrecognised frequencies fall back to annual."""
        result = rebalancing_impact({'A': 100}, {}, 'fortnightly')
        assert result['frequency_months'] == 12
        assert result['rebalances'] == 5
