"""
Unit tests for behavioral.py - Behavioral Bias and Goal Probability Module

Tests cover:
- Each bias rule and its severity tiers
- Investor behavior scores
- Analytic goal probability and years-to-goal
- Monte Carlo goal probability
"""

import pytest
import numpy as np
import pandas as pd

from simcore.analytics.behavioral import (
    detect_behavioral_biases,
    goal_probability,
    investor_behavior_scores,
    monte_carlo_goal_probability,
    round_half_up,
    years_to_goal,
)
from simcore.analytics.models import Asset, MonteCarloResult, PortfolioMetrics


def _equal(assets):
    return {a.symbol: 100 / len(assets) for a in assets}


def _types(biases):
    return [b.type for b in biases]


class TestDetectBehavioralBiases:
    """Tests for detect_behavioral_biases function."""

    def test_sample_portfolio_sector_bias_only(self, sample_assets, sample_allocation):
        """55% in Technology is the only bias in the sample portfolio."""
        biases = detect_behavioral_biases(sample_assets, sample_allocation)

        assert _types(biases) == ['Sector Concentration Bias']
        assert biases[0].severity == 'high'
        assert biases[0].confidence == pytest.approx(0.90)

    @pytest.mark.parametrize("top,severity", [(35, 'medium'), (45, 'high'), (55, 'critical')])
    def test_concentration_severity(self, sample_assets, top, severity):
        """Largest holding above 30/40/50 maps to medium/high/critical."""
        rest = (100 - top) / 4
        alloc = {'JNJ': top, 'AAPL': rest, 'MSFT': rest, 'XOM': rest, 'KO': rest}
        bias = next(b for b in detect_behavioral_biases(sample_assets, alloc) if b.type == 'Concentration Bias')
        assert bias.severity == severity

    def test_few_holdings(self):
        """Fewer than 3 holdings is critical, 3-4 is high."""
        two = [Asset(symbol='A', sector='X'), Asset(symbol='B', sector='Y')]
        four = two + [Asset(symbol='C', sector='Z'), Asset(symbol='D', sector='W')]

        bias_two = next(b for b in detect_behavioral_biases(two, _equal(two)) if b.type == 'Insufficient Diversification')
        bias_four = next(b for b in detect_behavioral_biases(four, _equal(four)) if b.type == 'Insufficient Diversification')

        assert bias_two.severity == 'critical'
        assert bias_four.severity == 'high'

    def test_recency_bias(self):
        """More than 60% high performers across more than 3 holdings."""
        assets = [Asset(symbol=f'H{i}', sector=f'S{i}', expected_return=20.0) for i in range(4)]
        assert 'Recency Bias' in _types(detect_behavioral_biases(assets, _equal(assets)))

    def test_overtrading(self):
        """More than 25 holdings flags overtrading."""
        assets = [Asset(symbol=f'T{i}', sector=f'S{i % 8}') for i in range(26)]
        assert 'Overtrading Tendency' in _types(detect_behavioral_biases(assets, _equal(assets)))

    def test_home_country_from_country_field(self):
        """Domestic share uses the country field when present."""
        domestic = [Asset(symbol=f'd{i}', sector=f'S{i}', country='US') for i in range(6)]
        foreign = [Asset(symbol=f'F{i}', sector=f'S{i}', country='DE') for i in range(6)]

        assert 'Home Country Bias' in _types(detect_behavioral_biases(domestic, _equal(domestic)))
        assert 'Home Country Bias' not in _types(detect_behavioral_biases(foreign, _equal(foreign)))

    def test_home_country_configurable(self):
        """A different home country changes what counts as domestic."""
        assets = [Asset(symbol=f'F{i}', sector=f'S{i}', country='DE') for i in range(6)]
        biases = detect_behavioral_biases(assets, _equal(assets), home_country='DE')
        assert 'Home Country Bias' in _types(biases)

    def test_home_country_symbol_fallback(self):
        """Without a country, short upper-case tickers count as domestic."""
        assets = [Asset(symbol=s, sector=f'S{i}') for i, s in enumerate(['AA', 'BB', 'CC', 'DD', 'EE', 'FF'])]
        assert 'Home Country Bias' in _types(detect_behavioral_biases(assets, _equal(assets)))

    def test_loss_aversion(self):
        """Average volatility below 10% flags loss aversion."""
        assets = [Asset(symbol=f'L{i}', sector=f'S{i}', risk=6.0) for i in range(5)]
        assert 'Excessive Loss Aversion' in _types(detect_behavioral_biases(assets, _equal(assets)))

    def test_empty(self, sample_assets):
        """Missing inputs give no biases."""
        assert detect_behavioral_biases([], {'A': 100}) == []
        assert detect_behavioral_biases(sample_assets, {}) == []


class TestInvestorBehaviorScores:
    """Tests for investor_behavior_scores function."""

    def test_sample_scores(self, sample_allocation):
        """Component scores for a 30/25/20/15/10 allocation and Sharpe 0.5."""
        scores = investor_behavior_scores(sample_allocation, PortfolioMetrics(sharpe_ratio=0.5))

        assert scores['discipline_score'] == 53
        assert scores['diversification_score'] == 86
        assert scores['risk_awareness_score'] == 60
        assert scores['concentration_score'] == 40
        assert scores['overall_score'] == 60

    def test_scores_bounded(self):
        """Extreme inputs stay within 0-100."""
        scores = investor_behavior_scores({'A': 100}, PortfolioMetrics(sharpe_ratio=-10))
        assert all(0 <= v <= 100 for v in scores.values())

    def test_missing_inputs(self):
        """Missing metrics give zero scores."""
        assert investor_behavior_scores({'A': 100}, None)['overall_score'] == 0


class TestGoalProbability:
    """Tests for goal_probability and years_to_goal."""

    def test_years_to_goal(self):
        """ln(10) / ln(1.08) is about 29.9 years."""
        assert years_to_goal(1_000_000, 100_000, 8.0) == pytest.approx(29.9)

    def test_years_to_goal_non_finite(self):
        """A non-positive capital ratio has no defined horizon."""
        assert years_to_goal(1_000_000, -5_000, 8.0) is None
        assert years_to_goal(1_000_000, 100_000, 0.0) is None

    def test_target_vs_required_horizon(self):
        """A 10-year horizon reports the 29.9-year requirement separately."""
        goal = goal_probability(8.0, 15.0, 10, 1_000_000, 100_000)

        assert goal.years_to_goal == pytest.approx(29.9)
        assert not goal.on_track
        assert goal.confidence == 'low'

    def test_projection_with_contributions(self):
        """Monthly compounding plus 5%/12 contributions of current capital."""
        goal = goal_probability(8.0, 15.0, 10, 1_000_000, 100_000)

        value = 100_000.0
        for _ in range(120):
            value = value * (1 + 0.08 / 12) + 100_000 * 0.05 / 12

        assert goal.projected_value == pytest.approx(value)
        assert goal.probability == round_half_up(value / 1_000_000 * 100)
        assert goal.gap == pytest.approx(1_000_000 - value)

    @pytest.mark.parametrize("ret,horizon,target,current", [
        (8.0, 10, 1_000_000, 100_000),
        (25.0, 30, 200_000, 100_000),
        (-5.0, 5, 150_000, 100_000),
        (3.0, 1, 50_000, 100_000),
        (12.0, 0.5, 10_000_000, 1),
    ])
    def test_probability_bounded(self, ret, horizon, target, current):
        """Probability stays within [0, 100]."""
        assert 0 <= goal_probability(ret, 15.0, horizon, target, current).probability <= 100

    def test_target_already_met(self):
        """Target below current capital is 100% and needs no time."""
        goal = goal_probability(6.0, 10.0, 5, 50_000, 100_000)

        assert goal.probability == 100
        assert goal.on_track
        assert goal.years_to_goal == 0.0
        assert goal.confidence == 'high'

    def test_negative_return_reports_horizon(self):
        """With a non-positive return the requested horizon is returned."""
        assert goal_probability(-2.0, 10.0, 7, 200_000, 100_000).years_to_goal == 7.0

    def test_degenerate_inputs(self):
        """Zero capital or horizon short-circuits to probability 0."""
        assert goal_probability(8.0, 15.0, 10, 1_000_000, 0).probability == 0
        assert goal_probability(8.0, 15.0, 10, 1_000_000, 0).years_to_goal is None
        assert goal_probability(8.0, 15.0, 0, 1_000_000, 100_000).probability == 0


class TestMonteCarloGoalProbability:
    """Tests for monte_carlo_goal_probability function."""

    def test_success_fraction(self, sample_mc):
        """Success is the share of paths at or above the target."""
        target = sample_mc.median
        expected = np.mean(sample_mc.final_values >= target) * 100
        result = monte_carlo_goal_probability(sample_mc, target)

        assert result.success_probability == round_half_up(expected)
        assert result.median == pytest.approx(sample_mc.median)
        assert result.worst_case_5pct == pytest.approx(sample_mc.percentile_5)
        assert result.best_case_95pct == pytest.approx(sample_mc.percentile_95)

    def test_trivial_target(self, sample_mc):
        """A zero target is always met."""
        result = monte_carlo_goal_probability(sample_mc, 0)

        assert result.success_probability == 100
        assert result.confidence == 'high'
        assert result.gap == 0.0

    def test_unreachable_target(self, sample_mc):
        """A target above every path is never met."""
        result = monte_carlo_goal_probability(sample_mc, sample_mc.max * 10)

        assert result.success_probability == 0
        assert result.confidence == 'low'
        assert result.interpretation.startswith('Low probability')

    def test_empty_result(self):
        """No simulation data gives the insufficient-data response."""
        result = monte_carlo_goal_probability(MonteCarloResult(), 1_000)
        assert result.gap == 1_000
        assert result.interpretation == 'Insufficient simulation data'


class TestRoundHalfUp:
    """Integer outputs round exact halves upward."""

    @pytest.mark.parametrize("value,expected", [(62.5, 63), (0.5, 1), (2.5, 3), (62.4, 62), (-2.5, -2)])
    def test_round_half_up(self, value, expected):
        """Halves go up, unlike banker's rounding."""
        assert round_half_up(value) == expected

    def test_investor_score_half(self):
        """A risk-awareness score of exactly 62.5 reports 63."""
        scores = investor_behavior_scores({'A': 100.0}, PortfolioMetrics(sharpe_ratio=0.625))
        assert scores['risk_awareness_score'] == 63

    def test_monte_carlo_success_half(self):
        """Five of eight paths reaching the target is reported as 63%."""
        finals = [90.0, 95.0, 99.0, 100.0, 110.0, 120.0, 130.0, 140.0]
        paths = pd.DataFrame({'final_value': finals, 'max_drawdown': 0.0, 'gain': 0.0})
        mc = MonteCarloResult(simulations=8, paths=paths)

        result = monte_carlo_goal_probability(mc, 100.0)

        assert result.success_probability == 63
