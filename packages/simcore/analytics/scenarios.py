"""
Scenario and Stress Testing Module

Fixed-shock stress scenarios, macro regime projections, month-by-month crisis
paths and a regime-adjusted forward-looking risk estimate.  Every scenario is
a parametric overlay on the portfolio's weighted expected return; no
historical prices are replayed.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np
import structlog

from .allocation import align_weights
from .metrics import weighted_return, weighted_risk
from .models import (
    Asset,
    CrisisEventResult,
    MacroScenarioResult,
    StressScenarioResult,
    coerce_assets,
)

logger = structlog.get_logger(__name__)


# Fixed shocks added to the baseline annual return (percent)
STRESS_SCENARIOS = {
    'black_swan': {'name': 'Black Swan (-25%)', 'impact': -25, 'duration': 3, 'probability': 0.05},
    'market_crash': {'name': 'Market Crash (-20%)', 'impact': -20, 'duration': 6, 'probability': 0.08},
    'recession': {'name': 'Recession (-15%)', 'impact': -15, 'duration': 12, 'probability': 0.15},
    'rate_hike': {'name': 'Rate Hike (-10%)', 'impact': -10, 'duration': 6, 'probability': 0.20},
    'normal': {'name': 'Normal (-5%)', 'impact': -5, 'duration': 3, 'probability': 0.25},
    'modest_growth': {'name': 'Modest Growth (+5%)', 'impact': 5, 'duration': 6, 'probability': 0.15},
    'bull_market': {'name': 'Bull Market (+20%)', 'impact': 20, 'duration': 12, 'probability': 0.12},
}

# Macro regimes: portfolio return is blended 50/50 with the regime equity return
MACRO_REGIMES = {
    'bull': {
        'name': 'Bull Market',
        'description': 'Strong growth, rising earnings',
        'equity_return': 18,
        'probability': 0.20,
        'volatility_mult': 0.7,
    },
    'base': {
        'name': 'Base Case',
        'description': 'Moderate growth, stable inflation',
        'equity_return': 8,
        'probability': 0.50,
        'volatility_mult': 1.0,
    },
    'bear': {
        'name': 'Bear Market',
        'description': 'Recession, falling earnings',
        'equity_return': -8,
        'probability': 0.18,
        'volatility_mult': 1.6,
    },
    'stagflation': {
        'name': 'Stagflation',
        'description': 'High inflation, slow growth',
        'equity_return': 0,
        'probability': 0.12,
        'volatility_mult': 2.2,
    },
}
REGIME_BLEND = 0.5

# Crisis archetypes: annual market impact (%), duration and nominal recovery (months)
CRISIS_EVENTS = {
    'black_swan': {'name': 'Black Swan Event', 'market_impact': -30, 'duration': 3, 'recovery': 36},
    'flash_crash': {'name': 'Flash Crash', 'market_impact': -18, 'duration': 1, 'recovery': 2},
    'currency_crisis': {'name': 'Currency Crisis', 'market_impact': -15, 'duration': 6, 'recovery': 24},
    'credit_crunch': {'name': 'Credit Crunch', 'market_impact': -22, 'duration': 12, 'recovery': 48},
    'trade_war': {'name': 'Trade War', 'market_impact': -12, 'duration': 9, 'recovery': 30},
    'rate_spike': {'name': 'Rate Spike', 'market_impact': -10, 'duration': 6, 'recovery': 18},
    'debt_spiral': {'name': 'Debt Spiral', 'market_impact': -25, 'duration': 18, 'recovery': 60},
    'tech_bubble_pop': {'name': 'Tech Bubble Pop', 'market_impact': -28, 'duration': 12, 'recovery': 48},
}

# Forward-looking stress archetypes: volatility amplification and likelihood
FORWARD_STRESS = {
    'geopolitical': {'name': 'Geopolitical Crisis', 'impact_factor': 1.5, 'probability': 0.15},
    'rate_shock': {'name': 'Rate Shock', 'impact_factor': 1.3, 'probability': 0.25},
    'recession': {'name': 'Recession', 'impact_factor': 1.8, 'probability': 0.20},
    'tech_correction': {'name': 'Tech Correction', 'impact_factor': 1.2, 'probability': 0.25},
    'inflation_surge': {'name': 'Inflation Surge', 'impact_factor': 1.1, 'probability': 0.15},
}

NORMAL_MARKET_VOL = 15.0
HIGH_VOL_THRESHOLD = 20.0
LOW_VOL_THRESHOLD = 10.0
LOW_VOL_MULTIPLIER = 0.8


def run_stress_tests(
    assets: Sequence[Asset | dict],
    weights,
) -> List[StressScenarioResult]:
    """Apply each fixed shock to the baseline weighted return.

    Args:
        assets: Holdings
        weights: Fractional weights aligned with *assets*

    Returns:
        One StressScenarioResult per entry of STRESS_SCENARIOS, empty list for
        an empty portfolio
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("run_stress_tests: empty portfolio")
        return []

    w = align_weights(weights, len(assets))
    baseline = weighted_return(assets, w)
    affected = int(np.count_nonzero(w > 0))

    results = [
        StressScenarioResult(
            name=scenario['name'],
            stressed_return=baseline + scenario['impact'],
            impact=scenario['impact'],
            duration=scenario['duration'],
            probability=scenario['probability'],
            affected_assets=affected,
        )
        for scenario in STRESS_SCENARIOS.values()
    ]

    logger.info(
        "run_stress_tests: stress tests complete",
        baseline_return=baseline,
        num_scenarios=len(results),
    )
    return results


def extended_scenario_analysis(
    assets: Sequence[Asset | dict],
    weights,
    initial_capital: float,
    horizon: float,
) -> List[MacroScenarioResult]:
    """Project capital under each macro regime.

    scenario_return = 0.5 * portfolio_return + 0.5 * regime_equity_return,
    compounded annually over *horizon* years.
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("extended_scenario_analysis: empty portfolio")
        return []

    baseline = weighted_return(assets, weights)
    results = []

    for regime in MACRO_REGIMES.values():
        scenario_return = baseline * REGIME_BLEND + regime['equity_return'] * (1 - REGIME_BLEND)
        projected = initial_capital * (1 + scenario_return / 100) ** horizon
        gain = projected - initial_capital
        gain_pct = gain / initial_capital * 100 if initial_capital else 0.0

        results.append(MacroScenarioResult(
            name=regime['name'],
            description=regime['description'],
            equity_return=regime['equity_return'],
            probability=regime['probability'],
            volatility_mult=regime['volatility_mult'],
            scenario_return=scenario_return,
            projected_value=projected,
            gain=gain,
            gain_pct=gain_pct,
        ))

    logger.info(
        "extended_scenario_analysis: regimes projected",
        baseline_return=baseline,
        horizon=horizon,
    )
    return results


def stress_test_extended(
    assets: Sequence[Asset | dict],
    weights,
    initial_capital: float,
) -> List[CrisisEventResult]:
    """Month-by-month compounding path through each crisis archetype.

    The monthly return is (baseline + market_impact) / 12.  Months 0 through
    ``duration`` (inclusive) are each compounded once.  Max loss is measured
    from the path minimum; the recovery month is the first month whose value is
    back at or above the starting capital, or None if the path never recovers
    within the event window.
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("stress_test_extended: empty portfolio")
        return []

    baseline = weighted_return(assets, weights)
    results = []

    for event in CRISIS_EVENTS.values():
        monthly = (baseline + event['market_impact']) / 100 / 12
        months = np.arange(event['duration'] + 1)
        values = initial_capital * (1 + monthly) ** (months + 1)

        min_value = float(values.min())
        max_loss_pct = (min_value - initial_capital) / initial_capital * 100 if initial_capital else 0.0

        recovered = np.flatnonzero(values >= initial_capital)
        recovery_month = int(recovered[0]) if len(recovered) > 0 else None

        results.append(CrisisEventResult(
            name=event['name'],
            market_impact=event['market_impact'],
            duration=event['duration'],
            recovery=event['recovery'],
            max_loss_pct=max_loss_pct,
            recovery_month=recovery_month,
            final_value=float(values[-1]),
            recovery_path=[
                {'month': int(m), 'value': float(v)} for m, v in zip(months, values)
            ],
        ))

    logger.info(
        "stress_test_extended: crisis paths computed",
        baseline_return=baseline,
        num_events=len(results),
    )
    return results


def regime_multiplier(market_volatility: float) -> float:
    """Volatility scaling for the current market regime."""
    if market_volatility > HIGH_VOL_THRESHOLD:
        return market_volatility / NORMAL_MARKET_VOL
    if market_volatility < LOW_VOL_THRESHOLD:
        return LOW_VOL_MULTIPLIER
    return 1.0


def forward_looking_risk(
    assets: Sequence[Asset | dict],
    weights,
    market_volatility: float = NORMAL_MARKET_VOL,
) -> Dict:
    """Regime-adjusted, stress-weighted forward volatility estimate.

    adjusted_vol = weighted_risk * regime_multiplier(market_volatility)
    forward_risk = sum_k adjusted_vol * factor_k * p_k / sum(p)

    Returns:
        Dict with base_volatility, regime_multiplier, regime_adjusted_volatility,
        forward_looking_risk, expected_return and stress_scenarios
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("forward_looking_risk: empty portfolio")
        return {
            'base_volatility': 0.0,
            'regime_multiplier': 1.0,
            'regime_adjusted_volatility': 0.0,
            'forward_looking_risk': 0.0,
            'expected_return': 0.0,
            'stress_scenarios': [],
        }

    expected = weighted_return(assets, weights)
    base_vol = weighted_risk(assets, weights)
    multiplier = regime_multiplier(market_volatility)
    adjusted_vol = base_vol * multiplier

    scenarios = list(FORWARD_STRESS.values())
    total_prob = sum(s['probability'] for s in scenarios)
    forward = sum(
        adjusted_vol * s['impact_factor'] * s['probability'] / total_prob
        for s in scenarios
    )

    logger.info(
        "forward_looking_risk: forward risk computed",
        market_volatility=market_volatility,
        regime_multiplier=multiplier,
        forward_risk=forward,
    )

    return {
        'base_volatility': base_vol,
        'regime_multiplier': multiplier,
        'regime_adjusted_volatility': adjusted_vol,
        'forward_looking_risk': forward,
        'expected_return': expected,
        'stress_scenarios': [dict(s) for s in scenarios],
    }
