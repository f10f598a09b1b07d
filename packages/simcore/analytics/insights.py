"""
Rule-Based Interpretation Module

Deterministic, structured interpretation of computed analytics: risk levels,
diversification assessment, market regime, scenario and goal narratives and
per-strategy recommendations.  Output is plain dicts suitable as a payload for
a downstream narrative generator.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import structlog

from .behavioral import round_half_up
from .decomposition import correlation_stress
from .models import (
    Asset,
    BehavioralBias,
    GoalProbability,
    MacroScenarioResult,
    MonteCarloGoalProbability,
    PortfolioMetrics,
    coerce_assets,
)

logger = structlog.get_logger(__name__)


def _volatility_band(vol: float) -> tuple[str, str]:
    if vol < 8:
        return "low", "Conservative volatility - expect smoother but lower returns"
    if vol < 15:
        return "moderate", "Moderate volatility - balanced risk/return profile"
    if vol < 25:
        return "high", "Elevated volatility - expect 10-25% annual swings"
    return "very high", "High volatility - aggressive positioning with significant downside risk"


def overall_risk_level(metrics: PortfolioMetrics) -> str:
    """Combine Sharpe ratio and volatility into a single risk label."""
    sharpe, vol = metrics.sharpe_ratio, metrics.volatility
    if sharpe > 0.8 and vol < 12:
        return "low"
    if sharpe > 0.4 and vol < 18:
        return "moderate"
    if vol > 25:
        return "very high"
    return "high"


def risk_interpretation(
    metrics: Optional[PortfolioMetrics],
    concentration: Optional[Dict] = None,
    forward_risk: Optional[Dict] = None,
) -> Dict:
    """Qualitative reading of volatility, VaR and concentration.

    Returns:
        Dict with volatility_level, volatility_interpretation,
        var_interpretation, concentration_warning, overall_risk_level and
        key_risks
    """
    if metrics is None:
        return {
            'volatility_level': "unknown",
            'volatility_interpretation': "Insufficient data",
            'var_interpretation': "Insufficient data",
            'concentration_warning': "Insufficient data",
            'overall_risk_level': "unknown",
            'key_risks': [],
        }

    vol = metrics.volatility
    level, vol_text = _volatility_band(vol)

    if metrics.var_95 >= 0:
        var_text = (
            f"In 95% of scenarios, the portfolio returns at least {metrics.var_95:.1f}% annually. "
            "Only 1-in-20 years worse."
        )
    else:
        var_text = (
            f"In the worst 5% of scenarios, the portfolio loses up to {abs(metrics.var_95):.1f}% annually. "
            f"Conditional VaR shows an average tail loss of {abs(metrics.cvar_95):.1f}%."
        )

    concentrated = bool(concentration and concentration.get('is_concentrated'))
    if concentrated:
        concentration_text = (
            f"Concentration risk is HIGH. Top 3 holdings are {concentration['top3_concentration']:.1f}% "
            f"of portfolio. Herfindahl Index ({concentration['herfindahl_index']:.0f}) indicates "
            f"{concentration['herfindahl_category']} positioning."
        )
    else:
        concentration_text = "Portfolio is well-diversified"

    key_risks = []
    if vol > 20:
        key_risks.append("High volatility may challenge commitment to strategy")
    if concentrated:
        key_risks.append("Concentration risk - diversify to reduce single-name risk")
    if metrics.sharpe_ratio < 0.3:
        key_risks.append("Poor risk-adjusted returns relative to volatility taken")
    if forward_risk and forward_risk.get('forward_looking_risk', 0.0) > vol * 1.5:
        key_risks.append("Forward-looking risk elevated vs base volatility - stress environment ahead")

    return {
        'volatility_level': level,
        'volatility_interpretation': vol_text,
        'var_interpretation': var_text,
        'concentration_warning': concentration_text,
        'overall_risk_level': overall_risk_level(metrics),
        'key_risks': key_risks,
    }


def diversification_insights(
    corr: Optional[pd.DataFrame | np.ndarray],
    concentration: Optional[Dict],
    assets: Sequence[Asset | dict],
) -> Dict:
    """Assess diversification benefit, correlation breakdown risk and sector breadth."""
    assets = coerce_assets(assets)
    if corr is None or len(corr) == 0:
        return {
            'diversification_benefit': "Insufficient data",
            'average_correlation': 0.0,
            'correlation_risk': "Unknown",
            'sector_concentration': "Unknown",
            'improvement_areas': [],
        }

    stress = correlation_stress(corr)
    avg = stress['average_correlation']
    benefit = stress['diversification_benefit']
    stressed = avg * 1.4

    if benefit > 50:
        benefit_text = f"Strong diversification benefit ({benefit:.0f}%) - correlations are low"
    elif benefit > 30:
        benefit_text = f"Moderate diversification benefit ({benefit:.0f}%) - could be improved"
    else:
        benefit_text = f"Weak diversification benefit ({benefit:.0f}%) - holdings are highly correlated"

    if stressed > 0.75:
        corr_text = "CRITICAL: stress correlations approach 1.0 - diversification fails in a crisis"
    elif stressed > 0.6:
        corr_text = f"Moderate stress risk: correlations may rise to {stressed:.2f} during market stress"
    else:
        corr_text = "Low correlation breakdown risk - diversification remains effective under stress"

    num_sectors = len((concentration or {}).get('sector_concentration', {}))
    sector_text = f"Exposed to {num_sectors} sectors"
    if num_sectors < 3:
        sector_text += " - IMPROVE SECTOR DIVERSIFICATION"
    elif num_sectors < 5:
        sector_text += " - add more sectors for better diversification"

    improvements = []
    if avg > 0.6:
        improvements.append("Reduce average correlation - add uncorrelated assets (bonds, international, alts)")
    if num_sectors < 5:
        improvements.append("Expand to 5-7 different sectors for macro diversification")
    if concentration and concentration.get('is_concentrated'):
        improvements.append("Reduce concentration - spread positions more evenly")
    if len(assets) < 8:
        improvements.append("Add more individual positions (8-15 optimal) for statistical diversification")

    return {
        'diversification_benefit': benefit_text,
        'average_correlation': avg,
        'correlation_risk': corr_text,
        'sector_concentration': sector_text,
        'improvement_areas': improvements or ["Portfolio is well-diversified"],
    }


REGIME_IMPLICATIONS = {
    "High Volatility / Stress Regime": [
        "Market fear is pricing in downside scenarios",
        "Correlations rising - diversification benefits fading",
        "Defensive positioning recommended over aggressive growth",
        "Buying opportunities may emerge for long-term investors",
    ],
    "Elevated Risk Regime": [
        "Geopolitical or macro uncertainties present",
        "Tail risk scenarios elevated relative to average",
        "Consider taking profits on winners, reduce leverage",
        "Portfolio volatility likely to exceed recent averages",
    ],
    "Low Volatility / Complacency Regime": [
        "Market pricing in low near-term risk",
        "Returns may be compressed but stable",
        "Risk of sudden volatility spike",
        "Good time to rebalance, reduce concentration, take profits",
    ],
    "Normal Market": [
        "Volatility near historical averages",
        "No extreme regime shift detected",
        "Current portfolio positioning remains appropriate",
        "Continue disciplined rebalancing program",
    ],
}


def classify_regime(multiplier: float) -> str:
    """Name the market regime implied by a volatility regime multiplier."""
    if multiplier > 1.3:
        return "High Volatility / Stress Regime"
    if multiplier > 1.1:
        return "Elevated Risk Regime"
    if multiplier < 0.8:
        return "Low Volatility / Complacency Regime"
    return "Normal Market"


def regime_analysis(
    forward_risk: Optional[Dict],
    metrics: Optional[PortfolioMetrics],
) -> Dict:
    """Current regime, its implications and suggested adjustments."""
    if not forward_risk or metrics is None:
        return {
            'current_regime': "Unknown",
            'regime_multiplier': 1.0,
            'regime_implications': [],
            'expected_performance': "Insufficient data",
            'suggested_adjustments': [],
        }

    multiplier = forward_risk.get('regime_multiplier', 1.0)
    base_vol = forward_risk.get('base_volatility', 0.0)
    adjusted_vol = forward_risk.get('regime_adjusted_volatility', 0.0)
    regime = classify_regime(multiplier)

    adjustments = []
    if multiplier > 1.2:
        adjustments.append("Reduce equity weighting from aggressive positions")
        adjustments.append("Increase cash/bond buffers for opportunity reserve")
    if metrics.sharpe_ratio < 0.3:
        adjustments.append("Risk-adjusted returns weak - consider rebalancing")

    return {
        'current_regime': regime,
        'regime_multiplier': multiplier,
        'volatility_adjustment': f"Base {base_vol:.2f}% x {multiplier:.2f} = {adjusted_vol:.2f}% adjusted",
        'regime_implications': list(REGIME_IMPLICATIONS[regime]),
        'expected_performance': (
            f"In the current {regime}, the portfolio is expected to deliver "
            f"{metrics.expected_return:.2f}% annually with {adjusted_vol:.2f}% volatility."
        ),
        'suggested_adjustments': adjustments or ["Maintain current positioning"],
    }


def scenario_narratives(
    scenarios: Sequence[MacroScenarioResult],
    baseline_return: float,
) -> List[Dict]:
    """Attach a short narrative and baseline delta to each macro scenario."""
    narratives = []
    for scenario in scenarios:
        delta = scenario.scenario_return - baseline_return
        label = "beats baseline" if delta > 0 else "underperforms baseline"
        ret = scenario.scenario_return
        millions = scenario.projected_value / 1_000_000

        if scenario.name == "Bull Market":
            text = (
                f"In a strong growth environment the portfolio returns {ret:.2f}% annually, "
                f"{label} by {abs(delta):.2f}%, reaching {millions:.1f}M by the target date."
            )
        elif scenario.name == "Base Case":
            text = (
                f"Under moderate growth and stable inflation the portfolio delivers {ret:.2f}% "
                "annually. This is the core projection scenario."
            )
        elif scenario.name == "Bear Market":
            text = (
                f"During recession or earnings contraction the portfolio returns {ret:.2f}% annually "
                f"as valuations compress, ending at {millions:.1f}M."
            )
        elif scenario.name == "Stagflation":
            text = (
                f"In a high-inflation, low-growth environment equities struggle and the portfolio "
                f"returns {ret:.2f}%."
            )
        else:
            text = f"The portfolio returns {ret:.2f}% annually in this scenario."

        item = scenario.model_dump()
        item.update({'narrative': text, 'return_delta': delta})
        narratives.append(item)

    return narratives


def strategy_recommendations(
    metrics: Optional[PortfolioMetrics],
    strategy_name: str,
    biases: Optional[Sequence[BehavioralBias]] = None,
    goal: Optional[GoalProbability] = None,
) -> Dict:
    """Rationale, strengths, weaknesses and recommendations for one strategy."""
    if metrics is None:
        return {
            'strategy_rationale': "Insufficient data",
            'key_strengths': [],
            'key_weaknesses': [],
            'recommendations': [],
            'suitability_warning': "Insufficient metrics for assessment",
        }

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    if strategy_name == "optimal_portfolio":
        rationale = "Maximizes risk-adjusted return, balancing return against volatility."
        strengths = [
            f"Sharpe ratio of {metrics.sharpe_ratio:.3f}",
            "Blends return potential with downside management",
            "Suitable for long-term, moderate risk tolerance investors",
        ]
        if metrics.volatility > 20:
            weaknesses.append("Volatility elevated - may experience 20%+ annual swings")
        if metrics.volatility < 10:
            weaknesses.append("Conservative - may undershoot long-term return targets")
        recommendations = [
            "Hold steady for 5+ year horizons",
            "Rebalance quarterly to maintain allocation targets",
            "Monitor drawdowns - acceptable max is typically 15-20% for this profile",
        ]
    elif strategy_name == "minimum_variance_portfolio":
        rationale = "Prioritizes capital preservation and smoother returns."
        strengths = [
            f"Lowest volatility ({metrics.volatility:.2f}%) for the chosen holdings",
            "Stable, predictable returns with fewer large swings",
        ]
        weaknesses = [
            f"Lower expected return ({metrics.expected_return:.2f}%) - may lag inflation long-term",
            "Over-weighting defensive holdings may miss upside",
        ]
        recommendations = [
            "Use as a portfolio core for capital preservation",
            "Supplement with a growth sleeve if the target requires higher returns",
        ]
    elif strategy_name == "risk_parity_portfolio":
        rationale = "Each holding contributes equally to portfolio risk."
        strengths = [
            "Diversification across risk contributions",
            "Systematic, rules-based approach reduces behavioral bias",
        ]
        weaknesses = [f"Moderate volatility ({metrics.volatility:.2f}%) and returns"]
        recommendations = [
            "Rebalance to equal risk annually",
            "Suited to investors with 10+ year horizons",
        ]
    elif strategy_name == "maximum_return_portfolio":
        rationale = "Seeks the highest growth by overweighting top expected performers."
        strengths = [
            f"High expected return ({metrics.expected_return:.2f}%)",
            "Concentrates on highest-conviction ideas",
        ]
        weaknesses = [
            f"Elevated volatility ({metrics.volatility:.2f}%) and risk",
            "Concentration in hot sectors - vulnerable to rotation",
        ]
        if biases and any(b.type == "Concentration Bias" for b in biases):
            weaknesses.append("Detected concentration bias - strategy amplifies existing behavioral risk")
        recommendations = [
            "Only suitable for 10+ year horizons and high risk tolerance",
            "Rebalance if weights drift more than 10%",
        ]
    else:
        rationale = "Custom strategy"

    if goal is not None and not goal.on_track and goal.projected_value > 0:
        increase = round_half_up(goal.gap / goal.projected_value * 100)
        recommendations.append(
            f"Goal adjustment needed: current strategy reaches {goal.probability:.0f}% of target. "
            f"Consider increasing contributions by {increase}% or extending the horizon."
        )

    warning = None
    if strategy_name == "maximum_return_portfolio" and metrics.volatility > 25:
        warning = "Very aggressive - recommended only for experienced investors"

    return {
        'strategy_rationale': rationale,
        'key_strengths': strengths,
        'key_weaknesses': weaknesses,
        'recommendations': recommendations,
        'suitability_warning': warning,
    }


def goal_narrative(
    goal: Optional[GoalProbability],
    mc_goal: Optional[MonteCarloGoalProbability],
    initial_amount: float,
    target: float,
    horizon: float,
) -> Dict:
    """Summarize goal feasibility with action items.

    The Monte Carlo success rate is preferred over the analytic probability
    when available.
    """
    if goal is None or not target:
        return {
            'narrative': "Insufficient data for goal analysis",
            'action_items': [],
            'confidence_assessment': "unknown",
        }

    success = mc_goal.success_probability if mc_goal is not None else goal.probability
    median = mc_goal.median if mc_goal is not None and mc_goal.median else goal.projected_value
    months = max(horizon * 12, 1)
    actions = []

    if success >= 85:
        text = (
            f"The goal of {target / 1_000_000:.1f}M has HIGH probability ({success:.0f}%) of achievement "
            f"in {horizon:g} years, with a median ending value of {median / 1_000_000:.1f}M."
        )
        actions.append("Strategy is well-aligned with goal. Monitor and rebalance quarterly.")
    elif success >= 60:
        text = (
            f"The goal has MODERATE probability ({success:.0f}%) of achievement. The median projection "
            f"is {median / 1_000_000:.1f}M, a shortfall of {goal.gap / 1_000_000:.1f}M."
        )
        actions.append(f"Increase monthly contributions by {goal.gap / months:,.0f} to close the gap.")
        actions.append("Or extend the horizon by 2-3 years to allow more compounding time.")
    else:
        text = (
            f"The goal has LOW probability ({success:.0f}%) of achievement with the current strategy. "
            f"The gap of {goal.gap / 1_000_000:.1f}M is significant."
        )
        actions.append(f"Increase monthly contributions by {goal.gap / months:,.0f}.")
        if goal.years_to_goal is not None:
            actions.append(f"Extend the horizon to about {goal.years_to_goal:.0f} years.")
        actions.append("Consider whether the target is realistic given starting capital.")

    multiple = target / initial_amount if initial_amount else None

    return {
        'narrative': text,
        'goal_multiple': multiple,
        'success_probability': success,
        'action_items': actions,
        'confidence_assessment': mc_goal.confidence if mc_goal is not None else goal.confidence,
    }
