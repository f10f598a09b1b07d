"""
Behavioral Bias and Goal Probability Module

Rule-based detection of common investor biases from portfolio composition,
0-100 investor behavior scores, and analytic / Monte Carlo estimates of the
probability of reaching a capital target.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import structlog

from .models import (
    Asset,
    BehavioralBias,
    GoalProbability,
    MonteCarloGoalProbability,
    MonteCarloResult,
    PortfolioMetrics,
    coerce_assets,
)

logger = structlog.get_logger(__name__)

HOME_COUNTRY = "US"
CONTRIBUTION_RATE = 0.05   # annual contribution as a fraction of current capital
ON_TRACK_PROBABILITY = 80


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (62.5 -> 63, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Bias detection
# ---------------------------------------------------------------------------

def _is_domestic(asset: Asset, home_country: str) -> bool:
    if asset.country:
        return asset.country.upper() == home_country.upper()
    # No country supplied: short upper-case tickers are taken as domestic listings
    symbol = asset.symbol or ""
    return 0 < len(symbol) <= 5 and symbol == symbol.upper()


def detect_behavioral_biases(
    assets: Sequence[Asset | dict],
    allocation: Optional[Mapping[str, float]],
    home_country: str = HOME_COUNTRY,
) -> List[BehavioralBias]:
    """Apply the fixed bias rule set.

    Rules (each fires at most once):
        - Concentration Bias: largest holding > 30%
        - Sector Concentration Bias: largest sector > 50%
        - Insufficient Diversification: fewer than 5 holdings
        - Recency Bias: > 60% of holdings expect > 15% return (and > 3 holdings)
        - Overtrading Tendency: more than 25 holdings
        - Home Country Bias: > 85% domestic (and > 5 holdings)
        - Excessive Loss Aversion: average volatility < 10%

    Args:
        assets: Holdings
        allocation: Symbol -> percent map
        home_country: Country code treated as domestic

    Returns:
        Detected biases in rule order
    """
    assets = coerce_assets(assets)
    if not assets or not allocation:
        return []

    biases: List[BehavioralBias] = []
    n = len(assets)

    positive = [v for v in allocation.values() if v and v > 0]
    max_alloc = max(positive) if positive else 0.0
    if max_alloc > 30:
        biases.append(BehavioralBias(
            type="Concentration Bias",
            severity="critical" if max_alloc > 50 else "high" if max_alloc > 40 else "medium",
            description=f"{max_alloc:.1f}% in single holding - suggests overconfidence or conviction bias",
            recommendation="Reduce position size to below 15% per holding for safer diversification",
            confidence=0.95,
        ))

    sector_of = {a.symbol: a.sector for a in assets}
    sectors: Dict[str, float] = {}
    for symbol, value in allocation.items():
        sector = sector_of.get(symbol, "Other")
        sectors[sector] = sectors.get(sector, 0.0) + (value or 0.0)
    max_sector = max(sectors.values()) if sectors else 0.0
    if max_sector > 50:
        biases.append(BehavioralBias(
            type="Sector Concentration Bias",
            severity="critical" if max_sector > 70 else "high",
            description=f"Over-allocated to single sector ({max_sector:.1f}%)",
            recommendation="Rebalance across 5+ different sectors for macro diversification",
            confidence=0.90,
        ))

    if n < 5:
        biases.append(BehavioralBias(
            type="Insufficient Diversification",
            severity="critical" if n < 3 else "high",
            description=f"Only {n} positions - significant idiosyncratic risk",
            recommendation="Target 8-15 positions across different sectors and cap sizes",
            confidence=0.92,
        ))

    high_performers = sum(1 for a in assets if a.expected_return > 15)
    if high_performers > n * 0.6 and n > 3:
        biases.append(BehavioralBias(
            type="Recency Bias",
            severity="high",
            description=f"{round_half_up(high_performers / n * 100)}% of portfolio is recent high performers - mean reversion likely",
            recommendation="Mix in proven stable performers; avoid chasing recent winners exclusively",
            confidence=0.88,
        ))

    if n > 25:
        biases.append(BehavioralBias(
            type="Overtrading Tendency",
            severity="high",
            description=f"Holding {n} positions suggests excessive trading activity",
            recommendation="Simplify to 10-20 core positions and reduce trading frequency",
            confidence=0.85,
        ))

    domestic = sum(
        allocation.get(a.symbol, 0.0) or 0.0 for a in assets if _is_domestic(a, home_country)
    )
    if domestic > 85 and n > 5:
        biases.append(BehavioralBias(
            type="Home Country Bias",
            severity="medium",
            description=f"{domestic:.1f}% {home_country}-focused - currency risk and economic concentration",
            recommendation="Add 15-30% international diversification (developed + emerging markets)",
            confidence=0.78,
        ))

    avg_vol = float(np.mean([a.risk for a in assets]))
    if avg_vol < 10:
        biases.append(BehavioralBias(
            type="Excessive Loss Aversion",
            severity="medium",
            description=f"Average volatility ({avg_vol:.1f}%) suggests ultra-conservative positioning",
            recommendation="Consider accepting 12-15% volatility for better long-term returns if horizon is 5+ years",
            confidence=0.75,
        ))

    logger.info(
        "detect_behavioral_biases: biases detected",
        num_assets=n,
        num_biases=len(biases),
        types=[b.type for b in biases],
    )
    return biases


# ---------------------------------------------------------------------------
# Investor scores
# ---------------------------------------------------------------------------

def _clamp_score(value: float) -> float:
    return min(100.0, max(0.0, value))


def investor_behavior_scores(
    allocation: Optional[Mapping[str, float]],
    metrics: Optional[PortfolioMetrics],
) -> Dict[str, int]:
    """Score portfolio decisions on a 0-100 scale.

    discipline = min(100, positions / 15 * 70 + 30)
    diversification = 100 - 2 * stdev(allocations)
    risk_awareness = 50 + 20 * sharpe
    concentration = 100 - 2 * max_allocation
    overall = equal-weighted mean of the four
    """
    if not allocation or metrics is None:
        return {
            'discipline_score': 0,
            'diversification_score': 0,
            'risk_awareness_score': 0,
            'concentration_score': 0,
            'overall_score': 0,
        }

    values = np.array([v for v in allocation.values() if v and v > 0], dtype=float)

    discipline = min(100.0, len(values) / 15 * 70 + 30)
    spread = float(np.sqrt(values.var())) if len(values) > 1 else 0.0
    diversification = _clamp_score(100 - spread * 2)
    risk_awareness = _clamp_score(metrics.sharpe_ratio * 20 + 50)
    concentration = _clamp_score(100 - (values.max() if len(values) else 0.0) * 2)

    overall = (discipline + diversification + risk_awareness + concentration) / 4

    return {
        'discipline_score': round_half_up(discipline),
        'diversification_score': round_half_up(diversification),
        'risk_awareness_score': round_half_up(risk_awareness),
        'concentration_score': round_half_up(concentration),
        'overall_score': round_half_up(overall),
    }


# ---------------------------------------------------------------------------
# Goal probability
# ---------------------------------------------------------------------------

def _goal_confidence(probability: float, high: float, medium: float) -> str:
    if probability >= high:
        return "high"
    if probability >= medium:
        return "medium"
    return "low"


def years_to_goal(target: float, current: float, annual_return: float) -> Optional[float]:
    """Years of compounding at *annual_return* (percent) to grow current into target.

    Returns None when the result is not finite (non-positive capital ratio).
    Negative results (target already reached) clamp to 0.
    """
    r = annual_return / 100
    if r <= 0:
        return None
    with np.errstate(divide="ignore", invalid="ignore"):
        years = np.log(target / current) / np.log1p(r) if current else np.inf
    if not np.isfinite(years):
        logger.warning(
            "years_to_goal: non-finite horizon",
            target=target,
            current=current,
            annual_return=annual_return,
        )
        return None
    return max(0.0, round(float(years), 1))


def goal_probability(
    expected_return: float,
    volatility: float,
    horizon: float,
    target: float,
    current: float,
) -> GoalProbability:
    """Analytic goal-achievement estimate.

    Capital compounds monthly at expected_return / 12 with a fixed monthly
    contribution of 5% / 12 of current capital.  probability =
    clamp(projected / target * 100, 0, 100).  ``years_to_goal`` is the
    contribution-free compounding horizon ln(target/current) / ln(1 + r); with
    a non-positive return it reports the requested horizon.

    ``volatility`` is accepted for interface symmetry with the Monte Carlo
    variant and does not enter the analytic projection.
    """
    if not expected_return or not target or not current or horizon <= 0:
        return GoalProbability(
            probability=0,
            projected_value=current or 0.0,
            years_to_goal=None,
            gap=(target or 0.0) - (current or 0.0),
            confidence="low",
            on_track=False,
        )

    monthly = expected_return / 100 / 12
    contribution = current * CONTRIBUTION_RATE / 12
    months = int(math.ceil(horizon * 12))

    growth = (1 + monthly) ** months
    if monthly != 0:
        projected = current * growth + contribution * (growth - 1) / monthly
    else:
        projected = current + contribution * months

    probability = round_half_up(min(100.0, max(0.0, projected / target * 100)))

    if expected_return > 0:
        required = years_to_goal(target, current, expected_return)
    else:
        required = float(horizon)

    return GoalProbability(
        probability=probability,
        projected_value=projected,
        years_to_goal=required,
        gap=max(0.0, target - projected),
        confidence=_goal_confidence(probability, 80, 60),
        on_track=probability >= ON_TRACK_PROBABILITY,
    )


def monte_carlo_goal_probability(
    mc_result: Optional[MonteCarloResult],
    target: float,
) -> MonteCarloGoalProbability:
    """Fraction of simulated paths finishing at or above *target*.

    Percentile bands use the same floor(n * q) order statistics as the
    simulation summary.
    """
    if mc_result is None or mc_result.paths.empty:
        return MonteCarloGoalProbability(
            success_probability=0,
            expected_value=0,
            worst_case_5pct=0,
            best_case_95pct=0,
            median=0,
            gap=target,
            confidence="low",
            interpretation="Insufficient simulation data",
        )

    finals = np.sort(mc_result.final_values.astype(float))
    n = len(finals)
    probability = float(np.count_nonzero(finals >= target)) / n * 100
    median = float(finals[n // 2])

    if probability >= 80:
        interpretation = "High confidence in goal achievement"
    elif probability >= 50:
        interpretation = "Moderate confidence; may need increased contributions or risk adjustment"
    else:
        interpretation = "Low probability; consider revisiting strategy or extending horizon"

    return MonteCarloGoalProbability(
        success_probability=round_half_up(probability),
        expected_value=mc_result.mean or float(finals.mean()),
        worst_case_5pct=float(finals[min(int(n * 0.05), n - 1)]),
        best_case_95pct=float(finals[min(int(n * 0.95), n - 1)]),
        median=median,
        gap=max(0.0, target - median),
        confidence=_goal_confidence(probability, 80, 50),
        interpretation=interpretation,
    )
