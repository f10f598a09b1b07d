"""
Allocation Heuristics

Rule-based allocation generators (no numerical optimizer) plus the canonical
conversions between a symbol-keyed allocation map (percent) and an
index-aligned fractional weight vector.

Clamped strategies are NOT re-normalized after clamping, so their percentages
need not sum to exactly 100.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import structlog

from .models import Asset, PortfolioMetrics, coerce_assets

logger = structlog.get_logger(__name__)

Allocation = Dict[str, float]

OPTIMAL_BOUNDS = (2.0, 35.0)
MIN_VARIANCE_BOUNDS = (5.0, 40.0)
MAX_RETURN_BAND = 0.10

STRATEGY_NAMES = [
    "optimal_portfolio",
    "minimum_variance_portfolio",
    "risk_parity_portfolio",
    "maximum_return_portfolio",
]

# Average-correlation tiers for strategy validation
EXTREME_CORRELATION = 0.75
HIGH_CORRELATION = 0.6
MODERATE_CORRELATION = 0.5


# ---------------------------------------------------------------------------
# Weight / allocation conversions
# ---------------------------------------------------------------------------

def align_weights(weights, n: int) -> np.ndarray:
    """Return *weights* as a float array of exactly length *n*.

    Shorter vectors are zero-padded and longer ones truncated; either case is
    logged as a warning.
    """
    w = np.asarray(weights if weights is not None else [], dtype=float).ravel()
    if len(w) == n:
        return w

    logger.warning(
        "align_weights: weight vector length mismatch",
        num_weights=len(w),
        num_assets=n,
    )
    if len(w) > n:
        return w[:n]
    return np.concatenate([w, np.zeros(n - len(w))])


def allocation_to_weights(
    allocation: Optional[Mapping[str, float]],
    assets: Sequence[Asset | dict],
) -> np.ndarray:
    """Convert a percent allocation map to fractional weights ordered like *assets*.

    Symbols missing from the map get weight 0.
    """
    assets = coerce_assets(assets)
    allocation = allocation or {}
    return np.array([float(allocation.get(a.symbol, 0.0) or 0.0) / 100 for a in assets])


def weights_to_allocation(weights, assets: Sequence[Asset | dict]) -> Allocation:
    """Convert fractional weights to a symbol -> percent map."""
    assets = coerce_assets(assets)
    w = align_weights(weights, len(assets))
    return {a.symbol: float(w[i] * 100) for i, a in enumerate(assets)}


def _normalize_and_clamp(
    assets: list[Asset],
    scores: np.ndarray,
    bounds: Optional[tuple[float, float]],
) -> Allocation:
    total = scores.sum()
    pct = scores / total * 100 if total > 0 else scores
    if bounds is not None:
        pct = np.clip(pct, bounds[0], bounds[1])
    return {a.symbol: float(pct[i]) for i, a in enumerate(assets)}


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def optimal_allocation(assets: Sequence[Asset | dict]) -> Allocation:
    """Sharpe-style scoring heuristic.

    score_i = max(0, ret_i/20) * 1/max(0.1, risk_i/100) * 1/max(0.5, beta_i) * (1 + 2*margin_i)

    Scores are normalized to 100 and clamped to [2, 35].
    """
    assets = coerce_assets(assets)
    if not assets:
        return {}

    returns = np.array([a.expected_return for a in assets])
    risks = np.array([a.risk for a in assets])
    betas = np.array([a.beta for a in assets])
    margins = np.array([a.profit_margin for a in assets])

    scores = (
        np.maximum(0.0, returns / 20)
        * (1 / np.maximum(0.1, risks / 100))
        * (1 / np.maximum(0.5, betas))
        * (1 + margins * 2)
    )
    return _normalize_and_clamp(assets, scores, OPTIMAL_BOUNDS)


def min_variance_allocation(assets: Sequence[Asset | dict]) -> Allocation:
    """Inverse-volatility weights clamped to [5, 40]."""
    assets = coerce_assets(assets)
    if not assets:
        return {}

    risks = np.array([a.risk for a in assets])
    scores = 1 / np.maximum(0.1, risks / 100)
    return _normalize_and_clamp(assets, scores, MIN_VARIANCE_BOUNDS)


def risk_parity_allocation(assets: Sequence[Asset | dict]) -> Allocation:
    """Naive risk parity: weight proportional to 1/risk, unclamped."""
    assets = coerce_assets(assets)
    if not assets:
        return {}

    risks = np.array([a.risk for a in assets])
    scores = 1 / np.maximum(0.1, risks)
    return _normalize_and_clamp(assets, scores, None)


def max_return_allocation(assets: Sequence[Asset | dict]) -> Allocation:
    """Equal-weight the assets whose return is within 10% of the best one.

    The band is measured on |max| so a portfolio of all-negative returns still
    selects its top performer.
    """
    assets = coerce_assets(assets)
    if not assets:
        return {}

    returns = np.array([a.expected_return for a in assets])
    best = returns.max()
    selected = returns >= best - MAX_RETURN_BAND * abs(best)

    weight = 100 / selected.sum()
    return {a.symbol: float(weight) if selected[i] else 0.0 for i, a in enumerate(assets)}


def generate_allocations(assets: Sequence[Asset | dict]) -> Dict[str, Allocation]:
    """Run all four strategies.

    Returns:
        Dict keyed by strategy name (see STRATEGY_NAMES)
    """
    assets = coerce_assets(assets)
    allocations = {
        "optimal_portfolio": optimal_allocation(assets),
        "minimum_variance_portfolio": min_variance_allocation(assets),
        "risk_parity_portfolio": risk_parity_allocation(assets),
        "maximum_return_portfolio": max_return_allocation(assets),
    }

    logger.info("generate_allocations: allocations generated", num_assets=len(assets))
    return allocations


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_strategies(
    strategy_metrics: Mapping[str, PortfolioMetrics],
    assets: Sequence[Asset | dict],
    avg_correlation: float,
) -> dict:
    """Consistency checks across the generated strategies.

    Only an extreme average correlation (>0.75) is blocking; ordering and
    diversity problems are reported as warnings.

    Args:
        strategy_metrics: Metrics for optimal_portfolio, minimum_variance_portfolio
            and maximum_return_portfolio
        assets: Holdings the strategies were built from
        avg_correlation: Average off-diagonal correlation

    Returns:
        Dict with critical_errors, warnings, is_valid, can_show_frontier
    """
    assets = coerce_assets(assets)
    critical_errors = []
    warnings = []

    if avg_correlation > EXTREME_CORRELATION:
        critical_errors.append({
            "type": "extreme_correlation",
            "message": "Efficient frontier disabled due to extreme asset similarity",
            "avg_correlation": avg_correlation,
        })
    elif avg_correlation > HIGH_CORRELATION:
        warnings.append({
            "type": "high_correlation",
            "severity": "high",
            "message": f"High asset correlation ({avg_correlation * 100:.0f}%). Results should be interpreted with caution.",
        })
    elif avg_correlation >= MODERATE_CORRELATION:
        warnings.append({
            "type": "moderate_correlation",
            "severity": "medium",
            "message": f"Moderate asset correlation ({avg_correlation * 100:.0f}%). Diversification benefits are limited.",
        })

    optimal = strategy_metrics.get("optimal_portfolio")
    min_var = strategy_metrics.get("minimum_variance_portfolio")
    max_ret = strategy_metrics.get("maximum_return_portfolio")

    if optimal is not None and min_var is not None and max_ret is not None:
        trio = [optimal, min_var, max_ret]
        min_risk = min(m.volatility for m in trio)
        best_return = max(m.expected_return for m in trio)
        best_sharpe = max(m.sharpe_ratio for m in trio)

        if min_var.volatility > min_risk + 0.5:
            warnings.append({
                "type": "risk_ordering",
                "severity": "medium",
                "message": f"Minimum Variance portfolio risk ({min_var.volatility:.1f}%) is not the absolute minimum.",
            })
        if max_ret.expected_return < best_return - 0.5:
            warnings.append({
                "type": "return_ordering",
                "severity": "medium",
                "message": f"Maximum Return portfolio ({max_ret.expected_return:.1f}%) is not the highest-return strategy.",
            })
        if optimal.sharpe_ratio < best_sharpe - 0.1:
            warnings.append({
                "type": "sharpe_ordering",
                "severity": "low",
                "message": "Optimal portfolio does not have the best Sharpe ratio.",
            })

    if assets:
        returns = [a.expected_return for a in assets]
        risks = [a.risk for a in assets]
        return_spread = max(returns) - min(returns)
        risk_spread = max(risks) - min(risks)
        if return_spread < 2.0 or risk_spread < 5.0:
            warnings.append({
                "type": "low_diversity",
                "severity": "medium",
                "message": (
                    f"Assets show limited variation (return spread: {return_spread:.1f}%, "
                    f"risk spread: {risk_spread:.1f}%)."
                ),
            })

    result = {
        "critical_errors": critical_errors,
        "warnings": warnings,
        "is_valid": not critical_errors,
        "can_show_frontier": not critical_errors,
    }

    logger.info(
        "validate_strategies: validation complete",
        num_critical=len(critical_errors),
        num_warnings=len(warnings),
    )
    return result
