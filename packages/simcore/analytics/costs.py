"""
Transaction Cost and Rebalancing Analysis

Costs are quoted as a percentage of portfolio value: a 10 bps round of trading
that moves 20% of the book costs 0.02%.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

TRANSACTION_COST_BPS = 10.0
MIN_TRADE_CHANGE = 0.01  # percentage points
REBALANCE_YEARS = 5

FREQUENCY_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "semi-annual": 6,
    "annual": 12,
}


def transaction_costs(
    new_allocation: Optional[Mapping[str, float]],
    old_allocation: Optional[Mapping[str, float]],
    bps: float = TRANSACTION_COST_BPS,
) -> Dict:
    """Cost of moving from *old_allocation* to *new_allocation*.

    For each symbol held in either allocation the cost is
    |change| / 100 * bps / 10000 (fraction of portfolio).  Changes of 0.01
    percentage points or less are not traded.

    Args:
        new_allocation: Target symbol -> percent map
        old_allocation: Current symbol -> percent map
        bps: Cost per unit traded, in basis points

    Returns:
        Dict with total_cost (percent of portfolio), trades and trade_count
    """
    new_allocation = new_allocation or {}
    old_allocation = old_allocation or {}

    symbols = list(new_allocation)
    symbols += [s for s in old_allocation if s not in new_allocation]

    total = 0.0
    trades = []
    for symbol in symbols:
        new = float(new_allocation.get(symbol, 0.0) or 0.0)
        old = float(old_allocation.get(symbol, 0.0) or 0.0)
        change = abs(new - old)
        if change <= MIN_TRADE_CHANGE:
            continue

        cost = change / 100 * bps / 10000
        total += cost
        trades.append({
            "symbol": symbol,
            "old_allocation": old,
            "new_allocation": new,
            "change": change,
            "cost": cost * 100,
        })

    return {
        "total_cost": total * 100,
        "trades": trades,
        "trade_count": len(trades),
    }


def rebalancing_impact(
    target_allocation: Optional[Mapping[str, float]],
    current_allocation: Optional[Mapping[str, float]],
    frequency: str = "quarterly",
    years: int = REBALANCE_YEARS,
    bps: float = TRANSACTION_COST_BPS,
) -> Dict:
    """Accumulate rebalancing cost over *years* at the given frequency.

    Each rebalance moves from *current_allocation* back to *target_allocation*
    and is charged the same transaction cost.  Unknown frequencies are treated
    as annual.

    Returns:
        Dict with rebalances, frequency_months, accumulated_cost and a
        per-period timeline
    """
    months = FREQUENCY_MONTHS.get(frequency)
    if months is None:
        logger.warning(
            "rebalancing_impact: unknown frequency, defaulting to annual",
            frequency=frequency,
        )
        months = FREQUENCY_MONTHS["annual"]

    rebalances = int(math.floor(years * 12 / months))
    per_period = transaction_costs(target_allocation, current_allocation, bps=bps)

    accumulated = 0.0
    timeline = []
    for i in range(rebalances):
        accumulated += per_period["total_cost"]
        timeline.append({
            "period": i + 1,
            "cost": per_period["total_cost"],
            "accumulated_cost": accumulated,
            "trades": per_period["trade_count"],
        })

    logger.info(
        "rebalancing_impact: rebalancing cost accumulated",
        frequency=frequency,
        rebalances=rebalances,
        accumulated_cost=accumulated,
    )

    return {
        "rebalances": rebalances,
        "frequency_months": months,
        "accumulated_cost": accumulated,
        "timeline": timeline,
    }
