"""
Risk Decomposition and Concentration Module

Per-holding beta and CAPM-alpha contributions, allocation concentration
(top-N, Herfindahl-Hirschman Index, sector exposure) and a correlation stress
projection.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import structlog

from .allocation import align_weights
from .metrics import MARKET_RETURN, RISK_FREE_RATE, weighted_beta
from .models import Asset, coerce_assets

logger = structlog.get_logger(__name__)

# HHI category thresholds
HHI_WELL_DIVERSIFIED = 1500
HHI_MODERATE = 2500

TOP3_CONCENTRATED_PCT = 60.0
STRESS_CORRELATION_MULTIPLIER = 1.4
STRESS_CORRELATION_CAP = 0.95
BREAKDOWN_THRESHOLD = 0.75


def beta_decomposition(assets: Sequence[Asset | dict], weights) -> Dict:
    """Per-holding beta contribution (beta * weight).

    Returns:
        Dict with portfolio_beta and a contributions list of
        {symbol, weight (percent), beta, contribution, risk_contribution}
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("beta_decomposition: empty portfolio")
        return {'portfolio_beta': 0.0, 'contributions': []}

    w = align_weights(weights, len(assets))
    contributions = [
        {
            'symbol': a.symbol,
            'weight': float(w[i] * 100),
            'beta': a.beta,
            'contribution': float(a.beta * w[i]),
            'risk_contribution': float(a.beta * w[i] * 100),
        }
        for i, a in enumerate(assets)
    ]

    return {
        'portfolio_beta': weighted_beta(assets, w),
        'contributions': contributions,
    }


def alpha_decomposition(
    assets: Sequence[Asset | dict],
    weights,
    risk_free_rate: float = RISK_FREE_RATE,
    market_return: float = MARKET_RETURN,
) -> Dict:
    """Per-holding CAPM alpha.

    capm_i = rf + beta_i * (market - rf); alpha_i = ret_i - capm_i.
    Portfolio alpha is the weighted sum of holding alphas.
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("alpha_decomposition: empty portfolio")
        return {'portfolio_alpha': 0.0, 'contributions': []}

    w = align_weights(weights, len(assets))
    premium = market_return - risk_free_rate

    contributions = []
    for i, a in enumerate(assets):
        capm = risk_free_rate + a.beta * premium
        alpha = a.expected_return - capm
        contributions.append({
            'symbol': a.symbol,
            'expected_return': a.expected_return,
            'capm_return': capm,
            'alpha': alpha,
            'weight': float(w[i] * 100),
            'weighted_alpha': float(alpha * w[i]),
        })

    return {
        'portfolio_alpha': float(sum(c['weighted_alpha'] for c in contributions)),
        'contributions': contributions,
    }


def hhi_category(hhi: float) -> str:
    """Map a Herfindahl index to its concentration band."""
    if hhi < HHI_WELL_DIVERSIFIED:
        return "Well Diversified"
    if hhi < HHI_MODERATE:
        return "Moderate Concentration"
    return "Highly Concentrated"


def concentration_risks(
    allocation: Optional[Mapping[str, float]],
    assets: Sequence[Asset | dict],
) -> Dict:
    """Allocation concentration metrics.

    HHI = sum((alloc / 100)^2) * 10000.  Sector exposure sums allocation by
    the holding's sector ("Other" for symbols not in *assets*).  The
    diversification score is max(0, 100 - (top1 * 3 + max_sector * 1.5)).

    Args:
        allocation: Symbol -> percent map
        assets: Holdings used for sector lookup

    Returns:
        Dict with top1_concentration, top3_concentration, herfindahl_index,
        herfindahl_category, max_sector_concentration, sector_concentration,
        is_concentrated, diversification_score
    """
    assets = coerce_assets(assets)
    if not allocation or not assets:
        logger.warning("concentration_risks: empty allocation or asset list")
        return {
            'top1_concentration': 0.0,
            'top3_concentration': 0.0,
            'herfindahl_index': 0.0,
            'herfindahl_category': "Well Diversified",
            'max_sector_concentration': 0.0,
            'sector_concentration': {},
            'is_concentrated': False,
            'diversification_score': 0.0,
        }

    alloc = pd.Series({s: float(v or 0.0) for s, v in allocation.items()})
    ordered = alloc.sort_values(ascending=False)

    top1 = float(ordered.iloc[0])
    top3 = float(ordered.iloc[:3].sum())
    hhi = float(((alloc / 100) ** 2).sum() * 10000)

    sector_of = {a.symbol: a.sector for a in assets}
    sectors = alloc.groupby(alloc.index.map(lambda s: sector_of.get(s, "Other"))).sum()
    sector_concentration = {str(k): float(v) for k, v in sectors.items()}
    max_sector = float(sectors.max()) if len(sectors) > 0 else 0.0

    result = {
        'top1_concentration': top1,
        'top3_concentration': top3,
        'herfindahl_index': hhi,
        'herfindahl_category': hhi_category(hhi),
        'max_sector_concentration': max_sector,
        'sector_concentration': sector_concentration,
        'is_concentrated': top3 > TOP3_CONCENTRATED_PCT or hhi > HHI_MODERATE,
        'diversification_score': max(0.0, 100 - (top1 * 3 + max_sector * 1.5)),
    }

    logger.info(
        "concentration_risks: concentration computed",
        hhi=hhi,
        top1=top1,
        max_sector=max_sector,
    )
    return result


def correlation_stress(corr: Optional[pd.DataFrame | np.ndarray]) -> Dict:
    """Average/min/max pairwise correlation and a stressed projection.

    Only off-diagonal pairs are used.  Stress correlation is
    min(0.95, avg * 1.4); breakdown risk is flagged above 0.75.

    Returns:
        Dict with average_correlation, max_correlation, min_correlation,
        diversification_benefit (percent), stress_correlation,
        correlation_breakdown_risk
    """
    values = np.asarray(corr if corr is not None else [], dtype=float)
    n = values.shape[0] if values.ndim == 2 else 0

    if n < 2:
        return {
            'average_correlation': 0.0,
            'max_correlation': 1.0,
            'min_correlation': -1.0,
            'diversification_benefit': 100.0,
            'stress_correlation': 0.0,
            'correlation_breakdown_risk': False,
        }

    pairs = values[np.triu_indices_from(values, k=1)]
    pairs = pairs[np.isfinite(pairs)]
    if len(pairs) == 0:
        logger.warning("correlation_stress: no finite pairwise correlations")
        pairs = np.zeros(1)

    avg = float(pairs.mean())
    stress = min(STRESS_CORRELATION_CAP, avg * STRESS_CORRELATION_MULTIPLIER)

    return {
        'average_correlation': avg,
        'max_correlation': float(pairs.max()),
        'min_correlation': float(pairs.min()),
        'diversification_benefit': max(0.0, (1 - avg) * 100),
        'stress_correlation': stress,
        'correlation_breakdown_risk': stress > BREAKDOWN_THRESHOLD,
    }
