"""
Portfolio Metrics Module

Weighted return/beta/risk, covariance-based volatility and the full
risk-adjusted ratio bundle (Sharpe, Sortino, Treynor, Calmar, Information),
CAPM alpha and parametric VaR/CVaR.  All returns and volatilities are in
percent.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd
import structlog
from scipy import stats

from .allocation import align_weights
from .matrices import build_correlation_matrix, build_covariance_matrix
from .models import Asset, PortfolioMetrics, coerce_assets

logger = structlog.get_logger(__name__)

RISK_FREE_RATE = 4.5       # annual %, T-bill proxy
MARKET_RETURN = 10.0       # annual %, equity market assumption
VAR_CONFIDENCE = 0.95
DRAWDOWN_VOL_MULTIPLE = 2.5


def portfolio_volatility(
    weights: np.ndarray,
    cov: np.ndarray,
) -> float:
    """Portfolio volatility in percent.

    vol = sqrt(max(0, w' * Sigma * w)) * 100

    Negative variance from numerical noise is clamped to zero rather than
    producing NaN.

    Args:
        weights: Fractional weights (flat array)
        cov: Covariance matrix in decimal units (N x N)

    Returns:
        Volatility as a percentage, 0.0 for empty input
    """
    cov = np.asarray(cov, dtype=float)
    if cov.size == 0:
        return 0.0

    weights = align_weights(weights, cov.shape[0])
    variance = float(weights @ cov @ weights)

    return float(np.sqrt(max(0.0, variance)) * 100)


def weighted_return(assets: Sequence[Asset | dict], weights) -> float:
    """Weight-dot-expected-return (percent)."""
    assets = coerce_assets(assets)
    if not assets:
        return 0.0
    w = align_weights(weights, len(assets))
    return float(np.dot(w, [a.expected_return for a in assets]))


def weighted_beta(assets: Sequence[Asset | dict], weights) -> float:
    """Weight-dot-beta; a market beta of 1.0 for an empty portfolio."""
    assets = coerce_assets(assets)
    if not assets:
        return 1.0
    w = align_weights(weights, len(assets))
    return float(np.dot(w, [a.beta for a in assets]))


def weighted_risk(assets: Sequence[Asset | dict], weights) -> float:
    """Weight-dot-volatility (percent), ignoring diversification."""
    assets = coerce_assets(assets)
    if not assets:
        return 0.0
    w = align_weights(weights, len(assets))
    return float(np.dot(w, [a.risk for a in assets]))


def normal_tail_factors(confidence: float = VAR_CONFIDENCE) -> tuple[float, float]:
    """Return (z, es_factor) for a one-sided normal tail.

    z = Phi^-1(confidence) and es_factor = phi(z) / (1 - confidence), i.e.
    roughly (1.645, 2.063) at 95%.
    """
    z = float(stats.norm.ppf(confidence))
    es_factor = float(stats.norm.pdf(z) / (1 - confidence))
    return z, es_factor


def advanced_metrics(
    assets: Sequence[Asset | dict],
    weights,
    corr: Optional[pd.DataFrame | np.ndarray] = None,
    risk_free_rate: float = RISK_FREE_RATE,
    market_return: float = MARKET_RETURN,
    confidence: float = VAR_CONFIDENCE,
) -> PortfolioMetrics:
    """Compute the full PortfolioMetrics bundle.

    CAPM return = rf + beta * (market - rf); alpha = actual - CAPM.
    Sharpe = (R - rf) / vol.  Sortino divides excess return by a downside
    deviation built from each holding's shortfall below rf.  Max drawdown is a
    calibrated 2.5x volatility heuristic.  VaR/CVaR are parametric normal.

    Args:
        assets: Holdings
        weights: Fractional weights aligned with *assets*
        corr: Correlation matrix; a noise-free heuristic matrix is built if None
        risk_free_rate: Annual risk-free rate in percent
        market_return: Annual market return in percent
        confidence: VaR/CVaR confidence level

    Returns:
        PortfolioMetrics (all zeros for an empty portfolio)
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("advanced_metrics: empty portfolio, returning zero metrics")
        return PortfolioMetrics()

    w = align_weights(weights, len(assets))

    if corr is None:
        corr = build_correlation_matrix(assets, noise=0.0)

    expected_return = weighted_return(assets, w)
    beta = weighted_beta(assets, w)
    capm_return = risk_free_rate + beta * (market_return - risk_free_rate)
    alpha = expected_return - capm_return

    cov = build_covariance_matrix(assets, corr)
    volatility = portfolio_volatility(w, cov)

    excess = expected_return - risk_free_rate
    sharpe = excess / volatility if volatility > 0 else 0.0
    max_drawdown = volatility * DRAWDOWN_VOL_MULTIPLE
    calmar = expected_return / max_drawdown if max_drawdown > 0 else 0.0
    treynor = excess / beta if beta > 0 else 0.0
    information = alpha / volatility if volatility > 0 else 0.0

    # Downside deviation: per-holding shortfall below rf, weighted
    shortfall = np.maximum(0.0, risk_free_rate - np.array([a.expected_return for a in assets])) * w
    downside_dev = float(np.sqrt(np.sum(shortfall ** 2)))
    sortino = excess / downside_dev if downside_dev > 0 else 0.0

    z, es_factor = normal_tail_factors(confidence)
    var_95 = expected_return - z * volatility
    cvar_95 = expected_return - es_factor * volatility

    metrics = PortfolioMetrics(
        expected_return=expected_return,
        volatility=volatility,
        sharpe_ratio=sharpe,
        sortino_ratio=sortino,
        beta_portfolio=beta,
        alpha_portfolio=alpha,
        max_drawdown=max_drawdown,
        var_95=var_95,
        cvar_95=cvar_95,
        calmar_ratio=calmar,
        information_ratio=information,
        treynor_ratio=treynor,
    )

    logger.info(
        "advanced_metrics: metrics computed",
        num_assets=len(assets),
        expected_return=expected_return,
        volatility=volatility,
        sharpe_ratio=sharpe,
    )

    return metrics
