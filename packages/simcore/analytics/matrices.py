"""
Correlation and Covariance Matrix Construction

Builds heuristic correlation and covariance matrices from per-asset attributes
(beta, sector, volatility).  No historical return data is used: pairwise
correlation is proxied by beta similarity plus a same-sector bonus.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd
import structlog

from .models import Asset, coerce_assets
from .rng import SeedLike, make_rng

logger = structlog.get_logger(__name__)

BETA_CORRELATION_FACTOR = 0.6
SECTOR_BONUS = 0.3
CORRELATION_FLOOR = -0.5
CORRELATION_CAP = 0.95
DEFAULT_NOISE = 0.1


def build_correlation_matrix(
    assets: Sequence[Asset | dict],
    rng: SeedLike = None,
    noise: float = DEFAULT_NOISE,
) -> pd.DataFrame:
    """Estimate a pairwise correlation matrix.

    rho_ij = clip(beta_i * beta_j * 0.6 + sector_bonus + eps_ij, -0.5, 0.95)

    where sector_bonus is 0.3 for two assets in the same sector and
    eps_ij ~ U(-noise, noise).  Noise is drawn once per unordered pair and
    mirrored, so the result is symmetric.  Pass ``noise=0`` for a deterministic
    matrix.

    Args:
        assets: Holdings (Asset or dict)
        rng: Seed or Generator for the noise term
        noise: Half-width of the uniform perturbation

    Returns:
        Symbol-labelled DataFrame (N x N), empty for an empty asset list
    """
    assets = coerce_assets(assets)
    n = len(assets)

    if n == 0:
        logger.warning("build_correlation_matrix: empty asset list")
        return pd.DataFrame()

    symbols = [a.symbol for a in assets]
    betas = np.array([a.beta for a in assets])
    sectors = np.array([a.sector for a in assets], dtype=object)

    base = np.outer(betas, betas) * BETA_CORRELATION_FACTOR
    base = base + np.where(sectors[:, None] == sectors[None, :], SECTOR_BONUS, 0.0)

    # Upper-triangle draws mirrored to the lower triangle
    eps = np.zeros((n, n))
    if noise > 0 and n > 1:
        generator = make_rng(rng)
        iu = np.triu_indices(n, k=1)
        eps[iu] = generator.uniform(-noise, noise, size=len(iu[0]))
        eps = eps + eps.T

    corr = np.clip(base + eps, CORRELATION_FLOOR, CORRELATION_CAP)
    np.fill_diagonal(corr, 1.0)

    upper_vals = corr[np.triu_indices(n, k=1)]
    logger.info(
        "build_correlation_matrix: correlation built",
        num_assets=n,
        avg_correlation=float(upper_vals.mean()) if len(upper_vals) > 0 else 0.0,
        noise=noise,
    )

    return pd.DataFrame(corr, index=symbols, columns=symbols)


def build_covariance_matrix(
    assets: Sequence[Asset | dict],
    corr: Optional[pd.DataFrame | np.ndarray],
) -> np.ndarray:
    """Covariance from correlation and per-asset volatility.

    Sigma_ij = rho_ij * (risk_i / 100) * (risk_j / 100)

    Args:
        assets: Holdings (Asset or dict)
        corr: Correlation matrix aligned with *assets*

    Returns:
        N x N covariance matrix in decimal units, empty array for empty input
    """
    assets = coerce_assets(assets)
    n = len(assets)

    if n == 0 or corr is None or len(corr) == 0:
        logger.warning("build_covariance_matrix: empty input", num_assets=n)
        return np.zeros((0, 0))

    corr_values = np.asarray(corr, dtype=float)
    if corr_values.shape != (n, n):
        logger.warning(
            "build_covariance_matrix: correlation shape mismatch, padding with zeros",
            num_assets=n,
            corr_shape=corr_values.shape,
        )
        padded = np.zeros((n, n))
        k = min(n, corr_values.shape[0])
        padded[:k, :k] = corr_values[:k, :k]
        corr_values = padded

    vols = np.array([a.risk for a in assets]) / 100
    return corr_values * np.outer(vols, vols)
