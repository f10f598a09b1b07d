"""
Shared test fixtures for the portfolio analytics test suite.

Provides consistent test data across all test modules:
- A diversified five-holding portfolio and its weights
- Degenerate portfolios (single asset, identical same-sector assets)
- A seeded correlation matrix and a small Monte Carlo run
"""

import pytest
import numpy as np

from simcore.analytics.matrices import build_correlation_matrix
from simcore.analytics.models import Asset
from simcore.analytics.projections import monte_carlo_simulation
from simcore.engine.config import EngineSettings


@pytest.fixture
def sample_assets():
    """Five holdings across four sectors.

    Returns:
        List[Asset]: AAPL, MSFT (Technology), JNJ (Healthcare), XOM (Energy),
            KO (Consumer Staples)
    """
    return [
        Asset(symbol='AAPL', sector='Technology', beta=1.2, risk=25.0, expected_return=12.0, profit_margin=0.25),
        Asset(symbol='MSFT', sector='Technology', beta=1.1, risk=22.0, expected_return=11.0, profit_margin=0.35),
        Asset(symbol='JNJ', sector='Healthcare', beta=0.7, risk=15.0, expected_return=7.0, profit_margin=0.20),
        Asset(symbol='XOM', sector='Energy', beta=0.9, risk=28.0, expected_return=9.0, profit_margin=0.12),
        Asset(symbol='KO', sector='Consumer Staples', beta=0.6, risk=14.0, expected_return=6.0, profit_margin=0.22),
    ]


@pytest.fixture
def sample_weights():
    """Sample portfolio weights (long-only, sum to 1).

    Returns:
        np.ndarray: Array of 5 weights summing to 1.0
    """
    return np.array([0.30, 0.25, 0.20, 0.15, 0.10])


@pytest.fixture
def sample_allocation(sample_assets, sample_weights):
    """Percent allocation map matching sample_weights."""
    return {a.symbol: float(w * 100) for a, w in zip(sample_assets, sample_weights)}


@pytest.fixture
def single_asset():
    """One holding: 10% expected return, beta 1, 20% volatility."""
    return [Asset(symbol='SPY', sector='Index', beta=1.0, risk=20.0, expected_return=10.0)]


@pytest.fixture
def same_sector_assets():
    """Three identical beta-1 holdings in one sector."""
    return [
        Asset(symbol=s, sector='Technology', beta=1.0, risk=18.0, expected_return=10.0)
        for s in ('AAA', 'BBB', 'CCC')
    ]


@pytest.fixture
def sample_corr(sample_assets):
    """Seeded correlation matrix for sample_assets."""
    return build_correlation_matrix(sample_assets, rng=42)


@pytest.fixture
def sample_mc(sample_assets, sample_weights):
    """Small seeded Monte Carlo run (2,000 paths over 5 years)."""
    return monte_carlo_simulation(
        sample_assets, sample_weights, 100_000, years=5, simulations=2_000, seed=7,
    )


@pytest.fixture
def engine_settings():
    """Deterministic engine settings with a reduced simulation count."""
    return EngineSettings(seed=123, simulations=500, mc_chunk_size=100)
