"""
Statistical Projection Module

Deterministic compounding projections (backtest, drawdown series, analytic
confidence bands) and a seeded Monte Carlo simulation of terminal portfolio
value.

Monte Carlo paths are simulated in fixed-size chunks.  Each chunk draws from
its own child stream spawned off one SeedSequence, so a given seed produces
identical results regardless of how many worker threads run the chunks.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
import structlog

from .allocation import align_weights
from .metrics import weighted_return, weighted_risk
from .models import PATH_COLUMNS, Asset, MonteCarloResult, coerce_assets
from .rng import SeedLike, spawn_seeds

logger = structlog.get_logger(__name__)

BASE_CAPITAL = 100_000.0
DEFAULT_SIMULATIONS = 10_000
DEFAULT_CHUNK_SIZE = 1_000
Z_95 = 1.96
MONTHS_PER_YEAR = 12


def historical_backtest(
    assets: Sequence[Asset | dict],
    weights,
    years: int = 5,
    base_capital: float = BASE_CAPITAL,
) -> pd.DataFrame:
    """Compound the current weighted return year over year.

    This is a projection from today's expected return, not a replay of
    historical prices.

    Returns:
        DataFrame with columns year, value, volatility, return (years 0..N)
    """
    assets = coerce_assets(assets)
    if not assets or weights is None:
        logger.warning("historical_backtest: empty portfolio")
        return pd.DataFrame(columns=["year", "value", "volatility", "return"])

    ret = weighted_return(assets, weights)
    vol = weighted_risk(assets, weights)
    year_idx = np.arange(years + 1)

    return pd.DataFrame({
        "year": year_idx,
        "value": base_capital * (1 + ret / 100) ** year_idx,
        "volatility": vol,
        "return": ret,
    })


def drawdown_series(
    assets: Sequence[Asset | dict],
    weights,
    periods: int = 60,
    base_capital: float = BASE_CAPITAL,
) -> pd.DataFrame:
    """Monthly compounding path with running peak and decline from peak.

    Month i holds the value after i+1 months of compounding; the running peak
    starts at the base capital.

    Returns:
        DataFrame with columns month, value, drawdown (percent, <= 0), peak
    """
    assets = coerce_assets(assets)
    if not assets or weights is None or periods <= 0:
        logger.warning("drawdown_series: empty input", periods=periods)
        return pd.DataFrame(columns=["month", "value", "drawdown", "peak"])

    monthly = weighted_return(assets, weights) / 100 / MONTHS_PER_YEAR
    months = np.arange(periods)
    values = pd.Series(base_capital * (1 + monthly) ** (months + 1))
    peak = np.maximum(values.cummax(), base_capital)

    return pd.DataFrame({
        "month": months,
        "value": values,
        "drawdown": (values - peak) / peak * 100,
        "peak": peak,
    })


def confidence_bands(
    assets: Sequence[Asset | dict],
    weights,
    periods: int = 60,
    base_capital: float = BASE_CAPITAL,
) -> pd.DataFrame:
    """Analytic 68% / 95% bands around the compounded expected value.

    expected_i = base * (1 + r_m)^(i+1)
    sd_i = expected_i * sigma_m * sqrt(i+1),  sigma_m = risk / 100 / sqrt(12)

    Returns:
        DataFrame with columns month, expected, upper_95, lower_95,
        upper_68, lower_68
    """
    assets = coerce_assets(assets)
    columns = ["month", "expected", "upper_95", "lower_95", "upper_68", "lower_68"]
    if not assets or weights is None or periods <= 0:
        logger.warning("confidence_bands: empty input", periods=periods)
        return pd.DataFrame(columns=columns)

    monthly_return = weighted_return(assets, weights) / 100 / MONTHS_PER_YEAR
    monthly_sd = weighted_risk(assets, weights) / 100 / np.sqrt(MONTHS_PER_YEAR)

    elapsed = np.arange(periods) + 1
    expected = base_capital * (1 + monthly_return) ** elapsed
    sd = expected * monthly_sd * np.sqrt(elapsed)

    return pd.DataFrame({
        "month": elapsed - 1,
        "expected": expected,
        "upper_95": expected + Z_95 * sd,
        "lower_95": expected - Z_95 * sd,
        "upper_68": expected + sd,
        "lower_68": expected - sd,
    })


# ---------------------------------------------------------------------------
# Monte Carlo
# ---------------------------------------------------------------------------

def _chunk_sizes(simulations: int, chunk_size: int) -> List[int]:
    chunk_size = max(1, chunk_size)
    full, rest = divmod(simulations, chunk_size)
    return [chunk_size] * full + ([rest] if rest else [])


def _simulate_chunk(
    seed_seq: np.random.SeedSequence,
    n_paths: int,
    months: int,
    initial_capital: float,
    monthly_return: float,
    monthly_sd: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Simulate *n_paths* monthly paths; returns (final values, path minima)."""
    rng = np.random.default_rng(seed_seq)
    values = np.full(n_paths, float(initial_capital))
    minima = values.copy()

    for _ in range(months):
        # Box-Muller; 1 - U keeps the log argument in (0, 1]
        u1 = 1.0 - rng.random(n_paths)
        u2 = rng.random(n_paths)
        z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)

        values = values * (1 + monthly_return + monthly_sd * z)
        np.minimum(minima, values, out=minima)

    return values, minima


def _order_stat(sorted_values: np.ndarray, q: float) -> float:
    idx = min(int(math.floor(len(sorted_values) * q)), len(sorted_values) - 1)
    return float(sorted_values[idx])


def monte_carlo_simulation(
    assets: Sequence[Asset | dict],
    weights,
    initial_capital: float,
    years: int = 5,
    simulations: int = DEFAULT_SIMULATIONS,
    seed: SeedLike = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int = 1,
) -> MonteCarloResult:
    """Simulate terminal portfolio values with monthly normal shocks.

    Each month: value *= 1 + mu/12 + (sigma/sqrt(12)) * Z, where mu and sigma
    are the weighted expected return and weighted risk and Z is a standard
    normal drawn by Box-Muller from two uniforms.

    Percentiles are order statistics at index floor(n * q) of the sorted final
    values; ``std`` is the population standard deviation and
    ``median_rms_deviation`` the root-mean-square distance from the median.

    Args:
        assets: Holdings
        weights: Fractional weights aligned with *assets*
        initial_capital: Starting value
        years: Horizon in years
        simulations: Number of paths
        seed: Seed, SeedSequence or Generator; None draws fresh entropy
        chunk_size: Paths per independent random stream
        workers: Thread count for running chunks

    Returns:
        MonteCarloResult with summary statistics and a per-path DataFrame
    """
    assets = coerce_assets(assets)
    if not assets or weights is None or simulations < 1:
        logger.warning(
            "monte_carlo_simulation: empty input, returning zero result",
            num_assets=len(assets),
            simulations=simulations,
        )
        return MonteCarloResult()

    w = align_weights(weights, len(assets))
    monthly_return = weighted_return(assets, w) / 100 / MONTHS_PER_YEAR
    monthly_sd = weighted_risk(assets, w) / 100 / np.sqrt(MONTHS_PER_YEAR)
    months = int(years * MONTHS_PER_YEAR)

    sizes = _chunk_sizes(simulations, chunk_size)
    seeds = spawn_seeds(seed, len(sizes))
    jobs = [
        (seed_seq, size, months, initial_capital, monthly_return, monthly_sd)
        for seed_seq, size in zip(seeds, sizes)
    ]

    if workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            chunks = list(executor.map(lambda job: _simulate_chunk(*job), jobs))
    else:
        chunks = [_simulate_chunk(*job) for job in jobs]

    finals = np.concatenate([c[0] for c in chunks])
    minima = np.concatenate([c[1] for c in chunks])

    if initial_capital > 0:
        drawdowns = (minima - initial_capital) / initial_capital * 100
    else:
        drawdowns = np.zeros_like(minima)

    paths = pd.DataFrame(
        {
            "final_value": finals,
            "max_drawdown": drawdowns,
            "gain": finals - initial_capital,
        },
        columns=PATH_COLUMNS,
    )

    ordered = np.sort(finals)
    median = ordered[len(ordered) // 2]

    result = MonteCarloResult(
        mean=float(ordered.mean()),
        median=float(median),
        percentile_5=_order_stat(ordered, 0.05),
        percentile_25=_order_stat(ordered, 0.25),
        percentile_75=_order_stat(ordered, 0.75),
        percentile_95=_order_stat(ordered, 0.95),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        std=float(ordered.std()),
        median_rms_deviation=float(np.sqrt(np.mean((ordered - median) ** 2))),
        simulations=len(ordered),
        paths=paths,
    )

    logger.info(
        "monte_carlo_simulation: simulation complete",
        simulations=len(ordered),
        months=months,
        chunks=len(sizes),
        workers=workers,
        mean=result.mean,
        median=result.median,
    )
    return result
