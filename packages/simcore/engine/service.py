"""Portfolio analytics orchestration service.

Binds an EngineSettings instance to the pure functions in simcore.analytics
so that configuration (risk-free rate, market return, simulation count,
transaction cost, correlation noise, seed) is applied in one place, and
provides ``analyze`` to run the whole pipeline into a JSON-ready dict.

The engine holds no mutable state; every call returns fresh results.
"""

from __future__ import annotations

import math
import platform
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import structlog

from simcore.analytics import (
    allocation,
    behavioral,
    costs,
    decomposition,
    insights,
    matrices,
    metrics,
    projections,
    scenarios,
)
from simcore.analytics.models import Asset, MonteCarloResult, PortfolioMetrics, coerce_assets
from simcore.analytics.rng import SeedLike, spawn_seeds
from simcore.engine.config import EngineSettings, get_settings

logger = structlog.get_logger(__name__)


class PortfolioAnalyticsEngine:
    """Facade over the analytics modules with configuration forwarded."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings if settings is not None else get_settings()

    def _seed(self, seed: SeedLike) -> SeedLike:
        return seed if seed is not None else self.settings.seed

    # -- matrices / metrics -------------------------------------------------

    def correlation_matrix(self, assets, seed: SeedLike = None) -> pd.DataFrame:
        return matrices.build_correlation_matrix(
            assets, rng=self._seed(seed), noise=self.settings.correlation_noise,
        )

    def covariance_matrix(self, assets, corr) -> np.ndarray:
        return matrices.build_covariance_matrix(assets, corr)

    def metrics(self, assets, weights, corr=None) -> PortfolioMetrics:
        if corr is None:
            corr = self.correlation_matrix(assets)
        return metrics.advanced_metrics(
            assets,
            weights,
            corr,
            risk_free_rate=self.settings.risk_free_rate,
            market_return=self.settings.market_return,
        )

    # -- allocation ---------------------------------------------------------

    def allocations(self, assets) -> dict[str, dict[str, float]]:
        return allocation.generate_allocations(assets)

    def strategy_metrics(
        self,
        assets,
        allocations: Mapping[str, Mapping[str, float]],
        corr,
    ) -> dict[str, PortfolioMetrics]:
        """Metrics for each allocation, sharing one correlation matrix."""
        return {
            name: self.metrics(assets, allocation.allocation_to_weights(alloc, assets), corr)
            for name, alloc in allocations.items()
        }

    def validate_strategies(self, strategy_metrics, assets, avg_correlation: float) -> dict:
        return allocation.validate_strategies(strategy_metrics, assets, avg_correlation)

    # -- scenarios ----------------------------------------------------------

    def stress_tests(self, assets, weights):
        return scenarios.run_stress_tests(assets, weights)

    def macro_scenarios(self, assets, weights, initial_capital: float, horizon: float):
        return scenarios.extended_scenario_analysis(assets, weights, initial_capital, horizon)

    def crisis_events(self, assets, weights, initial_capital: float):
        return scenarios.stress_test_extended(assets, weights, initial_capital)

    def forward_risk(self, assets, weights, market_volatility: float = scenarios.NORMAL_MARKET_VOL) -> dict:
        return scenarios.forward_looking_risk(assets, weights, market_volatility)

    # -- projections --------------------------------------------------------

    def backtest(self, assets, weights, years: int = 5) -> pd.DataFrame:
        return projections.historical_backtest(
            assets, weights, years=years, base_capital=self.settings.base_capital,
        )

    def drawdowns(self, assets, weights, periods: int = 60) -> pd.DataFrame:
        return projections.drawdown_series(
            assets, weights, periods=periods, base_capital=self.settings.base_capital,
        )

    def confidence_bands(self, assets, weights, periods: int = 60) -> pd.DataFrame:
        return projections.confidence_bands(
            assets, weights, periods=periods, base_capital=self.settings.base_capital,
        )

    def monte_carlo(
        self,
        assets,
        weights,
        initial_capital: float,
        years: int = 5,
        seed: SeedLike = None,
    ) -> MonteCarloResult:
        return projections.monte_carlo_simulation(
            assets,
            weights,
            initial_capital,
            years=years,
            simulations=self.settings.simulations,
            seed=self._seed(seed),
            chunk_size=self.settings.mc_chunk_size,
            workers=self.settings.mc_workers,
        )

    # -- costs --------------------------------------------------------------

    def transaction_costs(self, new_allocation, old_allocation) -> dict:
        return costs.transaction_costs(
            new_allocation, old_allocation, bps=self.settings.transaction_cost_bps,
        )

    def rebalancing_impact(
        self,
        target_allocation,
        current_allocation,
        frequency: str = "quarterly",
        years: int = costs.REBALANCE_YEARS,
    ) -> dict:
        return costs.rebalancing_impact(
            target_allocation,
            current_allocation,
            frequency=frequency,
            years=years,
            bps=self.settings.transaction_cost_bps,
        )

    # -- decomposition ------------------------------------------------------

    def beta_decomposition(self, assets, weights) -> dict:
        return decomposition.beta_decomposition(assets, weights)

    def alpha_decomposition(self, assets, weights) -> dict:
        return decomposition.alpha_decomposition(
            assets,
            weights,
            risk_free_rate=self.settings.risk_free_rate,
            market_return=self.settings.market_return,
        )

    def concentration(self, allocation_map, assets) -> dict:
        return decomposition.concentration_risks(allocation_map, assets)

    def correlation_stress(self, corr) -> dict:
        return decomposition.correlation_stress(corr)

    # -- behavioral ---------------------------------------------------------

    def biases(self, assets, allocation_map):
        return behavioral.detect_behavioral_biases(
            assets, allocation_map, home_country=self.settings.home_country,
        )

    def investor_scores(self, allocation_map, portfolio_metrics) -> dict:
        return behavioral.investor_behavior_scores(allocation_map, portfolio_metrics)

    def goal_probability(self, expected_return, volatility, horizon, target, current):
        return behavioral.goal_probability(expected_return, volatility, horizon, target, current)

    def monte_carlo_goal_probability(self, mc_result, target):
        return behavioral.monte_carlo_goal_probability(mc_result, target)

    # -- full pipeline ------------------------------------------------------

    def analyze(
        self,
        assets: Sequence[Asset | dict],
        weights,
        initial_capital: float,
        horizon_years: int,
        target_amount: Optional[float] = None,
    ) -> dict[str, Any]:
        """Run every analysis for one portfolio.

        Steps:
        1. Correlation matrix and current-portfolio metrics
        2. Strategy allocations, their metrics and validation
        3. Stress, macro and crisis scenarios, forward-looking risk
        4. Projections and Monte Carlo
        5. Costs of moving to the optimal allocation
        6. Decomposition, concentration and behavioral diagnostics
        7. Goal probabilities (when a target is given)
        8. Rule-based interpretation

        The configured seed is split into independent streams for the
        correlation noise and the Monte Carlo paths.

        Returns:
            JSON-ready dict (DataFrames as records, non-finite floats as None)
        """
        assets = coerce_assets(assets)
        weights = allocation.align_weights(weights, len(assets))
        corr_seed, mc_seed = spawn_seeds(self.settings.seed, 2)

        logger.info(
            "analyze: starting analysis",
            num_assets=len(assets),
            initial_capital=initial_capital,
            horizon_years=horizon_years,
            has_target=target_amount is not None,
        )

        # 1. Matrices and metrics
        corr = self.correlation_matrix(assets, seed=corr_seed)
        portfolio_metrics = self.metrics(assets, weights, corr)
        corr_stress = self.correlation_stress(corr)
        current_allocation = allocation.weights_to_allocation(weights, assets)

        # 2. Strategies
        strategies = self.allocations(assets)
        strat_metrics = self.strategy_metrics(assets, strategies, corr)
        validation = self.validate_strategies(
            strat_metrics, assets, corr_stress['average_correlation'],
        )

        # 3. Scenarios
        stress = self.stress_tests(assets, weights)
        macro = self.macro_scenarios(assets, weights, initial_capital, horizon_years)
        crisis = self.crisis_events(assets, weights, initial_capital)
        forward = self.forward_risk(assets, weights)

        # 4. Projections
        mc = self.monte_carlo(assets, weights, initial_capital, years=horizon_years, seed=mc_seed)

        # 5. Costs
        optimal = strategies.get("optimal_portfolio", {})
        trade_costs = self.transaction_costs(optimal, current_allocation)
        rebalancing = self.rebalancing_impact(optimal, current_allocation)

        # 6. Diagnostics
        concentration = self.concentration(current_allocation, assets)
        biases = self.biases(assets, current_allocation)

        # 7. Goals
        goal = mc_goal = None
        if target_amount is not None:
            goal = self.goal_probability(
                portfolio_metrics.expected_return,
                portfolio_metrics.volatility,
                horizon_years,
                target_amount,
                initial_capital,
            )
            mc_goal = self.monte_carlo_goal_probability(mc, target_amount)

        # 8. Interpretation
        interpretation = {
            "risk": insights.risk_interpretation(portfolio_metrics, concentration, forward),
            "diversification": insights.diversification_insights(corr, concentration, assets),
            "regime": insights.regime_analysis(forward, portfolio_metrics),
            "scenarios": insights.scenario_narratives(macro, portfolio_metrics.expected_return),
            "strategies": {
                name: insights.strategy_recommendations(m, name, biases, goal)
                for name, m in strat_metrics.items()
            },
        }
        if goal is not None:
            interpretation["goal"] = insights.goal_narrative(
                goal, mc_goal, initial_capital, target_amount, horizon_years,
            )

        result = {
            "metrics": portfolio_metrics.model_dump(),
            "correlation": {
                "symbols": list(corr.columns),
                "matrix": corr.to_numpy().tolist(),
                "stress": corr_stress,
            },
            "allocations": strategies,
            "strategy_metrics": {k: v.model_dump() for k, v in strat_metrics.items()},
            "validation": validation,
            "stress_tests": [s.model_dump() for s in stress],
            "macro_scenarios": [s.model_dump() for s in macro],
            "crisis_events": [c.model_dump() for c in crisis],
            "forward_risk": forward,
            "backtest": _records(self.backtest(assets, weights, years=horizon_years)),
            "drawdowns": _records(self.drawdowns(assets, weights)),
            "confidence_bands": _records(self.confidence_bands(assets, weights)),
            "monte_carlo": _monte_carlo_summary(mc),
            "transaction_costs": trade_costs,
            "rebalancing": rebalancing,
            "beta_decomposition": self.beta_decomposition(assets, weights),
            "alpha_decomposition": self.alpha_decomposition(assets, weights),
            "concentration": concentration,
            "behavioral_biases": [b.model_dump() for b in biases],
            "investor_scores": self.investor_scores(current_allocation, portfolio_metrics),
            "goal": goal.model_dump() if goal is not None else None,
            "monte_carlo_goal": mc_goal.model_dump() if mc_goal is not None else None,
            "interpretation": interpretation,
            "metadata": {
                "num_assets": len(assets),
                "initial_capital": initial_capital,
                "horizon_years": horizon_years,
                "target_amount": target_amount,
                "seed": self.settings.seed,
                "simulations": self.settings.simulations,
                "risk_free_rate": self.settings.risk_free_rate,
                "market_return": self.settings.market_return,
                "computed_at": datetime.now(timezone.utc).isoformat(),
                "lib_versions": {
                    "numpy": np.__version__,
                    "pandas": pd.__version__,
                    "python": platform.python_version(),
                },
            },
        }

        logger.info(
            "analyze: analysis complete",
            num_assets=len(assets),
            sharpe_ratio=portfolio_metrics.sharpe_ratio,
            num_biases=len(biases),
            mc_median=mc.median,
        )

        return _json_ready(result)


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    return df.to_dict(orient="records")


def _monte_carlo_summary(mc: MonteCarloResult) -> dict[str, Any]:
    """Summary statistics plus drawdown distribution, without per-path rows."""
    summary = mc.model_dump(exclude={"paths"})
    drawdowns = mc.paths["max_drawdown"]
    summary["avg_max_drawdown"] = float(drawdowns.mean()) if len(drawdowns) else 0.0
    summary["worst_max_drawdown"] = float(drawdowns.min()) if len(drawdowns) else 0.0
    return summary


def _json_ready(value: Any) -> Any:
    """Recursively convert numpy scalars to Python and non-finite floats to None."""
    if isinstance(value, dict):
        return {str(k): _json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_ready(v) for v in value]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
