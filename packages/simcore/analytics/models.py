"""Pydantic models for the portfolio analytics engine.

Inputs (Asset) arrive from the remote data backend already numeric; outputs
are created fresh on every call and handed back to the caller, which owns any
persistence or rendering.
"""

from __future__ import annotations

from typing import Any, Iterable

import pandas as pd
import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = structlog.get_logger(__name__)

PATH_COLUMNS = ["final_value", "max_drawdown", "gain"]

_ASSET_DEFAULTS = {
    "sector": "Unknown",
    "beta": 1.0,
    "risk": 18.0,
    "expected_return": 0.0,
    "profit_margin": 0.1,
}


class Asset(BaseModel):
    """A single holding as supplied by the input provider.

    ``risk`` is the annualised volatility in percent and ``expected_return``
    the annual expected return in percent.  Nulls sent by the backend fall
    back to the same defaults as missing fields.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    symbol: str
    sector: str = "Unknown"
    beta: float = 1.0
    risk: float = 18.0
    expected_return: float = 0.0
    profit_margin: float = 0.1
    country: str | None = None

    @field_validator("sector", "beta", "risk", "expected_return", "profit_margin", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info) -> Any:
        if value is None:
            return _ASSET_DEFAULTS[info.field_name]
        return value


class PortfolioMetrics(BaseModel):
    """Scalar risk/return bundle. Returns, volatility, drawdown and VaR are in percent."""

    expected_return: float = 0.0
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    beta_portfolio: float = 0.0
    alpha_portfolio: float = 0.0
    max_drawdown: float = 0.0
    var_95: float = 0.0
    cvar_95: float = 0.0
    calmar_ratio: float = 0.0
    information_ratio: float = 0.0
    treynor_ratio: float = 0.0


class StressScenarioResult(BaseModel):
    """Outcome of one fixed-shock stress scenario."""

    name: str
    stressed_return: float
    impact: float
    duration: int  # months
    probability: float
    affected_assets: int


class MacroScenarioResult(BaseModel):
    """Macro regime projection (Bull / Base / Bear / Stagflation)."""

    name: str
    description: str
    equity_return: float
    probability: float
    volatility_mult: float
    scenario_return: float
    projected_value: float
    gain: float
    gain_pct: float


class CrisisEventResult(BaseModel):
    """Month-by-month stress path for a named crisis archetype."""

    name: str
    market_impact: float
    duration: int
    recovery: int
    max_loss_pct: float
    recovery_month: int | None
    final_value: float
    recovery_path: list[dict[str, float]]


class MonteCarloResult(BaseModel):
    """Distribution of terminal portfolio values.

    ``paths`` holds one row per simulated path with columns
    ``final_value``, ``max_drawdown`` (percent, from the path minimum) and
    ``gain``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    mean: float = 0.0
    median: float = 0.0
    percentile_5: float = 0.0
    percentile_25: float = 0.0
    percentile_75: float = 0.0
    percentile_95: float = 0.0
    min: float = 0.0
    max: float = 0.0
    std: float = 0.0
    median_rms_deviation: float = 0.0
    simulations: int = 0
    paths: pd.DataFrame = Field(default_factory=lambda: pd.DataFrame(columns=PATH_COLUMNS))

    @property
    def final_values(self):
        return self.paths["final_value"].to_numpy()


class BehavioralBias(BaseModel):
    """A detected behavioral bias."""

    type: str
    severity: str  # "low" | "medium" | "high" | "critical"
    description: str
    recommendation: str
    confidence: float


class GoalProbability(BaseModel):
    """Analytic goal-achievement estimate.

    ``years_to_goal`` is None when the required horizon is undefined
    (for example when the current capital is zero).
    """

    probability: float
    projected_value: float
    years_to_goal: float | None
    gap: float
    confidence: str
    on_track: bool


class MonteCarloGoalProbability(BaseModel):
    """Goal-achievement estimate read off a Monte Carlo distribution."""

    success_probability: float
    expected_value: float
    worst_case_5pct: float
    best_case_95pct: float
    median: float
    gap: float
    confidence: str
    interpretation: str


_NUMERIC_FIELDS = ("beta", "risk", "expected_return", "profit_margin")


def _clean_record(record: Any, position: int) -> dict:
    """Repair one raw holding so it always validates.

    A missing symbol becomes ``ASSET_<n>`` (1-based position) so weights stay
    index-aligned; unparseable numerics fall back to the Asset defaults.
    """
    data = dict(record) if isinstance(record, dict) else {}
    if not isinstance(record, dict):
        logger.warning("coerce_assets: record is not a mapping", position=position, record=repr(record))

    symbol = data.get("symbol")
    if symbol is None or str(symbol).strip() == "":
        data["symbol"] = f"ASSET_{position + 1}"
        logger.warning("coerce_assets: missing symbol", position=position, placeholder=data["symbol"])
    elif not isinstance(symbol, str):
        data["symbol"] = str(symbol)

    for name in _NUMERIC_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        try:
            data[name] = float(value)
        except (TypeError, ValueError):
            logger.warning(
                "coerce_assets: unparseable value, using default",
                symbol=data["symbol"],
                field=name,
                value=repr(value),
                default=_ASSET_DEFAULTS[name],
            )
            data[name] = _ASSET_DEFAULTS[name]

    for name in ("sector", "country"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            data[name] = str(value)

    return data


def coerce_assets(assets: Iterable[Asset | dict] | None) -> list[Asset]:
    """Accept Asset instances or plain dicts and return a list of Asset.

    Malformed records degrade field by field instead of raising.
    """
    if not assets:
        return []
    return [
        a if isinstance(a, Asset) else Asset.model_validate(_clean_record(a, i))
        for i, a in enumerate(assets)
    ]
