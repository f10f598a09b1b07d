"""
Portfolio Analytics Engine

Heuristic quantitative analytics for a list of holdings and a weight vector.
Pure computation modules operating on pydantic models, numpy arrays and
pandas DataFrames.

Modules:
- models: Input and result models
- rng: Seeded random streams
- matrices: Heuristic correlation and covariance matrices
- metrics: Return, volatility and risk-adjusted ratios
- allocation: Rule-based allocation strategies and validation
- scenarios: Stress tests, macro regimes, crisis paths, forward risk
- projections: Compounding projections and Monte Carlo simulation
- costs: Transaction cost and rebalancing analysis
- decomposition: Beta/alpha decomposition, concentration, correlation stress
- behavioral: Bias detection, investor scores, goal probability
- insights: Rule-based interpretation and narratives
"""

# Models
from .models import (
    Asset,
    PortfolioMetrics,
    StressScenarioResult,
    MacroScenarioResult,
    CrisisEventResult,
    MonteCarloResult,
    BehavioralBias,
    GoalProbability,
    MonteCarloGoalProbability,
    coerce_assets,
)

# Random streams
from .rng import make_rng, spawn_seeds

# Matrices module
from .matrices import (
    build_correlation_matrix,
    build_covariance_matrix,
)

# Metrics module
from .metrics import (
    portfolio_volatility,
    weighted_return,
    weighted_beta,
    weighted_risk,
    advanced_metrics,
)

# Allocation module
from .allocation import (
    align_weights,
    allocation_to_weights,
    weights_to_allocation,
    optimal_allocation,
    min_variance_allocation,
    risk_parity_allocation,
    max_return_allocation,
    generate_allocations,
    validate_strategies,
)

# Scenario module
from .scenarios import (
    run_stress_tests,
    extended_scenario_analysis,
    stress_test_extended,
    forward_looking_risk,
    STRESS_SCENARIOS,
    MACRO_REGIMES,
    CRISIS_EVENTS,
)

# Projections module
from .projections import (
    historical_backtest,
    drawdown_series,
    confidence_bands,
    monte_carlo_simulation,
)

# Costs module
from .costs import (
    transaction_costs,
    rebalancing_impact,
)

# Decomposition module
from .decomposition import (
    beta_decomposition,
    alpha_decomposition,
    concentration_risks,
    correlation_stress,
)

# Behavioral module
from .behavioral import (
    detect_behavioral_biases,
    investor_behavior_scores,
    goal_probability,
    monte_carlo_goal_probability,
    years_to_goal,
    round_half_up,
)

# Insights module
from .insights import (
    risk_interpretation,
    diversification_insights,
    regime_analysis,
    scenario_narratives,
    strategy_recommendations,
    goal_narrative,
)

__all__ = [
    # Models
    'Asset',
    'PortfolioMetrics',
    'StressScenarioResult',
    'MacroScenarioResult',
    'CrisisEventResult',
    'MonteCarloResult',
    'BehavioralBias',
    'GoalProbability',
    'MonteCarloGoalProbability',
    'coerce_assets',
    # Random streams
    'make_rng',
    'spawn_seeds',
    # Matrices
    'build_correlation_matrix',
    'build_covariance_matrix',
    # Metrics
    'portfolio_volatility',
    'weighted_return',
    'weighted_beta',
    'weighted_risk',
    'advanced_metrics',
    # Allocation
    'align_weights',
    'allocation_to_weights',
    'weights_to_allocation',
    'optimal_allocation',
    'min_variance_allocation',
    'risk_parity_allocation',
    'max_return_allocation',
    'generate_allocations',
    'validate_strategies',
    # Scenarios
    'run_stress_tests',
    'extended_scenario_analysis',
    'stress_test_extended',
    'forward_looking_risk',
    'STRESS_SCENARIOS',
    'MACRO_REGIMES',
    'CRISIS_EVENTS',
    # Projections
    'historical_backtest',
    'drawdown_series',
    'confidence_bands',
    'monte_carlo_simulation',
    # Costs
    'transaction_costs',
    'rebalancing_impact',
    # Decomposition
    'beta_decomposition',
    'alpha_decomposition',
    'concentration_risks',
    'correlation_stress',
    # Behavioral
    'detect_behavioral_biases',
    'investor_behavior_scores',
    'goal_probability',
    'monte_carlo_goal_probability',
    'years_to_goal',
    'round_half_up',
    # Insights
    'risk_interpretation',
    'diversification_insights',
    'regime_analysis',
    'scenario_narratives',
    'strategy_recommendations',
    'goal_narrative',
]
