"""
Analytics Engine

Configuration, logging setup and the orchestrating facade over
simcore.analytics.
"""

from .config import EngineSettings, get_settings
from .log_setup import configure_logging
from .service import PortfolioAnalyticsEngine

__all__ = [
    'EngineSettings',
    'get_settings',
    'configure_logging',
    'PortfolioAnalyticsEngine',
]
