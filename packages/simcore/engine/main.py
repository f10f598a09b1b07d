"""Command-line entry point: run a full analysis on a JSON portfolio file.

The input file holds ``{"assets": [...], "weights": [...]}`` and the result
of ``PortfolioAnalyticsEngine.analyze`` is written as JSON to stdout (or to
``--output``).  Logging goes to stderr at SIMCORE_LOG_LEVEL.

Usage:
    python -m simcore.engine.main portfolio.json --capital 100000 --years 10
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from simcore.engine.config import get_settings
from simcore.engine.log_setup import configure_logging
from simcore.engine.service import PortfolioAnalyticsEngine


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="simcore-analyze",
        description="Heuristic portfolio analytics for a JSON portfolio file",
    )
    parser.add_argument("portfolio", type=Path, help="JSON file with 'assets' and 'weights'")
    parser.add_argument("--capital", type=float, default=100_000, help="Initial capital")
    parser.add_argument("--years", type=int, default=5, help="Projection horizon in years")
    parser.add_argument("--target", type=float, default=None, help="Goal amount")
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load settings, configure logging, analyze the portfolio and emit JSON."""
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    logger = structlog.get_logger(__name__)
    logger.info("main: starting", portfolio=str(args.portfolio), log_level=settings.log_level)

    payload = json.loads(args.portfolio.read_text(encoding="utf-8"))
    engine = PortfolioAnalyticsEngine(settings)
    result = engine.analyze(
        payload.get("assets", []),
        payload.get("weights", []),
        args.capital,
        args.years,
        target_amount=args.target,
    )

    text = json.dumps(result, indent=2, allow_nan=False)
    if args.output is not None:
        args.output.write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")

    logger.info("main: analysis written", output=str(args.output or "stdout"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
