#!/usr/bin/env python3
"""Generate a sample loan portfolio and load it to PostgreSQL.

The portfolio is built through the same lifecycle service the
application uses, so every schedule, payment and renewal in the output
is one the service would have produced. Data is written to:
- PostgreSQL: clients, loans, loan_schedules, payments
- JSON files: one file per table under --output-dir
"""

import argparse
import logging
import sys
import time
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from microlend.config import MicrolendConfig
from microlend.logging import setup_logging
from microlend.scenarios import LoanPortfolioScenario
from microlend.sinks import JsonFileSink
from microlend.store import LoanStore, PostgresLoanStore

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    config = MicrolendConfig.from_env()

    parser = argparse.ArgumentParser(description="Load a sample loan portfolio")
    parser.add_argument(
        "--clients",
        type=int,
        default=100,
        help="Number of clients to generate (default: 100)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=date.today(),
        help="Simulation date as YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=config.postgres.connection_string,
        help="PostgreSQL connection string",
    )
    parser.add_argument(
        "--skip-postgres",
        action="store_true",
        help="Generate in memory only",
    )
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Truncate PostgreSQL tables before loading (allows re-running)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.output.json_output_dir,
        help="Directory for JSON output",
    )
    parser.add_argument(
        "--log-level",
        default=config.log_level,
        help="Log level (default: INFO)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    logger.info("=" * 60)
    logger.info("Sample Loan Portfolio")
    logger.info("=" * 60)
    logger.info("Clients: %d, seed: %d, as of: %s", args.clients, args.seed, args.as_of)

    if args.skip_postgres:
        store = LoanStore()
    else:
        store = PostgresLoanStore(args.postgres_url)
        store.create_tables()
        if args.truncate:
            store.truncate_tables()

    start = time.perf_counter()
    try:
        scenario = LoanPortfolioScenario(
            num_clients=args.clients,
            seed=args.seed,
            as_of=args.as_of,
            store=store,
            config=config.schedule,
        )
        scenario.generate()

        sink = JsonFileSink(args.output_dir, pretty=config.output.pretty_json)
        scenario.export([sink])
        sink.close()

        summary = scenario.get_portfolio_summary()
    finally:
        if isinstance(store, PostgresLoanStore):
            store.close()

    logger.info("Done in %.1fs", time.perf_counter() - start)
    for key, value in summary.items():
        logger.info("  %s: %s", key, value)


if __name__ == "__main__":
    main()
