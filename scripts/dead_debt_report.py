#!/usr/bin/env python3
"""Run a dead-debt operation and print its JSON payload.

Reads from PostgreSQL (``--postgres-url`` or the ``POSTGRES_*`` /
``DATABASE_URL`` environment) or from a generated sample portfolio
(``--sample``).

Examples
--------
    python scripts/dead_debt_report.py --sample loans --weeks-without-payment-min 4
    python scripts/dead_debt_report.py --sample monthly --year 2025 --status ALL
    python scripts/dead_debt_report.py by-month --year 2024 --month 3
    python scripts/dead_debt_report.py mark --loan-id abc --loan-id def --date 2024-03-01
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bad_debt.config import EngineConfig
from bad_debt.engine import DeadDebtService
from bad_debt.exceptions import BadDebtError
from bad_debt.generators import PortfolioGenerator
from bad_debt.logging import setup_logging
from bad_debt.periods import parse_instant, utc_now
from bad_debt.store import PostgresLoanRepository

logger = logging.getLogger(__name__)

OPERATIONS = ("loans", "summary", "monthly", "by-month", "mark")


def add_criteria_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("criteria")
    group.add_argument("--weeks-since-loan-min", type=int, default=None)
    group.add_argument("--weeks-since-loan-max", type=int, default=None)
    group.add_argument("--weeks-without-payment-min", type=int, default=None)
    group.add_argument("--weeks-without-payment-max", type=int, default=None)
    group.add_argument(
        "--status",
        type=str,
        choices=["ALL", "MARKED", "UNMARKED"],
        default=None,
        help="Bad-debt status filter (default: UNMARKED)",
    )
    group.add_argument("--from-date", type=str, default=None, help="ISO date, MARKED only")
    group.add_argument("--to-date", type=str, default=None, help="ISO date, MARKED only")
    group.add_argument("--route-id", type=str, default=None)
    group.add_argument(
        "--locality",
        dest="localities",
        action="append",
        default=[],
        help="Locality name to include (repeatable; default: all)",
    )


def criteria_kwargs(args: argparse.Namespace) -> dict:
    return {
        "weeks_since_loan_min": args.weeks_since_loan_min,
        "weeks_since_loan_max": args.weeks_since_loan_max,
        "weeks_without_payment_min": args.weeks_without_payment_min,
        "weeks_without_payment_max": args.weeks_without_payment_max,
        "bad_debt_status": args.status,
        "from_date": args.from_date,
        "to_date": args.to_date,
        "route_id": args.route_id,
        "localities": args.localities,
    }


def run(service: DeadDebtService, args: argparse.Namespace) -> str:
    """Dispatch the selected operation and return its JSON string."""
    if args.operation == "loans":
        return service.loans_for_dead_debt(**criteria_kwargs(args))
    if args.operation == "summary":
        return service.dead_debt_summary(**criteria_kwargs(args))
    if args.operation == "monthly":
        return service.dead_debt_monthly_summary(args.year, **criteria_kwargs(args))
    if args.operation == "by-month":
        return service.dead_debt_by_month(
            args.year, args.month, route_id=args.route_id, localities=args.localities
        )
    return service.mark_loans_dead_debt(args.loan_ids, args.date)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Dead-debt (cartera muerta) reports")
    parser.add_argument("operation", choices=OPERATIONS)
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="PostgreSQL connection string (default: from environment)",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Use a generated sample portfolio instead of PostgreSQL",
    )
    parser.add_argument("--seed", type=int, default=42, help="Seed for --sample (default: 42)")
    parser.add_argument("--routes", type=int, default=3, help="Routes in --sample (default: 3)")
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        help="Evaluate as if now were this ISO instant (default: current time)",
    )
    parser.add_argument("--year", type=int, default=None)
    parser.add_argument("--month", type=int, default=None)
    parser.add_argument("--loan-id", dest="loan_ids", action="append", default=[])
    parser.add_argument("--date", type=str, default=None, help="Bad-debt date for 'mark'")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print the JSON")
    add_criteria_arguments(parser)
    args = parser.parse_args()

    if args.operation in ("monthly", "by-month") and args.year is None:
        parser.error("--year is required for this operation")
    if args.operation == "by-month" and args.month is None:
        parser.error("--month is required for by-month")
    if args.operation == "mark" and (not args.loan_ids or not args.date):
        parser.error("mark needs at least one --loan-id and --date")

    config = EngineConfig.from_env()
    setup_logging(level=config.log_level, format_type=config.log_format)

    now = parse_instant(args.as_of, "--as-of") if args.as_of else utc_now()

    def clock() -> datetime:
        return now

    if args.sample:
        store = PortfolioGenerator(seed=args.seed).generate_portfolio(
            num_routes=args.routes,
            reference_date=now,
        )
        logger.info("Generated sample portfolio: %s", store.summary())
        output = run(DeadDebtService(store, config=config.report, clock=clock), args)
    else:
        url = args.postgres_url or config.postgres.connection_string
        try:
            repository = PostgresLoanRepository.connect(url)
        except BadDebtError as e:
            logger.error("%s", e)
            sys.exit(1)
        with repository:
            output = run(DeadDebtService(repository, config=config.report, clock=clock), args)

    if args.pretty:
        output = json.dumps(json.loads(output), indent=2, ensure_ascii=False)
    print(output)


if __name__ == "__main__":
    main()
