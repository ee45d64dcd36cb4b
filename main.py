import argparse
import json
import os
import sys
from datetime import datetime

from dotenv import load_dotenv

from tradebook.tools.commands import (
    CONFIG_ENV_VAR,
    get_app_config,
    get_breakdowns,
    get_calendar_data,
    get_performance_metrics,
    get_repository,
    reconcile_pnl,
)
from tradebook.utils.json_helpers import convert_to_json_serializable
from tradebook.utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tradebook: reconcile executions and report journal performance",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("reconcile", help="Match open buys and sells into round trips")

    metrics = subparsers.add_parser("metrics", help="Performance metrics for a date range")
    metrics.add_argument("--start", help="First day, YYYY-MM-DD")
    metrics.add_argument("--end", help="Last day, YYYY-MM-DD")

    calendar = subparsers.add_parser("calendar", help="Daily P&L for one month")
    calendar.add_argument("month", type=int, help="Month, 1-12")
    calendar.add_argument("year", type=int, help="Year, e.g. 2025")

    breakdowns = subparsers.add_parser("breakdowns", help="Symbol / strategy / daily P&L")
    breakdowns.add_argument("--days", type=int, help="Look-back window for the daily series")

    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    config = get_app_config()

    timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
    log_file = os.path.join(config.logging.log_dir, f"run_{timestamp}.log")
    logger = setup_logger(log_file=log_file, level=config.logging.level)
    logger.info(
        f"Tradebook {args.command} | db={config.database.path} | "
        f"config={os.environ.get(CONFIG_ENV_VAR, 'config.yaml')}"
    )

    repo = get_repository(config)

    if args.command == "reconcile":
        result = reconcile_pnl(repo=repo)
    elif args.command == "metrics":
        result = get_performance_metrics(args.start, args.end, repo=repo)
    elif args.command == "calendar":
        result = get_calendar_data(args.month, args.year, repo=repo)
    else:
        result = get_breakdowns(days=args.days, repo=repo)

    print(json.dumps(result, indent=2, default=convert_to_json_serializable))
    if result.get("warning"):
        logger.warning(result["warning"])
    return 0 if result["status"] == "success" else 1


if __name__ == "__main__":
    sys.exit(main())
