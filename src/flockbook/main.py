from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date

from flockbook.application.container import build_container
from flockbook.config import get_app_paths, load_api_settings
from flockbook.domain.errors import AppError, user_message
from flockbook.logging_config import setup_logging

log = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="flockbook", description="Poultry farm records")
    sub = parser.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Print statistics for the current data")
    summary.add_argument("--today", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD)")
    summary.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    return parser.parse_args(argv)


def _print_summary(data: dict) -> None:
    eggs, expenses, feed, flock, sales, savings = (
        data["eggs"], data["expenses"], data["feed"], data["flock"], data["sales"], data["savings"],
    )
    print(f"FlockBook summary for {data['today']}")
    print(f"  Eggs       total={eggs['total']} this_week={eggs['this_week']} last_7_days={eggs['last_7_days']} "
          f"this_month={eggs['this_month']} avg/day={eggs['average_daily']:.2f}")
    print(f"  Expenses   total={expenses['total']:.2f} this_month={expenses['this_month']:.2f} "
          f"avg/day={expenses['average_daily']:.2f}")
    print(f"  Feed       quantity={feed['total_quantity']} value={feed['total_value']:.2f} "
          f"open={feed['open_count']} low_stock={len(feed['low_stock'])}")
    print(f"  Flock      birds={flock['total_birds']} laying={flock['laying_hens']} "
          f"rate={flock['production_rate']:.1f}% "
          f"deaths={flock['total_deaths']} mortality={flock['mortality_rate']:.2f}%")
    print(f"  Sales      customers={sales['customer_count']} revenue={sales['total_revenue']:.2f} "
          f"eggs_sold={sales['total_eggs_sold']}")
    print(f"  Savings    net={savings['net_savings']:.2f}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    try:
        settings = load_api_settings()
        container = build_container(
            settings,
            paths.db_path,
            access_token=os.environ.get("FLOCKBOOK_ACCESS_TOKEN"),
            refresh_token=os.environ.get("FLOCKBOOK_REFRESH_TOKEN"),
            user_id=os.environ.get("FLOCKBOOK_USER_ID") or None,
        )
        container.cache.start()
        if container.cache.snapshot is None:
            container.cache.refresh()
        dashboard = container.reporting.dashboard(args.today)
    except AppError as e:
        log.error("summary_failed error=%s", e)
        print(user_message(e), file=sys.stderr)
        return 1

    data = dashboard.to_dict()
    if args.json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        _print_summary(data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
