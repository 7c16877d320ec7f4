"""Plan run maintenance runner.

Usage:
    python scripts/run_plan_maintenance.py due
    python scripts/run_plan_maintenance.py recover --stale-minutes 60
    python scripts/run_plan_maintenance.py purge --retention-days 30

Intended for cron or a scheduled task runner. Prints a JSON summary.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from replenish.services.plan_run_maintenance import (  # noqa: E402
    purge_unpromoted_runs,
    recover_stale_runs,
    run_due_plans,
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Plan run maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    due = sub.add_parser("due", help="run every active plan whose next_run_at has passed")
    due.add_argument("--as-of", type=date.fromisoformat, default=None, help="planning date (YYYY-MM-DD)")

    recover = sub.add_parser("recover", help="fail runs stuck in running state")
    recover.add_argument("--stale-minutes", type=int, default=None)

    purge = sub.add_parser("purge", help="delete rows of runs that were never promoted")
    purge.add_argument("--retention-days", type=int, default=None)

    args = parser.parse_args(argv)

    if args.command == "due":
        summary = run_due_plans(as_of=args.as_of)
    elif args.command == "recover":
        summary = recover_stale_runs(stale_minutes=args.stale_minutes)
    else:
        summary = purge_unpromoted_runs(retention_days=args.retention_days)

    print(json.dumps(summary, indent=2, default=str))
    return 1 if summary.get("failed") else 0


if __name__ == "__main__":
    sys.exit(main())
