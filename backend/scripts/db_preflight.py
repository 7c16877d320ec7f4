"""Database production preflight checks.

Usage:
    python scripts/db_preflight.py

Checks deployment safety requirements for the planning engine.
Exits non-zero when any required control fails.
"""

from __future__ import annotations

import os
import sys


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _int_env(name: str, default: int) -> int | None:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return None


def run() -> int:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    database_url = os.getenv("DATABASE_URL", "sqlite:///./replenishops.db")
    auto_create_tables = _bool_env("AUTO_CREATE_TABLES", True)
    max_workers = _int_env("PLAN_MAX_WORKERS", 4)

    checks: list[tuple[str, bool, str]] = []

    checks.append((
        "ENVIRONMENT is explicitly set",
        bool(environment),
        f"ENVIRONMENT={environment or '<empty>'}",
    ))
    checks.append((
        "PLAN_MAX_WORKERS is a positive integer",
        max_workers is not None and max_workers >= 1,
        f"PLAN_MAX_WORKERS={os.getenv('PLAN_MAX_WORKERS', max_workers)}",
    ))

    if environment in {"production", "prod"}:
        checks.extend(
            [
                (
                    "DATABASE_URL is not SQLite",
                    "sqlite" not in database_url.lower(),
                    f"DATABASE_URL={database_url}",
                ),
                (
                    "AUTO_CREATE_TABLES is disabled",
                    not auto_create_tables,
                    f"AUTO_CREATE_TABLES={auto_create_tables}",
                ),
            ]
        )

    has_failures = False
    print("ReplenishOps DB Preflight")
    print(f"- environment: {environment}")
    for title, ok, detail in checks:
        marker = "PASS" if ok else "FAIL"
        print(f"[{marker}] {title} ({detail})")
        if not ok:
            has_failures = True

    if has_failures:
        print("\nPreflight failed. Resolve failed checks before deployment.")
        return 1

    print("\nPreflight passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
