"""Static migration governance checks for Alembic revision files.

Usage:
    python scripts/check_migration_chain.py

Checks:
- every revision id is unique and every down_revision exists
- the chain has exactly one head and one root
- every table mapped on replenish.database.Base is created by some revision
"""

from __future__ import annotations

import re
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

REVISION_RE = re.compile(r'^revision\s*=\s*["\']([^"\']+)["\']', re.MULTILINE)
DOWN_RE = re.compile(r'^down_revision\s*=\s*(.+)$', re.MULTILINE)
CREATE_TABLE_RE = re.compile(r'op\.create_table\(\s*["\']([^"\']+)["\']')


def _extract_scalar(raw: str) -> str | None:
    raw = raw.strip()
    if raw in {"None", ""}:
        return None
    if raw.startswith(("'", '"')) and raw.endswith(("'", '"')):
        return raw[1:-1]
    return None


def mapped_tables() -> set[str]:
    from replenish.database import Base
    import replenish.models  # noqa: F401

    return set(Base.metadata.tables)


def check(versions_dir: Path, expected_tables: set[str]) -> tuple[list[str], dict]:
    files = sorted(versions_dir.glob("*.py"))
    revisions: dict[str, Path] = {}
    down_map: dict[str, str | None] = {}
    created: set[str] = set()
    errors: list[str] = []

    for file in files:
        text = file.read_text(encoding="utf-8")
        rev_m = REVISION_RE.search(text)
        if not rev_m:
            errors.append(f"{file.name}: missing revision")
            continue

        rev = rev_m.group(1)
        if rev in revisions:
            errors.append(f"Duplicate revision id {rev} in {file.name} and {revisions[rev].name}")
        revisions[rev] = file

        down_m = DOWN_RE.search(text)
        down_map[rev] = _extract_scalar(down_m.group(1)) if down_m else None
        created.update(CREATE_TABLE_RE.findall(text))

    for rev, down in down_map.items():
        if down is not None and down not in revisions:
            errors.append(f"Revision {rev} references missing down_revision {down}")

    referenced = {d for d in down_map.values() if d is not None}
    heads = [r for r in revisions if r not in referenced]
    roots = [r for r, d in down_map.items() if d is None]
    if len(heads) != 1:
        errors.append(f"Expected exactly one head revision, found {len(heads)} ({heads})")
    if len(roots) != 1:
        errors.append(f"Expected exactly one root revision, found {len(roots)} ({roots})")

    missing = sorted(expected_tables - created)
    if missing:
        errors.append(f"Mapped tables without a migration: {', '.join(missing)}")

    summary = {"files": len(files), "revisions": len(revisions), "heads": heads, "tables": len(created)}
    return errors, summary


def main() -> int:
    errors, summary = check(BACKEND_DIR / "alembic" / "versions", mapped_tables())

    print("Migration chain check")
    print(f"- files: {summary['files']}")
    print(f"- revisions: {summary['revisions']}")
    print(f"- tables created: {summary['tables']}")

    if errors:
        for err in errors:
            print(f"[FAIL] {err}")
        return 1

    print(f"[PASS] single head: {summary['heads'][0]}")
    print("[PASS] revision/down_revision integrity checks")
    print("[PASS] every mapped table has a migration")
    return 0


if __name__ == "__main__":
    sys.exit(main())
