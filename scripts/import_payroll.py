#!/usr/bin/env python3
"""
Seed or update payroll.json from a CSV export.

The CSV needs `payrollNumber` and `role` columns (header spelling is
forgiving: "Payroll Number", "payroll_no" and "Role" all work). Rows are merged
into the existing payroll file by payroll number unless --replace is given.

Optional:
  - FARM_RECORDS_DATA_DIR       (default data directory)
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd
from dotenv import load_dotenv

# Ensure we can import the app package when run from a checkout
PROJECT_DIR = Path(__file__).resolve().parents[1]
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from farm_records.config import PAYROLL_FILE  # noqa: E402
from farm_records.json_store import JsonFileStore  # noqa: E402
from farm_records.models import Role  # noqa: E402
from farm_records.spreadsheets import normalize_header  # noqa: E402

PAYROLL_COLUMNS = {
    "payrollnumber": "payrollNumber",
    "payrollno": "payrollNumber",
    "payroll": "payrollNumber",
    "role": "role",
}


def read_payroll_csv(csv_path: Path) -> Tuple[List[Dict[str, str]], List[str]]:
    """Parse the CSV into payroll records; returns (records, problems)."""
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    df = df.rename(columns=lambda c: PAYROLL_COLUMNS.get(normalize_header(c), c))
    missing = [c for c in ("payrollNumber", "role") if c not in df.columns]
    if missing:
        raise SystemExit(f"CSV is missing column(s): {', '.join(missing)}")

    records: List[Dict[str, str]] = []
    problems: List[str] = []
    for line_no, row in enumerate(df.to_dict(orient="records"), start=2):
        number = str(row.get("payrollNumber", "")).strip()
        role = Role.parse(str(row.get("role", "")).strip())
        if not number:
            problems.append(f"line {line_no}: empty payroll number")
            continue
        if role is None:
            problems.append(f"line {line_no}: unknown role '{row.get('role', '')}'")
            continue
        records.append({"payrollNumber": number, "role": role.value})
    return records, problems


def merge_payroll(existing: List[Dict[str, Any]], incoming: List[Dict[str, str]]) -> Tuple[List[Dict[str, Any]], int, int]:
    """Merge by payroll number; later rows win. Returns (records, added, updated)."""
    merged = [dict(r) for r in existing if isinstance(r, dict)]
    index = {str(r.get("payrollNumber", "")).strip(): i for i, r in enumerate(merged)}
    added = updated = 0
    for record in incoming:
        pos = index.get(record["payrollNumber"])
        if pos is None:
            index[record["payrollNumber"]] = len(merged)
            merged.append(dict(record))
            added += 1
        elif merged[pos].get("role") != record["role"]:
            merged[pos] = {**merged[pos], **record}
            updated += 1
    return merged, added, updated


def main(argv: List[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Import payroll numbers and roles into payroll.json.")
    parser.add_argument("--csv", required=True, help="CSV file with payrollNumber and role columns")
    parser.add_argument("--data-dir", default="", help="Override data directory (defaults to FARM_RECORDS_DATA_DIR or ./data)")
    parser.add_argument("--replace", action="store_true", help="Replace payroll.json instead of merging into it")
    parser.add_argument("--dry-run", action="store_true", help="Parse and report counts but do not write")
    args = parser.parse_args(argv)

    csv_path = Path(args.csv)
    if not csv_path.exists():
        raise SystemExit(f"CSV file not found: {csv_path}")
    data_dir = Path(args.data_dir or os.environ.get("FARM_RECORDS_DATA_DIR") or PROJECT_DIR / "data")

    records, problems = read_payroll_csv(csv_path)
    for p in problems:
        print(f"[payroll] Skipped {p}")
    print(f"[payroll] Parsed {len(records)} record(s) from {csv_path}")

    store = JsonFileStore(data_dir / PAYROLL_FILE)
    existing = [] if args.replace else store.read()
    merged, added, updated = merge_payroll(existing, records)
    print(f"[payroll] {added} added, {updated} updated, {len(merged)} total")

    if args.dry_run:
        print("[payroll] Dry run; not writing payroll.json.")
        return 0

    store.write(merged)
    print(f"[payroll] Wrote {store.path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
