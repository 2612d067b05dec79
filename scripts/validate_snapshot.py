#!/usr/bin/env python3
"""
Validate a persisted submission history snapshot against the result schema
and the lifecycle rules.

Usage:
  python scripts/validate_snapshot.py --snapshot ~/.opencspaper/opencspaper_history_v1.json
Exit code 0 on success; non-zero if any record fails.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from cspcore.schemas import validate_result_record
from cspcore.types import ReviewStatus


def load_snapshot(path: Path) -> List[Dict[str, Any]]:
    with path.open(encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise SystemExit("snapshot must be a JSON list of submissions")
    return data


def extra_checks(obj: Dict[str, Any]) -> list[str]:
    errs: list[str] = []
    try:
        status = ReviewStatus(obj.get("status"))
    except ValueError:
        return [f"unknown status {obj.get('status')!r}"]

    result = obj.get("result") or {}
    if status is ReviewStatus.DESK_REJECTED and result.get("is_desk_reject") is not True:
        errs.append("desk_rejected record without is_desk_reject=true")
    if status is ReviewStatus.COMPLETED:
        for name in ("final_decision", "ratings"):
            if name not in result:
                errs.append(f"completed record missing '{name}'")
    if status is ReviewStatus.FAILED and "ratings" in result:
        errs.append("failed record carries ratings")
    if obj.get("rebuttal_chat") and status is not ReviewStatus.COMPLETED:
        errs.append("rebuttal messages on a record that is not completed")
    return errs


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--snapshot", type=Path, required=True)
    args = ap.parse_args()

    total = 0
    failures = 0
    for i, obj in enumerate(load_snapshot(args.snapshot), start=1):
        total += 1
        errors = validate_result_record(obj["result"]) if obj.get("result") else []
        xerrors = extra_checks(obj)
        if errors or xerrors:
            failures += 1
            print(f"❌ record {i} ({obj.get('id', '?')}):")
            for e in errors:
                print(f"  - schema: {e}")
            for xe in xerrors:
                print(f"  - rule: {xe}")

    if failures:
        print(f"\n{failures}/{total} records failed.")
        sys.exit(1)
    else:
        print(f"✅ All {total} records passed.")
        sys.exit(0)


if __name__ == "__main__":
    main()
