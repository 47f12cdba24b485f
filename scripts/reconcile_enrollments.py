"""Repair drift between student_progress and enrollments.

For each selected student, recreates whichever of the two rows is
missing, resyncs enrollments.progress from student_progress, and
deletes pending requests for pairs that are already enrolled.

Run with:
    DATABASE_URL=postgresql+asyncpg://... python scripts/reconcile_enrollments.py --all
    python scripts/reconcile_enrollments.py --student-id 42
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from enrollment_service.core.config import SETTINGS
from enrollment_service.core.logging import setup_logging
from enrollment_service.db import engine as db
from enrollment_service.operations.executor import OperationResult
from enrollment_service.services.bootstrap import build_data_manager
from enrollment_service.services.data_manager import (
    DataManager,
    ReconciliationReport,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--student-id", type=int, help="reconcile one student")
    target.add_argument(
        "--all", action="store_true", help="reconcile every enrolled student"
    )
    return parser.parse_args(argv)


def _print_summary(results: list[OperationResult[ReconciliationReport]]) -> int:
    failures = 0
    changed = 0
    print(
        f"{'student':>8}  {'courses':>7}  {'+progress':>9}  {'+enroll':>7}  "
        f"{'resync':>6}  {'stale':>5}"
    )
    print("─" * 56)
    for result in results:
        report = result.data
        if not result.success or report is None:
            failures += 1
            message = result.error.message if result.error else "no report"
            print(f"  FAILED ({result.operation_id}): {message}")
            continue
        changed += report.changed
        print(
            f"{report.student_id:>8}  {report.courses_checked:>7}  "
            f"{report.progress_rows_created:>9}  {report.enrollment_rows_created:>7}  "
            f"{report.enrollments_resynced:>6}  {report.stale_requests_removed:>5}"
        )
    print("─" * 56)
    print(f"{len(results)} student(s), {changed} repaired, {failures} failed")
    return 1 if failures else 0


async def _run(manager: DataManager, args: argparse.Namespace) -> int:
    async with db.lifespan_db():
        if args.all:
            results = await manager.reconcile_all()
        else:
            results = [await manager.reconcile_student(args.student_id)]
    return _print_summary(results)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    if db.engine is None:
        print("DATABASE_URL is not set; nothing to reconcile", file=sys.stderr)
        return 2
    return asyncio.run(_run(build_data_manager(), args))


if __name__ == "__main__":
    sys.exit(main())
