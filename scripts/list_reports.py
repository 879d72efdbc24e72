#!/usr/bin/env python3
"""List stored reports, newest first.

Usage:
    python scripts/list_reports.py
    python scripts/list_reports.py --submitter user-1
    python scripts/list_reports.py --id 3f2a...
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lost_trace.backends.factory import create_store
from lost_trace.config import Config
from lost_trace.errors import ReportNotFound


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="List stored reports",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--submitter", type=str, default=None, help="Only reports of this submitter"
    )
    parser.add_argument("--id", type=str, default=None, help="Show a single report")
    return parser.parse_args()


def main() -> int:
    """Main function."""
    args = parse_args()
    store = create_store(Config.from_env())

    if args.id:
        try:
            reports = [store.get(args.id)]
        except ReportNotFound:
            print(f"Report not found: {args.id}")
            return 1
    elif args.submitter:
        reports = store.list_by_submitter(args.submitter)
    else:
        reports = store.list_all()

    if not reports:
        print("No reports")
        return 0

    for report in reports:
        link = f" -> {report.matched_with_id}" if report.matched_with_id else ""
        face = "" if report.signature_present else " [no signature]"
        print(
            f"{report.submitted_at:%Y-%m-%d %H:%M:%S}  {report.id}  "
            f"{report.status_name:<7}  {report.person_name} ({report.age}){link}{face}"
        )

    print(f"\n{len(reports)} report(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
