#!/usr/bin/env python3
"""Delete a report and its photo. Only the submitter may delete it.

Usage:
    python scripts/delete_report.py --id 3f2a... --submitter user-1
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lost_trace.backends.factory import create_service
from lost_trace.config import Config
from lost_trace.errors import LostTraceError


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Delete a report")
    parser.add_argument("--id", type=str, required=True, help="Report id")
    parser.add_argument(
        "--submitter", type=str, required=True, help="Id of the submitting party"
    )
    return parser.parse_args()


def main() -> int:
    """Main function."""
    args = parse_args()

    # Deleting never needs the face models
    service = create_service(Config.from_env(), eager_load=False)

    try:
        service.delete_report(args.id, args.submitter)
    except LostTraceError as e:
        print(f"Error ({e.status_code}): {e.public_message}")
        return 1

    print(f"Deleted report {args.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
