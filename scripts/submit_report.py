#!/usr/bin/env python3
"""Submit a missing/found-person report from a photo file.

This script stores the photo, extracts the face signature, saves the report
and prints the closest earlier reports.

Usage:
    python scripts/submit_report.py --image photo.jpg --name "Ana Lopez" --age 9 --submitter user-1
    python scripts/submit_report.py --image photo.jpg --name Ana --age 9 --submitter user-1 --threshold 0.5 --json
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lost_trace.backends.factory import create_service
from lost_trace.config import Config
from lost_trace.errors import LostTraceError
from lost_trace.logging_config import get_logger

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Submit a report and match its face against earlier reports",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--image", type=str, required=True, help="Path to the photo")
    parser.add_argument("--name", type=str, required=True, help="Person's name")
    parser.add_argument("--age", type=str, required=True, help="Person's age")
    parser.add_argument(
        "--gender",
        type=str,
        default=None,
        choices=["male", "female", "other"],
        help="Person's gender",
    )
    parser.add_argument("--description", type=str, default=None, help="Free text")
    parser.add_argument(
        "--submitter", type=str, required=True, help="Id of the submitting party"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Match threshold (overrides .env MATCH_THRESHOLD value)",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    return parser.parse_args()


def print_section(title: str) -> None:
    """Print a section divider."""
    print()
    print("=" * 70)
    print(f"  {title}")
    print("=" * 70)


def main() -> int:
    """Main function."""
    args = parse_args()

    image_path = Path(args.image)
    if not image_path.exists():
        logger.error(f"Image not found: {image_path}")
        print(f"Error: Image file not found: {image_path}")
        return 1

    config = Config.from_env()
    if args.threshold is not None:
        config = replace(config, match_threshold=args.threshold)

    service = create_service(config)

    fields = {
        "person_name": args.name,
        "age": args.age,
        "gender": args.gender,
        "description": args.description,
    }

    try:
        result = service.submit_upload(
            fields,
            image_path.read_bytes(),
            filename=image_path.name,
            submitter_id=args.submitter,
        )
    except LostTraceError as e:
        print(f"Error ({e.status_code}): {e.public_message}")
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print_section("Report")
    report = result.report
    print(f"Id:          {report.id}")
    print(f"Name:        {report.person_name} ({report.age})")
    print(f"Status:      {report.status_name}")
    print(f"Matched with: {report.matched_with_id or '-'}")

    if result.linking_error is not None:
        print(f"Warning:     {result.linking_error.public_message}")

    print_section("Matches")
    if not result.matches:
        print("No earlier report matches this face")
    else:
        for i, match in enumerate(result.matches, 1):
            print(
                f"{i}. {match.report.person_name} ({match.report.age}) "
                f"id={match.id} distance={match.distance:.4f} "
                f"confidence={match.confidence_label}"
            )

    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
