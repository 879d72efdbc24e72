"""High-level services for report submission.

This package contains the service that orchestrates extraction,
persistence, matching and linking of reports.
"""

from lost_trace.services.reporting import EnrichedMatch, ReportService, SubmissionResult

__all__ = [
    "EnrichedMatch",
    "ReportService",
    "SubmissionResult",
]
