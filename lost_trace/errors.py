"""Error taxonomy for report submission and correlation.

Each error carries an HTTP-style ``status_code`` and a ``public_message``
that is safe to show to the submitting party. The exception message itself
may contain internals and is meant for logs only.
"""

from __future__ import annotations

from typing import Optional


class LostTraceError(Exception):
    """Base class for all errors raised by this package."""

    status_code = 500
    public_message = "Internal error"


class ValidationError(LostTraceError, ValueError):
    """Malformed or missing descriptive fields or upload."""

    status_code = 400

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return str(self)


class NoFaceDetected(LostTraceError):
    """The photo contains no usable face; no report is created."""

    status_code = 422
    public_message = "No face detected in the provided image"


class ExtractionFailure(LostTraceError):
    """The signature extractor failed for a reason other than 'no face'."""

    public_message = "Failed to process the provided image"


class PersistenceFailure(LostTraceError):
    """A report could not be written; the submission did not happen."""

    public_message = "Failed to create report"


class LinkingFailure(LostTraceError):
    """Match search or status update failed after the report was stored."""

    public_message = "Report created, but matching did not complete"

    def __init__(self, message: str, report_id: Optional[str] = None):
        super().__init__(message)
        self.report_id = report_id


class ReportNotFound(LostTraceError):
    status_code = 404
    public_message = "Report not found"


class NotAllowed(LostTraceError):
    status_code = 403
    public_message = "Not allowed to delete this report"
