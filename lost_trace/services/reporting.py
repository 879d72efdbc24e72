"""Report service: submission, face correlation and report management.

This module provides the service that turns a submitted photo into a stored
report and links it to the closest previously submitted face.

Submission workflow:
1. Validate descriptive fields and upload size (cheap checks first)
2. Extract the face signature (no face -> NoFaceDetected, nothing stored)
3. Persist the report as OPEN (the only write the submission depends on)
4. Scan every other report and rank them against the new signature
5. Link the report to the best match and mark it MATCHED

Steps 4-5 are best effort: a failure there is logged and returned as a
degraded result, the stored report stays OPEN and unlinked.
"""

from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Union

from lost_trace.backends.dlib.matcher import DlibMatcher
from lost_trace.config import DEFAULT_MATCH_THRESHOLD, DEFAULT_MAX_IMAGE_BYTES
from lost_trace.errors import (
    ExtractionFailure,
    LinkingFailure,
    NoFaceDetected,
    NotAllowed,
    PersistenceFailure,
    ReportNotFound,
    ValidationError,
)
from lost_trace.interfaces import GalleryStore, ImageStore, SignatureExtractor
from lost_trace.logging_config import get_logger
from lost_trace.models import Report, ReportFields, ReportStatus, ReportView
from lost_trace.signature import as_signature, signature_to_json

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnrichedMatch:
    """A ranked match with a snapshot of the matched report.

    Attributes:
        id: Matched report id
        distance: Euclidean distance to the submitted signature
        confidence: (1 - distance) * 100, presentational only
        report: Matched report as seen during the gallery scan
    """

    id: str
    distance: float
    confidence: float
    report: ReportView

    @property
    def confidence_label(self) -> str:
        return f"{self.confidence:.2f}%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "distance": self.distance,
            "confidence": self.confidence_label,
            "report": self.report.public_fields(),
        }


@dataclass
class SubmissionResult:
    """Outcome of a successful submission.

    Attributes:
        report: The stored report (MATCHED if it was linked)
        matches: Ranked matches, [] when nothing matched, None when the
                 search itself failed
        linking_error: Set when search or linking failed after the report
                       was stored
    """

    report: ReportView
    matches: Optional[List[EnrichedMatch]]
    linking_error: Optional[LinkingFailure] = None

    @property
    def outcome(self) -> str:
        """'degraded', 'matched' or 'open'."""
        if self.linking_error is not None:
            return "degraded"
        if self.report.status is ReportStatus.MATCHED:
            return "matched"
        return "open"

    @property
    def best_match(self) -> Optional[EnrichedMatch]:
        return self.matches[0] if self.matches else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "report": self.report.to_dict(),
            "matches": (
                [m.to_dict() for m in self.matches] if self.matches is not None else None
            ),
            "warning": (
                self.linking_error.public_message if self.linking_error else None
            ),
        }


class ReportService:
    """Service for submitting reports and correlating their faces.

    Attributes:
        extractor: Signature extractor, loaded once and shared by all calls
        store: Gallery store holding the reports
        image_store: Optional blob store for report photos
        matcher: Matcher carrying the distance threshold
        max_image_bytes: Largest accepted upload
        serialize_matching: Whether persist+search+link of concurrent
                            submissions run one at a time

    Example:
        >>> service = ReportService(extractor=extractor, store=store)
        >>> result = service.submit(
        ...     {"person_name": "Ana", "age": 9},
        ...     image_bytes=photo,
        ...     image_url="https://img.example/ana.jpg",
        ...     submitter_id="user-1",
        ... )
        >>> print(result.outcome, [m.confidence_label for m in result.matches])
    """

    def __init__(
        self,
        extractor: SignatureExtractor,
        store: GalleryStore,
        image_store: Optional[ImageStore] = None,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        serialize_matching: bool = True,
    ):
        """Initialize report service.

        Args:
            extractor: Signature extractor instance
            store: Gallery store instance
            image_store: Blob store used by submit_upload() and delete_report()
            threshold: Maximum Euclidean distance accepted as a match
            max_image_bytes: Upload size limit
            serialize_matching: Hold one lock across persist, search and link
                                so in-process submissions see each other

        Raises:
            ValueError: If threshold or max_image_bytes is not positive.
        """
        if max_image_bytes < 1:
            raise ValueError(f"max_image_bytes must be >= 1, got {max_image_bytes}")

        self.extractor = extractor
        self.store = store
        self.image_store = image_store
        self.matcher = DlibMatcher(tolerance=threshold)
        self.max_image_bytes = max_image_bytes
        self.serialize_matching = serialize_matching

        self._match_lock = (
            threading.Lock() if serialize_matching else contextlib.nullcontext()
        )

        logger.info(
            f"Initialized ReportService with threshold={threshold:.2f}, "
            f"serialize_matching={serialize_matching}"
        )

    @property
    def threshold(self) -> float:
        return self.matcher.tolerance

    def submit(
        self,
        fields: Union[ReportFields, Mapping[str, Any]],
        image_bytes: bytes,
        image_url: str,
        submitter_id: str,
        image_public_id: Optional[str] = None,
    ) -> SubmissionResult:
        """Submit a report and correlate its face with earlier reports.

        Args:
            fields: Descriptive fields (ReportFields or a mapping)
            image_bytes: Encoded photo
            image_url: Locator of the already stored photo
            submitter_id: Id of the submitting party
            image_public_id: Storage provider id used to delete the photo later

        Returns:
            SubmissionResult with the stored report and its matches.

        Raises:
            ValidationError: If fields, submitter or upload are malformed.
            NoFaceDetected: If no face was found. Nothing is stored.
            ExtractionFailure: If the photo could not be processed.
            PersistenceFailure: If the report could not be stored.
        """
        report_fields = self._validate(fields, image_bytes, image_url, submitter_id)

        signature = self._extract(image_bytes)

        row = Report(
            person_name=report_fields.person_name,
            age=report_fields.age,
            gender=report_fields.gender,
            description=report_fields.description,
            image_url=image_url,
            image_public_id=image_public_id,
            signature=signature_to_json(signature),
            status=ReportStatus.OPEN.value,
            submitted_by_id=submitter_id,
        )

        with self._match_lock:
            report = self._persist(row)
            report, matches, failure = self._correlate(report, signature)

        return SubmissionResult(report=report, matches=matches, linking_error=failure)

    def submit_upload(
        self,
        fields: Union[ReportFields, Mapping[str, Any]],
        image_bytes: bytes,
        filename: str,
        submitter_id: str,
    ) -> SubmissionResult:
        """Store the photo in the image store, then submit.

        If submit() raises, the report was not stored and the photo is
        removed again.
        """
        if self.image_store is None:
            raise RuntimeError("submit_upload() requires an image store")

        self._validate(fields, image_bytes, filename, submitter_id)
        stored = self.image_store.save(image_bytes, filename)

        try:
            return self.submit(
                fields,
                image_bytes,
                image_url=stored.url,
                submitter_id=submitter_id,
                image_public_id=stored.public_id,
            )
        except Exception:
            logger.info(f"Submission failed, releasing image {stored.public_id}")
            self.image_store.delete(stored.public_id)
            raise

    def _validate(
        self,
        fields: Union[ReportFields, Mapping[str, Any]],
        image_bytes: bytes,
        image_url: str,
        submitter_id: str,
    ) -> ReportFields:
        if isinstance(fields, ReportFields):
            report_fields = fields
        elif isinstance(fields, Mapping):
            report_fields = ReportFields.from_mapping(fields)
        else:
            raise ValidationError("fields must be ReportFields or a mapping")

        if not submitter_id:
            raise ValidationError("submitter_id is required")

        if not image_url:
            raise ValidationError("Image upload failed")

        if not image_bytes:
            raise ValidationError("Image upload is empty")

        if len(image_bytes) > self.max_image_bytes:
            raise ValidationError(
                f"Image is too large ({len(image_bytes)} bytes, "
                f"limit {self.max_image_bytes})"
            )

        return report_fields

    def _extract(self, image_bytes: bytes):
        try:
            signature = self.extractor.extract(image_bytes)
        except ExtractionFailure as e:
            logger.error(f"Signature extraction failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Signature extraction failed: {e}", exc_info=True)
            raise ExtractionFailure(f"Signature extraction failed: {e}") from e

        if signature is None:
            logger.info("Submission rejected: no face detected")
            raise NoFaceDetected("No face detected in the provided image")

        valid = as_signature(signature)
        if valid is None:
            logger.error("Extractor returned a malformed signature, treating as no face")
            raise NoFaceDetected("No usable face signature")

        return valid

    def _persist(self, row: Report) -> ReportView:
        try:
            report_id = self.store.insert(row)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.error(f"Failed to store report: {e}", exc_info=True)
            raise PersistenceFailure(f"Failed to store report: {e}") from e

        report = replace(ReportView.from_row(row), id=report_id)
        logger.info(f"Stored report {report_id} for submitter {row.submitted_by_id}")
        return report

    def _correlate(self, report: ReportView, signature):
        """Search the gallery and link the report to its best match.

        Returns:
            Tuple of (report, matches, linking_error).
        """
        try:
            gallery = self.store.scan_excluding(report.id)
            ranked = self.matcher.search(
                signature, [(entry.id, entry.signature) for entry in gallery]
            )
        except Exception as e:
            failure = LinkingFailure(
                f"Match search failed for report {report.id}: {e}", report.id
            )
            logger.error(str(failure), exc_info=True)
            return report, None, failure

        views = {entry.id: entry.view for entry in gallery}
        matches = [
            EnrichedMatch(
                id=m.id,
                distance=m.distance,
                confidence=m.confidence,
                report=views[m.id],
            )
            for m in ranked
        ]

        if not matches:
            logger.info(
                f"Report {report.id}: no match among {len(gallery)} stored reports"
            )
            return report, matches, None

        best = matches[0]
        try:
            self.store.update_status_and_link(report.id, ReportStatus.MATCHED, best.id)
        except Exception as e:
            failure = LinkingFailure(
                f"Failed to link report {report.id} to {best.id}: {e}", report.id
            )
            logger.error(str(failure), exc_info=True)
            return report, matches, failure

        logger.info(
            f"Report {report.id} matched {best.id} "
            f"(distance={best.distance:.4f}, confidence={best.confidence_label}, "
            f"candidates={len(matches)})"
        )
        report = replace(report, status=ReportStatus.MATCHED, matched_with_id=best.id)
        return report, matches, None

    def get_report(self, report_id: str) -> ReportView:
        return self.store.get(report_id)

    def list_reports(self) -> List[ReportView]:
        """All reports, newest first."""
        return self.store.list_all()

    def list_user_reports(self, submitter_id: str) -> List[ReportView]:
        """Reports of one submitter, newest first."""
        return self.store.list_by_submitter(submitter_id)

    def delete_report(self, report_id: str, submitter_id: str) -> None:
        """Delete a report and release its photo.

        Only the submitter may delete a report. Unknown ids are reported the
        same way as foreign ones. Reports that link to the deleted one keep
        their link.

        Raises:
            NotAllowed: If the report does not exist or belongs to someone else.
        """
        try:
            report = self.store.get(report_id)
        except ReportNotFound:
            raise NotAllowed(f"Report {report_id} not found") from None

        if report.submitted_by_id != submitter_id:
            logger.warning(
                f"Submitter {submitter_id} may not delete report {report_id}"
            )
            raise NotAllowed(f"Report {report_id} belongs to another submitter")

        public_id = self.store.get_image_public_id(report_id)
        if public_id and self.image_store is not None:
            self.image_store.delete(public_id)

        # Not while a submission is between scan and link
        with self._match_lock:
            self.store.delete(report_id)
        logger.info(f"Deleted report {report_id}")

    def __repr__(self) -> str:
        return (
            f"ReportService(threshold={self.threshold:.2f}, "
            f"store={self.store}, extractor={self.extractor})"
        )
