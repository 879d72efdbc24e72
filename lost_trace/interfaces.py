"""Core interfaces and data structures for report correlation.

This module defines the abstract interfaces (Protocols) that let the report
service work with swappable extractors, gallery stores and image stores.

Following the Dependency Inversion Principle, the service depends on these
abstractions rather than on dlib, SQLModel or the filesystem directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

from lost_trace.models import GalleryEntry, Report, ReportStatus, ReportView, StoredImage


@dataclass
class BBox:
    """Bounding box for a detected face.

    Attributes:
        x1: Left edge x-coordinate (pixels)
        y1: Top edge y-coordinate (pixels)
        x2: Right edge x-coordinate (pixels)
        y2: Bottom edge y-coordinate (pixels)
    """

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_css(self) -> Tuple[int, int, int, int]:
        """Return (top, right, bottom, left), the order dlib helpers expect."""
        return (self.y1, self.x2, self.y2, self.x1)


@runtime_checkable
class SignatureExtractor(Protocol):
    """Protocol for turning an uploaded photo into a face signature.

    Implementations return None for "no face" (or a malformed descriptor)
    and raise ExtractionFailure for anything else, so callers can tell
    "no match possible" apart from "system failure".
    """

    def extract(self, image_bytes: bytes) -> Optional[np.ndarray]:
        """Extract one 128-D signature from encoded image bytes.

        Returns:
            Signature array of shape [128], or None if no face was found.

        Raises:
            ExtractionFailure: If the image is corrupt or the model fails.
        """
        ...


@runtime_checkable
class GalleryStore(Protocol):
    """Protocol for the durable collection of reports."""

    def insert(self, report: Report) -> str:
        """Persist a new report and return its id (PersistenceFailure on error)."""
        ...

    def scan_excluding(self, report_id: str) -> Sequence[GalleryEntry]:
        """Return every stored report except report_id, in scan order."""
        ...

    def update_status_and_link(
        self, report_id: str, status: ReportStatus, matched_with_id: Optional[str]
    ) -> None:
        """Set status and match link of one report."""
        ...

    def get(self, report_id: str) -> ReportView:
        """Fetch one report (ReportNotFound if missing)."""
        ...

    def list_all(self) -> List[ReportView]:
        ...

    def list_by_submitter(self, submitter_id: str) -> List[ReportView]:
        ...

    def get_image_public_id(self, report_id: str) -> Optional[str]:
        ...

    def delete(self, report_id: str) -> None:
        ...


@runtime_checkable
class ImageStore(Protocol):
    """Protocol for the blob store that holds report photos."""

    def save(self, image_bytes: bytes, filename: str) -> StoredImage:
        ...

    def delete(self, public_id: str) -> bool:
        ...
