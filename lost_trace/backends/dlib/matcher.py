"""Euclidean-distance matching of a probe signature against a gallery.

This is the same comparison face_recognition.face_distance performs
(``np.linalg.norm(known - probe, axis=1)``), done directly with numpy in
float64 so that ranking stays a pure function that never loads a model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from lost_trace.config import DEFAULT_MATCH_THRESHOLD
from lost_trace.logging_config import get_logger
from lost_trace.signature import SIGNATURE_DIM, as_signature

logger = get_logger(__name__)


@dataclass(frozen=True)
class Match:
    """A gallery entry within threshold of the probe.

    Attributes:
        id: Gallery entry id
        distance: Euclidean distance to the probe (lower = more similar)
    """

    id: str
    distance: float

    @property
    def confidence(self) -> float:
        """Presentational percentage, (1 - distance) * 100. Not used for ranking."""
        return (1.0 - self.distance) * 100.0

    @property
    def confidence_label(self) -> str:
        return f"{self.confidence:.2f}%"


def rank(
    probe: Any,
    gallery: Iterable[Tuple[str, Any]],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> List[Match]:
    """Rank gallery entries by distance to the probe.

    Algorithm:
    1. Skip entries whose signature is not 128 finite numbers
    2. Compute the Euclidean distance of every remaining entry
    3. Keep entries with distance <= threshold (NaN distances are dropped)
    4. Sort ascending by distance; ties keep gallery order

    Args:
        probe: Probe signature, 128 numbers.
        gallery: (id, signature) pairs in scan order. Signatures may be
                 None or malformed; such entries are not comparable.
        threshold: Maximum Euclidean distance accepted as a match.

    Returns:
        Matches, closest first. An empty list means "no match"; it is also
        returned (and an error logged) when the probe itself is not a valid
        128-D signature.

    Example:
        >>> matches = rank(signature, [("a", sig_a), ("b", sig_b)])
        >>> if matches:
        ...     print(f"Best match: {matches[0].id} ({matches[0].confidence_label})")
    """
    probe_vec = as_signature(probe)
    if probe_vec is None:
        logger.error(
            f"Invalid probe signature: {_describe(probe)} "
            f"(expected {SIGNATURE_DIM} finite values)"
        )
        return []

    ids: List[str] = []
    vectors: List[np.ndarray] = []

    for entry_id, values in gallery:
        vec = as_signature(values)
        if vec is None:
            logger.debug(
                f"Skipping gallery entry {entry_id}: {_describe(values)} "
                f"(expected {SIGNATURE_DIM} finite values)"
            )
            continue
        ids.append(entry_id)
        vectors.append(vec)

    if not vectors:
        return []

    distances = np.linalg.norm(np.stack(vectors) - probe_vec, axis=1)

    # NaN compares False, so it never passes the threshold
    keep = np.flatnonzero(distances <= threshold)
    order = keep[np.argsort(distances[keep], kind="stable")]

    return [Match(id=ids[i], distance=float(distances[i])) for i in order]


def best_match(
    probe: Any,
    gallery: Iterable[Tuple[str, Any]],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> Optional[Match]:
    """Return the closest match, or None if nothing is within threshold."""
    matches = rank(probe, gallery, threshold)
    return matches[0] if matches else None


def _describe(values: Any) -> str:
    if values is None:
        return "no signature"
    try:
        return f"{len(values)} elements"
    except TypeError:
        return type(values).__name__


class DlibMatcher:
    """Matcher holding a distance tolerance.

    Attributes:
        tolerance: Distance threshold for face matching (lower = stricter)

    Example:
        >>> matcher = DlibMatcher(tolerance=0.6)
        >>> matches = matcher.search(probe, gallery)
    """

    def __init__(self, tolerance: float = DEFAULT_MATCH_THRESHOLD):
        """Initialize dlib matcher.

        Args:
            tolerance: Distance threshold for considering a match.
                      Default 0.6 is standard for the face_recognition library.
                      Lower values = stricter matching.

        Raises:
            ValueError: If tolerance is not positive.
        """
        if not tolerance > 0.0:
            raise ValueError(f"tolerance must be > 0, got {tolerance}")

        self.tolerance = tolerance

    def search(
        self, probe: Any, gallery: Iterable[Tuple[str, Any]]
    ) -> List[Match]:
        """Rank the gallery against the probe with this matcher's tolerance."""
        matches = rank(probe, gallery, self.tolerance)
        logger.debug(
            f"Search results (tolerance={self.tolerance}): "
            f"{[(m.id, round(m.distance, 4)) for m in matches[:5]]}"
        )
        return matches

    def __repr__(self) -> str:
        return f"DlibMatcher(tolerance={self.tolerance})"
