"""Face signature helpers.

A signature is a 128-D dlib face descriptor held as a float64 numpy array.
Anything that is not exactly 128 finite numbers is treated as absent.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import numpy as np

from lost_trace.logging_config import get_logger

logger = get_logger(__name__)

SIGNATURE_DIM = 128


def as_signature(values: Any) -> Optional[np.ndarray]:
    """Coerce a sequence into a signature, or None if it is not comparable.

    Args:
        values: List, tuple or array of numbers (or None).

    Returns:
        Array of shape [128], dtype float64, or None when the input is
        missing, has the wrong length, is not numeric or holds NaN/inf.

    Example:
        >>> as_signature([0.0] * 128).shape
        (128,)
        >>> as_signature([0.0] * 127) is None
        True
    """
    if values is None:
        return None

    try:
        raw = np.asarray(values)
    except (TypeError, ValueError):
        return None

    # Numeric strings, booleans and objects are not descriptors
    if raw.dtype.kind not in "fiu":
        return None

    arr = raw.astype(np.float64)

    if arr.ndim == 2 and arr.shape[0] == 1:
        arr = arr.flatten()

    if arr.shape != (SIGNATURE_DIM,):
        return None

    if not np.all(np.isfinite(arr)):
        return None

    return arr


def signature_to_json(signature: np.ndarray) -> str:
    """Serialize a signature for storage as a JSON array of floats."""
    return json.dumps([float(v) for v in signature])


def signature_from_json(text: Optional[str]) -> Optional[np.ndarray]:
    """Decode a stored signature.

    Malformed JSON or an array of the wrong length decodes to None so that
    legacy or damaged rows are "not comparable" rather than fatal.
    """
    if not text:
        return None

    try:
        values = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning(f"Stored signature is not valid JSON: {e}")
        return None

    return as_signature(values)
