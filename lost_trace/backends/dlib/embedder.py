"""Dlib signature extractor using the face_recognition library.

This module turns an uploaded photo into a 128-dimensional face signature
using dlib's ResNet-34 model via the face_recognition library.

Importing face_recognition loads the dlib models, so the import happens in
``DlibSignatureExtractor.load()`` under a lock: the first call does the work,
concurrent first calls wait for it, later calls return immediately.
"""

from __future__ import annotations

import threading
from typing import Literal, Optional

import cv2
import numpy as np

from lost_trace.backends.dlib.detector import DlibFaceLocator
from lost_trace.errors import ExtractionFailure
from lost_trace.logging_config import get_logger
from lost_trace.signature import SIGNATURE_DIM, as_signature

logger = get_logger(__name__)


def _import_face_recognition():
    """Import face_recognition (loads dlib detector and encoder models)."""
    import face_recognition

    return face_recognition


class DlibSignatureExtractor:
    """Extract one 128-D face signature per photo.

    The largest face in the photo is encoded. Signatures are the raw dlib
    descriptors, not L2-normalized, because the 0.6 Euclidean match
    threshold is defined on raw descriptors.

    Attributes:
        model: Landmark model used for encoding ("large" or "small")
        num_jitters: Number of times to re-sample the face when encoding
        detector_model: Face detection model ("hog" or "cnn")
        upsample: Times to upsample the photo before detection

    Example:
        >>> extractor = DlibSignatureExtractor(model="large")
        >>> extractor.load()  # optional, at startup
        >>> signature = extractor.extract(photo_bytes)
        >>> signature is None or signature.shape == (128,)
        True
    """

    def __init__(
        self,
        model: Literal["large", "small"] = "large",
        num_jitters: int = 1,
        detector_model: Literal["hog", "cnn"] = "hog",
        upsample: int = 1,
        api=None,
    ):
        """Initialize dlib extractor.

        Args:
            model: Landmark model to use.
                   "large" - 68 points, more accurate (default)
                   "small" - 5 points, faster
            num_jitters: Re-samples per face. Higher is more accurate but slower.
            detector_model: "hog" (CPU-friendly) or "cnn" (more accurate)
            upsample: Times to upsample before detection (finds smaller faces)
            api: Already-loaded face_recognition compatible module. When None,
                 face_recognition is imported on first use.
        """
        if model not in ("large", "small"):
            raise ValueError(f"model must be 'large' or 'small', got '{model}'")
        if detector_model not in ("hog", "cnn"):
            raise ValueError(
                f"detector_model must be 'hog' or 'cnn', got '{detector_model}'"
            )
        if num_jitters < 1:
            raise ValueError(f"num_jitters must be >= 1, got {num_jitters}")

        self.model = model
        self.num_jitters = num_jitters
        self.detector_model = detector_model
        self.upsample = upsample
        self.embedding_dim = SIGNATURE_DIM

        self._api_override = api
        self._api = None
        self._locator: Optional[DlibFaceLocator] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._api is not None

    def load(self):
        """Load the dlib models once.

        Safe to call from several threads at the same time; only the first
        caller imports the models.

        Returns:
            The loaded face_recognition module.

        Raises:
            ExtractionFailure: If the models cannot be loaded.
        """
        if self._api is not None:
            return self._api

        with self._lock:
            if self._api is None:
                logger.info(
                    f"Loading dlib models (model={self.model}, "
                    f"detector={self.detector_model})"
                )
                try:
                    api = self._api_override or _import_face_recognition()
                except Exception as e:
                    logger.error(f"Failed to load face recognition models: {e}")
                    raise ExtractionFailure(
                        f"Failed to load face recognition models: {e}"
                    ) from e

                self._locator = DlibFaceLocator(
                    api, model=self.detector_model, upsample=self.upsample
                )
                self._api = api
                logger.info("Face recognition models loaded successfully")

        return self._api

    @staticmethod
    def decode(image_bytes: bytes) -> np.ndarray:
        """Decode an encoded photo (jpg/png/...) to an RGB array.

        Raises:
            ExtractionFailure: If the bytes are empty or not a readable image.
        """
        if not image_bytes:
            raise ExtractionFailure("Empty image provided")

        buffer = np.frombuffer(image_bytes, dtype=np.uint8)
        image_bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image_bgr is None or image_bgr.size == 0:
            raise ExtractionFailure("Could not decode image")

        # face_recognition expects RGB
        return cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)

    def extract(self, image_bytes: bytes) -> Optional[np.ndarray]:
        """Extract the signature of the largest face in a photo.

        Args:
            image_bytes: Encoded image file content.

        Returns:
            Signature of shape [128], dtype float64, or None if no face was
            found or the descriptor was malformed.

        Raises:
            ExtractionFailure: If the image is corrupt or the model fails.

        Example:
            >>> signature = extractor.extract(open("photo.jpg", "rb").read())
            >>> if signature is None:
            ...     print("No face found")
        """
        api = self.load()
        image_rgb = self.decode(image_bytes)

        try:
            boxes = self._locator.locate(image_rgb)
            if not boxes:
                logger.info("No face detected in the provided image")
                return None

            encodings = api.face_encodings(
                image_rgb,
                known_face_locations=[boxes[0].to_css()],
                num_jitters=self.num_jitters,
                model=self.model,
            )
        except Exception as e:
            logger.error(f"Error extracting face signature: {e}")
            raise ExtractionFailure(f"Signature extraction failed: {e}") from e

        if len(encodings) == 0:
            logger.info("Face located but no encoding could be computed")
            return None

        signature = as_signature(encodings[0])
        if signature is None:
            length = len(encodings[0]) if hasattr(encodings[0], "__len__") else "?"
            logger.error(
                f"Invalid descriptor (length {length}, expected {self.embedding_dim})"
            )
            return None

        return signature

    def __repr__(self) -> str:
        return (
            f"DlibSignatureExtractor(model='{self.model}', "
            f"num_jitters={self.num_jitters}, detector='{self.detector_model}', "
            f"loaded={self.is_loaded})"
        )
