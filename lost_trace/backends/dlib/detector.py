"""Dlib face locator using the face_recognition library.

Finds faces on a decoded RGB photo with dlib's HOG or CNN models. The
face_recognition module is passed in by the extractor once it has been
loaded, so importing this module never loads dlib models.
"""

from __future__ import annotations

from typing import List, Literal

import numpy as np

from lost_trace.interfaces import BBox
from lost_trace.logging_config import get_logger

logger = get_logger(__name__)


class DlibFaceLocator:
    """Face locator using dlib via the face_recognition library.

    Supports two detection models:
    - HOG: Faster, suitable for CPU, less accurate
    - CNN: More accurate, requires GPU for reasonable speed

    Attributes:
        api: Loaded face_recognition module
        model: Detection model ("hog" or "cnn")
        upsample: Number of times to upsample image (higher = detect smaller faces)

    Example:
        >>> import face_recognition
        >>> locator = DlibFaceLocator(face_recognition, model="hog")
        >>> boxes = locator.locate(image_rgb)
    """

    def __init__(
        self,
        api,
        model: Literal["hog", "cnn"] = "hog",
        upsample: int = 1,
    ):
        if model not in ("hog", "cnn"):
            raise ValueError(f"model must be 'hog' or 'cnn', got '{model}'")

        self.api = api
        self.model = model
        self.upsample = upsample

    def locate(self, image_rgb: np.ndarray) -> List[BBox]:
        """Detect faces in an RGB image.

        Args:
            image_rgb: Input image in RGB format, shape [H, W, 3]

        Returns:
            Face boxes sorted by area (largest first), clamped to the image.
            Empty list if no faces are detected.
        """
        if image_rgb is None or image_rgb.size == 0:
            return []

        # Returns list of tuples: (top, right, bottom, left)
        face_locations = self.api.face_locations(
            image_rgb,
            number_of_times_to_upsample=self.upsample,
            model=self.model,
        )

        h, w = image_rgb.shape[:2]

        boxes = []
        for top, right, bottom, left in face_locations:
            boxes.append(
                BBox(
                    x1=max(0, min(left, w - 1)),
                    y1=max(0, min(top, h - 1)),
                    x2=max(0, min(right, w - 1)),
                    y2=max(0, min(bottom, h - 1)),
                )
            )

        # No confidence scores from dlib HOG, so the largest face wins
        boxes.sort(key=lambda b: b.area, reverse=True)

        if boxes:
            logger.debug(f"Located {len(boxes)} faces (model={self.model})")

        return boxes

    def __repr__(self) -> str:
        return f"DlibFaceLocator(model='{self.model}', upsample={self.upsample})"
