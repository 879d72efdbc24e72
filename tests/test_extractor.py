"""Unit tests for the dlib signature extractor (face_recognition mocked)."""

from __future__ import annotations

import threading
import time
from unittest.mock import Mock

import cv2
import numpy as np
import pytest

from lost_trace.backends.dlib import embedder as embedder_module
from lost_trace.backends.dlib.detector import DlibFaceLocator
from lost_trace.backends.dlib.embedder import DlibSignatureExtractor
from lost_trace.errors import ExtractionFailure


@pytest.fixture
def photo_bytes():
    """Create a small PNG photo (100x80 RGB)."""
    image = np.random.randint(0, 255, (80, 100, 3), dtype=np.uint8)
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def mock_api():
    """Create a mock face_recognition module that finds one face."""
    api = Mock()
    api.face_locations.return_value = [(10, 60, 70, 20)]
    api.face_encodings.return_value = [np.full(128, 0.05)]
    return api


@pytest.fixture
def extractor(mock_api):
    """Create an extractor on top of the mock API."""
    return DlibSignatureExtractor(api=mock_api)


def test_extract_returns_signature(extractor, mock_api, photo_bytes):
    """Test extraction of a 128-D signature from a photo."""
    signature = extractor.extract(photo_bytes)

    assert signature.shape == (128,)
    assert signature.dtype == np.float64
    # Raw descriptor, not normalized
    assert np.allclose(signature, 0.05)

    mock_api.face_locations.assert_called_once()
    _, kwargs = mock_api.face_encodings.call_args
    assert kwargs["known_face_locations"] == [(10, 60, 70, 20)]
    assert kwargs["model"] == "large"
    assert kwargs["num_jitters"] == 1


def test_extract_uses_largest_face(extractor, mock_api, photo_bytes):
    """Test that the largest located face is encoded."""
    mock_api.face_locations.return_value = [(0, 10, 10, 0), (5, 90, 75, 10)]

    extractor.extract(photo_bytes)

    _, kwargs = mock_api.face_encodings.call_args
    assert kwargs["known_face_locations"] == [(5, 90, 75, 10)]


def test_no_face_returns_none(extractor, mock_api, photo_bytes):
    """Test that a photo without faces yields None."""
    mock_api.face_locations.return_value = []

    assert extractor.extract(photo_bytes) is None
    mock_api.face_encodings.assert_not_called()


def test_no_encoding_returns_none(extractor, mock_api, photo_bytes):
    """Test that a located face without encoding yields None."""
    mock_api.face_encodings.return_value = []

    assert extractor.extract(photo_bytes) is None


@pytest.mark.parametrize(
    "descriptor",
    [np.zeros(127), np.zeros(129), np.full(128, np.nan)],
)
def test_malformed_descriptor_returns_none(extractor, mock_api, photo_bytes, descriptor):
    """Test that wrong-length or non-finite descriptors yield None."""
    mock_api.face_encodings.return_value = [descriptor]

    assert extractor.extract(photo_bytes) is None


def test_corrupt_image_raises(extractor):
    """Test that undecodable bytes are an ExtractionFailure, not 'no face'."""
    with pytest.raises(ExtractionFailure, match="decode"):
        extractor.extract(b"definitely not an image")


def test_empty_image_raises(extractor):
    """Test that empty bytes are an ExtractionFailure."""
    with pytest.raises(ExtractionFailure, match="Empty"):
        extractor.extract(b"")


def test_model_fault_raises(extractor, mock_api, photo_bytes):
    """Test that model errors are wrapped in ExtractionFailure."""
    mock_api.face_encodings.side_effect = RuntimeError("dlib exploded")

    with pytest.raises(ExtractionFailure, match="dlib exploded"):
        extractor.extract(photo_bytes)


def test_load_failure_raises(monkeypatch, photo_bytes):
    """Test that a failing model import is an ExtractionFailure."""

    def broken_import():
        raise ImportError("No module named 'face_recognition_models'")

    monkeypatch.setattr(embedder_module, "_import_face_recognition", broken_import)
    extractor = DlibSignatureExtractor()

    with pytest.raises(ExtractionFailure, match="load"):
        extractor.extract(photo_bytes)
    assert not extractor.is_loaded


def test_load_once_under_concurrent_first_use(monkeypatch, mock_api):
    """Test that concurrent first calls load the models exactly once."""
    calls = []

    def slow_import():
        calls.append(1)
        time.sleep(0.05)
        return mock_api

    monkeypatch.setattr(embedder_module, "_import_face_recognition", slow_import)
    extractor = DlibSignatureExtractor()

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(extractor.load()))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 8
    assert all(api is mock_api for api in results)
    assert extractor.is_loaded


def test_invalid_options():
    """Test that invalid model options are rejected."""
    with pytest.raises(ValueError, match="model"):
        DlibSignatureExtractor(model="huge")
    with pytest.raises(ValueError, match="detector_model"):
        DlibSignatureExtractor(detector_model="yolo")
    with pytest.raises(ValueError, match="num_jitters"):
        DlibSignatureExtractor(num_jitters=0)


def test_locator_clamps_and_sorts(mock_api):
    """Test that located boxes are clamped to the image and largest first."""
    mock_api.face_locations.return_value = [(0, 20, 20, 0), (-5, 150, 90, 10)]
    locator = DlibFaceLocator(mock_api, model="hog", upsample=2)

    boxes = locator.locate(np.zeros((80, 100, 3), dtype=np.uint8))

    assert boxes[0].x1 == 10 and boxes[0].y1 == 0
    assert boxes[0].x2 == 99 and boxes[0].y2 == 79
    assert boxes[1].area == 400
    mock_api.face_locations.assert_called_once()
    _, kwargs = mock_api.face_locations.call_args
    assert kwargs == {"number_of_times_to_upsample": 2, "model": "hog"}


def test_repr(extractor):
    """Test string representation of extractor."""
    assert "loaded=False" in repr(extractor)
    extractor.load()
    assert "loaded=True" in repr(extractor)
