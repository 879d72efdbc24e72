"""dlib backend for report correlation.

Components:
- DlibFaceLocator: Face detection using HOG or CNN via face_recognition
- DlibSignatureExtractor: 128-D face signatures using ResNet-34
- DlibMatcher / rank: Euclidean distance matching against a gallery
"""

from lost_trace.backends.dlib.detector import DlibFaceLocator
from lost_trace.backends.dlib.embedder import DlibSignatureExtractor
from lost_trace.backends.dlib.matcher import DlibMatcher, Match, best_match, rank

__all__ = [
    "DlibFaceLocator",
    "DlibSignatureExtractor",
    "DlibMatcher",
    "Match",
    "best_match",
    "rank",
]
