"""Backend implementations for report correlation.

This package contains the dlib backend (HOG/CNN detector, ResNet-34
128-D signatures, Euclidean matching) and the factory that wires it into
a ReportService.
"""

from lost_trace.backends.factory import (
    BackendType,
    create_extractor,
    create_service,
    create_store,
)

__all__ = [
    "BackendType",
    "create_extractor",
    "create_service",
    "create_store",
]
