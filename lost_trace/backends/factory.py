"""Factory for the report correlation components.

This module builds the signature extractor, gallery store, image store and
report service from a Config, so a process creates each of them once at
startup and passes them by reference.

Usage:
    service = create_service()                 # from .env
    service = create_service(config, eager_load=False)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from lost_trace.config import Config
from lost_trace.logging_config import get_logger

logger = get_logger(__name__)

# Backend type alias
BackendType = Literal["dlib"]


def create_extractor(config: Config, backend_type: BackendType = "dlib"):
    """Create the signature extractor for the configured backend.

    Only dlib produces the 128-D signatures the gallery is built on.

    Raises:
        ValueError: If backend_type is unknown.
    """
    if backend_type != "dlib":
        raise ValueError(
            f"Unknown backend: '{backend_type}'. Supported backends: 'dlib'"
        )

    from lost_trace.backends.dlib.embedder import DlibSignatureExtractor

    return DlibSignatureExtractor(
        model=config.embedder_model,
        num_jitters=config.num_jitters,
        detector_model=config.detector_model,
        upsample=config.upsample,
    )


def create_store(config: Config):
    """Create the gallery store and make sure its tables exist."""
    from lost_trace.store import SqlGalleryStore

    prefix = "sqlite:///"
    if config.database_url.startswith(prefix) and config.database_url != "sqlite:///:memory:":
        Path(config.database_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)

    store = SqlGalleryStore.from_url(config.database_url)
    store.create_db_and_tables()
    return store


def create_service(
    config: Config | None = None,
    *,
    backend_type: BackendType = "dlib",
    eager_load: bool = True,
):
    """Create a ready-to-use ReportService.

    Args:
        config: Configuration object. If None, loads from .env
        backend_type: Extractor backend
        eager_load: Load the face models now instead of on the first submission

    Returns:
        ReportService wired to one extractor, store and image store.

    Example:
        >>> service = create_service()
        >>> result = service.submit_upload(fields, photo, "photo.jpg", "user-1")
    """
    if config is None:
        from lost_trace.config import get_config

        config = get_config()

    from lost_trace.images import LocalImageStore
    from lost_trace.services.reporting import ReportService

    logger.info(f"Creating report service ({backend_type} backend)...")

    extractor = create_extractor(config, backend_type)
    if eager_load:
        extractor.load()

    service = ReportService(
        extractor=extractor,
        store=create_store(config),
        image_store=LocalImageStore(config.image_dir),
        threshold=config.match_threshold,
        max_image_bytes=config.max_image_bytes,
        serialize_matching=config.serialize_matching,
    )

    logger.info("Report service created successfully")
    return service
