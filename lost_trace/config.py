"""Configuration management for the report correlation service.

This module loads configuration from environment variables (.env file) and
provides a centralized Config class for accessing application settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_MATCH_THRESHOLD = 0.6
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Attributes:
        match_threshold: Maximum Euclidean distance accepted as a match.
                         Default 0.6, lower = stricter.
        database_url: SQLAlchemy URL of the report database
        image_dir: Directory where uploaded report photos are kept
        max_image_bytes: Largest accepted upload, in bytes
        detector_model: dlib face detector ("hog" or "cnn")
        embedder_model: dlib landmark model used for encoding ("large" or "small")
        num_jitters: Re-samples per face when computing a signature
        upsample: Times to upsample the photo before face detection
        serialize_matching: Run persist+search+link of concurrent submissions
                            one at a time within this process
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a log file
    """

    match_threshold: float
    database_url: str
    image_dir: Path
    max_image_bytes: int
    detector_model: str
    embedder_model: str
    num_jitters: int
    upsample: int
    serialize_matching: bool
    log_level: str
    log_file: Optional[str]

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Returns:
            Config instance with values from environment or defaults.

        Raises:
            ValueError: If environment variables are invalid.
        """
        # Get project root (parent of lost_trace/)
        project_root = Path(__file__).parent.parent

        # Matching
        match_threshold = float(
            os.getenv("MATCH_THRESHOLD", str(DEFAULT_MATCH_THRESHOLD))
        )
        if match_threshold <= 0.0:
            raise ValueError(
                f"MATCH_THRESHOLD must be > 0, got {match_threshold}"
            )

        serialize_matching = bool(int(os.getenv("SERIALIZE_MATCHING", "1")))

        # Storage
        db_path = project_root / "data" / "db" / "lost_trace.db"
        database_url = os.getenv("DATABASE_URL", f"sqlite:///{db_path}")

        image_dir = Path(os.getenv("IMAGE_DIR", str(project_root / "data" / "images")))

        max_image_bytes = int(
            os.getenv("MAX_IMAGE_BYTES", str(DEFAULT_MAX_IMAGE_BYTES))
        )
        if max_image_bytes < 1:
            raise ValueError(f"MAX_IMAGE_BYTES must be >= 1, got {max_image_bytes}")

        # Model configuration
        detector_model = os.getenv("DETECTOR_MODEL", "hog").lower()
        if detector_model not in ("hog", "cnn"):
            raise ValueError(
                f"DETECTOR_MODEL must be 'hog' or 'cnn', got '{detector_model}'"
            )

        embedder_model = os.getenv("EMBEDDER_MODEL", "large").lower()
        if embedder_model not in ("large", "small"):
            raise ValueError(
                f"EMBEDDER_MODEL must be 'large' or 'small', got '{embedder_model}'"
            )

        num_jitters = int(os.getenv("NUM_JITTERS", "1"))
        if num_jitters < 1:
            raise ValueError(f"NUM_JITTERS must be >= 1, got {num_jitters}")

        upsample = int(os.getenv("UPSAMPLE", "1"))
        if upsample < 0:
            raise ValueError(f"UPSAMPLE must be >= 0, got {upsample}")

        # Logging configuration
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got {log_level}")

        log_file = os.getenv("LOG_FILE") or None

        return cls(
            match_threshold=match_threshold,
            database_url=database_url,
            image_dir=image_dir,
            max_image_bytes=max_image_bytes,
            detector_model=detector_model,
            embedder_model=embedder_model,
            num_jitters=num_jitters,
            upsample=upsample,
            serialize_matching=serialize_matching,
            log_level=log_level,
            log_file=log_file,
        )

    def __repr__(self) -> str:
        """Return string representation of config."""
        return (
            f"Config(\n"
            f"  Threshold: {self.match_threshold},\n"
            f"  Database: {self.database_url},\n"
            f"  Images: {self.image_dir},\n"
            f"  Detector: {self.detector_model} (upsample={self.upsample}),\n"
            f"  Embedder: {self.embedder_model} (jitters={self.num_jitters}),\n"
            f"  Serialize matching: {self.serialize_matching},\n"
            f"  Log Level: {self.log_level}\n"
            f")"
        )


# Global config instance (lazy-loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get global config instance (singleton pattern).

    Returns:
        Config instance loaded from environment.
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config
