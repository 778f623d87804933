"""Configuration management for the face verification pipeline.

This module loads configuration from environment variables (.env file) and
provides a centralized Config class for accessing application settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_THRESHOLD = 0.6


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Attributes:
        backend: Embedding backend ("dlib" or "insightface")
        threshold: Maximum embedding distance accepted as a match
        ctx_id: Device context ID for InsightFace (-1 for CPU, 0+ for GPU)
        model_pack: InsightFace model pack name
        detector_model: dlib face detector ("hog" or "cnn")
        camera_id: Camera device ID for video capture
        facing: Preferred camera facing hint ("user" or "environment")
        preferred_width: Preferred capture width in pixels (hint only)
        preferred_height: Preferred capture height in pixels (hint only)
        jpeg_quality: JPEG quality used when encoding snapshots (1-100)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file receiving a plain copy of the log
        models_dir: Location handed to the embedding engine at initialization
    """

    backend: str
    threshold: float
    ctx_id: int
    model_pack: str
    detector_model: str
    camera_id: int
    facing: str
    preferred_width: int
    preferred_height: int
    jpeg_quality: int
    log_level: str
    log_file: Path | None
    models_dir: Path

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Returns:
            Config instance with values from environment or defaults.

        Raises:
            ValueError: If environment variables hold invalid values.
        """
        # Get project root (parent of faceverify/)
        project_root = Path(__file__).parent.parent.parent

        # Backend selection
        backend = os.getenv("BACKEND", "dlib").lower()
        valid_backends = ["dlib", "insightface"]
        if backend not in valid_backends:
            raise ValueError(f"BACKEND must be one of {valid_backends}, got {backend}")

        # Match threshold (Euclidean distance)
        threshold = float(os.getenv("MATCH_THRESHOLD", str(DEFAULT_THRESHOLD)))
        if threshold <= 0.0:
            raise ValueError(f"MATCH_THRESHOLD must be > 0, got {threshold}")

        # Device configuration
        ctx_id = int(os.getenv("CTX_ID", "-1"))

        # Model configuration
        model_pack = os.getenv("MODEL_PACK", "buffalo_l")
        valid_packs = ["buffalo_l", "buffalo_m", "buffalo_s", "buffalo_sc"]
        if model_pack not in valid_packs:
            raise ValueError(f"MODEL_PACK must be one of {valid_packs}, got {model_pack}")

        detector_model = os.getenv("DETECTOR_MODEL", "hog").lower()
        if detector_model not in ("hog", "cnn"):
            raise ValueError(f"DETECTOR_MODEL must be 'hog' or 'cnn', got {detector_model}")

        # Camera configuration
        camera_id = int(os.getenv("CAMERA_ID", "0"))
        if camera_id < 0:
            raise ValueError(f"CAMERA_ID must be >= 0, got {camera_id}")

        facing = os.getenv("FACING", "user").lower()
        if facing not in ("user", "environment"):
            raise ValueError(f"FACING must be 'user' or 'environment', got {facing}")

        preferred_width = int(os.getenv("PREFERRED_WIDTH", "300"))
        preferred_height = int(os.getenv("PREFERRED_HEIGHT", "300"))
        if preferred_width <= 0 or preferred_height <= 0:
            raise ValueError(
                f"PREFERRED_WIDTH and PREFERRED_HEIGHT must be > 0, "
                f"got {preferred_width}x{preferred_height}"
            )

        # Snapshot encoding
        jpeg_quality = int(os.getenv("JPEG_QUALITY", "92"))
        if not 1 <= jpeg_quality <= 100:
            raise ValueError(f"JPEG_QUALITY must be between 1 and 100, got {jpeg_quality}")

        # Logging configuration
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got {log_level}")

        log_file_env = os.getenv("LOG_FILE")
        log_file = Path(log_file_env) if log_file_env else None

        # Paths
        models_dir = Path(os.getenv("MODELS_DIR", str(project_root / "models")))

        return cls(
            backend=backend,
            threshold=threshold,
            ctx_id=ctx_id,
            model_pack=model_pack,
            detector_model=detector_model,
            camera_id=camera_id,
            facing=facing,
            preferred_width=preferred_width,
            preferred_height=preferred_height,
            jpeg_quality=jpeg_quality,
            log_level=log_level,
            log_file=log_file,
            models_dir=models_dir,
        )

    def __repr__(self) -> str:
        """Return string representation of config."""
        return (
            f"Config(\n"
            f"  Backend: {self.backend},\n"
            f"  Threshold: {self.threshold},\n"
            f"  Device: {'GPU' if self.ctx_id >= 0 else 'CPU'}:{self.ctx_id},\n"
            f"  Camera: {self.camera_id} ({self.facing}, "
            f"{self.preferred_width}x{self.preferred_height}),\n"
            f"  Log Level: {self.log_level}"
            f"{' -> ' + str(self.log_file) if self.log_file else ''},\n"
            f"  Models: {self.models_dir}\n"
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
