"""Backend factory for the face verification pipeline.

This module provides a unified way to create the embedding engine for the
supported backends:
- dlib: HOG/CNN detector + ResNet-34 descriptors (128-D)
- InsightFace: SCRFD detector + ArcFace descriptors (512-D)

Usage:
    # Backend from .env (BACKEND, default dlib)
    engine = create_engine(config=config)

    # Explicit backend, models loaded immediately
    engine = create_engine("insightface", config, initialize=True)
"""

from __future__ import annotations

from typing import Literal

from faceverify.core.config import Config
from faceverify.core.interfaces import EmbeddingEngine, EngineStatus
from faceverify.core.logging_config import get_logger

logger = get_logger(__name__)

# Backend type alias
BackendType = Literal["dlib", "insightface"]

SUPPORTED_BACKENDS = ("dlib", "insightface")


def create_engine(
    backend_type: BackendType | None = None,
    config: Config | None = None,
    *,
    initialize: bool = False,
) -> EmbeddingEngine:
    """Create the embedding engine for the specified backend.

    Args:
        backend_type: Backend to use ("dlib" or "insightface").
                      If None, uses config.backend.
        config: Configuration object. If None, loads from .env
        initialize: Load model weights before returning. A failed load is
                    logged and leaves the engine in EngineStatus.FAILED.

    Returns:
        Engine following the EmbeddingEngine protocol.

    Raises:
        ValueError: If the backend is unknown.

    Example:
        >>> engine = create_engine("dlib", config, initialize=True)
        >>> engine.status
        <EngineStatus.READY: 'ready'>
    """
    if config is None:
        from faceverify.core.config import get_config

        config = get_config()

    backend_type = backend_type or config.backend

    if backend_type == "dlib":
        from faceverify.backends.dlib.engine import DlibEngine

        engine = DlibEngine(model=config.detector_model)
    elif backend_type == "insightface":
        from faceverify.backends.insightface.engine import InsightFaceEngine

        engine = InsightFaceEngine.from_config(config)
    else:
        raise ValueError(
            f"Unknown backend: '{backend_type}'. "
            f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
        )

    logger.info(f"Created {backend_type} engine: {engine}")

    if initialize:
        status = engine.initialize(config.models_dir)
        if status != EngineStatus.READY:
            logger.error(f"{backend_type} engine failed to initialize")

    return engine
