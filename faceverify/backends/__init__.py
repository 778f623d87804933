"""Embedding engine implementations.

This package contains the backends that fulfil the EmbeddingEngine protocol:
- dlib: HOG/CNN detector + ResNet-34 descriptors (128-D)
- insightface: SCRFD detector + ArcFace descriptors (512-D)

Use the factory module to create an engine.
"""

from faceverify.backends.factory import (
    create_engine,
    BackendType,
    SUPPORTED_BACKENDS,
)

__all__ = [
    "create_engine",
    "BackendType",
    "SUPPORTED_BACKENDS",
]
