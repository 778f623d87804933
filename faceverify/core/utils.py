"""Utility functions for the face verification pipeline.

This module provides the image decode capability, snapshot encoding and the
numeric helpers used by the match decision.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

import cv2
import numpy as np

from faceverify.core.exceptions import ImageDecodeError
from faceverify.core.interfaces import ImageInput, ImageSource
from faceverify.core.logging_config import get_logger

logger = get_logger(__name__)

DATA_URI_PREFIX = "data:"


def decode_data_uri(uri: str) -> bytes:
    """Extract the payload of a base64 ``data:`` URI.

    Args:
        uri: URI such as ``data:image/jpeg;base64,/9j/4AAQ...``

    Returns:
        Raw encoded image bytes.

    Raises:
        ImageDecodeError: If the URI is malformed or not base64 encoded.
    """
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith(DATA_URI_PREFIX):
        raise ImageDecodeError("Malformed data URI")
    if not header.endswith(";base64"):
        raise ImageDecodeError(f"Unsupported data URI encoding: {header}")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload in data URI: {e}") from e


def decode_image(source: ImageSource | np.ndarray) -> np.ndarray:
    """Decode an image source into a BGR pixel array.

    Args:
        source: One of
            - encoded image bytes (JPEG, PNG, ...)
            - a ``data:image/...;base64,`` URI
            - a filesystem path (str or Path)
            - an already decoded array, returned unchanged

    Returns:
        Decoded image in BGR format, shape [H, W, 3], dtype uint8.

    Raises:
        ImageDecodeError: If the source cannot be read or decoded.

    Example:
        >>> frame = decode_image(Path("reference.jpg"))
        >>> frame = decode_image(uploaded_bytes)
    """
    if isinstance(source, np.ndarray):
        if source.size == 0:
            raise ImageDecodeError("Empty image array")
        return source

    if isinstance(source, str) and source.startswith(DATA_URI_PREFIX):
        data = decode_data_uri(source)
    elif isinstance(source, (str, Path)):
        path = Path(source)
        try:
            if not path.is_file():
                raise ImageDecodeError(f"Image file not found: {str(path)[:200]}")
            data = path.read_bytes()
        except OSError as e:
            # Over-long names (e.g. base64 without a data: prefix) or unreadable files
            raise ImageDecodeError(f"Could not read image file: {e.strerror or e}") from e
    elif isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        raise ImageDecodeError(f"Unsupported image source type: {type(source).__name__}")

    if not data:
        raise ImageDecodeError("Image source is empty")

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)

    if image is None:
        raise ImageDecodeError("Could not decode image data (unsupported or corrupted format)")

    return image


def ensure_decoded(item: ImageInput) -> np.ndarray:
    """Return the pixels of an image handle, decoding its source if needed."""
    if item.image is not None:
        return item.image
    return decode_image(item.source)


def encode_jpeg(frame_bgr: np.ndarray, quality: int = 92) -> bytes:
    """Encode a BGR frame as JPEG.

    Args:
        frame_bgr: Image in BGR format, shape [H, W, 3]
        quality: JPEG quality (1-100)

    Returns:
        Encoded JPEG bytes.

    Raises:
        ValueError: If the frame is empty or encoding fails.
    """
    if frame_bgr is None or frame_bgr.size == 0:
        raise ValueError("Cannot encode an empty frame")

    success, buffer = cv2.imencode(".jpg", frame_bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not success:
        raise ValueError("JPEG encoding failed")

    return buffer.tobytes()


def euclidean_distance(vec1: np.ndarray, vec2: np.ndarray) -> float:
    """Compute Euclidean distance between two descriptor vectors.

    Args:
        vec1: First vector, shape [D]
        vec2: Second vector, shape [D]

    Returns:
        Non-negative distance. 0.0 for identical vectors.

    Raises:
        ValueError: If the vectors have different shapes.

    Example:
        >>> d = euclidean_distance(desc_a.vector, desc_b.vector)
        >>> if d < 0.6:
        ...     print("Same person")
    """
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)

    if a.shape != b.shape:
        raise ValueError(f"Descriptor shapes differ: {a.shape} vs {b.shape}")

    return float(np.linalg.norm(a - b))


def compute_confidence(distance: float, threshold: float) -> float:
    """Convert a matching distance into a confidence percentage.

    confidence = (1 - distance / threshold) * 100, which is 100 at distance 0
    and approaches 0 as distance approaches the threshold.

    Args:
        distance: Descriptor distance, expected in [0, threshold)
        threshold: Match threshold (> 0)

    Returns:
        Confidence in percent.
    """
    if threshold <= 0:
        raise ValueError(f"Threshold must be > 0, got {threshold}")
    return (1.0 - distance / threshold) * 100.0
