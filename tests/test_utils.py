"""Unit tests for image and distance helpers."""

from __future__ import annotations

import base64

import cv2
import numpy as np
import pytest

from faceverify.core.exceptions import ImageDecodeError
from faceverify.core.interfaces import ReferenceImage
from faceverify.core.utils import (
    compute_confidence,
    decode_data_uri,
    decode_image,
    encode_jpeg,
    ensure_decoded,
    euclidean_distance,
)


@pytest.fixture
def png_bytes():
    """Encode a small deterministic image as PNG (lossless)."""
    image = np.zeros((20, 30, 3), dtype=np.uint8)
    image[5:15, 10:20] = (0, 128, 255)
    success, buffer = cv2.imencode(".png", image)
    assert success
    return image, buffer.tobytes()


def test_decode_image_from_bytes(png_bytes):
    """Test decoding raw encoded bytes."""
    original, data = png_bytes

    decoded = decode_image(data)

    assert decoded.shape == (20, 30, 3)
    assert np.array_equal(decoded, original)


def test_decode_image_from_data_uri(png_bytes):
    """Test decoding a base64 data URI as produced by browsers."""
    original, data = png_bytes
    uri = "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    decoded = decode_image(uri)

    assert np.array_equal(decoded, original)


def test_decode_image_from_path(png_bytes, tmp_path):
    """Test decoding an image file."""
    original, data = png_bytes
    path = tmp_path / "face.png"
    path.write_bytes(data)

    assert np.array_equal(decode_image(path), original)
    assert np.array_equal(decode_image(str(path)), original)


def test_decode_image_passes_arrays_through(png_bytes):
    """Test that already decoded arrays are returned unchanged."""
    original, _ = png_bytes
    assert decode_image(original) is original


def test_decode_image_rejects_garbage():
    """Test that undecodable bytes raise ImageDecodeError."""
    with pytest.raises(ImageDecodeError, match="Could not decode"):
        decode_image(b"definitely not an image")


def test_decode_image_rejects_empty_and_missing(tmp_path):
    """Test empty sources and missing files."""
    with pytest.raises(ImageDecodeError):
        decode_image(b"")
    with pytest.raises(ImageDecodeError, match="not found"):
        decode_image(tmp_path / "missing.jpg")


def test_decode_image_rejects_unusable_paths(tmp_path):
    """Test that OS errors from path strings become ImageDecodeError."""
    # Raw base64 without the data: prefix is far longer than any file name
    with pytest.raises(ImageDecodeError):
        decode_image("A" * 5000)

    with pytest.raises(ImageDecodeError):
        decode_image(str(tmp_path / ("x" * 300) / "face.png"))


def test_decode_data_uri_malformed():
    """Test malformed and non-base64 data URIs."""
    with pytest.raises(ImageDecodeError, match="Malformed"):
        decode_data_uri("data:image/png;base64")
    with pytest.raises(ImageDecodeError, match="Unsupported"):
        decode_data_uri("data:image/png,rawpixels")
    with pytest.raises(ImageDecodeError, match="Invalid base64"):
        decode_data_uri("data:image/png;base64,@@@")


def test_ensure_decoded_prefers_existing_pixels(png_bytes):
    """Test that handles with pixels are not decoded again."""
    original, data = png_bytes

    decoded_handle = ReferenceImage(source=b"ignored", image=original)
    assert ensure_decoded(decoded_handle) is original

    raw_handle = ReferenceImage(source=data)
    assert np.array_equal(ensure_decoded(raw_handle), original)


def test_encode_jpeg_keeps_dimensions():
    """Test JPEG encoding round trip preserves frame size."""
    frame = np.full((48, 64, 3), 127, dtype=np.uint8)

    data = encode_jpeg(frame, quality=90)

    assert data[:2] == b"\xff\xd8"  # JPEG SOI marker
    assert decode_image(data).shape == (48, 64, 3)


def test_encode_jpeg_rejects_empty_frame():
    """Test encoding an empty frame."""
    with pytest.raises(ValueError):
        encode_jpeg(np.zeros((0, 0, 3), dtype=np.uint8))


def test_euclidean_distance_symmetry_and_identity():
    """Test distance(a, b) == distance(b, a) and distance(a, a) == 0."""
    rng = np.random.default_rng(42)
    for _ in range(20):
        a = rng.normal(size=128).astype(np.float32)
        b = rng.normal(size=128).astype(np.float32)

        assert euclidean_distance(a, b) == euclidean_distance(b, a)
        assert euclidean_distance(a, a) == 0.0
        assert euclidean_distance(a, b) >= 0.0


def test_euclidean_distance_known_value():
    """Test a 3-4-5 triangle."""
    assert euclidean_distance(np.array([0.0, 0.0]), np.array([3.0, 4.0])) == pytest.approx(5.0)


def test_euclidean_distance_dimension_mismatch():
    """Test that descriptors of different length are rejected."""
    with pytest.raises(ValueError, match="shapes differ"):
        euclidean_distance(np.zeros(128), np.zeros(512))


def test_compute_confidence():
    """Test the confidence formula at known points."""
    assert compute_confidence(0.3, 0.6) == pytest.approx(50.0)
    assert compute_confidence(0.0, 0.6) == pytest.approx(100.0)
    assert 0.0 < compute_confidence(0.59999, 0.6) < 0.01


def test_compute_confidence_invalid_threshold():
    """Test non-positive thresholds."""
    with pytest.raises(ValueError):
        compute_confidence(0.1, 0.0)
