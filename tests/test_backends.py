"""Unit tests for the embedding engine backends and factory.

The face_recognition and insightface libraries are replaced by mocks so these
tests exercise only the selection and conversion logic around them.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import numpy as np
import pytest

from faceverify.backends.dlib.engine import DlibEngine
from faceverify.backends.factory import create_engine
from faceverify.backends.insightface.engine import InsightFaceEngine
from faceverify.core.config import Config
from faceverify.core.interfaces import EmbeddingEngine, EngineStatus


@pytest.fixture
def config(monkeypatch):
    """Load a config with default values."""
    for name in ("BACKEND", "MODEL_PACK", "CTX_ID", "DETECTOR_MODEL"):
        monkeypatch.delenv(name, raising=False)
    return Config.from_env()


@pytest.fixture
def fake_fr():
    """Create a stand-in for the face_recognition module with two faces."""
    fr = Mock()
    # (top, right, bottom, left): a small face and a large face
    fr.face_locations.return_value = [(10, 60, 60, 10), (100, 400, 400, 100)]
    fr.face_encodings.return_value = [np.full(128, 0.05)]
    fr.face_landmarks.return_value = [{"nose_tip": [(250, 260), (255, 262)]}]
    return fr


@pytest.fixture
def dlib_engine(fake_fr):
    """Create a dlib engine wired to the stand-in module."""
    engine = DlibEngine(model="hog")
    engine._fr = fake_fr
    engine._status = EngineStatus.READY
    return engine


def make_face(bbox, det_score, seed):
    """Build an InsightFace-like face record."""
    rng = np.random.default_rng(seed)
    embedding = rng.normal(size=512).astype(np.float32)
    return SimpleNamespace(
        bbox=np.array(bbox, dtype=np.float32),
        det_score=det_score,
        kps=np.zeros((5, 2), dtype=np.float32),
        landmark_2d_106=None,
        normed_embedding=embedding / np.linalg.norm(embedding),
    )


def test_factory_default_backend(config):
    """Test that the configured backend is used when none is given."""
    engine = create_engine(config=config)

    assert isinstance(engine, DlibEngine)
    assert engine.status == EngineStatus.NOT_LOADED


def test_factory_insightface(config):
    """Test creating the InsightFace engine without loading models."""
    engine = create_engine("insightface", config)

    assert isinstance(engine, InsightFaceEngine)
    assert engine.model_pack == "buffalo_l"
    assert engine.ctx_id == -1
    assert engine.status == EngineStatus.NOT_LOADED


def test_factory_unknown_backend(config):
    """Test that unknown backends are rejected."""
    with pytest.raises(ValueError, match="Unknown backend"):
        create_engine("opencv", config)


def test_engines_follow_protocol():
    """Test that both engines satisfy the EmbeddingEngine protocol."""
    assert isinstance(DlibEngine(), EmbeddingEngine)
    assert isinstance(InsightFaceEngine(), EmbeddingEngine)


def test_dlib_invalid_model():
    """Test detector model validation."""
    with pytest.raises(ValueError):
        DlibEngine(model="mtcnn")


def test_dlib_requires_initialize(frame):
    """Test that detection before initialization raises."""
    with pytest.raises(RuntimeError, match="not initialized"):
        DlibEngine().detect_primary_face(frame)


def test_dlib_picks_largest_face(dlib_engine, fake_fr, frame):
    """Test that the largest detected face is encoded."""
    descriptor = dlib_engine.detect_primary_face(frame)

    assert descriptor is not None
    assert descriptor.dimension == 128
    assert (descriptor.bbox.x1, descriptor.bbox.y1) == (100, 100)
    assert (descriptor.bbox.x2, descriptor.bbox.y2) == (400, 400)
    assert descriptor.landmarks["nose_tip"].shape == (2, 2)

    _, kwargs = fake_fr.face_encodings.call_args
    assert kwargs["known_face_locations"] == [(100, 400, 400, 100)]


def test_dlib_converts_to_rgb(dlib_engine, fake_fr):
    """Test that face_recognition receives RGB pixels."""
    image = np.zeros((50, 50, 3), dtype=np.uint8)
    image[..., 0] = 255  # blue in BGR

    dlib_engine.detect_primary_face(image)

    rgb = fake_fr.face_locations.call_args.args[0]
    assert rgb[0, 0].tolist() == [0, 0, 255]


def test_dlib_no_face(dlib_engine, fake_fr, frame):
    """Test that an image without faces yields None."""
    fake_fr.face_locations.return_value = []

    assert dlib_engine.detect_primary_face(frame) is None
    fake_fr.face_encodings.assert_not_called()


def test_dlib_rejects_grayscale(dlib_engine):
    """Test that single-channel images are rejected."""
    with pytest.raises(ValueError, match="3-channel"):
        dlib_engine.detect_primary_face(np.zeros((50, 50), dtype=np.uint8))


def test_dlib_distance(dlib_engine):
    """Test Euclidean distance between descriptors."""
    a = np.zeros(128, dtype=np.float32)
    b = np.zeros(128, dtype=np.float32)
    b[0] = 0.6

    assert dlib_engine.distance(a, b) == pytest.approx(0.6, abs=1e-6)


def test_insightface_requires_initialize(frame):
    """Test that detection before initialization raises."""
    with pytest.raises(RuntimeError, match="not initialized"):
        InsightFaceEngine().detect_primary_face(frame)


def test_insightface_picks_most_confident(frame):
    """Test that the face with the highest detection score is used."""
    weak = make_face([0, 0, 300, 300], 0.55, seed=1)
    strong = make_face([50, 60, 150, 180], 0.93, seed=2)
    engine = InsightFaceEngine()
    engine.app = Mock()
    engine.app.get.return_value = [weak, strong]

    descriptor = engine.detect_primary_face(frame)

    assert descriptor.dimension == 512
    assert np.allclose(descriptor.vector, strong.normed_embedding)
    assert descriptor.score == pytest.approx(0.93)
    assert (descriptor.bbox.x1, descriptor.bbox.y1) == (50, 60)
    assert "five_point" in descriptor.landmarks
    assert "dense_106" not in descriptor.landmarks


def test_insightface_no_face(frame):
    """Test that an image without faces yields None."""
    engine = InsightFaceEngine()
    engine.app = Mock()
    engine.app.get.return_value = []

    assert engine.detect_primary_face(frame) is None


def test_insightface_initialize_failure(monkeypatch):
    """Test that a failed model load is reported as FAILED, not raised."""
    analysis = pytest.importorskip("insightface.app")

    def broken(*args, **kwargs):
        raise RuntimeError("model pack missing")

    monkeypatch.setattr(analysis, "FaceAnalysis", broken)

    engine = InsightFaceEngine()
    assert engine.initialize("/nonexistent") == EngineStatus.FAILED
    assert engine.status == EngineStatus.FAILED
