"""Shared fixtures: fake capture devices, frames and a mock embedding engine."""

from __future__ import annotations

from typing import List, Optional
from unittest.mock import Mock

import numpy as np
import pytest

from faceverify.core.exceptions import CameraAccessError
from faceverify.core.interfaces import (
    BBox,
    EngineStatus,
    FaceDescriptor,
    LiveSnapshot,
    ReferenceImage,
    StreamConstraints,
)
from faceverify.core.utils import euclidean_distance


class FakeStream:
    """In-memory video stream returning copies of a fixed frame."""

    def __init__(self, frame: np.ndarray):
        self.frame = frame
        self.stop_calls = 0
        self._active = True

    def read(self):
        if not self._active:
            return False, None
        return True, self.frame.copy()

    def stop(self) -> None:
        self.stop_calls += 1
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active


class FakeDevice:
    """Capture device handing out FakeStreams, or failing on demand."""

    def __init__(self, frame: np.ndarray):
        self.frame = frame
        self.streams: List[FakeStream] = []
        self.requests: List[StreamConstraints] = []
        self.active_at_request: List[int] = []
        self.fail_with: Optional[Exception] = None

    def request_stream(self, constraints: StreamConstraints) -> FakeStream:
        self.requests.append(constraints)
        self.active_at_request.append(sum(s.is_active for s in self.streams))
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeStream(self.frame)
        self.streams.append(stream)
        return stream

    @property
    def active_streams(self) -> List[FakeStream]:
        return [s for s in self.streams if s.is_active]


@pytest.fixture
def frame():
    """Create a test frame (640x480 BGR)."""
    rng = np.random.default_rng(0)
    return rng.integers(0, 255, (480, 640, 3), dtype=np.uint8)


@pytest.fixture
def device(frame):
    """Create a fake capture device."""
    return FakeDevice(frame)


@pytest.fixture
def denied_device(frame):
    """Create a capture device whose access is denied."""
    device = FakeDevice(frame)
    device.fail_with = CameraAccessError("Permission denied")
    return device


def make_descriptor(vector) -> FaceDescriptor:
    """Build a descriptor around the given vector."""
    return FaceDescriptor(
        vector=np.asarray(vector, dtype=np.float32),
        landmarks={"nose_tip": np.zeros((5, 2), dtype=np.float32)},
        bbox=BBox(10, 10, 100, 100),
        score=0.99,
    )


@pytest.fixture
def descriptor_factory():
    """Return the descriptor builder."""
    return make_descriptor


@pytest.fixture
def mock_engine():
    """Create a ready embedding engine returning one fixed descriptor."""
    engine = Mock()
    engine.status = EngineStatus.READY
    engine.embedding_dim = 4
    engine.detect_primary_face.return_value = make_descriptor([0.1, 0.2, 0.3, 0.4])
    engine.distance.side_effect = euclidean_distance
    return engine


@pytest.fixture
def reference(frame):
    """Create a decoded reference image."""
    return ReferenceImage(source=b"reference", image=frame)


@pytest.fixture
def snapshot(frame):
    """Create a decoded live snapshot."""
    h, w = frame.shape[:2]
    return LiveSnapshot(source=b"snapshot", image=frame, width=w, height=h)
