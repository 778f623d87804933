"""Unit tests for the OpenCV capture device (no camera required)."""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from faceverify.core import video_io
from faceverify.core.exceptions import CameraAccessError
from faceverify.core.interfaces import StreamConstraints, VideoStream
from faceverify.core.video_io import WebcamDevice


class FakeCapture:
    """Stand-in for cv2.VideoCapture."""

    def __init__(self, camera_id, opened=True, frame=None):
        self.camera_id = camera_id
        self.opened = opened
        self.frame = frame
        self.props = {}
        self.release_calls = 0

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if self.frame is None:
            return False, None
        return True, self.frame.copy()

    def release(self):
        self.release_calls += 1
        self.opened = False


@pytest.fixture
def captures(monkeypatch):
    """Patch VideoCapture and record every capture opened."""
    opened = []
    behaviour = {"opened": True, "frame": np.zeros((480, 640, 3), dtype=np.uint8)}

    def factory(camera_id):
        cap = FakeCapture(camera_id, behaviour["opened"], behaviour["frame"])
        opened.append(cap)
        return cap

    monkeypatch.setattr(video_io.cv2, "VideoCapture", factory)
    return opened, behaviour


def test_request_stream_applies_hints(captures):
    """Test that preferred size is passed to the driver as a hint."""
    opened, _ = captures

    stream = WebcamDevice().request_stream(
        StreamConstraints(camera_id=1, preferred_width=300, preferred_height=300)
    )

    assert isinstance(stream, VideoStream)
    assert opened[0].camera_id == 1
    assert opened[0].props[cv2.CAP_PROP_FRAME_WIDTH] == 300
    assert opened[0].props[cv2.CAP_PROP_FRAME_HEIGHT] == 300

    success, frame = stream.read()
    assert success
    # The driver ignored the hint; the stream reports what it delivers
    assert frame.shape == (480, 640, 3)


def test_request_stream_not_opened(captures):
    """Test that an unopenable camera raises CameraAccessError."""
    opened, behaviour = captures
    behaviour["opened"] = False

    with pytest.raises(CameraAccessError, match="Failed to open"):
        WebcamDevice().request_stream(StreamConstraints())


def test_request_stream_without_frames(captures):
    """Test that a camera delivering no frames is released and rejected."""
    opened, behaviour = captures
    behaviour["frame"] = None

    with pytest.raises(CameraAccessError, match="no frames"):
        WebcamDevice().request_stream(StreamConstraints())

    assert opened[0].release_calls == 1


def test_stop_releases_once(captures):
    """Test that stopping a stream twice releases the device once."""
    opened, _ = captures
    stream = WebcamDevice().request_stream(StreamConstraints())

    stream.stop()
    stream.stop()

    assert not stream.is_active
    assert opened[0].release_calls == 1
    assert stream.read() == (False, None)
