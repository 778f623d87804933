"""Unit tests for the frame snapshotter."""

from __future__ import annotations

import numpy as np
import pytest

from faceverify.core.exceptions import CaptureStateError
from faceverify.core.interfaces import StreamConstraints
from faceverify.core.utils import decode_image
from faceverify.services.capture import CaptureDeviceController, CaptureState
from faceverify.services.snapshot import FrameSnapshotter


@pytest.fixture
def controller(device):
    """Create a controller preferring a smaller size than the device delivers."""
    return CaptureDeviceController(
        device, StreamConstraints(preferred_width=300, preferred_height=300)
    )


@pytest.fixture
def snapshotter(controller):
    """Create a snapshotter bound to the controller."""
    return FrameSnapshotter(controller, jpeg_quality=92)


def test_capture_requires_streaming(snapshotter, controller):
    """Test that capturing without a live stream is an explicit failure."""
    with pytest.raises(CaptureStateError, match="idle"):
        snapshotter.capture()

    controller.start()
    controller.stop()

    with pytest.raises(CaptureStateError, match="stopped"):
        snapshotter.capture()


def test_capture_uses_intrinsic_dimensions(snapshotter, controller):
    """Test that the snapshot has the frame's size, not the preferred size."""
    controller.start()

    snapshot = snapshotter.capture()

    assert (snapshot.width, snapshot.height) == (640, 480)
    assert snapshot.image.shape == (480, 640, 3)


def test_capture_is_self_contained(snapshotter, controller, device):
    """Test that the snapshot owns its pixels and a decodable JPEG."""
    controller.start()

    snapshot = snapshotter.capture()
    device.frame[:] = 0

    assert snapshot.image.any()
    assert decode_image(snapshot.source).shape == (480, 640, 3)
    assert snapshot.is_decoded
    assert snapshot.captured_at > 0


def test_capture_does_not_change_controller_state(snapshotter, controller):
    """Test that snapshots leave the controller streaming."""
    controller.start()

    snapshotter.capture()
    snapshotter.capture()

    assert controller.state == CaptureState.STREAMING


def test_each_capture_is_a_new_snapshot(snapshotter, controller):
    """Test that re-capturing yields a distinct handle."""
    controller.start()

    first = snapshotter.capture()
    second = snapshotter.capture()

    assert first is not second
    assert first != second


def test_failed_read_raises(snapshotter, controller, device):
    """Test that a stream which stops delivering frames fails loudly."""
    controller.start()
    device.streams[0].frame = np.zeros((0, 0, 3), dtype=np.uint8)

    with pytest.raises(CaptureStateError, match="Failed to read"):
        snapshotter.capture()


def test_invalid_quality(controller):
    """Test JPEG quality validation."""
    with pytest.raises(ValueError):
        FrameSnapshotter(controller, jpeg_quality=0)
