"""Still-frame capture from the live stream."""

from __future__ import annotations

import time

from faceverify.core.config import Config
from faceverify.core.exceptions import CaptureStateError
from faceverify.core.interfaces import LiveSnapshot
from faceverify.core.logging_config import get_logger
from faceverify.core.utils import encode_jpeg
from faceverify.services.capture import CaptureDeviceController

logger = get_logger(__name__)


class FrameSnapshotter:
    """Produces a LiveSnapshot from the controller's active stream.

    The snapshot keeps the stream's intrinsic frame size and carries both a
    private copy of the pixels and the JPEG-encoded bytes. Taking a snapshot
    never changes the controller's state.

    Example:
        >>> snapshotter = FrameSnapshotter(controller, jpeg_quality=92)
        >>> snapshot = snapshotter.capture()
        >>> print(snapshot.width, snapshot.height)
    """

    def __init__(self, controller: CaptureDeviceController, jpeg_quality: int = 92):
        if not 1 <= jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be between 1 and 100, got {jpeg_quality}")

        self.controller = controller
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_config(cls, controller: CaptureDeviceController, config: Config) -> FrameSnapshotter:
        """Create a snapshotter using JPEG_QUALITY from config."""
        return cls(controller, jpeg_quality=config.jpeg_quality)

    def capture(self) -> LiveSnapshot:
        """Grab the current frame.

        Returns:
            LiveSnapshot with frame dimensions equal to the stream's.

        Raises:
            CaptureStateError: If the camera is not streaming or the frame
                               could not be read.
        """
        session = self.controller.session
        if not self.controller.is_streaming or session is None:
            raise CaptureStateError(
                f"Cannot capture while camera is {self.controller.state.value}; start the camera first"
            )

        success, frame = session.read()
        if not success or frame is None or frame.size == 0:
            raise CaptureStateError("Failed to read a frame from the camera")

        frame = frame.copy()
        height, width = frame.shape[:2]

        try:
            data = encode_jpeg(frame, quality=self.jpeg_quality)
        except ValueError as e:
            raise CaptureStateError(f"Failed to encode snapshot: {e}") from e

        logger.debug(f"Captured snapshot {width}x{height} ({len(data)} bytes)")

        return LiveSnapshot(
            source=data,
            image=frame,
            width=width,
            height=height,
            captured_at=time.time(),
        )

    def __repr__(self) -> str:
        """String representation."""
        return f"FrameSnapshotter(jpeg_quality={self.jpeg_quality})"
