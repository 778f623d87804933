"""OpenCV implementation of the capture-device capability.

WebcamDevice hands out WebcamStream objects following the VideoStream
protocol. Resolution preferences are applied as hints; the stream reports
whatever size the camera actually delivers.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from faceverify.core.exceptions import CameraAccessError
from faceverify.core.interfaces import StreamConstraints
from faceverify.core.logging_config import get_logger

logger = get_logger(__name__)


class WebcamStream:
    """Live stream from a webcam or USB camera.

    Wraps an opened OpenCV VideoCapture. stop() releases the device and is
    safe to call more than once.

    Attributes:
        camera_id: Camera device ID
        cap: OpenCV VideoCapture object

    Example:
        >>> stream = WebcamDevice().request_stream(StreamConstraints())
        >>> try:
        ...     success, frame = stream.read()
        ... finally:
        ...     stream.stop()
    """

    def __init__(self, cap: cv2.VideoCapture, camera_id: int):
        self.cap = cap
        self.camera_id = camera_id

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read the current frame from the webcam.

        Returns:
            Tuple of (success, frame):
                - success: True if frame read successfully
                - frame: BGR image [H, W, 3] if success, None otherwise
        """
        if not self.cap.isOpened():
            logger.error(f"Webcam {self.camera_id} is not opened")
            return False, None

        success, frame = self.cap.read()

        if not success or frame is None:
            logger.warning(f"Failed to read frame from webcam {self.camera_id}")
            return False, None

        return True, frame

    def stop(self) -> None:
        """Release webcam resources."""
        if self.cap.isOpened():
            self.cap.release()
            logger.info(f"Released webcam {self.camera_id}")

    @property
    def is_active(self) -> bool:
        """Check if the webcam is still opened."""
        return self.cap.isOpened()

    def __repr__(self) -> str:
        """String representation."""
        status = "active" if self.is_active else "stopped"
        return f"WebcamStream(camera_id={self.camera_id}, status={status})"


class WebcamDevice:
    """Capture device backed by cv2.VideoCapture.

    Example:
        >>> device = WebcamDevice()
        >>> stream = device.request_stream(StreamConstraints(camera_id=0))
    """

    def request_stream(self, constraints: StreamConstraints) -> WebcamStream:
        """Open the camera described by the constraints.

        Args:
            constraints: Camera id and preferred resolution. The facing hint
                         has no OpenCV equivalent and is only logged.

        Returns:
            Opened WebcamStream.

        Raises:
            CameraAccessError: If the camera cannot be opened or delivers no
                               frame (permission denied, busy, unplugged).
        """
        camera_id = constraints.camera_id
        logger.info(
            f"Requesting camera {camera_id} (facing={constraints.facing}, "
            f"preferred={constraints.preferred_width}x{constraints.preferred_height})"
        )

        cap = cv2.VideoCapture(camera_id)

        if not cap.isOpened():
            cap.release()
            raise CameraAccessError(
                f"Failed to open webcam with camera_id={camera_id}. "
                f"Check if camera is connected and not in use by another application."
            )

        # Resolution is a preference; unsupported values are ignored by the driver
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.preferred_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.preferred_height)

        # A camera that opens but never delivers frames is unusable
        success, frame = cap.read()
        if not success or frame is None:
            cap.release()
            raise CameraAccessError(f"Webcam {camera_id} opened but delivered no frames")

        height, width = frame.shape[:2]
        logger.info(f"Opened webcam {camera_id}: {width}x{height}")

        return WebcamStream(cap, camera_id)

    def __repr__(self) -> str:
        """String representation."""
        return "WebcamDevice()"
