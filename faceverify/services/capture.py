"""Capture device lifecycle management.

CaptureDeviceController owns the live camera exclusively. At most one
CaptureSession exists at any time: starting again releases the current
session before the device is requested anew, and stop/close always release.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from faceverify.core.config import Config
from faceverify.core.exceptions import CameraAccessError
from faceverify.core.interfaces import CaptureDevice, DisplaySink, StreamConstraints, VideoStream
from faceverify.core.logging_config import get_logger

logger = get_logger(__name__)


class CaptureState(str, Enum):
    """Lifecycle states of the capture device."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    STOPPED = "stopped"
    ERROR = "error"


class CaptureSession:
    """Owning handle for an acquired video stream.

    release() stops the stream exactly once; later calls are no-ops.

    Example:
        >>> with CaptureSession(stream) as session:
        ...     success, frame = session.read()
    """

    def __init__(self, stream: VideoStream):
        self.stream = stream
        self._released = False

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read the current frame from the stream."""
        if self._released:
            return False, None
        return self.stream.read()

    def release(self) -> None:
        """Stop the underlying stream."""
        if self._released:
            return
        self._released = True
        self.stream.stop()

    @property
    def is_active(self) -> bool:
        """True while the session holds a live stream."""
        return not self._released and self.stream.is_active

    def __enter__(self) -> CaptureSession:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit (auto-release)."""
        self.release()

    def __repr__(self) -> str:
        """String representation."""
        status = "active" if self.is_active else "released"
        return f"CaptureSession(stream={self.stream!r}, status={status})"


class CaptureDeviceController:
    """State machine for exclusive ownership of the live capture device.

    States: IDLE -> REQUESTING -> STREAMING -> STOPPED, with ERROR reachable
    from REQUESTING. Device failures never propagate out of start(); they
    move the controller to ERROR and are kept in last_error so the caller can
    report them and retry.

    Attributes:
        device: Capture-device capability used to acquire streams
        constraints: Camera id and preferred resolution
        sink: Optional display sink the stream is bound to while streaming

    Example:
        >>> with CaptureDeviceController(WebcamDevice()) as controller:
        ...     if controller.start() == CaptureState.STREAMING:
        ...         success, frame = controller.session.read()
    """

    def __init__(
        self,
        device: CaptureDevice,
        constraints: Optional[StreamConstraints] = None,
        sink: Optional[DisplaySink] = None,
    ):
        self.device = device
        self.constraints = constraints or StreamConstraints()
        self.sink = sink

        self._state = CaptureState.IDLE
        self._session: Optional[CaptureSession] = None
        self._last_error: Optional[CameraAccessError] = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        device: CaptureDevice,
        config: Config,
        sink: Optional[DisplaySink] = None,
    ) -> CaptureDeviceController:
        """Create a controller using the camera settings from config."""
        constraints = StreamConstraints(
            camera_id=config.camera_id,
            facing=config.facing,
            preferred_width=config.preferred_width,
            preferred_height=config.preferred_height,
        )
        return cls(device, constraints=constraints, sink=sink)

    @property
    def state(self) -> CaptureState:
        """Current lifecycle state."""
        return self._state

    @property
    def session(self) -> Optional[CaptureSession]:
        """Active capture session, if any."""
        return self._session

    @property
    def is_streaming(self) -> bool:
        """True while a session is bound and streaming."""
        return self._state == CaptureState.STREAMING and self._session is not None

    @property
    def last_error(self) -> Optional[CameraAccessError]:
        """Error from the most recent failed start(), cleared on success."""
        return self._last_error

    def start(self) -> CaptureState:
        """Acquire the camera and start streaming.

        Any active session is released before the new request is made.

        Returns:
            CaptureState.STREAMING on success, CaptureState.ERROR otherwise.
        """
        with self._lock:
            if self._session is not None:
                logger.info("Releasing active capture session before restart")
                self._release_session()

            self._state = CaptureState.REQUESTING
            self._last_error = None

            try:
                stream = self.device.request_stream(self.constraints)
            except CameraAccessError as e:
                return self._fail(e)
            except Exception as e:
                return self._fail(CameraAccessError(f"Capture device failure: {e}"), cause=e)

            session = CaptureSession(stream)

            if self.sink is not None:
                try:
                    self.sink.attach(stream)
                except Exception as e:
                    session.release()
                    return self._fail(
                        CameraAccessError(f"Failed to bind stream to display: {e}"), cause=e
                    )

            self._session = session
            self._state = CaptureState.STREAMING
            logger.info(f"Camera {self.constraints.camera_id} streaming")
            return self._state

    def stop(self) -> CaptureState:
        """Release the active session, if any. Safe to call repeatedly."""
        with self._lock:
            if self._session is not None:
                self._release_session()
                self._state = CaptureState.STOPPED
                logger.info(f"Camera {self.constraints.camera_id} stopped")
            elif self._state != CaptureState.IDLE:
                self._state = CaptureState.STOPPED
            return self._state

    def close(self) -> None:
        """Teardown: release the device whatever state the controller is in."""
        self.stop()

    def _release_session(self) -> None:
        """Detach the sink and stop the current stream.

        A failing sink is logged; the stream is released regardless.
        """
        session = self._session
        self._session = None
        if session is None:
            return

        if self.sink is not None:
            try:
                self.sink.detach()
            except Exception as e:
                logger.error(f"Failed to detach stream from display: {e}", exc_info=True)

        session.release()

    def _fail(self, error: CameraAccessError, cause: Optional[Exception] = None) -> CaptureState:
        """Record a camera failure and enter the ERROR state."""
        if cause is not None:
            error.__cause__ = cause
        self._last_error = error
        self._state = CaptureState.ERROR
        logger.error(f"Camera access failed: {error}", exc_info=cause is not None)
        return self._state

    def __enter__(self) -> CaptureDeviceController:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit (auto-release)."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CaptureDeviceController(camera_id={self.constraints.camera_id}, "
            f"state={self._state.value})"
        )
