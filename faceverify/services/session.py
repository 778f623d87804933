"""Session service exposing the verification workflow to a presentation layer.

VerificationSession owns the AppState (reference image, live snapshot,
result, camera and trigger state) and implements the user intents: upload a
reference image, start/stop the camera, capture, and verify.

Verification runs on a single background worker. Every replacement of the
reference image or the snapshot bumps an input generation; a verification
that finishes after its inputs were replaced has its result discarded.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from faceverify.core.config import Config
from faceverify.core.exceptions import (
    CaptureStateError,
    ImageDecodeError,
    ModelNotReadyError,
    VerificationInProgressError,
)
from faceverify.core.interfaces import ImageSource, LiveSnapshot, ReferenceImage
from faceverify.core.logging_config import get_logger
from faceverify.core.utils import decode_image
from faceverify.services.capture import CaptureDeviceController, CaptureState
from faceverify.services.snapshot import FrameSnapshotter
from faceverify.services.verification import (
    IndeterminateReason,
    VerificationEngine,
    VerificationResult,
)

logger = get_logger(__name__)

CAMERA_ERROR_MESSAGE = "Unable to access camera. Please ensure camera permissions are granted."
CAPTURE_ERROR_MESSAGE = "Unable to capture an image. Please start the camera first."
DECODE_ERROR_MESSAGE = "Could not read the selected image. Please choose another file."
MODEL_NOT_READY_MESSAGE = "Face models are still loading. Please try again in a moment."
IN_PROGRESS_MESSAGE = "Verification already in progress."
VERIFYING_MESSAGE = "Verifying..."


class TriggerState(str, Enum):
    """State of the verify trigger shown to the user."""

    DISABLED = "disabled"  # an input is missing
    READY = "ready"
    VERIFYING = "verifying"


@dataclass(frozen=True)
class AppState:
    """Snapshot of everything the presentation layer renders.

    Attributes:
        reference: Current reference image, if uploaded
        snapshot: Current live snapshot, if captured
        result: Result for exactly the current (reference, snapshot) pair
        capture_state: Camera lifecycle state
        trigger_state: Verify trigger state
        status_message: Status not tied to a result (errors, progress)
        camera_error: Diagnostic text of the last camera failure
    """

    reference: Optional[ReferenceImage] = None
    snapshot: Optional[LiveSnapshot] = None
    result: Optional[VerificationResult] = None
    capture_state: CaptureState = CaptureState.IDLE
    trigger_state: TriggerState = TriggerState.DISABLED
    status_message: Optional[str] = None
    camera_error: Optional[str] = None

    @property
    def display_message(self) -> Optional[str]:
        """Line to show the user: the result if there is one, else the status."""
        if self.result is not None:
            return self.result.message
        return self.status_message


class VerificationSession:
    """Workflow state and user intents for one verification screen.

    Attributes:
        verifier: Verification engine
        controller: Capture device controller
        snapshotter: Frame snapshotter bound to the controller

    Example:
        >>> with VerificationSession(verifier, controller) as session:
        ...     session.on_reference_image_selected(Path("id_photo.jpg"))
        ...     session.on_start_camera()
        ...     session.on_capture()
        ...     state = session.on_verify()
        ...     print(state.display_message)
    """

    def __init__(
        self,
        verifier: VerificationEngine,
        controller: CaptureDeviceController,
        snapshotter: Optional[FrameSnapshotter] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.verifier = verifier
        self.controller = controller
        self.snapshotter = snapshotter or FrameSnapshotter(controller)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="faceverify-verify"
        )
        self._loader: Optional[ThreadPoolExecutor] = None

        self._lock = threading.RLock()
        self._state = AppState()
        self._generation = 0
        self._pending: Optional[Future] = None

    @classmethod
    def from_config(
        cls,
        verifier: VerificationEngine,
        controller: CaptureDeviceController,
        config: Config,
    ) -> VerificationSession:
        """Create a session whose snapshots use the configured JPEG quality."""
        return cls(verifier, controller, FrameSnapshotter.from_config(controller, config))

    @property
    def state(self) -> AppState:
        """Current application state."""
        with self._lock:
            return replace(self._state, capture_state=self.controller.state)

    @property
    def is_verifying(self) -> bool:
        """True while a verification is in flight."""
        with self._lock:
            return self._pending is not None

    # ------------------------------------------------------------------
    # Model loading
    # ------------------------------------------------------------------

    def load_models(self, model_location: Optional[Union[str, Path]] = None) -> Future:
        """Initialize the embedding engine in the background.

        Verification requests made before loading completes fail fast with
        ModelNotReadyError instead of waiting.

        Returns:
            Future resolving to the final EngineStatus.
        """
        with self._lock:
            if self._loader is None:
                self._loader = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="faceverify-loader"
                )
            return self._loader.submit(self.verifier.engine.initialize, model_location)

    # ------------------------------------------------------------------
    # User intents
    # ------------------------------------------------------------------

    def on_reference_image_selected(self, data: ImageSource) -> AppState:
        """Replace the reference image and clear any previous result.

        Args:
            data: Uploaded image bytes, a data URI, or a file path

        Returns:
            Updated AppState.
        """
        status_message = None
        try:
            reference = ReferenceImage(source=data, image=decode_image(data))
        except ImageDecodeError as e:
            logger.warning(f"Reference image could not be decoded: {e}")
            reference = ReferenceImage(source=data, decode_error=str(e))
            status_message = DECODE_ERROR_MESSAGE

        with self._lock:
            self._generation += 1
            self._state = replace(
                self._state,
                reference=reference,
                result=None,
                status_message=status_message,
                trigger_state=self._trigger_for(reference, self._state.snapshot),
            )
            logger.info(f"Reference image replaced (generation {self._generation})")
            return self.state

    def on_start_camera(self) -> AppState:
        """Start (or restart) the camera."""
        capture_state = self.controller.start()

        with self._lock:
            if capture_state == CaptureState.ERROR:
                error = self.controller.last_error
                self._state = replace(
                    self._state,
                    status_message=CAMERA_ERROR_MESSAGE,
                    camera_error=str(error) if error is not None else None,
                )
            else:
                self._state = replace(self._state, camera_error=None)
                if self._state.status_message == CAMERA_ERROR_MESSAGE:
                    self._state = replace(self._state, status_message=None)
            return self.state

    def on_stop_camera(self) -> AppState:
        """Stop the camera. Snapshots already taken are kept."""
        self.controller.stop()
        return self.state

    def on_capture(self) -> AppState:
        """Take a snapshot and clear any previous result."""
        try:
            snapshot = self.snapshotter.capture()
        except CaptureStateError as e:
            logger.warning(f"Capture failed: {e}")
            with self._lock:
                self._state = replace(self._state, status_message=CAPTURE_ERROR_MESSAGE)
                return self.state

        with self._lock:
            self._generation += 1
            self._state = replace(
                self._state,
                snapshot=snapshot,
                result=None,
                status_message=None,
                trigger_state=self._trigger_for(self._state.reference, snapshot),
            )
            logger.info(
                f"Snapshot captured {snapshot.width}x{snapshot.height} "
                f"(generation {self._generation})"
            )
            return self.state

    def submit_verify(self) -> Future:
        """Start verifying the current inputs on the background worker.

        Missing inputs are answered immediately with an INDETERMINATE result
        without touching the embedding engine.

        Returns:
            Future resolving to the VerificationResult.

        Raises:
            VerificationInProgressError: If a verification is already running.
            ModelNotReadyError: If the embedding engine is not initialized.
        """
        with self._lock:
            if self._pending is not None:
                raise VerificationInProgressError("A verification is already in progress")

            reference = self._state.reference
            snapshot = self._state.snapshot

            if reference is None or snapshot is None:
                result = self.verifier.verify(reference, snapshot)
                self._state = replace(self._state, result=result, status_message=None)
                future: Future = Future()
                future.set_result(result)
                return future

            self.verifier.require_ready()

            generation = self._generation
            future = self._executor.submit(self._run_verification, generation, reference, snapshot)
            self._pending = future
            self._state = replace(
                self._state,
                trigger_state=TriggerState.VERIFYING,
                status_message=VERIFYING_MESSAGE,
            )
            return future

    def on_verify(self, timeout: Optional[float] = None) -> AppState:
        """Verify the current inputs and wait for the outcome.

        Rejections (already verifying, models not loaded) are reported in the
        status message; they never raise.

        Args:
            timeout: Maximum seconds to wait; None waits until done.

        Returns:
            Updated AppState.
        """
        try:
            future = self.submit_verify()
        except VerificationInProgressError as e:
            logger.warning(f"Verify rejected: {e}")
            return self.state
        except ModelNotReadyError as e:
            logger.warning(f"Verify rejected: {e}")
            with self._lock:
                self._state = replace(self._state, status_message=MODEL_NOT_READY_MESSAGE)
                return self.state

        # Outcome is published to the state by the worker before the future resolves
        try:
            future.exception(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(f"Verification still running after {timeout}s")
        return self.state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_verification(
        self,
        generation: int,
        reference: ReferenceImage,
        snapshot: LiveSnapshot,
    ) -> VerificationResult:
        """Worker body: verify and publish the outcome."""
        try:
            result = self.verifier.verify(reference, snapshot)
        except ModelNotReadyError:
            self._finish(generation, None, MODEL_NOT_READY_MESSAGE)
            raise
        except VerificationInProgressError:
            self._finish(generation, None, IN_PROGRESS_MESSAGE)
            raise
        except Exception as e:
            logger.error(f"Unexpected verification failure: {e}", exc_info=True)
            result = VerificationResult.indeterminate(IndeterminateReason.VERIFICATION_ERROR)

        self._finish(generation, result, None)
        return result

    def _finish(
        self,
        generation: int,
        result: Optional[VerificationResult],
        status_message: Optional[str],
    ) -> None:
        """Publish a verification outcome unless its inputs went stale."""
        with self._lock:
            self._pending = None
            trigger = self._trigger_for(self._state.reference, self._state.snapshot)

            if generation != self._generation:
                logger.warning(
                    f"Discarding stale verification result {result!r}: inputs changed "
                    f"(generation {generation} -> {self._generation})"
                )
                status = self._state.status_message
                if status == VERIFYING_MESSAGE:
                    status = None
                self._state = replace(self._state, trigger_state=trigger, status_message=status)
                return

            self._state = replace(
                self._state,
                result=result,
                status_message=status_message,
                trigger_state=trigger,
            )

    def _trigger_for(
        self,
        reference: Optional[ReferenceImage],
        snapshot: Optional[LiveSnapshot],
    ) -> TriggerState:
        """Trigger state for the given inputs and the current in-flight status."""
        if self._pending is not None:
            return TriggerState.VERIFYING
        if reference is None or snapshot is None:
            return TriggerState.DISABLED
        return TriggerState.READY

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the camera and stop background workers."""
        try:
            self.controller.close()
        finally:
            if self._owns_executor:
                self._executor.shutdown(wait=True)
            if self._loader is not None:
                self._loader.shutdown(wait=True)
        logger.info("Verification session closed")

    def __enter__(self) -> VerificationSession:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit (releases camera and workers)."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        state = self.state
        return (
            f"VerificationSession(capture={state.capture_state.value}, "
            f"trigger={state.trigger_state.value}, "
            f"result={state.result!r})"
        )
