"""High-level services for the face verification pipeline.

This package contains the services that manage the camera, take snapshots,
run the match decision and expose the workflow to a presentation layer.
"""

from faceverify.services.capture import CaptureDeviceController, CaptureSession, CaptureState
from faceverify.services.session import AppState, TriggerState, VerificationSession
from faceverify.services.snapshot import FrameSnapshotter
from faceverify.services.verification import (
    IndeterminateReason,
    Outcome,
    VerificationEngine,
    VerificationResult,
)

__all__ = [
    "CaptureDeviceController",
    "CaptureSession",
    "CaptureState",
    "FrameSnapshotter",
    "VerificationEngine",
    "VerificationResult",
    "Outcome",
    "IndeterminateReason",
    "VerificationSession",
    "AppState",
    "TriggerState",
]
