"""Verification service comparing a reference image with a live snapshot.

Pipeline: decode → detect primary face + descriptor (each image) →
Euclidean distance → threshold decision.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from faceverify.core.config import DEFAULT_THRESHOLD
from faceverify.core.exceptions import (
    MissingInputError,
    ModelNotReadyError,
    NoFaceDetectedError,
    VerificationError,
    VerificationInProgressError,
)
from faceverify.core.interfaces import (
    EmbeddingEngine,
    EngineStatus,
    FaceDescriptor,
    ImageInput,
    LiveSnapshot,
    ReferenceImage,
)
from faceverify.core.logging_config import get_logger
from faceverify.core.utils import compute_confidence, ensure_decoded

logger = get_logger(__name__)


class Outcome(str, Enum):
    """Verification outcome."""

    MATCH = "match"
    NO_MATCH = "no_match"
    INDETERMINATE = "indeterminate"


class IndeterminateReason(str, Enum):
    """Why a comparison could not be performed."""

    MISSING_INPUT = "missing-input"
    NO_FACE_DETECTED = "no-face-detected"
    VERIFICATION_ERROR = "verification-error"


MESSAGES = {
    Outcome.NO_MATCH: "No Match - Different persons detected",
    IndeterminateReason.MISSING_INPUT: "Please upload an image and capture a camera image first.",
    IndeterminateReason.NO_FACE_DETECTED: (
        "Face not detected in one or both images. Please try again with clearer images."
    ),
    IndeterminateReason.VERIFICATION_ERROR: "Error occurred during verification. Please try again.",
}


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one reference/snapshot comparison.

    Attributes:
        outcome: MATCH, NO_MATCH or INDETERMINATE
        confidence: Match confidence in percent (MATCH only)
        distance: Descriptor distance, when one was computed
        reason: Why the comparison was not performed (INDETERMINATE only)

    Example:
        >>> result = VerificationResult.match(distance=0.3, threshold=0.6)
        >>> result.message
        'Match! Confidence: 50.0%'
    """

    outcome: Outcome
    confidence: Optional[float] = None
    distance: Optional[float] = None
    reason: Optional[IndeterminateReason] = None

    @classmethod
    def match(cls, distance: float, threshold: float) -> VerificationResult:
        """Build a MATCH result with confidence derived from the distance."""
        return cls(
            outcome=Outcome.MATCH,
            confidence=compute_confidence(distance, threshold),
            distance=distance,
        )

    @classmethod
    def no_match(cls, distance: float) -> VerificationResult:
        """Build a NO_MATCH result."""
        return cls(outcome=Outcome.NO_MATCH, distance=distance)

    @classmethod
    def indeterminate(cls, reason: IndeterminateReason) -> VerificationResult:
        """Build an INDETERMINATE result."""
        return cls(outcome=Outcome.INDETERMINATE, reason=reason)

    @property
    def is_match(self) -> bool:
        """True for a MATCH outcome."""
        return self.outcome == Outcome.MATCH

    @property
    def message(self) -> str:
        """Human-readable status line for the presentation layer."""
        if self.outcome == Outcome.MATCH:
            return f"Match! Confidence: {self.confidence:.1f}%"
        if self.outcome == Outcome.NO_MATCH:
            return MESSAGES[Outcome.NO_MATCH]
        return MESSAGES[self.reason]

    def __repr__(self) -> str:
        """String representation."""
        if self.outcome == Outcome.MATCH:
            return f"VerificationResult(match, confidence={self.confidence:.1f}, distance={self.distance:.4f})"
        if self.outcome == Outcome.NO_MATCH:
            return f"VerificationResult(no_match, distance={self.distance:.4f})"
        return f"VerificationResult(indeterminate, reason={self.reason.value})"


class VerificationEngine:
    """Match decision pipeline over an EmbeddingEngine.

    Only one verify() call may be in flight at a time; a concurrent call is
    rejected with VerificationInProgressError rather than queued. Failures
    inside the pipeline become INDETERMINATE results and never escape.

    Attributes:
        engine: Embedding engine used for both images
        threshold: Maximum descriptor distance accepted as a match

    Example:
        >>> verifier = VerificationEngine(engine, threshold=0.6)
        >>> result = verifier.verify(reference, snapshot)
        >>> print(result.message)
    """

    def __init__(self, engine: EmbeddingEngine, threshold: float = DEFAULT_THRESHOLD):
        """Initialize verification engine.

        Args:
            engine: Initialized (or initializing) embedding engine
            threshold: Distance threshold; distance < threshold is a match

        Raises:
            ValueError: If threshold is not positive.
        """
        if threshold <= 0.0:
            raise ValueError(f"Threshold must be > 0, got {threshold}")

        self.engine = engine
        self.threshold = threshold
        self._in_flight = threading.Lock()

        logger.info(f"Initialized VerificationEngine with threshold={threshold:.2f}")

    @property
    def is_busy(self) -> bool:
        """True while a verification is running."""
        return self._in_flight.locked()

    @property
    def is_ready(self) -> bool:
        """True once the embedding engine has loaded its models."""
        return self.engine.status == EngineStatus.READY

    def require_ready(self) -> None:
        """Raise ModelNotReadyError unless the embedding engine is ready."""
        if not self.is_ready:
            raise ModelNotReadyError(
                f"Embedding engine is {self.engine.status.value}; models must be loaded before verifying"
            )

    def verify(
        self,
        reference: Optional[ReferenceImage],
        snapshot: Optional[LiveSnapshot],
    ) -> VerificationResult:
        """Compare the reference image with the live snapshot.

        Args:
            reference: Uploaded reference image, or None if not provided yet
            snapshot: Captured live snapshot, or None if not captured yet

        Returns:
            VerificationResult (MATCH, NO_MATCH or INDETERMINATE).

        Raises:
            ModelNotReadyError: If the embedding engine is not initialized.
            VerificationInProgressError: If another verification is running.
        """
        try:
            self._require_inputs(reference, snapshot)
        except MissingInputError as e:
            logger.warning(f"Verification rejected: {e}")
            return VerificationResult.indeterminate(IndeterminateReason.MISSING_INPUT)

        self.require_ready()

        if not self._in_flight.acquire(blocking=False):
            raise VerificationInProgressError("A verification is already in progress")

        try:
            return self._run(reference, snapshot)
        finally:
            self._in_flight.release()

    def _run(self, reference: ReferenceImage, snapshot: LiveSnapshot) -> VerificationResult:
        """Run extraction and decision for a validated pair."""
        try:
            reference_desc = self._extract(reference, "reference")
            snapshot_desc = self._extract(snapshot, "snapshot")
            distance = self.engine.distance(reference_desc.vector, snapshot_desc.vector)
        except NoFaceDetectedError as e:
            logger.info(f"Verification indeterminate: {e}")
            return VerificationResult.indeterminate(IndeterminateReason.NO_FACE_DETECTED)
        except Exception as e:
            logger.error(f"Error during face verification: {e}", exc_info=True)
            return VerificationResult.indeterminate(IndeterminateReason.VERIFICATION_ERROR)

        return self.decide(distance)

    def decide(self, distance: float) -> VerificationResult:
        """Apply the threshold to a descriptor distance.

        Args:
            distance: Non-negative descriptor distance

        Returns:
            MATCH if distance < threshold, otherwise NO_MATCH.
        """
        if distance < self.threshold:
            result = VerificationResult.match(distance, self.threshold)
        else:
            result = VerificationResult.no_match(distance)

        logger.info(f"Verification finished: {result!r} (threshold={self.threshold:.2f})")
        return result

    def _extract(self, item: ImageInput, label: str) -> FaceDescriptor:
        """Decode an image handle and extract its primary face descriptor."""
        try:
            image = ensure_decoded(item)
        except VerificationError:
            raise
        except Exception as e:
            raise VerificationError(f"Could not decode {label} image: {e}") from e

        descriptor = self.engine.detect_primary_face(image)
        if descriptor is None:
            raise NoFaceDetectedError(f"No face detected in the {label} image")

        logger.debug(f"Extracted {label} descriptor: {descriptor!r}")
        return descriptor

    @staticmethod
    def _require_inputs(
        reference: Optional[ReferenceImage],
        snapshot: Optional[LiveSnapshot],
    ) -> None:
        """Raise MissingInputError unless both inputs are present."""
        missing = [
            name
            for name, item in (("reference image", reference), ("live snapshot", snapshot))
            if item is None
        ]
        if missing:
            raise MissingInputError(f"Missing {' and '.join(missing)}")

    def __repr__(self) -> str:
        """String representation."""
        return f"VerificationEngine(threshold={self.threshold:.2f}, engine={self.engine!r})"
