"""Dlib embedding engine using the face_recognition library.

This module provides face detection, 68-point landmarks and 128-D descriptors
using dlib's HOG/CNN detector and ResNet-34 model via face_recognition.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional, Union

import cv2
import numpy as np

from faceverify.core.interfaces import BBox, EngineStatus, FaceDescriptor
from faceverify.core.logging_config import get_logger
from faceverify.core.utils import euclidean_distance

logger = get_logger(__name__)


class DlibEngine:
    """Embedding engine backed by dlib through face_recognition.

    The face_recognition package loads its bundled model weights when it is
    first imported, so initialize() performs that import and reports the
    outcome instead of raising.

    Descriptors are the raw dlib encodings (not L2-normalized), for which a
    Euclidean distance of 0.6 is the usual same-person threshold.

    Attributes:
        model: Detection model ("hog" or "cnn")
        upsample: Number of times to upsample image (higher = detect smaller faces)
        num_jitters: Number of re-samples when computing the encoding
        embedding_dim: Dimension of output descriptors (128 for dlib)

    Example:
        >>> engine = DlibEngine(model="hog")
        >>> engine.initialize()
        >>> descriptor = engine.detect_primary_face(frame)
        >>> if descriptor is not None:
        ...     print(descriptor.vector.shape)
        (128,)
    """

    def __init__(
        self,
        model: Literal["hog", "cnn"] = "hog",
        upsample: int = 1,
        num_jitters: int = 1,
    ):
        """Initialize dlib engine settings (models are loaded by initialize()).

        Args:
            model: Detection model to use.
                   "hog" - Histogram of Oriented Gradients (faster, CPU-friendly)
                   "cnn" - Convolutional Neural Network (more accurate, GPU preferred)
            upsample: Number of times to upsample image before detection.
            num_jitters: Number of times to re-sample the face when encoding.
        """
        if model not in ("hog", "cnn"):
            raise ValueError(f"model must be 'hog' or 'cnn', got '{model}'")

        self.model = model
        self.upsample = upsample
        self.num_jitters = num_jitters
        self.embedding_dim = 128

        self._fr = None
        self._status = EngineStatus.NOT_LOADED

    @property
    def status(self) -> EngineStatus:
        """Current initialization status."""
        return self._status

    def initialize(self, model_location: Optional[Union[str, Path]] = None) -> EngineStatus:
        """Load dlib models by importing face_recognition.

        Args:
            model_location: Unused; weights come from face_recognition_models.

        Returns:
            EngineStatus.READY or EngineStatus.FAILED.
        """
        if self._status == EngineStatus.READY:
            return self._status

        self._status = EngineStatus.LOADING
        logger.info(
            f"Initializing dlib engine (model={self.model}, upsample={self.upsample}, "
            f"num_jitters={self.num_jitters})"
        )
        if model_location is not None:
            logger.debug(f"Ignoring model location {model_location}; using bundled dlib weights")

        try:
            import face_recognition

            self._fr = face_recognition
        except Exception as e:
            logger.error(f"Failed to load dlib models: {e}", exc_info=True)
            self._status = EngineStatus.FAILED
            return self._status

        self._status = EngineStatus.READY
        logger.info("Dlib engine initialized successfully")
        return self._status

    def detect_primary_face(self, image_bgr: np.ndarray) -> Optional[FaceDescriptor]:
        """Detect the largest face and extract its landmarks and descriptor.

        Args:
            image_bgr: Input image in BGR format (OpenCV convention), shape [H, W, 3]

        Returns:
            FaceDescriptor for the largest face, or None if no face was found.

        Raises:
            RuntimeError: If called before initialize() succeeded.
            ValueError: If the image is empty or not 3-channel.
        """
        if self._fr is None:
            raise RuntimeError("Dlib engine not initialized. Call initialize() first.")

        if image_bgr is None or image_bgr.size == 0:
            raise ValueError("Empty image provided")

        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise ValueError(f"Expected 3-channel image, got shape {image_bgr.shape}")

        # face_recognition expects RGB
        image_rgb = cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)

        # Returns list of tuples: (top, right, bottom, left)
        face_locations = self._fr.face_locations(
            image_rgb,
            number_of_times_to_upsample=self.upsample,
            model=self.model,
        )

        if not face_locations:
            logger.debug(f"No face detected (model={self.model})")
            return None

        if len(face_locations) > 1:
            logger.debug(f"Detected {len(face_locations)} faces, using the largest")

        # dlib exposes no confidence scores, so the largest face is the primary one
        primary = max(face_locations, key=lambda loc: (loc[2] - loc[0]) * (loc[1] - loc[3]))
        top, right, bottom, left = primary

        encodings = self._fr.face_encodings(
            image_rgb,
            known_face_locations=[primary],
            num_jitters=self.num_jitters,
        )
        if not encodings:
            logger.debug("Face located but no encoding could be computed")
            return None

        vector = np.asarray(encodings[0], dtype=np.float32)
        if vector.shape[0] != self.embedding_dim:
            raise RuntimeError(
                f"Unexpected embedding dimension {vector.shape[0]}, "
                f"expected {self.embedding_dim}"
            )

        landmark_sets = self._fr.face_landmarks(image_rgb, face_locations=[primary])
        landmarks = {}
        if landmark_sets:
            landmarks = {
                name: np.asarray(points, dtype=np.float32)
                for name, points in landmark_sets[0].items()
            }

        h, w = image_bgr.shape[:2]
        bbox = BBox(x1=left, y1=top, x2=right, y2=bottom).clamp(w, h)

        return FaceDescriptor(vector=vector, landmarks=landmarks, bbox=bbox, score=1.0)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Euclidean distance between two 128-D descriptors."""
        return euclidean_distance(a, b)

    def __repr__(self) -> str:
        """String representation of engine."""
        return (
            f"DlibEngine(model='{self.model}', upsample={self.upsample}, "
            f"num_jitters={self.num_jitters}, status={self._status.value})"
        )
