"""InsightFace embedding engine.

SCRFD detection, 5-point landmarks and 512-D ArcFace descriptors through
InsightFace's FaceAnalysis API.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np

from faceverify.core.config import Config
from faceverify.core.interfaces import BBox, EngineStatus, FaceDescriptor
from faceverify.core.logging_config import get_logger
from faceverify.core.utils import euclidean_distance

logger = get_logger(__name__)


class InsightFaceEngine:
    """Embedding engine backed by InsightFace (SCRFD + ArcFace).

    Descriptors are L2-normalized 512-D vectors. Euclidean distances between
    unit vectors lie in [0, 2], so a threshold above 0.6 is usually wanted.

    Attributes:
        model_pack: InsightFace model pack name
        ctx_id: Compute context (-1=CPU, 0+=GPU)
        det_size: Detection input size
        embedding_dim: Dimension of output embeddings (512 for ArcFace)

    Example:
        >>> engine = InsightFaceEngine(model_pack="buffalo_l")
        >>> engine.initialize("models")
        >>> descriptor = engine.detect_primary_face(frame)
    """

    def __init__(
        self,
        model_pack: str = "buffalo_l",
        ctx_id: int = -1,
        det_size: tuple[int, int] = (640, 640),
    ):
        self.model_pack = model_pack
        self.ctx_id = ctx_id
        self.det_size = det_size
        self.embedding_dim = 512

        self.app = None
        self._status = EngineStatus.NOT_LOADED

    @classmethod
    def from_config(cls, config: Config) -> InsightFaceEngine:
        """Create an engine from application config."""
        return cls(model_pack=config.model_pack, ctx_id=config.ctx_id)

    @property
    def status(self) -> EngineStatus:
        """Current initialization status."""
        return self._status

    def initialize(self, model_location: Optional[Union[str, Path]] = None) -> EngineStatus:
        """Load detection and recognition models.

        Args:
            model_location: InsightFace model root. Defaults to ~/.insightface.

        Returns:
            EngineStatus.READY or EngineStatus.FAILED.
        """
        if self._status == EngineStatus.READY:
            return self._status

        self._status = EngineStatus.LOADING
        logger.info(
            f"Initializing InsightFace engine (model={self.model_pack}, "
            f"device={'GPU:' + str(self.ctx_id) if self.ctx_id >= 0 else 'CPU'}, "
            f"det_size={self.det_size})"
        )

        try:
            from insightface.app import FaceAnalysis

            kwargs = {}
            if model_location is not None:
                kwargs["root"] = str(model_location)

            app = FaceAnalysis(
                name=self.model_pack,
                providers=(
                    ["CUDAExecutionProvider", "CPUExecutionProvider"]
                    if self.ctx_id >= 0
                    else ["CPUExecutionProvider"]
                ),
                **kwargs,
            )
            app.prepare(ctx_id=self.ctx_id, det_size=self.det_size)
        except Exception as e:
            logger.error(f"Failed to initialize InsightFace engine: {e}", exc_info=True)
            self._status = EngineStatus.FAILED
            return self._status

        self.app = app
        self._status = EngineStatus.READY
        logger.info("InsightFace engine initialized successfully")
        return self._status

    def detect_primary_face(self, image_bgr: np.ndarray) -> Optional[FaceDescriptor]:
        """Detect the most confident face and extract its descriptor.

        Args:
            image_bgr: Input image in BGR format, shape [H, W, 3]

        Returns:
            FaceDescriptor for the best face, or None if no face was found.

        Raises:
            RuntimeError: If called before initialize() succeeded.
            ValueError: If the image is empty.
        """
        if self.app is None:
            raise RuntimeError("InsightFace engine not initialized. Call initialize() first.")

        if image_bgr is None or image_bgr.size == 0:
            raise ValueError("Empty image provided")

        faces = self.app.get(image_bgr)

        if not faces:
            logger.debug("No face detected")
            return None

        if len(faces) > 1:
            logger.debug(f"Detected {len(faces)} faces, using the most confident")

        face = max(faces, key=lambda f: float(f.det_score))

        embedding = getattr(face, "normed_embedding", None)
        if embedding is None:
            raise RuntimeError("Recognition model produced no embedding")

        vector = np.asarray(embedding, dtype=np.float32).flatten()
        if vector.shape[0] != self.embedding_dim:
            raise RuntimeError(
                f"Unexpected embedding dimension {vector.shape[0]}, "
                f"expected {self.embedding_dim}"
            )

        landmarks = {}
        if getattr(face, "kps", None) is not None:
            # Order: left_eye, right_eye, nose, left_mouth, right_mouth
            landmarks["five_point"] = np.asarray(face.kps, dtype=np.float32)
        if getattr(face, "landmark_2d_106", None) is not None:
            landmarks["dense_106"] = np.asarray(face.landmark_2d_106, dtype=np.float32)

        x1, y1, x2, y2 = np.asarray(face.bbox).astype(int)
        h, w = image_bgr.shape[:2]
        bbox = BBox(x1=int(x1), y1=int(y1), x2=int(x2), y2=int(y2)).clamp(w, h)

        score = float(np.clip(face.det_score, 0.0, 1.0))

        return FaceDescriptor(vector=vector, landmarks=landmarks, bbox=bbox, score=score)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Euclidean distance between two 512-D descriptors."""
        return euclidean_distance(a, b)

    def __repr__(self) -> str:
        """String representation of engine."""
        device = "GPU" if self.ctx_id >= 0 else "CPU"
        return (
            f"InsightFaceEngine(model='{self.model_pack}', device={device}, "
            f"status={self._status.value})"
        )
