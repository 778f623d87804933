"""Core interfaces and data structures for the face verification pipeline.

This module defines the abstract interfaces (Protocols) and data classes
shared by the capture, snapshot and verification services. The services
depend on these abstractions rather than on a particular embedding library
or camera backend, so both can be swapped without touching the pipeline.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple, Union, runtime_checkable

import numpy as np

# Raw bytes, a data URI / file path string, or a filesystem path
ImageSource = Union[bytes, bytearray, str, Path]


@dataclass
class BBox:
    """Bounding box for a detected face.

    Attributes:
        x1: Left edge x-coordinate (pixels)
        y1: Top edge y-coordinate (pixels)
        x2: Right edge x-coordinate (pixels)
        y2: Bottom edge y-coordinate (pixels)
    """

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        """Get bounding box width in pixels."""
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        """Get bounding box height in pixels."""
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        """Get bounding box area in square pixels."""
        return self.width * self.height

    def clamp(self, img_width: int, img_height: int) -> BBox:
        """Clamp bounding box coordinates to image boundaries."""
        return BBox(
            x1=max(0, min(self.x1, img_width - 1)),
            y1=max(0, min(self.y1, img_height - 1)),
            x2=max(0, min(self.x2, img_width - 1)),
            y2=max(0, min(self.y2, img_height - 1)),
        )


@dataclass(eq=False)
class FaceDescriptor:
    """Embedding and landmarks extracted for the primary face of one image.

    Attributes:
        vector: Face embedding, shape [D], dtype float32. D is fixed per engine
                (128 for dlib, 512 for ArcFace).
        landmarks: Named landmark point sets, each of shape [N, 2] in absolute
                   pixel coordinates (e.g. "left_eye", "nose_tip").
        bbox: Bounding box of the face the descriptor belongs to
        score: Detection confidence score (0.0 to 1.0)
    """

    vector: np.ndarray
    landmarks: Dict[str, np.ndarray]
    bbox: BBox
    score: float = 1.0

    def __post_init__(self) -> None:
        """Validate descriptor data after initialization."""
        if not isinstance(self.vector, np.ndarray) or self.vector.ndim != 1:
            raise ValueError("vector must be a 1-D numpy array")
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Detection score must be in [0, 1], got {self.score}")

    @property
    def dimension(self) -> int:
        """Length of the embedding vector."""
        return int(self.vector.shape[0])

    def __repr__(self) -> str:
        """String representation of descriptor."""
        return (
            f"FaceDescriptor(dim={self.dimension}, bbox={self.bbox}, "
            f"score={self.score:.3f}, landmarks={sorted(self.landmarks)})"
        )


@dataclass(eq=False)
class ImageInput:
    """Opaque image handle fed to the verification engine.

    Handles compare by identity: a verification result belongs to the exact
    pair of handles that produced it.

    Attributes:
        source: Where the pixels came from (encoded bytes, data URI or path)
        image: Decoded BGR image [H, W, 3], or None when not decoded yet
        decode_error: Reason decoding failed, if it did
    """

    source: ImageSource
    image: Optional[np.ndarray] = None
    decode_error: Optional[str] = None

    @property
    def is_decoded(self) -> bool:
        """True when pixel data is available."""
        return self.image is not None


@dataclass(eq=False)
class ReferenceImage(ImageInput):
    """Reference face image supplied by the user via upload."""


@dataclass(eq=False)
class LiveSnapshot(ImageInput):
    """Still frame captured from the live camera stream.

    Attributes:
        width: Frame width in pixels (intrinsic stream resolution)
        height: Frame height in pixels
        captured_at: Capture time (seconds since epoch)
    """

    width: int = 0
    height: int = 0
    captured_at: float = field(default_factory=time.time)


class EngineStatus(str, Enum):
    """Initialization state of an embedding engine."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamConstraints:
    """Capture request parameters.

    Width and height are preferences; the device may deliver another size.
    """

    camera_id: int = 0
    facing: str = "user"
    preferred_width: int = 300
    preferred_height: int = 300


@runtime_checkable
class EmbeddingEngine(Protocol):
    """Protocol for face detection + landmark + descriptor extraction.

    An engine must be initialized (model weights loaded) before first use.
    """

    @property
    def status(self) -> EngineStatus:
        """Current initialization status."""
        ...

    @property
    def embedding_dim(self) -> int:
        """Dimension of the descriptor vectors this engine produces."""
        ...

    def initialize(self, model_location: Optional[Union[str, Path]] = None) -> EngineStatus:
        """Load model weights.

        Returns:
            EngineStatus.READY on success, EngineStatus.FAILED otherwise.
            Never raises.
        """
        ...

    def detect_primary_face(self, image_bgr: np.ndarray) -> Optional[FaceDescriptor]:
        """Detect the primary face and extract its descriptor.

        Args:
            image_bgr: Input image in BGR format, shape [H, W, 3]

        Returns:
            FaceDescriptor of the best face, or None if no face was found.
            When several faces are present only the engine's best one is
            returned.
        """
        ...

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Non-negative distance between two descriptor vectors."""
        ...


@runtime_checkable
class VideoStream(Protocol):
    """Protocol for an acquired live video stream."""

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read the current frame.

        Returns:
            Tuple of (success, frame):
                - success: True if frame read successfully
                - frame: BGR image [H, W, 3] if success, None otherwise
        """
        ...

    def stop(self) -> None:
        """Stop the stream and release the underlying device."""
        ...

    @property
    def is_active(self) -> bool:
        """True until stop() has been called or the device went away."""
        ...


@runtime_checkable
class CaptureDevice(Protocol):
    """Protocol for the capture-device capability."""

    def request_stream(self, constraints: StreamConstraints) -> VideoStream:
        """Acquire a live video stream.

        Raises:
            CameraAccessError: If access is denied or the device fails.
        """
        ...


@runtime_checkable
class DisplaySink(Protocol):
    """Protocol for the presentation-side consumer of the live stream."""

    def attach(self, stream: VideoStream) -> None:
        """Start rendering the given stream."""
        ...

    def detach(self) -> None:
        """Stop rendering the current stream."""
        ...
