"""Core modules for the face verification pipeline.

This package contains the configuration, logging, error taxonomy, interfaces
and image helpers shared by the services and backends.
"""

from faceverify.core.config import Config, get_config
from faceverify.core.exceptions import (
    CameraAccessError,
    CaptureStateError,
    FaceVerifyError,
    ImageDecodeError,
    MissingInputError,
    ModelNotReadyError,
    NoFaceDetectedError,
    VerificationError,
    VerificationInProgressError,
)
from faceverify.core.interfaces import (
    BBox,
    CaptureDevice,
    DisplaySink,
    EmbeddingEngine,
    EngineStatus,
    FaceDescriptor,
    ImageInput,
    LiveSnapshot,
    ReferenceImage,
    StreamConstraints,
    VideoStream,
)
from faceverify.core.logging_config import setup_logging, get_logger
from faceverify.core.utils import (
    compute_confidence,
    decode_data_uri,
    decode_image,
    encode_jpeg,
    ensure_decoded,
    euclidean_distance,
)
from faceverify.core.video_io import WebcamDevice, WebcamStream

__all__ = [
    # Config
    "Config",
    "get_config",
    # Exceptions
    "FaceVerifyError",
    "ModelNotReadyError",
    "CameraAccessError",
    "CaptureStateError",
    "MissingInputError",
    "NoFaceDetectedError",
    "VerificationError",
    "ImageDecodeError",
    "VerificationInProgressError",
    # Interfaces
    "BBox",
    "FaceDescriptor",
    "ImageInput",
    "ReferenceImage",
    "LiveSnapshot",
    "EngineStatus",
    "StreamConstraints",
    "EmbeddingEngine",
    "VideoStream",
    "CaptureDevice",
    "DisplaySink",
    # Logging
    "setup_logging",
    "get_logger",
    # Utils
    "compute_confidence",
    "decode_data_uri",
    "decode_image",
    "encode_jpeg",
    "ensure_decoded",
    "euclidean_distance",
    # Video
    "WebcamDevice",
    "WebcamStream",
]
