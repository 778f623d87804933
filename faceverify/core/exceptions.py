"""Exception hierarchy for the face verification pipeline."""


class FaceVerifyError(Exception):
    """Base exception for the face verification system."""


class ModelNotReadyError(FaceVerifyError):
    """Raised when the embedding engine is used before its models are loaded."""


class CameraAccessError(FaceVerifyError):
    """Raised when the capture device is denied or fails to deliver frames."""


class CaptureStateError(FaceVerifyError):
    """Raised when a snapshot is requested while the camera is not streaming."""


class MissingInputError(FaceVerifyError):
    """Raised when verification is requested before both images exist."""


class NoFaceDetectedError(FaceVerifyError):
    """Raised when no face can be found in one of the images."""


class VerificationError(FaceVerifyError):
    """Raised when decoding or extraction fails during verification."""


class ImageDecodeError(VerificationError):
    """Raised when an image source cannot be decoded into pixels."""


class VerificationInProgressError(FaceVerifyError):
    """Raised when verify is triggered while another verification is running."""
