"""dlib backend (face_recognition library).

Components:
- DlibEngine: HOG/CNN detection, 68-point landmarks and 128-D descriptors
"""

from faceverify.backends.dlib.engine import DlibEngine

__all__ = [
    "DlibEngine",
]
