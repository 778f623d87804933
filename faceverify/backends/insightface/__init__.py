"""InsightFace backend.

Components:
- InsightFaceEngine: SCRFD detection, 5-point landmarks and 512-D ArcFace descriptors
"""

from faceverify.backends.insightface.engine import InsightFaceEngine

__all__ = [
    "InsightFaceEngine",
]
