"""Live face verification against a reference image.

Subpackages:
- core: config, logging, errors, interfaces, image helpers, webcam device
- backends: embedding engines (dlib, InsightFace)
- services: capture controller, snapshotter, verification engine, session
"""

__version__ = "0.1.0"
