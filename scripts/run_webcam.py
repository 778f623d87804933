#!/usr/bin/env python3
"""Interactive face verification via webcam.

Loads a reference image, shows the live camera and verifies a captured
snapshot against the reference.

Usage:
    python scripts/run_webcam.py --reference id_photo.jpg
    python scripts/run_webcam.py --reference id_photo.jpg --camera 1 --backend insightface

Controls:
    s     - Start (or restart) camera
    SPACE - Capture snapshot
    v     - Verify snapshot against reference
    x     - Stop camera
    q/ESC - Quit
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from faceverify.backends import SUPPORTED_BACKENDS, create_engine
from faceverify.core.config import Config
from faceverify.core.exceptions import ModelNotReadyError, VerificationInProgressError
from faceverify.core.interfaces import VideoStream
from faceverify.core.logging_config import setup_logging
from faceverify.core.video_io import WebcamDevice
from faceverify.services.capture import CaptureDeviceController
from faceverify.services.session import AppState, VerificationSession
from faceverify.services.verification import VerificationEngine

logger = setup_logging(__name__)

WINDOW_NAME = "Face Verification"


class WindowSink:
    """Display sink rendering the bound stream into an OpenCV window."""

    def __init__(self, window_name: str = WINDOW_NAME):
        self.window_name = window_name
        self.stream: Optional[VideoStream] = None

    def attach(self, stream: VideoStream) -> None:
        self.stream = stream

    def detach(self) -> None:
        self.stream = None

    def render(self, state: AppState) -> None:
        """Show the live frame (or a blank canvas) with status text."""
        frame = None
        if self.stream is not None:
            success, frame = self.stream.read()
            if not success:
                frame = None
        if frame is None:
            frame = np.zeros((300, 400, 3), dtype=np.uint8)

        lines = [
            f"camera: {state.capture_state.value}  verify: {state.trigger_state.value}",
            f"reference: {'yes' if state.reference is not None else 'no'}  "
            f"snapshot: {'yes' if state.snapshot is not None else 'no'}",
        ]
        if state.display_message:
            lines.append(state.display_message)

        color = (0, 255, 0) if state.result is not None and state.result.is_match else (0, 0, 255)
        for i, line in enumerate(lines):
            cv2.putText(
                frame, line, (10, 20 + 20 * i),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, color if i == 2 else (255, 255, 255), 1, cv2.LINE_AA,
            )

        cv2.imshow(self.window_name, frame)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Interactive face verification via webcam",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--reference",
        type=str,
        required=True,
        help="Path to the reference image",
    )

    parser.add_argument(
        "--camera",
        type=int,
        default=None,
        help="Camera device ID (overrides .env CAMERA_ID value)",
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=SUPPORTED_BACKENDS,
        default=None,
        help="Embedding backend (overrides .env BACKEND value)",
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Distance threshold (overrides .env MATCH_THRESHOLD value)",
    )

    return parser.parse_args()


def main() -> None:
    """Main function."""
    args = parse_args()

    config = Config.from_env()
    if args.camera is not None:
        config = replace(config, camera_id=args.camera)
    backend = args.backend or config.backend
    threshold = args.threshold if args.threshold is not None else config.threshold

    engine = create_engine(backend, config)
    verifier = VerificationEngine(engine, threshold=threshold)

    sink = WindowSink()
    controller = CaptureDeviceController.from_config(WebcamDevice(), config, sink=sink)

    with VerificationSession.from_config(verifier, controller, config) as session:
        session.load_models(config.models_dir)
        session.on_reference_image_selected(Path(args.reference))
        session.on_start_camera()

        logger.info("Controls: s=start camera, SPACE=capture, v=verify, x=stop camera, q=quit")

        while True:
            sink.render(session.state)
            key = cv2.waitKey(30) & 0xFF

            if key in (ord("q"), 27):
                break
            elif key == ord("s"):
                session.on_start_camera()
            elif key == ord("x"):
                session.on_stop_camera()
            elif key == 32:
                session.on_capture()
            elif key == ord("v"):
                try:
                    session.submit_verify()
                except (VerificationInProgressError, ModelNotReadyError) as e:
                    logger.warning(f"Verify rejected: {e}")

    cv2.destroyAllWindows()
    logger.info("Face verification stopped")


if __name__ == "__main__":
    main()
