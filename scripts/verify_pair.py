#!/usr/bin/env python3
"""Verify that two image files show the same person.

The first image plays the role of the uploaded reference, the second the
live snapshot.

Usage:
    python scripts/verify_pair.py --reference id_photo.jpg --probe selfie.jpg
    python scripts/verify_pair.py --reference a.jpg --probe b.jpg --backend insightface --threshold 1.1
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from faceverify.backends import SUPPORTED_BACKENDS, create_engine
from faceverify.core.config import Config
from faceverify.core.exceptions import ImageDecodeError, ModelNotReadyError
from faceverify.core.interfaces import EngineStatus, LiveSnapshot, ReferenceImage
from faceverify.core.logging_config import setup_logging
from faceverify.core.utils import decode_image
from faceverify.services.verification import VerificationEngine

logger = setup_logging(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Verify a probe face image against a reference image",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--reference",
        type=str,
        required=True,
        help="Path to the reference image",
    )

    parser.add_argument(
        "--probe",
        type=str,
        required=True,
        help="Path to the image to verify",
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


def print_section(title: str) -> None:
    """Print a section divider."""
    print()
    print("=" * 70)
    print(f"  {title}")
    print("=" * 70)


def load_image(path: Path, kind: type[ReferenceImage] | type[LiveSnapshot]):
    """Read an image file into a verification input handle."""
    image = decode_image(path)
    if kind is LiveSnapshot:
        h, w = image.shape[:2]
        return LiveSnapshot(source=path, image=image, width=w, height=h)
    return ReferenceImage(source=path, image=image)


def main() -> int:
    """Main function."""
    args = parse_args()

    config = Config.from_env()
    backend = args.backend or config.backend
    threshold = args.threshold if args.threshold is not None else config.threshold

    print_section("Face Verification - Image Pair")
    print(f"Reference:     {args.reference}")
    print(f"Probe:         {args.probe}")
    print(f"Backend:       {backend}")
    print(f"Threshold:     {threshold:.2f}")

    # Step 1: Load images
    print_section("Step 1: Loading Images")
    try:
        reference = load_image(Path(args.reference), ReferenceImage)
        probe = load_image(Path(args.probe), LiveSnapshot)
    except ImageDecodeError as e:
        logger.error(f"Failed to read image: {e}")
        print(f"Error: {e}")
        return 2
    print("Images loaded")

    # Step 2: Load models
    print_section("Step 2: Loading Models")
    engine = create_engine(backend, config, initialize=True)
    if engine.status != EngineStatus.READY:
        print(f"Error: {backend} models could not be loaded (see log)")
        return 2
    print(f"Engine loaded: {engine}")

    # Step 3: Verify
    print_section("Step 3: Verification Result")
    verifier = VerificationEngine(engine, threshold=threshold)
    try:
        result = verifier.verify(reference, probe)
    except ModelNotReadyError as e:
        print(f"Error: {e}")
        return 2

    print(result.message)
    if result.distance is not None:
        print(f"Distance:      {result.distance:.4f}")
    print()

    logger.info(f"Verification complete: {result!r}")
    return 0 if result.is_match else 1


if __name__ == "__main__":
    sys.exit(main())
