from __future__ import annotations

import argparse
import logging
import os
import platform
import sys
import time

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from jewelry_tryon.config import PlacementSettings, load_catalog  # noqa: E402
from jewelry_tryon.detector import MediaPipeLandmarkDetector  # noqa: E402
from jewelry_tryon.drawing import draw_anchors, draw_text  # noqa: E402
from jewelry_tryon.pipeline import PlacementPipeline  # noqa: E402

DEFAULT_CATALOG = os.path.join(os.path.dirname(__file__), "sample_catalog.json")


def main() -> int:
    ap = argparse.ArgumentParser(description="Live webcam jewelry placement preview.")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1280, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=720, help="Capture height (best effort)")
    ap.add_argument("--catalog", default=DEFAULT_CATALOG, help="Jewelry catalog JSON")
    ap.add_argument("--items", nargs="+", help="Catalog ids to try on (default: every item)")
    ap.add_argument("--alpha", type=float, default=0.7, help="Smoothing factor, weight of the previous frame")
    ap.add_argument("--stale-frames", type=int, default=10, help="Missed frames before a transform is stale")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = ap.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    catalog = load_catalog(args.catalog)
    slots = [c for c in catalog if not args.items or c.item_id in args.items]
    categories = {c.category for c in slots}

    pipeline = PlacementPipeline(PlacementSettings(smoothing_alpha=args.alpha, stale_after_frames=args.stale_frames))
    pipeline.configure(slots)

    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(args.camera, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {args.camera}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
        )

    cap.set(cv2.CAP_PROP_FRAME_WIDTH, args.width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, args.height)

    with MediaPipeLandmarkDetector(
        detect_face=any(c.anchored_on_face for c in categories),
        detect_hands=any(not c.anchored_on_face for c in categories),
    ) as detector, pipeline:
        while True:
            ok, frame = cap.read()
            if not ok:
                break

            if not args.no_mirror:
                frame = cv2.flip(frame, 1)

            detections = detector.detect(frame)
            transforms = pipeline.process(detections, time.monotonic())
            frame = draw_anchors(frame, transforms)

            draw_text(frame, f"items: {len(slots)} | anchors: {len(transforms)} | r reset, q quit", (12, 28))
            cv2.imshow("jewelry try-on", frame)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            if key == ord("r"):
                pipeline.reset()

    cap.release()
    cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
