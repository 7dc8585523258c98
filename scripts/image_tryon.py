from __future__ import annotations

import argparse
import logging
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from jewelry_tryon.config import load_catalog  # noqa: E402
from jewelry_tryon.detector import MediaPipeLandmarkDetector  # noqa: E402
from jewelry_tryon.drawing import draw_anchors, draw_keypoints  # noqa: E402
from jewelry_tryon.measurements import face_size, hand_measurements  # noqa: E402
from jewelry_tryon.pipeline import PlacementPipeline  # noqa: E402
from jewelry_tryon.types import FaceDetection, HandDetection  # noqa: E402

DEFAULT_CATALOG = os.path.join(os.path.dirname(__file__), "sample_catalog.json")


def main() -> int:
    ap = argparse.ArgumentParser(description="Place jewelry anchors on a single photo.")
    ap.add_argument("--image", required=True, help="Path to input image")
    ap.add_argument("--out", required=True, help="Path to output image (annotated)")
    ap.add_argument("--catalog", default=DEFAULT_CATALOG, help="Jewelry catalog JSON")
    ap.add_argument("--items", nargs="+", help="Catalog ids to try on (default: every item)")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = ap.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    frame = cv2.imread(args.image)
    if frame is None:
        raise RuntimeError(f"Could not read image: {args.image}")

    slots = [c for c in load_catalog(args.catalog) if not args.items or c.item_id in args.items]
    pipeline = PlacementPipeline()
    pipeline.configure(slots)

    with MediaPipeLandmarkDetector(static_image_mode=True) as detector:
        detections = detector.detect(frame) or []

    transforms = pipeline.process(detections, 0.0)
    for det in detections:
        frame = draw_keypoints(frame, det.keypoints)
    out = draw_anchors(frame, transforms)

    ok = cv2.imwrite(args.out, out)
    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"detections: {len(detections)} | anchors: {len(transforms)}")
    for t in transforms:
        p = t.position
        print(
            f"{t.slot.value:>14} item={t.item_id} pos=({p.x:.3f}, {p.y:.3f}) "
            f"scale={t.scale_factor:.3f} rot={t.rotation_degrees:.1f}"
        )
    for det in detections:
        if isinstance(det, FaceDetection) and det.landmarks:
            size = face_size(det.landmarks)
            print(f"Face: width={size.width:.3f} height={size.height:.3f}")
        if isinstance(det, HandDetection):
            m = hand_measurements(det.keypoints)
            if m is not None:
                hand = det.handedness.value if det.handedness else "Hand"
                print(f"{hand}: palm={m.palm_width:.3f} length={m.hand_length:.3f} wrist~{m.wrist_circumference:.3f}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
