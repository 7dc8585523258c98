from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from jewelry_tryon.types import DetectionResult, HandDetection, Handedness

# Upright hand, palm facing the camera, normalized image coordinates.
HAND_POINTS: List[Tuple[float, float, float]] = [
    (0.50, 0.80, 0.0),  # wrist
    (0.45, 0.76, 0.0),  # thumb_cmc
    (0.41, 0.72, 0.0),
    (0.38, 0.68, 0.0),
    (0.36, 0.64, 0.0),
    (0.46, 0.66, 0.0),  # index_finger_mcp
    (0.455, 0.60, 0.0),
    (0.45, 0.56, 0.0),
    (0.445, 0.52, 0.0),
    (0.50, 0.65, 0.0),  # middle_finger_mcp
    (0.50, 0.58, 0.0),
    (0.50, 0.54, 0.0),
    (0.50, 0.50, 0.0),
    (0.54, 0.66, 0.0),  # ring_finger_mcp
    (0.545, 0.60, 0.0),
    (0.55, 0.56, 0.0),
    (0.555, 0.53, 0.0),
    (0.58, 0.68, 0.0),  # pinky_mcp
    (0.59, 0.63, 0.0),
    (0.60, 0.60, 0.0),
    (0.61, 0.57, 0.0),
]

FACE_POINTS_SET: Dict[int, Tuple[float, float, float]] = {
    234: (0.35, 0.45, 0.0),  # left_ear
    454: (0.65, 0.45, 0.0),  # right_ear
    33: (0.42, 0.40, 0.0),  # left_eye
    263: (0.58, 0.40, 0.0),  # right_eye
    1: (0.50, 0.48, 0.0),  # nose_tip
    13: (0.50, 0.55, 0.0),
    14: (0.50, 0.57, 0.0),
    152: (0.50, 0.65, 0.0),  # chin
}


def make_face_points(n: int = 478) -> List[Tuple[float, float, float]]:
    pts = [(0.5, 0.5, 0.0)] * n
    for idx, p in FACE_POINTS_SET.items():
        if idx < n:
            pts[idx] = p
    return pts


@pytest.fixture
def hand_points() -> List[Tuple[float, float, float]]:
    return list(HAND_POINTS)


@pytest.fixture
def face_points() -> List[Tuple[float, float, float]]:
    return make_face_points()


class FakeLandmarkDetector:
    """Replays scripted detections, one entry per `detect()` call."""

    def __init__(self, script: Sequence[Optional[List[DetectionResult]]]) -> None:
        self._script = list(script)
        self.calls = 0

    def detect(self, frame) -> Optional[List[DetectionResult]]:
        self.calls += 1
        if not self._script:
            return None
        return self._script.pop(0)


@pytest.fixture
def fake_detector_factory():
    return FakeLandmarkDetector


@pytest.fixture
def right_hand(hand_points) -> HandDetection:
    return HandDetection(landmarks=hand_points, handedness=Handedness.RIGHT, confidence=0.9)
