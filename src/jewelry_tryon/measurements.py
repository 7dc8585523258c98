from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .geometry import distance
from .keypoints import FINGER_NAMES, HAND_LANDMARK_NAMES
from .types import KeypointSet, Point3D

# Typical finger width relative to finger length (MCP to tip).
FINGER_WIDTH_RATIO = 0.15
WRIST_CIRCUMFERENCE_RATIO = 2.5

# Point pairs spanning the wrist, best first.
WRIST_WIDTH_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("thumb_cmc", "pinky_mcp"),
    ("index_finger_mcp", "pinky_mcp"),
    ("wrist", "pinky_mcp"),
    ("wrist", "index_finger_mcp"),
)


@dataclass(frozen=True)
class FingerDimensions:
    length: float
    width: float
    segments: Tuple[float, float, float]  # base->middle, middle->distal, distal->tip


@dataclass(frozen=True)
class HandMeasurements:
    palm_width: float
    hand_length: float
    wrist_circumference: float
    aspect_ratio: float
    fingers: Dict[str, FingerDimensions]


@dataclass(frozen=True)
class FaceSize:
    width: float
    height: float


def finger_dimensions(keypoints: KeypointSet, finger_index: int) -> Optional[FingerDimensions]:
    base = finger_index * 4 + 1
    names = HAND_LANDMARK_NAMES[base:base + 4]
    if len(names) != 4 or not keypoints.has(*names):
        return None
    joints = [keypoints[n] for n in names]
    length = distance(joints[0], joints[3])
    segments = (
        distance(joints[0], joints[1]),
        distance(joints[1], joints[2]),
        distance(joints[2], joints[3]),
    )
    return FingerDimensions(length=length, width=length * FINGER_WIDTH_RATIO, segments=segments)


def hand_measurements(keypoints: KeypointSet) -> Optional[HandMeasurements]:
    """Palm width, hand length and per-finger sizes; None if the palm is incomplete."""
    if not keypoints.has("wrist", "index_finger_mcp", "pinky_mcp", "middle_finger_tip"):
        return None
    palm_width = distance(keypoints["index_finger_mcp"], keypoints["pinky_mcp"])
    hand_length = distance(keypoints["wrist"], keypoints["middle_finger_tip"])
    fingers: Dict[str, FingerDimensions] = {}
    for i, name in enumerate(FINGER_NAMES):
        dims = finger_dimensions(keypoints, i)
        if dims is not None:
            fingers[name] = dims
    return HandMeasurements(
        palm_width=palm_width,
        hand_length=hand_length,
        wrist_circumference=palm_width * WRIST_CIRCUMFERENCE_RATIO,
        aspect_ratio=hand_length / palm_width if palm_width > 0 else 0.0,
        fingers=fingers,
    )


def face_size(landmarks: Sequence[Any]) -> FaceSize:
    """Bounding box size of all face mesh points."""
    pts = np.array([Point3D.coerce(p).as_tuple()[:2] for p in landmarks if p is not None], dtype=np.float64)
    if pts.size == 0:
        return FaceSize(0.0, 0.0)
    span = pts.max(axis=0) - pts.min(axis=0)
    return FaceSize(width=float(span[0]), height=float(span[1]))


def estimate_face_width(keypoints: KeypointSet) -> Optional[float]:
    if not keypoints.has("left_ear", "right_ear"):
        return None
    width = distance(keypoints["left_ear"], keypoints["right_ear"])
    return width if width > 0 else None


def estimate_wrist_width(keypoints: KeypointSet) -> Optional[float]:
    for a, b in WRIST_WIDTH_PAIRS:
        if keypoints.has(a, b):
            width = distance(keypoints[a], keypoints[b])
            if width > 0:
                return width
    return None
