"""
Translation of raw detector output (index-ordered landmark points) into named
`KeypointSet`s.

Face indices follow the MediaPipe Face Mesh topology (468/478 points), hand
indices follow MediaPipe Hands (21 points).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import MalformedInputError
from .geometry import distance, midpoint, weighted_blend
from .types import HAND_POINT_NAMES, KeypointSet, Point3D

logger = logging.getLogger(__name__)


# name -> (primary index, fallback index)
FACE_LANDMARK_INDICES: Dict[str, Tuple[int, int]] = {
    "left_ear": (234, 93),
    "right_ear": (454, 323),
    "left_eye": (33, 159),
    "right_eye": (263, 386),
    "nose_tip": (1, 19),
    "upper_lip": (13, 0),
    "lower_lip": (14, 17),
    "chin": (152, 175),
}

# The first 21 names are the detected landmarks, in MediaPipe index order.
HAND_LANDMARK_NAMES: Tuple[str, ...] = HAND_POINT_NAMES[:21]

FINGER_NAMES: Tuple[str, ...] = ("thumb", "index", "middle", "ring", "pinky")

HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm base
    (0, 17),
]

RING_MCP_WEIGHT = 0.3
RING_PIP_WEIGHT = 0.7
WATCH_WRIST_WEIGHT = 0.8
WATCH_PINKY_WEIGHT = 0.2

DEFAULT_NECK_OFFSET_FRACTION = 0.8


def finger_joints(finger_index: int) -> Tuple[str, str]:
    """
    (base, middle) joint names a ring sits between for finger 0..4.

    The thumb has no PIP joint, so its CMC/MCP pair plays that role.
    """

    if finger_index not in range(5):
        raise ValueError(f"finger_index must be 0..4, got {finger_index!r}")
    base = finger_index * 4 + 1
    return HAND_LANDMARK_NAMES[base], HAND_LANDMARK_NAMES[base + 1]


def _check_indexable(raw: Any) -> int:
    if raw is None:
        raise MalformedInputError("No landmarks supplied")
    try:
        n = len(raw)
        if n:
            raw[0]
    except (TypeError, KeyError, IndexError) as e:
        raise MalformedInputError(f"Landmarks are not an indexable sequence: {type(raw).__name__}") from e
    if n == 0:
        raise MalformedInputError("Landmark sequence is empty")
    return n


def _point_at(raw: Sequence[Any], idx: int, n: int) -> Optional[Point3D]:
    if idx >= n:
        return None
    value = raw[idx]
    if value is None:
        return None
    return Point3D.coerce(value)


def derive_face_points(keypoints: KeypointSet, neck_offset_fraction: float = DEFAULT_NECK_OFFSET_FRACTION) -> KeypointSet:
    """
    Add `neck_base`: the ear midpoint pushed down (+y) by a fraction of the
    inter-ear distance. An estimate, not a detected point.
    """

    if "neck_base" in keypoints or not keypoints.has("left_ear", "right_ear"):
        return keypoints
    left, right = keypoints["left_ear"], keypoints["right_ear"]
    mid = midpoint(left, right)
    drop = distance(left, right) * neck_offset_fraction
    return keypoints.merged({"neck_base": Point3D(mid.x, mid.y + drop, mid.z)})


def derive_hand_points(keypoints: KeypointSet) -> KeypointSet:
    """Add the ring/bracelet/watch composite points when their inputs exist."""
    extra: Dict[str, Point3D] = {}
    if keypoints.has("ring_finger_mcp", "ring_finger_pip"):
        extra["ring_position"] = weighted_blend(
            keypoints["ring_finger_mcp"], RING_MCP_WEIGHT, keypoints["ring_finger_pip"], RING_PIP_WEIGHT
        )
    if "wrist" in keypoints:
        extra["bracelet_position"] = keypoints["wrist"]
    if keypoints.has("wrist", "pinky_mcp"):
        extra["watch_position"] = weighted_blend(
            keypoints["wrist"], WATCH_WRIST_WEIGHT, keypoints["pinky_mcp"], WATCH_PINKY_WEIGHT
        )
    if not extra:
        return keypoints
    return keypoints.merged(extra)


def map_face_landmarks(raw: Sequence[Any], neck_offset_fraction: float = DEFAULT_NECK_OFFSET_FRACTION) -> KeypointSet:
    """
    Map a face mesh point list to named face keypoints.

    Shorter-than-expected input yields a partial set; empty or non-indexable
    input raises `MalformedInputError`.
    """

    n = _check_indexable(raw)
    points: Dict[str, Point3D] = {}
    for name, (primary, fallback) in FACE_LANDMARK_INDICES.items():
        p = _point_at(raw, primary, n)
        if p is None:
            p = _point_at(raw, fallback, n)
        if p is not None:
            points[name] = p
    if n < 468:
        logger.debug("Face mesh has %d points (expected 468); mapped %d keypoints", n, len(points))
    return derive_face_points(KeypointSet(points), neck_offset_fraction)


def map_hand_landmarks(raw: Sequence[Any]) -> KeypointSet:
    """Map a 21-point hand skeleton to named hand keypoints plus composites."""
    n = _check_indexable(raw)
    points: Dict[str, Point3D] = {}
    for idx, name in enumerate(HAND_LANDMARK_NAMES):
        p = _point_at(raw, idx, n)
        if p is not None:
            points[name] = p
    if n < len(HAND_LANDMARK_NAMES):
        logger.debug("Hand skeleton has %d points (expected 21)", n)
    return derive_hand_points(KeypointSet(points))
