from __future__ import annotations

import logging
import math
from typing import Any, Optional, Sequence, Tuple, Union

from .geometry import angle_degrees, cross, midpoint, normalize
from .errors import MalformedInputError
from .keypoints import DEFAULT_NECK_OFFSET_FRACTION, map_face_landmarks, map_hand_landmarks
from .types import EulerAngles, FaceDetection, HandDetection, Handedness, HandOrientation, KeypointSet, Point3D

logger = logging.getLogger(__name__)

# Scale applied to the eye-center -> nose offset to get yaw/pitch "degrees".
# This is a screen-space heuristic, not a head pose solve.
FACE_OFFSET_TO_DEGREES = 100.0


def estimate_face_rotation(keypoints: KeypointSet) -> Optional[EulerAngles]:
    """
    Rough face rotation from the eye line and nose tip.

    Roll is the eye-line angle. Yaw and pitch are the nose tip's offset from
    the eye center scaled by `FACE_OFFSET_TO_DEGREES`; treat them as hints only.
    """

    if not keypoints.has("left_eye", "right_eye", "nose_tip"):
        return None
    left, right, nose = keypoints["left_eye"], keypoints["right_eye"], keypoints["nose_tip"]
    roll = angle_degrees(left, right)
    center = midpoint(left, right)
    yaw = (nose.x - center.x) * FACE_OFFSET_TO_DEGREES
    pitch = (nose.y - center.y) * FACE_OFFSET_TO_DEGREES
    return EulerAngles(pitch=pitch, yaw=yaw, roll=roll)


def estimate_hand_orientation(keypoints: KeypointSet) -> Optional[HandOrientation]:
    """Palm/finger direction vectors and pitch/yaw/roll of a hand skeleton."""
    needed = ("wrist", "middle_finger_mcp", "middle_finger_tip", "index_finger_mcp", "pinky_mcp")
    if not keypoints.has(*needed):
        return None

    wrist = keypoints["wrist"]
    middle_mcp = keypoints["middle_finger_mcp"]
    palm_direction = middle_mcp - wrist
    finger_direction = keypoints["middle_finger_tip"] - middle_mcp
    palm_width = keypoints["pinky_mcp"] - keypoints["index_finger_mcp"]

    palm_dir_n = normalize(palm_direction)
    normal_n = normalize(cross(palm_direction, palm_width))

    pitch = math.degrees(math.acos(max(-1.0, min(1.0, palm_dir_n.y))))
    projected = normalize(Point3D(palm_direction.x, 0.0, palm_direction.z))
    yaw = math.degrees(math.atan2(projected.x, projected.z))
    roll = math.degrees(math.atan2(normal_n.x, normal_n.z))

    return HandOrientation(
        angles=EulerAngles(pitch=pitch, yaw=yaw, roll=roll),
        palm_direction=palm_dir_n,
        finger_direction=normalize(finger_direction),
        palm_normal=normal_n,
    )


def _coerce_all(landmarks: Any) -> Tuple[Optional[Point3D], ...]:
    if landmarks is None:
        raise MalformedInputError("No landmarks supplied")
    try:
        return tuple(None if lm is None else Point3D.coerce(lm) for lm in landmarks)
    except TypeError as e:
        raise MalformedInputError(f"Landmarks are not a sequence of points: {type(landmarks).__name__}") from e


def face_detection_from_landmarks(
    landmarks: Sequence[Any],
    confidence: float = 1.0,
    neck_offset_fraction: float = DEFAULT_NECK_OFFSET_FRACTION,
) -> FaceDetection:
    """Named keypoints plus rotation hint for one face mesh."""
    points = _coerce_all(landmarks)
    keypoints = map_face_landmarks(points, neck_offset_fraction)
    return FaceDetection(
        keypoints=keypoints,
        confidence=confidence,
        rotation_hint=estimate_face_rotation(keypoints),
        landmarks=points,
    )


def hand_detection_from_landmarks(
    landmarks: Sequence[Any],
    label: Union[str, Handedness, None] = None,
    score: Optional[float] = None,
) -> HandDetection:
    """Named keypoints plus orientation for one hand skeleton."""
    points = _coerce_all(landmarks)
    keypoints = map_hand_landmarks(points)
    try:
        handedness = Handedness.parse(label)
    except ValueError:
        logger.debug("Ignoring unknown handedness label %r", label)
        handedness = None
    return HandDetection(
        keypoints=keypoints,
        handedness=handedness,
        confidence=1.0 if score is None else score,
        orientation=estimate_hand_orientation(keypoints),
        landmarks=points,
    )
