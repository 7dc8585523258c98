from __future__ import annotations

import math
from typing import Iterable, Tuple

import cv2
import numpy as np

from .geometry import clamp
from .keypoints import HAND_CONNECTIONS, HAND_LANDMARK_NAMES
from .types import AnchorTransform, KeypointSet, Point3D

FRESH_COLOR = (0, 215, 255)  # gold (BGR)
STALE_COLOR = (120, 120, 120)


def to_px(p: Point3D, w: int, h: int) -> Tuple[int, int]:
    x = int(clamp(round(p.x * w), 0, w - 1))
    y = int(clamp(round(p.y * h), 0, h - 1))
    return (x, y)


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_keypoints(frame, keypoints: KeypointSet, color=(40, 255, 120)):
    h, w = frame.shape[:2]
    for a, b in HAND_CONNECTIONS:
        na, nb = HAND_LANDMARK_NAMES[a], HAND_LANDMARK_NAMES[b]
        if keypoints.has(na, nb):
            cv2.line(frame, to_px(keypoints[na], w, h), to_px(keypoints[nb], w, h), (0, 255, 255), 2, cv2.LINE_AA)
    for p in keypoints.values():
        cv2.circle(frame, to_px(p, w, h), 3, color, -1, lineType=cv2.LINE_AA)
    return frame


def anchor_corners(transform: AnchorTransform, w: int, h: int) -> np.ndarray:
    """Corners of the rotated square an overlay of this transform would cover, in pixels."""
    cx, cy = transform.position.x * w, transform.position.y * h
    half = transform.scale_factor * min(w, h) / 2.0
    t = math.radians(transform.rotation_degrees)
    c, s = math.cos(t), math.sin(t)
    square = np.array([(-half, -half), (half, -half), (half, half), (-half, half)], dtype=np.float64)
    rot = np.array([[c, -s], [s, c]], dtype=np.float64)
    return square @ rot.T + np.array([cx, cy])


def draw_anchor(frame, transform: AnchorTransform, label: bool = True):
    h, w = frame.shape[:2]
    color = STALE_COLOR if transform.stale else FRESH_COLOR
    pts = np.round(anchor_corners(transform, w, h)).astype(np.int32)
    cv2.polylines(frame, [pts], True, color, 2, cv2.LINE_AA)
    center = to_px(transform.position, w, h)
    cv2.circle(frame, center, 4, color, -1, lineType=cv2.LINE_AA)
    if label:
        draw_text(frame, transform.slot.value, (center[0] + 6, max(0, center[1] - 6)), color=color, scale=0.5, thickness=1)
    return frame


def draw_anchors(frame, transforms: Iterable[AnchorTransform], label: bool = True):
    for t in transforms:
        draw_anchor(frame, t, label=label)
    return frame
