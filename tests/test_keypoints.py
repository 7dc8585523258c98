import numpy as np
import pytest

from jewelry_tryon.errors import MalformedInputError
from jewelry_tryon.keypoints import (
    derive_hand_points,
    finger_joints,
    map_face_landmarks,
    map_hand_landmarks,
)
from jewelry_tryon.types import KeypointSet, Point3D

from conftest import make_face_points


def test_hand_mapping_full_skeleton(hand_points):
    kp = map_hand_landmarks(hand_points)
    assert len(kp) == 21 + 3
    assert kp["wrist"] == Point3D(0.50, 0.80, 0.0)
    assert kp["pinky_tip"] == Point3D(0.61, 0.57, 0.0)

    mcp, pip = kp["ring_finger_mcp"], kp["ring_finger_pip"]
    ring = kp["ring_position"]
    assert ring.x == pytest.approx(0.3 * mcp.x + 0.7 * pip.x)
    assert ring.y == pytest.approx(0.3 * mcp.y + 0.7 * pip.y)
    assert kp["bracelet_position"] == kp["wrist"]

    watch = kp["watch_position"]
    assert watch.x == pytest.approx(0.8 * 0.50 + 0.2 * 0.58)
    assert watch.y == pytest.approx(0.8 * 0.80 + 0.2 * 0.68)


def test_hand_mapping_short_input_is_partial(hand_points):
    kp = map_hand_landmarks(hand_points[:6])
    assert kp.has("wrist", "thumb_tip", "index_finger_mcp")
    assert "pinky_mcp" not in kp
    assert "watch_position" not in kp
    assert "ring_position" not in kp
    assert "bracelet_position" in kp


def test_hand_mapping_accepts_numpy(hand_points):
    kp = map_hand_landmarks(np.array(hand_points))
    assert kp["middle_finger_tip"].y == pytest.approx(0.50)


@pytest.mark.parametrize("bad", [None, [], 42, {}])
def test_hand_mapping_rejects_malformed(bad):
    with pytest.raises(MalformedInputError):
        map_hand_landmarks(bad)


def test_face_mapping_and_neck_base(face_points):
    kp = map_face_landmarks(face_points)
    assert kp["left_ear"] == Point3D(0.35, 0.45, 0.0)
    assert kp["right_ear"] == Point3D(0.65, 0.45, 0.0)
    assert kp["chin"] == Point3D(0.50, 0.65, 0.0)
    neck = kp["neck_base"]
    # ear midpoint pushed down by 0.8 x inter-ear distance (0.3)
    assert neck.x == pytest.approx(0.5)
    assert neck.y == pytest.approx(0.45 + 0.24)


def test_face_mapping_neck_offset_is_configurable(face_points):
    kp = map_face_landmarks(face_points, neck_offset_fraction=0.5)
    assert kp["neck_base"].y == pytest.approx(0.45 + 0.15)


def test_face_mapping_short_mesh_uses_fallbacks():
    kp = map_face_landmarks(make_face_points(300))
    assert "left_ear" in kp  # index 234 present
    assert "right_ear" not in kp  # 454 and fallback 323 both out of range
    assert "neck_base" not in kp


def test_face_mapping_empty_raises():
    with pytest.raises(MalformedInputError):
        map_face_landmarks([])


def test_keypoint_set_is_closed_and_immutable():
    with pytest.raises(MalformedInputError):
        KeypointSet({"elbow": (0.1, 0.2)})
    kp = KeypointSet({"wrist": (0.1, 0.2), "pinky_mcp": None})
    assert "pinky_mcp" not in kp
    assert kp["wrist"].z == 0.0
    with pytest.raises(TypeError):
        kp["wrist"] = Point3D(0.0, 0.0)


def test_derive_hand_points_keeps_existing():
    kp = KeypointSet({"wrist": (0.5, 0.8), "pinky_mcp": (0.6, 0.75), "watch_position": (0.1, 0.1)})
    derived = derive_hand_points(kp)
    assert derived["watch_position"] == Point3D(0.1, 0.1)


def test_finger_joints():
    assert finger_joints(3) == ("ring_finger_mcp", "ring_finger_pip")
    assert finger_joints(1) == ("index_finger_mcp", "index_finger_pip")
    assert finger_joints(0) == ("thumb_cmc", "thumb_mcp")
    with pytest.raises(ValueError):
        finger_joints(5)


def test_non_numeric_point_is_malformed():
    with pytest.raises(MalformedInputError):
        map_hand_landmarks([("a", "b")])


def test_non_finite_points_count_as_missing():
    kp = KeypointSet({"left_ear": (float("nan"), 0.5), "right_ear": (0.6, float("inf")), "chin": (0.5, 0.7)})
    assert set(kp) == {"chin"}


def test_hand_mapping_drops_nan_joint(hand_points):
    hand_points[0] = (np.nan, 0.8, 0.0)
    kp = map_hand_landmarks(np.array(hand_points))
    assert "wrist" not in kp
    assert "bracelet_position" not in kp
    assert "ring_position" in kp
