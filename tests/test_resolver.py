import math

import pytest

from jewelry_tryon.config import PlacementSettings
from jewelry_tryon.errors import MalformedInputError
from jewelry_tryon.keypoints import map_face_landmarks, map_hand_landmarks
from jewelry_tryon.resolver import AnchorResolver, select_hand
from jewelry_tryon.types import (
    EulerAngles,
    FaceDetection,
    HandDetection,
    Handedness,
    HandOrientation,
    JewelryCategory,
    JewelrySlotConfig,
    Point3D,
    SlotId,
)


@pytest.fixture
def resolver():
    return AnchorResolver()


def ring(**kw):
    return JewelrySlotConfig(item_id="r1", category=JewelryCategory.RING, **kw)


def test_earrings_emit_symmetric_pair(resolver, face_points):
    face = FaceDetection(keypoints=map_face_landmarks(face_points), rotation_hint=EulerAngles(roll=12.0))
    config = JewelrySlotConfig(item_id="e1", category=JewelryCategory.EARRING, size_adjustment=1.2)
    left, right = resolver.resolve(config, [face])

    assert (left.slot, right.slot) == (SlotId.LEFT_EARRING, SlotId.RIGHT_EARRING)
    assert left.position == Point3D(0.35, 0.45, 0.0)
    assert right.position == Point3D(0.65, 0.45, 0.0)
    assert left.scale_factor == right.scale_factor == pytest.approx(0.15 * 1.2)
    assert left.rotation_degrees == right.rotation_degrees == 12.0


def test_earrings_without_rotation_hint(resolver):
    face = FaceDetection(keypoints={"left_ear": (0.3, 0.5), "right_ear": (0.7, 0.5)})
    config = JewelrySlotConfig(item_id="e1", category="earrings")
    out = resolver.resolve(config, [face])
    assert len(out) == 2
    assert all(t.rotation_degrees == 0.0 for t in out)


def test_earrings_need_both_ears(resolver):
    face = FaceDetection(keypoints={"left_ear": (0.3, 0.5)})
    config = JewelrySlotConfig(item_id="e1", category=JewelryCategory.EARRING)
    assert resolver.resolve(config, [face]) == []


def test_necklace_scale_and_anchor(resolver, face_points):
    face = FaceDetection(keypoints=map_face_landmarks(face_points))
    config = JewelrySlotConfig(item_id="n1", category=JewelryCategory.NECKLACE, size_adjustment=2.0)
    (t,) = resolver.resolve(config, [face])
    assert t.slot is SlotId.NECKLACE
    assert t.position.y == pytest.approx(0.69)
    assert t.scale_factor == pytest.approx(0.30 * 2.0 * 1.5)


def test_necklace_without_width_reference(resolver):
    face = FaceDetection(keypoints={"neck_base": (0.5, 0.7)})
    config = JewelrySlotConfig(item_id="n1", category=JewelryCategory.NECKLACE)
    assert resolver.resolve(config, [face]) == []


def test_ring_blend_and_axis_rotation(resolver):
    hand = HandDetection(keypoints={"ring_finger_mcp": (0.0, 0.0), "ring_finger_pip": (10.0, 0.0)})
    (t,) = resolver.resolve(ring(), [hand])
    assert t.position.x == pytest.approx(7.0)  # 0.3 * 0 + 0.7 * 10
    assert t.position.y == pytest.approx(0.0)
    assert t.rotation_degrees == 0.0
    assert t.scale_factor == pytest.approx(10.0 * 0.3)


def test_ring_rotation_offset(resolver):
    hand = HandDetection(keypoints={"ring_finger_mcp": (0.5, 0.5), "ring_finger_pip": (0.5, 0.6)})
    (t,) = resolver.resolve(ring(rotation_offset_degrees=10.0), [hand])
    assert t.rotation_degrees == pytest.approx(100.0)


def test_ring_on_configured_finger(resolver, hand_points):
    hand = HandDetection(keypoints=map_hand_landmarks(hand_points), handedness=Handedness.LEFT)
    (t,) = resolver.resolve(ring(finger_index=1), [hand])
    assert t.position.x == pytest.approx(0.3 * 0.46 + 0.7 * 0.455)
    assert t.position.y == pytest.approx(0.3 * 0.66 + 0.7 * 0.60)
    assert t.handedness is Handedness.LEFT


def test_ring_default_finger_comes_from_settings(hand_points):
    kp = map_hand_landmarks(hand_points)
    hand = HandDetection(keypoints=kp)
    (t,) = AnchorResolver().resolve(ring(), [hand])
    assert t.position.x == pytest.approx(kp["ring_position"].x)

    (t,) = AnchorResolver(PlacementSettings(default_finger_index=2)).resolve(ring(), [hand])
    assert t.position.x == pytest.approx(0.5)


def test_ring_missing_joint_is_not_an_error(resolver):
    hand = HandDetection(keypoints={"ring_finger_mcp": (0.5, 0.5)})
    assert resolver.resolve(ring(), [hand]) == []


def test_ring_degenerate_finger_has_no_scale(resolver):
    hand = HandDetection(keypoints={"ring_finger_mcp": (0.5, 0.5), "ring_finger_pip": (0.5, 0.5)})
    assert resolver.resolve(ring(), [hand]) == []


def test_watch_on_fallback_hand(resolver):
    hand = HandDetection(
        keypoints={"wrist": (0.5, 0.8, 0.0), "pinky_mcp": (0.6, 0.75, 0.0)},
        handedness=Handedness.RIGHT,
    )
    config = JewelrySlotConfig(item_id="w1", category=JewelryCategory.WATCH, preferred_hand=Handedness.LEFT)
    (t,) = resolver.resolve(config, [hand])
    assert t.slot is SlotId.WATCH
    assert t.handedness is Handedness.RIGHT
    assert t.position.x == pytest.approx(0.52)
    assert t.position.y == pytest.approx(0.79)
    assert t.position.z == pytest.approx(0.0)
    assert t.scale_factor == pytest.approx(math.hypot(0.1, 0.05) * 1.5)
    assert t.rotation_degrees == 0.0


def test_bracelet_uses_hand_roll(resolver):
    orientation = HandOrientation(
        angles=EulerAngles(roll=30.0),
        palm_direction=Point3D(0.0, -1.0),
        finger_direction=Point3D(0.0, -1.0),
        palm_normal=Point3D(0.0, 0.0, 1.0),
    )
    hand = HandDetection(
        keypoints={"wrist": (0.5, 0.8), "thumb_cmc": (0.45, 0.78), "pinky_mcp": (0.58, 0.7)},
        orientation=orientation,
    )
    config = JewelrySlotConfig(item_id="b1", category=JewelryCategory.BRACELET, size_adjustment=0.5)
    (t,) = resolver.resolve(config, [hand])
    assert t.position == Point3D(0.5, 0.8)
    assert t.rotation_degrees == 30.0
    assert t.scale_factor == pytest.approx(math.hypot(0.13, 0.08) * 0.5 * 1.2)


def test_bracelet_with_wrist_only_has_no_scale(resolver):
    hand = HandDetection(keypoints={"wrist": (0.5, 0.8)})
    config = JewelrySlotConfig(item_id="b1", category=JewelryCategory.BRACELET)
    assert resolver.resolve(config, [hand]) == []


def test_offsets_shift_position(resolver):
    hand = HandDetection(keypoints={"wrist": (0.5, 0.8), "pinky_mcp": (0.6, 0.75)})
    config = JewelrySlotConfig(item_id="b1", category=JewelryCategory.BRACELET, x_offset=0.01, y_offset=-0.02)
    (t,) = resolver.resolve(config, [hand])
    assert t.position.x == pytest.approx(0.51)
    assert t.position.y == pytest.approx(0.78)


def test_no_matching_detection(resolver):
    hand = HandDetection(keypoints={"wrist": (0.5, 0.8)})
    earrings = JewelrySlotConfig(item_id="e1", category=JewelryCategory.EARRING)
    assert resolver.resolve(earrings, [hand]) == []
    assert resolver.resolve(ring(), []) == []


def test_unmapped_detection_is_malformed(resolver, hand_points):
    with pytest.raises(MalformedInputError):
        resolver.resolve(ring(), [HandDetection(landmarks=hand_points)])


def test_select_hand_prefers_handedness():
    right = HandDetection(keypoints={"wrist": (0.1, 0.1)}, handedness=Handedness.RIGHT)
    left = HandDetection(keypoints={"wrist": (0.9, 0.9)}, handedness=Handedness.LEFT)
    assert select_hand([right, left], Handedness.LEFT) is left
    assert select_hand([right, left], None) is right
    assert select_hand([right], Handedness.LEFT) is right
    assert select_hand([], Handedness.LEFT) is None
