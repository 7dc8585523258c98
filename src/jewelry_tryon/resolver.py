from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from .config import PlacementSettings
from .errors import InvalidSlotConfigError, MalformedInputError
from .geometry import angle_degrees, distance, weighted_blend, wrap_degrees
from .keypoints import RING_MCP_WEIGHT, RING_PIP_WEIGHT, derive_face_points, derive_hand_points, finger_joints
from .measurements import estimate_face_width, estimate_wrist_width
from .types import (
    AnchorTransform,
    DetectionResult,
    FaceDetection,
    HandDetection,
    Handedness,
    JewelryCategory,
    JewelrySlotConfig,
    KeypointSet,
    Point3D,
    SlotId,
)

logger = logging.getLogger(__name__)


def select_hand(hands: Sequence[HandDetection], preferred: Optional[Handedness]) -> Optional[HandDetection]:
    """
    The first hand with the preferred handedness, else the first hand at all.

    Showing the item on the "wrong" hand beats showing nothing.
    """

    if not hands:
        return None
    if preferred is not None:
        for hand in hands:
            if hand.handedness is preferred:
                return hand
    return hands[0]


def _keypoints_of(detection: DetectionResult) -> KeypointSet:
    if detection.keypoints is None:
        raise MalformedInputError(f"{type(detection).__name__} has no mapped keypoints")
    return detection.keypoints


class AnchorResolver:
    """
    Per-category placement rules: keypoints in, unsmoothed `AnchorTransform`s out.

    A rule returns an empty list when the keypoints it needs are missing.
    """

    def __init__(self, settings: Optional[PlacementSettings] = None) -> None:
        self.settings = settings or PlacementSettings()
        self._face_rules: Dict[JewelryCategory, Callable[[JewelrySlotConfig, FaceDetection], List[AnchorTransform]]] = {
            JewelryCategory.EARRING: self._earrings,
            JewelryCategory.NECKLACE: self._necklace,
        }
        self._hand_rules: Dict[JewelryCategory, Callable[[JewelrySlotConfig, HandDetection], List[AnchorTransform]]] = {
            JewelryCategory.RING: self._ring,
            JewelryCategory.BRACELET: self._bracelet,
            JewelryCategory.WATCH: self._watch,
        }

    def supports(self, category: JewelryCategory) -> bool:
        return category in self._face_rules or category in self._hand_rules

    def resolve(self, config: JewelrySlotConfig, detections: Sequence[DetectionResult]) -> List[AnchorTransform]:
        if config.category in self._face_rules:
            faces = [d for d in detections if isinstance(d, FaceDetection)]
            if not faces:
                return []
            return self._face_rules[config.category](config, faces[0])

        if config.category in self._hand_rules:
            hands = [d for d in detections if isinstance(d, HandDetection)]
            hand = select_hand(hands, config.preferred_hand)
            if hand is None:
                return []
            if config.preferred_hand is not None and hand.handedness is not config.preferred_hand:
                logger.debug("%s: no %s hand, using %s", config.item_id, config.preferred_hand.value, hand.handedness)
            return self._hand_rules[config.category](config, hand)

        raise InvalidSlotConfigError(f"No placement rule for category {config.category!r}")

    # -- shared -----------------------------------------------------------

    def _emit(
        self,
        config: JewelrySlotConfig,
        slot: SlotId,
        position: Point3D,
        scale: Optional[float],
        rotation: float,
        handedness: Optional[Handedness] = None,
    ) -> List[AnchorTransform]:
        if scale is None or not scale > 0:
            logger.debug("%s: no usable scale reference for %s", config.item_id, slot.value)
            return []
        shifted = Point3D(position.x + config.x_offset, position.y + config.y_offset, position.z)
        return [
            AnchorTransform(
                slot=slot,
                item_id=config.item_id,
                position=shifted,
                scale_factor=scale,
                rotation_degrees=wrap_degrees(rotation + config.rotation_offset_degrees),
                handedness=handedness,
            )
        ]

    def _missing(self, config: JewelrySlotConfig, keypoints: KeypointSet, *names: str) -> bool:
        if keypoints.has(*names):
            return False
        logger.debug(
            "%s: missing keypoints %s",
            config.item_id,
            [n for n in names if n not in keypoints],
        )
        return True

    # -- face rules -------------------------------------------------------

    def _earrings(self, config: JewelrySlotConfig, face: FaceDetection) -> List[AnchorTransform]:
        kp = _keypoints_of(face)
        if self._missing(config, kp, "left_ear", "right_ear"):
            return []
        scale = self.settings.earring_base_scale * config.size_adjustment
        roll = face.rotation_hint.roll if face.rotation_hint is not None else 0.0
        return self._emit(config, SlotId.LEFT_EARRING, kp["left_ear"], scale, roll) + self._emit(
            config, SlotId.RIGHT_EARRING, kp["right_ear"], scale, roll
        )

    def _necklace(self, config: JewelrySlotConfig, face: FaceDetection) -> List[AnchorTransform]:
        kp = derive_face_points(_keypoints_of(face), self.settings.neck_offset_fraction)
        if self._missing(config, kp, "neck_base"):
            return []
        width = estimate_face_width(kp)
        scale = None
        if width is not None:
            scale = width * config.size_adjustment * self.settings.necklace_width_multiplier
        roll = face.rotation_hint.roll if face.rotation_hint is not None else 0.0
        return self._emit(config, SlotId.NECKLACE, kp["neck_base"], scale, roll)

    # -- hand rules -------------------------------------------------------

    def _ring(self, config: JewelrySlotConfig, hand: HandDetection) -> List[AnchorTransform]:
        kp = _keypoints_of(hand)
        finger = config.finger_index if config.finger_index is not None else self.settings.default_finger_index
        base_name, middle_name = finger_joints(finger)
        if self._missing(config, kp, base_name, middle_name):
            return []
        base, middle = kp[base_name], kp[middle_name]
        anchor = weighted_blend(base, RING_MCP_WEIGHT, middle, RING_PIP_WEIGHT)
        scale = distance(base, middle) * self.settings.ring_width_ratio * config.size_adjustment
        return self._emit(config, SlotId.RING, anchor, scale, angle_degrees(base, middle), hand.handedness)

    def _wrist_scale(self, config: JewelrySlotConfig, kp: KeypointSet, multiplier: float) -> Optional[float]:
        width = estimate_wrist_width(kp)
        if width is None:
            return None
        return width * config.size_adjustment * multiplier

    def _bracelet(self, config: JewelrySlotConfig, hand: HandDetection) -> List[AnchorTransform]:
        kp = derive_hand_points(_keypoints_of(hand))
        if self._missing(config, kp, "wrist"):
            return []
        roll = hand.orientation.angles.roll if hand.orientation is not None else 0.0
        scale = self._wrist_scale(config, kp, self.settings.bracelet_scale)
        return self._emit(config, SlotId.BRACELET, kp["bracelet_position"], scale, roll, hand.handedness)

    def _watch(self, config: JewelrySlotConfig, hand: HandDetection) -> List[AnchorTransform]:
        kp = derive_hand_points(_keypoints_of(hand))
        if self._missing(config, kp, "wrist", "watch_position"):
            return []
        roll = hand.orientation.angles.roll if hand.orientation is not None else 0.0
        scale = self._wrist_scale(config, kp, self.settings.watch_scale)
        return self._emit(config, SlotId.WATCH, kp["watch_position"], scale, roll, hand.handedness)
