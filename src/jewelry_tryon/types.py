from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

from .errors import InvalidSlotConfigError, MalformedInputError


@dataclass(frozen=True)
class Point3D:
    """A point in normalized detector space (x, y in 0..1, z relative depth)."""

    x: float
    y: float
    z: float = 0.0

    def __add__(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Point3D") -> "Point3D":
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, k: float) -> "Point3D":
        return Point3D(self.x * k, self.y * k, self.z * k)

    __rmul__ = __mul__

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.z))

    @classmethod
    def coerce(cls, value: Any) -> "Point3D":
        """
        Build a point from a Point3D, an (x, y[, z]) sequence or numpy row, or an
        object exposing `.x`/`.y` (and optionally `.z`), e.g. a MediaPipe landmark.
        """

        if isinstance(value, Point3D):
            return value
        try:
            if hasattr(value, "x") and hasattr(value, "y"):
                return cls(float(value.x), float(value.y), float(getattr(value, "z", 0.0) or 0.0))
            n = len(value)
            if n < 2:
                raise MalformedInputError(f"A point needs at least x and y, got {value!r}")
            z = float(value[2]) if n > 2 else 0.0
            return cls(float(value[0]), float(value[1]), z)
        except MalformedInputError:
            raise
        except (TypeError, ValueError) as e:
            raise MalformedInputError(f"Cannot interpret {value!r} as a point") from e


ORIGIN = Point3D(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class EulerAngles:
    """Rotation angles in degrees."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True)
class HandOrientation:
    angles: EulerAngles
    palm_direction: Point3D  # wrist -> middle finger MCP, unit length
    finger_direction: Point3D  # middle finger MCP -> tip, unit length
    palm_normal: Point3D  # unit length


class Handedness(Enum):
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def parse(cls, value: Union[str, "Handedness", None]) -> Optional["Handedness"]:
        if value is None or isinstance(value, Handedness):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValueError(f"Unknown handedness {value!r}; expected 'left' or 'right'")


class SlotId(Enum):
    LEFT_EARRING = "left_earring"
    RIGHT_EARRING = "right_earring"
    NECKLACE = "necklace"
    RING = "ring"
    BRACELET = "bracelet"
    WATCH = "watch"


class JewelryCategory(Enum):
    EARRING = "earring"
    NECKLACE = "necklace"
    RING = "ring"
    BRACELET = "bracelet"
    WATCH = "watch"

    @classmethod
    def parse(cls, value: Union[str, "JewelryCategory"]) -> "JewelryCategory":
        if isinstance(value, JewelryCategory):
            return value
        key = str(value).strip().lower()
        # Catalog entries use both "earring" and "earrings".
        if key.endswith("s") and key[:-1] in _CATEGORY_VALUES:
            key = key[:-1]
        if key not in _CATEGORY_VALUES:
            raise ValueError(f"Unknown jewelry category {value!r}. Available: {sorted(_CATEGORY_VALUES)}")
        return cls(key)

    @property
    def anchored_on_face(self) -> bool:
        return self in (JewelryCategory.EARRING, JewelryCategory.NECKLACE)

    @property
    def slots(self) -> Tuple[SlotId, ...]:
        return CATEGORY_SLOTS[self]


_CATEGORY_VALUES = {c.value for c in JewelryCategory}

CATEGORY_SLOTS: Dict[JewelryCategory, Tuple[SlotId, ...]] = {
    JewelryCategory.EARRING: (SlotId.LEFT_EARRING, SlotId.RIGHT_EARRING),
    JewelryCategory.NECKLACE: (SlotId.NECKLACE,),
    JewelryCategory.RING: (SlotId.RING,),
    JewelryCategory.BRACELET: (SlotId.BRACELET,),
    JewelryCategory.WATCH: (SlotId.WATCH,),
}


FACE_POINT_NAMES: Tuple[str, ...] = (
    "left_ear",
    "right_ear",
    "left_eye",
    "right_eye",
    "nose_tip",
    "upper_lip",
    "lower_lip",
    "chin",
    "neck_base",  # derived estimate, not detected
)

HAND_POINT_NAMES: Tuple[str, ...] = (
    "wrist",
    "thumb_cmc",
    "thumb_mcp",
    "thumb_ip",
    "thumb_tip",
    "index_finger_mcp",
    "index_finger_pip",
    "index_finger_dip",
    "index_finger_tip",
    "middle_finger_mcp",
    "middle_finger_pip",
    "middle_finger_dip",
    "middle_finger_tip",
    "ring_finger_mcp",
    "ring_finger_pip",
    "ring_finger_dip",
    "ring_finger_tip",
    "pinky_mcp",
    "pinky_pip",
    "pinky_dip",
    "pinky_tip",
    # derived composites
    "ring_position",
    "bracelet_position",
    "watch_position",
)

KNOWN_POINT_NAMES = frozenset(FACE_POINT_NAMES) | frozenset(HAND_POINT_NAMES)


class KeypointSet(Mapping[str, Point3D]):
    """
    Immutable mapping from semantic point name to `Point3D`.

    A name that is absent means "not detected this frame"; there are no null points.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Optional[Mapping[str, Any]] = None) -> None:
        data: Dict[str, Point3D] = {}
        for name, value in (points or {}).items():
            if name not in KNOWN_POINT_NAMES:
                raise MalformedInputError(f"Unknown keypoint name {name!r}")
            if value is None:
                continue
            point = Point3D.coerce(value)
            # NaN/inf coordinates count as "not detected".
            if not point.is_finite():
                continue
            data[name] = point
        self._points = data

    def __getitem__(self, name: str) -> Point3D:
        return self._points[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"KeypointSet({self._points!r})"

    def has(self, *names: str) -> bool:
        return all(n in self._points for n in names)

    def merged(self, extra: Mapping[str, Point3D]) -> "KeypointSet":
        """Return a new set with `extra` points added (existing names win)."""
        combined = dict(extra)
        combined.update(self._points)
        return KeypointSet(combined)


@dataclass(frozen=True)
class FaceDetection:
    """
    A detected face. Either `keypoints` (already named) or `landmarks` (raw
    face mesh points, in index order) must be supplied.
    """

    keypoints: Optional[KeypointSet] = None
    confidence: float = 1.0
    rotation_hint: Optional[EulerAngles] = None
    landmarks: Optional[Sequence[Any]] = None

    def __post_init__(self) -> None:
        if self.keypoints is not None and not isinstance(self.keypoints, KeypointSet):
            object.__setattr__(self, "keypoints", KeypointSet(self.keypoints))


@dataclass(frozen=True)
class HandDetection:
    """A detected hand. Same keypoints/landmarks contract as `FaceDetection`."""

    keypoints: Optional[KeypointSet] = None
    handedness: Optional[Handedness] = None
    confidence: float = 1.0
    orientation: Optional[HandOrientation] = None
    landmarks: Optional[Sequence[Any]] = None

    def __post_init__(self) -> None:
        if self.keypoints is not None and not isinstance(self.keypoints, KeypointSet):
            object.__setattr__(self, "keypoints", KeypointSet(self.keypoints))
        if self.handedness is not None and not isinstance(self.handedness, Handedness):
            object.__setattr__(self, "handedness", Handedness.parse(self.handedness))


DetectionResult = Union[FaceDetection, HandDetection]


@dataclass(frozen=True)
class JewelrySlotConfig:
    """Placement configuration for one catalog item."""

    item_id: str
    category: JewelryCategory
    size_adjustment: float = 1.0
    preferred_hand: Optional[Handedness] = None
    finger_index: Optional[int] = None  # 0=thumb .. 4=pinky; None -> ring finger
    smoothing_enabled: bool = True
    rotation_offset_degrees: float = 0.0
    x_offset: float = 0.0
    y_offset: float = 0.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "category", JewelryCategory.parse(self.category))
            object.__setattr__(self, "preferred_hand", Handedness.parse(self.preferred_hand))
        except ValueError as e:
            raise InvalidSlotConfigError(f"{self.item_id!r}: {e}") from e

    @property
    def slots(self) -> Tuple[SlotId, ...]:
        return self.category.slots

    def validate(self) -> None:
        if not self.item_id:
            raise InvalidSlotConfigError("Slot config is missing an item id")
        for name in ("size_adjustment", "rotation_offset_degrees", "x_offset", "y_offset"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidSlotConfigError(f"{self.item_id!r}: {name} must be finite")
        if self.size_adjustment <= 0:
            raise InvalidSlotConfigError(
                f"{self.item_id!r}: size_adjustment must be > 0, got {self.size_adjustment}"
            )
        if self.finger_index is not None:
            if self.category is not JewelryCategory.RING:
                raise InvalidSlotConfigError(f"{self.item_id!r}: finger_index only applies to rings")
            if (
                isinstance(self.finger_index, bool)
                or not isinstance(self.finger_index, int)
                or self.finger_index not in range(5)
            ):
                raise InvalidSlotConfigError(
                    f"{self.item_id!r}: finger_index must be 0..4, got {self.finger_index!r}"
                )


@dataclass(frozen=True)
class AnchorTransform:
    """Where and how to draw one jewelry element."""

    slot: SlotId
    item_id: str
    position: Point3D
    scale_factor: float
    rotation_degrees: float
    stale: bool = False
    missed_frames: int = 0
    timestamp: Optional[float] = None
    handedness: Optional[Handedness] = None

    def __post_init__(self) -> None:
        if not (self.scale_factor > 0 and math.isfinite(self.scale_factor)):
            raise ValueError(f"scale_factor must be a positive finite number, got {self.scale_factor}")
