from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping

from .errors import InvalidSlotConfigError
from .keypoints import DEFAULT_NECK_OFFSET_FRACTION
from .types import JewelrySlotConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementSettings:
    """Tunable constants of the placement engine."""

    smoothing_alpha: float = 0.7  # weight kept from the previous frame
    stale_after_frames: int = 10
    neck_offset_fraction: float = DEFAULT_NECK_OFFSET_FRACTION
    earring_base_scale: float = 0.15
    necklace_width_multiplier: float = 1.5
    ring_width_ratio: float = 0.3
    bracelet_scale: float = 1.2
    watch_scale: float = 1.5
    default_finger_index: int = 3

    def __post_init__(self) -> None:
        if not (0.0 <= self.smoothing_alpha < 1.0):
            raise ValueError(f"smoothing_alpha must be in [0, 1), got {self.smoothing_alpha}")
        if self.stale_after_frames < 1:
            raise ValueError(f"stale_after_frames must be >= 1, got {self.stale_after_frames}")
        if self.default_finger_index not in range(5):
            raise ValueError(f"default_finger_index must be 0..4, got {self.default_finger_index}")
        for name in (
            "earring_base_scale",
            "necklace_width_multiplier",
            "ring_width_ratio",
            "bracelet_scale",
            "watch_scale",
        ):
            v = getattr(self, name)
            if not (v > 0 and math.isfinite(v)):
                raise ValueError(f"{name} must be a positive number, got {v}")
        if not math.isfinite(self.neck_offset_fraction):
            raise ValueError("neck_offset_fraction must be finite")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlacementSettings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown placement settings: {sorted(unknown)}")
        return cls(**dict(data))


# catalog key -> JewelrySlotConfig field
_CATALOG_KEYS: Dict[str, str] = {
    "sizeAdjustment": "size_adjustment",
    "preferredHand": "preferred_hand",
    "fingerIndex": "finger_index",
    "smoothing": "smoothing_enabled",
    "rotationOffset": "rotation_offset_degrees",
    "xOffset": "x_offset",
    "yOffset": "y_offset",
}


def slot_config_from_entry(entry: Mapping[str, Any]) -> JewelrySlotConfig:
    """Build a validated slot config from a jewelry catalog entry."""
    item_id = entry.get("id")
    if item_id is None or item_id == "":
        raise InvalidSlotConfigError(f"Catalog entry has no 'id': {dict(entry)!r}")
    if not entry.get("type"):
        raise InvalidSlotConfigError(f"Catalog entry {item_id!r} has no 'type'")

    kwargs: Dict[str, Any] = {"item_id": str(item_id), "category": entry["type"]}
    for key, field_name in _CATALOG_KEYS.items():
        if entry.get(key) is not None:
            kwargs[field_name] = entry[key]

    try:
        for numeric in ("size_adjustment", "rotation_offset_degrees", "x_offset", "y_offset"):
            if numeric in kwargs:
                kwargs[numeric] = float(kwargs[numeric])
    except (TypeError, ValueError) as e:
        raise InvalidSlotConfigError(f"Catalog entry {item_id!r}: {e}") from e

    # JSON writers sometimes emit 3.0 for 3.
    finger = kwargs.get("finger_index")
    if isinstance(finger, float) and finger.is_integer():
        kwargs["finger_index"] = int(finger)
    if "smoothing_enabled" in kwargs and not isinstance(kwargs["smoothing_enabled"], bool):
        raise InvalidSlotConfigError(
            f"Catalog entry {item_id!r}: smoothing must be true or false, got {kwargs['smoothing_enabled']!r}"
        )

    config = JewelrySlotConfig(**kwargs)
    config.validate()
    return config


def load_catalog(path: str) -> List[JewelrySlotConfig]:
    """Read a JSON list of catalog entries (or {"items": [...]})."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, Mapping):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise InvalidSlotConfigError(f"Catalog {path} must contain a list of items")
    configs = [slot_config_from_entry(entry) for entry in data]
    logger.info("Loaded %d catalog items from %s", len(configs), path)
    return configs

