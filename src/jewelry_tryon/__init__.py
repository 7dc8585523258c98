from .config import PlacementSettings, load_catalog, slot_config_from_entry
from .errors import (
    DetectionUnavailableError,
    FrameOrderError,
    InvalidSlotConfigError,
    MalformedInputError,
    TryOnError,
)
from .pipeline import PlacementPipeline
from .types import (
    AnchorTransform,
    FaceDetection,
    HandDetection,
    Handedness,
    JewelryCategory,
    JewelrySlotConfig,
    KeypointSet,
    Point3D,
    SlotId,
)

__all__ = [
    "AnchorTransform",
    "DetectionUnavailableError",
    "FaceDetection",
    "FrameOrderError",
    "HandDetection",
    "Handedness",
    "InvalidSlotConfigError",
    "JewelryCategory",
    "JewelrySlotConfig",
    "KeypointSet",
    "MalformedInputError",
    "PlacementPipeline",
    "PlacementSettings",
    "Point3D",
    "SlotId",
    "TryOnError",
    "load_catalog",
    "slot_config_from_entry",
]
