from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .config import PlacementSettings
from .errors import FrameOrderError, InvalidSlotConfigError, MalformedInputError
from .orientation import face_detection_from_landmarks, hand_detection_from_landmarks
from .resolver import AnchorResolver
from .smoothing import TemporalSmoother
from .types import AnchorTransform, DetectionResult, FaceDetection, HandDetection, JewelrySlotConfig, SlotId

logger = logging.getLogger(__name__)


class PlacementPipeline:
    """
    Detections -> keypoints -> anchor rules -> smoothing, once per frame.

    One instance per try-on session. Not thread-safe: call `process()` from a
    single frame loop, in frame order.
    """

    def __init__(
        self,
        settings: Optional[PlacementSettings] = None,
        resolver: Optional[AnchorResolver] = None,
        smoother: Optional[TemporalSmoother] = None,
    ) -> None:
        self.settings = settings or PlacementSettings()
        self.resolver = resolver or AnchorResolver(self.settings)
        self.smoother = smoother or TemporalSmoother(
            alpha=self.settings.smoothing_alpha,
            stale_after_frames=self.settings.stale_after_frames,
        )
        self._slots: List[JewelrySlotConfig] = []
        self._last_timestamp: Optional[float] = None
        self._frames_processed = 0

    def __enter__(self) -> "PlacementPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.reset()

    @property
    def slots(self) -> List[JewelrySlotConfig]:
        return list(self._slots)

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._last_timestamp

    def configure(self, slots: Sequence[JewelrySlotConfig]) -> None:
        """
        Replace the active slot configuration.

        The whole sequence is validated before anything changes; slots that are
        removed or now hold a different config lose their smoothing history.
        """

        slots = list(slots)
        new_by_slot: Dict[SlotId, JewelrySlotConfig] = {}
        for config in slots:
            if not isinstance(config, JewelrySlotConfig):
                raise InvalidSlotConfigError(f"Expected JewelrySlotConfig, got {type(config).__name__}")
            config.validate()
            if not self.resolver.supports(config.category):
                raise InvalidSlotConfigError(f"{config.item_id!r}: no placement rule for {config.category.value}")
            for slot in config.slots:
                if slot in new_by_slot:
                    raise InvalidSlotConfigError(
                        f"Slot {slot.value} is claimed by both {new_by_slot[slot].item_id!r} and {config.item_id!r}"
                    )
                new_by_slot[slot] = config

        old_by_slot = {slot: c for c in self._slots for slot in c.slots}
        for slot, old in old_by_slot.items():
            if new_by_slot.get(slot) != old:
                self.smoother.reset_slot(slot)

        self._slots = slots
        logger.info("Configured %d jewelry slot(s): %s", len(self._slots), [c.item_id for c in self._slots])

    def reset(self) -> None:
        """Forget all smoothing state and frame ordering (new session)."""
        self.smoother.reset()
        self._last_timestamp = None
        self._frames_processed = 0

    def _prepare(self, detections: Sequence[DetectionResult]) -> List[DetectionResult]:
        prepared: List[DetectionResult] = []
        for det in detections:
            try:
                if isinstance(det, FaceDetection):
                    if det.keypoints is None:
                        built = face_detection_from_landmarks(
                            det.landmarks, det.confidence, self.settings.neck_offset_fraction
                        )
                        det = replace(built, rotation_hint=det.rotation_hint or built.rotation_hint)
                elif isinstance(det, HandDetection):
                    if det.keypoints is None:
                        built = hand_detection_from_landmarks(det.landmarks, det.handedness, det.confidence)
                        det = replace(built, orientation=det.orientation or built.orientation)
                else:
                    raise MalformedInputError(f"Not a detection result: {type(det).__name__}")
            except MalformedInputError as e:
                logger.warning("Dropping detection: %s", e)
                continue
            prepared.append(det)
        return prepared

    def process(self, detections: Optional[Sequence[DetectionResult]], frame_timestamp: float) -> List[AnchorTransform]:
        """
        Place every configured slot for one frame.

        Slots without a candidate this frame repeat their last transform, marked
        `stale` after `stale_after_frames` consecutive misses.
        """

        if self._last_timestamp is not None and frame_timestamp < self._last_timestamp:
            raise FrameOrderError(
                f"Frame timestamp {frame_timestamp} is older than the previous frame ({self._last_timestamp})"
            )
        self._last_timestamp = frame_timestamp
        self._frames_processed += 1

        prepared = self._prepare(detections or [])
        out: List[AnchorTransform] = []

        for config in self._slots:
            try:
                candidates = self.resolver.resolve(config, prepared)
            except InvalidSlotConfigError:
                raise
            except MalformedInputError as e:
                logger.warning("%s: skipped this frame: %s", config.item_id, e)
                candidates = []
            except (ArithmeticError, LookupError, TypeError, ValueError):
                logger.exception("%s: placement failed this frame", config.item_id)
                candidates = []

            by_slot = {c.slot: c for c in candidates}
            for slot in config.slots:
                candidate = by_slot.get(slot)
                if candidate is not None:
                    out.append(
                        self.smoother.update(
                            replace(candidate, timestamp=frame_timestamp),
                            smoothing=config.smoothing_enabled,
                        )
                    )
                    continue
                held = self.smoother.hold(slot, config.item_id)
                if held is not None:
                    out.append(held)

        return out
