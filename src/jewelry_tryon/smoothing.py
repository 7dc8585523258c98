from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .geometry import blend_angle
from .types import AnchorTransform, Point3D, SlotId

logger = logging.getLogger(__name__)

SmootherKey = Tuple[SlotId, str]  # (slot, item id)


@dataclass
class _SlotTrack:
    last: AnchorTransform  # last fresh (non-held) output
    missed: int = 0


class TemporalSmoother:
    """
    Exponential smoothing of anchor transforms, one track per (slot, item).

    `alpha` is the weight kept from the previous output:
    smoothed = previous * alpha + current * (1 - alpha).
    """

    def __init__(self, alpha: float = 0.7, stale_after_frames: int = 10) -> None:
        if not (0.0 <= alpha < 1.0):
            raise ValueError(f"alpha must be in [0, 1), got {alpha}")
        if stale_after_frames < 1:
            raise ValueError(f"stale_after_frames must be >= 1, got {stale_after_frames}")
        self.alpha = alpha
        self.stale_after_frames = stale_after_frames
        self._tracks: Dict[SmootherKey, _SlotTrack] = {}

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, key: SmootherKey) -> bool:
        return key in self._tracks

    def _blend(self, prev: AnchorTransform, cur: AnchorTransform) -> AnchorTransform:
        a = self.alpha
        b = 1.0 - a
        p, c = prev.position, cur.position
        return replace(
            cur,
            position=Point3D(p.x * a + c.x * b, p.y * a + c.y * b, p.z * a + c.z * b),
            scale_factor=prev.scale_factor * a + cur.scale_factor * b,
            rotation_degrees=blend_angle(prev.rotation_degrees, cur.rotation_degrees, a),
        )

    def update(self, candidate: AnchorTransform, smoothing: bool = True) -> AnchorTransform:
        """Feed this frame's candidate; the first observation passes through."""
        key = (candidate.slot, candidate.item_id)
        track = self._tracks.get(key)
        if track is None or not smoothing:
            out = candidate
        else:
            out = self._blend(track.last, candidate)
        out = replace(out, stale=False, missed_frames=0)
        self._tracks[key] = _SlotTrack(last=out)
        return out

    def hold(self, slot: SlotId, item_id: str) -> Optional[AnchorTransform]:
        """
        Record a miss and return the last output, flagged stale once
        `stale_after_frames` consecutive frames were missed. None if the slot
        was never observed.
        """

        track = self._tracks.get((slot, item_id))
        if track is None:
            return None
        track.missed += 1
        return replace(track.last, stale=track.missed >= self.stale_after_frames, missed_frames=track.missed)

    def reset_slot(self, slot: SlotId) -> None:
        for key in [k for k in self._tracks if k[0] is slot]:
            del self._tracks[key]
        logger.debug("Smoother reset for slot %s", slot.value)

    def reset(self) -> None:
        self._tracks.clear()
