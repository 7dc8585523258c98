from __future__ import annotations


class TryOnError(Exception):
    """Base class for placement engine errors."""


class MalformedInputError(TryOnError, ValueError):
    """Raw landmark input is absent or cannot be indexed."""


class InvalidSlotConfigError(TryOnError, ValueError):
    """A jewelry slot configuration cannot be used."""


class DetectionUnavailableError(TryOnError, RuntimeError):
    """The landmark model is not loaded (or was closed)."""


class FrameOrderError(TryOnError, ValueError):
    """A frame arrived with a timestamp older than the previous frame."""
