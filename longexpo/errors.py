from __future__ import annotations


class EngineError(Exception):
    """Base class for every failure raised while composing an image."""


class NotFound(EngineError, FileNotFoundError):
    """Selection resolved to zero frames, or a frame file is absent."""


class DecodeError(EngineError):
    """A frame file exists but could not be decoded as an image."""


class EmptyFrameSet(EngineError):
    """No usable frames remained at reduction time."""


class DimensionMismatch(EngineError, ValueError):
    pass


class InvalidWeights(EngineError, ValueError):
    pass


class InvalidSelection(EngineError, ValueError):
    """Selection payload is malformed."""


class OutputWriteError(EngineError, OSError):
    """Writing the composite image failed."""


class ExtractionError(EngineError, RuntimeError):
    """ffmpeg could not extract frames from a video."""


class UnknownBlendMode(EngineError, ValueError):
    """Requested blend mode is not one of the registered strategies."""
