"""Long-exposure image compositing from extracted video frames."""

from .config import EngineConfig, load_config
from .engine import CompositeResult, LongExposureEngine, compose
from .selection import FrameWeight, parse_selection

__all__ = [
    "CompositeResult",
    "EngineConfig",
    "FrameWeight",
    "LongExposureEngine",
    "compose",
    "load_config",
    "parse_selection",
]
