from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError
from tqdm import tqdm

from .errors import DecodeError, EngineError, NotFound
from .selection import FrameRef

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedFrame:
    ref: FrameRef
    pixels: np.ndarray[Any, Any]  # (H, W, 4) uint8, read-only
    weight: float = 1.0

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])


def to_numpy_rgba(img: Image.Image) -> np.ndarray[Any, Any]:
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    arr = np.array(img, dtype=np.uint8)
    arr.setflags(write=False)
    return arr


def load_frame(ref: FrameRef, weight: float = 1.0) -> LoadedFrame:
    try:
        with Image.open(ref.path) as img:
            pixels = to_numpy_rgba(img)
    except FileNotFoundError as e:
        raise NotFound(f"Frame {ref.index} not found: {ref.path}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(
            f"Frame {ref.index} could not be decoded ({ref.path}): {e}"
        ) from e
    return LoadedFrame(ref=ref, pixels=pixels, weight=float(weight))


def load_frames(
    pairs: Iterable[Tuple[FrameRef, float]],
    *,
    workers: Optional[int] = None,
    best_effort: bool = False,
    show_progress: bool = False,
) -> List[LoadedFrame]:
    """Decode selected frames concurrently, keeping selection order.

    Every frame is attempted even if another fails. With best_effort the
    failing frames are dropped with a warning; otherwise the first failure in
    selection order is raised after all loads finish.
    """
    items = list(pairs)
    if not items:
        return []
    if workers is None or workers <= 0:
        workers = max(1, os.cpu_count() or 1)
    workers = min(workers, len(items))

    def _try_load(
        item: Tuple[FrameRef, float]
    ) -> Union[LoadedFrame, EngineError]:
        ref, weight = item
        try:
            return load_frame(ref, weight)
        except EngineError as e:
            return e

    with ThreadPoolExecutor(max_workers=workers) as ex:
        results = ex.map(_try_load, items)
        if show_progress:
            results = tqdm(results, total=len(items), desc="load", unit="frame")
        outcomes = list(results)

    frames: List[LoadedFrame] = []
    first_error: Optional[EngineError] = None
    for outcome in outcomes:
        if isinstance(outcome, LoadedFrame):
            frames.append(outcome)
        elif best_effort:
            log.warning("Dropping frame: %s", outcome)
        elif first_error is None:
            first_error = outcome
    if first_error is not None:
        raise first_error
    log.debug("Loaded %d of %d frames", len(frames), len(items))
    return frames
