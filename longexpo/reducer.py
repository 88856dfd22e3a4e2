from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed  # type: ignore
from tqdm import tqdm
from tqdm_joblib import tqdm_joblib  # type: ignore

from .blend import BlockStrategy, get_strategy, normalize_weights
from .errors import DimensionMismatch, EmptyFrameSet
from .loader import LoadedFrame

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositeImage:
    width: int
    height: int
    pixels: np.ndarray[Any, Any]  # (H, W, 4) uint8


def check_frames(frames: Sequence[LoadedFrame]) -> Tuple[int, int]:
    """Return the shared (height, width) or raise."""
    if len(frames) == 0:
        raise EmptyFrameSet("No usable frames to compose")
    h, w = frames[0].height, frames[0].width
    for f in frames[1:]:
        if (f.height, f.width) != (h, w):
            raise DimensionMismatch(
                f"Frame {f.ref.index} is {f.width}x{f.height}, expected "
                f"{w}x{h} (from frame {frames[0].ref.index})"
            )
    return h, w


def row_blocks(height: int, block_rows: int) -> List[Tuple[int, int]]:
    block_rows = max(1, int(block_rows))
    return [
        (y0, min(height, y0 + block_rows))
        for y0 in range(0, height, block_rows)
    ]


def _reduce_block(
    strategy: BlockStrategy,
    pixels: Sequence[np.ndarray[Any, Any]],
    weights: np.ndarray[Any, Any],
    y0: int,
    y1: int,
) -> Tuple[int, np.ndarray[Any, Any]]:
    return y0, strategy([p[y0:y1] for p in pixels], weights)


def reduce_frames(
    frames: Sequence[LoadedFrame],
    mode: str = "max_light",
    *,
    workers: Optional[int] = None,
    block_rows: int = 64,
    show_progress: bool = False,
) -> CompositeImage:
    """Apply the blend strategy to every coordinate of the frame grid.

    Rows are split into blocks reduced on a thread pool; each block only
    reads the shared frame buffers and returns its own slice of the output.
    workers=None uses every core, 1 runs inline.
    """
    strategy = get_strategy(mode)
    h, w = check_frames(frames)
    if mode == "weighted_brightness":
        weights = normalize_weights([f.weight for f in frames])
    else:
        weights = np.ones((len(frames),), dtype=np.float64)

    pixels = [f.pixels for f in frames]
    blocks = row_blocks(h, block_rows)
    n_jobs = -1 if workers is None else max(1, int(workers))
    log.debug(
        "Reducing %d frames of %dx%d in %d blocks (mode=%s, n_jobs=%s)",
        len(frames), w, h, len(blocks), mode, n_jobs,
    )

    progress = (
        tqdm_joblib(tqdm(total=len(blocks), desc="reduce", unit="block"))
        if show_progress
        else contextlib.nullcontext()
    )
    with progress:
        parts = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_reduce_block)(strategy, pixels, weights, y0, y1)
            for y0, y1 in blocks
        )

    out = np.empty((h, w, 4), dtype=np.uint8)
    for y0, part in parts:
        out[y0: y0 + part.shape[0]] = part
    return CompositeImage(width=w, height=h, pixels=out)
