from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
from typing import Sequence, Set, Tuple, Union

from .errors import InvalidSelection, InvalidWeights, NotFound

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameRef:
    index: int
    path: Path


@dataclass(frozen=True)
class FrameWeight:
    frame_index: int
    weight: float = 1.0

    def __post_init__(self) -> None:
        if self.frame_index < 0:
            raise InvalidSelection(
                f"frame index must be >= 0, got {self.frame_index}"
            )
        if not math.isfinite(self.weight) or self.weight < 0:
            raise InvalidWeights(
                f"weight for frame {self.frame_index} must be a finite "
                f"value >= 0, got {self.weight}"
            )


Selection = Union[Iterable[int], Sequence[FrameWeight]]


def frame_filename(index: int, prefix: str = "ffout", ext: str = "png") -> str:
    return f"{prefix}_{index:04d}.{ext}"


def parse_frame_index(name: str, prefix: str = "ffout") -> Optional[int]:
    """Return the numeric suffix of `<prefix>_<digits>.<ext>`, else None."""
    stem = Path(name).stem
    m = re.fullmatch(re.escape(prefix) + r"_(\d+)", stem)
    if m is None:
        return None
    return int(m.group(1))


def scan_frames(
    frames_dir: Path, prefix: str = "ffout", ext: str = "png"
) -> Dict[int, Path]:
    """Build the index -> path mapping for every conforming frame file."""
    if not frames_dir.is_dir():
        raise NotFound(f"Frames directory not found: {frames_dir}")
    suffix = "." + ext.lower()
    mapping: Dict[int, Path] = {}
    for entry in sorted(frames_dir.iterdir()):
        if not entry.is_file() or entry.suffix.lower() != suffix:
            continue
        idx = parse_frame_index(entry.name, prefix)
        if idx is None:
            log.debug("Skipping non-frame file %s", entry.name)
            continue
        mapping[idx] = entry
    return mapping


def _is_weighted(selection: Selection) -> bool:
    if isinstance(selection, (list, tuple)):
        return len(selection) > 0 and all(
            isinstance(s, FrameWeight) for s in selection
        )
    return False


def _select_by_index(
    frames_dir: Path, indices: Iterable[int], prefix: str, ext: str
) -> Iterator[Tuple[FrameRef, float]]:
    wanted: Set[int] = set()
    for i in indices:
        if isinstance(i, bool) or not isinstance(i, int) or i < 0:
            raise InvalidSelection(f"Invalid frame index: {i!r}")
        wanted.add(i)
    candidates = scan_frames(frames_dir, prefix, ext)
    for idx in sorted(wanted & candidates.keys()):
        log.debug("Frame %d was included", idx)
        yield FrameRef(index=idx, path=candidates[idx]), 1.0


def _select_weighted(
    frames_dir: Path, weights: Sequence[FrameWeight], prefix: str, ext: str
) -> Iterator[Tuple[FrameRef, float]]:
    if not frames_dir.is_dir():
        raise NotFound(f"Frames directory not found: {frames_dir}")
    for fw in weights:
        path = frames_dir / frame_filename(fw.frame_index, prefix, ext)
        if not path.is_file():
            raise NotFound(f"Frame {fw.frame_index} not found: {path}")
        yield FrameRef(index=fw.frame_index, path=path), float(fw.weight)


def select_frames(
    frames_dir: Path,
    selection: Selection,
    prefix: str = "ffout",
    ext: str = "png",
) -> Iterator[Tuple[FrameRef, float]]:
    """Resolve a selection to (FrameRef, weight) pairs.

    A set/iterable of ints selects frames by index with weight 1.0, in
    ascending index order. A list of FrameWeight keeps caller order and
    repeats. Raises NotFound once exhausted if nothing resolved.
    """
    frames_dir = Path(frames_dir)
    if _is_weighted(selection):
        it = _select_weighted(
            frames_dir, selection, prefix, ext  # type: ignore[arg-type]
        )
    else:
        it = _select_by_index(frames_dir, selection, prefix, ext)  # type: ignore[arg-type]
    n = 0
    for pair in it:
        n += 1
        yield pair
    if n == 0:
        raise NotFound(f"No frames selected from {frames_dir}")


def _frame_weight_from_item(item: Any) -> FrameWeight:
    if not isinstance(item, Mapping):
        raise InvalidSelection(f"Frame entry must be a mapping: {item!r}")
    try:
        number = item["frame_number"]
        weight = item.get("frame_weight", 1.0)
    except KeyError as e:
        raise InvalidSelection(f"Frame entry missing {e}") from e
    if isinstance(number, bool) or not isinstance(number, int):
        raise InvalidSelection(f"frame_number must be an integer: {number!r}")
    try:
        weight_f = float(weight)
    except (TypeError, ValueError) as e:
        raise InvalidSelection(f"frame_weight must be a number: {weight!r}") from e
    return FrameWeight(frame_index=number, weight=weight_f)


def parse_selection(payload: Mapping[str, Any]) -> Union[Set[int], List[FrameWeight]]:
    """Turn a request payload into a selection.

    Accepts ``{"frame_indices": [...]}`` or
    ``{"frames": [{"frame_number": n, "frame_weight": w}, ...]}``;
    ``frames_to_include`` is an alias of ``frames``.
    """
    if "frame_indices" in payload:
        raw = payload["frame_indices"]
        if not isinstance(raw, (list, tuple, set)):
            raise InvalidSelection("frame_indices must be a list")
        out: Set[int] = set()
        for i in raw:
            if isinstance(i, bool) or not isinstance(i, int) or i < 0:
                raise InvalidSelection(f"Invalid frame index: {i!r}")
            out.add(i)
        return out
    for key in ("frames", "frames_to_include"):
        if key in payload:
            raw = payload[key]
            if not isinstance(raw, (list, tuple)):
                raise InvalidSelection(f"{key} must be a list")
            return [_frame_weight_from_item(item) for item in raw]
    raise InvalidSelection(
        "Selection needs 'frame_indices' or 'frames'"
    )
