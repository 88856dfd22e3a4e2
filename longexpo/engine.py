from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .config import BLEND_MODES, EngineConfig
from .errors import UnknownBlendMode
from .loader import load_frames
from .reducer import reduce_frames
from .selection import Selection, select_frames
from .timing import TimingStats, record
from .urls import to_public_url
from .writer import default_output_dir, timestamped_path, write_composite

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositeResult:
    path: Path
    url: str
    width: int
    height: int
    frame_count: int
    mode: str
    timings: Dict[str, Any] = field(default_factory=dict)


class LongExposureEngine:
    """Composes long-exposure images from extracted video frames.

    Usage:
        engine = LongExposureEngine(EngineConfig(frames_root=Path("media/outputs")))
        result = engine.compose_project("abc123", {1, 2, 3})
        print(result.path, result.url)
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config if config is not None else EngineConfig()

    def frames_dir_for(self, project_id: str) -> Path:
        return self.config.frames_root / project_id / "frames"

    def output_dir_for(self, frames_dir: Path) -> Path:
        if self.config.output_root is not None:
            return self.config.output_root
        return default_output_dir(frames_dir)

    def public_url(self, path: Path) -> str:
        return to_public_url(
            path, self.config.media_root, self.config.public_base_url
        )

    def compose(
        self,
        frames_dir: Path,
        selection: Selection,
        mode: Optional[str] = None,
    ) -> CompositeResult:
        cfg = self.config
        mode = mode or cfg.blend_mode
        if mode not in BLEND_MODES:
            raise UnknownBlendMode(f"Unknown blend mode: {mode!r}")
        frames_dir = Path(frames_dir)
        ts = TimingStats()
        log.info("Composing %s from %s", mode, frames_dir)

        with record(ts, "load"):
            frames = load_frames(
                select_frames(
                    frames_dir, selection, cfg.frame_prefix, cfg.frame_ext
                ),
                workers=cfg.num_workers,
                best_effort=cfg.best_effort,
                show_progress=cfg.show_progress,
            )
        with record(ts, "reduce"):
            image = reduce_frames(
                frames,
                mode,
                workers=cfg.num_workers,
                block_rows=cfg.block_rows,
                show_progress=cfg.show_progress,
            )
        with record(ts, "write"):
            out = write_composite(
                image, timestamped_path(self.output_dir_for(frames_dir))
            )

        log.info(
            "Composed %d frames (%dx%d) into %s",
            len(frames), image.width, image.height, out,
        )
        return CompositeResult(
            path=out,
            url=self.public_url(out),
            width=image.width,
            height=image.height,
            frame_count=len(frames),
            mode=mode,
            timings=ts.as_dict(),
        )

    def compose_project(
        self,
        project_id: str,
        selection: Selection,
        mode: Optional[str] = None,
    ) -> CompositeResult:
        return self.compose(self.frames_dir_for(project_id), selection, mode)


def compose(
    frames_dir: Path,
    selection: Selection,
    *,
    mode: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> Path:
    """Stateless convenience API: compose and return the output path."""
    return LongExposureEngine(config).compose(frames_dir, selection, mode).path
