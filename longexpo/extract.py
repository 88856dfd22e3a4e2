from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Union

import imageio_ffmpeg  # type: ignore

from .errors import ExtractionError
from .selection import scan_frames

log = logging.getLogger(__name__)


def ffmpeg_exe(override: Optional[str] = None) -> str:
    if override:
        return override
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        raise ExtractionError(f"No ffmpeg binary available: {e}") from e


def build_ffmpeg_command(
    video: Path,
    frames_dir: Path,
    *,
    fps: Union[int, float],
    scale: str = "-1:-1",
    prefix: str = "ffout",
    ext: str = "png",
    ffmpeg: Optional[str] = None,
) -> List[str]:
    """ffmpeg argv writing frames as `<prefix>_%04d.<ext>` into frames_dir."""
    if fps <= 0:
        raise ValueError(f"fps must be > 0, got {fps}")
    pattern = Path(frames_dir) / f"{prefix}_%04d.{ext}"
    return [
        ffmpeg_exe(ffmpeg),
        "-hide_banner",
        "-loglevel", "error",
        "-i", str(video),
        "-threads", "0",
        "-vf", f"scale={scale}",
        "-r", str(fps),
        str(pattern),
    ]


def extract_frames(
    video: Path,
    frames_dir: Path,
    *,
    fps: Union[int, float],
    scale: str = "-1:-1",
    prefix: str = "ffout",
    ext: str = "png",
    overwrite: bool = True,
    ffmpeg: Optional[str] = None,
) -> List[Path]:
    """Extract frames from video into frames_dir and return them by index.

    An existing frames_dir is cleared first when overwrite is set, so stale
    frames from an earlier fps/scale never mix with the new ones.
    """
    video = Path(video)
    frames_dir = Path(frames_dir)
    if not video.is_file():
        raise ExtractionError(f"Video not found: {video}")
    if frames_dir.exists() and overwrite:
        log.debug("Clearing existing frames in %s", frames_dir)
        shutil.rmtree(frames_dir)
    frames_dir.mkdir(parents=True, exist_ok=True)

    cmd = build_ffmpeg_command(
        video, frames_dir, fps=fps, scale=scale, prefix=prefix, ext=ext,
        ffmpeg=ffmpeg,
    )
    log.info("Extracting frames: fps=%s scale=%s -> %s", fps, scale, frames_dir)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ExtractionError(f"ffmpeg not found: {cmd[0]}") from e
    if result.returncode != 0:
        raise ExtractionError(
            f"ffmpeg failed with exit code {result.returncode}: "
            f"{result.stderr.strip()}"
        )

    frames = scan_frames(frames_dir, prefix, ext)
    if not frames:
        raise ExtractionError(f"ffmpeg produced no frames from {video}")
    log.info("Extracted %d frames", len(frames))
    return [frames[i] for i in sorted(frames)]
