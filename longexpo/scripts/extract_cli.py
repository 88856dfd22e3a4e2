from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from longexpo.config import EngineConfig, load_config
from longexpo.errors import EngineError
from longexpo.extract import extract_frames
from longexpo.logging_utils import setup_logging


def build_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Extract numbered PNG frames from a video with ffmpeg."
    )
    p.add_argument("--video", required=True, type=Path)
    p.add_argument(
        "--frames-dir",
        type=Path,
        default=None,
        help="Output directory (defaults to <frames_root>/<video stem>/frames)",
    )
    p.add_argument("--fps", type=float, required=True)
    p.add_argument(
        "--scale",
        default="-1:-1",
        help="ffmpeg scale filter argument, e.g. 1280:-1",
    )
    p.add_argument("--config", type=Path, default=None)
    p.add_argument(
        "--keep-existing",
        action="store_true",
        help="Do not clear an existing frames directory first",
    )
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_args(argv)
    cfg = load_config(args.config) if args.config else EngineConfig()
    setup_logging(level=cfg.log_level)
    log = logging.getLogger("longexpo")

    frames_dir: Path = (
        args.frames_dir
        if args.frames_dir is not None
        else cfg.frames_root / args.video.stem / "frames"
    )
    try:
        frames = extract_frames(
            args.video,
            frames_dir,
            fps=args.fps,
            scale=args.scale,
            prefix=cfg.frame_prefix,
            ext=cfg.frame_ext,
            overwrite=not args.keep_existing,
            ffmpeg=cfg.ffmpeg_path,
        )
    except (EngineError, ValueError) as e:
        log.error("%s", e)
        return 1
    print(f"Frames written: {len(frames)} -> {frames_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
