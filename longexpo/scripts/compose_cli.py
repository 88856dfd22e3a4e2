from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import yaml

from longexpo.config import BLEND_MODES, EngineConfig, load_config
from longexpo.engine import LongExposureEngine
from longexpo.errors import EngineError
from longexpo.logging_utils import setup_logging
from longexpo.selection import Selection, parse_selection


def build_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Compose a long-exposure image from extracted frames."
    )
    p.add_argument(
        "--frames-dir", required=True, type=Path,
        help="Directory holding <prefix>_NNNN.<ext> frames",
    )
    sel = p.add_mutually_exclusive_group(required=True)
    sel.add_argument(
        "--indices", type=int, nargs="+", help="Frame indices (weight 1.0)"
    )
    sel.add_argument(
        "--payload",
        type=Path,
        help=(
            "JSON/YAML file with {frame_indices: [...]} or "
            "{frames: [{frame_number, frame_weight}, ...]}"
        ),
    )
    p.add_argument(
        "--config", type=Path, default=None, help="Engine config YAML"
    )
    p.add_argument("--mode", choices=BLEND_MODES, default=None)
    p.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel threads for loading and blending (default: config)",
    )
    p.add_argument(
        "--best-effort",
        action="store_true",
        help="Skip frames that fail to decode instead of failing",
    )
    p.add_argument("--progress", action="store_true", help="Show progress bars")
    p.add_argument("--log-level", default=None)
    return p.parse_args(argv)


def read_selection(args: argparse.Namespace) -> Selection:
    if args.indices is not None:
        return set(args.indices)
    with args.payload.open("r") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{args.payload}: expected a mapping")
    return parse_selection(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_args(argv)
    cfg = load_config(args.config) if args.config else EngineConfig()
    if args.workers is not None:
        cfg = replace(cfg, num_workers=args.workers)
    if args.best_effort:
        cfg = replace(cfg, best_effort=True)
    if args.progress:
        cfg = replace(cfg, show_progress=True)
    setup_logging(level=args.log_level or cfg.log_level)
    log = logging.getLogger("longexpo")

    try:
        selection = read_selection(args)
        result = LongExposureEngine(cfg).compose(
            args.frames_dir, selection, args.mode
        )
    except (EngineError, ValueError, OSError) as e:
        log.error("%s", e)
        return 1

    print(f"Image written: {result.path}")
    print(f"URL: {result.url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
