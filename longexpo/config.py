from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

BLEND_MODES = ("max_light", "weighted_brightness")


@dataclass
class EngineConfig:
    # <frames_root>/<project_id>/frames holds a project's extracted frames
    frames_root: Path = Path("media/outputs")
    # None writes composites next to the frames directory
    output_root: Optional[Path] = None
    media_root: Path = Path("media")
    public_base_url: str = "http://localhost:8080"
    frame_prefix: str = "ffout"
    frame_ext: str = "png"
    blend_mode: str = "max_light"
    num_workers: Optional[int] = None
    block_rows: int = 64
    # Drop undecodable frames with a warning instead of failing
    best_effort: bool = False
    show_progress: bool = False
    log_level: str = "INFO"
    ffmpeg_path: Optional[str] = None


def _as_int_or_none(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, str) and v.lower() == "auto":
        return None
    return int(v)


def _as_path_or_none(v: Any) -> Optional[Path]:
    if v is None:
        return None
    return Path(v)


def config_from_dict(data: Dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a plain mapping, ignoring unknown keys."""
    d = EngineConfig()
    cfg = EngineConfig(
        frames_root=Path(data.get("frames_root", d.frames_root)),
        output_root=_as_path_or_none(data.get("output_root")),
        media_root=Path(data.get("media_root", d.media_root)),
        public_base_url=str(data.get("public_base_url", d.public_base_url)),
        frame_prefix=str(data.get("frame_prefix", d.frame_prefix)),
        frame_ext=str(data.get("frame_ext", d.frame_ext)).lstrip("."),
        blend_mode=str(data.get("blend_mode", d.blend_mode)),
        num_workers=_as_int_or_none(data.get("num_workers", "auto")),
        block_rows=int(data.get("block_rows", d.block_rows)),
        best_effort=bool(data.get("best_effort", d.best_effort)),
        show_progress=bool(data.get("show_progress", d.show_progress)),
        log_level=str(data.get("log_level", d.log_level)),
        ffmpeg_path=(
            None if data.get("ffmpeg_path") is None
            else str(data["ffmpeg_path"])
        ),
    )
    if cfg.blend_mode not in BLEND_MODES:
        raise ValueError(
            f"Unknown blend_mode {cfg.blend_mode!r}; "
            f"expected one of {', '.join(BLEND_MODES)}"
        )
    if cfg.block_rows <= 0:
        raise ValueError("block_rows must be > 0")
    return cfg


def load_config(path: Path) -> EngineConfig:
    with path.open("r") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}
    # Accept either a top-level `engine:` section or a flat mapping
    section = data.get("engine", data)
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'engine' must be a mapping")
    return config_from_dict(section)


def config_as_dict(cfg: EngineConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(cfg):
        v = getattr(cfg, f.name)
        out[f.name] = str(v) if isinstance(v, Path) else v
    return out
