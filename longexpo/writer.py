from __future__ import annotations

import logging
import os
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Tuple

import numpy as np
from PIL import Image

from .errors import OutputWriteError
from .reducer import CompositeImage

log = logging.getLogger(__name__)

OUTPUT_BASE_NAME = "long_exposure_image"


def now_stamp(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S")


def default_output_dir(frames_dir: Path) -> Path:
    """Composites live next to the frames directory, in its parent."""
    return Path(frames_dir).resolve().parent


def timestamped_path(
    directory: Path,
    base_name: str = OUTPUT_BASE_NAME,
    ext: str = "png",
    now: Optional[datetime] = None,
) -> Path:
    """Return `<directory>/<base_name>_<stamp>.<ext>` that does not exist yet.

    Two composites within the same second get a `_<n>` counter appended.
    The name is only a candidate; write_composite claims it atomically and
    moves on to the next counter if another writer got there first.
    """
    stamp = now_stamp(now)
    path = Path(directory) / f"{base_name}_{stamp}.{ext}"
    n = 1
    while path.exists():
        path = Path(directory) / f"{base_name}_{stamp}_{n}.{ext}"
        n += 1
    return path


def to_image(image: CompositeImage) -> Image.Image:
    arr: np.ndarray[Any, Any] = np.ascontiguousarray(image.pixels, dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError("Composite pixels must be an (H,W,4) array")
    return Image.fromarray(arr)


def _open_temp(directory: Path, stem: str) -> Tuple[int, str]:
    """Create a fresh temp file; mode 0o666 is filtered by the umask."""
    while True:
        name = os.path.join(directory, f".{stem}.{secrets.token_hex(6)}.tmp")
        try:
            fd = os.open(name, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o666)
        except FileExistsError:
            continue
        return fd, name


def _publish(tmp_name: str, path: Path) -> Path:
    """Hard-link tmp_name to path, or to path with a `_<n>` counter if taken."""
    candidate = path
    n = 1
    while True:
        try:
            os.link(tmp_name, candidate)
        except FileExistsError:
            candidate = path.with_name(f"{path.stem}_{n}{path.suffix}")
            n += 1
            continue
        return candidate


def write_composite(image: CompositeImage, path: Path) -> Path:
    """Encode image as PNG at path, or next to it if path is taken.

    The bytes go to a temporary file in the same directory that is then
    linked under its final name, so a published name always holds a complete
    image and an existing file is never replaced. Returns the name used.
    """
    path = Path(path)
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = _open_temp(path.parent, path.stem)
        with os.fdopen(fd, "wb") as f:
            to_image(image).save(f, format="PNG")
        out = _publish(tmp_name, path)
    except OSError as e:
        raise OutputWriteError(f"Could not write {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    log.info("Wrote %dx%d composite to %s", image.width, image.height, out)
    return out.resolve()
