from __future__ import annotations

from pathlib import Path

MEDIA_SEGMENT = "/media/"


def to_public_url(path: Path, media_root: Path, public_base_url: str) -> str:
    """Map a file below the media root to the URL it is served at.

    ``media/outputs/p1/x.png`` with base ``http://host`` becomes
    ``http://host/outputs/p1/x.png``. Paths outside the configured root fall
    back to whatever follows the first ``/media/`` segment, and failing that
    to the full path.
    """
    abs_path = Path(path).resolve()
    root = Path(media_root).resolve()
    try:
        rel = abs_path.relative_to(root).as_posix()
    except ValueError:
        posix = abs_path.as_posix()
        _, sep, tail = posix.partition(MEDIA_SEGMENT)
        rel = tail if sep else posix
    return f"{public_base_url.rstrip('/')}/{rel.lstrip('/')}"
