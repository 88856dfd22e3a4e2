from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from longexpo.selection import frame_filename


def light_frame(
    w: int, h: int, cx: float, cy: float, r: float = 6.0
) -> Image.Image:
    """Dark background with one warm light blob centred at (cx, cy)."""
    yy, xx = np.mgrid[0:h, 0:w]
    d2 = (yy - cy) ** 2 + (xx - cx) ** 2
    glow = np.exp(-d2 / (2.0 * r ** 2))
    img = np.zeros((h, w, 4), dtype=np.float32)
    img[:, :, 0] = 0.05 + 0.95 * glow
    img[:, :, 1] = 0.05 + 0.70 * glow
    img[:, :, 2] = 0.08 + 0.30 * glow
    img[:, :, 3] = 1.0
    return Image.fromarray((np.clip(img, 0.0, 1.0) * 255).astype(np.uint8))


def trail(out: Path, n: int = 8, w: int = 256, h: int = 128) -> None:
    """Write n frames of a light moving along a sine path."""
    out.mkdir(parents=True, exist_ok=True)
    for i in range(1, n + 1):
        t = (i - 1) / float(max(1, n - 1))
        cx = 16 + t * (w - 32)
        cy = h / 2 + 0.3 * h * np.sin(2 * np.pi * t)
        light_frame(w, h, cx, cy).save(out / frame_filename(i))


def main() -> None:
    trail(Path("assets") / "trail" / "frames")


if __name__ == "__main__":
    main()
