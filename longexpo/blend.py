"""Pixel blending strategies for long-exposure composites.

Each strategy takes the same row block cut from every frame, as a list of
(h, w, 4) uint8 arrays in frame order, plus one weight per frame, and returns
the blended (h, w, 4) uint8 block. The value at a coordinate depends only on
that coordinate across frames, so any row partitioning gives the same image.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Literal, Sequence

import numpy as np

from .errors import InvalidWeights

BlendMode = Literal["max_light", "weighted_brightness"]
BlockStrategy = Callable[
    [Sequence[np.ndarray[Any, Any]], np.ndarray[Any, Any]], np.ndarray[Any, Any]
]

# BT.601 luma coefficients
LUMA_R, LUMA_G, LUMA_B = 0.299, 0.587, 0.114
# Sharpens the bias toward bright pixels, the way highlights dominate film
BRIGHTNESS_EXPONENT = 4.5


def normalize_weights(weights: Sequence[float]) -> np.ndarray[Any, Any]:
    """Scale weights to sum to 1.

    Raises InvalidWeights for an empty list, any negative or non-finite
    weight, or a zero sum.
    """
    if len(weights) == 0:
        raise InvalidWeights("No weights given")
    for w in weights:
        if not math.isfinite(float(w)) or float(w) < 0:
            raise InvalidWeights(f"Weights must be finite and >= 0, got {w}")
    w = np.asarray(weights, dtype=np.float64)
    s = float(w.sum())
    if s <= 0:
        raise InvalidWeights("Frame weights sum to zero")
    return w / s


def perceptual_brightness(block: np.ndarray[Any, Any]) -> np.ndarray[Any, Any]:
    """BT.601 brightness in [0, 1] of an (h, w, >=3) array in 0..255."""
    f = block[..., :3].astype(np.float64)
    y = (LUMA_R * f[..., 0] + LUMA_G * f[..., 1] + LUMA_B * f[..., 2]) / 255.0
    return np.clip(y, 0.0, 1.0)


def max_light(
    blocks: Sequence[np.ndarray[Any, Any]],
    weights: np.ndarray[Any, Any],
) -> np.ndarray[Any, Any]:
    """Per-channel maximum over frames with opaque alpha; weights unused."""
    if len(blocks) == 0:
        raise ValueError("max_light needs at least one frame")
    h, w = blocks[0].shape[:2]
    out = np.empty((h, w, 4), dtype=np.uint8)
    rgb = out[..., :3]
    rgb[...] = blocks[0][..., :3]
    for b in blocks[1:]:
        np.maximum(rgb, b[..., :3], out=rgb)
    out[..., 3] = 255
    return out


def weighted_brightness(
    blocks: Sequence[np.ndarray[Any, Any]],
    weights: np.ndarray[Any, Any],
) -> np.ndarray[Any, Any]:
    """Brightness- and alpha-weighted average over frames.

    ``weights`` must already be normalized. Each frame contributes
    ``p = w * a * b**4.5`` with ``a`` the alpha in [0, 1] and ``b`` the
    perceptual brightness; coordinates where every contribution is zero come
    out as transparent black.
    """
    if len(blocks) == 0:
        raise ValueError("weighted_brightness needs at least one frame")
    if len(weights) != len(blocks):
        raise ValueError(
            f"Got {len(weights)} weights for {len(blocks)} frames"
        )
    h, w = blocks[0].shape[:2]
    acc_rgb = np.zeros((h, w, 3), dtype=np.float64)
    acc_a = np.zeros((h, w), dtype=np.float64)
    acc_p = np.zeros((h, w), dtype=np.float64)
    # Accumulate in frame order so results do not depend on partitioning
    for block, fw in zip(blocks, weights):
        if fw <= 0:
            continue
        f = block.astype(np.float64)
        a = f[..., 3] / 255.0
        b = perceptual_brightness(block)
        p = float(fw) * a * np.power(b, BRIGHTNESS_EXPONENT)
        acc_rgb += p[..., None] * f[..., :3]
        acc_a += p * a
        acc_p += p

    lit = acc_p > 0
    denom = np.where(lit, acc_p, 1.0)
    rgb = np.clip(np.rint(acc_rgb / denom[..., None]), 0.0, 255.0)
    alpha = np.clip(np.rint(acc_a / denom * 255.0), 0.0, 255.0)

    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[..., :3] = np.where(lit[..., None], rgb, 0.0).astype(np.uint8)
    out[..., 3] = np.where(lit, alpha, 0.0).astype(np.uint8)
    return out


STRATEGIES: Dict[str, BlockStrategy] = {
    "max_light": max_light,
    "weighted_brightness": weighted_brightness,
}


def get_strategy(mode: str) -> BlockStrategy:
    try:
        return STRATEGIES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown blend mode {mode!r}; expected one of "
            f"{', '.join(sorted(STRATEGIES))}"
        ) from None


def blend_pixel(
    pixels: List[Sequence[int]], weights: Sequence[float], mode: BlendMode
) -> tuple[int, int, int, int]:
    """Blend one coordinate given each frame's RGBA value there.

    Convenience wrapper over the block strategies, mostly for checking single
    pixels by hand.
    """
    blocks = [np.asarray(p, dtype=np.uint8).reshape(1, 1, 4) for p in pixels]
    if mode == "weighted_brightness":
        wv = normalize_weights(weights)
    else:
        wv = np.ones((len(blocks),), dtype=np.float64)
    px = get_strategy(mode)(blocks, wv)[0, 0]
    return int(px[0]), int(px[1]), int(px[2]), int(px[3])
