# grapher/compositor.py
"""
Alpha compositing for pixel writes.

Colors enter the system as 8-bit RGBA tuples and are widened to 16 bits per
channel before any blending happens. The canvas stores its buffer in 16 bits
too, so many semi-transparent draws on the same pixel (grid, axes, several
curves) accumulate without 8-bit rounding drift. Narrowing back to 8 bits
only happens when an image is exported.
"""
from typing import Sequence, Tuple

import numpy as np

from .core import Color

MAX16 = 0xFFFF
Color16 = Tuple[int, int, int, int]


def widen(color: Color) -> Color16:
    """Widens an 8-bit RGBA color to 16 bits per channel (0xAB -> 0xABAB)."""
    r, g, b, a = color
    return r * 257, g * 257, b * 257, a * 257


def blend(old: Sequence[int], new: Color16) -> Color16:
    """
    Composites `new` over `old` using the standard "over" operator.

    Both colors are straight (non-premultiplied) 16-bit RGBA. The arithmetic
    is integer with round-half-up, which keeps the edge cases exact: a fully
    opaque color replaces the pixel, a fully transparent one leaves it as is.

    Examples:
        >>> blend((0, 0, 0, MAX16), (MAX16, 0, 0, MAX16))
        (65535, 0, 0, 65535)
        >>> blend((10, 20, 30, MAX16), (MAX16, MAX16, MAX16, 0))
        (10, 20, 30, 65535)
    """
    alpha = new[3]
    if alpha == MAX16:
        return tuple(new)
    if alpha == 0:
        return tuple(int(c) for c in old)
    inv = MAX16 - alpha
    half = MAX16 // 2
    return (
        (alpha * new[0] + inv * int(old[0]) + half) // MAX16,
        (alpha * new[1] + inv * int(old[1]) + half) // MAX16,
        (alpha * new[2] + inv * int(old[2]) + half) // MAX16,
        alpha + (inv * int(old[3]) + half) // MAX16,
    )


def fill_buffer(width: int, height: int, color: Color) -> np.ndarray:
    """Allocates a 16-bit RGBA buffer of shape (height, width, 4) filled with `color`."""
    buffer = np.empty((height, width, 4), dtype=np.uint16)
    buffer[:, :] = widen(color)
    return buffer


def narrow(buffer: np.ndarray) -> np.ndarray:
    """Converts a 16-bit RGBA buffer to 8 bits per channel, rounding to nearest."""
    return ((buffer.astype(np.uint32) * 255 + MAX16 // 2) // MAX16).astype(np.uint8)
