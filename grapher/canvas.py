# grapher/canvas.py
"""
The raster canvas that relations are drawn onto.

A Canvas couples a viewport Area with a 16-bit RGBA pixel buffer. The mapping
between pixels and coordinates is a pure affine function of the viewport
bounds and the buffer dimensions, so every drawing task can convert
positions on its own without sharing state.

Pixel writes go through the compositor, and lines are rasterized with an
integer Bresenham walk after being clipped to the canvas.
"""
import math
from typing import Iterable, Iterator, Optional, Tuple

import numpy as np

from .compositor import Color16, blend, fill_buffer, narrow, widen
from .core import (
    Area, Color, Coord, ValidationError, export_image,
    DEFAULT_AXIS_COLOR, DEFAULT_BACKGROUND_COLOR, DEFAULT_GRID_COLOR, DEFAULT_RELATION_COLOR,
)

Pixel = Tuple[int, int]


## --- Line Rasterization ---
def clip_segment(x0: float, y0: float, x1: float, y1: float,
                 xmax: float, ymax: float) -> Optional[Tuple[float, float, float, float]]:
    """
    Clips a segment to the box [0, xmax] x [0, ymax] (Liang-Barsky).

    Returns:
        The clipped endpoints, or None when the segment misses the box
    """
    t0, t1 = 0.0, 1.0
    dx, dy = x1 - x0, y1 - y0
    for p, q in ((-dx, x0), (dx, xmax - x0), (-dy, y0), (dy, ymax - y0)):
        if p == 0:
            if q < 0:
                return None
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return None
            t0 = max(t0, t)
        else:
            if t < t0:
                return None
            t1 = min(t1, t)
    return x0 + t0 * dx, y0 + t0 * dy, x0 + t1 * dx, y0 + t1 * dy


def line_pixels(p0: Pixel, p1: Pixel) -> Iterator[Pixel]:
    """
    Yields the 8-connected pixel path between two pixels, both included.

    The walk always goes left to right. Vertical and horizontal segments are
    special-cased; everything else uses the integer error term of Bresenham's
    algorithm.

    Examples:
        >>> list(line_pixels((0, 0), (3, 1)))
        [(0, 0), (1, 0), (2, 1), (3, 1)]
    """
    (x0, y0), (x1, y1) = sorted((p0, p1))
    dx, dy = x1 - x0, y1 - y0

    if dx == 0:  # vertical
        for y in range(y0, y1 + 1):
            yield x0, y
        return
    if dy == 0:  # horizontal
        for x in range(x0, x1 + 1):
            yield x, y0
        return

    y_step = 1 if dy > 0 else -1
    dy = -abs(dy)
    err = dx + dy
    while True:
        yield x0, y0
        if x0 == x1 and y0 == y1:
            return
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += 1
        if e2 <= dx:
            err += dx
            y0 += y_step


## --- Canvas ---
class Canvas:
    """
    A viewport plus the pixel buffer it is rendered into.

    Pixel dimensions are `int(area.width * scale)` by `int(area.height * scale)`,
    so `scale` is the number of pixels per coordinate unit.

    Attributes:
        area (Area): The viewport in coordinate space
        width (int): Buffer width in pixels
        height (int): Buffer height in pixels
        pixels (np.ndarray): uint16 RGBA buffer of shape (height, width, 4)
        background_color, relation_color, axis_color, grid_color (Color): defaults

    Raises:
        ValidationError: If the scale is not a positive finite number or the
            canvas would have no pixels

    Examples:
        >>> canvas = Canvas(Area.from_corners(-5, 5, 5, -5), 100)
        >>> canvas.width, canvas.height
        (1000, 1000)
    """
    def __init__(
        self,
        area: Area,
        scale: float,
        background_color: Color = DEFAULT_BACKGROUND_COLOR,
        relation_color: Color = DEFAULT_RELATION_COLOR,
        axis_color: Color = DEFAULT_AXIS_COLOR,
        grid_color: Color = DEFAULT_GRID_COLOR,
    ):
        if not math.isfinite(scale) or scale <= 0:
            raise ValidationError(f"Scale must be a positive number, got {scale!r}")
        width, height = int(area.width * scale), int(area.height * scale)
        if width <= 0 or height <= 0:
            raise ValidationError(f"Canvas for {area} at scale {scale} has no pixels ({width}x{height})")

        self.area = area
        self.scale = scale
        self.width = width
        self.height = height
        self.background_color = background_color
        self.relation_color = relation_color
        self.axis_color = axis_color
        self.grid_color = grid_color
        self.pixels = fill_buffer(width, height, background_color)

    def __repr__(self):
        return f"Canvas({self.area}, {self.width}x{self.height})"

    # --- Coordinate mapping ---
    def pixel_to_coord(self, i: int, j: int) -> Coord:
        x0, y0 = self.area.pos0
        return Coord(x0 + i * self.area.width / self.width, y0 - j * self.area.height / self.height)

    def _pixel_space(self, c: Coord) -> Tuple[float, float]:
        x0, y0 = self.area.pos0
        return (c.x - x0) * self.width / self.area.width, (y0 - c.y) * self.height / self.area.height

    def coord_to_pixel(self, c: Coord) -> Pixel:
        fx, fy = self._pixel_space(c)
        return int(fx), int(fy)

    @property
    def pixel_size(self) -> Coord:
        """The coordinate-space width and height of a single pixel."""
        return Coord(self.area.width / self.width, self.area.height / self.height)

    def in_bounds(self, i: int, j: int) -> bool:
        return 0 <= i < self.width and 0 <= j < self.height

    # --- Pixel access ---
    def blend_pixel(self, i: int, j: int, color: Color16):
        """
        Composites an already widened color onto pixel (i, j); out-of-bounds writes are ignored.

        Not synchronized: concurrent callers must own disjoint pixels.
        """
        if 0 <= i < self.width and 0 <= j < self.height:
            self.pixels[j, i] = blend(self.pixels[j, i], color)

    def set_pixel(self, i: int, j: int, color: Color):
        self.blend_pixel(i, j, widen(color))

    def set_coord(self, c: Coord, color: Color):
        if c.is_valid():
            self.set_pixel(*self.coord_to_pixel(c), color)

    def at_pixel(self, i: int, j: int) -> Color:
        """Returns the 8-bit RGBA color currently stored at pixel (i, j)."""
        return tuple(int(v) for v in narrow(self.pixels[j, i]))

    def at_coord(self, c: Coord) -> Color:
        return self.at_pixel(*self.coord_to_pixel(c))

    def mask(self, color: Color) -> np.ndarray:
        """Boolean (height, width) array marking pixels that hold exactly `color`."""
        return np.all(self.pixels == np.array(widen(color), dtype=np.uint16), axis=-1)

    def replace_buffer(self, pixels: np.ndarray):
        if pixels.shape != self.pixels.shape:
            raise ValidationError(f"Buffer shape {pixels.shape} does not match canvas {self.pixels.shape}")
        self.pixels = pixels

    # --- Lines ---
    def segment_pixels(self, c0: Coord, c1: Coord) -> Iterator[Pixel]:
        """
        Yields the canvas pixels covered by the segment between two coordinates.

        Yields nothing if either endpoint is not finite. The segment is clipped
        to the canvas first, so far-away endpoints do not cost extra work.
        Pixels on the far edges (column `width`, row `height`) hold no
        coordinate of the viewport and are dropped.
        """
        if not c0.is_valid() or not c1.is_valid():
            return
        x0, y0 = self._pixel_space(c0)
        x1, y1 = self._pixel_space(c1)
        if not all(math.isfinite(v) for v in (x0, y0, x1, y1)):
            return
        clipped = clip_segment(x0, y0, x1, y1, self.width, self.height)
        if clipped is None:
            return
        x0, y0, x1, y1 = clipped
        for i, j in line_pixels((int(x0), int(y0)), (int(x1), int(y1))):
            if self.in_bounds(i, j):
                yield i, j

    def blend_pixels(self, pixels: Iterable[Pixel], color: Color):
        """Composites `color` once onto every pixel of `pixels`."""
        color16 = widen(color)
        for i, j in pixels:
            self.blend_pixel(i, j, color16)

    def draw_line(self, c0: Coord, c1: Coord, color: Color):
        """Draws a line between two coordinates, see `segment_pixels`."""
        self.blend_pixels(self.segment_pixels(c0, c1), color)

    def draw_axes(self):
        """Draws the x and y axes in the axis color when they cross the viewport."""
        pos0, pos1 = self.area.pos0, self.area.pos1
        if pos0.x <= 0 < pos1.x:
            self.draw_line(Coord(0, pos0.y), Coord(0, pos1.y), self.axis_color)
        if pos1.y < 0 <= pos0.y:
            self.draw_line(Coord(pos0.x, 0), Coord(pos1.x, 0), self.axis_color)

    def draw_grid(self):
        """Draws a line at every integer x and y strictly inside the viewport, then the axes."""
        pos0, pos1 = self.area.pos0, self.area.pos1
        for x in range(math.floor(pos0.x) + 1, math.ceil(pos1.x)):
            if x != 0:
                self.draw_line(Coord(x, pos0.y), Coord(x, pos1.y), self.grid_color)
        for y in range(math.floor(pos1.y) + 1, math.ceil(pos0.y)):
            if y != 0:
                self.draw_line(Coord(pos0.x, y), Coord(pos1.x, y), self.grid_color)
        self.draw_axes()

    # --- Export ---
    def to_image(self) -> np.ndarray:
        """Returns the buffer as an 8-bit RGBA array of shape (height, width, 4)."""
        return narrow(self.pixels)

    def save_png(self, export_path: str):
        export_image(self.to_image(), export_path)
