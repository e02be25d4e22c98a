# grapher/core.py
"""
Core functionality for the graphing system.

This module provides the foundational components shared by every part of the
rendering engine. It includes:
- Rendering constants (chunk sizes, angular steps, default colors)
- The error taxonomy raised by validation, parsing and evaluation
- Coordinate representation and arithmetic
- Viewport areas in coordinate space
- Hex color parsing and image export utilities

The coordinate system follows the usual mathematical orientation: x grows to
the right and y grows upwards, so a viewport is described by its top-left and
bottom-right corners.
"""
import math
import os
from typing import NamedTuple, Tuple

import imageio
import numpy as np


## --- Core Constants ---
CHUNK_SIZE = 64  # Side of the square pixel chunks drawn by one task
ANGLE_SIZE = math.pi / 4  # Angular range covered by one polar tracing task
ANGLE_STEP = ANGLE_SIZE / 100  # Angle increment used while tracing polar functions
TAU = 2 * math.pi

Color = Tuple[int, int, int, int]  # 8-bit RGBA

DEFAULT_BACKGROUND_COLOR: Color = (0xFF, 0xFF, 0xFF, 0xFF)
DEFAULT_RELATION_COLOR: Color = (0x00, 0x00, 0x00, 0xFF)
DEFAULT_AXIS_COLOR: Color = (0xFF, 0x00, 0x00, 0xFF)
DEFAULT_GRID_COLOR: Color = (0xE0, 0xE0, 0xE0, 0xFF)


## --- Errors ---
class GrapherError(Exception):
    """Base class for every error raised by the graphing system."""


class ValidationError(GrapherError):
    """Raised when a viewport, scale or canvas description is malformed."""


class ParseError(GrapherError):
    """Raised when expression text cannot be turned into an evaluable form."""


class EqualityCountError(ParseError):
    """Raised when an equation does not contain exactly one '=='."""


class EvaluationFailure(GrapherError):
    """
    Raised when a single sample of an expression cannot be evaluated.

    Domain errors, divisions by zero, overflows and non-finite results all end
    up here. Renderers treat it as "nothing to draw for this sample" and carry
    on with the next one.
    """


## --- Coordinates ---
class Coord(NamedTuple):
    """
    An immutable point in coordinate space.

    Arithmetic operators are redefined to behave like 2D vectors rather than
    tuples, so `a + b` adds component-wise and `a * 2` scales the point.

    Examples:
        >>> Coord(1, 2) + Coord(3, 4)
        Coord(x=4, y=6)
        >>> Coord(0, 2).polar()
        (2.0, 1.5707963267948966)
    """
    x: float
    y: float

    @classmethod
    def from_polar(cls, r: float, theta: float) -> "Coord":
        return cls(r * math.cos(theta), r * math.sin(theta))

    @classmethod
    def from_complex(cls, z: complex) -> "Coord":
        return cls(z.real, z.imag)

    def __add__(self, other: "Coord") -> "Coord":
        return Coord(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Coord") -> "Coord":
        return Coord(self.x - other.x, self.y - other.y)

    def __mul__(self, mult: float) -> "Coord":
        return Coord(mult * self.x, mult * self.y)

    __rmul__ = __mul__

    def __truediv__(self, div: float) -> "Coord":
        return Coord(self.x / div, self.y / div)

    def __neg__(self) -> "Coord":
        return Coord(-self.x, -self.y)

    def dist(self, other: "Coord") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def dist_origin(self) -> float:
        return math.hypot(self.x, self.y)

    def within_dist(self, other: "Coord", dist: float) -> bool:
        return self.dist(other) <= dist

    def polar(self) -> Tuple[float, float]:
        """
        Returns the polar form (r, theta) of the coordinate.

        theta is normalized to [0, 2pi) so that it lines up with the angular
        ranges walked by the polar tracer.
        """
        theta = math.atan2(self.y, self.x)
        if theta < 0:
            theta += TAU
        return self.dist_origin(), theta

    def rotate(self, theta: float) -> "Coord":
        r, t = self.polar()
        return Coord.from_polar(r, t + theta)

    def rotate_around(self, theta: float, pivot: "Coord") -> "Coord":
        return (self - pivot).rotate(theta) + pivot

    def is_valid(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_complex(self) -> complex:
        return complex(self.x, self.y)


## --- Viewport Areas ---
class Area:
    """
    A rectangular region of coordinate space.

    `pos0` is the top-left corner and `pos1` the bottom-right one, i.e.
    pos0.x <= pos1.x and pos0.y >= pos1.y. Containment is half-open so that
    tiling areas never share a point: x in [x0, x1) and y in (y1, y0].

    Attributes:
        pos0 (Coord): Top-left corner
        pos1 (Coord): Bottom-right corner

    Raises:
        ValidationError: If a corner is not finite or the corners are swapped

    Examples:
        >>> area = Area(Coord(-5, 5), Coord(5, -5))
        >>> area.contains(Coord(0, 0)), area.contains(Coord(5, 5))
        (True, False)
    """
    def __init__(self, pos0: Coord, pos1: Coord):
        pos0, pos1 = Coord(*pos0), Coord(*pos1)
        if not pos0.is_valid() or not pos1.is_valid():
            raise ValidationError(f"Viewport corners must be finite, got {pos0} and {pos1}")
        if pos0.x > pos1.x or pos0.y < pos1.y:
            raise ValidationError(
                f"Viewport corners must be top-left then bottom-right, got {pos0} and {pos1}"
            )
        self.pos0 = pos0
        self.pos1 = pos1

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Area":
        return cls(Coord(x0, y0), Coord(x1, y1))

    def __repr__(self):
        return f"Area({self.pos0}, {self.pos1})"

    def __eq__(self, other):
        return isinstance(other, Area) and self.pos0 == other.pos0 and self.pos1 == other.pos1

    @property
    def width(self) -> float:
        return self.pos1.x - self.pos0.x

    @property
    def height(self) -> float:
        return self.pos0.y - self.pos1.y

    @property
    def size(self) -> Coord:
        return Coord(self.width, self.height)

    @property
    def center(self) -> Coord:
        return Coord((self.pos0.x + self.pos1.x) / 2, (self.pos0.y + self.pos1.y) / 2)

    def contains(self, c: Coord) -> bool:
        return self.pos0.x <= c.x < self.pos1.x and self.pos0.y >= c.y > self.pos1.y


## --- Colors ---
def parse_hex_color(text: str) -> Color:
    """
    Parses a '#RRGGBB' or '#RRGGBBAA' color token into an 8-bit RGBA tuple.

    Raises:
        ValueError: If the token is not a well-formed hex color

    Examples:
        >>> parse_hex_color("#ff8000")
        (255, 128, 0, 255)
    """
    digits = text[1:] if text.startswith("#") else ""
    if len(digits) not in (6, 8):
        raise ValueError(f"Invalid color '{text}', expected #RRGGBB or #RRGGBBAA")
    try:
        channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    except ValueError:
        raise ValueError(f"Invalid color '{text}', expected #RRGGBB or #RRGGBBAA") from None
    if len(channels) == 3:
        channels.append(0xFF)
    return tuple(channels)


## --- Image Export ---
def export_image(image_array: np.ndarray, export_path: str):
    """
    Exports a rendered 8-bit RGBA image array to a PNG file.

    The output directory is created if it doesn't exist yet.

    Args:
        image_array: uint8 array of shape (height, width, 4)
        export_path: File path where the PNG should be saved

    Examples:
        >>> export_image(canvas.to_image(), "output/circle.png")
    """
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    imageio.imwrite(export_path, image_array.astype(np.uint8))
