# grapher/tracer.py
"""
Line tracing for explicit, polar and differential functions.

Instead of scanning every pixel, these variants are sampled along their
parameter and consecutive samples are joined with line segments:

- y = f(x) is sampled at every pixel column. Column ranges are traced in
  parallel and each range starts at the previous range's last column, so the
  pieces join up without any coordination between tasks.
- r = f(theta) is sampled every ANGLE_STEP over angular ranges of ANGLE_SIZE,
  each range running one step past its end to close the seam.
- A differential function (slope field) is integrated with forward Euler
  from a start point, one pixel width per step, left and right in parallel.

Tasks never touch the pixel buffer. Each one collects the set of pixels its
segments cover, and once every task has finished the union of those sets is
composited in a single pass. Pixels shared by adjoining segments or by two
tasks are therefore blended exactly once.

A sample that fails or is not finite just leaves a gap in the polyline.
"""
import logging
from typing import Callable, Iterable, Optional, Set, Tuple

from .canvas import Canvas, Pixel
from .chunks import SAMPLE_ERRORS, angle_chunks, column_chunks, run_chunks, sample
from .core import ANGLE_SIZE, CHUNK_SIZE, Color, Coord
from .expressions.variants import ExplicitFunction, PolarFunction

logger = logging.getLogger(__name__)

Trace = Tuple[Set[Pixel], int]


def _composite(canvas: Canvas, traces: Iterable[Trace], color: Color) -> int:
    """Blends the union of every trace's pixels once and returns the summed counts."""
    pixels: Set[Pixel] = set()
    total = 0
    for trace_pixels, count in traces:
        pixels |= trace_pixels
        total += count
    canvas.blend_pixels(pixels, color)
    return total


def draw_function(canvas: Canvas, f: ExplicitFunction, color: Color,
                  chunk_size: int = CHUNK_SIZE, workers: Optional[int] = None) -> int:
    """
    Traces y = f(x) across the canvas, one sample per pixel column.

    Returns:
        The number of columns whose sample was missing
    """
    def column_point(column: int) -> Coord:
        x = canvas.pixel_to_coord(column, 0).x
        return Coord(x, sample(f, x))

    def trace(bounds: Tuple[int, int]) -> Trace:
        start, end = bounds
        pixels: Set[Pixel] = set()
        old = column_point(start)
        # the start column of later ranges is counted by the range before
        missing = 1 if start == 0 and not old.is_valid() else 0
        for column in range(start + 1, end + 1):
            new = column_point(column)
            if not new.is_valid():
                missing += 1
            pixels.update(canvas.segment_pixels(old, new))
            old = new
        return pixels, missing

    missing = _composite(canvas, run_chunks(trace, column_chunks(canvas.width, chunk_size), workers), color)
    logger.debug("Function trace on %r missed %d samples", canvas, missing)
    return missing


def draw_polar_function(canvas: Canvas, f: PolarFunction, color: Color,
                        angle_size: float = ANGLE_SIZE, angle_step: Optional[float] = None,
                        workers: Optional[int] = None) -> int:
    """
    Traces r = f(theta) for theta in [0, 2pi).

    Args:
        angle_size: Angular range traced by one task
        angle_step: Increment between samples, defaults to angle_size / 100

    Returns:
        The number of angles whose sample was missing
    """
    step = angle_step if angle_step is not None else angle_size / 100
    if not step > 0:
        raise ValueError(f"Angle step must be positive, got {step}")

    def polar_point(theta: float) -> Coord:
        return Coord.from_polar(sample(f, theta), theta)

    def trace(bounds: Tuple[float, float]) -> Trace:
        start, end = bounds
        pixels: Set[Pixel] = set()
        steps = round((end - start) / step)
        old = polar_point(start)
        missing = 0 if old.is_valid() else 1
        for k in range(1, steps + 2):
            new = polar_point(start + k * step)
            if not new.is_valid():
                missing += 1
            pixels.update(canvas.segment_pixels(old, new))
            old = new
        return pixels, missing

    missing = _composite(canvas, run_chunks(trace, angle_chunks(angle_size), workers), color)
    logger.debug("Polar trace on %r missed %d samples", canvas, missing)
    return missing


def draw_differential_function(canvas: Canvas, d: Callable[[Coord], float], start: Coord,
                               color: Color, workers: Optional[int] = None) -> int:
    """
    Draws the solution curve of dy/dx = d(x, y) through `start`.

    The curve is integrated with fixed-step forward Euler, the step being one
    pixel's width in coordinate space. Each direction stops after leaving the
    viewport, after as many steps as the canvas has columns, or at the first
    slope that cannot be evaluated.

    Returns:
        The total number of steps taken in both directions
    """
    dx = canvas.pixel_size.x
    start = Coord(*start)

    def walk(step: float) -> Trace:
        pixels: Set[Pixel] = set()
        old = start
        for taken in range(canvas.width):
            try:
                slope = float(d(old))
            except SAMPLE_ERRORS:
                return pixels, taken
            new = old + Coord(step, slope * step)
            pixels.update(canvas.segment_pixels(old, new))
            old = new
            if not canvas.area.contains(new):
                return pixels, taken + 1
        return pixels, canvas.width

    steps = _composite(canvas, run_chunks(walk, [dx, -dx], workers), color)
    logger.debug("Differential trace on %r took %d steps", canvas, steps)
    return steps
