# grapher/rasterizer.py
"""
Chunked parallel rasterization of expression variants.

The canvas is split into square pixel chunks and each chunk is scanned by
its own task. Per-pixel behavior depends on the variant:

- Predicate: the pixel is filled when the predicate holds at its coordinate.
- ImplicitRelation: a sign-change heuristic on a 2x2 stencil. The relation is
  sampled at the pixel and at its right, lower and diagonal neighbours; the
  pixel is drawn when the centre value is exactly zero or has the opposite
  sign of any neighbour. It is skipped when any of the four samples is not
  finite. This finds where a continuous relation crosses zero without
  solving for roots.
- ComplexMap: every source pixel's color is scattered to where the map sends
  its coordinate, in a fresh buffer that replaces the canvas buffer at the end.

Explicit and polar functions are handed over to the tracer.
"""
import logging
import math
from typing import Optional

from .canvas import Canvas
from .chunks import SAMPLE_ERRORS, PixelChunk, pixel_chunks, run_chunks, sample
from .compositor import fill_buffer, widen
from .core import CHUNK_SIZE, Color, Coord
from .expressions.variants import (
    ComplexMap, DifferentialFunction, ExplicitFunction, ImplicitRelation, PolarFunction, Predicate, Variant,
)
from .tracer import draw_function, draw_polar_function

logger = logging.getLogger(__name__)


def draw_predicate(canvas: Canvas, predicate: Predicate, color: Color,
                   chunk_size: int = CHUNK_SIZE, workers: Optional[int] = None) -> int:
    """
    Fills every pixel whose coordinate satisfies the predicate.

    Returns:
        The number of pixels skipped because the predicate could not be evaluated
    """
    color16 = widen(color)

    def draw_chunk(chunk: PixelChunk) -> int:
        skipped = 0
        for i in range(chunk.x0, chunk.x1):
            for j in range(chunk.y0, chunk.y1):
                try:
                    hit = predicate(canvas.pixel_to_coord(i, j))
                except SAMPLE_ERRORS:
                    skipped += 1
                    continue
                if hit:
                    canvas.blend_pixel(i, j, color16)
        return skipped

    skipped = sum(run_chunks(draw_chunk, pixel_chunks(canvas.width, canvas.height, chunk_size), workers))
    logger.debug("Predicate pass on %r skipped %d pixels", canvas, skipped)
    return skipped


def _crosses_zero(center: float, right: float, below: float, diagonal: float) -> bool:
    if center == 0:
        return True
    if center > 0:
        return right < 0 or below < 0 or diagonal < 0
    return right > 0 or below > 0 or diagonal > 0


def draw_implicit(canvas: Canvas, relation: ImplicitRelation, color: Color,
                  chunk_size: int = CHUNK_SIZE, workers: Optional[int] = None) -> int:
    """
    Draws the zero set of an implicit relation with the 2x2 sign-change stencil.

    Each chunk samples the relation once per grid point on a
    (w + 1) x (h + 1) lattice covering its pixels plus the next column and
    row, and reuses those samples for neighbouring pixels.

    Returns:
        The number of pixels skipped because a stencil sample was not finite
    """
    color16 = widen(color)

    def draw_chunk(chunk: PixelChunk) -> int:
        samples = [
            [sample(relation, canvas.pixel_to_coord(i, j)) for j in range(chunk.y0, chunk.y1 + 1)]
            for i in range(chunk.x0, chunk.x1 + 1)
        ]
        skipped = 0
        for a, i in enumerate(range(chunk.x0, chunk.x1)):
            column, next_column = samples[a], samples[a + 1]
            for b, j in enumerate(range(chunk.y0, chunk.y1)):
                stencil = column[b], next_column[b], column[b + 1], next_column[b + 1]
                if any(math.isnan(value) for value in stencil):
                    skipped += 1
                    continue
                if _crosses_zero(*stencil):
                    canvas.blend_pixel(i, j, color16)
        return skipped

    skipped = sum(run_chunks(draw_chunk, pixel_chunks(canvas.width, canvas.height, chunk_size), workers))
    logger.debug("Implicit pass on %r skipped %d pixels", canvas, skipped)
    return skipped


def apply_complex_map(canvas: Canvas, complex_map: ComplexMap,
                      chunk_size: int = CHUNK_SIZE, workers: Optional[int] = None) -> int:
    """
    Treats the canvas as the complex plane and moves every pixel's color to
    the position the map sends it to.

    The current buffer is only read during the pass; the colors are written
    into a new buffer filled with the background color, which replaces the
    canvas buffer once every chunk is done. Destinations nobody maps to keep
    the background. When several source pixels land on the same destination
    the surviving color depends on task timing and is not deterministic.

    Returns:
        The number of source pixels whose image could not be computed
    """
    source = canvas.pixels
    target = fill_buffer(canvas.width, canvas.height, canvas.background_color)
    area = canvas.area

    def remap_chunk(chunk: PixelChunk) -> int:
        skipped = 0
        for i in range(chunk.x0, chunk.x1):
            for j in range(chunk.y0, chunk.y1):
                try:
                    z = complex_map(canvas.pixel_to_coord(i, j).to_complex())
                except SAMPLE_ERRORS:
                    skipped += 1
                    continue
                dest = Coord(z.real, z.imag)
                if area.contains(dest):
                    di, dj = canvas.coord_to_pixel(dest)
                    if canvas.in_bounds(di, dj):
                        target[dj, di] = source[j, i]
        return skipped

    skipped = sum(run_chunks(remap_chunk, pixel_chunks(canvas.width, canvas.height, chunk_size), workers))
    canvas.replace_buffer(target)
    logger.debug("Complex map on %r skipped %d pixels", canvas, skipped)
    return skipped


def draw(canvas: Canvas, variant: Variant, color: Optional[Color] = None,
         workers: Optional[int] = None):
    """
    Renders any expression variant onto the canvas with the matching strategy.

    Args:
        canvas: The canvas to draw on
        variant: A Predicate, ImplicitRelation, ExplicitFunction, PolarFunction or ComplexMap
        color: Drawing color, defaults to the canvas relation color (unused by complex maps)
        workers: Thread pool size, None for the executor default

    Raises:
        TypeError: If `variant` is not one of the renderable variants
    """
    if color is None:
        color = canvas.relation_color

    if isinstance(variant, Predicate):
        draw_predicate(canvas, variant, color, workers=workers)
    elif isinstance(variant, ImplicitRelation):
        draw_implicit(canvas, variant, color, workers=workers)
    elif isinstance(variant, ExplicitFunction):
        draw_function(canvas, variant, color, workers=workers)
    elif isinstance(variant, PolarFunction):
        draw_polar_function(canvas, variant, color, workers=workers)
    elif isinstance(variant, ComplexMap):
        apply_complex_map(canvas, variant, workers=workers)
    elif isinstance(variant, DifferentialFunction):
        raise TypeError("Differential functions need a start point, use draw_differential_function")
    else:
        raise TypeError(f"Cannot draw {type(variant).__name__}")
