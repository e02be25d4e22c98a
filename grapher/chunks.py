# grapher/chunks.py
"""
Units of parallel drawing work and the fan-out/fan-in join that runs them.

Every drawing operation splits its domain into chunks (pixel rectangles,
column ranges, angular ranges or integration directions), runs one task per
chunk on a thread pool, and returns only once every task has finished.
Pixel rectangle tasks write disjoint regions of the buffer. Tracing tasks
only return the pixels they cover, and the caller composites them after the
join, so no task needs a lock.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple, TypeVar

from .core import ANGLE_SIZE, CHUNK_SIZE, TAU, EvaluationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# What a single sample may raise without aborting the chunk it belongs to.
SAMPLE_ERRORS = (EvaluationFailure, ArithmeticError, ValueError)


class PixelChunk(NamedTuple):
    """A half-open pixel rectangle [x0, x1) x [y0, y1)."""
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def area(self) -> int:
        return (self.x1 - self.x0) * (self.y1 - self.y0)


def pixel_chunks(width: int, height: int, size: int = CHUNK_SIZE) -> List[PixelChunk]:
    """
    Partitions a width x height canvas into square chunks of side `size`.

    Chunks along the right and bottom edges are cut short, so the chunks
    cover every pixel exactly once.

    Examples:
        >>> pixel_chunks(100, 70, 64)
        [PixelChunk(x0=0, y0=0, x1=64, y1=64), PixelChunk(x0=0, y0=64, x1=64, y1=70),
         PixelChunk(x0=64, y0=0, x1=100, y1=64), PixelChunk(x0=64, y0=64, x1=100, y1=70)]
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [
        PixelChunk(x, y, min(x + size, width), min(y + size, height))
        for x in range(0, width, size)
        for y in range(0, height, size)
    ]


def column_chunks(width: int, size: int = CHUNK_SIZE) -> List[Tuple[int, int]]:
    """
    Partitions the columns 0..width into ranges [start, end] that share their
    boundary column with the next range, so traced polylines join up.
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [(x, min(x + size, width)) for x in range(0, width, size)]


def angle_chunks(size: float = ANGLE_SIZE) -> List[Tuple[float, float]]:
    """Partitions [0, 2pi) into angular ranges of `size` radians."""
    if not size > 0:
        raise ValueError(f"Angle chunk size must be positive, got {size}")
    count = math.ceil(TAU / size)
    return [(k * size, min((k + 1) * size, TAU)) for k in range(count)]


def run_chunks(task: Callable[[T], R], chunks: Iterable[T], workers: Optional[int] = None) -> List[R]:
    """
    Runs `task` once per chunk in parallel and waits for every one of them.

    All tasks run to completion even when some fail, so the regions already
    drawn by the others are kept. The first error, in chunk order, is then
    re-raised.

    Returns:
        The task results, in chunk order
    """
    chunks = list(chunks)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(task, chunk) for chunk in chunks]
    for future in futures:
        error = future.exception()
        if error is not None:
            raise error
    logger.debug("Joined %d chunk tasks", len(futures))
    return [future.result() for future in futures]


def sample(fn: Callable[..., float], *args) -> float:
    """Evaluates one sample, mapping failures and non-finite values to NaN."""
    try:
        value = float(fn(*args))
    except SAMPLE_ERRORS:
        return math.nan
    return value if math.isfinite(value) else math.nan
