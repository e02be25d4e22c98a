"""
Shared fixtures for grapher tests.

Provides the default function library and canvases over viewports whose
pixel size is a power of two, so pixel <-> coordinate conversions are exact.
"""
import pytest

from grapher.canvas import Canvas
from grapher.core import Area
from grapher.expressions.base import default_library


BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
GRID_GRAY = (0xE0, 0xE0, 0xE0, 255)


@pytest.fixture
def library():
    return default_library()


@pytest.fixture
def area():
    """The (-5, 5) / (5, -5) viewport."""
    return Area.from_corners(-5, 5, 5, -5)


@pytest.fixture
def canvas(area):
    """A 100x100 canvas over (-5, 5) / (5, -5), one pixel per 0.1 units."""
    return Canvas(area, 10)


@pytest.fixture
def exact_canvas():
    """A 64x64 canvas over (-4, 4) / (4, -4), one pixel per 0.125 units."""
    return Canvas(Area.from_corners(-4, 4, 4, -4), 8)
