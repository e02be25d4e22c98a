"""
Tests for explicit, polar and differential tracing.
"""
import math

import numpy as np

from grapher.core import Coord
from grapher.expressions.classifier import classify
from grapher.expressions.variants import DifferentialFunction, ExplicitFunction
from grapher.rasterizer import draw
from grapher.tracer import draw_differential_function, draw_function, draw_polar_function

from conftest import BLACK, WHITE


def _drawn(canvas):
    js, is_ = np.nonzero(canvas.mask(BLACK))
    return is_, js


class TestFunctionTracer:

    def test_diagonal(self, exact_canvas, library):
        missing = draw_function(exact_canvas, classify("y == x", library), BLACK)
        assert missing == 0
        for i in range(1, 64):
            assert exact_canvas.at_pixel(i, 64 - i) == BLACK

    def test_trace_is_connected_across_chunks(self, exact_canvas):
        draw_function(exact_canvas, ExplicitFunction(lambda x: 0.0), BLACK, chunk_size=5)
        assert exact_canvas.mask(BLACK)[32].all()

    def test_steep_function_is_clipped(self, exact_canvas):
        draw_function(exact_canvas, ExplicitFunction(lambda x: 1e9 * x), BLACK)
        is_, js = _drawn(exact_canvas)
        assert set(is_) <= {31, 32}
        assert len(js) >= 64

    def test_failures_leave_gaps(self, exact_canvas, library):
        missing = draw_function(exact_canvas, classify("y == sqrt(x)", library), BLACK)
        is_, _ = _drawn(exact_canvas)
        assert missing == 32  # columns 0..31 have x < 0
        assert is_.min() >= 32


class TestPolarTracer:

    def test_circle(self, exact_canvas, library):
        missing = draw_polar_function(exact_canvas, classify("r == 2", library), BLACK)
        assert missing == 0
        is_, js = _drawn(exact_canvas)
        distances = np.hypot(is_ - 32, js - 32)
        assert np.all(np.abs(distances - 16) <= 1.5)
        # closed: all four quadrants are drawn
        assert (is_ > 40).any() and (is_ < 24).any()
        assert (js > 40).any() and (js < 24).any()

    def test_failures_leave_gaps(self, exact_canvas, library):
        missing = draw_polar_function(exact_canvas, classify("r == 3*sqrt(cos(theta))", library), BLACK)
        is_, _ = _drawn(exact_canvas)
        assert missing > 0
        assert len(is_) > 0
        assert is_.min() >= 32

    def test_dispatch(self, exact_canvas, library):
        draw(exact_canvas, classify("r == 1", library))
        assert exact_canvas.at_pixel(40, 32) == BLACK


class TestDifferentialTracer:

    def test_zero_slope(self, exact_canvas):
        steps = draw_differential_function(exact_canvas, DifferentialFunction(lambda c: 0.0),
                                           Coord(0, 1), BLACK)
        mask = exact_canvas.mask(BLACK)
        assert steps == 32 + 33
        assert mask[24].all()
        assert mask.sum() == 64

    def test_unit_slope_follows_diagonal(self, exact_canvas):
        draw_differential_function(exact_canvas, DifferentialFunction(lambda c: 1.0), Coord(0, 0), BLACK)
        for i in range(1, 64):
            assert exact_canvas.at_pixel(i, 64 - i) == BLACK

    def test_exponential_growth(self, exact_canvas):
        # dy/dx = y through (0, 1) approximates exp(x)
        draw_differential_function(exact_canvas, DifferentialFunction(lambda c: c.y), Coord(0, 1), BLACK)
        x = 1.0
        column = exact_canvas.coord_to_pixel(Coord(x, 0))[0]
        rows = np.nonzero(exact_canvas.mask(BLACK)[:, column])[0]
        ys = [exact_canvas.pixel_to_coord(column, j).y for j in rows]
        assert min(abs(y - math.e) for y in ys) < 0.25

    def test_failed_slope_stops_direction(self, exact_canvas):
        steps = draw_differential_function(exact_canvas, DifferentialFunction(lambda c: 1 / c.x),
                                           Coord(0, 0), BLACK)
        assert steps == 0
        assert not exact_canvas.mask(BLACK).any()


HALF_BLACK = (0, 0, 0, 128)
HALF_RED = 127  # one blend of HALF_BLACK over white, red channel


def _red_values(canvas):
    red = canvas.to_image()[..., 0]
    return set(red[red != 255].tolist())


class TestCompositing:
    """Semi-transparent traces blend every covered pixel exactly once."""

    def test_function_seams(self, exact_canvas):
        draw_function(exact_canvas, ExplicitFunction(lambda x: 0.0), HALF_BLACK, chunk_size=8, workers=1)
        assert set(exact_canvas.to_image()[32, :, 0].tolist()) == {HALF_RED}
        assert _red_values(exact_canvas) == {HALF_RED}

    def test_function_seams_in_parallel(self, exact_canvas, library):
        draw_function(exact_canvas, classify("y == x^2 / 4 - 2", library), HALF_BLACK, chunk_size=3, workers=4)
        assert _red_values(exact_canvas) == {HALF_RED}

    def test_polar_seams(self, exact_canvas, library):
        draw_polar_function(exact_canvas, classify("r == 2", library), HALF_BLACK)
        assert _red_values(exact_canvas) == {HALF_RED}

    def test_differential_start_point(self, exact_canvas):
        draw_differential_function(exact_canvas, DifferentialFunction(lambda c: 0.0), Coord(0, 1), HALF_BLACK)
        assert set(exact_canvas.to_image()[24, :, 0].tolist()) == {HALF_RED}
        assert _red_values(exact_canvas) == {HALF_RED}


class TestViewportEdges:

    def test_bottom_edge_draws_nothing(self, canvas, library):
        draw(canvas, classify("y == -5", library))
        assert canvas.mask(WHITE).all()

    def test_top_edge_is_drawn(self, canvas, library):
        draw(canvas, classify("y == 5", library))
        mask = canvas.mask(BLACK)
        assert mask[0].all()
        assert mask.sum() == 100
