"""
Tests for the Canvas: pixel mapping, line drawing, grid and axes.
"""
import math

import numpy as np
import pytest

from grapher.canvas import Canvas, clip_segment, line_pixels
from grapher.core import Area, Coord, ValidationError

from conftest import BLACK, GRID_GRAY, RED, WHITE


# ══════════════════════════════════════════════════════════════════════════
# Construction & Mapping
# ══════════════════════════════════════════════════════════════════════════

class TestCanvasMapping:

    def test_scale_is_pixels_per_unit(self, area):
        canvas = Canvas(area, 100)
        assert (canvas.width, canvas.height) == (1000, 1000)
        assert canvas.pixels.shape == (1000, 1000, 4)

    def test_starts_with_background(self, canvas):
        assert canvas.mask(WHITE).all()

    @pytest.mark.parametrize("scale", [0, -1, math.nan, math.inf])
    def test_invalid_scale(self, area, scale):
        with pytest.raises(ValidationError):
            Canvas(area, scale)

    def test_empty_canvas_rejected(self):
        with pytest.raises(ValidationError):
            Canvas(Area.from_corners(0, 0.001, 0.001, 0), 1)

    def test_corners_and_center(self, canvas):
        assert canvas.pixel_to_coord(0, 0) == Coord(-5, 5)
        assert canvas.pixel_to_coord(50, 50) == Coord(0, 0)
        assert canvas.coord_to_pixel(Coord(0, 0)) == (50, 50)
        assert canvas.coord_to_pixel(Coord(-5, 5)) == (0, 0)

    def test_pixel_size(self, canvas):
        assert canvas.pixel_size.x == pytest.approx(0.1)
        assert canvas.pixel_size.y == pytest.approx(0.1)

    def test_coord_round_trip_within_one_pixel(self, canvas):
        step = canvas.pixel_size
        for x in np.linspace(-5, 4.99, 37):
            for y in np.linspace(-4.99, 5, 41):
                c = Coord(float(x), float(y))
                back = canvas.pixel_to_coord(*canvas.coord_to_pixel(c))
                assert abs(back.x - c.x) <= step.x + 1e-9
                assert abs(back.y - c.y) <= step.y + 1e-9

    def test_out_of_bounds_writes_ignored(self, canvas):
        canvas.set_pixel(-1, 0, BLACK)
        canvas.set_pixel(0, 100, BLACK)
        assert canvas.mask(WHITE).all()

    def test_set_and_read_coord(self, canvas):
        canvas.set_coord(Coord(1.05, -2.05), BLACK)
        assert canvas.at_coord(Coord(1.05, -2.05)) == BLACK
        canvas.set_coord(Coord(math.nan, 0), BLACK)
        assert canvas.mask(BLACK).sum() == 1

    def test_replace_buffer_checks_shape(self, canvas):
        with pytest.raises(ValidationError):
            canvas.replace_buffer(np.zeros((10, 10, 4), dtype=np.uint16))


# ══════════════════════════════════════════════════════════════════════════
# Line Rasterization
# ══════════════════════════════════════════════════════════════════════════

def _is_connected(pixels):
    return all(max(abs(a[0] - b[0]), abs(a[1] - b[1])) == 1 for a, b in zip(pixels, pixels[1:]))


class TestLines:

    def test_shallow_line(self):
        assert list(line_pixels((0, 0), (3, 1))) == [(0, 0), (1, 0), (2, 1), (3, 1)]

    @pytest.mark.parametrize("p0, p1", [
        ((0, 0), (1, 3)), ((0, 3), (3, 0)), ((5, 2), (0, 0)), ((2, 2), (2, 7)), ((7, 4), (1, 4)),
    ])
    def test_inclusive_and_connected(self, p0, p1):
        pixels = list(line_pixels(p0, p1))
        assert set([p0, p1]) <= set(pixels)
        assert len(pixels) == max(abs(p1[0] - p0[0]), abs(p1[1] - p0[1])) + 1
        assert _is_connected(pixels)

    def test_single_pixel(self):
        assert list(line_pixels((4, 4), (4, 4))) == [(4, 4)]

    def test_direction_does_not_matter(self):
        assert set(line_pixels((0, 0), (7, 3))) == set(line_pixels((7, 3), (0, 0)))

    def test_clip_segment(self):
        assert clip_segment(-10, 5, 20, 5, 10, 10) == pytest.approx((0, 5, 10, 5))
        assert clip_segment(-10, -5, 20, -5, 10, 10) is None

    def test_huge_line_is_clipped(self, canvas):
        canvas.draw_line(Coord(-1e12, 0), Coord(1e12, 0), BLACK)
        mask = canvas.mask(BLACK)
        assert mask[50].all()
        assert mask.sum() == 100

    def test_non_finite_endpoint_is_noop(self, canvas):
        canvas.draw_line(Coord(0, 0), Coord(math.inf, 1), BLACK)
        canvas.draw_line(Coord(math.nan, 0), Coord(1, 1), BLACK)
        assert canvas.mask(WHITE).all()

    def test_line_outside_viewport_is_noop(self, canvas):
        canvas.draw_line(Coord(10, 10), Coord(20, 30), BLACK)
        assert canvas.mask(WHITE).all()

    def test_far_edges_hold_no_pixels(self, canvas):
        canvas.draw_line(Coord(5, 2), Coord(5, -2), BLACK)  # right edge
        canvas.draw_line(Coord(-5, -5), Coord(5, -5), BLACK)  # bottom edge
        assert canvas.mask(WHITE).all()

    def test_near_edges_are_drawn(self, canvas):
        canvas.draw_line(Coord(-5, 5), Coord(5, 5), BLACK)  # top edge
        canvas.draw_line(Coord(-5, 2), Coord(-5, -2), BLACK)  # left edge
        mask = canvas.mask(BLACK)
        assert mask[0].all()
        assert mask[30:71, 0].all()
        assert mask.sum() == 100 + 41

    def test_segment_pixels_are_in_bounds(self, canvas):
        pixels = list(canvas.segment_pixels(Coord(-1e6, -1e6), Coord(1e6, 1e6)))
        assert len(pixels) > 90
        assert all(canvas.in_bounds(i, j) for i, j in pixels)


# ══════════════════════════════════════════════════════════════════════════
# Grid & Axes
# ══════════════════════════════════════════════════════════════════════════

class TestGrid:

    def test_axes_at_origin_lines(self, canvas):
        canvas.draw_axes()
        red = canvas.mask(RED)
        assert red[:, 50].all()
        assert red[50, :].all()
        assert red.sum() == 199

    def test_grid_lines_and_axes_on_top(self, canvas):
        canvas.draw_grid()
        assert canvas.at_pixel(60, 10) == GRID_GRAY  # x = 1
        assert canvas.at_pixel(10, 30) == GRID_GRAY  # y = 2
        assert canvas.at_pixel(0, 77) == WHITE  # x = -5 edge
        assert canvas.at_pixel(25, 0) == WHITE  # y = 5 edge
        assert canvas.at_pixel(60, 50) == RED
        assert canvas.at_pixel(50, 10) == RED
        assert canvas.at_pixel(25, 25) == WHITE

    def test_grid_skips_viewport_edges(self):
        canvas = Canvas(Area.from_corners(-2, 2, 2, -2), 10)
        canvas.draw_grid()
        gray = canvas.mask(GRID_GRAY)
        # only the crossings of the x = +-1 and y = +-1 lines touch the edges
        assert list(np.nonzero(gray[0])[0]) == [10, 30]
        assert list(np.nonzero(gray[:, 0])[0]) == [10, 30]

    def test_no_axes_outside_viewport(self):
        canvas = Canvas(Area.from_corners(1, 5, 5, 1), 10)
        canvas.draw_grid()
        assert not canvas.mask(RED).any()
        assert canvas.mask(GRID_GRAY).any()

    def test_png_export(self, canvas, tmp_path):
        canvas.draw_grid()
        path = tmp_path / "grid.png"
        canvas.save_png(str(path))
        assert path.exists()
        image = canvas.to_image()
        assert image.dtype == np.uint8
        assert tuple(image[50, 50]) == RED
