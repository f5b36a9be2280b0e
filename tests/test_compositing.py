"""Tests for chuk_mcp_terrain.core.compositing (rasters to RGBA and PNG)."""

import io

import numpy as np
import pytest
from PIL import Image

from chuk_mcp_terrain.constants import (
    ASPECT_COLORS,
    SHADOW_COLOR,
    SLOPE_CLASSES,
    TRANSPARENT,
)
from chuk_mcp_terrain.core.compositing import (
    rgba_to_png,
    shadow_to_rgba,
    slope_aspect_to_rgba,
    slope_color,
    slope_to_rgba,
)

YELLOW = (255, 255, 0, 204)
ORANGE = (255, 128, 0, 204)
RED = (255, 0, 0, 204)
DARK_RED = (153, 0, 0, 204)
PURPLE = (26, 0, 51, 204)


class TestSlopeColor:
    @pytest.mark.parametrize(
        "slope,expected",
        [
            (0.0, TRANSPARENT),
            (26.99, TRANSPARENT),
            (27.0, YELLOW),
            (29.9, YELLOW),
            (30.0, ORANGE),
            (35.0, RED),
            (39.99, RED),
            (40.0, DARK_RED),
            (45.0, PURPLE),
            (89.0, PURPLE),
        ],
    )
    def test_thresholds(self, slope, expected):
        assert slope_color(slope) == expected

    def test_nan_is_transparent(self):
        assert slope_color(float("nan")) == TRANSPARENT

    def test_classes_sorted_descending(self):
        thresholds = [t for t, _ in SLOPE_CLASSES]
        assert thresholds == sorted(thresholds, reverse=True)


class TestSlopeToRgba:
    def test_shape_and_dtype(self):
        rgba = slope_to_rgba(np.zeros((8, 5)))
        assert rgba.shape == (8, 5, 4)
        assert rgba.dtype == np.uint8

    def test_matches_scalar(self):
        slopes = np.array([[0.0, 27.0, 31.0], [36.0, 42.0, 60.0]])
        rgba = slope_to_rgba(slopes)
        for r in range(2):
            for c in range(3):
                assert tuple(int(v) for v in rgba[r, c]) == slope_color(slopes[r, c])

    def test_nan_transparent(self):
        rgba = slope_to_rgba(np.array([[np.nan, 50.0]]))
        assert not rgba[0, 0].any()
        assert tuple(int(v) for v in rgba[0, 1]) == PURPLE


class TestSlopeAspectToRgba:
    def test_gentle_slopes_transparent(self):
        rgba = slope_aspect_to_rgba(np.full((4, 4), 19.9), np.zeros((4, 4)))
        assert not rgba.any()

    @pytest.mark.parametrize(
        "aspect,direction",
        [(0.0, "N"), (45.0, "NE"), (90.0, "E"), (135.0, "SE"), (180.0, "S"),
         (225.0, "SW"), (270.0, "W"), (315.0, "NW"), (350.0, "N")],
    )
    def test_sector_colours(self, aspect, direction):
        rgba = slope_aspect_to_rgba(np.array([[20.0]]), np.array([[aspect]]))
        assert tuple(int(v) for v in rgba[0, 0]) == ASPECT_COLORS[direction]

    def test_mixed(self):
        slope = np.array([[10.0, 25.0], [np.nan, 40.0]])
        aspect = np.array([[180.0, 180.0], [180.0, 90.0]])
        rgba = slope_aspect_to_rgba(slope, aspect)

        assert not rgba[0, 0].any()
        assert tuple(int(v) for v in rgba[0, 1]) == ASPECT_COLORS["S"]
        assert not rgba[1, 0].any()
        assert tuple(int(v) for v in rgba[1, 1]) == ASPECT_COLORS["E"]


class TestShadowToRgba:
    def test_colours(self):
        mask = np.array([[True, False], [False, True]])
        rgba = shadow_to_rgba(mask)
        assert tuple(int(v) for v in rgba[0, 0]) == SHADOW_COLOR
        assert tuple(int(v) for v in rgba[0, 1]) == TRANSPARENT
        assert tuple(int(v) for v in rgba[1, 1]) == SHADOW_COLOR

    def test_accepts_int_mask(self):
        rgba = shadow_to_rgba(np.array([[0, 1]]))
        assert rgba[0, 1, 3] == SHADOW_COLOR[3]


class TestRgbaToPng:
    def test_png_round_trip(self):
        rgba = slope_to_rgba(np.linspace(0.0, 60.0, 256 * 256).reshape(256, 256))
        data = rgba_to_png(rgba)

        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        img = Image.open(io.BytesIO(data))
        assert img.mode == "RGBA"
        assert img.size == (256, 256)
        assert np.array_equal(np.asarray(img), rgba)

    def test_non_contiguous_input(self):
        rgba = np.zeros((8, 8, 4), dtype=np.uint8)[:, ::2]
        img = Image.open(io.BytesIO(rgba_to_png(rgba)))
        assert img.size == (4, 8)
