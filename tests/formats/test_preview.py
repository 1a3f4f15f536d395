from __future__ import annotations

import numpy as np
import pytest

from formats.preview import middle_index, render_slice


def test_full_range_is_used_without_a_window():
    image = render_slice(np.array([[0.0, 50.0], [100.0, 100.0]]), size=None)

    assert image.mode == "L"
    assert image.getpixel((0, 0)) == 0
    assert image.getpixel((0, 1)) == 255


def test_window_clips_intensities():
    image = render_slice(np.array([[-1000.0, 40.0, 1000.0]]), window_center=40, window_width=80, size=None)

    assert [image.getpixel((x, 0)) for x in range(3)] == [0, 127, 255]


def test_monochrome1_is_inverted():
    image = render_slice(np.array([[0.0, 10.0]]), invert=True, size=None)

    assert [image.getpixel((x, 0)) for x in range(2)] == [255, 0]


def test_flat_slice_renders_black():
    image = render_slice(np.full((3, 3), 7.0), size=None)

    assert image.getpixel((1, 1)) == 0


def test_thumbnail_is_bounded_by_size():
    image = render_slice(np.random.default_rng(0).random((300, 150)), size=64)

    assert max(image.size) == 64


def test_non_2d_input_is_rejected():
    with pytest.raises(ValueError):
        render_slice(np.zeros((2, 2, 2)))


@pytest.mark.parametrize("count, expected", [(0, 0), (1, 0), (2, 0), (3, 1), (4, 1), (5, 2)])
def test_middle_index(count, expected):
    assert middle_index(count) == expected
