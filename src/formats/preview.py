"""Render 2-D slices to preview bitmaps."""

from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image


DEFAULT_THUMBNAIL_SIZE = 128


def render_slice(
    pixel_array: np.ndarray,
    window_center: Optional[float] = None,
    window_width: Optional[float] = None,
    invert: bool = False,
    size: Optional[int] = DEFAULT_THUMBNAIL_SIZE,
) -> Image.Image:
    """Window one slice to 8 bits and wrap it in a PIL image.

    Without an explicit window the full intensity range of the slice is used.
    """
    pixel_array = np.asarray(pixel_array, dtype=np.float64)
    if pixel_array.ndim != 2:
        raise ValueError(f"Expected a 2-D slice, got shape {pixel_array.shape}")

    wc = window_center
    ww = window_width
    if wc is None or ww is None:
        wc = (pixel_array.max() + pixel_array.min()) / 2
        ww = pixel_array.max() - pixel_array.min()

    low = wc - ww / 2
    high = wc + ww / 2
    pixel_array = np.clip(pixel_array, low, high)

    if high > low:
        pixel_array = (pixel_array - low) / (high - low) * 255
    else:
        pixel_array = np.zeros_like(pixel_array)

    image = Image.fromarray(pixel_array.astype(np.uint8))

    # MONOCHROME1 stores inverted intensities
    if invert:
        image = Image.eval(image, lambda x: 255 - x)

    if size:
        image.thumbnail((size, size), Image.Resampling.LANCZOS)
    return image


def middle_index(count: int) -> int:
    return max(count - 1, 0) // 2
