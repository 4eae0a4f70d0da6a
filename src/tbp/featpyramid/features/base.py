# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class FeatureFamily(Protocol):
    """Anything that turns one resampled image into one feature array.

    Implementations must be pure: computing features twice for the same image
    gives bit-identical arrays. Feature arrays are float32 with shape
    ``(*feature_shape(image.shape), channels())``.
    """

    def binsize(self) -> int: ...

    def channels(self) -> int: ...

    def min_image_shape(self) -> tuple[int, int]: ...

    def feature_shape(self, image_shape: tuple[int, ...]) -> tuple[int, int]: ...

    def compute(self, image: np.ndarray) -> np.ndarray: ...

    def __call__(self, image: np.ndarray) -> np.ndarray: ...


def pool_cells(array: np.ndarray, binsize: int) -> np.ndarray:
    """Average an array over non-overlapping ``binsize`` x ``binsize`` cells.

    Rows and columns that do not fill a whole cell are discarded.

    Args:
        array: (height, width) or (height, width, channels) array.
        binsize: Cell side length in pixels.

    Returns:
        float32 array of shape (height // binsize, width // binsize, channels).
    """
    if array.ndim == 2:
        array = array[:, :, np.newaxis]
    if binsize == 1:
        return np.array(array, dtype=np.float32, order="C", copy=True)
    h, w, c = array.shape
    rows, cols = h // binsize, w // binsize
    cropped = array[: rows * binsize, : cols * binsize]
    cells = cropped.reshape(rows, binsize, cols, binsize, c)
    return cells.mean(axis=(1, 3), dtype=np.float64).astype(np.float32)
