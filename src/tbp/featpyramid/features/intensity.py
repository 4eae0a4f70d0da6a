# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

import numpy as np

from ..common import as_float32_image, n_channels, to_gray
from ..errors import InvalidImage
from .base import pool_cells


class IntensityFeatures:
    """Raw intensity blocks.

    Each feature cell is the mean intensity of a ``binsize`` x ``binsize`` block
    of pixels, either as a single gray channel or as three colour channels.
    """

    def __init__(self, binsize: int = 1, grayscale: bool = True):
        if binsize < 1:
            raise ValueError(f"binsize must be >= 1, got {binsize}")
        self._binsize = int(binsize)
        self._grayscale = grayscale

    def binsize(self) -> int:
        return self._binsize

    def channels(self) -> int:
        return 1 if self._grayscale else 3

    def min_image_shape(self) -> tuple[int, int]:
        return self._binsize, self._binsize

    def feature_shape(self, image_shape: tuple[int, ...]) -> tuple[int, int]:
        return image_shape[0] // self._binsize, image_shape[1] // self._binsize

    def compute(self, image: np.ndarray) -> np.ndarray:
        image = as_float32_image(image)
        if self._grayscale:
            planes = to_gray(image)
        else:
            if n_channels(image) not in (3, 4):
                raise InvalidImage(
                    f"Colour intensity features need an RGB(A) image, got shape "
                    f"{image.shape}"
                )
            planes = image[:, :, :3]
        return pool_cells(planes, self._binsize)

    def __call__(self, image: np.ndarray) -> np.ndarray:
        return self.compute(image)

    def __repr__(self) -> str:
        return (
            f"IntensityFeatures(binsize={self._binsize}, "
            f"grayscale={self._grayscale})"
        )
