# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

import cv2
import numpy as np

from ..common import as_float32_image, to_gray
from .base import pool_cells


def gabor_bank(sigma: float, n_orientations: int) -> list[np.ndarray]:
    """Build odd-phase Gabor kernels at evenly spaced orientations.

    Kernels are normalised to unit L1 norm so responses are comparable across
    orientations.
    """
    filter_size = int(11 * sigma + 1)
    if filter_size % 2 == 0:
        filter_size += 1

    kernels = []
    for ori in range(n_orientations):
        theta = ori * np.pi / n_orientations
        kernel = cv2.getGaborKernel(
            (filter_size, filter_size),
            sigma=sigma * 0.75,
            theta=theta,
            lambd=sigma * 2,
            gamma=0.75,
            psi=np.pi / 2,
            ktype=cv2.CV_32F,
        )
        kernel /= np.sum(np.abs(kernel))
        kernels.append(kernel)
    return kernels


class GaborFeatures:
    """Pooled Gabor orientation energy, one channel per orientation."""

    def __init__(self, binsize: int = 4, n_orientations: int = 4, sigma: float = 3.0):
        if binsize < 1:
            raise ValueError(f"binsize must be >= 1, got {binsize}")
        if n_orientations < 1:
            raise ValueError(f"n_orientations must be >= 1, got {n_orientations}")
        if not sigma > 0:
            raise ValueError(f"sigma must be positive, got {sigma}")
        self._binsize = int(binsize)
        self._sigma = float(sigma)
        self._kernels = gabor_bank(self._sigma, n_orientations)

    def binsize(self) -> int:
        return self._binsize

    def channels(self) -> int:
        return len(self._kernels)

    def min_image_shape(self) -> tuple[int, int]:
        return self._binsize, self._binsize

    def feature_shape(self, image_shape: tuple[int, ...]) -> tuple[int, int]:
        return image_shape[0] // self._binsize, image_shape[1] // self._binsize

    def compute(self, image: np.ndarray) -> np.ndarray:
        gray = to_gray(as_float32_image(image))
        responses = [
            np.abs(
                cv2.filter2D(gray, cv2.CV_32F, kernel, borderType=cv2.BORDER_REFLECT_101)
            )
            for kernel in self._kernels
        ]
        return pool_cells(np.stack(responses, axis=2), self._binsize)

    def __call__(self, image: np.ndarray) -> np.ndarray:
        return self.compute(image)

    def __repr__(self) -> str:
        return (
            f"GaborFeatures(binsize={self._binsize}, "
            f"n_orientations={len(self._kernels)}, sigma={self._sigma})"
        )
