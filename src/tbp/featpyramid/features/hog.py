# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Histogram of oriented gradients features.

Cells of ``binsize`` x ``binsize`` pixels accumulate magnitude-weighted votes
into ``n_orientations`` unsigned orientation bins, with bilinear interpolation
between neighbouring bins. Each cell is then normalised four times, once by each
2x2 block of cells that contains it, and clipped (Dalal & Triggs 2005,
Felzenszwalb et al. 2010). Cells on the border lack a full set of blocks and are
dropped.
"""
from __future__ import annotations

import cv2
import numpy as np
from numba import njit

from ..common import as_float32_image, to_gray


@njit
def compute_cell_histograms(
    magnitude: np.ndarray,
    orientation: np.ndarray,
    binsize: int,
    n_orientations: int,
    rows: int,
    cols: int,
) -> np.ndarray:
    """Accumulate orientation votes per cell.

    Args:
        magnitude: (height, width) gradient magnitudes.
        orientation: (height, width) unsigned orientations in [0, pi].
        binsize: Cell side length in pixels.
        n_orientations: Number of orientation bins covering [0, pi).
        rows: Number of cell rows.
        cols: Number of cell columns.

    Returns:
        A (rows, cols, n_orientations) float64 array of histograms.
    """
    hist = np.zeros((rows, cols, n_orientations))
    bin_width = np.pi / n_orientations
    for y in range(rows * binsize):
        cy = y // binsize
        for x in range(cols * binsize):
            cx = x // binsize
            pos = orientation[y, x] / bin_width - 0.5
            base = np.floor(pos)
            frac = pos - base
            lo = int(base) % n_orientations
            hi = (lo + 1) % n_orientations
            m = magnitude[y, x]
            hist[cy, cx, lo] += m * (1.0 - frac)
            hist[cy, cx, hi] += m * frac
    return hist


def compute_cell_histograms_numpy(
    magnitude: np.ndarray,
    orientation: np.ndarray,
    binsize: int,
    n_orientations: int,
    rows: int,
    cols: int,
) -> np.ndarray:
    """Vectorized twin of ``compute_cell_histograms``."""
    h, w = rows * binsize, cols * binsize
    magnitude = magnitude[:h, :w]
    pos = orientation[:h, :w] / (np.pi / n_orientations) - 0.5
    base = np.floor(pos)
    frac = pos - base
    lo = base.astype(np.int64) % n_orientations
    hi = (lo + 1) % n_orientations

    votes = np.zeros((h, w, n_orientations))
    for k in range(n_orientations):
        votes[:, :, k] = np.where(lo == k, magnitude * (1.0 - frac), 0.0) + np.where(
            hi == k, magnitude * frac, 0.0
        )
    return votes.reshape(rows, binsize, cols, binsize, n_orientations).sum(axis=(1, 3))


class HOGFeatures:
    """Block-normalised unsigned HOG features with ``4 * n_orientations`` channels."""

    def __init__(
        self,
        binsize: int = 8,
        n_orientations: int = 9,
        clip: float = 0.2,
        eps: float = 1e-4,
        accelerated: bool = True,
    ):
        if binsize < 1:
            raise ValueError(f"binsize must be >= 1, got {binsize}")
        if n_orientations < 2:
            raise ValueError(f"n_orientations must be >= 2, got {n_orientations}")
        self._binsize = int(binsize)
        self._n_orientations = int(n_orientations)
        self._clip = float(clip)
        self._eps = float(eps)
        self._accelerated = accelerated

    def binsize(self) -> int:
        return self._binsize

    def channels(self) -> int:
        return 4 * self._n_orientations

    def min_image_shape(self) -> tuple[int, int]:
        return 3 * self._binsize, 3 * self._binsize

    def feature_shape(self, image_shape: tuple[int, ...]) -> tuple[int, int]:
        rows = image_shape[0] // self._binsize - 2
        cols = image_shape[1] // self._binsize - 2
        return max(rows, 0), max(cols, 0)

    def _gradients(self, gray: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        # ksize=1 gives the centred [-1, 0, 1] difference without smoothing.
        dx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=1, borderType=cv2.BORDER_REPLICATE)
        dy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=1, borderType=cv2.BORDER_REPLICATE)
        magnitude = np.sqrt(dx * dx + dy * dy)
        orientation = np.mod(np.arctan2(dy, dx), np.pi)
        return magnitude, orientation

    def _normalize(self, hist: np.ndarray) -> np.ndarray:
        energy = np.sum(hist * hist, axis=2)
        blocks = energy[:-1, :-1] + energy[1:, :-1] + energy[:-1, 1:] + energy[1:, 1:]
        interior = hist[1:-1, 1:-1]
        normalized = []
        for dy in (0, 1):
            for dx in (0, 1):
                block = blocks[dy : dy + interior.shape[0], dx : dx + interior.shape[1]]
                scale = 1.0 / np.sqrt(block + self._eps)
                normalized.append(np.minimum(interior * scale[:, :, np.newaxis], self._clip))
        return np.concatenate(normalized, axis=2)

    def compute(self, image: np.ndarray) -> np.ndarray:
        gray = to_gray(as_float32_image(image))
        rows = gray.shape[0] // self._binsize
        cols = gray.shape[1] // self._binsize
        if rows < 3 or cols < 3:
            return np.zeros((0, 0, self.channels()), dtype=np.float32)

        magnitude, orientation = self._gradients(gray)
        kernel = (
            compute_cell_histograms
            if self._accelerated
            else compute_cell_histograms_numpy
        )
        hist = kernel(
            magnitude, orientation, self._binsize, self._n_orientations, rows, cols
        )
        return self._normalize(hist).astype(np.float32)

    def __call__(self, image: np.ndarray) -> np.ndarray:
        return self.compute(image)

    def __repr__(self) -> str:
        return (
            f"HOGFeatures(binsize={self._binsize}, "
            f"n_orientations={self._n_orientations}, clip={self._clip})"
        )
