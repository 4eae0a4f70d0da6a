# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Convolution engine producing response ("pdf") maps.

Each response map is the valid-region correlation of one feature array with one
filter, summed over channels, so that every output pixel is the dot product of
the filter with the feature patch under it. Higher values indicate a stronger
match at that location.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import cv2
import numpy as np
from scipy.signal import fftconvolve
from skimage.util import view_as_windows

from .errors import FilterChannelMismatch, FilterLargerThanFeature, FiltersNotSet
from .filters import ConvolutionMethod, PreparedFilters, prepare_filters
from .grid import ResponseGrid

logger = logging.getLogger(__name__)

_CV_DEPTHS = {
    np.dtype(np.float32): cv2.CV_32F,
    np.dtype(np.float64): cv2.CV_64F,
}


def _as_padding(padding: int | Sequence[int]) -> tuple[int, int]:
    if np.isscalar(padding):
        pad_y = pad_x = int(padding)
    else:
        pad_y, pad_x = (int(p) for p in padding)
    if pad_y < 0 or pad_x < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")
    return pad_y, pad_x


def _correlate_filter2d(
    planes: Sequence[np.ndarray],
    kernel_planes: Sequence[np.ndarray],
    out_shape: tuple[int, int],
    dtype: np.dtype,
) -> np.ndarray:
    rows, cols = out_shape
    ddepth = _CV_DEPTHS[dtype]
    response = np.zeros(out_shape, dtype=dtype)
    for plane, kernel in zip(planes, kernel_planes):
        # With the anchor at the kernel origin, the top-left block of the full
        # output only reads pixels inside the plane.
        full = cv2.filter2D(plane, ddepth, kernel, anchor=(0, 0))
        response += full[:rows, :cols]
    return response


def _correlate_fft(level: np.ndarray, flipped: np.ndarray) -> np.ndarray:
    return fftconvolve(level, flipped, mode="valid", axes=(0, 1)).sum(axis=2)


def _correlate_patches(level: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    windows = view_as_windows(level, kernel.shape)[:, :, 0]
    return np.tensordot(windows, kernel, axes=([2, 3, 4], [0, 1, 2]))


class ConvolutionEngine:
    """Scores feature pyramids against a prepared filter set.

    The engine starts without filters. ``set_filters`` prepares a filter set
    and replaces any previous one; ``pdf`` can then be called any number of
    times. ``set_filters`` must not run concurrently with ``pdf``; concurrent
    ``pdf`` calls against a stable filter set are safe.
    """

    def __init__(
        self,
        channels: int,
        method: ConvolutionMethod = ConvolutionMethod.FILTER2D,
        padding: int | Sequence[int] = 0,
        n_workers: int = 1,
        dtype: np.dtype | type = np.float32,
    ):
        """Initialize the engine.

        Args:
            channels: Channel depth of the feature arrays to be scored.
            method: Correlation backend.
            padding: Zero padding (rows, columns) added on each side of every
                feature array before correlation. An int pads both axes equally.
            n_workers: Number of threads used across (scale, filter) pairs.
            dtype: Accumulation dtype, float32 or float64.
        """
        if channels < 1:
            raise ValueError(f"channels must be >= 1, got {channels}")
        if n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        dtype = np.dtype(dtype)
        if dtype not in _CV_DEPTHS:
            raise ValueError(f"dtype must be float32 or float64, got {dtype}")
        self.channels = channels
        self.method = ConvolutionMethod(method)
        self.padding = _as_padding(padding)
        self.n_workers = n_workers
        self.dtype = dtype
        self._filters: PreparedFilters | None = None

    @property
    def has_filters(self) -> bool:
        return self._filters is not None

    @property
    def prepared(self) -> PreparedFilters | None:
        return self._filters

    @property
    def nfilters(self) -> int:
        return 0 if self._filters is None else len(self._filters)

    @property
    def filter_shapes(self) -> tuple[tuple[int, int], ...]:
        return () if self._filters is None else self._filters.shapes

    def set_filters(self, filters: Sequence[np.ndarray]) -> None:
        """Prepare a filter set, replacing any previous one.

        The new state is fully built before it replaces the old one, so a
        failing call leaves the engine unchanged.

        Raises:
            ValueError: If ``filters`` is empty or a filter is malformed.
            FilterChannelMismatch: If a filter's channel depth differs from the
                engine's.
        """
        prepared = prepare_filters(
            filters, self.channels, method=self.method, dtype=self.dtype
        )
        replaced = self._filters is not None
        self._filters = prepared
        logger.info(
            f"{'Replaced' if replaced else 'Set'} {len(prepared)} filter(s) "
            f"for {self.method.value} convolution: {list(prepared.shapes)}"
        )

    def clear_filters(self) -> None:
        self._filters = None

    def _prepare_level(self, index: int, level: np.ndarray) -> np.ndarray:
        level = np.asarray(level)
        if level.ndim == 2 and self.channels == 1:
            level = level[:, :, np.newaxis]
        if level.ndim != 3 or level.shape[2] != self.channels:
            raise FilterChannelMismatch(
                f"Pyramid level {index} has shape {level.shape}, filters expect "
                f"{self.channels} channel(s)"
            )
        pad_y, pad_x = self.padding
        if pad_y or pad_x:
            level = np.pad(level, ((pad_y, pad_y), (pad_x, pad_x), (0, 0)))
        return np.ascontiguousarray(level, dtype=self.dtype)

    def _check_sizes(
        self, levels: Sequence[np.ndarray], shapes: Sequence[tuple[int, int]]
    ) -> None:
        for i, level in enumerate(levels):
            for j, (fh, fw) in enumerate(shapes):
                if fh > level.shape[0] or fw > level.shape[1]:
                    raise FilterLargerThanFeature(
                        f"Filter {j} of size {(fh, fw)} exceeds pyramid level {i} "
                        f"of size {level.shape[:2]}"
                    )

    def pdf(self, pyramid: Sequence[np.ndarray]) -> ResponseGrid:
        """Correlate every pyramid level with every filter.

        Args:
            pyramid: Sequence of (rows, cols, channels) feature arrays.

        Returns:
            Grid of response maps indexed [scale][filter]. The map for a level of
            size (h, w) and a filter of size (fh, fw) has size
            (h + 2 * pad_y - fh + 1, w + 2 * pad_x - fw + 1).

        Raises:
            FiltersNotSet: If no filters have been prepared.
            FilterChannelMismatch: If a level's channel depth differs from the
                filters'.
            FilterLargerThanFeature: If a filter exceeds some level.
        """
        state = self._filters
        if state is None:
            raise FiltersNotSet("set_filters must be called before pdf")

        levels = [self._prepare_level(i, lvl) for i, lvl in enumerate(pyramid)]
        self._check_sizes(levels, state.shapes)

        if state.method == ConvolutionMethod.FILTER2D:
            operands = [
                tuple(np.ascontiguousarray(lvl[:, :, c]) for c in range(lvl.shape[2]))
                for lvl in levels
            ]
        else:
            operands = levels

        def score(pair: tuple[int, int]) -> np.ndarray:
            i, j = pair
            fh, fw = state.shapes[j]
            out_shape = (levels[i].shape[0] - fh + 1, levels[i].shape[1] - fw + 1)
            kernel = state.kernels[j]
            if state.method == ConvolutionMethod.FILTER2D:
                response = _correlate_filter2d(operands[i], kernel, out_shape, state.dtype)
            elif state.method == ConvolutionMethod.FFT:
                response = _correlate_fft(operands[i], kernel)
            else:
                response = _correlate_patches(operands[i], kernel)
            return np.asarray(response, dtype=state.dtype)

        pairs = [(i, j) for i in range(len(levels)) for j in range(len(state))]
        start = time.perf_counter()
        if self.n_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
                responses = list(executor.map(score, pairs))
        else:
            responses = [score(pair) for pair in pairs]

        grid = ResponseGrid.empty(len(levels), len(state))
        for (i, j), response in zip(pairs, responses):
            grid.data[i, j] = response
        logger.debug(
            f"Scored {len(levels)} level(s) x {len(state)} filter(s) in "
            f"{time.perf_counter() - start:.4f}s"
        )
        return grid


def correlate_valid(
    features: np.ndarray,
    filt: np.ndarray,
    method: ConvolutionMethod = ConvolutionMethod.FILTER2D,
    dtype: np.dtype | type = np.float32,
) -> np.ndarray:
    """Valid-region correlation of one feature array with one filter.

    Convenience for one-off scoring; repeated scoring should go through a
    ``ConvolutionEngine`` so the filter is prepared only once.
    """
    features = np.asarray(features)
    channels = 1 if features.ndim == 2 else features.shape[2]
    engine = ConvolutionEngine(channels, method=method, dtype=dtype)
    engine.set_filters([filt])
    return engine.pdf([features])[0, 0]
