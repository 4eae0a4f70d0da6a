# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""One-time preparation of scoring filters.

Filters are usually static while a detector runs, so their layout is
transformed once for the convolution method that will consume them. The
prepared state is an immutable value: every array in it is a private,
read-only copy.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from .errors import FilterChannelMismatch


class ConvolutionMethod(Enum):
    """Backends for valid-region multi-channel correlation."""

    FILTER2D = "filter2d"  # OpenCV filter2D over channel-major planes
    FFT = "fft"  # scipy.signal.fftconvolve with pre-flipped kernels
    PATCHES = "patches"  # tensor dot against sliding windows


@dataclass(frozen=True)
class PreparedFilters:
    """Filters transformed for one convolution method.

    Attributes:
        method: Method the kernels were laid out for.
        channels: Channel depth shared by every filter.
        dtype: Storage and accumulation dtype.
        shapes: Spatial (height, width) of each filter, in input order.
        kernels: Method-specific layout, one entry per filter. For FILTER2D each
            entry is a tuple of 2D planes, one per channel. For FFT and PATCHES
            each entry is a (height, width, channels) array, spatially flipped
            for FFT.
    """

    method: ConvolutionMethod
    channels: int
    dtype: np.dtype
    shapes: tuple[tuple[int, int], ...]
    kernels: tuple

    def __len__(self) -> int:
        return len(self.shapes)


def _frozen_copy(array: np.ndarray, dtype: np.dtype) -> np.ndarray:
    out = np.array(array, dtype=dtype, order="C", copy=True)
    out.setflags(write=False)
    return out


def as_filter_array(filt: np.ndarray, index: int = 0) -> np.ndarray:
    """View a filter as a (height, width, channels) array."""
    filt = np.asarray(filt)
    if filt.ndim == 2:
        filt = filt[:, :, np.newaxis]
    if filt.ndim != 3:
        raise ValueError(
            f"Filter {index} must be 2D or 3D, got shape {filt.shape}"
        )
    if filt.shape[0] == 0 or filt.shape[1] == 0 or filt.shape[2] == 0:
        raise ValueError(f"Filter {index} is empty: {filt.shape}")
    if not np.issubdtype(filt.dtype, np.number) or filt.dtype == np.bool_:
        raise ValueError(f"Filter {index} has unsupported dtype {filt.dtype}")
    if not np.all(np.isfinite(filt)):
        raise ValueError(f"Filter {index} contains non-finite values")
    return filt


def prepare_filters(
    filters: Sequence[np.ndarray],
    channels: int,
    method: ConvolutionMethod = ConvolutionMethod.FILTER2D,
    dtype: np.dtype | type = np.float32,
) -> PreparedFilters:
    """Validate filters and lay them out for a convolution method.

    Args:
        filters: Non-empty ordered sequence of (height, width) or
            (height, width, channels) arrays.
        channels: Channel depth of the features the filters will score.
        method: Convolution method the layout is prepared for.
        dtype: Floating-point dtype for storage and accumulation.

    Returns:
        The prepared, read-only filter state.

    Raises:
        ValueError: If ``filters`` is empty or a filter is malformed.
        FilterChannelMismatch: If a filter's channel depth differs from
            ``channels``.
    """
    dtype = np.dtype(dtype)
    if not np.issubdtype(dtype, np.floating):
        raise ValueError(f"dtype must be floating point, got {dtype}")
    if isinstance(filters, np.ndarray):
        raise ValueError(
            "filters must be a sequence of arrays, not a single array"
        )
    filters = [as_filter_array(f, i) for i, f in enumerate(filters)]
    if not filters:
        raise ValueError("At least one filter is required")
    for i, filt in enumerate(filters):
        if filt.shape[2] != channels:
            raise FilterChannelMismatch(
                f"Filter {i} has {filt.shape[2]} channels, features have {channels}"
            )

    if method == ConvolutionMethod.FILTER2D:
        kernels = tuple(
            tuple(_frozen_copy(filt[:, :, c], dtype) for c in range(channels))
            for filt in filters
        )
    elif method == ConvolutionMethod.FFT:
        kernels = tuple(_frozen_copy(filt[::-1, ::-1, :], dtype) for filt in filters)
    elif method == ConvolutionMethod.PATCHES:
        kernels = tuple(_frozen_copy(filt, dtype) for filt in filters)
    else:
        raise ValueError(f"Unsupported convolution method: {method}")

    return PreparedFilters(
        method=method,
        channels=channels,
        dtype=dtype,
        shapes=tuple((filt.shape[0], filt.shape[1]) for filt in filters),
        kernels=kernels,
    )
