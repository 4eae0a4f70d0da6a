# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Shared fixtures for feature pyramid tests."""
from __future__ import annotations

import numpy as np
import pytest


def reference_correlate(features: np.ndarray, filt: np.ndarray) -> np.ndarray:
    """Valid-region dot product of a filter with every feature patch, in float64."""
    if features.ndim == 2:
        features = features[:, :, np.newaxis]
    if filt.ndim == 2:
        filt = filt[:, :, np.newaxis]
    fh, fw = filt.shape[:2]
    rows = features.shape[0] - fh + 1
    cols = features.shape[1] - fw + 1
    out = np.zeros((rows, cols))
    f64 = filt.astype(np.float64)
    for y in range(rows):
        for x in range(cols):
            out[y, x] = np.sum(features[y : y + fh, x : x + fw] * f64)
    return out


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def gray_image(rng) -> np.ndarray:
    """100x100 single-channel float32 image."""
    return rng.random((100, 100)).astype(np.float32)


@pytest.fixture
def rgb_image(rng) -> np.ndarray:
    """120x96 RGB uint8 image."""
    return rng.integers(0, 256, size=(120, 96, 3), dtype=np.uint8)


@pytest.fixture
def smooth_image() -> np.ndarray:
    """128x128 image with oriented structure, so gradients are not just noise."""
    y, x = np.mgrid[0:128, 0:128].astype(np.float32)
    return 0.5 + 0.25 * np.sin(x / 5.0) + 0.25 * np.cos((x + y) / 9.0)


@pytest.fixture
def reference():
    return reference_correlate
