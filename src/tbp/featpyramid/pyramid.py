# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .common import as_float32_image, downsample, upsample
from .errors import UnsupportedScale
from .features.base import FeatureFamily
from .scales import DegeneratePolicy, ScaleConfig, plan_scales, resampled_shape

logger = logging.getLogger(__name__)


def resample(image: np.ndarray, scale: float) -> np.ndarray:
    """Resample an image by a scale factor.

    Shrinking uses area interpolation and enlarging uses cubic interpolation. When
    the target shape equals the input shape the input is returned as is.
    """
    shape = resampled_shape(image.shape, scale)
    if shape == image.shape[:2]:
        return image
    if scale < 1.0:
        return downsample(image, shape)
    return upsample(image, shape)


class PyramidBuilder:
    """Builds a feature pyramid for one feature family.

    Scales are planned per image and levels are computed independently, so they
    may be spread over a thread pool without changing the result.
    """

    def __init__(
        self,
        family: FeatureFamily,
        scale_config: ScaleConfig | None = None,
        policy: DegeneratePolicy = DegeneratePolicy.RAISE,
        n_workers: int = 1,
    ):
        """Initialize the builder.

        Args:
            family: Feature family used at every level.
            scale_config: Pyramid bounds. Defaults to ``ScaleConfig()``.
            policy: How to handle levels too small for the family. With RAISE
                every accepted image yields ``nscales()`` levels. With DROP the
                level count for an image is ``nscales(image.shape)``.
            n_workers: Number of threads used to compute levels.
        """
        if n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        self.family = family
        self.scale_config = scale_config or ScaleConfig()
        self.policy = policy
        self.n_workers = n_workers

    def binsize(self) -> int:
        return self.family.binsize()

    def scales(self, image_shape: tuple[int, ...] | None = None) -> list[float]:
        """Scale sequence, finest first.

        Args:
            image_shape: When given, levels degenerate for an image of this shape
                are handled according to the builder's policy.

        Returns:
            List of scales.
        """
        if image_shape is None:
            return self.scale_config.scales()
        return plan_scales(
            image_shape,
            self.scale_config,
            min_image_shape=self.family.min_image_shape(),
            policy=self.policy,
        )

    def nscales(self, image_shape: tuple[int, ...] | None = None) -> int:
        return len(self.scales(image_shape))

    def _level(self, image: np.ndarray, scale: float) -> np.ndarray:
        resampled = resample(image, scale)
        features = self.family.compute(resampled)
        if features.ndim != 3 or features.shape[0] < 1 or features.shape[1] < 1:
            raise UnsupportedScale(
                f"Scale {scale:.4f} gives image {resampled.shape[:2]} and features "
                f"{features.shape}, which hold no complete cell"
            )
        assert features.shape[2] == self.family.channels(), (
            f"{self.family!r} returned {features.shape[2]} channels, "
            f"expected {self.family.channels()}"
        )
        return features

    def pyramid(self, image: np.ndarray) -> list[np.ndarray]:
        """Compute features at every planned scale.

        Args:
            image: 2D or 3D image. It is not modified.

        Returns:
            List of (rows, cols, channels) float32 arrays, index-aligned with
            ``scales(image.shape)``.

        Raises:
            InvalidImage: If the image has zero area or is malformed.
            UnsupportedScale: If a planned level cannot hold one feature cell.
        """
        image = as_float32_image(image)
        scales = self.scales(image.shape)

        start = time.perf_counter()
        if self.n_workers > 1 and len(scales) > 1:
            with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
                levels = list(executor.map(lambda s: self._level(image, s), scales))
        else:
            levels = [self._level(image, s) for s in scales]

        logger.debug(
            f"Built {len(levels)}-level pyramid for image {image.shape} in "
            f"{time.perf_counter() - start:.4f}s: "
            f"{[lvl.shape for lvl in levels]}"
        )
        return levels
