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
from typing import TYPE_CHECKING, Sequence

import numpy as np

from .engine import ConvolutionEngine
from .errors import FiltersNotSet
from .features.base import FeatureFamily
from .filters import ConvolutionMethod
from .grid import ResponseGrid
from .pyramid import PyramidBuilder
from .scales import DegeneratePolicy, ScaleConfig

if TYPE_CHECKING:
    from omegaconf import DictConfig

logger = logging.getLogger(__name__)


class MultiscaleFeatures:
    """Feature pyramids and their filter responses for one feature family.

    This is the surface handed to detectors: plan scales, build a pyramid of
    feature arrays for an image, prepare filters once, and score pyramids into a
    [scale][filter] grid of response maps. Peak extraction and non-maximum
    suppression happen downstream.

    Example:
        >>> model = MultiscaleFeatures(HOGFeatures(binsize=8))
        >>> model.set_filters(filters)
        >>> grid = model.pdf(model.pyramid(image))
    """

    def __init__(
        self,
        family: FeatureFamily,
        scale_config: ScaleConfig | None = None,
        policy: DegeneratePolicy = DegeneratePolicy.RAISE,
        method: ConvolutionMethod = ConvolutionMethod.FILTER2D,
        padding: int | Sequence[int] = 0,
        n_workers: int = 1,
        dtype: np.dtype | type = np.float32,
    ):
        self.builder = PyramidBuilder(
            family, scale_config=scale_config, policy=policy, n_workers=n_workers
        )
        self.engine = ConvolutionEngine(
            family.channels(),
            method=method,
            padding=padding,
            n_workers=n_workers,
            dtype=dtype,
        )

    @classmethod
    def from_config(cls, cfg: DictConfig | dict) -> "MultiscaleFeatures":
        from .config import build_model

        return build_model(cfg)

    @property
    def family(self) -> FeatureFamily:
        return self.builder.family

    def binsize(self) -> int:
        return self.builder.binsize()

    def channels(self) -> int:
        return self.family.channels()

    def scales(self, image_shape: tuple[int, ...] | None = None) -> list[float]:
        return self.builder.scales(image_shape)

    def nscales(self, image_shape: tuple[int, ...] | None = None) -> int:
        return self.builder.nscales(image_shape)

    def pyramid(self, image: np.ndarray) -> list[np.ndarray]:
        levels = self.builder.pyramid(image)
        n_configured = self.builder.nscales()
        if len(levels) < n_configured:
            logger.warning(
                f"Image {np.shape(image)[:2]} supports {len(levels)} of "
                f"{n_configured} configured scales"
            )
        return levels

    def set_filters(self, filters: Sequence[np.ndarray]) -> None:
        self.engine.set_filters(filters)

    def pdf(self, pyramid: Sequence[np.ndarray]) -> ResponseGrid:
        return self.engine.pdf(pyramid)

    def score(self, image: np.ndarray) -> tuple[list[float], ResponseGrid]:
        """Score an image at every planned scale.

        Returns:
            The planned scales and the response grid, index-aligned.
        """
        if not self.engine.has_filters:
            raise FiltersNotSet("set_filters must be called before score")
        levels = self.pyramid(image)
        return self.scales(np.shape(image)), self.pdf(levels)

    def __repr__(self) -> str:
        return (
            f"MultiscaleFeatures(family={self.family!r}, "
            f"scales={[round(s, 4) for s in self.scales()]}, "
            f"method={self.engine.method.value})"
        )
