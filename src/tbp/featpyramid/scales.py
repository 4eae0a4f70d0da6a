# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Scale planning for feature pyramids.

Scales are generated geometrically from ``max_scale`` downwards, so the sequence
is always non-increasing. Levels that become too small for the feature family
are always at the coarse end of the sequence, which lets the planner handle
them by truncation.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from .errors import UnsupportedScale

logger = logging.getLogger(__name__)

_TOLERANCE = 1e-9


class DegeneratePolicy(Enum):
    """What to do with levels too small to hold one feature cell."""

    DROP = "drop"  # truncate the coarse end of the sequence
    RAISE = "raise"  # fail with UnsupportedScale


@dataclass(frozen=True)
class ScaleConfig:
    """Pyramid bounds.

    Attributes:
        max_scale: Scale of the first (finest) level. Values above 1 hallucinate
            upsampled levels.
        min_scale: Smallest scale to keep, or None for no lower bound.
        n_octaves: Number of halvings below ``max_scale``, or None for no bound.
        scales_per_octave: Levels per halving of resolution.
        step: Ratio between consecutive scales. Overrides ``scales_per_octave``
            when given.
    """

    max_scale: float = 1.0
    min_scale: float | None = None
    n_octaves: int | None = 3
    scales_per_octave: int = 1
    step: float | None = None

    def __post_init__(self):
        if not self.max_scale > 0:
            raise ValueError(f"max_scale must be positive, got {self.max_scale}")
        if self.min_scale is None and self.n_octaves is None:
            raise ValueError("At least one of min_scale or n_octaves must be set")
        if self.min_scale is not None and not self.min_scale > 0:
            raise ValueError(f"min_scale must be positive, got {self.min_scale}")
        if self.n_octaves is not None and self.n_octaves < 0:
            raise ValueError(f"n_octaves must be >= 0, got {self.n_octaves}")
        if self.scales_per_octave < 1:
            raise ValueError(
                f"scales_per_octave must be >= 1, got {self.scales_per_octave}"
            )
        if self.step is not None and not 0 < self.step < 1:
            raise ValueError(f"step must be in (0, 1), got {self.step}")

    @property
    def ratio(self) -> float:
        if self.step is not None:
            return self.step
        return 2.0 ** (-1.0 / self.scales_per_octave)

    def n_levels(self) -> int:
        """Number of configured levels before any image is considered."""
        counts = []
        if self.n_octaves is not None:
            counts.append(self.n_octaves * self.scales_per_octave + 1)
        if self.min_scale is not None:
            if self.min_scale > self.max_scale * (1 + _TOLERANCE):
                counts.append(0)
            else:
                span = math.log(self.min_scale / self.max_scale) / math.log(self.ratio)
                counts.append(int(math.floor(span + _TOLERANCE)) + 1)
        return min(counts)

    def scales(self) -> list[float]:
        """The configured scale sequence, finest first."""
        ratio = self.ratio
        return [self.max_scale * ratio**i for i in range(self.n_levels())]


def resampled_shape(image_shape: tuple[int, ...], scale: float) -> tuple[int, int]:
    """Spatial shape (height, width) of an image resampled by ``scale``."""
    h, w = image_shape[:2]
    return max(int(round(h * scale)), 0), max(int(round(w * scale)), 0)


def plan_scales(
    image_shape: tuple[int, ...],
    config: ScaleConfig,
    min_image_shape: tuple[int, int] = (1, 1),
    policy: DegeneratePolicy = DegeneratePolicy.RAISE,
) -> list[float]:
    """Plan the scales of a pyramid for an image of a given size.

    Args:
        image_shape: Shape of the source image. Only the first two entries are used.
        config: Pyramid bounds.
        min_image_shape: Smallest (height, width) from which the feature family
            can extract at least one cell.
        policy: How degenerate levels are handled.

    Returns:
        Non-increasing list of scales. Identical inputs always give identical
        output.

    Raises:
        UnsupportedScale: If ``policy`` is RAISE and some configured level is
            smaller than ``min_image_shape``.
    """
    min_h, min_w = min_image_shape
    planned = []
    for scale in config.scales():
        h, w = resampled_shape(image_shape, scale)
        if h < min_h or w < min_w:
            if policy == DegeneratePolicy.RAISE:
                raise UnsupportedScale(
                    f"Scale {scale:.4f} resamples image {tuple(image_shape[:2])} to "
                    f"{(h, w)}, below the minimum {tuple(min_image_shape)}"
                )
            break
        planned.append(scale)

    n_dropped = config.n_levels() - len(planned)
    if n_dropped:
        logger.debug(
            f"Dropped {n_dropped} degenerate level(s) for image "
            f"{tuple(image_shape[:2])}"
        )
    return planned
