# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .engine import ConvolutionEngine, correlate_valid
from .errors import (
    FeaturePyramidError,
    FilterChannelMismatch,
    FilterLargerThanFeature,
    FiltersNotSet,
    InvalidImage,
    UnsupportedScale,
)
from .features import FeatureFamily, GaborFeatures, HOGFeatures, IntensityFeatures
from .filters import ConvolutionMethod, PreparedFilters, prepare_filters
from .grid import ResponseGrid
from .model import MultiscaleFeatures
from .pyramid import PyramidBuilder, resample
from .scales import DegeneratePolicy, ScaleConfig, plan_scales, resampled_shape

__all__ = [
    "ConvolutionEngine",
    "ConvolutionMethod",
    "DegeneratePolicy",
    "FeatureFamily",
    "FeaturePyramidError",
    "FilterChannelMismatch",
    "FilterLargerThanFeature",
    "FiltersNotSet",
    "GaborFeatures",
    "HOGFeatures",
    "IntensityFeatures",
    "InvalidImage",
    "MultiscaleFeatures",
    "PreparedFilters",
    "PyramidBuilder",
    "ResponseGrid",
    "ScaleConfig",
    "UnsupportedScale",
    "correlate_valid",
    "plan_scales",
    "prepare_filters",
    "resample",
    "resampled_shape",
]
