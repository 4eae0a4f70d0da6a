# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .base import FeatureFamily, pool_cells
from .gabor import GaborFeatures
from .hog import HOGFeatures
from .intensity import IntensityFeatures

__all__ = [
    "FeatureFamily",
    "GaborFeatures",
    "HOGFeatures",
    "IntensityFeatures",
    "pool_cells",
]
