# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Exceptions raised by the feature pyramid and convolution engine.

Every error is a deterministic input-validation failure. None are retried and no
partial pyramid or response grid is ever returned alongside one.
"""
from __future__ import annotations


class FeaturePyramidError(Exception):
    """Base class for all errors raised by this package."""


class InvalidImage(FeaturePyramidError, ValueError):
    """The input image has zero area or cannot be interpreted as an image."""


class UnsupportedScale(FeaturePyramidError, ValueError):
    """A planned pyramid level cannot produce a valid feature array."""


class FilterChannelMismatch(FeaturePyramidError, ValueError):
    """A filter's channel depth differs from the feature channel depth."""


class FiltersNotSet(FeaturePyramidError, RuntimeError):
    """Scoring was attempted before any filters were prepared."""


class FilterLargerThanFeature(FeaturePyramidError, ValueError):
    """A filter exceeds the spatial extent of a feature array."""
