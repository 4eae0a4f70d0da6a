# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

import cv2
import numpy as np

from .errors import InvalidImage


def as_float32_image(image: np.ndarray) -> np.ndarray:
    """Validate an image and convert it to float32.

    Integer images are rescaled to [0, 1] by the maximum of their dtype. Float
    images are cast without rescaling. The input is never modified.

    Args:
        image: 2D (height, width) or 3D (height, width, channels) array.

    Returns:
        float32 array with the same shape as the input.

    Raises:
        InvalidImage: If the image has zero area, an unsupported number of
            dimensions or channels, a non-numeric dtype, or non-finite values.
    """
    image = np.asarray(image)
    if image.dtype == np.bool_ or not np.issubdtype(image.dtype, np.number):
        raise InvalidImage(f"Unsupported image dtype: {image.dtype}")
    if np.issubdtype(image.dtype, np.complexfloating):
        raise InvalidImage(f"Unsupported image dtype: {image.dtype}")
    if image.ndim not in (2, 3):
        raise InvalidImage(f"Expected a 2D or 3D image, got shape {image.shape}")
    if image.ndim == 3 and not 1 <= image.shape[2] <= 4:
        raise InvalidImage(f"Unsupported number of channels: {image.shape[2]}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImage(f"Image has zero area: {image.shape}")

    if np.issubdtype(image.dtype, np.integer):
        return (image / float(np.iinfo(image.dtype).max)).astype(np.float32)
    out = np.asarray(image, dtype=np.float32)
    if not np.all(np.isfinite(out)):
        raise InvalidImage("Image contains non-finite values")
    return out


def n_channels(image: np.ndarray) -> int:
    return 1 if image.ndim == 2 else image.shape[2]


def to_gray(image: np.ndarray) -> np.ndarray:
    """Collapse a float32 image to a single 2D intensity plane.

    RGB and RGBA inputs are converted with OpenCV's luminance weights.
    """
    if image.ndim == 2:
        return image
    channels = image.shape[2]
    if channels == 1:
        return image[:, :, 0]
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    raise InvalidImage(f"Cannot convert {channels}-channel image to gray")


def resize(
    image: np.ndarray,
    shape: tuple[int, int],
    interpolation: int = cv2.INTER_LINEAR,
) -> np.ndarray:
    """Resize an image.

    Wraps opencv.resize so that the "shape" argument is ordered (height, width)
    and so that a trailing singleton channel axis survives the call.

    Args:
        image: Image array.
        shape: Target shape (height, width).
        interpolation: Interpolation method. Defaults to cv2.INTER_LINEAR.

    Returns:
        Resized image array.
    """
    out = cv2.resize(image, (shape[1], shape[0]), interpolation=interpolation)
    if image.ndim == 3 and out.ndim == 2:
        out = out[:, :, np.newaxis]
    return out


def downsample(
    image: np.ndarray,
    shape: tuple[int, int],
    interpolation: int = cv2.INTER_AREA,
) -> np.ndarray:
    """Downsample an image, defaulting to area interpolation."""
    return resize(image, shape, interpolation=interpolation)


def upsample(
    image: np.ndarray,
    shape: tuple[int, int],
    interpolation: int = cv2.INTER_CUBIC,
) -> np.ndarray:
    """Upsample an image, defaulting to cubic interpolation."""
    return resize(image, shape, interpolation=interpolation)
