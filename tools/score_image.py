# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Score an image file against filters saved as ``.npy`` files.

Writes the planned scales and every response map to an ``.npz`` archive, with
maps stored under ``scale{i}_filter{j}`` keys.
"""
from __future__ import annotations

import logging
from pathlib import Path

import cv2
import hydra
import numpy as np
from omegaconf import DictConfig

from tbp.featpyramid.config import build_model

logger = logging.getLogger(__name__)


def read_image(path: str | Path) -> np.ndarray:
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    if image.ndim == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    elif image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return image


@hydra.main(config_path="../conf", config_name="config", version_base=None)
def main(cfg: DictConfig):
    model = build_model(cfg.pyramid)
    image = read_image(cfg.image)
    model.set_filters([np.load(path) for path in cfg.filters])

    scales, grid = model.score(image)
    maps = {
        f"scale{i}_filter{j}": grid[i, j]
        for i in range(grid.n_scales)
        for j in range(grid.n_filters)
    }
    np.savez(cfg.output, scales=np.asarray(scales), **maps)
    logger.info(
        f"Wrote {grid.n_scales} x {grid.n_filters} response maps to {cfg.output}"
    )


if __name__ == "__main__":
    main()
