# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from hydra import compose, initialize_config_dir
from omegaconf import OmegaConf
from omegaconf.errors import ConfigKeyError

from tbp.featpyramid import (
    ConvolutionMethod,
    DegeneratePolicy,
    GaborFeatures,
    HOGFeatures,
    IntensityFeatures,
    MultiscaleFeatures,
)
from tbp.featpyramid.config import build_model, load_config

CONF_DIR = Path(__file__).resolve().parents[1] / "conf"


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config()
        assert cfg.features.name == "hog"
        assert cfg.scales.n_octaves == 3
        assert cfg.scales.policy == "raise"
        assert cfg.engine.method == "filter2d"
        assert list(cfg.engine.padding) == [0, 0]

    def test_dict_overrides(self):
        cfg = load_config(
            overrides={"features": {"name": "intensity", "binsize": 2}, "n_workers": 4}
        )
        assert cfg.features.name == "intensity"
        assert cfg.features.binsize == 2
        assert cfg.n_workers == 4

    def test_dotlist_overrides(self):
        cfg = load_config(overrides=["engine.method=fft", "scales.scales_per_octave=4"])
        assert cfg.engine.method == "fft"
        assert cfg.scales.scales_per_octave == 4

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "pyramid.yaml"
        path.write_text(
            "features:\n"
            "  name: gabor\n"
            "  params:\n"
            "    n_orientations: 6\n"
            "scales:\n"
            "  policy: drop\n"
        )
        cfg = load_config(path, overrides=["engine.dtype=float64"])
        assert cfg.features.name == "gabor"
        assert cfg.features.params.n_orientations == 6
        assert cfg.scales.policy == "drop"
        assert cfg.engine.dtype == "float64"

    @pytest.mark.parametrize(
        "override",
        [
            "features.name=sift",
            "engine.method=winograd",
            "scales.policy=ignore",
            "engine.dtype=float16",
            "engine.padding=[1,2,3]",
            "n_workers=0",
        ],
    )
    def test_invalid_values(self, override):
        with pytest.raises(ValueError):
            load_config(overrides=[override])

    def test_unknown_key(self):
        with pytest.raises(ConfigKeyError):
            load_config(overrides={"engine": {"stride": 2}})


class TestBuildModel:
    def test_default_model(self):
        model = build_model(load_config())
        assert isinstance(model.family, HOGFeatures)
        assert model.binsize() == 8
        assert model.channels() == 36
        assert model.nscales() == 4

    def test_engine_and_scale_settings(self):
        cfg = load_config(
            overrides={
                "features": {"name": "gabor", "binsize": 2},
                "scales": {"n_octaves": 2, "scales_per_octave": 2, "policy": "drop"},
                "engine": {"method": "patches", "padding": [1, 3], "dtype": "float64"},
                "n_workers": 2,
            }
        )
        model = build_model(cfg)
        assert isinstance(model.family, GaborFeatures)
        assert model.binsize() == 2
        assert model.nscales() == 5
        assert model.builder.policy == DegeneratePolicy.DROP
        assert model.engine.method == ConvolutionMethod.PATCHES
        assert model.engine.padding == (1, 3)
        assert model.engine.dtype == np.float64
        assert model.engine.n_workers == 2

    def test_accepts_plain_dict(self):
        model = build_model({"features": {"name": "intensity"}})
        assert isinstance(model.family, IntensityFeatures)
        assert model.binsize() == 1

    def test_from_config(self, gray_image, rng):
        model = MultiscaleFeatures.from_config(
            OmegaConf.create(
                {"features": {"name": "intensity"}, "scales": {"n_octaves": 1}}
            )
        )
        model.set_filters([rng.random((10, 10)).astype(np.float32)])
        scales, grid = model.score(gray_image)
        assert scales == [1.0, 0.5]
        assert grid.map_shapes() == [[(91, 91)], [(41, 41)]]


class TestHydraConfig:
    def test_compose_defaults(self):
        with initialize_config_dir(config_dir=str(CONF_DIR), version_base=None):
            cfg = compose("config", overrides=["image=x.png", "filters=[a.npy]"])
        model = build_model(cfg.pyramid)
        assert isinstance(model.family, HOGFeatures)
        assert model.nscales() == 16
        assert model.builder.policy == DegeneratePolicy.RAISE

    def test_compose_feature_group(self):
        with initialize_config_dir(config_dir=str(CONF_DIR), version_base=None):
            cfg = compose(
                "config",
                overrides=[
                    "image=x.png",
                    "filters=[a.npy]",
                    "pyramid/features=intensity",
                    "pyramid.engine.method=fft",
                ],
            )
        model = build_model(cfg.pyramid)
        assert isinstance(model.family, IntensityFeatures)
        assert model.binsize() == 1
        assert model.engine.method == ConvolutionMethod.FFT
