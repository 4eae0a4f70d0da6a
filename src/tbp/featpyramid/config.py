# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
"""Structured configuration for feature pyramids.

The dataclasses below are OmegaConf schemas. YAML files and overrides are merged
on top of them, so unknown keys and wrongly typed values are rejected at load
time. The same layout is used under the ``pyramid`` key of the Hydra configs in
``conf/``.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from omegaconf import DictConfig, OmegaConf

from .features import GaborFeatures, HOGFeatures, IntensityFeatures
from .features.base import FeatureFamily
from .filters import ConvolutionMethod
from .model import MultiscaleFeatures
from .scales import DegeneratePolicy, ScaleConfig

logger = logging.getLogger(__name__)

FEATURE_FAMILIES = {
    "intensity": IntensityFeatures,
    "hog": HOGFeatures,
    "gabor": GaborFeatures,
}

DTYPES = ("float32", "float64")


@dataclass
class ScaleSettings:
    max_scale: float = 1.0
    min_scale: Optional[float] = None
    n_octaves: Optional[int] = 3
    scales_per_octave: int = 1
    step: Optional[float] = None
    policy: str = DegeneratePolicy.RAISE.value


@dataclass
class FeatureSettings:
    name: str = "hog"
    binsize: Optional[int] = None
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EngineSettings:
    method: str = ConvolutionMethod.FILTER2D.value
    padding: List[int] = field(default_factory=lambda: [0, 0])
    dtype: str = "float32"


@dataclass
class FeaturePyramidConfig:
    features: FeatureSettings = field(default_factory=FeatureSettings)
    scales: ScaleSettings = field(default_factory=ScaleSettings)
    engine: EngineSettings = field(default_factory=EngineSettings)
    n_workers: int = 1


def validate_config(cfg: DictConfig) -> None:
    """Check values that the schema types alone cannot.

    Raises:
        ValueError: If a value is out of range or names an unknown option.
    """
    if cfg.features.name not in FEATURE_FAMILIES:
        raise ValueError(
            f"Unknown feature family {cfg.features.name!r}; "
            f"expected one of {sorted(FEATURE_FAMILIES)}"
        )
    valid_policies = [p.value for p in DegeneratePolicy]
    if cfg.scales.policy not in valid_policies:
        raise ValueError(
            f"Unknown degenerate-scale policy {cfg.scales.policy!r}; "
            f"expected one of {valid_policies}"
        )
    valid_methods = [m.value for m in ConvolutionMethod]
    if cfg.engine.method not in valid_methods:
        raise ValueError(
            f"Unknown convolution method {cfg.engine.method!r}; "
            f"expected one of {valid_methods}"
        )
    if cfg.engine.dtype not in DTYPES:
        raise ValueError(f"dtype must be one of {DTYPES}, got {cfg.engine.dtype!r}")
    if len(cfg.engine.padding) != 2:
        raise ValueError(
            f"padding must be [rows, cols], got {list(cfg.engine.padding)}"
        )
    if cfg.n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {cfg.n_workers}")


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Union[Dict[str, Any], List[str]]] = None,
) -> DictConfig:
    """Load a validated feature pyramid configuration.

    Args:
        path: Optional YAML file with ``FeaturePyramidConfig`` fields.
        overrides: Optional nested dict or list of dotted ``key=value`` strings
            applied last.

    Returns:
        The merged configuration.
    """
    configs = [OmegaConf.structured(FeaturePyramidConfig)]
    if path is not None:
        configs.append(OmegaConf.load(path))
    if overrides:
        if isinstance(overrides, dict):
            configs.append(OmegaConf.create(overrides))
        else:
            configs.append(OmegaConf.from_dotlist(list(overrides)))
    cfg = OmegaConf.merge(*configs)
    validate_config(cfg)
    return cfg


def _as_schema(cfg: Union[DictConfig, Dict[str, Any]]) -> DictConfig:
    cfg = OmegaConf.merge(OmegaConf.structured(FeaturePyramidConfig), cfg)
    validate_config(cfg)
    return cfg


def build_scale_config(settings: DictConfig) -> ScaleConfig:
    return ScaleConfig(
        max_scale=settings.max_scale,
        min_scale=settings.min_scale,
        n_octaves=settings.n_octaves,
        scales_per_octave=settings.scales_per_octave,
        step=settings.step,
    )


def build_family(settings: DictConfig) -> FeatureFamily:
    kwargs = OmegaConf.to_container(settings.params, resolve=True)
    if settings.binsize is not None:
        kwargs["binsize"] = settings.binsize
    return FEATURE_FAMILIES[settings.name](**kwargs)


def build_model(cfg: Union[DictConfig, Dict[str, Any]]) -> MultiscaleFeatures:
    """Instantiate a ``MultiscaleFeatures`` from a configuration."""
    cfg = _as_schema(cfg)
    family = build_family(cfg.features)
    model = MultiscaleFeatures(
        family,
        scale_config=build_scale_config(cfg.scales),
        policy=DegeneratePolicy(cfg.scales.policy),
        method=ConvolutionMethod(cfg.engine.method),
        padding=tuple(cfg.engine.padding),
        n_workers=cfg.n_workers,
        dtype=np.dtype(cfg.engine.dtype),
    )
    logger.debug(f"Built {model!r}")
    return model
