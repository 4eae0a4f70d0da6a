# Copyright 2025 Thousand Brains Project
#
# Copyright may exist in Contributors' modifications
# and/or contributions to the work.
#
# Use of this source code is governed by the MIT
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator

import numpy as np


@dataclass(frozen=True)
class ResponseGrid:
    """Response maps indexed by [scale][filter].

    ``data`` is a 2D object array of shape (n_scales, n_filters) whose cells are
    2D response maps.
    """

    data: np.ndarray

    def __post_init__(self):
        assert isinstance(self.data, np.ndarray)
        assert np.issubdtype(self.data.dtype, np.object_)
        assert self.data.ndim == 2

    @classmethod
    def empty(cls, n_scales: int, n_filters: int) -> "ResponseGrid":
        return cls(np.empty((n_scales, n_filters), dtype=object))

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape

    @property
    def n_scales(self) -> int:
        return self.data.shape[0]

    @property
    def n_filters(self) -> int:
        return self.data.shape[1]

    @property
    def flat(self) -> Iterator[np.ndarray]:
        return self.data.flat

    def level(self, scale_index: int) -> list[np.ndarray]:
        """All response maps at one scale, in filter order."""
        return list(self.data[scale_index])

    def filter(self, filter_index: int) -> list[np.ndarray]:
        """All response maps of one filter, in scale order."""
        return list(self.data[:, filter_index])

    def map_shapes(self) -> list[list[tuple[int, int]]]:
        return [[m.shape for m in row] for row in self.data]

    def apply(self, func: Callable[[np.ndarray], np.ndarray]) -> "ResponseGrid":
        data = np.empty(self.data.shape, dtype=object)
        for index, arr in np.ndenumerate(self.data):
            data[index] = func(arr)
        return ResponseGrid(data)

    def __getitem__(self, index):
        if isinstance(index, tuple):
            return self.data[index]
        return self.level(index)

    def __iter__(self) -> Iterator[list[np.ndarray]]:
        for i in range(self.n_scales):
            yield self.level(i)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"ResponseGrid(n_scales={self.n_scales}, n_filters={self.n_filters})"
