"""Bound strategy for unconstrained problems."""

from __future__ import annotations

import sys
from typing import Sequence

import numpy as np

_MAX = sys.float_info.max


class NoBoundStrategy:
    """Identity bound strategy: no bounds, no transformation."""

    def __init__(
        self,
        lbounds: Sequence[float] | None = None,
        ubounds: Sequence[float] | None = None,
        dim: int = 0,
    ) -> None:
        # Bounds are accepted so that every strategy shares one signature;
        # an unbounded problem ignores them.
        self._id = True
        self._dim = int(dim)
        self._lower = -_MAX
        self._upper = _MAX

    @property
    def dim(self) -> int:
        """Number of dimensions the strategy was built for."""
        return self._dim

    def to_f_representation(self, x: np.ndarray) -> np.ndarray:
        """Return the point in objective-function space, which is the point itself."""
        return np.array(x, dtype=float, copy=True)

    def remove_dimensions(self, k: Sequence[int]) -> None:
        """Drop the given dimensions; bounds stay infinite for those left."""
        removed = {int(i) for i in k}
        self._dim = max(0, self._dim - len(removed))

    def is_id(self) -> bool:
        """Whether the strategy is the identity."""
        return self._id

    def lower_bound(self, k: int) -> float:
        """Lower bound of dimension ``k`` in internal space."""
        return self._lower

    def upper_bound(self, k: int) -> float:
        """Upper bound of dimension ``k`` in internal space."""
        return self._upper

    def pheno_lower_bound(self, k: int) -> float:
        """Lower bound of dimension ``k`` in objective-function space."""
        return self._lower

    def pheno_upper_bound(self, k: int) -> float:
        """Upper bound of dimension ``k`` in objective-function space."""
        return self._upper