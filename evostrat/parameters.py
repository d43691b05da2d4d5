"""Generic parameters shared by evolution strategies."""

from __future__ import annotations

import math
import time
from numbers import Real
from typing import Any, Sequence, Union

import numpy as np

ArrayLike = Union[float, Sequence[float], np.ndarray]


def _time_seed() -> int:
    """Seed derived from the current time, in milliseconds."""
    return time.time_ns() // 1_000_000


class Parameters:
    """Settings of an evolution strategy run.

    Called with no arguments it gives an empty parameter set, with no
    dimension, an unset population size and a zero iteration limit.
    """

    def __init__(
        self,
        dim: int = 0,
        x0: ArrayLike | None = None,
        lambda_: int = -1,
        seed: int = 0,
        gp: Any = None,
    ) -> None:
        self.dim = int(dim)
        self.lambda_ = int(lambda_)
        self.max_iter = -1
        self.max_fevals = -1

        self.quiet = True
        self.fplot = ""
        self.full_fplot = False
        self.x0min = np.zeros(0)
        self.x0max = np.zeros(0)
        self.ftarget = -math.inf
        self.ftolerance = 1e-12
        self.xtol = 1e-12

        self.seed = int(seed)
        self.algo = 0

        self.with_gradient = False
        self.with_edm = False

        self.fixed_p: dict[int, float] = {}
        self.gp = gp

        self.mt_feval = False
        self.max_hist = -1
        self.maximize = False
        self.initial_fvalue = False

        # uncertainty handling
        self.uh = False
        self.rlambda: float | None = None
        self.epsuh = 1e-7
        self.thetauh = 0.2
        self.csuh = 1.0
        self.alphathuh = 1.0

        # two-point step-size adaptation: 0 off, 1 auto, 2 on
        self.tpa = 1
        self.tpa_csigma = 0.3

        if x0 is None:
            if self.dim > 0:
                raise ValueError("an initial point x0 is required when dim > 0")
            self.dim = 0
            self.lambda_ = -1
            self.max_iter = 0
            return

        if self.dim <= 0:
            raise ValueError("dim must be positive")
        if self.lambda_ < 2:
            self.lambda_ = 4 + math.floor(3.0 * math.log(self.dim))
        if self.seed == 0:
            self.seed = _time_seed()
        self.set_x0(x0)

    def _as_vector(self, value: ArrayLike) -> np.ndarray:
        if isinstance(value, Real):
            return np.full(self.dim, float(value))
        vec = np.array(value, dtype=float).ravel()
        if vec.size != self.dim:
            raise ValueError(
                f"expected {self.dim} values, got {vec.size}"
            )
        return vec

    def set_x0(self, x0min: ArrayLike, x0max: ArrayLike | None = None) -> None:
        """Set the initial point, or the bounds it is drawn uniformly from.

        A scalar applies to every dimension; with a single argument the
        lower and upper bounds coincide.
        """
        low = self._as_vector(x0min)
        high = low.copy() if x0max is None else self._as_vector(x0max)
        self.x0min = low
        self.x0max = high

    def set_fixed_p(self, index: int, value: float) -> None:
        """Freeze a parameter to a value; an existing freeze is kept."""
        self.fixed_p.setdefault(int(index), float(value))

    def unset_fixed_p(self, index: int) -> None:
        """Release a frozen parameter, if it is frozen."""
        self.fixed_p.pop(int(index), None)

    def reset_ftarget(self) -> None:
        """Deactivate the objective target value."""
        self.ftarget = -math.inf

    def set_seed(self, seed: int) -> None:
        """Set the random seed; a current seed of 0 draws one from the clock."""
        if self.seed == 0:
            self.seed = _time_seed()
        else:
            self.seed = int(seed)