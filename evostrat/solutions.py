"""Evolving state of a CMA-ES run: candidates, distribution and history."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from evostrat.stopcriteria import StopCode, median

_BFVALUES_WINDOW = 20


@dataclass
class Candidate:
    """A point of the search space together with its objective value."""

    fvalue: float = math.nan
    x: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.x = np.array(self.x, dtype=float).ravel()


def _flag(parameters: Any, name: str) -> bool:
    return bool(getattr(parameters, name, False))


def _pheno(parameters: Any, x: np.ndarray) -> np.ndarray:
    gp = getattr(parameters, "gp", None)
    if gp is None:
        return np.asarray(x, dtype=float)
    return np.asarray(gp.pheno(x), dtype=float)


class CMASolutions:
    """Set of evolving solutions and distribution state of one CMA-ES run.

    Built from a parameter object, the mean starts at the initial point
    (drawn uniformly when lower and upper initial bounds differ), the
    covariance is the identity and the step size is ``sigma_init``.
    """

    def __init__(self, parameters: Any = None) -> None:
        self.cov = np.zeros((0, 0))
        self.csqinv = np.zeros((0, 0))
        self.sepcov = np.zeros(0)
        self.sepcsqinv = np.zeros(0)
        self.xmean = np.zeros(0)
        self.psigma = np.zeros(0)
        self.pc = np.zeros(0)
        self.hsig = 1
        self.sigma = 1.0
        self.candidates: list[Candidate] = []
        self.best_candidates_hist: list[Candidate] = []
        self.max_hist = -1

        self.max_eigenv = 0.0
        self.min_eigenv = 0.0
        self.leigenvalues = np.zeros(0)
        self.leigenvectors = np.zeros((0, 0))
        self.niter = 0
        self.nevals = 0
        self.kcand = 1
        self.k_best_candidates_hist: list[Candidate] = []
        self.bfvalues: list[float] = []
        self.median_fvalues: list[float] = []

        self.eigeniter = 0
        self.updated_eigen = True

        self.run_status = 0
        self.elapsed_time = 0
        self.elapsed_last_iter = 0

        self.pls: dict[int, Any] = {}
        self.edm = 0.0

        self.best_seen_candidate = Candidate()
        self.best_seen_iter = 0
        self.worst_seen_candidate = Candidate()
        self.initial_candidate = Candidate()

        self.v = np.zeros(0)

        self.candidates_uh: list[Any] = []
        self.lambda_reev = 0
        self.suh = 0.0

        self.tpa_s = 0.0
        self.tpa_p1 = 0
        self.tpa_p2 = 1
        self.tpa_x1 = np.zeros(0)
        self.tpa_x2 = np.zeros(0)
        self.xmean_prev = np.zeros(0)

        if parameters is not None:
            self._init_from(parameters)

    def _init_from(self, parameters: Any) -> None:
        dim = int(parameters.dim)
        low = np.asarray(parameters.x0min, dtype=float)
        high = np.asarray(parameters.x0max, dtype=float)
        if np.array_equal(low, high):
            self.xmean = low.copy()
        else:
            rng = np.random.default_rng(int(parameters.seed))
            self.xmean = rng.uniform(low, high)
        self.sigma = float(getattr(parameters, "sigma_init", 1.0))
        if _flag(parameters, "sep") or _flag(parameters, "vd"):
            self.sepcov = np.ones(dim)
        else:
            self.cov = np.eye(dim)
        self.psigma = np.zeros(dim)
        self.pc = np.zeros(dim)
        self.xmean_prev = self.xmean.copy()
        self.max_hist = int(parameters.max_hist)
        lambda_ = int(parameters.lambda_)
        self.kcand = min(lambda_, 1 + math.floor(0.1 + lambda_ / 4.0))

    def sort_candidates(self) -> None:
        """Sort the current candidates by increasing objective value."""
        self.candidates.sort(key=lambda c: c.fvalue)

    def _median_window(self) -> int:
        lambda_ = max(len(self.candidates), 1)
        return math.ceil(0.2 * self.niter + 120 + 30.0 * self.dim() / lambda_)

    def update_best_candidates(self) -> None:
        """Record the current best candidates and termination statistics.

        Candidates must be sorted.
        """
        if not self.candidates:
            raise ValueError("no candidates to record")
        best = self.candidates[0]
        self.best_candidates_hist.append(best)
        kbest = self.candidates[min(self.kcand, len(self.candidates)) - 1]
        self.k_best_candidates_hist.append(kbest)
        if self.max_hist > 0:
            while len(self.best_candidates_hist) > self.max_hist:
                del self.best_candidates_hist[0]
            while len(self.k_best_candidates_hist) > self.max_hist:
                del self.k_best_candidates_hist[0]

        self.bfvalues.append(best.fvalue)
        if len(self.bfvalues) > _BFVALUES_WINDOW:
            del self.bfvalues[0]

        self.median_fvalues.append(median(c.fvalue for c in self.candidates))
        if len(self.median_fvalues) > self._median_window():
            del self.median_fvalues[0]

        seen = self.best_seen_candidate
        if math.isnan(seen.fvalue) or best.fvalue < seen.fvalue:
            self.best_seen_candidate = best
            self.best_seen_iter = self.niter
        worst = self.candidates[-1]
        wseen = self.worst_seen_candidate
        if math.isnan(wseen.fvalue) or worst.fvalue > wseen.fvalue:
            self.worst_seen_candidate = worst

    def update_eigenv(self, eigenvalues: np.ndarray, eigenvectors: np.ndarray) -> None:
        """Store the latest eigen decomposition and its extreme eigenvalues."""
        values = np.asarray(eigenvalues, dtype=float).ravel()
        self.leigenvalues = values
        self.leigenvectors = np.asarray(eigenvectors, dtype=float)
        if values.size:
            self.max_eigenv = float(values.max())
            self.min_eigenv = float(values.min())

    def best_candidate(self) -> Candidate:
        """Current best candidate; before any iteration, the initial point."""
        if not self.best_candidates_hist:
            if self.initial_candidate.x.size:
                return self.initial_candidate
            return Candidate(math.nan, self.xmean)
        return self.best_candidates_hist[-1]

    def stds(self, parameters: Any) -> np.ndarray:
        """Unscaled standard deviations, measured in phenotype space."""
        phen_xmean = _pheno(parameters, self.xmean)
        if _flag(parameters, "sep"):
            stds = np.sqrt(np.asarray(self.sepcov, dtype=float).ravel())
        elif _flag(parameters, "vd"):
            stds = np.sqrt(1.0 + self.v * self.v) * np.asarray(self.sepcov, dtype=float).ravel()
        else:
            stds = np.sqrt(np.diag(self.cov))
        phen_xmean_std = _pheno(parameters, self.xmean + stds)
        return np.abs(phen_xmean_std - phen_xmean)

    def errors(self, parameters: Any) -> np.ndarray:
        """Standard deviations rescaled by the step size."""
        return math.sqrt(self.sigma) * self.stds(parameters)

    def status_msg(self) -> str:
        """Message for the current run status; empty when unknown."""
        try:
            return StopCode(self.run_status).message()
        except ValueError:
            return ""

    def dim(self) -> int:
        """Problem dimension."""
        return int(self.xmean.size)

    def __repr__(self) -> str:
        best = self.best_candidate()
        return (
            f"CMASolutions(niter={self.niter}, nevals={self.nevals}, "
            f"fvalue={best.fvalue}, sigma={self.sigma})"
        )