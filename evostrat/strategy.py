"""CMA-ES search loop: sampling, selection, update and termination."""

from __future__ import annotations

import copy
import logging
import math
import time
from typing import Any, Callable, Optional, TextIO

import numpy as np

from evostrat.covarianceupdate import update_covariance
from evostrat.mvn import MultivariateNormal
from evostrat.solutions import Candidate, CMASolutions
from evostrat.stopcriteria import StopCode, StopCriteria

log = logging.getLogger(__name__)

# The search loop never runs more than this many iterations per call.
_ITERATION_CAP = 100

ProgressFunc = Callable[[Any, CMASolutions], int]
PlotFunc = Callable[[Any, CMASolutions, TextIO], int]


class OptimizationError(RuntimeError):
    """A run ended on an error status; the final state is in ``solutions``."""

    def __init__(self, solutions: CMASolutions) -> None:
        self.solutions = solutions
        self.status = solutions.run_status
        super().__init__(
            f"optimization terminated with status {self.status}: {solutions.status_msg()}"
        )


def _flag(parameters: Any, name: str) -> bool:
    return bool(getattr(parameters, name, False))


def _pheno(parameters: Any, x: np.ndarray) -> np.ndarray:
    gp = getattr(parameters, "gp", None)
    if gp is None:
        return np.array(x, dtype=float)
    return np.asarray(gp.pheno(x), dtype=float)


def _fmt(value: float) -> str:
    return format(float(value), ".15g")


def _row(values: Any) -> str:
    return " ".join(_fmt(v) for v in np.asarray(values, dtype=float).ravel())


def _condition(solutions: CMASolutions) -> float:
    if solutions.min_eigenv == 0:
        return 1.0
    return math.sqrt(solutions.max_eigenv / solutions.min_eigenv)


def _eigenvalues_or_zeros(parameters: Any, solutions: CMASolutions) -> np.ndarray:
    values = np.asarray(solutions.leigenvalues, dtype=float).ravel()
    return values if values.size else np.zeros(int(parameters.dim))


def default_progress(parameters: Any, solutions: CMASolutions) -> int:
    """Log the state of the run unless quiet; never asks to stop."""
    if not parameters.quiet:
        log.info(
            "iter=%d / evals=%d / f-value=%s / sigma=%s / last_iter=%d",
            solutions.niter,
            solutions.nevals,
            _fmt(solutions.best_candidate().fvalue),
            _fmt(solutions.sigma),
            solutions.elapsed_last_iter,
        )
    return 0


def _plot_tail(parameters: Any, solutions: CMASolutions, stream: TextIO) -> None:
    stream.write(_row(_eigenvalues_or_zeros(parameters, solutions)) + " ")
    stream.write(_row(solutions.stds(parameters)) + " ")
    stream.write(_row(_pheno(parameters, solutions.xmean)))
    stream.write(f" {solutions.elapsed_last_iter}\n")


def plot_line(parameters: Any, solutions: CMASolutions, stream: TextIO) -> int:
    """Write one line of run data to ``stream``."""
    stream.write(
        f"{_fmt(abs(solutions.best_candidate().fvalue))} {solutions.nevals} "
        f"{_fmt(solutions.sigma)} {_fmt(_condition(solutions))} "
    )
    _plot_tail(parameters, solutions, stream)
    return 0


def full_plot_line(parameters: Any, solutions: CMASolutions, stream: TextIO) -> int:
    """Write one line of full run data, preceded by a header on the first iteration."""
    if solutions.niter == 0:
        stream.write(f"{parameters.dim} {parameters.seed} / {time.ctime()}\n\n")
    candidates = solutions.candidates
    middle = candidates[len(candidates) // 2].fvalue if candidates else math.nan
    best_seen = solutions.best_seen_candidate
    stream.write(
        f"{_fmt(abs(solutions.best_candidate().fvalue))} {solutions.nevals} "
        f"{_fmt(solutions.sigma)} {_fmt(_condition(solutions))} "
    )
    stream.write(
        f"{_fmt(best_seen.fvalue)} {_fmt(middle)} "
        f"{_fmt(solutions.worst_seen_candidate.fvalue)} "
        f"{_fmt(solutions.min_eigenv)} {_fmt(solutions.max_eigenv)} "
    )
    xbest = best_seen.x if best_seen.x.size else np.zeros(int(parameters.dim))
    stream.write(_row(xbest) + " ")
    _plot_tail(parameters, solutions, stream)
    return 0


def _check_supported(parameters: Any, update: Callable[..., None]) -> None:
    unsupported = {
        "uh": "uncertainty handling",
        "with_gradient": "gradient injection",
        "with_edm": "expected distance to minimum",
    }
    for name, what in unsupported.items():
        if _flag(parameters, name):
            raise ValueError(f"{what} is not supported by this strategy")
    if getattr(parameters, "tpa", 0) == 2:
        raise ValueError("two-point step-size adaptation is not supported by this strategy")
    if _flag(parameters, "vd") and update is update_covariance:
        raise ValueError("vd-CMA requires a dedicated covariance update")


class CMAStrategy:
    """CMA-ES with the standard covariance update.

    ``parameters`` carries the CMA constants (``mu``, ``weights``,
    ``csigma``, ``dsigma``, ``cc``, ``c1``, ``cmu``, ``chi``, ``fact_ps``,
    ``fact_pc``, ``sigma_init``) on top of the generic settings. Passing
    ``solutions`` resumes the search from a copy of that state.
    """

    update = staticmethod(update_covariance)

    def __init__(
        self,
        func: Callable[[np.ndarray], float],
        parameters: Any,
        solutions: Optional[CMASolutions] = None,
    ) -> None:
        _check_supported(parameters, self.update)
        self.func = func
        self.parameters = parameters
        self.solutions = (
            CMASolutions(parameters) if solutions is None else copy.deepcopy(solutions)
        )
        self.initial_elitist = False
        self.progress_func: ProgressFunc = default_progress
        self.plot_func: PlotFunc = full_plot_line if parameters.full_fplot else plot_line
        self.sampler = MultivariateNormal(seed=int(parameters.seed))
        self.stopcriteria = StopCriteria()
        if not parameters.quiet:
            log.info(
                "CMA-ES / dim=%d / lambda=%d / sigma0=%s / mu=%s / mueff=%s / c1=%s / cmu=%s",
                parameters.dim,
                parameters.lambda_,
                self.solutions.sigma,
                getattr(parameters, "mu", None),
                getattr(parameters, "muw", None),
                getattr(parameters, "c1", None),
                getattr(parameters, "cmu", None),
            )
        self._fplotstream: Optional[TextIO] = (
            open(parameters.fplot, "w", encoding="utf-8") if parameters.fplot else None
        )
        if solutions is None:
            for code, active in getattr(parameters, "stoppingcrit", {}).items():
                self.stopcriteria.set_criteria_active(code, active)

    def __enter__(self) -> "CMAStrategy":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def niter(self) -> int:
        return self.solutions.niter

    def inc_iter(self) -> None:
        self.solutions.niter += 1

    def update_fevals(self, n: int) -> None:
        self.solutions.nevals += n

    def ask(self) -> np.ndarray:
        """Sample a new population, one candidate per column."""
        p = self.parameters
        s = self.solutions
        sep = _flag(p, "sep")
        vd = _flag(p, "vd")
        lambda_ = int(p.lambda_)

        if not sep and not vd:
            s.updated_eigen = False
            if (
                s.niter == 0
                or not _flag(p, "lazy_update")
                or s.niter - s.eigeniter > getattr(p, "lazy_value", 0)
            ):
                s.eigeniter = s.niter
                self.sampler.mean = s.xmean
                self.sampler.set_covariance(s.cov)
                s.updated_eigen = True
            pop = self.sampler.samples(lambda_, s.sigma)
        elif sep:
            sepcov = np.asarray(s.sepcov, dtype=float).ravel()
            self.sampler.mean = s.xmean
            self.sampler.covar = sepcov
            self.sampler.transform = np.sqrt(sepcov)
            pop = self.sampler.samples_ind(lambda_, s.sigma)
        else:
            sepcov = np.asarray(s.sepcov, dtype=float).ravel()
            self.sampler.mean = s.xmean
            self.sampler.covar = sepcov
            pop = self.sampler.samples_ind(lambda_)
            normv = float(s.v @ s.v)
            fact = math.sqrt(1.0 + normv) - 1.0
            vbar = s.v / math.sqrt(normv)
            pop = pop + fact * np.outer(vbar, vbar @ pop)
            pop = s.xmean[:, None] + s.sigma * sepcov[:, None] * pop

        for index, value in p.fixed_p.items():
            pop[index, :] = value
        return pop

    def evaluate(self, candidates: np.ndarray) -> None:
        """Evaluate every column and store the results as current candidates."""
        phenotypes = _pheno(self.parameters, candidates)
        self.solutions.candidates = [
            Candidate(float(self.func(phenotypes[:, i])), candidates[:, i])
            for i in range(candidates.shape[1])
        ]
        self.update_fevals(candidates.shape[1])

    def tell(self) -> None:
        """Rank the candidates and update the search distribution."""
        p = self.parameters
        s = self.solutions
        s.sort_candidates()
        s.update_best_candidates()
        self.update(p, self.sampler, s)
        if not _flag(p, "sep") and not _flag(p, "vd"):
            s.update_eigenv(self.sampler.eigenvalues, self.sampler.eigenvectors)
        else:
            s.update_eigenv(s.sepcov, np.ones((int(p.dim), 1)))

    def stop(self) -> bool:
        """Whether the run must end, recording the termination status."""
        s = self.solutions
        if s.run_status < 0:
            return True
        if self.progress_func(self.parameters, s):
            return True
        if self._fplotstream is not None:
            self.plot()
        if s.niter == 0:
            return False
        s.run_status = int(self.stopcriteria.stop(self.parameters, s))
        return s.run_status != StopCode.CONT

    def optimize(self) -> CMASolutions:
        """Run ask / evaluate / tell until a termination criterion triggers.

        Returns the final solutions; raises OptimizationError when the run
        ends on an error status.
        """
        p = self.parameters
        s = self.solutions
        if (
            self.initial_elitist
            or _flag(p, "initial_elitist")
            or _flag(p, "elitist")
            or _flag(p, "initial_fvalue")
        ):
            fvalue = float(self.func(_pheno(p, s.xmean)))
            s.initial_candidate = Candidate(fvalue, s.xmean)
            s.best_seen_candidate = s.initial_candidate
            self.update_fevals(1)

        tstart = time.monotonic()
        n = 0
        while not self.stop() and n < _ITERATION_CAP:
            n += 1
            candidates = self.ask()
            self.evaluate(candidates)
            self.tell()
            self.inc_iter()
            tstop = time.monotonic()
            s.elapsed_last_iter = int((tstop - tstart) * 1000)
            tstart = time.monotonic()

        if (
            _flag(p, "initial_elitist_on_restart")
            and s.best_seen_candidate.fvalue < s.best_candidate().fvalue
            and s.niter - s.best_seen_iter >= 3
        ):
            if not p.quiet:
                log.info(
                    "Starting elitist on restart: bfvalue=%s / biter=%d",
                    s.best_seen_candidate.fvalue,
                    s.best_seen_iter,
                )
            self.initial_elitist = True
            nevals = s.nevals
            p.set_x0(s.best_seen_candidate.x)
            self.solutions = CMASolutions(p)
            self.solutions.nevals = nevals
            self.solutions.niter = 0
            return self.optimize()

        if self.solutions.run_status < 0:
            raise OptimizationError(self.solutions)
        return self.solutions

    def plot(self) -> None:
        """Write the current state to the plot file."""
        if self._fplotstream is None:
            raise ValueError("no plot file is set")
        self.plot_func(self.parameters, self.solutions, self._fplotstream)

    def close(self) -> None:
        """Close the plot file, if any."""
        if self._fplotstream is not None:
            self._fplotstream.close()
            self._fplotstream = None