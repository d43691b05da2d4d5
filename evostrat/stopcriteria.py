"""Termination criteria of CMA-ES runs."""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Iterable

import numpy as np

log = logging.getLogger(__name__)


class StopCode(IntEnum):
    """Status of a run; negative values are errors."""

    CONT = 0
    AUTOMAXITER = 7
    TOLHISTFUN = 1
    EQUALFUNVALS = 5
    TOLX = 2
    TOLUPSIGMA = -13
    STAGNATION = 6
    CONDITIONCOV = -15
    NOEFFECTAXIS = 3
    NOEFFECTCOOR = 4
    MAXFEVALS = 8
    MAXITER = 9
    FTARGET = 10

    def message(self) -> str:
        """Human-readable description of the status."""
        return _MESSAGES[self]


_MESSAGES = {
    StopCode.CONT: "OK",
    StopCode.AUTOMAXITER: "The automatically set maximal number of iterations per run has been reached",
    StopCode.TOLHISTFUN: "[Success] The optimization has converged",
    StopCode.EQUALFUNVALS: "[Partial Success] The objective function values are the same over too many iterations, check the formulation of your objective function",
    StopCode.TOLX: "[Partial Success] All components of covariance matrix are very small (e.g. < 1e-12)",
    StopCode.TOLUPSIGMA: "[Error] Mismatch between step size increase and decrease of all eigenvalues in covariance matrix. Try to restart the optimization.",
    StopCode.STAGNATION: "[Partial Success] Median of newest values is not smaller than the median of older values",
    StopCode.CONDITIONCOV: "[Error] The covariance matrix's condition number exceeds 1e14. Check out the formulation of your problem",
    StopCode.NOEFFECTAXIS: "[Partial Success] Mean remains constant along search axes",
    StopCode.NOEFFECTCOOR: "[Partial Success] Mean remains constant in coordinates",
    StopCode.MAXFEVALS: "The maximum number of function evaluations allowed for optimization has been reached",
    StopCode.MAXITER: "The maximum number of iterations specified for optimization has been reached",
    StopCode.FTARGET: "[Success] The objective function target value has been reached",
}

CriterionFunc = Callable[[Any, Any], StopCode]


def median(values: Iterable[float]) -> float:
    """Median; the mean of the two middle values for an even count."""
    return float(statistics.median(values))


def _linear(parameters: Any) -> bool:
    """Whether the covariance is stored as a diagonal vector (sep or vd)."""
    return bool(getattr(parameters, "sep", False) or getattr(parameters, "vd", False))


def _report(parameters: Any, text: str) -> None:
    if not parameters.quiet:
        log.info("stopping criteria %s", text)


def _max_fevals(parameters: Any, solutions: Any) -> StopCode:
    if parameters.max_fevals == -1:
        return StopCode.CONT
    if solutions.nevals >= parameters.max_fevals:
        _report(parameters, f"maxFEvals => nevals={solutions.nevals} / max_fevals={parameters.max_fevals}")
        return StopCode.MAXFEVALS
    return StopCode.CONT


def _max_iter(parameters: Any, solutions: Any) -> StopCode:
    if parameters.max_iter == -1:
        return StopCode.CONT
    if solutions.niter >= parameters.max_iter:
        _report(parameters, f"maxIter={solutions.niter}")
        return StopCode.MAXITER
    return StopCode.CONT


def _auto_max_iter(parameters: Any, solutions: Any) -> StopCode:
    thresh = 100.0 + 50.0 * (parameters.dim + 3) ** 2 / math.sqrt(parameters.lambda_)
    if getattr(parameters, "vd", False) and parameters.dim < 10:
        thresh *= 1000.0
    if solutions.niter >= thresh:
        _report(parameters, f"autoMaxIter => thresh={thresh}")
        return StopCode.AUTOMAXITER
    return StopCode.CONT


def _ftarget(parameters: Any, solutions: Any) -> StopCode:
    if parameters.ftarget != math.inf:
        fvalue = solutions.best_candidate().fvalue
        if fvalue <= parameters.ftarget:
            _report(parameters, f"fTarget => fvalue={fvalue} / ftarget={parameters.ftarget}")
            return StopCode.FTARGET
    return StopCode.CONT


def _tol_hist_fun(parameters: Any, solutions: Any) -> StopCode:
    threshold = max(parameters.ftolerance, 1e-12)
    history = solutions.best_candidates_hist
    histthresh = min(solutions.max_hist, 10 + (30 * parameters.dim) // parameters.lambda_)
    histlength = min(histthresh, len(history))
    if histlength < histthresh or histlength <= 0:
        return StopCode.CONT
    fvalues = [c.fvalue for c in history[-histlength:]]
    spread = abs(max(fvalues) - min(fvalues))
    if spread < threshold:
        _report(parameters, f"tolHistFun => frange={spread}")
        return StopCode.TOLHISTFUN
    return StopCode.CONT


def _equal_fun_vals(parameters: Any, solutions: Any) -> StopCode:
    best = solutions.best_candidates_hist
    kbest = solutions.k_best_candidates_hist
    histsize = len(best)
    histlength = min(parameters.dim, histsize)
    if histlength < solutions.max_hist:
        return StopCode.CONT
    start = histsize - histlength
    equal = sum(
        1
        for b, k in zip(best[start:histsize], kbest[start:histsize])
        if b.fvalue == k.fvalue
    )
    if equal > histlength / 3.0:
        _report(parameters, "equalFunVals")
        return StopCode.EQUALFUNVALS
    return StopCode.CONT


def _covariance_diagonal(parameters: Any, solutions: Any) -> np.ndarray:
    if _linear(parameters):
        return np.asarray(solutions.sepcov, dtype=float).ravel()
    return np.diag(np.asarray(solutions.cov, dtype=float))


def _tol_x(parameters: Any, solutions: Any) -> StopCode:
    tolx = max(parameters.xtol, 1e-12)
    tfactor = tolx * (solutions.sigma / parameters.sigma_init)
    if np.any(np.asarray(solutions.pc, dtype=float) >= tfactor):
        return StopCode.CONT
    with np.errstate(invalid="ignore"):
        if np.any(np.sqrt(_covariance_diagonal(parameters, solutions)) >= tfactor):
            return StopCode.CONT
    _report(parameters, "tolX")
    return StopCode.TOLX


def _tol_up_sigma(parameters: Any, solutions: Any) -> StopCode:
    factor = solutions.sigma / parameters.sigma_init
    rhs = 1e20 * math.sqrt(solutions.max_eigenv)
    if factor > rhs:
        _report(parameters, f"tolUpSigma => factor={factor} / max eigenv={solutions.max_eigenv} / rhs={rhs}")
        return StopCode.TOLUPSIGMA
    return StopCode.CONT


def _stagnation(parameters: Any, solutions: Any) -> StopCode:
    if len(solutions.bfvalues) < 20 or len(solutions.median_fvalues) < 20:
        return StopCode.CONT
    newest = median(solutions.bfvalues)
    oldest = median(list(solutions.median_fvalues)[:20])
    if newest >= oldest:
        _report(parameters, f"stagnation => oldmedianfvalue={oldest} / newmedianfvalue={newest}")
        return StopCode.STAGNATION
    return StopCode.CONT


def _condition_cov(parameters: Any, solutions: Any) -> StopCode:
    with np.errstate(divide="ignore", invalid="ignore"):
        kappa = float(np.float64(solutions.max_eigenv) / np.float64(solutions.min_eigenv))
    if kappa > 1e14:
        _report(
            parameters,
            f"conditionCov => min eigenv={solutions.min_eigenv} / max eigenv={solutions.max_eigenv} / kappa={kappa}",
        )
        return StopCode.CONDITIONCOV
    return StopCode.CONT


def _no_effect_axis(parameters: Any, solutions: Any) -> StopCode:
    dim = parameters.dim
    xmean = np.asarray(solutions.xmean, dtype=float)[:dim]
    with np.errstate(invalid="ignore"):
        ei = 0.1 * solutions.sigma * np.sqrt(np.asarray(solutions.leigenvalues, dtype=float)[:dim])
    if _linear(parameters):
        moved = np.any(xmean != xmean + ei)
    else:
        vectors = np.asarray(solutions.leigenvectors, dtype=float)[:dim, :dim]
        moved = np.any(xmean[:, None] != xmean[:, None] + ei[:, None] * vectors)
    if moved:
        return StopCode.CONT
    _report(parameters, "NoEffectAxis")
    return StopCode.NOEFFECTAXIS


def _no_effect_coor(parameters: Any, solutions: Any) -> StopCode:
    dim = parameters.dim
    xmean = np.asarray(solutions.xmean, dtype=float)[:dim]
    with np.errstate(invalid="ignore"):
        step = 0.2 * solutions.sigma * np.sqrt(_covariance_diagonal(parameters, solutions)[:dim])
    if np.any(xmean != xmean + step):
        return StopCode.CONT
    _report(parameters, "NoEffectCoor")
    return StopCode.NOEFFECTCOOR


@dataclass
class _Criterion:
    func: CriterionFunc
    active: bool = True


_CRITERIA: dict[StopCode, CriterionFunc] = {
    StopCode.MAXFEVALS: _max_fevals,
    StopCode.MAXITER: _max_iter,
    StopCode.AUTOMAXITER: _auto_max_iter,
    StopCode.FTARGET: _ftarget,
    StopCode.TOLHISTFUN: _tol_hist_fun,
    StopCode.EQUALFUNVALS: _equal_fun_vals,
    StopCode.TOLX: _tol_x,
    StopCode.TOLUPSIGMA: _tol_up_sigma,
    StopCode.STAGNATION: _stagnation,
    StopCode.CONDITIONCOV: _condition_cov,
    StopCode.NOEFFECTAXIS: _no_effect_axis,
    StopCode.NOEFFECTCOOR: _no_effect_coor,
}


class StopCriteria:
    """Set of termination criteria, checked in order of their codes."""

    def __init__(self) -> None:
        self.active = True
        self._criteria = {
            code: _Criterion(func) for code, func in sorted(_CRITERIA.items())
        }

    def stop(self, parameters: Any, solutions: Any) -> StopCode:
        """Return the first triggered criterion's code, or CONT."""
        if not self.active:
            return StopCode.CONT
        for criterion in self._criteria.values():
            if criterion.active:
                code = criterion.func(parameters, solutions)
                if code != StopCode.CONT:
                    return code
        return StopCode.CONT

    def set_criteria_active(self, code: int, active: bool) -> None:
        """Enable or disable one criterion; unknown codes raise KeyError."""
        try:
            key = StopCode(code)
            criterion = self._criteria[key]
        except (ValueError, KeyError):
            raise KeyError(f"unknown stopping criterion {code}") from None
        criterion.active = bool(active)