"""Standard CMA-ES update of mean, evolution paths, covariance and step size."""

from __future__ import annotations

import math
from typing import Any

import numpy as np


def update_covariance(parameters: Any, sampler: Any, solutions: Any) -> None:
    """Apply one CMA-ES update step to ``solutions`` in place.

    Candidates must be sorted by objective value. ``sampler`` supplies the
    inverse square root of the covariance when its eigen decomposition has
    just been refreshed.
    """
    sep = bool(getattr(parameters, "sep", False))
    mu = int(parameters.mu)
    weights = np.asarray(parameters.weights, dtype=float)
    selected = np.array([c.x for c in solutions.candidates[:mu]], dtype=float)
    old_mean = np.asarray(solutions.xmean, dtype=float)
    sigma = solutions.sigma

    # new mean
    xmean = weights[:mu] @ selected
    diffxmean = (xmean - old_mean) / sigma

    if solutions.updated_eigen and not sep:
        solutions.csqinv = sampler.operator_inverse_sqrt()
    elif sep:
        solutions.sepcsqinv = np.sqrt(1.0 / np.asarray(solutions.sepcov, dtype=float).ravel())

    # conjugate evolution path for sigma
    psigma = (1.0 - parameters.csigma) * solutions.psigma
    if not sep:
        psigma = psigma + parameters.fact_ps * (solutions.csqinv @ diffxmean)
    else:
        psigma = psigma + parameters.fact_ps * solutions.sepcsqinv * diffxmean
    solutions.psigma = psigma
    norm_ps = float(np.linalg.norm(psigma))

    # evolution path for the covariance
    free_dims = parameters.dim + 1 - len(parameters.fixed_p)
    val_for_hsig = (
        math.sqrt(1.0 - (1.0 - parameters.csigma) ** (2.0 * (solutions.niter + 1)))
        * (1.4 + 2.0 / free_dims)
        * parameters.chi
    )
    solutions.hsig = 1 if norm_ps < val_for_hsig else 0
    pc = (1.0 - parameters.cc) * solutions.pc + solutions.hsig * parameters.fact_pc * diffxmean
    solutions.pc = pc

    # rank-one and rank-mu terms
    steps = selected - old_mean
    if not sep:
        spc = np.outer(pc, pc)
        wdiff = (steps.T * weights[:mu]) @ steps
    else:
        spc = pc * pc
        wdiff = weights[:mu] @ (steps * steps)
    wdiff = wdiff / (sigma * sigma)

    decay = (
        1.0
        - parameters.c1
        - parameters.cmu
        + (1 - solutions.hsig) * parameters.c1 * parameters.cc * (2.0 - parameters.cc)
    )
    if not sep:
        solutions.cov = decay * solutions.cov + parameters.c1 * spc + parameters.cmu * wdiff
    else:
        sepcov = np.asarray(solutions.sepcov, dtype=float).ravel()
        solutions.sepcov = decay * sepcov + parameters.c1 * spc + parameters.cmu * wdiff

    # step size
    if parameters.tpa < 2:
        solutions.sigma *= math.exp(
            (parameters.csigma / parameters.dsigma) * (norm_ps / parameters.chi - 1.0)
        )
    elif solutions.niter > 0:
        solutions.sigma *= math.exp(solutions.tpa_s / parameters.dsigma)

    if parameters.tpa:
        solutions.xmean_prev = old_mean
    solutions.xmean = xmean