import math
from types import SimpleNamespace

import numpy as np
import pytest

from evostrat.stopcriteria import StopCode, StopCriteria, median


def cand(fvalue):
    return SimpleNamespace(fvalue=fvalue)


def make_params(**kw):
    params = SimpleNamespace(
        dim=2,
        lambda_=6,
        max_fevals=-1,
        max_iter=-1,
        ftarget=-math.inf,
        ftolerance=1e-12,
        xtol=1e-12,
        sigma_init=1.0,
        sep=False,
        vd=False,
        quiet=True,
    )
    for key, value in kw.items():
        setattr(params, key, value)
    return params


def make_sols(best=1.0, **kw):
    sols = SimpleNamespace(
        nevals=0,
        niter=1,
        sigma=1.0,
        pc=np.ones(2),
        cov=np.eye(2),
        sepcov=np.zeros(0),
        max_eigenv=1.0,
        min_eigenv=1.0,
        best_candidates_hist=[],
        k_best_candidates_hist=[],
        max_hist=-1,
        bfvalues=[],
        median_fvalues=[],
        leigenvalues=np.ones(2),
        leigenvectors=np.eye(2),
        xmean=np.zeros(2),
    )
    sols.best_candidate = lambda: cand(best)
    for key, value in kw.items():
        setattr(sols, key, value)
    return sols


def test_neutral_state_continues():
    assert StopCriteria().stop(make_params(), make_sols()) is StopCode.CONT


def test_max_fevals():
    crit = StopCriteria()
    assert crit.stop(make_params(max_fevals=10), make_sols(nevals=10)) is StopCode.MAXFEVALS
    assert crit.stop(make_params(max_fevals=10), make_sols(nevals=9)) is StopCode.CONT


def test_max_iter():
    crit = StopCriteria()
    assert crit.stop(make_params(max_iter=5), make_sols(niter=5)) is StopCode.MAXITER


def test_ftarget():
    crit = StopCriteria()
    assert crit.stop(make_params(ftarget=2.0), make_sols(best=1.0)) is StopCode.FTARGET
    assert crit.stop(make_params(ftarget=math.inf), make_sols(best=1.0)) is StopCode.CONT


def test_auto_max_iter_and_vd_factor():
    crit = StopCriteria()
    assert crit.stop(make_params(), make_sols(niter=10**5)) is StopCode.AUTOMAXITER
    vd_sols = make_sols(niter=10**5, sepcov=np.ones(2))
    assert crit.stop(make_params(vd=True), vd_sols) is StopCode.CONT


def test_condition_cov_is_error():
    code = StopCriteria().stop(make_params(), make_sols(max_eigenv=1e15))
    assert code is StopCode.CONDITIONCOV
    assert code < 0


def test_tol_up_sigma():
    code = StopCriteria().stop(make_params(), make_sols(sigma=1e21))
    assert code is StopCode.TOLUPSIGMA


def test_tol_x():
    sols = make_sols(pc=np.zeros(2), cov=np.eye(2) * 1e-30)
    assert StopCriteria().stop(make_params(), sols) is StopCode.TOLX


def test_tol_x_separable_uses_diagonal_vector():
    sols = make_sols(pc=np.zeros(2), cov=np.zeros((0, 0)), sepcov=np.full(2, 1e-30))
    assert StopCriteria().stop(make_params(sep=True), sols) is StopCode.TOLX


def test_no_effect_axis_and_coor():
    sols = make_sols(xmean=np.full(2, 1e20))
    crit = StopCriteria()
    assert crit.stop(make_params(), sols) is StopCode.NOEFFECTAXIS
    crit.set_criteria_active(StopCode.NOEFFECTAXIS, False)
    assert crit.stop(make_params(), sols) is StopCode.NOEFFECTCOOR


def test_tol_hist_fun_then_equal_fun_vals():
    hist = [cand(3.0), cand(3.0)]
    sols = make_sols(max_hist=2, best_candidates_hist=hist, k_best_candidates_hist=list(hist))
    crit = StopCriteria()
    assert crit.stop(make_params(), sols) is StopCode.TOLHISTFUN
    crit.set_criteria_active(StopCode.TOLHISTFUN, False)
    assert crit.stop(make_params(), sols) is StopCode.EQUALFUNVALS


def test_stagnation():
    crit = StopCriteria()
    stuck = make_sols(bfvalues=[5.0] * 20, median_fvalues=[1.0] * 20)
    assert crit.stop(make_params(), stuck) is StopCode.STAGNATION
    improving = make_sols(bfvalues=[0.0] * 20, median_fvalues=[1.0] * 20)
    assert crit.stop(make_params(), improving) is StopCode.CONT


def test_lower_code_checked_first():
    params = make_params(max_fevals=1, ftarget=2.0)
    assert StopCriteria().stop(params, make_sols(nevals=5)) is StopCode.MAXFEVALS


def test_inactive_set_never_stops():
    crit = StopCriteria()
    crit.active = False
    assert crit.stop(make_params(max_fevals=1), make_sols(nevals=5)) is StopCode.CONT


def test_unknown_criterion_raises():
    with pytest.raises(KeyError):
        StopCriteria().set_criteria_active(42, False)


def test_messages():
    assert StopCode.CONT.message() == "OK"
    assert StopCode.TOLHISTFUN.message() == "[Success] The optimization has converged"


def test_median():
    assert median([3.0, 1.0, 2.0]) == 2.0
    assert median([4.0, 1.0, 3.0, 2.0]) == 2.5
    with pytest.raises(ValueError):
        median([])