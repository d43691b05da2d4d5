import math
from types import SimpleNamespace

import numpy as np

from evostrat.covarianceupdate import update_covariance
from evostrat.mvn import MultivariateNormal
from evostrat.solutions import Candidate, CMASolutions


def _params(dim=2, sep=False, tpa=0):
    return SimpleNamespace(
        dim=dim,
        mu=2,
        weights=np.array([0.7, 0.3]),
        csigma=0.3,
        fact_ps=1.0,
        cc=0.4,
        fact_pc=1.0,
        chi=math.sqrt(dim),
        c1=0.1,
        cmu=0.2,
        dsigma=1.0,
        tpa=tpa,
        sep=sep,
        fixed_p={},
    )


def _solutions(points, dim=2, sep=False):
    sol = CMASolutions()
    sol.xmean = np.zeros(dim)
    sol.psigma = np.zeros(dim)
    sol.pc = np.zeros(dim)
    sol.sigma = 1.0
    if sep:
        sol.sepcov = np.ones(dim)
    else:
        sol.cov = np.eye(dim)
    sol.candidates = [Candidate(float(i), p) for i, p in enumerate(points)]
    return sol


def _sampler(dim=2):
    return MultivariateNormal(np.zeros(dim), np.eye(dim), seed=1)


def test_mean_is_weighted_recombination():
    params = _params()
    points = [[1.0, 2.0], [3.0, -1.0], [100.0, 100.0]]
    sol = _solutions(points)
    update_covariance(params, _sampler(), sol)
    expected = np.average(np.array(points[:2]), axis=0, weights=params.weights)
    np.testing.assert_allclose(sol.xmean, expected)


def test_no_move_shrinks_covariance_and_sigma():
    params = _params()
    sol = _solutions([[0.0, 0.0], [0.0, 0.0]])
    update_covariance(params, _sampler(), sol)
    assert sol.hsig == 1
    np.testing.assert_allclose(sol.pc, np.zeros(2))
    np.testing.assert_allclose(sol.cov, 0.7 * np.eye(2))
    assert sol.sigma < 1.0


def test_covariance_stays_symmetric_positive_definite():
    params = _params()
    sol = _solutions([[0.5, 0.2], [-0.3, 0.9]])
    sampler = _sampler()
    for _ in range(5):
        update_covariance(params, sampler, sol)
        sampler.set_covariance(sol.cov)
    np.testing.assert_allclose(sol.cov, sol.cov.T)
    assert np.all(np.linalg.eigvalsh(sol.cov) > 0.0)


def test_move_along_first_axis_stretches_that_axis():
    params = _params()
    sol = _solutions([[1.0, 0.0], [1.0, 0.0]])
    update_covariance(params, _sampler(), sol)
    assert sol.pc[0] > 0.0
    assert sol.pc[1] == 0.0
    assert sol.cov[0, 0] > sol.cov[1, 1]
    assert sol.psigma[0] > 0.0


def test_tpa_keeps_previous_mean_and_sigma_on_first_iteration():
    params = _params(tpa=2)
    sol = _solutions([[1.0, 1.0], [1.0, 1.0]])
    update_covariance(params, _sampler(), sol)
    assert sol.sigma == 1.0
    np.testing.assert_array_equal(sol.xmean_prev, np.zeros(2))
    np.testing.assert_allclose(sol.xmean, [1.0, 1.0])


def test_tpa_uses_tpa_step_after_first_iteration():
    params = _params(tpa=2)
    sol = _solutions([[0.0, 0.0], [0.0, 0.0]])
    sol.niter = 3
    sol.tpa_s = 0.5
    update_covariance(params, _sampler(), sol)
    assert math.isclose(sol.sigma, math.exp(sol.tpa_s / params.dsigma))


def test_separable_update_keeps_vector_covariance():
    params = _params(dim=3, sep=True)
    sol = _solutions([[1.0, 0.0, -1.0], [0.5, 0.5, 0.0]], dim=3, sep=True)
    update_covariance(params, _sampler(3), sol)
    assert sol.sepcov.shape == (3,)
    assert np.all(sol.sepcov > 0.0)
    np.testing.assert_allclose(sol.sepcsqinv, np.ones(3))
    assert sol.sepcov[0] > sol.sepcov[1]