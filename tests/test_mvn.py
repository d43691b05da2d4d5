import numpy as np
import pytest

from evostrat.mvn import CholeskyError, MultivariateNormal

COVAR = np.array([[2.0, 0.5], [0.5, 1.0]])
MEAN = np.array([1.0, -2.0])


def test_samples_shape():
    mvn = MultivariateNormal(MEAN, COVAR, seed=3)
    assert mvn.samples(7, 1.0).shape == (2, 7)


def test_same_seed_reproduces_samples():
    a = MultivariateNormal(MEAN, COVAR, seed=11).samples(5, 0.5)
    b = MultivariateNormal(MEAN, COVAR, seed=11).samples(5, 0.5)
    assert np.array_equal(a, b)


def test_different_seeds_differ():
    a = MultivariateNormal(MEAN, COVAR, seed=1).samples(5, 1.0)
    b = MultivariateNormal(MEAN, COVAR, seed=2).samples(5, 1.0)
    assert not np.array_equal(a, b)


def test_zero_factor_returns_mean():
    pop = MultivariateNormal(MEAN, COVAR, seed=4).samples(6, 0.0)
    assert np.allclose(pop, MEAN[:, None])


def test_sample_statistics_match_distribution():
    pop = MultivariateNormal(MEAN, COVAR, seed=7).samples(200000, 1.0)
    assert np.allclose(pop.mean(axis=1), MEAN, atol=0.02)
    assert np.allclose(np.cov(pop), COVAR, atol=0.05)


def test_eigen_transform_reconstructs_covariance():
    mvn = MultivariateNormal(MEAN, COVAR)
    assert np.allclose(mvn.transform @ mvn.transform.T, COVAR)


def test_cholesky_transform_reconstructs_covariance():
    mvn = MultivariateNormal(MEAN, COVAR, use_cholesky=True)
    assert np.allclose(mvn.transform @ mvn.transform.T, COVAR)


def test_cholesky_rejects_indefinite_matrix():
    with pytest.raises(CholeskyError):
        MultivariateNormal(MEAN, np.array([[1.0, 2.0], [2.0, 1.0]]), use_cholesky=True)


def test_operator_sqrt_squares_to_covariance():
    mvn = MultivariateNormal(MEAN, COVAR)
    root = mvn.operator_sqrt()
    assert np.allclose(root @ root, COVAR)


def test_operator_inverse_sqrt_whitens():
    mvn = MultivariateNormal(MEAN, COVAR)
    inv = mvn.operator_inverse_sqrt()
    assert np.allclose(inv @ COVAR @ inv, np.eye(2))


def test_operator_sqrt_requires_decomposition():
    mvn = MultivariateNormal()
    with pytest.raises(ValueError):
        mvn.operator_sqrt()


def test_samples_ind_with_factor_scales_per_coordinate():
    mvn = MultivariateNormal(seed=9)
    mvn.mean = MEAN
    mvn.covar = np.array([4.0, 0.25])
    mvn.transform = np.sqrt(mvn.covar)
    pop = mvn.samples_ind(200000, 3.0)
    assert pop.shape == (2, 200000)
    assert np.allclose(pop.mean(axis=1), MEAN, atol=0.05)
    assert np.allclose(pop.std(axis=1), 3.0 * mvn.transform, rtol=0.02)


def test_samples_ind_without_factor_is_standard():
    mvn = MultivariateNormal(seed=5)
    mvn.mean = MEAN
    mvn.covar = np.array([4.0, 0.25, 1.0])
    pop = mvn.samples_ind(100000)
    assert pop.shape == (3, 100000)
    assert np.allclose(pop.mean(axis=1), 0.0, atol=0.02)
    assert np.allclose(pop.std(axis=1), 1.0, atol=0.02)