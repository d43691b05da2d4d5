"""Sampling from a multivariate normal distribution."""

from __future__ import annotations

from typing import Optional

import numpy as np

DEFAULT_SEED = 5489


class CholeskyError(RuntimeError):
    """The covariance matrix has no Cholesky decomposition."""


class MultivariateNormal:
    """Multivariate normal sampler built on a decomposition of the covariance.

    By default the covariance is decomposed into eigenvalues and
    eigenvectors, which also gives access to its square root and inverse
    square root. With ``use_cholesky`` a Cholesky factor is used instead,
    and the covariance must then be positive definite.

    ``covar`` and ``transform`` may also be assigned directly, for
    diagonal covariances stored as vectors.
    """

    def __init__(
        self,
        mean: Optional[np.ndarray] = None,
        covar: Optional[np.ndarray] = None,
        use_cholesky: bool = False,
        seed: int = DEFAULT_SEED,
    ) -> None:
        self.use_cholesky = use_cholesky
        self._rng = np.random.Generator(np.random.MT19937(int(seed)))
        self._mean = np.zeros(0)
        self.covar = np.zeros((0, 0))
        self.transform = np.zeros((0, 0))
        self.eigenvalues: Optional[np.ndarray] = None
        self.eigenvectors: Optional[np.ndarray] = None
        if mean is not None:
            self.mean = mean
        if covar is not None:
            self.set_covariance(covar)

    @property
    def mean(self) -> np.ndarray:
        return self._mean

    @mean.setter
    def mean(self, value: np.ndarray) -> None:
        self._mean = np.array(value, dtype=float).ravel()

    def set_covariance(self, covar: np.ndarray) -> None:
        """Store a full covariance matrix and compute its sampling transform."""
        covar = np.array(covar, dtype=float)
        self.covar = covar
        if self.use_cholesky:
            try:
                self.transform = np.linalg.cholesky(covar)
            except np.linalg.LinAlgError as exc:
                raise CholeskyError(
                    "Failed computing the Cholesky decomposition. Use solver instead"
                ) from exc
        else:
            values, vectors = np.linalg.eigh(covar)
            self.eigenvalues = values
            self.eigenvectors = vectors
            self.transform = vectors * np.sqrt(np.maximum(values, 0.0))

    def _standard(self, n: int) -> np.ndarray:
        rows = self.covar.shape[0] if self.covar.ndim else 0
        return self._rng.standard_normal((rows, int(n)))

    def samples(self, n: int, factor: float) -> np.ndarray:
        """Draw ``n`` samples as the columns of a matrix."""
        z = self._standard(n)
        return (self.transform @ z) * factor + self._mean[:, None]

    def samples_ind(self, n: int, factor: Optional[float] = None) -> np.ndarray:
        """Draw ``n`` samples with independent coordinates, one per column.

        Without ``factor`` the draws are standard normal. With it they are
        scaled by ``factor`` and by the per-coordinate ``transform`` vector,
        then shifted by the mean.
        """
        z = self._standard(n)
        if factor is None:
            return z
        scale = np.asarray(self.transform, dtype=float).reshape(-1, 1)
        return z * factor * scale + self._mean[:, None]

    def _require_eigen(self) -> tuple[np.ndarray, np.ndarray]:
        if self.eigenvalues is None or self.eigenvectors is None:
            raise ValueError("no eigen decomposition of the covariance is available")
        return self.eigenvalues, self.eigenvectors

    def operator_sqrt(self) -> np.ndarray:
        """Symmetric square root of the covariance matrix."""
        values, vectors = self._require_eigen()
        with np.errstate(invalid="ignore"):
            return (vectors * np.sqrt(values)) @ vectors.T

    def operator_inverse_sqrt(self) -> np.ndarray:
        """Inverse of the symmetric square root of the covariance matrix."""
        values, vectors = self._require_eigen()
        with np.errstate(invalid="ignore", divide="ignore"):
            return (vectors / np.sqrt(values)) @ vectors.T