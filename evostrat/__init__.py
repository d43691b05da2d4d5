"""CMA-ES for numerical optimization: parameters, sampling, covariance update, stopping criteria and the search loop."""

__version__ = "0.10.0"