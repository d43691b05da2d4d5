# evostrat

A Covariance Matrix Adaptation Evolution Strategy (CMA-ES) for minimizing
black-box functions of real vectors. It depends only on NumPy.

## Installation

```
pip install .
```

To install the test dependencies as well, add the `test` extra:

```
pip install ".[test]"
```

## Usage

`CMAStrategy` reads the CMA learning constants from its parameter object.
These are `mu`, `weights`, `csigma`, `dsigma`, `cc`, `c1`, `cmu`, `chi`,
`fact_ps`, `fact_pc` and `sigma_init`. `Parameters` holds only the generic
settings, so you set the constants on it yourself. The example below uses
the usual default formulas:

```python
import math

import numpy as np

from evostrat.parameters import Parameters
from evostrat.strategy import CMAStrategy


def sphere(x):
    return float(np.sum(np.asarray(x) ** 2))


def with_cma_constants(params, sigma):
    n, lam = params.dim, params.lambda_
    mu = lam // 2
    w = math.log(mu + 0.5) - np.log(np.arange(1, mu + 1))
    w /= w.sum()
    muw = 1.0 / float(np.sum(w ** 2))
    params.mu, params.weights, params.muw = mu, w, muw
    params.sigma_init = sigma
    params.csigma = (muw + 2.0) / (n + muw + 5.0)
    params.dsigma = 1.0 + 2.0 * max(0.0, math.sqrt((muw - 1.0) / (n + 1.0)) - 1.0) + params.csigma
    params.cc = (4.0 + muw / n) / (n + 4.0 + 2.0 * muw / n)
    params.c1 = 2.0 / ((n + 1.3) ** 2 + muw)
    params.cmu = min(1.0 - params.c1, 2.0 * (muw - 2.0 + 1.0 / muw) / ((n + 2.0) ** 2 + muw))
    params.chi = math.sqrt(n) * (1.0 - 1.0 / (4.0 * n) + 1.0 / (21.0 * n * n))
    params.fact_ps = math.sqrt(params.csigma * (2.0 - params.csigma) * muw)
    params.fact_pc = math.sqrt(params.cc * (2.0 - params.cc) * muw)
    return params


params = with_cma_constants(Parameters(dim=10, x0=np.ones(10), seed=42), sigma=0.5)
with CMAStrategy(sphere, params) as strategy:
    solutions = strategy.optimize()

best = solutions.best_candidate()
print(best.fvalue, best.x)
print(solutions.status_msg())
```

`optimize()` repeats `stop`, `ask`, `evaluate` and `tell`. It stops when a
termination criterion fires, and it never runs more than 100 iterations in
one call. It returns the final `CMASolutions`. If the run ends on an error
status, it raises `evostrat.strategy.OptimizationError`, and the final
state is in the exception's `solutions` attribute.

If `params.fplot` names a file, each step writes one line of run data to
it. With `params.full_fplot` set, each line holds more data. Call `close()`
or use the strategy as a context manager so that the file gets closed.

## Modules

- `evostrat.parameters`: `Parameters` holds the generic settings:
  - the problem dimension, the initial point or the bounds it is drawn
    from, the population size `lambda_` and the seed;
  - the budgets `max_iter` and `max_fevals`, the target `ftarget` and the
    tolerances `ftolerance` and `xtol`;
  - fixed parameters, set with `set_fixed_p` and `unset_fixed_p`.
- `evostrat.noboundstrategy`: `NoBoundStrategy` is the identity bound
  strategy for a search space with no bounds.
- `evostrat.mvn`: `MultivariateNormal` samples a multivariate normal
  distribution through the eigendecomposition of its covariance.
  - With `use_cholesky` it uses a Cholesky factor instead, and raises
    `CholeskyError` when the factorization fails.
  - It also gives the square root and the inverse square root of the
    covariance.
- `evostrat.stopcriteria`: `StopCriteria` runs the termination tests in
  order: f-target, function-value history, TolX, NoEffectAxis,
  NoEffectCoor, equal function values, stagnation, automatic and explicit
  iteration limits, evaluation budget, TolUpSigma and the condition
  number.
  - Each test is reported as a `StopCode`, whose `message()` describes it.
  - `set_criteria_active` switches a single test on or off.
- `evostrat.solutions`: `CMASolutions` and `Candidate` hold the state of
  the search: mean, step size, covariance, evolution paths, the history of
  best candidates and the latest eigendecomposition.
- `evostrat.covarianceupdate`: `update_covariance` applies the standard
  CMA-ES update of the mean, the evolution paths, the covariance and the
  step size.
- `evostrat.strategy`: `CMAStrategy` runs the loop. `default_progress`
  logs each step, and `plot_line` and `full_plot_line` write the plot
  lines.

## What the package does not do

- It does not compute the CMA learning constants from the dimension and
  population size. You supply them, as in the example above.
- It has no bounded or rescaled search spaces. `NoBoundStrategy` is the
  only bound strategy.
- It has no restart strategies that grow the population.
- It has no command-line program.
- `CMAStrategy` rejects the following settings with `ValueError`:
  - uncertainty handling;
  - gradient injection;
  - the expected distance to the minimum;
  - forced two-point step-size adaptation (`tpa = 2`);
  - vd-CMA.

## Tests

```
pytest
```