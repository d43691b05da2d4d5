[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evostrat"
version = "0.10.0"
description = "Covariance Matrix Adaptation Evolution Strategy (CMA-ES) for black-box numerical optimization"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["cma-es", "optimization", "evolution strategy", "stochastic search", "black-box"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["evostrat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
