"""owlpath: sorted-L1 (SLOPE / OWL) penalized GLMs along a regularization path.

Fits Gaussian, binomial, Poisson and multinomial models with the SLOPE or
group SLOPE penalty using an accelerated proximal-gradient solver, strong or
safe screening and KKT-checked active-set repair.

Quick start::

    from owlpath import OWLRegressor
    model = OWLRegressor(family="gaussian", q=0.1)
    model.fit(X_train, y_train)
    y_pred = model.predict(X_test)

or, without the sklearn wrapper::

    from owlpath import fit_path
    result = fit_path(X, y, family="binomial", screening="strong")
"""

import logging as _logging

__version__ = "0.1.0"

from owlpath._estimator import OWLRegressor
from owlpath.cancellation import CancellationToken
from owlpath.config import PathConfig
from owlpath.exceptions import (
    ConfigurationError,
    InvariantViolationError,
    NonConvergenceWarning,
    OWLPathError,
)
from owlpath.families import get_family, list_families, register_family
from owlpath.path import PathResult, PathStep, fit_path
from owlpath.penalties import get_penalty, list_penalties, prox_sorted_l1, register_penalty
from owlpath.regularization import WeightSequence, lambda_sequence, sigma_sequence
from owlpath.solvers import get_solver, list_solvers, register_solver
from owlpath.solvers.base import BaseSolver, SolverResult

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

__all__ = [
    "OWLRegressor",
    "fit_path",
    "PathConfig",
    "PathResult",
    "PathStep",
    "CancellationToken",
    "WeightSequence",
    "lambda_sequence",
    "sigma_sequence",
    "prox_sorted_l1",
    "BaseSolver",
    "SolverResult",
    "get_family",
    "list_families",
    "register_family",
    "get_penalty",
    "list_penalties",
    "register_penalty",
    "get_solver",
    "list_solvers",
    "register_solver",
    "OWLPathError",
    "ConfigurationError",
    "InvariantViolationError",
    "NonConvergenceWarning",
]
