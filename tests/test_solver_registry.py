"""Tests for the solver registry."""

import numpy as np
import pytest

from owlpath.exceptions import ConfigurationError
from owlpath.solvers import get_solver, list_solvers, register_solver
from owlpath.solvers.base import BaseSolver, SolverResult
from owlpath.solvers.fista import FISTASolver


class _DummySolver(BaseSolver):
    def _fit_impl(self, design, Y, family, penalty, intercept, coefficients,
                  fit_intercept, weights, cancel_token=None, **kwargs):
        return SolverResult(
            coefficients=np.zeros_like(coefficients),
            intercept=intercept.copy(),
        )


class TestRegistry:

    def test_list_solvers_not_empty(self):
        assert len(list_solvers()) > 0

    def test_builtin_fista_registered(self):
        assert "fista" in list_solvers()

    def test_get_solver_returns_instance(self):
        assert isinstance(get_solver("fista"), FISTASolver)

    def test_get_solver_forwards_kwargs(self):
        solver = get_solver("fista", max_passes=12, tol_rel_gap=1e-9)
        assert solver.max_passes == 12
        assert solver.tol_rel_gap == 1e-9

    def test_get_unknown_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown solver"):
            get_solver("nonexistent_solver_xyz")

    def test_register_custom_solver(self):
        register_solver("_test_dummy", _DummySolver)
        assert "_test_dummy" in list_solvers()
        assert isinstance(get_solver("_test_dummy"), _DummySolver)

    def test_register_non_solver_raises(self):
        with pytest.raises(TypeError, match="not a BaseSolver"):
            register_solver("bad", str)

    def test_register_replaces_existing_entry(self):
        register_solver("_test_replaced", _DummySolver)
        register_solver("_test_replaced", FISTASolver)
        assert isinstance(get_solver("_test_replaced"), FISTASolver)

    def test_unknown_lists_available_solvers(self):
        with pytest.raises(ConfigurationError, match="Available solvers: .*fista"):
            get_solver("admm")
