"""Abstract base class and result dataclasses for penalized GLM solvers.

All solvers implement the ``BaseSolver`` interface, producing a standardised
``SolverResult``.  This follows the **Strategy** pattern: the path
orchestrator delegates every subproblem to an interchangeable solver
selected at runtime.

A solver owns no state across calls.  Warm starts are passed in explicitly
through ``intercept`` and ``coefficients``; every call is independent given
its inputs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from owlpath._design import DesignMatrix
from owlpath._typing import FloatArray
from owlpath.cancellation import CancellationToken
from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily
from owlpath.penalties.base import BasePenalty

# Exit flags
CONVERGED = 0
MAX_PASSES_REACHED = 1
CANCELLED = 2


@dataclass
class SolverDiagnostics:
    """Per-iteration convergence trace of one solver call.

    Attributes
    ----------
    primals, duals : list of float
        Primal and dual objective at every iteration.
    infeasibilities : list of float
        Dual infeasibility of the gradient at every iteration.
    time : list of float
        Seconds elapsed since the start of the call.
    line_searches : list of int
        Number of line-search backtracks in every iteration; the entry for
        the starting point is 0, so every trace has the same length.
    """

    primals: list[float] = field(default_factory=list)
    duals: list[float] = field(default_factory=list)
    infeasibilities: list[float] = field(default_factory=list)
    time: list[float] = field(default_factory=list)
    line_searches: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SolverResult:
    """Standardised output produced by every solver.

    Parameters
    ----------
    coefficients : FloatArray
        Fitted coefficients, shape ``(p, m)``.
    intercept : FloatArray
        Fitted intercept, shape ``(m,)``.
    passes : int
        Number of iterations taken.  Equal to the solver's ``max_passes``
        when it stopped without converging.
    deviance : float
        ``2 * loss`` at the solution.
    primal, dual : float
        Final primal (loss + penalty) and dual objective.
    status : int
        ``0`` converged, ``1`` maximum passes reached, ``2`` cancelled.
    diagnostics : SolverDiagnostics or None
        Iteration trace, only when diagnostics were requested.
    """

    coefficients: FloatArray
    intercept: FloatArray
    passes: int = 0
    deviance: float = 0.0
    primal: float = 0.0
    dual: float = 0.0
    status: int = CONVERGED
    diagnostics: SolverDiagnostics | None = None

    @property
    def converged(self) -> bool:
        return self.status == CONVERGED


class BaseSolver(ABC):
    """Abstract base class that every solver must implement.

    Subclasses **must** override :meth:`_fit_impl`.  They **may** override
    :meth:`validate_inputs` to add solver-specific input checks.
    """

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def fit(
        self,
        design: DesignMatrix,
        Y: FloatArray,
        family: BaseFamily,
        penalty: BasePenalty,
        intercept: FloatArray,
        coefficients: FloatArray,
        fit_intercept: bool,
        weights: FloatArray,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> SolverResult:
        """Fit the penalized model for one set of penalty weights.

        Parameters
        ----------
        design : DesignMatrix or array-like, shape (n, p)
            Feature matrix restricted to the features being fitted.
        Y : ndarray, shape (n, m)
            Encoded response.
        family : BaseFamily
        penalty : BasePenalty
            Penalty restricted to the same features as *design*.
        intercept : ndarray, shape (m,)
            Warm-start intercept.
        coefficients : ndarray, shape (p, m)
            Warm-start coefficients.
        fit_intercept : bool
        weights : ndarray, shape (penalty.n_weights,)
            Sorted penalty weights for this step.
        cancel_token : CancellationToken or None

        Returns
        -------
        SolverResult

        Raises
        ------
        ConfigurationError
            If the inputs have inconsistent dimensions.
        """
        design, Y, intercept, coefficients, weights = self._validate_and_prepare(
            design, Y, penalty, intercept, coefficients, weights
        )
        return self._fit_impl(
            design,
            Y,
            family,
            penalty,
            intercept,
            coefficients,
            fit_intercept,
            weights,
            cancel_token=cancel_token,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def _fit_impl(
        self,
        design: DesignMatrix,
        Y: FloatArray,
        family: BaseFamily,
        penalty: BasePenalty,
        intercept: FloatArray,
        coefficients: FloatArray,
        fit_intercept: bool,
        weights: FloatArray,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> SolverResult:
        """Core solving logic, implemented by every concrete solver."""

    def validate_inputs(  # noqa: B027
        self,
        design: DesignMatrix,
        Y: FloatArray,
        weights: FloatArray,
    ) -> None:
        """Solver-specific validation, called after generic checks.

        The default implementation does nothing.
        """

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_and_prepare(
        self,
        design,
        Y,
        penalty: BasePenalty,
        intercept,
        coefficients,
        weights,
    ) -> tuple:
        """Run generic + solver-specific validation and ensure dtypes."""
        if not isinstance(design, DesignMatrix):
            design = DesignMatrix.from_array(design)
        Y = np.asarray(Y, dtype=np.float64)
        if Y.ndim == 1:
            Y = Y[:, np.newaxis]
        n, p = design.shape
        m = Y.shape[1]

        if Y.shape[0] != n:
            raise ConfigurationError(
                f"X and Y have incompatible shapes: X is ({n}, {p}), "
                f"Y has {Y.shape[0]} rows."
            )

        coefficients = np.array(coefficients, dtype=np.float64)
        if coefficients.ndim == 1 and m == 1:
            coefficients = coefficients[:, np.newaxis]
        if coefficients.shape != (p, m):
            raise ConfigurationError(
                f"coefficients must have shape ({p}, {m}), got {coefficients.shape}."
            )
        intercept = np.array(intercept, dtype=np.float64).ravel()
        if intercept.shape[0] != m:
            raise ConfigurationError(
                f"intercept must have length {m}, got {intercept.shape[0]}."
            )
        if penalty.n_features != p or penalty.n_targets != m:
            raise ConfigurationError(
                f"Penalty is set up for ({penalty.n_features}, {penalty.n_targets}) "
                f"coefficients, the problem has ({p}, {m})."
            )
        weights = np.asarray(weights, dtype=np.float64).ravel()
        penalty.check_weights(weights)

        # Solver-specific checks
        self.validate_inputs(design, Y, weights)

        return design, Y, intercept, coefficients, weights
