"""Path orchestrator: fits a sorted-L1 regularization path.

For every step ``k`` of the weight sequence the orchestrator

1. asks the penalty's screening rule for a candidate active set, using the
   gradient of the previous committed fit (warm start);
2. fits the model:

   * empty active set: closed-form null (intercept-only) model;
   * all features: a single solver call on the full problem;
   * otherwise the **KKT repair loop**: fit the column-restricted
     subproblem, compute the full gradient, flag excluded features that
     violate the optimality conditions, add them and refit until no
     violations remain;

3. commits the step and checks the stopping rules (small fractional change
   in deviance, large deviance ratio, too many variables).

Screening only changes how much work the solver does; the KKT repair loop
guarantees the same solution as fitting every feature.

The non-adaptive mode (``adaptive=False``) skips screening, repair and
early stopping and fits every step on all features.

Cancellation is cooperative: the token is polled at the start of every step,
at the start of every repair iteration and inside the solver.  A step is
only committed once it is complete, so a cancelled fit returns exactly the
steps finished before the cancellation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

import numpy as np

from owlpath._design import DesignMatrix
from owlpath._typing import FloatArray, IntArray, MatrixLike
from owlpath.cancellation import CancellationToken, is_cancelled
from owlpath.config import PathConfig
from owlpath.exceptions import ConfigurationError, InvariantViolationError
from owlpath.families import get_family
from owlpath.families.base import BaseFamily
from owlpath.penalties import get_penalty
from owlpath.penalties.base import BasePenalty
from owlpath.regularization import (
    WeightSequence,
    lambda_sequence,
    sigma_max,
    sigma_sequence,
)
from owlpath.solvers import get_solver
from owlpath.solvers.base import CANCELLED, BaseSolver, SolverDiagnostics

logger = logging.getLogger(__name__)

# Stop reasons
COMPLETED = "completed"
DEVIANCE_CHANGE = "deviance_change"
DEVIANCE_RATIO = "deviance_ratio"
MAX_VARIABLES = "max_variables"
CANCELLED_BY_USER = "cancelled"


# ──────────────────────────────────────────────────────────────────────
# Results
# ──────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PathStep:
    """One committed step of the path."""

    step: int
    sigma: float
    coefficients: FloatArray
    intercept: FloatArray
    active_set: IntArray
    passes: int
    violations: int
    deviance: float
    deviance_ratio: float
    diagnostics: Optional[SolverDiagnostics] = None


@dataclass(frozen=True)
class PathResult:
    """Output of :func:`fit_path`.

    Every per-step array has the realized path length along its first axis.

    Attributes
    ----------
    coefficients : ndarray, shape (k, p, m)
        Coefficients on the standardized feature scale.
    intercepts : ndarray, shape (k, m)
    active_sets : list of ndarray
        Feature indices handed to the solver at each step.
    passes : ndarray of int, shape (k,)
        Solver iterations of the last solver call of each step.
    violations : ndarray of int, shape (k,)
        KKT violations repaired at each step.
    deviance, deviance_ratio : ndarray, shape (k,)
    null_deviance : float
    sigma : ndarray, shape (k,)
        Penalty strength of each step.
    lambda_ : ndarray
        Weight shape; the weights of step ``i`` are ``lambda_ * sigma[i]``.
    sigma_max : float
        Smallest penalty strength whose solution is the null model.
    path_length : int
    stop_reason : str
        ``"completed"``, ``"deviance_change"``, ``"deviance_ratio"``,
        ``"max_variables"`` or ``"cancelled"``.
    cancelled : bool
    diagnostics : list of SolverDiagnostics or None
        Only when diagnostics were requested.
    classes : ndarray or None
        Class labels for classification families.
    x_center, x_scale : ndarray or None
        Standardization used for the fit.
    """

    coefficients: FloatArray
    intercepts: FloatArray
    active_sets: list
    passes: np.ndarray
    violations: np.ndarray
    deviance: FloatArray
    deviance_ratio: FloatArray
    null_deviance: float
    sigma: FloatArray
    lambda_: FloatArray
    sigma_max: float
    path_length: int
    stop_reason: str = COMPLETED
    cancelled: bool = False
    diagnostics: Optional[list] = None
    classes: Optional[np.ndarray] = None
    x_center: Optional[FloatArray] = None
    x_scale: Optional[FloatArray] = None

    @classmethod
    def from_steps(cls, steps: list[PathStep], p: int, m: int, **kwargs: Any) -> "PathResult":
        k = len(steps)
        diagnostics = kwargs.pop("diagnostics", False)
        return cls(
            coefficients=np.array([s.coefficients for s in steps]).reshape(k, p, m),
            intercepts=np.array([s.intercept for s in steps]).reshape(k, m),
            active_sets=[s.active_set for s in steps],
            passes=np.array([s.passes for s in steps], dtype=np.intp),
            violations=np.array([s.violations for s in steps], dtype=np.intp),
            deviance=np.array([s.deviance for s in steps], dtype=np.float64),
            deviance_ratio=np.array([s.deviance_ratio for s in steps], dtype=np.float64),
            sigma=np.array([s.sigma for s in steps], dtype=np.float64),
            path_length=k,
            diagnostics=[s.diagnostics for s in steps] if diagnostics else None,
            **kwargs,
        )

    def original_scale(self) -> tuple[FloatArray, FloatArray]:
        """Coefficients and intercepts on the original feature scale."""
        if self.x_scale is None:
            return self.coefficients.copy(), self.intercepts.copy()
        coefs = self.coefficients / self.x_scale[np.newaxis, :, np.newaxis]
        intercepts = self.intercepts - np.einsum("j,kjm->km", self.x_center, coefs)
        return coefs, intercepts


@dataclass
class _RepairOutcome:
    coefficients: FloatArray
    intercept: FloatArray
    active_set: IntArray
    passes: int
    violations: int
    diagnostics: Optional[SolverDiagnostics] = None
    gradient: Optional[FloatArray] = field(default=None, repr=False)
    pseudo_gradient: Optional[FloatArray] = field(default=None, repr=False)


# ──────────────────────────────────────────────────────────────────────
# Public entry point
# ──────────────────────────────────────────────────────────────────────

def fit_path(
    X: MatrixLike,
    y,
    config: PathConfig | None = None,
    *,
    cancel_token: CancellationToken | None = None,
    callback: Callable[[PathStep], None] | None = None,
    **params: Any,
) -> PathResult:
    """Fit a sorted-L1 penalized GLM along a sequence of penalty strengths.

    Parameters
    ----------
    X : ndarray or scipy.sparse matrix, shape (n, p)
        Design matrix.
    y : array-like, shape (n,) or (n, m)
        Response; encoded by the family (class labels for the binomial and
        multinomial families).
    config : PathConfig or None
        Options; defaults to ``PathConfig()``.
    cancel_token : CancellationToken or None
        Cooperative cancellation.
    callback : callable or None
        Called with each committed :class:`PathStep`.  It may cancel
        *cancel_token* to stop the path after that step.
    **params
        Overrides for individual :class:`PathConfig` fields.

    Returns
    -------
    PathResult

    Raises
    ------
    ConfigurationError
        For invalid options or inconsistent dimensions.
    """
    config = config or PathConfig()
    if params:
        config = config.replace(**params)
    config.validate()
    with _console_output(config.verbosity):
        return _fit_configured(X, y, config, cancel_token, callback)


def _fit_configured(
    X: MatrixLike,
    y,
    config: PathConfig,
    cancel_token: CancellationToken | None,
    callback: Callable[[PathStep], None] | None,
) -> PathResult:
    """Body of :func:`fit_path` for a validated configuration."""
    if config.verbosity >= 1:
        logger.info("setting up family")
    family = get_family(config.family)
    Y, classes = family.validate_response(y)

    design = DesignMatrix.from_array(
        X, config.standardize_features, config.x_center, config.x_scale
    )
    n, p = design.shape
    m = Y.shape[1]
    if Y.shape[0] != n:
        raise ConfigurationError(
            f"X and y have incompatible shapes: X is ({n}, {p}), y has {Y.shape[0]} rows."
        )

    if config.verbosity >= 1:
        logger.info("setting up penalty")
    penalty = get_penalty(config.penalty, p, m, groups=config.groups)

    if config.lambda_ is None:
        lam = lambda_sequence(penalty.n_weights, config.lambda_type, config.q, n)
    else:
        lam = np.asarray(config.lambda_, dtype=np.float64).ravel()
        if lam.shape[0] != penalty.n_weights:
            raise ConfigurationError(
                f"lambda_ must have length {penalty.n_weights}, got {lam.shape[0]}."
            )

    s_max = sigma_max(design, Y, family, penalty, lam, config.fit_intercept) \
        if penalty.n_weights else 0.0
    auto_sigma = config.sigma is None
    if auto_sigma:
        ratio = config.sigma_min_ratio
        if ratio is None:
            ratio = 1e-2 if n < p * m else 1e-4
        sigma = sigma_sequence(s_max, config.n_sigma, ratio)
    else:
        sigma = config.sigma
    sequence = WeightSequence(lam, sigma)

    if config.verbosity >= 1:
        logger.info("setting up solver")
    solver = get_solver(
        config.solver,
        max_passes=config.max_passes,
        tol_rel_gap=config.tol_rel_gap,
        tol_infeas=config.tol_infeas,
        diagnostics=config.diagnostics,
        verbosity=config.verbosity,
    )

    steps, stop_reason = _run_path(
        design, Y, family, penalty, solver, sequence, s_max, auto_sigma,
        config, cancel_token, callback,
    )

    return PathResult.from_steps(
        steps,
        p,
        m,
        null_deviance=_null_deviance(design, Y, family, config.fit_intercept),
        lambda_=sequence.lambda_,
        sigma_max=float(s_max),
        stop_reason=stop_reason,
        cancelled=stop_reason == CANCELLED_BY_USER,
        diagnostics=config.diagnostics,
        classes=classes,
        x_center=design.center,
        x_scale=design.scale,
    )


# ──────────────────────────────────────────────────────────────────────
# Path loop
# ──────────────────────────────────────────────────────────────────────

def _run_path(
    design: DesignMatrix,
    Y: FloatArray,
    family: BaseFamily,
    penalty: BasePenalty,
    solver: BaseSolver,
    sequence: WeightSequence,
    s_max: float,
    auto_sigma: bool,
    config: PathConfig,
    cancel_token: CancellationToken | None,
    callback: Callable[[PathStep], None] | None,
) -> tuple[list[PathStep], str]:
    n, p = design.shape
    m = Y.shape[1]
    verbose = config.verbosity >= 1
    screen = config.adaptive and config.screening != "none"

    null_intercept = family.null_intercept(Y) if config.fit_intercept else np.zeros(m)
    eta_null = design.linear_predictor(np.zeros((p, m)), null_intercept)
    null_deviance = family.deviance(Y, eta_null)
    if config.screening == "safe":
        feature_norms = design.column_norms()
    else:
        feature_norms = np.zeros(p)

    # Warm start and screening state carried from the previous committed step
    beta = np.zeros((p, m))
    intercept = null_intercept.copy()
    pseudo_gradient_prev = family.pseudo_gradient(Y, eta_null)
    gradient_prev = design.rdot(pseudo_gradient_prev)
    weights_prev = sequence.lambda_ * max(s_max, float(sequence.sigma[0]))

    steps: list[PathStep] = []
    stop_reason = COMPLETED
    all_features = np.arange(p, dtype=np.intp)

    for k in range(len(sequence)):
        if is_cancelled(cancel_token):
            stop_reason = CANCELLED_BY_USER
            break

        weights = sequence.weights(k)
        if verbose:
            logger.info("penalty: %d (sigma = %.6g)", k + 1, sequence.sigma[k])

        if not screen:
            active_set = all_features
        elif auto_sigma and k == 0:
            active_set = all_features[:0]
        else:
            active_set = penalty.complete(
                penalty.screen(
                    gradient_prev,
                    pseudo_gradient_prev,
                    feature_norms,
                    weights,
                    weights_prev,
                    rule=config.screening,
                )
            )

        gradient = pseudo_gradient = None
        if active_set.shape[0] == 0:
            # Null (intercept only) model
            outcome = _RepairOutcome(
                coefficients=np.zeros((p, m)),
                intercept=null_intercept.copy(),
                active_set=active_set,
                passes=0,
                violations=0,
                diagnostics=SolverDiagnostics() if config.diagnostics else None,
            )
        elif active_set.shape[0] == p:
            res = solver.fit(
                design, Y, family, penalty, intercept, beta,
                config.fit_intercept, weights, cancel_token=cancel_token,
            )
            if res.status == CANCELLED:
                stop_reason = CANCELLED_BY_USER
                break
            outcome = _RepairOutcome(
                coefficients=res.coefficients,
                intercept=res.intercept,
                active_set=active_set,
                passes=res.passes,
                violations=0,
                diagnostics=res.diagnostics,
            )
        else:
            outcome = _repair_loop(
                design, Y, family, penalty, solver, weights, beta, intercept,
                active_set, config, cancel_token,
            )
            if outcome is None:
                stop_reason = CANCELLED_BY_USER
                break
            gradient = outcome.gradient
            pseudo_gradient = outcome.pseudo_gradient

        if is_cancelled(cancel_token):
            stop_reason = CANCELLED_BY_USER
            break

        # Commit
        eta = design.linear_predictor(outcome.coefficients, outcome.intercept)
        deviance = family.deviance(Y, eta)
        deviance_ratio = _deviance_ratio(deviance, null_deviance)
        step = PathStep(
            step=k,
            sigma=float(sequence.sigma[k]),
            coefficients=outcome.coefficients,
            intercept=outcome.intercept,
            active_set=outcome.active_set,
            passes=outcome.passes,
            violations=outcome.violations,
            deviance=deviance,
            deviance_ratio=deviance_ratio,
            diagnostics=outcome.diagnostics,
        )

        if verbose:
            logger.info(
                "deviance: %.6g\tdeviance ratio: %.6g", deviance, deviance_ratio
            )

        stop = None
        if config.adaptive:
            if steps:
                deviance_change = _deviance_change(steps[-1].deviance, deviance)
                if verbose:
                    logger.info("deviance change: %.6g", deviance_change)
                if deviance_change < config.tol_dev_change:
                    stop = DEVIANCE_CHANGE
            if stop is None and deviance_ratio > config.tol_dev_ratio:
                stop = DEVIANCE_RATIO

            n_variables = int(config.fit_intercept) + int(
                np.count_nonzero(np.any(outcome.coefficients != 0, axis=1))
            )
            if verbose:
                logger.info("number of variables: %d", n_variables)
            if (
                stop is None
                and config.max_variables is not None
                and n_variables > config.max_variables
            ):
                stop_reason = MAX_VARIABLES
                break

        steps.append(step)
        if callback is not None:
            callback(step)
        if stop is not None:
            stop_reason = stop
            break

        beta = outcome.coefficients
        intercept = outcome.intercept
        weights_prev = weights
        if screen:
            if gradient is None:
                pseudo_gradient = family.pseudo_gradient(Y, eta)
                gradient = design.rdot(pseudo_gradient)
            gradient_prev = gradient
            pseudo_gradient_prev = pseudo_gradient

    if verbose:
        logger.info("path finished after %d steps (%s)", len(steps), stop_reason)
    return steps, stop_reason


def _repair_loop(
    design: DesignMatrix,
    Y: FloatArray,
    family: BaseFamily,
    penalty: BasePenalty,
    solver: BaseSolver,
    weights: FloatArray,
    beta: FloatArray,
    intercept: FloatArray,
    active_set: IntArray,
    config: PathConfig,
    cancel_token: CancellationToken | None,
) -> _RepairOutcome | None:
    """Fit on *active_set*, then grow it until the KKT conditions hold.

    Every iteration either finds no violations (and returns) or strictly
    grows the active set, so at most ``p + 1`` iterations are needed.

    Returns ``None`` when cancelled.
    """
    p = design.n_features
    violations = 0

    for _ in range(p + 1):
        if is_cancelled(cancel_token):
            return None

        if config.verbosity >= 1:
            logger.info("\tactive set: %s", active_set.tolist())

        sub_penalty = penalty.restrict(active_set)
        res = solver.fit(
            design.subset(active_set),
            Y,
            family,
            sub_penalty,
            intercept,
            beta[active_set],
            config.fit_intercept,
            weights[: sub_penalty.n_weights],
            cancel_token=cancel_token,
        )
        if res.status == CANCELLED:
            return None

        beta_new = np.zeros_like(beta)
        beta_new[active_set] = res.coefficients
        eta = design.linear_predictor(beta_new, res.intercept)
        pseudo_gradient = family.pseudo_gradient(Y, eta)
        gradient = design.rdot(pseudo_gradient)

        flagged = penalty.kkt_check(gradient, beta_new, weights, config.kkt_tol)
        failures = np.setdiff1d(flagged, active_set)
        violations += failures.shape[0]

        if config.verbosity >= 1:
            logger.info("\tkkt-failures at: %s", failures.tolist())

        if failures.shape[0] == 0:
            return _RepairOutcome(
                coefficients=beta_new,
                intercept=res.intercept,
                active_set=active_set,
                passes=res.passes,
                violations=violations,
                diagnostics=res.diagnostics,
                gradient=gradient,
                pseudo_gradient=pseudo_gradient,
            )

        active_set = penalty.complete(np.union1d(active_set, failures))
        beta = beta_new
        intercept = res.intercept

    raise InvariantViolationError(
        f"KKT repair did not terminate within {p + 1} iterations."
    )


# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────

def _null_deviance(
    design: DesignMatrix, Y: FloatArray, family: BaseFamily, fit_intercept: bool
) -> float:
    m = Y.shape[1]
    intercept = family.null_intercept(Y) if fit_intercept else np.zeros(m)
    eta = design.linear_predictor(np.zeros((design.n_features, m)), intercept)
    return family.deviance(Y, eta)


def _deviance_ratio(deviance: float, null_deviance: float) -> float:
    """``1 - deviance / null_deviance``, or 0 for a degenerate null deviance."""
    if not np.isfinite(null_deviance) or null_deviance <= 0:
        return 0.0
    return 1.0 - deviance / null_deviance


def _deviance_change(previous: float, current: float) -> float:
    """Fractional change in deviance; a zero previous deviance counts as 0."""
    if not np.isfinite(previous) or previous == 0:
        return 0.0
    return abs((previous - current) / previous)


@contextmanager
def _console_output(verbosity: int) -> Iterator[None]:
    """Route progress text to stderr for the duration of one fit.

    Nothing is attached when logging is already configured; otherwise the
    handler and the logger level are restored on exit.
    """
    pkg_logger = logging.getLogger("owlpath")
    configured = any(
        not isinstance(h, logging.NullHandler) for h in pkg_logger.handlers
    )
    if verbosity < 1 or configured or logging.getLogger().handlers:
        yield
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    level = pkg_logger.level
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.INFO)
    try:
        yield
    finally:
        pkg_logger.removeHandler(handler)
        pkg_logger.setLevel(level)
