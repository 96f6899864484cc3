"""Configuration bundle for path fitting.

:class:`PathConfig` gathers every option of :func:`owlpath.path.fit_path`:
the family and penalty, the weight sequence, standardization, screening,
solver and path tolerances, diagnostics and verbosity.  Validation happens
up front so that a bad configuration fails before any fitting starts.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

from owlpath._typing import ArrayLike
from owlpath.exceptions import ConfigurationError
from owlpath.families import list_families
from owlpath.penalties import list_penalties
from owlpath.regularization import LAMBDA_TYPES
from owlpath.screening import SCREENING_RULES
from owlpath.solvers import list_solvers


@dataclass
class PathConfig:
    """Options for fitting a sorted-L1 regularization path.

    Parameters
    ----------
    family : str, default="gaussian"
        ``"gaussian"``, ``"binomial"``, ``"poisson"`` or ``"multinomial"``.
    penalty : str, default="slope"
        ``"slope"`` or ``"group_slope"``.
    groups : array-like or None
        Group label per feature (``"group_slope"`` only).
    lambda_ : array-like or None
        Explicit weight shape; generated from ``lambda_type`` when ``None``.
    lambda_type : str, default="bh"
        ``"bh"``, ``"gaussian"``, ``"oscar"`` or ``"lasso"``.
    q : float, default=0.1
        Parameter of the generated weight shape.
    sigma : array-like or None
        Penalty strengths; a geometric grid starting at ``sigma_max`` when
        ``None``.
    n_sigma : int, default=100
        Length of the generated ``sigma`` grid.
    sigma_min_ratio : float or None
        Ratio of the smallest to the largest generated ``sigma``.  Defaults
        to ``1e-2`` when ``n < p * m`` and ``1e-4`` otherwise.
    fit_intercept : bool, default=True
    standardize_features : bool, default=True
        Center and scale features.  Sparse matrices are standardized on the
        fly instead of being densified.
    x_center, x_scale : array-like or None
        Pre-computed feature centers / scales.
    screening : str, default="strong"
        ``"none"``, ``"strong"`` or ``"safe"``.
    adaptive : bool, default=True
        ``False`` disables screening, KKT repair and early stopping; every
        step is fitted on all features.
    solver : str, default="fista"
    max_passes : int, default=10000
    tol_rel_gap : float, default=1e-6
    tol_infeas : float, default=1e-3
    tol_dev_ratio : float, default=0.995
        Stop once the deviance ratio exceeds this value.
    tol_dev_change : float, default=1e-5
        Stop once the fractional change in deviance drops below this value.
    max_variables : int or None
        Stop before the number of non-zero features (plus intercept)
        exceeds this value.  ``None`` means no limit.
    kkt_tol : float, default=1e-6
        Tolerance of the KKT check, relative to the largest weight: a
        magnitude violates optimality when it exceeds its rank-matched
        weight by more than ``max(sqrt(eps), kkt_tol * weights[0])``.
    diagnostics : bool, default=False
        Record per-iteration solver traces.
    verbosity : int, default=0
        ``0`` silent, ``1`` path progress, ``2`` adds solver iterations.
    """

    family: str = "gaussian"
    penalty: str = "slope"
    groups: Optional[ArrayLike] = None
    lambda_: Optional[ArrayLike] = None
    lambda_type: str = "bh"
    q: float = 0.1
    sigma: Optional[ArrayLike] = None
    n_sigma: int = 100
    sigma_min_ratio: Optional[float] = None
    fit_intercept: bool = True
    standardize_features: bool = True
    x_center: Optional[ArrayLike] = None
    x_scale: Optional[ArrayLike] = None
    screening: str = "strong"
    adaptive: bool = True
    solver: str = "fista"
    max_passes: int = 10_000
    tol_rel_gap: float = 1e-6
    tol_infeas: float = 1e-3
    tol_dev_ratio: float = 0.995
    tol_dev_change: float = 1e-5
    max_variables: Optional[int] = None
    kkt_tol: float = 1e-6
    diagnostics: bool = False
    verbosity: int = 0

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "PathConfig":
        """Build and validate a configuration from a plain mapping.

        Raises
        ------
        ConfigurationError
            For unknown keys or invalid values.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        config = cls(**params)
        config.validate()
        return config

    def replace(self, **changes: Any) -> "PathConfig":
        """Return a validated copy with *changes* applied."""
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        config = dataclasses.replace(self, **changes)
        config.validate()
        return config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check names and ranges; raise ``ConfigurationError`` on failure."""
        _check_choice("family", self.family, list_families())
        _check_choice("penalty", self.penalty, list_penalties())
        _check_choice("lambda_type", self.lambda_type, LAMBDA_TYPES)
        _check_choice("screening", self.screening, SCREENING_RULES)
        _check_choice("solver", self.solver, list_solvers())

        if self.penalty == "group_slope" and self.groups is None:
            raise ConfigurationError("The group_slope penalty needs `groups`.")
        if self.n_sigma < 1:
            raise ConfigurationError(f"n_sigma must be positive, got {self.n_sigma}.")
        if self.sigma_min_ratio is not None and not (0 < self.sigma_min_ratio < 1):
            raise ConfigurationError(
                f"sigma_min_ratio must be in (0, 1), got {self.sigma_min_ratio}."
            )
        if self.max_passes < 1:
            raise ConfigurationError(
                f"max_passes must be positive, got {self.max_passes}."
            )
        for name in ("tol_rel_gap", "tol_infeas", "tol_dev_change", "kkt_tol"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative.")
        if not (0 <= self.tol_dev_ratio <= 1):
            raise ConfigurationError(
                f"tol_dev_ratio must be in [0, 1], got {self.tol_dev_ratio}."
            )
        if self.max_variables is not None and self.max_variables < 0:
            raise ConfigurationError(
                f"max_variables must be non-negative, got {self.max_variables}."
            )
        if self.verbosity < 0:
            raise ConfigurationError(f"verbosity must be >= 0, got {self.verbosity}.")


def _check_choice(name: str, value: str, choices) -> None:
    if value not in choices:
        raise ConfigurationError(
            f"Unknown {name} {value!r}. Choose from {sorted(choices)}."
        )
