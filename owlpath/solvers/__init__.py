"""Solvers for a single point of the regularization path.

:func:`owlpath.path.fit_path` looks its solver up by ``PathConfig.solver``
and builds it from the solver tolerances of the configuration.  Only
``"fista"`` ships with the package; a replacement must accept the same
constructor keywords (``max_passes``, ``tol_rel_gap``, ``tol_infeas``,
``diagnostics``, ``verbosity``) and return a :class:`SolverResult`.

>>> from owlpath.solvers import get_solver
>>> solver = get_solver("fista", tol_rel_gap=1e-8)
>>> result = solver.fit(design, Y, family, penalty, b0, B, True, weights)  # doctest: +SKIP
"""

from __future__ import annotations

from owlpath.exceptions import ConfigurationError
from owlpath.solvers.base import BaseSolver, SolverDiagnostics, SolverResult

__all__ = [
    "BaseSolver",
    "SolverDiagnostics",
    "SolverResult",
    "get_solver",
    "register_solver",
    "list_solvers",
]

# ──────────────────────────────────────────────────────────────────────
# Private registry
# ──────────────────────────────────────────────────────────────────────

_REGISTRY: dict[str, type[BaseSolver]] = {}


# ──────────────────────────────────────────────────────────────────────
# Public helpers
# ──────────────────────────────────────────────────────────────────────

def register_solver(name: str, cls: type[BaseSolver]) -> None:
    """Make *cls* selectable as ``PathConfig(solver=name)``.

    An existing entry under *name* is replaced.

    Raises
    ------
    TypeError
        If *cls* does not derive from :class:`BaseSolver`.
    """
    if not (isinstance(cls, type) and issubclass(cls, BaseSolver)):
        raise TypeError(f"{cls!r} is not a BaseSolver subclass.")
    _REGISTRY[name] = cls


def get_solver(name: str, **kwargs) -> BaseSolver:
    """Build the solver registered as *name* with tolerances *kwargs*.

    Raises
    ------
    ConfigurationError
        For a name nobody registered; the message lists the known ones.
    """
    try:
        cls = _REGISTRY[name]
    except KeyError:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise ConfigurationError(
            f"Unknown solver {name!r}. Available solvers: {available}"
        ) from None
    return cls(**kwargs)


def list_solvers() -> list[str]:
    """Sorted names accepted by :func:`get_solver`."""
    return sorted(_REGISTRY)


def _register_builtins() -> None:
    # Deferred import: fista imports solvers.base through this package
    from owlpath.solvers.fista import FISTASolver

    register_solver("fista", FISTASolver)


_register_builtins()
