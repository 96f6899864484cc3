"""Sorted-L1 penalties and the names ``PathConfig.penalty`` accepts.

``"slope"`` penalizes every coefficient of B on its own;
``"group_slope"`` penalizes the Frobenius norms of feature groups.

>>> from owlpath.penalties import get_penalty
>>> penalty = get_penalty("group_slope", n_features=4, groups=[0, 0, 1, 1])
>>> penalty.n_weights
2
"""

from __future__ import annotations

from owlpath.exceptions import ConfigurationError
from owlpath.penalties.base import BasePenalty
from owlpath.penalties.group_slope import GroupSLOPE
from owlpath.penalties.slope import SLOPE, prox_sorted_l1

__all__ = [
    "BasePenalty",
    "SLOPE",
    "GroupSLOPE",
    "prox_sorted_l1",
    "get_penalty",
    "register_penalty",
    "list_penalties",
]

# ──────────────────────────────────────────────────────────────────────
# Private registry
# ──────────────────────────────────────────────────────────────────────

_REGISTRY: dict[str, type[BasePenalty]] = {
    "slope": SLOPE,
    "group_slope": GroupSLOPE,
}


# ──────────────────────────────────────────────────────────────────────
# Public helpers
# ──────────────────────────────────────────────────────────────────────

def register_penalty(name: str, cls: type[BasePenalty]) -> None:
    """Register a penalty class under *name*.

    Raises
    ------
    TypeError
        If *cls* is not a subclass of ``BasePenalty``.
    """
    if not (isinstance(cls, type) and issubclass(cls, BasePenalty)):
        raise TypeError(f"{cls!r} is not a BasePenalty subclass.")
    _REGISTRY[name] = cls


def get_penalty(name: str, n_features: int, n_targets: int = 1, groups=None) -> BasePenalty:
    """The penalty called *name*, sized for *n_features* x *n_targets*.

    Raises
    ------
    ConfigurationError
        If *name* is not in the registry.
    """
    try:
        cls = _REGISTRY[name]
    except KeyError:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise ConfigurationError(
            f"Unknown penalty {name!r}. Available penalties: {available}"
        ) from None
    return cls(n_features, n_targets, groups=groups)


def list_penalties() -> list[str]:
    """Return the names of all registered penalties."""
    return sorted(_REGISTRY)
