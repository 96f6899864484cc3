"""GLM families and the names ``PathConfig.family`` accepts.

>>> from owlpath.families import get_family
>>> family = get_family("binomial")
>>> family.null_intercept(Y)  # doctest: +SKIP
"""

from __future__ import annotations

from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily

__all__ = [
    "BaseFamily",
    "get_family",
    "register_family",
    "list_families",
]

# ──────────────────────────────────────────────────────────────────────
# Private registry
# ──────────────────────────────────────────────────────────────────────

_REGISTRY: dict[str, type[BaseFamily]] = {}


# ──────────────────────────────────────────────────────────────────────
# Public helpers
# ──────────────────────────────────────────────────────────────────────

def register_family(name: str, cls: type[BaseFamily]) -> None:
    """Register a family class under *name*.

    Raises
    ------
    TypeError
        If *cls* is not a subclass of ``BaseFamily``.
    """
    if not (isinstance(cls, type) and issubclass(cls, BaseFamily)):
        raise TypeError(f"{cls!r} is not a BaseFamily subclass.")
    _REGISTRY[name] = cls


def get_family(name: str) -> BaseFamily:
    """A fresh instance of the family called *name*.

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
            f"Unknown family {name!r}. Available families: {available}"
        ) from None
    return cls()


def list_families() -> list[str]:
    """Return the names of all registered families."""
    return sorted(_REGISTRY)


def _register_builtins() -> None:
    from owlpath.families.binomial import Binomial
    from owlpath.families.gaussian import Gaussian
    from owlpath.families.multinomial import Multinomial
    from owlpath.families.poisson import Poisson

    register_family("gaussian", Gaussian)
    register_family("binomial", Binomial)
    register_family("poisson", Poisson)
    register_family("multinomial", Multinomial)


_register_builtins()
