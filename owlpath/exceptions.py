"""Exceptions and warnings raised by owlpath."""


class OWLPathError(Exception):
    """Base exception class for owlpath errors."""


class ConfigurationError(OWLPathError, ValueError):
    """Invalid configuration: unknown family / penalty / rule name,
    malformed weight sequence or inconsistent dimensions."""


class InvariantViolationError(OWLPathError, RuntimeError):
    """An internal invariant of the path algorithm was broken."""


class NonConvergenceWarning(UserWarning):
    """The solver exhausted ``max_passes`` before reaching its tolerances."""
