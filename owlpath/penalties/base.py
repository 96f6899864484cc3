"""Abstract base class for sorted-L1-type penalties.

Both penalties in this package are sorted-L1 norms of a vector of
*magnitudes*: the absolute coefficients for SLOPE and the group norms for
group SLOPE.  The base class implements everything that only depends on
those magnitudes (penalty value, dual norm, infeasibility, KKT check and
screening) and leaves the proximal operator and the mapping between
magnitudes and features to the subclasses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from owlpath import screening
from owlpath._typing import BoolArray, FloatArray, IntArray
from owlpath.exceptions import ConfigurationError


class BasePenalty(ABC):
    """Abstract base class that every penalty must implement.

    Parameters
    ----------
    n_features : int
        Number of features (rows of the coefficient matrix).
    n_targets : int
        Number of response columns (columns of the coefficient matrix).
    """

    name: str = "base"

    def __init__(self, n_features: int, n_targets: int = 1) -> None:
        if n_features < 0 or n_targets < 1:
            raise ConfigurationError(
                f"Invalid penalty dimensions ({n_features}, {n_targets})."
            )
        self.n_features = int(n_features)
        self.n_targets = int(n_targets)

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def n_weights(self) -> int:
        """Length of the weight vector this penalty expects."""

    @abstractmethod
    def magnitudes(self, M: FloatArray) -> FloatArray:
        """Non-negative magnitudes the sorted-L1 norm is applied to."""

    @abstractmethod
    def screening_norms(self, feature_norms: FloatArray) -> FloatArray:
        """Column norms matched to each magnitude, used by the safe rule."""

    @abstractmethod
    def features_of(self, mask: BoolArray) -> IntArray:
        """Sorted feature indices covered by the selected magnitudes."""

    @abstractmethod
    def prox(self, B: FloatArray, weights: FloatArray) -> FloatArray:
        """Proximal operator of ``value(·, weights)`` evaluated at *B*."""

    @abstractmethod
    def restrict(self, features: IntArray) -> "BasePenalty":
        """The same penalty on the column subset *features*."""

    def complete(self, features: IntArray) -> IntArray:
        """Smallest valid active set containing *features*."""
        return np.unique(np.asarray(features, dtype=np.intp))

    # ------------------------------------------------------------------
    # Shared concrete methods
    # ------------------------------------------------------------------

    def check_weights(self, weights: FloatArray) -> None:
        """Raise ``ConfigurationError`` unless *weights* fits this penalty."""
        if weights.ndim != 1 or weights.shape[0] != self.n_weights:
            raise ConfigurationError(
                f"{type(self).__name__} needs {self.n_weights} weights, "
                f"got shape {weights.shape}."
            )

    def value(self, B: FloatArray, weights: FloatArray) -> float:
        """Sorted-L1 norm ``sum_j weights_j * |m|_(j)`` of the magnitudes."""
        mags = np.sort(self.magnitudes(B))[::-1]
        return float(mags @ weights)

    def dual_norm(self, G: FloatArray, weights: FloatArray) -> float:
        """Smallest ``s`` such that *G* lies in the dual ball of ``s * weights``.

        Returns ``inf`` if *G* has mass where the cumulative weights vanish.
        """
        cum_grad = np.cumsum(np.sort(self.magnitudes(G))[::-1])
        cum_weights = np.cumsum(weights)
        positive = cum_weights > 0
        if np.any(cum_grad[~positive] > 0):
            return np.inf
        if not np.any(positive):
            return 0.0
        return float(np.max(cum_grad[positive] / cum_weights[positive]))

    def infeasibility(self, G: FloatArray, weights: FloatArray) -> float:
        """Dual infeasibility of the gradient *G* (zero when feasible)."""
        if weights.shape[0] == 0:
            return 0.0
        cum_grad = np.cumsum(np.sort(self.magnitudes(G))[::-1])
        return float(max(0.0, np.max(cum_grad - np.cumsum(weights))))

    def kkt_check(
        self,
        G: FloatArray,
        B: FloatArray,
        weights: FloatArray,
        tol: float = 1e-6,
    ) -> IntArray:
        """Features whose gradient violates the optimality conditions.

        A magnitude violates optimality when it exceeds its rank-matched
        sorted weight by more than ``max(sqrt(eps), tol * weights[0])``.
        The caller discards violations already in the active set; *B* is
        accepted for interface symmetry with the proximal step.
        """
        mags = self.magnitudes(G)
        if mags.shape[0] == 0:
            return np.zeros(0, dtype=np.intp)
        threshold = max(np.sqrt(np.finfo(np.float64).eps), tol * float(weights[0]))
        matched = screening.rank_matched(mags, weights)
        return self.features_of(mags - matched > threshold)

    def screen(
        self,
        gradient_prev: FloatArray,
        pseudo_gradient_prev: FloatArray,
        feature_norms: FloatArray,
        weights: FloatArray,
        weights_prev: FloatArray,
        rule: str = "strong",
    ) -> IntArray:
        """Candidate active features for the next step.

        See :func:`owlpath.screening.active_set`.
        """
        mask = screening.active_set(
            self.magnitudes(gradient_prev),
            pseudo_gradient_prev,
            self.screening_norms(feature_norms),
            weights,
            weights_prev,
            rule=rule,
        )
        return self.features_of(mask)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_features={self.n_features}, "
            f"n_targets={self.n_targets})"
        )
