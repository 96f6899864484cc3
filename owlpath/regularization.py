"""Regularization sequences for sorted-L1 penalized path fitting.

The penalty weights at path step ``k`` are ``lambda_ * sigma[k]``: a fixed,
non-increasing *shape* ``lambda_`` scaled by a decreasing sequence of
penalty strengths ``sigma``.  This module builds both and exposes the pure
lookup :meth:`WeightSequence.weights`.

References
----------
.. [1] Bogdan, M., van den Berg, E., Sabatti, C., Su, W. and Candès, E.
       (2015). "SLOPE — adaptive variable selection via convex
       optimization." *Annals of Applied Statistics* 9(3): 1103–1140.
.. [2] Bondell, H. and Reich, B. (2008). "Simultaneous regression shrinkage,
       variable selection, and supervised clustering of predictors with
       OSCAR." *Biometrics* 64(1): 115–123.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import norm

from owlpath._design import DesignMatrix
from owlpath._typing import FloatArray
from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily
from owlpath.penalties.base import BasePenalty

LAMBDA_TYPES = ("bh", "gaussian", "oscar", "lasso")


def lambda_sequence(
    n_weights: int,
    kind: str = "bh",
    q: float = 0.1,
    n_samples: int | None = None,
) -> FloatArray:
    """Shape of the sorted-L1 weights.

    Parameters
    ----------
    n_weights : int
        Length of the sequence (coefficients, or groups for group SLOPE).
    kind : {"bh", "gaussian", "oscar", "lasso"}
        * ``"bh"`` — Benjamini-Hochberg critical values
          ``Φ⁻¹(1 - q j / (2 d))``.
        * ``"gaussian"`` — BH values inflated to account for the variance
          of the selected set; flattened once they would increase.
          Needs *n_samples*.
        * ``"oscar"`` — linearly decreasing ``1 + q (d - j)``.
        * ``"lasso"`` — all ones (plain L1 / group lasso).
    q : float
        False discovery rate in (0, 1) for ``"bh"`` / ``"gaussian"``; slope
        of the ``"oscar"`` sequence.
    n_samples : int or None
        Number of observations, used by ``"gaussian"``.

    Returns
    -------
    ndarray, shape (n_weights,)

    Raises
    ------
    ConfigurationError
        For an unknown *kind* or an invalid *q*.
    """
    d = int(n_weights)
    j = np.arange(1, d + 1, dtype=np.float64)

    if kind in ("bh", "gaussian"):
        if not (0 < q < 1):
            raise ConfigurationError(f"q must be in (0, 1), got {q}.")
        lam = norm.ppf(1.0 - q * j / (2.0 * d))
        if kind == "bh":
            return lam
        if n_samples is None:
            raise ConfigurationError("The gaussian lambda sequence needs n_samples.")
        bh = lam.copy()
        for i in range(1, d):
            w = 1.0 / max(1.0, n_samples - i - 1.0)
            candidate = bh[i] * np.sqrt(1.0 + w * np.sum(lam[:i] ** 2))
            if candidate > lam[i - 1]:
                lam[i:] = lam[i - 1]
                break
            lam[i] = candidate
        return lam

    if kind == "oscar":
        if q < 0:
            raise ConfigurationError(f"q must be non-negative for oscar, got {q}.")
        return 1.0 + q * (d - j)

    if kind == "lasso":
        return np.ones(d)

    raise ConfigurationError(
        f"Unknown lambda type {kind!r}. Choose from {list(LAMBDA_TYPES)}."
    )


def sigma_max(
    design: DesignMatrix,
    Y: FloatArray,
    family: BaseFamily,
    penalty: BasePenalty,
    lambda_: FloatArray,
    fit_intercept: bool = True,
) -> float:
    """Smallest penalty strength whose solution is the null model.

    This is the dual norm of the gradient at the intercept-only fit.
    """
    m = Y.shape[1]
    intercept = family.null_intercept(Y) if fit_intercept else np.zeros(m)
    eta = design.linear_predictor(np.zeros((design.n_features, m)), intercept)
    gradient = design.rdot(family.pseudo_gradient(Y, eta))
    return penalty.dual_norm(gradient, lambda_)


def sigma_sequence(
    sigma_max_: float,
    n_sigma: int = 100,
    sigma_min_ratio: float = 1e-2,
) -> FloatArray:
    """Geometric grid from *sigma_max_* down to ``sigma_max_ * sigma_min_ratio``."""
    if n_sigma < 1:
        raise ConfigurationError(f"n_sigma must be positive, got {n_sigma}.")
    if not (0 < sigma_min_ratio < 1):
        raise ConfigurationError(
            f"sigma_min_ratio must be in (0, 1), got {sigma_min_ratio}."
        )
    if not np.isfinite(sigma_max_):
        raise ConfigurationError(
            "sigma_max is not finite; lambda_ must have a positive first entry."
        )
    if sigma_max_ <= 0:
        return np.zeros(n_sigma)
    return np.geomspace(sigma_max_, sigma_max_ * sigma_min_ratio, n_sigma)


@dataclass(frozen=True)
class WeightSequence:
    """Penalty weights for every path step.

    Parameters
    ----------
    lambda_ : ndarray, shape (d,)
        Non-negative, non-increasing weight shape.
    sigma : ndarray, shape (n_sigma,)
        Non-negative penalty strengths, one per path step.
    """

    lambda_: FloatArray
    sigma: FloatArray

    def __post_init__(self) -> None:
        lam = np.asarray(self.lambda_, dtype=np.float64)
        sigma = np.atleast_1d(np.asarray(self.sigma, dtype=np.float64))
        if lam.ndim != 1:
            raise ConfigurationError(f"lambda_ must be 1-D, got {lam.ndim}-D array.")
        if not np.all(np.isfinite(lam)) or np.any(lam < 0):
            raise ConfigurationError("lambda_ must be finite and non-negative.")
        if np.any(np.diff(lam) > 0):
            raise ConfigurationError("lambda_ must be sorted in non-increasing order.")
        if sigma.ndim != 1 or sigma.shape[0] == 0:
            raise ConfigurationError("sigma must be a non-empty 1-D sequence.")
        if not np.all(np.isfinite(sigma)) or np.any(sigma < 0):
            raise ConfigurationError("sigma must be finite and non-negative.")
        object.__setattr__(self, "lambda_", lam)
        object.__setattr__(self, "sigma", sigma)

    def __len__(self) -> int:
        return self.sigma.shape[0]

    def weights(self, k: int) -> FloatArray:
        """Weights at path step *k*."""
        return self.lambda_ * self.sigma[k]
