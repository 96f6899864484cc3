"""Binomial family: logistic loss for a 0/1 response."""

from __future__ import annotations

import numpy as np
from scipy.special import expit, xlogy

from owlpath._typing import FloatArray
from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily

# Clamp for the null-model mean so its logit stays finite
_PROB_EPS = 1e-9


class Binomial(BaseFamily):
    """Logistic loss ``sum(log(1 + exp(eta)) - y * eta)``.

    The response may be given as any two class labels; the second (sorted)
    label is coded as 1.  The dual objective is the binary entropy of the
    fitted probabilities, ``-sum(p log p + (1 - p) log(1 - p))``.
    """

    name = "binomial"

    def validate_response(self, y):
        y = np.asarray(y)
        if y.ndim == 2 and y.shape[1] == 1:
            y = y.ravel()
        if y.ndim != 1:
            raise ConfigurationError("The binomial family needs a 1-D response.")
        classes = np.unique(y)
        if classes.shape[0] > 2:
            raise ConfigurationError(
                f"The binomial family needs at most 2 classes, got {classes.shape[0]}."
            )
        if classes.shape[0] == 2:
            Y = (y == classes[1]).astype(np.float64)
        else:
            Y = np.asarray(y, dtype=np.float64)
            if not np.all((Y == 0) | (Y == 1)):
                raise ConfigurationError("A single-class binomial response must be 0 or 1.")
        return Y[:, np.newaxis], classes

    def primal(self, Y: FloatArray, eta: FloatArray) -> float:
        return float(np.sum(np.logaddexp(0.0, eta) - Y * eta))

    def dual(self, Y: FloatArray, eta: FloatArray) -> float:
        prob = expit(eta)
        return -float(np.sum(xlogy(prob, prob) + xlogy(1.0 - prob, 1.0 - prob)))

    def pseudo_gradient(self, Y: FloatArray, eta: FloatArray) -> FloatArray:
        return expit(eta) - Y

    def null_intercept(self, Y: FloatArray) -> FloatArray:
        prob = np.clip(Y.mean(axis=0), _PROB_EPS, 1.0 - _PROB_EPS)
        return np.log(prob / (1.0 - prob))

    def link_inverse(self, eta: FloatArray) -> FloatArray:
        return expit(eta)
