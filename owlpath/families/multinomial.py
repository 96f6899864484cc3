"""Multinomial family: softmax loss with the first class as reference."""

from __future__ import annotations

import numpy as np
from scipy.special import logsumexp, softmax, xlogy

from owlpath._typing import FloatArray
from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily

_PROB_EPS = 1e-9


def _with_reference(eta: FloatArray) -> FloatArray:
    """Prepend the zero linear predictor of the reference class."""
    return np.column_stack([np.zeros(eta.shape[0]), eta])


class Multinomial(BaseFamily):
    """Multinomial logistic loss for K classes.

    The response is encoded as an ``(n, K - 1)`` indicator matrix; the first
    (sorted) class is the reference with a linear predictor fixed at zero,
    which keeps the model identifiable.
    """

    name = "multinomial"

    def validate_response(self, y):
        y = np.asarray(y)
        if y.ndim == 2 and y.shape[1] == 1:
            y = y.ravel()
        if y.ndim != 1:
            raise ConfigurationError(
                "The multinomial family needs a 1-D vector of class labels."
            )
        classes = np.unique(y)
        if classes.shape[0] < 2:
            raise ConfigurationError("The multinomial family needs at least 2 classes.")
        Y = (y[:, np.newaxis] == classes[np.newaxis, 1:]).astype(np.float64)
        return Y, classes

    def primal(self, Y: FloatArray, eta: FloatArray) -> float:
        return float(np.sum(logsumexp(_with_reference(eta), axis=1)) - np.sum(Y * eta))

    def dual(self, Y: FloatArray, eta: FloatArray) -> float:
        prob = softmax(_with_reference(eta), axis=1)
        return -float(np.sum(xlogy(prob, prob)))

    def pseudo_gradient(self, Y: FloatArray, eta: FloatArray) -> FloatArray:
        return softmax(_with_reference(eta), axis=1)[:, 1:] - Y

    def null_intercept(self, Y: FloatArray) -> FloatArray:
        prob = np.clip(Y.mean(axis=0), _PROB_EPS, 1.0)
        ref = max(1.0 - Y.mean(axis=0).sum(), _PROB_EPS)
        return np.log(prob / ref)

    def link_inverse(self, eta: FloatArray) -> FloatArray:
        return softmax(_with_reference(eta), axis=1)
