"""Poisson family: log-linear model for count responses."""

from __future__ import annotations

import numpy as np
from scipy.special import xlogy

from owlpath._typing import FloatArray
from owlpath.exceptions import ConfigurationError
from owlpath.families.base import BaseFamily

_MEAN_EPS = 1e-9


class Poisson(BaseFamily):
    """Poisson loss ``sum(exp(eta) - y * eta + y log y - y)``.

    The saturated-model term ``y log y - y`` does not change the gradient but
    makes ``2 * primal`` the usual Poisson deviance.
    """

    name = "poisson"

    def validate_response(self, y):
        Y, _ = super().validate_response(y)
        if np.any(Y < 0):
            raise ConfigurationError("The poisson family needs a non-negative response.")
        return Y, None

    @staticmethod
    def _saturated(Y: FloatArray) -> float:
        return float(np.sum(xlogy(Y, Y) - Y))

    def primal(self, Y: FloatArray, eta: FloatArray) -> float:
        return float(np.sum(np.exp(eta) - Y * eta)) + self._saturated(Y)

    def dual(self, Y: FloatArray, eta: FloatArray) -> float:
        mu = np.exp(eta)
        return -float(np.sum(xlogy(mu, mu) - mu)) + self._saturated(Y)

    def pseudo_gradient(self, Y: FloatArray, eta: FloatArray) -> FloatArray:
        return np.exp(eta) - Y

    def null_intercept(self, Y: FloatArray) -> FloatArray:
        return np.log(np.maximum(Y.mean(axis=0), _MEAN_EPS))

    def link_inverse(self, eta: FloatArray) -> FloatArray:
        return np.exp(eta)
