"""Gaussian family: least-squares loss with identity link."""

from __future__ import annotations

import numpy as np

from owlpath._typing import FloatArray
from owlpath.families.base import BaseFamily


class Gaussian(BaseFamily):
    """Squared-error loss ``0.5 * ||Y - eta||_F^2``.

    The dual objective at ``U = eta - Y`` is
    ``0.5 * ||Y||^2 - 0.5 * ||eta||^2``.
    """

    name = "gaussian"

    def primal(self, Y: FloatArray, eta: FloatArray) -> float:
        return 0.5 * float(np.sum((Y - eta) ** 2))

    def dual(self, Y: FloatArray, eta: FloatArray) -> float:
        return 0.5 * float(np.sum(Y**2) - np.sum(eta**2))

    def pseudo_gradient(self, Y: FloatArray, eta: FloatArray) -> FloatArray:
        return eta - Y

    def null_intercept(self, Y: FloatArray) -> FloatArray:
        return Y.mean(axis=0)

    def link_inverse(self, eta: FloatArray) -> FloatArray:
        return eta
