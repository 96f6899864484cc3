"""Sorted-L1 (SLOPE / OWL) penalty.

.. math::

    J(\\beta; \\lambda) = \\sum_{j=1}^{d} \\lambda_j |\\beta|_{(j)},
    \\qquad \\lambda_1 \\ge \\dots \\ge \\lambda_d \\ge 0

where :math:`|\\beta|_{(j)}` is the j-th largest absolute coefficient.  For
several response columns the penalty acts on the flattened coefficient
matrix, so ``d = p * m``.

The proximal operator is computed with the stack-based pool-adjacent-
violators algorithm of Bogdan et al.

References
----------
.. [1] Bogdan, M., van den Berg, E., Sabatti, C., Su, W. and Candès, E.
       (2015). "SLOPE — adaptive variable selection via convex
       optimization." *Annals of Applied Statistics* 9(3): 1103–1140.
.. [2] Zeng, X. and Figueiredo, M. (2014). "The ordered weighted ℓ1 norm:
       atomic formulation, projections, and algorithms." arXiv:1409.4271.
"""

from __future__ import annotations

import numpy as np

from owlpath._typing import BoolArray, FloatArray, IntArray
from owlpath.penalties.base import BasePenalty


def prox_sorted_l1(v: FloatArray, weights: FloatArray) -> FloatArray:
    """Proximal operator of the sorted-L1 norm.

    Solves ``argmin_x 0.5 * ||x - v||^2 + sum_j weights_j |x|_(j)``.

    Parameters
    ----------
    v : ndarray, shape (d,)
        Input vector.
    weights : ndarray, shape (d,)
        Non-increasing, non-negative weights.

    Returns
    -------
    ndarray, shape (d,)
        Signs follow *v*; magnitudes keep the order of ``|v|``.
    """
    v = np.asarray(v, dtype=np.float64).ravel()
    d = v.shape[0]
    if d == 0:
        return v.copy()

    abs_v = np.abs(v)
    order = np.argsort(-abs_v, kind="stable")
    z = abs_v[order] - weights

    # Blocks of the isotonic (non-increasing) fit, kept on a stack
    starts = np.empty(d, dtype=np.intp)
    ends = np.empty(d, dtype=np.intp)
    sums = np.empty(d, dtype=np.float64)
    top = -1
    for i in range(d):
        top += 1
        starts[top] = i
        ends[top] = i
        sums[top] = z[i]
        while top > 0 and (
            sums[top - 1] / (ends[top - 1] - starts[top - 1] + 1)
            <= sums[top] / (ends[top] - starts[top] + 1)
        ):
            sums[top - 1] += sums[top]
            ends[top - 1] = ends[top]
            top -= 1

    x = np.empty(d, dtype=np.float64)
    for j in range(top + 1):
        mean = sums[j] / (ends[j] - starts[j] + 1)
        x[starts[j]:ends[j] + 1] = max(mean, 0.0)

    out = np.empty(d, dtype=np.float64)
    out[order] = x
    return np.sign(v) * out


class SLOPE(BasePenalty):
    """Ungrouped sorted-L1 penalty on the flattened coefficient matrix.

    Coefficient ``B[j, k]`` is coordinate ``j * n_targets + k``; a feature is
    active when any of its coordinates is.
    """

    name = "slope"

    def __init__(self, n_features: int, n_targets: int = 1, groups=None) -> None:
        super().__init__(n_features, n_targets)

    @property
    def n_weights(self) -> int:
        return self.n_features * self.n_targets

    def magnitudes(self, M: FloatArray) -> FloatArray:
        return np.abs(np.asarray(M)).ravel()

    def screening_norms(self, feature_norms: FloatArray) -> FloatArray:
        return np.repeat(feature_norms, self.n_targets)

    def features_of(self, mask: BoolArray) -> IntArray:
        return np.unique(np.flatnonzero(mask) // self.n_targets).astype(np.intp)

    def prox(self, B: FloatArray, weights: FloatArray) -> FloatArray:
        return prox_sorted_l1(B.ravel(), weights).reshape(B.shape)

    def restrict(self, features: IntArray) -> "SLOPE":
        return SLOPE(len(features), self.n_targets)
