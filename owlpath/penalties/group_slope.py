"""Group sorted-L1 (group SLOPE) penalty.

.. math::

    J(B; \\lambda) = \\sum_{j=1}^{G} \\lambda_j \\|B_{\\mathcal{G}}\\|_{(j)}

where :math:`\\|B_{\\mathcal{G}}\\|` is the Frobenius norm of the rows of
``B`` belonging to group :math:`\\mathcal{G}` and :math:`(j)` ranks the group
norms in decreasing order.  Groups are selected or dropped as a whole, so
active sets are always unions of complete groups.

The proximal operator applies the sorted-L1 proximal operator to the vector
of group norms and rescales every group accordingly.

References
----------
.. [1] Brzyski, D., Gossmann, A., Su, W. and Bogdan, M. (2019). "Group
       SLOPE — adaptive selection of groups of predictors." *JASA*
       114(525): 419–433.
"""

from __future__ import annotations

import numpy as np

from owlpath._typing import BoolArray, FloatArray, IntArray
from owlpath.exceptions import ConfigurationError
from owlpath.penalties.base import BasePenalty
from owlpath.penalties.slope import prox_sorted_l1


class GroupSLOPE(BasePenalty):
    """Sorted-L1 penalty on group norms.

    Parameters
    ----------
    n_features : int
        Number of features.
    n_targets : int
        Number of response columns.
    groups : array-like of shape (n_features,)
        Group label of every feature.  Labels may be any sortable values.
    """

    name = "group_slope"

    def __init__(self, n_features: int, n_targets: int = 1, groups=None) -> None:
        super().__init__(n_features, n_targets)
        if groups is None:
            raise ConfigurationError("The group_slope penalty needs a `groups` vector.")
        groups = np.asarray(groups).ravel()
        if groups.shape[0] != n_features:
            raise ConfigurationError(
                f"groups must have one label per feature ({n_features}), "
                f"got {groups.shape[0]}."
            )
        self.groups = groups
        _, self._inverse = np.unique(groups, return_inverse=True)
        self._inverse = self._inverse.ravel()
        self._n_groups = int(self._inverse.max()) + 1 if n_features > 0 else 0

    @property
    def n_groups(self) -> int:
        return self._n_groups

    @property
    def n_weights(self) -> int:
        return self._n_groups

    def _group_sums(self, values: FloatArray) -> FloatArray:
        return np.bincount(self._inverse, weights=values, minlength=self._n_groups)

    def magnitudes(self, M: FloatArray) -> FloatArray:
        row_sq = np.sum(np.asarray(M) ** 2, axis=1)
        return np.sqrt(self._group_sums(row_sq))

    def screening_norms(self, feature_norms: FloatArray) -> FloatArray:
        return np.sqrt(self._group_sums(feature_norms**2))

    def features_of(self, mask: BoolArray) -> IntArray:
        return np.flatnonzero(mask[self._inverse]).astype(np.intp)

    def complete(self, features: IntArray) -> IntArray:
        selected = np.zeros(self._n_groups, dtype=bool)
        selected[self._inverse[np.asarray(features, dtype=np.intp)]] = True
        return self.features_of(selected)

    def prox(self, B: FloatArray, weights: FloatArray) -> FloatArray:
        norms = self.magnitudes(B)
        shrunk = prox_sorted_l1(norms, weights)
        factor = np.divide(shrunk, norms, out=np.zeros_like(norms), where=norms > 0)
        return B * factor[self._inverse][:, np.newaxis]

    def restrict(self, features: IntArray) -> "GroupSLOPE":
        features = np.asarray(features, dtype=np.intp)
        return GroupSLOPE(len(features), self.n_targets, self.groups[features])
