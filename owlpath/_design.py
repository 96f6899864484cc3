"""Dense / sparse design matrices with on-the-fly standardization.

The solver and the path never touch the raw feature matrix directly; they go
through :class:`DesignMatrix`, which realizes the three operations the
algorithm needs (``X̃ B``, ``X̃ᵀ U`` and column subsets) for both dense
arrays and ``scipy.sparse`` matrices.

Standardizing a sparse matrix explicitly would destroy its sparsity, so for
sparse input the centering and scaling are folded into the products instead:

.. math::

    \\tilde X B = X (B / s) - \\mathbf{1} c^\\top (B / s), \\qquad
    \\tilde X^\\top U = (X^\\top U - c\\, \\mathbf{1}^\\top U) / s

Dense input is standardized once, up front.
"""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from owlpath._typing import FloatArray, IntArray, MatrixLike
from owlpath.exceptions import ConfigurationError


def center_and_scale(X: MatrixLike) -> tuple[FloatArray, FloatArray]:
    """Column means and (population) standard deviations of *X*.

    Works on dense and sparse matrices without densifying.  Constant columns
    get a scale of one so that they stay finite (and end up all-zero after
    centering).
    """
    n = X.shape[0]
    if sp.issparse(X):
        center = np.asarray(X.mean(axis=0)).ravel()
        sq_mean = np.asarray(X.multiply(X).sum(axis=0)).ravel() / n
        var = np.maximum(sq_mean - center**2, 0.0)
    else:
        center = X.mean(axis=0)
        var = X.var(axis=0)
    scale = np.sqrt(var)
    scale[scale <= np.finfo(np.float64).eps] = 1.0
    return center, scale


class DesignMatrix:
    """A design matrix together with its standardization.

    Parameters
    ----------
    X : ndarray or scipy.sparse matrix, shape (n, p)
        Feature matrix.  Sparse input is stored in CSC format.
    center, scale : ndarray of shape (p,) or None
        Feature centers and scales used to unstandardize coefficients.
    transform : bool
        Whether ``center`` / ``scale`` have to be applied inside the
        matrix products (``True`` only for sparse, standardized input).
    """

    def __init__(
        self,
        X: MatrixLike,
        center: FloatArray | None = None,
        scale: FloatArray | None = None,
        transform: bool = False,
    ) -> None:
        if transform and (center is None or scale is None):
            raise ConfigurationError(
                "An on-the-fly standardization needs both center and scale."
            )
        self.X = X
        self.center = center
        self.scale = scale
        self.transform = transform

    @classmethod
    def from_array(
        cls,
        X: MatrixLike,
        standardize: bool = False,
        center: FloatArray | None = None,
        scale: FloatArray | None = None,
    ) -> "DesignMatrix":
        """Build a design matrix, standardizing it if requested.

        Pre-computed *center* / *scale* are used when given; otherwise they
        are computed from *X*.
        """
        if sp.issparse(X):
            X = sp.csc_matrix(X, dtype=np.float64)
        else:
            X = np.asarray(X, dtype=np.float64)

        if X.ndim != 2:
            raise ConfigurationError(f"X must be 2-D, got {X.ndim}-D array.")
        p = X.shape[1]

        if not standardize:
            return cls(X)

        if center is None or scale is None:
            c, s = center_and_scale(X)
            center = c if center is None else center
            scale = s if scale is None else scale
        center = np.asarray(center, dtype=np.float64).ravel()
        scale = np.asarray(scale, dtype=np.float64).ravel()
        if center.shape[0] != p or scale.shape[0] != p:
            raise ConfigurationError(
                f"x_center and x_scale must have length {p}, got "
                f"{center.shape[0]} and {scale.shape[0]}."
            )
        if np.any(scale <= 0) or not np.all(np.isfinite(scale)):
            raise ConfigurationError("x_scale must be positive and finite.")

        if sp.issparse(X):
            return cls(X, center, scale, transform=True)
        return cls((X - center) / scale, center, scale, transform=False)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int]:
        return self.X.shape

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]

    @property
    def is_sparse(self) -> bool:
        return sp.issparse(self.X)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def dot(self, B: FloatArray) -> FloatArray:
        """Return ``X̃ B`` with shape (n, m)."""
        if self.n_features == 0:
            return np.zeros((self.n_samples, B.shape[1]))
        if self.transform:
            Bs = B / self.scale[:, np.newaxis]
            return np.asarray(self.X @ Bs) - self.center @ Bs
        return np.asarray(self.X @ B)

    def rdot(self, U: FloatArray) -> FloatArray:
        """Return ``X̃ᵀ U`` with shape (p, m)."""
        if self.n_features == 0:
            return np.zeros((0, U.shape[1]))
        G = np.asarray(self.X.T @ U)
        if self.transform:
            G = (G - np.outer(self.center, U.sum(axis=0))) / self.scale[:, np.newaxis]
        return G

    def linear_predictor(self, B: FloatArray, intercept: FloatArray) -> FloatArray:
        """Return ``X̃ B + 1 interceptᵀ``."""
        return self.dot(B) + intercept

    # ------------------------------------------------------------------
    # Slicing and norms
    # ------------------------------------------------------------------

    def subset(self, features: IntArray) -> "DesignMatrix":
        """Column-restricted view used for the screened subproblem."""
        features = np.asarray(features, dtype=np.intp)
        return DesignMatrix(
            self.X[:, features],
            None if self.center is None else self.center[features],
            None if self.scale is None else self.scale[features],
            transform=self.transform,
        )

    def column_norms(self) -> FloatArray:
        """Euclidean norms of the (standardized) columns."""
        if not self.is_sparse:
            return np.linalg.norm(self.X, axis=0)
        sq = np.asarray(self.X.multiply(self.X).sum(axis=0)).ravel()
        if self.transform:
            col_sums = np.asarray(self.X.sum(axis=0)).ravel()
            sq = sq - 2.0 * self.center * col_sums + self.n_samples * self.center**2
            sq = np.maximum(sq, 0.0) / self.scale**2
        return np.sqrt(sq)

    def __repr__(self) -> str:
        kind = "sparse" if self.is_sparse else "dense"
        return (
            f"DesignMatrix(shape={self.shape}, {kind}, "
            f"standardized={self.center is not None})"
        )
