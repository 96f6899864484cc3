"""Sklearn-compatible estimator around :func:`owlpath.path.fit_path`.

.. code-block:: python

    from owlpath import OWLRegressor
    model = OWLRegressor(family="gaussian", lambda_type="bh", q=0.1)
    model.fit(X, y)
    y_hat = model.predict(X_new)            # last step of the path
    y_mid = model.predict(X_new, step=10)   # any other step

Notes
-----
1. **Mixin order** – ``RegressorMixin`` before ``BaseEstimator``, as
   ``check_mixin_order`` requires.

2. **``validate_data``** – sets ``n_features_in_`` on ``fit`` and rejects a
   different number of features in ``predict``.

3. **Weight shape parameter is called ``lambdas``** – a constructor
   argument ending in an underscore would make ``check_is_fitted`` treat
   an unfitted estimator as fitted.

4. **Coefficients are reported on the original feature scale**, so
   ``predict`` works on raw features whether or not the path was fitted on
   standardized ones.

5. **``decision_function`` / ``predict_proba`` exist only for the
   classification families** (``available_if``), so ``hasattr`` reports
   them correctly and regression families behave as plain regressors.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.utils.metaestimators import available_if
from sklearn.utils.validation import check_is_fitted, validate_data

from owlpath.config import PathConfig
from owlpath.families import get_family
from owlpath.path import fit_path

_CLASSIFICATION_FAMILIES = ("binomial", "multinomial")


class OWLRegressor(RegressorMixin, BaseEstimator):
    """Sorted-L1 penalized GLM fitted along a regularization path.

    Parameters
    ----------
    family : str, default="gaussian"
        ``"gaussian"``, ``"binomial"``, ``"poisson"`` or ``"multinomial"``.
    penalty : str, default="slope"
        ``"slope"`` or ``"group_slope"``.
    groups : array-like or None
        Group label per feature, for ``penalty="group_slope"``.
    lambdas : array-like or None
        Explicit non-increasing weight shape.  Generated from
        ``lambda_type`` and ``q`` when ``None``.
    lambda_type : str, default="bh"
    q : float, default=0.1
    sigma : array-like or None
        Penalty strengths.  A geometric grid from ``sigma_max`` when
        ``None``.
    n_sigma : int, default=100
    sigma_min_ratio : float or None
    fit_intercept : bool, default=True
    standardize_features : bool, default=True
    screening : str, default="strong"
    adaptive : bool, default=True
        ``False`` fits every step on all features without early stopping.
    max_passes : int, default=10000
    tol_rel_gap, tol_infeas : float
        Solver tolerances.
    tol_dev_ratio, tol_dev_change : float
        Early-stopping tolerances of the path.
    max_variables : int or None
    diagnostics : bool, default=False
    verbosity : int, default=0

    Attributes
    ----------
    path_ : PathResult
        Full path output (standardized scale).
    coef_path_ : ndarray, shape (k, n_features, m)
        Coefficients of every step on the original feature scale.
    intercept_path_ : ndarray, shape (k, m)
    sigma_ : ndarray, shape (k,)
    coef_ : ndarray, shape (n_features,) or (n_features, m)
        Coefficients of the last step.
    intercept_ : float or ndarray
    classes_ : ndarray
        Only for classification families.
    n_iter_ : ndarray of int, shape (k,)
        Solver passes per step.
    n_features_in_ : int
    """

    def __init__(
        self,
        family: str = "gaussian",
        penalty: str = "slope",
        groups=None,
        lambdas=None,
        lambda_type: str = "bh",
        q: float = 0.1,
        sigma=None,
        n_sigma: int = 100,
        sigma_min_ratio: Optional[float] = None,
        fit_intercept: bool = True,
        standardize_features: bool = True,
        screening: str = "strong",
        adaptive: bool = True,
        max_passes: int = 10_000,
        tol_rel_gap: float = 1e-6,
        tol_infeas: float = 1e-3,
        tol_dev_ratio: float = 0.995,
        tol_dev_change: float = 1e-5,
        max_variables: Optional[int] = None,
        diagnostics: bool = False,
        verbosity: int = 0,
    ) -> None:
        self.family = family
        self.penalty = penalty
        self.groups = groups
        self.lambdas = lambdas
        self.lambda_type = lambda_type
        self.q = q
        self.sigma = sigma
        self.n_sigma = n_sigma
        self.sigma_min_ratio = sigma_min_ratio
        self.fit_intercept = fit_intercept
        self.standardize_features = standardize_features
        self.screening = screening
        self.adaptive = adaptive
        self.max_passes = max_passes
        self.tol_rel_gap = tol_rel_gap
        self.tol_infeas = tol_infeas
        self.tol_dev_ratio = tol_dev_ratio
        self.tol_dev_change = tol_dev_change
        self.max_variables = max_variables
        self.diagnostics = diagnostics
        self.verbosity = verbosity

    def _path_config(self) -> PathConfig:
        params: dict[str, Any] = self.get_params()
        params["lambda_"] = params.pop("lambdas")
        return PathConfig.from_dict(params)

    # ──────────────────────────────────────────────────────────────────
    # fit / predict
    # ──────────────────────────────────────────────────────────────────

    def fit(self, X, y, cancel_token=None):
        """Fit the regularization path.

        Parameters
        ----------
        X : array-like or sparse matrix, shape (n_samples, n_features)
        y : array-like, shape (n_samples,) or (n_samples, m)
            Class labels for the classification families.
        cancel_token : CancellationToken or None

        Returns
        -------
        self
        """
        config = self._path_config()
        X, y = validate_data(
            self,
            X,
            y,
            accept_sparse=("csc", "csr"),
            dtype=np.float64,
            multi_output=True,
            y_numeric=self.family not in _CLASSIFICATION_FAMILIES,
        )

        path = fit_path(X, y, config, cancel_token=cancel_token)
        coefs, intercepts = path.original_scale()

        self.path_ = path
        self.coef_path_ = coefs
        self.intercept_path_ = intercepts
        self.sigma_ = path.sigma
        self.n_iter_ = path.passes
        if path.classes is not None:
            self.classes_ = path.classes

        if path.path_length > 0:
            coef, intercept = coefs[-1], intercepts[-1]
        else:
            coef = np.zeros((X.shape[1], path.intercepts.shape[1]))
            intercept = np.zeros(path.intercepts.shape[1])
        if coef.shape[1] == 1 and self.family != "multinomial":
            self.coef_ = coef[:, 0]
            self.intercept_ = float(intercept[0])
        else:
            self.coef_ = coef
            self.intercept_ = intercept
        return self

    # ──────────────────────────────────────────────────────────────────
    # sklearn tags
    # ──────────────────────────────────────────────────────────────────

    def __sklearn_tags__(self):
        tags = super().__sklearn_tags__()
        tags.input_tags.sparse = True
        tags.target_tags.multi_output = True
        return tags

    def _is_classifier_family(self) -> bool:
        return self.family in _CLASSIFICATION_FAMILIES

    def _linear_predictor(self, X, step: int) -> np.ndarray:
        check_is_fitted(self)
        X = validate_data(
            self, X, accept_sparse=("csc", "csr"), dtype=np.float64, reset=False
        )
        return np.asarray(X @ self.coef_path_[step]) + self.intercept_path_[step]

    @available_if(_is_classifier_family)
    def decision_function(self, X, step: int = -1):
        """Linear predictor ``X @ coef + intercept`` at path step *step*.

        Only exposed for the classification families; regressors report
        the mean response through :meth:`predict`.
        """
        eta = self._linear_predictor(X, step)
        if self.family == "binomial":
            return eta[:, 0]
        return eta

    @available_if(_is_classifier_family)
    def predict_proba(self, X, step: int = -1):
        """Class probabilities.

        Returns
        -------
        ndarray, shape (n_samples, n_classes)
        """
        mean = get_family(self.family).link_inverse(self._linear_predictor(X, step))
        if self.family == "binomial":
            return np.column_stack([1.0 - mean[:, 0], mean[:, 0]])
        return mean

    def predict(self, X, step: int = -1):
        """Predict at path step *step* (the last one by default).

        Returns the mean response for regression families and class labels
        for classification families.
        """
        if self._is_classifier_family():
            proba = self.predict_proba(X, step)
            labels = np.argmax(proba, axis=1)
            if self.classes_.shape[0] == proba.shape[1]:
                return self.classes_[labels]
            return labels
        mean = get_family(self.family).link_inverse(self._linear_predictor(X, step))
        if mean.shape[1] == 1:
            return mean[:, 0]
        return mean
