"""Abstract base class for GLM families (loss models).

Every family implements the ``BaseFamily`` interface: a loss (``primal``),
its closed-form Fenchel dual (``dual``), the first-order residual
(``pseudo_gradient``) and a closed-form intercept-only fit
(``null_intercept``).  Families are stateless: all data flows through method
arguments, so a single instance can be shared across path steps.

The loss is scaled so that ``2 * primal`` is the model deviance.  Constants
of the saturated model are included, which keeps the deviance non-negative
and the deviance ratio in ``[0, 1]``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from owlpath._typing import FloatArray
from owlpath.exceptions import ConfigurationError


class BaseFamily(ABC):
    """Abstract base class that every family must implement.

    Subclasses **must** override :meth:`primal`, :meth:`dual`,
    :meth:`pseudo_gradient`, :meth:`null_intercept` and
    :meth:`link_inverse`.  They **may** override
    :meth:`validate_response` to encode or check the response.
    """

    name: str = "base"

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    def validate_response(self, y) -> tuple[FloatArray, np.ndarray | None]:
        """Coerce *y* to a float (n, m) matrix.

        Returns
        -------
        Y : ndarray, shape (n, m)
        classes : ndarray or None
            Class labels for classification families.
        """
        Y = np.asarray(y, dtype=np.float64)
        if Y.ndim == 1:
            Y = Y[:, np.newaxis]
        if Y.ndim != 2:
            raise ConfigurationError(f"y must be 1-D or 2-D, got {Y.ndim}-D array.")
        if not np.all(np.isfinite(Y)):
            raise ConfigurationError("y contains non-finite values.")
        return Y, None

    # ------------------------------------------------------------------
    # Family interface
    # ------------------------------------------------------------------

    @abstractmethod
    def primal(self, Y: FloatArray, eta: FloatArray) -> float:
        """Loss at the linear predictor *eta*."""

    @abstractmethod
    def dual(self, Y: FloatArray, eta: FloatArray) -> float:
        """Dual objective at the dual point implied by *eta*."""

    @abstractmethod
    def pseudo_gradient(self, Y: FloatArray, eta: FloatArray) -> FloatArray:
        """Gradient of the loss with respect to *eta*, shape (n, m)."""

    @abstractmethod
    def null_intercept(self, Y: FloatArray) -> FloatArray:
        """Closed-form intercept of the intercept-only model, shape (m,)."""

    @abstractmethod
    def link_inverse(self, eta: FloatArray) -> FloatArray:
        """Mean response for the linear predictor *eta*."""

    def deviance(self, Y: FloatArray, eta: FloatArray) -> float:
        """Model deviance, ``2 * primal``."""
        return 2.0 * self.primal(Y, eta)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
