"""Type aliases and common types for the owlpath package."""

from __future__ import annotations

from typing import Union

import numpy as np
import numpy.typing as npt
import scipy.sparse as sp

# Array-like types accepted as input
ArrayLike = Union[np.ndarray, list, tuple]

# Design matrices may be dense or any scipy.sparse format
MatrixLike = Union[np.ndarray, sp.spmatrix, sp.sparray]

# Strict numpy array types returned from computations
FloatArray = npt.NDArray[np.float64]
IntArray = npt.NDArray[np.intp]
BoolArray = npt.NDArray[np.bool_]
