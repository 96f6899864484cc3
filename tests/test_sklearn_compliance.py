"""Tests for sklearn check_estimator compliance.

The checks exercise the default gaussian family; a short path keeps the
suite fast.
"""

import pytest
from sklearn.utils.estimator_checks import check_estimator

from owlpath import OWLRegressor


class TestSklearnCompliance:
    """The estimator should pass sklearn's full check_estimator suite."""

    def test_check_estimator_passes(self):
        # check_estimator raises on the first failure
        check_estimator(OWLRegressor(n_sigma=10))

    @pytest.mark.parametrize("screening", ["none", "safe"])
    def test_check_estimator_other_screening_rules(self, screening):
        check_estimator(OWLRegressor(n_sigma=10, screening=screening))
