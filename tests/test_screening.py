"""Tests for the screening rules."""

import numpy as np
import pytest

from owlpath.exceptions import ConfigurationError
from owlpath.screening import active_set, rank_matched, safe_rule, strong_rule


class TestRankMatched:

    def test_largest_gets_first_weight(self):
        out = rank_matched(np.array([0.1, -3.0, 2.0]), np.array([3.0, 2.0, 1.0]))
        np.testing.assert_array_equal(out, [1.0, 3.0, 2.0])


class TestStrongRule:

    def test_lasso_weights_reduce_to_sequential_strong_rule(self):
        # Equal weights: keep |g_j| >= 2 w - w_prev
        g = np.array([0.95, 0.5, 0.85, 0.1])
        w = np.full(4, 0.9)
        w_prev = np.full(4, 1.0)
        np.testing.assert_array_equal(strong_rule(g, w, w_prev), [True, False, True, False])

    def test_nothing_active_for_small_gradient(self):
        g = np.full(5, 0.01)
        w = np.linspace(1.0, 0.5, 5)
        assert not strong_rule(g, w, w * 1.1).any()

    def test_everything_active_for_large_gradient(self):
        g = np.full(5, 10.0)
        w = np.linspace(1.0, 0.5, 5)
        assert strong_rule(g, w, w * 1.1).all()

    def test_block_averaging(self):
        g = np.array([0.9, 1.0])
        w = np.array([1.0, 0.8])
        w_prev = np.array([1.0, 0.8])
        # |g|_sorted + w_prev - 2 w = (1.0 - 1.0, 0.9 - 0.8) = (0.0, 0.1)
        assert strong_rule(g, w, w_prev).all()

    def test_active_set_is_prefix_of_gradient_order(self):
        rng = np.random.RandomState(42)
        g = np.abs(rng.randn(40))
        w = np.sort(rng.rand(40))[::-1]
        active = strong_rule(g, 0.8 * w, w)
        order = np.argsort(-g)
        flags = active[order]
        k = int(flags.sum())
        assert flags[:k].all()
        assert not flags[k:].any()


class TestSafeRule:

    def test_no_relaxation_when_weights_unchanged(self):
        g = np.array([1.0, 0.2, 0.6])
        w = np.array([0.9, 0.7, 0.5])
        keep = safe_rule(g, 1.0, np.ones(3), w, w)
        # rank-matched weights: 1.0 -> 0.9, 0.6 -> 0.7, 0.2 -> 0.5
        np.testing.assert_array_equal(keep, [True, False, False])

    def test_relaxation_grows_with_norms(self):
        g = np.array([0.3, 0.3])
        w = np.array([0.5, 0.5])
        w_prev = np.array([1.0, 1.0])
        keep = safe_rule(g, 1.0, np.array([0.1, 10.0]), w, w_prev)
        np.testing.assert_array_equal(keep, [False, True])

    def test_zero_previous_weights_do_not_divide(self):
        keep = safe_rule(np.array([0.0]), 1.0, np.ones(1), np.zeros(1), np.zeros(1))
        assert keep.tolist() == [True]


class TestActiveSet:

    @pytest.fixture
    def data(self):
        rng = np.random.RandomState(42)
        g = rng.randn(6)
        U = rng.randn(10, 1)
        norms = np.ones(6)
        w = np.linspace(1.0, 0.5, 6)
        return g, U, norms, w

    def test_none_keeps_everything(self, data):
        g, U, norms, w = data
        assert active_set(g, U, norms, w, w, rule="none").all()

    def test_uses_absolute_gradient(self, data):
        g, U, norms, w = data
        np.testing.assert_array_equal(
            active_set(g, U, norms, w, 1.2 * w, rule="strong"),
            active_set(-g, U, norms, w, 1.2 * w, rule="strong"),
        )

    def test_unknown_rule(self, data):
        g, U, norms, w = data
        with pytest.raises(ConfigurationError, match="Unknown screening rule"):
            active_set(g, U, norms, w, w, rule="dpp")

    def test_shape_mismatch(self, data):
        g, U, norms, w = data
        with pytest.raises(ConfigurationError, match="needs 6 weights"):
            active_set(g, U, norms, w[:3], w, rule="strong")
