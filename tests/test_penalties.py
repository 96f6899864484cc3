"""Tests for the sorted-L1 penalties, their proximal operators and registry."""

import numpy as np
import pytest

from owlpath.exceptions import ConfigurationError
from owlpath.penalties import (
    SLOPE,
    BasePenalty,
    GroupSLOPE,
    get_penalty,
    list_penalties,
    prox_sorted_l1,
    register_penalty,
)


def _sorted_l1(x, weights):
    return float(np.sort(np.abs(x))[::-1] @ weights)


# ──────────────────────────────────────────────────────────────────────
# prox_sorted_l1
# ──────────────────────────────────────────────────────────────────────

class TestProxSortedL1:

    def test_equal_weights_is_soft_thresholding(self):
        v = np.array([3.0, -1.0, 0.5, -2.5])
        out = prox_sorted_l1(v, np.ones(4))
        np.testing.assert_allclose(out, np.sign(v) * np.maximum(np.abs(v) - 1.0, 0))

    def test_zero_weights_is_identity(self):
        v = np.array([1.0, -2.0, 3.0])
        np.testing.assert_allclose(prox_sorted_l1(v, np.zeros(3)), v)

    def test_known_averaging(self):
        # |v| - w = (3 - 2, 2.5 - 1) = (1, 1.5) violates monotonicity: pooled to 1.25
        out = prox_sorted_l1(np.array([3.0, 2.5]), np.array([2.0, 1.0]))
        np.testing.assert_allclose(out, [1.25, 1.25])

    def test_signs_preserved(self):
        v = np.array([-4.0, 3.0, -0.1])
        out = prox_sorted_l1(v, np.array([1.0, 0.5, 0.2]))
        assert np.all(out * v >= 0)

    def test_order_of_magnitudes_preserved(self):
        rng = np.random.RandomState(42)
        v = rng.randn(30)
        w = np.sort(rng.rand(30))[::-1]
        out = prox_sorted_l1(v, w)
        order = np.argsort(-np.abs(v))
        assert np.all(np.diff(np.abs(out[order])) <= 1e-12)

    def test_empty_vector(self):
        assert prox_sorted_l1(np.zeros(0), np.zeros(0)).shape == (0,)

    def test_is_minimizer(self):
        """Random perturbations never decrease the prox objective."""
        rng = np.random.RandomState(42)
        v = rng.randn(8) * 2
        w = np.sort(rng.rand(8))[::-1]
        x = prox_sorted_l1(v, w)

        def objective(z):
            return 0.5 * np.sum((z - v) ** 2) + _sorted_l1(z, w)

        best = objective(x)
        for _ in range(200):
            z = x + rng.randn(8) * 0.05
            assert objective(z) >= best - 1e-10

    def test_large_weights_give_zero(self):
        v = np.array([1.0, -0.5, 0.2])
        np.testing.assert_array_equal(prox_sorted_l1(v, np.full(3, 10.0)), 0.0)


# ──────────────────────────────────────────────────────────────────────
# SLOPE
# ──────────────────────────────────────────────────────────────────────

class TestSLOPE:

    @pytest.fixture
    def penalty(self):
        return SLOPE(n_features=4, n_targets=2)

    def test_n_weights(self, penalty):
        assert penalty.n_weights == 8

    def test_value(self, penalty):
        B = np.array([[1.0, -2.0], [0.0, 0.5], [0.0, 0.0], [3.0, 0.0]])
        w = np.arange(8, 0, -1, dtype=float)
        assert penalty.value(B, w) == pytest.approx(_sorted_l1(B.ravel(), w))

    def test_features_of_maps_coordinates(self, penalty):
        mask = np.zeros(8, dtype=bool)
        mask[[1, 6]] = True  # (0, 1) and (3, 0)
        np.testing.assert_array_equal(penalty.features_of(mask), [0, 3])

    def test_prox_keeps_shape(self, penalty):
        B = np.random.RandomState(0).randn(4, 2)
        assert penalty.prox(B, np.ones(8) * 0.1).shape == (4, 2)

    def test_restrict(self, penalty):
        sub = penalty.restrict(np.array([0, 2]))
        assert isinstance(sub, SLOPE)
        assert sub.n_weights == 4

    def test_check_weights_rejects_wrong_length(self, penalty):
        with pytest.raises(ConfigurationError, match="needs 8 weights"):
            penalty.check_weights(np.ones(3))

    def test_dual_norm(self):
        penalty = SLOPE(3)
        G = np.array([[3.0], [-1.0], [2.0]])
        w = np.array([3.0, 2.0, 1.0])
        # cumsums: (3, 5, 6) / (3, 5, 6)
        assert penalty.dual_norm(G, w) == pytest.approx(1.0)
        assert penalty.dual_norm(G, 0.5 * w) == pytest.approx(2.0)

    def test_dual_norm_infinite_with_zero_weights(self):
        penalty = SLOPE(2)
        assert penalty.dual_norm(np.array([[1.0], [0.0]]), np.zeros(2)) == np.inf

    def test_infeasibility(self):
        penalty = SLOPE(3)
        G = np.array([[3.0], [-1.0], [2.0]])
        assert penalty.infeasibility(G, np.array([3.0, 2.0, 1.0])) == 0.0
        assert penalty.infeasibility(G, np.array([2.0, 2.0, 1.0])) == pytest.approx(1.0)

    def test_kkt_check_flags_violators(self):
        penalty = SLOPE(4)
        G = np.array([[0.1], [5.0], [0.2], [0.3]])
        w = np.array([1.0, 0.8, 0.6, 0.4])
        np.testing.assert_array_equal(penalty.kkt_check(G, np.zeros((4, 1)), w), [1])

    def test_kkt_check_clean(self):
        penalty = SLOPE(3)
        G = np.array([[0.5], [0.1], [0.2]])
        w = np.array([1.0, 0.8, 0.6])
        assert penalty.kkt_check(G, np.zeros((3, 1)), w).shape == (0,)

    def test_kkt_tolerance_is_relative_to_largest_weight(self):
        penalty = SLOPE(2)
        w = np.array([1.0, 0.5])
        G = np.array([[0.1], [1.0 + 5e-3]])
        assert penalty.kkt_check(G, np.zeros((2, 1)), w, tol=1e-2).shape == (0,)
        np.testing.assert_array_equal(
            penalty.kkt_check(G, np.zeros((2, 1)), w, tol=1e-3), [1]
        )
        # Same verdict with every magnitude scaled up
        scaled = penalty.kkt_check(1e4 * G, np.zeros((2, 1)), 1e4 * w, tol=1e-2)
        assert scaled.shape == (0,)


# ──────────────────────────────────────────────────────────────────────
# Group SLOPE
# ──────────────────────────────────────────────────────────────────────

class TestGroupSLOPE:

    @pytest.fixture
    def penalty(self):
        return GroupSLOPE(n_features=5, n_targets=1, groups=["a", "a", "b", "c", "c"])

    def test_requires_groups(self):
        with pytest.raises(ConfigurationError, match="groups"):
            GroupSLOPE(3)

    def test_group_length_checked(self):
        with pytest.raises(ConfigurationError, match="one label per feature"):
            GroupSLOPE(3, groups=[0, 1])

    def test_n_weights_is_number_of_groups(self, penalty):
        assert penalty.n_weights == 3

    def test_magnitudes_are_group_norms(self, penalty):
        B = np.array([[3.0], [4.0], [1.0], [0.0], [0.0]])
        np.testing.assert_allclose(penalty.magnitudes(B), [5.0, 1.0, 0.0])

    def test_complete_expands_to_groups(self, penalty):
        np.testing.assert_array_equal(penalty.complete(np.array([1, 3])), [0, 1, 3, 4])

    def test_prox_shrinks_group_norms(self, penalty):
        B = np.array([[3.0], [4.0], [1.0], [0.0], [0.0]])
        out = penalty.prox(B, np.array([1.0, 0.5, 0.5]))
        # norms (5, 1, 0) -> (4, 0.5, 0)
        np.testing.assert_allclose(penalty.magnitudes(out), [4.0, 0.5, 0.0])
        np.testing.assert_allclose(out[:2, 0] / np.linalg.norm(out[:2, 0]), [0.6, 0.8])

    def test_prox_single_member_groups_match_slope(self):
        rng = np.random.RandomState(42)
        B = rng.randn(6, 1)
        w = np.sort(rng.rand(6))[::-1]
        grouped = GroupSLOPE(6, groups=np.arange(6)).prox(B, w)
        np.testing.assert_allclose(grouped, SLOPE(6).prox(B, w))

    def test_kkt_check_returns_whole_groups(self, penalty):
        G = np.array([[0.0], [0.0], [0.1], [3.0], [0.0]])
        w = np.array([1.0, 0.5, 0.2])
        np.testing.assert_array_equal(penalty.kkt_check(G, np.zeros((5, 1)), w), [3, 4])

    def test_restrict_keeps_labels(self, penalty):
        sub = penalty.restrict(np.array([0, 1, 2]))
        assert sub.n_weights == 2
        np.testing.assert_array_equal(sub.groups, ["a", "a", "b"])


# ──────────────────────────────────────────────────────────────────────
# Registry
# ──────────────────────────────────────────────────────────────────────

class TestRegistry:

    def test_builtins(self):
        assert {"slope", "group_slope"} <= set(list_penalties())

    def test_get_penalty(self):
        penalty = get_penalty("slope", 3, 2)
        assert isinstance(penalty, SLOPE)
        assert penalty.n_weights == 6

    def test_get_group_penalty(self):
        penalty = get_penalty("group_slope", 4, groups=[0, 0, 1, 1])
        assert penalty.n_weights == 2

    def test_unknown_penalty(self):
        with pytest.raises(ConfigurationError, match="Unknown penalty"):
            get_penalty("elastic_net", 3)

    def test_register_non_penalty(self):
        with pytest.raises(TypeError, match="not a BasePenalty"):
            register_penalty("bad", int)

    def test_register_custom(self):
        class _Custom(SLOPE):
            pass

        register_penalty("_test_custom", _Custom)
        assert isinstance(get_penalty("_test_custom", 2), BasePenalty)
