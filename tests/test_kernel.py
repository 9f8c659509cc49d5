"""
Tests for the kernel: DOF numbering, assembly, simplification and solve.
"""

import numpy as np
import pytest

from stringer_panel.kernel import (
    DOFManager,
    DOF_SPM,
    MechanismError,
    add_nodal_load,
    apply_constraints,
    assemble_global_F,
    assemble_global_K,
    coerce_zero,
    factorize,
    simplify_internal_nodes,
    solve_simplified,
)


class TestDOFManager:

    def test_node_numbers_start_at_one(self):
        assert DOF_SPM.idx(1, 0) == 0
        assert DOF_SPM.idx(1, 1) == 1
        assert DOF_SPM.idx(4, 0) == 6
        assert DOF_SPM.node_dofs(3) == [4, 5]

    def test_element_dof_map_follows_grips(self):
        assert DOF_SPM.element_dof_map([1, 2, 3]) == [0, 1, 2, 3, 4, 5]
        assert DOF_SPM.element_dof_map([2, 6, 8, 4]) == [2, 3, 10, 11, 14, 15, 6, 7]

    def test_node_of_inverts_idx(self):
        for node in range(1, 6):
            for local in range(2):
                assert DOF_SPM.node_of(DOF_SPM.idx(node, local)) == (node, local)

    def test_node_below_first_raises(self):
        with pytest.raises(IndexError):
            DOF_SPM.idx(0, 0)

    def test_ndof(self):
        assert DOFManager().ndof(7) == 14


def test_assembly_sums_overlapping_dofs():
    """
    Two 2x2 springs sharing DOF 1 must add up on K[1, 1].
    """
    k = np.array([[1.0, -1.0], [-1.0, 1.0]])
    K = assemble_global_K(3, [([0, 1], k), ([1, 2], 2 * k)])

    expected = np.array([
        [1.0, -1.0, 0.0],
        [-1.0, 3.0, -2.0],
        [0.0, -2.0, 2.0],
    ])
    np.testing.assert_allclose(K, expected)


def test_assemble_force_vector_and_nodal_load():
    F = assemble_global_F(4, [([0, 1], np.array([1.0, 2.0])), ([1, 3], np.array([3.0, 4.0]))])
    np.testing.assert_allclose(F, [1.0, 5.0, 0.0, 4.0])

    add_nodal_load(F, 2, [10.0, -10.0])
    np.testing.assert_allclose(F, [1.0, 5.0, 10.0, -6.0])


def test_coerce_zero_returns_copy():
    A = np.array([[1.0, 1e-12], [-5e-10, 2.0]])
    B = coerce_zero(A)

    assert B[0, 1] == 0.0
    assert B[1, 0] == 0.0
    assert A[0, 1] == 1e-12


def test_boundary_simplification_is_idempotent():
    """
    WHAT IS THIS TEST?
    ==================
    Simplifying a system for its supports twice must give exactly the
    same system as doing it once, and must not touch the inputs.
    """
    rng = np.random.default_rng(0)
    M = rng.normal(size=(6, 6))
    K = M @ M.T + 6 * np.eye(6)
    f = rng.normal(size=6)
    K_orig, f_orig = K.copy(), f.copy()

    K1, f1 = apply_constraints(K, f, [0, 3])
    K2, f2 = apply_constraints(K1, f1, [0, 3])

    np.testing.assert_array_equal(K1, K2)
    np.testing.assert_array_equal(f1, f2)
    np.testing.assert_array_equal(K, K_orig)
    np.testing.assert_array_equal(f, f_orig)

    for i in (0, 3):
        assert K1[i, i] == 1.0
        assert f1[i] == 0.0
        assert np.count_nonzero(K1[i, :]) == 1
        assert np.count_nonzero(K1[:, i]) == 1


def test_internal_node_simplification_only_hits_empty_rows():
    K = np.diag([1.0, 0.0, 2.0, 0.0])
    f = np.array([1.0, 0.0, 1.0, 0.0])

    K_s, f_s = simplify_internal_nodes(K, f, internal_dofs=[1, 2, 3])

    assert K_s[1, 1] == 1.0
    assert K_s[3, 3] == 1.0
    # DOF 2 has stiffness and stays as it was
    assert K_s[2, 2] == 2.0
    assert f_s[2] == 1.0


def test_solve_constrained_dofs_come_back_zero():
    K = np.array([
        [2.0, -1.0, 0.0],
        [-1.0, 2.0, -1.0],
        [0.0, -1.0, 1.0],
    ])
    f = np.array([0.0, 0.0, 1.0])
    K_s, f_s = apply_constraints(K, f, [0])

    u = solve_simplified(K_s, f_s)

    assert u[0] == 0.0
    np.testing.assert_allclose(u, [0.0, 1.0, 2.0])


def test_empty_row_raises_mechanism_error_naming_node():
    K = np.diag([1.0, 0.0, 1.0])

    with pytest.raises(MechanismError) as excinfo:
        factorize(K)

    assert excinfo.value.dof == 1
    assert excinfo.value.node == 1
    assert "node 1, uy" in str(excinfo.value)


def test_singular_matrix_raises_mechanism_error():
    K = np.array([[1.0, -1.0], [-1.0, 1.0]])

    with pytest.raises(MechanismError) as excinfo:
        factorize(K)

    assert excinfo.value.dof in (0, 1)
    assert excinfo.value.node == 1
