# stringer_panel/kernel/assemble.py
"""
ASSEMBLY: Global Stiffness, Force Vectors and Their Simplification
=================================================================

PURPOSE:
--------
Scatter-add element contributions into dense global arrays, then make the
system solvable without resizing it:

1. Hygiene: entries smaller than 1e-9 in magnitude become exactly zero.
2. Boundary simplification: every constrained DOF i gets its row and
   column zeroed, a unit diagonal and a zero load, so the solve returns
   u[i] = 0 (Dirichlet elimination with unit diagonal).
3. Internal-node simplification: the mid node of a stringer has no
   stiffness perpendicular to the stringer axis unless a nonlinear panel
   reaches it. Such a DOF has an all-zero row and is eliminated the same
   way as a support.

Every function returns new arrays; the inputs are never modified, so
simplifying twice gives the same system as simplifying once.

USAGE:
------
    contributions = [(element.dof_index, element.global_stiffness()) for element in elements]
    K = coerce_zero(assemble_global_K(ndof, contributions))
    K_s, f_s = apply_constraints(K, f, constraints)
    K_s, f_s = simplify_internal_nodes(K_s, f_s, internal_dofs)
"""

import numpy as np
from typing import Iterable, List, Sequence, Tuple


def assemble_global_K(
    ndof: int,
    contributions: Iterable[Tuple[Sequence[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble the global stiffness matrix from element contributions.

    ALGORITHM:
    ----------
    K = zeros(ndof x ndof)
    for each element:
        K[dof_map[a], dof_map[b]] += ke[a, b]

    Overlapping DOFs are summed (physical superposition).

    Parameters:
    -----------
    ndof : int
        Total number of DOFs (2 x number of nodes)
    contributions : iterable of (dof_map, ke)
        dof_map: global DOF indices of the element (6 for a stringer,
        8 for a panel); ke: element stiffness in global axes,
        shape (len(dof_map), len(dof_map))

    Returns:
    --------
    np.ndarray
        Global stiffness matrix, shape (ndof, ndof)
    """
    K = np.zeros((ndof, ndof), dtype=float)

    for dof_map, ke in contributions:
        n_element_dofs = len(dof_map)

        assert ke.shape == (n_element_dofs, n_element_dofs), \
            f"Element ke shape {ke.shape} doesn't match dof_map length {n_element_dofs}"

        for a in range(n_element_dofs):
            ia = dof_map[a]
            for b in range(n_element_dofs):
                ib = dof_map[b]
                K[ia, ib] += ke[a, b]

    return K


def assemble_global_F(
    ndof: int,
    contributions: Iterable[Tuple[Sequence[int], np.ndarray]]
) -> np.ndarray:
    """
    Scatter-add element force vectors into a global vector.

    The nonlinear driver uses this to build the internal force vector
    from the forces each element recovers after its state determination.
    """
    F = np.zeros(ndof, dtype=float)

    for dof_map, fe in contributions:
        n_element_dofs = len(dof_map)

        assert fe.shape == (n_element_dofs,), \
            f"Element fe shape {fe.shape} doesn't match dof_map length {n_element_dofs}"

        for a in range(n_element_dofs):
            F[dof_map[a]] += fe[a]

    return F


def add_nodal_load(F: np.ndarray, node: int, load_vector: Sequence[float]) -> None:
    """
    Add a nodal load (Fx, Fy) to the global load vector in place.

    Node numbers start at 1, so node k writes F[2k-2] and F[2k-1].
    """
    base_dof = 2 * (node - 1)
    for i, val in enumerate(load_vector):
        F[base_dof + i] += val


def coerce_zero(A: np.ndarray, tol: float = 1e-9) -> np.ndarray:
    """Copy of ``A`` with every entry below ``tol`` in magnitude set to 0."""
    out = np.array(A, dtype=float, copy=True)
    out[np.abs(out) < tol] = 0.0
    return out


def apply_constraints(
    K: np.ndarray,
    f: np.ndarray,
    constraints: Iterable[int]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Boundary simplification of K and f for the constrained DOFs.

    For each constrained index i: row i and column i are zeroed,
    K[i, i] = 1 and f[i] = 0. The system keeps its size and the solve
    returns exactly zero displacement at i.

    Parameters:
    -----------
    K : np.ndarray
        Global stiffness matrix (ndof, ndof)
    f : np.ndarray
        Global force vector (ndof,)
    constraints : iterable of int
        Constrained global DOF indices

    Returns:
    --------
    (K_s, f_s) : Tuple[np.ndarray, np.ndarray]
        Simplified copies
    """
    K_s = np.array(K, dtype=float, copy=True)
    f_s = np.array(f, dtype=float, copy=True)

    for i in sorted(set(constraints)):
        K_s[i, :] = 0.0
        K_s[:, i] = 0.0
        K_s[i, i] = 1.0
        f_s[i] = 0.0

    return K_s, f_s


def zero_rows(K: np.ndarray, dofs: Iterable[int]) -> List[int]:
    """DOFs among ``dofs`` whose row of K is identically zero."""
    return [i for i in dofs if not np.any(K[i, :])]


def simplify_internal_nodes(
    K: np.ndarray,
    f: np.ndarray,
    internal_dofs: Iterable[int]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Eliminate internal-node DOFs that received no stiffness.

    An internal node is the mid node of a stringer. Only the DOFs whose
    assembled row is all zero are eliminated; a mid node reached by a
    nonlinear panel keeps both of its DOFs.
    """
    return apply_constraints(K, f, zero_rows(K, internal_dofs))
