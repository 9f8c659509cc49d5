# stringer_panel/kernel/solve.py
"""Dense direct solve of simplified systems with mechanism detection."""

from typing import Optional, Tuple

import numpy as np
import scipy.linalg

from .dof import DOF_SPM, LOCAL_DOF_NAMES


class MechanismError(RuntimeError):
    """Raised when the simplified stiffness matrix is singular or ill-conditioned."""

    def __init__(self, message: str, dof: Optional[int] = None):
        self.dof = dof
        self.node = None
        if dof is not None:
            node, local = DOF_SPM.node_of(dof)
            self.node = node
            message = f"{message} Check DOF {dof} (node {node}, {LOCAL_DOF_NAMES[local]})."
        super().__init__(message)


class ConvergenceError(RuntimeError):
    """Raised when an iterative solution does not converge or produces NaN/Inf."""
    pass


def weakest_dof(K: np.ndarray) -> int:
    """
    DOF that makes K (closest to) rank deficient.

    Column-pivoted QR moves the most linearly dependent column last;
    the pivot at that position names the DOF.
    """
    _, _, perm = scipy.linalg.qr(K, pivoting=True, mode='economic')
    return int(perm[-1])


def factorize(
    K: np.ndarray,
    cond_limit: float = 1e14
) -> Tuple[np.ndarray, np.ndarray]:
    """
    LU-factorize a simplified stiffness matrix.

    Args:
        K: Simplified global stiffness matrix (ndof x ndof)
        cond_limit: Max condition number before raising MechanismError

    Returns:
        (lu, piv) as returned by scipy.linalg.lu_factor

    Raises:
        MechanismError: If a row is empty, K is singular or cond(K) > cond_limit
    """
    empty = np.flatnonzero(~np.any(K, axis=1))
    if empty.size:
        raise MechanismError("Ill-posed model: stiffness row is empty.", dof=int(empty[0]))

    if not np.all(np.isfinite(K)):
        raise MechanismError("Ill-posed model: stiffness matrix has NaN/Inf entries.")

    cond = np.linalg.cond(K)
    if not np.isfinite(cond) or cond > cond_limit:
        raise MechanismError(
            f"Ill-posed model: singular stiffness (cond={cond:.2e}, limit {cond_limit:.0e}).",
            dof=weakest_dof(K),
        )

    return scipy.linalg.lu_factor(K)


def solve_factorized(factor: Tuple[np.ndarray, np.ndarray], f: np.ndarray) -> np.ndarray:
    """Solve K u = f with a factor from :func:`factorize`."""
    return scipy.linalg.lu_solve(factor, f)


def solve_simplified(K: np.ndarray, f: np.ndarray, cond_limit: float = 1e14) -> np.ndarray:
    """
    Solve the simplified system K u = f in one shot.

    Constrained DOFs were given unit diagonals and zero loads by
    apply_constraints, so they come back as exactly zero.
    """
    return solve_factorized(factorize(K, cond_limit), f)
