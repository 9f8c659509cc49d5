# stringer_panel/kernel - DOF bookkeeping, assembly and solve
"""
KERNEL: ASSEMBLY AND SOLVE FOR STRINGER-PANEL MODELS
====================================================

Element-agnostic plumbing shared by the linear and nonlinear drivers:
- node number -> global DOF mapping (2 DOFs per node, nodes from 1)
- scatter-add of element stiffness matrices and force vectors
- boundary and internal-node simplification
- dense direct solve with mechanism detection
"""

from .dof import DOFManager, DOF_SPM
from .assemble import (
    assemble_global_K,
    assemble_global_F,
    add_nodal_load,
    apply_constraints,
    coerce_zero,
    simplify_internal_nodes,
)
from .solve import (
    MechanismError,
    ConvergenceError,
    factorize,
    solve_factorized,
    solve_simplified,
)

__all__ = [
    'DOFManager', 'DOF_SPM',
    'assemble_global_K', 'assemble_global_F', 'add_nodal_load',
    'apply_constraints', 'coerce_zero', 'simplify_internal_nodes',
    'MechanismError', 'ConvergenceError',
    'factorize', 'solve_factorized', 'solve_simplified',
]
