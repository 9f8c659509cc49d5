# stringer_panel/kernel/dof.py
"""
DOF MANAGER: Node Number to Global Index Mapping
================================================

PURPOSE:
--------
Every node of a stringer-panel model carries two translational DOFs
(ux, uy). Nodes are numbered from 1, so node k owns the global rows and
columns:

    ux -> 2k - 2
    uy -> 2k - 1

Stringers map their 3 grips to 6 DOFs, panels their 4 grips to 8 DOFs.
The assembler only ever sees the flattened DOF lists produced here.

USAGE:
------
    dof = DOFManager()
    dof.node_dofs(3)               # -> [4, 5]
    dof.element_dof_map([1, 2, 3]) # -> [0, 1, 2, 3, 4, 5]
    dof.node_of(5)                 # -> (3, 1)  node 3, uy
"""

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class DOFManager:
    """
    Degree-of-freedom indexing for 2-D stringer-panel models.

    Attributes:
    -----------
    dof_per_node : int
        Number of DOFs per node (2: ux, uy)
    first_node : int
        Number of the first node (1 for the SPM numbering)

    Examples:
    ---------
    >>> dof = DOFManager()
    >>> dof.idx(1, 0)
    0
    >>> dof.idx(2, 1)
    3
    >>> dof.ndof(4)
    8
    """
    dof_per_node: int = 2
    first_node: int = 1

    def idx(self, node: int, local_dof: int) -> int:
        """
        Global DOF index of a node's local DOF.

        Parameters:
        -----------
        node : int
            Node number (starting at ``first_node``)
        local_dof : int
            0 = ux, 1 = uy

        Returns:
        --------
        int
            Zero-based row/column of the global matrices
        """
        if node < self.first_node:
            raise IndexError(f"Node number {node} is below {self.first_node}.")
        return self.dof_per_node * (node - self.first_node) + local_dof

    def ndof(self, n_nodes: int) -> int:
        """Total number of DOFs for ``n_nodes`` nodes."""
        return self.dof_per_node * n_nodes

    def node_dofs(self, node: int) -> List[int]:
        """
        All global DOF indices of one node.

        Examples:
        ---------
        >>> DOFManager().node_dofs(3)
        [4, 5]
        """
        base = self.idx(node, 0)
        return list(range(base, base + self.dof_per_node))

    def element_dof_map(self, grips: List[int]) -> List[int]:
        """
        Flattened DOF list of an element connecting ``grips``.

        The order follows the grips, so a stringer with grips [1, 2, 3]
        maps to [0, 1, 2, 3, 4, 5] and a panel with grips [2, 6, 8, 4]
        maps to [2, 3, 10, 11, 14, 15, 6, 7].
        """
        result = []
        for node in grips:
            result.extend(self.node_dofs(node))
        return result

    def node_of(self, dof: int) -> Tuple[int, int]:
        """
        Inverse mapping: (node number, local DOF) owning a global index.

        Used to report which node makes a stiffness matrix singular.
        """
        if dof < 0:
            raise IndexError(f"Negative DOF index {dof}.")
        node, local = divmod(dof, self.dof_per_node)
        return node + self.first_node, local


# The SPM numbering: 2 DOFs per node, nodes counted from 1
DOF_SPM = DOFManager()

LOCAL_DOF_NAMES = ('ux', 'uy')
