# stringer_panel/stringer.py
"""
STRINGER: 3-Node Bar Element of the Stringer-Panel Model
========================================================

PURPOSE:
--------
A stringer joins a start, mid and end grip along a straight axis and only
carries axial force. Locally it has three axial displacements
(u1, u2, u3), which the flexibility formulation reduces to two
generalized stresses N1, N3 and two generalized strains e1, e3:

    e = B u_local,      B = [[-1, 1, 0],
                             [ 0,-1, 1]]

    f_local = [-N1, N1 - N3, N3]

Linear stringers use the closed-form local stiffness
(t1/L) [[4,-6,2],[-6,12,-6],[2,-6,4]]. Nonlinear stringers thread a
``StringerState`` through :func:`determine_state` every iteration and
commit it with ``results()`` once the load step converges.

DOF ORDER (global):
-------------------
    [u1x, u1y, u2x, u2y, u3x, u3y]
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from .kernel.dof import DOF_SPM
from .materials import ConcreteParameters, StringerReinforcement
from .stringer_laws import ClassicLaw, MC2010Law, MCFTLaw, StringerLaw

logger = logging.getLogger(__name__)

B_MATRIX = np.array([
    [-1.0, 1.0, 0.0],
    [0.0, -1.0, 1.0],
])


class StringerBehavior(Enum):
    LINEAR = "Linear"
    NONLINEAR_CLASSIC = "NonLinearClassic"
    NONLINEAR_MC2010 = "NonLinearMC2010"
    NONLINEAR_MCFT = "NonLinearMCFT"

    @property
    def is_linear(self) -> bool:
        return self is StringerBehavior.LINEAR


LAW_CLASSES = {
    StringerBehavior.NONLINEAR_CLASSIC: ClassicLaw,
    StringerBehavior.NONLINEAR_MC2010: MC2010Law,
    StringerBehavior.NONLINEAR_MCFT: MCFTLaw,
}


class ForceState(Enum):
    UNLOADED = "Unloaded"
    PURE_TENSION = "PureTension"
    PURE_COMPRESSION = "PureCompression"
    COMBINED = "Combined"


@dataclass(frozen=True)
class StringerSection:
    """Rectangular cross-section with optional longitudinal bars."""
    width: float
    height: float
    reinforcement: Optional[StringerReinforcement] = None

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class StringerState:
    """
    Generalized state of a nonlinear stringer.

    N1, N3: normal forces at the ends (tension positive)
    e1, e3: generalized strains (elongations of each half)
    F: 2x2 flexibility matrix
    """
    N1: float = 0.0
    N3: float = 0.0
    e1: float = 0.0
    e3: float = 0.0
    F: np.ndarray = field(default=None, compare=False)

    @property
    def generalized_stresses(self) -> Tuple[float, float]:
        return self.N1, self.N3

    @property
    def generalized_strains(self) -> Tuple[float, float]:
        return self.e1, self.e3


def initial_flexibility(t1: float, length: float) -> np.ndarray:
    """Elastic flexibility (L / 3 t1) [[1, 1/2], [1/2, 1]]."""
    F11 = length / (3 * t1)
    return np.array([
        [F11, F11 / 2],
        [F11 / 2, F11],
    ])


def initial_state(law: StringerLaw, length: float) -> StringerState:
    return StringerState(F=initial_flexibility(law.t1, length))


def integrate(law: StringerLaw, length: float, N1: float, N3: float) -> Tuple[float, float, np.ndarray]:
    """
    Generalized strains and flexibility for end forces (N1, N3).

    The normal force varies linearly, sampled at N1, (2N1+N3)/3,
    (N1+2N3)/3 and N3; the sample strains e0..e3 and flexibilities
    d0..d3 are integrated with cubic-consistent weights.
    """
    samples = (N1, (2 * N1 + N3) / 3, (N1 + 2 * N3) / 3, N3)
    e, d = zip(*(law.strain(N) for N in samples))

    e1 = length * (3 * e[0] + 6 * e[1] + 3 * e[2]) / 24
    e3 = length * (3 * e[1] + 6 * e[2] + 3 * e[3]) / 24

    F11 = length * (3 * d[0] + 4 * d[1] + d[2]) / 24
    F12 = length * (d[1] + d[2]) / 12
    F22 = length * (d[1] + 4 * d[2] + 3 * d[3]) / 24

    return e1, e3, np.array([[F11, F12], [F12, F22]])


def determine_state(
    law: StringerLaw,
    length: float,
    previous: StringerState,
    local_displacements: np.ndarray,
    substeps: int = 5
) -> StringerState:
    """
    New stringer state for trial local displacements.

    The generalized strain increment from ``previous`` is split into
    ``substeps`` equal parts; each part updates (N1, N3) with the
    flexibility at the current forces (Cramer's rule on the 2x2 system).
    Forces are clamped into [Nt, Nyr] after the last sub-step only.

    Args:
        law: Scalar material law of the stringer
        length: Stringer length
        previous: State of the previous iteration
        local_displacements: Axial displacements (u1, u2, u3)
        substeps: Number of sub-steps

    Returns:
        StringerState holding the new forces, the target strains and
        the flexibility at the final forces
    """
    e1, e3 = B_MATRIX @ np.asarray(local_displacements, dtype=float)

    de1 = (e1 - previous.e1) / substeps
    de3 = (e3 - previous.e3) / substeps

    N1, N3 = previous.N1, previous.N3
    for _ in range(substeps):
        _, _, F = integrate(law, length, N1, N3)
        det = F[0, 0] * F[1, 1] - F[0, 1] * F[1, 0]
        N1 += (F[1, 1] * de1 - F[0, 1] * de3) / det
        N3 += (-F[1, 0] * de1 + F[0, 0] * de3) / det

    Nt, Nyr = law.plastic_limits
    N1 = min(max(N1, Nt), Nyr)
    N3 = min(max(N3, Nt), Nyr)

    _, _, F = integrate(law, length, N1, N3)

    return StringerState(N1=N1, N3=N3, e1=e1, e3=e3, F=F)


class Stringer:
    """
    Stringer element.

    Args:
        number: Stringer number
        grips: Node numbers (start, mid, end), ordered along the axis
        start, end: (x, y) coordinates of the start and end grips
        section: Cross-section
        concrete: Concrete parameters
        behavior: Linear or one of the nonlinear laws
    """

    def __init__(
        self,
        number: int,
        grips: List[int],
        start: Tuple[float, float],
        end: Tuple[float, float],
        section: StringerSection,
        concrete: ConcreteParameters,
        behavior: StringerBehavior = StringerBehavior.LINEAR
    ):
        self.number = number
        self.grips = list(grips)
        self.start = tuple(start)
        self.end = tuple(end)
        self.section = section
        self.concrete = concrete
        self.behavior = behavior

        if len(self.grips) != 3 or len(set(self.grips)) != 3:
            raise ValueError(f"Stringer {number} needs three distinct grips, got {grips}.")

        dx = self.end[0] - self.start[0]
        dy = self.end[1] - self.start[1]
        self.length = float(np.hypot(dx, dy))
        if self.length <= 0.0:
            raise ValueError(f"Stringer {number} has zero length.")
        if section.width <= 0 or section.height <= 0:
            raise ValueError(f"Stringer {number} needs positive section dimensions.")

        self.angle = math.atan2(dy, dx)
        self.direction_cosines = (dx / self.length, dy / self.length)

        self.law = None
        if not behavior.is_linear:
            self.law = LAW_CLASSES[behavior](concrete, section.area, section.reinforcement)

        self.transformation = self._transformation()
        self.displacements = np.zeros(6)
        self.state = self.initial_state()
        self.committed = self.state

    # Geometry and linear stiffness

    @property
    def dof_index(self) -> List[int]:
        return DOF_SPM.element_dof_map(self.grips)

    @property
    def t1(self) -> float:
        """Axial stiffness of the transformed section, Ec Ac + Es As."""
        reinforcement = self.section.reinforcement
        if reinforcement is None:
            return self.concrete.Ec * self.section.area
        Ac = self.section.area - reinforcement.area
        return self.concrete.Ec * Ac + reinforcement.stiffness

    def _transformation(self) -> np.ndarray:
        """3x6 projection of global grip displacements on the stringer axis."""
        l, m = self.direction_cosines
        return np.array([
            [l, m, 0, 0, 0, 0],
            [0, 0, l, m, 0, 0],
            [0, 0, 0, 0, l, m],
        ], dtype=float)

    def initial_state(self) -> Optional[StringerState]:
        if self.law is None:
            return None
        return initial_state(self.law, self.length)

    def local_stiffness(self) -> np.ndarray:
        """
        3x3 local stiffness.

        Linear: (t1/L)[[4,-6,2],[-6,12,-6],[2,-6,4]].
        Nonlinear: B^T F^-1 B with the committed flexibility.
        """
        if self.law is None:
            return self.t1 / self.length * np.array([
                [4.0, -6.0, 2.0],
                [-6.0, 12.0, -6.0],
                [2.0, -6.0, 4.0],
            ])
        return B_MATRIX.T @ np.linalg.inv(self.committed.F) @ B_MATRIX

    def global_stiffness(self) -> np.ndarray:
        T = self.transformation
        return T.T @ self.local_stiffness() @ T

    # State determination

    def set_displacements(self, u: np.ndarray) -> None:
        """Gather this stringer's 6 displacements from the global vector."""
        self.displacements = np.asarray(u, dtype=float)[self.dof_index]

    @property
    def local_displacements(self) -> np.ndarray:
        return self.transformation @ self.displacements

    def analysis(self, u: np.ndarray, substeps: int = 5) -> None:
        """Trial state for the global displacements u."""
        self.set_displacements(u)
        if self.law is not None:
            self.state = determine_state(self.law, self.length, self.state, self.local_displacements, substeps)

    def results(self) -> None:
        """Commit the trial state of a converged load step."""
        self.committed = self.state

    # Forces

    @property
    def local_forces(self) -> np.ndarray:
        """Axial forces at the grips, local axis."""
        if self.law is None:
            fl = self.local_stiffness() @ self.local_displacements
            fl[np.abs(fl) < 1e-3] = 0.0
            return fl
        N1, N3 = self.state.generalized_stresses
        return np.array([-N1, N1 - N3, N3])

    @property
    def global_forces(self) -> np.ndarray:
        return self.transformation.T @ self.local_forces

    @property
    def normal_forces(self) -> Tuple[float, float]:
        """(N1, N3), tension positive."""
        f = self.local_forces
        return -f[0], f[2]

    @property
    def max_force(self) -> float:
        return float(np.max(np.abs(self.local_forces)))

    @property
    def force_state(self) -> ForceState:
        N1, N3 = self.normal_forces
        if N1 == 0 and N3 == 0:
            return ForceState.UNLOADED
        if N1 >= 0 and N3 >= 0:
            return ForceState.PURE_TENSION
        if N1 <= 0 and N3 <= 0:
            return ForceState.PURE_COMPRESSION
        return ForceState.COMBINED

    # Plastic strains

    def _plastic_strain(self, e: float) -> float:
        reinforcement = self.section.reinforcement
        ey = reinforcement.steel.yield_strain if reinforcement is not None else math.inf
        ec = self.concrete.ec

        if e > ey:
            return self.length / 8 * (e - ey)
        if e < ec:
            return self.length / 8 * (e - ec)
        return 0.0

    def plastic_generalized_strains(self) -> Tuple[float, float]:
        """
        Plastic part (ep1, ep3) of the generalized strains.

        A generalized strain beyond the steel yield strain ey (tension) or
        the concrete peak strain ec (compression) leaves L/8 (e - ey) or
        L/8 (e - ec). Zero for linear stringers.
        """
        if self.law is None:
            return 0.0, 0.0
        e1, e3 = self.state.generalized_strains
        return self._plastic_strain(e1), self._plastic_strain(e3)

    @property
    def max_plastic_strain(self) -> Tuple[float, float]:
        """
        Admissible plastic strains (eput, epuc) in tension and compression.

            eput = 0.3 esu L
            epuc = (ecu - max(ec, -ey)) min(w, h)
        """
        reinforcement = self.section.reinforcement
        ec, ecu = self.concrete.ec, self.concrete.ecu

        if reinforcement is None:
            eput, et = 0.0, ec
        else:
            eput = 0.3 * reinforcement.steel.ultimate_strain * self.length
            et = max(ec, -reinforcement.steel.yield_strain)

        epuc = (ecu - et) * min(self.section.width, self.section.height)
        return eput, epuc

    def __repr__(self):
        return f"Stringer({self.number}, grips={self.grips}, L={self.length:.1f}, {self.behavior.value})"
