# stringer_panel/panel.py
"""
PANEL: Quadrilateral Shear Element of the Stringer-Panel Model
==============================================================

PURPOSE:
--------
A panel is bounded by four vertices (counter-clockwise, edges 0-1, 1-2,
2-3, 3-0) and connects to the model at four grips, the mid nodes of its
edges. DOF order follows the grips:

    [g0x, g0y, g1x, g1y, g2x, g2y, g3x, g3y]

LINEAR PANELS:
--------------
Constant shear flow. Only the displacement of each grip along its edge
matters, so a 4x8 matrix T projects global displacements on the edges
and the 4x4 local stiffness is closed-form (rectangular or general).

NONLINEAR PANELS:
-----------------
Four membrane integration points. Geometry enters through the offsets

    a = (x1 + x2 - x0 - x3) / 2      b = (y2 + y3 - y0 - y1) / 2
    c = (x2 + x3 - x0 - x1) / 2      d = (y1 + y2 - y0 - y3) / 2

which build the strain matrix BA (12x8), the equilibrium matrix Q (8x8)
and the stress-resultant matrices Pc, Ps (8x12). Pc shortens edges that
end at a stringer mid node by half the stringer height.

    strains   = BA u
    forces    = Q (Pc sigma_c + Ps sigma_s)
    stiffness = Q Pc Dc0 BA + Q Ps Ds0 BA     (uncracked Dc0, Ds0)
"""

import logging
import math
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .kernel.dof import DOF_SPM
from .materials import ConcreteParameters, PanelReinforcement
from .membrane import DSFMMembrane, MCFTMembrane, MembraneLaw, MembraneState

logger = logging.getLogger(__name__)

RECTANGULAR_TOLERANCE = 1e-9
TANGENT_STEP = 2e-10


class PanelBehavior(Enum):
    LINEAR = "Linear"
    NONLINEAR_MCFT = "NonLinearMCFT"
    NONLINEAR_DSFM = "NonLinearDSFM"

    @property
    def is_linear(self) -> bool:
        return self is PanelBehavior.LINEAR


def _angle_difference(a: float, b: float) -> float:
    """b - a wrapped to [0, 2 pi)."""
    return (b - a) % (2 * math.pi)


class Panel:
    """
    Panel element.

    Args:
        number: Panel number
        grips: Node numbers of the edge mid nodes, edge 0 to edge 3
        vertices: Four (x, y) vertices, counter-clockwise
        width: Panel thickness
        concrete: Concrete parameters
        reinforcement: Web reinforcement (its width is set to the panel's)
        behavior: Linear, MCFT or DSFM
        stringer_half_heights: Half height of the stringer whose mid node
            is grip i, zero where the grip is not a stringer mid node
    """

    def __init__(
        self,
        number: int,
        grips: Sequence[int],
        vertices: Sequence[Tuple[float, float]],
        width: float,
        concrete: ConcreteParameters,
        reinforcement: Optional[PanelReinforcement] = None,
        behavior: PanelBehavior = PanelBehavior.LINEAR,
        stringer_half_heights: Sequence[float] = (0.0, 0.0, 0.0, 0.0)
    ):
        self.number = number
        self.grips = list(grips)
        self.vertices = [tuple(map(float, v)) for v in vertices]
        self.width = width
        self.concrete = concrete
        self.behavior = behavior
        self.stringer_half_heights = np.asarray(stringer_half_heights, dtype=float)

        if len(self.grips) != 4 or len(set(self.grips)) != 4:
            raise ValueError(f"Panel {number} needs four distinct grips, got {grips}.")
        if len(self.vertices) != 4:
            raise ValueError(f"Panel {number} needs four vertices.")
        if width <= 0:
            raise ValueError(f"Panel {number} needs a positive width, got {width}.")

        reinforcement = reinforcement if reinforcement is not None else PanelReinforcement(width=width)
        self.reinforcement = replace(reinforcement, width=width)

        self.x = np.array([v[0] for v in self.vertices])
        self.y = np.array([v[1] for v in self.vertices])
        self.dimensions = self._dimensions()
        self.edge_lengths, self.edge_angles = self._edges()
        self._check_geometry()

        self.displacements = np.zeros(8)

        if behavior.is_linear:
            self.transformation = self._transformation()
            self._local_stiffness = self._linear_stiffness()
            self.law = None
        else:
            self.BA = self._ba_matrix()
            self.Q = self._q_matrix()
            self.Pc, self.Ps = self._p_matrices()
            self.law = self._membrane_law()
            self.points = [self.law.initial_state() for _ in range(4)]
            self.committed = list(self.points)
            Dc, Ds = self.material_stiffness(self.points)
            self._initial_stiffness = self.Q @ self.Pc @ Dc @ self.BA + self.Q @ self.Ps @ Ds @ self.BA

    # Geometry

    @property
    def dof_index(self) -> List[int]:
        return DOF_SPM.element_dof_map(self.grips)

    def _dimensions(self) -> Tuple[float, float, float, float]:
        x, y = self.x, self.y
        a = 0.5 * (x[1] + x[2] - x[0] - x[3])
        b = 0.5 * (y[2] + y[3] - y[0] - y[1])
        c = 0.5 * (x[2] + x[3] - x[0] - x[1])
        d = 0.5 * (y[1] + y[2] - y[0] - y[3])
        return a, b, c, d

    def _edges(self) -> Tuple[np.ndarray, np.ndarray]:
        lengths = np.zeros(4)
        angles = np.zeros(4)
        for i in range(4):
            j = (i + 1) % 4
            dx = self.x[j] - self.x[i]
            dy = self.y[j] - self.y[i]
            lengths[i] = math.hypot(dx, dy)
            angles[i] = math.atan2(dy, dx)
        return lengths, angles

    def _check_geometry(self) -> None:
        a, b, c, d = self.dimensions
        if np.any(self.edge_lengths <= 0):
            raise ValueError(f"Panel {self.number} has coincident vertices.")
        if a <= 0 or b <= 0 or abs(a * b - c * d) < 1e-12:
            raise ValueError(
                f"Panel {self.number} is degenerate or not ordered counter-clockwise "
                f"(a={a:.3f}, b={b:.3f}, c={c:.3f}, d={d:.3f})."
            )

    @property
    def reference_length(self) -> float:
        a, b, _, _ = self.dimensions
        return min(a, b)

    @property
    def center(self) -> Tuple[float, float]:
        return float(self.x.mean()), float(self.y.mean())

    @property
    def is_rectangular(self) -> bool:
        """Consecutive edges at 90 degrees (edges 0-1 and 2-3)."""
        ang2 = _angle_difference(self.edge_angles[0], self.edge_angles[1])
        ang4 = _angle_difference(self.edge_angles[2], self.edge_angles[3])
        return (abs(ang2 - math.pi / 2) < RECTANGULAR_TOLERANCE and
                abs(ang4 - math.pi / 2) < RECTANGULAR_TOLERANCE)

    # Linear panel

    @property
    def Gc(self) -> float:
        return self.concrete.Ec / (2 * (1 + self.concrete.nu))

    def _transformation(self) -> np.ndarray:
        """4x8 projection of grip displacements on the edge directions."""
        T = np.zeros((4, 8))
        for i, angle in enumerate(self.edge_angles):
            T[i, 2 * i] = math.cos(angle)
            T[i, 2 * i + 1] = math.sin(angle)
        return T

    def _linear_stiffness(self) -> np.ndarray:
        if self.is_rectangular:
            return self._rectangular_stiffness()
        return self._nonrectangular_stiffness()

    def _rectangular_stiffness(self) -> np.ndarray:
        a, b = self.edge_lengths[0], self.edge_lengths[1]
        a_b, b_a = a / b, b / a
        return self.Gc * self.width * np.array([
            [a_b, -1, a_b, -1],
            [-1, b_a, -1, b_a],
            [a_b, -1, a_b, -1],
            [-1, b_a, -1, b_a],
        ], dtype=float)

    def _nonrectangular_stiffness(self) -> np.ndarray:
        x, y = self.x, self.y
        a, b, c, d = self.dimensions
        l1, l2, l3, l4 = self.edge_lengths

        # Equilibrium parameters of each edge
        cs = [x[(i + 1) % 4] - x[i] for i in range(4)]
        ss = [y[(i + 1) % 4] - y[i] for i in range(4)]
        rs = [x[i] * y[(i + 1) % 4] - x[(i + 1) % 4] * y[i] for i in range(4)]

        # Kinematic parameters
        t1 = -b * cs[0] - c * ss[0]
        t2 = a * ss[1] + d * cs[1]
        t3 = b * cs[2] + c * ss[2]
        t4 = -a * ss[3] - d * cs[3]

        k = []
        for i in range(4):
            cols = [j for j in range(4) if j != i]
            M = np.array([[cs[j] for j in cols], [ss[j] for j in cols], [rs[j] for j in cols]])
            k.append(np.linalg.det(M))
        k1, k2, k3, k4 = k

        kf = k1 + k2 + k3 + k4
        ku = -t1 * k1 + t2 * k2 - t3 * k3 + t4 * k4
        D = 16 * self.Gc * self.width / (kf * ku)

        B = np.array([-k1 * l1, k2 * l2, -k3 * l3, k4 * l4])
        return D * np.outer(B, B)

    # Nonlinear panel matrices

    def _membrane_law(self) -> MembraneLaw:
        if self.behavior is PanelBehavior.NONLINEAR_MCFT:
            return MCFTMembrane(self.concrete, self.reinforcement)
        return DSFMMembrane(self.concrete, self.reinforcement, self.reference_length)

    def _ba_matrix(self) -> np.ndarray:
        a, b, c, d = self.dimensions

        t1 = a * b - c * d
        t2 = 0.5 * (a * a - c * c) + b * b - d * d
        t3 = 0.5 * (b * b - d * d) + a * a - c * c

        a_t1, b_t1, c_t1, d_t1 = a / t1, b / t1, c / t1, d / t1
        a_t2, b_t3 = a / t2, b / t3
        a_2t1, b_2t1, c_2t1, d_2t1 = a_t1 / 2, b_t1 / 2, c_t1 / 2, d_t1 / 2

        A = np.array([
            [d_t1, 0, b_t1, 0, -d_t1, 0, -b_t1, 0],
            [0, -a_t1, 0, -c_t1, 0, a_t1, 0, c_t1],
            [-a_2t1, d_2t1, -c_2t1, b_2t1, a_2t1, -d_2t1, c_2t1, -b_2t1],
            [-a_t2, 0, a_t2, 0, -a_t2, 0, a_t2, 0],
            [0, b_t3, 0, -b_t3, 0, b_t3, 0, -b_t3],
        ])

        c_a, d_b = c / a, d / b
        a2_b, b2_a = 2 * a / b, 2 * b / a
        c2_b, d2_a = 2 * c / b, 2 * d / a

        B = np.array([
            [1, 0, 0, -c_a, 0],
            [0, 1, 0, 0, -1],
            [0, 0, 2, b2_a, c2_b],
            [1, 0, 0, 1, 0],
            [0, 1, 0, 0, d_b],
            [0, 0, 2, -d2_a, -a2_b],
            [1, 0, 0, c_a, 0],
            [0, 1, 0, 0, 1],
            [0, 0, 2, -b2_a, -c2_b],
            [1, 0, 0, -1, 0],
            [0, 1, 0, 0, -d_b],
            [0, 0, 2, d2_a, a2_b],
        ])

        return B @ A

    def _q_matrix(self) -> np.ndarray:
        a, b, c, d = self.dimensions
        t4 = a * a + b * b

        a2, b2 = a * a, b * b
        ab, bc, ad = a * b, b * c, a * d
        bd_t4, mbd_t4 = b * d - t4, -b * d - t4
        ac_t4, mac_t4 = a * c - t4, -a * c - t4
        t4_2 = 2 * t4

        return 1 / t4_2 * np.array([
            [a2, bc, bd_t4, -ab, -a2, -bc, mbd_t4, ab],
            [0, t4_2, 0, 0, 0, 0, 0, 0],
            [0, 0, t4_2, 0, 0, 0, 0, 0],
            [-ab, ac_t4, ad, b2, ab, mac_t4, -ad, -b2],
            [-a2, -bc, mbd_t4, ab, a2, bc, bd_t4, -ab],
            [0, 0, 0, 0, 0, t4_2, 0, 0],
            [0, 0, 0, 0, 0, 0, t4_2, 0],
            [ab, mac_t4, -ad, -b2, -ab, ac_t4, ad, b2],
        ])

    def _p_matrices(self) -> Tuple[np.ndarray, np.ndarray]:
        x, y = self.x, self.y
        t = self.width
        c = self.stringer_half_heights

        Pc = np.zeros((8, 12))
        Ps = np.zeros((8, 12))

        Pc[0, 0] = Pc[1, 2] = t * (y[1] - y[0])
        Pc[0, 2] = t * (x[0] - x[1])
        Pc[1, 1] = t * (x[0] - x[1] + c[1] + c[3])

        Pc[2, 3] = t * (y[2] - y[1] - c[2] - c[0])
        Pc[2, 5] = Pc[3, 4] = t * (x[1] - x[2])
        Pc[3, 5] = t * (y[2] - y[1])

        Pc[4, 6] = Pc[5, 8] = t * (y[3] - y[2])
        Pc[4, 8] = t * (x[2] - x[3])
        Pc[5, 7] = t * (x[2] - x[3] - c[1] - c[3])

        Pc[6, 9] = t * (y[0] - y[3] + c[0] + c[2])
        Pc[6, 11] = Pc[7, 10] = t * (x[3] - x[0])
        Pc[7, 11] = t * (y[0] - y[3])

        Ps[0, 0] = Pc[0, 0]
        Ps[1, 1] = t * (x[0] - x[1])
        Ps[2, 3] = t * (y[2] - y[1])
        Ps[3, 4] = Pc[3, 4]
        Ps[4, 6] = Pc[4, 6]
        Ps[5, 7] = t * (x[2] - x[3])
        Ps[6, 9] = t * (y[0] - y[3])
        Ps[7, 10] = Pc[7, 10]

        return Pc, Ps

    @staticmethod
    def _block_diagonal(blocks: Sequence[np.ndarray]) -> np.ndarray:
        D = np.zeros((12, 12))
        for i, block in enumerate(blocks):
            D[3 * i:3 * i + 3, 3 * i:3 * i + 3] = block
        return D

    def material_stiffness(self, states: Sequence[MembraneState]) -> Tuple[np.ndarray, np.ndarray]:
        """12x12 block-diagonal (Dc, Ds) of the given integration point states."""
        return (
            self._block_diagonal([s.Dc for s in states]),
            self._block_diagonal([s.Ds for s in states]),
        )

    def stress_vectors(self, states: Optional[Sequence[MembraneState]] = None) -> Tuple[np.ndarray, np.ndarray]:
        """12-component concrete and reinforcement stress vectors."""
        states = self.points if states is None else states
        sigma_c = np.concatenate([s.concrete_stresses for s in states])
        sigma_s = np.concatenate([s.reinforcement_stresses for s in states])
        return sigma_c, sigma_s

    # Stiffness

    def local_stiffness(self) -> np.ndarray:
        """4x4 edge stiffness of a linear panel."""
        if self.law is not None:
            raise NotImplementedError("Nonlinear panels are formulated in global axes.")
        return self._local_stiffness

    def global_stiffness(self, tangent: bool = False) -> np.ndarray:
        """
        8x8 stiffness in global axes.

        Nonlinear panels iterate on the initial stiffness, or on the
        symmetric part of the tangent stiffness when ``tangent`` is set.
        Q P D BA is only symmetric for an isotropic D, so the cracked
        secant matrices never enter the global stiffness.
        """
        if self.law is None:
            T = self.transformation
            return T.T @ self._local_stiffness @ T
        if tangent:
            Kt = self.tangent_stiffness()
            return 0.5 * (Kt + Kt.T)
        return self.initial_stiffness()

    def initial_stiffness(self) -> np.ndarray:
        """Stiffness with the uncracked material matrices."""
        if self.law is None:
            return self.global_stiffness()
        return self._initial_stiffness

    def tangent_stiffness(self) -> np.ndarray:
        """
        Tangent stiffness by central differences of the nodal forces.

        Column i = (f(u + d e_i) - f(u - d e_i)) / 2d with d = 2e-10.
        The element state is not modified.
        """
        u = self.displacements
        K = np.zeros((8, 8))
        for i in range(8):
            ud = np.zeros(8)
            ud[i] = TANGENT_STEP
            f_plus = self._forces_from_states(self._trial_states(u + ud))
            f_minus = self._forces_from_states(self._trial_states(u - ud))
            K[:, i] = (f_plus - f_minus) / (2 * TANGENT_STEP)
        return K

    # State determination

    def set_displacements(self, u: np.ndarray) -> None:
        self.displacements = np.asarray(u, dtype=float)[self.dof_index]

    @property
    def strains(self) -> np.ndarray:
        """12-component strain vector (ex, ey, gxy at each point)."""
        return self.BA @ self.displacements

    def _trial_states(self, displacements: np.ndarray, load_step: int = 0) -> List[MembraneState]:
        e = self.BA @ displacements
        return [
            self.law.analysis(self.points[i], e[3 * i:3 * i + 3], load_step)
            for i in range(4)
        ]

    def analysis(self, u: np.ndarray, load_step: int = 0) -> None:
        """Trial state of the integration points for global displacements u."""
        self.set_displacements(u)
        if self.law is not None:
            self.points = self._trial_states(self.displacements, load_step)

    def results(self) -> None:
        """Commit the integration point states of a converged load step."""
        if self.law is not None:
            self.committed = list(self.points)

    @property
    def messages(self) -> List[str]:
        """Non-fatal messages of the integration points."""
        if self.law is None:
            return []
        return [f"point {i + 1}: {s.message}" for i, s in enumerate(self.points) if not s.equilibrium_reached]

    # Forces and stresses

    def _forces_from_states(self, states: Sequence[MembraneState]) -> np.ndarray:
        sigma_c, sigma_s = self.stress_vectors(states)
        return self.Q @ (self.Pc @ sigma_c + self.Ps @ sigma_s)

    @property
    def local_forces(self) -> np.ndarray:
        """Edge shear forces (linear) or nodal forces (nonlinear)."""
        if self.law is None:
            fl = self._local_stiffness @ (self.transformation @ self.displacements)
            fl[np.abs(fl) < 1e-6] = 0.0
            return fl
        return self._forces_from_states(self.points)

    @property
    def global_forces(self) -> np.ndarray:
        if self.law is None:
            return self.transformation.T @ self.local_forces
        return self.local_forces

    @property
    def max_force(self) -> float:
        return float(np.max(np.abs(self.local_forces)))

    @property
    def average_stresses(self) -> np.ndarray:
        """Average [sigma_x, sigma_y, tau_xy]."""
        if self.law is None:
            tau = self.local_forces / (self.edge_lengths * self.width)
            tau_avg = (-tau[0] + tau[1] - tau[2] + tau[3]) / 4
            return np.array([0.0, 0.0, tau_avg])
        sigma = np.array([s.stresses for s in self.points])
        return sigma.mean(axis=0)

    @property
    def principal_stresses(self) -> Tuple[np.ndarray, float]:
        """
        Principal stresses [sigma1, sigma2, 0] and the direction of sigma2.

        Linear panels use the equilibrium-plasticity truss model:
        sigma2 = -2|tau| for equal steel strengths, else
        -|tau| (r + 1/r) with r = sqrt(fyx / fyy); theta = pi/4 for
        tau <= 0, -pi/4 otherwise.
        """
        if self.law is None:
            return self._truss_principal_stresses()

        sx, sy, txy = self.average_stresses
        cen = 0.5 * (sx + sy)
        rad = math.sqrt(0.25 * (sx - sy) ** 2 + txy ** 2)
        theta1 = 0.5 * math.atan2(2 * txy, sx - sy)
        theta2 = theta1 - math.pi / 2
        if theta2 <= -math.pi / 2:
            theta2 += math.pi
        return np.array([cen + rad, cen - rad, 0.0]), theta2

    def _truss_principal_stresses(self) -> Tuple[np.ndarray, float]:
        tau = self.average_stresses[2]
        fyx, fyy = self.reinforcement.yield_stress

        if fyx == fyy:
            sig2 = -2 * abs(tau)
        else:
            r = math.sqrt(fyx / fyy)
            sig2 = -abs(tau) * (r + 1 / r)

        theta = math.pi / 4 if tau <= 0 else -math.pi / 4
        return np.array([0.0, sig2, 0.0]), theta

    def __repr__(self):
        return f"Panel({self.number}, grips={self.grips}, {self.behavior.value})"
