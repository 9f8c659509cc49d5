# stringer_panel/membrane.py
"""
MEMBRANE: Smeared-Crack Integration Point of a Panel
====================================================

PURPOSE:
--------
Each nonlinear panel evaluates four independent membrane points. A point
receives the strain vector (ex, ey, gxy) and returns a new immutable
``MembraneState``:

    1. principal strains (Mohr's circle) and the principal tensile angle
    2. concrete principal stresses from the uniaxial law at (e1, e2)
    3. smeared reinforcement stresses at the total strain
    4. cracked concrete:
         MCFT  crack check, f1 limited by equilibrium at the crack
         DSFM  crack equilibrium (brentq), crack slip, pseudo-prestress
    5. secant stiffness Dc = T^T diag(Ec1, Ec2, Gc) T and Ds

ANGLES:
-------
theta1 is the direction of the principal tensile strain, measured from
the x axis; theta2 = theta1 - pi/2 is the direction of the principal
compression. Concrete stresses follow

    sigma_c = T(theta1)^T [fc1, fc2, 0]

SIGN CONVENTION:
----------------
Tension positive, engineering shear strain gxy.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from .concrete import DSFMConcrete, MCFTConcrete
from .materials import ConcreteParameters, PanelReinforcement

logger = logging.getLogger(__name__)

PI_OVER_2 = math.pi / 2
PI_OVER_4 = math.pi / 4

CRACK_BRACKET = (1e-9, 0.01)
CRACK_XTOL = 1e-6
CRACK_MAXITER = 1000
ROTATION_LAG = math.radians(5)


def principal_strains(e: np.ndarray) -> Tuple[float, float]:
    """(e1, e2) from the centre and radius of Mohr's circle."""
    cen = 0.5 * (e[0] + e[1])
    rad = 0.5 * math.sqrt((e[1] - e[0]) ** 2 + e[2] ** 2)
    return cen + rad, cen - rad


def strain_angle(e: np.ndarray, e2: float) -> float:
    """
    Direction theta1 of the principal tensile strain.

    No strain: pi/4. No shear: 0, or pi/2 when ey is the larger strain.
    Equal normal strains with negative shear: -pi/4.
    """
    if not np.any(e):
        return PI_OVER_4
    if e[2] == 0:
        # theta1 must point along e1, the larger normal strain
        return 0.0 if e[0] >= e[1] else PI_OVER_2
    if e[0] == e[1] and e[2] < 0:
        return -PI_OVER_4
    return PI_OVER_2 - math.atan(2 * (e[0] - e2) / e[2])


def transformation_matrix(theta: float) -> np.ndarray:
    """Strain transformation from x-y to the 1-2 axes at angle theta."""
    cos, sin = math.cos(theta), math.sin(theta)
    cos2, sin2, cs = cos * cos, sin * sin, cos * sin
    return np.array([
        [cos2, sin2, cs],
        [sin2, cos2, -cs],
        [-2 * cs, 2 * cs, cos2 - sin2],
    ])


def concrete_stiffness(Ec1: float, Ec2: float, theta1: float) -> np.ndarray:
    """Secant concrete stiffness in x-y axes."""
    Gc = Ec1 * Ec2 / (Ec1 + Ec2) if Ec1 + Ec2 != 0 else 0.0
    T = transformation_matrix(theta1)
    return T.T @ np.diag([Ec1, Ec2, Gc]) @ T


def rotate_principal_stresses(fc1: float, fc2: float, theta1: float) -> np.ndarray:
    """[fcx, fcy, vcxy] from Mohr's circle of the principal stresses."""
    cen = 0.5 * (fc1 + fc2)
    rad = 0.5 * (fc1 - fc2)
    cos2, sin2 = math.cos(2 * theta1), math.sin(2 * theta1)
    return np.array([cen + rad * cos2, cen - rad * cos2, rad * sin2])


def _zero3() -> np.ndarray:
    return np.zeros(3)


@dataclass(frozen=True, eq=False)
class MembraneState:
    """Constitutive state of one integration point."""
    strains: np.ndarray = field(default_factory=_zero3)
    principal_strains: Tuple[float, float] = (0.0, 0.0)
    concrete_principal_strains: Tuple[float, float] = (0.0, 0.0)
    concrete_principal_stresses: Tuple[float, float] = (0.0, 0.0)
    theta1: float = PI_OVER_4
    concrete_stresses: np.ndarray = field(default_factory=_zero3)
    reinforcement_stresses: np.ndarray = field(default_factory=_zero3)
    Dc: Optional[np.ndarray] = None
    Ds: Optional[np.ndarray] = None
    slip_strains: np.ndarray = field(default_factory=_zero3)
    pseudo_prestress: np.ndarray = field(default_factory=_zero3)
    cracked: bool = False
    crack_angle: Optional[float] = None
    yield_on_crack: Tuple[bool, bool] = (False, False)
    equilibrium_reached: bool = True
    message: str = ""

    @property
    def theta2(self) -> float:
        """Direction of the principal compressive strain."""
        return self.theta1 - PI_OVER_2

    @property
    def stresses(self) -> np.ndarray:
        return self.concrete_stresses + self.reinforcement_stresses

    @property
    def stiffness(self) -> np.ndarray:
        return self.Dc + self.Ds


def crack_spacing_at(reinforcement: PanelReinforcement, sin_t: float, cos_t: float) -> float:
    """
    Average crack spacing for a crack inclined by (sin, cos).

    s_theta = 1 / (|sin| / smx + |cos| / smy)
    """
    smx, smy = reinforcement.crack_spacing()
    inv = abs(sin_t) / smx + abs(cos_t) / smy
    return 1 / inv if inv > 0 else math.inf


class MembraneLaw:
    """
    Behaviour shared by the MCFT and DSFM integration points.

    Args:
        concrete: Concrete parameters
        reinforcement: Web reinforcement of the panel
    """

    def __init__(self, concrete: ConcreteParameters, reinforcement: PanelReinforcement):
        self.parameters = concrete
        self.reinforcement = reinforcement

    def initial_state(self) -> MembraneState:
        Ec = self.parameters.Ec
        return MembraneState(
            Dc=np.diag([Ec, Ec, 0.5 * Ec]),
            Ds=self.reinforcement.initial_stiffness(),
        )

    def analysis(self, previous: MembraneState, strains: np.ndarray, load_step: int = 0) -> MembraneState:
        raise NotImplementedError


class MCFTMembrane(MembraneLaw):
    """Modified Compression Field Theory integration point."""

    def __init__(self, concrete, reinforcement):
        super().__init__(concrete, reinforcement)
        self.concrete = MCFTConcrete(concrete)

    def analysis(self, previous: MembraneState, strains: np.ndarray, load_step: int = 0) -> MembraneState:
        e = np.asarray(strains, dtype=float)
        e1, e2 = principal_strains(e)
        theta1 = strain_angle(e, e2)

        fc1, fc2 = self.concrete.principal_stresses(e1, e2)
        fs = self.reinforcement.stresses(e)

        cracked = self.concrete.cracked(e1)
        yield_on_crack = previous.yield_on_crack
        if cracked:
            fc1, now_yielding = self.crack_check(e1, theta1, fc1, fs)
            yield_on_crack = (yield_on_crack[0] or now_yielding[0], yield_on_crack[1] or now_yielding[1])

        Ec1, Ec2 = self.concrete.secant_moduli((e1, e2), (fc1, fc2))

        return MembraneState(
            strains=e,
            principal_strains=(e1, e2),
            concrete_principal_strains=(e1, e2),
            concrete_principal_stresses=(fc1, fc2),
            theta1=theta1,
            concrete_stresses=rotate_principal_stresses(fc1, fc2, theta1),
            reinforcement_stresses=self.reinforcement.smeared_stresses(e),
            Dc=concrete_stiffness(Ec1, Ec2, theta1),
            Ds=self.reinforcement.secant_stiffness(e),
            cracked=cracked or previous.cracked,
            crack_angle=previous.crack_angle if previous.crack_angle is not None else (theta1 if cracked else None),
            yield_on_crack=yield_on_crack,
        )

    def crack_check(
        self,
        ec1: float,
        theta1: float,
        f1a: float,
        steel_stresses: Tuple[float, float]
    ) -> Tuple[float, Tuple[bool, bool]]:
        """
        Tensile stress admissible after checking equilibrium at the crack.

        The crack runs at theta = pi/2 - theta1 from the x axis. The
        result is the minimum of the tension-stiffening stress f1a, the
        biaxial yielding stress f1b, the x- and y-yielding stresses f1c,
        f1d and the stress f1e limited by interface shear and the
        compressive stress it mobilizes on the crack.

        Returns:
            (fc1, (x_yields, y_yields)) with the bar yield flags at the crack
        """
        reinforcement = self.reinforcement
        fc = self.parameters.fc
        phi_ag = self.parameters.aggregate_diameter
        psx, psy = reinforcement.ratio
        fyx, fyy = reinforcement.yield_stress
        fsx, fsy = steel_stresses

        theta = PI_OVER_2 - theta1
        sin_t, cos_t = abs(math.sin(theta)), abs(math.cos(theta))

        w = crack_spacing_at(reinforcement, sin_t, cos_t) * ec1

        f1cx = psx * (fyx - fsx)
        f1cy = psy * (fyy - fsy)

        vcimaxA = 0.18 * math.sqrt(fc) / (0.31 + 24 * w / (phi_ag + 16))
        vcimaxB = abs(f1cx - f1cy) * sin_t * cos_t
        vcimax = min(vcimaxA, vcimaxB)

        f1b = f1cx * sin_t ** 2 + f1cy * cos_t ** 2
        f1c = f1cx + vcimax * cos_t / sin_t if sin_t > 1e-12 else math.inf
        f1d = f1cy + vcimax * sin_t / cos_t if cos_t > 1e-12 else math.inf

        # Interface shear needed for biaxial yielding mobilizes contact stress fci
        fci = 0.0
        if vcimaxA > 0 and vcimaxB >= 0.18 * vcimaxA:
            ratio = min(vcimaxB / vcimaxA, 1.0)
            fci = max(vcimaxA * (1 - math.sqrt(1.22 * (1 - ratio))), 0.0)
        f1e = f1b - fci

        fc1 = max(min(f1a, f1b, f1c, f1d, f1e), 0.0)

        return fc1, self._yield_on_crack(fc1, f1cx, f1cy, sin_t, cos_t, steel_stresses)

    def _yield_on_crack(self, fc1, f1cx, f1cy, sin_t, cos_t, steel_stresses) -> Tuple[bool, bool]:
        psx, psy = self.reinforcement.ratio
        fyx, fyy = self.reinforcement.yield_stress
        fsx, fsy = steel_stresses

        if sin_t <= 1e-12 or cos_t <= 1e-12:
            vci = 0.0
        elif f1cx > f1cy and f1cy < fc1:
            vci = (fc1 - f1cy) * sin_t / cos_t
        elif f1cx < f1cy and f1cx < fc1:
            vci = (f1cx - fc1) * sin_t / cos_t
        else:
            vci = 0.0

        x_yields = y_yields = False
        if psx > 0 and sin_t > 1e-12:
            x_yields = fsx + (fc1 + vci * cos_t / sin_t) / psx >= fyx
        if psy > 0 and cos_t > 1e-12:
            y_yields = fsy + (fc1 - vci * sin_t / cos_t) / psy >= fyy

        return x_yields, y_yields


class DSFMMembrane(MembraneLaw):
    """
    Disturbed Stress Field Model integration point.

    Args:
        concrete: Concrete parameters
        reinforcement: Web reinforcement
        reference_length: Panel reference length (min of a, b)
    """

    def __init__(self, concrete, reinforcement, reference_length: float):
        super().__init__(concrete, reinforcement)
        self.concrete = DSFMConcrete(concrete, reference_length)

    def analysis(self, previous: MembraneState, strains: np.ndarray, load_step: int = 0) -> MembraneState:
        e = np.asarray(strains, dtype=float)

        # Concrete strains exclude the slip of the previous iteration
        ec = e - previous.slip_strains

        e1, e2 = principal_strains(e)
        ec1, ec2 = principal_strains(ec)
        thetaE1 = strain_angle(e, e2)
        thetaC1 = strain_angle(ec, ec2)

        angles = (thetaC1, thetaC1 - PI_OVER_2)
        fs = self.reinforcement.stresses(e)

        fc1 = self.concrete.tensile_stress(ec1, self.reinforcement, fs, angles)
        fc2 = self.concrete.compressive_stress(ec2, ec1)
        Ec1, Ec2 = self.concrete.secant_moduli((ec1, ec2), (fc1, fc2))
        Dc = concrete_stiffness(Ec1, Ec2, thetaC1)

        # A crack stays open once formed, even when the slip closes ec1 below ecr
        cracked = self.concrete.cracked(ec1) or previous.cracked
        crack_angle = previous.crack_angle
        if cracked and crack_angle is None:
            crack_angle = thetaC1

        es = np.zeros(3)
        sig0 = np.zeros(3)
        reached, message = True, ""
        if cracked:
            vci, reached = self.crack_local_stresses(e, fc1, fs, angles)
            if not reached:
                message = f"Equilibrium on crack not reached at step {load_step}"
            es = self.crack_slip_strains(e, ec1, thetaE1, thetaC1, crack_angle, vci)
            sig0 = Dc @ es

        return MembraneState(
            strains=e,
            principal_strains=(e1, e2),
            concrete_principal_strains=(ec1, ec2),
            concrete_principal_stresses=(fc1, fc2),
            theta1=thetaC1,
            concrete_stresses=Dc @ e - sig0,
            reinforcement_stresses=self.reinforcement.smeared_stresses(e),
            Dc=Dc,
            Ds=self.reinforcement.secant_stiffness(e),
            slip_strains=es,
            pseudo_prestress=sig0,
            cracked=cracked,
            crack_angle=crack_angle,
            yield_on_crack=previous.yield_on_crack,
            equilibrium_reached=reached,
            message=message,
        )

    def crack_local_stresses(
        self,
        e: np.ndarray,
        fc1: float,
        steel_stresses: Tuple[float, float],
        reinforcement_angles: Tuple[float, float]
    ) -> Tuple[float, bool]:
        """
        Shear stress on the crack from local equilibrium.

        Finds the local strain jump de1 with

            sum rho_i (fscr_i - fs_i) cos²(theta_Ni) = fc1,
            fscr_i = min((e_i + de1 cos²(theta_Ni)) Es_i, fy_i)

        Returns:
            (vci, reached); vci is 0 when no root is bracketed or brentq
            does not converge. A crack that carries no tension needs no
            equilibrium and returns (0, True).
        """
        if fc1 <= 0:
            return 0.0, True

        reinforcement = self.reinforcement
        psx, psy = reinforcement.ratio
        fyx, fyy = reinforcement.yield_stress
        Esx = reinforcement.steel[0].elastic_modulus
        Esy = reinforcement.steel[1].elastic_modulus
        fsx, fsy = steel_stresses

        cos_nx, sin_nx = math.cos(reinforcement_angles[0]), math.sin(reinforcement_angles[0])
        cos_ny, sin_ny = math.cos(reinforcement_angles[1]), math.sin(reinforcement_angles[1])
        cos_nx2, cos_ny2 = cos_nx ** 2, cos_ny ** 2

        def crack_stresses(de1):
            fscrx = min((e[0] + de1 * cos_nx2) * Esx, fyx)
            fscry = min((e[1] + de1 * cos_ny2) * Esy, fyy)
            return fscrx, fscry

        def equilibrium(de1):
            fscrx, fscry = crack_stresses(de1)
            return psx * (fscrx - fsx) * cos_nx2 + psy * (fscry - fsy) * cos_ny2 - fc1

        lower, upper = CRACK_BRACKET
        if equilibrium(lower) * equilibrium(upper) > 0:
            return 0.0, False

        de1, info = brentq(equilibrium, lower, upper, xtol=CRACK_XTOL,
                           maxiter=CRACK_MAXITER, full_output=True, disp=False)
        if not info.converged:
            return 0.0, False

        fscrx, fscry = crack_stresses(de1)
        vci = psx * (fscrx - fsx) * cos_nx * sin_nx + psy * (fscry - fsy) * cos_ny * sin_ny
        return vci, True

    def crack_slip_strains(
        self,
        e: np.ndarray,
        ec1: float,
        thetaE1: float,
        thetaC1: float,
        crack_angle: float,
        vci: float
    ) -> np.ndarray:
        """
        Slip strains [exs, eys, gxys] from the larger of two estimates.

        Stress-based: slip from the interface shear vci (Walraven-type
        relation in the crack width w). Rotation lag: the stress field
        trails the strain field by at most 5 degrees from the angle at
        cracking.
        """
        ex, ey, gxy = e
        fc = self.parameters.fc

        s = crack_spacing_at(self.reinforcement, math.sin(thetaC1), math.cos(thetaC1))
        w = ec1 * s

        ysa = 0.0
        if math.isfinite(s) and w > 0:
            den = 1.8 * w ** -0.8 + (0.234 * w ** -0.707 - 0.2) * fc
            # Denominator vanishes for wide cracks
            if den > 0:
                ysa = vci / den / s

        # Angle change since cracking, wrapped to [-pi/2, pi/2)
        dThetaE = (thetaE1 - crack_angle + PI_OVER_2) % math.pi - PI_OVER_2
        if abs(dThetaE) > ROTATION_LAG:
            dThetaS = dThetaE - math.copysign(ROTATION_LAG, dThetaE)
        else:
            dThetaS = dThetaE
        thetaS = crack_angle + dThetaS
        ysb = gxy * math.cos(2 * thetaS) + (ey - ex) * math.sin(2 * thetaS)

        ys = max(ysa, ysb)
        sin2C, cos2C = math.sin(2 * thetaC1), math.cos(2 * thetaC1)

        return np.array([-ys / 2 * sin2C, ys / 2 * sin2C, ys * cos2C])
