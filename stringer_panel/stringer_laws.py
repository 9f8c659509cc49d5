# stringer_panel/stringer_laws.py
"""
STRINGER LAWS: Axial Force -> Strain Relations of Reinforced Bars
=================================================================

PURPOSE:
--------
The nonlinear stringer integrates strain along its length from the
normal force at four sample points. Each law answers one question:

    strain(N) -> (eps, d_eps/dN)

Three laws share the section constants computed once at construction:

    ClassicLaw   closed-form tension stiffening, parabolic compression
    MCFTLaw      Classic compression, MCFT tension stiffening solved with brentq
    MC2010Law    fib Model Code 2010 stress-strain shape k = Ec/Ecs

SECTION CONSTANTS:
------------------
    Ac = A - As         EcAc = Ec Ac        EsAs = Es As
    xi = EsAs / EcAc    t1 = EcAc + EsAs    ey_ec = ey / ec
    Nc  = -fc Ac        (concrete compressive capacity, negative)
    Nyr = fy As         (reinforcement yield force)
    Ncr = fcr Ac (1 + xi),   Nr = Ncr / sqrt(1 + xi)

The stringer iteration clamps N into [Nt, Nyr] (``plastic_limits``).
"""

import math
from typing import Optional, Tuple

from scipy.optimize import brentq

from .materials import ConcreteParameters, StringerReinforcement


def central_difference(func, x: float, h: float) -> float:
    """Derivative of a scalar function by central differences."""
    return (func(x + h) - func(x - h)) / (2 * h)


class StringerLaw:
    """
    Section constants shared by every stringer law.

    Args:
        concrete: Concrete parameters
        area: Gross cross-section area (mm²)
        reinforcement: Longitudinal bars, or None for plain concrete
    """

    name = "Stringer law"

    def __init__(
        self,
        concrete: ConcreteParameters,
        area: float,
        reinforcement: Optional[StringerReinforcement] = None
    ):
        self.concrete = concrete
        self.reinforcement = reinforcement

        self.As = reinforcement.area if reinforcement is not None else 0.0
        self.Ac = area - self.As
        if self.Ac <= 0:
            raise ValueError(f"Reinforcement area {self.As:.1f} exceeds section area {area:.1f}.")

        Es = reinforcement.steel.elastic_modulus if reinforcement is not None else 0.0
        fy = reinforcement.steel.yield_stress if reinforcement is not None else 0.0

        self.EcAc = concrete.Ec * self.Ac
        self.EsAs = Es * self.As
        self.xi = self.EsAs / self.EcAc
        self.t1 = self.EcAc + self.EsAs

        self.ec = concrete.ec
        self.ey = reinforcement.steel.yield_strain if self.As > 0 else math.inf
        self.ey_ec = self.ey / self.ec if self.As > 0 else -math.inf

        self.Nc = -concrete.fc * self.Ac
        self.Nyr = fy * self.As
        self.Ncr = concrete.fcr * self.Ac * (1 + self.xi)
        self.Nr = self.Ncr / math.sqrt(1 + self.xi)

    @property
    def reinforced(self) -> bool:
        return self.EsAs > 0

    @property
    def Nt(self) -> float:
        """Compressive force limit of the section (negative)."""
        raise NotImplementedError

    @property
    def plastic_limits(self) -> Tuple[float, float]:
        """Bounds (Nt, Nyr) of the normal force."""
        return self.Nt, self.Nyr

    def strain(self, N: float) -> Tuple[float, float]:
        """Strain and flexibility d_eps/dN at normal force N."""
        if N == 0:
            return 0.0, 1 / self.t1
        if N > 0:
            return self.tension(N)
        return self.compression(N)

    def tension(self, N: float) -> Tuple[float, float]:
        raise NotImplementedError

    def compression(self, N: float) -> Tuple[float, float]:
        raise NotImplementedError

    def uncracked(self, N: float) -> Tuple[float, float]:
        return N / self.t1, 1 / self.t1

    def __repr__(self):
        return f"{type(self).__name__}(Ncr={self.Ncr:.1f}, Nyr={self.Nyr:.1f}, Nt={self.Nt:.1f})"


class ClassicLaw(StringerLaw):
    """
    Closed-form law from axial equilibrium of a cracked / uncracked section.

    Tension: uncracked (N < Ncr), cracked (N <= Nyr), yielding.
    Compression: parabolic concrete, with the steel yielding once the
    strain passes -ey, and a linear branch after concrete crushing.
    """

    name = "Classic"

    @property
    def Nt(self) -> float:
        return max(self.Nc * (1 + self.xi) ** 2, self.Nc - self.Nyr)

    @property
    def Nyc(self) -> float:
        """Normal force at which the steel yields in compression, -inf without bars."""
        if not self.reinforced:
            return -math.inf
        return -self.Nyr + self.Nc * (-2 * self.ey_ec - self.ey_ec ** 2)

    def tension(self, N: float) -> Tuple[float, float]:
        if N < self.Ncr or not self.reinforced:
            return self.uncracked(N)
        if N <= self.Nyr:
            return self.cracked(N)
        return self.yielding(N)

    def cracked(self, N: float) -> Tuple[float, float]:
        Nr2 = self.Nr ** 2
        e = (N ** 2 - Nr2) / (self.EsAs * N)
        de = (N ** 2 + Nr2) / (self.EsAs * N ** 2)
        return e, de

    def yielding(self, N: float) -> Tuple[float, float]:
        Nyr = self.Nyr
        e = (Nyr ** 2 - self.Nr ** 2) / (self.EsAs * Nyr) + (N - Nyr) / self.t1
        return e, 1 / self.t1

    def compression(self, N: float) -> Tuple[float, float]:
        if N > self.Nt:
            return self.not_crushed(N)
        return self.crushed(N)

    def not_crushed(self, N: float) -> Tuple[float, float]:
        ec, Nc, xi = self.ec, self.Nc, self.xi

        if N >= self.Nyc:
            t2 = math.sqrt((1 + xi) ** 2 - N / Nc)
            e = ec * (1 + xi - t2)
        else:
            # Steel yielded: the bars carry -Nyr, concrete takes the rest
            t2 = math.sqrt(1 - (N + self.Nyr) / Nc)
            e = ec * (1 - t2)

        return e, ec / (2 * Nc * t2)

    def crushed(self, N: float) -> Tuple[float, float]:
        ec, Nc, xi, Nt = self.ec, self.Nc, self.xi, self.Nt

        e = ec * ((1 + xi) - math.sqrt((1 + xi) ** 2 - Nt / Nc)) + (N - Nt) / self.t1
        if e < -self.ey:
            e = ec * (1 - math.sqrt(1 - (self.Nyr + Nt) / Nc)) + (N - Nt) / self.t1

        return e, 1 / self.t1


class MCFTLaw(ClassicLaw):
    """
    Classic compression with MCFT tension stiffening.

    After cracking the strain is the root of

        N = fcr Ac / (1 + sqrt(500 eps)) + As fs(eps)

    searched between the cracking strain and 0.003.
    """

    name = "MCFT"

    upper_strain = 0.003
    xtol = 1e-12
    h = 1e-9

    def force(self, e: float) -> float:
        Fc = self.concrete.fcr * self.Ac / (1 + math.sqrt(500 * e))
        Fs = self.reinforcement.force(e) if self.reinforcement is not None else 0.0
        return Fc + Fs

    def tension(self, N: float) -> Tuple[float, float]:
        if N < self.Ncr or not self.reinforced:
            return self.uncracked(N)
        return self.cracked(N)

    def cracked(self, N: float) -> Tuple[float, float]:
        lower, upper = self.concrete.ecr, self.upper_strain

        def residual(e):
            return N - self.force(e)

        if residual(lower) * residual(upper) > 0:
            return self.yielding(N)

        e = brentq(residual, lower, upper, xtol=self.xtol)
        if e >= self.ey:
            return self.yielding(N)

        dN = central_difference(self.force, e, self.h)
        if dN <= 0:
            return self.yielding(N)

        return e, 1 / dN

    def yielding(self, N: float) -> Tuple[float, float]:
        return self.ey + (N - self.Nyr) / self.t1, 1 / self.t1


class MC2010Law(StringerLaw):
    """
    fib Model Code 2010 law.

    Concrete in compression follows

        sigma / fc = (k eta - eta²) / (1 + (k - 2) eta),  eta = e / ec,  k = Ec / Ecs

    so every compression branch reduces to a quadratic in e. The root
    that tends to zero with N is taken in its cancellation-free form.
    Tension uses the MC2010 mean steel strain with beta = 0.6.
    """

    name = "MC2010"

    beta = 0.6

    def __init__(self, concrete, area, reinforcement=None):
        super().__init__(concrete, area, reinforcement)
        self.k = concrete.Ec / concrete.Ecs

    @property
    def ps(self) -> float:
        return self.As / self.Ac

    @property
    def sigSr(self) -> float:
        """Steel stress at the crack right after cracking."""
        return self.concrete.fcr * (1 + self.xi) / self.ps

    @property
    def Nyc(self) -> float:
        k, ey_ec = self.k, self.ey_ec
        return -self.Nyr + self.Nc * (-k * ey_ec - ey_ec ** 2) / (1 - (k - 2) * ey_ec)

    @property
    def NlimC(self) -> float:
        """Concrete peak reached with elastic steel."""
        return self.EsAs * self.ec + self.Nc

    @property
    def NlimS(self) -> float:
        """Concrete peak reached with yielded steel."""
        return -self.Nyr + self.Nc

    @property
    def yields_after_peak(self) -> bool:
        """True when the concrete peaks before the steel yields in compression."""
        return -self.ey <= self.ec

    @property
    def Nt(self) -> float:
        if self.yields_after_peak:
            return self.NlimC
        return self.NlimS

    def tension(self, N: float) -> Tuple[float, float]:
        if N < self.Ncr or not self.reinforced:
            return self.uncracked(N)

        Es = self.reinforcement.steel.elastic_modulus
        if N <= self.Nyr:
            e = (N / self.As - self.beta * self.sigSr) / Es
            return e, 1 / self.EsAs

        e = (self.Nyr / self.As - self.beta * self.sigSr) / Es + (N - self.Nyr) / self.t1
        return e, 1 / self.t1

    def compression(self, N: float) -> Tuple[float, float]:
        if self.yields_after_peak:
            if N > self.NlimC:
                return self.steel_elastic(N)
            return self.crushed(N, self.NlimC)

        if N >= self.Nyc:
            return self.steel_elastic(N)
        if N >= self.NlimS:
            return self.steel_yielding(N)
        return self.crushed(N, self.NlimS)

    def steel_elastic(self, N: float) -> Tuple[float, float]:
        ec, k, Nc, EsAs = self.ec, self.k, self.Nc, self.EsAs

        k1 = (Nc / ec - EsAs * (k - 2)) / ec
        k2 = (N * (k - 2) - Nc * k) / ec - EsAs
        e = self._small_root(k1, k2, N)

        return e, 1 / self._dN(e, EsAs)

    def steel_yielding(self, N: float) -> Tuple[float, float]:
        ec, k, Nc = self.ec, self.k, self.Nc
        Nyr = self.Nyr

        k3 = Nc / ec ** 2
        k4 = ((Nyr + N) * (k - 2) - Nc * k) / ec
        k5 = Nyr + N
        e = self._small_root(k3, k4, k5)

        return e, 1 / self._dN(e, 0.0)

    def crushed(self, N: float, Nlim: float) -> Tuple[float, float]:
        return self.ec + (N - Nlim) / self.t1, 1 / self.t1

    @staticmethod
    def _small_root(a: float, b: float, c: float) -> float:
        """Root of a e² + b e + c = 0 closest to zero."""
        disc = max(b * b - 4 * a * c, 0.0)
        q = -0.5 * (b + math.copysign(math.sqrt(disc), b))
        if q == 0:
            return 0.0
        return c / q

    def _dN(self, e: float, steel_stiffness: float) -> float:
        """dN/de of concrete plus elastic steel, from the concrete curve slope."""
        k = self.k
        eta = e / self.ec
        den = 1 + (k - 2) * eta
        dg = ((k - 2 * eta) * den - (k * eta - eta ** 2) * (k - 2)) / den ** 2
        dN = self.Nc * dg / self.ec + steel_stiffness

        # Flat top of the curve: keep a small positive stiffness
        return max(dN, 1e-6 * self.t1)
