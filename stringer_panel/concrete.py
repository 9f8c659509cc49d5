# stringer_panel/concrete.py
"""
Uniaxial concrete laws used in the principal directions of a membrane.

MCFT (Vecchio & Collins 1986):
    tension      f1 = Ec e1                      e1 <= ecr
                 f1 = fcr / (1 + sqrt(500 e1))   e1 >  ecr
    compression  f2 = f2max (2n - n²),  n = e2/ec,
                 f2max = max(-fc / (0.8 - 0.34 e1/ec), -fc)

DSFM (Vecchio 2000):
    tension      max of linear tension softening and tension stiffening,
                 limited by the reinforcement reserve across the crack
    compression  Popovics curve with softening factor betaD
"""

import math
from typing import Tuple

from .materials import ConcreteParameters, PanelReinforcement


def secant_modulus(Ec: float, strain: float, stress: float) -> float:
    """Secant modulus, Ec for an unstrained direction."""
    if strain == 0:
        return Ec
    return stress / strain


class MembraneConcrete:
    """Shared parameters of the membrane concrete laws."""

    def __init__(self, parameters: ConcreteParameters):
        self.parameters = parameters
        self.fc = parameters.fc
        self.fcr = parameters.fcr
        self.Ec = parameters.Ec
        self.ec = parameters.ec
        self.ecr = parameters.ecr

    def cracked(self, ec1: float) -> bool:
        return ec1 > self.ecr

    def secant_moduli(self, strains: Tuple[float, float], stresses: Tuple[float, float]) -> Tuple[float, float]:
        return (
            secant_modulus(self.Ec, strains[0], stresses[0]),
            secant_modulus(self.Ec, strains[1], stresses[1]),
        )


class MCFTConcrete(MembraneConcrete):

    def tensile_stress(self, ec1: float) -> float:
        if ec1 == 0:
            return 0.0
        # Biaxial compression: unsoftened parabola
        if ec1 < 0:
            n = ec1 / self.ec
            return -self.fc * max(2 * n - n * n, 0.0)
        if ec1 <= self.ecr:
            return self.Ec * ec1
        return self.fcr / (1 + math.sqrt(500 * ec1))

    def compressive_stress(self, ec2: float, ec1: float) -> float:
        # Biaxial tension
        if ec2 >= 0:
            return self.tensile_stress(ec2)

        den = 0.8 - 0.34 * ec1 / self.ec
        f2max = -self.fc / den if den > 1 else -self.fc

        n = ec2 / self.ec
        return f2max * max(2 * n - n * n, 0.0)

    def principal_stresses(self, ec1: float, ec2: float) -> Tuple[float, float]:
        return self.tensile_stress(ec1), self.compressive_stress(ec2, ec1)


class DSFMConcrete(MembraneConcrete):
    """
    DSFM concrete.

    Args:
        parameters: Concrete parameters
        reference_length: Panel reference length Lr, sets the
            tension-softening end strain ets = 2 Gf / (fcr Lr)
    """

    Cs = 0.55

    def __init__(self, parameters: ConcreteParameters, reference_length: float):
        super().__init__(parameters)
        self.reference_length = reference_length
        self.ets = 2 * parameters.fracture_energy / (self.fcr * reference_length)

    def softening(self, e: float) -> float:
        if self.ets <= self.ecr:
            return 0.0
        return max(self.fcr * (1 - (e - self.ecr) / (self.ets - self.ecr)), 0.0)

    def stiffening(self, e: float, reinforcement: PanelReinforcement, cos_nx: float, cos_ny: float) -> float:
        psx, psy = reinforcement.ratio
        phi_x, phi_y = reinforcement.bar_diameter

        den = 0.0
        if psx > 0:
            den += psx / phi_x * abs(cos_nx)
        if psy > 0:
            den += psy / phi_y * abs(cos_ny)
        if den == 0:
            return 0.0

        m = 0.25 / den
        return self.fcr / (1 + math.sqrt(2.2 * m * e))

    @staticmethod
    def crack_reserve(reinforcement: PanelReinforcement, stresses: Tuple[float, float],
                      cos_nx: float, cos_ny: float) -> float:
        """Largest tensile stress the bars can still transmit across a crack."""
        psx, psy = reinforcement.ratio
        fyx, fyy = reinforcement.yield_stress
        fsx, fsy = stresses
        return psx * (fyx - fsx) * cos_nx ** 2 + psy * (fyy - fsy) * cos_ny ** 2

    def tensile_stress(
        self,
        ec1: float,
        reinforcement: PanelReinforcement,
        steel_stresses: Tuple[float, float],
        reinforcement_angles: Tuple[float, float]
    ) -> float:
        if ec1 <= self.ecr:
            return self.Ec * ec1

        cos_nx = math.cos(reinforcement_angles[0])
        cos_ny = math.cos(reinforcement_angles[1])

        fc1 = max(self.softening(ec1), self.stiffening(ec1, reinforcement, cos_nx, cos_ny))
        reserve = self.crack_reserve(reinforcement, steel_stresses, cos_nx, cos_ny)
        return max(min(fc1, reserve), 0.0)

    def compressive_stress(self, ec2: float, ec1: float) -> float:
        # Biaxial tension
        if ec2 >= 0:
            return self.Ec * ec2 if ec2 <= self.ecr else self.softening(ec2)

        ratio = -ec1 / ec2 - 0.28
        Cd = 0.35 * ratio ** 0.8 if ratio > 0 else 0.0
        betaD = min(1 / (1 + self.Cs * Cd), 1.0)

        fp = -betaD * self.fc
        ep = betaD * self.ec
        k = 1.0 if ep <= ec2 else 0.67 - fp / 62
        # Popovics needs n > 1 to keep the denominator positive
        n = max(0.8 - fp / 17, 1.0 + 1e-6)

        r = ec2 / ep
        return fp * n * r / (n - 1 + r ** (n * k))
