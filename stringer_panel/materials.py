# stringer_panel/materials.py
"""
Concrete parameters, steel law and reinforcement layouts.

Units are N, mm and MPa. Strains are positive in tension, so the
concrete peak strain ``ec`` and ultimate strain ``ecu`` are negative.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class ConcreteModel(Enum):
    """Parameter model used to derive concrete properties from fc."""
    MC2010 = "MC2010"
    MCFT = "MCFT"
    DSFM = "DSFM"


class AggregateType(Enum):
    """Aggregate type, sets the MC2010 elastic modulus factor alpha_E."""
    BASALT = 1.2
    QUARTZITE = 1.0
    LIMESTONE = 0.9
    SANDSTONE = 0.9


# MC2010 ultimate strain table for high-strength classes
_ECU_CLASSES = (50.0, 55.0, 60.0, 70.0, 80.0, 90.0)
_ECU_VALUES = (-0.0034, -0.0034, -0.0033, -0.0032, -0.0031, -0.003)


@dataclass(frozen=True)
class ConcreteParameters:
    """
    Concrete parameters derived from the compressive strength.

    Any of ``tensile_strength``, ``elastic_modulus``, ``plastic_strain``
    and ``ultimate_strain`` overrides the value of the chosen model.
    """
    strength: float                          # fc (MPa), positive
    aggregate_diameter: float = 20.0         # phi_ag (mm)
    aggregate_type: AggregateType = AggregateType.QUARTZITE
    model: ConcreteModel = ConcreteModel.MC2010
    tensile_strength: Optional[float] = None
    elastic_modulus: Optional[float] = None
    plastic_strain: Optional[float] = None
    ultimate_strain: Optional[float] = None

    def __post_init__(self):
        if self.strength <= 0:
            raise ValueError(f"Concrete strength must be positive, got {self.strength}")
        if self.aggregate_diameter <= 0:
            raise ValueError(f"Aggregate diameter must be positive, got {self.aggregate_diameter}")
        for name in ('tensile_strength', 'elastic_modulus'):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        for name in ('plastic_strain', 'ultimate_strain'):
            value = getattr(self, name)
            if value is not None and value >= 0:
                raise ValueError(f"{name} must be negative (compression), got {value}")

    @property
    def fc(self) -> float:
        return self.strength

    @property
    def fcr(self) -> float:
        """Tensile strength (MPa)."""
        if self.tensile_strength is not None:
            return self.tensile_strength
        fc = self.strength
        if self.model is ConcreteModel.MCFT:
            return 0.33 * math.sqrt(fc)
        if self.model is ConcreteModel.DSFM:
            return 0.65 * fc ** 0.33
        if fc <= 50:
            return 0.3 * fc ** (2 / 3)
        return 2.12 * math.log(1 + 0.1 * fc)

    @property
    def ec(self) -> float:
        """Strain at peak compressive stress (negative)."""
        if self.plastic_strain is not None:
            return self.plastic_strain
        if self.model is ConcreteModel.MC2010:
            return -0.0016 * (self.strength / 10) ** 0.25
        return -0.002

    @property
    def ecu(self) -> float:
        """Ultimate compressive strain (negative)."""
        if self.ultimate_strain is not None:
            return self.ultimate_strain
        fc = self.strength
        if self.model is not ConcreteModel.MC2010 or fc < 50:
            return -0.0035
        if fc >= 90:
            return -0.003
        return float(np.interp(fc, _ECU_CLASSES, _ECU_VALUES))

    @property
    def Ec(self) -> float:
        """Initial elastic modulus (MPa)."""
        if self.elastic_modulus is not None:
            return self.elastic_modulus
        if self.model is ConcreteModel.MC2010:
            return 21500 * self.aggregate_type.value * (self.strength / 10) ** (1 / 3)
        return -2 * self.strength / self.ec

    @property
    def ecr(self) -> float:
        """Cracking strain."""
        return self.fcr / self.Ec

    @property
    def Ecs(self) -> float:
        """Secant modulus at the compressive peak."""
        return self.strength / abs(self.ec)

    @property
    def nu(self) -> float:
        return 0.2

    @property
    def fracture_energy(self) -> float:
        """Gf (N/mm) used by the DSFM tension softening."""
        return 0.075


@dataclass(frozen=True)
class Steel:
    """Elastic-perfectly plastic reinforcing steel."""
    yield_stress: float                 # fy (MPa)
    elastic_modulus: float = 210000.0   # Es (MPa)
    ultimate_strain: float = 0.01       # esu

    def __post_init__(self):
        if self.yield_stress <= 0 or self.elastic_modulus <= 0:
            raise ValueError(
                f"Steel needs positive fy and Es, got fy={self.yield_stress}, Es={self.elastic_modulus}"
            )

    @property
    def yield_strain(self) -> float:
        return self.yield_stress / self.elastic_modulus

    def stress(self, strain: float) -> float:
        """Stress for a given strain, capped at +/- fy."""
        if strain >= self.yield_strain:
            return self.yield_stress
        if strain <= -self.yield_strain:
            return -self.yield_stress
        return self.elastic_modulus * strain

    def secant_modulus(self, strain: float) -> float:
        """Secant modulus, Es while elastic or unstrained."""
        if strain == 0:
            return self.elastic_modulus
        return min(self.stress(strain) / strain, self.elastic_modulus)


@dataclass(frozen=True)
class StringerReinforcement:
    """Longitudinal bars of a stringer."""
    number_of_bars: int
    bar_diameter: float     # mm
    steel: Steel

    def __post_init__(self):
        if self.number_of_bars < 0 or self.bar_diameter < 0:
            raise ValueError("Stringer reinforcement needs non-negative bar count and diameter.")

    @property
    def area(self) -> float:
        return 0.25 * self.number_of_bars * math.pi * self.bar_diameter ** 2

    @property
    def yield_force(self) -> float:
        return self.steel.yield_stress * self.area

    @property
    def stiffness(self) -> float:
        """Es * As"""
        return self.steel.elastic_modulus * self.area

    def force(self, strain: float) -> float:
        return self.area * self.steel.stress(strain)


def reinforcement_ratio(bar_diameter: float, bar_spacing: float, width: float) -> float:
    """
    Web reinforcement ratio for two layers of bars.

    rho = 2 * (pi * phi^2 / 4) / (s * w); zero when there are no bars.
    """
    if bar_diameter == 0 or bar_spacing == 0:
        return 0.0
    return 0.5 * math.pi * bar_diameter ** 2 / (bar_spacing * width)


@dataclass(frozen=True)
class PanelReinforcement:
    """Orthogonal (x, y) smeared web reinforcement of a panel."""
    bar_diameter: Tuple[float, float] = (0.0, 0.0)
    bar_spacing: Tuple[float, float] = (0.0, 0.0)
    steel: Tuple[Steel, Steel] = field(default_factory=lambda: (Steel(500.0), Steel(500.0)))
    width: float = 1.0

    def __post_init__(self):
        if self.width <= 0:
            raise ValueError(f"Panel width must be positive, got {self.width}")
        if min(self.bar_diameter) < 0 or min(self.bar_spacing) < 0:
            raise ValueError("Bar diameters and spacings must be non-negative.")

    @property
    def ratio(self) -> Tuple[float, float]:
        return (
            reinforcement_ratio(self.bar_diameter[0], self.bar_spacing[0], self.width),
            reinforcement_ratio(self.bar_diameter[1], self.bar_spacing[1], self.width),
        )

    @property
    def yield_stress(self) -> Tuple[float, float]:
        return self.steel[0].yield_stress, self.steel[1].yield_stress

    def stresses(self, strains: np.ndarray) -> Tuple[float, float]:
        """Bar stresses (fsx, fsy) for the membrane strains (ex, ey, gxy)."""
        return self.steel[0].stress(strains[0]), self.steel[1].stress(strains[1])

    def smeared_stresses(self, strains: np.ndarray) -> np.ndarray:
        """Stress vector [rho_x fsx, rho_y fsy, 0]."""
        psx, psy = self.ratio
        fsx, fsy = self.stresses(strains)
        return np.array([psx * fsx, psy * fsy, 0.0])

    def initial_stiffness(self) -> np.ndarray:
        psx, psy = self.ratio
        return np.diag([psx * self.steel[0].elastic_modulus, psy * self.steel[1].elastic_modulus, 0.0])

    def secant_stiffness(self, strains: np.ndarray) -> np.ndarray:
        psx, psy = self.ratio
        Esx = self.steel[0].secant_modulus(strains[0])
        Esy = self.steel[1].secant_modulus(strains[1])
        return np.diag([psx * Esx, psy * Esy, 0.0])

    def crack_spacing(self) -> Tuple[float, float]:
        """
        Average crack spacing per direction, phi / (5.4 rho).

        Infinite in a direction without bars.
        """
        psx, psy = self.ratio
        smx = self.bar_diameter[0] / (5.4 * psx) if psx > 0 else math.inf
        smy = self.bar_diameter[1] / (5.4 * psy) if psy > 0 else math.inf
        return smx, smy
