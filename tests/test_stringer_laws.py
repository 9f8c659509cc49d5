"""
Tests for the stringer force-strain laws.
"""

import math

import numpy as np
import pytest

from stringer_panel.materials import ConcreteModel, ConcreteParameters, Steel, StringerReinforcement
from stringer_panel.stringer_laws import ClassicLaw, MC2010Law, MCFTLaw, central_difference

AREA = 100.0 * 100.0


def bars():
    return StringerReinforcement(number_of_bars=4, bar_diameter=10.0, steel=Steel(500.0))


@pytest.fixture
def mcft_concrete():
    return ConcreteParameters(30.0, model=ConcreteModel.MCFT)


class TestSectionConstants:

    def test_constants(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())
        As = 100 * math.pi

        assert np.isclose(law.As, As)
        assert np.isclose(law.Ac, AREA - As)
        assert np.isclose(law.t1, 30000 * (AREA - As) + 210000 * As)
        assert np.isclose(law.Nc, -30 * (AREA - As))
        assert np.isclose(law.Nyr, 500 * As)
        assert np.isclose(law.Nr, law.Ncr / math.sqrt(1 + law.xi))

    def test_reinforcement_larger_than_section_raises(self, mcft_concrete):
        huge = StringerReinforcement(number_of_bars=200, bar_diameter=10.0, steel=Steel(500.0))
        with pytest.raises(ValueError):
            ClassicLaw(mcft_concrete, AREA, huge)

    def test_zero_force(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())
        e, de = law.strain(0.0)
        assert e == 0.0
        assert de == 1 / law.t1


class TestClassicLaw:

    def test_continuity_at_cracking_load(self, mcft_concrete):
        """
        WHAT IS THIS TEST?
        ==================
        At N = Ncr the uncracked branch N / t1 and the cracked branch
        (N² - Nr²) / (EsAs N) must give the same strain: the law has no
        jump when the stringer cracks.
        """
        law = ClassicLaw(mcft_concrete, AREA, bars())
        assert law.Ncr < law.Nyr

        e_uncracked, _ = law.uncracked(law.Ncr)
        e_cracked, _ = law.cracked(law.Ncr)
        assert np.isclose(e_uncracked, e_cracked, rtol=1e-10)

        below, _ = law.strain(law.Ncr * (1 - 1e-9))
        above, _ = law.strain(law.Ncr * (1 + 1e-9))
        assert np.isclose(below, above, rtol=1e-6)

    def test_continuity_at_yield_load(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())

        e_cracked, _ = law.cracked(law.Nyr)
        e_yielding, _ = law.yielding(law.Nyr)
        assert np.isclose(e_cracked, e_yielding, rtol=1e-10)

    def test_cracked_flexibility_is_derivative(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())
        N = 0.5 * (law.Ncr + law.Nyr)

        _, de = law.strain(N)
        numeric = central_difference(lambda n: law.strain(n)[0], N, 1.0)
        assert np.isclose(de, numeric, rtol=1e-6)

    def test_small_compression_is_elastic(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())

        e, de = law.strain(-1.0)
        assert np.isclose(e, -1.0 / law.t1, rtol=1e-4)
        assert np.isclose(de, 1.0 / law.t1, rtol=1e-4)

    def test_unreinforced_never_cracks(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA)
        N = 10 * law.Ncr

        e, de = law.strain(N)
        assert np.isclose(e, N / law.t1)
        assert de == 1 / law.t1

    def test_plastic_limits(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA, bars())
        Nt, Nyr = law.plastic_limits

        assert Nt < law.Nc < 0
        assert Nyr == law.Nyr

    def test_compression_continuity_at_steel_yield(self, mcft_concrete):
        """
        WHAT IS THIS TEST?
        ==================
        With fy = 400 the bars yield (ey = 0.0019) before the concrete
        peak (0.002), so the compression branch switches at Nyc. Both
        sides of Nyc must give the yield strain -ey.
        """
        law = ClassicLaw(mcft_concrete, AREA, StringerReinforcement(4, 10.0, Steel(400.0)))
        assert law.Nt < law.Nyc < law.Nc

        elastic, _ = law.strain(law.Nyc * (1 - 1e-9))
        yielded, _ = law.strain(law.Nyc * (1 + 1e-9))
        assert np.isclose(elastic, -law.ey, rtol=1e-4)
        assert np.isclose(yielded, -law.ey, rtol=1e-4)

    def test_unreinforced_steel_never_yields_in_compression(self, mcft_concrete):
        law = ClassicLaw(mcft_concrete, AREA)
        assert law.Nyc == -math.inf

        e, de = law.strain(0.5 * law.Nc)
        assert mcft_concrete.ec < e < 0
        assert de > 0


class TestMCFTLaw:

    def test_cracked_strain_solves_equilibrium(self, mcft_concrete):
        law = MCFTLaw(mcft_concrete, AREA, bars())
        N = 0.5 * (law.Ncr + law.Nyr)

        e, de = law.strain(N)
        assert mcft_concrete.ecr < e < law.ey
        assert np.isclose(law.force(e), N, rtol=1e-8)
        assert de > 0

    def test_beyond_capacity_yields(self, mcft_concrete):
        law = MCFTLaw(mcft_concrete, AREA, bars())
        N = 2 * law.Nyr

        e, de = law.strain(N)
        assert np.isclose(e, law.ey + (N - law.Nyr) / law.t1)
        assert de == 1 / law.t1

    def test_compression_matches_classic(self, mcft_concrete):
        classic = ClassicLaw(mcft_concrete, AREA, bars())
        mcft = MCFTLaw(mcft_concrete, AREA, bars())
        N = 0.5 * classic.Nc

        assert mcft.strain(N) == classic.strain(N)


class TestMC2010Law:

    def test_small_compression_is_elastic(self):
        law = MC2010Law(ConcreteParameters(30.0), AREA, bars())

        e, de = law.strain(-1.0)
        assert np.isclose(e, -1.0 / law.t1, rtol=1e-4)
        assert np.isclose(de, 1.0 / law.t1, rtol=1e-4)

    def test_compression_reaches_peak_strain_at_limit(self):
        concrete = ConcreteParameters(30.0)
        law = MC2010Law(concrete, AREA, bars())

        # Steel still elastic at the concrete peak
        assert -law.ey < concrete.ec
        assert law.Nt == law.NlimC

        e_before, _ = law.strain(law.NlimC * (1 - 1e-9))
        e_at, de_at = law.strain(law.NlimC)
        assert np.isclose(e_before, concrete.ec, rtol=1e-4)
        assert np.isclose(e_at, concrete.ec)
        assert de_at == 1 / law.t1

    def test_compression_flexibility_is_derivative(self):
        law = MC2010Law(ConcreteParameters(30.0), AREA, bars())
        N = 0.5 * law.NlimC

        _, de = law.strain(N)
        numeric = central_difference(lambda n: law.strain(n)[0], N, 1.0)
        assert np.isclose(de, numeric, rtol=1e-5)

    def test_tension_stiffening(self):
        law = MC2010Law(ConcreteParameters(30.0), AREA, bars())
        N = 0.5 * (law.Ncr + law.Nyr)
        Es = 210000.0

        e, de = law.strain(N)
        assert np.isclose(e, (N / law.As - 0.6 * law.sigSr) / Es)
        assert np.isclose(de, 1 / law.EsAs)

    def test_yield_at_the_concrete_peak(self):
        """
        Steel yielding exactly at the concrete peak strain counts as
        yielding after the peak, both for Nt and for the compression
        branch.
        """
        concrete = ConcreteParameters(30.0, plastic_strain=-0.002)
        law = MC2010Law(concrete, AREA, StringerReinforcement(4, 10.0, Steel(420.0)))

        assert -law.ey == concrete.ec
        assert law.yields_after_peak
        assert law.Nt == law.NlimC

        e, de = law.strain(0.5 * law.NlimC)
        assert concrete.ec < e < 0
        assert de > 0
