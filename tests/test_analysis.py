"""
TEST: Linear and Nonlinear Drivers
==================================

This test validates that the drivers:
1. Solve a framed shear panel with global equilibrium (forces and moments)
2. Refuse unstable models and models they cannot handle
3. Step through a nonlinear analysis with monotonic load factors
4. Apply the non-convergence policy (report or raise)
"""

import logging
import math

import numpy as np
import pytest

from stringer_panel.analysis import (
    Diagnostic,
    assemble_system,
    global_stiffness,
    linear_analysis,
    nonlinear_analysis,
)
from stringer_panel.config import AnalysisSettings, NonConvergencePolicy
from stringer_panel.kernel import ConvergenceError, MechanismError
from stringer_panel.membrane import DSFMMembrane
from stringer_panel.model import InvalidInputError
from stringer_panel.panel import PanelBehavior
from stringer_panel.stringer import StringerBehavior

P = 10000.0
SIDE = 400.0


class TestLinearAnalysis:

    def test_square_panel_in_pure_shear(self, square_wall):
        """
        WHAT IS THIS TEST?
        ==================
        A horizontal load P on the top-left corner reaches the panel only
        through the top stringer, so the panel carries a uniform shear

            |tau| = P / (L t) = 10000 / (400 * 100) = 0.25 MPa

        and the truss model puts the struts at 45 degrees with
        sigma2 = -2|tau|.
        """
        result = linear_analysis(square_wall(P=P).build())
        panel = result.panels[0]

        sx, sy, tau = panel.average_stresses
        assert np.isclose(abs(tau), P / (SIDE * 100.0))

        (_, s2, _), theta = panel.principal_stresses
        assert np.isclose(s2, -2 * abs(tau))
        assert theta == (math.pi / 4 if tau <= 0 else -math.pi / 4)

    def test_global_equilibrium(self, square_wall):
        result = linear_analysis(square_wall(P=P).build())
        R = result.reactions

        rx = R[0::2]
        ry = R[1::2]
        x = np.array([node.x for node in result.nodes])

        assert np.isclose(rx.sum(), -P)
        assert abs(ry.sum()) < 1e-6
        # Overturning moment P * L taken by the vertical reactions
        assert np.isclose((x * ry).sum(), P * SIDE)

        # Reactions only where the model is supported
        free = np.setdiff1d(np.arange(result.data.ndof), result.data.constraints)
        assert not np.any(R[free])

    def test_top_stringer_carries_the_load(self, square_wall):
        result = linear_analysis(square_wall(P=P).build())
        top = result.stringers[2]

        assert top.grips == [6, 7, 8]
        N1, N3 = top.normal_forces
        assert np.isclose(abs(N1), P)
        assert abs(N3) < 1e-3

    def test_nodes_carry_displacements(self, square_wall):
        result = linear_analysis(square_wall(P=P).build())

        ux, uy = result.node_displacement(6)
        assert ux > 0
        assert result.nodes[5].ux == ux
        assert result.nodes[0].displacement == (0.0, 0.0)

    def test_load_factor_scales_linearly(self, square_wall):
        u1 = linear_analysis(square_wall(P=P).build()).displacements
        u2 = linear_analysis(square_wall(P=P).build(), load_factor=2.0).displacements

        np.testing.assert_allclose(u2, 2 * u1)

    def test_frame_without_panel_is_a_mechanism(self, square_wall):
        data = square_wall(P=P, panel=False).build()

        with pytest.raises(MechanismError):
            linear_analysis(data)

    def test_nonlinear_elements_are_rejected(self, square_wall):
        data = square_wall(P=P).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.LINEAR)

        with pytest.raises(InvalidInputError, match="linear elements"):
            linear_analysis(data)

    def test_assembly_leaves_model_untouched(self, square_wall):
        data = square_wall(P=P).build()
        forces = data.forces.copy()

        K, K_s, f_s = assemble_system(data)

        np.testing.assert_allclose(K, K.T, atol=1e-6)
        np.testing.assert_array_equal(data.forces, forces)
        assert all(node.ux == 0.0 for node in data.nodes)
        for dof in data.constraints:
            assert K_s[dof, dof] == 1.0
            assert f_s[dof] == 0.0


class TestNonlinearAnalysis:

    def test_zero_load_converges_at_rest(self, square_wall):
        data = square_wall(P=0.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT)
        result = nonlinear_analysis(data, AnalysisSettings(load_steps=3))

        assert result.passed
        assert result.converged_steps == 3
        assert not np.any(result.displacements)
        assert result.load_displacement == [(0.0, 1 / 3), (0.0, 2 / 3), (0.0, 1.0)]

    def test_low_load_mcft(self, square_wall):
        """
        Below cracking every step converges, the load factors climb to 1
        and the monitored displacement grows with them.
        """
        data = square_wall(P=5000.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT)
        result = nonlinear_analysis(data, AnalysisSettings(load_steps=4))

        assert result.passed
        assert result.monitored_dof == 10
        assert result.load_factors == [0.25, 0.5, 0.75, 1.0]

        displacements = [d for d, _ in result.load_displacement]
        assert all(b > a for a, b in zip(displacements, displacements[1:]))
        assert displacements[-1] == result.displacements[10]

        assert all(not p.cracked for p in result.panels[0].points)
        assert np.isclose(result.reactions[0::2].sum(), -5000.0, rtol=0.05)

    def test_low_load_dsfm(self, square_wall):
        data = square_wall(P=5000.0).build(StringerBehavior.NONLINEAR_MC2010, PanelBehavior.NONLINEAR_DSFM)
        result = nonlinear_analysis(data, AnalysisSettings(load_steps=2))

        assert result.passed
        assert result.load_factors == [0.5, 1.0]

    def test_cracking_load_mcft(self, square_wall):
        """
        WHAT IS THIS TEST?
        ==================
        The web cracks near tau = fcr, about 72 kN for this wall. At
        120 kN the panel must be cracked, the wall must have softened
        and the iteration stiffness must stay symmetric.
        """
        data = square_wall(P=120000.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT)
        result = nonlinear_analysis(data, AnalysisSettings(load_steps=20))

        assert result.passed
        lfs = result.load_factors
        assert len(lfs) == 20
        assert all(b > a for a, b in zip(lfs, lfs[1:]))
        assert any(p.cracked for p in result.panels[0].points)

        (u_first, lf_first), (u_last, lf_last) = result.load_displacement[0], result.load_displacement[-1]
        assert lf_last / u_last < lf_first / u_first

        K = global_stiffness(result.data)
        np.testing.assert_allclose(K, K.T, atol=1e-9 * np.max(np.abs(K)))

    def test_cracking_load_dsfm(self, square_wall):
        P_high = 100000.0
        mcft = nonlinear_analysis(
            square_wall(P=P_high).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT),
            AnalysisSettings(load_steps=10),
        )
        dsfm = nonlinear_analysis(
            square_wall(P=P_high).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_DSFM),
            AnalysisSettings(load_steps=10),
        )

        assert any(p.cracked for p in dsfm.panels[0].points)
        assert np.all(np.isfinite(dsfm.displacements))
        assert "nonconvergence" not in [d.kind for d in dsfm.diagnostics]

        # Same wall, same order of deformation
        ratio = dsfm.displacements[10] / mcft.displacements[10]
        assert 0.5 < ratio < 2.0

    def test_crack_equilibrium_is_reported(self, square_wall, monkeypatch, caplog):
        monkeypatch.setattr(DSFMMembrane, "crack_local_stresses", lambda self, *args: (0.0, False))
        data = square_wall(P=120000.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_DSFM)

        with caplog.at_level(logging.WARNING, logger="stringer_panel.analysis"):
            result = nonlinear_analysis(data, AnalysisSettings(load_steps=2, max_iterations=20))

        reported = [d for d in result.diagnostics if d.kind == "crack_equilibrium"]
        assert reported
        assert reported[-1].load_step == 2
        assert "Equilibrium on crack not reached at step 2" in reported[-1].message
        assert "crack_equilibrium" in caplog.text

    def test_monitored_dof_can_be_set(self, square_wall):
        data = square_wall(P=0.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT)
        result = nonlinear_analysis(data, AnalysisSettings(load_steps=1, monitored_dof=11))
        assert result.monitored_dof == 11

    def test_monitored_dof_out_of_range(self, square_wall):
        data = square_wall(P=P).build()

        with pytest.raises(InvalidInputError):
            nonlinear_analysis(data, AnalysisSettings(load_steps=1, monitored_dof=99))


class TestNonConvergencePolicy:
    """
    Two iterations can never converge: the first increment is the whole
    displacement, so the displacement criterion fails at iteration 2.
    """

    def settings(self, policy):
        return AnalysisSettings(load_steps=2, max_iterations=2, min_iterations=2, nonconvergence_policy=policy)

    def test_abort_raises(self, square_wall):
        with pytest.raises(ConvergenceError, match="not converged"):
            nonlinear_analysis(square_wall(P=P).build(), self.settings(NonConvergencePolicy.ABORT))

    def test_continue_reports(self, square_wall, caplog):
        with caplog.at_level(logging.WARNING, logger="stringer_panel.analysis"):
            result = nonlinear_analysis(square_wall(P=P).build(), self.settings(NonConvergencePolicy.CONTINUE))

        assert not result.passed
        assert result.converged_steps == 0
        assert result.load_factors == []
        assert [d.kind for d in result.diagnostics] == ["nonconvergence", "nonconvergence"]
        assert [d.load_step for d in result.diagnostics] == [1, 2]
        assert "not converged" in caplog.text

    def test_enough_iterations_converge(self, square_wall):
        result = nonlinear_analysis(square_wall(P=P).build(), AnalysisSettings(load_steps=2))

        assert result.passed
        np.testing.assert_allclose(
            result.displacements,
            linear_analysis(square_wall(P=P).build()).displacements,
            rtol=1e-4, atol=1e-8,
        )


class TestSettings:

    def test_defaults(self):
        settings = AnalysisSettings()
        assert settings.load_steps == 50
        assert settings.nonconvergence_policy is NonConvergencePolicy.CONTINUE

    def test_policy_from_string(self):
        assert AnalysisSettings(nonconvergence_policy="abort").nonconvergence_policy is NonConvergencePolicy.ABORT

    def test_invalid_settings_raise(self):
        with pytest.raises(ValueError):
            AnalysisSettings(load_steps=0)
        with pytest.raises(ValueError):
            AnalysisSettings(max_iterations=1, min_iterations=2)
        with pytest.raises(ValueError):
            AnalysisSettings(force_tolerance=0.0)


def test_diagnostic_text():
    diagnostic = Diagnostic("nonconvergence", "Load step 3 not converged.", load_step=3, iteration=10)
    assert str(diagnostic) == "[step 3, iteration 10] nonconvergence: Load step 3 not converged."
