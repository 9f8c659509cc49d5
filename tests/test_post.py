"""
Tests for the pandas result tables.
"""

import numpy as np
import pandas as pd

from stringer_panel.analysis import linear_analysis, nonlinear_analysis
from stringer_panel.config import AnalysisSettings
from stringer_panel.panel import PanelBehavior
from stringer_panel.post import (
    integration_point_table,
    load_displacement_table,
    node_table,
    panel_table,
    stringer_table,
)
from stringer_panel.stringer import StringerBehavior


def test_linear_tables(square_wall):
    result = linear_analysis(square_wall(P=10000.0).build())

    nodes = node_table(result)
    assert isinstance(nodes, pd.DataFrame)
    assert list(nodes.index) == list(range(1, 9))
    assert {'x', 'y', 'ux', 'uy', 'rx', 'ry'} <= set(nodes.columns)
    assert np.isclose(nodes['rx'].sum(), -10000.0)
    assert nodes.loc[6, 'fx'] == 10000.0

    stringers = stringer_table(result)
    assert list(stringers.index) == [1, 2, 3, 4]
    assert (stringers['behavior'] == 'Linear').all()
    np.testing.assert_allclose(stringers['length'], 400.0)

    panels = panel_table(result)
    assert len(panels) == 1
    assert np.isclose(abs(panels.loc[1, 'theta_deg']), 45.0)
    assert 'cracked_points' not in panels.columns

    # Linear panels have no integration points
    assert integration_point_table(result).empty
    assert load_displacement_table(result).empty


def test_nonlinear_tables(square_wall):
    data = square_wall(P=5000.0).build(StringerBehavior.NONLINEAR_CLASSIC, PanelBehavior.NONLINEAR_MCFT)
    result = nonlinear_analysis(data, AnalysisSettings(load_steps=2))

    curve = load_displacement_table(result)
    assert list(curve.columns) == ['displacement', 'load_factor']
    assert list(curve['load_factor']) == [0.5, 1.0]

    points = integration_point_table(result)
    assert len(points) == 4
    assert list(points['point']) == [1, 2, 3, 4]
    assert not points['cracked'].any()
    assert points['crack_angle_deg'].isna().all()

    panels = panel_table(result)
    assert panels.loc[1, 'cracked_points'] == 0

    stringers = stringer_table(result)
    assert {'ep1', 'ep3', 'eput', 'epuc'} <= set(stringers.columns)
    # Far below yielding
    assert (stringers[['ep1', 'ep3']] == 0.0).all().all()
    np.testing.assert_allclose(stringers['eput'], 0.3 * 0.01 * 400.0)
