# stringer_panel/post.py
"""
Result tables.

Each function turns an AnalysisResult into a pandas DataFrame with one
row per node, stringer, panel or converged load step, ready for
``to_csv`` or further filtering.
"""

import math

import pandas as pd

from .analysis import AnalysisResult


def node_table(result: AnalysisResult) -> pd.DataFrame:
    """Node positions, loads, displacements and support reactions."""
    rows = []
    for node in result.nodes:
        ix, iy = node.dof_index
        rows.append({
            'node': node.number,
            'x': node.x,
            'y': node.y,
            'support_x': node.support_x,
            'support_y': node.support_y,
            'fx': node.force_x,
            'fy': node.force_y,
            'ux': node.ux,
            'uy': node.uy,
            'rx': float(result.reactions[ix]),
            'ry': float(result.reactions[iy]),
        })
    return pd.DataFrame(rows).set_index('node')


def stringer_table(result: AnalysisResult) -> pd.DataFrame:
    """Stringer end/mid forces, normal forces, force state and plastic strains."""
    rows = []
    for stringer in result.stringers:
        f1, f2, f3 = stringer.local_forces
        N1, N3 = stringer.normal_forces
        ep1, ep3 = stringer.plastic_generalized_strains()
        eput, epuc = stringer.max_plastic_strain
        rows.append({
            'stringer': stringer.number,
            'grips': tuple(stringer.grips),
            'length': stringer.length,
            'behavior': stringer.behavior.value,
            'F1': f1,
            'F2': f2,
            'F3': f3,
            'N1': N1,
            'N3': N3,
            'max_force': stringer.max_force,
            'state': stringer.force_state.value,
            'ep1': ep1,
            'ep3': ep3,
            'eput': eput,
            'epuc': epuc,
        })
    return pd.DataFrame(rows).set_index('stringer')


def panel_table(result: AnalysisResult) -> pd.DataFrame:
    """Panel average and principal stresses (angle in degrees)."""
    rows = []
    for panel in result.panels:
        sx, sy, txy = panel.average_stresses
        (s1, s2, _), theta = panel.principal_stresses
        row = {
            'panel': panel.number,
            'grips': tuple(panel.grips),
            'behavior': panel.behavior.value,
            'sigma_x': sx,
            'sigma_y': sy,
            'tau_xy': txy,
            'sigma_1': s1,
            'sigma_2': s2,
            'theta_deg': math.degrees(theta),
            'max_force': panel.max_force,
        }
        if panel.law is not None:
            row['cracked_points'] = sum(p.cracked for p in panel.points)
        rows.append(row)
    return pd.DataFrame(rows).set_index('panel')


def integration_point_table(result: AnalysisResult) -> pd.DataFrame:
    """Strains, stresses and crack angle of every nonlinear panel point."""
    rows = []
    for panel in result.panels:
        if panel.law is None:
            continue
        for i, point in enumerate(panel.points):
            ex, ey, gxy = point.strains
            sx, sy, txy = point.stresses
            rows.append({
                'panel': panel.number,
                'point': i + 1,
                'ex': ex,
                'ey': ey,
                'gxy': gxy,
                'sigma_x': sx,
                'sigma_y': sy,
                'tau_xy': txy,
                'theta1_deg': math.degrees(point.theta1),
                'cracked': point.cracked,
                'crack_angle_deg': math.degrees(point.crack_angle) if point.crack_angle is not None else math.nan,
            })
    return pd.DataFrame(rows)


def load_displacement_table(result: AnalysisResult) -> pd.DataFrame:
    """Monitored displacement against load factor, one row per converged step."""
    return pd.DataFrame(result.load_displacement, columns=['displacement', 'load_factor'])
