"""
Shared model fixtures.
"""

import pytest

from stringer_panel.materials import (
    ConcreteModel,
    ConcreteParameters,
    PanelReinforcement,
    Steel,
    StringerReinforcement,
)
from stringer_panel.model import ModelBuilder


def square_wall_builder(P=10000.0, side=400.0, bars=True, panel=True):
    """
    One square panel framed by four stringers.

        (0,400) ---- (200,400) ---- (400,400)   <- P at top-left, along x
           |                            |
        (0,200)        panel        (400,200)
           |                            |
        (0,0) ------ (200,0) ------ (400,0)     <- fixed

    Stringers 100 x 100 mm with 4 bars, panel 100 mm thick with a
    10 mm @ 100 mm mesh each way.
    """
    concrete = ConcreteParameters(30.0, model=ConcreteModel.MCFT)
    builder = ModelBuilder(concrete)
    reinforcement = StringerReinforcement(number_of_bars=4, bar_diameter=10.0, steel=Steel(500.0)) if bars else None

    corners = [(0.0, 0.0), (side, 0.0), (side, side), (0.0, side)]
    for i in range(4):
        builder.add_stringer(corners[i], corners[(i + 1) % 4], 100.0, 100.0, reinforcement)
    if panel:
        web = PanelReinforcement(bar_diameter=(10.0, 10.0), bar_spacing=(100.0, 100.0))
        builder.add_panel(corners, 100.0, web)

    for x in (0.0, side / 2, side):
        builder.add_support((x, 0.0))
    builder.add_force((0.0, side), fx=P)
    return builder


@pytest.fixture
def square_wall():
    return square_wall_builder
