import logging

from stringer_panel import (
    AnalysisSettings,
    ConcreteModel,
    ConcreteParameters,
    ModelBuilder,
    PanelBehavior,
    PanelReinforcement,
    Steel,
    StringerBehavior,
    StringerReinforcement,
    linear_analysis,
    nonlinear_analysis,
)
from stringer_panel import post


def build_wall(stringer_behavior, panel_behavior):
    """
    Two-storey shear wall, one panel per storey.

        (0,2000) ---- (1000,2000)   <- horizontal load at the top
           |   panel 2    |
        (0,1000) ---- (1000,1000)
           |   panel 1    |
        (0,0) ------- (1000,0)      <- fixed base
    """
    concrete = ConcreteParameters(30.0, model=ConcreteModel.MCFT)
    steel = Steel(500.0)

    builder = ModelBuilder(concrete)

    bars = StringerReinforcement(number_of_bars=2, bar_diameter=10.0, steel=steel)
    web = PanelReinforcement(bar_diameter=(8.0, 8.0), bar_spacing=(150.0, 150.0), steel=(steel, steel))

    # Columns and floors (stringers)
    for x in (0.0, 1000.0):
        builder.add_stringer((x, 0.0), (x, 1000.0), width=100.0, height=100.0, reinforcement=bars)
        builder.add_stringer((x, 1000.0), (x, 2000.0), width=100.0, height=100.0, reinforcement=bars)
    for y in (0.0, 1000.0, 2000.0):
        builder.add_stringer((0.0, y), (1000.0, y), width=100.0, height=100.0, reinforcement=bars)

    # Web (panels)
    builder.add_panel([(0, 0), (1000, 0), (1000, 1000), (0, 1000)], width=100.0, reinforcement=web)
    builder.add_panel([(0, 1000), (1000, 1000), (1000, 2000), (0, 2000)], width=100.0, reinforcement=web)

    # Fixed base
    for x in (0.0, 500.0, 1000.0):
        builder.add_support((x, 0.0), x=True, y=True)

    # Load at the top left corner
    builder.add_force((0.0, 2000.0), fx=200000.0)

    return builder.build(stringer_behavior, panel_behavior)


def main():
    """
    SHEAR WALL DEMO
    ===============
    Runs the same wall twice: once linear, once nonlinear (MC2010
    stringers, MCFT panels), and prints the result tables.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("LINEAR ANALYSIS")
    print("=" * 70)
    result = linear_analysis(build_wall(StringerBehavior.LINEAR, PanelBehavior.LINEAR))
    print(post.node_table(result)[['x', 'y', 'ux', 'uy', 'rx', 'ry']].to_string())
    print()
    print(post.stringer_table(result)[['grips', 'N1', 'N3', 'state']].to_string())
    print()
    print(post.panel_table(result)[['tau_xy', 'sigma_2', 'theta_deg']].to_string())

    print()
    print("=" * 70)
    print("NONLINEAR ANALYSIS")
    print("=" * 70)
    settings = AnalysisSettings(load_steps=20, max_iterations=200)
    result = nonlinear_analysis(
        build_wall(StringerBehavior.NONLINEAR_MC2010, PanelBehavior.NONLINEAR_MCFT),
        settings,
    )
    print(post.load_displacement_table(result).to_string())
    print()
    print(f"Converged steps: {result.converged_steps}/{result.load_steps}")
    for diagnostic in result.diagnostics:
        print(f"  {diagnostic}")


if __name__ == "__main__":
    main()
