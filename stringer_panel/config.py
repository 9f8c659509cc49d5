# stringer_panel/config.py
"""
Analysis settings and defaults.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NonConvergencePolicy(Enum):
    """What the nonlinear driver does when a load step exhausts its iterations."""
    CONTINUE = "continue"   # emit a diagnostic, carry on from the non-converged state
    ABORT = "abort"         # raise ConvergenceError


@dataclass
class AnalysisSettings:
    """Solver configuration shared by the linear and nonlinear drivers."""

    # Load stepping
    load_steps: int = 50
    max_iterations: int = 1000
    min_iterations: int = 2

    # Convergence (relative to max |target force| and max |displacement|)
    force_tolerance: float = 0.01
    displacement_tolerance: float = 0.01

    # Element state determination
    stringer_substeps: int = 5
    panel_tangent_stiffness: bool = False

    # Numerical hygiene
    zero_tolerance: float = 1e-9
    cond_limit: float = 1e14

    # Reporting
    monitored_dof: Optional[int] = None
    nonconvergence_policy: NonConvergencePolicy = NonConvergencePolicy.CONTINUE

    def __post_init__(self):
        if self.load_steps < 1:
            raise ValueError(f"load_steps must be >= 1, got {self.load_steps}")
        if self.max_iterations < self.min_iterations:
            raise ValueError(
                f"max_iterations ({self.max_iterations}) must be >= "
                f"min_iterations ({self.min_iterations})"
            )
        if self.force_tolerance <= 0 or self.displacement_tolerance <= 0:
            raise ValueError("Convergence tolerances must be positive.")
        if self.stringer_substeps < 1:
            raise ValueError(f"stringer_substeps must be >= 1, got {self.stringer_substeps}")
        if isinstance(self.nonconvergence_policy, str):
            self.nonconvergence_policy = NonConvergencePolicy(self.nonconvergence_policy)


# Global default instance
CONFIG = AnalysisSettings()
