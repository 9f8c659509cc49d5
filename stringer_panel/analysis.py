# stringer_panel/analysis.py
"""
ANALYSIS: Linear and Nonlinear Drivers
======================================

PURPOSE:
--------
Drive the elements of an InputData through one solve (linear) or an
incremental-iterative solve (nonlinear), and collect the results.

LINEAR:
-------
    K, f   = assemble + simplify (supports, free stringer mid nodes)
    u      = K^-1 f
    forces = element stiffness x element displacements
    R      = K_full u - f       (support reactions)

NONLINEAR (modified Newton-Raphson):
------------------------------------
    for step s = 1..S:
        f_s = (s/S) f
        K   = committed stringer stiffness + initial panel stiffness (factorized once)
        repeat:
            element state determination at u
            r = f_s - f_internal        (zero at eliminated DOFs)
            converged if max|r| <= tol_f max|f_s|
                     and max|du| <= tol_u max|u|
                     and iteration >= min_iterations
            du = K^-1 r;  u += du
        commit element states

A load step that runs out of iterations is either reported and carried
on from (``NonConvergencePolicy.CONTINUE``) or raised as a
ConvergenceError (``NonConvergencePolicy.ABORT``).
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import numpy as np

from .config import CONFIG, AnalysisSettings, NonConvergencePolicy
from .kernel.assemble import (
    apply_constraints,
    assemble_global_F,
    assemble_global_K,
    coerce_zero,
    zero_rows,
)
from .kernel.dof import DOF_SPM
from .kernel.solve import ConvergenceError, factorize, solve_factorized
from .model import InputData, InvalidInputError, Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable anomaly met during an analysis."""
    kind: str
    message: str
    load_step: Optional[int] = None
    iteration: Optional[int] = None
    element: Optional[str] = None

    def __str__(self):
        where = []
        if self.load_step is not None:
            where.append(f"step {self.load_step}")
        if self.iteration is not None:
            where.append(f"iteration {self.iteration}")
        if self.element is not None:
            where.append(self.element)
        prefix = f"[{', '.join(where)}] " if where else ""
        return f"{prefix}{self.kind}: {self.message}"


@dataclass
class AnalysisResult:
    """
    Outcome of an analysis.

    ``load_displacement`` holds (monitored displacement, load factor)
    for every converged load step of a nonlinear analysis.
    """
    data: InputData
    displacements: np.ndarray
    reactions: np.ndarray
    load_displacement: List[Tuple[float, float]] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    monitored_dof: Optional[int] = None
    converged_steps: int = 0
    load_steps: int = 1

    @property
    def nodes(self) -> List[Node]:
        return self.data.nodes

    @property
    def stringers(self) -> list:
        return self.data.stringers

    @property
    def panels(self) -> list:
        return self.data.panels

    @property
    def passed(self) -> bool:
        return not self.diagnostics

    @property
    def load_factors(self) -> List[float]:
        return [lf for _, lf in self.load_displacement]

    def node_displacement(self, node: int) -> Tuple[float, float]:
        ix, iy = DOF_SPM.node_dofs(node)
        return float(self.displacements[ix]), float(self.displacements[iy])


def global_stiffness(data: InputData, tangent: bool = False) -> np.ndarray:
    """Unsimplified global stiffness of the current element states."""
    contributions = [(s.dof_index, s.global_stiffness()) for s in data.stringers]
    contributions += [(p.dof_index, p.global_stiffness(tangent)) for p in data.panels]
    return assemble_global_K(data.ndof, contributions)


def internal_forces(data: InputData) -> np.ndarray:
    contributions = [(e.dof_index, e.global_forces) for e in data.elements]
    return assemble_global_F(data.ndof, contributions)


def eliminated_dofs(data: InputData, K: np.ndarray) -> List[int]:
    """Constrained DOFs plus stringer mid-node DOFs without stiffness."""
    return sorted(set(data.constraints) | set(zero_rows(K, data.internal_dofs)))


def assemble_system(
    data: InputData,
    load_factor: float = 1.0,
    settings: AnalysisSettings = CONFIG,
    tangent: bool = False
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Assemble and simplify the global system.

    Nothing is stored on ``data`` or the elements.

    Returns:
        (K_full, K_simplified, f_simplified)
    """
    K = coerce_zero(global_stiffness(data, tangent), settings.zero_tolerance)
    f = load_factor * data.forces
    K_s, f_s = apply_constraints(K, f, eliminated_dofs(data, K))
    return K, K_s, f_s


def _push_displacements(data: InputData, u: np.ndarray) -> None:
    nodes = []
    for node in data.nodes:
        ix, iy = node.dof_index
        nodes.append(replace(node, ux=float(u[ix]), uy=float(u[iy])))
    data.nodes = nodes


def linear_analysis(
    data: InputData,
    load_factor: float = 1.0,
    settings: AnalysisSettings = CONFIG
) -> AnalysisResult:
    """
    Single solve of a model made of linear elements.

    Raises:
        InvalidInputError: If the model fails validation or has nonlinear elements
        MechanismError: If the simplified stiffness is singular
    """
    data.validate()
    nonlinear = [e for e in data.elements if not e.behavior.is_linear]
    if nonlinear:
        raise InvalidInputError(f"Linear analysis needs linear elements, got {nonlinear[0]!r}.")

    logger.info("Linear analysis: %d DOFs, load factor %.3f", data.ndof, load_factor)

    K, K_s, f_s = assemble_system(data, load_factor, settings)
    u = solve_factorized(factorize(K_s, settings.cond_limit), f_s)

    for element in data.elements:
        element.analysis(u)

    reactions = coerce_zero(K @ u - load_factor * data.forces, settings.zero_tolerance)
    free = np.ones(data.ndof, dtype=bool)
    free[np.asarray(data.constraints, dtype=int)] = False
    reactions[free] = 0.0

    _push_displacements(data, u)

    logger.info("Linear analysis done: max |u| = %.4e", np.max(np.abs(u)))
    return AnalysisResult(data=data, displacements=u, reactions=reactions, converged_steps=1)


def monitored_dof(data: InputData, settings: AnalysisSettings = CONFIG) -> int:
    """Configured monitored DOF, else the DOF with the largest applied force."""
    if settings.monitored_dof is not None:
        if not 0 <= settings.monitored_dof < data.ndof:
            raise InvalidInputError(f"Monitored DOF {settings.monitored_dof} out of range.")
        return settings.monitored_dof
    return int(np.argmax(np.abs(data.forces)))


def _element_analysis(data: InputData, u: np.ndarray, load_step: int, settings: AnalysisSettings) -> None:
    for stringer in data.stringers:
        stringer.analysis(u, settings.stringer_substeps)
    for panel in data.panels:
        panel.analysis(u, load_step)


def _commit(data: InputData) -> None:
    for element in data.elements:
        element.results()


def nonlinear_analysis(
    data: InputData,
    settings: AnalysisSettings = CONFIG
) -> AnalysisResult:
    """
    Incremental-iterative analysis under proportional loading.

    Args:
        data: Model, elements with any behavior
        settings: Load steps, tolerances and the non-convergence policy

    Returns:
        AnalysisResult with the load-displacement curve and diagnostics

    Raises:
        MechanismError: If a simplified stiffness is singular
        ConvergenceError: On NaN/Inf, or a non-converged step under ABORT
    """
    data.validate()

    steps = settings.load_steps
    dof = monitored_dof(data, settings)
    diagnostics: List[Diagnostic] = []
    load_displacement: List[Tuple[float, float]] = []

    logger.info(
        "Nonlinear analysis: %d DOFs, %d load steps, monitored DOF %d",
        data.ndof, steps, dof,
    )

    u = np.zeros(data.ndof)
    fi = np.zeros(data.ndof)

    for step in range(1, steps + 1):
        lf = step / steps

        K, K_s, f_s = assemble_system(data, lf, settings, settings.panel_tangent_stiffness)
        eliminated = eliminated_dofs(data, K)
        factor = factorize(K_s, settings.cond_limit)

        f_ref = np.max(np.abs(f_s)) if f_s.size else 0.0
        du = None
        converged = False

        for it in range(1, settings.max_iterations + 1):
            _element_analysis(data, u, step, settings)

            fi = internal_forces(data)
            r = f_s - fi
            r[eliminated] = 0.0

            if not (np.all(np.isfinite(r)) and np.all(np.isfinite(u))):
                raise ConvergenceError(f"NaN/Inf in residual or displacements at load step {step}, iteration {it}.")

            r_max = np.max(np.abs(r))
            logger.debug("step %d it %d: max|r| = %.4e", step, it, r_max)

            if du is not None and it >= settings.min_iterations:
                force_ok = r_max <= settings.force_tolerance * f_ref
                disp_ok = np.max(np.abs(du)) <= settings.displacement_tolerance * np.max(np.abs(u))
                if force_ok and disp_ok:
                    converged = True
                    break

            du = solve_factorized(factor, r)
            u = u + du

        if converged:
            load_displacement.append((float(u[dof]), lf))
            logger.info("Load step %d (lf = %.3f) converged in %d iterations", step, lf, it)
        else:
            message = (
                f"Load step {step} not converged after {settings.max_iterations} iterations "
                f"(max residual {r_max:.4e})."
            )
            if settings.nonconvergence_policy is NonConvergencePolicy.ABORT:
                raise ConvergenceError(message)
            diagnostics.append(Diagnostic("nonconvergence", message, step, settings.max_iterations))
            logger.warning(message)

        for panel in data.panels:
            for text in panel.messages:
                diagnostic = Diagnostic("crack_equilibrium", text, step, element=repr(panel))
                diagnostics.append(diagnostic)
                logger.warning(str(diagnostic))

        _commit(data)

    supports = np.asarray(data.constraints, dtype=int)
    reactions = np.zeros(data.ndof)
    reactions[supports] = fi[supports] - data.forces[supports]

    _push_displacements(data, u)

    logger.info(
        "Nonlinear analysis done: %d/%d steps converged, %d diagnostics",
        len(load_displacement), steps, len(diagnostics),
    )

    return AnalysisResult(
        data=data,
        displacements=u,
        reactions=reactions,
        load_displacement=load_displacement,
        diagnostics=diagnostics,
        monitored_dof=dof,
        converged_steps=len(load_displacement),
        load_steps=steps,
    )
