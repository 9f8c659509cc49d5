# stringer_panel/model.py
"""
MODEL: Nodes, Input Data and the Coordinate Model Builder
=========================================================

PURPOSE:
--------
Everything an analysis needs before it starts:

    Node          frozen record of a grip (position, supports, loads, results)
    InputData     nodes + stringers + panels + constraints + forces
    ModelBuilder  builds InputData from plain coordinates

NODE NUMBERING:
---------------
One node per distinct position (stringer ends and midpoints, panel edge
midpoints). Nodes are sorted by ascending Y, then ascending X, and
numbered from 1 in that order. Node k owns global DOFs 2k-2 (ux) and
2k-1 (uy).

USAGE:
------
    builder = ModelBuilder(ConcreteParameters(30))
    builder.add_stringer((0, 0), (400, 0), width=100, height=100)
    ...
    builder.add_panel([(0, 0), (400, 0), (400, 400), (0, 400)], width=100)
    builder.add_support((0, 0), x=True, y=True)
    builder.add_force((0, 400), fx=10000)
    data = builder.build(StringerBehavior.LINEAR, PanelBehavior.LINEAR)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .kernel.assemble import add_nodal_load
from .kernel.dof import DOF_SPM
from .materials import ConcreteParameters, PanelReinforcement, StringerReinforcement
from .panel import Panel, PanelBehavior
from .stringer import Stringer, StringerBehavior, StringerSection

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

# Coordinates closer than this are the same node (mm)
POINT_TOLERANCE = 1e-6


class InvalidInputError(ValueError):
    """Raised when the model cannot be analysed as given."""
    pass


@dataclass(frozen=True)
class Node:
    number: int
    x: float
    y: float
    support_x: bool = False
    support_y: bool = False
    force_x: float = 0.0
    force_y: float = 0.0
    ux: float = 0.0
    uy: float = 0.0

    @property
    def position(self) -> Point:
        return self.x, self.y

    @property
    def dof_index(self) -> List[int]:
        return DOF_SPM.node_dofs(self.number)

    @property
    def displacement(self) -> Tuple[float, float]:
        return self.ux, self.uy


@dataclass
class InputData:
    """
    Assembled description of a model.

    ``constraints`` and ``forces`` default to the values derived from the
    node support flags and loads.
    """
    nodes: List[Node]
    stringers: List[Stringer] = field(default_factory=list)
    panels: List[Panel] = field(default_factory=list)
    constraints: Optional[List[int]] = None
    forces: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.constraints is None:
            self.constraints = self.derived_constraints()
        else:
            self.constraints = sorted(set(self.constraints))
        if self.forces is None:
            self.forces = self.derived_forces()
        else:
            self.forces = np.asarray(self.forces, dtype=float)

    @property
    def ndof(self) -> int:
        return DOF_SPM.ndof(len(self.nodes))

    @property
    def elements(self) -> list:
        return list(self.stringers) + list(self.panels)

    def derived_constraints(self) -> List[int]:
        constraints = []
        for node in self.nodes:
            ix, iy = node.dof_index
            if node.support_x:
                constraints.append(ix)
            if node.support_y:
                constraints.append(iy)
        return sorted(constraints)

    def derived_forces(self) -> np.ndarray:
        f = np.zeros(self.ndof)
        for node in self.nodes:
            add_nodal_load(f, node.number, (node.force_x, node.force_y))
        return f

    @property
    def internal_dofs(self) -> List[int]:
        """DOFs of the stringer mid nodes."""
        dofs = set()
        for stringer in self.stringers:
            dofs.update(DOF_SPM.node_dofs(stringer.grips[1]))
        return sorted(dofs)

    def node(self, number: int) -> Node:
        return self.nodes[number - 1]

    def validate(self) -> None:
        """
        Check the model before an analysis.

        Raises:
            InvalidInputError: On non-dense node numbers, unknown grips,
                constraints or forces out of range, or no elements
        """
        numbers = [n.number for n in self.nodes]
        if numbers != list(range(1, len(self.nodes) + 1)):
            raise InvalidInputError("Nodes must be numbered 1..n in order.")

        if not self.stringers and not self.panels:
            raise InvalidInputError("Model has no elements.")

        n_nodes = len(self.nodes)
        for element in self.elements:
            bad = [g for g in element.grips if not 1 <= g <= n_nodes]
            if bad:
                raise InvalidInputError(f"{element!r} references unknown nodes {bad}.")

        if any(not 0 <= i < self.ndof for i in self.constraints):
            raise InvalidInputError("Constraint index out of range.")

        if self.forces.shape != (self.ndof,):
            raise InvalidInputError(
                f"Force vector has shape {self.forces.shape}, expected ({self.ndof},)."
            )
        if not np.all(np.isfinite(self.forces)):
            raise InvalidInputError("Force vector has NaN/Inf entries.")

        # Stringer ends must sit on their grips
        for stringer in self.stringers:
            for grip, point in ((stringer.grips[0], stringer.start), (stringer.grips[2], stringer.end)):
                if not _same_point(self.node(grip).position, point):
                    raise InvalidInputError(f"{stringer!r} end {point} is not at node {grip}.")


def _same_point(p: Point, q: Point) -> bool:
    return abs(p[0] - q[0]) <= POINT_TOLERANCE and abs(p[1] - q[1]) <= POINT_TOLERANCE


def _key(p: Point) -> Tuple[float, float]:
    return round(p[0] / POINT_TOLERANCE) * POINT_TOLERANCE, round(p[1] / POINT_TOLERANCE) * POINT_TOLERANCE


def midpoint(p: Point, q: Point) -> Point:
    return 0.5 * (p[0] + q[0]), 0.5 * (p[1] + q[1])


def signed_area(vertices: Sequence[Point]) -> float:
    """Shoelace area, positive for counter-clockwise vertices."""
    area = 0.0
    for i, (x0, y0) in enumerate(vertices):
        x1, y1 = vertices[(i + 1) % len(vertices)]
        area += x0 * y1 - x1 * y0
    return 0.5 * area


def order_vertices(vertices: Sequence[Point]) -> List[Point]:
    """
    Panel vertices counter-clockwise from the bottom-left one.

    Points sorted by (y, x) give [p0, p1, p2, p3]; a regular quadrilateral
    is then [p0, p1, p3, p2]. Otherwise fall back to sorting by the angle
    around the centroid, starting at p0.
    """
    if len(vertices) != 4:
        raise InvalidInputError(f"A panel needs four vertices, got {len(vertices)}.")

    pts = sorted((tuple(map(float, v)) for v in vertices), key=lambda p: (p[1], p[0]))
    ordered = [pts[0], pts[1], pts[3], pts[2]]
    if signed_area(ordered) > 0 and _convex(ordered):
        return ordered

    cx = sum(p[0] for p in pts) / 4
    cy = sum(p[1] for p in pts) / 4
    by_angle = sorted(pts, key=lambda p: math.atan2(p[1] - cy, p[0] - cx))
    start = by_angle.index(pts[0])
    return by_angle[start:] + by_angle[:start]


def _convex(vertices: Sequence[Point]) -> bool:
    for i in range(4):
        x0, y0 = vertices[i]
        x1, y1 = vertices[(i + 1) % 4]
        x2, y2 = vertices[(i + 2) % 4]
        if (x1 - x0) * (y2 - y1) - (y1 - y0) * (x2 - x1) <= 0:
            return False
    return True


@dataclass
class _StringerInput:
    start: Point
    end: Point
    width: float
    height: float
    reinforcement: Optional[StringerReinforcement]


@dataclass
class _PanelInput:
    vertices: List[Point]
    width: float
    reinforcement: Optional[PanelReinforcement]


class ModelBuilder:
    """
    Build InputData from coordinates.

    Args:
        concrete: Concrete parameters shared by every element
    """

    def __init__(self, concrete: ConcreteParameters):
        self.concrete = concrete
        self._stringers: List[_StringerInput] = []
        self._panels: List[_PanelInput] = []
        self._supports: Dict[Tuple[float, float], Tuple[bool, bool]] = {}
        self._forces: Dict[Tuple[float, float], Tuple[float, float]] = {}

    def add_stringer(
        self,
        start: Point,
        end: Point,
        width: float,
        height: float,
        reinforcement: Optional[StringerReinforcement] = None
    ) -> int:
        """Add a stringer; returns its 0-based input index."""
        start, end = tuple(map(float, start)), tuple(map(float, end))
        if _same_point(start, end):
            raise InvalidInputError(f"Stringer from {start} to {end} has zero length.")
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Stringer needs positive width and height, got {width} x {height}.")
        self._stringers.append(_StringerInput(start, end, width, height, reinforcement))
        return len(self._stringers) - 1

    def add_panel(
        self,
        vertices: Sequence[Point],
        width: float,
        reinforcement: Optional[PanelReinforcement] = None
    ) -> int:
        """Add a panel; returns its 0-based input index."""
        if width <= 0:
            raise InvalidInputError(f"Panel needs a positive width, got {width}.")
        self._panels.append(_PanelInput(order_vertices(vertices), width, reinforcement))
        return len(self._panels) - 1

    def add_support(self, point: Point, x: bool = True, y: bool = True) -> None:
        key = _key(point)
        sx, sy = self._supports.get(key, (False, False))
        self._supports[key] = (sx or x, sy or y)

    def add_force(self, point: Point, fx: float = 0.0, fy: float = 0.0) -> None:
        key = _key(point)
        px, py = self._forces.get(key, (0.0, 0.0))
        self._forces[key] = (px + fx, py + fy)

    def _points(self) -> List[Point]:
        points = {}
        for s in self._stringers:
            for p in (s.start, midpoint(s.start, s.end), s.end):
                points.setdefault(_key(p), p)
        for pnl in self._panels:
            for i in range(4):
                p = midpoint(pnl.vertices[i], pnl.vertices[(i + 1) % 4])
                points.setdefault(_key(p), p)
        return sorted(points.values(), key=lambda p: (_key(p)[1], _key(p)[0]))

    def build(
        self,
        stringer_behavior: StringerBehavior = StringerBehavior.LINEAR,
        panel_behavior: PanelBehavior = PanelBehavior.LINEAR
    ) -> InputData:
        """
        Number the nodes and create the elements.

        Raises:
            InvalidInputError: On degenerate elements, or supports and
                forces that are not on a node
        """
        points = self._points()
        numbers = {_key(p): i + 1 for i, p in enumerate(points)}

        for key in list(self._supports) + list(self._forces):
            if key not in numbers:
                raise InvalidInputError(f"Support or force at {key} is not on a node.")

        nodes = []
        for p in points:
            key = _key(p)
            sx, sy = self._supports.get(key, (False, False))
            fx, fy = self._forces.get(key, (0.0, 0.0))
            nodes.append(Node(numbers[key], p[0], p[1], sx, sy, fx, fy))

        stringers = []
        half_heights = {}
        try:
            for i, s in enumerate(self._stringers):
                start, end = sorted((s.start, s.end), key=lambda p: numbers[_key(p)])
                grips = [numbers[_key(start)], numbers[_key(midpoint(start, end))], numbers[_key(end)]]
                section = StringerSection(s.width, s.height, s.reinforcement)
                stringers.append(Stringer(i + 1, grips, start, end, section, self.concrete, stringer_behavior))
                half_heights[grips[1]] = 0.5 * s.height

            panels = []
            for i, pnl in enumerate(self._panels):
                grips = [
                    numbers[_key(midpoint(pnl.vertices[j], pnl.vertices[(j + 1) % 4]))]
                    for j in range(4)
                ]
                heights = [half_heights.get(g, 0.0) for g in grips]
                panels.append(Panel(
                    i + 1, grips, pnl.vertices, pnl.width, self.concrete,
                    pnl.reinforcement, panel_behavior, heights,
                ))
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        data = InputData(nodes, stringers, panels)
        data.validate()
        logger.info(
            "Built model: %d nodes, %d stringers, %d panels, %d constraints",
            len(nodes), len(stringers), len(panels), len(data.constraints),
        )
        return data


def continued_stringers(stringers: Sequence[Stringer]) -> List[Tuple[int, int]]:
    """
    Pairs (n1, n2), n1 < n2, of stringers that continue each other.

    Two stringers sharing an end node are continued when they are nearly
    collinear: the dot product of their direction cosines is below
    -sqrt(2)/2 when they start (or end) at the same node, and above
    sqrt(2)/2 when one starts where the other ends.
    """
    par = math.sqrt(2) / 2
    pairs = set()

    for i, s1 in enumerate(stringers):
        for s2 in stringers[i + 1:]:
            l1, m1 = s1.direction_cosines
            l2, m2 = s2.direction_cosines
            cont = l1 * l2 + m1 * m2

            same_side = s1.grips[0] == s2.grips[0] or s1.grips[2] == s2.grips[2]
            head_tail = s1.grips[0] == s2.grips[2] or s1.grips[2] == s2.grips[0]

            if (same_side and cont < -par) or (head_tail and cont > par):
                pairs.add((min(s1.number, s2.number), max(s1.number, s2.number)))

    return sorted(pairs, key=lambda p: (p[1], p[0]))
