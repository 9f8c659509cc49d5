# stringer_panel - Stringer-Panel Model analysis of reinforced concrete walls
"""
STRINGER-PANEL: Nonlinear Analysis of Reinforced Concrete Membranes
===================================================================

This package provides:
- linear and nonlinear stringer elements (Classic, MC2010, MCFT laws)
- linear and nonlinear panel elements (MCFT and DSFM membranes)
- a coordinate model builder with automatic node numbering
- linear and incremental-iterative (modified Newton) drivers
- pandas result tables

ARCHITECTURE:
-------------
    kernel/         DOF management, assembly, simplification, solve
    config.py       AnalysisSettings + CONFIG
    materials.py    Concrete parameters, steel, reinforcement
    stringer*.py    Stringer element and its force-strain laws
    concrete.py     Uniaxial concrete laws of the membrane
    membrane.py     Integration point state determination
    panel.py        Panel element
    model.py        Node, InputData, ModelBuilder
    analysis.py     linear_analysis, nonlinear_analysis
    post.py         Result tables
"""

import logging

from .config import CONFIG, AnalysisSettings, NonConvergencePolicy
from .kernel import DOFManager, DOF_SPM, MechanismError, ConvergenceError
from .materials import (
    AggregateType,
    ConcreteModel,
    ConcreteParameters,
    PanelReinforcement,
    Steel,
    StringerReinforcement,
)
from .stringer import Stringer, StringerBehavior, StringerSection, StringerState
from .panel import Panel, PanelBehavior
from .model import InputData, InvalidInputError, ModelBuilder, Node, continued_stringers
from .analysis import AnalysisResult, Diagnostic, assemble_system, linear_analysis, nonlinear_analysis

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    'CONFIG', 'AnalysisSettings', 'NonConvergencePolicy',
    'DOFManager', 'DOF_SPM', 'MechanismError', 'ConvergenceError',
    'AggregateType', 'ConcreteModel', 'ConcreteParameters',
    'PanelReinforcement', 'Steel', 'StringerReinforcement',
    'Stringer', 'StringerBehavior', 'StringerSection', 'StringerState',
    'Panel', 'PanelBehavior',
    'InputData', 'InvalidInputError', 'ModelBuilder', 'Node', 'continued_stringers',
    'AnalysisResult', 'Diagnostic', 'assemble_system', 'linear_analysis', 'nonlinear_analysis',
]
