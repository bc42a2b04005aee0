"""
JUDGMENT-DAY: Coaching Layer

Internal Codename: JUDGMENT-DAY
"Judgment Day: The day the workout is decided."

Deterministic coaching logic:
- Equipment resolution and exercise eligibility
- Weekly program building with pattern coverage
- Per-exercise progression
- Phase planning from weekly signals
"""

from .equipment import EquipmentContext, is_eligible, normalize_selection, normalize_selection_values
from .program import ProgramBuilder, format_program_text
from .progression import Prescription, ProgressionEngine, ProgressionResult, RecommendedNext, default_recommendation
from .phases import PhasePlanner, next_week_plan, phase_for
from .signals import WeeklySignals, compute_signals
from .planner import CoachPlanner

__all__ = [
    'EquipmentContext',
    'is_eligible',
    'normalize_selection',
    'normalize_selection_values',
    'ProgramBuilder',
    'format_program_text',
    'Prescription',
    'ProgressionEngine',
    'ProgressionResult',
    'RecommendedNext',
    'default_recommendation',
    'PhasePlanner',
    'next_week_plan',
    'phase_for',
    'WeeklySignals',
    'compute_signals',
    'CoachPlanner',
]
