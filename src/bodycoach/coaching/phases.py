"""
Phase Planning Engine

Internal Codename: JUDGMENT-DAY
Maps program weeks onto multi-week phases and decides next week's adjustment.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..models import NextWeekPlan, Phase, Program, format_iso, parse_iso
from .signals import WeeklySignals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseDefinition:
    """Week range and default goal for one phase."""
    name: str
    week_start: int
    week_end: Optional[int]  # None = open-ended
    goal: str

    @property
    def week_count(self) -> int:
        return 0 if self.week_end is None else self.week_end - self.week_start + 1

    def contains(self, week_index: int) -> bool:
        if week_index < self.week_start:
            return False
        return self.week_end is None or week_index <= self.week_end


PHASES: List[PhaseDefinition] = [
    PhaseDefinition(
        name="Phase 1: Restore & Control",
        week_start=1,
        week_end=2,
        goal="mobility, activation, motor control, pain reduction",
    ),
    PhaseDefinition(
        name="Phase 2: Strength & Capacity",
        week_start=3,
        week_end=6,
        goal="progressive overload, capacity, technique",
    ),
    PhaseDefinition(
        name="Phase 3: Performance & Aesthetics",
        week_start=7,
        week_end=None,
        goal="hypertrophy/strength bias based on goal",
    ),
]

HIGH_COMPLIANCE = 0.75


def phase_for(week_index: int, goal: Optional[str] = None) -> Phase:
    """
    Get the phase active in a given program week.

    Args:
        week_index: 1-based week; values below 1 are clamped to 1
        goal: Stored verbatim when non-empty, else the phase's default goal

    Returns:
        Phase for that week
    """
    safe_week = max(1, int(week_index))
    match = next((phase for phase in PHASES if phase.contains(safe_week)), PHASES[0])

    return Phase(
        name=match.name,
        week_index=safe_week,
        week_count=match.week_count,
        goal=goal or match.goal,
    )


def next_week_plan(
    compliance_rate: float,
    pain_flag: bool,
    fatigue_flag: bool,
    phase_name: str
) -> NextWeekPlan:
    """
    Decide next week's adjustment.

    Priority: pain (regress) > fatigue (hold load) > compliance >= 0.75
    (progress one variable) > repeat the week.
    """
    if pain_flag:
        return NextWeekPlan(
            summary="Next week: regress intensity and prioritize comfortable movement.",
            change="Reduce range or load on 1-2 exercises; add extra mobility.",
            reason="Pain flagged last week; regress to keep this smooth.",
        )

    if fatigue_flag:
        return NextWeekPlan(
            summary="Next week: hold load and focus on control.",
            change="Keep weights the same; aim for cleaner reps or tempo work.",
            reason="Fatigue was high; hold load and refine technique.",
        )

    if compliance_rate >= HIGH_COMPLIANCE:
        return NextWeekPlan(
            summary="Next week: progress one variable on 1-2 lifts.",
            change="Add 1-2 reps or a small load bump within your range.",
            reason=f"Strong compliance in {phase_name}.",
        )

    return NextWeekPlan(
        summary="Next week: repeat this week and build consistency.",
        change="Keep targets steady; focus on showing up.",
        reason="Consistency first before adding stress.",
    )


def week_index_for(program: Program, now: datetime) -> int:
    """1-based program week, counted in whole weeks since the program was created."""
    elapsed_days = (now - parse_iso(program.created_at)).total_seconds() / 86400
    return max(1, math.floor(elapsed_days / 7) + 1)


class PhasePlanner:
    """
    Advances a program's phase and next-week plan from weekly signals.

    Stateless: the same program, signals and clock always give the same result.
    """

    def advance(self, program: Program, signals: WeeklySignals, now: datetime) -> Program:
        """
        Refresh phase and next-week plan in place.

        Args:
            program: Program to update
            signals: Compliance/pain/fatigue for the most recent window
            now: Current time (timezone-aware)

        Returns:
            The same program, with phase, next_week_plan and updated_at set
        """
        week_index = week_index_for(program, now)
        phase = phase_for(week_index, program.goal_track)
        plan = next_week_plan(
            compliance_rate=signals.compliance_rate,
            pain_flag=signals.pain_flag,
            fatigue_flag=signals.fatigue_flag,
            phase_name=phase.name,
        )

        if program.phase is None or program.phase.name != phase.name:
            logger.info("Program %s entering %s (week %d)", program.id, phase.name, week_index)

        program.phase = phase
        program.next_week_plan = plan
        program.updated_at = format_iso(now)
        return program
