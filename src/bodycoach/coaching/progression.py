"""
Progression Engine

Internal Codename: JUDGMENT-DAY
Recommends the next session's target for one exercise from its log history.

Decision order:
1. Pain flagged -> regress to the minimum prescription (safety flag)
2. Short of target -> ease reps
3. Target met but rated hard -> hold load, consolidate
4. Target met cleanly -> add load (weighted) or reps/tempo (bodyweight)
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from ..catalog import Exercise
from ..models import (
    ExerciseFeedback,
    ExerciseLog,
    Felt,
    LoadType,
    ProgramRoutineItem,
    Range,
    round_half_up,
)

SLOW_TEMPO = "slow and controlled"
CONTROL_TEMPO = "2-1-2"
TEMPO_PROGRESSION = "3-1-3"

WEIGHT_STEP = 2.5


@dataclass(frozen=True)
class Prescription:
    """Prescribed targets the recommendation is measured against."""
    sets: Optional[Range] = None
    reps: Optional[Range] = None
    duration_sec: Optional[int] = None
    rest_sec: Optional[int] = None

    @classmethod
    def from_item(cls, item: ProgramRoutineItem) -> 'Prescription':
        return cls(sets=item.sets, reps=item.reps, duration_sec=item.duration_sec, rest_sec=item.rest_sec)

    @classmethod
    def parse(cls, sets=None, reps=None, duration_sec=None, rest_sec=None) -> 'Prescription':
        """Build from free-text values ("3", "8-12")."""
        return cls(sets=Range.parse(sets), reps=Range.parse(reps), duration_sec=duration_sec, rest_sec=rest_sec)


@dataclass(frozen=True)
class RecommendedNext:
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight: Optional[float] = None
    tempo: Optional[str] = None
    rest_seconds: Optional[int] = None

    def describe(self, unit: str = 'lb') -> str:
        parts = []
        if self.weight is not None:
            parts.append(f"{self.weight:g} {unit}")
        if self.sets is not None and self.reps is not None:
            parts.append(f"{self.sets} x {self.reps}")
        elif self.reps is not None:
            parts.append(f"{self.reps} reps")
        elif self.sets is not None:
            parts.append(f"{self.sets} sets")
        if self.tempo:
            parts.append(f"tempo {self.tempo}")
        return ", ".join(parts) if parts else "same targets"


@dataclass(frozen=True)
class ProgressionResult:
    recommended_next: RecommendedNext
    reason: str
    safety_flag: bool = False


def default_recommendation() -> ProgressionResult:
    """Neutral result to show when an exercise has no history yet."""
    return ProgressionResult(
        recommended_next=RecommendedNext(),
        reason="No history yet. Keep targets consistent and log this session.",
    )


def next_weight(weight: float) -> float:
    """
    Tiered load bump rounded to the nearest 2.5.

    >= 150: +2.5%; >= 50: +5; else +2.5.
    """
    if weight >= 150:
        increase = weight * 0.025
    elif weight >= 50:
        increase = 5.0
    else:
        increase = WEIGHT_STEP
    return round_half_up((weight + increase) / WEIGHT_STEP) * WEIGHT_STEP


def _min(value: Optional[Range]) -> Optional[int]:
    return value.min if value is not None else None


def _max(value: Optional[Range]) -> Optional[int]:
    return value.max if value is not None else None


class ProgressionEngine:
    """
    Computes the next prescribed weight/reps/sets/tempo for an exercise.

    Pure and stateless; logs are sorted newest-first by updated_at before use,
    so callers may pass them in any order.
    """

    def recommend(
        self,
        exercise: Exercise,
        logs: Iterable[ExerciseLog],
        feedback: Optional[ExerciseFeedback] = None,
        prescription: Optional[Prescription] = None
    ) -> Optional[ProgressionResult]:
        """
        Recommend the next target.

        Args:
            exercise: Catalog entry (load type and default rep text)
            logs: History for this exercise
            feedback: Latest explicit feedback; overrides the log's felt rating
            prescription: Prescribed sets/reps; falls back to the log's planned
                sets and the exercise's default reps

        Returns:
            ProgressionResult, or None when there is no history yet
        """
        ordered = sorted(
            (log for log in logs if not log.deleted_at),
            key=lambda log: log.updated_at,
            reverse=True,
        )
        if not ordered:
            return None

        latest = ordered[0]
        prescription = prescription or Prescription()
        rating = feedback.rating if feedback else latest.felt

        set_range = prescription.sets or Range.parse(latest.sets_planned)
        rep_range = prescription.reps or Range.parse(exercise.duration_or_reps)

        if rating == Felt.PAIN:
            return ProgressionResult(
                recommended_next=RecommendedNext(
                    reps=_min(rep_range),
                    sets=_min(set_range),
                    tempo=SLOW_TEMPO,
                ),
                reason="Pain flagged last time; regressing to keep this smooth.",
                safety_flag=True,
            )

        completed_sets = latest.sets_completed
        if completed_sets is None:
            completed_sets = latest.sets_planned
        if completed_sets is None:
            completed_sets = _min(set_range) or 0
        reps_completed = latest.reps_per_set

        met_sets = set_range is None or completed_sets >= set_range.min
        met_reps = rep_range is None or reps_completed is None or reps_completed >= rep_range.min
        met_target = met_sets and met_reps

        if exercise.load_type == LoadType.WEIGHTED:
            return self._weighted(latest, rating, met_target, reps_completed, set_range, rep_range)

        if exercise.load_type in (LoadType.BODYWEIGHT, LoadType.ASSISTED):
            return self._bodyweight(rating, met_target, reps_completed, rep_range)

        return ProgressionResult(
            recommended_next=RecommendedNext(),
            reason="Keep the same target and focus on consistency.",
        )

    def _weighted(
        self,
        latest: ExerciseLog,
        rating: Optional[Felt],
        met_target: bool,
        reps_completed: Optional[int],
        set_range: Optional[Range],
        rep_range: Optional[Range]
    ) -> ProgressionResult:
        weight = latest.weight or 0.0

        if not met_target:
            reps = None
            if rep_range is not None:
                base = reps_completed if reps_completed is not None else rep_range.min
                reps = rep_range.clamp(base - 1)
            return ProgressionResult(
                recommended_next=RecommendedNext(weight=weight or None, reps=reps),
                reason="Last session was short of the target; ease reps and focus on control.",
            )

        if rating == Felt.HARD:
            reps = None
            if rep_range is not None and reps_completed is not None:
                reps = rep_range.clamp(reps_completed + 1)
            return ProgressionResult(
                recommended_next=RecommendedNext(weight=weight or None, reps=reps),
                reason="Keep the load and consolidate with a little more volume before progressing.",
            )

        return ProgressionResult(
            recommended_next=RecommendedNext(
                weight=next_weight(weight),
                reps=_min(rep_range),
                sets=_min(set_range),
            ),
            reason="You hit the target cleanly; adding a small load bump.",
        )

    def _bodyweight(
        self,
        rating: Optional[Felt],
        met_target: bool,
        reps_completed: Optional[int],
        rep_range: Optional[Range]
    ) -> ProgressionResult:
        if not met_target:
            reps = None
            if rep_range is not None:
                base = reps_completed if reps_completed is not None else rep_range.min
                reps = rep_range.clamp(base - 1)
            return ProgressionResult(
                recommended_next=RecommendedNext(reps=reps, tempo=SLOW_TEMPO),
                reason="Keep it smooth; slightly lower reps and control the tempo.",
            )

        if rating == Felt.HARD:
            reps = reps_completed if reps_completed is not None else _min(rep_range)
            return ProgressionResult(
                recommended_next=RecommendedNext(reps=reps, tempo=CONTROL_TEMPO),
                reason="Hold reps steady and consolidate control before progressing.",
            )

        if rep_range is not None and reps_completed is not None:
            reps = rep_range.clamp(reps_completed + 1)
            if reps < rep_range.max:
                return ProgressionResult(
                    recommended_next=RecommendedNext(reps=reps),
                    reason="Add a rep to keep building momentum.",
                )

        top = _max(rep_range)
        return ProgressionResult(
            recommended_next=RecommendedNext(
                reps=top if top is not None else reps_completed,
                tempo=TEMPO_PROGRESSION,
            ),
            reason="At the top of the range; slow the tempo to keep progressing.",
        )
