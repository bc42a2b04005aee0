"""
Equipment Resolver

Internal Codename: JUDGMENT-DAY
Normalizes free-form equipment selections and decides exercise eligibility.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List

from ..biomechanics import Equipment, GYM_EQUIPMENT

GYM = "gym"

# Free-text selection -> canonical token (or the "gym" shortcut)
SELECTION_ALIASES = {
    "none": Equipment.NONE.value,
    "no equipment": Equipment.NONE.value,
    "bodyweight": Equipment.NONE.value,
    "bands": Equipment.BANDS.value,
    "band": Equipment.BANDS.value,
    "resistance band": Equipment.BANDS.value,
    "resistance bands": Equipment.BANDS.value,
    "dumbbells": Equipment.DUMBBELLS.value,
    "dumbbell": Equipment.DUMBBELLS.value,
    "barbell": Equipment.BARBELL.value,
    "kettlebell": Equipment.KETTLEBELL.value,
    "kettlebells": Equipment.KETTLEBELL.value,
    "cables": Equipment.CABLES.value,
    "cable": Equipment.CABLES.value,
    "machines": Equipment.MACHINES.value,
    "machine": Equipment.MACHINES.value,
    "bench": Equipment.BENCH.value,
    "pullup bar": Equipment.PULLUP_BAR.value,
    "pull-up bar": Equipment.PULLUP_BAR.value,
    "pullup_bar": Equipment.PULLUP_BAR.value,
    "foam roller": Equipment.FOAM_ROLLER.value,
    "foam_roller": Equipment.FOAM_ROLLER.value,
    "gym": GYM,
}


@dataclass(frozen=True)
class EquipmentContext:
    """Resolved availability for one questionnaire submission."""
    available: FrozenSet[Equipment]
    has_gym: bool

    def has(self, item: Equipment) -> bool:
        return item in self.available


def normalize_selection_values(selection: Iterable[str]) -> List[str]:
    """
    Map raw selections to canonical values, keeping first-seen order.

    Unknown values are dropped. An empty result becomes ["none"], and "none"
    is removed when any real equipment (or "gym") was also selected.
    """
    values: List[str] = []
    for raw in selection:
        mapped = SELECTION_ALIASES.get(str(raw).strip().lower())
        if mapped and mapped not in values:
            values.append(mapped)

    if not values:
        return [Equipment.NONE.value]
    if Equipment.NONE.value in values and len(values) > 1:
        return [value for value in values if value != Equipment.NONE.value]
    return values


def normalize_selection(selection: Iterable[str]) -> EquipmentContext:
    """Resolve a selection into an availability set plus the has_gym display flag."""
    values = normalize_selection_values(selection)
    has_gym = GYM in values

    available = {Equipment(value) for value in values if value != GYM}
    if has_gym:
        available.update(GYM_EQUIPMENT)
    if not available:
        available.add(Equipment.NONE)

    return EquipmentContext(available=frozenset(available), has_gym=has_gym)


def is_eligible(exercise, available: Iterable[Equipment]) -> bool:
    """
    True when the exercise needs no equipment or every required item is available.

    No partial credit: an exercise needing two items with only one available
    is ineligible.
    """
    if Equipment.NONE in exercise.equipment:
        return True
    available = set(available)
    return all(item in available for item in exercise.equipment)


def describe_match(exercise, available: Iterable[Equipment]) -> dict:
    """Summarize required vs available equipment for display."""
    available = set(available)
    return {
        'required': [item.value for item in exercise.equipment],
        'available': sorted(item.value for item in available),
        'eligible': is_eligible(exercise, available),
    }
