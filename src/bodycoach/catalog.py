"""
Exercise Catalog

Read-only lookup from exercise id to its metadata, loaded once from the
packaged YAML file and passed to the builders and engines that need it.
Catalog order is meaningful: it is the tie-break for fallback selection.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .biomechanics import Equipment, ExerciseCategory, MovementPattern
from .errors import CatalogError
from .models import LoadType

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / 'data' / 'exercises.yaml'


@dataclass(frozen=True)
class Exercise:
    """Immutable catalog entry."""
    id: str
    name: str
    category: ExerciseCategory
    movement_patterns: Tuple[MovementPattern, ...]
    load_type: LoadType
    equipment: Tuple[Equipment, ...]
    cues: Tuple[str, ...] = ()
    common_mistakes: Tuple[str, ...] = ()
    swap_options: Tuple[str, ...] = ()
    duration_or_reps: Optional[str] = None

    def has_pattern(self, pattern: MovementPattern) -> bool:
        return pattern in self.movement_patterns

    def requires(self, item: Equipment) -> bool:
        return item in self.equipment

    @classmethod
    def from_dict(cls, data: dict) -> 'Exercise':
        return cls(
            id=data['id'],
            name=data['name'],
            category=ExerciseCategory(data['category']),
            movement_patterns=tuple(MovementPattern(p) for p in data.get('movement_patterns') or []),
            load_type=LoadType(data['load_type']),
            equipment=tuple(Equipment(e) for e in data.get('equipment') or ['none']),
            cues=tuple(data.get('cues') or []),
            common_mistakes=tuple(data.get('common_mistakes') or []),
            swap_options=tuple(data.get('swap_options') or []),
            duration_or_reps=data.get('duration_or_reps'),
        )


class ExerciseCatalog:
    """Read-only exercise lookup."""

    def __init__(self, exercises: Iterable[Exercise]):
        self._exercises: List[Exercise] = list(exercises)
        self._by_id: Dict[str, Exercise] = {}
        for exercise in self._exercises:
            if exercise.id in self._by_id:
                raise CatalogError(f"Duplicate exercise id in catalog: {exercise.id}")
            self._by_id[exercise.id] = exercise

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> 'ExerciseCatalog':
        """
        Load the catalog from YAML.

        Args:
            path: Catalog file. If None, uses the packaged exercises.yaml.

        Raises:
            CatalogError: If the file is missing or malformed
        """
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        if not catalog_path.exists():
            raise CatalogError(f"Exercise catalog not found: {catalog_path}")

        try:
            with open(catalog_path) as f:
                raw = yaml.safe_load(f) or {}
            exercises = [Exercise.from_dict(item) for item in raw.get('exercises', [])]
        except (yaml.YAMLError, KeyError, ValueError) as e:
            raise CatalogError(f"Could not parse exercise catalog {catalog_path}: {e}") from e

        logger.debug("Loaded %d exercises from %s", len(exercises), catalog_path)
        return cls(exercises)

    def by_id(self, exercise_id: str) -> Optional[Exercise]:
        return self._by_id.get(exercise_id)

    def all(self) -> List[Exercise]:
        return list(self._exercises)

    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self._by_id

    def __len__(self) -> int:
        return len(self._exercises)

    def __iter__(self):
        return iter(self._exercises)
