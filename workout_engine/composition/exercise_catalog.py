"""Exercise catalog and user profile interfaces.

The catalog store is external; the engine only depends on the async
ExerciseCatalog protocol. InMemoryExerciseCatalog serves the packaged sample
catalog (and tests) through the same interface.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import yaml
from loguru import logger
from pydantic import ValidationError

from workout_engine.composition.enums import MovementPattern
from workout_engine.composition.models import Exercise, UserProfile
from workout_engine.composition.schemas import ExerciseCatalogSchema
from workout_engine.config.settings import settings


@dataclass(frozen=True)
class ExerciseFilter:
    """Catalog query filter.

    Attributes:
        movement_patterns: Patterns to include
        exercise_ids: Exercises to include regardless of pattern (locked slots)
        exclude_injury_areas: Body areas whose exercises are left out
        include_generic: Also return designated generic fallback exercises
    """

    movement_patterns: frozenset[MovementPattern] = frozenset()
    exercise_ids: frozenset[str] = frozenset()
    exclude_injury_areas: frozenset[str] = frozenset()
    include_generic: bool = True


class ExerciseCatalog(Protocol):
    """Read-only exercise catalog."""

    async def query_exercises(self, query: ExerciseFilter) -> list[Exercise]: ...


class UserProfileProvider(Protocol):
    """Read-only access to persisted user profiles."""

    async def get_user_profile(self, user_id: str) -> UserProfile: ...


def matches_filter(exercise: Exercise, query: ExerciseFilter) -> bool:
    """Check whether an exercise satisfies a catalog filter."""
    if query.exclude_injury_areas.intersection(exercise.injury_areas):
        return False
    if exercise.id in query.exercise_ids:
        return True
    if exercise.movement_pattern in query.movement_patterns:
        return True
    return query.include_generic and exercise.is_generic


@dataclass
class InMemoryExerciseCatalog:
    """Exercise catalog backed by a list held in memory.

    Attributes:
        exercises: Catalog content
        latency_seconds: Artificial delay per query
    """

    exercises: list[Exercise] = field(default_factory=list)
    latency_seconds: float = 0.0

    async def query_exercises(self, query: ExerciseFilter) -> list[Exercise]:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        results = [exercise for exercise in self.exercises if matches_filter(exercise, query)]
        return sorted(results, key=lambda exercise: exercise.id)


def load_exercise_catalog(catalog_path: str | Path | None = None) -> list[Exercise]:
    """Load exercises from a catalog YAML document.

    Args:
        catalog_path: YAML file (defaults to settings.exercise_catalog_path)

    Returns:
        Exercises sorted by id

    Raises:
        RuntimeError: If the file is missing, malformed, or has duplicate ids
    """
    path = Path(catalog_path or settings.exercise_catalog_path)
    if not path.exists():
        raise RuntimeError(f"Exercise catalog not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        schema = ExerciseCatalogSchema.model_validate(raw)
    except (yaml.YAMLError, ValidationError) as e:
        raise RuntimeError(f"Invalid exercise catalog {path}: {e}") from e

    exercises: dict[str, Exercise] = {}
    for item in schema.exercises:
        if item.id in exercises:
            raise RuntimeError(f"Duplicate exercise id '{item.id}' in {path}")
        exercises[item.id] = Exercise(
            id=item.id,
            name=item.name,
            movement_pattern=item.movement_pattern,
            primary_muscle=item.primary_muscle,
            required_equipment=tuple(sorted(set(item.required_equipment))),
            sweat_level=item.sweat_level,
            roles=tuple(item.roles),
            level=item.level,
            injury_areas=tuple(sorted(set(item.injury_areas))),
            program_ids=tuple(item.program_ids),
            is_time_based=item.is_time_based,
            is_generic=item.is_generic,
        )

    logger.info(f"Loaded {len(exercises)} exercises from {path}")
    return [exercises[exercise_id] for exercise_id in sorted(exercises)]
