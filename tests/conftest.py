"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

import pytest

from workout_engine.composition.blueprint_catalog import clear_blueprint_cache
from workout_engine.composition.enums import IntensityProfile, Location, MovementPattern, SessionFocus, SlotType
from workout_engine.composition.exercise_catalog import InMemoryExerciseCatalog, load_exercise_catalog
from workout_engine.composition.fragmenter import Fragmenter, FragmenterConfig
from workout_engine.composition.models import BlueprintSlot, Exercise, GenerationContext, WorkoutBlueprint


@pytest.fixture(autouse=True)
def reset_blueprint_cache():
    """Forget cached blueprint catalogs between tests."""
    clear_blueprint_cache()
    yield
    clear_blueprint_cache()


@pytest.fixture
def fragmenter() -> Fragmenter:
    """Fragmenter with default (non-environment) configuration."""
    return Fragmenter(FragmenterConfig())


@pytest.fixture
def scenario_blueprint() -> WorkoutBlueprint:
    """Six-slot blueprint: warm-up, two equipment compounds, two capped core slots, cool-down."""
    return WorkoutBlueprint(
        id="scenario",
        name="Scenario",
        focus=SessionFocus.FULL_BODY,
        intensity=IntensityProfile.MEDIUM,
        slots=(
            BlueprintSlot(id="warmup", type=SlotType.WARMUP, movement_pattern=MovementPattern.MOBILITY_UPPER, sets=2),
            BlueprintSlot(
                id="press",
                type=SlotType.COMPOUND,
                movement_pattern=MovementPattern.HORIZONTAL_PUSH,
                sets=3,
                preferred_equipment=("dumbbell",),
            ),
            BlueprintSlot(
                id="squat",
                type=SlotType.COMPOUND,
                movement_pattern=MovementPattern.SQUAT,
                sets=3,
                preferred_equipment=("barbell",),
            ),
            BlueprintSlot(
                id="core_1",
                type=SlotType.COMPOUND,
                movement_pattern=MovementPattern.CORE_ANTI_EXTENSION,
                sets=2,
                max_sweat_level=1,
            ),
            BlueprintSlot(
                id="core_2",
                type=SlotType.COMPOUND,
                movement_pattern=MovementPattern.CORE_ANTI_ROTATION,
                sets=2,
                max_sweat_level=1,
            ),
            BlueprintSlot(id="cooldown", type=SlotType.COOLDOWN, movement_pattern=MovementPattern.MOBILITY_LOWER, sets=1),
        ),
        min_duration=25,
        target_duration=40,
        max_duration=50,
        can_fragment=True,
    )


@pytest.fixture
def home_context() -> GenerationContext:
    """Home context with plenty of time and no equipment."""
    return GenerationContext(location=Location.HOME, time_available=60)


@pytest.fixture(scope="session")
def sample_exercises() -> list[Exercise]:
    """Packaged sample exercise catalog."""
    return load_exercise_catalog()


@pytest.fixture
def sample_catalog(sample_exercises: list[Exercise]) -> InMemoryExerciseCatalog:
    """In-memory catalog serving the packaged exercises."""
    return InMemoryExerciseCatalog(list(sample_exercises))
