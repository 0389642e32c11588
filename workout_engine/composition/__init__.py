"""Workout composition and fragmentation engine.

Turns a blueprint, a Shadow Matrix snapshot and a generation context into a
concrete session, split into Part A / Part B fragments when it cannot be
done in one sitting.
"""

from workout_engine.composition.blueprint_catalog import (
    clear_blueprint_cache,
    get_blueprint_by_focus,
    load_blueprint,
    load_blueprint_catalog,
)
from workout_engine.composition.context import build_generation_context, resolve_equipment
from workout_engine.composition.errors import (
    CatalogUnavailableError,
    CompositionError,
    InvalidBlueprintError,
    StaleGenerationError,
    UnknownBlueprintError,
)
from workout_engine.composition.exercise_catalog import (
    ExerciseCatalog,
    ExerciseFilter,
    InMemoryExerciseCatalog,
    UserProfileProvider,
    load_exercise_catalog,
)
from workout_engine.composition.fragmenter import (
    Fragmenter,
    FragmenterConfig,
    classify_slot,
    is_session_complete,
    mark_fragment_completed,
)
from workout_engine.composition.models import (
    BlueprintSlot,
    Exercise,
    FilledSlot,
    FragmentationResult,
    GeneratedSession,
    GenerationContext,
    GenerationWarning,
    UserProfile,
    WorkoutBlueprint,
    WorkoutFragment,
)
from workout_engine.composition.session_builder import (
    GenerationCoordinator,
    compose_session,
    generate_session,
    generate_session_for_user,
    session_to_json,
)
from workout_engine.composition.shadow_matrix import (
    LevelOverride,
    LevelTarget,
    ShadowMatrix,
    create_default_shadow_matrix,
    resolve_level,
    shadow_matrix_from_dict,
)
from workout_engine.composition.slot_filler import fill_blueprint, fill_slot

__all__ = [
    "BlueprintSlot",
    "CatalogUnavailableError",
    "CompositionError",
    "Exercise",
    "ExerciseCatalog",
    "ExerciseFilter",
    "FilledSlot",
    "FragmentationResult",
    "Fragmenter",
    "FragmenterConfig",
    "GeneratedSession",
    "GenerationContext",
    "GenerationCoordinator",
    "GenerationWarning",
    "InMemoryExerciseCatalog",
    "InvalidBlueprintError",
    "LevelOverride",
    "LevelTarget",
    "ShadowMatrix",
    "StaleGenerationError",
    "UnknownBlueprintError",
    "UserProfile",
    "UserProfileProvider",
    "WorkoutBlueprint",
    "WorkoutFragment",
    "build_generation_context",
    "classify_slot",
    "clear_blueprint_cache",
    "compose_session",
    "create_default_shadow_matrix",
    "fill_blueprint",
    "fill_slot",
    "generate_session",
    "generate_session_for_user",
    "get_blueprint_by_focus",
    "is_session_complete",
    "load_blueprint",
    "load_blueprint_catalog",
    "load_exercise_catalog",
    "mark_fragment_completed",
    "resolve_equipment",
    "resolve_level",
    "session_to_json",
    "shadow_matrix_from_dict",
]
