"""Tests for the session generation pipeline.

Covers the async entry points against the packaged blueprints and sample
catalog, determinism of the composed output, and catalog failures.
"""

from dataclasses import replace

import pytest

from workout_engine.composition.blueprint_catalog import load_blueprint
from workout_engine.composition.enums import (
    FillStage,
    FragmentPart,
    FragmentReason,
    Location,
    MovementPattern,
    TrainingDomain,
)
from workout_engine.composition.errors import CatalogUnavailableError, UnknownBlueprintError
from workout_engine.composition.exercise_catalog import ExerciseFilter, InMemoryExerciseCatalog
from workout_engine.composition.fragmenter import is_session_complete, mark_fragment_completed
from workout_engine.composition.models import Exercise, GenerationContext, UserProfile
from workout_engine.composition.session_builder import (
    build_exercise_filter,
    compose_session,
    generate_session,
    generate_session_for_user,
    session_to_dict,
    session_to_json,
)
from workout_engine.composition.shadow_matrix import create_default_shadow_matrix, with_global_level


class FailingCatalog:
    """Catalog whose queries always fail."""

    async def query_exercises(self, query: ExerciseFilter) -> list[Exercise]:
        raise ConnectionError("catalog offline")


class StaticProfiles:
    """Profile provider serving fixed profiles."""

    def __init__(self, profiles: dict[str, UserProfile]):
        self.profiles = profiles

    async def get_user_profile(self, user_id: str) -> UserProfile:
        return self.profiles[user_id]


class MutatingCatalog:
    """Catalog that edits the caller's context while its query is in flight."""

    def __init__(self, inner: InMemoryExerciseCatalog, context: GenerationContext):
        self.inner = inner
        self.context = context

    async def query_exercises(self, query: ExerciseFilter) -> list[Exercise]:
        self.context.domain_levels[TrainingDomain.UPPER_BODY] = 20
        return await self.inner.query_exercises(query)


def _filled_ids(slots) -> list[str]:
    return [filled.slot.id for filled in slots]


@pytest.mark.asyncio
async def test_short_time_splits_full_body(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Twenty minutes at home splits the standard blueprint."""
    context = GenerationContext(location=Location.HOME, time_available=20)

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert session.is_fragmented is True
    assert session.fragmentation.reason == FragmentReason.TIME_CONSTRAINT
    assert session.slots == []
    part_a, part_b = session.fragments
    assert (part_a.part, part_a.name) == (FragmentPart.A, "Office Session")
    assert (part_b.part, part_b.name) == (FragmentPart.B, "Home Session")
    assert _filled_ids(part_a.slots) == ["warmup", "core"]
    assert _filled_ids(part_b.slots) == ["push_compound", "pull_compound", "legs"]
    assert part_a.estimated_duration == 13
    assert part_b.estimated_duration == 18
    assert session.total_duration == 31


@pytest.mark.asyncio
async def test_enough_time_keeps_full_workout(sample_catalog: InMemoryExerciseCatalog) -> None:
    """With enough time the session is one ordered list at the target duration."""
    context = GenerationContext(location=Location.HOME, time_available=60)

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert session.is_fragmented is False
    assert session.fragments == []
    assert _filled_ids(session.slots) == ["warmup", "push_compound", "pull_compound", "legs", "core"]
    assert session.total_duration == 45
    assert session.fragmentation.part_a_duration == 0
    assert session.fragmentation.part_b_duration == 45


@pytest.mark.asyncio
async def test_office_splits_equipment_blueprint(sample_catalog: InMemoryExerciseCatalog) -> None:
    """The pull-up bar slot cannot be done at the office."""
    context = GenerationContext(location=Location.OFFICE, time_available=60)

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert session.is_fragmented is True
    assert session.fragmentation.reason == FragmentReason.LOCATION_MISMATCH


@pytest.mark.asyncio
async def test_recovery_never_splits(sample_catalog: InMemoryExerciseCatalog) -> None:
    """The recovery blueprint stays whole even when short on time at the office."""
    context = GenerationContext(location=Location.OFFICE, time_available=5)

    session = await generate_session("recovery_maintenance", context, sample_catalog)

    assert session.is_fragmented is False
    assert session.fragmentation.reason == FragmentReason.FULL_WORKOUT
    assert all(filled.exercise.exercise_id for filled in session.slots)


@pytest.mark.asyncio
async def test_generation_is_deterministic(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Identical inputs give byte-identical output."""
    context = GenerationContext(
        location=Location.HOME,
        time_available=20,
        equipment_available=frozenset({"dumbbell", "pullup_bar"}),
        injuries=frozenset({"wrist"}),
    )

    first = await generate_session("calisthenics_upper", context, sample_catalog)
    second = await generate_session("calisthenics_upper", context, sample_catalog)

    assert session_to_json(first) == session_to_json(second)
    assert first.id == second.id


def test_compose_session_is_deterministic(sample_exercises: list[Exercise]) -> None:
    """The pure composition step is idempotent."""
    blueprint = load_blueprint("strength_equipment")
    context = GenerationContext(location=Location.GYM, time_available=30, equipment_available=frozenset({"barbell"}))

    assert session_to_json(compose_session(blueprint, context, sample_exercises)) == session_to_json(
        compose_session(blueprint, context, sample_exercises)
    )


def test_blueprint_version_changes_session_id(sample_exercises: list[Exercise]) -> None:
    blueprint = load_blueprint("strength_equipment")
    context = GenerationContext(location=Location.GYM, time_available=60, equipment_available=frozenset({"barbell"}))

    original = compose_session(blueprint, context, sample_exercises)
    revised = compose_session(replace(blueprint, version=blueprint.version + 1), context, sample_exercises)

    assert revised.id != original.id
    assert revised.blueprint_version == original.blueprint_version + 1


@pytest.mark.asyncio
async def test_session_id_depends_on_inputs(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Different contexts yield different ids."""
    short = await generate_session(
        "full_body_standard", GenerationContext(location=Location.HOME, time_available=20), sample_catalog
    )
    long = await generate_session(
        "full_body_standard", GenerationContext(location=Location.HOME, time_available=60), sample_catalog
    )

    assert short.id != long.id


@pytest.mark.asyncio
async def test_injured_areas_never_selected(
    sample_catalog: InMemoryExerciseCatalog, sample_exercises: list[Exercise]
) -> None:
    """No chosen exercise loads an injured area."""
    injuries = frozenset({"wrist", "knee", "shoulder"})
    context = GenerationContext(location=Location.HOME, time_available=60, injuries=injuries)
    by_id = {exercise.id: exercise for exercise in sample_exercises}

    session = await generate_session("full_body_standard", context, sample_catalog)

    for filled in session.slots:
        assert not injuries.intersection(by_id[filled.exercise.exercise_id].injury_areas)


@pytest.mark.asyncio
async def test_global_level_applies_to_every_slot(sample_catalog: InMemoryExerciseCatalog) -> None:
    """The global override decides every resolved level."""
    matrix = with_global_level(create_default_shadow_matrix(), 15)
    context = GenerationContext(location=Location.HOME, time_available=60, shadow_matrix=matrix)

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert {filled.resolved_level for filled in session.slots} == {15}


@pytest.mark.asyncio
async def test_unfillable_slots_become_warnings() -> None:
    """Slots without candidates are left out and reported."""
    plank_only = InMemoryExerciseCatalog(
        [
            Exercise(
                id="plank",
                name="Plank",
                movement_pattern=MovementPattern.CORE_ANTI_EXTENSION,
                sweat_level=1,
                level=10,
            )
        ]
    )
    context = GenerationContext(location=Location.HOME, time_available=60)

    session = await generate_session("full_body_standard", context, plank_only)

    assert _filled_ids(session.slots) == ["core"]
    unfillable = sorted(warning.slot_id for warning in session.warnings if warning.code == "UNFILLABLE_SLOT")
    assert unfillable == ["legs", "pull_compound", "push_compound", "warmup"]


@pytest.mark.asyncio
async def test_clamped_context_levels_are_warned(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Context notes surface as LEVEL_CLAMPED warnings."""
    context = GenerationContext(
        location=Location.HOME,
        time_available=60,
        notes=("programs.pulling: level 40 clamped to 20",),
    )

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert session.warnings[0].code == "LEVEL_CLAMPED"
    assert "programs.pulling" in session.warnings[0].message


@pytest.mark.asyncio
async def test_generation_uses_matrix_snapshot(sample_catalog: InMemoryExerciseCatalog) -> None:
    """The session keeps its own copy of the matrix."""
    context = GenerationContext(location=Location.HOME, time_available=60)

    session = await generate_session("full_body_standard", context, sample_catalog)

    assert session.generation_context.shadow_matrix == context.shadow_matrix
    assert session.generation_context.shadow_matrix is not context.shadow_matrix


@pytest.mark.asyncio
async def test_domain_levels_fixed_at_call_start(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Edits to the caller's domain levels during the catalog query are not seen."""
    context = GenerationContext(
        location=Location.HOME,
        time_available=60,
        domain_levels={TrainingDomain.UPPER_BODY: 2},
    )

    session = await generate_session("full_body_standard", context, MutatingCatalog(sample_catalog, context))

    levels = {filled.slot.id: filled.resolved_level for filled in session.slots}
    assert context.domain_levels[TrainingDomain.UPPER_BODY] == 20
    assert levels["push_compound"] == 2
    assert session.generation_context.domain_levels == {TrainingDomain.UPPER_BODY: 2}


def test_context_copies_domain_levels() -> None:
    levels = {TrainingDomain.CORE: 7}
    context = GenerationContext(location=Location.HOME, time_available=30, domain_levels=levels)

    levels[TrainingDomain.CORE] = 15

    assert context.domain_levels == {TrainingDomain.CORE: 7}


@pytest.mark.asyncio
async def test_catalog_failure_raises() -> None:
    """Catalog errors abort generation with a retryable error."""
    context = GenerationContext(location=Location.HOME, time_available=60)

    with pytest.raises(CatalogUnavailableError):
        await generate_session("full_body_standard", context, FailingCatalog())


@pytest.mark.asyncio
async def test_catalog_timeout_raises(sample_exercises: list[Exercise]) -> None:
    """A slow catalog is cut off at the timeout."""
    slow = InMemoryExerciseCatalog(list(sample_exercises), latency_seconds=1.0)
    context = GenerationContext(location=Location.HOME, time_available=60)

    with pytest.raises(CatalogUnavailableError):
        await generate_session("full_body_standard", context, slow, timeout=0.01)


@pytest.mark.asyncio
async def test_unknown_archetype_raises(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Unknown archetypes fail before the catalog is queried."""
    context = GenerationContext(location=Location.HOME, time_available=60)

    with pytest.raises(UnknownBlueprintError):
        await generate_session("nope", context, FailingCatalog())


@pytest.mark.asyncio
async def test_generate_for_user(sample_catalog: InMemoryExerciseCatalog) -> None:
    """The user's stored inventory and injuries feed the context."""
    profiles = StaticProfiles(
        {
            "user-1": UserProfile(
                user_id="user-1",
                equipment={"gym": ("barbell", "dumbbell")},
                injuries=("wrist",),
            )
        }
    )

    session = await generate_session_for_user(
        "user-1",
        "strength_equipment",
        Location.GYM,
        90,
        profiles,
        sample_catalog,
        shadow_matrix_override=with_global_level(create_default_shadow_matrix(), 14),
    )

    assert session.generation_context.equipment_available == frozenset({"barbell", "dumbbell"})
    assert session.generation_context.injuries == frozenset({"wrist"})
    squat = next(filled for filled in session.slots if filled.slot.id == "squat_golden")
    assert squat.exercise.exercise_id == "barbell_back_squat"
    assert squat.fill_stage == FillStage.STRICT


@pytest.mark.asyncio
async def test_generate_for_user_with_corrupt_stored_level(sample_catalog: InMemoryExerciseCatalog) -> None:
    """A non-numeric stored level becomes a LEVEL_CLAMPED warning, not an error."""
    profiles = StaticProfiles(
        {"user-4": UserProfile(user_id="user-4", shadow_matrix={"use_global_level": True, "global_level": "high"})}
    )

    session = await generate_session_for_user("user-4", "full_body_standard", Location.HOME, 60, profiles, sample_catalog)

    assert session.warnings[0].code == "LEVEL_CLAMPED"
    assert "global_level" in session.warnings[0].message
    assert {filled.resolved_level for filled in session.slots} == {10}


@pytest.mark.asyncio
async def test_generated_fragments_complete_together(sample_catalog: InMemoryExerciseCatalog) -> None:
    """Completing both parts of a generated split completes the session."""
    context = GenerationContext(location=Location.HOME, time_available=20)
    session = await generate_session("full_body_standard", context, sample_catalog)

    mark_fragment_completed(session, FragmentPart.B)
    assert is_session_complete(session) is False
    mark_fragment_completed(session, FragmentPart.A)
    assert is_session_complete(session) is True


def test_exercise_filter_covers_substitutes() -> None:
    """The catalog query includes substitute patterns and excludes injuries."""
    blueprint = load_blueprint("full_body_standard")
    context = GenerationContext(location=Location.HOME, time_available=60, injuries=frozenset({"knee"}))

    query = build_exercise_filter(blueprint, context)

    assert MovementPattern.VERTICAL_PUSH in query.movement_patterns
    assert MovementPattern.LUNGE in query.movement_patterns
    assert MovementPattern.MOBILITY_LOWER in query.movement_patterns
    assert query.exclude_injury_areas == frozenset({"knee"})


def test_session_to_dict_is_plain_data(sample_exercises: list[Exercise]) -> None:
    """Serialized sessions use plain values for enums and sets."""
    blueprint = load_blueprint("full_body_standard")
    context = GenerationContext(
        location=Location.OFFICE,
        time_available=60,
        equipment_available=frozenset({"pullup_bar", "dumbbell"}),
    )

    data = session_to_dict(compose_session(blueprint, context, sample_exercises))

    assert data["fragmentation"]["reason"] == "location_mismatch"
    assert data["generation_context"]["equipment_available"] == ["dumbbell", "pullup_bar"]
    assert data["fragments"][0]["name"] == "Office Session"
