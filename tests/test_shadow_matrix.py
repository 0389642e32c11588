"""Tests for Shadow Matrix level resolution."""

import pytest

from workout_engine.composition.enums import MovementGroup, MuscleGroup, TrainingDomain
from workout_engine.composition.shadow_matrix import (
    DEFAULT_LEVEL,
    DEFAULT_OVERRIDE,
    SHADOW_PROGRAM_IDS,
    LevelOverride,
    LevelTarget,
    computed_default_level,
    create_default_shadow_matrix,
    domain_for_target,
    get_muscle_override,
    get_program_override,
    resolve_level,
    shadow_matrix_from_dict,
    with_global_level,
    with_movement_override,
    with_muscle_override,
    with_program_override,
)

FULL_TARGET = LevelTarget(
    program="pulling",
    movement_group=MovementGroup.VERTICAL_PULL,
    muscle_group=MuscleGroup.BACK,
)


def test_default_matrix_is_fully_populated() -> None:
    """Every movement group and default program has a disabled entry at level 10."""
    matrix = create_default_shadow_matrix()

    assert set(matrix.movement_groups) == set(MovementGroup)
    assert all(entry == DEFAULT_OVERRIDE for entry in matrix.movement_groups.values())
    assert set(matrix.programs) == set(SHADOW_PROGRAM_IDS)
    assert matrix.muscle_groups == {}
    assert matrix.use_global_level is False


def test_missing_entries_fall_back_to_default_override() -> None:
    """Sparse lookups return the explicit default entry."""
    matrix = create_default_shadow_matrix()

    assert get_muscle_override(matrix, MuscleGroup.CALVES) == LevelOverride(level=10, override=False)
    assert get_program_override(matrix, "unknown_program") == DEFAULT_OVERRIDE


def test_resolve_without_overrides_uses_default() -> None:
    """Nothing overridden resolves to the default level."""
    assert resolve_level(create_default_shadow_matrix(), FULL_TARGET) == DEFAULT_LEVEL


def test_resolve_without_overrides_uses_computed_default() -> None:
    """The caller's computed default applies when no override is active."""
    assert resolve_level(create_default_shadow_matrix(), FULL_TARGET, default_level=7) == 7


def test_program_beats_movement_and_muscle() -> None:
    """Program overrides come first among granular entries."""
    matrix = create_default_shadow_matrix()
    matrix = with_muscle_override(matrix, MuscleGroup.BACK, 4)
    matrix = with_movement_override(matrix, MovementGroup.VERTICAL_PULL, 8)
    matrix = with_program_override(matrix, "pulling", 15)

    assert resolve_level(matrix, FULL_TARGET) == 15


def test_movement_beats_muscle() -> None:
    """Movement group overrides come before muscle overrides."""
    matrix = create_default_shadow_matrix()
    matrix = with_muscle_override(matrix, MuscleGroup.BACK, 4)
    matrix = with_movement_override(matrix, MovementGroup.VERTICAL_PULL, 8)

    assert resolve_level(matrix, FULL_TARGET) == 8


def test_muscle_override_applies_last() -> None:
    """A muscle override alone decides the level."""
    matrix = with_muscle_override(create_default_shadow_matrix(), MuscleGroup.BACK, 4)

    assert resolve_level(matrix, FULL_TARGET) == 4


def test_disabled_entries_are_ignored() -> None:
    """Entries with override=False never apply, whatever their level."""
    matrix = with_program_override(create_default_shadow_matrix(), "pulling", 18, override=False)

    assert resolve_level(matrix, FULL_TARGET) == DEFAULT_LEVEL


def test_global_override_dominates() -> None:
    """With the global override on, granular edits have no effect."""
    base = with_global_level(create_default_shadow_matrix(), 12)
    edited = with_program_override(base, "pulling", 2)
    edited = with_movement_override(edited, MovementGroup.VERTICAL_PULL, 3)
    edited = with_muscle_override(edited, MuscleGroup.BACK, 4)

    targets = [
        FULL_TARGET,
        LevelTarget(movement_group=MovementGroup.SQUAT),
        LevelTarget(muscle_group=MuscleGroup.ABS),
        LevelTarget(),
    ]
    for target in targets:
        assert resolve_level(base, target) == 12
        assert resolve_level(edited, target) == 12


def test_global_level_disabled_is_ignored() -> None:
    """A stored global level only applies when enabled."""
    matrix = with_global_level(create_default_shadow_matrix(), 19, enabled=False)

    assert resolve_level(matrix, FULL_TARGET) == DEFAULT_LEVEL


@pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-5, 1), (21, 20), (99, 20), (1, 1), (20, 20)])
def test_levels_are_clamped_on_entry(raw: int, expected: int) -> None:
    """Out-of-range levels are clamped, never rejected."""
    assert LevelOverride(level=raw, override=True).level == expected
    assert with_global_level(create_default_shadow_matrix(), raw).global_level == expected


def test_resolved_level_is_always_in_range() -> None:
    """A clamped override resolves inside [1, 20]."""
    matrix = with_program_override(create_default_shadow_matrix(), "pulling", 50)

    assert resolve_level(matrix, FULL_TARGET) == 20
    assert resolve_level(create_default_shadow_matrix(), FULL_TARGET, default_level=-3) == 1


def test_edits_return_new_matrices() -> None:
    """Editing never changes the original matrix."""
    original = create_default_shadow_matrix()

    edited = with_movement_override(original, MovementGroup.CORE, 14)

    assert edited is not original
    assert original.movement_groups[MovementGroup.CORE] == DEFAULT_OVERRIDE
    assert edited.movement_groups[MovementGroup.CORE] == LevelOverride(level=14, override=True)


def test_snapshot_is_detached() -> None:
    """A snapshot shares no mutable state with its source."""
    matrix = create_default_shadow_matrix()

    snapshot = matrix.snapshot()
    matrix.programs["pulling"] = LevelOverride(level=20, override=True)

    assert snapshot.programs["pulling"] == DEFAULT_OVERRIDE
    assert snapshot == create_default_shadow_matrix()


def test_from_dict_accepts_camel_case() -> None:
    """Persisted camelCase matrices parse into the same structure."""
    matrix, notes = shadow_matrix_from_dict(
        {
            "useGlobalLevel": False,
            "globalLevel": 10,
            "movementGroups": {"vertical_pull": {"level": 13, "override": True}},
            "muscleGroups": {"biceps": {"level": 6, "override": True}},
            "programs": {"pulling": {"level": 9, "override": False}},
        }
    )

    assert notes == []
    assert matrix.movement_groups[MovementGroup.VERTICAL_PULL] == LevelOverride(level=13, override=True)
    assert matrix.movement_groups[MovementGroup.SQUAT] == DEFAULT_OVERRIDE
    assert matrix.muscle_groups[MuscleGroup.BICEPS] == LevelOverride(level=6, override=True)
    assert matrix.programs["pulling"] == LevelOverride(level=9, override=False)


def test_from_dict_reports_clamped_levels() -> None:
    """Every clamped value is described in the notes."""
    matrix, notes = shadow_matrix_from_dict(
        {
            "use_global_level": True,
            "global_level": 25,
            "movement_groups": {"squat": {"level": 0, "override": True}},
        }
    )

    assert matrix.global_level == 20
    assert matrix.movement_groups[MovementGroup.SQUAT].level == 1
    assert len(notes) == 2
    assert any("global_level" in note for note in notes)
    assert any("movement_groups.squat" in note for note in notes)


@pytest.mark.parametrize("bad_level", [None, "high"])
def test_from_dict_defaults_invalid_levels(bad_level: object) -> None:
    """Null or non-numeric stored levels fall back to the default with a note."""
    matrix, notes = shadow_matrix_from_dict(
        {
            "global_level": bad_level,
            "movement_groups": {"squat": {"level": bad_level, "override": True}},
            "programs": {"pulling": {"level": bad_level, "override": True}},
        }
    )

    assert matrix.global_level == DEFAULT_LEVEL
    assert matrix.movement_groups[MovementGroup.SQUAT] == LevelOverride(level=DEFAULT_LEVEL, override=True)
    assert matrix.programs["pulling"].level == DEFAULT_LEVEL
    assert len(notes) == 3
    assert all(f"invalid, defaulted to {DEFAULT_LEVEL}" in note for note in notes)


def test_from_dict_defaults_malformed_entries() -> None:
    matrix, notes = shadow_matrix_from_dict({"muscle_groups": {"biceps": None}, "programs": {"pulling": 12}})

    assert matrix.muscle_groups[MuscleGroup.BICEPS] == DEFAULT_OVERRIDE
    assert matrix.programs["pulling"] == DEFAULT_OVERRIDE
    assert any("muscle_groups.biceps" in note for note in notes)
    assert any("programs.pulling" in note for note in notes)


def test_from_dict_skips_unknown_groups() -> None:
    """Unknown keys are skipped rather than failing the parse."""
    matrix, notes = shadow_matrix_from_dict(
        {
            "movement_groups": {"teleport": {"level": 5, "override": True}},
            "muscle_groups": {"wings": {"level": 5, "override": True}},
        }
    )

    assert notes == []
    assert matrix.muscle_groups == {}
    assert all(entry == DEFAULT_OVERRIDE for entry in matrix.movement_groups.values())


def test_domain_mapping() -> None:
    """Movement group wins; muscle group decides isolation and group-less targets."""
    assert domain_for_target(LevelTarget(movement_group=MovementGroup.HORIZONTAL_PUSH)) == TrainingDomain.UPPER_BODY
    assert domain_for_target(LevelTarget(movement_group=MovementGroup.HINGE)) == TrainingDomain.LOWER_BODY
    assert domain_for_target(LevelTarget(movement_group=MovementGroup.CORE)) == TrainingDomain.CORE
    assert (
        domain_for_target(LevelTarget(movement_group=MovementGroup.ISOLATION, muscle_group=MuscleGroup.CALVES))
        == TrainingDomain.LOWER_BODY
    )
    assert domain_for_target(LevelTarget()) == TrainingDomain.FULL_BODY


def test_computed_default_level_falls_back_to_full_body() -> None:
    """Missing domains use the full body level, then the default."""
    upper = LevelTarget(movement_group=MovementGroup.VERTICAL_PULL)

    assert computed_default_level(upper, {TrainingDomain.UPPER_BODY: 14}) == 14
    assert computed_default_level(upper, {TrainingDomain.FULL_BODY: 6}) == 6
    assert computed_default_level(upper, {}) == DEFAULT_LEVEL
