"""Core data models for workout composition.

This module defines the canonical data structures that represent:
- Blueprints (ordered slot templates)
- Catalog exercises and the instances chosen for slots
- Generation context (the per-request input snapshot)
- Generated output (filled slots, fragments, sessions)

Inputs are frozen (immutable). WorkoutFragment and GeneratedSession are
mutable only in their completion flags, which belong to the player layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from workout_engine.composition.enums import (
    ExerciseRole,
    FillStage,
    FragmentPart,
    FragmentReason,
    IntensityProfile,
    Location,
    MovementPattern,
    MuscleGroup,
    SessionFocus,
    SetType,
    SlotType,
    TrainingDomain,
)
from workout_engine.composition.shadow_matrix import ShadowMatrix, create_default_shadow_matrix


# -----------------------------
# Blueprints
# -----------------------------
@dataclass(frozen=True)
class RepRange:
    """Target rep range (seconds for time-based exercises)."""

    min: int
    max: int


@dataclass(frozen=True)
class BlueprintSlot:
    """One planned exercise position inside a blueprint.

    Attributes:
        id: Slot identifier, unique within the blueprint
        type: Slot role
        movement_pattern: Required movement pattern
        sets: Target set count
        rep_range: Target reps (or seconds)
        is_optional: Whether the slot can be dropped in short sessions
        max_sweat_level: Highest acceptable sweat level (None = unbounded)
        min_sweat_level: Lowest acceptable sweat level (None = unbounded)
        preferred_equipment: Equipment ids the slot is built around (empty = bodyweight)
        fragment_part: Explicit fragment assignment, overrides heuristics
        target_muscle: Optional muscle sub-target refinement
        program_id: Program the slot is tied to, if any
        priority: Fill order; lower values pick exercises first
        set_type: Set execution type
        paired_slot_id: Paired slot for supersets / antagonist pairs
        locked_exercise_id: Exercise pinned to this slot
    """

    id: str
    type: SlotType
    movement_pattern: MovementPattern
    sets: int
    rep_range: RepRange = RepRange(min=8, max=12)
    is_optional: bool = False
    max_sweat_level: int | None = None
    min_sweat_level: int | None = None
    preferred_equipment: tuple[str, ...] = ()
    fragment_part: FragmentPart | None = None
    target_muscle: MuscleGroup | None = None
    program_id: str | None = None
    priority: int = 0
    set_type: SetType = SetType.STRAIGHT
    paired_slot_id: str | None = None
    locked_exercise_id: str | None = None


@dataclass(frozen=True)
class WorkoutBlueprint:
    """Static template describing the slot composition of an archetype."""

    id: str
    name: str
    focus: SessionFocus
    intensity: IntensityProfile
    slots: tuple[BlueprintSlot, ...]
    min_duration: int
    target_duration: int
    max_duration: int
    can_fragment: bool
    program_id: str | None = None
    version: int = 1


# -----------------------------
# Exercise catalog
# -----------------------------
@dataclass(frozen=True)
class Exercise:
    """Read-only catalog record.

    Attributes:
        id: Catalog identifier
        name: Display name
        movement_pattern: Pattern the exercise trains
        primary_muscle: Main muscle targeted
        required_equipment: Equipment ids needed (empty = bodyweight)
        sweat_level: 1 (no sweat) to 3 (heavy sweat)
        roles: Warm-up / main / cool-down tags
        level: Difficulty level (1-20)
        injury_areas: Body areas loaded by the exercise
        program_ids: Programs the exercise belongs to
        is_time_based: Reps are seconds
        is_generic: Designated fallback for its roles
    """

    id: str
    name: str
    movement_pattern: MovementPattern
    primary_muscle: MuscleGroup | None = None
    required_equipment: tuple[str, ...] = ()
    sweat_level: int = 2
    roles: tuple[ExerciseRole, ...] = (ExerciseRole.MAIN,)
    level: int = 10
    injury_areas: tuple[str, ...] = ()
    program_ids: tuple[str, ...] = ()
    is_time_based: bool = False
    is_generic: bool = False


@dataclass(frozen=True)
class ExerciseInstance:
    """A catalog exercise assigned to a slot with its prescription."""

    exercise_id: str
    display_name: str
    sets: int
    reps: int
    rest_seconds: int
    level: int
    set_type: SetType
    duration_seconds: int | None = None


@dataclass(frozen=True)
class FilledSlot:
    """A blueprint slot paired with the exercise chosen for it.

    Attributes:
        slot: The blueprint slot
        exercise: Chosen exercise with sets/reps
        resolved_level: Level resolved from the shadow matrix for this slot
        fill_stage: Relaxation step that produced the exercise
    """

    slot: BlueprintSlot
    exercise: ExerciseInstance
    resolved_level: int
    fill_stage: FillStage = FillStage.STRICT


# -----------------------------
# Generation context
# -----------------------------
@dataclass(frozen=True)
class GenerationContext:
    """Immutable input snapshot for one generation request.

    Attributes:
        location: Where the user trains
        time_available: Minutes available
        equipment_available: Equipment ids usable at the location
        injuries: Injured body areas to avoid
        shadow_matrix: Matrix snapshot taken at request start
        domain_levels: Computed default levels per progression domain
        notes: Non-fatal adjustments made while building the context
    """

    location: Location
    time_available: int
    equipment_available: frozenset[str] = frozenset()
    injuries: frozenset[str] = frozenset()
    shadow_matrix: ShadowMatrix = field(default_factory=create_default_shadow_matrix)
    domain_levels: dict[TrainingDomain, int] = field(default_factory=dict)
    notes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "domain_levels", dict(self.domain_levels))


@dataclass(frozen=True)
class UserProfile:
    """Profile data the engine consumes (persistence is external).

    Attributes:
        user_id: User identifier
        equipment: Equipment ids per location key (home, office, outdoor, gym)
        injuries: Injured body areas
        shadow_matrix: Stored matrix, raw dict form
        domain_levels: Current level per progression domain
    """

    user_id: str
    equipment: dict[str, tuple[str, ...]] = field(default_factory=dict)
    injuries: tuple[str, ...] = ()
    shadow_matrix: dict | None = None
    domain_levels: dict[TrainingDomain, int] = field(default_factory=dict)


# -----------------------------
# Output
# -----------------------------
@dataclass(frozen=True)
class GenerationWarning:
    """Non-fatal problem surfaced on a generated session.

    Attributes:
        code: Warning code (UNFILLABLE_SLOT, LEVEL_CLAMPED, LEVEL_MISMATCH, RELAXED_FILL)
        message: Human-readable detail
        slot_id: Slot the warning belongs to, if any
    """

    code: str
    message: str
    slot_id: str | None = None


@dataclass(frozen=True)
class FragmentationResult:
    """Outcome of fragmentation analysis, kept for "why was this split" diagnostics."""

    should_fragment: bool
    reason: FragmentReason
    part_a_slots: tuple[BlueprintSlot, ...]
    part_b_slots: tuple[BlueprintSlot, ...]
    part_a_duration: int
    part_b_duration: int


@dataclass
class WorkoutFragment:
    """One independently completable mini-session."""

    part: FragmentPart
    name: str
    slots: list[FilledSlot]
    estimated_duration: int
    is_completed: bool = False


@dataclass
class GeneratedSession:
    """A complete generated workout session.

    Attributes:
        id: Deterministic id derived from the generation inputs
        blueprint_id: Blueprint used
        name: Session name
        is_fragmented: Whether the session was split
        slots: Ordered filled slots (empty when fragmented)
        fragments: Part A and Part B (empty when not fragmented)
        total_duration: Estimated minutes
        intensity: Blueprint intensity
        focus: Blueprint focus
        fragmentation: Analysis result behind the split decision
        warnings: Non-fatal problems met during generation
        generation_context: Context the session was built from
        blueprint_version: Version of the blueprint the session was built from
        is_completed: Completion flag owned by the player layer
    """

    id: str
    blueprint_id: str
    name: str
    is_fragmented: bool
    slots: list[FilledSlot]
    fragments: list[WorkoutFragment]
    total_duration: int
    intensity: IntensityProfile
    focus: SessionFocus
    fragmentation: FragmentationResult
    warnings: list[GenerationWarning]
    generation_context: GenerationContext
    blueprint_version: int = 1
    is_completed: bool = False
