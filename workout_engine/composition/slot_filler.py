"""Slot filler: resolve blueprint slots into concrete exercises.

For each slot exactly one catalog exercise is selected. Hard constraints:
1. movement pattern matches (or belongs to the same substitute class)
2. required equipment is available (inventory + the slot's preferred equipment)
3. no overlap with the user's injured areas
4. sweat level inside the slot's bounds
5. primary muscle matches the slot's muscle sub-target, if any

When nothing passes, constraints are relaxed in a fixed order:
drop the muscle sub-target, widen equipment tolerance (substitutes),
then fall back to a designated generic exercise. Injury exclusion is never
relaxed. A slot that survives every relaxation unfilled is reported as a
warning; generation continues.

Candidate ranking is a stable total order, so identical inputs always
produce identical selections.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from workout_engine.composition.enums import (
    ExerciseRole,
    FillStage,
    MovementGroup,
    MovementPattern,
    SlotType,
)
from workout_engine.composition.models import (
    BlueprintSlot,
    Exercise,
    ExerciseInstance,
    FilledSlot,
    GenerationContext,
    GenerationWarning,
    WorkoutBlueprint,
)
from workout_engine.composition.observability import log_event
from workout_engine.composition.shadow_matrix import (
    DEFAULT_LEVEL,
    MAX_LEVEL,
    MIN_LEVEL,
    LevelTarget,
    computed_default_level,
    resolve_level,
)
from workout_engine.config.settings import settings

_PATTERN_TO_GROUP: dict[MovementPattern, MovementGroup | None] = {
    MovementPattern.HORIZONTAL_PUSH: MovementGroup.HORIZONTAL_PUSH,
    MovementPattern.VERTICAL_PUSH: MovementGroup.VERTICAL_PUSH,
    MovementPattern.HORIZONTAL_PULL: MovementGroup.HORIZONTAL_PULL,
    MovementPattern.VERTICAL_PULL: MovementGroup.VERTICAL_PULL,
    MovementPattern.SQUAT: MovementGroup.SQUAT,
    MovementPattern.HINGE: MovementGroup.HINGE,
    MovementPattern.LUNGE: MovementGroup.SQUAT,
    MovementPattern.CORE_ANTI_EXTENSION: MovementGroup.CORE,
    MovementPattern.CORE_ANTI_ROTATION: MovementGroup.CORE,
    MovementPattern.CORE_FLEXION: MovementGroup.CORE,
    MovementPattern.MOBILITY_UPPER: None,
    MovementPattern.MOBILITY_LOWER: None,
    MovementPattern.HANDSTAND_BALANCE: MovementGroup.VERTICAL_PUSH,
    MovementPattern.ISOLATION: MovementGroup.ISOLATION,
}

# Patterns that may stand in for each other
_SUBSTITUTE_CLASSES: tuple[frozenset[MovementPattern], ...] = (
    frozenset({MovementPattern.HORIZONTAL_PUSH, MovementPattern.VERTICAL_PUSH}),
    frozenset({MovementPattern.HORIZONTAL_PULL, MovementPattern.VERTICAL_PULL}),
    frozenset({MovementPattern.SQUAT, MovementPattern.LUNGE}),
    frozenset({MovementPattern.HINGE}),
    frozenset(
        {
            MovementPattern.CORE_ANTI_EXTENSION,
            MovementPattern.CORE_ANTI_ROTATION,
            MovementPattern.CORE_FLEXION,
        }
    ),
    frozenset({MovementPattern.MOBILITY_UPPER, MovementPattern.MOBILITY_LOWER}),
    frozenset({MovementPattern.HANDSTAND_BALANCE}),
    frozenset({MovementPattern.ISOLATION}),
)

_missing_patterns = set(MovementPattern) - set(_PATTERN_TO_GROUP)
_unclassed_patterns = set(MovementPattern) - set().union(*_SUBSTITUTE_CLASSES)
if _missing_patterns or _unclassed_patterns:
    raise RuntimeError(
        f"Movement pattern tables are incomplete: group={sorted(_missing_patterns)}, class={sorted(_unclassed_patterns)}"
    )

# Equipment that can replace a missing item when tolerance is widened
EQUIPMENT_SUBSTITUTES: dict[str, tuple[str, ...]] = {
    "barbell": ("dumbbell", "kettlebell"),
    "dumbbell": ("kettlebell", "resistance_band"),
    "kettlebell": ("dumbbell",),
    "pullup_bar": ("rings", "trx", "door_frame_bar"),
    "rings": ("trx", "pullup_bar"),
    "trx": ("rings",),
    "parallel_bars": ("dip_station", "chair"),
    "dip_station": ("parallel_bars", "chair"),
    "bench": ("box", "chair"),
    "box": ("bench", "chair"),
    "resistance_band": ("dumbbell",),
}


def movement_group_for(pattern: MovementPattern) -> MovementGroup | None:
    """Return the Shadow Matrix movement group of a pattern (None for mobility)."""
    return _PATTERN_TO_GROUP[pattern]


def substitute_patterns(pattern: MovementPattern) -> frozenset[MovementPattern]:
    """Return every pattern in the same substitute class as `pattern`."""
    for patterns in _SUBSTITUTE_CLASSES:
        if pattern in patterns:
            return patterns
    return frozenset({pattern})


def role_for_slot_type(slot_type: SlotType) -> ExerciseRole:
    """Map a slot type onto the catalog role that serves it."""
    if slot_type is SlotType.WARMUP:
        return ExerciseRole.WARMUP
    if slot_type is SlotType.COOLDOWN:
        return ExerciseRole.COOLDOWN
    if slot_type is SlotType.GOLDEN or slot_type is SlotType.COMPOUND or slot_type is SlotType.ACCESSORY:
        return ExerciseRole.MAIN
    raise ValueError(f"Unknown slot type: {slot_type}")


def rest_seconds_for_slot_type(slot_type: SlotType) -> int:
    """Rest after each set, by slot type."""
    if slot_type is SlotType.GOLDEN:
        return 180
    if slot_type is SlotType.COMPOUND:
        return 120
    if slot_type is SlotType.ACCESSORY:
        return 60
    if slot_type is SlotType.WARMUP:
        return 30
    if slot_type is SlotType.COOLDOWN:
        return 0
    raise ValueError(f"Unknown slot type: {slot_type}")


def level_target_for_slot(slot: BlueprintSlot, blueprint: WorkoutBlueprint) -> LevelTarget:
    """Build the Shadow Matrix target a slot resolves its level against."""
    return LevelTarget(
        program=slot.program_id or blueprint.program_id,
        movement_group=movement_group_for(slot.movement_pattern),
        muscle_group=slot.target_muscle,
    )


def resolve_slot_level(slot: BlueprintSlot, blueprint: WorkoutBlueprint, context: GenerationContext) -> int:
    """Resolve the difficulty level for a slot from the context's matrix snapshot."""
    target = level_target_for_slot(slot, blueprint)
    default_level = (
        computed_default_level(target, context.domain_levels) if context.domain_levels else DEFAULT_LEVEL
    )
    return resolve_level(context.shadow_matrix, target, default_level)


# -----------------------------
# Constraint predicates
# -----------------------------
def passes_injury_shield(exercise: Exercise, context: GenerationContext) -> bool:
    """True when the exercise loads none of the injured areas."""
    return not context.injuries.intersection(exercise.injury_areas)


def passes_pattern(exercise: Exercise, slot: BlueprintSlot) -> bool:
    """True when the exercise pattern is the slot's pattern or a substitute."""
    return exercise.movement_pattern in substitute_patterns(slot.movement_pattern)


def passes_sweat(exercise: Exercise, slot: BlueprintSlot) -> bool:
    """True when the exercise sweat level is inside the slot's bounds."""
    if slot.max_sweat_level is not None and exercise.sweat_level > slot.max_sweat_level:
        return False
    if slot.min_sweat_level is not None and exercise.sweat_level < slot.min_sweat_level:
        return False
    return True


def passes_muscle(exercise: Exercise, slot: BlueprintSlot) -> bool:
    """True when the slot has no muscle sub-target or the exercise hits it."""
    return slot.target_muscle is None or exercise.primary_muscle == slot.target_muscle


def usable_equipment(slot: BlueprintSlot, context: GenerationContext) -> frozenset[str]:
    """Equipment the slot may use: the inventory plus the slot's own tolerance."""
    return context.equipment_available | frozenset(slot.preferred_equipment)


def passes_equipment(exercise: Exercise, slot: BlueprintSlot, context: GenerationContext) -> bool:
    """True when every required item is usable."""
    return set(exercise.required_equipment) <= usable_equipment(slot, context)


def passes_widened_equipment(exercise: Exercise, slot: BlueprintSlot, context: GenerationContext) -> bool:
    """True when every missing item has a substitute in the usable set."""
    usable = usable_equipment(slot, context)
    for item in exercise.required_equipment:
        if item in usable:
            continue
        if not usable.intersection(EQUIPMENT_SUBSTITUTES.get(item, ())):
            return False
    return True


# -----------------------------
# Ranking
# -----------------------------
def _rank_key(
    exercise: Exercise,
    slot: BlueprintSlot,
    level: int,
    used_ids: frozenset[str],
    program: str | None,
) -> tuple[int, int, int, int, int, int, str]:
    return (
        1 if exercise.id in used_ids else 0,
        0 if exercise.movement_pattern == slot.movement_pattern else 1,
        abs(exercise.level - level),
        0 if role_for_slot_type(slot.type) in exercise.roles else 1,
        0 if program is not None and program in exercise.program_ids else 1,
        exercise.level,
        exercise.id,
    )


def select_best(
    candidates: Sequence[Exercise],
    slot: BlueprintSlot,
    level: int,
    used_ids: frozenset[str] = frozenset(),
    program: str | None = None,
) -> Exercise | None:
    """Pick the best candidate with a deterministic tie-break.

    Order: not yet used in the session, exact pattern, closest level,
    matching role, tagged with the slot's program, lower level, exercise id.
    """
    if not candidates:
        return None
    return min(candidates, key=lambda exercise: _rank_key(exercise, slot, level, used_ids, program))


# -----------------------------
# Prescription
# -----------------------------
def build_exercise_instance(exercise: Exercise, slot: BlueprintSlot, level: int) -> ExerciseInstance:
    """Prescribe sets/reps for an exercise at a resolved level.

    Reps are interpolated inside the slot's rep range: level 1 gets the
    bottom of the range, level 20 the top.
    """
    span = slot.rep_range.max - slot.rep_range.min
    reps = slot.rep_range.min + round(span * (level - MIN_LEVEL) / (MAX_LEVEL - MIN_LEVEL))
    return ExerciseInstance(
        exercise_id=exercise.id,
        display_name=exercise.name,
        sets=slot.sets,
        reps=reps,
        rest_seconds=rest_seconds_for_slot_type(slot.type),
        level=exercise.level,
        set_type=slot.set_type,
        duration_seconds=reps if exercise.is_time_based else None,
    )


# -----------------------------
# Filling
# -----------------------------
@dataclass(frozen=True)
class SlotFillOutcome:
    """Result of filling one slot.

    Attributes:
        slot: The slot that was filled
        filled: Filled slot, or None when every relaxation failed
        warnings: Non-fatal problems met while filling
    """

    slot: BlueprintSlot
    filled: FilledSlot | None
    warnings: tuple[GenerationWarning, ...] = ()


Predicate = Callable[[Exercise], bool]


@dataclass(frozen=True)
class _Stage:
    stage: FillStage
    predicates: tuple[Predicate, ...] = field(default_factory=tuple)


def _relaxation_stages(slot: BlueprintSlot, context: GenerationContext) -> list[_Stage]:
    def injury(exercise: Exercise) -> bool:
        return passes_injury_shield(exercise, context)

    def pattern(exercise: Exercise) -> bool:
        return passes_pattern(exercise, slot)

    def sweat(exercise: Exercise) -> bool:
        return passes_sweat(exercise, slot)

    def muscle(exercise: Exercise) -> bool:
        return passes_muscle(exercise, slot)

    def equipment(exercise: Exercise) -> bool:
        return passes_equipment(exercise, slot, context)

    def widened_equipment(exercise: Exercise) -> bool:
        return passes_widened_equipment(exercise, slot, context)

    def generic(exercise: Exercise) -> bool:
        return exercise.is_generic and role_for_slot_type(slot.type) in exercise.roles

    stages = [_Stage(FillStage.STRICT, (injury, pattern, sweat, muscle, equipment))]
    if slot.target_muscle is not None:
        stages.append(_Stage(FillStage.RELAXED_MUSCLE, (injury, pattern, sweat, equipment)))
    stages.append(_Stage(FillStage.WIDENED_EQUIPMENT, (injury, pattern, sweat, widened_equipment)))
    stages.append(_Stage(FillStage.GENERIC_FALLBACK, (injury, generic, sweat, equipment)))
    return stages


def _fill_locked(
    slot: BlueprintSlot,
    context: GenerationContext,
    exercises: Sequence[Exercise],
    level: int,
) -> tuple[FilledSlot | None, list[GenerationWarning]]:
    locked = next((exercise for exercise in exercises if exercise.id == slot.locked_exercise_id), None)
    if locked is None:
        return None, [
            GenerationWarning(
                code="LOCKED_EXERCISE_MISSING",
                message=f"Locked exercise '{slot.locked_exercise_id}' not in catalog results",
                slot_id=slot.id,
            )
        ]
    if not passes_injury_shield(locked, context):
        return None, [
            GenerationWarning(
                code="LOCKED_EXERCISE_INJURY",
                message=f"Locked exercise '{locked.id}' loads an injured area",
                slot_id=slot.id,
            )
        ]
    instance = build_exercise_instance(locked, slot, level)
    return FilledSlot(slot=slot, exercise=instance, resolved_level=level, fill_stage=FillStage.LOCKED), []


def fill_slot(
    slot: BlueprintSlot,
    blueprint: WorkoutBlueprint,
    context: GenerationContext,
    exercises: Sequence[Exercise],
    used_ids: frozenset[str] = frozenset(),
    level_tolerance: int | None = None,
) -> SlotFillOutcome:
    """Fill one slot, relaxing constraints in the fixed order when needed.

    Args:
        slot: Slot to fill
        blueprint: Blueprint the slot belongs to (for program ties)
        context: Generation context snapshot
        exercises: Catalog results to choose from
        used_ids: Exercises already placed in this session
        level_tolerance: Level distance above which a LEVEL_MISMATCH warning is attached

    Returns:
        SlotFillOutcome with the filled slot (or None) and warnings
    """
    tolerance = settings.level_tolerance if level_tolerance is None else level_tolerance
    level = resolve_slot_level(slot, blueprint, context)
    program = slot.program_id or blueprint.program_id
    warnings: list[GenerationWarning] = []

    if slot.locked_exercise_id:
        filled, locked_warnings = _fill_locked(slot, context, exercises, level)
        warnings.extend(locked_warnings)
        if filled is not None:
            log_event("slot_filled", slot_id=slot.id, exercise_id=filled.exercise.exercise_id, stage=FillStage.LOCKED.value)
            return SlotFillOutcome(slot=slot, filled=filled, warnings=tuple(warnings))

    for stage in _relaxation_stages(slot, context):
        candidates = [exercise for exercise in exercises if all(check(exercise) for check in stage.predicates)]
        chosen = select_best(candidates, slot, level, used_ids, program)
        if chosen is None:
            logger.debug(f"No candidates for slot '{slot.id}' at stage {stage.stage.value}")
            continue

        if stage.stage is not FillStage.STRICT:
            warnings.append(
                GenerationWarning(
                    code="RELAXED_FILL",
                    message=f"Filled with '{chosen.id}' after relaxing to {stage.stage.value}",
                    slot_id=slot.id,
                )
            )
        if abs(chosen.level - level) > tolerance:
            warnings.append(
                GenerationWarning(
                    code="LEVEL_MISMATCH",
                    message=f"Exercise level {chosen.level} is more than {tolerance} away from resolved level {level}",
                    slot_id=slot.id,
                )
            )

        filled = FilledSlot(
            slot=slot,
            exercise=build_exercise_instance(chosen, slot, level),
            resolved_level=level,
            fill_stage=stage.stage,
        )
        log_event(
            "slot_filled",
            slot_id=slot.id,
            exercise_id=chosen.id,
            stage=stage.stage.value,
            level=level,
        )
        return SlotFillOutcome(slot=slot, filled=filled, warnings=tuple(warnings))

    logger.warning(f"Slot '{slot.id}' left unfilled after every relaxation step")
    log_event("slot_unfilled", slot_id=slot.id, movement_pattern=slot.movement_pattern.value)
    warnings.append(
        GenerationWarning(
            code="UNFILLABLE_SLOT",
            message=f"No exercise satisfies slot '{slot.id}' ({slot.movement_pattern.value}) even after relaxation",
            slot_id=slot.id,
        )
    )
    return SlotFillOutcome(slot=slot, filled=None, warnings=tuple(warnings))


def fill_blueprint(
    blueprint: WorkoutBlueprint,
    context: GenerationContext,
    exercises: Sequence[Exercise],
    level_tolerance: int | None = None,
) -> list[SlotFillOutcome]:
    """Fill every slot of a blueprint.

    Slots are filled by ascending priority (blueprint order breaks ties), so
    a high-priority slot gets first pick of the catalog. Exercises already
    placed are ranked after unused ones, so a session repeats an exercise
    only when nothing else fits.

    Returns:
        One outcome per blueprint slot, in blueprint order
    """
    fill_order = sorted(range(len(blueprint.slots)), key=lambda index: (blueprint.slots[index].priority, index))
    outcomes: dict[int, SlotFillOutcome] = {}
    used_ids: set[str] = set()
    for index in fill_order:
        outcome = fill_slot(
            blueprint.slots[index],
            blueprint,
            context,
            exercises,
            used_ids=frozenset(used_ids),
            level_tolerance=level_tolerance,
        )
        if outcome.filled is not None:
            used_ids.add(outcome.filled.exercise.exercise_id)
        outcomes[index] = outcome
    return [outcomes[index] for index in range(len(blueprint.slots))]
