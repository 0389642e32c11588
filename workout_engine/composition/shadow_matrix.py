"""Shadow Matrix: per-user difficulty level overrides.

The matrix holds a desired difficulty level (1-20) per program, movement
group and muscle group, plus one global override that supersedes every
granular entry when enabled.

Resolution cascade, highest first:
    1. Global override        -> matrix.global_level (when use_global_level)
    2. Program override       -> matrix.programs[target.program]
    3. MovementGroup override -> matrix.movement_groups[target.movement_group]
    4. MuscleGroup override   -> matrix.muscle_groups[target.muscle_group]
    5. Computed default       -> caller-supplied fallback (DEFAULT_LEVEL)

Matrices are immutable values. Edits return a new matrix; levels are
clamped to [MIN_LEVEL, MAX_LEVEL] when stored.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from loguru import logger

from workout_engine.composition.enums import MovementGroup, MuscleGroup, TrainingDomain

MIN_LEVEL = 1
MAX_LEVEL = 20
DEFAULT_LEVEL = 10

SHADOW_PROGRAM_IDS: tuple[str, ...] = ("pulling", "pushing", "core", "upper_body", "full_body")


def clamp_level(level: int) -> int:
    """Clamp a level into [MIN_LEVEL, MAX_LEVEL].

    Args:
        level: Raw level value

    Returns:
        Level inside the valid range
    """
    value = int(level)
    if value < MIN_LEVEL or value > MAX_LEVEL:
        clamped = max(MIN_LEVEL, min(MAX_LEVEL, value))
        logger.warning(f"Level {value} outside [{MIN_LEVEL}, {MAX_LEVEL}], clamped to {clamped}")
        return clamped
    return value


@dataclass(frozen=True)
class LevelOverride:
    """One override entry.

    Attributes:
        level: Desired level (always within 1-20)
        override: False means "use computed default", True means "use level verbatim"
    """

    level: int = DEFAULT_LEVEL
    override: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", clamp_level(self.level))


DEFAULT_OVERRIDE = LevelOverride(level=DEFAULT_LEVEL, override=False)


@dataclass(frozen=True)
class LevelTarget:
    """What a level is being resolved for.

    Attributes:
        program: Program id the slot is tied to, if any
        movement_group: Movement group of the slot, if any
        muscle_group: Muscle sub-target of the slot, if any
    """

    program: str | None = None
    movement_group: MovementGroup | None = None
    muscle_group: MuscleGroup | None = None


def _default_movement_groups() -> dict[MovementGroup, LevelOverride]:
    return {group: DEFAULT_OVERRIDE for group in MovementGroup}


@dataclass(frozen=True)
class ShadowMatrix:
    """Immutable per-user override table.

    Attributes:
        use_global_level: When True, global_level dominates every other entry
        global_level: The single level applied when use_global_level is True
        movement_groups: One entry per MovementGroup (always fully populated)
        muscle_groups: Sparse per-muscle overrides
        programs: Sparse per-program overrides
    """

    use_global_level: bool = False
    global_level: int = DEFAULT_LEVEL
    movement_groups: dict[MovementGroup, LevelOverride] = field(default_factory=_default_movement_groups)
    muscle_groups: dict[MuscleGroup, LevelOverride] = field(default_factory=dict)
    programs: dict[str, LevelOverride] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "global_level", clamp_level(self.global_level))
        populated = _default_movement_groups()
        populated.update(self.movement_groups)
        object.__setattr__(self, "movement_groups", populated)
        object.__setattr__(self, "muscle_groups", dict(self.muscle_groups))
        object.__setattr__(self, "programs", dict(self.programs))

    def snapshot(self) -> "ShadowMatrix":
        """Return a deep copy detached from any live editing state."""
        return copy.deepcopy(self)


def create_default_shadow_matrix() -> ShadowMatrix:
    """Create a matrix with every override disabled at the default level."""
    return ShadowMatrix(
        programs={program_id: DEFAULT_OVERRIDE for program_id in SHADOW_PROGRAM_IDS},
    )


# -----------------------------
# Sparse lookups
# -----------------------------
def get_movement_override(matrix: ShadowMatrix, group: MovementGroup) -> LevelOverride:
    """Look up a movement-group entry, falling back to DEFAULT_OVERRIDE."""
    return matrix.movement_groups.get(group, DEFAULT_OVERRIDE)


def get_muscle_override(matrix: ShadowMatrix, muscle: MuscleGroup) -> LevelOverride:
    """Look up a muscle-group entry, falling back to DEFAULT_OVERRIDE."""
    return matrix.muscle_groups.get(muscle, DEFAULT_OVERRIDE)


def get_program_override(matrix: ShadowMatrix, program_id: str) -> LevelOverride:
    """Look up a program entry, falling back to DEFAULT_OVERRIDE."""
    return matrix.programs.get(program_id, DEFAULT_OVERRIDE)


# -----------------------------
# Resolution
# -----------------------------
def resolve_level(
    matrix: ShadowMatrix,
    target: LevelTarget,
    default_level: int = DEFAULT_LEVEL,
) -> int:
    """Resolve the effective level for a target.

    Args:
        matrix: Shadow matrix snapshot
        target: Program / movement group / muscle group being resolved
        default_level: Computed default used when no override applies

    Returns:
        Level in [1, 20]
    """
    if matrix.use_global_level:
        return matrix.global_level

    if target.program:
        program_override = get_program_override(matrix, target.program)
        if program_override.override:
            return program_override.level

    if target.movement_group is not None:
        movement_override = get_movement_override(matrix, target.movement_group)
        if movement_override.override:
            return movement_override.level

    if target.muscle_group is not None:
        muscle_override = get_muscle_override(matrix, target.muscle_group)
        if muscle_override.override:
            return muscle_override.level

    return clamp_level(default_level)


_UPPER_BODY_MOVEMENTS = {
    MovementGroup.HORIZONTAL_PUSH,
    MovementGroup.VERTICAL_PUSH,
    MovementGroup.HORIZONTAL_PULL,
    MovementGroup.VERTICAL_PULL,
}
_LOWER_BODY_MOVEMENTS = {MovementGroup.SQUAT, MovementGroup.HINGE}

_UPPER_BODY_MUSCLES = {
    MuscleGroup.CHEST,
    MuscleGroup.BACK,
    MuscleGroup.MIDDLE_BACK,
    MuscleGroup.SHOULDERS,
    MuscleGroup.REAR_DELT,
    MuscleGroup.BICEPS,
    MuscleGroup.TRICEPS,
    MuscleGroup.TRAPS,
    MuscleGroup.FOREARMS,
}
_LOWER_BODY_MUSCLES = {
    MuscleGroup.QUADS,
    MuscleGroup.HAMSTRINGS,
    MuscleGroup.GLUTES,
    MuscleGroup.CALVES,
    MuscleGroup.LEGS,
}
_CORE_MUSCLES = {MuscleGroup.ABS, MuscleGroup.OBLIQUES, MuscleGroup.CORE}


def domain_for_target(target: LevelTarget) -> TrainingDomain:
    """Map a level target onto the progression domain that owns it.

    Movement group wins; isolation work and targets without a group are
    mapped through their muscle group.
    """
    group = target.movement_group
    if group in _UPPER_BODY_MOVEMENTS:
        return TrainingDomain.UPPER_BODY
    if group in _LOWER_BODY_MOVEMENTS:
        return TrainingDomain.LOWER_BODY
    if group == MovementGroup.CORE:
        return TrainingDomain.CORE

    muscle = target.muscle_group
    if muscle in _UPPER_BODY_MUSCLES:
        return TrainingDomain.UPPER_BODY
    if muscle in _LOWER_BODY_MUSCLES:
        return TrainingDomain.LOWER_BODY
    if muscle in _CORE_MUSCLES:
        return TrainingDomain.CORE
    return TrainingDomain.FULL_BODY


def computed_default_level(
    target: LevelTarget,
    domain_levels: Mapping[TrainingDomain, int],
) -> int:
    """Compute the non-override level for a target from per-domain levels.

    Falls back to the full_body domain, then to DEFAULT_LEVEL.
    """
    domain = domain_for_target(target)
    if domain in domain_levels:
        return clamp_level(domain_levels[domain])
    if TrainingDomain.FULL_BODY in domain_levels:
        return clamp_level(domain_levels[TrainingDomain.FULL_BODY])
    return DEFAULT_LEVEL


# -----------------------------
# Edits (return new matrices)
# -----------------------------
def with_global_level(matrix: ShadowMatrix, level: int, enabled: bool = True) -> ShadowMatrix:
    """Return a copy with the global override set."""
    return replace(matrix, use_global_level=enabled, global_level=clamp_level(level))


def with_program_override(
    matrix: ShadowMatrix, program_id: str, level: int, override: bool = True
) -> ShadowMatrix:
    """Return a copy with one program entry replaced."""
    programs = dict(matrix.programs)
    programs[program_id] = LevelOverride(level=level, override=override)
    return replace(matrix, programs=programs)


def with_movement_override(
    matrix: ShadowMatrix, group: MovementGroup, level: int, override: bool = True
) -> ShadowMatrix:
    """Return a copy with one movement-group entry replaced."""
    groups = dict(matrix.movement_groups)
    groups[group] = LevelOverride(level=level, override=override)
    return replace(matrix, movement_groups=groups)


def with_muscle_override(
    matrix: ShadowMatrix, muscle: MuscleGroup, level: int, override: bool = True
) -> ShadowMatrix:
    """Return a copy with one muscle-group entry replaced."""
    muscles = dict(matrix.muscle_groups)
    muscles[muscle] = LevelOverride(level=level, override=override)
    return replace(matrix, muscle_groups=muscles)


# -----------------------------
# Parsing persisted matrices
# -----------------------------
def _parse_level(raw_level: object, path: str, notes: list[str]) -> int:
    try:
        level = int(raw_level)
    except (TypeError, ValueError):
        logger.warning(f"Invalid level {raw_level!r} at {path} in shadow matrix, using {DEFAULT_LEVEL}")
        notes.append(f"{path}: level {raw_level!r} invalid, defaulted to {DEFAULT_LEVEL}")
        return DEFAULT_LEVEL
    if level < MIN_LEVEL or level > MAX_LEVEL:
        notes.append(f"{path}: level {level} clamped to {clamp_level(level)}")
    return level


def _parse_override(raw: object, path: str, notes: list[str]) -> LevelOverride:
    if not isinstance(raw, Mapping):
        logger.warning(f"Invalid entry {raw!r} at {path} in shadow matrix, using default")
        notes.append(f"{path}: entry {raw!r} invalid, defaulted to {DEFAULT_LEVEL}")
        return DEFAULT_OVERRIDE
    level = _parse_level(raw.get("level", DEFAULT_LEVEL), path, notes)
    return LevelOverride(level=level, override=bool(raw.get("override", False)))


def shadow_matrix_from_dict(raw: Mapping) -> tuple[ShadowMatrix, list[str]]:
    """Build a matrix from its persisted dict form.

    Unknown movement or muscle group keys are skipped with a warning; a
    missing, null or non-numeric level falls back to DEFAULT_LEVEL.

    Args:
        raw: Dict with useGlobalLevel/use_global_level, globalLevel/global_level,
            movementGroups, muscleGroups and programs entries

    Returns:
        Tuple of (matrix, notes) where notes describes every clamped level or
        defaulted level
    """
    notes: list[str] = []

    use_global = bool(raw.get("use_global_level", raw.get("useGlobalLevel", False)))
    global_level = _parse_level(raw.get("global_level", raw.get("globalLevel", DEFAULT_LEVEL)), "global_level", notes)

    movement_groups: dict[MovementGroup, LevelOverride] = {}
    for key, value in (raw.get("movement_groups") or raw.get("movementGroups") or {}).items():
        try:
            group = MovementGroup(key)
        except ValueError:
            logger.warning(f"Unknown movement group '{key}' in shadow matrix, skipping")
            continue
        movement_groups[group] = _parse_override(value, f"movement_groups.{key}", notes)

    muscle_groups: dict[MuscleGroup, LevelOverride] = {}
    for key, value in (raw.get("muscle_groups") or raw.get("muscleGroups") or {}).items():
        try:
            muscle = MuscleGroup(key)
        except ValueError:
            logger.warning(f"Unknown muscle group '{key}' in shadow matrix, skipping")
            continue
        muscle_groups[muscle] = _parse_override(value, f"muscle_groups.{key}", notes)

    programs = {
        str(key): _parse_override(value, f"programs.{key}", notes)
        for key, value in (raw.get("programs") or {}).items()
    }

    matrix = ShadowMatrix(
        use_global_level=use_global,
        global_level=global_level,
        movement_groups=movement_groups,
        muscle_groups=muscle_groups,
        programs=programs,
    )
    return matrix, notes
