"""Canonical enums for workout composition.

All enums are string-based to ensure JSON serialization compatibility
and alignment with the blueprint YAML keys.
"""

from enum import StrEnum


# -----------------------------
# Slots
# -----------------------------
class SlotType(StrEnum):
    """Role of a slot inside a blueprint."""

    GOLDEN = "golden"  # skill/power, fresh CNS, never superset
    COMPOUND = "compound"
    ACCESSORY = "accessory"
    WARMUP = "warmup"
    COOLDOWN = "cooldown"


class SetType(StrEnum):
    """How the sets of a slot are executed."""

    STRAIGHT = "straight"
    ANTAGONIST_PAIR = "antagonist_pair"
    SUPERSET = "superset"
    DROPSET = "dropset"
    REST_PAUSE = "rest_pause"
    AMRAP = "amrap"


class MovementPattern(StrEnum):
    """Fine-grained movement pattern a slot asks for."""

    HORIZONTAL_PUSH = "horizontal_push"
    VERTICAL_PUSH = "vertical_push"
    HORIZONTAL_PULL = "horizontal_pull"
    VERTICAL_PULL = "vertical_pull"
    SQUAT = "squat"
    HINGE = "hinge"
    LUNGE = "lunge"
    CORE_ANTI_EXTENSION = "core_anti_extension"
    CORE_ANTI_ROTATION = "core_anti_rotation"
    CORE_FLEXION = "core_flexion"
    MOBILITY_UPPER = "mobility_upper"
    MOBILITY_LOWER = "mobility_lower"
    HANDSTAND_BALANCE = "handstand_balance"
    ISOLATION = "isolation"


class MovementGroup(StrEnum):
    """Coarse movement group used by the Shadow Matrix."""

    HORIZONTAL_PUSH = "horizontal_push"
    VERTICAL_PUSH = "vertical_push"
    HORIZONTAL_PULL = "horizontal_pull"
    VERTICAL_PULL = "vertical_pull"
    SQUAT = "squat"
    HINGE = "hinge"
    CORE = "core"
    ISOLATION = "isolation"


class MuscleGroup(StrEnum):
    """Muscle groups addressable by the Shadow Matrix."""

    CHEST = "chest"
    BACK = "back"
    MIDDLE_BACK = "middle_back"
    SHOULDERS = "shoulders"
    REAR_DELT = "rear_delt"
    ABS = "abs"
    OBLIQUES = "obliques"
    FOREARMS = "forearms"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    QUADS = "quads"
    HAMSTRINGS = "hamstrings"
    GLUTES = "glutes"
    CALVES = "calves"
    TRAPS = "traps"
    CARDIO = "cardio"
    FULL_BODY = "full_body"
    CORE = "core"
    LEGS = "legs"


class TrainingDomain(StrEnum):
    """Progression domains used for computed default levels."""

    UPPER_BODY = "upper_body"
    LOWER_BODY = "lower_body"
    CORE = "core"
    FULL_BODY = "full_body"


# -----------------------------
# Exercises
# -----------------------------
class ExerciseRole(StrEnum):
    """Role tags on catalog exercises."""

    WARMUP = "warmup"
    MAIN = "main"
    COOLDOWN = "cooldown"


# -----------------------------
# Blueprints / sessions
# -----------------------------
class SessionFocus(StrEnum):
    """Session focus of a blueprint."""

    FULL_BODY = "full_body"
    UPPER_PUSH = "upper_push"
    UPPER_PULL = "upper_pull"
    LOWER_BODY = "lower_body"
    SKILLS = "skills"
    CORE = "core"
    RECOVERY = "recovery"
    MIXED = "mixed"


class IntensityProfile(StrEnum):
    """Blueprint intensity profile."""

    LIGHT = "light"
    MEDIUM = "medium"
    HARD = "hard"


class Location(StrEnum):
    """Where the user is training."""

    HOME = "home"
    PARK = "park"
    GYM = "gym"
    OFFICE = "office"
    STREET = "street"


# -----------------------------
# Fragmentation
# -----------------------------
class FragmentPart(StrEnum):
    """The two fragments of a split session."""

    A = "A"
    B = "B"


class FragmentReason(StrEnum):
    """Why the fragmenter made its decision."""

    TIME_CONSTRAINT = "time_constraint"
    LOCATION_MISMATCH = "location_mismatch"
    FULL_WORKOUT = "full_workout"


class FillStage(StrEnum):
    """Which relaxation step produced a slot's exercise."""

    LOCKED = "locked"
    STRICT = "strict"
    RELAXED_MUSCLE = "relaxed_muscle"
    WIDENED_EQUIPMENT = "widened_equipment"
    GENERIC_FALLBACK = "generic_fallback"
