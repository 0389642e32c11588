"""Fragmenter: decide whether a session splits into two mini-sessions.

Decision rule:
    time_constrained   = time_available < blueprint.min_duration
    location_mismatch  = location is office AND some slot prefers equipment
    should_fragment    = can_fragment AND (time_constrained OR location_mismatch)

Part A is the low-impact, low-sweat work that can be done anywhere (office);
Part B is the equipment-heavy / high-sweat work done later (home).

Slot classification is an ordered rule list; the first matching rule wins.
The explicit fragment_part tag always comes first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from workout_engine.composition.enums import FragmentPart, FragmentReason, Location, MovementPattern, SlotType
from workout_engine.composition.models import (
    BlueprintSlot,
    FilledSlot,
    FragmentationResult,
    GeneratedSession,
    GenerationContext,
    WorkoutBlueprint,
    WorkoutFragment,
)
from workout_engine.composition.observability import log_event
from workout_engine.config.settings import settings

PART_A_SLOT_TYPES: frozenset[SlotType] = frozenset({SlotType.WARMUP, SlotType.COOLDOWN, SlotType.ACCESSORY})

PART_A_MOVEMENT_PATTERNS: frozenset[MovementPattern] = frozenset(
    {
        MovementPattern.CORE_ANTI_EXTENSION,
        MovementPattern.CORE_ANTI_ROTATION,
        MovementPattern.CORE_FLEXION,
        MovementPattern.MOBILITY_UPPER,
        MovementPattern.MOBILITY_LOWER,
        MovementPattern.HANDSTAND_BALANCE,
    }
)

RESTRICTIVE_LOCATIONS: frozenset[Location] = frozenset({Location.OFFICE})

WARMUP_COOLDOWN_MINUTES = 5


@dataclass(frozen=True)
class FragmenterConfig:
    """Fragmenter tuning.

    Attributes:
        part_a_max_sweat_level: Slots capped at or below this sweat level go to Part A
        part_a_name: Display name of Part A
        part_b_name: Display name of Part B
    """

    part_a_max_sweat_level: int = 1
    part_a_name: str = "Office Session"
    part_b_name: str = "Home Session"

    @classmethod
    def from_settings(cls) -> "FragmenterConfig":
        return cls(
            part_a_max_sweat_level=settings.part_a_max_sweat_level,
            part_a_name=settings.part_a_name,
            part_b_name=settings.part_b_name,
        )


# -----------------------------
# Classification rules
# -----------------------------
SlotPredicate = Callable[[BlueprintSlot, FragmenterConfig], bool]


def is_tagged_part_a(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return slot.fragment_part is FragmentPart.A


def is_tagged_part_b(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return slot.fragment_part is FragmentPart.B


def is_low_impact_type(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    """Warm-up, cool-down and accessory work are low impact."""
    slot_type = slot.type
    if slot_type is SlotType.WARMUP or slot_type is SlotType.COOLDOWN or slot_type is SlotType.ACCESSORY:
        return True
    if slot_type is SlotType.GOLDEN or slot_type is SlotType.COMPOUND:
        return False
    raise ValueError(f"Unknown slot type: {slot_type}")


def is_low_sweat_pattern(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return slot.movement_pattern in PART_A_MOVEMENT_PATTERNS


def is_sweat_capped(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return slot.max_sweat_level is not None and slot.max_sweat_level <= config.part_a_max_sweat_level


def needs_equipment(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return len(slot.preferred_equipment) > 0


def is_optional(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return slot.is_optional


def always(slot: BlueprintSlot, config: FragmenterConfig) -> bool:
    return True


# Precedence, highest first
CLASSIFICATION_RULES: tuple[tuple[str, SlotPredicate, FragmentPart], ...] = (
    ("explicit_part_a", is_tagged_part_a, FragmentPart.A),
    ("explicit_part_b", is_tagged_part_b, FragmentPart.B),
    ("low_impact_type", is_low_impact_type, FragmentPart.A),
    ("low_sweat_pattern", is_low_sweat_pattern, FragmentPart.A),
    ("sweat_capped", is_sweat_capped, FragmentPart.A),
    ("needs_equipment", needs_equipment, FragmentPart.B),
    ("optional", is_optional, FragmentPart.A),
    ("default", always, FragmentPart.B),
)


def classify_slot_with_rule(slot: BlueprintSlot, config: FragmenterConfig | None = None) -> tuple[FragmentPart, str]:
    """Classify a slot and report the rule that decided it."""
    config = config or FragmenterConfig()
    for name, predicate, part in CLASSIFICATION_RULES:
        if predicate(slot, config):
            return part, name
    raise AssertionError("classification rules must end with a catch-all")


def classify_slot(slot: BlueprintSlot, config: FragmenterConfig | None = None) -> FragmentPart:
    """Return the fragment a slot belongs to."""
    part, _ = classify_slot_with_rule(slot, config)
    return part


# -----------------------------
# Duration
# -----------------------------
def minutes_per_set(slot_type: SlotType) -> int:
    if slot_type is SlotType.GOLDEN:
        return 3
    if (
        slot_type is SlotType.COMPOUND
        or slot_type is SlotType.ACCESSORY
        or slot_type is SlotType.WARMUP
        or slot_type is SlotType.COOLDOWN
    ):
        return 2
    raise ValueError(f"Unknown slot type: {slot_type}")


def fixed_overhead_minutes(slot_type: SlotType) -> int:
    if slot_type is SlotType.WARMUP or slot_type is SlotType.COOLDOWN:
        return WARMUP_COOLDOWN_MINUTES
    if slot_type is SlotType.GOLDEN or slot_type is SlotType.COMPOUND or slot_type is SlotType.ACCESSORY:
        return 0
    raise ValueError(f"Unknown slot type: {slot_type}")


def estimate_duration(slots: Iterable[BlueprintSlot]) -> int:
    """Estimate minutes for a group of slots.

    Each slot costs sets * minutes_per_set (3 for golden, 2 otherwise);
    warm-up and cool-down slots add a flat 5 minutes.
    """
    total = 0.0
    for slot in slots:
        total += slot.sets * minutes_per_set(slot.type)
        total += fixed_overhead_minutes(slot.type)
    return round(total)


def blueprint_needs_equipment(blueprint: WorkoutBlueprint) -> bool:
    """True when any slot is built around equipment."""
    return any(slot.preferred_equipment for slot in blueprint.slots)


# -----------------------------
# Fragmenter
# -----------------------------
class Fragmenter:
    """Analyzes blueprints and assembles Part A / Part B fragments."""

    def __init__(self, config: FragmenterConfig | None = None):
        self.config = config or FragmenterConfig.from_settings()

    def analyze(self, blueprint: WorkoutBlueprint, context: GenerationContext) -> FragmentationResult:
        """Decide whether to split the blueprint and partition its slots.

        Args:
            blueprint: Blueprint to analyze
            context: Generation context (time, location)

        Returns:
            FragmentationResult; when not fragmenting Part A is empty and
            Part B holds every slot at the blueprint's target duration
        """
        time_constrained = context.time_available < blueprint.min_duration
        location_mismatch = context.location in RESTRICTIVE_LOCATIONS and blueprint_needs_equipment(blueprint)
        should_fragment = blueprint.can_fragment and (time_constrained or location_mismatch)

        if not should_fragment:
            result = FragmentationResult(
                should_fragment=False,
                reason=FragmentReason.FULL_WORKOUT,
                part_a_slots=(),
                part_b_slots=tuple(blueprint.slots),
                part_a_duration=0,
                part_b_duration=blueprint.target_duration,
            )
        else:
            part_a, part_b = self.split_slots(blueprint.slots)
            result = FragmentationResult(
                should_fragment=True,
                reason=FragmentReason.TIME_CONSTRAINT if time_constrained else FragmentReason.LOCATION_MISMATCH,
                part_a_slots=tuple(part_a),
                part_b_slots=tuple(part_b),
                part_a_duration=estimate_duration(part_a),
                part_b_duration=estimate_duration(part_b),
            )

        log_event(
            "fragmentation_decided",
            blueprint_id=blueprint.id,
            should_fragment=result.should_fragment,
            reason=result.reason.value,
            time_constrained=time_constrained,
            location_mismatch=location_mismatch,
            part_a_slots=len(result.part_a_slots),
            part_b_slots=len(result.part_b_slots),
        )
        return result

    def split_slots(self, slots: Sequence[BlueprintSlot]) -> tuple[list[BlueprintSlot], list[BlueprintSlot]]:
        """Partition slots into (Part A, Part B), keeping blueprint order."""
        part_a: list[BlueprintSlot] = []
        part_b: list[BlueprintSlot] = []
        for slot in slots:
            if classify_slot(slot, self.config) is FragmentPart.A:
                part_a.append(slot)
            else:
                part_b.append(slot)
        return part_a, part_b

    def create_fragments(
        self,
        result: FragmentationResult,
        filled_a: list[FilledSlot],
        filled_b: list[FilledSlot],
    ) -> list[WorkoutFragment]:
        """Build the two fragments; empty when the result does not fragment."""
        if not result.should_fragment:
            return []
        return [
            WorkoutFragment(
                part=FragmentPart.A,
                name=self.config.part_a_name,
                slots=list(filled_a),
                estimated_duration=result.part_a_duration,
            ),
            WorkoutFragment(
                part=FragmentPart.B,
                name=self.config.part_b_name,
                slots=list(filled_b),
                estimated_duration=result.part_b_duration,
            ),
        ]


def create_fragmenter(config: FragmenterConfig | None = None) -> Fragmenter:
    return Fragmenter(config)


def should_fragment_workout(blueprint: WorkoutBlueprint, context: GenerationContext) -> bool:
    """Quick check without keeping the analysis."""
    return Fragmenter(FragmenterConfig()).analyze(blueprint, context).should_fragment


# -----------------------------
# Completion (player layer)
# -----------------------------
def is_session_complete(session: GeneratedSession) -> bool:
    """Fragmented sessions are complete when every fragment is; otherwise the session flag decides."""
    if not session.is_fragmented:
        return session.is_completed
    return all(fragment.is_completed for fragment in session.fragments)


def mark_fragment_completed(session: GeneratedSession, part: FragmentPart, completed: bool = True) -> GeneratedSession:
    """Set one fragment's completion flag and re-derive the session flag.

    Raises:
        ValueError: If the session is not fragmented or has no such fragment
    """
    if not session.is_fragmented:
        raise ValueError(f"Session {session.id} is not fragmented")

    for fragment in session.fragments:
        if fragment.part is part:
            fragment.is_completed = completed
            break
    else:
        raise ValueError(f"Session {session.id} has no fragment {part.value}")

    session.is_completed = is_session_complete(session)
    log_event(
        "fragment_completed",
        session_id=session.id,
        part=part.value,
        completed=completed,
        session_completed=session.is_completed,
    )
    return session
