"""Build generation contexts from user profiles.

A GenerationContext is the immutable per-request snapshot the engine works
from. It is built once, before any catalog query, and never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from workout_engine.composition.enums import Location
from workout_engine.composition.models import GenerationContext, UserProfile
from workout_engine.composition.shadow_matrix import (
    ShadowMatrix,
    clamp_level,
    create_default_shadow_matrix,
    shadow_matrix_from_dict,
)


def equipment_key_for_location(location: Location) -> str:
    """Profile equipment key that serves a location."""
    if location is Location.HOME:
        return "home"
    if location is Location.OFFICE:
        return "office"
    if location is Location.PARK or location is Location.STREET:
        return "outdoor"
    if location is Location.GYM:
        return "gym"
    raise ValueError(f"Unknown location: {location}")


def resolve_equipment(
    profile: UserProfile,
    location: Location,
    equipment_override: Iterable[str] | None = None,
) -> frozenset[str]:
    """Resolve the equipment usable at a location.

    A non-empty override replaces the profile inventory entirely.
    """
    if equipment_override:
        return frozenset(equipment_override)
    return frozenset(profile.equipment.get(equipment_key_for_location(location), ()))


def build_generation_context(
    profile: UserProfile,
    location: Location,
    time_available: int,
    *,
    equipment_override: Iterable[str] | None = None,
    injury_override: Iterable[str] | None = None,
    shadow_matrix_override: ShadowMatrix | None = None,
) -> GenerationContext:
    """Build the immutable context for one generation request.

    Args:
        profile: User profile (equipment per location, injuries, stored matrix)
        location: Where the session happens
        time_available: Minutes available
        equipment_override: Replaces the profile inventory when non-empty
        injury_override: Replaces the profile injuries when given
        shadow_matrix_override: Matrix used instead of the stored one

    Returns:
        GenerationContext with a detached matrix snapshot; level adjustments
        made while reading the stored matrix are kept in `notes`

    Raises:
        ValueError: If time_available is negative
    """
    if time_available < 0:
        raise ValueError(f"time_available must be >= 0, got {time_available}")

    notes: list[str] = []
    if shadow_matrix_override is not None:
        matrix = shadow_matrix_override.snapshot()
    elif profile.shadow_matrix:
        matrix, notes = shadow_matrix_from_dict(profile.shadow_matrix)
    else:
        matrix = create_default_shadow_matrix()

    domain_levels = {}
    for domain, level in profile.domain_levels.items():
        clamped = clamp_level(level)
        if clamped != level:
            notes.append(f"domain_levels.{domain.value}: level {level} clamped to {clamped}")
        domain_levels[domain] = clamped

    injuries = profile.injuries if injury_override is None else injury_override

    context = GenerationContext(
        location=location,
        time_available=time_available,
        equipment_available=resolve_equipment(profile, location, equipment_override),
        injuries=frozenset(injuries),
        shadow_matrix=matrix,
        domain_levels=domain_levels,
        notes=tuple(notes),
    )
    logger.debug(
        f"Built generation context for user {profile.user_id}: location={location.value}, "
        f"time={time_available}, equipment={sorted(context.equipment_available)}"
    )
    return context
