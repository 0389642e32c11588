"""Session generation pipeline.

Pipeline order:
1. Blueprint load (by archetype id)
2. Catalog query (the only await; bounded by a timeout)
3. Slot filling (level resolution + constraint relaxation)
4. Fragmentation analysis and slot classification
5. Session assembly

compose_session (steps 3-5) is pure: the same blueprint, context and
catalog results always produce byte-identical session JSON.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import asdict, replace
from pathlib import Path

from loguru import logger

from workout_engine.composition.blueprint_catalog import load_blueprint
from workout_engine.composition.context import build_generation_context
from workout_engine.composition.enums import Location
from workout_engine.composition.errors import CatalogUnavailableError, StaleGenerationError
from workout_engine.composition.exercise_catalog import ExerciseCatalog, ExerciseFilter, UserProfileProvider
from workout_engine.composition.fragmenter import Fragmenter
from workout_engine.composition.models import (
    Exercise,
    FilledSlot,
    GeneratedSession,
    GenerationContext,
    GenerationWarning,
    WorkoutBlueprint,
)
from workout_engine.composition.observability import (
    GenerationStage,
    log_event,
    track_stage,
)
from workout_engine.composition.shadow_matrix import ShadowMatrix
from workout_engine.composition.slot_filler import fill_blueprint, substitute_patterns
from workout_engine.config.settings import settings

SESSION_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "workout-engine/generated-session")


# -----------------------------
# Serialization
# -----------------------------
def _json_default(value: object) -> object:
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _canonical_json(payload: object) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_json_default)


def session_to_dict(session: GeneratedSession) -> dict:
    """Convert a session into plain JSON-compatible data."""
    return json.loads(session_to_json(session))


def session_to_json(session: GeneratedSession, indent: int | None = None) -> str:
    """Serialize a session with sorted keys (stable across runs)."""
    return json.dumps(asdict(session), sort_keys=True, indent=indent, default=_json_default)


def compute_session_id(
    blueprint: WorkoutBlueprint,
    context: GenerationContext,
    exercises: Sequence[Exercise],
) -> str:
    """Derive the session id from the generation inputs (no clock, no randomness).

    The whole blueprint is hashed, version included, so re-authoring a
    blueprint under a new version yields new session ids.
    """
    payload = {
        "blueprint": asdict(blueprint),
        "context": asdict(context),
        "exercises": sorted(exercise.id for exercise in exercises),
    }
    return str(uuid.uuid5(SESSION_NAMESPACE, _canonical_json(payload)))


# -----------------------------
# Composition
# -----------------------------
def build_exercise_filter(blueprint: WorkoutBlueprint, context: GenerationContext) -> ExerciseFilter:
    """Catalog query covering every pattern (and substitute) the blueprint needs."""
    patterns = set()
    for slot in blueprint.slots:
        patterns |= substitute_patterns(slot.movement_pattern)
    return ExerciseFilter(
        movement_patterns=frozenset(patterns),
        exercise_ids=frozenset(slot.locked_exercise_id for slot in blueprint.slots if slot.locked_exercise_id),
        exclude_injury_areas=context.injuries,
        include_generic=True,
    )


def _context_warnings(context: GenerationContext) -> list[GenerationWarning]:
    return [GenerationWarning(code="LEVEL_CLAMPED", message=note) for note in context.notes]


def _filled_in_order(slot_ids: Iterable[str], filled_by_id: dict[str, FilledSlot]) -> list[FilledSlot]:
    return [filled_by_id[slot_id] for slot_id in slot_ids if slot_id in filled_by_id]


def compose_session(
    blueprint: WorkoutBlueprint,
    context: GenerationContext,
    exercises: Sequence[Exercise],
    fragmenter: Fragmenter | None = None,
    level_tolerance: int | None = None,
) -> GeneratedSession:
    """Fill, analyze and assemble a session from already-fetched catalog results.

    Args:
        blueprint: Blueprint to realize
        context: Generation context snapshot
        exercises: Catalog query results
        fragmenter: Fragmenter to use (defaults to one configured from settings)
        level_tolerance: Override for the LEVEL_MISMATCH threshold

    Returns:
        GeneratedSession; unfilled slots are left out and reported as warnings
    """
    fragmenter = fragmenter or Fragmenter()
    session_id = compute_session_id(blueprint, context, exercises)
    warnings = _context_warnings(context)

    with track_stage(GenerationStage.FILL, session_id) as stage_meta:
        outcomes = fill_blueprint(blueprint, context, exercises, level_tolerance=level_tolerance)
        filled_by_id = {outcome.slot.id: outcome.filled for outcome in outcomes if outcome.filled is not None}
        for outcome in outcomes:
            warnings.extend(outcome.warnings)
        stage_meta["filled"] = len(filled_by_id)
        stage_meta["unfilled"] = len(outcomes) - len(filled_by_id)

    with track_stage(GenerationStage.FRAGMENT, session_id) as stage_meta:
        result = fragmenter.analyze(blueprint, context)
        stage_meta["should_fragment"] = result.should_fragment
        stage_meta["reason"] = result.reason.value

    with track_stage(GenerationStage.ASSEMBLE, session_id) as stage_meta:
        if result.should_fragment:
            fragments = fragmenter.create_fragments(
                result,
                _filled_in_order((slot.id for slot in result.part_a_slots), filled_by_id),
                _filled_in_order((slot.id for slot in result.part_b_slots), filled_by_id),
            )
            slots: list[FilledSlot] = []
            total_duration = result.part_a_duration + result.part_b_duration
        else:
            fragments = []
            slots = _filled_in_order((slot.id for slot in blueprint.slots), filled_by_id)
            total_duration = blueprint.target_duration

        session = GeneratedSession(
            id=session_id,
            blueprint_id=blueprint.id,
            name=blueprint.name,
            is_fragmented=result.should_fragment,
            slots=slots,
            fragments=fragments,
            total_duration=total_duration,
            intensity=blueprint.intensity,
            focus=blueprint.focus,
            fragmentation=result,
            warnings=warnings,
            generation_context=context,
            blueprint_version=blueprint.version,
        )
        stage_meta["fragments"] = len(fragments)
        stage_meta["warnings"] = len(warnings)

    log_event(
        "session_generated",
        session_id=session_id,
        blueprint_id=blueprint.id,
        blueprint_version=blueprint.version,
        is_fragmented=session.is_fragmented,
        total_duration=total_duration,
        warnings=len(warnings),
    )
    return session


# -----------------------------
# Async entry points
# -----------------------------
async def query_catalog(
    catalog: ExerciseCatalog,
    query: ExerciseFilter,
    timeout: float | None = None,
) -> list[Exercise]:
    """Run one catalog query under a timeout.

    Raises:
        CatalogUnavailableError: If the query fails or exceeds the timeout
    """
    limit = settings.catalog_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(catalog.query_exercises(query), timeout=limit)
    except TimeoutError as e:
        logger.warning(f"Exercise catalog query timed out after {limit}s")
        raise CatalogUnavailableError(f"Exercise catalog did not respond within {limit}s") from e
    except CatalogUnavailableError:
        raise
    except Exception as e:
        logger.error(f"Exercise catalog query failed: {e}")
        raise CatalogUnavailableError(f"Exercise catalog query failed: {e}") from e


async def generate_session(
    archetype_id: str,
    context: GenerationContext,
    catalog: ExerciseCatalog,
    *,
    blueprints_dir: str | Path | None = None,
    timeout: float | None = None,
    fragmenter: Fragmenter | None = None,
) -> GeneratedSession:
    """Generate a session for an archetype.

    The context's matrix and domain levels are copied before anything else
    runs, so edits to the caller's context never affect this generation.

    Raises:
        UnknownBlueprintError: If the archetype has no blueprint
        InvalidBlueprintError: If the blueprint fails authoring validation
        CatalogUnavailableError: If the catalog query fails or times out
    """
    context = replace(
        context,
        shadow_matrix=context.shadow_matrix.snapshot(),
        domain_levels=dict(context.domain_levels),
    )

    with track_stage(GenerationStage.BLUEPRINT, meta={"archetype_id": archetype_id}):
        blueprint = load_blueprint(archetype_id, blueprints_dir)

    with track_stage(GenerationStage.CATALOG, meta={"archetype_id": archetype_id}) as stage_meta:
        exercises = await query_catalog(catalog, build_exercise_filter(blueprint, context), timeout)
        stage_meta["exercises"] = len(exercises)

    return compose_session(blueprint, context, exercises, fragmenter)


async def generate_session_for_user(
    user_id: str,
    archetype_id: str,
    location: Location,
    time_available: int,
    profiles: UserProfileProvider,
    catalog: ExerciseCatalog,
    *,
    equipment_override: Iterable[str] | None = None,
    injury_override: Iterable[str] | None = None,
    shadow_matrix_override: ShadowMatrix | None = None,
    blueprints_dir: str | Path | None = None,
    timeout: float | None = None,
) -> GeneratedSession:
    """Fetch the user's profile, build the context and generate a session."""
    profile = await profiles.get_user_profile(user_id)
    context = build_generation_context(
        profile,
        location,
        time_available,
        equipment_override=equipment_override,
        injury_override=injury_override,
        shadow_matrix_override=shadow_matrix_override,
    )
    return await generate_session(
        archetype_id,
        context,
        catalog,
        blueprints_dir=blueprints_dir,
        timeout=timeout,
    )


# -----------------------------
# Coordinator
# -----------------------------
class GenerationCoordinator:
    """Last-request-wins coordination of in-flight generations.

    Each regenerate() call takes a new, strictly increasing token. A result
    whose token is no longer the latest is discarded and never replaces the
    current session.
    """

    def __init__(
        self,
        catalog: ExerciseCatalog,
        *,
        blueprints_dir: str | Path | None = None,
        timeout: float | None = None,
        fragmenter: Fragmenter | None = None,
    ):
        self.catalog = catalog
        self.blueprints_dir = blueprints_dir
        self.timeout = timeout
        self.fragmenter = fragmenter
        self._latest_token = 0
        self._current: GeneratedSession | None = None

    @property
    def current(self) -> GeneratedSession | None:
        return self._current

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def begin(self) -> int:
        """Issue the token for a new request."""
        self._latest_token += 1
        return self._latest_token

    def commit(self, token: int, session: GeneratedSession) -> GeneratedSession:
        """Install a result as the current session.

        Raises:
            StaleGenerationError: If a newer request has been issued since `token`
        """
        if token != self._latest_token:
            raise StaleGenerationError(
                f"Result for request {token} superseded by request {self._latest_token}"
            )
        self._current = session
        return session

    async def regenerate(self, archetype_id: str, context: GenerationContext) -> GeneratedSession | None:
        """Generate a session; returns None when a newer request superseded this one."""
        token = self.begin()
        session = await generate_session(
            archetype_id,
            context,
            self.catalog,
            blueprints_dir=self.blueprints_dir,
            timeout=self.timeout,
            fragmenter=self.fragmenter,
        )
        try:
            return self.commit(token, session)
        except StaleGenerationError as e:
            log_event(
                "generation_discarded",
                token=token,
                latest_token=self._latest_token,
                session_id=session.id,
            )
            logger.debug(str(e))
            return None
