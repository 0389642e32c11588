"""Blueprint catalog.

Blueprints are authored as YAML documents (one per archetype) and loaded
once per directory. Every document is validated twice:
1. Field-level validation with pydantic (WorkoutBlueprintSchema)
2. Authoring rules (validate_blueprint) that span several fields

Authoring errors are rejected at load time with InvalidBlueprintError and
never reach generation.
"""

from pathlib import Path

import yaml
from loguru import logger
from pydantic import ValidationError

from workout_engine.composition.enums import SessionFocus
from workout_engine.composition.errors import InvalidBlueprintError, UnknownBlueprintError
from workout_engine.composition.models import BlueprintSlot, RepRange, WorkoutBlueprint
from workout_engine.composition.schemas import WorkoutBlueprintSchema
from workout_engine.config.settings import settings

_FOCUS_TO_ARCHETYPE: dict[SessionFocus, str] = {
    SessionFocus.FULL_BODY: "full_body_standard",
    SessionFocus.SKILLS: "calisthenics_upper",
    SessionFocus.UPPER_PUSH: "calisthenics_upper",
    SessionFocus.UPPER_PULL: "calisthenics_upper",
    SessionFocus.RECOVERY: "recovery_maintenance",
    SessionFocus.LOWER_BODY: "strength_equipment",
}
_DEFAULT_ARCHETYPE = "full_body_standard"

_catalog_cache: dict[str, dict[str, WorkoutBlueprint]] = {}


def validate_blueprint(blueprint: WorkoutBlueprint) -> None:
    """Validate cross-field authoring rules.

    Rules:
    - Slot ids are unique
    - paired_slot_id points at another slot of the same blueprint
    - min_duration <= target_duration <= max_duration
    - min_sweat_level <= max_sweat_level when both are set
    - A blueprint with can_fragment=False carries no fragment_part tags

    Args:
        blueprint: Blueprint to validate

    Raises:
        InvalidBlueprintError: If any rule is violated (all violations listed)
    """
    details: list[str] = []
    code = "INVALID_BLUEPRINT"

    seen: set[str] = set()
    for slot in blueprint.slots:
        if slot.id in seen:
            code = "DUPLICATE_SLOT_ID"
            details.append(f"duplicate slot id '{slot.id}'")
        seen.add(slot.id)

    for slot in blueprint.slots:
        if slot.paired_slot_id is not None and (slot.paired_slot_id not in seen or slot.paired_slot_id == slot.id):
            details.append(f"slot '{slot.id}' pairs with unknown slot '{slot.paired_slot_id}'")
        if (
            slot.min_sweat_level is not None
            and slot.max_sweat_level is not None
            and slot.min_sweat_level > slot.max_sweat_level
        ):
            details.append(f"slot '{slot.id}' has min_sweat_level above max_sweat_level")

    if not blueprint.min_duration <= blueprint.target_duration <= blueprint.max_duration:
        details.append(
            f"durations must satisfy min <= target <= max, got "
            f"{blueprint.min_duration}/{blueprint.target_duration}/{blueprint.max_duration}"
        )

    if not blueprint.can_fragment:
        tagged = [slot.id for slot in blueprint.slots if slot.fragment_part is not None]
        if tagged:
            if code == "INVALID_BLUEPRINT":
                code = "FRAGMENT_TAGS_ON_UNSPLITTABLE"
            details.append(f"can_fragment is false but slots carry fragment_part: {', '.join(tagged)}")

    if details:
        raise InvalidBlueprintError(code, details)


def parse_blueprint(raw: dict) -> WorkoutBlueprint:
    """Parse and validate one blueprint document.

    Args:
        raw: Blueprint document as loaded from YAML

    Returns:
        Validated WorkoutBlueprint

    Raises:
        InvalidBlueprintError: If the document fails schema or authoring validation
    """
    try:
        schema = WorkoutBlueprintSchema.model_validate(raw)
    except ValidationError as e:
        blueprint_id = raw.get("id", "<unknown>") if isinstance(raw, dict) else "<unknown>"
        raise InvalidBlueprintError(
            "INVALID_BLUEPRINT_SCHEMA",
            [f"{blueprint_id}: {err['loc']}: {err['msg']}" for err in e.errors()],
        ) from e

    blueprint = WorkoutBlueprint(
        id=schema.id,
        name=schema.name,
        focus=schema.focus,
        intensity=schema.intensity,
        slots=tuple(
            BlueprintSlot(
                id=slot.id,
                type=slot.type,
                movement_pattern=slot.movement_pattern,
                sets=slot.sets,
                rep_range=RepRange(min=slot.rep_range.min, max=slot.rep_range.max),
                is_optional=slot.is_optional,
                max_sweat_level=slot.max_sweat_level,
                min_sweat_level=slot.min_sweat_level,
                preferred_equipment=tuple(sorted(set(slot.preferred_equipment))),
                fragment_part=slot.fragment_part,
                target_muscle=slot.target_muscle,
                program_id=slot.program_id,
                priority=slot.priority,
                set_type=slot.set_type,
                paired_slot_id=slot.paired_slot_id,
                locked_exercise_id=slot.locked_exercise_id,
            )
            for slot in schema.slots
        ),
        min_duration=schema.min_duration,
        target_duration=schema.target_duration,
        max_duration=schema.max_duration,
        can_fragment=schema.can_fragment,
        program_id=schema.program_id,
        version=schema.version,
    )

    validate_blueprint(blueprint)
    return blueprint


def load_blueprint_file(file_path: Path) -> WorkoutBlueprint:
    """Load one blueprint YAML file.

    Raises:
        InvalidBlueprintError: If the file is not valid YAML or fails validation
    """
    try:
        raw = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidBlueprintError("INVALID_BLUEPRINT_YAML", [f"{file_path.name}: {e}"]) from e

    if not isinstance(raw, dict):
        raise InvalidBlueprintError("INVALID_BLUEPRINT_YAML", [f"{file_path.name}: document must be a mapping"])

    try:
        return parse_blueprint(raw)
    except InvalidBlueprintError as e:
        logger.error(
            f"Rejected blueprint file {file_path.name}",
            code=e.code,
            details=e.details,
        )
        raise


def load_blueprint_catalog(blueprints_dir: str | Path | None = None) -> dict[str, WorkoutBlueprint]:
    """Load every blueprint in a directory (cached per directory).

    Args:
        blueprints_dir: Directory with *.yaml blueprints (defaults to settings.blueprints_dir)

    Returns:
        Mapping of archetype id to blueprint

    Raises:
        InvalidBlueprintError: If any file is invalid or two files share an id
        RuntimeError: If the directory is missing or empty
    """
    directory = Path(blueprints_dir or settings.blueprints_dir)
    cache_key = str(directory.resolve())
    if cache_key in _catalog_cache:
        return _catalog_cache[cache_key]

    if not directory.is_dir():
        raise RuntimeError(f"Blueprint directory not found: {directory}")

    catalog: dict[str, WorkoutBlueprint] = {}
    for file_path in sorted(directory.glob("*.yaml")):
        blueprint = load_blueprint_file(file_path)
        if blueprint.id in catalog:
            raise InvalidBlueprintError("DUPLICATE_BLUEPRINT_ID", [f"{blueprint.id} defined twice ({file_path.name})"])
        catalog[blueprint.id] = blueprint

    if not catalog:
        raise RuntimeError(f"No blueprints found in {directory}")

    logger.info(f"Loaded {len(catalog)} blueprints from {directory}")
    _catalog_cache[cache_key] = catalog
    return catalog


def clear_blueprint_cache() -> None:
    """Forget every loaded catalog (used after editing blueprint files)."""
    _catalog_cache.clear()


def load_blueprint(archetype_id: str, blueprints_dir: str | Path | None = None) -> WorkoutBlueprint:
    """Look up a blueprint by archetype id.

    Raises:
        UnknownBlueprintError: If the archetype is not in the catalog
    """
    catalog = load_blueprint_catalog(blueprints_dir)
    if archetype_id not in catalog:
        raise UnknownBlueprintError(
            f"Unknown blueprint archetype '{archetype_id}'. Available: {', '.join(sorted(catalog))}"
        )
    return catalog[archetype_id]


def get_blueprint_by_focus(focus: SessionFocus, blueprints_dir: str | Path | None = None) -> WorkoutBlueprint:
    """Pick the archetype that serves a session focus.

    Focuses without a dedicated archetype get the standard full body blueprint.
    """
    archetype_id = _FOCUS_TO_ARCHETYPE.get(focus, _DEFAULT_ARCHETYPE)
    return load_blueprint(archetype_id, blueprints_dir)
