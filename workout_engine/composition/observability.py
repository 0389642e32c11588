"""Structured logging for the generation pipeline.

Each stage reports start, then success or fail, plus its wall time. Every
event is a loguru record whose fields are bound into `extra`, so a
serializing sink keeps them machine-readable.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum

from loguru import logger

EventField = str | int | float | bool | None


class GenerationStage(StrEnum):
    """Pipeline stages, in execution order."""

    BLUEPRINT = "blueprint_load"
    CATALOG = "catalog_query"
    FILL = "slot_fill"
    FRAGMENT = "fragment_analyze"
    ASSEMBLE = "session_assemble"


class StageStatus(StrEnum):
    START = "start"
    SUCCESS = "success"
    FAIL = "fail"


def log_event(event: str, **fields: EventField) -> None:
    """Emit one structured event.

    Events emitted by the engine: slot_filled, slot_unfilled,
    fragmentation_decided, fragment_completed, session_generated,
    generation_discarded, generation_stage, generation_timing.
    """
    logger.bind(event=event, **fields).info(event)


def log_stage_event(
    stage: GenerationStage,
    status: StageStatus,
    session_id: str | None = None,
    meta: dict[str, EventField] | None = None,
) -> None:
    fields: dict[str, EventField] = {"stage": stage.value, "status": status.value}
    if session_id:
        fields["session_id"] = session_id
    if meta:
        fields.update(meta)
    log_event("generation_stage", **fields)


def log_stage_metric(stage: GenerationStage, success: bool) -> None:
    """Count a stage outcome (generation_<stage>_success / _failure)."""
    outcome = "success" if success else "failure"
    log_event(f"generation_{stage.value}_{outcome}", stage=stage.value)


@contextmanager
def timing(metric_name: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        log_event("generation_timing", metric=metric_name, duration_seconds=round(time.perf_counter() - started, 6))


@contextmanager
def track_stage(
    stage: GenerationStage,
    session_id: str | None = None,
    meta: dict[str, EventField] | None = None,
) -> Iterator[dict[str, EventField]]:
    """Wrap one pipeline stage with start, timing and success/fail events.

    The yielded dict collects fields reported with the closing event.
    Exceptions are logged with the fail event and re-raised unchanged.

    Example:
        with track_stage(GenerationStage.FILL, session_id) as stage_meta:
            outcomes = fill_blueprint(...)
            stage_meta["filled"] = len(outcomes)
    """
    stage_meta: dict[str, EventField] = dict(meta or {})
    log_stage_event(stage, StageStatus.START, session_id, meta)
    try:
        with timing(f"generation.stage.{stage.value}"):
            yield stage_meta
    except Exception as e:
        log_stage_event(stage, StageStatus.FAIL, session_id, {**stage_meta, "error": str(e)})
        log_stage_metric(stage, False)
        raise
    log_stage_event(stage, StageStatus.SUCCESS, session_id, stage_meta)
    log_stage_metric(stage, True)
