"""Pydantic schemas for authored catalog data.

These schemas validate the YAML documents behind the blueprint catalog and
the sample exercise catalog before they are converted into the frozen
domain models. Field-level problems surface as pydantic ValidationError;
cross-field authoring rules are enforced by the blueprint loader.
"""

from pydantic import BaseModel, Field, model_validator

from workout_engine.composition.enums import (
    ExerciseRole,
    FragmentPart,
    IntensityProfile,
    MovementPattern,
    MuscleGroup,
    SessionFocus,
    SetType,
    SlotType,
)


class RepRangeSchema(BaseModel):
    """Schema for a slot rep range."""

    min: int = Field(..., ge=1)
    max: int = Field(..., ge=1)

    @model_validator(mode="after")
    def check_order(self) -> "RepRangeSchema":
        if self.min > self.max:
            raise ValueError(f"rep_range min ({self.min}) must not exceed max ({self.max})")
        return self


class BlueprintSlotSchema(BaseModel):
    """Schema for one blueprint slot."""

    id: str = Field(..., min_length=1)
    type: SlotType
    movement_pattern: MovementPattern
    sets: int = Field(..., ge=1)
    rep_range: RepRangeSchema = Field(default_factory=lambda: RepRangeSchema(min=8, max=12))
    is_optional: bool = False
    max_sweat_level: int | None = Field(None, ge=0)
    min_sweat_level: int | None = Field(None, ge=0)
    preferred_equipment: list[str] = Field(default_factory=list)
    fragment_part: FragmentPart | None = None
    target_muscle: MuscleGroup | None = None
    program_id: str | None = None
    priority: int = 0
    set_type: SetType = SetType.STRAIGHT
    paired_slot_id: str | None = None
    locked_exercise_id: str | None = None


class WorkoutBlueprintSchema(BaseModel):
    """Schema for a complete blueprint document."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    focus: SessionFocus
    intensity: IntensityProfile
    min_duration: int = Field(..., gt=0)
    target_duration: int = Field(..., gt=0)
    max_duration: int = Field(..., gt=0)
    can_fragment: bool
    program_id: str | None = None
    version: int = Field(1, ge=1)
    slots: list[BlueprintSlotSchema] = Field(..., min_length=1)


class ExerciseSchema(BaseModel):
    """Schema for one catalog exercise."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    movement_pattern: MovementPattern
    primary_muscle: MuscleGroup | None = None
    required_equipment: list[str] = Field(default_factory=list)
    sweat_level: int = Field(2, ge=1, le=3)
    roles: list[ExerciseRole] = Field(default_factory=lambda: [ExerciseRole.MAIN], min_length=1)
    level: int = Field(10, ge=1, le=20)
    injury_areas: list[str] = Field(default_factory=list)
    program_ids: list[str] = Field(default_factory=list)
    is_time_based: bool = False
    is_generic: bool = False


class ExerciseCatalogSchema(BaseModel):
    """Schema for the exercise catalog document."""

    exercises: list[ExerciseSchema] = Field(..., min_length=1)
