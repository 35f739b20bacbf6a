"""Request bodies for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.routine import RoutineExercise, Visibility
from ..models.workout_set import SetLabel, Side, WeightUnit


class RoutineExerciseIn(BaseModel):
    exercise_id: str
    order: int = Field(ge=0)
    target_sets: int = 3
    target_reps: int = 10
    is_unilateral: Optional[bool] = None
    notes: Optional[str] = None

    def to_model(self) -> RoutineExercise:
        return RoutineExercise(**self.model_dump())


class RoutineCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    exercises: List[RoutineExerciseIn] = []
    visibility: Visibility = Visibility.PRIVATE


class RoutineUpdate(BaseModel):
    """Partial update; omitted fields stay as they are."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    exercises: Optional[List[RoutineExerciseIn]] = None
    visibility: Optional[Visibility] = None


class SessionStart(BaseModel):
    routine_id: int
    visibility: Optional[Visibility] = None
    name: Optional[str] = None


class SessionComplete(BaseModel):
    notes: Optional[str] = None


class SetCreate(BaseModel):
    exercise_id: str
    reps: int = Field(ge=0)
    weight: float = Field(ge=0)
    weight_unit: WeightUnit
    side: Optional[Side] = None
    label: Optional[SetLabel] = None
    note: Optional[str] = None
    rpe: Optional[float] = None


class SetUpdate(BaseModel):
    """Content fields of a set; numbering never changes."""

    model_config = ConfigDict(extra="forbid")

    reps: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    weight_unit: Optional[WeightUnit] = None
    side: Optional[Side] = None
    label: Optional[SetLabel] = None
    note: Optional[str] = None
    rpe: Optional[float] = None
