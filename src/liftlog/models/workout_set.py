"""Logged set model."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"


class Side(str, Enum):
    """Which limb a unilateral set was performed with."""

    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"


class SetLabel(str, Enum):
    WARMUP = "warmup"
    WORKING = "working"
    DROPSET = "dropset"
    FAILURE = "failure"
    PR = "pr"
    BACKOFF = "backoff"


# Content fields that may change after a set is logged
EDITABLE_FIELDS = frozenset({"reps", "weight", "weight_unit", "side", "label", "note", "rpe"})


def normalize_set_updates(updates: dict) -> dict:
    """Validate a partial set update and coerce enum fields.

    Keys mapped to None are dropped, matching "field not supplied".
    """
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update set fields: {', '.join(sorted(unknown))}")

    cleaned = {}
    for key, value in updates.items():
        if value is None:
            continue
        if key == "weight_unit":
            value = WeightUnit(value)
        elif key == "side":
            value = Side(value)
        elif key == "label":
            value = SetLabel(value)
        cleaned[key] = value
    return cleaned


@dataclass
class WorkoutSet:
    """A single logged set.

    ``set_number`` orders the set within the whole session and is never
    reused. ``exercise_set_number`` orders it among sets of the same
    exercise in the session and is kept contiguous from 1.
    """

    user_id: str
    routine_id: int
    session_id: int
    exercise_id: str
    set_number: int
    exercise_set_number: int
    reps: int
    weight: float
    weight_unit: WeightUnit
    completed_at: datetime
    created_at: datetime
    side: Side | None = None
    label: SetLabel | None = None
    note: str | None = None
    rpe: float | None = None  # conventionally 1-10
    id: int | None = None

    @property
    def volume(self) -> float:
        return self.weight * self.reps

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "routine_id": self.routine_id,
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "set_number": self.set_number,
            "exercise_set_number": self.exercise_set_number,
            "reps": self.reps,
            "weight": self.weight,
            "weight_unit": self.weight_unit.value,
            "side": self.side.value if self.side else None,
            "label": self.label.value if self.label else None,
            "note": self.note,
            "rpe": self.rpe,
            "completed_at": self.completed_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutSet":
        """Create from dictionary."""
        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            routine_id=data["routine_id"],
            session_id=data["session_id"],
            exercise_id=data["exercise_id"],
            set_number=data["set_number"],
            exercise_set_number=data["exercise_set_number"],
            reps=data["reps"],
            weight=data["weight"],
            weight_unit=WeightUnit(data["weight_unit"]),
            side=Side(data["side"]) if data.get("side") else None,
            label=SetLabel(data["label"]) if data.get("label") else None,
            note=data.get("note"),
            rpe=data.get("rpe"),
            completed_at=datetime.fromisoformat(data["completed_at"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
