"""Routine template models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class Visibility(str, Enum):
    """Who may observe a routine or a session."""

    PRIVATE = "private"
    FRIENDS = "friends"
    PUBLIC = "public"


@dataclass
class RoutineExercise:
    """An exercise slot within a routine, with its default targets."""

    exercise_id: str  # external exercise reference
    order: int = 0
    target_sets: int = 3
    target_reps: int = 10
    is_unilateral: bool | None = None  # track left/right separately
    notes: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "exercise_id": self.exercise_id,
            "order": self.order,
            "target_sets": self.target_sets,
            "target_reps": self.target_reps,
            "is_unilateral": self.is_unilateral,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoutineExercise":
        """Create from dictionary."""
        return cls(
            exercise_id=data["exercise_id"],
            order=data.get("order", 0),
            target_sets=data.get("target_sets", 3),
            target_reps=data.get("target_reps", 10),
            is_unilateral=data.get("is_unilateral"),
            notes=data.get("notes"),
        )


def validate_exercise_order(exercises: list[RoutineExercise]) -> None:
    """Raise ValueError unless orders are exactly 0..n-1."""
    orders = sorted(ex.order for ex in exercises)
    if orders != list(range(len(exercises))):
        raise ValueError(
            f"Exercise order must be unique and contiguous from 0, got {orders}"
        )


@dataclass
class Routine:
    """A reusable workout template owned by one user.

    The exercise list is kept sorted by ``order``; every editing helper
    re-assigns orders so they stay contiguous from 0.
    """

    user_id: str
    name: str
    exercises: list[RoutineExercise] = field(default_factory=list)
    description: str | None = None
    visibility: Visibility = Visibility.PRIVATE
    times_performed: int = 0
    last_performed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def __post_init__(self):
        validate_exercise_order(self.exercises)
        self.exercises.sort(key=lambda ex: ex.order)

    def _renumber(self) -> None:
        for i, ex in enumerate(self.exercises):
            ex.order = i

    def add_exercise(self, exercise: RoutineExercise) -> RoutineExercise:
        """Append an exercise, assigning the next order."""
        added = replace(exercise, order=len(self.exercises))
        self.exercises.append(added)
        return added

    def remove_exercise(self, exercise_id: str) -> None:
        """Remove every slot for an exercise and close the gap."""
        self.exercises = [ex for ex in self.exercises if ex.exercise_id != exercise_id]
        self._renumber()

    def update_exercise(self, exercise_id: str, **updates) -> None:
        """Change targets or notes of an exercise slot."""
        if "order" in updates or "exercise_id" in updates:
            raise ValueError("Use reorder_exercises to move an exercise")
        for i, ex in enumerate(self.exercises):
            if ex.exercise_id == exercise_id:
                self.exercises[i] = replace(ex, **updates)

    def reorder_exercises(self, from_index: int, to_index: int) -> None:
        """Move the exercise at ``from_index`` to ``to_index``."""
        moved = self.exercises.pop(from_index)
        self.exercises.insert(to_index, moved)
        self._renumber()

    def get_exercise(self, exercise_id: str) -> RoutineExercise | None:
        """Find the slot for an exercise."""
        for ex in self.exercises:
            if ex.exercise_id == exercise_id:
                return ex
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "exercises": [ex.to_dict() for ex in self.exercises],
            "visibility": self.visibility.value,
            "times_performed": self.times_performed,
            "last_performed_at": (
                self.last_performed_at.isoformat() if self.last_performed_at else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "Routine":
        """Create from dictionary."""
        last_performed_at = None
        if data.get("last_performed_at"):
            last_performed_at = datetime.fromisoformat(data["last_performed_at"])

        created_at = None
        if data.get("created_at"):
            created_at = datetime.fromisoformat(data["created_at"])

        updated_at = None
        if data.get("updated_at"):
            updated_at = datetime.fromisoformat(data["updated_at"])

        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            name=data["name"],
            description=data.get("description"),
            exercises=[RoutineExercise.from_dict(ex) for ex in data.get("exercises", [])],
            visibility=Visibility(data.get("visibility", "private")),
            times_performed=data.get("times_performed", 0),
            last_performed_at=last_performed_at,
            created_at=created_at,
            updated_at=updated_at,
        )
