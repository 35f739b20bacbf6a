"""Success/failure values returned across the client boundary."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from ..errors import LiftLogError

T = TypeVar("T")

MUTATION_ERROR = "mutation_error"
INVALID_STATE = "invalid_state"
NOT_FOUND = "not_found"


@dataclass(frozen=True)
class WorkoutError:
    """Why a client operation failed."""

    kind: str  # mutation_error | invalid_state | not_found
    message: str
    original: BaseException | None = None

    @classmethod
    def from_exception(cls, message: str, exc: BaseException) -> "WorkoutError":
        """Classify a backend failure."""
        if isinstance(exc, LiftLogError) and exc.kind in (INVALID_STATE, NOT_FOUND):
            return cls(exc.kind, f"{message}: {exc}", exc)
        return cls(MUTATION_ERROR, f"{message}: {exc}", exc)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a WorkoutError, never both."""

    value: T | None = None
    error: WorkoutError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: str, message: str, original: BaseException | None = None) -> "Result[T]":
        return cls(error=WorkoutError(kind, message, original))

    @classmethod
    def from_exception(cls, message: str, exc: BaseException) -> "Result[T]":
        return cls(error=WorkoutError.from_exception(message, exc))
