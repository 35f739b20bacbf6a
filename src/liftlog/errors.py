"""Error taxonomy shared by the services, the HTTP layer and the client."""


class LiftLogError(Exception):
    """Base class for expected failures of a core operation."""

    kind = "error"


class Unauthorized(LiftLogError):
    """No caller identity where one is required."""

    kind = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(LiftLogError):
    """Entity is absent or not owned by the caller.

    Both cases raise the same error so callers cannot probe for ids they
    do not own.
    """

    kind = "not_found"


class InvalidState(LiftLogError):
    """Operation is not legal in the session's current status."""

    kind = "invalid_state"


class MutationFailed(LiftLogError):
    """The durable store rejected or failed a write."""

    kind = "mutation_failed"
