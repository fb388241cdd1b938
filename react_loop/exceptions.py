class ReactLoopError(Exception):
    """Base exception for react-loop errors."""


class ModelCallError(ReactLoopError):
    """Raised when the model collaborator fails; ends the run."""


class RunCancelled(ReactLoopError):
    """Raised when a run observes its cancellation token."""

    def __init__(self, message: str = "Run cancelled by user"):
        super().__init__(message)


class InvalidPhaseTransition(ReactLoopError):
    """Raised when the run state is asked to make an illegal phase change."""


class ToolValidationError(ReactLoopError):
    """Raised when tool input fails Pydantic validation."""


class ToolNotFound(ReactLoopError):
    """Raised when model calls a tool that doesn't exist."""
