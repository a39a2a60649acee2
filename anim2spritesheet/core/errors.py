"""Domain-specific exceptions for the sprite sheet recorder."""


class ValidationError(ValueError):
    """Raised when user-provided settings fail validation."""


class InvalidStateError(RuntimeError):
    """Raised when a recording cannot start in the current state."""


class ProcessingError(RuntimeError):
    """Raised when the pipeline fails unexpectedly."""


class CaptureFailedError(RuntimeError):
    """Raised when a single snapshot produced no usable image."""

    def __init__(self, reason: str, attempt: int | None = None):
        message = f"Capture failed: {reason}"
        if attempt is not None:
            message = f"{message} (attempt {attempt})"
        super().__init__(message)
        self.reason = reason


class RecordingAbortedError(ProcessingError):
    """Raised (or reported) when a session ends without a sheet."""

    def __init__(self, reason: str, captured: int = 0, target: int = 0):
        super().__init__(f"Recording aborted: {reason}")
        self.reason = reason
        self.captured = captured
        self.target = target


class CompositionError(ProcessingError):
    """Raised when frames cannot be composed into a sheet."""


class PartialCaptureWarning(UserWarning):
    """Fewer frames than requested were composed."""

    def __init__(self, captured: int, target: int):
        super().__init__(f"Captured {captured} frames instead of {target}")
        self.captured = captured
        self.target = target
