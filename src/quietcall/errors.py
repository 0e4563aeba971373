"""Exceptions raised by the quietcall library."""


class QuietcallError(Exception):
    """Base class for all quietcall errors."""


class CallCanceledError(QuietcallError):
    """Delivered to calls whose execution was canceled before it started."""

    def __init__(self, message: str = "call canceled") -> None:
        super().__init__(message)


class DebouncerClosedError(QuietcallError, RuntimeError):
    """Raised when calling a debounced function after it has been closed."""
