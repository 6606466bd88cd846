"""Exceptions raised by the progression engine."""


class StoreError(Exception):
    """A read or write against Supabase failed."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f"{operation} failed"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)


class CompletionError(StoreError):
    """Marking a lesson complete could not be persisted."""


class NavigationError(CompletionError):
    """The completion was saved but the next lesson could not be determined."""
