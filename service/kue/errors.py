"""
Error types shared by the core services.

Absence (unknown person, no intro path) is never an exception: services
return None and the API layer decides how to surface it.
"""


class KueError(Exception):
    """Base class for kue errors."""


class IntentValidationError(KueError):
    """A search intent is missing what its query type needs. Not retryable."""

    def __init__(self, query_type: str, message: str):
        self.query_type = query_type
        super().__init__(f"{query_type}: {message}")


class UpstreamUnavailable(KueError):
    """Graph store or an external collaborator timed out or is unreachable."""

    retryable = True

    def __init__(self, upstream: str, message: str):
        self.upstream = upstream
        super().__init__(f"{upstream} unavailable: {message}")
