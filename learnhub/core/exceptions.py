"""Base exception types shared by every package.

Domain errors derive from ``AppError`` and carry a machine-readable ``code``
that each package's ``dependencies.py`` maps to an HTTP status. Failures of the
backing infrastructure (database unreachable, unit of work timed out) are
raised as ``InfrastructureError`` and answered with a generic 503.
"""


class AppError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, code: str = "app_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class InfrastructureError(Exception):
    """A backing service failed or did not answer in time."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        self.message = message
        super().__init__(message)
