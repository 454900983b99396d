"""Domain exceptions for guest registration and storage."""


class CheckinError(Exception):
    """Base class for all check-in errors."""


class GuestValidationError(CheckinError):
    """Submitted guest data is malformed (e.g., empty name)."""


class StoreError(CheckinError):
    """A storage adapter failed to read or write."""


class StoreNotInitializedError(StoreError):
    """A remote operation was attempted before ``init()`` succeeded."""


class RemoteConfigError(StoreError):
    """The remote connection descriptor is unusable."""


class RegistrationError(CheckinError):
    """A mutating operation failed at the controller boundary.

    The controller cache is left untouched when this is raised.  The
    original failure is available as ``__cause__``.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(message)
        self.operation = operation
