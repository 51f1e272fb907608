from __future__ import annotations


class HelmetMonitorError(Exception):
    """Base class for errors raised by the monitoring core and its accessors."""


class NotFoundError(HelmetMonitorError, LookupError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class WorkerNotFoundError(NotFoundError):
    def __init__(self, worker_id: str):
        super().__init__("worker", worker_id)


class HelmetNotFoundError(NotFoundError):
    def __init__(self, helmet_id: str):
        super().__init__("helmet", helmet_id)


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__("event", event_id)


class InvalidCredentialsError(HelmetMonitorError):
    def __init__(self):
        super().__init__("Invalid email or password")


class UserExistsError(HelmetMonitorError):
    def __init__(self, email: str):
        super().__init__(f"User with this email already exists: {email}")
        self.email = email


class FeedUnavailableError(HelmetMonitorError):
    """The data feed could not be reached (transport failure after retries)."""
