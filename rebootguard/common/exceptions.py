"""
Custom Exception Classes for rebootguard

Hierarchical exception structure for error handling across services.
Collaborator errors are recoverable and degrade to a safe default at the
orchestrator boundary. Reboot execution failures are not.
"""

from datetime import datetime


class RebootGuardError(Exception):
    """Base exception for all rebootguard errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(RebootGuardError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class CollaboratorError(RebootGuardError):
    """A transient failure in an external collaborator"""

    def __init__(self, message: str, collaborator: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}", recoverable=True)


class ExemptionLookupError(CollaboratorError):
    """Directory group membership lookup failed"""

    def __init__(self, message: str, host: str | None = None, group: str | None = None):
        self.host = host
        self.group = group
        super().__init__(message, "exemption")


class UptimeError(CollaboratorError):
    """System uptime could not be read"""

    def __init__(self, message: str):
        super().__init__(message, "uptime")


class NotificationError(CollaboratorError):
    """Notification could not be rendered or its response read"""

    def __init__(self, message: str, kind: str | None = None):
        self.kind = kind
        super().__init__(message, "notifier")


class StateStoreError(CollaboratorError):
    """Persisted state could not be read or written"""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message, "state")


class StateCorruptionError(RebootGuardError):
    """Persisted record exists but cannot be parsed"""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"State Corruption: {message}", recoverable=True)


class InvalidScheduleError(RebootGuardError):
    """User-picked reboot time is outside (now, deadline]"""

    def __init__(
        self,
        requested: datetime | None,
        now: datetime,
        deadline: datetime,
    ):
        self.requested = requested
        self.now = now
        self.deadline = deadline
        shown = requested.isoformat() if requested else "nothing"
        super().__init__(
            f"Invalid schedule: {shown} is not between "
            f"{now.isoformat()} and {deadline.isoformat()}",
            recoverable=True,
        )


class RebootExecutionError(RebootGuardError):
    """The reboot command itself failed"""

    def __init__(self, message: str, command: list[str] | None = None):
        self.command = command
        super().__init__(f"Reboot Failed: {message}", recoverable=False)
