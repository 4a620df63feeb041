"""
Notifier Contract

Every backend shows a notification of a given kind and reports whether it
was delivered and what the user clicked. Backends raise NotificationError
on failure; the orchestrator logs it and skips this notification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from rebootguard.common.logging_setup import get_service_logger
from rebootguard.services.decision.models import NotificationKind
from .messages import render

logger = get_service_logger("notify")


class UserActionType(str, Enum):
    """What the user did with a notification"""
    SCHEDULE = "schedule"
    REBOOT_NOW = "reboot_now"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class UserAction:
    """User response; requested_time only for SCHEDULE"""
    type: UserActionType
    requested_time: datetime | None = None


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of Notifier.show"""
    delivered: bool
    user_action: UserAction | None = None


class Notifier(ABC):
    """Renders notifications and captures user responses"""

    @abstractmethod
    def show(
        self,
        kind: NotificationKind,
        uptime_days: float,
        deadline: datetime,
        minutes_remaining: int,
    ) -> NotificationResult:
        """
        Show one notification.

        Raises:
            NotificationError: If it could not be rendered
        """

    @abstractmethod
    def pick_schedule_time(self, now: datetime, deadline: datetime) -> datetime | None:
        """
        Ask the user for a reboot time. None means the user cancelled.

        Raises:
            NotificationError: If the picker could not be shown
        """

    @abstractmethod
    def show_invalid_schedule(
        self,
        requested: datetime | None,
        now: datetime,
        deadline: datetime,
    ) -> None:
        """Tell the user the picked time was rejected"""


class ConsoleNotifier(Notifier):
    """
    Headless backend: writes the notification to the log.

    Never captures a user action. Used for servers without a desktop
    session and for --dry-run.
    """

    def show(
        self,
        kind: NotificationKind,
        uptime_days: float,
        deadline: datetime,
        minutes_remaining: int,
    ) -> NotificationResult:
        title, message = render(kind, uptime_days, deadline, minutes_remaining)
        logger.info(
            f"{title}: {message}",
            extra={"kind": kind.value, "minutes_remaining": minutes_remaining},
        )
        return NotificationResult(delivered=True)

    def pick_schedule_time(self, now: datetime, deadline: datetime) -> datetime | None:
        return None

    def show_invalid_schedule(
        self,
        requested: datetime | None,
        now: datetime,
        deadline: datetime,
    ) -> None:
        logger.warning(
            f"Rejected schedule {requested.isoformat() if requested else None}; "
            f"must be after {now:%H:%M} and no later than {deadline:%H:%M}"
        )
