"""
Notify Service

Notification backends and the user responses they capture.
"""

from rebootguard.common.config import NotifierBackend, NotifierSettings
from .notifier import (
    Notifier,
    ConsoleNotifier,
    NotificationResult,
    UserAction,
    UserActionType,
)
from .desktop import DesktopNotifier


def create_notifier(settings: NotifierSettings) -> Notifier:
    """Build the configured notification backend"""
    if settings.backend == NotifierBackend.CONSOLE:
        return ConsoleNotifier()
    return DesktopNotifier(
        app_name=settings.app_name,
        response_timeout_seconds=settings.response_timeout_seconds,
        picker_timeout_seconds=settings.picker_timeout_seconds,
    )


__all__ = [
    "Notifier",
    "ConsoleNotifier",
    "DesktopNotifier",
    "NotificationResult",
    "UserAction",
    "UserActionType",
    "create_notifier",
]
