"""
Notification texts, one fixed template per kind.
"""

from datetime import datetime

from rebootguard.services.decision.models import NotificationKind


def format_remaining(minutes: int) -> str:
    """480 -> '8h 0m', 25 -> '25 minutes', 1 -> '1 minute'"""
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes} minute" + ("" if minutes == 1 else "s")


def render(
    kind: NotificationKind,
    uptime_days: float,
    deadline: datetime,
    minutes_remaining: int,
) -> tuple[str, str]:
    """
    Build (title, message) for a notification.

    Args:
        kind: Notification kind
        uptime_days: Current uptime in days
        deadline: Today's deadline
        minutes_remaining: Minutes until the deadline or scheduled reboot

    Returns:
        Title and body text
    """
    remaining = format_remaining(minutes_remaining)
    at = f"{deadline:%H:%M}"
    up = f"{uptime_days:.0f} days"

    if kind == NotificationKind.INITIAL_WARNING:
        return (
            "Restart required",
            f"This computer has been running for {up}. It will restart "
            f"automatically at {at} ({remaining} from now). Save your work "
            f"and restart, or schedule a time that suits you.",
        )
    if kind == NotificationKind.HOURLY_REMINDER:
        return (
            "Restart reminder",
            f"Automatic restart at {at}, {remaining} from now. "
            f"Restart now or pick an earlier time.",
        )
    if kind == NotificationKind.FINAL_WARNING:
        return (
            "Restart soon",
            f"This computer will restart at {at}, in {remaining}. "
            f"Save your work now.",
        )
    if kind == NotificationKind.SCHEDULED_COUNTDOWN:
        return (
            "Scheduled restart",
            f"Your scheduled restart happens in {remaining}. Save your work.",
        )
    if kind == NotificationKind.IMMEDIATE_REBOOT:
        return (
            "Restarting now",
            f"This computer will restart in {remaining}. "
            f"Save your work immediately.",
        )

    raise ValueError(f"Unknown notification kind: {kind!r}")
