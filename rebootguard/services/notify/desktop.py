"""
Desktop notification backend.

Uses notify-send (libnotify >= 0.7.9) for notifications with action
buttons and zenity for the reboot time picker.
Install: apt install libnotify-bin zenity

notify-send --wait blocks until the user clicks an action or the
notification closes, then prints the action key on stdout.
"""

import subprocess
from datetime import datetime

from rebootguard.common.exceptions import InvalidScheduleError, NotificationError
from rebootguard.common.logging_setup import get_service_logger
from rebootguard.common.timestamp import ensure_aware
from rebootguard.services.decision.models import NotificationKind
from .messages import render
from .notifier import Notifier, NotificationResult, UserAction, UserActionType

logger = get_service_logger("notify.desktop")

# Action keys as printed by notify-send
ACTIONS = {
    "schedule": ("Schedule restart", UserActionType.SCHEDULE),
    "reboot_now": ("Restart now", UserActionType.REBOOT_NOW),
    "dismiss": ("Dismiss", UserActionType.DISMISS),
}

# Kinds that offer the "Schedule restart" button
SCHEDULABLE_KINDS = {
    NotificationKind.INITIAL_WARNING,
    NotificationKind.HOURLY_REMINDER,
    NotificationKind.FINAL_WARNING,
}


def parse_clock_time(text: str, now: datetime) -> datetime:
    """
    Parse "HH:MM" typed by the user into a datetime on today's date.

    Raises:
        ValueError: If the text is not a clock time
    """
    parsed = datetime.strptime(text.strip(), "%H:%M")
    return ensure_aware(now).replace(
        hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0
    )


class DesktopNotifier(Notifier):
    """notify-send / zenity notifier with action handling"""

    def __init__(
        self,
        app_name: str = "Reboot Reminder",
        response_timeout_seconds: int = 120,
        picker_timeout_seconds: int = 120,
    ):
        self.app_name = app_name
        self.response_timeout_seconds = response_timeout_seconds
        self.picker_timeout_seconds = picker_timeout_seconds

    def _build_command(self, kind: NotificationKind, title: str, message: str) -> list[str]:
        cmd = [
            "notify-send",
            f"--app-name={self.app_name}",
            "--icon=system-reboot",
        ]

        if kind == NotificationKind.IMMEDIATE_REBOOT:
            # Critical notifications stay until closed; no buttons to dismiss it with
            cmd.append("--urgency=critical")
        else:
            urgency = "critical" if kind in (
                NotificationKind.FINAL_WARNING,
                NotificationKind.SCHEDULED_COUNTDOWN,
            ) else "normal"
            cmd.append(f"--urgency={urgency}")
            cmd.append("--wait")
            cmd.append(f"--expire-time={self.response_timeout_seconds * 1000}")

            keys = ["reboot_now", "dismiss"]
            if kind in SCHEDULABLE_KINDS:
                keys.insert(0, "schedule")
            for key in keys:
                cmd.append(f"--action={key}={ACTIONS[key][0]}")

        cmd.extend([title, message])
        return cmd

    def show(
        self,
        kind: NotificationKind,
        uptime_days: float,
        deadline: datetime,
        minutes_remaining: int,
    ) -> NotificationResult:
        title, message = render(kind, uptime_days, deadline, minutes_remaining)
        cmd = self._build_command(kind, title, message)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                # Small margin over the notification's own expiry
                timeout=self.response_timeout_seconds + 5,
            )
        except OSError as e:
            raise NotificationError(f"Cannot run notify-send: {e}", kind.value)
        except subprocess.TimeoutExpired:
            # Shown, but the user never answered
            logger.debug(f"No response to {kind.value} notification")
            return NotificationResult(delivered=True)

        if result.returncode != 0:
            raise NotificationError(
                f"notify-send exited {result.returncode}: {result.stderr.strip()}",
                kind.value,
            )

        key = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        if key in ACTIONS:
            return NotificationResult(
                delivered=True,
                user_action=UserAction(ACTIONS[key][1]),
            )

        return NotificationResult(delivered=True)

    def pick_schedule_time(self, now: datetime, deadline: datetime) -> datetime | None:
        try:
            result = subprocess.run(
                [
                    "zenity",
                    "--entry",
                    f"--title={self.app_name}",
                    f"--text=Restart at (HH:MM, after {now:%H:%M} "
                    f"and no later than {deadline:%H:%M}):",
                    f"--entry-text={deadline:%H:%M}",
                    f"--timeout={self.picker_timeout_seconds}",
                ],
                capture_output=True,
                text=True,
                timeout=self.picker_timeout_seconds + 5,
            )
        except OSError as e:
            raise NotificationError(f"Cannot run zenity: {e}")
        except subprocess.TimeoutExpired:
            return None

        # 1 = cancelled, 5 = zenity's own timeout
        if result.returncode != 0:
            return None

        try:
            return parse_clock_time(result.stdout, now)
        except ValueError:
            raise InvalidScheduleError(None, now, deadline)

    def show_invalid_schedule(
        self,
        requested: datetime | None,
        now: datetime,
        deadline: datetime,
    ) -> None:
        shown = f"{requested:%H:%M}" if requested else "That"
        try:
            subprocess.run(
                [
                    "zenity",
                    "--warning",
                    f"--title={self.app_name}",
                    f"--text={shown} is not a valid restart time. Pick a time "
                    f"after {now:%H:%M} and no later than {deadline:%H:%M}.",
                    f"--timeout={self.picker_timeout_seconds}",
                ],
                capture_output=True,
                text=True,
                timeout=self.picker_timeout_seconds + 5,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not show invalid schedule warning: {e}")
