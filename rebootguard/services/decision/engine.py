"""
Decision Engine

Pure function from (now, uptime, deadline, window, persisted state) to a
single Decision. No I/O, no clock access, no hidden counters: identical
inputs always give identical output.

Priority (first match wins):
1. Uptime below threshold -> nothing to enforce
2. User schedule set -> countdown / reboot, never falls through
3. Deadline phases:
   - passed       -> reboot if inside the window, otherwise wait
   - <= 90 min    -> final warning every 15 min
   - > 90 min     -> initial warning, then hourly reminders

Cadence tightens as time runs out: 60 -> 15 -> 4/3 -> 1 minute.
"""

from datetime import datetime, timedelta

from rebootguard.common.config import RebootWindow
from rebootguard.common.state import PersistedState
from rebootguard.common.timestamp import (
    ceil_minutes,
    in_window,
    minutes_since,
    minutes_until,
    uptime_days,
)
from .models import Decision, NotificationKind, RebootReason

# Deadline phases (minutes)
FINAL_WARNING_BAND = 90
HOURLY_COOLDOWN = 60
FINAL_WARNING_COOLDOWN = 15

# Scheduled countdown bands: (upper bound of m, cooldown, minutes shown)
COUNTDOWN_BANDS = (
    (1, 0, 1),
    (5, 3, 5),
    (10, 4, 10),
)


def _cooldown_elapsed(
    last_notification: datetime | None,
    now: datetime,
    cooldown_minutes: float,
) -> bool:
    """True if never notified or at least cooldown_minutes have passed"""
    if last_notification is None:
        return True
    return minutes_since(last_notification, now) >= cooldown_minutes


def _decide_scheduled(
    now: datetime,
    scheduled: datetime,
    last_notification: datetime | None,
) -> Decision:
    m = minutes_until(scheduled, now)

    if m <= 0:
        return Decision.reboot(
            RebootReason.SCHEDULED,
            f"scheduled time {scheduled.isoformat()} reached",
        )

    for upper, cooldown, shown in COUNTDOWN_BANDS:
        if m <= upper:
            if _cooldown_elapsed(last_notification, now, cooldown):
                return Decision.notify(
                    NotificationKind.SCHEDULED_COUNTDOWN,
                    shown,
                    f"scheduled reboot in {m:.1f}m",
                )
            return Decision.none(f"countdown cooldown ({cooldown}m) active, {m:.1f}m to schedule")

    return Decision.none(f"scheduled reboot in {m:.1f}m, nothing to show yet")


def _decide_deadline(
    now: datetime,
    deadline: datetime,
    reboot_window: RebootWindow,
    last_notification: datetime | None,
) -> Decision:
    d = minutes_until(deadline, now)

    if d <= 0:
        if in_window(now, reboot_window.start_hour, reboot_window.end_hour):
            return Decision.reboot(
                RebootReason.DEADLINE,
                f"deadline passed {-d:.1f}m ago, inside reboot window",
            )
        return Decision.none(
            f"deadline passed, waiting for window "
            f"{reboot_window.start_hour:02d}:00-{reboot_window.end_hour:02d}:00"
        )

    if d <= FINAL_WARNING_BAND:
        if _cooldown_elapsed(last_notification, now, FINAL_WARNING_COOLDOWN):
            return Decision.notify(
                NotificationKind.FINAL_WARNING,
                ceil_minutes(d),
                f"{d:.1f}m to deadline",
            )
        return Decision.none(f"final warning cooldown active, {d:.1f}m to deadline")

    if last_notification is None:
        return Decision.notify(
            NotificationKind.INITIAL_WARNING,
            ceil_minutes(d),
            "first notification",
        )

    if _cooldown_elapsed(last_notification, now, HOURLY_COOLDOWN):
        return Decision.notify(
            NotificationKind.HOURLY_REMINDER,
            ceil_minutes(d),
            f"{d:.1f}m to deadline",
        )

    return Decision.none(f"hourly cooldown active, {d:.1f}m to deadline")


def decide(
    now: datetime,
    uptime: timedelta,
    uptime_threshold_days: int,
    deadline: datetime,
    reboot_window: RebootWindow,
    state: PersistedState,
) -> Decision:
    """
    Decide what to do this invocation.

    The caller must already have cleared a schedule that is past its grace
    period or later than the deadline.

    Args:
        now: Current time (timezone-aware)
        uptime: Time since last boot; negative values count as zero
        uptime_threshold_days: Enforcement starts at this many days of uptime
        deadline: Today's enforcement time
        reboot_window: Hours in which a deadline reboot may run
        state: Validated persisted state

    Returns:
        Decision (never raises)
    """
    days = uptime_days(uptime)
    if days < max(0, uptime_threshold_days):
        return Decision.none(f"uptime {days:.2f}d below {uptime_threshold_days}d threshold")

    if state.scheduled_reboot_time is not None:
        return _decide_scheduled(
            now, state.scheduled_reboot_time, state.last_notification_time
        )

    return _decide_deadline(now, deadline, reboot_window, state.last_notification_time)
