from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rebootguard.common.config import EnforcerConfig
from rebootguard.common.exceptions import (
    ExemptionLookupError,
    NotificationError,
    RebootExecutionError,
)
from rebootguard.common.state import PersistedState, StateStore
from rebootguard.services.exemption import ExemptionOracle
from rebootguard.services.notify import Notifier, NotificationResult
from rebootguard.services.orchestrator import Orchestrator
from rebootguard.services.system import FixedUptimeSource, Rebooter

TZ = timezone(timedelta(hours=2))


def at(hour: int, minute: int = 0, second: int = 0, day: int = 19) -> datetime:
    return datetime(2026, 10, day, hour, minute, second, tzinfo=TZ)


class MemoryStore(StateStore):
    def __init__(self, state: PersistedState | None = None, load_error: Exception | None = None) -> None:
        self.state = state
        self.load_error = load_error
        self.saves: list[PersistedState] = []
        self.save_error: Exception | None = None

    def load(self) -> PersistedState:
        if self.load_error is not None:
            raise self.load_error
        return self.state or PersistedState()

    def save(self, state: PersistedState) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.state = state
        self.saves.append(state)

    def clear(self) -> bool:
        existed = self.state is not None
        self.state = None
        return existed


class FakeNotifier(Notifier):
    def __init__(
        self,
        result: NotificationResult | None = None,
        picks: list | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result or NotificationResult(delivered=True)
        self.picks = list(picks or [])
        self.error = error
        self.shown: list[tuple] = []
        self.invalid: list = []
        self.pick_calls = 0

    def show(self, kind, uptime_days, deadline, minutes_remaining) -> NotificationResult:
        self.shown.append((kind, minutes_remaining))
        if self.error is not None:
            raise self.error
        return self.result

    def pick_schedule_time(self, now, deadline):
        self.pick_calls += 1
        if not self.picks:
            return None
        pick = self.picks.pop(0)
        if isinstance(pick, Exception):
            raise pick
        return pick

    def show_invalid_schedule(self, requested, now, deadline) -> None:
        self.invalid.append(requested)


class FakeRebooter(Rebooter):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[int] = []

    def reboot(self, grace_seconds: int, uptime_days: float = 0.0) -> None:
        self.calls.append(grace_seconds)
        if self.fail:
            raise RebootExecutionError("exit status 1", ["systemctl", "reboot"])


class FakeOracle(ExemptionOracle):
    def __init__(self, exempt: bool = False, fail: bool = False) -> None:
        self.exempt = exempt
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def is_exempt(self, host: str, group: str) -> bool:
        self.calls.append((host, group))
        if self.fail:
            raise ExemptionLookupError("directory unreachable", host, group)
        return self.exempt


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_orchestrator(
    now: datetime,
    uptime_days: float = 8,
    state: PersistedState | None = None,
    notifier: FakeNotifier | None = None,
    rebooter: FakeRebooter | None = None,
    oracle: FakeOracle | None = None,
    store: MemoryStore | None = None,
    config: EnforcerConfig | None = None,
    dry_run: bool = False,
) -> Orchestrator:
    return Orchestrator(
        config=config or EnforcerConfig(),
        store=store or MemoryStore(state),
        uptime_source=FixedUptimeSource.from_days(uptime_days),
        notifier=notifier or FakeNotifier(),
        rebooter=rebooter or FakeRebooter(),
        oracle=oracle or FakeOracle(),
        clock=Clock(now),
        host="ws-042",
        dry_run=dry_run,
    )


@pytest.fixture
def notification_error() -> NotificationError:
    return NotificationError("notify-send not found", "initial_warning")
