from __future__ import annotations

import subprocess

import pytest

from rebootguard.common.exceptions import InvalidScheduleError, NotificationError
from rebootguard.services.decision import NotificationKind
from rebootguard.services.notify import DesktopNotifier, UserActionType
from rebootguard.services.notify.desktop import parse_clock_time

from conftest import at


class FakeRun:
    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "", error: Exception | None = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.commands: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


def install(monkeypatch, **kwargs) -> FakeRun:
    fake = FakeRun(**kwargs)
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.mark.parametrize(
    "stdout,expected",
    [
        ("schedule\n", UserActionType.SCHEDULE),
        ("reboot_now\n", UserActionType.REBOOT_NOW),
        ("dismiss\n", UserActionType.DISMISS),
    ],
)
def test_action_keys(monkeypatch, stdout, expected):
    install(monkeypatch, stdout=stdout)
    result = DesktopNotifier().show(NotificationKind.INITIAL_WARNING, 8, at(22), 480)
    assert result.delivered
    assert result.user_action.type == expected
    assert result.user_action.requested_time is None


def test_closed_without_action(monkeypatch):
    install(monkeypatch, stdout="")
    result = DesktopNotifier().show(NotificationKind.HOURLY_REMINDER, 8, at(22), 300)
    assert result.delivered
    assert result.user_action is None


def test_no_response_before_timeout(monkeypatch):
    install(monkeypatch, error=subprocess.TimeoutExpired(["notify-send"], 125))
    result = DesktopNotifier().show(NotificationKind.FINAL_WARNING, 8, at(22), 25)
    assert result.delivered
    assert result.user_action is None


def test_missing_binary(monkeypatch):
    install(monkeypatch, error=FileNotFoundError("notify-send"))
    with pytest.raises(NotificationError):
        DesktopNotifier().show(NotificationKind.INITIAL_WARNING, 8, at(22), 480)


def test_unrunnable_binary(monkeypatch):
    install(monkeypatch, error=PermissionError(13, "Permission denied", "notify-send"))
    with pytest.raises(NotificationError):
        DesktopNotifier().show(NotificationKind.FINAL_WARNING, 8, at(22), 25)


def test_nonzero_exit(monkeypatch):
    install(monkeypatch, returncode=1, stderr="Cannot connect to session bus")
    with pytest.raises(NotificationError) as exc:
        DesktopNotifier().show(NotificationKind.INITIAL_WARNING, 8, at(22), 480)
    assert exc.value.kind == "initial_warning"


def test_command_buttons_depend_on_kind(monkeypatch):
    fake = install(monkeypatch)
    notifier = DesktopNotifier(app_name="IT")
    notifier.show(NotificationKind.INITIAL_WARNING, 8, at(22), 480)
    notifier.show(NotificationKind.SCHEDULED_COUNTDOWN, 8, at(22), 5)
    notifier.show(NotificationKind.IMMEDIATE_REBOOT, 8, at(22), 1)

    initial, countdown, immediate = fake.commands
    assert "--action=schedule=Schedule restart" in initial
    assert "--urgency=normal" in initial
    assert not any(arg.startswith("--action=schedule") for arg in countdown)
    assert "--action=reboot_now=Restart now" in countdown
    assert "--urgency=critical" in countdown
    assert not any(arg.startswith("--action") for arg in immediate)
    assert "--wait" not in immediate
    assert initial[1] == "--app-name=IT"


def test_picker_returns_time_today(monkeypatch):
    install(monkeypatch, stdout="20:30\n")
    picked = DesktopNotifier().pick_schedule_time(at(14), at(22))
    assert picked == at(20, 30)


def test_picker_cancelled(monkeypatch):
    install(monkeypatch, returncode=1)
    assert DesktopNotifier().pick_schedule_time(at(14), at(22)) is None


def test_picker_unreadable_entry(monkeypatch):
    install(monkeypatch, stdout="half past eight\n")
    with pytest.raises(InvalidScheduleError) as exc:
        DesktopNotifier().pick_schedule_time(at(14), at(22))
    assert exc.value.requested is None


def test_picker_missing_binary(monkeypatch):
    install(monkeypatch, error=FileNotFoundError("zenity"))
    with pytest.raises(NotificationError):
        DesktopNotifier().pick_schedule_time(at(14), at(22))


def test_picker_unrunnable_binary(monkeypatch):
    install(monkeypatch, error=OSError(8, "Exec format error"))
    with pytest.raises(NotificationError):
        DesktopNotifier().pick_schedule_time(at(14), at(22))


def test_invalid_schedule_warning_is_best_effort(monkeypatch):
    fake = install(monkeypatch, error=FileNotFoundError("zenity"))
    DesktopNotifier().show_invalid_schedule(at(23), at(14), at(22))
    assert fake.commands[0][:2] == ["zenity", "--warning"]


def test_invalid_schedule_warning_survives_permission_error(monkeypatch):
    install(monkeypatch, error=PermissionError(13, "Permission denied", "zenity"))
    DesktopNotifier().show_invalid_schedule(None, at(14), at(22))


def test_parse_clock_time():
    assert parse_clock_time(" 07:05 ", at(14)) == at(7, 5)
    with pytest.raises(ValueError):
        parse_clock_time("25:00", at(14))
