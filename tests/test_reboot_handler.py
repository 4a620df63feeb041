from __future__ import annotations

import subprocess

import pytest

from rebootguard.common.exceptions import RebootExecutionError
from rebootguard.services.decision import NotificationKind
from rebootguard.services.system import DryRunRebooter, SystemRebooter

from conftest import FakeNotifier, at


class Recorder:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.commands: list[list[str]] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, 0, "", "")


@pytest.fixture
def recorder(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(subprocess, "run", rec)
    return rec


def test_grace_notice_then_command(recorder):
    notifier = FakeNotifier()
    sleeps: list[float] = []
    rebooter = SystemRebooter(
        ["systemctl", "reboot"],
        notifier=notifier,
        sleep=sleeps.append,
        clock=lambda: at(22),
    )
    rebooter.reboot(60, 8.2)
    assert notifier.shown == [(NotificationKind.IMMEDIATE_REBOOT, 1)]
    assert sleeps == [60]
    assert recorder.commands == [["systemctl", "reboot"]]


def test_zero_grace_skips_notice_and_wait(recorder):
    notifier = FakeNotifier()
    sleeps: list[float] = []
    SystemRebooter(["reboot"], notifier=notifier, sleep=sleeps.append).reboot(0)
    assert notifier.shown == []
    assert sleeps == []
    assert recorder.commands == [["reboot"]]


def test_notice_failure_does_not_block_reboot(recorder, notification_error):
    notifier = FakeNotifier(error=notification_error)
    SystemRebooter(["reboot"], notifier=notifier, sleep=lambda _: None).reboot(30)
    assert recorder.commands == [["reboot"]]


@pytest.mark.parametrize(
    "error",
    [
        subprocess.CalledProcessError(1, ["reboot"], stderr="Access denied"),
        subprocess.TimeoutExpired(["reboot"], 30),
        FileNotFoundError("reboot"),
        PermissionError("reboot"),
        OSError(8, "Exec format error"),
    ],
)
def test_command_failures_raise(monkeypatch, error):
    monkeypatch.setattr(subprocess, "run", Recorder(error))
    with pytest.raises(RebootExecutionError) as exc:
        SystemRebooter(["reboot"], sleep=lambda _: None).reboot(0)
    assert exc.value.recoverable is False
    assert exc.value.command == ["reboot"]


def test_dry_run_records_only(recorder):
    rebooter = DryRunRebooter()
    rebooter.reboot(60)
    assert rebooter.requested == [60]
    assert recorder.commands == []
