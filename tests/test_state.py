from __future__ import annotations

import json
import os
from datetime import datetime

import pytest

from rebootguard.common.exceptions import StateCorruptionError
from rebootguard.common.state import JsonStateStore, PersistedState

from conftest import TZ, at


def test_missing_file_is_first_run(tmp_path):
    store = JsonStateStore(tmp_path / "state.json")
    assert store.load() == PersistedState()


def test_round_trip(tmp_path):
    store = JsonStateStore(tmp_path / "nested" / "state.json")
    state = PersistedState(
        last_notification_time=datetime(2026, 10, 19, 13, 30, 0, 654321, tzinfo=TZ),
        scheduled_reboot_time=at(21, 15),
        notification_count=7,
    )
    store.save(state)
    assert store.load() == state


def test_round_trip_empty_fields(tmp_path):
    store = JsonStateStore(tmp_path / "state.json")
    store.save(PersistedState(notification_count=2))
    assert store.load() == PersistedState(notification_count=2)


def test_record_layout(tmp_path):
    path = tmp_path / "state.json"
    JsonStateStore(path).save(PersistedState(last_notification_time=at(14), notification_count=1))
    data = json.loads(path.read_text())
    assert data["LastNotificationTime"] == "2026-10-19T14:00:00.000000+02:00"
    assert data["ScheduledRebootTime"] is None
    assert data["NotificationCount"] == 1
    assert "_updated_at" in data
    assert not path.with_suffix(".tmp").exists()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2, 3]",
        '{"LastNotificationTime": "whenever"}',
        '{"NotificationCount": -1}',
        '{"NotificationCount": "three"}',
        '{"NotificationCount": true}',
    ],
)
def test_corrupt_record_raises(tmp_path, content):
    path = tmp_path / "state.json"
    path.write_text(content)
    with pytest.raises(StateCorruptionError):
        JsonStateStore(path).load()


def test_non_utf8_record_raises(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b'{"NotificationCount": 1, "x": "\xff\xfe"}')
    with pytest.raises(StateCorruptionError):
        JsonStateStore(path).load()


@pytest.mark.skipif(os.name == "nt", reason="POSIX writer lock")
def test_writers_lock_sidecar_file(tmp_path, monkeypatch):
    fcntl = pytest.importorskip("fcntl")
    locked = []
    real_flock = fcntl.flock

    def recording_flock(fd, op):
        locked.append((os.fstat(fd), op))
        return real_flock(fd, op)

    monkeypatch.setattr(fcntl, "flock", recording_flock)
    path = tmp_path / "state.json"
    JsonStateStore(path).save(PersistedState(notification_count=1))

    lock_stat = os.stat(path.with_suffix(".lock"))
    assert [op for _, op in locked] == [fcntl.LOCK_EX, fcntl.LOCK_UN]
    assert all(os.path.samestat(st, lock_stat) for st, _ in locked)


def test_corrupt_record_is_overwritten(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    store = JsonStateStore(path)
    store.save(PersistedState(notification_count=1))
    assert store.load().notification_count == 1


def test_blank_file_is_first_run(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("  \n")
    assert JsonStateStore(path).load() == PersistedState()


def test_clear(tmp_path):
    store = JsonStateStore(tmp_path / "state.json")
    assert store.clear() is False
    store.save(PersistedState(notification_count=3))
    assert store.clear() is True
    assert store.load() == PersistedState()


def test_transitions():
    state = PersistedState(notification_count=2)
    shown = state.with_notification(at(14))
    assert shown.notification_count == 3
    assert shown.last_notification_time == at(14)

    scheduled = shown.with_schedule(at(20))
    assert scheduled.scheduled_reboot_time == at(20)

    rebooting = scheduled.for_reboot()
    assert rebooting == PersistedState(notification_count=3)
