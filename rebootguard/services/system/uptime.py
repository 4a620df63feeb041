"""
System Uptime Source

Reads time since last boot. Raises UptimeError on failure; the
orchestrator degrades that to zero uptime so a broken reading can never
force a reboot.
"""

import time
from abc import ABC, abstractmethod
from datetime import timedelta

import psutil

from rebootguard.common.exceptions import UptimeError


class UptimeSource(ABC):
    """Supplies system uptime"""

    @abstractmethod
    def get_uptime(self) -> timedelta:
        """Time since last boot"""


class PsutilUptimeSource(UptimeSource):
    """Uptime from the kernel boot timestamp"""

    def get_uptime(self) -> timedelta:
        try:
            boot_time = psutil.boot_time()
        except (OSError, RuntimeError) as e:
            raise UptimeError(f"Cannot read boot time: {e}")

        seconds = time.time() - boot_time
        if seconds < 0:
            raise UptimeError(f"Boot time {boot_time} is in the future")
        return timedelta(seconds=seconds)


class FixedUptimeSource(UptimeSource):
    """Fixed uptime, for --uptime-days overrides and tests"""

    def __init__(self, uptime: timedelta):
        self.uptime = uptime

    @classmethod
    def from_days(cls, days: float) -> "FixedUptimeSource":
        return cls(timedelta(days=days))

    def get_uptime(self) -> timedelta:
        return self.uptime
