"""
Reboot Handler

Executes the OS reboot after a short, non-dismissable grace notice.

Flow:
1. Show IMMEDIATE_REBOOT notice (if grace_seconds > 0)
2. Wait out the grace period
3. Execute the configured reboot command
"""

import math
import subprocess
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable

from rebootguard.common.exceptions import NotificationError, RebootExecutionError
from rebootguard.common.logging_setup import get_service_logger
from rebootguard.common.timestamp import local_now
from rebootguard.services.decision.models import NotificationKind
from rebootguard.services.notify.notifier import Notifier

logger = get_service_logger("system.reboot")


class Rebooter(ABC):
    """Executes a reboot"""

    @abstractmethod
    def reboot(self, grace_seconds: int, uptime_days: float = 0.0) -> None:
        """
        Reboot the host.

        Raises:
            RebootExecutionError: If the reboot command failed
        """


class SystemRebooter(Rebooter):
    """Runs the configured reboot command with subprocess"""

    def __init__(
        self,
        command: list[str],
        notifier: Notifier | None = None,
        timeout_seconds: int = 30,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = local_now,
    ):
        self.command = list(command)
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._clock = clock

    def _show_notice(self, grace_seconds: int, uptime_days: float) -> None:
        """Final notice; a failure here must not block the reboot"""
        if self.notifier is None:
            return
        try:
            self.notifier.show(
                NotificationKind.IMMEDIATE_REBOOT,
                uptime_days,
                self._clock(),
                max(1, math.ceil(grace_seconds / 60)),
            )
        except NotificationError as e:
            logger.warning(f"Could not show reboot notice: {e}")

    def reboot(self, grace_seconds: int, uptime_days: float = 0.0) -> None:
        if grace_seconds > 0:
            self._show_notice(grace_seconds, uptime_days)
            logger.info(
                f"Rebooting in {grace_seconds}s",
                extra={"grace_seconds": grace_seconds},
            )
            self._sleep(grace_seconds)

        logger.info(
            "Initiating system reboot",
            extra={"command": " ".join(self.command)},
        )

        try:
            subprocess.run(
                self.command,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise RebootExecutionError(
                f"{' '.join(self.command)} exited {e.returncode}: {stderr}",
                self.command,
            )
        except subprocess.TimeoutExpired:
            raise RebootExecutionError(
                f"{' '.join(self.command)} timed out after {self.timeout_seconds}s",
                self.command,
            )
        except OSError as e:
            raise RebootExecutionError(str(e), self.command)


class DryRunRebooter(Rebooter):
    """Logs the reboot instead of executing it"""

    def __init__(self):
        self.requested: list[int] = []

    def reboot(self, grace_seconds: int, uptime_days: float = 0.0) -> None:
        self.requested.append(grace_seconds)
        logger.warning(
            f"DRY RUN: would reboot after {grace_seconds}s grace",
            extra={"grace_seconds": grace_seconds},
        )
