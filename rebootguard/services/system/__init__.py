"""
System Service

Host-level collaborators:
- Uptime since last boot
- Reboot execution with a grace notice
"""

from .uptime import UptimeSource, PsutilUptimeSource, FixedUptimeSource
from .reboot_handler import Rebooter, SystemRebooter, DryRunRebooter

__all__ = [
    "UptimeSource",
    "PsutilUptimeSource",
    "FixedUptimeSource",
    "Rebooter",
    "SystemRebooter",
    "DryRunRebooter",
]
