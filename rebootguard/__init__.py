"""
rebootguard

Uptime-driven reboot reminders and enforcement for workstations.
"""

__version__ = "1.0.0"
