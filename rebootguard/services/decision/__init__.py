"""
Decision Service

Pure decision engine: given the clock, uptime, deadline and persisted
state, decide whether to notify, reboot, or do nothing.
"""

from .engine import decide
from .models import Decision, DecisionType, NotificationKind, RebootReason

__all__ = ["decide", "Decision", "DecisionType", "NotificationKind", "RebootReason"]
