"""
Decision Dataclasses

Output of the decision engine and the closed set of notification kinds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    """Every notification the enforcer can show"""
    INITIAL_WARNING = "initial_warning"
    HOURLY_REMINDER = "hourly_reminder"
    FINAL_WARNING = "final_warning"
    SCHEDULED_COUNTDOWN = "scheduled_countdown"
    IMMEDIATE_REBOOT = "immediate_reboot"


class DecisionType(str, Enum):
    """What the orchestrator should do this invocation"""
    REBOOT = "reboot"
    NOTIFY = "notify"
    NONE = "none"


class RebootReason(str, Enum):
    """Why a reboot was decided"""
    DEADLINE = "deadline"  # forced, only inside the reboot window
    SCHEDULED = "scheduled"  # user-chosen time reached
    USER_REQUESTED = "user_requested"  # "Reboot now" clicked


@dataclass(frozen=True)
class Decision:
    """Engine output, consumed immediately by the orchestrator"""
    type: DecisionType
    kind: NotificationKind | None = None
    minutes_remaining: int | None = None
    reason: RebootReason | None = None
    detail: str = ""

    @classmethod
    def none(cls, detail: str = "") -> "Decision":
        return cls(DecisionType.NONE, detail=detail)

    @classmethod
    def notify(
        cls,
        kind: NotificationKind,
        minutes_remaining: int,
        detail: str = "",
    ) -> "Decision":
        return cls(
            DecisionType.NOTIFY,
            kind=kind,
            minutes_remaining=minutes_remaining,
            detail=detail,
        )

    @classmethod
    def reboot(cls, reason: RebootReason, detail: str = "") -> "Decision":
        return cls(DecisionType.REBOOT, reason=reason, detail=detail)

    @property
    def is_reboot(self) -> bool:
        return self.type == DecisionType.REBOOT

    @property
    def is_notify(self) -> bool:
        return self.type == DecisionType.NOTIFY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and --status output"""
        return {
            "type": self.type.value,
            "kind": self.kind.value if self.kind else None,
            "minutes_remaining": self.minutes_remaining,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }
