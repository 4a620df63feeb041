"""
Enforcement Orchestrator

Runs one evaluation per invocation:

1. Exemption check     (errors -> not exempt)
2. Uptime check        (errors -> zero uptime)
3. Deadline            (today at the enforcement hour)
4. Load + correct state (expired / invalid schedule cleared and persisted)
5. Decide              (pure engine)
6. Execute             (reboot, notify + capture user response, or nothing)

Each step can short-circuit the next, so exempt or freshly booted hosts
never read or write state. All collaborator errors stop here; only a
failed reboot command is reported as a failure exit status.
"""

from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any, Callable

from rebootguard.common.config import EnforcerConfig
from rebootguard.common.exceptions import (
    InvalidScheduleError,
    NotificationError,
    RebootExecutionError,
    StateCorruptionError,
    StateStoreError,
)
from rebootguard.common.logging_setup import (
    get_service_logger,
    log_decision,
    log_notification,
    log_state_change,
)
from rebootguard.common.state import JsonStateStore, PersistedState, StateStore
from rebootguard.common.timestamp import (
    compute_deadline,
    ensure_aware,
    in_window,
    local_now,
    minutes_until,
    to_iso,
    uptime_days,
)
from rebootguard.services.decision import Decision, RebootReason, decide
from rebootguard.services.exemption import ExemptionOracle, create_oracle, host_identity
from rebootguard.services.notify import (
    ConsoleNotifier,
    Notifier,
    UserAction,
    UserActionType,
    create_notifier,
)
from rebootguard.services.system import (
    DryRunRebooter,
    FixedUptimeSource,
    PsutilUptimeSource,
    Rebooter,
    SystemRebooter,
    UptimeSource,
)

logger = get_service_logger("orchestrator")


class ExitStatus(IntEnum):
    """Process exit codes for scheduler integration"""
    SUCCESS = 0
    FAILURE = 1
    REBOOT_INITIATED = 10


def validate_schedule(requested: datetime, now: datetime, deadline: datetime) -> datetime:
    """
    Check a user-picked reboot time lies in (now, deadline].

    Returns:
        The requested time, timezone-aware

    Raises:
        InvalidScheduleError: If it does not
    """
    requested = ensure_aware(requested)
    if not (ensure_aware(now) < requested <= ensure_aware(deadline)):
        raise InvalidScheduleError(requested, now, deadline)
    return requested


class Orchestrator:
    """
    Wires the collaborators together for a single evaluation.

    Holds no state between runs; everything durable lives in the store.
    """

    def __init__(
        self,
        config: EnforcerConfig,
        store: StateStore,
        uptime_source: UptimeSource,
        notifier: Notifier,
        rebooter: Rebooter,
        oracle: ExemptionOracle,
        clock: Callable[[], datetime] = local_now,
        host: str | None = None,
        dry_run: bool = False,
    ):
        self.config = config
        self.store = store
        self.uptime_source = uptime_source
        self.notifier = notifier
        self.rebooter = rebooter
        self.oracle = oracle
        self._clock = clock
        self.host = host or host_identity()
        self.dry_run = dry_run

        # Diagnostics
        self.last_decision: Decision | None = None

    @classmethod
    def from_config(
        cls,
        config: EnforcerConfig,
        dry_run: bool = False,
        uptime_days_override: float | None = None,
    ) -> "Orchestrator":
        """Build an orchestrator with the real collaborators"""
        if uptime_days_override is not None:
            uptime_source: UptimeSource = FixedUptimeSource.from_days(uptime_days_override)
        else:
            uptime_source = PsutilUptimeSource()

        if dry_run:
            notifier: Notifier = ConsoleNotifier()
            rebooter: Rebooter = DryRunRebooter()
        else:
            notifier = create_notifier(config.notifier)
            rebooter = SystemRebooter(
                config.reboot_command,
                notifier=notifier,
                timeout_seconds=config.reboot_timeout_seconds,
            )

        return cls(
            config=config,
            store=JsonStateStore(config.state_file),
            uptime_source=uptime_source,
            notifier=notifier,
            rebooter=rebooter,
            oracle=create_oracle(config.exemption),
            dry_run=dry_run,
        )

    # ------------------------------------------------------------------
    # Collaborator calls with safe defaults
    # ------------------------------------------------------------------

    def _is_exempt(self) -> bool:
        group = self.config.exemption.group_name
        try:
            return self.oracle.is_exempt(self.host, group)
        except Exception as e:
            logger.error(
                f"Exemption lookup failed, enforcing anyway: {e}",
                extra={"host": self.host, "group": group},
            )
            return False

    def _read_uptime(self) -> timedelta:
        try:
            return self.uptime_source.get_uptime()
        except Exception as e:
            logger.error(f"Uptime unavailable, treating host as freshly booted: {e}")
            return timedelta(0)

    def _persist(self, state: PersistedState, change: str) -> bool:
        """Write the whole record; failures are logged, never raised"""
        if self.dry_run:
            logger.info(f"DRY RUN: would persist state ({change})")
            return True
        try:
            self.store.save(state)
        except StateStoreError as e:
            logger.error(f"Failed to persist state ({change}): {e}")
            return False
        log_state_change(logger, change, state.to_dict())
        return True

    def _load_state(self) -> PersistedState | None:
        """None means the store is unavailable and this run should be skipped"""
        try:
            return self.store.load()
        except StateCorruptionError as e:
            logger.warning(f"Ignoring corrupt state, starting fresh: {e}")
            return PersistedState()
        except StateStoreError as e:
            logger.error(f"State unavailable, retrying next run: {e}")
            return None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _correct_schedule(
        self,
        state: PersistedState,
        now: datetime,
        deadline: datetime,
    ) -> tuple[PersistedState, str | None]:
        """
        Return state with an invalid schedule removed.

        A schedule later than the deadline is invalidated. One more than
        schedule_grace_minutes in the past was missed and has expired.
        Within the grace period it stays, so the engine fires it.
        """
        scheduled = state.scheduled_reboot_time
        if scheduled is None:
            return state, None

        if scheduled > deadline:
            return state.with_schedule(None), "schedule invalidated (after deadline)"
        if minutes_until(scheduled, now) < -self.config.schedule_grace_minutes:
            return state.with_schedule(None), "schedule expired"
        return state, None

    def _execute_reboot(
        self,
        decision: Decision,
        state: PersistedState,
        uptime: timedelta,
    ) -> ExitStatus:
        if decision.reason == RebootReason.DEADLINE:
            # Invocation may have been delayed since the decision
            window = self.config.reboot_window
            if not in_window(self._clock(), window.start_hour, window.end_hour):
                logger.warning(
                    "Deadline reboot skipped: outside reboot window at execution time",
                    extra={"window_start": window.start_hour, "window_end": window.end_hour},
                )
                return ExitStatus.SUCCESS
            grace = self.config.reboot_grace_seconds
        elif decision.reason == RebootReason.USER_REQUESTED:
            grace = 0
        else:
            # SCHEDULED: user-chosen and already bounded by the deadline,
            # not by the reboot window
            grace = self.config.reboot_grace_seconds

        # Written first: the process does not survive a successful reboot
        self._persist(state.for_reboot(), f"cleared for {decision.reason.value} reboot")

        try:
            self.rebooter.reboot(grace, uptime_days(uptime))
        except RebootExecutionError as e:
            logger.critical(
                f"Reboot enforcement failed: {e}",
                extra={"reason": decision.reason.value},
            )
            return ExitStatus.FAILURE

        return ExitStatus.REBOOT_INITIATED

    def _handle_schedule_request(
        self,
        state: PersistedState,
        action: UserAction,
        deadline: datetime,
    ) -> PersistedState:
        requested = action.requested_time

        for attempt in range(1, self.config.schedule_prompt_attempts + 1):
            now = self._clock()

            if requested is None:
                try:
                    requested = self.notifier.pick_schedule_time(now, deadline)
                except InvalidScheduleError as e:
                    logger.warning(f"Unreadable schedule time (attempt {attempt}): {e}")
                    self.notifier.show_invalid_schedule(None, now, deadline)
                    continue
                except NotificationError as e:
                    logger.error(f"Schedule picker failed: {e}")
                    return state

                if requested is None:
                    logger.info("User cancelled schedule picker")
                    return state

            try:
                scheduled = validate_schedule(requested, now, deadline)
            except InvalidScheduleError as e:
                logger.warning(
                    f"Rejected schedule (attempt {attempt}): {e}",
                    extra={"requested": to_iso(requested)},
                )
                self.notifier.show_invalid_schedule(requested, now, deadline)
                requested = None
                continue

            state = state.with_schedule(scheduled)
            self._persist(state, f"schedule set for {to_iso(scheduled)}")
            return state

        logger.warning("No valid schedule after all attempts; keeping default deadline")
        return state

    def _execute_notify(
        self,
        decision: Decision,
        state: PersistedState,
        now: datetime,
        deadline: datetime,
        uptime: timedelta,
    ) -> ExitStatus:
        try:
            result = self.notifier.show(
                decision.kind,
                uptime_days(uptime),
                deadline,
                decision.minutes_remaining,
            )
        except NotificationError as e:
            logger.error(f"Notification failed, skipping this one: {e}")
            return ExitStatus.SUCCESS

        action = result.user_action
        log_notification(
            logger,
            decision.kind.value,
            decision.minutes_remaining,
            result.delivered,
            action.type.value if action else None,
        )

        if not result.delivered:
            return ExitStatus.SUCCESS

        state = state.with_notification(now)
        self._persist(state, f"{decision.kind.value} shown")

        if action is None or action.type == UserActionType.DISMISS:
            return ExitStatus.SUCCESS

        if action.type == UserActionType.REBOOT_NOW:
            return self._execute_reboot(
                Decision.reboot(RebootReason.USER_REQUESTED, "user clicked restart now"),
                state,
                uptime,
            )

        self._handle_schedule_request(state, action, deadline)
        return ExitStatus.SUCCESS

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> ExitStatus:
        """Run one evaluation and return the process exit status"""
        now = self._clock()
        self.last_decision = None

        if self.config.exemption.skip_check:
            logger.debug("Exemption check skipped by configuration")
        elif self._is_exempt():
            logger.info(
                f"{self.host} is exempt, nothing to do",
                extra={"host": self.host, "group": self.config.exemption.group_name},
            )
            return ExitStatus.SUCCESS

        uptime = self._read_uptime()
        days = uptime_days(uptime)
        if days < self.config.uptime_threshold_days:
            logger.debug(
                f"Uptime {days:.2f}d below {self.config.uptime_threshold_days}d threshold",
                extra={"uptime_days": round(days, 3)},
            )
            return ExitStatus.SUCCESS

        deadline = compute_deadline(now, self.config.effective_deadline_hour)

        state = self._load_state()
        if state is None:
            return ExitStatus.SUCCESS

        state, correction = self._correct_schedule(state, now, deadline)
        if correction:
            self._persist(state, correction)

        decision = decide(
            now,
            uptime,
            self.config.uptime_threshold_days,
            deadline,
            self.config.reboot_window,
            state,
        )
        self.last_decision = decision
        log_decision(
            logger,
            decision.type.value,
            decision.kind.value if decision.kind else None,
            decision.minutes_remaining,
            decision.detail,
        )

        if decision.is_reboot:
            return self._execute_reboot(decision, state, uptime)
        if decision.is_notify:
            return self._execute_notify(decision, state, now, deadline, uptime)
        return ExitStatus.SUCCESS

    def evaluate(self) -> dict[str, Any]:
        """
        Report what run() would decide, without notifying, rebooting or
        writing state.
        """
        now = self._clock()
        window = self.config.reboot_window

        exempt = False if self.config.exemption.skip_check else self._is_exempt()
        uptime = self._read_uptime()
        deadline = compute_deadline(now, self.config.effective_deadline_hour)

        state_error = None
        try:
            state = self.store.load()
        except (StateCorruptionError, StateStoreError) as e:
            state_error = str(e)
            state = PersistedState()

        state, correction = self._correct_schedule(state, now, deadline)

        if exempt:
            decision = Decision.none("host is exempt")
        else:
            decision = decide(
                now,
                uptime,
                self.config.uptime_threshold_days,
                deadline,
                window,
                state,
            )

        return {
            "host": self.host,
            "now": to_iso(now),
            "exempt": exempt,
            "uptime_days": round(uptime_days(uptime), 3),
            "uptime_threshold_days": self.config.uptime_threshold_days,
            "deadline": to_iso(deadline),
            "reboot_window": f"{window.start_hour:02d}:00-{window.end_hour:02d}:00",
            "in_window": in_window(now, window.start_hour, window.end_hour),
            "state": state.to_dict(),
            "state_error": state_error,
            "pending_correction": correction,
            "decision": decision.to_dict(),
        }
