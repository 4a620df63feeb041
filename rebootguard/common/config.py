"""
Configuration Dataclasses

Type-safe configuration structures for the enforcer.
Loaded from a YAML file, then overridden by REBOOTGUARD_* environment
variables, then by command-line flags.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

DEFAULT_CONFIG_PATHS = [
    "/etc/rebootguard/config.yaml",
    "/opt/rebootguard/config.yaml",
]


class NotifierBackend(str, Enum):
    """Supported notification backends"""
    DESKTOP = "desktop"
    CONSOLE = "console"


@dataclass
class RebootWindow:
    """Clock-hour range in which a forced reboot may execute"""
    start_hour: int = 22
    end_hour: int = 5  # exclusive, wraps past midnight when < start_hour


@dataclass
class ExemptionSettings:
    """Host exemption lookup"""
    group_name: str = "RebootExemption"
    skip_check: bool = False
    directory_url: str = ""  # empty = no directory lookup
    directory_token: str = ""
    exempt_hosts: list[str] = field(default_factory=list)
    timeout_seconds: float = 10.0


@dataclass
class NotifierSettings:
    """Notification rendering"""
    backend: NotifierBackend = NotifierBackend.DESKTOP
    app_name: str = "Reboot Reminder"
    response_timeout_seconds: int = 120  # how long to wait for a click
    picker_timeout_seconds: int = 120


@dataclass
class LoggingSettings:
    """Log output configuration"""
    level: str = "INFO"
    format: str = "json"  # json, text


@dataclass
class EnforcerConfig:
    """Complete enforcer configuration"""
    uptime_threshold_days: int = 7
    reboot_window: RebootWindow = field(default_factory=RebootWindow)
    deadline_hour: int | None = None  # None = reboot window start

    # User schedules
    schedule_grace_minutes: int = 5
    schedule_prompt_attempts: int = 2

    # Reboot execution
    reboot_grace_seconds: int = 60
    reboot_command: list[str] = field(default_factory=lambda: ["systemctl", "reboot"])
    reboot_timeout_seconds: int = 30

    # Storage
    state_file: str = "/var/lib/rebootguard/state.json"

    # Long-lived mode
    poll_interval_seconds: int = 300

    exemption: ExemptionSettings = field(default_factory=ExemptionSettings)
    notifier: NotifierSettings = field(default_factory=NotifierSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def effective_deadline_hour(self) -> int:
        """Enforcement hour used to compute today's deadline"""
        if self.deadline_hour is None:
            return self.reboot_window.start_hour
        return self.deadline_hour

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: On the first invalid value found
        """
        for name, hour in (
            ("reboot_window.start_hour", self.reboot_window.start_hour),
            ("reboot_window.end_hour", self.reboot_window.end_hour),
            ("deadline_hour", self.effective_deadline_hour),
        ):
            if not isinstance(hour, int) or isinstance(hour, bool) or not 0 <= hour <= 23:
                raise ConfigError(f"{name} must be an hour 0-23, got {hour!r}")

        if self.uptime_threshold_days < 0:
            raise ConfigError(
                f"uptime_threshold_days must be >= 0, got {self.uptime_threshold_days}"
            )
        if self.schedule_grace_minutes < 0:
            raise ConfigError("schedule_grace_minutes must be >= 0")
        if self.schedule_prompt_attempts < 1:
            raise ConfigError("schedule_prompt_attempts must be >= 1")
        if self.reboot_grace_seconds < 0:
            raise ConfigError("reboot_grace_seconds must be >= 0")
        if self.poll_interval_seconds <= 0:
            raise ConfigError("poll_interval_seconds must be > 0")
        if not self.reboot_command:
            raise ConfigError("reboot_command must not be empty")
        if self.logging.format not in ("json", "text"):
            raise ConfigError(f"logging.format must be json or text, got {self.logging.format!r}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _as_command(value: Any) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list):
        return [str(part) for part in value]
    raise ConfigError(f"reboot_command must be a list or string, got {value!r}")


def find_config_path() -> str | None:
    """Find an existing configuration file"""
    for path in DEFAULT_CONFIG_PATHS:
        if Path(path).exists():
            return path
    return None


def load_config_file(path: str | Path) -> dict:
    """
    Load a YAML configuration document.

    Raises:
        ConfigError: If the file is missing or not valid YAML
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at top level")
    return data


# Helper function to load config from dict
def load_config(data: dict) -> EnforcerConfig:
    """Load EnforcerConfig from dictionary (e.g., from YAML file)"""
    window_data = data.get("reboot_window", {}) or {}
    reboot_window = RebootWindow(
        start_hour=_as_int(
            window_data.get("start_hour", data.get("reboot_window_start_hour", 22)),
            "reboot_window.start_hour",
        ),
        end_hour=_as_int(
            window_data.get("end_hour", data.get("reboot_window_end_hour", 5)),
            "reboot_window.end_hour",
        ),
    )

    exemption_data = data.get("exemption", {}) or {}
    exemption = ExemptionSettings(
        group_name=exemption_data.get(
            "group_name", data.get("exemption_group_name", "RebootExemption")
        ),
        skip_check=_as_bool(
            exemption_data.get("skip_check", data.get("skip_exemption_check", False))
        ),
        directory_url=exemption_data.get("directory_url", "") or "",
        directory_token=exemption_data.get("directory_token", "") or "",
        exempt_hosts=[str(h) for h in exemption_data.get("exempt_hosts", []) or []],
        timeout_seconds=float(exemption_data.get("timeout_seconds", 10.0)),
    )

    notifier_data = data.get("notifier", {}) or {}
    if isinstance(notifier_data, str):
        notifier_data = {"backend": notifier_data}
    try:
        backend = NotifierBackend(notifier_data.get("backend", "desktop"))
    except ValueError:
        raise ConfigError(f"Unknown notifier backend: {notifier_data.get('backend')!r}")
    notifier = NotifierSettings(
        backend=backend,
        app_name=notifier_data.get("app_name", "Reboot Reminder"),
        response_timeout_seconds=_as_int(
            notifier_data.get("response_timeout_seconds", 120),
            "notifier.response_timeout_seconds",
        ),
        picker_timeout_seconds=_as_int(
            notifier_data.get("picker_timeout_seconds", 120),
            "notifier.picker_timeout_seconds",
        ),
    )

    logging_data = data.get("logging", {}) or {}
    logging_settings = LoggingSettings(
        level=str(logging_data.get("level", "INFO")).upper(),
        format=str(logging_data.get("format", "json")).lower(),
    )

    deadline_hour = data.get("deadline_hour")

    return EnforcerConfig(
        uptime_threshold_days=_as_int(
            data.get("uptime_threshold_days", 7), "uptime_threshold_days"
        ),
        reboot_window=reboot_window,
        deadline_hour=(
            _as_int(deadline_hour, "deadline_hour") if deadline_hour is not None else None
        ),
        schedule_grace_minutes=_as_int(
            data.get("schedule_grace_minutes", 5), "schedule_grace_minutes"
        ),
        schedule_prompt_attempts=_as_int(
            data.get("schedule_prompt_attempts", 2), "schedule_prompt_attempts"
        ),
        reboot_grace_seconds=_as_int(
            data.get("reboot_grace_seconds", 60), "reboot_grace_seconds"
        ),
        reboot_command=_as_command(data.get("reboot_command", ["systemctl", "reboot"])),
        reboot_timeout_seconds=_as_int(
            data.get("reboot_timeout_seconds", 30), "reboot_timeout_seconds"
        ),
        state_file=str(data.get("state_file", "/var/lib/rebootguard/state.json")),
        poll_interval_seconds=_as_int(
            data.get("poll_interval_seconds", 300), "poll_interval_seconds"
        ),
        exemption=exemption,
        notifier=notifier,
        logging=logging_settings,
    )


def apply_env_overrides(config: EnforcerConfig, environ: dict | None = None) -> EnforcerConfig:
    """
    Apply REBOOTGUARD_* environment variables on top of file config.

    Returns:
        The same config object, updated in place
    """
    env = os.environ if environ is None else environ

    if "REBOOTGUARD_UPTIME_THRESHOLD_DAYS" in env:
        config.uptime_threshold_days = _as_int(
            env["REBOOTGUARD_UPTIME_THRESHOLD_DAYS"], "REBOOTGUARD_UPTIME_THRESHOLD_DAYS"
        )
    if "REBOOTGUARD_WINDOW_START_HOUR" in env:
        config.reboot_window.start_hour = _as_int(
            env["REBOOTGUARD_WINDOW_START_HOUR"], "REBOOTGUARD_WINDOW_START_HOUR"
        )
    if "REBOOTGUARD_WINDOW_END_HOUR" in env:
        config.reboot_window.end_hour = _as_int(
            env["REBOOTGUARD_WINDOW_END_HOUR"], "REBOOTGUARD_WINDOW_END_HOUR"
        )
    if "REBOOTGUARD_EXEMPTION_GROUP" in env:
        config.exemption.group_name = env["REBOOTGUARD_EXEMPTION_GROUP"]
    if "REBOOTGUARD_SKIP_EXEMPTION_CHECK" in env:
        config.exemption.skip_check = _as_bool(env["REBOOTGUARD_SKIP_EXEMPTION_CHECK"])
    if "REBOOTGUARD_DIRECTORY_URL" in env:
        config.exemption.directory_url = env["REBOOTGUARD_DIRECTORY_URL"]
    if "REBOOTGUARD_DIRECTORY_TOKEN" in env:
        config.exemption.directory_token = env["REBOOTGUARD_DIRECTORY_TOKEN"]
    if "REBOOTGUARD_STATE_FILE" in env:
        config.state_file = env["REBOOTGUARD_STATE_FILE"]
    if "REBOOTGUARD_NOTIFIER" in env:
        try:
            config.notifier.backend = NotifierBackend(env["REBOOTGUARD_NOTIFIER"])
        except ValueError:
            raise ConfigError(f"Unknown notifier backend: {env['REBOOTGUARD_NOTIFIER']!r}")
    if "REBOOTGUARD_LOG_LEVEL" in env:
        config.logging.level = env["REBOOTGUARD_LOG_LEVEL"].upper()
    if "REBOOTGUARD_LOG_FORMAT" in env:
        config.logging.format = env["REBOOTGUARD_LOG_FORMAT"].lower()

    return config
