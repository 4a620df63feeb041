"""
Common Utilities

Shared modules used across all services:
- state.py - Persisted enforcement state and its JSON store
- config.py - Configuration dataclasses
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- timestamp.py - Clock, deadline and window helpers
"""

from .state import PersistedState, StateStore, JsonStateStore
from .config import (
    EnforcerConfig,
    RebootWindow,
    ExemptionSettings,
    NotifierSettings,
    LoggingSettings,
    NotifierBackend,
    load_config,
    load_config_file,
    apply_env_overrides,
)
from .exceptions import (
    RebootGuardError,
    ConfigError,
    CollaboratorError,
    ExemptionLookupError,
    UptimeError,
    NotificationError,
    StateStoreError,
    StateCorruptionError,
    InvalidScheduleError,
    RebootExecutionError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    log_decision,
    log_notification,
    log_state_change,
)

__all__ = [
    # State
    "PersistedState",
    "StateStore",
    "JsonStateStore",
    # Config
    "EnforcerConfig",
    "RebootWindow",
    "ExemptionSettings",
    "NotifierSettings",
    "LoggingSettings",
    "NotifierBackend",
    "load_config",
    "load_config_file",
    "apply_env_overrides",
    # Exceptions
    "RebootGuardError",
    "ConfigError",
    "CollaboratorError",
    "ExemptionLookupError",
    "UptimeError",
    "NotificationError",
    "StateStoreError",
    "StateCorruptionError",
    "InvalidScheduleError",
    "RebootExecutionError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "log_decision",
    "log_notification",
    "log_state_change",
]
