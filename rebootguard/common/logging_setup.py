"""
Structured Logging Setup

Consistent logging configuration across all services.
Uses JSON format for structured logs in production.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in (
                "name", "msg", "args", "levelname", "levelno", "pathname",
                "filename", "module", "exc_info", "exc_text", "stack_info",
                "lineno", "funcName", "created", "msecs", "relativeCreated",
                "thread", "threadName", "processName", "process", "service",
                "message", "taskName",
            ):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a service.

    Args:
        service_name: Name of the service (e.g., "orchestrator", "system.reboot")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"rebootguard.{service_name}")
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    # Logs go to stderr so --status output on stdout stays parseable
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Args:
        service_name: Name of the service

    Returns:
        Logger adapter with service name in all logs
    """
    log_level = os.environ.get("REBOOTGUARD_LOG_LEVEL", "INFO")
    json_format = os.environ.get("REBOOTGUARD_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def configure_all(log_level: str, json_format: bool) -> None:
    """
    Reconfigure every rebootguard logger created so far.

    Module-level loggers are built at import time from the environment,
    so CLI flags have to be applied after the fact.
    """
    os.environ["REBOOTGUARD_LOG_LEVEL"] = log_level
    os.environ["REBOOTGUARD_LOG_FORMAT"] = "json" if json_format else "text"

    for name in list(logging.root.manager.loggerDict):
        if name.startswith("rebootguard."):
            setup_logging(name[len("rebootguard."):], log_level, json_format)


# Convenience loggers for common operations
def log_decision(
    logger: logging.Logger,
    decision_type: str,
    kind: str | None,
    minutes_remaining: int | None,
    detail: str,
) -> None:
    """Log the engine's decision for this invocation"""
    logger.info(
        f"Decision: {decision_type}"
        + (f" {kind} ({minutes_remaining}m)" if kind else "")
        + f" - {detail}",
        extra={
            "decision": decision_type,
            "kind": kind,
            "minutes_remaining": minutes_remaining,
        },
    )


def log_notification(
    logger: logging.Logger,
    kind: str,
    minutes_remaining: int,
    delivered: bool,
    user_action: str | None = None,
) -> None:
    """Log a notification attempt and the user's response"""
    if delivered:
        logger.info(
            f"Notification {kind} delivered ({minutes_remaining}m remaining)"
            + (f", user chose {user_action}" if user_action else ""),
            extra={
                "kind": kind,
                "minutes_remaining": minutes_remaining,
                "user_action": user_action,
            },
        )
    else:
        logger.warning(
            f"Notification {kind} was not delivered",
            extra={"kind": kind, "minutes_remaining": minutes_remaining},
        )


def log_state_change(
    logger: logging.Logger,
    change: str,
    state: dict[str, Any],
) -> None:
    """Log a persisted state mutation"""
    logger.info(
        f"State {change}",
        extra={"change": change, "state": state},
    )
