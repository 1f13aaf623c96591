"""
Logging infrastructure for FairWatch.

Uses Loguru for console and rotating file output, plus a dedicated audit
sink that receives every compliance-relevant record.
"""

import sys
from typing import Any

from loguru import logger

from fairwatch.utils.config import get_settings


def setup_logging() -> None:
    """
    Configure application-wide logging.

    Sets up console, application file, error file and audit file sinks
    according to the logging settings.
    """
    settings = get_settings()
    log_settings = settings.logging

    logger.remove()

    # diagnose=False outside development keeps variable values out of tracebacks
    enable_diagnose = settings.debug and settings.environment == "development"

    if log_settings.console_output:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>",
            level=log_settings.level,
            colorize=True,
            backtrace=True,
            diagnose=enable_diagnose,
        )

    if not log_settings.file_output:
        return

    log_file = log_settings.file_path
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        format=log_settings.format,
        level=log_settings.level,
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        compression="zip",
        backtrace=True,
        diagnose=enable_diagnose,
        enqueue=True,
    )

    logger.add(
        log_file.parent / "errors.log",
        format=log_settings.format,
        level="ERROR",
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        backtrace=True,
        diagnose=enable_diagnose,
        enqueue=True,
    )

    # Audit trail mirror, kept for the compliance window
    logger.add(
        log_file.parent / "audit.log",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[audit_type]} | {message}",
        level="INFO",
        filter=lambda record: "audit_type" in record["extra"],
        rotation="1 week",
        retention="1 year",
        compression="zip",
        enqueue=True,
    )

    logger.info(f"Logging initialized - Level: {log_settings.level}")


def get_logger(name: str) -> Any:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger (typically __name__)

    Returns:
        A configured logger instance
    """
    return logger.bind(name=name)


def _sanitize_for_logging(data: Any) -> Any:
    """Redact credential-like keys before they reach a sink."""
    if isinstance(data, dict):
        sensitive_keys = {
            "password", "passwd", "secret", "token", "api_key",
            "credential", "private_key", "ssn",
        }
        return {
            k: "***REDACTED***" if any(s in str(k).lower() for s in sensitive_keys) else _sanitize_for_logging(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [_sanitize_for_logging(item) for item in data]
    return data


def audit_log(
    action: str,
    details: dict[str, Any],
    audit_type: str = "DETECTION",
) -> None:
    """
    Mirror an audit entry to the audit log sink.

    Args:
        action: The action being audited (e.g., "detection_run", "alert_resolved")
        details: Dictionary of relevant details
        audit_type: Category of the entry (DETECTION, ALERT, CONFIG, RETENTION)
    """
    sanitized_details = _sanitize_for_logging(details)
    logger.bind(audit_type=audit_type).info(f"{action} | {sanitized_details}")


log = logger


# Auto-setup on import; a read-only filesystem must not break imports
try:
    setup_logging()
except OSError:
    pass
