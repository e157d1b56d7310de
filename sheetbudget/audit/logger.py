"""
Audit Logger

DESIGN DECISION: Every public operation is logged as a structured event.
This provides:
1. Traceability of every mutation made to a user's workbook
2. Debugging capability when a batch is partially applied
3. A record of failures that were reported inline instead of raised

Failures reported inline to the caller are logged here at warning level,
unexpected ones at error level.
"""

import logging
import sys
import time
from typing import Any, Optional

import structlog


_configured = False


def configure_logging(level: str = "INFO", json_output: bool = True, force: bool = True) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins. With force=False the
    root logger keeps any handlers the host application already installed.
    """
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=force,
    )
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, configuring defaults on first use."""
    if not _configured:
        configure_logging(force=False)
    return structlog.get_logger(name)


class AuditLogger:
    """
    Records the outcome of each public operation.

    Usage:
        started = audit.start()
        ...
        audit.operation_succeeded("save_expenses", started, updated=2, inserted=1)
    """

    def __init__(self, user: Optional[str] = None):
        self._logger = get_logger("sheetbudget.audit")
        if user:
            self._logger = self._logger.bind(user=user)

    @staticmethod
    def start() -> float:
        return time.perf_counter()

    def operation_succeeded(self, operation: str, started: float, **details: Any) -> None:
        self._logger.info(
            "operation_succeeded",
            operation=operation,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            **details,
        )

    def operation_failed(
        self,
        operation: str,
        started: float,
        error_code: str,
        error_message: str,
    ) -> None:
        log = self._logger.error if error_code == "INTERNAL_ERROR" else self._logger.warning
        log(
            "operation_failed",
            operation=operation,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            error_code=error_code,
            error=error_message,
        )
