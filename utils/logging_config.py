"""
Ledger Logging Configuration

Provides structured logging for the exchange ledger with:
- Structured output for parsing
- Performance tracking around snapshot computation and store calls
- Environment-based levels (LEDGER_LOG_LEVEL, falling back to LOG_LEVEL)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional
import os


class StructuredFormatter(logging.Formatter):
    """
    Structured log formatter.

    Format: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE {context}
    """

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'ledger_context'):
            record.ledger_context = ''

        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        location = f"{record.module}:{record.funcName}:{record.lineno}"

        base_msg = f"[{timestamp}] [{record.levelname:8s}] [{location}] {record.getMessage()}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        # e.g. logger.info("...", extra={"ledger_context": "trader=SW"})
        if record.ledger_context:
            base_msg += f" {{{record.ledger_context}}}"

        return base_msg


class PerformanceLogger:
    """Context manager for performance logging."""

    def __init__(self, logger: logging.Logger, operation: str, threshold_ms: float = 1000):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (datetime.now() - self.start_time).total_seconds() * 1000

            if exc_type is not None:
                self.logger.debug(f"{self.operation} failed after {self.duration_ms:.1f}ms")
            elif self.duration_ms > self.threshold_ms:
                self.logger.warning(f"SLOW: {self.operation} took {self.duration_ms:.1f}ms")
            else:
                self.logger.debug(f"{self.operation} took {self.duration_ms:.1f}ms")


def _resolve_level(level: Optional[str]) -> int:
    if level is None:
        level = os.getenv('LEDGER_LOG_LEVEL') or os.getenv('LOG_LEVEL', 'INFO')
    return getattr(logging, level.upper(), logging.INFO)


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with structured formatting and optional file output.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO
        log_file: Optional file path for logs (defaults to LEDGER_LOG_FILE if set)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    log_level = _resolve_level(level)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    log_file = log_file or os.getenv('LEDGER_LOG_FILE')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_perf_logger(logger: logging.Logger, operation: str, threshold_ms: float = 1000):
    """
    Get a performance logger context manager.

    Usage:
        with get_perf_logger(logger, "compute_snapshot", threshold_ms=200):
            snapshot = engine.compute()

    Args:
        logger: Logger instance
        operation: Operation name for logging
        threshold_ms: Milliseconds threshold for SLOW warning

    Returns:
        PerformanceLogger context manager
    """
    return PerformanceLogger(logger, operation, threshold_ms)


def log_snapshot_summary(logger: logging.Logger, snapshot, name: str = "Snapshot"):
    """
    Log a one-line summary of an analytics snapshot.

    Args:
        logger: Logger instance
        snapshot: AnalyticsSnapshot (or None)
        name: Label for the snapshot in logs
    """
    if snapshot is None:
        logger.warning(f"{name} is None")
        return

    logger.info(
        f"{name}: total P/L {snapshot.total_realized_pl}, "
        f"this month {snapshot.current_month_realized_pl}, "
        f"{len(snapshot.closed_lot_ids)} closed lots, "
        f"{len(snapshot.holdings)} held currencies"
    )

    for issue in snapshot.warnings:
        logger.warning(f"{name} warning [{issue.category}]: {issue.message}")
