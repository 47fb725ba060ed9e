from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

ENV_LOG_DIR = "MIXED_BUILD_LOG_DIR"


def _default_log_dir() -> Path | None:
    value = os.environ.get(ENV_LOG_DIR)
    return Path(value) if value else None


def setup_logging(
    *,
    verbose: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup console logging and, optionally, persistent log files.

    Logging Tiers:
    - ERROR: Aborted runs, failed tools
    - SUCCESS/INFO: Pipeline steps, archives used, files replaced
    - DEBUG: Every external command and archive pattern

    Log Files (only when a log directory is configured):
    - mixed_build.log: DEBUG+ events (7 day retention)
    - structured.jsonl: Structured JSON logs for analysis (7 day retention)

    Args:
        verbose: Enable DEBUG level console output
        log_dir: Log directory (defaults to $MIXED_BUILD_LOG_DIR, if set)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    console_level = "DEBUG" if verbose else "INFO"

    # SINK 1: Console (stderr)
    logger.add(
        sys.stderr,
        level=console_level,
        backtrace=False,
        diagnose=False,
        colorize=None,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[source]: <32}</cyan> | "
            "{message}"
        ),
    )

    log_dir = log_dir or _default_log_dir()
    if log_dir is None:
        return logger
    log_dir.mkdir(parents=True, exist_ok=True)

    # SINK 2: Run log
    logger.add(
        log_dir / "mixed_build.log",
        level="DEBUG",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        backtrace=True,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <32} | "
            "{extra[job_id]: <24} | "
            "{message}"
        ),
    )

    # SINK 3: Structured JSON Log
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        serialize=True,
        format="{message}",
    )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking a run
        tags: Tags for filtering (e.g., ["vintf", "archive"])
        source: Source component, usually the module name

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking an operation with automatic timing.

    Logs operation start, completion, and failure with duration tracking.

    Args:
        operation: Operation name (e.g., "mixed-build")
        **details: Operation-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("mixed-build", out_dir="/tmp/out") as log:
            log.debug("Locating archives")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.info(f"{operation.capitalize()} started")

        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed in {duration:.2f}s",
                duration_seconds=round(duration, 2),
            )
        except BaseException as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed after {duration:.2f}s: {type(e).__name__}",
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise
