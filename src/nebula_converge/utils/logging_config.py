"""Logging configuration for nebula-converge.

Provides configurable logging with:
- Console output at the configured level
- Rotating file log capturing everything
- A separate performance log for remote call and poll timings

Environment Variables:
    NEBULA_CONVERGE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    NEBULA_CONVERGE_LOG_FILE: Path to log file (default: ~/.nebula-converge/nebula-converge.log)
    NEBULA_CONVERGE_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    NEBULA_CONVERGE_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from nebula_converge.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("image.create")
    def create(self, record):
        ...

    with timed_section("wait_for_state", identity=42, target="ready"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional, Union

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("nebula_converge.perf")
main_logger = logging.getLogger("nebula_converge")

Identity = Union[int, str, None]


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("NEBULA_CONVERGE_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".nebula-converge" / "nebula-converge.log"
    path_str = os.environ.get("NEBULA_CONVERGE_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects NEBULA_CONVERGE_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("NEBULA_CONVERGE_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("NEBULA_CONVERGE_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "nebula-converge-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Timings go to their own file only
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    main_logger.info(f"Performance logging to: {perf_log_file}")


def _perf_line(operation: str, identity: Identity, elapsed: float, outcome: str, extra: dict) -> str:
    msg = f"{operation:20s} | {str(identity) if identity is not None else 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    return msg


def timed(operation: str, identity: Identity = None):
    """Decorator to log execution time of a function.

    Args:
        operation: Name of the operation (e.g., "image.create", "vnet.delete")
        identity: Optional resource identity; when omitted it is taken from the
            first positional argument after ``self`` if that has ``identity``

    Usage:
        @timed("vm.create")
        def create(self, record):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            ident = identity
            if ident is None and len(args) > 1:
                ident = getattr(args[1], "identity", None)

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.info(_perf_line(operation, ident, elapsed, "OK", {}))
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_perf_line(operation, ident, elapsed, f"FAIL: {e}", {}))
                raise

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, identity: Identity = None, **extra):
    """Context manager for timing code sections.

    Args:
        operation: Name of the operation
        identity: Resource identity
        **extra: Additional context to log

    Usage:
        with timed_section("one.vn.hold", identity=7, ip="10.0.0.5"):
            session.call("vn.hold", 7, fragment)
    """
    start = time.perf_counter()
    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.info(_perf_line(operation, identity, elapsed, "OK", extra))
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_perf_line(operation, identity, elapsed, f"FAIL: {e}", extra))
        raise
