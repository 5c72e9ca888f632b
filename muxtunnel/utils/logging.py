"""Unified logging for muxtunnel.

This module provides:
1. Centralized logging configuration under the "muxtunnel" logger namespace
2. Debug mode via MUXTUNNEL_DEBUG env var or programmatic flag
3. Log levels via MUXTUNNEL_LOG_LEVEL env var
4. Rich console output on stderr, plus an optional rotating log file

Usage:
    from muxtunnel.utils.logging import get_logger, configure_logging

    # In CLI entry point:
    configure_logging(debug=debug)

    # In any module:
    logger = get_logger(__name__)
    logger.info("SSH master already running.")
    logger.error("Could not cancel forward", exc=exception)

Environment Variables:
    MUXTUNNEL_DEBUG=1         Enable debug mode (verbose output)
    MUXTUNNEL_LOG_LEVEL=DEBUG Set log level (DEBUG, INFO, WARNING, ERROR)
    MUXTUNNEL_LOG_FILE=/path  Also write logs to this file
    MUXTUNNEL_QUIET=1         Keep info/success lines off the console
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from muxtunnel.paths import HostPaths

# Global state
_configured = False
_debug_mode = False
_quiet_mode = False

# Shared Rich console instance. stderr keeps stdout free for callers' data.
console = Console(stderr=True)

# Custom log level for success messages
SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode or _env_flag("MUXTUNNEL_DEBUG")


def is_quiet_mode() -> bool:
    return _quiet_mode or _env_flag("MUXTUNNEL_QUIET")


def configure_logging(
    debug: bool = False,
    quiet: bool = False,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Configure the logging system.

    Called lazily by get_logger with defaults; the CLI calls it first with
    its own flags. Pass force=True to reconfigure.

    Args:
        debug: Enable debug mode (debug lines on the console)
        quiet: Suppress info and success lines on the console
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Write logs to this file in addition to the console
        force: Reconfigure even if already configured
    """
    global _configured, _debug_mode, _quiet_mode

    if _configured and not force:
        return

    _debug_mode = debug or _env_flag("MUXTUNNEL_DEBUG")
    _quiet_mode = quiet

    if log_level:
        level_name = log_level.upper()
    else:
        level_name = os.environ.get(
            "MUXTUNNEL_LOG_LEVEL", "DEBUG" if _debug_mode else "INFO"
        ).upper()

    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger("muxtunnel")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    # Console output goes through TunnelLogger, not the root logger
    root_logger.propagate = False

    log_file = log_file or HostPaths.log_file()
    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            root_logger.addHandler(file_handler)
        except OSError:
            # Can't write log file, continue without it
            pass

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    _configured = True

    root_logger.debug(f"Logging configured: level={level_name}, debug={_debug_mode}")


class TunnelLogger:
    """Logging with Rich console output.

    Every message goes to the stdlib logger; info/success/warning/error are
    also printed to the console unless console_output is False.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.console = console

    def debug(self, message: str, console_output: bool = False) -> None:
        """Log debug message. Shown on the console only in debug mode."""
        self.logger.debug(message)
        if console_output or is_debug_mode():
            self.console.print(f"[dim][DEBUG] {escape(message)}[/dim]", highlight=False)

    def info(self, message: str, console_output: bool = True) -> None:
        self.logger.info(message)
        if console_output and not is_quiet_mode():
            self.console.print(f"[blue]{escape(message)}[/blue]", highlight=False)

    def success(self, message: str, console_output: bool = True) -> None:
        """Log success message (green output)."""
        self.logger.log(SUCCESS_LEVEL, message)
        if console_output and not is_quiet_mode():
            self.console.print(f"[green]✓ {escape(message)}[/green]", highlight=False)

    def warning(self, message: str, console_output: bool = True) -> None:
        self.logger.warning(message)
        if console_output:
            self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]", highlight=False)

    def error(
        self,
        message: str,
        exc: Optional[Exception] = None,
        console_output: bool = True,
    ) -> None:
        """Log error message (red output).

        Args:
            message: Error message
            exc: Optional exception to include in log
            console_output: Output to console
        """
        if exc:
            self.logger.error(f"{message}: {exc}", exc_info=exc)
            error_msg = f"{message}: {exc}"
        else:
            self.logger.error(message)
            error_msg = message

        if console_output:
            self.console.print(f"[red]✗ {escape(error_msg)}[/red]", highlight=False)

    def print(self, message: str, style: Optional[str] = None) -> None:
        """Print to console without logging."""
        if style:
            self.console.print(f"[{style}]{message}[/{style}]")
        else:
            self.console.print(message)


def get_logger(name: str) -> TunnelLogger:
    """Get or create a logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.info("Starting SSH master...")
    """
    if not _configured:
        configure_logging()

    if not name.startswith("muxtunnel"):
        name = f"muxtunnel.{name}"

    return TunnelLogger(name)


def log_startup_info() -> None:
    """Log startup diagnostic information (call from main entry points)."""
    logger = get_logger("muxtunnel.startup")
    logger.debug(f"Python: {sys.version}")
    logger.debug(f"Platform: {sys.platform}")
    logger.debug(f"Debug mode: {is_debug_mode()}")
    for var in ["MUXTUNNEL_DEBUG", "MUXTUNNEL_LOG_LEVEL", "MUXTUNNEL_CONFIG"]:
        value = os.environ.get(var)
        if value:
            logger.debug(f"ENV {var}={value}")
