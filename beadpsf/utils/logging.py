from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

# Unified log line format for console and file sinks
_DEFAULT_LOGGER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> [<magenta>{extra[component]}</magenta>] {extra[file]} | "
    "- <level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging records (tifffile, matplotlib, ...) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - simple bridge
        try:
            level: Any = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = sys._getframe(6), 6
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_cli_logging(
    output_dir: Path | None,
    component: str,
    *,
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    file: str = "",
    rotation: str | int | None = "20 MB",
    retention: str | int | None = "30 days",
    intercept_stdlib: bool = True,
) -> Path | None:
    """Configure loguru sinks for CLI commands.

    Console output goes to stderr. When ``output_dir`` is given, a file sink is
    added at ``<output_dir>/logs/<component>.log``.
    """

    logger.remove()
    logger.configure(extra={"component": component, "file": file})
    logger.add(
        sys.stderr,
        level=console_level,
        format=_DEFAULT_LOGGER_FORMAT,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )

    if intercept_stdlib:
        logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
        logging.getLogger("matplotlib").setLevel(logging.WARNING)

    if output_dir is None:
        return None

    log_root = output_dir / "logs"
    log_root.mkdir(parents=True, exist_ok=True)
    log_file = log_root / f"{component}.log"

    logger.add(
        log_file,
        level=file_level,
        format=_DEFAULT_LOGGER_FORMAT,
        rotation=rotation,
        retention=retention,
        backtrace=False,
        diagnose=False,
    )
    return log_file


__all__ = ["configure_cli_logging", "InterceptHandler"]
