"""Loguru configuration for FactGate components.

FactGate is embedded in a host service, so every sink writes to stderr and
leaves stdout to the host. Records carry ``service="factgate"`` and a
``component`` (plus ``adapter`` for adapter-scoped loggers), so FactGate
lines can be filtered out of a shared log stream.
"""

import sys
from typing import Any, Optional

from loguru import logger

from factgate.config.settings import settings

SERVICE_NAME = "factgate"


def _console_format(record: dict) -> str:
    adapter = "[{extra[adapter]}]" if record["extra"].get("adapter") else ""
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        f"<cyan>{{extra[component]}}{adapter}</cyan> | <level>{{message}}</level>\n{{exception}}"
    )


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure loguru sinks for FactGate.

    Behavior:
    - Console format on a TTY: colorized lines tagged component[adapter]
    - Otherwise: JSON-serialized records on stderr
    - Level and format default to FACTGATE_LOG_LEVEL / FACTGATE_LOG_FORMAT

    Args:
        level: Override for settings.log_level
        log_format: Override for settings.log_format ("json" or "console")
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    logger.remove()
    logger.configure(extra={"service": SERVICE_NAME, "component": SERVICE_NAME})

    if sys.stderr.isatty() and log_format == "console":
        logger.add(sys.stderr, format=_console_format, level=level, colorize=True)
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            serialize=True,
            diagnose=False,  # Claim text must not leak through variable dumps
        )


def get_logger(component: str, **context: Any):
    """
    Get a logger bound to a FactGate component.

    Args:
        component: Component name, e.g. "ResultCache"
        **context: Extra fields bound to every record (e.g. adapter="kb")

    Returns:
        Logger instance with component context

    Example:
        >>> log = get_logger("PatternValidator", adapter="pattern-validator")
        >>> log.debug("Pattern library compiled")
    """
    return logger.bind(component=component, **context)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging", "SERVICE_NAME"]
