"""Logging setup for the approval service.

Modules keep plain ``logging.getLogger(__name__)`` loggers; structlog only
renders their records, as JSON or for the console.
"""

import logging
import logging.config

import structlog

from approvalflow.core.config import Settings

# Applied to every stdlib record before rendering; ExtraAdder keeps ``extra=``.
SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso"),
]


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """Create the formatter for a log format.

    @param log_format - "json" or "console"
    @returns Formatter for stdlib handlers
    """
    if log_format == "json":
        renderers: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    @param settings - Application settings (log_level, log_format)
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": build_formatter,
                    "log_format": settings.log_format,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "structured",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": settings.log_level.upper(),
            },
        }
    )
