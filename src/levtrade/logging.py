"""structlog setup for levtrade.

Every module logs through ``get_logger(__name__)`` with snake_case event
names and keyword context. Events from one orchestrator tick carry the
tick timestamp bound by ``bind_tick_context``.
"""

import logging
import os

import structlog

#: Library loggers capped at WARNING.
_NOISY_LOGGERS = ("ccxt", "aiosqlite", "uvicorn.access")

_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def _renderer(log_format: str) -> structlog.types.Processor:
    factory = _RENDERERS.get(log_format.lower(), structlog.dev.ConsoleRenderer)
    return factory()


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Route structlog and stdlib logging through one rendered handler.

    Args:
        log_level: Root level name (unknown names fall back to INFO).
        log_format: "json" or "console"; defaults to the LOG_FORMAT
            environment variable, then "console".
    """
    chosen = log_format or os.environ.get("LOG_FORMAT", "console")

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(chosen),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    level = log_level.upper()
    root.setLevel(level if level in _LEVELS else "INFO")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_tick_context(**values: object) -> None:
    """Replace the task's bound log context (e.g. the tick timestamp)."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
