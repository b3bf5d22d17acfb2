"""structlog setup for cache events.

Cache and lock events (``cache_miss``, ``lock_busy``, ``rebuild_failed``
and friends) are emitted through structlog by the client modules. The CLI
calls ``configure_logging`` once so those events, and anything redis-py
logs through the standard library, share one formatter on stderr while
command output goes to stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

if TYPE_CHECKING:
    from cacheaside_core.config.settings import Settings

# Third-party loggers capped at WARNING; redis-py logs every reconnect
_QUIET_LOGGERS = ("redis", "asyncio")


def configure_logging(settings: Settings, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one handler.

    ``log_format="json"`` emits one object per line with tracebacks as
    structured dicts, so a failed background rebuild stays machine-readable.
    """
    pre_chain: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(settings.log_format),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    level = _resolve_level(settings.log_level)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def _render_chain(log_format: str) -> list[structlog.types.Processor]:
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def bind_command_context(command: str, backend: str) -> None:
    """Tag every later event with the CLI command and store backend."""
    bind_contextvars(command=command, backend=backend)


def clear_command_context() -> None:
    clear_contextvars()


def _resolve_level(level_name: str) -> int:
    """Level number for a name such as ``"debug"``; unknown names mean INFO."""
    return logging.getLevelNamesMapping().get(level_name.upper(), logging.INFO)
