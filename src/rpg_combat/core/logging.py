"""Structured logging for the RPG combat engine.

The engine logs through structlog. ``configure_logging`` routes those
events into the standard library root logger, so a host bot that already
configured its own handlers receives combat events alongside its own.

Every event carries ``engine="rpg_combat"`` and the short name of the
emitting component (``service``, ``rewards``, ...). While an action is
processed the session key, actor and action are bound with
``session_context``.

Example:
    >>> from rpg_combat.core.logging import get_logger, session_context
    >>> logger = get_logger(__name__)
    >>> with session_context(session="1234", actor="1234"):
    ...     logger.info("Action resolved", damage=7)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from collections.abc import Iterator

    from structlog.types import EventDict, WrappedLogger

    from rpg_combat.core.config import Settings


ENGINE_NAME = "rpg_combat"
LOG_FORMAT = "%(message)s"


def add_engine_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag the event with the engine and emitting component."""
    event_dict.setdefault("engine", ENGINE_NAME)
    name = event_dict.get("logger")
    if isinstance(name, str) and name.startswith(f"{ENGINE_NAME}."):
        event_dict.setdefault("component", name.rsplit(".", 1)[-1])
    return event_dict


def configure_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure structlog and attach a handler to the root logger.

    Explicit arguments win over ``settings``; without either the cached
    application settings are used.

    Args:
        settings: Settings providing ``log_level`` and ``json_logs``.
        level: Logging level name.
        json_format: Render JSON lines instead of console output.
        log_file: Also write rendered events to this file.
    """
    if settings is None and (level is None or json_format is None):
        from rpg_combat.core.config import get_settings

        settings = get_settings()
    if level is None:
        level = settings.log_level
    if json_format is None:
        json_format = settings.json_logs
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_engine_context,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Processor
    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_rpg_combat", False):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler._rpg_combat = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


@contextmanager
def session_context(**kwargs: Any) -> Iterator[None]:
    """Bind log context for the duration of a ``with`` block.

    The previous bindings are restored on exit, so context the host bot
    bound for its own request survives a combat action.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


__all__ = [
    "add_engine_context",
    "configure_logging",
    "get_logger",
    "session_context",
]
