"""
Structured logging for the agent client.

Every module logs through ``logging.getLogger(__name__)``; ``setup_logging``
routes those records through structlog so each line carries a timestamp,
level, logger name and whatever session context is bound (agent URL and
account id, see ``bind_session_context``). Lines are JSON by default and
rendered for the console at DEBUG.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

# Loggers that only matter when debugging the wire
NOISY_LOGGERS = ("websockets.client", "websockets.protocol", "asyncio")


def bind_session_context(**fields) -> None:
    """Attach session fields to every log line emitted from this context."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in fields.items() if v is not None})


def clear_session_context() -> None:
    structlog.contextvars.clear_contextvars()


def setup_logging(log_level: Optional[str] = None, *, stream=None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: settings.log_level)
        stream: Handler output (default: stderr, keeping the chat client's stdout clean)
        json_logs: Force JSON or console rendering (default: console only at DEBUG)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives plain logging.getLogger records the same fields
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level == logging.DEBUG else logging.WARNING)
