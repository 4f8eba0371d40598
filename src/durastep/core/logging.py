# src/durastep/core/logging.py
"""Structured logging for durastep.

Lifecycle events (step cached/executing/saved, cleanup registered/cleared/
executed, recovery, sweeps) are emitted through structlog. configure_logging()
routes them and any stdlib records (SQLAlchemy, asyncio) to one stdout handler
through ProcessorFormatter, so both share a renderer.

Run context:
    run_context() binds ``run_id`` (and extra fields such as ``step``) into
    structlog's contextvars for the duration of a block. merge_contextvars
    runs in the pre-chain of both paths, so a storage driver's stdlib record
    emitted inside the block carries the same run_id as the orchestrator's
    own events. asyncio tasks copy the context when created, so concurrent
    runs swept with asyncio.gather() never see each other's binding.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Silenced to at least WARNING whatever level durastep runs at.
_NOISY_LOGGERS: tuple[str, ...] = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "asyncio",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Strip the _record/_from_structlog keys ProcessorFormatter adds."""
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _pre_chain() -> list[Any]:
    """Processors shared by structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _drop_formatter_bookkeeping,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [_drop_formatter_bookkeeping, structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Install the stdout handler and structlog pipeline.

    Safe to call repeatedly; each call replaces the root handlers.

    Args:
        json_output: Emit one JSON object per line instead of console text
        level: Root level name (DEBUG, INFO, WARNING, ERROR)
    """
    log_level = getattr(logging, level.upper())
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfigured between tests
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_renderer_chain(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


@contextmanager
def run_context(run_id: str, **fields: Any) -> Iterator[None]:
    """Bind run_id and extra fields to every log event emitted inside the block.

    Bindings made by an enclosing run_context() are restored on exit.

    Example:
        with run_context(cp.run_id, step="parse"):
            logger.info("step executing")  # carries run_id and step
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id, **fields):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structlog logger for a module (typically __name__)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
