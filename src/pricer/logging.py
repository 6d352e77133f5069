"""structlog setup for pricer runs.

Every module logs through get_logger(__name__). Events are rendered by a
single stdlib handler, so httpx and other library output shares the format.
Per-row ledger context travels in contextvars and is merged into each event.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Libraries that log every HTTP request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")

_RENDERERS = {
    "console": structlog.dev.ConsoleRenderer,
    "json": structlog.processors.JSONRenderer,
}


def _event_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog through one root handler at log_level.

    log_format is "console" for interactive runs or "json" for log files;
    anything else falls back to console. The HTTP client loggers are held
    at WARNING so per-request lines do not drown the pricing events.
    """
    renderer_cls = _RENDERERS.get(log_format.lower(), structlog.dev.ConsoleRenderer)

    structlog.configure(
        processors=[
            *_event_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer_cls(),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def ledger_row_context(transaction_id: str, row_number: int) -> Iterator[None]:
    """Bind the current ledger row to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        transaction_id=transaction_id, row=row_number
    ):
        yield
