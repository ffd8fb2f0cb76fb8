"""Logging configuration for the commerce domain.

Every command processed through ``commerce.services.dispatch`` runs inside
``command_context``, so log lines emitted by handlers carry the command name
and whichever of ``order_id``, ``user_id`` and ``product_id`` it targets.

Money movements (refunds, wallet credits and debits, balance corrections)
are tagged ``ledger="wallet"`` and rejected commands carry the ``kind`` of
their ``DomainError``, so both can be filtered out of the JSON stream in
production.
"""

import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from pathlib import Path

import structlog

from commerce.errors import DomainError

MONEY_EVENTS = frozenset(
    {
        "wallet.credited",
        "wallet.debited",
        "wallet.refunded",
        "wallet.balance_corrected",
    }
)

# Command fields copied into the log context
CONTEXT_FIELDS = ("order_id", "user_id", "product_id")


def _environment() -> str:
    return (os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    level_map = {"production": "INFO", "development": "DEBUG", "test": "WARNING"}
    return os.getenv("LOG_LEVEL", level_map.get(_environment(), "INFO"))


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------
def tag_money_movements(_logger, _method_name, event_dict):
    """Mark wallet money movements and round their amounts to cents."""
    if event_dict.get("event") in MONEY_EVENTS:
        event_dict["ledger"] = "wallet"
        for key in ("amount", "correction", "balance"):
            if isinstance(event_dict.get(key), float):
                event_dict[key] = round(event_dict[key], 2)
    return event_dict


def unpack_domain_error(_logger, _method_name, event_dict):
    """Replace an ``error=DomainError`` entry with its kind, message and context."""
    error = event_dict.get("error")
    if isinstance(error, DomainError):
        event_dict["error"] = error.message
        event_dict["kind"] = error.kind
        for key, value in error.context.items():
            event_dict.setdefault(key, value)
    return event_dict


@contextmanager
def command_context(command):
    """Bind the command name and its target ids for the duration of processing."""
    bound = {"command": command.__class__.__name__}
    for field in CONTEXT_FIELDS:
        value = getattr(command, field, None)
        if value is not None:
            bound[field] = str(value)

    with structlog.contextvars.bound_contextvars(**bound):
        yield bound


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------
def setup_stdlib_logging(log_dir: Path | None = None) -> None:
    """Console output plus a rotating ``commerce.log``."""
    log_level = get_log_level()
    log_dir = log_dir or Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [
        logging.StreamHandler(sys.stdout),
        logging.handlers.RotatingFileHandler(
            filename=log_dir / "commerce.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        ),
    ]

    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_structlog() -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        unpack_domain_error,
        tag_money_movements,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if _environment() == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: Path | None = None) -> None:
    setup_stdlib_logging(log_dir)
    setup_structlog()
