"""
Centralized logging configuration using structlog
"""

import base64
import logging
import secrets
import sys
import time
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Any

import structlog


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    graphql_operation: str | None = None


_EMPTY = RequestContext()

request_ctx: ContextVar[RequestContext] = ContextVar("graphwrap_request", default=_EMPTY)


class RequestContextFilter:
    """structlog processor adding the current request id and GraphQL operation."""

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        _ = logger, method_name

        context = request_ctx.get()
        if context.request_id:
            event_dict["request_id"] = context.request_id
        if context.graphql_operation:
            event_dict.setdefault("graphql_operation", context.graphql_operation)
        return event_dict


def _resolve_level(debug: bool, log_level: str | None) -> int:
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if debug else logging.INFO


def configure_logging(debug: bool = False, log_level: str | None = None) -> None:
    """Configure structlog on top of stdlib logging, writing to stdout.

    Args:
        debug: Human-readable console output when True, JSON lines otherwise.
        log_level: Level name such as ``"warning"``; unknown names fall back
            to DEBUG when debugging and INFO otherwise.
    """
    logging.basicConfig(
        level=_resolve_level(debug, log_level),
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    renderer: Any = (
        structlog.dev.ConsoleRenderer(colors=True)
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            RequestContextFilter(),
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Return a 14-character URL-safe id: microsecond timestamp plus 2 random bytes."""
    timestamp_us = int(time.time() * 1_000_000)
    raw = timestamp_us.to_bytes(8, byteorder="big") + secrets.token_bytes(2)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def set_request_context(request_id: str | None = None) -> str:
    """Start a request context, generating a request id when none is given.

    Returns:
        The request id now in effect
    """
    request_id = request_id or generate_request_id()
    request_ctx.set(RequestContext(request_id=request_id))
    return request_id


def set_graphql_operation(operation: str | None) -> None:
    request_ctx.set(replace(request_ctx.get(), graphql_operation=operation))


def clear_request_context() -> None:
    request_ctx.set(_EMPTY)


def snapshot_request_context() -> RequestContext:
    return request_ctx.get()


def restore_request_context(snapshot: RequestContext) -> None:
    """Reinstate a context captured by :func:`snapshot_request_context`.

    Dispatched REST calls run inside the GraphQL request's task, so their
    middleware hands the outer request's context back when done.
    """
    request_ctx.set(snapshot)


def get_request_id() -> str | None:
    return request_ctx.get().request_id
