"""
Request-id and access logging for the REST views and the GraphQL endpoint
"""

import json
import re
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .dispatch import DISPATCH_HEADER, REQUEST_ID_HEADER
from .logging import (
    get_logger,
    restore_request_context,
    set_graphql_operation,
    set_request_context,
    snapshot_request_context,
)

logger = get_logger(__name__)

# Substrings of query parameter names whose values never reach the logs
SENSITIVE_KEYS = frozenset(
    {
        "password", "token", "api_key", "secret", "auth", "authorization", "access_token",
        "refresh_token", "key", "private_key", "jwt", "session", "session_id", "cookie",
        "credentials",
    }
)  # fmt: skip

GRAPHQL_PAYLOAD_PARAMS = ("query", "variables", "extensions")

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9_\-.]{1,64}$")
_NAMED_QUERY_RE = re.compile(r"\bquery\s+(\w+)")


def sanitize_query_params(params: dict[str, Any]) -> dict[str, Any]:
    """Return ``params`` with sensitive values replaced by ``[REDACTED]``."""
    return {
        key: "[REDACTED]" if any(s in key.lower() for s in SENSITIVE_KEYS) else value
        for key, value in params.items()
    }


def loggable_query_params(request: Request, graphql_path: str) -> dict[str, Any] | None:
    if not request.query_params:
        return None
    params = sanitize_query_params(dict(request.query_params))
    if request.url.path == graphql_path:
        # GET /graphql carries the whole document in the query string
        for name in GRAPHQL_PAYLOAD_PARAMS:
            if name in params:
                params[name] = "[REDACTED]"
    return params


def operation_name_from_query(query: str) -> str | None:
    """Best-effort operation name for a GraphQL document, for logging."""
    if not query:
        return None
    if "__schema" in query or "IntrospectionQuery" in query:
        return "__introspection"
    match = _NAMED_QUERY_RE.search(query)
    return match.group(1) if match else "unnamed_operation"


async def _graphql_payload(request: Request) -> dict[str, Any] | None:
    if request.method == "GET":
        return dict(request.query_params)
    if request.method != "POST":
        return None
    body = await request.body()
    if not body:
        return None
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


async def extract_graphql_operation_name(request: Request, graphql_path: str) -> str | None:
    if request.url.path != graphql_path:
        return None
    payload = await _graphql_payload(request)
    if payload is None:
        return None
    name = payload.get("operationName")
    if isinstance(name, str) and name:
        return name
    query = payload.get("query")
    return operation_name_from_query(query) if isinstance(query, str) else None


def incoming_request_id(request: Request) -> str | None:
    """Reuse a well-formed X-Request-ID so dispatched REST calls share the caller's ID."""
    value = request.headers.get(REQUEST_ID_HEADER)
    if value and _REQUEST_ID_RE.match(value):
        return value
    return None


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id (and GraphQL operation name) to every log line of a request.

    REST calls dispatched by GraphQL resolvers pass through this middleware
    again, nested inside the outer request; they carry the outer request id
    and are logged with ``dispatched=True``.
    """

    def __init__(self, app, graphql_path: str | None = None):
        super().__init__(app)
        self.graphql_path = graphql_path or settings.graphql_path

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        previous_context = snapshot_request_context()
        request_id = set_request_context(incoming_request_id(request))
        dispatched = request.headers.get(DISPATCH_HEADER) == "1"
        graphql_operation = await extract_graphql_operation_name(request, self.graphql_path)
        if graphql_operation:
            set_graphql_operation(graphql_operation)

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            query_params=loggable_query_params(request, self.graphql_path),
            user_agent=request.headers.get("user-agent"),
            remote_addr=request.client.host if request.client else None,
            dispatched=dispatched,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed", method=request.method, path=request.url.path, error=str(e)
            )
            raise
        else:
            logger.info(
                "Request completed",
                status_code=response.status_code,
                method=request.method,
                path=request.url.path,
                dispatched=dispatched,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            restore_request_context(previous_context)
