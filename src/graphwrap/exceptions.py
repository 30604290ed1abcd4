"""Exceptions raised while building the schema or delegating to REST views."""

from __future__ import annotations

from typing import Any

from graphql import GraphQLError


class GraphWrapError(Exception):
    """Base class for all GraphWrap errors."""

    pass


class SchemaBuildError(GraphWrapError):
    """Raised at startup when the REST views cannot be turned into a schema."""

    pass


class RestDispatchError(GraphWrapError):
    """Raised when a delegated REST call returns an unusable response."""

    code = "REST_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path

    @property
    def extensions(self) -> dict[str, Any]:
        extensions: dict[str, Any] = {"code": self.code}
        if self.status_code is not None:
            extensions["status"] = self.status_code
        if self.path is not None:
            extensions["path"] = self.path
        return extensions

    def as_graphql_error(self) -> GraphQLError:
        """Convert to a GraphQL error carrying `code`/`status` extensions."""
        return GraphQLError(self.message, original_error=self, extensions=self.extensions)


class NotAuthenticatedError(RestDispatchError):
    """The REST view rejected the forwarded credentials (HTTP 401)."""

    code = "UNAUTHENTICATED"


class PermissionDeniedError(RestDispatchError):
    """The REST view refused access to the resource (HTTP 403)."""

    code = "FORBIDDEN"


class InvalidArgumentsError(RestDispatchError):
    """The REST view rejected the query parameters (HTTP 400/422)."""

    code = "BAD_USER_INPUT"


def error_for_status(status_code: int, message: str, path: str | None = None) -> RestDispatchError:
    """Map a REST status code onto the matching dispatch error."""
    if status_code == 401:
        return NotAuthenticatedError(message, status_code=status_code, path=path)
    if status_code == 403:
        return PermissionDeniedError(message, status_code=status_code, path=path)
    if status_code in (400, 422):
        return InvalidArgumentsError(message, status_code=status_code, path=path)
    return RestDispatchError(message, status_code=status_code, path=path)
