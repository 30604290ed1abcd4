"""
Delegation of GraphQL reads to the REST views.

Requests are sent through the FastAPI application in-process, so the REST
views' own authentication, permission checks, filtering and serialization
decide what GraphQL returns.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from fastapi import FastAPI, Request

from .config import Settings, settings as default_settings
from .exceptions import RestDispatchError, error_for_status
from .logging import get_logger, get_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"
DISPATCH_HEADER = "x-graphwrap-dispatch"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, Mapping) and "detail" in payload:
        detail = payload["detail"]
        if isinstance(detail, list):
            # FastAPI validation errors
            return "; ".join(
                f"{'.'.join(str(p) for p in item.get('loc', []))}: {item.get('msg')}"
                for item in detail
                if isinstance(item, Mapping)
            )
        return str(detail)
    return str(payload)


def clean_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop unset arguments so the REST view applies its own defaults."""
    if not params:
        return {}
    return {key: value for key, value in params.items() if value is not None}


class RestDispatcher:
    """Issue GET requests against the wrapped REST application."""

    def __init__(
        self,
        app: FastAPI,
        request: Request | None = None,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.app = app
        self.config = config or default_settings
        self.transport = transport or httpx.ASGITransport(app=app, raise_app_exceptions=False)
        self.headers = self._forwarded_headers(request)

    def _forwarded_headers(self, request: Request | None) -> dict[str, str]:
        headers = {DISPATCH_HEADER: "1"}
        if request is not None:
            for name in self.config.forward_headers:
                value = request.headers.get(name)
                if value is not None:
                    headers[name.lower()] = value
        request_id = get_request_id()
        if request_id:
            headers[REQUEST_ID_HEADER] = request_id
        return headers

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Returns:
            The payload, or None when the view answers 404

        Raises:
            RestDispatchError: For any other non-success response
        """
        query = clean_params(params)
        async with httpx.AsyncClient(
            transport=self.transport,
            base_url=self.config.internal_base_url,
            headers=self.headers,
            timeout=self.config.dispatch_timeout,
        ) as client:
            try:
                response = await client.get(path, params=query)
            except httpx.HTTPError as e:
                logger.error("REST dispatch failed", path=path, error=str(e))
                raise RestDispatchError(f"REST call to {path} failed: {e}", path=path) from e

        logger.debug(
            "REST dispatch completed",
            path=path,
            params=query or None,
            status_code=response.status_code,
        )

        if response.status_code == 404:
            return None
        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise RestDispatchError(
                    f"REST view at {path} did not return JSON",
                    status_code=response.status_code,
                    path=path,
                ) from e

        detail = message = _error_detail(response)
        if response.status_code >= 500:
            # Server error bodies may carry tracebacks; keep them out of GraphQL errors
            message = f"REST view at {path} failed with status {response.status_code}"
            logger.error(
                "REST view returned a server error",
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
        else:
            logger.info(
                "REST view rejected dispatched request",
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
        raise error_for_status(response.status_code, message, path=path)

    async def get_many(self, path: str, params: Mapping[str, Any] | None = None) -> list[Any]:
        """GET a list view; 404 yields an empty list."""
        payload = await self.get(path, params)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RestDispatchError(
                f"List view at {path} returned {type(payload).__name__}, expected a list",
                path=path,
            )
        return payload
