"""Unit tests for REST delegation."""

import httpx
import pytest
from fastapi import FastAPI
from starlette.requests import Request

from graphwrap.dispatch import DISPATCH_HEADER, RestDispatcher, _error_detail, clean_params
from graphwrap.exceptions import (
    InvalidArgumentsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RestDispatchError,
)
from graphwrap.logging import clear_request_context, set_request_context


def make_request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/graphql",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "query_string": b"",
    }
    return Request(scope)


def mock_dispatcher(handler, config, request=None) -> RestDispatcher:
    return RestDispatcher(
        FastAPI(), request=request, config=config, transport=httpx.MockTransport(handler)
    )


@pytest.fixture(autouse=True)
def _no_request_context():
    clear_request_context()
    yield
    clear_request_context()


class TestHeaders:
    """Test which incoming headers reach the REST views."""

    def test_configured_headers_are_forwarded(self, config):
        request = make_request(
            {"Authorization": "Bearer t", "Cookie": "a=b", "X-Other": "nope"}
        )
        dispatcher = RestDispatcher(FastAPI(), request=request, config=config)

        assert dispatcher.headers == {
            DISPATCH_HEADER: "1",
            "authorization": "Bearer t",
            "cookie": "a=b",
        }

    def test_request_id_is_propagated(self, config):
        set_request_context("req-1")
        dispatcher = RestDispatcher(FastAPI(), config=config)
        assert dispatcher.headers["x-request-id"] == "req-1"

    def test_forward_list_is_configurable(self, config):
        config.forward_headers = ["X-Tenant"]
        request = make_request({"Authorization": "Bearer t", "X-Tenant": "acme"})
        dispatcher = RestDispatcher(FastAPI(), request=request, config=config)
        assert dispatcher.headers == {DISPATCH_HEADER: "1", "x-tenant": "acme"}


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_json_and_drops_unset_params(self, config):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"title": "Kindred"})

        dispatcher = mock_dispatcher(handler, config)
        payload = await dispatcher.get("/book/3/", {"author": None, "title": "K"})

        assert payload == {"title": "Kindred"}
        assert seen[0].url.path == "/book/3/"
        assert dict(seen[0].url.params) == {"title": "K"}
        assert seen[0].headers[DISPATCH_HEADER] == "1"

    @pytest.mark.asyncio
    async def test_not_found_is_none(self, config):
        dispatcher = mock_dispatcher(lambda r: httpx.Response(404, json={"detail": "x"}), config)
        assert await dispatcher.get("/book/9/") is None
        assert await dispatcher.get_many("/book/") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_class,code",
        [
            (401, NotAuthenticatedError, "UNAUTHENTICATED"),
            (403, PermissionDeniedError, "FORBIDDEN"),
            (400, InvalidArgumentsError, "BAD_USER_INPUT"),
            (422, InvalidArgumentsError, "BAD_USER_INPUT"),
            (500, RestDispatchError, "REST_ERROR"),
        ],
    )
    async def test_error_statuses_are_mapped(self, config, status, error_class, code):
        dispatcher = mock_dispatcher(
            lambda r: httpx.Response(status, json={"detail": "nope"}), config
        )

        with pytest.raises(error_class) as exc_info:
            await dispatcher.get("/author/3/")

        error = exc_info.value
        assert type(error) is error_class
        if status < 500:
            assert error.message == "nope"
        assert error.extensions == {"code": code, "status": status, "path": "/author/3/"}

    @pytest.mark.asyncio
    async def test_non_json_success_is_an_error(self, config):
        dispatcher = mock_dispatcher(lambda r: httpx.Response(200, text="<html>"), config)
        with pytest.raises(RestDispatchError, match="did not return JSON"):
            await dispatcher.get("/book/1/")

    @pytest.mark.asyncio
    async def test_transport_failure_is_an_error(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        dispatcher = mock_dispatcher(handler, config)
        with pytest.raises(RestDispatchError, match="REST call to /book/1/ failed"):
            await dispatcher.get("/book/1/")

    @pytest.mark.asyncio
    async def test_get_many_requires_a_list(self, config):
        dispatcher = mock_dispatcher(lambda r: httpx.Response(200, json={"count": 0}), config)
        with pytest.raises(RestDispatchError, match="expected a list"):
            await dispatcher.get_many("/book/")


def test_graphql_error_carries_extensions():
    error = PermissionDeniedError("no", status_code=403, path="/author/3/").as_graphql_error()

    assert error.message == "no"
    assert error.extensions == {"code": "FORBIDDEN", "status": 403, "path": "/author/3/"}
    assert isinstance(error.original_error, PermissionDeniedError)


def test_validation_errors_are_summarized():
    response = httpx.Response(
        422,
        json={
            "detail": [
                {"loc": ["query", "min_pages"], "msg": "Input should be >= 0"},
                {"loc": ["query", "author"], "msg": "Input should be a valid integer"},
            ]
        },
    )
    assert _error_detail(response) == (
        "query.min_pages: Input should be >= 0; query.author: Input should be a valid integer"
    )
    assert _error_detail(httpx.Response(500, text="Internal Server Error")) == (
        "Internal Server Error"
    )


def test_clean_params():
    assert clean_params(None) == {}
    assert clean_params({"a": None, "b": 0, "c": False}) == {"b": 0, "c": False}


@pytest.mark.asyncio
async def test_server_error_body_is_not_surfaced(config):
    dispatcher = mock_dispatcher(
        lambda r: httpx.Response(500, text="Traceback: secret=hunter2"), config
    )

    with pytest.raises(RestDispatchError) as exc_info:
        await dispatcher.get("/book/1/")

    assert exc_info.value.message == "REST view at /book/1/ failed with status 500"
    assert "hunter2" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_raising_view_becomes_a_server_error(config):
    app = FastAPI()

    @app.get("/crash/{id}")
    async def crash(id: int):
        raise RuntimeError("db password=hunter2 exploded")

    dispatcher = RestDispatcher(app, config=config)

    with pytest.raises(RestDispatchError) as exc_info:
        await dispatcher.get("/crash/1")

    assert exc_info.value.extensions == {"code": "REST_ERROR", "status": 500, "path": "/crash/1"}
    assert "hunter2" not in exc_info.value.message
