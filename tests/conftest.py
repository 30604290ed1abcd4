"""
Shared pytest fixtures and configuration for all tests.
"""

import logging
import os
import sys
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from graphwrap.config import Settings
from graphwrap.example.app import create_app
from graphwrap.example.store import get_store, seed_store

READER = {"Authorization": "Bearer reader-token"}
STAFF = {"Authorization": "Bearer staff-token"}


@pytest.fixture
def config() -> Settings:
    """Settings independent of the developer's environment and .env file."""
    return Settings(_env_file=None, debug=False)


@pytest.fixture
def store():
    return seed_store()


@pytest.fixture
def app(config: Settings, store) -> FastAPI:
    """Example publishing app backed by a fresh store."""
    app = create_app(config)
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def reader_headers() -> dict[str, str]:
    return dict(READER)


@pytest.fixture
def staff_headers() -> dict[str, str]:
    return dict(STAFF)


async def run_query(
    client: AsyncClient,
    query: str,
    variables: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """POST a GraphQL document and return the decoded response body."""
    payload: dict[str, Any] = {"query": query}
    if variables is not None:
        payload["variables"] = variables
    response = await client.post("/graphql", json=payload, headers=headers or {})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


@pytest.fixture
def graphql(client: AsyncClient):
    """Execute GraphQL documents against the example app."""

    async def execute(
        query: str,
        variables: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return await run_query(client, query, variables=variables, headers=headers)

    return execute


@pytest.fixture
def restore_root_stream() -> Generator[None, None, None]:
    """Point stdlib logging back at the session stream after a test reconfigures it."""
    stream = sys.stdout
    yield
    logging.basicConfig(stream=stream, format="%(message)s", force=True)
