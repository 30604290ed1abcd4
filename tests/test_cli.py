"""Tests for the graphwrap command line."""

import json

import pytest
from click.testing import CliRunner

from graphwrap import __version__
from graphwrap.cli import cli

EXAMPLE_APP = "graphwrap.example.app:app"


@pytest.fixture
def runner(restore_root_stream) -> CliRunner:
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_print_schema(runner):
    result = runner.invoke(cli, ["print-schema", EXAMPLE_APP])

    assert result.exit_code == 0, result.output
    assert "type Query {" in result.stdout
    assert "type Book {" in result.stdout
    assert "all_books(" in result.stdout


def test_resources_as_json(runner):
    result = runner.invoke(cli, ["resources", EXAMPLE_APP, "--output-format", "json"])

    assert result.exit_code == 0, result.output
    rows = {row["name"]: row for row in json.loads(result.stdout)}
    assert rows["book"] == {
        "name": "book",
        "type": "Book",
        "detail": "/book/{id}/",
        "list": "/book/",
        "filters": ["author", "title", "min_pages"],
        "links": {"author": "author"},
    }
    assert rows["author"]["links"] == {"profile": "profile"}
    assert rows["profile"]["list"] is None


def test_resources_as_table(runner):
    result = runner.invoke(cli, ["resources", EXAMPLE_APP])

    assert result.exit_code == 0, result.output
    assert "Found 3 resource(s):" in result.stdout
    assert "link:    author -> author" in result.stdout


@pytest.mark.parametrize(
    "app_path,message",
    [
        ("graphwrap.example.app:missing", "missing"),
        ("graphwrap.config:settings", "not a FastAPI application"),
    ],
)
def test_bad_app_path(runner, app_path, message):
    result = runner.invoke(cli, ["print-schema", app_path])
    assert result.exit_code == 2
    assert message in result.output
