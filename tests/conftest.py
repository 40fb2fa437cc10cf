"""Shared test fixtures for SQL Publisher."""

import os
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from sql_publisher.core.logging import setup_logging
from tests.fake_source import FakeSource, make_columns


@pytest.fixture(autouse=True)
def _logging():
    setup_logging()


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def people_columns():
    return make_columns(("id", 23), ("name", 25), ("note", 25))


@pytest.fixture
def people_source(people_columns):
    """The id/name/note source with one null note."""
    return FakeSource(people_columns, [(1, "a", None), (2, "b", "x")])


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep SQL_PUBLISHER_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("SQL_PUBLISHER_") and key != "SQL_PUBLISHER_TEST_DSN":
            monkeypatch.delenv(key, raising=False)
