"""Shared pytest configuration."""

from tests.fixtures.entities import (  # noqa: F401
    clock,
    make_engine,
    resolver,
    store,
    user,
)
