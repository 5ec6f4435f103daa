"""Test fixtures package."""

from .fake_db import FakeCatalog, FakeConnection, FakeCursor, column_row

__all__ = [
    "FakeCatalog",
    "FakeConnection",
    "FakeCursor",
    "column_row",
]
