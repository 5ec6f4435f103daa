"""Shared pytest fixtures for sqlift tests."""

import sys
import types

import pytest

from sqlift.database.models import (
    Array,
    BigInt,
    Column,
    EnumDef,
    Enum,
    GenerationMode,
    Integer,
    Numeric,
    PrimaryKey,
    Schema,
    Table,
    Text,
    Timestamp,
)


AUTO = GenerationMode.AUTO_GENERATED
DEFAULT = GenerationMode.HAS_DEFAULT


@pytest.fixture
def users_table():
    """users(id serial pk, email text not null, nickname text, created_at timestamptz default now())."""
    columns = [
        Column(name="id", data_type=Integer(), is_nullable=False, generation=AUTO),
        Column(name="email", data_type=Text(), is_nullable=False),
        Column(name="nickname", data_type=Text(), is_nullable=True),
        Column(name="created_at", data_type=Timestamp(tz=True), is_nullable=False, generation=DEFAULT),
    ]
    return Table(name="users", columns=columns, primary_key=PrimaryKey.for_columns(["id"], columns))


@pytest.fixture
def audit_log_table():
    """audit_log(id serial pk, created_at timestamptz default now())."""
    columns = [
        Column(name="id", data_type=Integer(), is_nullable=False, generation=AUTO),
        Column(name="created_at", data_type=Timestamp(tz=True), is_nullable=False, generation=DEFAULT),
    ]
    return Table(name="audit_log", columns=columns, primary_key=PrimaryKey.for_columns(["id"], columns))


@pytest.fixture
def tags_table():
    """tags(slug text pk, label text)."""
    columns = [
        Column(name="slug", data_type=Text(), is_nullable=False),
        Column(name="label", data_type=Text(), is_nullable=True),
    ]
    return Table(name="tags", columns=columns, primary_key=PrimaryKey.for_columns(["slug"], columns))


@pytest.fixture
def orders_table():
    """orders with an enum column, an enum array and a numeric(10,2)."""
    columns = [
        Column(name="id", data_type=BigInt(), is_nullable=False, generation=AUTO),
        Column(name="status", data_type=Enum("order_status"), is_nullable=False),
        Column(name="total", data_type=Numeric(10, 2), is_nullable=False),
        Column(name="history", data_type=Array(Enum("order_status")), is_nullable=True),
    ]
    return Table(name="orders", columns=columns, primary_key=PrimaryKey.for_columns(["id"], columns))


@pytest.fixture
def page_views_table():
    """page_views(path text, viewed_at timestamptz default now()) with no primary key."""
    return Table(
        name="page_views",
        columns=[
            Column(name="path", data_type=Text(), is_nullable=False),
            Column(name="viewed_at", data_type=Timestamp(tz=True), is_nullable=False, generation=DEFAULT),
        ],
    )


@pytest.fixture
def order_status_enum():
    return EnumDef(name="order_status", labels=("pending", "shipped", "delivered"))


@pytest.fixture
def sample_schema(users_table, audit_log_table, tags_table, orders_table, page_views_table, order_status_enum):
    """A schema covering serial keys, natural keys, defaults, enums and a key-less table."""
    return Schema(
        name="public",
        tables=[users_table, audit_log_table, tags_table, orders_table, page_views_table],
        enums=[order_status_enum],
    )


@pytest.fixture
def load_module(monkeypatch):
    """Execute generated source as a throwaway module and return it."""
    counter = {"n": 0}

    def _load(source: str, name: str = "generated_db"):
        counter["n"] += 1
        module_name = f"{name}_{counter['n']}"
        module = types.ModuleType(module_name)
        monkeypatch.setitem(sys.modules, module_name, module)
        exec(compile(source, f"<{module_name}>", "exec"), module.__dict__)
        return module

    return _load


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with no DB_* variables and no reachable .env file."""
    for name in ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD", "SQLIFT_SCHEMA"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path
