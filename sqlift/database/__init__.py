"""Database introspection module for sqlift.

This module provides the canonical schema model and a database-agnostic
introspection interface, with an implementation for PostgreSQL.
"""

from typing import Dict, Type

from ..errors import ConfigError
from .models import (
    Array,
    BigInt,
    Binary,
    Boolean,
    Column,
    DataType,
    Date,
    DoublePrecision,
    Enum,
    EnumDef,
    FixedText,
    GenerationMode,
    Integer,
    Json,
    Numeric,
    PrimaryKey,
    Real,
    Schema,
    SmallInt,
    Table,
    Text,
    Time,
    Timestamp,
    Uuid,
    VarText,
)
from .base import DatabaseIntrospector, RawColumn, TableFilter
from .postgres import PostgresIntrospector

INTROSPECTORS: Dict[str, Type[DatabaseIntrospector]] = {
    "postgres": PostgresIntrospector,
}


def get_introspector_class(database: str) -> Type[DatabaseIntrospector]:
    """Look up the introspector registered for a database kind."""
    try:
        return INTROSPECTORS[database]
    except KeyError:
        supported = ", ".join(sorted(INTROSPECTORS))
        raise ConfigError(
            f"Unsupported database '{database}' (supported: {supported})",
            details={"database": database},
        )


__all__ = [
    # Data models
    "Schema",
    "Table",
    "Column",
    "PrimaryKey",
    "EnumDef",
    "GenerationMode",
    # Data types
    "DataType",
    "SmallInt",
    "Integer",
    "BigInt",
    "Boolean",
    "Text",
    "FixedText",
    "VarText",
    "Real",
    "DoublePrecision",
    "Numeric",
    "Timestamp",
    "Date",
    "Time",
    "Uuid",
    "Json",
    "Binary",
    "Array",
    "Enum",
    # Introspection
    "DatabaseIntrospector",
    "RawColumn",
    "TableFilter",
    "PostgresIntrospector",
    "INTROSPECTORS",
    "get_introspector_class",
]
