"""Schema data models produced by introspection and consumed by code generation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum as _PyEnum
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import SchemaValidationError


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataType(ABC):
    """Base class for the closed set of column types sqlift understands."""

    @abstractmethod
    def sql_name(self) -> str:
        pass


@dataclass(frozen=True)
class SmallInt(DataType):
    def sql_name(self) -> str:
        return "smallint"


@dataclass(frozen=True)
class Integer(DataType):
    def sql_name(self) -> str:
        return "integer"


@dataclass(frozen=True)
class BigInt(DataType):
    def sql_name(self) -> str:
        return "bigint"


@dataclass(frozen=True)
class Boolean(DataType):
    def sql_name(self) -> str:
        return "boolean"


@dataclass(frozen=True)
class Text(DataType):
    def sql_name(self) -> str:
        return "text"


@dataclass(frozen=True)
class FixedText(DataType):
    length: Optional[int] = None

    def sql_name(self) -> str:
        return f"character({self.length})" if self.length is not None else "character"


@dataclass(frozen=True)
class VarText(DataType):
    length: Optional[int] = None

    def sql_name(self) -> str:
        return f"character varying({self.length})" if self.length is not None else "character varying"


@dataclass(frozen=True)
class Real(DataType):
    def sql_name(self) -> str:
        return "real"


@dataclass(frozen=True)
class DoublePrecision(DataType):
    def sql_name(self) -> str:
        return "double precision"


@dataclass(frozen=True)
class Numeric(DataType):
    precision: Optional[int] = None
    scale: Optional[int] = None

    def sql_name(self) -> str:
        if self.precision is None:
            return "numeric"
        if self.scale is None:
            return f"numeric({self.precision})"
        return f"numeric({self.precision},{self.scale})"


@dataclass(frozen=True)
class Timestamp(DataType):
    tz: bool = False

    def sql_name(self) -> str:
        return "timestamp with time zone" if self.tz else "timestamp without time zone"


@dataclass(frozen=True)
class Date(DataType):
    def sql_name(self) -> str:
        return "date"


@dataclass(frozen=True)
class Time(DataType):
    tz: bool = False

    def sql_name(self) -> str:
        return "time with time zone" if self.tz else "time without time zone"


@dataclass(frozen=True)
class Uuid(DataType):
    def sql_name(self) -> str:
        return "uuid"


@dataclass(frozen=True)
class Json(DataType):
    binary: bool = False

    def sql_name(self) -> str:
        return "jsonb" if self.binary else "json"


@dataclass(frozen=True)
class Binary(DataType):
    def sql_name(self) -> str:
        return "bytea"


@dataclass(frozen=True)
class Array(DataType):
    element: DataType

    def sql_name(self) -> str:
        return f"{self.element.sql_name()}[]"


@dataclass(frozen=True)
class Enum(DataType):
    """A custom enum type; ``name`` is the database type name."""

    name: str

    def sql_name(self) -> str:
        return self.name


def is_parameterized(data_type: DataType) -> bool:
    """Whether the type carries length/precision details worth documenting."""
    if isinstance(data_type, Array):
        return is_parameterized(data_type.element)
    if isinstance(data_type, (FixedText, VarText)):
        return data_type.length is not None
    if isinstance(data_type, Numeric):
        return data_type.precision is not None
    return False


# ---------------------------------------------------------------------------
# Schema model
# ---------------------------------------------------------------------------

class GenerationMode(str, _PyEnum):
    """How a column's value is produced on insert."""

    USER_SUPPLIED = "user_supplied"
    HAS_DEFAULT = "has_default"
    AUTO_GENERATED = "auto_generated"


def to_pascal_case(name: str) -> str:
    """Convert snake_case to PascalCase."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


def singularize(name: str) -> str:
    """Basic English singularization for table names."""
    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name


@dataclass(frozen=True)
class Column:
    """Represents a database column."""
    name: str
    data_type: DataType
    is_nullable: bool = True
    generation: GenerationMode = GenerationMode.USER_SUPPLIED

    @property
    def is_auto_generated(self) -> bool:
        return self.generation is GenerationMode.AUTO_GENERATED


@dataclass(frozen=True)
class PrimaryKey:
    """Ordered primary key columns.

    ``all_auto_generated`` is true when every key column is filled in by the
    database (serial, identity), which rules out conflict-targeted upserts.
    """
    columns: Tuple[str, ...]
    all_auto_generated: bool = False

    @classmethod
    def for_columns(cls, names: Iterable[str], columns: Iterable[Column]) -> "PrimaryKey":
        """Build a primary key, deriving the auto-generated flag from ``columns``."""
        names = tuple(names)
        by_name = {col.name: col for col in columns}
        all_auto = bool(names) and all(
            name in by_name and by_name[name].is_auto_generated for name in names
        )
        return cls(columns=names, all_auto_generated=all_auto)


@dataclass(frozen=True)
class EnumDef:
    """A custom enum type defined in the database."""
    name: str
    labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Table:
    """Represents a database table."""
    name: str
    columns: Tuple[Column, ...] = ()
    primary_key: Optional[PrimaryKey] = None

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "columns", tuple(self.columns))
        seen = set()
        for col in self.columns:
            if col.name in seen:
                raise SchemaValidationError(
                    f"Duplicate column '{col.name}' in table '{self.name}'",
                    details={"table": self.name, "column": col.name},
                )
            seen.add(col.name)
        if self.primary_key is not None:
            if not self.primary_key.columns:
                object.__setattr__(self, "primary_key", None)
                return
            for pk_name in self.primary_key.columns:
                if pk_name not in seen:
                    raise SchemaValidationError(
                        f"Primary key column '{pk_name}' does not exist in table '{self.name}'",
                        details={"table": self.name, "column": pk_name},
                    )

    @property
    def has_primary_key(self) -> bool:
        return self.primary_key is not None

    def get_class_name(self) -> str:
        """Convert table name to class name (PascalCase)."""
        return to_pascal_case(self.name)

    def get_singular_class_name(self) -> str:
        return to_pascal_case(self.get_singular_name())

    def get_singular_name(self) -> str:
        return singularize(self.name)

    def get_column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def primary_key_columns(self) -> List[Column]:
        """Get primary key columns in key order."""
        if self.primary_key is None:
            return []
        return [self.get_column(name) for name in self.primary_key.columns]

    def non_pk_columns(self) -> List[Column]:
        """Get columns outside the primary key, in column order."""
        pk = set(self.primary_key.columns) if self.primary_key else set()
        return [col for col in self.columns if col.name not in pk]


@dataclass(frozen=True)
class Schema:
    """Represents one introspected database schema."""
    name: str
    tables: Tuple[Table, ...] = ()
    enums: Dict[str, EnumDef] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tables", tuple(self.tables))
        if not isinstance(self.enums, dict):
            enums: Dict[str, EnumDef] = {}
            for enum_def in self.enums:
                if enum_def.name in enums:
                    raise SchemaValidationError(
                        f"Duplicate enum type '{enum_def.name}' in schema '{self.name}'",
                        details={"schema": self.name, "enum": enum_def.name},
                    )
                enums[enum_def.name] = enum_def
            object.__setattr__(self, "enums", enums)
        names = set()
        for table in self.tables:
            if table.name in names:
                raise SchemaValidationError(
                    f"Duplicate table '{table.name}' in schema '{self.name}'",
                    details={"schema": self.name, "table": table.name},
                )
            names.add(table.name)

    def get_table_by_name(self, table_name: str) -> Optional[Table]:
        """Find a table by name."""
        for table in self.tables:
            if table.name == table_name:
                return table
        return None
