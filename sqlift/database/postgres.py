"""PostgreSQL database introspector."""

import logging
import re
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple

from ..errors import UnsupportedTypeError
from .base import DatabaseIntrospector, RawColumn
from .models import (
    Array,
    BigInt,
    Binary,
    Boolean,
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
    Real,
    SmallInt,
    Text,
    Time,
    Timestamp,
    Uuid,
    VarText,
)

logger = logging.getLogger(__name__)


SIMPLE_TYPES: Dict[str, DataType] = {
    "smallint": SmallInt(),
    "int2": SmallInt(),
    "integer": Integer(),
    "int": Integer(),
    "int4": Integer(),
    "bigint": BigInt(),
    "int8": BigInt(),
    "boolean": Boolean(),
    "bool": Boolean(),
    "text": Text(),
    "real": Real(),
    "float4": Real(),
    "double precision": DoublePrecision(),
    "float8": DoublePrecision(),
    "date": Date(),
    "uuid": Uuid(),
    "json": Json(),
    "jsonb": Json(binary=True),
    "bytea": Binary(),
    "timetz": Time(tz=True),
    "timestamptz": Timestamp(tz=True),
}

# Known PostgreSQL types outside the supported set, by family, for error messages
UNSUPPORTED_FAMILIES: Dict[str, str] = {
    "inet": "network",
    "cidr": "network",
    "macaddr": "network",
    "macaddr8": "network",
    "point": "geometric",
    "line": "geometric",
    "lseg": "geometric",
    "box": "geometric",
    "path": "geometric",
    "polygon": "geometric",
    "circle": "geometric",
    "int4range": "range",
    "int8range": "range",
    "numrange": "range",
    "tsrange": "range",
    "tstzrange": "range",
    "daterange": "range",
    "int4multirange": "range",
    "int8multirange": "range",
    "nummultirange": "range",
    "tsmultirange": "range",
    "tstzmultirange": "range",
    "datemultirange": "range",
    "tsvector": "text-search",
    "tsquery": "text-search",
    "bit": "bit-string",
    "bit varying": "bit-string",
    "varbit": "bit-string",
    "money": "monetary",
    "interval": "interval",
    "xml": "xml",
}

_PARAMS_RE = re.compile(r"\(([^)]*)\)")


def extract_params(type_str: str) -> Tuple[Optional[int], Optional[int]]:
    """Extract up to two numeric parameters from a type like ``numeric(10,2)``."""
    match = _PARAMS_RE.search(type_str)
    if not match:
        return None, None
    values = []
    for part in match.group(1).split(","):
        part = part.strip()
        values.append(int(part) if part.isdigit() else None)
    values += [None, None]
    return values[0], values[1]


def _strip_params(type_str: str) -> str:
    return _PARAMS_RE.sub("", type_str).strip()


def _unqualified_name(type_str: str) -> str:
    """Drop a schema qualifier and identifier quotes from a type name."""
    name = type_str.strip()
    if '"' in name:
        parts = re.findall(r'"((?:[^"]|"")*)"|([^."]+)', name)
        pieces = [quoted.replace('""', '"') if quoted else bare for quoted, bare in parts]
        return pieces[-1] if pieces else name
    return name.rsplit(".", 1)[-1]


def parse_data_type(type_str: str, enum_names: Collection[str] = ()) -> DataType:
    """Parse a ``format_type`` string into a DataType.

    Raises:
        UnsupportedTypeError: the type is neither built in nor a known enum
    """
    trimmed = type_str.strip()
    lower = trimmed.lower()

    if lower.endswith("[]"):
        return Array(parse_data_type(trimmed[:-2], enum_names))

    # enum names shadow built-in prefixes such as numeric_level
    name = _unqualified_name(trimmed)
    if name in enum_names:
        return Enum(name)

    if lower.startswith("character varying") or lower.startswith("varchar"):
        return VarText(extract_params(lower)[0])
    if lower in ("character", "char", "bpchar") or re.match(r"^(character|char|bpchar)\(", lower):
        return FixedText(extract_params(lower)[0])
    if lower.startswith("numeric") or lower.startswith("decimal"):
        precision, scale = extract_params(lower)
        return Numeric(precision, scale)

    if lower.startswith("timestamp"):
        return Timestamp(tz="with time zone" in lower or lower.startswith("timestamptz"))
    if lower == "time" or lower.startswith("time(") or lower.startswith("time "):
        return Time(tz="with time zone" in lower)

    if lower in SIMPLE_TYPES:
        return SIMPLE_TYPES[lower]

    family = UNSUPPORTED_FAMILIES.get(_strip_params(lower))
    raise UnsupportedTypeError(trimmed, family=family)


def classify_generation(column: RawColumn) -> GenerationMode:
    """SERIAL/BIGSERIAL (nextval) and identity/generated columns are auto-generated."""
    if column.is_identity or column.is_generated:
        return GenerationMode.AUTO_GENERATED
    if column.default is None:
        return GenerationMode.USER_SUPPLIED
    lower = column.default.lower()
    if "nextval(" in lower or "generated" in lower:
        return GenerationMode.AUTO_GENERATED
    return GenerationMode.HAS_DEFAULT


class PostgresIntrospector(DatabaseIntrospector):
    """Introspects a PostgreSQL schema through ``pg_catalog``."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        connection: Any = None,
    ):
        """Initialize PostgreSQL introspector.

        Args:
            dsn: libpq connection string, used when no connection is given
            connection: An open DB-API connection to reuse (not closed by us)
        """
        self.dsn = dsn
        self._connection = connection
        self._owns_connection = connection is None

    def connect(self):
        """Connect to PostgreSQL."""
        if self._connection is not None:
            return self._connection

        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 is required for PostgreSQL introspection. "
                "Install it with: pip install psycopg2-binary"
            )

        logger.debug("Connecting to PostgreSQL")
        self._connection = psycopg2.connect(self.dsn)
        return self._connection

    def close(self):
        """Close the connection if this introspector opened it."""
        if self._connection is not None and self._owns_connection:
            self._connection.close()
        self._connection = None

    def _execute_query(self, sql: str, params: Sequence[Any]) -> List[Tuple]:
        conn = self.connect()
        cursor = conn.cursor()
        try:
            cursor.execute(sql, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def get_enums(self, schema: str) -> List[EnumDef]:
        rows = self._execute_query("""
            SELECT t.typname AS enum_name, e.enumlabel AS enum_value
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE n.nspname = %s
            ORDER BY t.typname, e.enumsortorder
        """, (schema,))

        labels: Dict[str, List[str]] = {}
        for enum_name, enum_value in rows:
            labels.setdefault(enum_name, []).append(enum_value)
        return [EnumDef(name=name, labels=tuple(values)) for name, values in labels.items()]

    def get_tables(self, schema: str) -> List[str]:
        rows = self._execute_query("""
            SELECT c.relname AS table_name
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'p')
              AND n.nspname = %s
            ORDER BY c.relname
        """, (schema,))
        return [row[0] for row in rows]

    def get_columns(self, schema: str, table: str) -> List[RawColumn]:
        rows = self._execute_query("""
            SELECT
                a.attname AS column_name,
                format_type(a.atttypid, a.atttypmod) AS data_type,
                NOT a.attnotnull AS is_nullable,
                pg_get_expr(d.adbin, d.adrelid) AS default_value,
                a.attidentity <> '' AS is_identity,
                a.attgenerated <> '' AS is_generated
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = c.oid AND d.adnum = a.attnum
            WHERE c.relname = %s
              AND n.nspname = %s
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
        """, (table, schema))

        return [
            RawColumn(
                name=row[0],
                type_name=row[1],
                is_nullable=bool(row[2]),
                default=row[3],
                is_identity=bool(row[4]),
                is_generated=bool(row[5]),
            )
            for row in rows
        ]

    def get_primary_key(self, schema: str, table: str) -> List[str]:
        rows = self._execute_query("""
            SELECT a.attname AS column_name
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(con.conkey)
            WHERE con.contype = 'p'
              AND c.relname = %s
              AND n.nspname = %s
            ORDER BY array_position(con.conkey, a.attnum)
        """, (table, schema))
        return [row[0] for row in rows]

    def parse_data_type(self, type_name: str, enum_names: Collection[str]) -> DataType:
        return parse_data_type(type_name, enum_names)

    def classify_generation(self, column: RawColumn) -> GenerationMode:
        return classify_generation(column)
