"""Abstract base class for database introspection."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Collection, List, Optional, Sequence

from ..errors import IntrospectionError, SqliftError, UnsupportedTypeError
from .models import Column, DataType, EnumDef, GenerationMode, PrimaryKey, Schema, Table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawColumn:
    """Column as reported by the catalog, before type parsing."""
    name: str
    type_name: str
    is_nullable: bool
    default: Optional[str] = None
    is_identity: bool = False
    is_generated: bool = False


@dataclass
class TableFilter:
    """Include/exclude filters applied to table names before the IR is built."""
    include: Optional[Sequence[str]] = None
    exclude: Optional[Sequence[str]] = None

    def should_include(self, table_name: str) -> bool:
        if self.include is not None and table_name not in self.include:
            return False
        if self.exclude is not None and table_name in self.exclude:
            return False
        return True

    @property
    def is_active(self) -> bool:
        return self.include is not None or self.exclude is not None


class DatabaseIntrospector(ABC):
    """Abstract base class for database introspection.

    Subclasses implement the catalog queries and type parsing for one database
    product; ``introspect`` assembles the results into a ``Schema``.
    """

    @abstractmethod
    def close(self):
        """Close the database connection."""
        pass

    @abstractmethod
    def get_enums(self, schema: str) -> List[EnumDef]:
        """Get all enum types in a schema with their labels in declaration order."""
        pass

    @abstractmethod
    def get_tables(self, schema: str) -> List[str]:
        """Get all base table names in a schema."""
        pass

    @abstractmethod
    def get_columns(self, schema: str, table: str) -> List[RawColumn]:
        """Get all columns of a table in ordinal order."""
        pass

    @abstractmethod
    def get_primary_key(self, schema: str, table: str) -> List[str]:
        """Get primary key column names in key order (empty if none)."""
        pass

    @abstractmethod
    def parse_data_type(self, type_name: str, enum_names: Collection[str]) -> DataType:
        """Parse a raw catalog type string.

        Raises:
            UnsupportedTypeError: the type is outside the supported set
        """
        pass

    @abstractmethod
    def classify_generation(self, column: RawColumn) -> GenerationMode:
        """Decide how a column's value is produced on insert."""
        pass

    def build_column(self, table: str, raw: RawColumn, enum_names: Collection[str]) -> Column:
        try:
            data_type = self.parse_data_type(raw.type_name, enum_names)
        except UnsupportedTypeError as e:
            raise e.with_location(table, raw.name) from e
        return Column(
            name=raw.name,
            data_type=data_type,
            is_nullable=raw.is_nullable,
            generation=self.classify_generation(raw),
        )

    def introspect(self, schema: str, table_filter: Optional[TableFilter] = None) -> Schema:
        """Introspect a schema and return the canonical schema model.

        Any catalog failure is reported as ``IntrospectionError``; an
        unsupported column type aborts the whole run.

        Args:
            schema: Database schema name
            table_filter: Optional include/exclude filter on table names

        Returns:
            Schema containing the filtered tables and every enum type
        """
        table_filter = table_filter or TableFilter()
        logger.info("Starting introspection of schema '%s'", schema)

        try:
            enums = self.get_enums(schema)
            logger.debug("Found %d enum types", len(enums))
            enum_names = {e.name for e in enums}

            table_names = self.get_tables(schema)
            logger.debug("Found %d tables", len(table_names))
            table_names = [name for name in table_names if table_filter.should_include(name)]
            if table_filter.is_active:
                logger.debug("%d tables after filtering", len(table_names))

            tables = []
            for table_name in table_names:
                logger.debug("Introspecting table %s", table_name)
                columns = [
                    self.build_column(table_name, raw, enum_names)
                    for raw in self.get_columns(schema, table_name)
                ]
                pk_names = self.get_primary_key(schema, table_name)
                primary_key = PrimaryKey.for_columns(pk_names, columns) if pk_names else None
                tables.append(Table(name=table_name, columns=columns, primary_key=primary_key))
        except SqliftError:
            raise
        except Exception as e:
            raise IntrospectionError(schema, str(e)) from e

        result = Schema(name=schema, tables=tables, enums=enums)
        logger.info(
            "Introspection of schema '%s' complete: %d tables, %d enums",
            schema, len(result.tables), len(result.enums),
        )
        return result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
