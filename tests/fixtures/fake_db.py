"""Fake DB-API connection for testing without a PostgreSQL server."""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


class FakeCursor:
    """Cursor that asks its connection's handler for each query result."""

    def __init__(self, connection: "FakeConnection"):
        self.connection = connection
        self.rowcount = -1
        self.closed = False
        self._rows: List[Tuple] = []

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None):
        params = tuple(params or ())
        self.connection.executed.append((sql, params))
        result = self.connection.handler(sql, params)
        if isinstance(result, int):
            # Handlers return an int for statements that only report a rowcount
            self._rows = []
            self.rowcount = result
        else:
            self._rows = list(result)
            self.rowcount = len(self._rows)

    def fetchone(self) -> Optional[Tuple]:
        if not self._rows:
            return None
        return self._rows.pop(0)

    def fetchall(self) -> List[Tuple]:
        rows, self._rows = self._rows, []
        return rows

    def close(self):
        self.closed = True
        self.connection.cursors_closed += 1


class FakeConnection:
    """DB-API connection double.

    Every ``execute`` is recorded in ``executed`` as ``(sql, params)``; the
    handler decides what the query returns (rows, or an int rowcount).
    """

    def __init__(self, handler: Optional[Callable[[str, Tuple], Any]] = None):
        self.handler = handler or (lambda sql, params: [])
        self.executed: List[Tuple[str, Tuple]] = []
        self.cursors_closed = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def close(self):
        self.closed = True

    @property
    def last_sql(self) -> str:
        return self.executed[-1][0]

    @property
    def last_params(self) -> Tuple:
        return self.executed[-1][1]


def column_row(
    name: str,
    type_name: str,
    nullable: bool = True,
    default: Optional[str] = None,
    identity: bool = False,
    generated: bool = False,
) -> Tuple:
    """Build a row shaped like the column catalog query result."""
    return (name, type_name, nullable, default, identity, generated)


class FakeCatalog:
    """Answers the PostgreSQL catalog queries from in-memory definitions.

    Args:
        tables: table name -> list of ``column_row`` tuples
        primary_keys: table name -> key column names in key order
        enums: enum name -> labels in declaration order
    """

    def __init__(
        self,
        tables: Optional[Dict[str, List[Tuple]]] = None,
        primary_keys: Optional[Dict[str, List[str]]] = None,
        enums: Optional[Dict[str, List[str]]] = None,
    ):
        self.tables = tables or {}
        self.primary_keys = primary_keys or {}
        self.enums = enums or {}

    def __call__(self, sql: str, params: Tuple) -> List[Tuple]:
        if "pg_enum" in sql:
            return [
                (name, label)
                for name in sorted(self.enums)
                for label in self.enums[name]
            ]
        if "pg_constraint" in sql:
            return [(name,) for name in self.primary_keys.get(params[0], [])]
        if "format_type" in sql:
            return list(self.tables.get(params[0], []))
        if "relkind" in sql:
            return [(name,) for name in sorted(self.tables)]
        raise AssertionError(f"Unexpected query: {sql}")
