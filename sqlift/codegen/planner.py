"""Function planner: decides which CRUD functions a table gets and their shapes.

Planning is language independent. The emitters render whatever the planner
decided and never re-derive these rules:

1. ``get_by_pk``, ``update`` and ``delete`` exist only for tables with a
   primary key.
2. ``get_all`` and ``insert`` always exist.
3. ``insert`` takes the user-supplied columns in column order; with none left
   it inserts a row of defaults.
4. ``upsert`` exists when the primary key is not entirely database generated.
5. ``update`` and ``upsert`` take the key columns as required parameters and
   every other column as an optional, unset-able parameter.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..database.models import Column, GenerationMode, Schema, Table
from ..errors import PlanningInconsistencyError

logger = logging.getLogger(__name__)


class FunctionKind(str, Enum):
    GET_BY_PK = "get_by_pk"
    GET_ALL = "get_all"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"


class ReturnShape(str, Enum):
    RECORD = "record"
    OPTIONAL_RECORD = "optional_record"
    RECORD_LIST = "record_list"
    BOOL = "bool"


class InsertShape(str, Enum):
    COLUMNS = "columns"
    ALL_DEFAULTS = "all_defaults"


@dataclass(frozen=True)
class Param:
    """A function parameter bound to a table column.

    ``unsettable`` parameters may be left at the unset sentinel, meaning the
    column is not touched.
    """
    column: Column
    unsettable: bool = False


@dataclass(frozen=True)
class PlannedFunction:
    kind: FunctionKind
    name: str
    key_params: Tuple[Param, ...] = ()
    params: Tuple[Param, ...] = ()
    returns: ReturnShape = ReturnShape.RECORD
    insert_shape: Optional[InsertShape] = None

    def all_params(self) -> Tuple[Param, ...]:
        return self.key_params + self.params


@dataclass(frozen=True)
class FunctionSet:
    """The functions planned for one table."""
    table: Table
    get_by_pk: Optional[PlannedFunction] = None
    get_all: Optional[PlannedFunction] = None
    insert: Optional[PlannedFunction] = None
    update: Optional[PlannedFunction] = None
    delete: Optional[PlannedFunction] = None
    upsert: Optional[PlannedFunction] = None

    def functions(self) -> List[PlannedFunction]:
        """Present functions in canonical order."""
        candidates = [self.get_by_pk, self.get_all, self.insert, self.update, self.delete, self.upsert]
        return [fn for fn in candidates if fn is not None]

    def kinds(self) -> List[FunctionKind]:
        return [fn.kind for fn in self.functions()]


def get_by_pk_name(table: Table) -> str:
    """``get_by_id`` or ``get_by_user_id_and_role_id`` for composite keys."""
    return "get_by_" + "_and_".join(re.sub(r"\W", "_", name) for name in table.primary_key.columns)


def plan(table: Table) -> FunctionSet:
    """Plan the CRUD functions for a table."""
    key_params = tuple(Param(col) for col in table.primary_key_columns())
    optional_params = tuple(Param(col, unsettable=True) for col in table.non_pk_columns())

    insert_params = tuple(
        Param(col) for col in table.columns
        if col.generation is GenerationMode.USER_SUPPLIED
    )
    insert = PlannedFunction(
        kind=FunctionKind.INSERT,
        name="insert",
        params=insert_params,
        returns=ReturnShape.RECORD,
        insert_shape=InsertShape.COLUMNS if insert_params else InsertShape.ALL_DEFAULTS,
    )
    get_all = PlannedFunction(
        kind=FunctionKind.GET_ALL,
        name="get_all",
        returns=ReturnShape.RECORD_LIST,
    )

    get_by_pk = update = delete = upsert = None
    if table.has_primary_key:
        get_by_pk = PlannedFunction(
            kind=FunctionKind.GET_BY_PK,
            name=get_by_pk_name(table),
            key_params=key_params,
            returns=ReturnShape.OPTIONAL_RECORD,
        )
        update = PlannedFunction(
            kind=FunctionKind.UPDATE,
            name="update",
            key_params=key_params,
            params=optional_params,
            returns=ReturnShape.OPTIONAL_RECORD,
        )
        delete = PlannedFunction(
            kind=FunctionKind.DELETE,
            name="delete",
            key_params=key_params,
            returns=ReturnShape.BOOL,
        )
        if not table.primary_key.all_auto_generated:
            upsert = PlannedFunction(
                kind=FunctionKind.UPSERT,
                name="upsert",
                key_params=key_params,
                params=optional_params,
                returns=ReturnShape.RECORD,
            )

    function_set = FunctionSet(
        table=table,
        get_by_pk=get_by_pk,
        get_all=get_all,
        insert=insert,
        update=update,
        delete=delete,
        upsert=upsert,
    )
    validate_function_set(function_set)
    logger.debug(
        "Planned %s: %s",
        table.name, ", ".join(kind.value for kind in function_set.kinds()),
    )
    return function_set


def validate_function_set(function_set: FunctionSet):
    """Check every parameter refers to a column of the table.

    Raises:
        PlanningInconsistencyError: a parameter names an unknown column
    """
    table = function_set.table
    for fn in function_set.functions():
        for param in fn.all_params():
            if table.get_column(param.column.name) != param.column:
                raise PlanningInconsistencyError(table.name, param.column.name, fn.name)


def plan_schema(schema: Schema) -> Dict[str, FunctionSet]:
    """Plan every table of a schema, keyed by table name in schema order."""
    return OrderedDict((table.name, plan(table)) for table in schema.tables)
