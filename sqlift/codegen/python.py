"""Python code generator for typed CRUD access."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set, Tuple

from ..database.models import Array, Column, DataType, Enum, EnumDef, Json, Schema, Table, is_parameterized
from ..errors import PlanningInconsistencyError, UnmappedTypeError
from .base import CodeGenerator, FunctionStyle, GeneratedCode, OutputMode
from .imports import ImportSet
from .naming import (
    RESERVED_GLOBALS,
    RESERVED_PARAMS,
    class_name,
    enum_member_name,
    param_name,
    py_identifier,
    quote_ident,
    unique_names,
)
from .planner import FunctionKind, FunctionSet, InsertShape, Param, PlannedFunction, ReturnShape
from .sentinel import (
    SENTINEL_NAME,
    SENTINEL_TYPE,
    SUPPORT_MODULE,
    render_support,
    sentinel_imports,
    support_imports,
    unset_annotation,
)
from .type_mappers import Import, PythonTypeMapper, TypeMapping

logger = logging.getLogger(__name__)

GENERATED_NOTICE = "Generated by sqlift. Do not edit."
ENUMS_MODULE = "enums"
MAX_LINE = 88

# Names a table module may not take in library mode
RESERVED_MODULES = {ENUMS_MODULE, SUPPORT_MODULE, "__init__"}


def _tuple_expr(names: List[str]) -> str:
    if len(names) == 1:
        return f"({names[0]},)"
    return "(" + ", ".join(names) + ")"


def _indent(lines: List[str], level: int = 1) -> List[str]:
    pad = "    " * level
    return [pad + line if line else line for line in lines]


@dataclass
class TableUnit:
    """Rendered code for one table, plus what it needs from other units."""
    table: Table
    module: str
    record_name: str
    repository_name: Optional[str]
    function_names: List[str]
    body: List[str]
    imports: ImportSet
    enums: List[str] = field(default_factory=list)


class _TableRenderer:
    """Renders the record type and planned functions of one table."""

    def __init__(self, generator: "PythonGenerator", function_set: FunctionSet, module: str):
        self.generator = generator
        self.function_set = function_set
        self.table = function_set.table
        self.module = module
        self.flat = generator.mode is OutputMode.FLAT
        self.style = generator.style
        self.record_name, self.repository_name = generator.class_names[self.table.name]
        self.from_row = f"_{module}_from_row" if self.flat else "_from_row"
        self.imports = ImportSet([Import("dataclasses", "dataclass"), Import("typing", "Any")])
        self.enums: List[str] = []
        self.mappings: Dict[str, TypeMapping] = {}
        for col in self.table.columns:
            self.mappings[col.name] = self._map(col)

        column_names = [col.name for col in self.table.columns]
        fields = unique_names(py_identifier(name) for name in column_names)
        self.field_names = dict(zip(column_names, fields))
        reserved = RESERVED_PARAMS | {self.from_row, self.record_name}
        params = unique_names((param_name(name, reserved) for name in column_names), reserved)
        self.param_names = dict(zip(column_names, params))

    # -- types ----------------------------------------------------------------

    def _map(self, col: Column) -> TypeMapping:
        try:
            mapping = self.generator.type_mapper.map(col.data_type, col.is_nullable)
        except UnmappedTypeError as e:
            raise UnmappedTypeError(
                e.type_name, e.language, table=self.table.name, column=col.name, reason=e.reason,
            ) from e
        self.imports.update(mapping.imports)
        self._note_enums(col.data_type)
        return mapping

    def _note_enums(self, data_type: DataType):
        if isinstance(data_type, Array):
            self._note_enums(data_type.element)
        elif isinstance(data_type, Enum) and data_type.name not in self.enums:
            self.enums.append(data_type.name)

    def _mapping(self, param: Param) -> TypeMapping:
        mapping = self.mappings.get(param.column.name)
        if mapping is None:
            raise PlanningInconsistencyError(self.table.name, param.column.name, "emit")
        return mapping

    # -- SQL fragments ----------------------------------------------------------

    @property
    def qualified_table(self) -> str:
        return f"{quote_ident(self.generator.schema.name)}.{quote_ident(self.table.name)}"

    def _select_expr(self, col: Column) -> str:
        column = quote_ident(col.name)
        # drivers hand enum arrays back as unparsed '{a,b}' literals
        if isinstance(col.data_type, Array) and isinstance(col.data_type.element, Enum):
            return f"{column}::text[]"
        return column

    @property
    def select_list(self) -> str:
        return ", ".join(self._select_expr(col) for col in self.table.columns)

    def _cast(self, data_type: DataType) -> str:
        if isinstance(data_type, Array):
            element = self._cast(data_type.element)
            return element + "[]" if element else ""
        if isinstance(data_type, Enum):
            return f"::{quote_ident(self.generator.schema.name)}.{quote_ident(data_type.name)}"
        if isinstance(data_type, Json):
            return "::jsonb" if data_type.binary else "::json"
        return ""

    def _placeholder(self, col: Column) -> str:
        return "%s" + self._cast(col.data_type)

    def _bind(self, col: Column) -> str:
        """Expression passing a parameter's value to the driver."""
        name = self.param_names[col.name]
        data_type = col.data_type
        if isinstance(data_type, Json):
            expr = f"dumps({name})"
        elif isinstance(data_type, Array) and isinstance(data_type.element, Json):
            expr = f"[dumps(_v) for _v in {name}]"
        else:
            return name
        self.imports.add(Import("json", "dumps"))
        if col.is_nullable:
            return f"None if {name} is None else {expr}"
        return expr

    def _where_key(self, fn: PlannedFunction) -> str:
        return " AND ".join(
            f"{quote_ident(p.column.name)} = {self._placeholder(p.column)}" for p in fn.key_params
        )

    def _key_binds(self, fn: PlannedFunction) -> List[str]:
        return [self._bind(p.column) for p in fn.key_params]

    # -- records ----------------------------------------------------------------

    def render_record(self) -> List[str]:
        lines = [
            "@dataclass",
            f"class {self.record_name}:",
            f'    """Row of the "{self.table.name}" table."""',
            "",
        ]
        if not self.table.columns:
            lines.append("    pass")
        for col in self.table.columns:
            mapping = self.mappings[col.name]
            line = f"    {self.field_names[col.name]}: {mapping.name}"
            if is_parameterized(col.data_type):
                line += f"  # {col.data_type.sql_name()}"
            lines.append(line)
        return lines

    def _convert_expr(self, data_type: DataType, value: str, nullable: bool) -> str:
        if isinstance(data_type, Enum):
            expr = f"{self.generator.type_mapper.enum_class_name(data_type.name)}({value})"
        elif isinstance(data_type, Array) and isinstance(data_type.element, Enum):
            enum_class = self.generator.type_mapper.enum_class_name(data_type.element.name)
            expr = f"[{enum_class}(_v) for _v in {value}]"
        else:
            return value
        if nullable:
            return f"None if {value} is None else {expr}"
        return expr

    def render_from_row(self) -> List[str]:
        lines = [f"def {self.from_row}(row: Any) -> {self.record_name}:"]
        args = [
            self._convert_expr(col.data_type, f"row[{i}]", col.is_nullable)
            for i, col in enumerate(self.table.columns)
        ]
        if all(arg == f"row[{i}]" for i, arg in enumerate(args)):
            lines.append(f"    return {self.record_name}(*row)")
            return lines
        lines.append(f"    return {self.record_name}(")
        lines.extend(f"        {arg}," for arg in args)
        lines.append("    )")
        return lines

    # -- functions --------------------------------------------------------------

    def _return_annotation(self, shape: ReturnShape) -> str:
        if shape is ReturnShape.OPTIONAL_RECORD:
            return f"{self.record_name} | None"
        if shape is ReturnShape.RECORD_LIST:
            return f"list[{self.record_name}]"
        if shape is ReturnShape.BOOL:
            return "bool"
        return self.record_name

    def _function_name(self, fn: PlannedFunction) -> str:
        if self.flat and self.style is FunctionStyle.STANDALONE:
            return f"{self.module}_{fn.name}"
        return fn.name

    def _signature(self, fn: PlannedFunction) -> List[str]:
        params = ["self"] if self.style is FunctionStyle.CLASS else ["conn: Any"]
        for p in fn.key_params:
            params.append(f"{self.param_names[p.column.name]}: {self._mapping(p).name}")
        if fn.params:
            params.append("*")
        for p in fn.params:
            mapping = self._mapping(p)
            name = self.param_names[p.column.name]
            if p.unsettable:
                params.append(f"{name}: {unset_annotation(mapping)} = {SENTINEL_NAME}")
            elif mapping.nullable:
                params.append(f"{name}: {mapping.name} = None")
            else:
                params.append(f"{name}: {mapping.name}")

        head = f"def {self._function_name(fn)}("
        tail = f") -> {self._return_annotation(fn.returns)}:"
        one_line = head + ", ".join(params) + tail
        indent = 4 if self.style is FunctionStyle.CLASS else 0
        if len(one_line) + indent <= MAX_LINE:
            return [one_line]
        return [head] + [f"    {p}," for p in params] + [tail]

    def _conn(self) -> str:
        return "self.conn" if self.style is FunctionStyle.CLASS else "conn"

    def _execute(self, sql_expr: str, params_expr: str, fetch: str) -> List[str]:
        lines = [f"_cur = {self._conn()}.cursor()", "try:", f"    _cur.execute({sql_expr}, {params_expr})"]
        if fetch == "one":
            lines.append("    _row = _cur.fetchone()")
        elif fetch == "all":
            lines.append("    _rows = _cur.fetchall()")
        elif fetch == "rowcount":
            lines.append("    return _cur.rowcount > 0")
        lines += ["finally:", "    _cur.close()"]
        return lines

    def _optional_return(self) -> str:
        return f"return None if _row is None else {self.from_row}(_row)"

    def _docstring(self, text: str) -> List[str]:
        return [f'    """{text}"""']

    def render_get_by_pk(self, fn: PlannedFunction) -> List[str]:
        sql = f"SELECT {self.select_list} FROM {self.qualified_table} WHERE {self._where_key(fn)}"
        body = self._execute(repr(sql), _tuple_expr(self._key_binds(fn)), "one")
        body.append(self._optional_return())
        return self._signature(fn) + self._docstring("Fetch one row by primary key.") + _indent(body)

    def render_get_all(self, fn: PlannedFunction) -> List[str]:
        sql = f"SELECT {self.select_list} FROM {self.qualified_table}"
        body = self._execute(repr(sql), "()", "all")
        body.append(f"return [{self.from_row}(_row) for _row in _rows]")
        return self._signature(fn) + self._docstring("Fetch every row.") + _indent(body)

    def render_insert(self, fn: PlannedFunction) -> List[str]:
        if fn.insert_shape is InsertShape.ALL_DEFAULTS:
            sql = f"INSERT INTO {self.qualified_table} DEFAULT VALUES RETURNING {self.select_list}"
            params_expr = "()"
            doc = "Insert a row made entirely of column defaults."
        else:
            columns = ", ".join(quote_ident(p.column.name) for p in fn.params)
            placeholders = ", ".join(self._placeholder(p.column) for p in fn.params)
            sql = (
                f"INSERT INTO {self.qualified_table} ({columns}) VALUES ({placeholders}) "
                f"RETURNING {self.select_list}"
            )
            params_expr = _tuple_expr([self._bind(p.column) for p in fn.params])
            doc = "Insert a row and return it as stored."
        body = self._execute(repr(sql), params_expr, "one")
        body.append(f"return {self.from_row}(_row)")
        return self._signature(fn) + self._docstring(doc) + _indent(body)

    def _collect_set(self, fn: PlannedFunction, upsert: bool) -> List[str]:
        lines = []
        for p in fn.params:
            name = self.param_names[p.column.name]
            column = quote_ident(p.column.name)
            placeholder = self._placeholder(p.column)
            assignment = f"{column} = EXCLUDED.{column}" if upsert else f"{column} = {placeholder}"
            lines.append(f"if {name} is not {SENTINEL_NAME}:")
            if upsert:
                lines.append(f"    _columns.append({column!r})")
                lines.append(f"    _values.append({placeholder!r})")
            lines.append(f"    _sets.append({assignment!r})")
            lines.append(f"    _params.append({self._bind(p.column)})")
        return lines

    def render_update(self, fn: PlannedFunction) -> List[str]:
        doc = "Update the supplied fields; unset fields are left unchanged."
        where = self._where_key(fn)
        key_binds = self._key_binds(fn)
        reselect = f"SELECT {self.select_list} FROM {self.qualified_table} WHERE {where}"
        if not fn.params:
            body = self._execute(repr(reselect), _tuple_expr(key_binds), "one")
            body.append(self._optional_return())
            return self._signature(fn) + self._docstring(doc) + _indent(body)

        update_head = f"UPDATE {self.qualified_table} SET "
        update_tail = f" WHERE {where} RETURNING {self.select_list}"
        body = ["_sets: list[str] = []", "_params: list[Any] = []"]
        body += self._collect_set(fn, upsert=False)
        body += [
            "if _sets:",
            f"    _sql = {update_head!r} + \", \".join(_sets) + {update_tail!r}",
            "else:",
            "    # nothing to change, return the current row",
            f"    _sql = {reselect!r}",
        ]
        body += [f"_params.extend({_tuple_expr(key_binds)})"]
        body += self._execute("_sql", "tuple(_params)", "one")
        body.append(self._optional_return())
        return self._signature(fn) + self._docstring(doc) + _indent(body)

    def render_delete(self, fn: PlannedFunction) -> List[str]:
        sql = f"DELETE FROM {self.qualified_table} WHERE {self._where_key(fn)}"
        body = self._execute(repr(sql), _tuple_expr(self._key_binds(fn)), "rowcount")
        return self._signature(fn) + self._docstring("Delete one row; return whether it existed.") + _indent(body)

    def render_upsert(self, fn: PlannedFunction) -> List[str]:
        key_columns = [quote_ident(p.column.name) for p in fn.key_params]
        conflict = ", ".join(key_columns)
        noop = f"{key_columns[0]} = EXCLUDED.{key_columns[0]}"
        insert_head = f"INSERT INTO {self.qualified_table} ("
        conflict_clause = f") ON CONFLICT ({conflict}) DO UPDATE SET "
        returning = f" RETURNING {self.select_list}"
        body = [
            f"_columns: list[str] = {key_columns!r}",
            f"_values: list[str] = {[self._placeholder(p.column) for p in fn.key_params]!r}",
            f"_params: list[Any] = [{', '.join(self._key_binds(fn))}]",
            "_sets: list[str] = []",
        ]
        body += self._collect_set(fn, upsert=True)
        body += [
            "if not _sets:",
            "    # conflict still has to update something for RETURNING to yield the row",
            f"    _sets.append({noop!r})",
            "_sql = (",
            f"    {insert_head!r}",
            '    + ", ".join(_columns)',
            "    + \") VALUES (\"",
            '    + ", ".join(_values)',
            f"    + {conflict_clause!r}",
            '    + ", ".join(_sets)',
            f"    + {returning!r}",
            ")",
        ]
        body += self._execute("_sql", "tuple(_params)", "one")
        body.append(f"return {self.from_row}(_row)")
        doc = "Insert the row or update the supplied fields when the key exists."
        return self._signature(fn) + self._docstring(doc) + _indent(body)

    def render_function(self, fn: PlannedFunction) -> List[str]:
        for p in fn.all_params():
            self._mapping(p)
        renderers = {
            FunctionKind.GET_BY_PK: self.render_get_by_pk,
            FunctionKind.GET_ALL: self.render_get_all,
            FunctionKind.INSERT: self.render_insert,
            FunctionKind.UPDATE: self.render_update,
            FunctionKind.DELETE: self.render_delete,
            FunctionKind.UPSERT: self.render_upsert,
        }
        return renderers[fn.kind](fn)

    def render(self) -> TableUnit:
        functions = self.function_set.functions()
        uses_sentinel = any(p.unsettable for fn in functions for p in fn.params)
        if uses_sentinel and not self.flat:
            self.imports.update(sentinel_imports())

        blocks = [self.render_record(), self.render_from_row()]
        if self.style is FunctionStyle.CLASS:
            class_lines = [
                f"class {self.repository_name}:",
                f'    """Data access for the "{self.table.name}" table."""',
                "",
                "    def __init__(self, conn: Any) -> None:",
                "        self.conn = conn",
            ]
            for fn in functions:
                class_lines.append("")
                class_lines.extend(_indent(self.render_function(fn)))
            blocks.append(class_lines)
        else:
            for fn in functions:
                blocks.append(self.render_function(fn))

        body: List[str] = []
        for block in blocks:
            if body:
                body += ["", ""]
            body += block

        return TableUnit(
            table=self.table,
            module=self.module,
            record_name=self.record_name,
            repository_name=self.repository_name if self.style is FunctionStyle.CLASS else None,
            function_names=[self._function_name(fn) for fn in functions],
            body=body,
            imports=self.imports,
            enums=list(self.enums),
        )


def render_enum(enum_def: EnumDef, enum_class: str) -> List[str]:
    lines = [
        f"class {enum_class}(str, Enum):",
        f'    """Values of the "{enum_def.name}" enum type."""',
        "",
    ]
    if not enum_def.labels:
        lines.append("    pass")
    seen: Set[str] = set()
    for label in enum_def.labels:
        member = enum_member_name(label)
        base, n = member, 2
        while member in seen:
            member = f"{base}_{n}"
            n += 1
        seen.add(member)
        lines.append(f"    {member} = {label!r}")
    return lines


def _join_blocks(blocks: List[List[str]]) -> List[str]:
    out: List[str] = []
    for block in blocks:
        if not block:
            continue
        if out:
            out += ["", ""]
        out += block
    return out


def _module_source(docstring: str, imports: ImportSet, blocks: List[List[str]]) -> str:
    lines = [f'"""{docstring}', "", GENERATED_NOTICE, '"""']
    rendered_imports = imports.render()
    if rendered_imports:
        lines += [""] + rendered_imports
    body = _join_blocks(blocks)
    if body:
        lines += ["", ""] + body
    return "\n".join(lines) + "\n"


class PythonGenerator(CodeGenerator):
    """Generates typed Python data access code from a schema."""

    language = "python"

    def __init__(
        self,
        schema: Schema,
        mode: OutputMode = OutputMode.LIBRARY,
        style: FunctionStyle = FunctionStyle.STANDALONE,
    ):
        super().__init__(schema, mode, style)
        self.type_mapper = PythonTypeMapper(schema.enums.values())
        self.modules = self._module_names()
        self.class_names = self._class_names()

    def _module_names(self) -> Dict[str, str]:
        modules: Dict[str, str] = {}
        used: Set[str] = set()
        for table in self.schema.tables:
            name = py_identifier(table.name)
            if self.mode is OutputMode.LIBRARY and name in RESERVED_MODULES:
                name += "_table"
            base, n = name, 2
            while name in used:
                name = f"{base}_{n}"
                n += 1
            used.add(name)
            modules[table.name] = name
        return modules

    def _class_names(self) -> Dict[str, Tuple[str, str]]:
        """Record and repository class names per table, unique across the schema."""
        taken = set(RESERVED_GLOBALS) | set(self.type_mapper.enum_class_names())
        names: Dict[str, Tuple[str, str]] = {}
        for table in self.schema.tables:
            base = class_name(table.get_singular_name())
            candidate, n = base, 2
            while f"{candidate}Record" in taken or f"{candidate}Repository" in taken:
                candidate = f"{base}{n}"
                n += 1
            names[table.name] = (f"{candidate}Record", f"{candidate}Repository")
            taken.update(names[table.name])
        return names

    def render_table(self, function_set: FunctionSet) -> TableUnit:
        return _TableRenderer(self, function_set, self.modules[function_set.table.name]).render()

    def render_enums(self, enum_defs: List[EnumDef]) -> List[str]:
        return _join_blocks([render_enum(e, self.type_mapper.enum_class_name(e.name)) for e in enum_defs])

    def generate(self, function_sets: Mapping[str, FunctionSet]) -> GeneratedCode:
        logger.info(
            "Generating Python code (mode=%s, style=%s)", self.mode.value, self.style.value,
        )
        units = []
        for table in self.schema.tables:
            function_set = function_sets.get(table.name)
            if function_set is None or function_set.table != table:
                raise PlanningInconsistencyError(table.name, "*", "plan")
            units.append(self.render_table(function_set))
            logger.debug("Rendered table %s", table.name)

        if self.mode is OutputMode.FLAT:
            result = GeneratedCode(mode=self.mode, source=self._assemble_flat(units))
            logger.info("Generated flat module with %d tables", len(units))
        else:
            result = GeneratedCode(mode=self.mode, files=self._assemble_library(units))
            logger.info("Generated %d files", len(result.files))
        return result

    def _assemble_library(self, units: List[TableUnit]) -> Dict[str, str]:
        files: Dict[str, str] = {}
        files[f"{SUPPORT_MODULE}.py"] = _module_source(
            "Shared support declarations for generated data access code.",
            support_imports(),
            [render_support()],
        )
        enum_defs = list(self.schema.enums.values())
        if enum_defs:
            files[f"{ENUMS_MODULE}.py"] = _module_source(
                f'Enum types of schema "{self.schema.name}".',
                ImportSet([Import("enum", "Enum")]),
                [self.render_enums(enum_defs)],
            )
        for unit in units:
            files[f"{unit.module}.py"] = _module_source(
                f'Data access for the "{unit.table.name}" table.',
                unit.imports,
                [unit.body],
            )
        files["__init__.py"] = self._render_init(units)
        return files

    def _render_init(self, units: List[TableUnit]) -> str:
        imports = ImportSet([
            Import("." + SUPPORT_MODULE, SENTINEL_NAME),
            Import("." + SUPPORT_MODULE, SENTINEL_TYPE),
        ])
        exports = [SENTINEL_NAME, SENTINEL_TYPE]
        for enum_def in self.schema.enums.values():
            enum_class = self.type_mapper.enum_class_name(enum_def.name)
            imports.add(Import("." + ENUMS_MODULE, enum_class))
            exports.append(enum_class)
        for unit in units:
            imports.add(Import("." + unit.module, unit.record_name))
            exports.append(unit.record_name)
            if unit.repository_name:
                imports.add(Import("." + unit.module, unit.repository_name))
                exports.append(unit.repository_name)

        lines = [f'"""Data access package for schema "{self.schema.name}".', "", GENERATED_NOTICE, '"""', ""]
        if units:
            lines.append("from . import " + ", ".join(sorted(unit.module for unit in units)))
        lines += imports.render()
        lines += ["", "__all__ = ["]
        lines += [f"    {name!r}," for name in sorted(set(exports))]
        lines.append("]")
        return "\n".join(lines) + "\n"

    def _assemble_flat(self, units: List[TableUnit]) -> str:
        imports = support_imports()
        for unit in units:
            imports = imports.merge(unit.imports)
        imports = imports.without_relative()

        # Each enum is declared once, in first-reference order, ahead of all tables
        declared: List[str] = []
        for unit in units:
            for name in unit.enums:
                if name not in declared:
                    declared.append(name)
        for name in self.schema.enums:
            if name not in declared:
                declared.append(name)
        enum_defs = [self.schema.enums[name] for name in declared]

        blocks = [render_support()]
        if enum_defs:
            blocks.append(self.render_enums(enum_defs))
        blocks += [unit.body for unit in units]
        return _module_source(f'Data access for schema "{self.schema.name}".', imports, blocks)
