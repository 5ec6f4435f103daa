"""Identifier helpers for generated code."""

import keyword
import re
from typing import Collection, Dict, Iterable, List

from ..database.models import to_pascal_case

# Parameter names the generated function bodies bind themselves
RESERVED_PARAMS = {
    "conn", "self", "dumps", "UNSET",
    "_columns", "_values", "_sets", "_params", "_sql", "_cur", "_row", "_rows", "_v",
}

# Module-level names generated modules import or declare
RESERVED_GLOBALS = {
    "Any", "Final", "Enum", "dataclass", "dumps",
    "Decimal", "datetime", "date", "time", "UUID",
    "UNSET", "UnsetType",
}


def py_identifier(name: str) -> str:
    """Turn a database name into a valid Python identifier."""
    ident = re.sub(r"\W", "_", name)
    if not ident:
        return "_"
    if ident[0].isdigit():
        ident = "_" + ident
    if keyword.iskeyword(ident):
        ident += "_"
    return ident


def class_name(name: str) -> str:
    return py_identifier(to_pascal_case(name))


def param_name(column_name: str, reserved: Collection[str] = RESERVED_PARAMS) -> str:
    name = py_identifier(column_name)
    if name in reserved:
        name += "_"
    return name


def unique_names(names: Iterable[str], taken: Collection[str] = (), sep: str = "_") -> List[str]:
    """Suffix repeats with ``_2``, ``_3``... so no two names (or a taken one) clash."""
    used = set(taken)
    result = []
    for name in names:
        candidate, n = name, 2
        while candidate in used:
            candidate = f"{name}{sep}{n}"
            n += 1
        used.add(candidate)
        result.append(candidate)
    return result


def enum_class_names(enum_names: Iterable[str]) -> Dict[str, str]:
    """Map enum type names to class names that shadow nothing in generated modules.

    ``decimal`` becomes ``DecimalEnum``; ``order_status`` next to ``OrderStatus``
    becomes ``OrderStatus2``.
    """
    names = list(enum_names)
    bases = []
    for name in names:
        base = class_name(name)
        if base in RESERVED_GLOBALS:
            base += "Enum"
        bases.append(base)
    return dict(zip(names, unique_names(bases, RESERVED_GLOBALS, sep="")))


def enum_member_name(label: str) -> str:
    name = re.sub(r"\W", "_", label).upper()
    if not name or name[0].isdigit():
        name = "_" + name
    return name


def quote_ident(name: str) -> str:
    """Double-quote a SQL identifier; ``%`` is doubled for the pyformat paramstyle."""
    return '"' + name.replace('"', '""').replace("%", "%%") + '"'
