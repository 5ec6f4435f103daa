"""Code generation module for sqlift.

This module turns a ``Schema`` into typed data access code: the planner decides
which CRUD functions each table gets, the type mappers pick target types, and
a language generator renders the result.
"""

from typing import Dict, Mapping, Optional, Type

from ..database.models import Schema
from ..errors import ConfigError
from .base import CodeGenerator, FunctionStyle, GeneratedCode, OutputMode
from .imports import ImportSet
from .planner import (
    FunctionKind,
    FunctionSet,
    InsertShape,
    Param,
    PlannedFunction,
    ReturnShape,
    plan,
    plan_schema,
)
from .python import PythonGenerator
from .type_mappers import (
    RESERVED_LANGUAGES,
    TYPE_MAPPERS,
    Import,
    PythonTypeMapper,
    TypeMapper,
    TypeMapping,
    get_type_mapper,
)

GENERATORS: Dict[str, Type[CodeGenerator]] = {
    "python": PythonGenerator,
}


def get_generator_class(language: str) -> Type[CodeGenerator]:
    """Look up the generator registered for a target language."""
    if language in GENERATORS:
        return GENERATORS[language]
    # Reserved and unknown languages get the type mapper's error
    get_type_mapper(language)
    raise ConfigError(
        f"No code generator for language '{language}'",
        details={"language": language},
    )


def emit(
    schema: Schema,
    function_sets: Optional[Mapping[str, FunctionSet]] = None,
    mode: OutputMode = OutputMode.LIBRARY,
    style: FunctionStyle = FunctionStyle.STANDALONE,
    language: str = "python",
) -> GeneratedCode:
    """Render a schema into source code.

    Args:
        schema: Introspected schema
        function_sets: Planned functions per table; planned here when omitted
        mode: One file per table, or a single flat module
        style: Free functions or per-table repository classes
        language: Target language name

    Returns:
        GeneratedCode holding every rendered file; nothing is written
    """
    generator_class = get_generator_class(language)
    if function_sets is None:
        function_sets = plan_schema(schema)
    return generator_class(schema, OutputMode(mode), FunctionStyle(style)).generate(function_sets)


__all__ = [
    # Generation
    "CodeGenerator",
    "PythonGenerator",
    "GeneratedCode",
    "OutputMode",
    "FunctionStyle",
    "ImportSet",
    "GENERATORS",
    "get_generator_class",
    "emit",
    # Planning
    "FunctionKind",
    "FunctionSet",
    "InsertShape",
    "Param",
    "PlannedFunction",
    "ReturnShape",
    "plan",
    "plan_schema",
    # Type mapping
    "Import",
    "TypeMapper",
    "TypeMapping",
    "PythonTypeMapper",
    "TYPE_MAPPERS",
    "RESERVED_LANGUAGES",
    "get_type_mapper",
]
