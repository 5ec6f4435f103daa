"""Error types for sqlift."""

from typing import Optional, Dict, Any


class SqliftError(Exception):
    """Base exception for sqlift errors."""

    def __init__(self, message: str, code: str = "SQLIFT_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured reporting."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(SqliftError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class IntrospectionError(SqliftError):
    """Error reading the database catalog."""

    def __init__(self, schema: str, message: str, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details["schema"] = schema
        super().__init__(
            f"Failed to introspect schema '{schema}': {message}",
            code="INTROSPECTION_ERROR",
            details=details,
        )
        self.schema = schema


class UnsupportedTypeError(SqliftError):
    """A column uses a database type that sqlift does not model.

    Raised during introspection. The type is never coerced into an enum.
    """

    def __init__(
        self,
        type_name: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        family: Optional[str] = None,
    ):
        location = ""
        if table and column:
            location = f" on column '{table}.{column}'"
        elif table:
            location = f" in table '{table}'"
        kind = f" ({family} types are not supported)" if family else ""
        super().__init__(
            f"Unsupported database type '{type_name}'{location}{kind}",
            code="UNSUPPORTED_TYPE",
            details={
                "type": type_name,
                "table": table,
                "column": column,
                "family": family,
            },
        )
        self.type_name = type_name
        self.table = table
        self.column = column
        self.family = family

    def with_location(self, table: str, column: str) -> "UnsupportedTypeError":
        """Return a copy of this error that names the offending column."""
        return UnsupportedTypeError(self.type_name, table=table, column=column, family=self.family)


class UnmappedTypeError(SqliftError):
    """The target language backend has no mapping for a valid data type.

    This signals a missing backend implementation, not a data problem.
    """

    def __init__(
        self,
        type_name: str,
        language: str,
        table: Optional[str] = None,
        column: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        location = f" (column '{table}.{column}')" if table and column else ""
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"No {language} mapping for type '{type_name}'{location}{suffix}",
            code="UNMAPPED_TYPE",
            details={
                "type": type_name,
                "language": language,
                "table": table,
                "column": column,
            },
        )
        self.type_name = type_name
        self.language = language
        self.table = table
        self.column = column
        self.reason = reason


class PlanningInconsistencyError(SqliftError):
    """A planned function references a column missing from its table."""

    def __init__(self, table: str, column: str, function: str):
        super().__init__(
            f"Function '{function}' of table '{table}' references unknown column '{column}'",
            code="PLANNING_INCONSISTENCY",
            details={"table": table, "column": column, "function": function},
        )


class SchemaValidationError(SqliftError):
    """The schema model violates one of its invariants."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="SCHEMA_VALIDATION_ERROR", details=details)


class OutputError(SqliftError):
    """Error writing generated code to disk."""

    def __init__(self, path: str, message: str):
        super().__init__(
            f"Failed to write output to '{path}': {message}",
            code="OUTPUT_ERROR",
            details={"path": path},
        )
