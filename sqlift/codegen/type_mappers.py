"""Target-language type mapping strategies."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Type

from ..database.models import (
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
from ..errors import ConfigError, UnmappedTypeError
from .naming import enum_class_names


@dataclass(frozen=True, order=True)
class Import:
    """A single ``from module import name`` requirement."""
    module: str
    name: str

    @property
    def is_relative(self) -> bool:
        return self.module.startswith(".")


@dataclass(frozen=True)
class TypeMapping:
    """Target-language type for one column type and nullability.

    ``source`` keeps the database type (length, precision) for documentation;
    it never influences ``base_name``.
    """
    base_name: str
    name: str
    imports: FrozenSet[Import]
    nullable: bool
    source: DataType


class TypeMapper(ABC):
    """Abstract base class for mapping database types to a target language."""

    language: str = ""

    @abstractmethod
    def map(self, data_type: DataType, nullable: bool = False) -> TypeMapping:
        """Map a data type to a target type.

        Raises:
            UnmappedTypeError: the backend has no mapping for this type
        """
        pass


class PythonTypeMapper(TypeMapper):
    """Type mapper producing Python annotations."""

    language = "python"

    ENUM_MODULE = ".enums"

    _SIMPLE = {
        SmallInt: ("int", None),
        Integer: ("int", None),
        BigInt: ("int", None),
        Boolean: ("bool", None),
        Text: ("str", None),
        FixedText: ("str", None),
        VarText: ("str", None),
        Real: ("float", None),
        DoublePrecision: ("float", None),
        Numeric: ("Decimal", Import("decimal", "Decimal")),
        Timestamp: ("datetime", Import("datetime", "datetime")),
        Date: ("date", Import("datetime", "date")),
        Time: ("time", Import("datetime", "time")),
        Uuid: ("UUID", Import("uuid", "UUID")),
        Json: ("dict[str, Any]", Import("typing", "Any")),
        Binary: ("bytes", None),
    }

    def __init__(self, enums: Iterable[EnumDef] = ()):
        self._enum_classes: Dict[str, str] = enum_class_names(e.name for e in enums)

    def enum_class_names(self) -> List[str]:
        return list(self._enum_classes.values())

    def enum_class_name(self, enum_name: str) -> str:
        try:
            return self._enum_classes[enum_name]
        except KeyError:
            raise UnmappedTypeError(enum_name, self.language, reason="enum type was not introspected")

    def _base(self, data_type: DataType):
        simple = self._SIMPLE.get(type(data_type))
        if simple is not None:
            name, imp = simple
            return name, frozenset([imp]) if imp else frozenset()
        if isinstance(data_type, Array):
            inner_name, inner_imports = self._base(data_type.element)
            return f"list[{inner_name}]", inner_imports
        if isinstance(data_type, Enum):
            class_name = self.enum_class_name(data_type.name)
            return class_name, frozenset([Import(self.ENUM_MODULE, class_name)])
        raise UnmappedTypeError(data_type.sql_name(), self.language)

    def map(self, data_type: DataType, nullable: bool = False) -> TypeMapping:
        base_name, imports = self._base(data_type)
        return TypeMapping(
            base_name=base_name,
            name=f"{base_name} | None" if nullable else base_name,
            imports=imports,
            nullable=nullable,
            source=data_type,
        )


TYPE_MAPPERS: Dict[str, Type[TypeMapper]] = {
    "python": PythonTypeMapper,
}

# Languages with a planned backend but no implementation yet
RESERVED_LANGUAGES = ("typescript", "go")


def get_type_mapper(language: str, enums: Iterable[EnumDef] = ()) -> TypeMapper:
    """Create the type mapper for a target language."""
    if language in TYPE_MAPPERS:
        return TYPE_MAPPERS[language](enums)
    if language in RESERVED_LANGUAGES:
        raise ConfigError(
            f"Target language '{language}' is not implemented yet",
            details={"language": language},
        )
    raise ConfigError(
        f"Unknown target language '{language}'",
        details={"language": language},
    )
