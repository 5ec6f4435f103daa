"""Tests for target-language type mapping."""

import pytest

from sqlift.codegen.type_mappers import (
    RESERVED_LANGUAGES,
    Import,
    PythonTypeMapper,
    get_type_mapper,
)
from sqlift.database.models import (
    Array,
    BigInt,
    Binary,
    Boolean,
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
from sqlift.errors import ConfigError, UnmappedTypeError


@pytest.fixture
def mapper(order_status_enum):
    return PythonTypeMapper([order_status_enum])


class TestPythonTypeMapper:
    """Test PythonTypeMapper."""

    @pytest.mark.parametrize("data_type,name", [
        (SmallInt(), "int"),
        (Integer(), "int"),
        (BigInt(), "int"),
        (Boolean(), "bool"),
        (Text(), "str"),
        (FixedText(3), "str"),
        (VarText(255), "str"),
        (Real(), "float"),
        (DoublePrecision(), "float"),
        (Binary(), "bytes"),
    ])
    def test_builtin_types_need_no_imports(self, mapper, data_type, name):
        mapping = mapper.map(data_type)
        assert mapping.name == name
        assert mapping.imports == frozenset()

    @pytest.mark.parametrize("data_type,name,imp", [
        (Numeric(10, 2), "Decimal", Import("decimal", "Decimal")),
        (Timestamp(tz=True), "datetime", Import("datetime", "datetime")),
        (Date(), "date", Import("datetime", "date")),
        (Time(), "time", Import("datetime", "time")),
        (Uuid(), "UUID", Import("uuid", "UUID")),
        (Json(binary=True), "dict[str, Any]", Import("typing", "Any")),
    ])
    def test_types_with_imports(self, mapper, data_type, name, imp):
        mapping = mapper.map(data_type)
        assert mapping.name == name
        assert mapping.imports == frozenset([imp])

    def test_nullable_wraps_name_only(self, mapper):
        plain = mapper.map(Timestamp(tz=True))
        nullable = mapper.map(Timestamp(tz=True), nullable=True)
        assert nullable.name == "datetime | None"
        assert nullable.base_name == "datetime"
        assert nullable.imports == plain.imports

    def test_precision_does_not_change_target_type(self, mapper):
        assert mapper.map(Numeric(10, 2)).name == mapper.map(Numeric(38, 0)).name
        assert mapper.map(VarText(10)).name == mapper.map(Text()).name

    def test_source_kept_for_documentation(self, mapper):
        assert mapper.map(Numeric(10, 2)).source == Numeric(10, 2)

    def test_array_propagates_element_imports(self, mapper):
        mapping = mapper.map(Array(Uuid()), nullable=True)
        assert mapping.name == "list[UUID] | None"
        assert mapping.imports == frozenset([Import("uuid", "UUID")])

    def test_enum_maps_to_generated_class(self, mapper):
        mapping = mapper.map(Enum("order_status"))
        assert mapping.name == "OrderStatus"
        assert mapping.imports == frozenset([Import(".enums", "OrderStatus")])
        assert all(imp.is_relative for imp in mapping.imports)

    def test_enum_array(self, mapper):
        assert mapper.map(Array(Enum("order_status"))).name == "list[OrderStatus]"

    def test_enum_class_avoids_generated_names(self):
        mapper = PythonTypeMapper([
            EnumDef(name="decimal", labels=("exact",)),
            EnumDef(name="unset_type", labels=("a",)),
            EnumDef(name="order_status", labels=("pending",)),
            EnumDef(name="OrderStatus", labels=("open",)),
        ])
        assert mapper.map(Enum("decimal")).name == "DecimalEnum"
        assert mapper.map(Enum("unset_type")).name == "UnsetTypeEnum"
        assert mapper.map(Enum("order_status")).name == "OrderStatus"
        assert mapper.map(Enum("OrderStatus")).name == "OrderStatus2"

    def test_unknown_enum_raises(self, mapper):
        with pytest.raises(UnmappedTypeError) as exc_info:
            mapper.map(Enum("mood"))
        assert exc_info.value.language == "python"
        assert exc_info.value.code == "UNMAPPED_TYPE"

    def test_mapping_is_deterministic(self, mapper):
        assert mapper.map(Array(Numeric(5, 1)), True) == mapper.map(Array(Numeric(5, 1)), True)


class TestTypeMapperRegistry:
    """Test backend lookup by language name."""

    def test_python(self, order_status_enum):
        mapper = get_type_mapper("python", [order_status_enum])
        assert isinstance(mapper, PythonTypeMapper)
        assert mapper.map(Enum("order_status")).name == "OrderStatus"

    @pytest.mark.parametrize("language", RESERVED_LANGUAGES)
    def test_reserved_languages_not_implemented(self, language):
        with pytest.raises(ConfigError) as exc_info:
            get_type_mapper(language)
        assert "not implemented yet" in str(exc_info.value)

    def test_unknown_language(self):
        with pytest.raises(ConfigError) as exc_info:
            get_type_mapper("cobol")
        assert "Unknown target language 'cobol'" in str(exc_info.value)
