"""Tests for the import accumulator."""

from sqlift.codegen.imports import ImportSet
from sqlift.codegen.type_mappers import Import


class TestImportSet:
    """Test ImportSet."""

    def test_deduplicates(self):
        imports = ImportSet([Import("decimal", "Decimal")])
        imports.add(Import("decimal", "Decimal"))
        imports.update([Import("uuid", "UUID"), Import("uuid", "UUID")])

        assert len(imports) == 2
        assert Import("uuid", "UUID") in imports

    def test_render_groups_names_per_module(self):
        imports = ImportSet([
            Import("typing", "Final"),
            Import("datetime", "datetime"),
            Import("typing", "Any"),
            Import("datetime", "date"),
        ])
        assert imports.render() == [
            "from datetime import date, datetime",
            "from typing import Any, Final",
        ]

    def test_relative_imports_rendered_last(self):
        imports = ImportSet([Import(".enums", "Mood"), Import("typing", "Any")])
        assert imports.render() == [
            "from typing import Any",
            "",
            "from .enums import Mood",
        ]

    def test_merge_leaves_inputs_untouched(self):
        left = ImportSet([Import("typing", "Any")])
        right = ImportSet([Import("uuid", "UUID")])
        merged = left.merge(right)

        assert list(merged) == [Import("typing", "Any"), Import("uuid", "UUID")]
        assert len(left) == 1
        assert len(right) == 1

    def test_without_relative(self):
        imports = ImportSet([Import(".enums", "Mood"), Import("typing", "Any")])
        assert list(imports.without_relative()) == [Import("typing", "Any")]

    def test_empty(self):
        assert ImportSet().render() == []
