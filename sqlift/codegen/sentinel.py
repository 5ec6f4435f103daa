"""Partial-update sentinel emitted into generated code.

Optional ``update``/``upsert`` parameters have three states: left at ``UNSET``
(column untouched), ``None`` (set to NULL) or a value. The sentinel is an enum
member so type checkers can narrow ``x is not UNSET`` and tell it apart from
``None``.
"""

from typing import List

from .imports import ImportSet
from .type_mappers import Import, TypeMapping

SUPPORT_MODULE = "_support"
SENTINEL_NAME = "UNSET"
SENTINEL_TYPE = "UnsetType"


def unset_annotation(mapping: TypeMapping) -> str:
    """Annotation for a parameter that may also be left unset."""
    return f"{mapping.name} | {SENTINEL_TYPE}"


def support_imports() -> ImportSet:
    """Imports the support declarations themselves need."""
    return ImportSet([Import("enum", "Enum"), Import("typing", "Final")])


def sentinel_imports() -> ImportSet:
    """Imports a library-mode table module needs to use the sentinel."""
    return ImportSet([
        Import("." + SUPPORT_MODULE, SENTINEL_NAME),
        Import("." + SUPPORT_MODULE, SENTINEL_TYPE),
    ])


def render_support() -> List[str]:
    """Declarations of the sentinel type and its single value."""
    return [
        f"class {SENTINEL_TYPE}(Enum):",
        '    """Type of the marker for parameters the caller did not supply."""',
        "",
        f'    {SENTINEL_NAME} = "{SENTINEL_NAME}"',
        "",
        "    def __repr__(self) -> str:",
        f'        return "{SENTINEL_NAME}"',
        "",
        "    def __bool__(self) -> bool:",
        "        return False",
        "",
        "",
        f"{SENTINEL_NAME}: Final = {SENTINEL_TYPE}.{SENTINEL_NAME}",
    ]
