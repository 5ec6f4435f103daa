"""Shared code generation types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

from ..database.models import Schema
from .planner import FunctionSet


class OutputMode(str, Enum):
    """How generated code is split into files."""

    LIBRARY = "library"  # one module per table plus shared modules
    FLAT = "flat"  # everything in a single module


class FunctionStyle(str, Enum):
    """How generated operations are exposed."""

    STANDALONE = "standalone"  # free functions taking the connection first
    CLASS = "class"  # methods on a per-table repository


@dataclass
class GeneratedCode:
    """Result of a generation run.

    Library mode fills ``files`` (relative path -> source); flat mode fills
    ``source``.
    """
    mode: OutputMode
    files: Dict[str, str] = field(default_factory=dict)
    source: Optional[str] = None

    @property
    def is_flat(self) -> bool:
        return self.mode is OutputMode.FLAT


class CodeGenerator(ABC):
    """Abstract base class for language-specific code generators."""

    language: str = ""

    def __init__(
        self,
        schema: Schema,
        mode: OutputMode = OutputMode.LIBRARY,
        style: FunctionStyle = FunctionStyle.STANDALONE,
    ):
        self.schema = schema
        self.mode = mode
        self.style = style

    @abstractmethod
    def generate(self, function_sets: Mapping[str, FunctionSet]) -> GeneratedCode:
        """Render the schema and its planned functions.

        Nothing is returned unless every table renders successfully.
        """
        pass
