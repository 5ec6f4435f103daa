"""Accumulator for the imports an output unit needs."""

from typing import Dict, Iterable, Iterator, List, Set

from .type_mappers import Import


class ImportSet:
    """A deduplicating set of ``from module import name`` lines.

    Each output unit owns one; flat output merges them.
    """

    def __init__(self, imports: Iterable[Import] = ()):
        self._imports: Set[Import] = set(imports)

    def add(self, imp: Import):
        self._imports.add(imp)

    def update(self, imports: Iterable[Import]):
        self._imports.update(imports)

    def merge(self, other: "ImportSet") -> "ImportSet":
        return ImportSet(self._imports | other._imports)

    def without_relative(self) -> "ImportSet":
        return ImportSet(imp for imp in self._imports if not imp.is_relative)

    def __contains__(self, imp: Import) -> bool:
        return imp in self._imports

    def __len__(self) -> int:
        return len(self._imports)

    def __iter__(self) -> Iterator[Import]:
        return iter(sorted(self._imports))

    def _group(self, relative: bool) -> List[str]:
        by_module: Dict[str, List[str]] = {}
        for imp in self._imports:
            if imp.is_relative == relative:
                by_module.setdefault(imp.module, []).append(imp.name)
        return [
            f"from {module} import {', '.join(sorted(names))}"
            for module, names in sorted(by_module.items())
        ]

    def render(self) -> List[str]:
        """Absolute imports, then a blank line, then relative imports."""
        absolute = self._group(relative=False)
        relative = self._group(relative=True)
        if absolute and relative:
            return absolute + [""] + relative
        return absolute + relative
