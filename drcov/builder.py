"""fluent construction of validated coverage data"""

import dataclasses
from typing import Iterable

from .model import (
    BasicBlock,
    CoverageData,
    FileHeader,
    ModuleEntry,
    ModuleTableVersion,
    validate,
)


class CoverageBuilder:
    """
    Builder pattern for fluently creating CoverageData objects.

    Every method returns the builder so calls can be chained. Nothing is
    checked until build(), which runs the same validation as the parser.
    """

    def __init__(self):
        self._data = CoverageData(
            header=FileHeader(),
            modules=[],
            basic_blocks=[],
            module_version=ModuleTableVersion.V2,
        )

    def set_flavor(self, flavor: str) -> "CoverageBuilder":
        """Sets the 'flavor' (tool name) in the header."""
        self._data.header.flavor = flavor
        return self

    def set_module_version(self, version: ModuleTableVersion) -> "CoverageBuilder":
        """Sets the version of the module table format."""
        self._data.module_version = ModuleTableVersion(version)
        return self

    def add_module(
        self, path: str, base: int, end: int, entry: int = 0
    ) -> "CoverageBuilder":
        """Adds a new module, assigning the next sequential ID."""
        module_id = len(self._data.modules)
        self._data.modules.append(
            ModuleEntry(id=module_id, path=path, base=base, end=end, entry=entry)
        )
        return self

    def add_full_module(self, module: ModuleEntry) -> "CoverageBuilder":
        """Adds a fully specified module; its id must be the next sequential one."""
        self._data.modules.append(module)
        return self

    def add_coverage(self, module_id: int, offset: int, size: int) -> "CoverageBuilder":
        """Adds a new basic block to the coverage data."""
        self._data.basic_blocks.append(
            BasicBlock(start=offset, size=size, module_id=module_id)
        )
        return self

    def add_basic_block(self, block: BasicBlock) -> "CoverageBuilder":
        """Adds a BasicBlock directly."""
        self._data.basic_blocks.append(block)
        return self

    def add_basic_blocks(self, blocks: Iterable[BasicBlock]) -> "CoverageBuilder":
        """Adds a list of basic blocks."""
        self._data.basic_blocks.extend(blocks)
        return self

    def clear_coverage(self) -> "CoverageBuilder":
        """Removes all basic blocks."""
        self._data.basic_blocks.clear()
        return self

    def data(self) -> CoverageData:
        """Returns the internal data object, unvalidated."""
        return self._data

    def build(self) -> CoverageData:
        """Validates and returns a CoverageData detached from this builder."""
        validate(self._data)
        return CoverageData(
            header=dataclasses.replace(self._data.header),
            modules=list(self._data.modules),
            basic_blocks=list(self._data.basic_blocks),
            module_version=self._data.module_version,
        )


def builder() -> CoverageBuilder:
    """Returns a new CoverageBuilder instance for creating CoverageData."""
    return CoverageBuilder()
