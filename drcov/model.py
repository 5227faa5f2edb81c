"""data model for drcov coverage traces, with validation and lookups"""

import dataclasses
from collections import Counter
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, List, Optional

from .errors import ValidationError

if TYPE_CHECKING:
    from .builder import CoverageBuilder

# --- Constants ---
SUPPORTED_FILE_VERSION = 2
DEFAULT_FLAVOR = "drcov"
VERSION_PREFIX = "DRCOV VERSION: "
FLAVOR_PREFIX = "DRCOV FLAVOR: "

_ADDRESS_MASK = (1 << 64) - 1


class ModuleTableVersion(IntEnum):
    """Module table format versions, ordered oldest to newest."""

    LEGACY = 1
    V2 = 2
    V3 = 3
    V4 = 4

    def has_columns_line(self) -> bool:
        """Versioned tables declare their layout on a Columns line."""
        return self >= ModuleTableVersion.V2

    def has_containing_id(self) -> bool:
        return self >= ModuleTableVersion.V3

    def has_offset(self) -> bool:
        return self >= ModuleTableVersion.V4

    def base_column(self) -> str:
        """Name under which the module base address is written."""
        return "start" if self >= ModuleTableVersion.V3 else "base"


@dataclasses.dataclass
class FileHeader:
    """DrCov file header containing version and tool information."""

    version: int = SUPPORTED_FILE_VERSION
    flavor: str = DEFAULT_FLAVOR

    def to_string(self) -> str:
        """Serializes the header to its string representation."""
        return f"{VERSION_PREFIX}{self.version}\n" f"{FLAVOR_PREFIX}{self.flavor}\n"


@dataclasses.dataclass(frozen=True)
class ModuleEntry:
    """Represents a loaded module/library in the traced process."""

    id: int
    base: int
    end: int
    path: str
    entry: int = 0
    containing_id: Optional[int] = None  # v3+: id of the parent module
    offset: Optional[int] = None  # v4+: file offset within the parent
    checksum: Optional[int] = None
    timestamp: Optional[int] = None

    @property
    def size(self) -> int:
        """Returns the size of the module in memory, zero for inverted ranges."""
        return max(self.end - self.base, 0)

    def contains_address(self, addr: int) -> bool:
        """Checks if a given absolute address is within [base, end)."""
        return self.base <= addr < self.end


@dataclasses.dataclass(frozen=True)
class BasicBlock:
    """Represents an executed basic block."""

    start: int  # uint32: offset from module base
    size: int  # uint16: size of the basic block
    module_id: int  # uint16: ID of the module containing this block

    def absolute_address(self, module: ModuleEntry) -> int:
        """Calculates the absolute memory address of the basic block."""
        if self.module_id != module.id:
            raise ValueError("Mismatched module ID for basic block.")
        return (module.base + self.start) & _ADDRESS_MASK


@dataclasses.dataclass
class CoverageData:
    """Complete coverage data structure."""

    header: FileHeader
    modules: List[ModuleEntry]
    basic_blocks: List[BasicBlock]
    module_version: ModuleTableVersion = ModuleTableVersion.V2

    @staticmethod
    def builder() -> "CoverageBuilder":
        """Returns a new CoverageBuilder."""
        from .builder import CoverageBuilder

        return CoverageBuilder()

    def validate(self) -> None:
        """Raises ValidationError if the data breaks an integrity invariant."""
        validate(self)

    def find_module(self, module_id: int) -> Optional[ModuleEntry]:
        """Finds a module by its ID."""
        if 0 <= module_id < len(self.modules):
            module = self.modules[module_id]
            # slot and stored id disagree only for unvalidated data
            if module.id == module_id:
                return module
        return None

    def find_module_by_address(self, addr: int) -> Optional[ModuleEntry]:
        """
        Finds the module that contains a given absolute address.
        Overlapping modules resolve to the first one in table order.
        """
        return next((m for m in self.modules if m.contains_address(addr)), None)

    def get_coverage_stats(self) -> Dict[int, int]:
        """
        Calculates the number of basic blocks executed per module.
        Modules without any blocks are left out of the result.
        """
        return dict(Counter(bb.module_id for bb in self.basic_blocks))


def validate(data: CoverageData) -> None:
    """
    Checks the integrity of the coverage data:
     - module ids are exactly 0..n-1 in table order
     - every basic block references an existing module

    Raises ValidationError describing the first violation found.
    """
    for i, module in enumerate(data.modules):
        if module.id != i:
            raise ValidationError(f"Non-sequential module ID {module.id} at index {i}")

    num_modules = len(data.modules)
    for i, bb in enumerate(data.basic_blocks):
        if not 0 <= bb.module_id < num_modules:
            raise ValidationError(
                f"Basic block {i} references invalid module ID: {bb.module_id}"
            )
