"""drcov - read, write and query DrCov coverage traces"""

from .builder import CoverageBuilder, builder
from .codec import dumps, loads, read, write
from .errors import (
    DrCovError,
    DrCovIOError,
    InvalidBBTableError,
    InvalidFormatError,
    InvalidModuleTableError,
    UnsupportedVersionError,
    ValidationError,
)
from .model import (
    BasicBlock,
    CoverageData,
    FileHeader,
    ModuleEntry,
    ModuleTableVersion,
    validate,
)

__all__ = [
    "read",
    "write",
    "loads",
    "dumps",
    "builder",
    "validate",
    "CoverageData",
    "CoverageBuilder",
    "BasicBlock",
    "ModuleEntry",
    "FileHeader",
    "ModuleTableVersion",
    "DrCovError",
    "DrCovIOError",
    "InvalidFormatError",
    "UnsupportedVersionError",
    "InvalidModuleTableError",
    "InvalidBBTableError",
    "ValidationError",
]
