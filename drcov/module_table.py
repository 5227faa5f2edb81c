"""reading and writing the module table section of a drcov file"""

import re
from typing import BinaryIO, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidModuleTableError
from .lines import parse_decimal, read_line
from .model import ModuleEntry, ModuleTableVersion

MODULE_TABLE_PREFIX = "Module Table: "
COLUMNS_PREFIX = "Columns: "
_VERSION_TOKEN = "version "
_COUNT_TOKEN = "count "

LEGACY_COLUMNS = ("id", "base", "end", "entry", "path")
KNOWN_COLUMNS = frozenset(
    (
        "id",
        "base",
        "start",
        "end",
        "entry",
        "path",
        "containing_id",
        "offset",
        "checksum",
        "timestamp",
    )
)

_HEX_RE = re.compile(r"(?:0[xX])?([0-9a-fA-F]+)")
_SIGNED_RE = re.compile(r"-?[0-9]+")
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1


# --- Parsing ---


def parse_module_table(
    stream: BinaryIO,
) -> Tuple[List[ModuleEntry], ModuleTableVersion]:
    """
    Reads the module table header, the Columns line for versioned tables, and
    one record per declared module. Module ids must count up from zero.
    """
    line = read_line(stream, InvalidModuleTableError)
    if line is None:
        raise InvalidModuleTableError("Invalid or missing module table header.")
    version, count = parse_table_header(line.strip())

    if version.has_columns_line():
        line = read_line(stream, InvalidModuleTableError)
        columns = parse_columns(line.strip() if line is not None else "")
    else:
        columns = list(LEGACY_COLUMNS)

    modules: List[ModuleEntry] = []
    for i in range(count):
        line = read_line(stream, InvalidModuleTableError)
        if line is None:
            raise InvalidModuleTableError(
                f"Module table entry count mismatch. Expected {count}, got {i}."
            )
        module = parse_module_entry(line.strip(), columns)
        if module.id != i:
            raise InvalidModuleTableError(
                f"Non-sequential module ID. Expected {i}, got {module.id}."
            )
        modules.append(module)

    return modules, version


def parse_table_header(line: str) -> Tuple[ModuleTableVersion, int]:
    """Parses 'Module Table: <count>' or 'Module Table: version <v>, count <count>'."""
    if not line.startswith(MODULE_TABLE_PREFIX):
        raise InvalidModuleTableError("Invalid or missing module table header.")
    content = line[len(MODULE_TABLE_PREFIX) :]

    if not content.startswith(_VERSION_TOKEN):
        count = parse_decimal(content, "legacy module count", InvalidModuleTableError)
        return ModuleTableVersion.LEGACY, count

    parts = content[len(_VERSION_TOKEN) :].split(",")
    if len(parts) != 2:
        raise InvalidModuleTableError(f"Invalid versioned header format: {line}")

    version_num = parse_decimal(
        parts[0].strip(), "module table version", InvalidModuleTableError
    )
    count_part = parts[1].strip()
    if not count_part.startswith(_COUNT_TOKEN):
        raise InvalidModuleTableError(f"Missing module count in header: {line}")
    count = parse_decimal(
        count_part[len(_COUNT_TOKEN) :].strip(), "module count", InvalidModuleTableError
    )

    try:
        version = ModuleTableVersion(version_num)
    except ValueError:
        version = None
    # LEGACY has no versioned header form
    if version is None or not version.has_columns_line():
        raise InvalidModuleTableError(
            f"Unsupported module table version: {version_num}"
        )
    return version, count


def parse_columns(line: str) -> List[str]:
    """Parses the Columns line into the ordered list of field names."""
    if not line.startswith(COLUMNS_PREFIX):
        raise InvalidModuleTableError("Invalid or missing columns header.")
    columns = [c.strip() for c in line[len(COLUMNS_PREFIX) :].split(",")]

    seen = set()
    for column in columns:
        # 'start' is how v3+ producers spell 'base'
        key = "base" if column == "start" else column
        if key in seen:
            raise InvalidModuleTableError(f"Duplicate column '{column}' in: {line}")
        seen.add(key)
    return columns


def parse_module_entry(line: str, columns: Sequence[str]) -> ModuleEntry:
    """
    Decodes a single module record laid out as `columns`.

    The record is split at most len(columns) - 1 times, so the last declared
    column (normally 'path') keeps any commas of its own. Fields are looked up
    by name, the order of the columns does not matter. Columns outside the
    known set are ignored.
    """
    values = [v.strip() for v in line.split(",", maxsplit=len(columns) - 1)]
    if len(values) != len(columns):
        raise InvalidModuleTableError(
            f"Module entry column count mismatch on line: {line}"
        )

    fields = {
        name: value for name, value in zip(columns, values) if name in KNOWN_COLUMNS
    }
    if "start" in fields:
        fields["base"] = fields.pop("start")

    for name in ("id", "base", "end", "path"):
        if name not in fields:
            raise InvalidModuleTableError(
                f"Missing required column '{name}' for module entry: {line}"
            )

    return ModuleEntry(
        id=parse_decimal(fields["id"], "module id", InvalidModuleTableError),
        base=_parse_hex(fields["base"], 64, "base"),
        end=_parse_hex(fields["end"], 64, "end"),
        path=fields["path"],
        entry=_parse_hex(fields["entry"], 64, "entry") if "entry" in fields else 0,
        containing_id=_optional(fields, "containing_id", _parse_signed),
        offset=_optional(fields, "offset", lambda v: _parse_hex(v, 64, "offset")),
        checksum=_optional(
            fields, "checksum", lambda v: _parse_hex(v, 32, "checksum")
        ),
        timestamp=_optional(
            fields, "timestamp", lambda v: _parse_hex(v, 32, "timestamp")
        ),
    )


def _optional(
    fields: Dict[str, str], name: str, parse: Callable[[str], int]
) -> Optional[int]:
    # an undeclared column is absent, which is not the same as zero
    if name not in fields:
        return None
    return parse(fields[name])


def _parse_hex(text: str, bits: int, name: str) -> int:
    match = _HEX_RE.fullmatch(text)
    if match is None:
        raise InvalidModuleTableError(f"Invalid hex value for '{name}': {text!r}")
    value = int(match.group(1), 16)
    if value >> bits:
        raise InvalidModuleTableError(
            f"Value for '{name}' does not fit in {bits} bits: {text}"
        )
    return value


def _parse_signed(text: str) -> int:
    if _SIGNED_RE.fullmatch(text) is None:
        raise InvalidModuleTableError(f"Invalid value for 'containing_id': {text!r}")
    try:
        value = int(text)
    except ValueError as e:
        raise InvalidModuleTableError(
            f"Invalid value for 'containing_id': too many digits ({len(text)})"
        ) from e
    if not _I32_MIN <= value <= _I32_MAX:
        raise InvalidModuleTableError(f"containing_id out of range: {text}")
    return value


# --- Writing ---


def module_columns(
    version: ModuleTableVersion, modules: Iterable[ModuleEntry]
) -> List[str]:
    """
    Returns the column layout written for `version`.

    checksum and timestamp are emitted for every module as soon as any module
    carries either of them.
    """
    if version == ModuleTableVersion.LEGACY:
        return list(LEGACY_COLUMNS)

    columns = ["id"]
    if version.has_containing_id():
        columns.append("containing_id")
    columns.extend([version.base_column(), "end", "entry"])
    if version.has_offset():
        columns.append("offset")
    if any(m.checksum is not None or m.timestamp is not None for m in modules):
        columns.extend(["checksum", "timestamp"])
    columns.append("path")
    return columns


def format_module_table(
    version: ModuleTableVersion, modules: Sequence[ModuleEntry]
) -> str:
    """Serializes the module table section, header lines included."""
    columns = module_columns(version, modules)

    if version == ModuleTableVersion.LEGACY:
        lines = [f"{MODULE_TABLE_PREFIX}{len(modules)}\n"]
    else:
        lines = [
            f"{MODULE_TABLE_PREFIX}{_VERSION_TOKEN}{version.value}, "
            f"{_COUNT_TOKEN}{len(modules)}\n",
            f"{COLUMNS_PREFIX}{', '.join(columns)}\n",
        ]

    for module in modules:
        _check_module(module)
        lines.append(", ".join(_format_field(module, col) for col in columns) + "\n")
    return "".join(lines)


def _format_field(module: ModuleEntry, column: str) -> str:
    if column == "id":
        return str(module.id)
    elif column in ("base", "start"):
        return f"0x{module.base:016x}"
    elif column == "end":
        return f"0x{module.end:016x}"
    elif column == "entry":
        return f"0x{module.entry:016x}"
    elif column == "containing_id":
        return str(module.containing_id if module.containing_id is not None else -1)
    elif column == "offset":
        return f"0x{module.offset or 0:x}"
    elif column == "checksum":
        return f"0x{module.checksum or 0:08x}"
    elif column == "timestamp":
        return f"0x{module.timestamp or 0:08x}"
    elif column == "path":
        return module.path
    raise InvalidModuleTableError(f"Unknown module table column: {column}")


def _check_module(module: ModuleEntry) -> None:
    """Rejects values that the text form cannot carry."""
    for name, bits in (
        ("base", 64),
        ("end", 64),
        ("entry", 64),
        ("offset", 64),
        ("checksum", 32),
        ("timestamp", 32),
    ):
        value = getattr(module, name)
        if value is not None and not 0 <= value < (1 << bits):
            raise InvalidModuleTableError(
                f"Module {module.id}: '{name}' does not fit in {bits} bits: {value}"
            )

    if module.containing_id is not None and not (
        _I32_MIN <= module.containing_id <= _I32_MAX
    ):
        raise InvalidModuleTableError(
            f"Module {module.id}: containing_id out of range: {module.containing_id}"
        )
    if "\n" in module.path:
        raise InvalidModuleTableError(f"Module {module.id}: path contains a newline")
