"""reading and writing the binary basic block table of a drcov file"""

import struct
from typing import BinaryIO, List, Sequence

from .errors import InvalidBBTableError
from .lines import parse_decimal, read_exact, read_line
from .model import BasicBlock

BB_TABLE_PREFIX = "BB Table: "
BB_ENTRY_SIZE = 8

# start (u32), size (u16), module_id (u16), little-endian, unpadded
_BB_ENTRY = struct.Struct("<IHH")


def parse_bb_table(stream: BinaryIO) -> List[BasicBlock]:
    """
    Reads the 'BB Table: <count> bbs' line followed by count * 8 bytes of
    block records. A stream that ends before the header holds no blocks.
    """
    line = read_line(stream, InvalidBBTableError)
    if line is None:
        return []

    line = line.strip()
    if not line.startswith(BB_TABLE_PREFIX):
        raise InvalidBBTableError("Invalid or missing BB table header.")
    count_str = line[len(BB_TABLE_PREFIX) :].split()[0]
    count = parse_decimal(count_str, "BB table count", InvalidBBTableError)

    if count == 0:
        return []

    binary_data = read_exact(stream, count * BB_ENTRY_SIZE, "BB table binary data")
    return [
        BasicBlock(start, size, mod_id)
        for start, size, mod_id in _BB_ENTRY.iter_unpack(binary_data)
    ]


def format_bb_table(blocks: Sequence[BasicBlock]) -> bytes:
    """Serializes the block table: header line, then the packed records."""
    header = f"{BB_TABLE_PREFIX}{len(blocks)} bbs\n".encode("utf-8")

    packed = []
    for i, bb in enumerate(blocks):
        try:
            packed.append(_BB_ENTRY.pack(bb.start, bb.size, bb.module_id))
        except struct.error as e:
            raise InvalidBBTableError(
                f"Basic block {i} does not fit the u32/u16/u16 record: {bb}"
            ) from e
    return header + b"".join(packed)
