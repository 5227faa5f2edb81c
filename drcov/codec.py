#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Reading and writing DrCov coverage files.

A DrCov file is a short text preamble followed by binary block records:

    DRCOV VERSION: 2
    DRCOV FLAVOR: <tool name>
    Module Table: version <2|3|4>, count <n>      (or legacy 'Module Table: <n>')
    Columns: <comma separated field names>        (versioned tables only)
    <n module records>
    BB Table: <m> bbs
    <m * 8 bytes: u32 start, u16 size, u16 module_id, little-endian>

Only outer format version 2 is supported. Parsing is all-or-nothing: any
malformed section raises a DrCovError subclass and no partial data is returned.

References:
 - DrCov format analysis: https://www.ayrx.me/drcov-file-format/
 - Lighthouse plugin: https://github.com/gaasedelen/lighthouse

Example Usage:
    # Reading a file
    try:
        coverage = drcov.read("coverage.drcov")
        print(f"Read {len(coverage.basic_blocks)} basic blocks.")
    except drcov.DrCovError as e:
        print(f"Error reading file: {e}")

    # Writing to a file
    drcov.write(coverage, "output.drcov")
"""

import io
import os
from typing import BinaryIO, Union

from .bb_table import format_bb_table, parse_bb_table
from .errors import DrCovIOError, InvalidFormatError, UnsupportedVersionError
from .lines import parse_decimal, read_line
from .model import (
    FLAVOR_PREFIX,
    SUPPORTED_FILE_VERSION,
    VERSION_PREFIX,
    CoverageData,
    FileHeader,
    validate,
)
from .module_table import format_module_table, parse_module_table

PathOrStream = Union[str, os.PathLike, BinaryIO]


# --- Parser Implementation ---


class _Parser:
    @staticmethod
    def parse_stream(stream: BinaryIO) -> CoverageData:
        header = _Parser._parse_header(stream)
        modules, module_version = parse_module_table(stream)
        basic_blocks = parse_bb_table(stream)

        data = CoverageData(header, modules, basic_blocks, module_version)
        validate(data)
        return data

    @staticmethod
    def _parse_header(stream: BinaryIO) -> FileHeader:
        version_str = _Parser._parse_header_line(stream, VERSION_PREFIX)
        version = parse_decimal(version_str, "version number", InvalidFormatError)
        if version != SUPPORTED_FILE_VERSION:
            raise UnsupportedVersionError(version)

        flavor = _Parser._parse_header_line(stream, FLAVOR_PREFIX)
        return FileHeader(version, flavor)

    @staticmethod
    def _parse_header_line(stream: BinaryIO, prefix: str) -> str:
        line = read_line(stream, InvalidFormatError)
        if line is None:
            raise InvalidFormatError(
                f"Expected header line with prefix '{prefix}', but found EOF"
            )
        if line.endswith("\n"):
            line = line[:-1]
        if not line.startswith(prefix):
            raise InvalidFormatError(
                f"Invalid header line format, expected prefix '{prefix}'"
            )
        return line[len(prefix) :]


# --- Writer Implementation ---


class _Writer:
    @staticmethod
    def encode(data: CoverageData) -> bytes:
        """Renders the whole file in memory, so a failure writes nothing."""
        validate(data)
        if data.header.version != SUPPORTED_FILE_VERSION:
            raise UnsupportedVersionError(data.header.version)
        if "\n" in data.header.flavor:
            raise InvalidFormatError("Flavor must not contain a newline")

        text = data.header.to_string() + format_module_table(
            data.module_version, data.modules
        )
        return text.encode("utf-8") + format_bb_table(data.basic_blocks)

    @staticmethod
    def write_stream(data: CoverageData, stream: BinaryIO):
        payload = _Writer.encode(data)
        try:
            stream.write(payload)
        except OSError as e:
            raise DrCovIOError(f"Failed to write coverage data: {e}") from e


# --- Public API Functions ---


def _is_path(obj) -> bool:
    return isinstance(obj, (str, os.PathLike))


def read(filepath_or_stream: PathOrStream) -> CoverageData:
    """
    Reads and parses a DrCov file from a path or a binary stream.

    Args:
        filepath_or_stream: Path to the .drcov file, or a stream opened in
            binary mode supporting readline() and read(n).

    Returns:
        A validated CoverageData object.

    Raises:
        DrCovError: If the file cannot be opened, read or parsed.
    """
    if _is_path(filepath_or_stream):
        try:
            f = open(filepath_or_stream, "rb")
        except OSError as e:
            raise DrCovIOError(f"Failed to open '{filepath_or_stream}': {e}") from e
        with f:
            return _Parser.parse_stream(f)
    return _Parser.parse_stream(filepath_or_stream)


def loads(data: bytes) -> CoverageData:
    """Parses DrCov data held in memory."""
    return _Parser.parse_stream(io.BytesIO(data))


def write(data: CoverageData, filepath_or_stream: PathOrStream):
    """
    Writes coverage data in DrCov format.

    The data is validated and fully rendered before the destination is
    touched, so invalid data never leaves a half-written file behind.

    Args:
        data: The CoverageData object to write.
        filepath_or_stream: Path to the output file or a stream opened in
            binary mode.

    Raises:
        DrCovError: If the data is invalid or writing fails.
    """
    if not _is_path(filepath_or_stream):
        _Writer.write_stream(data, filepath_or_stream)
        return

    payload = _Writer.encode(data)
    try:
        with open(filepath_or_stream, "wb") as f:
            f.write(payload)
    except OSError as e:
        raise DrCovIOError(f"Failed to write '{filepath_or_stream}': {e}") from e


def dumps(data: CoverageData) -> bytes:
    """Serializes coverage data to DrCov bytes."""
    return _Writer.encode(data)
