"""byte-stream helpers shared by the section codecs"""

import re
from typing import BinaryIO, Optional, Type

from .errors import DrCovError, DrCovIOError

_DECIMAL_RE = re.compile(r"[0-9]+")
_READ_CHUNK = 1 << 16
_U64_BITS = 64


def read_line(stream: BinaryIO, error: Type[DrCovError]) -> Optional[str]:
    """
    Reads one line of UTF-8 text, keeping its trailing newline if present.
    Returns None once the stream is exhausted. Undecodable bytes raise `error`.
    """
    try:
        raw = stream.readline()
    except OSError as e:
        raise DrCovIOError(f"Failed to read line: {e}") from e
    if not raw:
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise error(f"Line is not valid UTF-8: {raw!r}") from e


def read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    """Reads exactly `size` bytes, a short read is an unrecoverable truncation."""
    chunks = []
    remaining = size
    while remaining:
        try:
            chunk = stream.read(min(remaining, _READ_CHUNK))
        except OSError as e:
            raise DrCovIOError(f"Failed to read {what}: {e}") from e
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)

    if remaining:
        got = size - remaining
        raise DrCovIOError(
            f"Failed to read complete {what}: expected {size} bytes, got {got}"
        ) from EOFError(f"stream ended after {got} bytes")
    return b"".join(chunks)


def parse_decimal(text: str, what: str, error: Type[DrCovError]) -> int:
    """Parses a non-negative ASCII decimal integer of at most 64 bits, no sign."""
    if _DECIMAL_RE.fullmatch(text) is None:
        raise error(f"Invalid {what}: {text!r}")
    try:
        value = int(text)
    except ValueError as e:
        raise error(f"Invalid {what}: too many digits ({len(text)})") from e
    if value >> _U64_BITS:
        raise error(f"Invalid {what}: does not fit in {_U64_BITS} bits")
    return value
