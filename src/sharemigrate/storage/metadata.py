# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/storage/metadata.py

"""
Parser for the machine-readable output of `eos file info <ref> -m`.

The output is one line of space separated key=value pairs, for example:

    keylength.file=31 file=/eos/scratch/user/a/my doc.txt size=12 ... uid=1001 gid=1002 ... ino=4242 ...

The `file` value may contain spaces, so it cannot be tokenized like the
rest. EOS announces its length in bytes through `keylength.file`, and the
record always starts with that key followed by ` file=`. The constants
below describe that layout for the EOS 4.x output format; the golden
samples in tests/test_metadata.py pin them.
"""

import os
from typing import Optional, Union

from sharemigrate.models import FileMetadata
from sharemigrate.system.exceptions import ParseError

# ---- Protocol constants ----

KEYLENGTH_KEY = "keylength.file="
FILE_SEPARATOR = " file="


def _parse_pairs(text: str) -> dict[str, str]:
    pairs = {}
    for token in text.split():
        parts = token.split("=")
        if len(parts) == 2:
            pairs[parts[0]] = parts[1]
    return pairs


def _slice_file_value(raw: bytes) -> tuple[bytes, int]:
    """Return the raw `file` value and the byte offset just past it."""
    key = KEYLENGTH_KEY.encode()
    start = raw.find(key)
    if start < 0:
        raise ParseError("missing keylength.file", raw=_printable(raw))

    length_start = start + len(key)
    length_end = length_start
    while length_end < len(raw) and raw[length_end:length_end + 1].isdigit():
        length_end += 1
    length_text = raw[length_start:length_end]
    if not length_text:
        raise ParseError("keylength.file is not numeric", raw=_printable(raw))

    separator = FILE_SEPARATOR.encode()
    value_start = length_end + len(separator)
    if raw[length_end:value_start] != separator:
        raise ParseError("file key does not follow keylength.file", raw=_printable(raw))

    value_end = value_start + int(length_text)
    if value_end > len(raw):
        raise ParseError(
            f"keylength.file={int(length_text)} runs past the end of the record",
            raw=_printable(raw)
        )
    if value_end < len(raw) and not raw[value_end:value_end + 1].isspace():
        raise ParseError(
            f"keylength.file={int(length_text)} does not end on a field boundary",
            raw=_printable(raw)
        )
    return raw[value_start:value_end], value_end


def _printable(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_file_info(raw: Union[bytes, str]) -> FileMetadata:
    """Turn one `file info -m` record into FileMetadata.

    `raw` should be the bytes EOS printed. The path is decoded with
    os.fsdecode, so names that are not valid UTF-8 survive as surrogate
    escapes and encode back to the same bytes when passed to `eos` again.

    Raises:
        ParseError: If keylength.file or ino is missing or not numeric,
            or the declared path length does not fit the record.
    """
    record = os.fsencode(raw) if isinstance(raw, str) else raw
    if record.endswith(b"\n"):
        record = record[:-1]
    path_bytes, value_end = _slice_file_value(record)
    try:
        path = os.fsdecode(path_bytes)
    except UnicodeDecodeError as e:
        raise ParseError(f"cannot decode path {path_bytes!r}: {e}", raw=_printable(record)) from e

    pairs = _parse_pairs(_printable(record[value_end:]))
    inode = _parse_int(pairs.get("ino"))
    if inode is None:
        raise ParseError(f"missing or non-numeric ino for {path!r}", raw=_printable(record))

    return FileMetadata(
        inode=inode,
        path=path,
        owner_uid=pairs.get("uid", ""),
        owner_gid=pairs.get("gid", ""),
        size=_parse_int(pairs.get("size")),
    )
