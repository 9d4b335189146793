"""Reading and writing length-prefixed chunks of packed records.

A chunk is laid out as::

    |ma|gi|c.|..|   four byte magic tag
    |sz|sz|sz|sz|   little-endian uint32 payload size in bytes
    |TT...TT|       payload: size / record_size packed records
"""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterable

_HEADER = struct.Struct("<4sI")


class ChunkError(ValueError):
    """Raised when a chunk is missing, truncated or malformed."""


def _magic_bytes(magic: str | bytes) -> bytes:
    if isinstance(magic, str):
        magic = magic.encode("latin-1")
    return bytes(magic)


def _record_struct(fmt: str) -> struct.Struct:
    packer = struct.Struct(fmt)
    if packer.size == 0:
        raise ValueError(f"record format {fmt!r} has zero size")
    return packer


def read_chunk(stream: BinaryIO, magic: str | bytes, fmt: str | None = None):
    """Read one chunk tagged ``magic`` from ``stream``.

    With ``fmt`` set to a :mod:`struct` format, return the list of unpacked
    record tuples; with ``fmt`` of ``None``, return the raw payload bytes.
    """
    header = stream.read(_HEADER.size)
    if len(header) != _HEADER.size:
        raise ChunkError("Failed to read chunk header")
    found, size = _HEADER.unpack(header)
    if found != _magic_bytes(magic):
        raise ChunkError("Unexpected magic number in chunk")

    packer = None if fmt is None else _record_struct(fmt)
    if packer is not None and size % packer.size != 0:
        raise ChunkError("Size of chunk not divisible by element size")

    payload = stream.read(size)
    if len(payload) != size:
        raise ChunkError("Failed to read chunk data.")
    if packer is None:
        return payload
    return list(packer.iter_unpack(payload))


def write_chunk(
    magic: str | bytes,
    records: Iterable | bytes,
    fmt: str | None,
    stream: BinaryIO,
) -> None:
    """Write ``records`` as a chunk tagged ``magic`` in the format read_chunk reads.

    With ``fmt`` of ``None``, ``records`` is written as raw bytes.
    """
    tag = _magic_bytes(magic)
    if len(tag) != 4:
        raise ValueError(f"chunk magic must be exactly 4 bytes, got {tag!r}")
    if fmt is None:
        payload = bytes(records)
    else:
        packer = _record_struct(fmt)
        payload = b"".join(packer.pack(*record) for record in records)
    stream.write(_HEADER.pack(tag, len(payload)))
    stream.write(payload)