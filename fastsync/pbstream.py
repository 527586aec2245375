"""Length-delimited message framing: ``[uvarint length][payload bytes]``."""

from __future__ import annotations

from typing import BinaryIO

MAX_VARINT_LEN64 = 10
_MAX_UINT64 = (1 << 64) - 1


class DelimitedStreamError(Exception):
    """Raised when a delimited frame cannot be written or read."""


def encode_uvarint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a base-128 varint."""
    if value < 0 or value > _MAX_UINT64:
        raise ValueError(f"value out of uint64 range: {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = bytearray()
    while len(chunks) < size:
        chunk = stream.read(size - len(chunks))
        if not chunk:
            break
        chunks.extend(chunk)
    return bytes(chunks)


def read_uvarint(stream: BinaryIO) -> int:
    """Read one base-128 varint from ``stream``."""
    value = 0
    shift = 0
    for index in range(MAX_VARINT_LEN64):
        byte = stream.read(1)
        if not byte:
            if index == 0:
                raise DelimitedStreamError("EOF")
            raise DelimitedStreamError("unexpected EOF")
        b = byte[0]
        if b < 0x80:
            if index == MAX_VARINT_LEN64 - 1 and b > 1:
                raise DelimitedStreamError("varint overflows a 64-bit integer")
            return value | (b << shift)
        value |= (b & 0x7F) << shift
        shift += 7
    raise DelimitedStreamError("varint overflows a 64-bit integer")


def _payload_bytes(payload) -> bytes:
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    serialize = getattr(payload, "SerializeToString", None)
    if callable(serialize):
        try:
            return serialize()
        except Exception as err:
            raise DelimitedStreamError(f"marshal: {err}") from err
    raise DelimitedStreamError(f"marshal: unsupported payload type {type(payload).__name__}")


def write_delimited(stream: BinaryIO, payload) -> None:
    """Write ``payload`` prefixed by its uvarint length.

    ``payload`` is bytes, or a message object with ``SerializeToString``.
    """
    data = _payload_bytes(payload)
    try:
        stream.write(encode_uvarint(len(data)))
    except OSError as err:
        raise DelimitedStreamError(f"write len: {err}") from err
    try:
        stream.write(data)
    except OSError as err:
        raise DelimitedStreamError(f"write msg: {err}") from err


def read_delimited(stream: BinaryIO) -> bytes:
    """Read one length-prefixed payload from ``stream`` and return its bytes."""
    try:
        length = read_uvarint(stream)
    except DelimitedStreamError as err:
        raise DelimitedStreamError(f"read len: {err}") from err
    except OSError as err:
        raise DelimitedStreamError(f"read len: {err}") from err
    if length == 0:
        raise DelimitedStreamError("invalid length 0")
    try:
        data = _read_exact(stream, length)
    except OSError as err:
        raise DelimitedStreamError(f"read msg: {err}") from err
    if len(data) != length:
        raise DelimitedStreamError("read msg: unexpected EOF")
    return data