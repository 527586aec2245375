"""Versioned checksums (CRC32 and SHA-256) for sync payloads."""

from __future__ import annotations

import hashlib
import hmac
import zlib

VERSION_CRC32 = 1
VERSION_SHA256 = 2


class ChecksumError(Exception):
    """Base class for checksum failures."""


class NilDataError(ChecksumError):
    """Raised when no data is given to checksum."""

    def __init__(self) -> None:
        super().__init__("data is nil")


class UnsupportedChecksumVersionError(ChecksumError):
    """Raised for a checksum version that is not known."""

    def __init__(self, version: int) -> None:
        super().__init__(f"unsupported checksum version: {version}")
        self.version = version


class Checksum:
    """Creates and verifies checksums for a chosen algorithm version."""

    def create(self, data: bytes | None, version: int) -> bytes:
        """Return the checksum of ``data``.

        CRC32 yields 4 big-endian bytes, SHA-256 yields 32 bytes.
        """
        if data is None:
            raise NilDataError()
        if version == VERSION_CRC32:
            return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")
        if version == VERSION_SHA256:
            return hashlib.sha256(data).digest()
        raise UnsupportedChecksumVersionError(version)

    def verify(self, data: bytes | None, version: int, expected: bytes) -> bool:
        """Return whether ``data`` has the checksum ``expected``."""
        got = self.create(data, version)
        if len(got) != len(expected):
            return False
        return hmac.compare_digest(got, bytes(expected))