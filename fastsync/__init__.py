"""Checksums, delimited framing, header caching, account reconciliation and block/merkle conversion for node sync."""

__version__ = "0.1.0"