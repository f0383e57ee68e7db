"""Cursor-based little-endian reader for account data.

Strict ``read_*`` methods raise ``TruncatedBufferError`` when the buffer runs
out. ``try_read_u8`` returns a default instead, which is how trailing
fields appended by newer program versions are read.
"""

from __future__ import annotations

import struct

from tokenscope.errors import TruncatedBufferError


class IncrementalReader:
    """Cursor over an immutable byte buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _need(self, n: int, what: str) -> None:
        if self._offset + n > len(self._data):
            raise TruncatedBufferError(
                self._offset + n, len(self._data), f"{what} at offset {self._offset}"
            )

    def _unpack(self, fmt: str, size: int, what: str):
        self._need(size, what)
        (v,) = struct.unpack_from(fmt, self._data, self._offset)
        self._offset += size
        return v

    # Strict reads

    def read_u8(self) -> int:
        return self._unpack("<B", 1, "u8")

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_u16(self) -> int:
        return self._unpack("<H", 2, "u16")

    def read_i16(self) -> int:
        return self._unpack("<h", 2, "i16")

    def read_u32(self) -> int:
        return self._unpack("<I", 4, "u32")

    def read_u64(self) -> int:
        return self._unpack("<Q", 8, "u64")

    def read_i64(self) -> int:
        return self._unpack("<q", 8, "i64")

    def read_f64(self) -> float:
        return self._unpack("<d", 8, "f64")

    def read_bytes(self, n: int) -> bytes:
        self._need(n, f"{n} bytes")
        v = bytes(self._data[self._offset : self._offset + n])
        self._offset += n
        return v

    def read_pubkey_raw(self) -> bytes:
        """Read a 32-byte public key as raw bytes."""
        return self.read_bytes(32)

    def read_string(self) -> str:
        length = self.read_u32()
        if length == 0:
            return ""
        return self.read_bytes(length).decode("utf-8")

    # Trailing-field reads

    def try_read_u8(self, default: int | None = None) -> int | None:
        if self.remaining < 1:
            return default
        return self.read_u8()
