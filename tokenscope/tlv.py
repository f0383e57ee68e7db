"""Token-2022 extension TLV walk.

The region after the AccountType byte is a dense sequence of
``[u16 type][u16 length][payload]`` records with no alignment.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator

from tokenscope.errors import TruncatedExtensionError

TLV_HEADER_SIZE = 4

# ExtensionType::Uninitialized marks the start of unused, zero-filled space.
_UNINITIALIZED = 0


def iter_extensions(data: bytes) -> Iterator[tuple[int, bytes]]:
    """Yield ``(type_code, payload)`` for each record in ``data``, in order.

    Stops quietly when fewer than four header bytes remain or at an
    uninitialized header. Raises TruncatedExtensionError when a record's
    declared length runs past the end of the buffer.
    """
    off = 0
    index = 0
    end = len(data)
    while end - off >= TLV_HEADER_SIZE:
        type_code, length = struct.unpack_from("<HH", data, off)
        if type_code == _UNINITIALIZED:
            return
        off += TLV_HEADER_SIZE
        available = end - off
        if length > available:
            raise TruncatedExtensionError(index, type_code, length, available)
        yield type_code, bytes(data[off : off + length])
        off += length
        index += 1
