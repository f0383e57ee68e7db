"""Fixed-layout base state shared by SPL Token and Token-2022.

Binary layout matches the programs' ``Pack`` implementations: little-endian
integers, single-byte booleans and ``COption`` fields encoded as a u32 tag
followed by the value slot. Decoding ignores bytes past the fixed layout;
the Token-2022 tail is located by ``account_type_offset`` and walked by
``tlv``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.errors import MalformedFieldError, TruncatedBufferError

MINT_SIZE = 82
ACCOUNT_SIZE = 165

# The AccountType byte follows the base state. Mints may also be zero padded
# to the account size, which puts the byte at the same offset as for accounts.
ACCOUNT_TYPE_OFFSET = ACCOUNT_SIZE

_COPTION_NONE = 0
_COPTION_SOME = 1


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2

    def __str__(self) -> str:
        _names = {0: "uninitialized", 1: "initialized", 2: "frozen"}
        return _names.get(self.value, "unknown")


class AccountType(IntEnum):
    UNINITIALIZED = 0
    MINT = 1
    ACCOUNT = 2

    def __str__(self) -> str:
        _names = {0: "uninitialized", 1: "mint", 2: "account"}
        return _names.get(self.value, "unknown")


def _pubkey(data: bytes, offset: int) -> Pubkey:
    return Pubkey.from_bytes(data[offset : offset + 32])


def _coption_tag(data: bytes, offset: int, field: str) -> bool:
    tag = struct.unpack_from("<I", data, offset)[0]
    if tag == _COPTION_NONE:
        return False
    if tag == _COPTION_SOME:
        return True
    raise MalformedFieldError(field, tag, offset)


def _coption_pubkey(data: bytes, offset: int, field: str) -> Pubkey | None:
    if not _coption_tag(data, offset, field):
        return None
    return _pubkey(data, offset + 4)


def _coption_u64(data: bytes, offset: int, field: str) -> int | None:
    if not _coption_tag(data, offset, field):
        return None
    return struct.unpack_from("<Q", data, offset + 4)[0]


def _pack_coption_pubkey(value: Pubkey | None) -> bytes:
    if value is None:
        return struct.pack("<I", _COPTION_NONE) + b"\x00" * 32
    return struct.pack("<I", _COPTION_SOME) + bytes(value)


def _pack_coption_u64(value: int | None) -> bytes:
    if value is None:
        return struct.pack("<IQ", _COPTION_NONE, 0)
    return struct.pack("<IQ", _COPTION_SOME, value)


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise TruncatedBufferError(size, len(data), what)


@dataclass
class MintBase:
    mint_authority: Pubkey | None
    supply: int  # u64
    decimals: int  # u8
    is_initialized: bool
    freeze_authority: Pubkey | None

    STRUCT_SIZE = MINT_SIZE

    @classmethod
    def from_bytes(cls, data: bytes) -> MintBase:
        _require(data, cls.STRUCT_SIZE, "mint data")
        off = 0
        mint_authority = _coption_pubkey(data, off, "mint_authority"); off += 36
        supply, decimals, initialized = struct.unpack_from("<QBB", data, off); off += 10
        freeze_authority = _coption_pubkey(data, off, "freeze_authority"); off += 36
        assert off == cls.STRUCT_SIZE, f"MintBase byte coverage: {off} != {cls.STRUCT_SIZE}"
        return cls(
            mint_authority=mint_authority,
            supply=supply,
            decimals=decimals,
            is_initialized=initialized != 0,
            freeze_authority=freeze_authority,
        )

    def to_bytes(self) -> bytes:
        return (
            _pack_coption_pubkey(self.mint_authority)
            + struct.pack("<QBB", self.supply, self.decimals, int(self.is_initialized))
            + _pack_coption_pubkey(self.freeze_authority)
        )


@dataclass
class TokenAccountBase:
    mint: Pubkey
    owner: Pubkey
    amount: int  # u64
    delegate: Pubkey | None
    state: AccountState
    is_native: int | None  # rent-exempt reserve of a wrapped SOL account
    delegated_amount: int  # u64
    close_authority: Pubkey | None

    STRUCT_SIZE = ACCOUNT_SIZE

    @property
    def is_frozen(self) -> bool:
        return self.state == AccountState.FROZEN

    @classmethod
    def from_bytes(cls, data: bytes) -> TokenAccountBase:
        _require(data, cls.STRUCT_SIZE, "token account data")
        off = 0
        mint = _pubkey(data, off); off += 32
        owner = _pubkey(data, off); off += 32
        amount = struct.unpack_from("<Q", data, off)[0]; off += 8
        delegate = _coption_pubkey(data, off, "delegate"); off += 36
        state_byte = data[off]
        if state_byte not in AccountState._value2member_map_:
            raise MalformedFieldError("state", state_byte, off)
        state = AccountState(state_byte); off += 1
        is_native = _coption_u64(data, off, "is_native"); off += 12
        delegated_amount = struct.unpack_from("<Q", data, off)[0]; off += 8
        close_authority = _coption_pubkey(data, off, "close_authority"); off += 36
        assert off == cls.STRUCT_SIZE, f"TokenAccountBase byte coverage: {off} != {cls.STRUCT_SIZE}"
        return cls(
            mint=mint,
            owner=owner,
            amount=amount,
            delegate=delegate,
            state=state,
            is_native=is_native,
            delegated_amount=delegated_amount,
            close_authority=close_authority,
        )

    def to_bytes(self) -> bytes:
        return (
            bytes(self.mint)
            + bytes(self.owner)
            + struct.pack("<Q", self.amount)
            + _pack_coption_pubkey(self.delegate)
            + struct.pack("<B", int(self.state))
            + _pack_coption_u64(self.is_native)
            + struct.pack("<Q", self.delegated_amount)
            + _pack_coption_pubkey(self.close_authority)
        )


def account_type_offset(data: bytes, base_size: int) -> int:
    """Offset of the AccountType byte; the TLV region starts right after it.

    A mint whose bytes between the base state and the account size are all
    zero, and which reaches past that point, uses the padded layout.
    """
    if (
        base_size < ACCOUNT_TYPE_OFFSET
        and len(data) > ACCOUNT_TYPE_OFFSET
        and not any(data[base_size:ACCOUNT_TYPE_OFFSET])
    ):
        return ACCOUNT_TYPE_OFFSET
    return base_size


def account_type_of(data: bytes, base_size: int) -> AccountType | None:
    """Return the Token-2022 AccountType byte, or None for a bare base state.

    A buffer of exactly ``base_size`` bytes carries no AccountType.
    """
    if len(data) == base_size:
        return None
    off = account_type_offset(data, base_size)
    _require(data, off + 1, "token-2022 account data")
    value = data[off]
    if value not in AccountType._value2member_map_:
        raise MalformedFieldError("account_type", value, off)
    return AccountType(value)
