"""Metaplex token metadata accounts.

These live outside the token programs at PDAs derived from the mint. The
descriptive strings are Borsh strings whose contents are null-padded to a
fixed capacity (32 name, 10 symbol, 200 uri); ``Metadata.trimmed`` strips
that padding. Fields appended by later program versions are read with the
reader's ``try_read_u8`` and default to None on older accounts.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import IntEnum

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.errors import MalformedFieldError
from tokenscope.reader import IncrementalReader

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200


class Key(IntEnum):
    UNINITIALIZED = 0
    EDITION_V1 = 1
    MASTER_EDITION_V1 = 2
    RESERVATION_LIST_V1 = 3
    METADATA_V1 = 4
    RESERVATION_LIST_V2 = 5
    MASTER_EDITION_V2 = 6
    EDITION_MARKER = 7

    def __str__(self) -> str:
        return self.name.lower()


class TokenStandard(IntEnum):
    NON_FUNGIBLE = 0
    FUNGIBLE_ASSET = 1
    FUNGIBLE = 2
    NON_FUNGIBLE_EDITION = 3
    PROGRAMMABLE_NON_FUNGIBLE = 4
    PROGRAMMABLE_NON_FUNGIBLE_EDITION = 5

    def __str__(self) -> str:
        _names = {
            0: "non_fungible",
            1: "fungible_asset",
            2: "fungible",
            3: "non_fungible_edition",
            4: "programmable_non_fungible",
            5: "programmable_non_fungible_edition",
        }
        return _names.get(self.value, "unknown")


class UseMethod(IntEnum):
    BURN = 0
    MULTIPLE = 1
    SINGLE = 2

    def __str__(self) -> str:
        _names = {0: "burn", 1: "multiple", 2: "single"}
        return _names.get(self.value, "unknown")


def _read_pubkey(r: IncrementalReader) -> Pubkey:
    return Pubkey.from_bytes(r.read_pubkey_raw())


def _read_key(r: IncrementalReader, expected: tuple[Key, ...]) -> Key:
    off = r.offset
    value = r.read_u8()
    if value not in {int(k) for k in expected}:
        raise MalformedFieldError("key", value, off)
    return Key(value)


def _read_enum(r: IncrementalReader, enum_cls, field_name: str):
    off = r.offset
    value = r.read_u8()
    if value not in enum_cls._value2member_map_:
        raise MalformedFieldError(field_name, value, off)
    return enum_cls(value)


def _try_read_option_tag(r: IncrementalReader, field_name: str) -> bool:
    """Borsh Option tag for a trailing field; missing bytes read as None."""
    off = r.offset
    tag = r.try_read_u8(0)
    if tag not in (0, 1):
        raise MalformedFieldError(field_name, tag, off)
    return tag == 1


@dataclass
class Creator:
    address: Pubkey
    verified: bool
    share: int  # u8, percent

    @classmethod
    def from_reader(cls, r: IncrementalReader) -> Creator:
        return cls(_read_pubkey(r), r.read_bool(), r.read_u8())


@dataclass
class Collection:
    verified: bool
    key: Pubkey


@dataclass
class Uses:
    use_method: UseMethod
    remaining: int  # u64
    total: int  # u64


@dataclass
class Metadata:
    key: Key
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int  # u16
    creators: list[Creator] | None
    primary_sale_happened: bool
    is_mutable: bool
    edition_nonce: int | None = None
    token_standard: TokenStandard | None = None
    collection: Collection | None = None
    uses: Uses | None = None

    @classmethod
    def from_bytes(cls, data: bytes) -> Metadata:
        r = IncrementalReader(data)
        key = _read_key(r, (Key.METADATA_V1,))
        update_authority = _read_pubkey(r)
        mint = _read_pubkey(r)
        name = r.read_string()
        symbol = r.read_string()
        uri = r.read_string()
        seller_fee_basis_points = r.read_u16()

        creators = None
        off = r.offset
        tag = r.read_u8()
        if tag == 1:
            count = r.read_u32()
            creators = [Creator.from_reader(r) for _ in range(count)]
        elif tag != 0:
            raise MalformedFieldError("creators", tag, off)

        primary_sale_happened = r.read_bool()
        is_mutable = r.read_bool()

        edition_nonce = None
        if _try_read_option_tag(r, "edition_nonce"):
            edition_nonce = r.read_u8()

        token_standard = None
        if _try_read_option_tag(r, "token_standard"):
            token_standard = _read_enum(r, TokenStandard, "token_standard")

        collection = None
        if _try_read_option_tag(r, "collection"):
            verified = r.read_bool()
            collection = Collection(verified=verified, key=_read_pubkey(r))

        uses = None
        if _try_read_option_tag(r, "uses"):
            use_method = _read_enum(r, UseMethod, "use_method")
            uses = Uses(use_method=use_method, remaining=r.read_u64(), total=r.read_u64())

        return cls(
            key=key,
            update_authority=update_authority,
            mint=mint,
            name=name,
            symbol=symbol,
            uri=uri,
            seller_fee_basis_points=seller_fee_basis_points,
            creators=creators,
            primary_sale_happened=primary_sale_happened,
            is_mutable=is_mutable,
            edition_nonce=edition_nonce,
            token_standard=token_standard,
            collection=collection,
            uses=uses,
        )

    def trimmed(self) -> Metadata:
        """Copy with the null padding removed from name, symbol and uri."""
        return dataclasses.replace(
            self,
            name=self.name.rstrip("\x00"),
            symbol=self.symbol.rstrip("\x00"),
            uri=self.uri.rstrip("\x00"),
        )


@dataclass
class MasterEdition:
    key: Key
    supply: int  # u64
    max_supply: int | None  # None means unlimited

    @classmethod
    def from_bytes(cls, data: bytes) -> MasterEdition:
        r = IncrementalReader(data)
        key = _read_key(r, (Key.MASTER_EDITION_V1, Key.MASTER_EDITION_V2))
        supply = r.read_u64()
        max_supply = None
        off = r.offset
        tag = r.read_u8()
        if tag == 1:
            max_supply = r.read_u64()
        elif tag != 0:
            raise MalformedFieldError("max_supply", tag, off)
        return cls(key=key, supply=supply, max_supply=max_supply)


@dataclass
class MintMetadata:
    """Metaplex records associated with a mint; either part may be missing."""

    metadata: Metadata | None = None
    master_edition: MasterEdition | None = None

    def trimmed(self) -> MintMetadata:
        if self.metadata is None:
            return self
        return dataclasses.replace(self, metadata=self.metadata.trimmed())
