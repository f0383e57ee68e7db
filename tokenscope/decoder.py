"""Decode raw mint and token account data into unified records.

The owner program picks the codec once: SPL Token accounts are the bare
fixed layout, Token-2022 accounts add an AccountType byte and a TLV list of
extensions after the padded base state. Both produce the same ``Mint`` and
``TokenAccount`` shapes, with an empty extension list for SPL Token.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TypeVar

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.extensions import Extension, KnownExtension, decode_extension
from tokenscope.metadata import MintMetadata
from tokenscope.program import TokenProgram, resolve_program
from tokenscope.state import (
    AccountState,
    AccountType,
    MintBase,
    TokenAccountBase,
    account_type_of,
    account_type_offset,
)
from tokenscope.tlv import iter_extensions

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=KnownExtension)


def _find_extension(extensions: list[Extension], cls: type[E]) -> E | None:
    for ext in extensions:
        if isinstance(ext, cls):
            return ext
    return None


@dataclass
class Mint:
    mint_authority: Pubkey | None
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Pubkey | None
    program: TokenProgram
    extensions: list[Extension] = field(default_factory=list)
    metadata: MintMetadata | None = None
    address: Pubkey | None = None

    def get_extension(self, cls: type[E]) -> E | None:
        return _find_extension(self.extensions, cls)


@dataclass
class TokenAccount:
    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Pubkey | None
    state: AccountState
    is_native: int | None
    delegated_amount: int
    close_authority: Pubkey | None
    program: TokenProgram
    extensions: list[Extension] = field(default_factory=list)
    address: Pubkey | None = None

    @property
    def is_frozen(self) -> bool:
        return self.state == AccountState.FROZEN

    def get_extension(self, cls: type[E]) -> E | None:
        return _find_extension(self.extensions, cls)


def _decode_extensions(
    data: bytes, base_size: int, expected: AccountType
) -> list[Extension]:
    account_type = account_type_of(data, base_size)
    if account_type is None or account_type == AccountType.UNINITIALIZED:
        return []
    if account_type != expected:
        logger.debug("account type byte is %s on %s data", account_type, expected)
    tlv_start = account_type_offset(data, base_size) + 1
    return [
        decode_extension(type_code, payload, expected)
        for type_code, payload in iter_extensions(data[tlv_start:])
    ]


def attach_metadata(mint: Mint, metadata: MintMetadata | None) -> Mint:
    """Return a copy of ``mint`` carrying ``metadata`` with string padding trimmed."""
    if metadata is None:
        return dataclasses.replace(mint, metadata=None)
    return dataclasses.replace(mint, metadata=metadata.trimmed())


def decode_mint(
    data: bytes,
    owner: Pubkey,
    metadata: MintMetadata | None = None,
    address: Pubkey | None = None,
) -> Mint:
    """Decode mint account data owned by ``owner``."""
    program = resolve_program(owner)
    base = MintBase.from_bytes(data)
    if program is TokenProgram.EXTENSIBLE:
        extensions = _decode_extensions(data, MintBase.STRUCT_SIZE, AccountType.MINT)
    else:
        extensions = []
    logger.debug("decoded %s mint with %d extensions", program, len(extensions))
    mint = Mint(
        mint_authority=base.mint_authority,
        supply=base.supply,
        decimals=base.decimals,
        is_initialized=base.is_initialized,
        freeze_authority=base.freeze_authority,
        program=program,
        extensions=extensions,
        address=address,
    )
    if metadata is not None:
        mint = attach_metadata(mint, metadata)
    return mint


def decode_token_account(
    data: bytes,
    owner: Pubkey,
    address: Pubkey | None = None,
) -> TokenAccount:
    """Decode token account data owned by ``owner``."""
    program = resolve_program(owner)
    base = TokenAccountBase.from_bytes(data)
    if program is TokenProgram.EXTENSIBLE:
        extensions = _decode_extensions(
            data, TokenAccountBase.STRUCT_SIZE, AccountType.ACCOUNT
        )
    else:
        extensions = []
    logger.debug("decoded %s token account with %d extensions", program, len(extensions))
    return TokenAccount(
        mint=base.mint,
        owner=base.owner,
        amount=base.amount,
        delegate=base.delegate,
        state=base.state,
        is_native=base.is_native,
        delegated_amount=base.delegated_amount,
        close_authority=base.close_authority,
        program=program,
        extensions=extensions,
        address=address,
    )
