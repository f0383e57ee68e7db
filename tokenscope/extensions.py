"""Token-2022 extension records.

Each known extension type maps to a dataclass decoded from its TLV payload.
Fixed-size records declare ``STRUCT_SIZE`` and are rejected when the payload
length differs; ``TokenMetadata`` is variable-length and must parse exactly
to the end of its payload. Type codes outside the table decode to
``UnknownExtension`` so newer extensions never block the rest of an account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Union

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.errors import (
    MalformedExtensionError,
    MalformedFieldError,
    TruncatedBufferError,
)
from tokenscope.reader import IncrementalReader
from tokenscope.state import AccountState, AccountType

logger = logging.getLogger(__name__)

ELGAMAL_PUBKEY_SIZE = 32
ELGAMAL_CIPHERTEXT_SIZE = 64
AE_CIPHERTEXT_SIZE = 36

_ZERO32 = b"\x00" * 32


class ExtensionType(IntEnum):
    UNINITIALIZED = 0
    TRANSFER_FEE_CONFIG = 1
    TRANSFER_FEE_AMOUNT = 2
    MINT_CLOSE_AUTHORITY = 3
    CONFIDENTIAL_TRANSFER_MINT = 4
    CONFIDENTIAL_TRANSFER_ACCOUNT = 5
    DEFAULT_ACCOUNT_STATE = 6
    IMMUTABLE_OWNER = 7
    MEMO_TRANSFER = 8
    NON_TRANSFERABLE = 9
    INTEREST_BEARING_CONFIG = 10
    CPI_GUARD = 11
    PERMANENT_DELEGATE = 12
    NON_TRANSFERABLE_ACCOUNT = 13
    TRANSFER_HOOK = 14
    TRANSFER_HOOK_ACCOUNT = 15
    CONFIDENTIAL_TRANSFER_FEE_CONFIG = 16
    CONFIDENTIAL_TRANSFER_FEE_AMOUNT = 17
    METADATA_POINTER = 18
    TOKEN_METADATA = 19
    GROUP_POINTER = 20
    TOKEN_GROUP = 21
    GROUP_MEMBER_POINTER = 22
    TOKEN_GROUP_MEMBER = 23
    CONFIDENTIAL_MINT_BURN = 24
    SCALED_UI_AMOUNT = 25
    PAUSABLE = 26
    PAUSABLE_ACCOUNT = 27

    def __str__(self) -> str:
        # Names follow the RPC jsonParsed encoding.
        _names = {
            0: "uninitialized",
            1: "transferFeeConfig",
            2: "transferFeeAmount",
            3: "mintCloseAuthority",
            4: "confidentialTransferMint",
            5: "confidentialTransferAccount",
            6: "defaultAccountState",
            7: "immutableOwner",
            8: "memoTransfer",
            9: "nonTransferable",
            10: "interestBearingConfig",
            11: "cpiGuard",
            12: "permanentDelegate",
            13: "nonTransferableAccount",
            14: "transferHook",
            15: "transferHookAccount",
            16: "confidentialTransferFeeConfig",
            17: "confidentialTransferFeeAmount",
            18: "metadataPointer",
            19: "tokenMetadata",
            20: "groupPointer",
            21: "tokenGroup",
            22: "groupMemberPointer",
            23: "tokenGroupMember",
            24: "confidentialMintBurn",
            25: "scaledUiAmountConfig",
            26: "pausableConfig",
            27: "pausableAccount",
        }
        return _names.get(self.value, "unknown")


def _read_optional_pubkey(r: IncrementalReader) -> Pubkey | None:
    """Read an OptionalNonZeroPubkey: 32 bytes, all zero means absent."""
    raw = r.read_pubkey_raw()
    if raw == _ZERO32:
        return None
    return Pubkey.from_bytes(raw)


def _read_pubkey(r: IncrementalReader) -> Pubkey:
    return Pubkey.from_bytes(r.read_pubkey_raw())


def _read_optional_elgamal_pubkey(r: IncrementalReader) -> bytes | None:
    raw = r.read_bytes(ELGAMAL_PUBKEY_SIZE)
    if raw == _ZERO32:
        return None
    return raw


class KnownExtension:
    """Common behaviour for decoded extension records."""

    EXTENSION_TYPE: ClassVar[ExtensionType]
    STRUCT_SIZE: ClassVar[int | None]

    @property
    def type_code(self) -> int:
        return int(self.EXTENSION_TYPE)

    @property
    def extension_name(self) -> str:
        return str(self.EXTENSION_TYPE)

    @classmethod
    def from_bytes(cls, data: bytes):
        r = IncrementalReader(data)
        ext = cls._read(r)
        if r.remaining:
            raise MalformedExtensionError(
                int(cls.EXTENSION_TYPE),
                cls.STRUCT_SIZE,
                len(data),
                f"{r.remaining} unread trailing bytes",
            )
        return ext

    @classmethod
    def _read(cls, r: IncrementalReader):
        return cls()


# ---------------------------------------------------------------------------
# Mint extensions
# ---------------------------------------------------------------------------


@dataclass
class TransferFee:
    epoch: int  # u64, first epoch this fee applies to
    maximum_fee: int  # u64
    transfer_fee_basis_points: int  # u16

    STRUCT_SIZE = 18
    ONE_IN_BASIS_POINTS = 10_000

    @classmethod
    def from_reader(cls, r: IncrementalReader) -> TransferFee:
        return cls(r.read_u64(), r.read_u64(), r.read_u16())

    def calculate_fee(self, amount: int) -> int:
        """Fee withheld on a transfer of ``amount``, rounded up and capped."""
        if self.transfer_fee_basis_points == 0 or amount == 0:
            return 0
        numerator = amount * self.transfer_fee_basis_points
        fee = -(-numerator // self.ONE_IN_BASIS_POINTS)
        return min(fee, self.maximum_fee)


@dataclass
class TransferFeeConfig(KnownExtension):
    transfer_fee_config_authority: Pubkey | None
    withdraw_withheld_authority: Pubkey | None
    withheld_amount: int  # u64
    older_transfer_fee: TransferFee
    newer_transfer_fee: TransferFee

    EXTENSION_TYPE = ExtensionType.TRANSFER_FEE_CONFIG
    STRUCT_SIZE = 32 + 32 + 8 + TransferFee.STRUCT_SIZE * 2

    @classmethod
    def _read(cls, r: IncrementalReader) -> TransferFeeConfig:
        return cls(
            transfer_fee_config_authority=_read_optional_pubkey(r),
            withdraw_withheld_authority=_read_optional_pubkey(r),
            withheld_amount=r.read_u64(),
            older_transfer_fee=TransferFee.from_reader(r),
            newer_transfer_fee=TransferFee.from_reader(r),
        )

    def get_epoch_fee(self, epoch: int) -> TransferFee:
        if epoch >= self.newer_transfer_fee.epoch:
            return self.newer_transfer_fee
        return self.older_transfer_fee


@dataclass
class MintCloseAuthority(KnownExtension):
    close_authority: Pubkey | None

    EXTENSION_TYPE = ExtensionType.MINT_CLOSE_AUTHORITY
    STRUCT_SIZE = 32

    @classmethod
    def _read(cls, r: IncrementalReader) -> MintCloseAuthority:
        return cls(_read_optional_pubkey(r))


@dataclass
class ConfidentialTransferMint(KnownExtension):
    authority: Pubkey | None
    auto_approve_new_accounts: bool
    auditor_elgamal_pubkey: bytes | None

    EXTENSION_TYPE = ExtensionType.CONFIDENTIAL_TRANSFER_MINT
    STRUCT_SIZE = 32 + 1 + ELGAMAL_PUBKEY_SIZE

    @classmethod
    def _read(cls, r: IncrementalReader) -> ConfidentialTransferMint:
        return cls(
            authority=_read_optional_pubkey(r),
            auto_approve_new_accounts=r.read_bool(),
            auditor_elgamal_pubkey=_read_optional_elgamal_pubkey(r),
        )


@dataclass
class DefaultAccountState(KnownExtension):
    state: AccountState

    EXTENSION_TYPE = ExtensionType.DEFAULT_ACCOUNT_STATE
    STRUCT_SIZE = 1

    @classmethod
    def _read(cls, r: IncrementalReader) -> DefaultAccountState:
        off = r.offset
        value = r.read_u8()
        if value not in AccountState._value2member_map_:
            raise MalformedFieldError("default_account_state", value, off)
        return cls(AccountState(value))


@dataclass
class NonTransferable(KnownExtension):
    EXTENSION_TYPE = ExtensionType.NON_TRANSFERABLE
    STRUCT_SIZE = 0


@dataclass
class InterestBearingConfig(KnownExtension):
    rate_authority: Pubkey | None
    initialization_timestamp: int  # i64, unix seconds
    pre_update_average_rate: int  # i16, basis points
    last_update_timestamp: int  # i64
    current_rate: int  # i16, basis points

    EXTENSION_TYPE = ExtensionType.INTEREST_BEARING_CONFIG
    STRUCT_SIZE = 32 + 8 + 2 + 8 + 2

    @classmethod
    def _read(cls, r: IncrementalReader) -> InterestBearingConfig:
        return cls(
            rate_authority=_read_optional_pubkey(r),
            initialization_timestamp=r.read_i64(),
            pre_update_average_rate=r.read_i16(),
            last_update_timestamp=r.read_i64(),
            current_rate=r.read_i16(),
        )


@dataclass
class PermanentDelegate(KnownExtension):
    delegate: Pubkey | None

    EXTENSION_TYPE = ExtensionType.PERMANENT_DELEGATE
    STRUCT_SIZE = 32

    @classmethod
    def _read(cls, r: IncrementalReader) -> PermanentDelegate:
        return cls(_read_optional_pubkey(r))


@dataclass
class TransferHook(KnownExtension):
    authority: Pubkey | None
    program_id: Pubkey | None

    EXTENSION_TYPE = ExtensionType.TRANSFER_HOOK
    STRUCT_SIZE = 64

    @classmethod
    def _read(cls, r: IncrementalReader) -> TransferHook:
        return cls(_read_optional_pubkey(r), _read_optional_pubkey(r))


@dataclass
class ConfidentialTransferFeeConfig(KnownExtension):
    authority: Pubkey | None
    withdraw_withheld_authority_elgamal_pubkey: bytes
    harvest_to_mint_enabled: bool
    withheld_amount: bytes  # ElGamal ciphertext

    EXTENSION_TYPE = ExtensionType.CONFIDENTIAL_TRANSFER_FEE_CONFIG
    STRUCT_SIZE = 32 + ELGAMAL_PUBKEY_SIZE + 1 + ELGAMAL_CIPHERTEXT_SIZE

    @classmethod
    def _read(cls, r: IncrementalReader) -> ConfidentialTransferFeeConfig:
        return cls(
            authority=_read_optional_pubkey(r),
            withdraw_withheld_authority_elgamal_pubkey=r.read_bytes(ELGAMAL_PUBKEY_SIZE),
            harvest_to_mint_enabled=r.read_bool(),
            withheld_amount=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
        )


@dataclass
class MetadataPointer(KnownExtension):
    authority: Pubkey | None
    metadata_address: Pubkey | None

    EXTENSION_TYPE = ExtensionType.METADATA_POINTER
    STRUCT_SIZE = 64

    @classmethod
    def _read(cls, r: IncrementalReader) -> MetadataPointer:
        return cls(_read_optional_pubkey(r), _read_optional_pubkey(r))


@dataclass
class TokenMetadata(KnownExtension):
    update_authority: Pubkey | None
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    additional_metadata: list[tuple[str, str]] = field(default_factory=list)

    EXTENSION_TYPE = ExtensionType.TOKEN_METADATA
    STRUCT_SIZE = None

    @classmethod
    def _read(cls, r: IncrementalReader) -> TokenMetadata:
        update_authority = _read_optional_pubkey(r)
        mint = _read_pubkey(r)
        name = r.read_string()
        symbol = r.read_string()
        uri = r.read_string()
        count = r.read_u32()
        additional = [(r.read_string(), r.read_string()) for _ in range(count)]
        return cls(
            update_authority=update_authority,
            mint=mint,
            name=name,
            symbol=symbol,
            uri=uri,
            additional_metadata=additional,
        )


@dataclass
class GroupPointer(KnownExtension):
    authority: Pubkey | None
    group_address: Pubkey | None

    EXTENSION_TYPE = ExtensionType.GROUP_POINTER
    STRUCT_SIZE = 64

    @classmethod
    def _read(cls, r: IncrementalReader) -> GroupPointer:
        return cls(_read_optional_pubkey(r), _read_optional_pubkey(r))


@dataclass
class TokenGroup(KnownExtension):
    update_authority: Pubkey | None
    mint: Pubkey
    size: int  # u64
    max_size: int  # u64

    EXTENSION_TYPE = ExtensionType.TOKEN_GROUP
    STRUCT_SIZE = 80

    @classmethod
    def _read(cls, r: IncrementalReader) -> TokenGroup:
        return cls(_read_optional_pubkey(r), _read_pubkey(r), r.read_u64(), r.read_u64())


@dataclass
class GroupMemberPointer(KnownExtension):
    authority: Pubkey | None
    member_address: Pubkey | None

    EXTENSION_TYPE = ExtensionType.GROUP_MEMBER_POINTER
    STRUCT_SIZE = 64

    @classmethod
    def _read(cls, r: IncrementalReader) -> GroupMemberPointer:
        return cls(_read_optional_pubkey(r), _read_optional_pubkey(r))


@dataclass
class TokenGroupMember(KnownExtension):
    mint: Pubkey
    group: Pubkey
    member_number: int  # u64

    EXTENSION_TYPE = ExtensionType.TOKEN_GROUP_MEMBER
    STRUCT_SIZE = 72

    @classmethod
    def _read(cls, r: IncrementalReader) -> TokenGroupMember:
        return cls(_read_pubkey(r), _read_pubkey(r), r.read_u64())


@dataclass
class ConfidentialMintBurn(KnownExtension):
    confidential_supply: bytes  # ElGamal ciphertext
    decryptable_supply: bytes  # AE ciphertext
    supply_elgamal_pubkey: bytes
    pending_burn: bytes  # ElGamal ciphertext

    EXTENSION_TYPE = ExtensionType.CONFIDENTIAL_MINT_BURN
    STRUCT_SIZE = (
        ELGAMAL_CIPHERTEXT_SIZE + AE_CIPHERTEXT_SIZE + ELGAMAL_PUBKEY_SIZE + ELGAMAL_CIPHERTEXT_SIZE
    )

    @classmethod
    def _read(cls, r: IncrementalReader) -> ConfidentialMintBurn:
        return cls(
            confidential_supply=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
            decryptable_supply=r.read_bytes(AE_CIPHERTEXT_SIZE),
            supply_elgamal_pubkey=r.read_bytes(ELGAMAL_PUBKEY_SIZE),
            pending_burn=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
        )


@dataclass
class ScaledUiAmountConfig(KnownExtension):
    authority: Pubkey | None
    multiplier: float
    new_multiplier_effective_timestamp: int  # i64
    new_multiplier: float

    EXTENSION_TYPE = ExtensionType.SCALED_UI_AMOUNT
    STRUCT_SIZE = 32 + 8 + 8 + 8

    @classmethod
    def _read(cls, r: IncrementalReader) -> ScaledUiAmountConfig:
        return cls(
            authority=_read_optional_pubkey(r),
            multiplier=r.read_f64(),
            new_multiplier_effective_timestamp=r.read_i64(),
            new_multiplier=r.read_f64(),
        )

    def multiplier_at(self, unix_timestamp: int) -> float:
        if unix_timestamp >= self.new_multiplier_effective_timestamp:
            return self.new_multiplier
        return self.multiplier


@dataclass
class PausableConfig(KnownExtension):
    authority: Pubkey | None
    paused: bool

    EXTENSION_TYPE = ExtensionType.PAUSABLE
    STRUCT_SIZE = 33

    @classmethod
    def _read(cls, r: IncrementalReader) -> PausableConfig:
        return cls(_read_optional_pubkey(r), r.read_bool())


# ---------------------------------------------------------------------------
# Token account extensions
# ---------------------------------------------------------------------------


@dataclass
class TransferFeeAmount(KnownExtension):
    withheld_amount: int  # u64

    EXTENSION_TYPE = ExtensionType.TRANSFER_FEE_AMOUNT
    STRUCT_SIZE = 8

    @classmethod
    def _read(cls, r: IncrementalReader) -> TransferFeeAmount:
        return cls(r.read_u64())


@dataclass
class ConfidentialTransferAccount(KnownExtension):
    approved: bool
    elgamal_pubkey: bytes
    pending_balance_lo: bytes
    pending_balance_hi: bytes
    available_balance: bytes
    decryptable_available_balance: bytes
    allow_confidential_credits: bool
    allow_non_confidential_credits: bool
    pending_balance_credit_counter: int  # u64
    maximum_pending_balance_credit_counter: int  # u64
    expected_pending_balance_credit_counter: int  # u64
    actual_pending_balance_credit_counter: int  # u64

    EXTENSION_TYPE = ExtensionType.CONFIDENTIAL_TRANSFER_ACCOUNT
    STRUCT_SIZE = 1 + ELGAMAL_PUBKEY_SIZE + ELGAMAL_CIPHERTEXT_SIZE * 3 + AE_CIPHERTEXT_SIZE + 2 + 32

    @classmethod
    def _read(cls, r: IncrementalReader) -> ConfidentialTransferAccount:
        return cls(
            approved=r.read_bool(),
            elgamal_pubkey=r.read_bytes(ELGAMAL_PUBKEY_SIZE),
            pending_balance_lo=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
            pending_balance_hi=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
            available_balance=r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE),
            decryptable_available_balance=r.read_bytes(AE_CIPHERTEXT_SIZE),
            allow_confidential_credits=r.read_bool(),
            allow_non_confidential_credits=r.read_bool(),
            pending_balance_credit_counter=r.read_u64(),
            maximum_pending_balance_credit_counter=r.read_u64(),
            expected_pending_balance_credit_counter=r.read_u64(),
            actual_pending_balance_credit_counter=r.read_u64(),
        )


@dataclass
class ImmutableOwner(KnownExtension):
    EXTENSION_TYPE = ExtensionType.IMMUTABLE_OWNER
    STRUCT_SIZE = 0


@dataclass
class MemoTransfer(KnownExtension):
    require_incoming_transfer_memos: bool

    EXTENSION_TYPE = ExtensionType.MEMO_TRANSFER
    STRUCT_SIZE = 1

    @classmethod
    def _read(cls, r: IncrementalReader) -> MemoTransfer:
        return cls(r.read_bool())


@dataclass
class CpiGuard(KnownExtension):
    lock_cpi: bool

    EXTENSION_TYPE = ExtensionType.CPI_GUARD
    STRUCT_SIZE = 1

    @classmethod
    def _read(cls, r: IncrementalReader) -> CpiGuard:
        return cls(r.read_bool())


@dataclass
class NonTransferableAccount(KnownExtension):
    EXTENSION_TYPE = ExtensionType.NON_TRANSFERABLE_ACCOUNT
    STRUCT_SIZE = 0


@dataclass
class TransferHookAccount(KnownExtension):
    transferring: bool

    EXTENSION_TYPE = ExtensionType.TRANSFER_HOOK_ACCOUNT
    STRUCT_SIZE = 1

    @classmethod
    def _read(cls, r: IncrementalReader) -> TransferHookAccount:
        return cls(r.read_bool())


@dataclass
class ConfidentialTransferFeeAmount(KnownExtension):
    withheld_amount: bytes  # ElGamal ciphertext

    EXTENSION_TYPE = ExtensionType.CONFIDENTIAL_TRANSFER_FEE_AMOUNT
    STRUCT_SIZE = ELGAMAL_CIPHERTEXT_SIZE

    @classmethod
    def _read(cls, r: IncrementalReader) -> ConfidentialTransferFeeAmount:
        return cls(r.read_bytes(ELGAMAL_CIPHERTEXT_SIZE))


@dataclass
class PausableAccount(KnownExtension):
    EXTENSION_TYPE = ExtensionType.PAUSABLE_ACCOUNT
    STRUCT_SIZE = 0


# ---------------------------------------------------------------------------
# Fallback and dispatch
# ---------------------------------------------------------------------------


@dataclass
class UnknownExtension:
    """Payload of a type code this decoder does not know, kept verbatim."""

    type_code: int
    data: bytes

    @property
    def extension_name(self) -> str:
        return f"unknown({self.type_code})"


Extension = Union[KnownExtension, UnknownExtension]

MINT_EXTENSIONS: dict[int, type[KnownExtension]] = {
    int(c.EXTENSION_TYPE): c
    for c in (
        TransferFeeConfig,
        MintCloseAuthority,
        ConfidentialTransferMint,
        DefaultAccountState,
        NonTransferable,
        InterestBearingConfig,
        PermanentDelegate,
        TransferHook,
        ConfidentialTransferFeeConfig,
        MetadataPointer,
        TokenMetadata,
        GroupPointer,
        TokenGroup,
        GroupMemberPointer,
        TokenGroupMember,
        ConfidentialMintBurn,
        ScaledUiAmountConfig,
        PausableConfig,
    )
}

ACCOUNT_EXTENSIONS: dict[int, type[KnownExtension]] = {
    int(c.EXTENSION_TYPE): c
    for c in (
        TransferFeeAmount,
        ConfidentialTransferAccount,
        ImmutableOwner,
        MemoTransfer,
        CpiGuard,
        NonTransferableAccount,
        TransferHookAccount,
        ConfidentialTransferFeeAmount,
        PausableAccount,
    )
}

ALL_EXTENSIONS: dict[int, type[KnownExtension]] = {**MINT_EXTENSIONS, **ACCOUNT_EXTENSIONS}


def _table_for(account_type: AccountType | None) -> dict[int, type[KnownExtension]]:
    if account_type == AccountType.MINT:
        return MINT_EXTENSIONS
    if account_type == AccountType.ACCOUNT:
        return ACCOUNT_EXTENSIONS
    return ALL_EXTENSIONS


def decode_extension(
    type_code: int,
    payload: bytes,
    account_type: AccountType | None = None,
) -> Extension:
    """Decode one TLV record.

    ``account_type`` restricts the lookup to mint or account extensions; a
    code outside the selected table decodes to UnknownExtension. A known
    code whose payload does not have the expected shape raises
    MalformedExtensionError.
    """
    cls = _table_for(account_type).get(type_code)
    if cls is None:
        logger.debug("unknown extension type %d (%d bytes)", type_code, len(payload))
        return UnknownExtension(type_code, bytes(payload))

    if cls.STRUCT_SIZE is not None and len(payload) != cls.STRUCT_SIZE:
        raise MalformedExtensionError(type_code, cls.STRUCT_SIZE, len(payload))
    try:
        return cls.from_bytes(payload)
    except TruncatedBufferError as e:
        raise MalformedExtensionError(type_code, cls.STRUCT_SIZE, len(payload), str(e)) from e
    except UnicodeDecodeError as e:
        raise MalformedExtensionError(
            type_code, cls.STRUCT_SIZE, len(payload), f"invalid utf-8: {e}"
        ) from e
