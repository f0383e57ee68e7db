"""Fixed-layout base state tests."""

import struct

import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.errors import MalformedFieldError, TruncatedBufferError
from tokenscope.state import (
    ACCOUNT_SIZE,
    MINT_SIZE,
    AccountState,
    AccountType,
    MintBase,
    TokenAccountBase,
    account_type_of,
    account_type_offset,
)

AUTHORITY = Pubkey.from_bytes(bytes(range(1, 33)))
FREEZE = Pubkey.from_bytes(bytes(range(33, 65)))
MINT = Pubkey.from_bytes(bytes([7]) * 32)
OWNER = Pubkey.from_bytes(bytes([8]) * 32)


def _raw_mint(
    auth_tag=1, auth=AUTHORITY, supply=1_000_000, decimals=6, init=1,
    freeze_tag=0, freeze=None,
) -> bytes:
    freeze_bytes = bytes(freeze) if freeze is not None else b"\xaa" * 32
    return (
        struct.pack("<I", auth_tag) + bytes(auth)
        + struct.pack("<QBB", supply, decimals, init)
        + struct.pack("<I", freeze_tag) + freeze_bytes
    )


def _raw_account(state=1, delegate_tag=0, native_tag=0, close_tag=0) -> bytes:
    return (
        bytes(MINT) + bytes(OWNER) + struct.pack("<Q", 500)
        + struct.pack("<I", delegate_tag) + bytes(AUTHORITY)
        + bytes([state])
        + struct.pack("<IQ", native_tag, 2_039_280)
        + struct.pack("<Q", 25)
        + struct.pack("<I", close_tag) + bytes(FREEZE)
    )


class TestMintBase:
    def test_all_zero_mint(self):
        mint = MintBase.from_bytes(bytes(MINT_SIZE))
        assert mint == MintBase(
            mint_authority=None,
            supply=0,
            decimals=0,
            is_initialized=False,
            freeze_authority=None,
        )

    def test_decode_fields(self):
        mint = MintBase.from_bytes(_raw_mint())
        assert mint.mint_authority == AUTHORITY
        assert mint.supply == 1_000_000
        assert mint.decimals == 6
        assert mint.is_initialized is True
        assert mint.freeze_authority is None

    def test_absent_authority_ignores_slot_bytes(self):
        mint = MintBase.from_bytes(_raw_mint(auth_tag=0, auth=FREEZE))
        assert mint.mint_authority is None

    def test_present_freeze_authority(self):
        mint = MintBase.from_bytes(_raw_mint(freeze_tag=1, freeze=FREEZE))
        assert mint.freeze_authority == FREEZE

    def test_nonzero_initialized_byte_is_true(self):
        assert MintBase.from_bytes(_raw_mint(init=7)).is_initialized is True

    @pytest.mark.parametrize("tag", [2, 255, 0x01000000])
    def test_bad_option_tag(self, tag):
        with pytest.raises(MalformedFieldError) as exc:
            MintBase.from_bytes(_raw_mint(auth_tag=tag))
        assert exc.value.field == "mint_authority"
        assert exc.value.value == tag
        assert exc.value.offset == 0

    def test_bad_freeze_tag_offset(self):
        with pytest.raises(MalformedFieldError) as exc:
            MintBase.from_bytes(_raw_mint(freeze_tag=3))
        assert exc.value.offset == 46

    @pytest.mark.parametrize("size", [0, 1, 36, 81])
    def test_truncated(self, size):
        with pytest.raises(TruncatedBufferError) as exc:
            MintBase.from_bytes(bytes(size))
        assert exc.value.need == MINT_SIZE
        assert exc.value.have == size

    def test_extra_trailing_bytes_ignored(self):
        mint = MintBase.from_bytes(_raw_mint() + b"\xff" * 10)
        assert mint.supply == 1_000_000

    def test_round_trip(self):
        mint = MintBase(AUTHORITY, 2**64 - 1, 9, True, FREEZE)
        raw = mint.to_bytes()
        assert len(raw) == MINT_SIZE
        assert MintBase.from_bytes(raw) == mint

    def test_round_trip_absent(self):
        mint = MintBase(None, 0, 0, False, None)
        assert mint.to_bytes() == bytes(MINT_SIZE)


class TestTokenAccountBase:
    def test_decode_fields(self):
        acct = TokenAccountBase.from_bytes(_raw_account(delegate_tag=1, native_tag=1, close_tag=1))
        assert acct.mint == MINT
        assert acct.owner == OWNER
        assert acct.amount == 500
        assert acct.delegate == AUTHORITY
        assert acct.state == AccountState.INITIALIZED
        assert acct.is_native == 2_039_280
        assert acct.delegated_amount == 25
        assert acct.close_authority == FREEZE
        assert acct.is_frozen is False

    def test_absent_options(self):
        acct = TokenAccountBase.from_bytes(_raw_account())
        assert acct.delegate is None
        assert acct.is_native is None
        assert acct.close_authority is None

    @pytest.mark.parametrize(
        "value,expected",
        [(0, AccountState.UNINITIALIZED), (1, AccountState.INITIALIZED), (2, AccountState.FROZEN)],
    )
    def test_state_values(self, value, expected):
        assert TokenAccountBase.from_bytes(_raw_account(state=value)).state == expected

    def test_frozen(self):
        assert TokenAccountBase.from_bytes(_raw_account(state=2)).is_frozen is True

    @pytest.mark.parametrize("value", [3, 255])
    def test_bad_state(self, value):
        with pytest.raises(MalformedFieldError) as exc:
            TokenAccountBase.from_bytes(_raw_account(state=value))
        assert exc.value.field == "state"
        assert exc.value.offset == 108

    def test_bad_native_tag(self):
        with pytest.raises(MalformedFieldError) as exc:
            TokenAccountBase.from_bytes(_raw_account(native_tag=2))
        assert exc.value.field == "is_native"

    def test_truncated(self):
        with pytest.raises(TruncatedBufferError):
            TokenAccountBase.from_bytes(_raw_account()[:164])

    def test_round_trip(self):
        acct = TokenAccountBase(
            mint=MINT,
            owner=OWNER,
            amount=42,
            delegate=AUTHORITY,
            state=AccountState.FROZEN,
            is_native=None,
            delegated_amount=7,
            close_authority=None,
        )
        raw = acct.to_bytes()
        assert len(raw) == ACCOUNT_SIZE
        assert TokenAccountBase.from_bytes(raw) == acct

    def test_round_trip_from_wire(self):
        raw = _raw_account(delegate_tag=1, native_tag=1, close_tag=1)
        assert TokenAccountBase.from_bytes(raw).to_bytes() == raw


class TestAccountTypeOf:
    def test_exact_base_size_has_no_type(self):
        assert account_type_of(bytes(MINT_SIZE), MINT_SIZE) is None
        assert account_type_of(bytes(ACCOUNT_SIZE), ACCOUNT_SIZE) is None

    def test_reads_byte_after_padded_base(self):
        data = bytes(ACCOUNT_SIZE) + bytes([AccountType.MINT])
        assert account_type_of(data, MINT_SIZE) == AccountType.MINT
        data = bytes(ACCOUNT_SIZE) + bytes([AccountType.ACCOUNT]) + bytes(4)
        assert account_type_of(data, ACCOUNT_SIZE) == AccountType.ACCOUNT

    def test_reads_byte_right_after_mint_base(self):
        assert account_type_of(bytes(MINT_SIZE) + b"\x00", MINT_SIZE) == AccountType.UNINITIALIZED
        data = bytes(MINT_SIZE) + bytes([AccountType.MINT]) + bytes(10)
        assert account_type_of(data, MINT_SIZE) == AccountType.MINT

    def test_compact_mint_with_long_tail(self):
        # Nonzero byte at the base boundary rules out the padded layout.
        data = bytes(MINT_SIZE) + bytes([AccountType.MINT]) + b"\x03\x00" + bytes(200)
        assert account_type_offset(data, MINT_SIZE) == MINT_SIZE
        assert account_type_of(data, MINT_SIZE) == AccountType.MINT

    def test_padded_mint_offset(self):
        data = bytes(ACCOUNT_SIZE) + bytes([AccountType.MINT])
        assert account_type_offset(data, MINT_SIZE) == ACCOUNT_SIZE
        assert account_type_offset(bytes(ACCOUNT_SIZE), MINT_SIZE) == MINT_SIZE

    def test_account_offset(self):
        data = bytes(ACCOUNT_SIZE) + bytes([AccountType.ACCOUNT])
        assert account_type_offset(data, ACCOUNT_SIZE) == ACCOUNT_SIZE

    def test_unknown_type_byte_after_mint_base(self):
        with pytest.raises(MalformedFieldError) as exc:
            account_type_of(bytes(MINT_SIZE) + b"\x07", MINT_SIZE)
        assert exc.value.offset == MINT_SIZE

    def test_account_shorter_than_type_byte(self):
        with pytest.raises(TruncatedBufferError):
            account_type_of(bytes(100), ACCOUNT_SIZE)

    def test_unknown_type_byte(self):
        data = bytes(ACCOUNT_SIZE) + bytes([3])
        with pytest.raises(MalformedFieldError) as exc:
            account_type_of(data, ACCOUNT_SIZE)
        assert exc.value.offset == ACCOUNT_SIZE


def test_enum_strings():
    assert str(AccountState.FROZEN) == "frozen"
    assert str(AccountType.ACCOUNT) == "account"
