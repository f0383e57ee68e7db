"""Client tests against an in-memory RPC."""

import asyncio
import struct
from types import SimpleNamespace

import httpx
import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope import rpc
from tokenscope.client import Client
from tokenscope.config import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from tokenscope.errors import AccountNotFoundError, UnrecognizedOwnerError
from tokenscope.extensions import MintCloseAuthority
from tokenscope.metadata import Key
from tokenscope.pda import derive_master_edition_pda, derive_metadata_pda
from tokenscope.program import TokenProgram
from tokenscope.state import AccountState, AccountType, MintBase, TokenAccountBase

LEGACY = Pubkey.from_string(TOKEN_PROGRAM_ID)
EXTENSIBLE = Pubkey.from_string(TOKEN_2022_PROGRAM_ID)
METADATA_OWNER = Pubkey.from_bytes(bytes([9]) * 32)

MINT = Pubkey.from_bytes(bytes([10]) * 32)
OTHER_MINT = Pubkey.from_bytes(bytes([11]) * 32)
ACCOUNT = Pubkey.from_bytes(bytes([12]) * 32)
WALLET = Pubkey.from_bytes(bytes([13]) * 32)


class FakeRpc:
    """Serves accounts from a dict and records the requested addresses."""

    def __init__(self, accounts: dict[Pubkey, tuple[Pubkey, bytes]]) -> None:
        self.accounts = accounts
        self.requested: list[Pubkey] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def get_account_info(self, pubkey: Pubkey):
        self.requested.append(pubkey)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        entry = self.accounts.get(pubkey)
        if entry is None:
            return SimpleNamespace(value=None)
        owner, data = entry
        return SimpleNamespace(value=SimpleNamespace(owner=owner, data=data))

    async def close(self) -> None:
        self.closed = True


def _string(s: str, capacity: int) -> bytes:
    raw = s.encode().ljust(capacity, b"\x00")
    return struct.pack("<I", len(raw)) + raw


def _metadata_bytes(mint: Pubkey) -> bytes:
    return (
        bytes([Key.METADATA_V1])
        + bytes(WALLET)
        + bytes(mint)
        + _string("Test Coin", 32)
        + _string("TST", 10)
        + _string("https://example.com/t.json", 200)
        + struct.pack("<H", 0)
        + b"\x00\x00\x01"
    )


def _edition_bytes() -> bytes:
    return bytes([Key.MASTER_EDITION_V2]) + struct.pack("<Q", 1) + b"\x01" + struct.pack("<Q", 5)


def _mint_bytes() -> bytes:
    return MintBase(WALLET, 5_000, 2, True, None).to_bytes()


def _account_bytes(mint: Pubkey = MINT) -> bytes:
    return TokenAccountBase(
        mint, WALLET, 250, None, AccountState.INITIALIZED, None, 0, None
    ).to_bytes()


def _with_metadata(accounts: dict) -> dict:
    accounts[derive_metadata_pda(MINT)[0]] = (METADATA_OWNER, _metadata_bytes(MINT))
    accounts[derive_master_edition_pda(MINT)[0]] = (METADATA_OWNER, _edition_bytes())
    return accounts


class TestFetchMint:
    async def test_mint_with_metadata(self):
        fake = FakeRpc(_with_metadata({MINT: (LEGACY, _mint_bytes())}))
        mint = await Client(fake).fetch_mint(MINT)
        assert mint.supply == 5_000
        assert mint.address == MINT
        assert mint.metadata.metadata.name == "Test Coin"
        assert mint.metadata.metadata.symbol == "TST"
        assert mint.metadata.master_edition.max_supply == 5
        assert len(fake.requested) == 3
        assert fake.max_in_flight == 3

    async def test_mint_without_metadata_accounts(self):
        fake = FakeRpc({MINT: (LEGACY, _mint_bytes())})
        mint = await Client(fake).fetch_mint(MINT)
        assert mint.metadata.metadata is None
        assert mint.metadata.master_edition is None

    async def test_skip_metadata(self):
        fake = FakeRpc(_with_metadata({MINT: (LEGACY, _mint_bytes())}))
        mint = await Client(fake).fetch_mint(MINT, with_metadata=False)
        assert mint.metadata is None
        assert fake.requested == [MINT]

    async def test_undecodable_metadata_is_dropped(self):
        accounts = {MINT: (LEGACY, _mint_bytes())}
        accounts[derive_metadata_pda(MINT)[0]] = (METADATA_OWNER, b"\x04\x00")
        mint = await Client(FakeRpc(accounts)).fetch_mint(MINT)
        assert mint.metadata.metadata is None

    async def test_extensible_mint(self):
        tlv = struct.pack("<HH", 3, 32) + bytes(WALLET)
        data = _mint_bytes() + bytes(165 - 82) + bytes([AccountType.MINT]) + tlv
        mint = await Client(FakeRpc({MINT: (EXTENSIBLE, data)})).fetch_mint(
            MINT, with_metadata=False
        )
        assert mint.program is TokenProgram.EXTENSIBLE
        assert mint.extensions == [MintCloseAuthority(WALLET)]

    async def test_missing_mint(self):
        with pytest.raises(AccountNotFoundError) as exc:
            await Client(FakeRpc({})).fetch_mint(MINT)
        assert exc.value.address == MINT

    async def test_foreign_owner(self):
        fake = FakeRpc({MINT: (METADATA_OWNER, _mint_bytes())})
        with pytest.raises(UnrecognizedOwnerError):
            await Client(fake).fetch_mint(MINT, with_metadata=False)

    async def test_custom_metadata_program(self):
        program = Pubkey.from_bytes(bytes([20]) * 32)
        fake = FakeRpc({MINT: (LEGACY, _mint_bytes())})
        await Client(fake, metadata_program_id=program).fetch_mint(MINT)
        assert derive_metadata_pda(MINT, program)[0] in fake.requested


class TestFetchTokenAccount:
    async def test_reads_mint_from_account(self):
        fake = FakeRpc({ACCOUNT: (LEGACY, _account_bytes()), MINT: (LEGACY, _mint_bytes())})
        account, mint = await Client(fake).fetch_token_account(ACCOUNT, with_metadata=False)
        assert account.amount == 250
        assert account.address == ACCOUNT
        assert mint.decimals == 2
        assert fake.requested == [ACCOUNT, MINT]

    async def test_known_mint_fetches_concurrently(self):
        fake = FakeRpc({ACCOUNT: (LEGACY, _account_bytes()), MINT: (LEGACY, _mint_bytes())})
        account, mint = await Client(fake).fetch_token_account(
            ACCOUNT, mint=MINT, with_metadata=False
        )
        assert account.mint == MINT
        assert mint.address == MINT
        assert fake.max_in_flight == 2

    async def test_known_mint_mismatch(self):
        fake = FakeRpc(
            {ACCOUNT: (LEGACY, _account_bytes(OTHER_MINT)), MINT: (LEGACY, _mint_bytes())}
        )
        with pytest.raises(ValueError, match="holds mint"):
            await Client(fake).fetch_token_account(ACCOUNT, mint=MINT, with_metadata=False)

    async def test_missing_account(self):
        fake = FakeRpc({MINT: (LEGACY, _mint_bytes())})
        with pytest.raises(AccountNotFoundError):
            await Client(fake).fetch_token_account(ACCOUNT)


async def test_close_delegates_to_rpc():
    fake = FakeRpc({})
    await Client(fake).close()
    assert fake.closed


class TestRetryTransport:
    async def test_retries_rate_limited_requests(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(rpc.asyncio, "sleep", fake_sleep)
        statuses = iter([429, 429, 200])
        transport = rpc._RetryTransport(
            httpx.MockTransport(lambda request: httpx.Response(next(statuses)))
        )
        async with httpx.AsyncClient(transport=transport) as http:
            resp = await http.post("https://rpc.example", json={})
        assert resp.status_code == 200
        assert delays == [2, 4]

    async def test_gives_up_after_max_retries(self, monkeypatch):
        async def fake_sleep(seconds):
            pass

        monkeypatch.setattr(rpc.asyncio, "sleep", fake_sleep)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        transport = rpc._RetryTransport(httpx.MockTransport(handler), max_retries=2)
        async with httpx.AsyncClient(transport=transport) as http:
            resp = await http.get("https://rpc.example")
        assert resp.status_code == 429
        assert len(calls) == 3
