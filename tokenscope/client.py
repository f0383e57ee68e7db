"""Async RPC client for fetching and decoding token accounts."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.rpc.responses import GetAccountInfoResp  # type: ignore[import-untyped]

from tokenscope.config import SOLANA_RPC_URLS
from tokenscope.decoder import Mint, TokenAccount, decode_mint, decode_token_account
from tokenscope.errors import AccountNotFoundError
from tokenscope.metadata import MasterEdition, Metadata, MintMetadata
from tokenscope.pda import derive_master_edition_pda, derive_metadata_pda
from tokenscope.rpc import new_rpc_client

logger = logging.getLogger(__name__)


class SolanaClient(Protocol):
    async def get_account_info(self, pubkey: Pubkey) -> GetAccountInfoResp: ...


class Client:
    """Read-only client for SPL Token and Token-2022 accounts."""

    def __init__(
        self,
        solana_rpc: SolanaClient,
        metadata_program_id: Pubkey | None = None,
    ) -> None:
        self._solana_rpc = solana_rpc
        self._metadata_program_id = metadata_program_id

    @classmethod
    def from_url(cls, url: str) -> Client:
        return cls(new_rpc_client(url))

    @classmethod
    def from_env(cls, env: str) -> Client:
        """Create a client configured for the given environment.

        Args:
            env: Environment name ("mainnet-beta", "testnet", "devnet", "localnet")
        """
        return cls.from_url(SOLANA_RPC_URLS[env])

    @classmethod
    def mainnet_beta(cls) -> Client:
        return cls.from_env("mainnet-beta")

    @classmethod
    def devnet(cls) -> Client:
        return cls.from_env("devnet")

    @classmethod
    def localnet(cls) -> Client:
        return cls.from_env("localnet")

    async def close(self) -> None:
        close = getattr(self._solana_rpc, "close", None)
        if close is not None:
            await close()

    async def fetch_account(self, addr: Pubkey) -> tuple[Pubkey, bytes]:
        """Return ``(owner, data)`` for ``addr``. Raises AccountNotFoundError."""
        logger.debug("fetching account %s", addr)
        resp = await self._solana_rpc.get_account_info(addr)
        if resp.value is None:
            raise AccountNotFoundError(addr)
        return resp.value.owner, bytes(resp.value.data)

    async def fetch_token_metadata(self, mint: Pubkey) -> MintMetadata:
        """Fetch the Metaplex metadata and master edition of ``mint`` concurrently."""
        metadata_addr, _ = derive_metadata_pda(mint, self._metadata_program_id)
        edition_addr, _ = derive_master_edition_pda(mint, self._metadata_program_id)
        metadata, master_edition = await asyncio.gather(
            self._fetch_optional(metadata_addr, Metadata),
            self._fetch_optional(edition_addr, MasterEdition),
        )
        return MintMetadata(metadata=metadata, master_edition=master_edition)

    async def fetch_mint(self, addr: Pubkey, with_metadata: bool = True) -> Mint:
        if not with_metadata:
            owner, data = await self.fetch_account(addr)
            return decode_mint(data, owner, address=addr)
        (owner, data), metadata = await asyncio.gather(
            self.fetch_account(addr),
            self.fetch_token_metadata(addr),
        )
        return decode_mint(data, owner, metadata=metadata, address=addr)

    async def fetch_token_account(
        self,
        addr: Pubkey,
        mint: Pubkey | None = None,
        with_metadata: bool = True,
    ) -> tuple[TokenAccount, Mint]:
        """Fetch a token account together with its mint.

        When ``mint`` is known up front both accounts are fetched concurrently;
        otherwise the mint address is read from the token account first.
        """
        if mint is None:
            owner, data = await self.fetch_account(addr)
            account = decode_token_account(data, owner, address=addr)
            mint_state = await self.fetch_mint(account.mint, with_metadata)
            return account, mint_state

        (owner, data), mint_state = await asyncio.gather(
            self.fetch_account(addr),
            self.fetch_mint(mint, with_metadata),
        )
        account = decode_token_account(data, owner, address=addr)
        if account.mint != mint:
            raise ValueError(f"token account {addr} holds mint {account.mint}, not {mint}")
        return account, mint_state

    async def _fetch_optional(self, addr: Pubkey, cls: type):
        try:
            _, data = await self.fetch_account(addr)
        except AccountNotFoundError:
            logger.info("no %s account at %s", cls.__name__, addr)
            return None
        try:
            return cls.from_bytes(data)
        except ValueError as e:
            logger.warning("could not decode %s at %s: %s", cls.__name__, addr, e)
            return None
