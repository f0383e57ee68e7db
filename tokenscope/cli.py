"""Command-line inspector for SPL Token and Token-2022 accounts.

stdout carries the report (text or ``--json``); logs and errors go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

import httpx
from solana.exceptions import SolanaRpcException  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.client import Client
from tokenscope.config import RPC_URL_ENV, SOLANA_RPC_URLS
from tokenscope.decoder import Mint, TokenAccount, decode_mint, decode_token_account
from tokenscope.errors import AccountNotFoundError
from tokenscope.extensions import UnknownExtension
from tokenscope.normalize import (
    DATA_ENCODINGS,
    mint_to_dict,
    parse_account_data,
    to_plain,
    token_account_to_dict,
    ui_amount_string,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]
_LOCAL_PREFIXES = ("http://localhost", "http://127.0.0.1")


def _pubkey_arg(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid pubkey {value!r}: {e}") from e


def _decimals_arg(value: str) -> int:
    try:
        decimals = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid decimals {value!r}") from e
    if decimals < 0:
        raise argparse.ArgumentTypeError(f"decimals must be >= 0, got {decimals}")
    return decimals


def _rpc_url_arg(value: str) -> str:
    if value.startswith("https://") or value.startswith(_LOCAL_PREFIXES):
        return value
    raise argparse.ArgumentTypeError(f"invalid RPC URL: {value} (must use https://)")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tokenscope",
        description="Fetch and decode SPL Token and Token-2022 accounts",
    )
    ap.add_argument(
        "--solana-rpc-url",
        type=_rpc_url_arg,
        default=None,
        help=f"RPC URL for the Solana cluster (default: ${RPC_URL_ENV} or --env)",
    )
    ap.add_argument(
        "--env",
        default="mainnet-beta",
        choices=SOLANA_RPC_URLS.keys(),
        help="Cluster to use when no RPC URL is given",
    )
    ap.add_argument("--log-level", default="warning", choices=LOG_LEVELS, help="Log level")

    sub = ap.add_subparsers(dest="command", required=True)

    mint = sub.add_parser("mint", help="Mint accounts")
    mint_sub = mint.add_subparsers(dest="action", required=True)
    mint_fetch = mint_sub.add_parser("fetch", help="Fetch and decode a mint")
    mint_fetch.add_argument("address", type=_pubkey_arg, help="Mint address")
    mint_fetch.add_argument("--json", action="store_true", help="Print JSON")
    mint_fetch.add_argument(
        "--no-metadata", action="store_true", help="Skip the Metaplex metadata lookup"
    )

    acct = sub.add_parser("token-account", help="Token accounts")
    acct_sub = acct.add_subparsers(dest="action", required=True)
    acct_fetch = acct_sub.add_parser("fetch", help="Fetch and decode a token account and its mint")
    acct_fetch.add_argument("address", type=_pubkey_arg, help="Token account address")
    acct_fetch.add_argument("--mint", type=_pubkey_arg, default=None, help="Expected mint address")
    acct_fetch.add_argument("--json", action="store_true", help="Print JSON")
    acct_fetch.add_argument(
        "--no-metadata", action="store_true", help="Skip the Metaplex metadata lookup"
    )

    mint_decode = mint_sub.add_parser("decode", help="Decode raw mint data without RPC")
    _add_decode_args(mint_decode)

    acct_decode = acct_sub.add_parser(
        "decode", help="Decode raw token account data without RPC"
    )
    _add_decode_args(acct_decode)
    acct_decode.add_argument(
        "--decimals", type=_decimals_arg, default=None, help="Mint decimals for the UI amount"
    )
    return ap


def _add_decode_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("data", help="Account data as returned by getAccountInfo")
    p.add_argument(
        "--owner", type=_pubkey_arg, required=True, help="Owning token program id"
    )
    p.add_argument("--encoding", default="base64", choices=DATA_ENCODINGS, help="Data encoding")
    p.add_argument("--json", action="store_true", help="Print JSON")


def resolve_rpc_url(args: argparse.Namespace) -> str:
    if args.solana_rpc_url:
        return args.solana_rpc_url
    from_env = os.environ.get(RPC_URL_ENV)
    if from_env:
        return _rpc_url_arg(from_env)
    return SOLANA_RPC_URLS[args.env]


def _opt(value) -> str:
    return "none" if value is None else str(value)


def _extension_lines(extensions) -> list[str]:
    if not extensions:
        return []
    lines = [f"Extensions ({len(extensions)}):"]
    for ext in extensions:
        if isinstance(ext, UnknownExtension):
            lines.append(f"  {ext.extension_name}: {len(ext.data)} bytes {ext.data.hex()}")
            continue
        lines.append(f"  {ext.extension_name}")
        for k, v in to_plain(ext).items():
            lines.append(f"    {k:<40} {_opt(v)}")
    return lines


def format_mint(mint: Mint) -> str:
    lines = [
        "=== Mint ===",
        f"Address:                {_opt(mint.address)}",
        f"Program:                {mint.program}",
        f"Supply:                 {ui_amount_string(mint.supply, mint.decimals)} ({mint.supply})",
        f"Decimals:               {mint.decimals}",
        f"Initialized:            {mint.is_initialized}",
        f"Mint Authority:         {_opt(mint.mint_authority)}",
        f"Freeze Authority:       {_opt(mint.freeze_authority)}",
    ]
    md = mint.metadata.metadata if mint.metadata else None
    if md is not None:
        lines += [
            f"Name:                   {md.name}",
            f"Symbol:                 {md.symbol}",
            f"URI:                    {md.uri}",
            f"Update Authority:       {md.update_authority}",
            f"Mutable:                {md.is_mutable}",
        ]
    edition = mint.metadata.master_edition if mint.metadata else None
    if edition is not None:
        lines.append(f"Edition Supply:         {edition.supply} / {_opt(edition.max_supply)}")
    lines += _extension_lines(mint.extensions)
    return "\n".join(lines)


def format_token_account(account: TokenAccount, decimals: int | None = None) -> str:
    amount = str(account.amount)
    if decimals is not None:
        amount = f"{ui_amount_string(account.amount, decimals)} ({account.amount})"
    lines = [
        "=== Token Account ===",
        f"Address:                {_opt(account.address)}",
        f"Program:                {account.program}",
        f"Mint:                   {account.mint}",
        f"Owner:                  {account.owner}",
        f"Amount:                 {amount}",
        f"State:                  {account.state}",
        f"Delegate:               {_opt(account.delegate)}",
        f"Delegated Amount:       {account.delegated_amount}",
        f"Native Reserve:         {_opt(account.is_native)}",
        f"Close Authority:        {_opt(account.close_authority)}",
    ]
    lines += _extension_lines(account.extensions)
    return "\n".join(lines)


def _decode(args: argparse.Namespace) -> None:
    data = parse_account_data(args.data, args.encoding)
    if args.command == "mint":
        mint = decode_mint(data, args.owner)
        print(json.dumps(mint_to_dict(mint), indent=2) if args.json else format_mint(mint))
        return
    account = decode_token_account(data, args.owner)
    if args.json:
        print(json.dumps(token_account_to_dict(account, args.decimals), indent=2))
    else:
        print(format_token_account(account, args.decimals))


async def _run(args: argparse.Namespace, client: Client) -> None:
    with_metadata = not args.no_metadata
    if args.command == "mint":
        mint = await client.fetch_mint(args.address, with_metadata)
        if args.json:
            print(json.dumps(mint_to_dict(mint), indent=2))
        else:
            print(format_mint(mint))
        return

    account, mint = await client.fetch_token_account(args.address, args.mint, with_metadata)
    if args.json:
        out = {
            "token_account": token_account_to_dict(account, mint.decimals),
            "mint": mint_to_dict(mint),
        }
        print(json.dumps(out, indent=2))
    else:
        print(format_mint(mint))
        print()
        print(format_token_account(account, mint.decimals))


async def _main(args: argparse.Namespace, client: Client) -> None:
    try:
        await _run(args, client)
    finally:
        await client.close()


def main(argv: list[str] | None = None, client: Client | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.action == "decode":
        try:
            _decode(args)
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        return 0

    if client is None:
        try:
            url = resolve_rpc_url(args)
        except argparse.ArgumentTypeError as e:
            ap.error(str(e))
        logger.info("using RPC %s", url)
        client = Client.from_url(url)

    try:
        asyncio.run(_main(args, client))
    except (ValueError, AccountNotFoundError, httpx.HTTPError, SolanaRpcException) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
