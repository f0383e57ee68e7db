#!/usr/bin/env python3
"""Example script that fetches a mint and prints its metadata and extensions."""

import argparse
import asyncio
import sys

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.client import Client
from tokenscope.errors import AccountNotFoundError
from tokenscope.extensions import TransferFeeConfig, UnknownExtension
from tokenscope.normalize import ui_amount_string


async def run(env: str, mint_addr: Pubkey, holder: Pubkey | None) -> int:
    client = Client.from_env(env)
    try:
        try:
            mint = await client.fetch_mint(mint_addr)
        except (AccountNotFoundError, ValueError) as e:
            print(f"Error fetching mint: {e}")
            return 1

        print("=== Mint ===")
        print(f"Program:          {mint.program}")
        print(f"Supply:           {ui_amount_string(mint.supply, mint.decimals)}")
        print(f"Decimals:         {mint.decimals}")
        print(f"Mint Authority:   {mint.mint_authority}")
        if mint.metadata and mint.metadata.metadata:
            md = mint.metadata.metadata
            print(f"Name:             {md.name}")
            print(f"Symbol:           {md.symbol}")
        print()

        if mint.extensions:
            print(f"=== Extensions ({len(mint.extensions)}) ===")
            for ext in mint.extensions:
                if isinstance(ext, UnknownExtension):
                    print(f"  {ext.extension_name} ({len(ext.data)} bytes)")
                else:
                    print(f"  {ext.extension_name}")
            print()

        fee_config = mint.get_extension(TransferFeeConfig)
        if fee_config is not None:
            fee = fee_config.newer_transfer_fee
            print("=== Transfer Fee ===")
            print(f"Basis Points:     {fee.transfer_fee_basis_points}")
            print(f"Maximum Fee:      {ui_amount_string(fee.maximum_fee, mint.decimals)}")
            print()

        if holder is not None:
            try:
                account, _ = await client.fetch_token_account(holder, mint=mint_addr)
            except (AccountNotFoundError, ValueError) as e:
                print(f"Error fetching token account: {e}")
                return 1
            print("=== Token Account ===")
            print(f"Owner:            {account.owner}")
            print(f"Balance:          {ui_amount_string(account.amount, mint.decimals)}")
            print(f"State:            {account.state}")
    finally:
        await client.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch a token mint and optional holder account")
    parser.add_argument(
        "--env",
        default="mainnet-beta",
        choices=["mainnet-beta", "testnet", "devnet", "localnet"],
        help="Environment to connect to",
    )
    parser.add_argument("mint", type=Pubkey.from_string, help="Mint address")
    parser.add_argument(
        "--token-account",
        type=Pubkey.from_string,
        default=None,
        help="Token account holding this mint",
    )
    args = parser.parse_args()

    print(f"Fetching mint {args.mint} from {args.env}...\n")
    sys.exit(asyncio.run(run(args.env, args.mint, args.token_account)))


if __name__ == "__main__":
    main()
