"""Convert decoded records into JSON-ready dicts.

Pubkeys become base58 strings, raw bytes become ``base64:``-prefixed
strings and enums use their lower-case names. Extensions follow the RPC
``jsonParsed`` shape: ``{"extension": name, "state": {...}}``.
"""

from __future__ import annotations

import base64
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

import base58  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.decoder import Mint, TokenAccount
from tokenscope.extensions import Extension, UnknownExtension


def _bytes_default(b: bytes) -> str:
    return "base64:" + base64.b64encode(b).decode("ascii")


DATA_ENCODINGS = ("base64", "base58")


def parse_account_data(text: str, encoding: str = "base64") -> bytes:
    """Decode account data as returned by getAccountInfo.

    A ``base64:`` prefix, as produced by this module, overrides ``encoding``.
    """
    text = text.strip()
    if text.startswith("base64:"):
        text, encoding = text[len("base64:") :], "base64"
    try:
        if encoding == "base64":
            return base64.b64decode(text, validate=True)
        if encoding == "base58":
            return base58.b58decode(text)
    except ValueError as e:
        raise ValueError(f"invalid {encoding} account data: {e}") from e
    raise ValueError(f"unsupported encoding: {encoding}")


def to_plain(x: Any) -> Any:
    if isinstance(x, Pubkey):
        return str(x)
    if isinstance(x, Enum):
        return str(x)
    if isinstance(x, (bytes, bytearray)):
        return _bytes_default(bytes(x))
    if is_dataclass(x) and not isinstance(x, type):
        return {f.name: to_plain(getattr(x, f.name)) for f in fields(x)}
    if isinstance(x, dict):
        return {k: to_plain(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [to_plain(v) for v in x]
    return x


def ui_amount_string(amount: int, decimals: int) -> str:
    """Render a raw token amount with ``decimals`` places, trailing zeros trimmed."""
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")
    if decimals == 0:
        return str(amount)
    whole, frac = divmod(amount, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    if not frac_str:
        return str(whole)
    return f"{whole}.{frac_str}"


def extension_to_dict(ext: Extension) -> dict:
    if isinstance(ext, UnknownExtension):
        return {
            "extension": "unknown",
            "type": ext.type_code,
            "data": _bytes_default(ext.data),
        }
    return {"extension": ext.extension_name, "state": to_plain(ext)}


def mint_to_dict(mint: Mint) -> dict:
    out = to_plain(mint)
    out["ui_supply"] = ui_amount_string(mint.supply, mint.decimals)
    out["extensions"] = [extension_to_dict(e) for e in mint.extensions]
    return out


def token_account_to_dict(account: TokenAccount, decimals: int | None = None) -> dict:
    out = to_plain(account)
    if decimals is not None:
        out["ui_amount"] = ui_amount_string(account.amount, decimals)
    out["extensions"] = [extension_to_dict(e) for e in account.extensions]
    return out
