"""Error taxonomy for token account decoding.

Every decode failure is a ``ValueError`` so callers that already guard
account parsing with ``except ValueError`` keep working.
"""

from __future__ import annotations

from solders.pubkey import Pubkey  # type: ignore[import-untyped]


class TokenDecodeError(ValueError):
    """Base class for all decoding failures."""


class UnrecognizedOwnerError(TokenDecodeError):
    def __init__(self, owner: Pubkey) -> None:
        self.owner = owner
        super().__init__(f"account owner {owner} is not a known token program")


class TruncatedBufferError(TokenDecodeError):
    def __init__(self, need: int, have: int, what: str = "account data") -> None:
        self.need = need
        self.have = have
        self.what = what
        super().__init__(f"{what} too short: have {have} bytes, need at least {need}")


class MalformedFieldError(TokenDecodeError):
    def __init__(self, field: str, value: int, offset: int) -> None:
        self.field = field
        self.value = value
        self.offset = offset
        super().__init__(f"invalid value {value} for {field} at offset {offset}")


class TruncatedExtensionError(TokenDecodeError):
    def __init__(self, index: int, type_code: int, declared: int, available: int) -> None:
        self.index = index
        self.type_code = type_code
        self.declared = declared
        self.available = available
        super().__init__(
            f"extension #{index} (type {type_code}) declares {declared} bytes "
            f"but only {available} remain"
        )


class MalformedExtensionError(TokenDecodeError):
    def __init__(
        self,
        type_code: int,
        expected: int | None,
        got: int,
        reason: str | None = None,
    ) -> None:
        self.type_code = type_code
        self.expected = expected
        self.got = got
        if reason is None:
            reason = f"expected {expected} payload bytes, got {got}"
        self.reason = reason
        super().__init__(f"malformed extension type {type_code}: {reason}")


class AccountNotFoundError(LookupError):
    def __init__(self, address: Pubkey) -> None:
        self.address = address
        super().__init__(f"account not found: {address}")
