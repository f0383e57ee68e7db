"""Owner-based selection of the token account codec."""

from __future__ import annotations

from enum import Enum

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.config import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from tokenscope.errors import UnrecognizedOwnerError


class TokenProgram(Enum):
    LEGACY = TOKEN_PROGRAM_ID
    EXTENSIBLE = TOKEN_2022_PROGRAM_ID

    @property
    def program_id(self) -> Pubkey:
        return Pubkey.from_string(self.value)

    def __str__(self) -> str:
        _names = {"LEGACY": "spl-token", "EXTENSIBLE": "spl-token-2022"}
        return _names[self.name]


_BY_OWNER = {bytes(p.program_id): p for p in TokenProgram}


def resolve_program(owner: Pubkey) -> TokenProgram:
    """Map an account owner to its token program. Raises UnrecognizedOwnerError."""
    program = _BY_OWNER.get(bytes(owner))
    if program is None:
        raise UnrecognizedOwnerError(owner)
    return program
