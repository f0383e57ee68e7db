import pytest
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.config import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from tokenscope.errors import UnrecognizedOwnerError
from tokenscope.program import TokenProgram, resolve_program


def test_resolve_legacy():
    assert resolve_program(Pubkey.from_string(TOKEN_PROGRAM_ID)) is TokenProgram.LEGACY


def test_resolve_extensible():
    assert resolve_program(Pubkey.from_string(TOKEN_2022_PROGRAM_ID)) is TokenProgram.EXTENSIBLE


@pytest.mark.parametrize(
    "owner",
    [
        Pubkey.default(),
        Pubkey.from_string("11111111111111111111111111111111"),
        Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"),
    ],
)
def test_unrecognized_owner(owner):
    with pytest.raises(UnrecognizedOwnerError) as exc:
        resolve_program(owner)
    assert exc.value.owner == owner


def test_program_id_property():
    assert TokenProgram.LEGACY.program_id == Pubkey.from_string(TOKEN_PROGRAM_ID)
    assert str(TokenProgram.EXTENSIBLE) == "spl-token-2022"
