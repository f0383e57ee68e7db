"""PDA derivation for Metaplex token metadata accounts."""

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from tokenscope.config import METADATA_PROGRAM_ID

SEED_METADATA = b"metadata"
SEED_EDITION = b"edition"


def _metadata_program(program_id: Pubkey | None) -> Pubkey:
    if program_id is None:
        return Pubkey.from_string(METADATA_PROGRAM_ID)
    return program_id


def derive_metadata_pda(
    mint: Pubkey, program_id: Pubkey | None = None
) -> tuple[Pubkey, int]:
    program_id = _metadata_program(program_id)
    return Pubkey.find_program_address(
        [SEED_METADATA, bytes(program_id), bytes(mint)], program_id
    )


def derive_master_edition_pda(
    mint: Pubkey, program_id: Pubkey | None = None
) -> tuple[Pubkey, int]:
    program_id = _metadata_program(program_id)
    return Pubkey.find_program_address(
        [SEED_METADATA, bytes(program_id), bytes(mint), SEED_EDITION], program_id
    )
