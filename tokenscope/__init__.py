from tokenscope.client import Client
from tokenscope.config import (
    METADATA_PROGRAM_ID,
    SOLANA_RPC_URLS,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from tokenscope.decoder import (
    Mint,
    TokenAccount,
    attach_metadata,
    decode_mint,
    decode_token_account,
)
from tokenscope.errors import (
    AccountNotFoundError,
    MalformedExtensionError,
    MalformedFieldError,
    TokenDecodeError,
    TruncatedBufferError,
    TruncatedExtensionError,
    UnrecognizedOwnerError,
)
from tokenscope.extensions import (
    ExtensionType,
    UnknownExtension,
    decode_extension,
)
from tokenscope.metadata import MasterEdition, Metadata, MintMetadata
from tokenscope.pda import derive_master_edition_pda, derive_metadata_pda
from tokenscope.program import TokenProgram, resolve_program
from tokenscope.rpc import new_rpc_client
from tokenscope.state import AccountState, AccountType, MintBase, TokenAccountBase
from tokenscope.tlv import iter_extensions

__all__ = [
    "Client",
    "METADATA_PROGRAM_ID",
    "SOLANA_RPC_URLS",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "Mint",
    "TokenAccount",
    "attach_metadata",
    "decode_mint",
    "decode_token_account",
    "AccountNotFoundError",
    "MalformedExtensionError",
    "MalformedFieldError",
    "TokenDecodeError",
    "TruncatedBufferError",
    "TruncatedExtensionError",
    "UnrecognizedOwnerError",
    "ExtensionType",
    "UnknownExtension",
    "decode_extension",
    "MasterEdition",
    "Metadata",
    "MintMetadata",
    "derive_master_edition_pda",
    "derive_metadata_pda",
    "TokenProgram",
    "resolve_program",
    "new_rpc_client",
    "AccountState",
    "AccountType",
    "MintBase",
    "TokenAccountBase",
    "iter_extensions",
]
