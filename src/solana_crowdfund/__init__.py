"""
Solana Crowdfunding Client

Client library for an on-chain crowdfunding program: encodes and decodes
campaign accounts, builds the program's instructions, signs and submits
transactions, and discovers campaigns owned by the program.

Key Features:
- Byte-exact borsh codec for campaign and donor records
- Instruction builders with the program's account ordering
- Legacy transaction envelopes signed with Ed25519 keypairs
- Async JSON-RPC submission with confirmation polling
- Resilient campaign discovery that skips undecodable accounts
"""

__version__ = "1.0.0"

from .core import *
from .config import ClientConfig, CLUSTER_URLS
from .client import CrowdfundingClient, CreateResult
from .exceptions import (
    CrowdfundError,
    DecodeError,
    ValidationError,
    PreconditionError,
    NetworkError,
    RPCError,
    TransactionFailedError,
    ConfirmationTimeout,
    ConfigurationError,
    ErrorKind,
    OperationResult,
    capture,
)
from .networking import SolanaRPC
from .retry import confirm_with_timeout, send_with_retry, submit_with_retry

__all__ = [
    # Records and codec
    'Campaign',
    'CampaignCategory',
    'DonorInfo',
    'new_campaign',
    'encode_campaign',
    'decode_campaign',
    'sol_to_lamports',
    'lamports_to_sol',
    'LAMPORTS_PER_SOL',

    # Instructions and transactions
    'Instruction',
    'CrowdfundInstruction',
    'build_create_campaign_instruction',
    'build_donate_instruction',
    'build_withdraw_instruction',
    'TransactionBuilder',
    'SolanaTransaction',
    'KeypairSigner',
    'Signer',

    # Network
    'SolanaRPC',
    'TransactionSubmitter',
    'AccountDiscovery',
    'confirm_with_timeout',
    'send_with_retry',
    'submit_with_retry',

    # Application API
    'ClientConfig',
    'CLUSTER_URLS',
    'CrowdfundingClient',
    'CreateResult',

    # Errors
    'CrowdfundError',
    'DecodeError',
    'ValidationError',
    'PreconditionError',
    'NetworkError',
    'RPCError',
    'TransactionFailedError',
    'ConfirmationTimeout',
    'ConfigurationError',
    'ErrorKind',
    'OperationResult',
    'capture',
]
