"""
Solana Networking

JSON-RPC access to a cluster node: blockhashes, broadcast, signature
status polling, single account reads and program account scans.
"""

from .rpc import SolanaRPC, BlockhashInfo, SignatureStatus, MemcmpFilter, COMMITMENT_LEVELS

__all__ = [
    'SolanaRPC',
    'BlockhashInfo',
    'SignatureStatus',
    'MemcmpFilter',
    'COMMITMENT_LEVELS',
]
