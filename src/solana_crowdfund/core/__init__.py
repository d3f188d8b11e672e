"""
Crowdfunding Client Core

Records, codec, instruction building, transaction envelope, signing,
submission and discovery for the Solana crowdfunding program.
"""

from .accounts import AccountMeta, ProgramAccount, LAMPORTS_PER_SOL, sol_to_lamports, lamports_to_sol
from .campaign import Campaign, CampaignCategory, DonorInfo, new_campaign
from .codec import (
    encode_campaign,
    decode_campaign,
    encode_donor_info,
    decode_donor_info,
    campaign_size,
)
from .instructions import (
    Instruction,
    CrowdfundInstruction,
    SYSTEM_PROGRAM_ID,
    build_create_campaign_instruction,
    build_donate_instruction,
    build_withdraw_instruction,
)
from .transactions import SolanaTransaction, TransactionMessage, MessageHeader, CompiledInstruction, TransactionBuilder
from .signer import Signer, KeypairSigner, ensure_signer_ready
from .submitter import TransactionSubmitter
from .discovery import AccountDiscovery

__all__ = [
    'AccountMeta', 'ProgramAccount', 'LAMPORTS_PER_SOL', 'sol_to_lamports', 'lamports_to_sol',
    'Campaign', 'CampaignCategory', 'DonorInfo', 'new_campaign',
    'encode_campaign', 'decode_campaign', 'encode_donor_info', 'decode_donor_info', 'campaign_size',
    'Instruction', 'CrowdfundInstruction', 'SYSTEM_PROGRAM_ID',
    'build_create_campaign_instruction', 'build_donate_instruction', 'build_withdraw_instruction',
    'SolanaTransaction', 'TransactionMessage', 'MessageHeader', 'CompiledInstruction', 'TransactionBuilder',
    'Signer', 'KeypairSigner', 'ensure_signer_ready',
    'TransactionSubmitter',
    'AccountDiscovery',
]
