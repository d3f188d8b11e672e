"""
Crowdfunding Client

Application-facing API: create campaigns, donate, withdraw, and read
campaigns back. Amounts are taken in SOL and converted to lamports exactly.

    config = ClientConfig.for_cluster("devnet", program_id)
    async with CrowdfundingClient(config, signer=KeypairSigner.from_file(path)) as client:
        result = await client.create_campaign("Title", "Description", 10, deadline, 0)
        campaigns = await client.fetch_all()
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from .config import ClientConfig
from .core.accounts import SolAmount, sol_to_lamports
from .core.campaign import Campaign, DonorInfo
from .core.discovery import AccountDiscovery
from .core.instructions import (
    Instruction,
    build_create_campaign_instruction,
    build_donate_instruction,
    build_withdraw_instruction,
)
from .core.signer import KeypairSigner, Signer, ensure_signer_ready
from .core.submitter import TransactionSubmitter
from .networking.rpc import SolanaRPC
from .retry import confirm_with_timeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateResult:
    signature: str
    campaign_address: Pubkey


class CrowdfundingClient:
    """
    High level client bound to one program on one cluster.

    The configuration is fixed for the client's lifetime. A default signer can
    be given here or per call.
    """

    def __init__(self, config: ClientConfig, signer: Optional[Signer] = None,
                 rpc: Optional[SolanaRPC] = None):
        self.config = config
        self.signer = signer
        self._owns_rpc = rpc is None
        self.rpc = rpc or SolanaRPC(config.rpc_url, commitment=config.commitment,
                                    timeout=config.request_timeout)
        self.submitter = TransactionSubmitter(self.rpc, poll_interval=config.poll_interval)
        self.discovery = AccountDiscovery(self.rpc, config.program_id)

    @property
    def program_id(self) -> Pubkey:
        return self.config.program_id

    async def close(self) -> None:
        if self._owns_rpc:
            await self.rpc.close()

    async def __aenter__(self) -> "CrowdfundingClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ready_signer(self, signer: Optional[Signer]) -> Tuple[Signer, Pubkey]:
        signer = signer if signer is not None else self.signer
        return signer, ensure_signer_ready(signer)

    async def _execute(self, instructions: List[Instruction], signer: Signer) -> str:
        signature = await self.submitter.send(instructions, signer)
        return await self._confirm(signature)

    async def _confirm(self, signature: str) -> str:
        if self.config.confirm_timeout is None:
            return await self.submitter.confirm(signature)
        return await confirm_with_timeout(self.submitter, signature, self.config.confirm_timeout)

    async def create_campaign(self, title: str, description: str, goal_sol: SolAmount, deadline: int,
                              category: int, signer: Optional[Signer] = None) -> CreateResult:
        """Create a campaign in a freshly generated account."""
        signer, payer = self._ready_signer(signer)
        campaign_address = KeypairSigner.generate().public_key

        instruction = build_create_campaign_instruction(
            program_id=self.program_id,
            payer=payer,
            campaign_account=campaign_address,
            title=title,
            description=description,
            goal_amount=sol_to_lamports(goal_sol),
            deadline=deadline,
            category=category,
        )
        signature = await self._execute([instruction], signer)
        logger.info(f"Created campaign {campaign_address} ({signature})")
        return CreateResult(signature=signature, campaign_address=campaign_address)

    async def donate(self, campaign_address: Pubkey, amount_sol: SolAmount,
                     signer: Optional[Signer] = None) -> str:
        """Donate to a campaign; a new donor record account tracks the gift."""
        signer, donor = self._ready_signer(signer)
        donor_info_address = KeypairSigner.generate().public_key

        instruction = build_donate_instruction(
            program_id=self.program_id,
            donor=donor,
            campaign_account=campaign_address,
            donor_info_account=donor_info_address,
            amount=sol_to_lamports(amount_sol),
        )
        return await self._execute([instruction], signer)

    async def withdraw(self, campaign_address: Pubkey, recipient: Optional[Pubkey] = None,
                       signer: Optional[Signer] = None) -> str:
        """Withdraw raised funds as the campaign creator."""
        signer, creator = self._ready_signer(signer)
        instruction = build_withdraw_instruction(self.program_id, creator, campaign_address, recipient)
        return await self._execute([instruction], signer)

    async def fetch_one(self, address: Pubkey) -> Optional[Campaign]:
        return await self.discovery.fetch_one(address)

    async def fetch_all(self, data_size: Optional[int] = None) -> List[Tuple[Pubkey, Campaign]]:
        return await self.discovery.list_all(data_size=data_size)

    async def fetch_donations(self, campaign_address: Pubkey) -> List[Tuple[Pubkey, DonorInfo]]:
        return await self.discovery.list_donations(campaign_address)

    async def get_balance(self, address: Optional[Pubkey] = None) -> int:
        """Balance in lamports; defaults to the client's signer."""
        if address is None:
            _, address = self._ready_signer(None)
        return await self.rpc.get_balance(address)

    async def request_airdrop(self, amount_sol: SolAmount, address: Optional[Pubkey] = None) -> str:
        """Faucet airdrop on test clusters, waited on like any transaction."""
        if address is None:
            _, address = self._ready_signer(None)
        signature = await self.rpc.request_airdrop(address, sol_to_lamports(amount_sol))
        return await self._confirm(signature)
