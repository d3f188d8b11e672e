"""
Campaign Discovery

Finds campaigns by scanning every account the crowdfunding program owns.
One bad buffer never sinks a scan: undecodable accounts are logged and
skipped. There is no pagination, the whole result set comes back in one
RPC response.

Campaign records have two variable-length strings, so there is no single
account size to filter on; by default nothing is filtered server-side and
every account is decoded.
"""

import logging
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from ..exceptions import DecodeError
from ..networking.rpc import MemcmpFilter, SolanaRPC
from .campaign import Campaign, DonorInfo
from .codec import DONOR_INFO_CAMPAIGN_OFFSET, DONOR_INFO_SIZE, decode_campaign, decode_donor_info

logger = logging.getLogger(__name__)


class AccountDiscovery:
    """Reads crowdfunding records owned by one program."""

    def __init__(self, rpc: SolanaRPC, program_id: Pubkey):
        self.rpc = rpc
        self.program_id = program_id

    async def list_all(self, data_size: Optional[int] = None) -> List[Tuple[Pubkey, Campaign]]:
        """Every decodable campaign, optionally only accounts of `data_size` bytes."""
        accounts = await self.rpc.get_program_accounts(self.program_id, data_size=data_size)

        campaigns = []
        for address, account in accounts:
            try:
                campaigns.append((address, decode_campaign(account.data)))
            except DecodeError as e:
                logger.warning(f"Skipping account {address}: {e.message}")

        logger.debug(f"Decoded {len(campaigns)} of {len(accounts)} accounts owned by {self.program_id}")
        return campaigns

    async def fetch_one(self, address: Pubkey) -> Optional[Campaign]:
        """
        Read a single campaign.

        Returns None when the account does not exist. Raises DecodeError when
        it exists but does not hold a campaign record.
        """
        account = await self.rpc.get_account_info(address)
        if account is None or not account.data:
            return None
        try:
            return decode_campaign(account.data)
        except DecodeError as e:
            raise DecodeError(f"Account {address} is not decodable as a campaign: {e.message}",
                              field=e.field, address=str(address)) from e

    async def list_donations(self, campaign_address: Pubkey) -> List[Tuple[Pubkey, DonorInfo]]:
        """Donation records the program wrote for one campaign."""
        accounts = await self.rpc.get_program_accounts(
            self.program_id,
            data_size=DONOR_INFO_SIZE,
            memcmp=[MemcmpFilter(DONOR_INFO_CAMPAIGN_OFFSET, bytes(campaign_address))],
        )

        donations = []
        for address, account in accounts:
            try:
                donations.append((address, decode_donor_info(account.data)))
            except DecodeError as e:
                logger.warning(f"Skipping donor record {address}: {e.message}")
        return donations
