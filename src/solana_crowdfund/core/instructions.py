"""
Crowdfunding Program Instructions

Each instruction is an opcode byte followed by its arguments, sent together
with an ordered list of account metas. The program reads accounts strictly by
position, so the order and signer/writable flags below are part of the
protocol. A wrong order is not caught here; the program rejects it on-chain.

Opcodes:
    0  CreateCampaign  [payer(s,w), campaign(w), system]     + Campaign record
    1  Donate          [donor(s,w), campaign(w), donor_info(w), system] + i64
    2  Withdraw        [creator(s,w), campaign(w), recipient(w)]  (no args)
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

from borsh_construct import CStruct, I64
from solders.pubkey import Pubkey

from ..exceptions import ValidationError
from .accounts import AccountMeta
from .campaign import I64_MAX, new_campaign
from .codec import encode_campaign


SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")

DONATE_ARGS_LAYOUT = CStruct("amount" / I64)


class CrowdfundInstruction(IntEnum):
    CREATE_CAMPAIGN = 0
    DONATE = 1
    WITHDRAW = 2


@dataclass
class Instruction:
    """
    A single program invocation before it is compiled into a message.
    """
    program_id: Pubkey             # Program to invoke
    accounts: List[AccountMeta]    # Accounts with access metadata
    data: bytes                    # Opcode + arguments

    @property
    def opcode(self) -> Optional[int]:
        return self.data[0] if self.data else None


def _payload(opcode: CrowdfundInstruction, args: bytes = b"") -> bytes:
    return bytes([opcode]) + args


def build_create_campaign_instruction(program_id: Pubkey, payer: Pubkey, campaign_account: Pubkey,
                                      title: str, description: str, goal_amount: int,
                                      deadline: int, category: int,
                                      created_at: Optional[int] = None) -> Instruction:
    """
    Create a new campaign stored in `campaign_account`.

    The payload carries the full initial record: zero raised, zero donors,
    active, not withdrawn, created now unless `created_at` is given.
    """
    campaign = new_campaign(
        creator=payer,
        title=title,
        description=description,
        goal_amount=goal_amount,
        deadline=deadline,
        category=category,
        created_at=created_at,
    )
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(campaign_account, is_signer=False, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
        data=_payload(CrowdfundInstruction.CREATE_CAMPAIGN, encode_campaign(campaign)),
    )


def build_donate_instruction(program_id: Pubkey, donor: Pubkey, campaign_account: Pubkey,
                             donor_info_account: Pubkey, amount: int) -> Instruction:
    """Donate `amount` lamports; the program records it in `donor_info_account`."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Donation amount must be an integer number of lamports",
                              field="amount", value=amount)
    if not 0 < amount <= I64_MAX:
        raise ValidationError(f"Donation amount out of range: {amount}", field="amount", value=amount)

    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(donor, is_signer=True, is_writable=True),
            AccountMeta(campaign_account, is_signer=False, is_writable=True),
            AccountMeta(donor_info_account, is_signer=False, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
        data=_payload(CrowdfundInstruction.DONATE, DONATE_ARGS_LAYOUT.build({"amount": amount})),
    )


def build_withdraw_instruction(program_id: Pubkey, creator: Pubkey, campaign_account: Pubkey,
                               recipient: Optional[Pubkey] = None) -> Instruction:
    """Move a campaign's lamports to `recipient` (the creator by default)."""
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(creator, is_signer=True, is_writable=True),
            AccountMeta(campaign_account, is_signer=False, is_writable=True),
            AccountMeta(recipient or creator, is_signer=False, is_writable=True),
        ],
        data=_payload(CrowdfundInstruction.WITHDRAW),
    )
