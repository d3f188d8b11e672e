"""
Campaign Records

The crowdfunding program stores two kinds of records:
- Campaign: one account per fundraising campaign, created by its creator
- DonorInfo: one account per donation, written when a donor contributes

Both are plain immutable values here. The ledger copy is authoritative and
changes underneath the client, so a record is only ever a snapshot of a read.
"""

import math
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from solders.pubkey import Pubkey

from ..exceptions import ValidationError
from .accounts import lamports_to_sol


U8_MAX = 2**8 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
I64_MIN = -2**63
I64_MAX = 2**63 - 1

SECONDS_PER_DAY = 24 * 60 * 60


class CampaignCategory(IntEnum):
    TECHNOLOGY = 0
    ART = 1
    MUSIC = 2
    FILM = 3
    GAMES = 4
    EDUCATION = 5
    SOCIAL = 6
    OTHER = 7

    @property
    def label(self) -> str:
        return self.name.capitalize()


def _check_int(name: str, value, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", field=name, value=value)
    if not low <= value <= high:
        raise ValidationError(f"{name} out of range [{low}, {high}]: {value}", field=name, value=value)


def _check_pubkey(name: str, value) -> None:
    if not isinstance(value, Pubkey):
        raise ValidationError(f"{name} must be a Pubkey", field=name, value=value)


@dataclass(frozen=True)
class Campaign:
    """
    Campaign account state, fields in on-chain layout order.

    Construction checks that every field fits its wire width. Ordering rules
    such as deadline after creation are left to `new_campaign()` and
    `encode_campaign()`, so records read back from the chain always load.
    """
    creator: Pubkey               # Campaign owner
    title: str
    description: str
    goal_amount: int              # Target in lamports
    amount_raised: int            # Lamports collected so far
    donors_count: int
    created_at: int               # Unix seconds
    deadline: int                 # Unix seconds
    is_active: bool
    category: CampaignCategory
    withdrawn: bool               # Creator already withdrew the funds

    def __post_init__(self):
        _check_pubkey("creator", self.creator)
        for name in ("title", "description"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"{name} must be a string", field=name, value=getattr(self, name))
        _check_int("goal_amount", self.goal_amount, 0, U64_MAX)
        _check_int("amount_raised", self.amount_raised, 0, U64_MAX)
        _check_int("donors_count", self.donors_count, 0, U32_MAX)
        _check_int("created_at", self.created_at, I64_MIN, I64_MAX)
        _check_int("deadline", self.deadline, I64_MIN, I64_MAX)
        for name in ("is_active", "withdrawn"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"{name} must be a bool", field=name, value=getattr(self, name))
        _check_int("category", self.category, 0, U8_MAX)
        try:
            category = CampaignCategory(self.category)
        except ValueError:
            raise ValidationError(f"Unknown campaign category: {self.category}",
                                  field="category", value=self.category) from None
        object.__setattr__(self, "category", category)

    @property
    def goal_sol(self):
        return lamports_to_sol(self.goal_amount)

    @property
    def raised_sol(self):
        return lamports_to_sol(self.amount_raised)

    @property
    def progress_percent(self) -> float:
        """Share of the goal raised so far; may exceed 100."""
        if self.goal_amount == 0:
            return 0.0
        return self.amount_raised * 100 / self.goal_amount

    @property
    def goal_reached(self) -> bool:
        return self.amount_raised >= self.goal_amount

    @property
    def accepts_donations(self) -> bool:
        return self.is_active and not self.withdrawn

    def is_expired(self, now: Optional[int] = None) -> bool:
        now = int(time.time()) if now is None else now
        return now > self.deadline

    def days_left(self, now: Optional[int] = None) -> int:
        """Whole days until the deadline, rounded up, never negative."""
        now = int(time.time()) if now is None else now
        return max(0, math.ceil((self.deadline - now) / SECONDS_PER_DAY))

    def can_withdraw(self, now: Optional[int] = None) -> bool:
        """
        Whether the program would let the creator withdraw right now.

        Funds unlock once the deadline has passed or the goal is reached,
        and only once.
        """
        now = int(time.time()) if now is None else now
        if self.withdrawn:
            return False
        return now >= self.deadline or self.goal_reached

    @property
    def status(self) -> str:
        if self.withdrawn:
            return "Funds withdrawn"
        if not self.is_active:
            return "Campaign ended"
        return "Active"


def new_campaign(creator: Pubkey, title: str, description: str, goal_amount: int,
                 deadline: int, category: int, created_at: Optional[int] = None) -> Campaign:
    """
    Build the record for a campaign that is about to be created.

    Raised amounts and donor counts start at zero, the campaign starts active
    and unwithdrawn, and `created_at` defaults to now.
    """
    if created_at is None:
        created_at = int(time.time())
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Campaign title cannot be empty", field="title", value=title)
    _check_int("goal_amount", goal_amount, 1, U64_MAX)
    _check_int("deadline", deadline, I64_MIN, I64_MAX)
    _check_int("created_at", created_at, I64_MIN, I64_MAX)
    if deadline <= created_at:
        raise ValidationError(
            f"Deadline {deadline} must be after creation time {created_at}",
            field="deadline", value=deadline,
        )
    return Campaign(
        creator=creator,
        title=title,
        description=description,
        goal_amount=goal_amount,
        amount_raised=0,
        donors_count=0,
        created_at=created_at,
        deadline=deadline,
        is_active=True,
        category=category,
        withdrawn=False,
    )


@dataclass(frozen=True)
class DonorInfo:
    """Per-donation tracking record written by the program."""
    donor: Pubkey
    amount: int                   # Lamports donated
    donated_at: int               # Unix seconds
    campaign_id: Pubkey           # Campaign account the donation went to

    def __post_init__(self):
        _check_pubkey("donor", self.donor)
        _check_pubkey("campaign_id", self.campaign_id)
        _check_int("amount", self.amount, 0, U64_MAX)
        _check_int("donated_at", self.donated_at, I64_MIN, I64_MAX)

    @property
    def amount_sol(self):
        return lamports_to_sol(self.amount)
