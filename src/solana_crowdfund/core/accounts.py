"""
Solana Account Model

Client-side view of ledger accounts:
- Every piece of state lives in an account owned by some program
- The crowdfunding program owns one account per campaign and one per donation
- Instructions declare upfront which accounts they sign for and write to
- Value is counted in lamports (1 SOL = 1_000_000_000 lamports)

Based on: https://solana.com/docs/core/accounts
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

from solders.pubkey import Pubkey

from ..exceptions import ValidationError


LAMPORTS_PER_SOL = 1_000_000_000
MAX_ACCOUNT_DATA = 10 * 1024 * 1024  # 10 MiB

SolAmount = Union[int, float, str, Decimal]


def sol_to_lamports(amount: SolAmount) -> int:
    """
    Convert a human-readable SOL amount to lamports.

    Floats go through their shortest decimal repr, so 0.01 is treated as
    exactly 0.01 rather than its binary approximation. The scaled value is
    rounded half-even to a whole lamport.
    """
    if isinstance(amount, bool):
        raise ValidationError("SOL amount must be a number", field="amount", value=amount)
    try:
        value = Decimal(repr(amount)) if isinstance(amount, float) else Decimal(amount)
    except ArithmeticError as e:
        raise ValidationError(f"Invalid SOL amount: {amount!r}", field="amount", value=amount) from e
    if not value.is_finite():
        raise ValidationError(f"Invalid SOL amount: {amount!r}", field="amount", value=amount)
    if value < 0:
        raise ValidationError("SOL amount cannot be negative", field="amount", value=amount)
    return int((value * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_HALF_EVEN))


def lamports_to_sol(lamports: int) -> Decimal:
    """Convert lamports to SOL without floating point loss."""
    return Decimal(lamports) / LAMPORTS_PER_SOL


@dataclass
class ProgramAccount:
    """
    Account as returned by the RPC node.

    `data` is the raw buffer; interpreting it is up to the owning program's
    layout (see codec).
    """
    lamports: int           # Balance in lamports
    data: bytes             # Account data
    owner: Pubkey           # Program that owns this account
    executable: bool        # Whether this account contains executable code
    rent_epoch: int = 0     # Legacy field

    def __post_init__(self):
        if self.lamports < 0:
            raise ValueError("Lamports cannot be negative")
        if len(self.data) > MAX_ACCOUNT_DATA:
            raise ValueError("Account data exceeds 10 MiB limit")


@dataclass(frozen=True)
class AccountMeta:
    """
    Account metadata for instruction building.

    Tells the runtime how an instruction accesses each account. The order and
    flags of an instruction's metas are part of the program's contract.
    """
    pubkey: Pubkey       # Account public key
    is_signer: bool      # Must sign transaction
    is_writable: bool    # Can be modified
