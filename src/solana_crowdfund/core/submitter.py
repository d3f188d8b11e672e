"""
Transaction Submission

Sign, broadcast and confirm lifecycle for program instructions:

    (a) check the signer can sign          local, no network
    (b) fetch a recent blockhash           RPC
    (c) build the envelope                 fee payer + blockhash
    (d) request the signature              external signer
    (e) broadcast                          RPC
    (f) poll until confirmed or failed     RPC

Nothing here retries. A rejected broadcast is raised as-is because resending
the same bytes would carry the same (possibly stale) blockhash; callers that
want retries rebuild through `send()` again, see `solana_crowdfund.retry`.
Confirmation polling has no deadline of its own.
"""

import asyncio
import logging
from typing import List

from solders.hash import Hash

from ..exceptions import PreconditionError, TransactionFailedError, ValidationError
from ..networking.rpc import SolanaRPC
from .instructions import Instruction
from .signer import ensure_signer_ready
from .transactions import PACKET_DATA_SIZE, SolanaTransaction, TransactionBuilder

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """Runs instructions through the sign/broadcast/confirm lifecycle."""

    def __init__(self, rpc: SolanaRPC, poll_interval: float = 0.5):
        self.rpc = rpc
        self.poll_interval = poll_interval

    @staticmethod
    def build_transaction(instructions: List[Instruction], fee_payer, blockhash: Hash) -> SolanaTransaction:
        """Unsigned transaction paid for by `fee_payer`."""
        transaction = TransactionBuilder(fee_payer, blockhash).add_instructions(instructions).build_transaction()
        size = len(transaction.serialize())
        if size > PACKET_DATA_SIZE:
            raise ValidationError(
                f"Transaction is {size} bytes, limit is {PACKET_DATA_SIZE}; shorten the campaign texts",
                field="transaction_size", value=size,
            )
        return transaction

    async def send(self, instructions: List[Instruction], signer) -> str:
        """Sign and broadcast; returns the signature without waiting."""
        fee_payer = ensure_signer_ready(signer)

        latest = await self.rpc.get_latest_blockhash()
        unsigned = self.build_transaction(instructions, fee_payer, latest.blockhash)

        signed = await signer.sign_transaction(unsigned)
        if not signed.is_signed:
            raise PreconditionError("Signer returned a transaction with missing signatures")
        if not signed.verify_signatures():
            raise PreconditionError("Signer returned a signature that does not verify")

        signature = await self.rpc.send_raw_transaction(signed.serialize())
        logger.info(f"Broadcast transaction {signature} (blockhash {latest.blockhash})")
        return signature

    async def confirm(self, signature: str) -> str:
        """
        Poll until the transaction reaches the RPC commitment level.

        Raises TransactionFailedError if the program rejected it. Runs until
        one of the two happens; wrap it to bound the wait.
        """
        commitment = self.rpc.commitment
        while True:
            status = (await self.rpc.get_signature_statuses([signature]))[0]
            if status is not None:
                if status.err is not None:
                    logger.warning(f"Transaction {signature} failed: {status.err}")
                    raise TransactionFailedError(signature, status.err)
                if status.reached(commitment):
                    logger.info(f"Transaction {signature} {commitment} in slot {status.slot}")
                    return signature
            logger.debug(f"Waiting for {signature} to reach {commitment}")
            await asyncio.sleep(self.poll_interval)

    async def submit(self, instructions: List[Instruction], signer) -> str:
        signature = await self.send(instructions, signer)
        return await self.confirm(signature)
