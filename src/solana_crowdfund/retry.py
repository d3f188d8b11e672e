"""
Bounded waits and safe retries on top of TransactionSubmitter.

The submitter itself never times out and never retries. These helpers add
both without hiding what happened:
- a confirmation wait that gives up after a deadline (the transaction may
  still land later)
- a resend loop that only retries stale-blockhash rejections, rebuilding the
  transaction with a fresh blockhash each time
"""

import asyncio
import logging
from typing import List, Optional

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from .core.instructions import Instruction
from .core.submitter import TransactionSubmitter
from .exceptions import ConfirmationTimeout, RPCError

logger = logging.getLogger(__name__)


async def confirm_with_timeout(submitter: TransactionSubmitter, signature: str, timeout: float) -> str:
    """Wait for confirmation at most `timeout` seconds."""
    try:
        return await asyncio.wait_for(submitter.confirm(signature), timeout)
    except asyncio.TimeoutError:
        raise ConfirmationTimeout(signature, timeout) from None


def _is_stale_blockhash(error: BaseException) -> bool:
    return isinstance(error, RPCError) and error.is_blockhash_expired


async def send_with_retry(submitter: TransactionSubmitter, instructions: List[Instruction], signer,
                          attempts: int = 3, backoff: float = 0.5) -> str:
    """
    Broadcast, retrying only when the node reports the blockhash as expired.

    Each attempt goes through `submitter.send`, which fetches a new blockhash
    and asks the signer again. Any other error is raised on the first try.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=backoff, max=backoff * 8),
        retry=retry_if_exception(_is_stale_blockhash),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            signature = await submitter.send(instructions, signer)
    return signature


async def submit_with_retry(submitter: TransactionSubmitter, instructions: List[Instruction], signer,
                            attempts: int = 3, timeout: Optional[float] = None,
                            backoff: float = 0.5) -> str:
    """`send_with_retry` followed by a confirmation wait, bounded if `timeout` is set."""
    signature = await send_with_retry(submitter, instructions, signer, attempts=attempts, backoff=backoff)
    if timeout is None:
        return await submitter.confirm(signature)
    return await confirm_with_timeout(submitter, signature, timeout)
