"""
Solana JSON-RPC Client

Thin async wrapper over the node's HTTP JSON-RPC API. Only the calls the
crowdfunding client needs are exposed. Each call is one independent request;
the client keeps no state besides its endpoint and commitment level, so calls
can run concurrently.

Failure mapping:
- transport errors and non-2xx HTTP responses -> NetworkError
- JSON-RPC error objects -> RPCError (message and data kept verbatim)
"""

import base64
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey

from ..core.accounts import ProgramAccount
from ..exceptions import NetworkError, RPCError

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


@dataclass(frozen=True)
class BlockhashInfo:
    blockhash: Hash
    last_valid_block_height: int


@dataclass(frozen=True)
class SignatureStatus:
    slot: int
    confirmations: Optional[int]
    err: Any
    confirmation_status: Optional[str]

    def reached(self, commitment: str) -> bool:
        """Whether this status is at least as final as `commitment`."""
        if self.confirmation_status is None:
            # Rooted transactions report no status and null confirmations
            return self.confirmations is None
        return (COMMITMENT_LEVELS.index(self.confirmation_status)
                >= COMMITMENT_LEVELS.index(commitment))


@dataclass(frozen=True)
class MemcmpFilter:
    offset: int
    bytes: bytes

    def to_json(self) -> Dict[str, Any]:
        return {"memcmp": {"offset": self.offset,
                           "bytes": base64.b64encode(self.bytes).decode("ascii"),
                           "encoding": "base64"}}


def _parse_account(value: Dict[str, Any]) -> ProgramAccount:
    data, encoding = value["data"]
    if encoding != "base64":
        raise NetworkError(f"Unexpected account data encoding: {encoding}")
    return ProgramAccount(
        lamports=value["lamports"],
        data=base64.b64decode(data),
        owner=Pubkey.from_string(value["owner"]),
        executable=value["executable"],
        rent_epoch=value.get("rentEpoch", 0),
    )


class SolanaRPC:
    """
    Async JSON-RPC client for a single endpoint.

    Pass `http_client` to share a connection pool or to inject a transport in
    tests; otherwise one is created and owned by this instance.
    """

    def __init__(self, endpoint: str, commitment: str = "confirmed", timeout: float = 30.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment level: {commitment}")
        self.endpoint = endpoint
        self.commitment = commitment
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "SolanaRPC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(self, method: str, params: Optional[list] = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        logger.debug(f"RPC {method} -> {self.endpoint}")

        try:
            response = await self._http.post(self.endpoint, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"{method}: HTTP {e.response.status_code} from {self.endpoint}",
                               method=method) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{method}: transport error: {e}", method=method) from e
        except ValueError as e:
            raise NetworkError(f"{method}: invalid JSON response", method=method) from e

        error = body.get("error")
        if error is not None:
            raise RPCError(error.get("message", "Unknown RPC error"), code=error.get("code", 0),
                           method=method, data=error.get("data"))
        if "result" not in body:
            raise NetworkError(f"{method}: response has neither result nor error", method=method)
        return body["result"]

    async def get_latest_blockhash(self) -> BlockhashInfo:
        result = await self._request("getLatestBlockhash", [{"commitment": self.commitment}])
        value = result["value"]
        return BlockhashInfo(
            blockhash=Hash.from_string(value["blockhash"]),
            last_valid_block_height=value["lastValidBlockHeight"],
        )

    async def send_raw_transaction(self, raw: bytes, skip_preflight: bool = False) -> str:
        """Broadcast a serialized signed transaction; returns its signature."""
        encoded = base64.b64encode(raw).decode("ascii")
        return await self._request("sendTransaction", [encoded, {
            "encoding": "base64",
            "skipPreflight": skip_preflight,
            "preflightCommitment": self.commitment,
        }])

    async def get_signature_statuses(self, signatures: Sequence[str],
                                     search_history: bool = False) -> List[Optional[SignatureStatus]]:
        result = await self._request("getSignatureStatuses",
                                     [list(signatures), {"searchTransactionHistory": search_history}])
        return [
            None if status is None else SignatureStatus(
                slot=status["slot"],
                confirmations=status.get("confirmations"),
                err=status.get("err"),
                confirmation_status=status.get("confirmationStatus"),
            )
            for status in result["value"]
        ]

    async def get_account_info(self, pubkey: Pubkey) -> Optional[ProgramAccount]:
        result = await self._request("getAccountInfo", [str(pubkey), {
            "encoding": "base64",
            "commitment": self.commitment,
        }])
        value = result["value"]
        return None if value is None else _parse_account(value)

    async def get_program_accounts(self, program_id: Pubkey, data_size: Optional[int] = None,
                                   memcmp: Sequence[MemcmpFilter] = ()) -> List[Tuple[Pubkey, ProgramAccount]]:
        """All accounts owned by `program_id`, optionally filtered server-side."""
        filters: List[Dict[str, Any]] = []
        if data_size is not None:
            filters.append({"dataSize": data_size})
        filters.extend(f.to_json() for f in memcmp)

        config: Dict[str, Any] = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            config["filters"] = filters

        result = await self._request("getProgramAccounts", [str(program_id), config])
        return [(Pubkey.from_string(item["pubkey"]), _parse_account(item["account"])) for item in result]

    async def get_balance(self, pubkey: Pubkey) -> int:
        result = await self._request("getBalance", [str(pubkey), {"commitment": self.commitment}])
        return result["value"]

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        """Ask a test cluster faucet for lamports; returns the airdrop signature."""
        return await self._request("requestAirdrop", [str(pubkey), lamports,
                                                      {"commitment": self.commitment}])
