"""
Shared fixtures: an in-memory JSON-RPC node served through httpx.MockTransport.
"""

import base64
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from solana_crowdfund.core.campaign import Campaign, CampaignCategory
from solana_crowdfund.core.signer import KeypairSigner
from solana_crowdfund.networking.rpc import SolanaRPC

T0 = 1_700_000_000


class RpcFault(Exception):
    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.error = {"code": code, "message": message, "data": data}


def account_json(data: bytes, owner: Pubkey, lamports: int = 1_000_000) -> Dict[str, Any]:
    return {
        "data": [base64.b64encode(data).decode("ascii"), "base64"],
        "executable": False,
        "lamports": lamports,
        "owner": str(owner),
        "rentEpoch": 0,
        "space": len(data),
    }


def confirmed_status(status: str = "confirmed", err: Any = None) -> Dict[str, Any]:
    return {"slot": 42, "confirmations": 1, "err": err, "status": {"Ok": None},
            "confirmationStatus": status}


class FakeSolanaNode:
    """Answers the RPC methods the client uses and records every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.blockhashes: List[Hash] = []
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.program_accounts: List[Dict[str, Any]] = []
        self.statuses: List[Optional[Dict[str, Any]]] = [confirmed_status()]
        self.send_errors: List[RpcFault] = []
        self.sent: List[bytes] = []
        self.balance = 0

    @property
    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        try:
            result = getattr(self, "_" + method)(params)
        except RpcFault as e:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": e.error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def _getLatestBlockhash(self, params):
        blockhash = Hash.new_unique()
        self.blockhashes.append(blockhash)
        return {"context": {"slot": 1}, "value": {"blockhash": str(blockhash), "lastValidBlockHeight": 150}}

    def _sendTransaction(self, params):
        if self.send_errors:
            raise self.send_errors.pop(0)
        raw = base64.b64decode(params[0])
        self.sent.append(raw)
        # One signature: compact-u16 count byte then 64 signature bytes
        return str(Signature.from_bytes(raw[1:65]))

    def _getSignatureStatuses(self, params):
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return {"context": {"slot": 42}, "value": [status for _ in params[0]]}

    def _getAccountInfo(self, params):
        return {"context": {"slot": 42}, "value": self.accounts.get(params[0])}

    def _getProgramAccounts(self, params):
        config = params[1]
        result = []
        for item in self.program_accounts:
            data = base64.b64decode(item["account"]["data"][0])
            if all(self._matches(f, data) for f in config.get("filters", [])):
                result.append(item)
        return result

    @staticmethod
    def _matches(rule, data: bytes) -> bool:
        if "dataSize" in rule:
            return len(data) == rule["dataSize"]
        memcmp = rule["memcmp"]
        expected = base64.b64decode(memcmp["bytes"])
        return data[memcmp["offset"]:memcmp["offset"] + len(expected)] == expected

    def _getBalance(self, params):
        return {"context": {"slot": 42}, "value": self.balance}

    def _requestAirdrop(self, params):
        return str(Signature.from_bytes(bytes([7]) * 64))

    def add_program_account(self, address: Pubkey, data: bytes, owner: Pubkey) -> None:
        self.program_accounts.append({"pubkey": str(address), "account": account_json(data, owner)})


@pytest.fixture
def node():
    return FakeSolanaNode()


@pytest.fixture
def rpc(node):
    http = httpx.AsyncClient(transport=httpx.MockTransport(node.handle))
    return SolanaRPC("http://testnode:8899", commitment="confirmed", http_client=http)


@pytest.fixture
def program_id():
    return Pubkey.new_unique()


@pytest.fixture
def signer():
    return KeypairSigner.from_seed(bytes(range(32)))


@pytest.fixture
def sample_campaign():
    return Campaign(
        creator=Pubkey.new_unique(),
        title="Test",
        description="Desc",
        goal_amount=10_000_000_000,
        amount_raised=0,
        donors_count=0,
        created_at=T0,
        deadline=T0 + 2_592_000,
        is_active=True,
        category=CampaignCategory.TECHNOLOGY,
        withdrawn=False,
    )
