"""
Client Configuration

Set once when a client is built and never changed afterwards. Nothing in the
library reads globals or environment variables except `ClientConfig.from_env`.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from solders.pubkey import Pubkey

from .exceptions import ConfigurationError
from .networking.rpc import COMMITMENT_LEVELS


CLUSTER_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "localnet": "http://127.0.0.1:8899",
}

ENV_PREFIX = "CROWDFUND_"


@dataclass(frozen=True)
class ClientConfig:
    rpc_url: str
    program_id: Pubkey
    commitment: str = "confirmed"
    poll_interval: float = 0.5           # Seconds between confirmation polls
    request_timeout: float = 30.0        # Per HTTP request
    confirm_timeout: Optional[float] = None  # None waits indefinitely

    def __post_init__(self):
        if not self.rpc_url:
            raise ConfigurationError("rpc_url is required")
        if not isinstance(self.program_id, Pubkey):
            raise ConfigurationError(f"program_id must be a Pubkey, got {self.program_id!r}")
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigurationError(
                f"commitment must be one of {', '.join(COMMITMENT_LEVELS)}, got {self.commitment!r}")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.confirm_timeout is not None and self.confirm_timeout <= 0:
            raise ConfigurationError("confirm_timeout must be positive")

    @classmethod
    def for_cluster(cls, cluster: str, program_id: Pubkey, **kwargs) -> "ClientConfig":
        try:
            url = CLUSTER_URLS[cluster]
        except KeyError:
            raise ConfigurationError(
                f"Unknown cluster {cluster!r}, expected one of {', '.join(CLUSTER_URLS)}") from None
        return cls(rpc_url=url, program_id=program_id, **kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """
        Read configuration from CROWDFUND_* variables.

        CROWDFUND_PROGRAM_ID is required. The endpoint comes from
        CROWDFUND_RPC_URL, else CROWDFUND_CLUSTER, else devnet.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        program_id = get("PROGRAM_ID")
        if program_id is None:
            raise ConfigurationError(f"{ENV_PREFIX}PROGRAM_ID must be set to the program address")
        try:
            program_pubkey = Pubkey.from_string(program_id)
        except Exception as e:  # noqa: BLE001
            raise ConfigurationError(f"{ENV_PREFIX}PROGRAM_ID is not a valid pubkey: {e}") from e

        rpc_url = get("RPC_URL")
        if rpc_url is None:
            cluster = get("CLUSTER") or "devnet"
            if cluster not in CLUSTER_URLS:
                raise ConfigurationError(f"Unknown {ENV_PREFIX}CLUSTER: {cluster!r}")
            rpc_url = CLUSTER_URLS[cluster]

        def number(name: str, default: Optional[float]) -> Optional[float]:
            raw = get(name)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError:
                raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None

        return cls(
            rpc_url=rpc_url,
            program_id=program_pubkey,
            commitment=get("COMMITMENT") or "confirmed",
            poll_interval=number("POLL_INTERVAL", 0.5),
            request_timeout=number("REQUEST_TIMEOUT", 30.0),
            confirm_timeout=number("CONFIRM_TIMEOUT", None),
        )
