"""
Transaction Signers

A signer is anything that exposes a public key and can turn an unsigned
transaction into a signed one: a local keypair, a hardware wallet, a browser
wallet bridge. The client only ever talks to this interface.
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ecdsa import Ed25519, SigningKey
from solders.pubkey import Pubkey

from ..exceptions import PreconditionError
from .transactions import SolanaTransaction


SEED_LEN = 32


class Signer(ABC):
    """External signing capability."""

    @property
    @abstractmethod
    def public_key(self) -> Optional[Pubkey]:
        """Signing key's address, or None when no key is connected."""

    @abstractmethod
    async def sign_transaction(self, transaction: SolanaTransaction) -> SolanaTransaction:
        """Return a copy of `transaction` carrying this signer's signature."""


def ensure_signer_ready(signer) -> Pubkey:
    """
    Fail fast when the signer cannot sign. Never touches the network.

    Returns the signer's public key.
    """
    if signer is None:
        raise PreconditionError("Wallet not connected: no signer given")
    public_key = getattr(signer, "public_key", None)
    if public_key is None:
        raise PreconditionError("Wallet not connected: signer has no public key")
    if not callable(getattr(signer, "sign_transaction", None)):
        raise PreconditionError("Wallet cannot sign transactions")
    return public_key


class KeypairSigner(Signer):
    """
    Local Ed25519 keypair.

    Key files use the Solana CLI format: a JSON array of 64 integers, the
    32-byte seed followed by the 32-byte public key.
    """

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key
        self._public_key = Pubkey.from_bytes(bytes(signing_key.verifying_key.to_string()))

    @classmethod
    def generate(cls) -> "KeypairSigner":
        return cls(SigningKey.generate(curve=Ed25519))

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeypairSigner":
        if len(seed) != SEED_LEN:
            raise ValueError(f"Ed25519 seed must be {SEED_LEN} bytes, got {len(seed)}")
        return cls(SigningKey.from_string(bytes(seed), curve=Ed25519))

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> "KeypairSigner":
        """Load a 64-byte secret key (seed + public key) and check they match."""
        if len(secret_key) != 2 * SEED_LEN:
            raise ValueError(f"Secret key must be {2 * SEED_LEN} bytes, got {len(secret_key)}")
        signer = cls.from_seed(secret_key[:SEED_LEN])
        if bytes(signer.public_key) != bytes(secret_key[SEED_LEN:]):
            raise ValueError("Secret key does not match its public key")
        return signer

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KeypairSigner":
        with open(Path(path).expanduser()) as f:
            values = json.load(f)
        return cls.from_secret_key(bytes(values))

    @property
    def secret_key(self) -> bytes:
        return bytes(self._signing_key.to_string()) + bytes(self._public_key)

    def save(self, path: Union[str, Path]) -> None:
        """Write the key file readable by its owner only. Never overwrites."""
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(list(self.secret_key), f)

    @property
    def public_key(self) -> Pubkey:
        return self._public_key

    def sign_message(self, message: bytes) -> bytes:
        return bytes(self._signing_key.sign(message))

    async def sign_transaction(self, transaction: SolanaTransaction) -> SolanaTransaction:
        signature = self.sign_message(transaction.message.serialize())
        return transaction.with_signature(self._public_key, signature)

    def __repr__(self) -> str:
        return f"KeypairSigner({self._public_key})"
