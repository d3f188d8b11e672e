"""
Solana Transaction and Message Model

A transaction is a list of signatures followed by the message they sign:
- The message lists every account the instructions touch, exactly once
- Accounts are ordered: writable signers (fee payer first), read-only signers,
  writable non-signers, read-only non-signers
- Instructions reference accounts and programs by index into that list
- A recent blockhash bounds how long the transaction stays valid

Lengths on the wire use the compact-u16 encoding. This is the legacy
(non-versioned) message format.

Based on: https://solana.com/docs/core/transactions
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Set, Tuple

from ecdsa import BadSignatureError, Ed25519, VerifyingKey
from ecdsa.errors import MalformedPointError
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from .instructions import Instruction


PACKET_DATA_SIZE = 1232           # Max serialized transaction size
SIGNATURE_LEN = 64
EMPTY_SIGNATURE = bytes(SIGNATURE_LEN)


def encode_length(value: int) -> bytes:
    """Encode a length as compact-u16 (7 bits per byte, high bit continues)."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Length {value} does not fit in compact-u16")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_length(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a compact-u16 at `offset`. Returns (value, bytes consumed)."""
    value = 0
    for i in range(3):
        if offset + i >= len(data):
            raise ValueError("Truncated compact-u16")
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise ValueError("compact-u16 longer than 3 bytes")


@dataclass
class MessageHeader:
    """
    Counts that tell the runtime which keys sign and which are read-only.
    """
    num_required_signatures: int        # First N keys must sign
    num_readonly_signed_accounts: int   # Last of those that are read-only
    num_readonly_unsigned_accounts: int # Trailing read-only keys

    def serialize(self) -> bytes:
        return bytes([
            self.num_required_signatures,
            self.num_readonly_signed_accounts,
            self.num_readonly_unsigned_accounts,
        ])


@dataclass
class CompiledInstruction:
    """Instruction with accounts and program replaced by key indices."""
    program_id_index: int           # Index into account_keys for program
    accounts: List[int]             # Indices into account_keys
    data: bytes                     # Program-specific instruction data

    def serialize(self) -> bytes:
        return b"".join([
            bytes([self.program_id_index]),
            encode_length(len(self.accounts)),
            bytes(self.accounts),
            encode_length(len(self.data)),
            self.data,
        ])


@dataclass
class TransactionMessage:
    """The signed part of a transaction."""
    header: MessageHeader
    account_keys: List[Pubkey]      # All account public keys referenced
    recent_blockhash: Hash          # Replay protection and validity window
    instructions: List[CompiledInstruction]

    def serialize(self) -> bytes:
        parts = [self.header.serialize(), encode_length(len(self.account_keys))]
        parts.extend(bytes(key) for key in self.account_keys)
        parts.append(bytes(self.recent_blockhash))
        parts.append(encode_length(len(self.instructions)))
        parts.extend(ix.serialize() for ix in self.instructions)
        return b"".join(parts)

    @property
    def fee_payer(self) -> Pubkey:
        if not self.account_keys:
            raise ValueError("Message has no accounts")
        return self.account_keys[0]

    @property
    def signer_keys(self) -> List[Pubkey]:
        return self.account_keys[:self.header.num_required_signatures]

    def is_writable(self, index: int) -> bool:
        header = self.header
        if index < header.num_required_signatures:
            return index < header.num_required_signatures - header.num_readonly_signed_accounts
        return index < len(self.account_keys) - header.num_readonly_unsigned_accounts

    def get_writable_accounts(self) -> Set[Pubkey]:
        return {key for i, key in enumerate(self.account_keys) if self.is_writable(i)}

    def get_readonly_accounts(self) -> Set[Pubkey]:
        return set(self.account_keys) - self.get_writable_accounts()


@dataclass
class SolanaTransaction:
    """
    Message plus one signature slot per required signer.

    Unfilled slots hold 64 zero bytes, the placeholder the network expects
    in a partially signed transaction.
    """
    message: TransactionMessage
    signatures: List[bytes] = field(default_factory=list)

    @classmethod
    def unsigned(cls, message: TransactionMessage) -> "SolanaTransaction":
        return cls(message=message,
                   signatures=[EMPTY_SIGNATURE] * message.header.num_required_signatures)

    def serialize(self) -> bytes:
        return b"".join([encode_length(len(self.signatures)), *self.signatures,
                         self.message.serialize()])

    @property
    def signature(self) -> str:
        """Transaction id: the fee payer's signature in base58."""
        if not self.signatures:
            raise ValueError("Transaction has no signature slots")
        return str(Signature.from_bytes(self.signatures[0]))

    @property
    def is_signed(self) -> bool:
        return (len(self.signatures) == self.message.header.num_required_signatures
                and EMPTY_SIGNATURE not in self.signatures)

    def with_signature(self, pubkey: Pubkey, signature: bytes) -> "SolanaTransaction":
        """Return a copy with `signature` placed in `pubkey`'s slot."""
        if len(signature) != SIGNATURE_LEN:
            raise ValueError(f"Signature must be {SIGNATURE_LEN} bytes")
        try:
            index = self.message.signer_keys.index(pubkey)
        except ValueError:
            raise ValueError(f"{pubkey} is not a required signer of this transaction") from None
        signatures = list(self.signatures)
        signatures[index] = bytes(signature)
        return replace(self, signatures=signatures)

    def verify_signatures(self) -> bool:
        """
        Verify every required Ed25519 signature over the serialized message.
        """
        message_data = self.message.serialize()
        signer_keys = self.message.signer_keys
        if len(self.signatures) != len(signer_keys):
            return False

        for pubkey, signature in zip(signer_keys, self.signatures):
            try:
                vk = VerifyingKey.from_string(bytes(pubkey), curve=Ed25519)
                vk.verify(signature, message_data)
            except (BadSignatureError, MalformedPointError):
                return False
        return True


class TransactionBuilder:
    """
    Compiles instructions into a message with correctly ordered keys.

    Flags are merged across instructions: a key that is a signer or writable
    anywhere is a signer or writable in the message. Within each group keys
    are ordered by their bytes; the fee payer always comes first.
    """

    def __init__(self, fee_payer: Pubkey, recent_blockhash: Hash):
        """
        Args:
            fee_payer: Account that pays transaction fees (always a signer)
            recent_blockhash: Recent blockhash for replay protection
        """
        self.fee_payer = fee_payer
        self.recent_blockhash = recent_blockhash
        self.instructions: List[Instruction] = []

    def add_instruction(self, instruction: Instruction) -> "TransactionBuilder":
        self.instructions.append(instruction)
        return self

    def add_instructions(self, instructions: List[Instruction]) -> "TransactionBuilder":
        self.instructions.extend(instructions)
        return self

    def _collect_flags(self) -> Dict[Pubkey, List[bool]]:
        flags: Dict[Pubkey, List[bool]] = {self.fee_payer: [True, True]}
        for instruction in self.instructions:
            for meta in instruction.accounts:
                entry = flags.setdefault(meta.pubkey, [False, False])
                entry[0] |= meta.is_signer
                entry[1] |= meta.is_writable
            flags.setdefault(instruction.program_id, [False, False])
        return flags

    def build(self) -> TransactionMessage:
        if not self.instructions:
            raise ValueError("Transaction needs at least one instruction")

        flags = self._collect_flags()

        def group(is_signer: bool, is_writable: bool) -> List[Pubkey]:
            keys = [key for key, (s, w) in flags.items()
                    if s == is_signer and w == is_writable and key != self.fee_payer]
            return sorted(keys, key=bytes)

        writable_signers = [self.fee_payer] + group(True, True)
        readonly_signers = group(True, False)
        writable_non_signers = group(False, True)
        readonly_non_signers = group(False, False)

        account_keys = writable_signers + readonly_signers + writable_non_signers + readonly_non_signers
        if len(account_keys) > 256:
            raise ValueError("Too many accounts for a single transaction")
        account_index = {key: i for i, key in enumerate(account_keys)}

        compiled_instructions = [
            CompiledInstruction(
                program_id_index=account_index[instruction.program_id],
                accounts=[account_index[meta.pubkey] for meta in instruction.accounts],
                data=instruction.data,
            )
            for instruction in self.instructions
        ]

        header = MessageHeader(
            num_required_signatures=len(writable_signers) + len(readonly_signers),
            num_readonly_signed_accounts=len(readonly_signers),
            num_readonly_unsigned_accounts=len(readonly_non_signers),
        )

        return TransactionMessage(
            header=header,
            account_keys=account_keys,
            recent_blockhash=self.recent_blockhash,
            instructions=compiled_instructions,
        )

    def build_transaction(self) -> SolanaTransaction:
        return SolanaTransaction.unsigned(self.build())
