"""
Wallet validation utilities: Ergo mainnet Pay-to-Public-Key (P2PK) addresses.

Layout of a decoded P2PK address (38 bytes):

    [0]      address type / network byte  (0x01 = mainnet P2PK)
    [1:34]   compressed secp256k1 public key, first byte 0x02 or 0x03
    [34:38]  checksum = blake2b-256(bytes[0:34])[:4]

The checksum is what rejects a typo'd address that still has the right shape.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import base58

from gitcircles.core.exceptions import InvalidWalletAddressError

P2PK_MAINNET_PREFIX_CHAR = "9"
P2PK_ADDRESS_TYPE = 0x01
P2PK_PARITY_MARKERS = frozenset({0x02, 0x03})
P2PK_DECODED_LENGTH = 38
P2PK_CHECKSUM_OFFSET = 34
P2PK_CHECKSUM_LENGTH = 4
CHECKSUM_DIGEST_SIZE = 32


def p2pk_checksum(body: bytes) -> bytes:
    """First 4 bytes of blake2b-256 over the address body (type byte + public key)."""
    return hashlib.blake2b(body, digest_size=CHECKSUM_DIGEST_SIZE).digest()[:P2PK_CHECKSUM_LENGTH]


def p2pk_rejection_reason(addr: str) -> str | None:
    """Return why addr is not a mainnet P2PK address, or None if it is valid."""
    if not addr.startswith(P2PK_MAINNET_PREFIX_CHAR):
        return f"expected Ergo P2PK mainnet address starting with '{P2PK_MAINNET_PREFIX_CHAR}'"
    try:
        decoded = base58.b58decode(addr)
    except ValueError:
        return "not valid base58"
    if len(decoded) != P2PK_DECODED_LENGTH:
        return f"decoded length {len(decoded)}, expected {P2PK_DECODED_LENGTH}"
    if decoded[0] != P2PK_ADDRESS_TYPE:
        return f"address type byte 0x{decoded[0]:02x}, expected 0x{P2PK_ADDRESS_TYPE:02x}"
    if decoded[1] not in P2PK_PARITY_MARKERS:
        return "public key is not a compressed point (0x02/0x03)"
    body = decoded[:P2PK_CHECKSUM_OFFSET]
    if decoded[P2PK_CHECKSUM_OFFSET:] != p2pk_checksum(body):
        return "checksum mismatch"
    return None


def is_valid_p2pk_mainnet(addr: str) -> bool:
    """Return True if addr (already trimmed) is a valid Ergo mainnet P2PK address."""
    return p2pk_rejection_reason(addr) is None


@dataclass(frozen=True)
class WalletAddress:
    """
    Validated Ergo P2PK address. Construction validates, so an instance
    always holds a checksummed address; use parse() for untrimmed input.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise InvalidWalletAddressError(repr(self.value), "address must be a string")
        reason = p2pk_rejection_reason(self.value)
        if reason is not None:
            raise InvalidWalletAddressError(self.value, reason)

    @classmethod
    def parse(cls, raw: str) -> "WalletAddress":
        return cls((raw or "").strip())

    def truncated(self) -> str:
        """Short form for logs and tables (e.g. '9fRAWh...V5vA')."""
        return f"{self.value[:6]}...{self.value[-4:]}"

    def __str__(self) -> str:
        return self.value


def validate_wallet_address(raw: str) -> WalletAddress:
    """Trim raw and return it as a WalletAddress; raises InvalidWalletAddressError."""
    return WalletAddress.parse(raw)
