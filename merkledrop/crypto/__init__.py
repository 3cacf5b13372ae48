"""
Cryptographic primitives for merkledrop.

This module provides:
- Keccak-256 hashing
- Key generation and address derivation (secp256k1)
- Hex / address helpers shared by the codec, CLI and storage

Design Notes:
-------------
Leaves and internal Merkle nodes are hashed with Keccak-256 so that roots and
proofs produced here are interchangeable with EVM-side distributors
(keccak256(abi.encodePacked(...)) on the verifying side).

Addresses are 20 raw bytes everywhere inside the core. Hex strings only appear
at the boundaries (CLI, JSON artifact, SQLite text columns).
"""

import secrets
from dataclasses import dataclass
from typing import Union

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20
HASH_SIZE = 32


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: reward leaves, Merkle nodes, address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address_bytes(self) -> bytes:
        """20-byte address derived from the public key."""
        return address_from_public_key(self.public_key)

    @property
    def address(self) -> str:
        """
        Derive address from public key (Ethereum-style).

        Address = last 20 bytes of keccak256(public_key), hex-encoded with 0x prefix.
        """
        return bytes_to_hex(self.address_bytes)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    # P = k * G, returned as (x, y) integers
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive address from public key (Ethereum-style).

    address = keccak256(public_key)[-20:]
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-ADDRESS_SIZE:]


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 2 + 2 * ADDRESS_SIZE:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def to_address(value: Union[bytes, str]) -> bytes:
    """
    Normalise an address given as raw bytes or 0x-hex into 20 bytes.

    Raises:
        ValueError: if the value is not a 20-byte address
    """
    if isinstance(value, str):
        if not is_valid_address(value):
            raise ValueError(f"Invalid address: {value!r}")
        return hex_to_bytes(value)
    if isinstance(value, (bytes, bytearray)) and len(value) == ADDRESS_SIZE:
        return bytes(value)
    raise ValueError(f"Address must be {ADDRESS_SIZE} bytes or 0x-hex, got {value!r}")


def to_hash(value: Union[bytes, str], name: str = "hash") -> bytes:
    """Normalise a 32-byte hash given as raw bytes or 0x-hex."""
    if isinstance(value, str):
        try:
            value = hex_to_bytes(value)
        except ValueError:
            raise ValueError(f"{name} is not valid hex: {value!r}") from None
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_SIZE:
        raise ValueError(f"{name} must be {HASH_SIZE} bytes")
    return bytes(value)
