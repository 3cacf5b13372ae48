"""
Input Validation - Sanitization of everything that crosses the core boundary.

Validates reward rows, proofs, campaign parameters and withdraw arguments
before they reach the codec or the campaign state, to prevent:
- Silent leaf mismatches from wrongly sized fields
- Integer overflow past the 256-bit word the codec writes
- Oversized proofs / URIs (resource exhaustion)

All validators return (is_valid, error_message).
"""

import re
from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

MAX_ADDRESS_SIZE = 20
MAX_HASH_SIZE = 32
MAX_PROOF_LENGTH = 256  # one sibling per level; 2**256 leaves is far beyond reach
MAX_URI_LENGTH = 2048

MAX_UINT256 = 2**256 - 1
MAX_TIMESTAMP = 2**63 - 1  # SQLite INTEGER


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a raw 20-byte address."""
    return validate_bytes(address, name, expected_length=MAX_ADDRESS_SIZE)


def validate_hash(hash_value: Any, name: str = "hash") -> Tuple[bool, str]:
    """Validate a raw 32-byte hash."""
    return validate_bytes(hash_value, name, expected_length=MAX_HASH_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = 0,
    max_val: int = MAX_UINT256,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass; True is not a reward amount
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_uint256(value: Any, name: str) -> Tuple[bool, str]:
    """Validate an unsigned 256-bit word."""
    return validate_integer(value, name, 0, MAX_UINT256)


def validate_timestamp(value: Any, name: str = "redeemable_at") -> Tuple[bool, str]:
    """Validate a unix timestamp in seconds."""
    return validate_integer(value, name, 0, MAX_TIMESTAMP)


def validate_proof(proof: Any) -> Tuple[bool, str]:
    """Validate a Merkle proof: a list of 32-byte sibling hashes."""
    if not isinstance(proof, (list, tuple)):
        return False, f"proof must be list/tuple, got {type(proof).__name__}"

    if len(proof) > MAX_PROOF_LENGTH:
        return False, f"proof exceeds max length {MAX_PROOF_LENGTH}, got {len(proof)}"

    for i, sibling in enumerate(proof):
        valid, err = validate_hash(sibling, f"proof[{i}]")
        if not valid:
            return False, err

    return True, ""


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_URI_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_hex_string(value: Any, name: str, expected_bytes: Optional[int] = None) -> Tuple[bool, str]:
    """
    Validate a hex string (with or without 0x prefix).

    Args:
        value: Value to validate
        name: Field name
        expected_bytes: Expected byte length when decoded

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    hex_str = value[2:] if value.startswith("0x") else value

    if len(hex_str) % 2 != 0:
        return False, f"{name} has odd length, invalid hex"

    try:
        bytes.fromhex(hex_str)
    except ValueError:
        return False, f"{name} contains invalid hex characters"

    if expected_bytes is not None:
        actual_bytes = len(hex_str) // 2
        if actual_bytes != expected_bytes:
            return False, f"{name} must be {expected_bytes} bytes, got {actual_bytes}"

    return True, ""


# =============================================================================
# Composite Validators
# =============================================================================


def validate_reward_row(row: Any) -> Tuple[bool, str]:
    """
    Validate one raw reward row as read from CSV/JSON.

    Expected keys: address (0x-hex), amount (decimal), optional reward_id (decimal).
    """
    if not isinstance(row, dict):
        return False, "Reward row must be dict"

    for field in ("address", "amount"):
        if field not in row or row[field] in (None, ""):
            return False, f"Missing required field: {field}"

    valid, err = validate_hex_string(str(row["address"]).strip(), "address", MAX_ADDRESS_SIZE)
    if not valid:
        return False, err

    for field in ("amount", "reward_id"):
        raw = row.get(field)
        if raw in (None, "") and field == "reward_id":
            continue
        text = str(raw).strip()
        if not text.isdigit():
            return False, f"{field} must be a non-negative decimal integer, got {raw!r}"
        valid, err = validate_uint256(int(text), field)
        if not valid:
            return False, err

    return True, ""


__all__ = [
    "validate_bytes",
    "validate_address",
    "validate_hash",
    "validate_integer",
    "validate_uint256",
    "validate_timestamp",
    "validate_proof",
    "validate_string",
    "validate_hex_string",
    "validate_reward_row",
    "MAX_ADDRESS_SIZE",
    "MAX_HASH_SIZE",
    "MAX_PROOF_LENGTH",
    "MAX_URI_LENGTH",
    "MAX_UINT256",
]
