"""
Leaf Codec - deterministic encoding of reward entries.

Conceptual Background:
---------------------
Every entitlement in a campaign is committed as one 32-byte leaf:

    preimage = recipient (20) || reward_id (32, big-endian) || amount (32, big-endian)
    leaf     = keccak256(preimage)

This is byte-identical to keccak256(abi.encodePacked(address, uint256, uint256)),
so the same list hashed here and on an EVM verifier yields the same leaves.

The encoding must match exactly between generation time and redemption time:
any difference in byte order, width or field order silently invalidates every
proof. Fixed widths make the encoding injective.

Single-reward campaigns use reward_id = SINGLE_REWARD_ID on both sides.
"""

from dataclasses import dataclass
from typing import Union

from merkledrop.crypto import keccak256, to_address, bytes_to_hex
from merkledrop.utils.validation import validate_address, validate_uint256


# =============================================================================
# Constants
# =============================================================================

# reward_id used by single-reward campaigns
SINGLE_REWARD_ID = 0

WORD_SIZE = 32
PREIMAGE_SIZE = 20 + WORD_SIZE + WORD_SIZE  # 84 bytes


# =============================================================================
# Reward Entry
# =============================================================================


@dataclass(frozen=True)
class RewardEntry:
    """
    One entitlement in a reward list.

    Attributes:
        recipient: 20-byte address of the beneficiary
        amount: Amount of the campaign asset owed (uint256)
        reward_id: Distinguishes several entitlements of one recipient (uint256)
    """
    recipient: bytes
    amount: int
    reward_id: int = SINGLE_REWARD_ID

    def __post_init__(self):
        """Normalise the recipient and validate field ranges."""
        object.__setattr__(self, "recipient", to_address(self.recipient))
        for name in ("amount", "reward_id"):
            valid, err = validate_uint256(getattr(self, name), name)
            if not valid:
                raise ValueError(err)

    def encode(self) -> bytes:
        """84-byte packed preimage."""
        return encode_reward(self.recipient, self.reward_id, self.amount)

    def leaf(self) -> bytes:
        """32-byte Merkle leaf."""
        return keccak256(self.encode())

    def __repr__(self) -> str:
        return (
            f"RewardEntry(recipient={bytes_to_hex(self.recipient)}, "
            f"reward_id={self.reward_id}, amount={self.amount})"
        )


# =============================================================================
# Codec
# =============================================================================


def encode_reward(recipient: Union[bytes, str], reward_id: int, amount: int) -> bytes:
    """
    Pack (recipient, reward_id, amount) into the fixed-width leaf preimage.

    Args:
        recipient: 20-byte address (or 0x-hex)
        reward_id: uint256 reward identifier
        amount: uint256 amount

    Returns:
        84-byte preimage

    Raises:
        ValueError: if any field is out of range
    """
    recipient = to_address(recipient)
    valid, err = validate_address(recipient, "recipient")
    if not valid:
        raise ValueError(err)
    for name, value in (("reward_id", reward_id), ("amount", amount)):
        valid, err = validate_uint256(value, name)
        if not valid:
            raise ValueError(err)

    return (
        recipient +
        reward_id.to_bytes(WORD_SIZE, byteorder="big") +
        amount.to_bytes(WORD_SIZE, byteorder="big")
    )


def hash_leaf(recipient: Union[bytes, str], reward_id: int, amount: int) -> bytes:
    """Compute the 32-byte leaf for one reward entry."""
    return keccak256(encode_reward(recipient, reward_id, amount))
