"""
Claim Ledger - at-most-once redemption tracking.

Conceptual Background:
---------------------
The ledger is the nullifier set of the distributor. Each entitlement is
identified by a ClaimKey:

    ClaimKey = (campaign_id, recipient, reward_id)

Once a key is marked it is never unmarked by normal operation, so a second
redeem for the same key (with any amount or proof) is rejected. Entries are
created lazily on first settlement.

Keys, not leaves, are tracked: two leaves with the same (recipient, reward_id)
in one campaign collapse into a single redeemable entitlement.

A per-campaign index of recipients backs `verify(campaign, recipient)` for
multi-reward campaigns ("has this recipient claimed anything here?").
"""

from dataclasses import dataclass
from typing import Dict, Set

from merkledrop.core.commitment.leaf import SINGLE_REWARD_ID
from merkledrop.crypto import bytes_to_hex


# =============================================================================
# Claim Key
# =============================================================================


@dataclass(frozen=True)
class ClaimKey:
    """Unique identifier of one redeemable entitlement within a campaign."""
    campaign_id: int
    recipient: bytes
    reward_id: int = SINGLE_REWARD_ID

    def __repr__(self) -> str:
        return f"ClaimKey({self.campaign_id}, {bytes_to_hex(self.recipient)[:10]}..., {self.reward_id})"


# =============================================================================
# Ledger
# =============================================================================


class ClaimLedger:
    """
    Set of claimed keys, indexed by campaign.

    Attributes:
        claimed: All claimed keys
        recipients: campaign_id -> recipients with at least one claimed key
    """

    def __init__(self):
        self.claimed: Set[ClaimKey] = set()
        self.recipients: Dict[int, Dict[bytes, int]] = {}

    def is_claimed(self, key: ClaimKey) -> bool:
        return key in self.claimed

    def has_any_claim(self, campaign_id: int, recipient: bytes) -> bool:
        return self.recipients.get(campaign_id, {}).get(recipient, 0) > 0

    def mark(self, key: ClaimKey) -> None:
        """
        Mark a key as claimed.

        Raises:
            KeyError: if the key is already claimed
        """
        if key in self.claimed:
            raise KeyError(f"{key!r} already claimed")

        self.claimed.add(key)
        per_campaign = self.recipients.setdefault(key.campaign_id, {})
        per_campaign[key.recipient] = per_campaign.get(key.recipient, 0) + 1

    def unmark(self, key: ClaimKey) -> None:
        """Undo mark() for a settlement whose transfer failed."""
        self.claimed.discard(key)
        per_campaign = self.recipients.get(key.campaign_id, {})
        remaining = per_campaign.get(key.recipient, 0) - 1
        if remaining > 0:
            per_campaign[key.recipient] = remaining
        else:
            per_campaign.pop(key.recipient, None)

    def count(self, campaign_id: int) -> int:
        """Number of settled claims in a campaign."""
        return sum(self.recipients.get(campaign_id, {}).values())

    def __len__(self) -> int:
        return len(self.claimed)

    def __contains__(self, key: ClaimKey) -> bool:
        return key in self.claimed
