"""
Campaign Store - configuration of every distribution round.

A campaign binds an asset to a Merkle root and a start time:

    Campaign(id, asset, merkle_root, redeemable_at, active, redeemed_amount, uri)

Ids are allocated from a monotonic counter starting at 0 and are never reused.
The store also holds the system-wide pause flag, which is independent of any
campaign's own `active` flag.

The store does no locking and no authorization itself: AdminOperations and
RedemptionService are its only writers and both run under the Airdrop lock.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from merkledrop.core.errors import CampaignNotFoundError
from merkledrop.crypto import bytes_to_hex
from merkledrop.utils.logger import get_logger

logger = get_logger("campaign")


# =============================================================================
# Campaign
# =============================================================================


@dataclass
class Campaign:
    """
    One configured distribution round.

    Attributes:
        campaign_id: Sequential id assigned at creation
        asset: 20-byte asset id (NATIVE_ASSET or a token address)
        merkle_root: 32-byte root of the committed reward list
        redeemable_at: Unix timestamp (seconds) from which claims are accepted
        active: Campaign-level switch
        redeemed_amount: Sum of all settled claim amounts (never decreases)
        uri: Optional pointer to off-line metadata (e.g. the artifact)
    """
    campaign_id: int
    asset: bytes
    merkle_root: bytes
    redeemable_at: int
    active: bool = True
    redeemed_amount: int = 0
    uri: Optional[str] = None

    def is_redeemable(self, now: int) -> bool:
        return self.active and now >= self.redeemable_at

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "asset": bytes_to_hex(self.asset),
            "merkle_root": bytes_to_hex(self.merkle_root),
            "redeemable_at": self.redeemable_at,
            "active": self.active,
            "redeemed_amount": str(self.redeemed_amount),
            "uri": self.uri,
        }

    def __repr__(self) -> str:
        return (
            f"Campaign(id={self.campaign_id}, asset={bytes_to_hex(self.asset)[:10]}..., "
            f"root={bytes_to_hex(self.merkle_root)[:10]}..., active={self.active}, "
            f"redeemed={self.redeemed_amount})"
        )


# =============================================================================
# Store
# =============================================================================


class CampaignStore:
    """
    Campaign id -> Campaign, plus the id counter and system pause flag.

    Attributes:
        campaigns: Mapping of campaign id to Campaign
        paused: System-wide redemption pause
    """

    def __init__(self):
        self.campaigns: Dict[int, Campaign] = {}
        self._counter = 0
        self.paused = False

    @property
    def counter(self) -> int:
        """Next id to be assigned (== number of campaigns ever created)."""
        return self._counter

    def add(
        self,
        asset: bytes,
        merkle_root: bytes,
        redeemable_at: int,
        uri: Optional[str] = None,
    ) -> Campaign:
        """Allocate the next id and store a new active campaign."""
        campaign = Campaign(
            campaign_id=self._counter,
            asset=asset,
            merkle_root=merkle_root,
            redeemable_at=redeemable_at,
            uri=uri,
        )
        self.campaigns[campaign.campaign_id] = campaign
        self._counter += 1
        return campaign

    def discard_last(self, campaign_id: int) -> None:
        """Undo the most recent add()."""
        if campaign_id != self._counter - 1:
            raise ValueError(f"Campaign {campaign_id} is not the last one created")
        self.campaigns.pop(campaign_id, None)
        self._counter -= 1

    def get(self, campaign_id: int) -> Optional[Campaign]:
        return self.campaigns.get(campaign_id)

    def require(self, campaign_id: int) -> Campaign:
        """Get a campaign or raise CampaignNotFoundError."""
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def exists(self, campaign_id: int) -> bool:
        return campaign_id in self.campaigns

    def restore(self, campaign: Campaign) -> None:
        """Insert a campaign loaded from storage, keeping the counter ahead of it."""
        self.campaigns[campaign.campaign_id] = campaign
        self._counter = max(self._counter, campaign.campaign_id + 1)

    def restore_counter(self, counter: int) -> None:
        """Never move the counter backwards."""
        self._counter = max(self._counter, counter)

    def snapshot(self, campaign_id: int) -> Campaign:
        """Copy of a campaign, for rollback."""
        return replace(self.require(campaign_id))

    def all(self) -> List[Campaign]:
        return [self.campaigns[i] for i in sorted(self.campaigns)]

    def __len__(self) -> int:
        return len(self.campaigns)

    def __contains__(self, campaign_id: int) -> bool:
        return campaign_id in self.campaigns
