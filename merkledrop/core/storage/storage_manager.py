from pathlib import Path
from typing import List, Optional, Tuple

from merkledrop.core.campaign.store import Campaign
from merkledrop.core.campaign.claims import ClaimKey
from merkledrop.core.storage.sqlite_adapter import SQLiteAdapter
from merkledrop.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Persists distributor state for the Airdrop facade.

    Handles:
    - Campaign records and the id counter
    - Settled claims (written together with the campaign total)
    - System pause flag
    """

    def __init__(self, data_dir: Path, db_name: str = "merkledrop.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # System State
    # =========================================================================

    def save_paused(self, paused: bool):
        self.adapter.set_meta("paused", "1" if paused else "0")

    def load_paused(self) -> bool:
        return self.adapter.get_meta("paused") == "1"

    def load_counter(self) -> int:
        value = self.adapter.get_meta("campaign_counter")
        return int(value) if value else 0

    # =========================================================================
    # Campaigns & Claims
    # =========================================================================

    def persist_campaign(self, campaign: Campaign, counter: int):
        self.adapter.save_campaign(
            campaign.campaign_id,
            campaign.asset,
            campaign.merkle_root,
            campaign.redeemable_at,
            campaign.active,
            campaign.redeemed_amount,
            campaign.uri,
            counter,
        )

    def persist_claim(self, key: ClaimKey, amount: int, redeemed_amount: int):
        """Atomically persist a settled claim."""
        self.adapter.save_claim(
            key.campaign_id,
            key.recipient,
            key.reward_id,
            amount,
            redeemed_amount,
        )

    def load_state(self) -> Tuple[List[Campaign], List[ClaimKey], bool]:
        """
        Load full distributor state.

        Returns:
            (campaigns, claim_keys, paused)
        """
        campaigns = [
            Campaign(
                campaign_id=row[0],
                asset=bytes(row[1]),
                merkle_root=bytes(row[2]),
                redeemable_at=row[3],
                active=bool(row[4]),
                redeemed_amount=int(row[5]),
                uri=row[6],
            )
            for row in self.adapter.get_all_campaigns()
        ]
        claims = [
            ClaimKey(campaign_id=campaign_id, recipient=bytes(recipient), reward_id=reward_id)
            for campaign_id, recipient, reward_id, _ in self.adapter.get_all_claims()
        ]
        return campaigns, claims, self.load_paused()

    def get_claims_count(self, campaign_id: Optional[int] = None) -> int:
        return self.adapter.get_claims_count(campaign_id)

    def close(self):
        self.adapter.close()
