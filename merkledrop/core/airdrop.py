"""
Airdrop - the distributor facade.

Wires the campaign store, claim ledger, admin operations and redemption
service around one shared re-entrant lock, so every mutating call is a single
serialized transaction over campaigns, claims and the treasury:

    airdrop = Airdrop(owner=admin_address, asset_ledger=InMemoryAssetLedger())
    cid = airdrop.create_campaign(admin_address, token, now, distribution.root)
    airdrop.redeem(cid, recipient, amount, proof)

With a StorageManager the full state is reloaded on construction and every
committed change is written through.
"""

import threading
from typing import Callable, List, Optional, Sequence, Union

from merkledrop.core.access import AccessControl, OwnerAccessControl
from merkledrop.core.admin import AdminOperations
from merkledrop.core.assets import AssetLedger
from merkledrop.core.campaign.claims import ClaimLedger
from merkledrop.core.campaign.store import Campaign, CampaignStore
from merkledrop.core.commitment.leaf import SINGLE_REWARD_ID
from merkledrop.core.config import AirdropConfig
from merkledrop.core.redemption import RedemptionReceipt, RedemptionService, system_clock
from merkledrop.core.storage.storage_manager import StorageManager
from merkledrop.utils.logger import get_logger

logger = get_logger("airdrop")

Address = Union[bytes, str]


class Airdrop:
    """
    Merkle-committed distributor.

    Attributes:
        store: Campaigns, id counter, system pause flag
        claims: Claimed keys
        admin: Administrator operations
        redemption: Redemption state machine
    """

    def __init__(
        self,
        asset_ledger: AssetLedger,
        owner: Optional[Address] = None,
        access_control: Optional[AccessControl] = None,
        clock: Callable[[], int] = system_clock,
        storage_manager: Optional[StorageManager] = None,
    ):
        """
        Args:
            asset_ledger: Treasury that pays out redemptions and withdrawals
            owner: Administrator address (shortcut for OwnerAccessControl)
            access_control: Explicit access policy; overrides owner
            clock: Returns the current unix time in seconds
            storage_manager: Persistence. None = in-memory only.
        """
        if access_control is None:
            if owner is None:
                raise ValueError("Either owner or access_control is required")
            access_control = OwnerAccessControl(owner)

        self.lock = threading.RLock()
        self.store = CampaignStore()
        self.claims = ClaimLedger()
        self.asset_ledger = asset_ledger
        self.storage_manager = storage_manager

        self.admin = AdminOperations(
            self.store,
            asset_ledger,
            access_control,
            lock=self.lock,
            storage_manager=storage_manager,
        )
        self.redemption = RedemptionService(
            self.store,
            self.claims,
            asset_ledger,
            lock=self.lock,
            clock=clock,
            storage_manager=storage_manager,
        )

        if storage_manager:
            self._load_from_storage()

    @classmethod
    def from_config(
        cls,
        config: AirdropConfig,
        asset_ledger: AssetLedger,
        owner: Address,
        clock: Callable[[], int] = system_clock,
    ) -> "Airdrop":
        """Build a distributor, persisted if the config asks for it."""
        storage_manager = None
        if config.persist:
            config.ensure_dirs()
            storage_manager = StorageManager(config.data_dir, db_name=config.db_name)
        return cls(asset_ledger, owner=owner, clock=clock, storage_manager=storage_manager)

    # =========================================================================
    # Admin surface
    # =========================================================================

    def create_campaign(
        self,
        caller: Address,
        asset: Address,
        redeemable_at: int,
        merkle_root: Union[bytes, str],
        uri: Optional[str] = None,
    ) -> int:
        return self.admin.create_campaign(caller, asset, redeemable_at, merkle_root, uri)

    def update_campaign(
        self,
        caller: Address,
        campaign_id: int,
        asset: Address,
        redeemable_at: int,
        active: bool,
        merkle_root: Union[bytes, str],
        uri: Optional[str] = None,
    ) -> None:
        self.admin.update_campaign(caller, campaign_id, asset, redeemable_at, active, merkle_root, uri)

    def pause_campaign(self, caller: Address, campaign_id: int) -> None:
        self.admin.pause_campaign(caller, campaign_id)

    def unpause_campaign(self, caller: Address, campaign_id: int) -> None:
        self.admin.unpause_campaign(caller, campaign_id)

    def pause(self, caller: Address) -> None:
        self.admin.pause(caller)

    def unpause(self, caller: Address) -> None:
        self.admin.unpause(caller)

    def withdraw(self, caller: Address, asset: Address, amount: int) -> None:
        self.admin.withdraw(caller, asset, amount)

    def batch_withdraw(self, caller: Address, assets: Sequence[Address], amounts: Sequence[int]) -> None:
        self.admin.batch_withdraw(caller, assets, amounts)

    def get_campaign_count(self) -> int:
        return self.admin.get_campaign_count()

    # =========================================================================
    # Redemption surface
    # =========================================================================

    def redeem(
        self,
        campaign_id: int,
        recipient: Address,
        amount: int,
        proof: Sequence[Union[bytes, str]],
        reward_id: int = SINGLE_REWARD_ID,
    ) -> RedemptionReceipt:
        return self.redemption.redeem(campaign_id, recipient, amount, proof, reward_id)

    def has_claimed(self, campaign_id: int, recipient: Address, reward_id: int = SINGLE_REWARD_ID) -> bool:
        return self.redemption.has_claimed(campaign_id, recipient, reward_id)

    def verify(self, campaign_id: int, recipient: Address) -> bool:
        return self.redemption.verify(campaign_id, recipient)

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def paused(self) -> bool:
        return self.store.paused

    def get_campaign(self, campaign_id: int) -> Campaign:
        """Copy of a campaign record. Raises CampaignNotFoundError."""
        with self.lock:
            return self.store.snapshot(campaign_id)

    def campaigns(self) -> List[Campaign]:
        with self.lock:
            return [self.store.snapshot(c.campaign_id) for c in self.store.all()]

    def stats(self) -> dict:
        """Distributor statistics."""
        with self.lock:
            return {
                "campaign_count": self.store.counter,
                "active_campaigns": sum(1 for c in self.store.all() if c.active),
                "claims": len(self.claims),
                "paused": self.store.paused,
            }

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load_from_storage(self) -> None:
        campaigns, claim_keys, paused = self.storage_manager.load_state()

        for campaign in campaigns:
            self.store.restore(campaign)
        self.store.restore_counter(self.storage_manager.load_counter())

        for key in claim_keys:
            self.claims.mark(key)

        self.store.paused = paused

        logger.info(
            f"Loaded distributor: {len(campaigns)} campaigns, {len(claim_keys)} claims, paused={paused}"
        )

    def __repr__(self) -> str:
        return f"Airdrop(campaigns={self.store.counter}, claims={len(self.claims)}, paused={self.store.paused})"
