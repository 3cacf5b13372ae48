"""
Admin Operations - campaign lifecycle and treasury withdrawal.

Every operation takes the calling identity first and checks it with the
injected AccessControl before touching any state. All mutations run under
the distributor lock, and if persistence fails the in-memory change is
undone, so an operation either commits fully or not at all.
"""

import threading
from typing import Callable, List, Optional, Sequence, Union

from merkledrop.core.access import AccessControl
from merkledrop.core.assets import AssetLedger
from merkledrop.core.campaign.store import Campaign, CampaignStore
from merkledrop.core.errors import InvalidWithdrawAmountError, TransferFailedError
from merkledrop.core.storage.storage_manager import StorageManager
from merkledrop.crypto import bytes_to_hex, to_address, to_hash
from merkledrop.utils.logger import get_logger
from merkledrop.utils.validation import validate_string, validate_timestamp, validate_uint256

logger = get_logger("admin")

Address = Union[bytes, str]


class AdminOperations:
    """
    Administrator-only surface of the distributor.

    Attributes:
        store: Campaign store (also holds the system pause flag)
        asset_ledger: Treasury the withdrawals draw from
        access_control: Decides who is the administrator
    """

    def __init__(
        self,
        store: CampaignStore,
        asset_ledger: AssetLedger,
        access_control: AccessControl,
        lock: Optional[threading.RLock] = None,
        storage_manager: Optional[StorageManager] = None,
    ):
        self.store = store
        self.asset_ledger = asset_ledger
        self.access_control = access_control
        self.lock = lock or threading.RLock()
        self.storage_manager = storage_manager

    # =========================================================================
    # Campaigns
    # =========================================================================

    def create_campaign(
        self,
        caller: Address,
        asset: Address,
        redeemable_at: int,
        merkle_root: Union[bytes, str],
        uri: Optional[str] = None,
    ) -> int:
        """
        Create an active campaign.

        Returns:
            The new campaign id (ids start at 0 and increase by one)

        Raises:
            UnauthorizedError: if caller is not the administrator
        """
        self.access_control.require_admin(caller, "create_campaign")
        asset, merkle_root = self._check_campaign_fields(asset, redeemable_at, merkle_root, uri)

        with self.lock:
            campaign = self.store.add(asset, merkle_root, redeemable_at, uri)
            self._persist(campaign, undo=lambda: self.store.discard_last(campaign.campaign_id))

        logger.info(
            f"Created campaign {campaign.campaign_id}: asset={bytes_to_hex(asset)[:10]}... "
            f"root={bytes_to_hex(merkle_root)[:10]}... redeemable_at={redeemable_at}"
        )
        return campaign.campaign_id

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
        """
        Replace every mutable field of a campaign.

        The redeemed total and the claim ledger are untouched: keys claimed
        under the old root stay claimed, and unclaimed proofs for the old
        root stop verifying.

        Raises:
            UnauthorizedError, CampaignNotFoundError
        """
        self.access_control.require_admin(caller, "update_campaign")
        asset, merkle_root = self._check_campaign_fields(asset, redeemable_at, merkle_root, uri)

        with self.lock:
            previous = self.store.snapshot(campaign_id)
            campaign = self.store.require(campaign_id)
            campaign.asset = asset
            campaign.redeemable_at = redeemable_at
            campaign.active = bool(active)
            campaign.merkle_root = merkle_root
            campaign.uri = uri
            self._persist(campaign, undo=lambda: self.store.restore(previous))

        logger.info(f"Updated campaign {campaign_id}: active={bool(active)} root={bytes_to_hex(merkle_root)[:10]}...")

    def pause_campaign(self, caller: Address, campaign_id: int) -> None:
        """Deactivate a single campaign."""
        self._set_active(caller, campaign_id, False)

    def unpause_campaign(self, caller: Address, campaign_id: int) -> None:
        """Reactivate a single campaign."""
        self._set_active(caller, campaign_id, True)

    def _set_active(self, caller: Address, campaign_id: int, active: bool) -> None:
        operation = "unpause_campaign" if active else "pause_campaign"
        self.access_control.require_admin(caller, operation)

        with self.lock:
            campaign = self.store.require(campaign_id)
            previous = campaign.active
            campaign.active = active

            def undo():
                campaign.active = previous

            self._persist(campaign, undo=undo)

        logger.info(f"Campaign {campaign_id} {'activated' if active else 'deactivated'}")

    def get_campaign_count(self) -> int:
        """Number of campaigns created so far (the next id to be assigned)."""
        with self.lock:
            return self.store.counter

    # =========================================================================
    # System pause
    # =========================================================================

    def pause(self, caller: Address) -> None:
        """Stop all redemptions, whatever the campaign state."""
        self._set_paused(caller, True)

    def unpause(self, caller: Address) -> None:
        self._set_paused(caller, False)

    def _set_paused(self, caller: Address, paused: bool) -> None:
        self.access_control.require_admin(caller, "unpause" if not paused else "pause")

        with self.lock:
            previous = self.store.paused
            self.store.paused = paused
            if self.storage_manager:
                try:
                    self.storage_manager.save_paused(paused)
                except Exception:
                    self.store.paused = previous
                    raise

        logger.info(f"System {'paused' if paused else 'unpaused'}")

    # =========================================================================
    # Withdrawals
    # =========================================================================

    def withdraw(self, caller: Address, asset: Address, amount: int) -> None:
        """
        Withdraw amount of asset from the treasury to the caller.

        Raises:
            UnauthorizedError, InvalidWithdrawAmountError, TransferFailedError
        """
        self.batch_withdraw(caller, [asset], [amount])

    def batch_withdraw(
        self,
        caller: Address,
        assets: Sequence[Address],
        amounts: Sequence[int],
    ) -> None:
        """
        Withdraw several assets at once, all or nothing.

        Every amount is validated before any transfer; if any transfer fails
        every earlier transfer in the batch is undone.

        Raises:
            UnauthorizedError, InvalidWithdrawAmountError, TransferFailedError
        """
        to = self.access_control.require_admin(caller, "withdraw")

        if len(assets) != len(amounts):
            raise InvalidWithdrawAmountError(
                f"Length mismatch: {len(assets)} assets, {len(amounts)} amounts"
            )

        normalized: List[bytes] = []
        for i, (asset, amount) in enumerate(zip(assets, amounts)):
            valid, err = validate_uint256(amount, f"amounts[{i}]")
            if not valid or amount == 0:
                raise InvalidWithdrawAmountError(
                    err or f"amounts[{i}] must be greater than 0",
                    details={"index": i, "amount": amount},
                )
            normalized.append(to_address(asset))

        with self.lock:
            with self.asset_ledger.atomic():
                for i, (asset, amount) in enumerate(zip(normalized, amounts)):
                    success, error = self.asset_ledger.transfer(asset, to, amount)
                    if not success:
                        raise TransferFailedError(
                            f"Withdraw {i} failed: {error}",
                            details={"index": i, "asset": bytes_to_hex(asset), "amount": amount},
                        )

        logger.info(f"Withdrew {len(normalized)} asset(s) to {bytes_to_hex(to)[:10]}...")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_campaign_fields(asset, redeemable_at, merkle_root, uri):
        valid, err = validate_timestamp(redeemable_at)
        if not valid:
            raise ValueError(err)
        if uri is not None:
            valid, err = validate_string(uri, "uri")
            if not valid:
                raise ValueError(err)
        return to_address(asset), to_hash(merkle_root, "merkle_root")

    def _persist(self, campaign: Campaign, undo: Callable[[], None]) -> None:
        if self.storage_manager is None:
            return
        try:
            self.storage_manager.persist_campaign(campaign, self.store.counter)
        except Exception:
            undo()
            raise
