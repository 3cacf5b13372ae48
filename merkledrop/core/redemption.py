"""
Redemption Service - the claim state machine.

Conceptual Background:
---------------------
A redemption attempt is Pending until it is either Settled or Rejected:

    Pending -> Verified -> Settled
    Pending -> Rejected(reason)

Checks run strictly in this order; the first failure is the reason surfaced
to the caller:

1. System not paused             else SystemPausedError
2. Campaign exists               else CampaignNotFoundError
3. Campaign active               else CampaignNotActiveError
4. now >= redeemable_at          else CampaignNotStartedError
5. ClaimKey not yet claimed      else AlreadyClaimedError
6. Proof verifies against root   else InvalidProofError

Settlement:
----------
The claim key is marked and the campaign total increased *before* the asset
transfer is issued, and all of it runs under the distributor lock. A
concurrent or re-entrant attempt for the same key therefore observes
AlreadyClaimed instead of racing the transfer. If the transfer (or the
persistence write) fails, the mark and the total are rolled back and the
failure is raised: no claim is ever recorded without its transfer.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from merkledrop.core.assets import AssetLedger, is_native
from merkledrop.core.campaign.claims import ClaimKey, ClaimLedger
from merkledrop.core.campaign.store import Campaign, CampaignStore
from merkledrop.core.commitment.leaf import SINGLE_REWARD_ID, hash_leaf
from merkledrop.core.commitment.merkle import verify_proof
from merkledrop.core.errors import (
    AlreadyClaimedError,
    CampaignNotActiveError,
    CampaignNotStartedError,
    InvalidProofError,
    SystemPausedError,
    TransferFailedError,
)
from merkledrop.core.storage.storage_manager import StorageManager
from merkledrop.crypto import bytes_to_hex, hex_to_bytes, to_address
from merkledrop.utils.logger import get_logger
from merkledrop.utils.validation import validate_uint256

logger = get_logger("redemption")


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


@dataclass
class RedemptionReceipt:
    """Result of a settled redemption."""
    campaign_id: int
    recipient: bytes
    reward_id: int
    amount: int
    asset: bytes
    redeemed_total: int
    settled_at: int


def normalize_proof(proof: Sequence[Union[bytes, str]]) -> List[bytes]:
    """
    Convert hex siblings to bytes.

    Malformed elements are kept as-is so that verification fails with
    InvalidProofError at its proper place in the check order.
    """
    result = []
    for sibling in proof:
        if isinstance(sibling, str):
            try:
                sibling = hex_to_bytes(sibling)
            except ValueError:
                pass
        result.append(sibling)
    return result


class RedemptionService:
    """
    Validates and settles redemptions.

    The only writer of ClaimLedger and of Campaign.redeemed_amount.
    """

    def __init__(
        self,
        store: CampaignStore,
        claims: ClaimLedger,
        asset_ledger: AssetLedger,
        lock: Optional[threading.RLock] = None,
        clock: Callable[[], int] = system_clock,
        storage_manager: Optional[StorageManager] = None,
    ):
        self.store = store
        self.claims = claims
        self.asset_ledger = asset_ledger
        self.lock = lock or threading.RLock()
        self.clock = clock
        self.storage_manager = storage_manager

    # =========================================================================
    # Redemption
    # =========================================================================

    def redeem(
        self,
        campaign_id: int,
        recipient: Union[bytes, str],
        amount: int,
        proof: Sequence[Union[bytes, str]],
        reward_id: int = SINGLE_REWARD_ID,
    ) -> RedemptionReceipt:
        """
        Redeem one entitlement and pay it out.

        Anyone may submit the redemption; funds always go to `recipient`.

        Args:
            campaign_id: Campaign to redeem from
            recipient: Beneficiary address (20 bytes or 0x-hex)
            amount: Amount committed in the leaf
            proof: Sibling hashes (bytes or 0x-hex), leaf level first
            reward_id: Reward id committed in the leaf (0 for single-reward)

        Returns:
            RedemptionReceipt

        Raises:
            SystemPausedError, CampaignNotFoundError, CampaignNotActiveError,
            CampaignNotStartedError, AlreadyClaimedError, InvalidProofError,
            TransferFailedError
            ValueError: if recipient/amount/reward_id are malformed
        """
        recipient = to_address(recipient)
        for name, value in (("amount", amount), ("reward_id", reward_id)):
            valid, err = validate_uint256(value, name)
            if not valid:
                raise ValueError(err)
        siblings = normalize_proof(proof)

        with self.lock:
            if self.store.paused:
                logger.debug(f"Rejected redeem on campaign {campaign_id}: system paused")
                raise SystemPausedError()

            campaign = self.store.require(campaign_id)

            if not campaign.active:
                raise CampaignNotActiveError(campaign_id)

            now = self.clock()
            if now < campaign.redeemable_at:
                raise CampaignNotStartedError(campaign_id, campaign.redeemable_at, now)

            key = ClaimKey(campaign_id=campaign_id, recipient=recipient, reward_id=reward_id)
            if self.claims.is_claimed(key):
                raise AlreadyClaimedError(
                    f"{bytes_to_hex(recipient)} already claimed reward {reward_id} in campaign {campaign_id}",
                    details={"campaign_id": campaign_id, "recipient": bytes_to_hex(recipient), "reward_id": reward_id},
                )

            leaf = hash_leaf(recipient, reward_id, amount)
            if not verify_proof(leaf, siblings, campaign.merkle_root):
                logger.warning(
                    f"Invalid proof for {bytes_to_hex(recipient)[:10]}... in campaign {campaign_id}"
                )
                raise InvalidProofError(
                    "Not in Merkle tree",
                    details={"campaign_id": campaign_id, "leaf": bytes_to_hex(leaf)},
                )

            self._settle(campaign, key, amount)

            logger.info(
                f"Settled claim: campaign={campaign_id} recipient={bytes_to_hex(recipient)[:10]}... "
                f"reward_id={reward_id} amount={amount} "
                f"({'native' if is_native(campaign.asset) else 'token'})"
            )
            return RedemptionReceipt(
                campaign_id=campaign_id,
                recipient=recipient,
                reward_id=reward_id,
                amount=amount,
                asset=campaign.asset,
                redeemed_total=campaign.redeemed_amount,
                settled_at=now,
            )

    def _settle(self, campaign: Campaign, key: ClaimKey, amount: int) -> None:
        """Mark, then transfer; undo the mark if anything after it fails."""
        self.claims.mark(key)
        campaign.redeemed_amount += amount

        try:
            with self.asset_ledger.atomic():
                success, error = self.asset_ledger.transfer(campaign.asset, key.recipient, amount)
                if not success:
                    raise TransferFailedError(
                        f"Transfer failed: {error}",
                        details={"campaign_id": campaign.campaign_id, "amount": amount},
                    )
                if self.storage_manager:
                    self.storage_manager.persist_claim(key, amount, campaign.redeemed_amount)
        except BaseException:
            self.claims.unmark(key)
            campaign.redeemed_amount -= amount
            logger.warning(f"Rolled back settlement of {key!r}")
            raise

    # =========================================================================
    # Queries
    # =========================================================================

    def has_claimed(
        self,
        campaign_id: int,
        recipient: Union[bytes, str],
        reward_id: int = SINGLE_REWARD_ID,
    ) -> bool:
        """Whether this exact entitlement has been redeemed."""
        key = ClaimKey(campaign_id=campaign_id, recipient=to_address(recipient), reward_id=reward_id)
        with self.lock:
            return self.claims.is_claimed(key)

    def verify(self, campaign_id: int, recipient: Union[bytes, str]) -> bool:
        """
        Whether recipient has redeemed any entitlement in the campaign.

        Returns False for a campaign id that does not exist.
        """
        recipient = to_address(recipient)
        with self.lock:
            if not self.store.exists(campaign_id):
                return False
            return self.claims.has_any_claim(campaign_id, recipient)
