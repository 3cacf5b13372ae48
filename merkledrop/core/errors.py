"""
Error taxonomy for merkledrop.

Every rejection raised by the core is an AirdropError carrying a stable
machine-readable code, so callers (and off-line tooling) can tell
"too early" from "already claimed" from "bad proof" without parsing text.
None of these are retried by the core.
"""

from typing import Any, Dict, Optional


class AirdropError(Exception):
    """Base error with a stable code and structured details."""

    code = "AIRDROP_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnauthorizedError(AirdropError):
    """Caller is not the administrator."""

    code = "UNAUTHORIZED"


class CampaignNotFoundError(AirdropError):
    code = "CAMPAIGN_NOT_FOUND"

    def __init__(self, campaign_id: int):
        super().__init__(
            f"Campaign {campaign_id} does not exist",
            details={"campaign_id": campaign_id},
        )


class CampaignNotActiveError(AirdropError):
    code = "CAMPAIGN_NOT_ACTIVE"

    def __init__(self, campaign_id: int):
        super().__init__(
            f"Campaign {campaign_id} is not active",
            details={"campaign_id": campaign_id},
        )


class CampaignNotStartedError(AirdropError):
    code = "CAMPAIGN_NOT_STARTED"

    def __init__(self, campaign_id: int, redeemable_at: int, now: int):
        super().__init__(
            f"Campaign {campaign_id} is not redeemable until {redeemable_at} (now {now})",
            details={"campaign_id": campaign_id, "redeemable_at": redeemable_at, "now": now},
        )


class AlreadyClaimedError(AirdropError):
    code = "ALREADY_CLAIMED"


class InvalidProofError(AirdropError):
    """Leaf does not hash up to the campaign's Merkle root."""

    code = "INVALID_PROOF"


class SystemPausedError(AirdropError):
    code = "SYSTEM_PAUSED"

    def __init__(self):
        super().__init__("Redemptions are paused")


class InvalidWithdrawAmountError(AirdropError):
    code = "INVALID_WITHDRAW_AMOUNT"


class EmptyTreeError(AirdropError):
    code = "EMPTY_TREE"

    def __init__(self):
        super().__init__("Cannot build a Merkle tree from an empty reward list")


class TransferFailedError(AirdropError):
    """The asset ledger refused the transfer (e.g. insufficient balance)."""

    code = "TRANSFER_FAILED"
