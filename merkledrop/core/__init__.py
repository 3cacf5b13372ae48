"""Distributor core: campaigns, claims, redemption and administration"""
from merkledrop.core.errors import (
    AirdropError,
    UnauthorizedError,
    CampaignNotFoundError,
    CampaignNotActiveError,
    CampaignNotStartedError,
    AlreadyClaimedError,
    InvalidProofError,
    SystemPausedError,
    InvalidWithdrawAmountError,
    EmptyTreeError,
    TransferFailedError,
)
from merkledrop.core.access import AccessControl, OwnerAccessControl, PredicateAccessControl
from merkledrop.core.assets import AssetLedger, InMemoryAssetLedger, NATIVE_ASSET
from merkledrop.core.airdrop import Airdrop
from merkledrop.core.redemption import RedemptionReceipt

__all__ = [
    "AirdropError",
    "UnauthorizedError",
    "CampaignNotFoundError",
    "CampaignNotActiveError",
    "CampaignNotStartedError",
    "AlreadyClaimedError",
    "InvalidProofError",
    "SystemPausedError",
    "InvalidWithdrawAmountError",
    "EmptyTreeError",
    "TransferFailedError",
    "AccessControl",
    "OwnerAccessControl",
    "PredicateAccessControl",
    "AssetLedger",
    "InMemoryAssetLedger",
    "NATIVE_ASSET",
    "Airdrop",
    "RedemptionReceipt",
]
