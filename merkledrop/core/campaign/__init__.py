"""Campaign configuration and claim tracking"""
from merkledrop.core.campaign.store import Campaign, CampaignStore
from merkledrop.core.campaign.claims import ClaimKey, ClaimLedger

__all__ = [
    "Campaign",
    "CampaignStore",
    "ClaimKey",
    "ClaimLedger",
]
