"""
Unit tests for campaign store and claim ledger.
"""

import pytest

from merkledrop.core.campaign import Campaign, CampaignStore, ClaimKey, ClaimLedger
from merkledrop.core.errors import CampaignNotFoundError
from merkledrop.core.assets import NATIVE_ASSET

ROOT = b"\x01" * 32
ALICE = b"\xaa" * 20
BOB = b"\xbb" * 20


# =============================================================================
# Campaign Store Tests
# =============================================================================


class TestCampaignStore:
    """Tests for CampaignStore."""

    def test_ids_are_sequential_from_zero(self):
        store = CampaignStore()
        ids = [store.add(NATIVE_ASSET, ROOT, 0).campaign_id for _ in range(3)]
        assert ids == [0, 1, 2]
        assert store.counter == 3
        assert len(store) == 3

    def test_new_campaign_defaults(self):
        store = CampaignStore()
        campaign = store.add(NATIVE_ASSET, ROOT, 1000, uri="ipfs://x")
        assert campaign.active
        assert campaign.redeemed_amount == 0
        assert campaign.uri == "ipfs://x"

    def test_require_missing(self):
        store = CampaignStore()
        with pytest.raises(CampaignNotFoundError) as exc:
            store.require(5)
        assert exc.value.details == {"campaign_id": 5}
        assert store.get(5) is None
        assert 5 not in store

    def test_discard_last_only(self):
        store = CampaignStore()
        store.add(NATIVE_ASSET, ROOT, 0)
        store.add(NATIVE_ASSET, ROOT, 0)
        with pytest.raises(ValueError):
            store.discard_last(0)
        store.discard_last(1)
        assert store.counter == 1
        assert not store.exists(1)

    def test_snapshot_is_a_copy(self):
        store = CampaignStore()
        store.add(NATIVE_ASSET, ROOT, 0)
        snap = store.snapshot(0)
        store.require(0).redeemed_amount = 50
        assert snap.redeemed_amount == 0

    def test_restore_keeps_counter_ahead(self):
        store = CampaignStore()
        store.restore(Campaign(campaign_id=4, asset=NATIVE_ASSET, merkle_root=ROOT, redeemable_at=0))
        assert store.counter == 5
        store.restore_counter(3)
        assert store.counter == 5
        store.restore_counter(9)
        assert store.counter == 9

    def test_pause_flag_starts_false(self):
        assert CampaignStore().paused is False

    def test_is_redeemable(self):
        campaign = Campaign(campaign_id=0, asset=NATIVE_ASSET, merkle_root=ROOT, redeemable_at=100)
        assert not campaign.is_redeemable(99)
        assert campaign.is_redeemable(100)
        campaign.active = False
        assert not campaign.is_redeemable(200)

    def test_to_dict_uses_hex_and_decimal(self):
        campaign = Campaign(
            campaign_id=0, asset=NATIVE_ASSET, merkle_root=ROOT, redeemable_at=0, redeemed_amount=2**100
        )
        data = campaign.to_dict()
        assert data["asset"] == "0x" + "ee" * 20
        assert data["redeemed_amount"] == str(2**100)


# =============================================================================
# Claim Ledger Tests
# =============================================================================


class TestClaimLedger:
    """Tests for ClaimLedger."""

    def test_mark_once(self):
        ledger = ClaimLedger()
        key = ClaimKey(0, ALICE)
        assert not ledger.is_claimed(key)
        ledger.mark(key)
        assert ledger.is_claimed(key)
        with pytest.raises(KeyError):
            ledger.mark(key)

    def test_keys_are_scoped(self):
        ledger = ClaimLedger()
        ledger.mark(ClaimKey(0, ALICE, 1))
        assert not ledger.is_claimed(ClaimKey(1, ALICE, 1))
        assert not ledger.is_claimed(ClaimKey(0, ALICE, 2))
        assert not ledger.is_claimed(ClaimKey(0, BOB, 1))

    def test_default_reward_id_is_zero(self):
        assert ClaimKey(0, ALICE) == ClaimKey(0, ALICE, 0)

    def test_has_any_claim(self):
        ledger = ClaimLedger()
        ledger.mark(ClaimKey(0, ALICE, 7))
        assert ledger.has_any_claim(0, ALICE)
        assert not ledger.has_any_claim(0, BOB)
        assert not ledger.has_any_claim(1, ALICE)

    def test_unmark_restores_index(self):
        ledger = ClaimLedger()
        ledger.mark(ClaimKey(0, ALICE, 1))
        ledger.mark(ClaimKey(0, ALICE, 2))
        ledger.unmark(ClaimKey(0, ALICE, 2))
        assert ledger.has_any_claim(0, ALICE)
        ledger.unmark(ClaimKey(0, ALICE, 1))
        assert not ledger.has_any_claim(0, ALICE)
        assert len(ledger) == 0

    def test_count_per_campaign(self):
        ledger = ClaimLedger()
        ledger.mark(ClaimKey(0, ALICE))
        ledger.mark(ClaimKey(0, BOB))
        ledger.mark(ClaimKey(1, ALICE))
        assert ledger.count(0) == 2
        assert ledger.count(1) == 1
        assert ledger.count(2) == 0
        assert ClaimKey(1, ALICE) in ledger


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
