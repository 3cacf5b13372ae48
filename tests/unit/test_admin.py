"""
Unit tests for administrator operations.

Tests cover:
1. Authorization of every admin operation
2. Campaign creation, update and per-campaign pause
3. System pause
4. Withdrawals (single and batch, all or nothing)
"""

import threading

import pytest

from merkledrop.core import (
    Airdrop,
    CampaignNotFoundError,
    InMemoryAssetLedger,
    InvalidWithdrawAmountError,
    NATIVE_ASSET,
    TransferFailedError,
    UnauthorizedError,
)
from merkledrop.core.commitment import RewardEntry, RewardGenerator
from merkledrop.crypto import bytes_to_hex

ADMIN = b"\xad" * 20
STRANGER = b"\x5e" * 20
TOKEN = b"\x70" * 20
ROOT = b"\x01" * 32
OTHER_ROOT = b"\x02" * 32


@pytest.fixture
def treasury():
    ledger = InMemoryAssetLedger()
    ledger.deposit(NATIVE_ASSET, 1_000)
    ledger.deposit(TOKEN, 500)
    return ledger


@pytest.fixture
def airdrop(treasury):
    return Airdrop(treasury, owner=ADMIN, clock=lambda: 1_000)


# =============================================================================
# Authorization
# =============================================================================


class TestAuthorization:
    """Every admin operation rejects non-administrators."""

    @pytest.mark.parametrize("call", [
        lambda a: a.create_campaign(STRANGER, NATIVE_ASSET, 0, ROOT),
        lambda a: a.update_campaign(STRANGER, 0, NATIVE_ASSET, 0, True, ROOT),
        lambda a: a.pause_campaign(STRANGER, 0),
        lambda a: a.unpause_campaign(STRANGER, 0),
        lambda a: a.pause(STRANGER),
        lambda a: a.unpause(STRANGER),
        lambda a: a.withdraw(STRANGER, NATIVE_ASSET, 1),
        lambda a: a.batch_withdraw(STRANGER, [NATIVE_ASSET], [1]),
    ])
    def test_stranger_rejected(self, airdrop, treasury, call):
        airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        before = airdrop.get_campaign(0)

        with pytest.raises(UnauthorizedError):
            call(airdrop)

        assert airdrop.get_campaign_count() == 1
        assert airdrop.get_campaign(0) == before
        assert airdrop.paused is False
        assert treasury.balance_of(NATIVE_ASSET) == 1_000

    def test_owner_accepted_as_hex(self, airdrop):
        assert airdrop.create_campaign(bytes_to_hex(ADMIN), NATIVE_ASSET, 0, ROOT) == 0

    def test_owner_or_policy_required(self, treasury):
        with pytest.raises(ValueError):
            Airdrop(treasury)


# =============================================================================
# Campaigns
# =============================================================================


class TestCampaignLifecycle:
    """Tests for create/update/pause of campaigns."""

    def test_create_assigns_sequential_ids(self, airdrop):
        assert airdrop.get_campaign_count() == 0
        ids = [airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT) for _ in range(3)]
        assert ids == [0, 1, 2]
        assert airdrop.get_campaign_count() == 3

    def test_created_campaign_fields(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, bytes_to_hex(TOKEN), 1234, bytes_to_hex(ROOT), uri="ipfs://drop")
        campaign = airdrop.get_campaign(cid)
        assert campaign.asset == TOKEN
        assert campaign.merkle_root == ROOT
        assert campaign.redeemable_at == 1234
        assert campaign.active
        assert campaign.redeemed_amount == 0
        assert campaign.uri == "ipfs://drop"

    def test_create_rejects_bad_fields(self, airdrop):
        with pytest.raises(ValueError):
            airdrop.create_campaign(ADMIN, NATIVE_ASSET, -1, ROOT)
        with pytest.raises(ValueError):
            airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, b"\x01" * 31)
        with pytest.raises(ValueError):
            airdrop.create_campaign(ADMIN, b"\x01", 0, ROOT)
        assert airdrop.get_campaign_count() == 0

    def test_update_replaces_fields(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        airdrop.update_campaign(ADMIN, cid, TOKEN, 99, False, OTHER_ROOT, uri="v2")
        campaign = airdrop.get_campaign(cid)
        assert (campaign.asset, campaign.redeemable_at, campaign.active) == (TOKEN, 99, False)
        assert campaign.merkle_root == OTHER_ROOT
        assert campaign.uri == "v2"

    def test_update_keeps_redeemed_total(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        airdrop.store.require(cid).redeemed_amount = 42
        airdrop.update_campaign(ADMIN, cid, NATIVE_ASSET, 0, True, OTHER_ROOT)
        assert airdrop.get_campaign(cid).redeemed_amount == 42

    def test_update_unknown_campaign(self, airdrop):
        with pytest.raises(CampaignNotFoundError):
            airdrop.update_campaign(ADMIN, 7, NATIVE_ASSET, 0, True, ROOT)
        assert airdrop.get_campaign_count() == 0

    def test_pause_and_unpause_campaign(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        airdrop.pause_campaign(ADMIN, cid)
        assert not airdrop.get_campaign(cid).active
        airdrop.unpause_campaign(ADMIN, cid)
        assert airdrop.get_campaign(cid).active

    def test_pause_unknown_campaign(self, airdrop):
        with pytest.raises(CampaignNotFoundError):
            airdrop.pause_campaign(ADMIN, 0)

    def test_get_campaign_returns_copy(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        airdrop.get_campaign(cid).active = False
        assert airdrop.get_campaign(cid).active


# =============================================================================
# System pause
# =============================================================================


class TestSystemPause:
    """Tests for the system-wide pause flag."""

    def test_pause_toggles(self, airdrop):
        airdrop.pause(ADMIN)
        assert airdrop.paused
        airdrop.unpause(ADMIN)
        assert not airdrop.paused

    def test_pause_is_idempotent(self, airdrop):
        airdrop.pause(ADMIN)
        airdrop.pause(ADMIN)
        assert airdrop.paused
        airdrop.unpause(ADMIN)
        airdrop.unpause(ADMIN)
        assert not airdrop.paused

    def test_pause_leaves_campaigns_untouched(self, airdrop):
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
        airdrop.pause(ADMIN)
        assert airdrop.get_campaign(cid).active

    def test_admin_ops_work_while_paused(self, airdrop):
        airdrop.pause(ADMIN)
        assert airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT) == 0
        airdrop.withdraw(ADMIN, NATIVE_ASSET, 1)


# =============================================================================
# Withdrawals
# =============================================================================


class TestWithdraw:
    """Tests for treasury withdrawals."""

    def test_withdraw_pays_caller(self, airdrop, treasury):
        airdrop.withdraw(ADMIN, NATIVE_ASSET, 300)
        assert treasury.balance_of(NATIVE_ASSET) == 700
        assert treasury.balance_of(NATIVE_ASSET, ADMIN) == 300

    def test_withdraw_zero_rejected(self, airdrop, treasury):
        with pytest.raises(InvalidWithdrawAmountError):
            airdrop.withdraw(ADMIN, NATIVE_ASSET, 0)
        assert treasury.transfers == []

    @pytest.mark.parametrize("amount", [-5, 2**256, True, "10"])
    def test_withdraw_malformed_amount_rejected(self, airdrop, amount):
        with pytest.raises(InvalidWithdrawAmountError):
            airdrop.withdraw(ADMIN, NATIVE_ASSET, amount)

    def test_withdraw_more_than_balance(self, airdrop, treasury):
        with pytest.raises(TransferFailedError):
            airdrop.withdraw(ADMIN, TOKEN, 501)
        assert treasury.balance_of(TOKEN) == 500

    def test_batch_withdraw(self, airdrop, treasury):
        airdrop.batch_withdraw(ADMIN, [NATIVE_ASSET, TOKEN], [100, 200])
        assert treasury.balance_of(NATIVE_ASSET, ADMIN) == 100
        assert treasury.balance_of(TOKEN, ADMIN) == 200

    def test_batch_zero_amount_rejects_whole_batch(self, airdrop, treasury):
        with pytest.raises(InvalidWithdrawAmountError) as exc:
            airdrop.batch_withdraw(ADMIN, [NATIVE_ASSET, TOKEN], [100, 0])
        assert exc.value.details["index"] == 1
        assert treasury.balance_of(NATIVE_ASSET) == 1_000
        assert treasury.transfers == []

    def test_batch_failed_transfer_rolls_back_earlier_ones(self, airdrop, treasury):
        with pytest.raises(TransferFailedError):
            airdrop.batch_withdraw(ADMIN, [NATIVE_ASSET, TOKEN], [100, 10_000])
        assert treasury.balance_of(NATIVE_ASSET) == 1_000
        assert treasury.balance_of(NATIVE_ASSET, ADMIN) == 0
        assert treasury.transfers == []

    def test_batch_length_mismatch(self, airdrop):
        with pytest.raises(InvalidWithdrawAmountError):
            airdrop.batch_withdraw(ADMIN, [NATIVE_ASSET, TOKEN], [1])

    def test_empty_batch_is_noop(self, airdrop, treasury):
        airdrop.batch_withdraw(ADMIN, [], [])
        assert treasury.transfers == []

    def test_repeated_asset_in_batch(self, airdrop, treasury):
        airdrop.batch_withdraw(ADMIN, [TOKEN, TOKEN], [200, 300])
        assert treasury.balance_of(TOKEN) == 0
        with pytest.raises(TransferFailedError):
            airdrop.batch_withdraw(ADMIN, [NATIVE_ASSET, NATIVE_ASSET], [600, 600])
        assert treasury.balance_of(NATIVE_ASSET) == 1_000

# =============================================================================
# Concurrency
# =============================================================================


def run_together(targets):
    """Start every target behind a barrier and wait for all of them."""
    barrier = threading.Barrier(len(targets))

    def gated(target):
        barrier.wait()
        target()

    threads = [threading.Thread(target=gated, args=(t,)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestConcurrency:
    """Admin operations under concurrent callers."""

    def test_concurrent_creates_get_sequential_ids(self, airdrop):
        ids = []
        ids_lock = threading.Lock()

        def create():
            cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, ROOT)
            with ids_lock:
                ids.append(cid)

        run_together([create] * 16)

        assert sorted(ids) == list(range(16))
        assert airdrop.get_campaign_count() == 16
        assert [c.campaign_id for c in airdrop.campaigns()] == list(range(16))

    def test_withdraw_racing_redeem_never_overdraws(self, airdrop, treasury):
        users = [bytes([0x10 + i]) * 20 for i in range(6)]
        distribution = RewardGenerator([RewardEntry(recipient=u, amount=100) for u in users]).process()
        cid = airdrop.create_campaign(ADMIN, NATIVE_ASSET, 0, distribution.root)

        outcomes = []
        outcomes_lock = threading.Lock()

        def record(kind, amount, ok):
            with outcomes_lock:
                outcomes.append((kind, amount, ok))

        def redeemer(claim):
            def run():
                try:
                    airdrop.redeem(cid, claim.recipient, int(claim.amount), claim.proof)
                    record("redeem", int(claim.amount), True)
                except TransferFailedError:
                    record("redeem", int(claim.amount), False)
            return run

        def withdrawer():
            try:
                airdrop.withdraw(ADMIN, NATIVE_ASSET, 150)
                record("withdraw", 150, True)
            except TransferFailedError:
                record("withdraw", 150, False)

        # 600 of claims plus 900 of withdrawals against a balance of 1000
        run_together([redeemer(c) for c in distribution.claims] + [withdrawer] * 6)

        paid = sum(a for kind, a, ok in outcomes if kind == "redeem" and ok)
        withdrawn = sum(a for kind, a, ok in outcomes if kind == "withdraw" and ok)

        assert len(outcomes) == 12
        assert treasury.balance_of(NATIVE_ASSET) >= 0
        assert treasury.balance_of(NATIVE_ASSET) == 1_000 - paid - withdrawn
        assert treasury.balance_of(NATIVE_ASSET, ADMIN) == withdrawn
        assert sum(treasury.balance_of(NATIVE_ASSET, u) for u in users) == paid
        assert airdrop.get_campaign(cid).redeemed_amount == paid
        assert sum(airdrop.has_claimed(cid, u) for u in users) == paid // 100



if __name__ == "__main__":
    pytest.main([__file__, "-v"])
