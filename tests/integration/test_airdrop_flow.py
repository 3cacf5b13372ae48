"""
End-to-end distribution flows: generate off-line, publish, redeem on-line.
"""

import time

import pytest

from merkledrop.core import (
    Airdrop,
    AlreadyClaimedError,
    CampaignNotActiveError,
    CampaignNotStartedError,
    InMemoryAssetLedger,
    InvalidProofError,
    NATIVE_ASSET,
    SystemPausedError,
    TransferFailedError,
)
from merkledrop.core.commitment import Distribution, RewardEntry, RewardGenerator, load_rewards
from merkledrop.crypto import generate_keypair

TOKEN = b"\x70" * 20


@pytest.fixture
def admin():
    return generate_keypair().address_bytes


@pytest.fixture
def users():
    return [generate_keypair().address_bytes for _ in range(9)]


def test_full_distribution_via_artifact(tmp_path, admin, users):
    """Every recipient of a published artifact can redeem exactly once."""
    rewards = tmp_path / "rewards.csv"
    rewards.write_text(
        "address,amount\n" + "".join(f"0x{u.hex()},{(i + 1) * 1_000}\n" for i, u in enumerate(users))
    )
    RewardGenerator(load_rewards(rewards)).process().save(tmp_path / "distribution.json")
    distribution = Distribution.load(tmp_path / "distribution.json")

    treasury = InMemoryAssetLedger()
    treasury.deposit(TOKEN, int(distribution.total_amount))
    airdrop = Airdrop(treasury, owner=admin)
    cid = airdrop.create_campaign(admin, TOKEN, 0, distribution.root, uri=str(tmp_path / "distribution.json"))

    for claim in distribution.claims:
        airdrop.redeem(cid, claim.recipient, int(claim.amount), claim.proof)

    assert treasury.balance_of(TOKEN) == 0
    for i, user in enumerate(users):
        assert treasury.balance_of(TOKEN, user) == (i + 1) * 1_000
        assert airdrop.has_claimed(cid, user)
    assert airdrop.get_campaign(cid).redeemed_amount == int(distribution.total_amount)

    for claim in distribution.claims:
        with pytest.raises(AlreadyClaimedError):
            airdrop.redeem(cid, claim.recipient, int(claim.amount), claim.proof)


def test_redeem_before_funding(admin, users):
    """A claim is not settled while the payout balance cannot cover it."""
    a, b = users[:2]
    distribution = RewardGenerator([RewardEntry(a, 10), RewardEntry(b, 100)]).process()
    now = int(time.time())

    treasury = InMemoryAssetLedger()
    airdrop = Airdrop(treasury, owner=admin, clock=lambda: now)
    cid = airdrop.create_campaign(admin, NATIVE_ASSET, now, distribution.root)
    claim = distribution.proofs_for(b)[0]

    with pytest.raises(TransferFailedError):
        airdrop.redeem(cid, b, 100, claim.proof)
    assert not airdrop.has_claimed(cid, b)
    assert airdrop.get_campaign(cid).redeemed_amount == 0

    treasury.deposit(NATIVE_ASSET, 110)
    airdrop.redeem(cid, b, 100, claim.proof)
    assert treasury.balance_of(NATIVE_ASSET, b) == 100


def test_campaign_correction(admin, users):
    """Re-publishing a corrected list keeps earlier claims and retires old proofs."""
    a, b, c = users[:3]
    original = RewardGenerator([RewardEntry(a, 10), RewardEntry(b, 20), RewardEntry(c, 30)]).process()
    corrected = RewardGenerator([RewardEntry(a, 10), RewardEntry(b, 25), RewardEntry(c, 30)]).process()

    treasury = InMemoryAssetLedger()
    treasury.deposit(NATIVE_ASSET, 1_000)
    airdrop = Airdrop(treasury, owner=admin)
    cid = airdrop.create_campaign(admin, NATIVE_ASSET, 0, original.root)

    airdrop.redeem(cid, a, 10, original.proofs_for(a)[0].proof)
    airdrop.update_campaign(admin, cid, NATIVE_ASSET, 0, True, corrected.root)

    assert airdrop.has_claimed(cid, a)
    with pytest.raises(InvalidProofError):
        airdrop.redeem(cid, b, 20, original.proofs_for(b)[0].proof)
    airdrop.redeem(cid, b, 25, corrected.proofs_for(b)[0].proof)
    assert airdrop.get_campaign(cid).redeemed_amount == 35


def test_lifecycle_gates(admin, users):
    """Time gate, campaign pause and system pause each block redemption."""
    distribution = RewardGenerator([RewardEntry(u, 1) for u in users]).process()
    clock = {"now": 0}

    treasury = InMemoryAssetLedger()
    treasury.deposit(NATIVE_ASSET, len(users))
    airdrop = Airdrop(treasury, owner=admin, clock=lambda: clock["now"])
    cid = airdrop.create_campaign(admin, NATIVE_ASSET, 500, distribution.root)

    first = distribution.claims[0]
    with pytest.raises(CampaignNotStartedError):
        airdrop.redeem(cid, first.recipient, 1, first.proof)

    clock["now"] = 500
    airdrop.pause_campaign(admin, cid)
    with pytest.raises(CampaignNotActiveError):
        airdrop.redeem(cid, first.recipient, 1, first.proof)

    airdrop.unpause_campaign(admin, cid)
    airdrop.pause(admin)
    with pytest.raises(SystemPausedError):
        airdrop.redeem(cid, first.recipient, 1, first.proof)

    airdrop.unpause(admin)
    airdrop.redeem(cid, first.recipient, 1, first.proof)
    assert airdrop.stats() == {"campaign_count": 1, "active_campaigns": 1, "claims": 1, "paused": False}


def test_withdraw_and_redeem_share_treasury(admin, users):
    """Withdrawals and redemptions cannot jointly overdraw the payout balance."""
    a, b = users[:2]
    distribution = RewardGenerator([RewardEntry(a, 60), RewardEntry(b, 60)]).process()

    treasury = InMemoryAssetLedger()
    treasury.deposit(NATIVE_ASSET, 120)
    airdrop = Airdrop(treasury, owner=admin)
    cid = airdrop.create_campaign(admin, NATIVE_ASSET, 0, distribution.root)

    airdrop.redeem(cid, a, 60, distribution.proofs_for(a)[0].proof)
    airdrop.withdraw(admin, NATIVE_ASSET, 50)

    with pytest.raises(TransferFailedError):
        airdrop.redeem(cid, b, 60, distribution.proofs_for(b)[0].proof)
    assert not airdrop.has_claimed(cid, b)
    assert treasury.balance_of(NATIVE_ASSET) == 10
