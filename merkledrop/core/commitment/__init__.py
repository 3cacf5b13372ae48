"""Reward-list commitment: leaf codec, Merkle tree, proof verification, generator"""
from merkledrop.core.commitment.leaf import (
    RewardEntry,
    encode_reward,
    hash_leaf,
    SINGLE_REWARD_ID,
)
from merkledrop.core.commitment.merkle import MerkleTree, hash_pair, verify_proof
from merkledrop.core.commitment.generator import (
    ClaimProof,
    Distribution,
    RewardGenerator,
    entries_from_rows,
    load_rewards,
)

__all__ = [
    "RewardEntry",
    "encode_reward",
    "hash_leaf",
    "SINGLE_REWARD_ID",
    "MerkleTree",
    "hash_pair",
    "verify_proof",
    "ClaimProof",
    "Distribution",
    "RewardGenerator",
    "entries_from_rows",
    "load_rewards",
]
