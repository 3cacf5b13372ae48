"""
merkledrop

Merkle-committed reward distribution:
- Off-line commitment of reward lists (leaf codec, Merkle tree, proofs)
- Campaign configuration with activation, pause and time-gating
- At-most-once claim ledger with atomic payout
"""
