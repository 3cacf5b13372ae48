"""
Off-line generator - turns a reward list into a committed distribution.

The output (Distribution) is the interchange artifact between the off-line
commitment step and on-line redemption:

    {
      "root": "0x...",             # published into a campaign
      "total_amount": "...",       # sum of all amounts (campaign funding target)
      "leaves": ["0x...", ...],    # input order
      "claims": [                  # one per reward entry, input order
        {"index", "recipient", "reward_id", "amount", "leaf", "proof": ["0x...", ...]}
      ]
    }

uint256 values are decimal strings, since they overflow JSON numbers in most
consumers. The JSON is reproducible byte-for-byte from the same reward list.
"""

import csv
import json
from pathlib import Path
from typing import Iterable, List, Union

from pydantic import BaseModel, Field

from merkledrop.core.commitment.leaf import RewardEntry, SINGLE_REWARD_ID
from merkledrop.core.commitment.merkle import MerkleTree, verify_proof
from merkledrop.crypto import bytes_to_hex, hex_to_bytes, to_address
from merkledrop.utils.logger import get_logger
from merkledrop.utils.validation import validate_reward_row

logger = get_logger("generator")


# =============================================================================
# Artifact Models
# =============================================================================


class ClaimProof(BaseModel):
    """Everything one recipient needs to redeem one entitlement."""

    index: int
    recipient: str
    reward_id: str = str(SINGLE_REWARD_ID)
    amount: str
    leaf: str
    proof: List[str] = Field(default_factory=list)

    def entry(self) -> RewardEntry:
        return RewardEntry(
            recipient=self.recipient,
            amount=int(self.amount),
            reward_id=int(self.reward_id),
        )

    def proof_bytes(self) -> List[bytes]:
        return [hex_to_bytes(p) for p in self.proof]


class Distribution(BaseModel):
    """Committed reward list: root, leaves and per-entry proofs."""

    root: str
    total_amount: str
    leaves: List[str]
    claims: List[ClaimProof]

    @property
    def root_bytes(self) -> bytes:
        return hex_to_bytes(self.root)

    def proofs_for(self, recipient: Union[bytes, str]) -> List[ClaimProof]:
        """All claims (one per reward_id) belonging to a recipient."""
        address = bytes_to_hex(to_address(recipient))
        return [c for c in self.claims if c.recipient == address]

    def verify_claim(self, index: int) -> bool:
        """Re-check a stored claim against the stored root."""
        claim = self.claims[index]
        return verify_proof(claim.entry().leaf(), claim.proof_bytes(), self.root_bytes)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, data: str) -> "Distribution":
        return cls.model_validate_json(data)

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(self.to_json() + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Distribution":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))


# =============================================================================
# Generator
# =============================================================================


class RewardGenerator:
    """
    Builds a Distribution from reward entries.

    Entry order is the commitment order; regenerate an updated campaign from
    the same ordering or every unchanged recipient gets a new proof.
    """

    def __init__(self, entries: Iterable[RewardEntry]):
        self.entries: List[RewardEntry] = list(entries)

    def build_tree(self) -> MerkleTree:
        return MerkleTree(entry.leaf() for entry in self.entries)

    def process(self) -> Distribution:
        """
        Generate the Merkle root and a proof for every entry.

        Raises:
            EmptyTreeError: if the reward list is empty
        """
        tree = self.build_tree()

        claims = [
            ClaimProof(
                index=i,
                recipient=bytes_to_hex(entry.recipient),
                reward_id=str(entry.reward_id),
                amount=str(entry.amount),
                leaf=bytes_to_hex(tree.get_leaf(i)),
                proof=tree.hex_proof(i),
            )
            for i, entry in enumerate(self.entries)
        ]

        distribution = Distribution(
            root=tree.hex_root(),
            total_amount=str(sum(entry.amount for entry in self.entries)),
            leaves=[bytes_to_hex(leaf) for leaf in tree.leaves],
            claims=claims,
        )

        logger.info(
            f"Generated distribution: {len(self.entries)} entries, "
            f"depth={tree.depth}, root={distribution.root[:10]}..."
        )
        return distribution


# =============================================================================
# Reward List Loading
# =============================================================================


def entries_from_rows(rows: Iterable[dict]) -> List[RewardEntry]:
    """
    Convert raw rows (address, amount[, reward_id]) into RewardEntry objects.

    Raises:
        ValueError: on the first invalid row, with its position
    """
    entries = []
    for i, row in enumerate(rows):
        valid, err = validate_reward_row(row)
        if not valid:
            raise ValueError(f"Row {i}: {err}")

        reward_id = row.get("reward_id")
        entries.append(RewardEntry(
            recipient=str(row["address"]).strip(),
            amount=int(str(row["amount"]).strip()),
            reward_id=int(str(reward_id).strip()) if reward_id not in (None, "") else SINGLE_REWARD_ID,
        ))
    return entries


def load_rewards(path: Union[str, Path]) -> List[RewardEntry]:
    """
    Load a reward list from CSV (header: address,amount[,reward_id]) or JSON
    (list of objects with the same keys).
    """
    path = Path(path)

    if path.suffix.lower() == ".json":
        rows = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(rows, list):
            raise ValueError("JSON reward list must be an array of objects")
    else:
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames or not {"address", "amount"} <= set(reader.fieldnames):
                raise ValueError("CSV needs header: address,amount[,reward_id]")
            rows = list(reader)

    entries = entries_from_rows(rows)
    logger.debug(f"Loaded {len(entries)} reward entries from {path}")
    return entries
