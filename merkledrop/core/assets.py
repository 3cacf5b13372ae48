"""
Asset Ledger - the value-transfer collaborator.

The core never represents balances itself. It asks an AssetLedger to move
`amount` of `asset` out of the distributor's holdings to a recipient, and only
needs each transfer to be atomic and to report success or failure.

Assets are identified by 20-byte ids. NATIVE_ASSET is the conventional
sentinel for the chain's native currency; any other id is a fungible token.

InMemoryAssetLedger is the reference implementation used by the CLI demo and
tests: a balance table keyed by (asset, holder).
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

from merkledrop.crypto import bytes_to_hex, hex_to_bytes, to_address
from merkledrop.utils.logger import get_logger

logger = get_logger("assets")


# =============================================================================
# Constants
# =============================================================================

NATIVE_ASSET = hex_to_bytes("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE")


def is_native(asset: bytes) -> bool:
    return asset == NATIVE_ASSET


# =============================================================================
# Interface
# =============================================================================


class AssetLedger(ABC):
    """Moves value out of the distributor's holdings."""

    @abstractmethod
    def transfer(self, asset: bytes, to: bytes, amount: int) -> Tuple[bool, str]:
        """
        Transfer amount of asset from the distributor to `to`.

        Returns:
            (success, error_message). On failure no balance has changed.
        """

    @abstractmethod
    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group several transfers into one unit.

        If the block raises, every transfer made inside it is undone and the
        exception propagates.
        """

    @abstractmethod
    def balance_of(self, asset: bytes, holder: Optional[bytes] = None) -> int:
        """Balance of holder (default: the distributor)."""


# =============================================================================
# In-memory implementation
# =============================================================================


@dataclass(eq=False, frozen=True)
class TransferRecord:
    asset: bytes
    to: bytes
    amount: int


class InMemoryAssetLedger(AssetLedger):
    """
    Balance table for any number of assets and holders.

    Every read and write takes the ledger's own lock, so deposits from other
    threads interleave safely with transfers. atomic() keeps a per-thread
    journal of the transfers made inside the block and, on failure, reverses
    exactly those; balances touched by anyone else are left alone.

    Attributes:
        holder: Address whose balance pays out transfers (the distributor)
        balances: (asset, holder) -> amount
        transfers: Completed outgoing transfers, oldest first
    """

    DEFAULT_HOLDER = bytes(19) + b"\x01"

    def __init__(self, holder: Optional[Union[bytes, str]] = None):
        self.holder = to_address(holder) if holder is not None else self.DEFAULT_HOLDER
        self.balances: Dict[Tuple[bytes, bytes], int] = {}
        self.transfers: List[TransferRecord] = []
        self._lock = threading.RLock()
        self._local = threading.local()

    def _journals(self) -> List[List[TransferRecord]]:
        """Open atomic() journals of the current thread, innermost last."""
        if not hasattr(self._local, "journals"):
            self._local.journals = []
        return self._local.journals

    def deposit(self, asset: Union[bytes, str], amount: int, holder: Optional[Union[bytes, str]] = None) -> None:
        """Credit a holder (default: the distributor) with amount of asset."""
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")
        asset = to_address(asset)
        holder = to_address(holder) if holder is not None else self.holder

        key = (asset, holder)
        with self._lock:
            self.balances[key] = self.balances.get(key, 0) + amount
        logger.debug(f"Deposit {amount} of {bytes_to_hex(asset)[:10]}... to {bytes_to_hex(holder)[:10]}...")

    def balance_of(self, asset: Union[bytes, str], holder: Optional[Union[bytes, str]] = None) -> int:
        asset = to_address(asset)
        holder = to_address(holder) if holder is not None else self.holder
        with self._lock:
            return self.balances.get((asset, holder), 0)

    def transfer(self, asset: bytes, to: bytes, amount: int) -> Tuple[bool, str]:
        if amount <= 0:
            return False, f"Transfer amount must be positive, got {amount}"

        with self._lock:
            available = self.balances.get((asset, self.holder), 0)
            if available < amount:
                return False, f"Insufficient balance: {available} < {amount}"

            self.balances[(asset, self.holder)] = available - amount
            self.balances[(asset, to)] = self.balances.get((asset, to), 0) + amount
            record = TransferRecord(asset=asset, to=to, amount=amount)
            self.transfers.append(record)

        journals = self._journals()
        if journals:
            journals[-1].append(record)
        return True, ""

    def _reverse(self, record: TransferRecord) -> None:
        """Move a journaled transfer back to the holder. Caller holds the lock."""
        self.balances[(record.asset, self.holder)] = self.balances.get((record.asset, self.holder), 0) + record.amount
        self.balances[(record.asset, record.to)] -= record.amount
        for i in range(len(self.transfers) - 1, -1, -1):
            if self.transfers[i] is record:
                del self.transfers[i]
                break

    @contextmanager
    def atomic(self) -> Iterator[None]:
        journals = self._journals()
        journal: List[TransferRecord] = []
        journals.append(journal)
        try:
            yield
        except BaseException:
            journals.pop()
            with self._lock:
                for record in reversed(journal):
                    self._reverse(record)
            if journal:
                logger.debug(f"Reversed {len(journal)} transfer(s)")
            raise
        journals.pop()
        # a committed inner block is undone with its enclosing one
        if journals:
            journals[-1].extend(journal)

    def stats(self) -> dict:
        """Distributor holdings per asset."""
        with self._lock:
            return {
                bytes_to_hex(asset): amount
                for (asset, holder), amount in self.balances.items()
                if holder == self.holder
            }
