import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from merkledrop.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for distributor state.

    Provides:
    1. Campaign records (configuration + redeemed totals)
    2. Claim ledger (settled claim keys)
    3. Distributor metadata (system pause flag, campaign counter)

    uint256 values (amounts, reward ids) are stored as decimal TEXT since they
    overflow SQLite's 64-bit INTEGER.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL for concurrent readers
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS campaigns (
                    campaign_id INTEGER PRIMARY KEY,
                    asset BLOB NOT NULL,
                    merkle_root BLOB NOT NULL,
                    redeemable_at INTEGER NOT NULL,
                    active INTEGER NOT NULL,
                    redeemed_amount TEXT NOT NULL DEFAULT '0',
                    uri TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS claims (
                    campaign_id INTEGER NOT NULL,
                    recipient BLOB NOT NULL,
                    reward_id TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    PRIMARY KEY (campaign_id, recipient, reward_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_claims_campaign ON claims(campaign_id);")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS airdrop_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO airdrop_state (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM airdrop_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    # =========================================================================
    # Campaigns
    # =========================================================================

    def save_campaign(
        self,
        campaign_id: int,
        asset: bytes,
        merkle_root: bytes,
        redeemable_at: int,
        active: bool,
        redeemed_amount: int,
        uri: Optional[str],
        counter: int,
    ):
        """Insert or replace a campaign row and record the id counter."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO campaigns "
                "(campaign_id, asset, merkle_root, redeemable_at, active, redeemed_amount, uri) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (campaign_id, asset, merkle_root, redeemable_at, int(active), str(redeemed_amount), uri)
            )
            conn.execute(
                "INSERT OR REPLACE INTO airdrop_state (key, value) VALUES ('campaign_counter', ?)",
                (str(counter),)
            )

    def get_all_campaigns(self) -> List[Tuple]:
        """All campaign rows ordered by id."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT campaign_id, asset, merkle_root, redeemable_at, active, redeemed_amount, uri "
            "FROM campaigns ORDER BY campaign_id ASC"
        )
        return [tuple(row) for row in cursor]

    # =========================================================================
    # Claims
    # =========================================================================

    def save_claim(
        self,
        campaign_id: int,
        recipient: bytes,
        reward_id: int,
        amount: int,
        redeemed_amount: int,
    ):
        """
        Atomically record a settled claim and the campaign's new total.

        Raises:
            sqlite3.IntegrityError: if the claim key is already stored
        """
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO claims (campaign_id, recipient, reward_id, amount) VALUES (?, ?, ?, ?)",
                (campaign_id, recipient, str(reward_id), str(amount))
            )
            conn.execute(
                "UPDATE campaigns SET redeemed_amount = ? WHERE campaign_id = ?",
                (str(redeemed_amount), campaign_id)
            )

    def get_all_claims(self) -> List[Tuple[int, bytes, int, int]]:
        """All (campaign_id, recipient, reward_id, amount)."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT campaign_id, recipient, reward_id, amount FROM claims")
        return [
            (row['campaign_id'], row['recipient'], int(row['reward_id']), int(row['amount']))
            for row in cursor
        ]

    def get_claims_count(self, campaign_id: Optional[int] = None) -> int:
        conn = self._get_conn()
        if campaign_id is None:
            cursor = conn.execute("SELECT COUNT(*) as cnt FROM claims")
        else:
            cursor = conn.execute("SELECT COUNT(*) as cnt FROM claims WHERE campaign_id = ?", (campaign_id,))
        return cursor.fetchone()['cnt']

    def close(self):
        """Close this thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
