"""SQLite ledger backend for ExchangeRisk."""

import asyncio
import logging
import sqlite3
import threading
from typing import List, Optional

from .base import LedgerClient, TransactionReceipt
from ..core.exceptions import LedgerError, WriteConflictError
from ..crypto.hashing import TransactionHasher
from ..crypto.signatures import Signer

logger = logging.getLogger(__name__)


class SQLiteLedger:
    """Key/value ledger persisted in a SQLite file."""

    def __init__(
        self,
        db_path: str = "exchangerisk.db",
        table_prefix: str = "ledger",
        hash_algorithm: str = "sha256",
    ):
        self.db_path = db_path
        self.data_table = f"{table_prefix}_data"
        self.receipt_table = f"{table_prefix}_receipts"
        self.hasher = TransactionHasher(hash_algorithm)

        # Thread-local storage for connections; executor threads each open
        # their own, so every one is tracked for close()
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

        self._init_database()

    def connect(self, signer: Optional[Signer] = None) -> "SQLiteLedgerClient":
        """Open a client; read-only unless a signer is given."""
        return SQLiteLedgerClient(self, signer=signer)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        conn = getattr(self._local, 'connection', None)
        with self._connections_lock:
            if conn is not None and any(c is conn for c in self._connections):
                return conn

            conn = sqlite3.connect(
                self.db_path,
                isolation_level=None,  # Autocommit mode
                check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            self._connections.append(conn)
        self._local.connection = conn
        return conn

    def _init_database(self):
        """Initialize database schema."""
        conn = self._get_connection()
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.data_table} (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
        """)
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.receipt_table} (
                block_number INTEGER PRIMARY KEY,
                tx_hash TEXT NOT NULL UNIQUE,
                key TEXT NOT NULL,
                timestamp REAL NOT NULL,
                previous_hash TEXT,
                signer TEXT,
                signature TEXT
            )
        """)

    def ping(self) -> bool:
        try:
            self._get_connection().execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning(f"SQLite ledger unreachable: {e}")
            return False

    def read(self, key: str) -> bytes:
        row = self._get_connection().execute(
            f"SELECT value FROM {self.data_table} WHERE key = ?", (key,)
        ).fetchone()
        return bytes(row["value"]) if row else b""

    def write(
        self,
        client: LedgerClient,
        key: str,
        value: bytes,
        expected: Optional[bytes] = None,
    ) -> TransactionReceipt:
        """Store a value and its receipt in one transaction.

        When ``expected`` is given the write only happens if the key still
        holds exactly those bytes.
        """
        conn = self._get_connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            if expected is not None:
                current = conn.execute(
                    f"SELECT value FROM {self.data_table} WHERE key = ?", (key,)
                ).fetchone()
                current_value = bytes(current["value"]) if current else b""
                if current_value != expected:
                    raise WriteConflictError(key, client.name)

            last = conn.execute(
                f"SELECT block_number, tx_hash FROM {self.receipt_table} "
                f"ORDER BY block_number DESC LIMIT 1"
            ).fetchone()
            block_number = last["block_number"] + 1 if last else 1
            previous_hash = last["tx_hash"] if last else self.hasher.genesis_hash()

            receipt = client._build_receipt(self.hasher, key, value, block_number, previous_hash)
            conn.execute(
                f"INSERT OR REPLACE INTO {self.data_table} (key, value) VALUES (?, ?)",
                (key, sqlite3.Binary(value)),
            )
            conn.execute(
                f"""INSERT INTO {self.receipt_table}
                    (block_number, tx_hash, key, timestamp, previous_hash, signer, signature)
                    VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    receipt.block_number,
                    receipt.tx_hash,
                    receipt.key,
                    receipt.timestamp,
                    receipt.previous_hash,
                    receipt.signer,
                    receipt.signature,
                ),
            )
            conn.execute("COMMIT")
            return receipt
        except BaseException:
            conn.execute("ROLLBACK")
            raise

    @property
    def receipts(self) -> List[TransactionReceipt]:
        rows = self._get_connection().execute(
            f"SELECT * FROM {self.receipt_table} ORDER BY block_number"
        ).fetchall()
        return [TransactionReceipt(**dict(row)) for row in rows]

    @property
    def open_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    def close(self) -> None:
        """Close every connection opened by any thread.

        The ledger stays usable; the next call reconnects.
        """
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local.connection = None


class SQLiteLedgerClient(LedgerClient):
    """Client bound to a :class:`SQLiteLedger`.

    Blocking SQLite calls run in the loop's default executor.
    """

    def __init__(self, ledger: SQLiteLedger, signer: Optional[Signer] = None, **kwargs):
        super().__init__(signer=signer, **kwargs)
        self.ledger = ledger

    @property
    def supports_conditional_write(self) -> bool:
        return True

    async def _run(self, operation: str, key: Optional[str], func, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except sqlite3.Error as e:
            raise LedgerError(f"SQLite {operation} failed: {e}", operation, key=key, backend=self.name)

    async def is_available(self) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.ledger.ping)

    async def get_data(self, key: str) -> bytes:
        return await self._run("get_data", key, self.ledger.read, key)

    async def set_data(self, key: str, value: bytes) -> TransactionReceipt:
        self._require_signer(key)
        return await self._run("set_data", key, self.ledger.write, self, key, value)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> TransactionReceipt:
        self._require_signer(key)
        return await self._run("compare_and_set", key, self.ledger.write, self, key, value, expected)
