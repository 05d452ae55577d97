import json
import sqlite3
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pack_components.card_utils.card import Card, CardStatus
from pack_components.errors import DuplicateCommitError
from pack_components.transaction import Transaction
from pack_components.utils.repositories import CollectionRepository, LedgerRepository

DB_PATH = Path("db/PackReveal_DB.db")


def get_db_connection(db_path: Union[str, Path] = DB_PATH):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row  # Allows accessing columns by name
    return conn


def init_db(db_path: Union[str, Path] = DB_PATH):
    """
    Create the collection, session, bank and transaction tables if missing.
    """
    db_path = Path(db_path)
    if not db_path.parent.exists():
        db_path.parent.mkdir(parents=True)

    conn = get_db_connection(db_path)
    cursor = conn.cursor()
    try:
        # Cards keep their row after sell/ship/convert; status says which
        cursor.execute("""
        CREATE TABLE IF NOT EXISTS CardsOpened (
            id TEXT NOT NULL,
            uuid TEXT NOT NULL,
            card_name TEXT NOT NULL,
            image TEXT,
            rarity TEXT NOT NULL,
            value INTEGER NOT NULL,
            finish TEXT NOT NULL,
            pack_id TEXT,
            expiry_date TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            acquired_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (id, uuid)
        );
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS CommittedSessions (
            session_id TEXT NOT NULL,
            uuid TEXT NOT NULL,
            committed_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (session_id, uuid)
        );
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS Bank (
            uuid TEXT NOT NULL PRIMARY KEY,
            balance REAL NOT NULL DEFAULT 0
        );
        """)

        cursor.execute("""
        CREATE TABLE IF NOT EXISTS Transactions (
            id TEXT NOT NULL PRIMARY KEY,
            uuid TEXT NOT NULL,
            type TEXT NOT NULL,
            amount REAL NOT NULL,
            date TEXT NOT NULL,
            status TEXT NOT NULL,
            description TEXT,
            details TEXT
        );
        """)
        conn.commit()
    finally:
        conn.close()


def _card_from_row(row) -> Card:
    return Card.from_record({
        "id": row["id"],
        "name": row["card_name"],
        "image": row["image"] or "",
        "rarity": row["rarity"],
        "value": row["value"],
        "finish": row["finish"],
        "packId": row["pack_id"],
        "expiryDate": row["expiry_date"],
        "status": row["status"],
    })


class SqliteCollectionRepository(CollectionRepository):
    """One user's collection stored in the CardsOpened table."""

    def __init__(self, user_uuid: str, db_path: Union[str, Path] = DB_PATH):
        self.user_uuid = user_uuid
        self.db_path = db_path
        init_db(db_path)

    def get(self, card_id: str) -> Optional[Card]:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT * FROM CardsOpened WHERE id = ? AND uuid = ?
            """, (card_id, self.user_uuid))
            row = cursor.fetchone()
            return _card_from_row(row) if row else None
        finally:
            conn.close()

    def list_cards(self, status: Optional[CardStatus] = None) -> List[Card]:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            if status is None:
                cursor.execute("""
                    SELECT * FROM CardsOpened WHERE uuid = ? ORDER BY rowid
                """, (self.user_uuid,))
            else:
                cursor.execute("""
                    SELECT * FROM CardsOpened WHERE uuid = ? AND status = ? ORDER BY rowid
                """, (self.user_uuid, status.value))
            return [_card_from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def is_committed(self, session_id: str) -> bool:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT 1 FROM CommittedSessions WHERE session_id = ? AND uuid = ?
            """, (session_id, self.user_uuid))
            return cursor.fetchone() is not None
        finally:
            conn.close()

    def commit_session(self, session_id: str, cards: Sequence[Card]) -> None:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            try:
                cursor.execute("""
                    INSERT INTO CommittedSessions (session_id, uuid) VALUES (?, ?)
                """, (session_id, self.user_uuid))
            except sqlite3.IntegrityError:
                conn.rollback()
                raise DuplicateCommitError(session_id) from None

            for card in cards:
                record = card.to_record()
                cursor.execute("""
                    INSERT INTO CardsOpened
                        (id, uuid, card_name, image, rarity, value, finish, pack_id, expiry_date, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    record["id"], self.user_uuid, record["name"], record["image"],
                    record["rarity"], record["value"], record["finish"],
                    record["packId"], record["expiryDate"], record["status"],
                ))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def save_many(self, cards: Sequence[Card]) -> None:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            for card in cards:
                cursor.execute("""
                    UPDATE CardsOpened
                    SET status = ?, expiry_date = ?
                    WHERE id = ? AND uuid = ?
                """, (
                    card.status.value,
                    card.expiry_date.isoformat() if card.expiry_date else None,
                    card.id, self.user_uuid,
                ))
                if cursor.rowcount == 0:
                    raise KeyError(card.id)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


class SqliteLedgerRepository(LedgerRepository):
    """One user's Bank row plus their Transactions history."""

    def __init__(self, user_uuid: str, db_path: Union[str, Path] = DB_PATH, starting_balance: float = 0):
        self.user_uuid = user_uuid
        self.db_path = db_path
        init_db(db_path)
        self._create_bank_account(starting_balance)

    def _create_bank_account(self, starting_balance: float) -> None:
        conn = get_db_connection(self.db_path)
        try:
            conn.execute("""
                INSERT OR IGNORE INTO Bank (uuid, balance) VALUES (?, ?)
            """, (self.user_uuid, starting_balance))
            conn.commit()
        finally:
            conn.close()

    def get_balance(self) -> float:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT balance FROM Bank WHERE uuid = ?", (self.user_uuid,))
            return cursor.fetchone()["balance"]
        finally:
            conn.close()

    def apply(self, delta: float, transaction: Transaction) -> float:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE Bank SET balance = ROUND(balance + ?, 2) WHERE uuid = ?
            """, (delta, self.user_uuid))
            record = transaction.to_record()
            cursor.execute("""
                INSERT INTO Transactions (id, uuid, type, amount, date, status, description, details)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record["id"], self.user_uuid, record["type"], record["amount"],
                record["date"], record["status"], record["description"],
                json.dumps(record["details"], default=str),
            ))
            cursor.execute("SELECT balance FROM Bank WHERE uuid = ?", (self.user_uuid,))
            balance = cursor.fetchone()["balance"]
            conn.commit()
            return balance
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def list_transactions(self) -> List[Transaction]:
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT * FROM Transactions WHERE uuid = ? ORDER BY date DESC, rowid DESC
            """, (self.user_uuid,))
            transactions = []
            for row in cursor.fetchall():
                record = dict(row)
                record["details"] = json.loads(record["details"] or "{}")
                transactions.append(Transaction.from_record(record))
            return transactions
        finally:
            conn.close()
