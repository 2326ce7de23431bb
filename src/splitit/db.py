"""SQLite database operations for SplitIt."""

import json
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from .models import AppSettings, Group, LedgerEntry, LedgerState, Person, Split


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # People table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS people (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                contact TEXT,
                notes TEXT,
                is_you INTEGER NOT NULL DEFAULT 0
            )
        """
        )

        # Groups table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS person_groups (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                description TEXT,
                member_ids TEXT NOT NULL DEFAULT '[]'
            )
        """
        )

        # Ledger entries table (splits stored as JSON, amounts as text)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS entries (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL,
                amount TEXT NOT NULL,
                entry_date DATE NOT NULL,
                payer_id TEXT NOT NULL,
                splits TEXT NOT NULL,
                group_id TEXT,
                category TEXT NOT NULL,
                notes TEXT NOT NULL DEFAULT '',
                kind TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str, commit: bool = True):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        if commit:
            self.conn.commit()

    def get_settings(self, default_currency_symbol: str = "₹") -> AppSettings:
        """Get display settings, falling back to defaults for unset keys."""
        return AppSettings(
            currency_symbol=self.get_config("currency_symbol")
            or default_currency_symbol,
            theme=self.get_config("theme") or "light",
        )

    def save_settings(self, settings: AppSettings, commit: bool = True):
        """Save display settings."""
        self.set_config("currency_symbol", settings.currency_symbol, commit=False)
        self.set_config("theme", settings.theme, commit=False)
        if commit:
            self.conn.commit()

    # ========================================================================
    # People operations
    # ========================================================================

    def save_person(self, person: Person, commit: bool = True):
        """Insert a person or update the existing row with the same id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO people (id, name, contact, notes, is_you)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                contact = excluded.contact,
                notes = excluded.notes,
                is_you = excluded.is_you
            """,
            (person.id, person.name, person.contact, person.notes, int(person.is_you)),
        )
        if commit:
            self.conn.commit()

    def set_primary_person(self, person_id: str):
        """Flag one person as the primary user and clear the flag on everyone else."""
        cursor = self.conn.cursor()
        cursor.execute("UPDATE people SET is_you = (id = ?)", (person_id,))
        self.conn.commit()

    def get_person(self, person_id: str) -> Person | None:
        """Get a person by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, contact, notes, is_you FROM people WHERE id = ?",
            (person_id,),
        )
        row = cursor.fetchone()
        return _row_to_person(row) if row else None

    def list_people(self) -> list[Person]:
        """Get all people in the order they were added."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, contact, notes, is_you FROM people ORDER BY seq"
        )
        return [_row_to_person(row) for row in cursor.fetchall()]

    def delete_person(self, person_id: str) -> bool:
        """Delete a person. Returns False if no such person existed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM people WHERE id = ?", (person_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # ========================================================================
    # Group operations
    # ========================================================================

    def save_group(self, group: Group, commit: bool = True):
        """Insert a group or update the existing row with the same id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO person_groups (id, name, description, member_ids)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                member_ids = excluded.member_ids
            """,
            (group.id, group.name, group.description, json.dumps(group.member_ids)),
        )
        if commit:
            self.conn.commit()

    def get_group(self, group_id: str) -> Group | None:
        """Get a group by id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, name, description, member_ids
            FROM person_groups
            WHERE id = ?
            """,
            (group_id,),
        )
        row = cursor.fetchone()
        return _row_to_group(row) if row else None

    def list_groups(self) -> list[Group]:
        """Get all groups in the order they were added."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, description, member_ids FROM person_groups ORDER BY seq"
        )
        return [_row_to_group(row) for row in cursor.fetchall()]

    def delete_group(self, group_id: str) -> bool:
        """Delete a group and detach its entries. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM person_groups WHERE id = ?", (group_id,))
        deleted = cursor.rowcount > 0
        cursor.execute(
            "UPDATE entries SET group_id = NULL WHERE group_id = ?", (group_id,)
        )
        self.conn.commit()
        return deleted

    # ========================================================================
    # Ledger entry operations
    # ========================================================================

    def save_entry(self, entry: LedgerEntry, commit: bool = True):
        """Insert an entry or replace the existing row with the same id in place."""
        splits_json = json.dumps(
            [{"person_id": s.person_id, "amount": str(s.amount)} for s in entry.splits]
        )
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO entries (
                id, description, amount, entry_date, payer_id, splits,
                group_id, category, notes, kind, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                description = excluded.description,
                amount = excluded.amount,
                entry_date = excluded.entry_date,
                payer_id = excluded.payer_id,
                splits = excluded.splits,
                group_id = excluded.group_id,
                category = excluded.category,
                notes = excluded.notes,
                kind = excluded.kind,
                created_at = excluded.created_at
            """,
            (
                entry.id,
                entry.description,
                str(entry.amount),
                entry.date.isoformat(),
                entry.payer_id,
                splits_json,
                entry.group_id,
                entry.category,
                entry.notes,
                entry.kind,
                entry.created_at.isoformat(),
            ),
        )
        if commit:
            self.conn.commit()

    def get_entry(self, entry_id: str) -> LedgerEntry | None:
        """Get a ledger entry by id."""
        cursor = self.conn.cursor()
        cursor.execute(f"{_ENTRY_SELECT} WHERE id = ?", (entry_id,))
        row = cursor.fetchone()
        return _row_to_entry(row) if row else None

    def list_entries(self) -> list[LedgerEntry]:
        """Get all ledger entries in the order they were recorded."""
        cursor = self.conn.cursor()
        cursor.execute(f"{_ENTRY_SELECT} ORDER BY seq")
        return [_row_to_entry(row) for row in cursor.fetchall()]

    def delete_entry(self, entry_id: str) -> bool:
        """Delete a ledger entry. Returns False if no such entry existed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # ========================================================================
    # Whole-state operations
    # ========================================================================

    def load_state(self, default_currency_symbol: str = "₹") -> LedgerState:
        """Read everything into one immutable snapshot."""
        return LedgerState(
            people=self.list_people(),
            groups=self.list_groups(),
            entries=self.list_entries(),
            settings=self.get_settings(default_currency_symbol),
        )

    def replace_state(self, state: LedgerState):
        """Overwrite all stored records with a snapshot in a single transaction."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM people")
            cursor.execute("DELETE FROM person_groups")
            cursor.execute("DELETE FROM entries")
            for person in state.people:
                self.save_person(person, commit=False)
            for group in state.groups:
                self.save_group(group, commit=False)
            for entry in state.entries:
                self.save_entry(entry, commit=False)
            self.save_settings(state.settings, commit=False)
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise


_ENTRY_SELECT = """
    SELECT id, description, amount, entry_date, payer_id, splits,
           group_id, category, notes, kind, created_at
    FROM entries
"""


def _row_to_person(row: sqlite3.Row) -> Person:
    return Person(
        id=row["id"],
        name=row["name"],
        contact=row["contact"],
        notes=row["notes"],
        is_you=bool(row["is_you"]),
    )


def _row_to_group(row: sqlite3.Row) -> Group:
    return Group(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        member_ids=json.loads(row["member_ids"]),
    )


def _row_to_entry(row: sqlite3.Row) -> LedgerEntry:
    return LedgerEntry(
        id=row["id"],
        description=row["description"],
        amount=Decimal(row["amount"]),
        date=date.fromisoformat(row["entry_date"]),
        payer_id=row["payer_id"],
        splits=[
            Split(person_id=s["person_id"], amount=Decimal(s["amount"]))
            for s in json.loads(row["splits"])
        ],
        group_id=row["group_id"],
        category=row["category"],
        notes=row["notes"],
        kind=row["kind"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )
