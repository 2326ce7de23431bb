"""Service layer that composes the ledger store and the accounting engine.

The engine modules (splitter, balances, simplifier) are pure functions over
snapshots. This module owns everything around them: identity generation,
persistence, and turning suggestions into recorded settlements.
"""

import logging
import secrets
import time
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal

from .balances import aggregate
from .balances import group_balances as _group_balances
from .config import Settings
from .db import Database
from .exceptions import RecordNotFoundError
from .models import (
    AppSettings,
    EntryFilter,
    Group,
    LedgerEntry,
    LedgerState,
    Person,
    Split,
    SplitMode,
    SuggestedTransfer,
)
from .simplifier import simplify
from .splitter import Number, compute_splits, to_decimal

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """Generate a unique-ish id like ``expense_1718000000000_a1b2c3``."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class LedgerService:
    """Service for recording shared expenses and working out who owes whom."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    def snapshot(self) -> LedgerState:
        """Read a consistent snapshot of everything stored."""
        return self.db.load_state(self.settings.default_currency_symbol)

    # ========================================================================
    # People
    # ========================================================================

    def add_person(
        self,
        name: str,
        contact: str | None = None,
        notes: str | None = None,
        is_you: bool = False,
    ) -> Person:
        """Add a person. Marking them as you clears the flag on everyone else."""
        name = name.strip()
        if not name:
            raise ValueError("Name cannot be empty.")

        person = Person(
            id=generate_id("person"),
            name=name,
            contact=contact or None,
            notes=notes or None,
            is_you=is_you,
        )
        self.db.save_person(person)
        if is_you:
            self.db.set_primary_person(person.id)

        logger.info(f"Added person {person.name} ({person.id})")
        return person

    def update_person(self, person_id: str, **changes) -> Person:
        """Update fields of an existing person."""
        person = self.get_person(person_id)
        updated = person.model_copy(update=changes)
        if not updated.name.strip():
            raise ValueError("Name cannot be empty.")

        self.db.save_person(updated)
        if updated.is_you:
            self.db.set_primary_person(updated.id)

        logger.info(f"Updated person {updated.id}")
        return updated

    def get_person(self, person_id: str) -> Person:
        person = self.db.get_person(person_id)
        if person is None:
            raise RecordNotFoundError("person", person_id)
        return person

    def list_people(self) -> list[Person]:
        return self.db.list_people()

    def remove_person(self, person_id: str):
        """
        Remove a person and drop them from every group.

        Their ledger entries are kept; balances still account for them under
        their id.
        """
        if not self.db.delete_person(person_id):
            raise RecordNotFoundError("person", person_id)

        for group in self.db.list_groups():
            if person_id in group.member_ids:
                group.member_ids = [m for m in group.member_ids if m != person_id]
                self.db.save_group(group)

        logger.info(f"Removed person {person_id}")

    # ========================================================================
    # Groups
    # ========================================================================

    def add_group(
        self,
        name: str,
        member_ids: Iterable[str] = (),
        description: str | None = None,
    ) -> Group:
        name = name.strip()
        if not name:
            raise ValueError("Group name cannot be empty.")

        group = Group(
            id=generate_id("group"),
            name=name,
            description=description or None,
            member_ids=list(dict.fromkeys(member_ids)),
        )
        self.db.save_group(group)

        logger.info(f"Added group {group.name} ({group.id})")
        return group

    def update_group(self, group_id: str, **changes) -> Group:
        group = self.get_group(group_id)
        updated = group.model_copy(update=changes)
        if not updated.name.strip():
            raise ValueError("Group name cannot be empty.")

        self.db.save_group(updated)
        logger.info(f"Updated group {updated.id}")
        return updated

    def get_group(self, group_id: str) -> Group:
        group = self.db.get_group(group_id)
        if group is None:
            raise RecordNotFoundError("group", group_id)
        return group

    def list_groups(self) -> list[Group]:
        return self.db.list_groups()

    def remove_group(self, group_id: str):
        """Remove a group; its entries stay but no longer belong to a group."""
        if not self.db.delete_group(group_id):
            raise RecordNotFoundError("group", group_id)
        logger.info(f"Removed group {group_id}")

    # ========================================================================
    # Ledger entries
    # ========================================================================

    def add_expense(
        self,
        description: str,
        amount: Number,
        payer_id: str,
        participant_ids: Iterable[str],
        mode: SplitMode | str = SplitMode.EQUAL,
        mode_inputs: Mapping[str, Number] | None = None,
        on: date | None = None,
        group_id: str | None = None,
        category: str | None = None,
        notes: str = "",
    ) -> LedgerEntry:
        """
        Split an expense and record it.

        Raises:
            SplitError: If the amount can't be split as requested. Nothing is
                stored in that case.
        """
        entry = self._build_expense(
            entry_id=generate_id("expense"),
            created_at=datetime.now(),
            description=description,
            amount=amount,
            payer_id=payer_id,
            participant_ids=participant_ids,
            mode=mode,
            mode_inputs=mode_inputs,
            on=on,
            group_id=group_id,
            category=category,
            notes=notes,
        )
        self.db.save_entry(entry)

        logger.info(
            f"Added expense {entry.id}: {entry.description} {entry.amount} "
            f"split {len(entry.splits)} ways"
        )
        return entry

    def edit_expense(
        self,
        entry_id: str,
        description: str,
        amount: Number,
        payer_id: str,
        participant_ids: Iterable[str],
        mode: SplitMode | str = SplitMode.EQUAL,
        mode_inputs: Mapping[str, Number] | None = None,
        on: date | None = None,
        group_id: str | None = None,
        category: str | None = None,
        notes: str = "",
    ) -> LedgerEntry:
        """
        Re-split an existing expense and replace it in place.

        Raises:
            ValueError: If the entry is a settlement. Those are deleted and
                recorded again instead.
        """
        existing = self.get_entry(entry_id)
        if existing.kind == "settlement":
            raise ValueError("Settlements can't be edited; delete and record again")
        entry = self._build_expense(
            entry_id=existing.id,
            created_at=existing.created_at,
            description=description,
            amount=amount,
            payer_id=payer_id,
            participant_ids=participant_ids,
            mode=mode,
            mode_inputs=mode_inputs,
            on=on or existing.date,
            group_id=group_id,
            category=category,
            notes=notes,
        )
        self.db.save_entry(entry)

        logger.info(f"Updated expense {entry.id}")
        return entry

    def _build_expense(
        self,
        entry_id: str,
        created_at: datetime,
        description: str,
        amount: Number,
        payer_id: str,
        participant_ids: Iterable[str],
        mode: SplitMode | str,
        mode_inputs: Mapping[str, Number] | None,
        on: date | None,
        group_id: str | None,
        category: str | None,
        notes: str,
    ) -> LedgerEntry:
        description = description.strip()
        if not description:
            raise ValueError("Description cannot be empty.")

        total = to_decimal(amount)
        splits = compute_splits(total, participant_ids, mode, mode_inputs).unwrap()

        return LedgerEntry(
            id=entry_id,
            description=description,
            amount=total,
            date=on or date.today(),
            payer_id=payer_id,
            splits=splits,
            group_id=group_id,
            category=category or self.settings.default_category,
            notes=notes.strip(),
            kind="expense",
            created_at=created_at,
        )

    def get_entry(self, entry_id: str) -> LedgerEntry:
        entry = self.db.get_entry(entry_id)
        if entry is None:
            raise RecordNotFoundError("entry", entry_id)
        return entry

    def delete_entry(self, entry_id: str):
        if not self.db.delete_entry(entry_id):
            raise RecordNotFoundError("entry", entry_id)
        logger.info(f"Deleted entry {entry_id}")

    def filter_entries(self, criteria: EntryFilter | None = None) -> list[LedgerEntry]:
        """List entries matching the criteria, sorted as requested."""
        return filter_entries(self.db.list_entries(), criteria or EntryFilter())

    # ========================================================================
    # Balances & settling up
    # ========================================================================

    def balances(self) -> dict[str, Decimal]:
        """Net balance for every person, including removed people with history."""
        state = self.snapshot()
        return aggregate(state.entries, state.person_ids())

    def group_balances(self, group_id: str) -> dict[str, Decimal]:
        """Net balances within one group, using only that group's entries."""
        group = self.get_group(group_id)
        return _group_balances(self.db.list_entries(), group)

    def suggest_transfers(self, group_id: str | None = None) -> list[SuggestedTransfer]:
        """Suggested payments that would settle everyone (or one group) up."""
        balances = self.group_balances(group_id) if group_id else self.balances()
        transfers = simplify(balances)
        logger.info(f"Suggested {len(transfers)} transfers")
        return transfers

    def settle_up(
        self,
        from_id: str,
        to_id: str,
        amount: Number,
        on: date | None = None,
        group_id: str | None = None,
    ) -> LedgerEntry:
        """
        Record that ``from_id`` paid ``to_id`` directly.

        Args:
            from_id: Person who paid (the debtor)
            to_id: Person who received the money (the creditor)
            amount: Amount paid
            on: Payment date, defaults to today
            group_id: Optional group the payment settles

        Returns:
            The recorded settlement entry
        """
        total = to_decimal(amount)
        if total <= 0:
            raise ValueError("Amount must be greater than 0.")

        people = {person.id: person.name for person in self.db.list_people()}
        from_name = people.get(from_id, from_id)
        to_name = people.get(to_id, to_id)

        entry = LedgerEntry(
            id=generate_id("expense"),
            description=f"Settlement: {from_name} paid {to_name}",
            amount=total,
            date=on or date.today(),
            payer_id=from_id,
            splits=[Split(person_id=to_id, amount=total)],
            group_id=group_id,
            category="Settlement",
            kind="settlement",
        )
        self.db.save_entry(entry)

        logger.info(f"Recorded settlement {entry.id}: {from_id} -> {to_id} {total}")
        return entry

    def record_transfer(
        self, transfer: SuggestedTransfer, group_id: str | None = None
    ) -> LedgerEntry:
        """
        Record a suggested transfer as paid.

        Pass the group the suggestion was computed for so the settlement
        counts towards that group's balances.
        """
        return self.settle_up(
            transfer.from_id, transfer.to_id, transfer.amount, group_id=group_id
        )

    # ========================================================================
    # Settings & state
    # ========================================================================

    def get_app_settings(self) -> AppSettings:
        return self.db.get_settings(self.settings.default_currency_symbol)

    def update_app_settings(self, **changes) -> AppSettings:
        current = self.get_app_settings()
        updated = AppSettings.model_validate({**current.model_dump(), **changes})
        self.db.save_settings(updated)
        logger.info(f"Saved settings: {updated.model_dump()}")
        return updated

    def replace_state(self, state: LedgerState):
        """Overwrite the whole ledger, e.g. from an imported backup."""
        self.db.replace_state(state)
        logger.info(
            f"Replaced ledger: {len(state.people)} people, {len(state.groups)} "
            f"groups, {len(state.entries)} entries"
        )


_SORT_KEYS = {
    "date-desc": (lambda e: e.date, True),
    "date-asc": (lambda e: e.date, False),
    "amount-desc": (lambda e: e.amount, True),
    "amount-asc": (lambda e: e.amount, False),
}


def filter_entries(
    entries: Iterable[LedgerEntry], criteria: EntryFilter
) -> list[LedgerEntry]:
    """
    Filter and sort ledger entries.

    This is a pure function over a snapshot. Date bounds are inclusive; the
    search is a case-insensitive substring match on the description.
    """
    result = list(entries)

    if criteria.group_id:
        result = [e for e in result if e.group_id == criteria.group_id]
    if criteria.person_id:
        result = [e for e in result if e.involves(criteria.person_id)]
    if criteria.category:
        result = [e for e in result if e.category == criteria.category]
    if criteria.search:
        needle = criteria.search.lower()
        result = [e for e in result if needle in e.description.lower()]
    if criteria.date_from:
        result = [e for e in result if e.date >= criteria.date_from]
    if criteria.date_to:
        result = [e for e in result if e.date <= criteria.date_to]

    key, reverse = _SORT_KEYS[criteria.sort_by]
    return sorted(result, key=key, reverse=reverse)
