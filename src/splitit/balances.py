"""Fold ledger entries into per-person net balances.

Positive balance: others owe this person. Negative balance: this person owes.

Expense (the payer lent money), for every split::

    balances[participant] -= amount
    balances[payer] += amount

Settlement (the payer handed ``amount`` straight to the split's person)::

    balances[payer] += amount        # their debt shrinks
    balances[participant] -= amount  # what they are owed shrinks

Both kinds therefore move the same direction per split: a settlement undoes
debt the way an expense creates it, so paying a suggested transfer brings both
sides back towards zero.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from .models import Group, LedgerEntry
from .splitter import MONEY_EPSILON

logger = logging.getLogger(__name__)


def is_settled(balance: Decimal) -> bool:
    """True when a balance is within one cent of zero."""
    return abs(balance) <= MONEY_EPSILON


def aggregate(
    entries: Iterable[LedgerEntry], known_person_ids: Iterable[str]
) -> dict[str, Decimal]:
    """
    Compute net balances from a snapshot of ledger entries.

    Every known person starts at zero. Ids referenced by entries but missing
    from ``known_person_ids`` (e.g. people removed since) get a balance too,
    so historical entries stay consistent.

    Args:
        entries: Ledger entries with resolved splits
        known_person_ids: People to report even when they have no entries

    Returns:
        Mapping of person id to signed net balance
    """
    balances: dict[str, Decimal] = {pid: Decimal("0") for pid in known_person_ids}

    for entry in entries:
        if entry.kind == "settlement":
            _apply_settlement(balances, entry)
        else:
            _apply_expense(balances, entry)

    return balances


def _apply_expense(balances: dict[str, Decimal], entry: LedgerEntry) -> None:
    payer = entry.payer_id
    for split in entry.splits:
        balances.setdefault(split.person_id, Decimal("0"))
        balances.setdefault(payer, Decimal("0"))
        balances[split.person_id] -= split.amount
        balances[payer] += split.amount


def _apply_settlement(balances: dict[str, Decimal], entry: LedgerEntry) -> None:
    payer = entry.payer_id
    for split in entry.splits:
        balances.setdefault(payer, Decimal("0"))
        balances.setdefault(split.person_id, Decimal("0"))
        balances[payer] += split.amount
        balances[split.person_id] -= split.amount


def group_balances(entries: Iterable[LedgerEntry], group: Group) -> dict[str, Decimal]:
    """Net balances using only the entries recorded against one group."""
    group_entries = [entry for entry in entries if entry.group_id == group.id]
    logger.debug(f"Group {group.id}: {len(group_entries)} entries")
    return aggregate(group_entries, group.member_ids)


def outstanding(balances: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Drop settled people from a balance map, keeping iteration order."""
    return {pid: value for pid, value in balances.items() if not is_settled(value)}
