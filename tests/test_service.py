"""Tests for LedgerService layer."""

from datetime import date
from decimal import Decimal

import pytest

from splitit.balances import is_settled
from splitit.config import Settings
from splitit.db import Database
from splitit.exceptions import (
    RecordNotFoundError,
    SumMismatchError,
    ZeroSharesError,
)
from splitit.models import EntryFilter, LedgerState, Person, SplitMode
from splitit.service import LedgerService, generate_id


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary database."""
    return Settings(database_path=tmp_path / "splitit.db")


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a LedgerService instance."""
    return LedgerService(mock_settings, mock_db)


@pytest.fixture
def trio(service):
    """Three people: Asha, Ben and Chen."""
    return [service.add_person(name) for name in ("Asha", "Ben", "Chen")]


def test_generate_id_has_prefix_and_is_unique():
    ids = {generate_id("expense") for _ in range(50)}

    assert len(ids) == 50
    assert all(i.startswith("expense_") for i in ids)


class TestPeople:
    def test_add_and_list_in_insertion_order(self, service, trio):
        assert [p.name for p in service.list_people()] == ["Asha", "Ben", "Chen"]

    def test_blank_name_rejected(self, service):
        with pytest.raises(ValueError, match="Name cannot be empty"):
            service.add_person("   ")

    def test_only_one_person_is_you(self, service):
        first = service.add_person("Asha", is_you=True)
        second = service.add_person("Ben", is_you=True)

        people = {p.id: p for p in service.list_people()}

        assert not people[first.id].is_you
        assert people[second.id].is_you

    def test_update_person(self, service, trio):
        asha = trio[0]

        updated = service.update_person(asha.id, contact="asha@example.com")

        assert updated.contact == "asha@example.com"
        assert service.get_person(asha.id).contact == "asha@example.com"

    def test_get_missing_person(self, service):
        with pytest.raises(RecordNotFoundError, match="No person"):
            service.get_person("person_missing")

    def test_remove_person_keeps_history(self, service, trio):
        asha, ben, chen = trio
        group = service.add_group("Flat", [asha.id, ben.id, chen.id])
        service.add_expense("Rent", 30, asha.id, [asha.id, ben.id, chen.id])

        service.remove_person(chen.id)

        assert chen.id not in [p.id for p in service.list_people()]
        assert service.get_group(group.id).member_ids == [asha.id, ben.id]
        assert service.balances()[chen.id] == Decimal("-10.00")

    def test_remove_missing_person(self, service):
        with pytest.raises(RecordNotFoundError):
            service.remove_person("person_missing")


class TestExpenses:
    def test_add_expense_splits_and_stores(self, service, trio):
        asha, ben, chen = trio

        entry = service.add_expense(
            "Dinner", "10.00", asha.id, [asha.id, ben.id, chen.id], on=date(2025, 3, 1)
        )

        stored = service.get_entry(entry.id)
        assert stored.amount == Decimal("10.00")
        assert [s.amount for s in stored.splits] == [
            Decimal("3.34"),
            Decimal("3.33"),
            Decimal("3.33"),
        ]
        assert stored.category == "Other"
        assert stored.kind == "expense"
        assert stored.date == date(2025, 3, 1)

    def test_failed_split_stores_nothing(self, service, trio):
        asha, ben, _ = trio

        with pytest.raises(SumMismatchError):
            service.add_expense(
                "Taxi",
                100,
                asha.id,
                [asha.id, ben.id],
                SplitMode.EXACT,
                {asha.id: 40, ben.id: 50},
            )

        assert service.filter_entries() == []

    def test_zero_shares_stores_nothing(self, service, trio):
        asha, ben, _ = trio

        with pytest.raises(ZeroSharesError):
            service.add_expense("Taxi", 100, asha.id, [asha.id, ben.id], "shares")

        assert service.filter_entries() == []

    def test_blank_description_rejected(self, service, trio):
        with pytest.raises(ValueError, match="Description"):
            service.add_expense(" ", 10, trio[0].id, [trio[0].id])

    def test_edit_keeps_id_and_created_at(self, service, trio):
        asha, ben, chen = trio
        original = service.add_expense(
            "Groceries", 60, asha.id, [asha.id, ben.id], on=date(2025, 2, 1)
        )

        edited = service.edit_expense(
            original.id,
            "Groceries and wine",
            90,
            asha.id,
            [asha.id, ben.id, chen.id],
        )

        assert edited.id == original.id
        assert edited.created_at == original.created_at
        assert edited.date == date(2025, 2, 1)
        assert len(service.filter_entries()) == 1
        assert service.balances()[chen.id] == Decimal("-30.00")

    def test_edit_missing_entry(self, service, trio):
        with pytest.raises(RecordNotFoundError):
            service.edit_expense("expense_x", "x", 10, trio[0].id, [trio[0].id])

    def test_settlement_cannot_be_edited(self, service, trio):
        """Editing would silently turn the settlement into an expense."""
        asha, ben, _ = trio
        settlement = service.settle_up(ben.id, asha.id, 20)

        with pytest.raises(ValueError, match="Settlements can't be edited"):
            service.edit_expense(
                settlement.id, "Dinner", 20, ben.id, [asha.id, ben.id]
            )

        assert service.get_entry(settlement.id).kind == "settlement"

    def test_delete_entry(self, service, trio):
        asha, ben, _ = trio
        entry = service.add_expense("Lunch", 20, asha.id, [asha.id, ben.id])

        service.delete_entry(entry.id)

        assert service.filter_entries() == []
        with pytest.raises(RecordNotFoundError):
            service.delete_entry(entry.id)


class TestFilterEntries:
    @pytest.fixture
    def ledger(self, service, trio):
        asha, ben, chen = trio
        trip = service.add_group("Trip", [asha.id, ben.id])
        service.add_expense(
            "Hotel", 300, asha.id, [asha.id, ben.id], on=date(2025, 1, 10),
            group_id=trip.id, category="Travel",
        )
        service.add_expense(
            "Coffee", 6, ben.id, [ben.id, chen.id], on=date(2025, 1, 12),
            category="Food",
        )
        service.add_expense(
            "Dinner", 45, chen.id, [asha.id, chen.id], on=date(2025, 1, 11),
            category="Food",
        )
        return trip

    def test_default_sort_is_newest_first(self, service, ledger):
        entries = service.filter_entries()

        assert [e.description for e in entries] == ["Coffee", "Dinner", "Hotel"]

    def test_sort_by_amount(self, service, ledger):
        entries = service.filter_entries(EntryFilter(sort_by="amount-asc"))

        assert [e.description for e in entries] == ["Coffee", "Dinner", "Hotel"]

    def test_sort_by_amount_largest_first(self, service, ledger):
        entries = service.filter_entries(EntryFilter(sort_by="amount-desc"))

        assert [e.description for e in entries] == ["Hotel", "Dinner", "Coffee"]

    def test_filter_by_group(self, service, ledger):
        entries = service.filter_entries(EntryFilter(group_id=ledger.id))

        assert [e.description for e in entries] == ["Hotel"]

    def test_filter_by_person_includes_payer(self, service, trio, ledger):
        entries = service.filter_entries(EntryFilter(person_id=trio[2].id))

        assert {e.description for e in entries} == {"Coffee", "Dinner"}

    def test_search_is_case_insensitive(self, service, ledger):
        entries = service.filter_entries(EntryFilter(search="cOfF"))

        assert [e.description for e in entries] == ["Coffee"]

    def test_category_and_date_range(self, service, ledger):
        criteria = EntryFilter(
            category="Food", date_from=date(2025, 1, 11), date_to=date(2025, 1, 11)
        )

        assert [e.description for e in service.filter_entries(criteria)] == [
            "Dinner"
        ]


class TestSettlingUp:
    def test_settle_up_records_settlement(self, service, trio):
        asha, ben, chen = trio
        service.add_expense("Dinner", 60, asha.id, [asha.id, ben.id, chen.id])

        entry = service.settle_up(ben.id, asha.id, 20)

        assert entry.kind == "settlement"
        assert entry.category == "Settlement"
        assert entry.description == "Settlement: Ben paid Asha"
        assert entry.payer_id == ben.id
        assert [(s.person_id, s.amount) for s in entry.splits] == [
            (asha.id, Decimal("20"))
        ]
        assert service.balances() == {
            asha.id: Decimal("20.00"),
            ben.id: Decimal("0.00"),
            chen.id: Decimal("-20.00"),
        }

    def test_settle_up_rejects_non_positive(self, service, trio):
        with pytest.raises(ValueError, match="greater than 0"):
            service.settle_up(trio[1].id, trio[0].id, 0)

    def test_recording_every_suggestion_settles_everyone(self, service, trio):
        asha, ben, chen = trio
        service.add_expense("Rent", 90, asha.id, [asha.id, ben.id, chen.id])
        service.add_expense(
            "Power", 40, ben.id, [asha.id, ben.id, chen.id], "shares",
            {asha.id: 1, ben.id: 1, chen.id: 2},
        )

        for transfer in service.suggest_transfers():
            service.record_transfer(transfer)

        assert all(is_settled(b) for b in service.balances().values())
        assert service.suggest_transfers() == []

    def test_suggestions_for_one_group(self, service, trio):
        asha, ben, chen = trio
        trip = service.add_group("Trip", [asha.id, ben.id])
        service.add_expense(
            "Fuel", 50, asha.id, [asha.id, ben.id], group_id=trip.id
        )
        service.add_expense("Snacks", 10, chen.id, [asha.id, chen.id])

        transfers = service.suggest_transfers(trip.id)

        assert [(t.from_id, t.to_id, t.amount) for t in transfers] == [
            (ben.id, asha.id, Decimal("25.00"))
        ]

    def test_recording_group_suggestions_settles_the_group(self, service, trio):
        """Settlements recorded from a group's suggestions count in that group."""
        asha, ben, chen = trio
        trip = service.add_group("Trip", [asha.id, ben.id, chen.id])
        service.add_expense(
            "Fuel", 50, asha.id, [asha.id, ben.id], group_id=trip.id
        )
        service.add_expense(
            "Cabin", 90, chen.id, [asha.id, ben.id, chen.id], group_id=trip.id
        )

        for transfer in service.suggest_transfers(trip.id):
            entry = service.record_transfer(transfer, group_id=trip.id)
            assert entry.group_id == trip.id

        assert service.suggest_transfers(trip.id) == []
        assert all(is_settled(b) for b in service.group_balances(trip.id).values())

    def test_record_transfer_without_group(self, service, trio):
        asha, ben, _ = trio
        service.add_expense("Lunch", 20, asha.id, [asha.id, ben.id])

        (transfer,) = service.suggest_transfers()
        entry = service.record_transfer(transfer)

        assert entry.group_id is None
        assert service.suggest_transfers() == []

    def test_remove_group_keeps_entries(self, service, trio):
        asha, ben, _ = trio
        trip = service.add_group("Trip", [asha.id, ben.id])
        entry = service.add_expense(
            "Fuel", 50, asha.id, [asha.id, ben.id], group_id=trip.id
        )

        service.remove_group(trip.id)

        assert service.get_entry(entry.id).group_id is None
        with pytest.raises(RecordNotFoundError):
            service.group_balances(trip.id)


class TestSettingsAndState:
    def test_default_settings(self, service):
        settings = service.get_app_settings()

        assert settings.currency_symbol == "₹"
        assert settings.theme == "light"

    def test_update_settings_persists(self, service):
        service.update_app_settings(currency_symbol="$", theme="dark")

        assert service.get_app_settings().currency_symbol == "$"
        assert service.get_app_settings().theme == "dark"

    def test_update_settings_validates(self, service):
        with pytest.raises(ValueError):
            service.update_app_settings(theme="neon")

    def test_replace_state(self, service, trio):
        service.add_expense("Dinner", 60, trio[0].id, [p.id for p in trio])
        state = LedgerState(people=[Person(id="p1", name="Dana")])

        service.replace_state(state)

        snapshot = service.snapshot()
        assert [p.name for p in snapshot.people] == ["Dana"]
        assert snapshot.entries == []
        assert snapshot.groups == []
