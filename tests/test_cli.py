"""Tests for the Typer command line."""

from decimal import Decimal

import pytest
from typer.testing import CliRunner

from splitit.balances import aggregate
from splitit.cli import app, format_money, parse_mode_inputs, resolve_person
from splitit.db import Database
from splitit.models import Person

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the CLI at a temporary database."""
    path = tmp_path / "cli.db"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SPLITIT_DATABASE_PATH", str(path))
    return path


def load(db_path):
    db = Database(db_path)
    try:
        return db.load_state()
    finally:
        db.close()


def invoke(*args):
    return runner.invoke(app, list(args))


@pytest.fixture
def people(db_path):
    assert invoke("person", "add", "Asha", "--you").exit_code == 0
    assert invoke("person", "add", "Ben").exit_code == 0
    return load(db_path).people


def test_add_expense_and_show_balances(db_path, people):
    result = invoke("expense", "add", "Dinner", "60", "--payer", "asha")

    assert result.exit_code == 0, result.output
    assert "Expense added" in result.output

    state = load(db_path)
    assert aggregate(state.entries, state.person_ids()) == {
        people[0].id: Decimal("30.00"),
        people[1].id: Decimal("-30.00"),
    }

    result = invoke("balances")
    assert result.exit_code == 0
    assert "You are owed" in result.output


def test_split_error_exits_without_storing(db_path, people):
    result = invoke(
        "expense", "add", "Taxi", "100", "--payer", "Asha",
        "--mode", "exact", "--share", "Asha=40", "--share", "Ben=50",
    )

    assert result.exit_code == 1
    assert "Sum of amounts must equal total" in result.output
    assert load(db_path).entries == []


def test_settle_clears_balances(db_path, people):
    invoke("expense", "add", "Dinner", "60", "--payer", "Asha")

    result = invoke("settle", "Ben", "Asha", "30", "--yes")

    assert result.exit_code == 0, result.output
    state = load(db_path)
    balances = aggregate(state.entries, state.person_ids())
    assert set(balances.values()) == {Decimal("0")}

    result = invoke("suggest")
    assert "All settled up" in result.output


def test_editing_a_settlement_is_refused(db_path, people):
    invoke("settle", "Ben", "Asha", "30", "--yes")
    (settlement,) = load(db_path).entries

    result = invoke("expense", "edit", settlement.id, "--description", "Dinner")

    assert result.exit_code == 1
    assert "Settlements can't be edited" in result.output
    assert load(db_path).entries == [settlement]


def test_unknown_person_is_an_error(db_path, people):
    result = invoke("expense", "add", "Dinner", "60", "--payer", "Zed")

    assert result.exit_code == 1
    assert "Unknown person" in result.output


def test_export_then_import(db_path, people, tmp_path):
    invoke("expense", "add", "Dinner", "60", "--payer", "Asha")
    backup = tmp_path / "backup.json"

    assert invoke("export", str(backup)).exit_code == 0
    before = load(db_path)

    invoke("person", "add", "Chen")
    result = invoke("import", str(backup), "--yes")

    assert result.exit_code == 0, result.output
    assert load(db_path) == before


def test_settings_command(db_path):
    result = invoke("settings", "--currency", "$", "--theme", "dark")

    assert result.exit_code == 0
    assert load(db_path).settings.currency_symbol == "$"

    result = invoke("settings", "--theme", "neon")
    assert result.exit_code == 1


class TestHelpers:
    def test_format_money_accounting_style(self):
        assert format_money(Decimal("-85.02"), "₹", use_color=False) == "(₹85.02)"
        assert format_money(Decimal("1234.5"), "$", use_color=False) == " $1,234.50 "

    def test_resolve_person_by_id_or_name(self):
        people = [Person(id="p1", name="Asha"), Person(id="p2", name="Ben")]

        assert resolve_person(people, "p2") == "p2"
        assert resolve_person(people, "ASHA") == "p1"
        with pytest.raises(ValueError, match="Unknown person"):
            resolve_person(people, "Chen")

    def test_resolve_person_ambiguous_name(self):
        people = [Person(id="p1", name="Sam"), Person(id="p2", name="sam")]

        with pytest.raises(ValueError, match="More than one"):
            resolve_person(people, "Sam")

    def test_parse_mode_inputs(self):
        people = [Person(id="p1", name="Asha"), Person(id="p2", name="Ben")]

        assert parse_mode_inputs(people, ["Asha=60", "p2 = 40.5"]) == {
            "p1": Decimal("60"),
            "p2": Decimal("40.5"),
        }
        with pytest.raises(ValueError, match="NAME=VALUE"):
            parse_mode_inputs(people, ["Asha"])
        with pytest.raises(ValueError, match="Not a number"):
            parse_mode_inputs(people, ["Asha=lots"])
