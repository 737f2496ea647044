"""Tests for the bakery-ledger command line."""

from decimal import Decimal

import pytest

from src import main as cli
from src.services import production_service, stock_service


@pytest.fixture
def run(test_db, monkeypatch, capsys):
    """Run the CLI against the test database and return (exit code, stdout)."""
    monkeypatch.setattr(cli, "initialize_app_database", lambda: None)

    def _run(*argv):
        code = cli.main(list(argv))
        return code, capsys.readouterr().out

    return _run


class TestParser:
    """Argument parsing."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage: bakery-ledger" in capsys.readouterr().out

    def test_plan_options(self):
        args = cli.build_parser().parse_args(
            ["plan", "3", "2.5", "kg", "--labor", "100", "--commit"]
        )
        assert args.recipe_id == 3
        assert args.yield_quantity == Decimal("2.5")
        assert args.labor == Decimal("100")
        assert args.overhead == Decimal("0")
        assert args.commit is True


class TestCommands:
    """Subcommands end to end."""

    def test_convert(self, run):
        code, out = run("convert", "2000", "g", "kg")
        assert code == 0
        assert out.strip() == "2000 g = 2 kg"

    def test_convert_without_path(self, run):
        code, out = run("convert", "3", "piece", "kg")
        assert code == 1
        assert "No conversion found from piece to kg" in out

    def test_unknown_unit(self, run):
        code, out = run("convert", "1", "cup", "g")
        assert code == 1
        assert out.startswith("ERROR:")

    def test_scale(self, run, sponge_recipe):
        code, out = run("scale", str(sponge_recipe["id"]), "2", "kg")
        assert code == 0
        assert "Vanilla Sponge: 1 kg x 2" in out
        assert "Flour: 1000 g" in out

    def test_plan_shortage(self, run, sponge_recipe):
        code, out = run("plan", str(sponge_recipe["id"]), "10", "kg")
        assert code == 1
        assert "Insufficient stock:" in out
        assert "Flour: required 5 kg, available 3 kg" in out

    def test_plan_and_commit(self, run, sponge_recipe, flour):
        code, out = run(
            "plan", str(sponge_recipe["id"]), "2", "kg", "--labor", "50", "--commit"
        )
        assert code == 0
        assert "Recorded production #" in out
        assert stock_service.get_stock(flour["id"])["quantity"] == Decimal("2")
        assert len(production_service.list_productions()) == 1

    def test_low_stock(self, run, sugar, units):
        code, out = run("low-stock")
        assert out.strip() == "No items are low on stock"

        stock_service.decrement_stock(sugar["id"], Decimal("6"), units["kg"])
        code, out = run("low-stock")
        assert code == 0
        assert "Sugar: 4 kg (reorder at 5)" in out

    def test_stats(self, run, flour):
        code, out = run("stats")
        assert code == 0
        assert "Items:            1" in out
        assert "Stock value:      240.00" in out

    def test_init_db_reset(self, run, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "reset_database", lambda confirm: calls.append(confirm))

        code, out = run("init-db", "--reset")

        assert code == 0
        assert calls == [True]
        assert out.strip() == "Database reset"
