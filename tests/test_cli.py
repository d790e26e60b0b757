"""CLI smoke tests against a temporary DuckDB file."""

import re

import pytest
from typer.testing import CliRunner

from cazino.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    # cached structlog loggers would keep writing to the runner's closed stdout
    monkeypatch.setattr("cazino.cli.app.configure_logging", lambda settings: None)


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.duckdb")


def _run(db, *args):
    return runner.invoke(app, ["--db", db, *args])


def _grab(pattern, text):
    m = re.search(pattern, text)
    assert m, text
    return m.group(1)


def test_market_and_bet_round(db):
    r = _run(db, "market", "create", "Thanksgiving", "--admin", "Mom", "--code", "TURKEY", "--device", "dev-mom")
    assert r.exit_code == 0, r.output
    market_id = _grab(r"Market: (\S+)", r.output)
    admin_id = _grab(r"Admin: (\S+)", r.output)
    assert "Invite code: TURKEY" in r.output

    r = _run(db, "market", "join", "turkey", "--name", "Alice", "--device", "dev-alice")
    assert r.exit_code == 0, r.output
    alice_id = _grab(r"User: (\S+)", r.output)

    assert _run(db, "market", "open", market_id, "--admin", admin_id).exit_code == 0

    r = _run(
        db, "bet", "create", market_id,
        "--creator", alice_id, "--subject", admin_id, "--description", "Mom cries", "--wager", "100",
    )
    assert r.exit_code == 0, r.output
    bet_id = _grab(r"Bet: (\S+)", r.output)

    r = _run(db, "bet", "wager", bet_id, "--user", admin_id, "--side", "no", "--amount", "50")
    assert r.exit_code == 1
    assert "Cannot bet on bets about yourself" in r.output

    r = _run(db, "bet", "list", market_id, "--as", admin_id)
    assert "Mom cries" in r.output

    r = _run(db, "bet", "resolve", bet_id, "--admin", admin_id, "--outcome", "yes")
    assert r.exit_code == 0, r.output
    assert "Paid 100 coins to 1 winners" in r.output

    r = _run(db, "market", "leaderboard", market_id)
    assert r.exit_code == 0
    assert "#1" in r.output


def test_unknown_market_exits_nonzero(db):
    r = _run(db, "market", "leaderboard", "missing")
    assert r.exit_code == 1
    assert "Market not found: missing" in r.output


def test_bad_side(db):
    r = _run(db, "bet", "wager", "b1", "--user", "u1", "--side", "maybe", "--amount", "5")
    assert r.exit_code == 1
