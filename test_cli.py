#!/usr/bin/env python3
"""
Test the hanki command-line interface.
"""

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from hanki.engine.db import Database
from hanki.engine.models import Learning
from hanki.ui.main import app

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    monkeypatch.setenv("HANKI_HOME", str(tmp_path / "home"))
    return str(tmp_path / "cli.sqlite")


def invoke(db_path, *args, input=None):
    return runner.invoke(app, ["--db", db_path, *args], input=input)


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "review" in result.stdout
    assert "unsuspend" in result.stdout


def test_create_deck_add_and_list(db_path):
    result = invoke(db_path, "create-deck", "HSK 1")
    assert result.exit_code == 0
    assert "Created deck: HSK 1" in result.stdout

    result = invoke(db_path, "add", "你好", "nǐ hǎo", "hello", "--deck", "HSK 1")
    assert result.exit_code == 0

    result = invoke(db_path, "decks")
    assert "HSK 1: 1 cards, 1 due" in result.stdout


def test_duplicate_deck_fails(db_path):
    invoke(db_path, "create-deck", "HSK 1")
    result = invoke(db_path, "create-deck", "HSK 1")
    assert result.exit_code == 1


def test_unknown_deck_fails(db_path):
    result = invoke(db_path, "review", "--deck", "Nope")
    assert result.exit_code == 1


def test_review_session_with_retry(db_path):
    invoke(db_path, "create-deck", "HSK 1")
    invoke(db_path, "add", "你好", "nǐ hǎo", "hello", "--deck", "HSK 1")
    invoke(db_path, "add", "谢谢", "xiè xiè", "thank you", "--deck", "HSK 1")

    # Again on the first card, Good on the second, Good on the retry
    result = invoke(db_path, "review", "--deck", "HSK 1", input="\n1\n\ng\n\n3\n")
    assert result.exit_code == 0
    assert "(retry)" in result.stdout
    assert "Review session complete! 3 cards reviewed." in result.stdout

    database = Database(db_path)
    try:
        phases = [c.review.phase for c in database.get_all_cards()]
        assert phases == [Learning(1), Learning(1)]
    finally:
        database.close()


def test_review_quit_keeps_graded_cards(db_path):
    invoke(db_path, "add", "你好", "nǐ hǎo", "hello")
    invoke(db_path, "add", "谢谢", "xiè xiè", "thank you")

    result = invoke(db_path, "review", input="\n4\nq\n")
    assert result.exit_code == 0
    assert "complete" not in result.stdout


def test_review_with_nothing_due(db_path):
    result = invoke(db_path, "review")
    assert result.exit_code == 0
    assert "No cards due" in result.stdout


def test_info_stats_and_unsuspend(db_path):
    database = Database(db_path)
    try:
        card_id = database.add_card("你好", "nǐ hǎo", "hello")
        card = database.get_card(card_id)
        card.review = card.review.with_changes(suspended=True, lapses=8)
        database.persist(card)
    finally:
        database.close()

    result = invoke(db_path, "info", card_id)
    assert result.exit_code == 0
    details = json.loads(result.stdout)
    assert details["hanzi"] == "你好"
    assert details["suspended"] is True

    result = invoke(db_path, "stats")
    stats = json.loads(result.stdout)
    assert stats["suspended"] == 1
    assert stats["due"] == 0

    result = invoke(db_path, "unsuspend", card_id)
    assert result.exit_code == 0
    assert "suspended again after its next grade" in result.stdout
    result = invoke(db_path, "stats")
    assert json.loads(result.stdout)["due"] == 1


def test_delete_card(db_path):
    database = Database(db_path)
    try:
        card_id = database.add_card("你好", "nǐ hǎo", "hello")
    finally:
        database.close()

    assert invoke(db_path, "delete", card_id).exit_code == 0
    assert invoke(db_path, "info", card_id).exit_code == 1


def test_edit_card_text_keeps_schedule(db_path):
    database = Database(db_path)
    try:
        card_id = database.add_card("你好", "ni hao", "hello")
        due = database.get_card(card_id).review.due
    finally:
        database.close()

    result = invoke(db_path, "edit", card_id, "--pinyin", "nǐ hǎo")
    assert result.exit_code == 0
    assert "你好 (nǐ hǎo) - hello" in result.stdout

    database = Database(db_path)
    try:
        card = database.get_card(card_id)
        assert card.pinyin == "nǐ hǎo"
        assert card.review.due == due
    finally:
        database.close()

    assert invoke(db_path, "edit", card_id).exit_code == 1
    assert invoke(db_path, "edit", "missing", "--english", "hi").exit_code == 1


def test_rename_deck(db_path):
    invoke(db_path, "create-deck", "HSK 1")
    invoke(db_path, "create-deck", "Animals")

    result = invoke(db_path, "rename-deck", "HSK 1", "HSK One", "--description", "Beginner words")
    assert result.exit_code == 0
    assert "Renamed deck: HSK 1 -> HSK One" in result.stdout

    database = Database(db_path)
    try:
        deck = database.get_deck_by_name("HSK One")
        assert deck["description"] == "Beginner words"
        assert database.get_deck_by_name("HSK 1") is None
    finally:
        database.close()

    assert invoke(db_path, "rename-deck", "HSK One", "Animals").exit_code == 1
    assert invoke(db_path, "rename-deck", "Nope", "Other").exit_code == 1
