"""Hanki command-line interface."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Dict, Optional

import typer

from .screens.review import ReviewScreen
from ..engine.db import Database, now_ms
from ..engine.scheduler import is_leech
from ..engine.session import StudySession
from ..utils.config import ConfigManager
from ..utils.formatting import card_debug_info

app = typer.Typer(
    help="hanki: spaced-repetition flashcards for Chinese vocabulary.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


@app.callback()
def main_callback(
    ctx: typer.Context,
    db: Annotated[
        Optional[Path], typer.Option("--db", help="SQLite database file (overrides config).")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging.")
    ] = False,
):
    """Global settings for hanki."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
    config = ConfigManager()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["db_path"] = str(db) if db else config.get_db_path()


def _open_db(ctx: typer.Context) -> Database:
    config: ConfigManager = ctx.obj["config"]
    return Database(ctx.obj["db_path"], rollover_hour=config.get_rollover_hour())


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _resolve_deck(database: Database, deck: str) -> Dict:
    """Find a deck by name, then by id."""
    found = database.get_deck_by_name(deck) or database.get_deck(deck)
    if not found:
        _fail(f"Deck not found: {deck}")
    return found


@app.command("create-deck")
def create_deck(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name.")],
    description: Annotated[Optional[str], typer.Option(help="Deck description.")] = None,
):
    """Create a new deck."""
    database = _open_db(ctx)
    try:
        if database.get_deck_by_name(name):
            _fail(f"Deck already exists: {name}")
        deck_id = database.create_deck(name, description)
        typer.echo(f"Created deck: {name} ({deck_id})")
    finally:
        database.close()


@app.command("rename-deck")
def rename_deck(
    ctx: typer.Context,
    deck: Annotated[str, typer.Argument(help="Deck name or id.")],
    new_name: Annotated[str, typer.Argument(help="New deck name.")],
    description: Annotated[Optional[str], typer.Option(help="New deck description.")] = None,
):
    """Rename a deck, optionally changing its description."""
    database = _open_db(ctx)
    try:
        found = _resolve_deck(database, deck)
        other = database.get_deck_by_name(new_name)
        if other and other["id"] != found["id"]:
            _fail(f"Deck already exists: {new_name}")
        database.update_deck(found["id"], name=new_name, description=description)
        typer.echo(f"Renamed deck: {found['name']} -> {new_name}")
    finally:
        database.close()


@app.command()
def decks(ctx: typer.Context):
    """List decks with their due counts."""
    database = _open_db(ctx)
    try:
        now = now_ms()
        all_decks = database.list_decks()
        if not all_decks:
            typer.echo("No decks yet.")
            return
        for deck in all_decks:
            due = len(database.get_due_cards(deck["id"], now))
            typer.echo(f"{deck['name']}: {len(deck['card_ids'])} cards, {due} due")
    finally:
        database.close()


@app.command()
def add(
    ctx: typer.Context,
    hanzi: Annotated[str, typer.Argument(help="Chinese characters.")],
    pinyin: Annotated[str, typer.Argument(help="Romanization.")],
    english: Annotated[str, typer.Argument(help="English translation.")],
    deck: Annotated[Optional[str], typer.Option(help="Deck name or id to add the card to.")] = None,
):
    """Add a card, optionally to a deck."""
    database = _open_db(ctx)
    try:
        deck_id = _resolve_deck(database, deck)["id"] if deck else None
        card_id = database.add_card(hanzi, pinyin, english, deck_id=deck_id)
        typer.echo(f"Added card {card_id}: {hanzi} ({pinyin}) - {english}")
    finally:
        database.close()


@app.command()
def edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    hanzi: Annotated[Optional[str], typer.Option(help="New Chinese characters.")] = None,
    pinyin: Annotated[Optional[str], typer.Option(help="New romanization.")] = None,
    english: Annotated[Optional[str], typer.Option(help="New English translation.")] = None,
):
    """Edit a card's text. Its review schedule is unchanged."""
    if hanzi is None and pinyin is None and english is None:
        _fail("Nothing to change: pass --hanzi, --pinyin or --english")
    database = _open_db(ctx)
    try:
        if not database.get_card(card_id):
            _fail(f"Card not found: {card_id}")
        database.update_card_text(card_id, hanzi=hanzi, pinyin=pinyin, english=english)
        card = database.get_card(card_id)
        typer.echo(f"Updated card {card_id}: {card.hanzi} ({card.pinyin}) - {card.english}")
    finally:
        database.close()


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Delete a card and remove it from every deck."""
    database = _open_db(ctx)
    try:
        if not database.get_card(card_id):
            _fail(f"Card not found: {card_id}")
        database.delete_card(card_id)
        typer.echo(f"Deleted card {card_id}")
    finally:
        database.close()


@app.command()
def review(
    ctx: typer.Context,
    deck: Annotated[Optional[str], typer.Option(help="Deck name or id; all cards if omitted.")] = None,
    all_cards: Annotated[
        bool, typer.Option("--all", help="Review every non-suspended card, not only due ones.")
    ] = False,
):
    """Start an interactive review session."""
    config: ConfigManager = ctx.obj["config"]
    database = _open_db(ctx)
    try:
        deck_id = _resolve_deck(database, deck)["id"] if deck else None
        session = StudySession(database, leech_threshold=config.get_leech_threshold())
        session.start(deck_id, review_all=all_cards)
        ReviewScreen(session).run()
    finally:
        database.close()


@app.command()
def stats(
    ctx: typer.Context,
    deck: Annotated[Optional[str], typer.Option(help="Deck name or id; all cards if omitted.")] = None,
):
    """Show card counts per phase and today's reviews."""
    database = _open_db(ctx)
    try:
        deck_id = _resolve_deck(database, deck)["id"] if deck else None
        now = now_ms()
        result = database.get_deck_stats(deck_id, now)
        result["due_today"] = database.count_due_today(deck_id, now)
        result["reviewed_today"] = database.get_review_count(now)
        typer.echo(json.dumps(result, indent=2))
    finally:
        database.close()


@app.command()
def info(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Show a card's scheduling details."""
    database = _open_db(ctx)
    try:
        card = database.get_card(card_id)
        if not card:
            _fail(f"Card not found: {card_id}")
        details = {"hanzi": card.hanzi, "pinyin": card.pinyin, "english": card.english}
        details.update(card_debug_info(card, now_ms()))
        typer.echo(json.dumps(details, indent=2, ensure_ascii=False))
    finally:
        database.close()


@app.command()
def unsuspend(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Return a suspended (leech) card to scheduling.

    Lapses are kept, so a card still at the leech threshold is suspended
    again after its next grade.
    """
    config: ConfigManager = ctx.obj["config"]
    database = _open_db(ctx)
    try:
        card = database.get_card(card_id)
        if not card:
            _fail(f"Card not found: {card_id}")
        if not card.review.suspended:
            typer.echo(f"Card {card_id} is not suspended")
            return
        database.unsuspend_card(card_id)
        logger.info("Unsuspended card %s with %d lapses", card_id, card.review.lapses)
        typer.echo(f"Unsuspended card {card_id}")
        if is_leech(card.review, config.get_leech_threshold()):
            typer.echo(f"Card has {card.review.lapses} lapses and will be suspended "
                       f"again after its next grade.")
    finally:
        database.close()
