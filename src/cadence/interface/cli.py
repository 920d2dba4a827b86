"""Cadence CLI — review commands, seeding helpers and config."""

import asyncio
import json
import logging
import os
import sys
from datetime import tzinfo
from pathlib import Path
from typing import Annotated

import typer

from cadence.application.config import AppConfig, resolve_config
from cadence.application.factory import get_review_service, get_store
from cadence.application.selector import to_local
from cadence.domain.errors import (
    CadenceError,
    CardNotFoundError,
    ConcurrentReviewError,
    DeckNotFoundError,
)
from cadence.domain.models import Card

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cadence: SM-2 spaced-repetition review scheduler.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Manage cadence configuration.")
app.add_typer(config_app, name="config")

deck_app = typer.Typer(help="Seed decks into the local store.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

card_app = typer.Typer(help="Seed cards into the local store.", no_args_is_help=True)
app.add_typer(card_app, name="card")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def humanize_error(e: Exception) -> str:
    """Turn a store/service error into a one-line message for the terminal."""
    if isinstance(e, CardNotFoundError):
        return f"Card {e.card_id} not found (or not yours)."
    if isinstance(e, ConcurrentReviewError):
        return f"Card {e.card_id} was reviewed elsewhere in the meantime. Try again."
    if isinstance(e, DeckNotFoundError):
        return f"Deck {e.deck_id} not found (or not yours)."
    return str(e)


def _resolve(ctx: typer.Context, **overrides) -> AppConfig:
    obj = ctx.obj or {}
    overrides.setdefault("db_path", obj.get("db_path"))
    overrides.setdefault("owner_id", obj.get("owner_id"))
    return resolve_config(overrides)


def _card_line(card: Card, tz: tzinfo) -> str:
    m = card.memory
    return (
        f"#{card.card_id:<5} due {to_local(card.due_at, tz):%Y-%m-%d %H:%M}  "
        f"ef={m.ease_factor:.2f} ivl={m.interval}d reps={m.repetitions}  {card.front}"
    )


def _card_dict(card: Card) -> dict:
    return {
        "card_id": card.card_id,
        "deck_id": card.deck_id,
        "deck_name": card.deck_name,
        "front": card.front,
        "back": card.back,
        "ease_factor": card.memory.ease_factor,
        "interval": card.memory.interval,
        "repetitions": card.memory.repetitions,
        "due_at": card.due_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    db_path: Annotated[
        Path | None, typer.Option("--db", help="SQLite database path. Defaults to config.")
    ] = None,
    owner_id: Annotated[
        int | None, typer.Option("--owner", help="Owner whose cards are used.")
    ] = None,
):
    """Global settings for cadence."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["owner_id"] = owner_id


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    deck: Annotated[int | None, typer.Option(help="Only cards from this deck id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
):
    """List cards [bold green]due[/bold green] today, oldest first."""
    config = _resolve(ctx)

    with get_store(config) as store:
        service = get_review_service(config, store)
        cards = asyncio.run(service.due_cards(config.owner_id, deck))

    if as_json:
        typer.echo(json.dumps({"cards": [_card_dict(c) for c in cards]}, indent=2))
        return
    if not cards:
        typer.secho("Nothing due. Come back tomorrow.", fg="green")
        return
    for card in cards:
        typer.echo(_card_line(card, config.tzinfo))


@app.command()
def stats(
    ctx: typer.Context,
    deck: Annotated[int | None, typer.Option(help="Only cards from this deck id.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
):
    """Show review counts and the 7-day forecast."""
    config = _resolve(ctx)

    with get_store(config) as store:
        service = get_review_service(config, store)
        result = asyncio.run(service.stats(config.owner_id, deck))

    if as_json:
        payload = {
            "total_cards": result.total_cards,
            "due_now": result.due_now,
            "new_cards": result.new_cards,
            "review_cards": result.review_cards,
            "upcoming": [{"date": u.day.isoformat(), "count": u.count} for u in result.upcoming],
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Total cards:  {result.total_cards}")
    typer.echo(f"Due now:      {result.due_now}")
    typer.echo(f"New:          {result.new_cards}")
    typer.echo(f"Review:       {result.review_cards}")
    typer.echo("Upcoming:")
    for u in result.upcoming:
        typer.echo(f"  {u.day.isoformat()}  {u.count}")


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[int, typer.Argument(help="Card to review.")],
    quality: Annotated[
        float,
        typer.Argument(min=0, max=5, help="Recall quality, 0 (blackout) to 5 (perfect)."),
    ],
):
    """Submit a review and reschedule the card."""
    config = _resolve(ctx)

    try:
        with get_store(config) as store:
            service = get_review_service(config, store)
            card = asyncio.run(service.submit_review(config.owner_id, card_id, quality))
    except CadenceError as e:
        typer.secho(humanize_error(e), fg="red")
        raise typer.Exit(1) from e

    typer.secho(
        f"Card {card.card_id} next due {to_local(card.due_at, config.tzinfo):%Y-%m-%d} "
        f"(interval {card.memory.interval}d, ease {card.memory.ease_factor:.2f})",
        fg="green",
    )


@app.command()
def history(
    ctx: typer.Context,
    card_id: Annotated[int, typer.Argument(help="Card whose history to show.")],
    limit: Annotated[int | None, typer.Option(help="Maximum entries.")] = None,
):
    """Show a card's review history, newest first."""
    config = _resolve(ctx)

    try:
        with get_store(config) as store:
            service = get_review_service(config, store)
            outcomes = asyncio.run(service.history(config.owner_id, card_id, limit))
    except CadenceError as e:
        typer.secho(humanize_error(e), fg="red")
        raise typer.Exit(1) from e

    if not outcomes:
        typer.echo("No reviews yet.")
        return
    for o in outcomes:
        typer.echo(
            f"{to_local(o.reviewed_at, config.tzinfo):%Y-%m-%d %H:%M}  q={o.quality} "
            f"ef={o.ease_factor:.2f} ivl={o.interval}d"
        )


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


@deck_app.command("add")
def deck_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name.")],
):
    """Create a deck for the current owner."""
    config = _resolve(ctx)
    with get_store(config) as store:
        deck_id = store.add_deck(config.owner_id, name)
    typer.echo(f"Created deck {deck_id}: {name}")


@card_app.command("add")
def card_add(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck to add the card to.")],
    front: Annotated[str, typer.Argument(help="Prompt side.")],
    back: Annotated[str, typer.Argument(help="Answer side.")],
):
    """Create a new card, due immediately."""
    config = _resolve(ctx)
    try:
        with get_store(config) as store:
            card_id = store.add_card(deck_id, front, back, owner_id=config.owner_id)
    except CadenceError as e:
        typer.secho(humanize_error(e), fg="red")
        raise typer.Exit(1) from e
    typer.echo(f"Created card {card_id}")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port.")] = None,
):
    """Run the HTTP review API."""
    import uvicorn

    config = _resolve(ctx, host=host, port=port)
    # The server resolves its own config; hand it the CLI-level overrides.
    os.environ["CADENCE_DB_PATH"] = str(config.db_path)
    os.environ["CADENCE_BACKEND"] = config.backend
    logger.info(f"Serving on {config.host}:{config.port} (db: {config.db_path})")
    uvicorn.run("cadence.server:app", host=config.host, port=config.port)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
