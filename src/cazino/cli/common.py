"""Shared CLI helpers."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from cazino.errors import CazinoError
from cazino.models import BetView, Side
from cazino.service import CazinoService
from cazino.storage import open_storage


@contextmanager
def open_service(ctx: typer.Context) -> Iterator[CazinoService]:
    """Service over the configured storage. Engine errors become a one-line message and exit code 1."""
    settings = ctx.obj["settings"]
    storage = open_storage(settings)
    try:
        yield CazinoService(storage, invite_code_attempts=settings.invite_code_attempts)
    except CazinoError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        storage.close()


def parse_side(value: str) -> Side:
    try:
        return Side(value.strip().upper())
    except ValueError:
        typer.echo(f"Side must be yes or no, got: {value}", err=True)
        raise typer.Exit(1) from None


def format_bet(view: BetView) -> str:
    about = "(hidden)" if view.is_hidden else f"{view.description}  [about {view.subject_user_id}]"
    return (
        f"  {view.id}  {view.status.value:<11}  YES {view.yes_pool:>6}  NO {view.no_pool:>6}"
        f"  {view.probability * 100:5.1f}%  {view.initial_odds:>5}  {about}"
    )
