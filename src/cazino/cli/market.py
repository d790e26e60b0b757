"""Market subcommand: create, join, open, close, resolve, delete, leaderboard, reveal, recent."""

import uuid

import typer

from cazino.cli.common import format_bet, open_service
from cazino.service import CreateMarketParams

app = typer.Typer(help="Create, join and administer markets")


@app.command("create")
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Market name"),
    admin: str = typer.Option(..., "--admin", "-a", help="Admin display name"),
    balance: int | None = typer.Option(None, "--balance", "-b", help="Starting coins per player"),
    hours: int | None = typer.Option(None, "--hours", help="Duration in hours (informational)"),
    code: str | None = typer.Option(None, "--code", help="Custom 6-character invite code"),
    device: str | None = typer.Option(None, "--device", help="Admin device id (generated if absent)"),
) -> None:
    """Create a market in Draft status with you as admin."""
    settings = ctx.obj["settings"]
    with open_service(ctx) as service:
        market, user = service.create_market(
            CreateMarketParams(
                name=name,
                admin_device_id=device or str(uuid.uuid4()),
                admin_name=admin,
                starting_balance=balance if balance is not None else settings.default_starting_balance,
                duration_hours=hours if hours is not None else settings.default_duration_hours,
                custom_invite_code=code,
            )
        )
        typer.echo(f"Market: {market.id}  ({market.name})")
        typer.echo(f"Invite code: {market.invite_code}")
        typer.echo(f"Admin: {user.id}  balance {user.balance}")


@app.command("join")
def join(
    ctx: typer.Context,
    invite_code: str = typer.Argument(..., help="Invite code"),
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    avatar: str = typer.Option("", "--avatar", help="Avatar (emoji)"),
    device: str | None = typer.Option(None, "--device", help="Device id; reuse it to rejoin"),
) -> None:
    """Join a market by invite code."""
    with open_service(ctx) as service:
        market, user = service.join_market(invite_code.strip().upper(), device or str(uuid.uuid4()), name, avatar)
        typer.echo(f"Joined {market.name} ({market.id}) as {user.display_name}")
        typer.echo(f"User: {user.id}  device {user.device_id}  balance {user.balance}")


def _transition(ctx: typer.Context, action: str, market_id: str, admin_id: str) -> None:
    with open_service(ctx) as service:
        market = getattr(service, f"{action}_market")(market_id, admin_id)
        typer.echo(f"Market {market.name} is now {market.status.value.upper()}")


@app.command("open")
def open_(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
) -> None:
    """Open a Draft market for wagering."""
    _transition(ctx, "open", market_id, admin_id)


@app.command("close")
def close(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
) -> None:
    """Close an Open market (no more wagers)."""
    _transition(ctx, "close", market_id, admin_id)


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
) -> None:
    """Mark a Closed market Resolved."""
    _transition(ctx, "resolve", market_id, admin_id)


@app.command("delete")
def delete(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
) -> None:
    """Delete a market with all its players, bets and wagers."""
    with open_service(ctx) as service:
        service.delete_market(market_id, admin_id)
        typer.echo(f"Deleted market {market_id}")


@app.command("leaderboard")
def leaderboard(ctx: typer.Context, market_id: str = typer.Argument(...)) -> None:
    """Players by balance with profit against the starting balance."""
    with open_service(ctx) as service:
        for entry in service.get_leaderboard(market_id):
            u = entry.user
            crown = " (admin)" if u.is_admin else ""
            typer.echo(f"  #{entry.rank:<3} {u.avatar} {u.display_name}{crown}  {u.balance}  ({entry.profit:+d})")


@app.command("reveal")
def reveal(ctx: typer.Context, user_id: str = typer.Argument(..., help="Subject user id")) -> None:
    """Show every bet that was made about a player."""
    with open_service(ctx) as service:
        views = service.get_reveal(user_id)
        for v in views:
            typer.echo(format_bet(v))
        typer.echo(f"Total: {len(views)} bets")


@app.command("recent")
def recent(ctx: typer.Context, device: str = typer.Argument(..., help="Device id")) -> None:
    """Markets this device has joined, newest first."""
    with open_service(ctx) as service:
        for market, user in service.get_markets_by_device_id(device):
            typer.echo(f"  {market.invite_code}  {market.status.value:<8}  {market.name}  as {user.display_name} ({user.id})")
