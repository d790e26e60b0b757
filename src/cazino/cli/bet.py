"""Bet subcommand: create, list, pending, approve, wager, resolve, chart."""

import datetime as dt

import typer

from cazino.cli.common import format_bet, open_service, parse_side

app = typer.Typer(help="Propose, wager on and resolve bets")


@app.command("create")
def create(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    creator: str = typer.Option(..., "--creator", help="Creator user id"),
    subject: str = typer.Option(..., "--subject", help="User id the bet is about"),
    description: str = typer.Option(..., "--description", "-d", help="What will happen"),
    wager: int = typer.Option(..., "--wager", "-w", help="Opening wager (goes to YES)"),
    odds: str = typer.Option("1:1", "--odds", help="Display odds label, N:M"),
    hide: bool = typer.Option(False, "--hide/--no-hide", help="Hide from the subject until resolved"),
) -> None:
    """Propose a bet about a player, seeded with your opening YES wager."""
    with open_service(ctx) as service:
        bet = service.create_bet(market_id, creator, subject, description, odds, wager, hide)
        typer.echo(f"Bet: {bet.id}  pools YES {bet.yes_pool} / NO {bet.no_pool}")


@app.command("list")
def list_bets(
    ctx: typer.Context,
    market_id: str = typer.Argument(...),
    viewer: str = typer.Option(..., "--as", help="Viewing user id (hidden bets are redacted)"),
) -> None:
    """List bets in a market as a given player sees them."""
    with open_service(ctx) as service:
        views = service.get_bets(market_id, viewer)
        for v in views:
            typer.echo(format_bet(v))
        typer.echo(f"Total: {len(views)} bets")


@app.command("pending")
def pending(ctx: typer.Context, market_id: str = typer.Argument(...)) -> None:
    """Bets waiting for admin approval."""
    with open_service(ctx) as service:
        bets = service.get_pending_bets(market_id)
        for b in bets:
            typer.echo(f"  {b.id}  {b.description}  [about {b.subject_user_id}]")
        typer.echo(f"Total: {len(bets)} pending")


@app.command("approve")
def approve(
    ctx: typer.Context,
    bet_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
) -> None:
    """Approve a pending bet."""
    with open_service(ctx) as service:
        bet = service.approve_bet(bet_id, admin_id)
        typer.echo(f"Bet {bet.id} is {bet.status.value}")


@app.command("wager")
def wager(
    ctx: typer.Context,
    bet_id: str = typer.Argument(...),
    user: str = typer.Option(..., "--user", "-u", help="Wagering user id"),
    side: str = typer.Option(..., "--side", "-s", help="yes or no"),
    amount: int = typer.Option(..., "--amount", "-n", help="Coins to stake"),
) -> None:
    """Stake coins on one side of a bet."""
    with open_service(ctx) as service:
        w = service.place_wager(bet_id, user, parse_side(side), amount)
        typer.echo(
            f"Wagered {w.amount} on {w.side.value}  pools YES {w.yes_pool_after} / NO {w.no_pool_after}"
            f"  ({w.probability_after * 100:.1f}% YES)"
        )


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    bet_id: str = typer.Argument(...),
    admin_id: str = typer.Option(..., "--admin", "-a", help="Admin user id"),
    outcome: str = typer.Option(..., "--outcome", "-o", help="yes or no"),
) -> None:
    """Settle a bet and pay the winners."""
    with open_service(ctx) as service:
        payouts = service.resolve_bet(bet_id, admin_id, parse_side(outcome))
        for p in payouts:
            typer.echo(f"  {p.user_id}  +{p.amount}")
        typer.echo(f"Paid {sum(p.amount for p in payouts)} coins to {len(payouts)} winners")


@app.command("chart")
def chart(ctx: typer.Context, bet_id: str = typer.Argument(...)) -> None:
    """YES probability after every wager."""
    with open_service(ctx) as service:
        for point in service.get_probability_chart(bet_id):
            ts = dt.datetime.fromtimestamp(point.timestamp / 1000, tz=dt.timezone.utc)
            bar = "#" * round(point.yes_probability * 40)
            typer.echo(f"  {ts:%H:%M:%S}  {point.yes_probability * 100:5.1f}%  {bar}")
