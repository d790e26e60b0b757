"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from cazino.config import configure_logging, get_settings

app = typer.Typer(
    name="cazino",
    help="Cazino - parimutuel prediction markets for family and friends.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
    db: str | None = typer.Option(None, "--db", help="Database path (overrides [storage] db_path)"),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    if db:
        settings.storage["db_path"] = db
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from cazino.cli import bet, market, serve  # noqa: E402

app.add_typer(market.app, name="market")
app.add_typer(bet.app, name="bet")
app.add_typer(serve.app, name="serve")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
