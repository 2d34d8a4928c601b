"""Roombot CLI."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from roombot import __version__
from roombot.bot import RoomBot
from roombot.config import Config
from roombot.constants import (
    CONFIG_PATH,
    MATRIX_ACCESS_TOKEN,
    MATRIX_HOMESERVER,
    MATRIX_PASSWORD,
    MATRIX_USER_ID,
    STORAGE_PATH,
)
from roombot.logging_config import get_logger, setup_logging

app = typer.Typer(
    help="Matrix room assistant bot",
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)
console = Console()
logger = get_logger(__name__)


@app.command()
def version() -> None:
    """Show the current version of roombot."""
    console.print(f"roombot version: [bold]{__version__}[/bold]")


async def _run(bot: RoomBot) -> None:
    await bot.start()
    try:
        await bot.sync_forever()
    finally:
        await bot.stop()


@app.command()
def run(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Set the logging level (DEBUG, INFO, WARNING, ERROR)",
        case_sensitive=False,
        envvar="LOG_LEVEL",
    ),
    config_path: Path = typer.Option(  # noqa: B008
        CONFIG_PATH,
        "--config",
        "-c",
        help="Path to the YAML configuration file",
    ),
    storage_path: Path = typer.Option(  # noqa: B008
        Path(STORAGE_PATH),
        "--storage-path",
        "-s",
        help="Directory for the pseudo-state file",
    ),
) -> None:
    """Connect to Matrix and handle room events until interrupted."""
    if not MATRIX_USER_ID or not (MATRIX_ACCESS_TOKEN or MATRIX_PASSWORD):
        console.print("[red]MATRIX_USER_ID and MATRIX_ACCESS_TOKEN or MATRIX_PASSWORD must be set.[/red]")
        raise typer.Exit(1)

    try:
        config = Config.from_yaml(config_path)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration in {config_path}:[/red]\n{e}")
        raise typer.Exit(1) from e

    setup_logging(level=log_level)
    bot = RoomBot(
        config=config,
        user_id=MATRIX_USER_ID,
        access_token=MATRIX_ACCESS_TOKEN,
        password=MATRIX_PASSWORD,
        homeserver=MATRIX_HOMESERVER,
        storage_path=storage_path,
    )
    try:
        asyncio.run(_run(bot))
    except KeyboardInterrupt:
        logger.info("Bot stopped by user.")


if __name__ == "__main__":
    app()
