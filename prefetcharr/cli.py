"""CLI for prefetcharr."""

import asyncio

import click
from rich.console import Console

from prefetcharr import __version__
from prefetcharr.app import build_media_server, build_sonarr, run as run_service
from prefetcharr.config import Config, ConfigError
from prefetcharr.log import setup_logging
from prefetcharr.media_server import MediaServerError
from prefetcharr.sonarr_client import SonarrError

console = Console()

config_option = click.option(
    "--config",
    "config_path",
    envvar="PREFETCHARR_CONFIG",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to the YAML config file",
)


def load_config(config_path: str) -> Config:
    """Load config or exit with status 1."""
    config = Config(config_path)
    try:
        config.load()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    return config


@click.group()
@click.version_option(version=__version__)
def cli():
    """Prefetcharr - Request upcoming episodes in Sonarr while you watch."""
    pass


@cli.command()
@config_option
def run(config_path):
    """Watch playback sessions and prefetch upcoming episodes."""
    config = load_config(config_path)
    setup_logging(config.log_level, config.log_dir)

    try:
        asyncio.run(run_service(config))
    except (SonarrError, MediaServerError) as e:
        console.print(f"[red]Startup failed:[/red] {e}")
        raise SystemExit(2)
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


@cli.command()
@config_option
def validate(config_path):
    """Validate configuration and test both connections."""
    config = load_config(config_path)

    console.print(f"[dim]Media server:[/dim] {config.media_server_url}")
    console.print(f"[dim]Sonarr:[/dim] {config.sonarr_url}")
    console.print("\n[dim]Testing connections...[/dim]")

    failed = False
    checks = (
        ("Media server", MediaServerError, build_media_server),
        ("Sonarr", SonarrError, build_sonarr),
    )
    for label, error, build in checks:
        try:
            build(config).probe()
            console.print(f"[green]✓ {label} reachable[/green]")
        except error as e:
            console.print(f"[red]✗ {label} failed:[/red] {e}")
            failed = True

    if failed:
        raise SystemExit(2)


if __name__ == "__main__":
    cli()
