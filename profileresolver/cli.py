"""Command-line interface for profileresolver."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from profileresolver import ProfileResolutionManager, ResolverConfig, save_json, to_json, __version__
from profileresolver.config import LogFormat
from profileresolver.exceptions import ResolutionError
from profileresolver.models.profile import Platform

app = typer.Typer(
    name="profileresolver",
    help="Creator profile lookup across data providers",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"profileresolver version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """profileresolver - creator profile lookup across data providers."""
    pass


@app.command()
def lookup(
    username: str = typer.Argument(..., help="Creator handle"),
    platform: Platform = typer.Option(
        Platform.INSTAGRAM, "--platform", "-p", case_sensitive=False, help="Platform"
    ),
    provider: Optional[str] = typer.Option(
        None, "--provider", help="Provider to try first (nanoinfluencer, ensembledata)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the profile JSON to this file or directory"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress output, only show errors"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the profile as JSON instead of a table"
    ),
):
    """Resolve a single creator profile."""
    config = ResolverConfig(
        log_format=LogFormat.CONSOLE if not quiet else LogFormat.JSON,
        log_level="INFO" if not quiet else "ERROR",
    )

    async def run():
        async with ProfileResolutionManager(config) as manager:
            return await manager.resolve(username, platform, provider)

    try:
        profile = asyncio.run(run())
    except ResolutionError as e:
        console.print(f"[red]✗[/red] {e.code.value}: {e.message}")
        for error in e.errors:
            console.print(f"  [dim]{error.provider}[/dim] {error.code.value} - {error.message}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(to_json(profile))
    elif not quiet:
        _print_profile_table(profile)

    if output:
        path = save_json(profile, output)
        console.print(f"[dim]Saved to {path}[/dim]")


@app.command()
def providers():
    """Show configured providers and their availability."""
    manager = ProfileResolutionManager(ResolverConfig())

    table = Table(title="Providers")
    table.add_column("Priority", justify="right")
    table.add_column("Provider")
    table.add_column("Platforms")
    table.add_column("Status")

    for status in manager.providers_status():
        table.add_row(
            str(status.priority),
            status.name.value,
            ", ".join(p.value for p in status.supported_platforms),
            "[green]available[/green]" if status.available else "[red]unavailable[/red]",
        )

    console.print(table)


def _print_profile_table(profile):
    """Print detailed profile as table."""
    table = Table(title=f"@{profile.username} ({profile.platform.value})", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Display Name", profile.display_name or "-")
    table.add_row("Bio", profile.biography or "-")
    table.add_row("Followers", f"{profile.follower_count:,}")
    table.add_row("Following", f"{profile.following_count:,}" if profile.following_count is not None else "-")
    table.add_row("Engagement", f"{profile.engagement_rate_percent:.2f}%")
    table.add_row("Avg Likes", f"{profile.average_likes:,}" if profile.average_likes is not None else "-")
    table.add_row("Verified", "✓" if profile.is_verified else "✗")
    table.add_row("Account", profile.account_type.value)
    table.add_row("Language", profile.detected_language)
    table.add_row("URL", profile.profile_url)
    table.add_row("Source", f"{profile.provider_source.value} at {profile.fetched_at.isoformat()}")

    console.print(table)

    if profile.contact_points:
        console.print("\n[bold]Contacts[/bold]")
        for contact in profile.contact_points:
            primary = "[yellow]*[/yellow]" if contact.is_primary else " "
            console.print(f"{primary} {contact.type}: {contact.value}")


if __name__ == "__main__":
    app()
