"""CLI entry point for the `rtcleak` command."""

from __future__ import annotations

import asyncio
import ipaddress
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import click
import keyring.errors
from rich.console import Console
from rich.markup import escape
from rich.logging import RichHandler

from rtcleak.cli.panel import (
    load_panel_state,
    render_current,
    render_header,
    render_history,
    save_panel_state,
)
from rtcleak.core.config import Settings, load_settings
from rtcleak.core.errors import ConfigError
from rtcleak.core.store import JsonFileStore, StateStore
from rtcleak.core.tokens import TokenStore
from rtcleak.detector.browser import observe_page
from rtcleak.detector.classifier import is_private_ip
from rtcleak.detector.dumps import read_sessions
from rtcleak.detector.pipeline import LeakDetector

console = Console()
err_console = Console(stderr=True)


def _run_async(coro: Any) -> Any:
    """Run an async coroutine from sync Click commands."""
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("rtcleak")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=err_console, show_path=False, rich_tracebacks=True))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load(ctx: click.Context) -> tuple[Settings, StateStore, LeakDetector]:
    """Build settings, state store and detector from the global options."""
    opts = ctx.ensure_object(dict)
    try:
        settings = load_settings(opts.get("config_path"), opts.get("state_path"))
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    store = JsonFileStore(settings.state_path)
    return settings, store, LeakDetector.from_settings(settings, store)


def _report_json(detector: LeakDetector) -> None:
    data = {
        "admitted": list(detector.admitted),
        "current_address": detector.current_address(),
        "history": [entry.model_dump(mode="json") for entry in detector.history()],
    }
    click.echo(json.dumps(data, indent=2))


def _report_rich(detector: LeakDetector) -> None:
    address = detector.current_address()
    entry = detector.ledger.get(address) if address else None
    render_current(console, address, entry.metadata if entry else None)
    console.print()
    render_history(console, detector.history())


def _announce(detector: LeakDetector) -> None:
    console.print(f"[green]Leaked address:[/green] {escape(str(detector.current_address()))}")


@click.group()
@click.version_option(package_name="rtcleak")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State file (defaults to ~/.local/share/rtcleak/state.json).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML config file.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, state_path: Path | None, config_path: Path | None) -> None:
    """rtcleak — detect WebRTC IP leaks and geolocate the leaked address."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path
    ctx.obj["config_path"] = config_path


@cli.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
@click.pass_context
def watch(ctx: click.Context, source: TextIO, output_format: str) -> None:
    """Detect leaks in recorded ICE candidates.

    SOURCE is a text file with one candidate per line, a Chrome
    webrtc-internals JSON dump, or '-' for stdin.
    """
    _settings, _store, detector = _load(ctx)
    sessions = read_sessions(source)

    if output_format == "rich":
        detector.subscribe(_announce)

    async def _run() -> None:
        for name, records in sessions:
            detector.feed(records, name=name)
        await detector.drain()

    _run_async(_run())

    if output_format == "json":
        _report_json(detector)
        return

    if not detector.admitted:
        console.print("[dim]No new server-reflexive addresses found.[/dim]")
    console.print()
    _report_rich(detector)


@cli.command()
@click.argument("url")
@click.option(
    "--duration", "-d", type=float, default=30.0, show_default=True, help="Seconds to observe."
)
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
@click.pass_context
def browse(ctx: click.Context, url: str, duration: float, headed: bool, output_format: str) -> None:
    """Open URL in Chromium and watch its peer connections for leaked addresses."""
    _settings, _store, detector = _load(ctx)

    if output_format == "rich":
        detector.subscribe(_announce)
        console.print(f"[dim]Observing {url} for {duration:g}s...[/dim]")

    async def _run() -> bool:
        installed = await observe_page(url, detector, duration=duration, headless=not headed)
        await detector.drain()
        return installed

    installed = _run_async(_run())

    if not installed:
        console.print(
            "[yellow]WebRTC detection unavailable. Install the 'browser' extra "
            "and run: playwright install chromium[/yellow]"
        )

    if output_format == "json":
        _report_json(detector)
    else:
        console.print()
        _report_rich(detector)


@cli.command()
@click.argument("address")
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
@click.pass_context
def lookup(ctx: click.Context, address: str, output_format: str) -> None:
    """Resolve metadata for ADDRESS and record it in the history."""
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        console.print(f"[red]Not an IPv4 address: {escape(address)}[/red]")
        sys.exit(1)
    if is_private_ip(address):
        err_console.print(f"[yellow]{address} is a private address with no public location.[/yellow]")

    _settings, _store, detector = _load(ctx)
    metadata = _run_async(detector.resolver.resolve(address))

    if metadata is None:
        console.print(f"[red]Could not retrieve geolocation for {address}.[/red]")
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(metadata.model_dump(mode="json"), indent=2))
    else:
        render_current(console, address, metadata)


@cli.command()
@click.option("--clear", is_flag=True, help="Forget all recorded addresses.")
@click.option("--format", "output_format", type=click.Choice(["rich", "json"]), default="rich")
@click.pass_context
def history(ctx: click.Context, clear: bool, output_format: str) -> None:
    """Show the most recent leaked addresses."""
    _settings, _store, detector = _load(ctx)

    if clear:
        detector.ledger.clear()
        console.print("[green]History cleared.[/green]")
        return

    if output_format == "json":
        click.echo(json.dumps([e.model_dump(mode="json") for e in detector.history()], indent=2))
    else:
        render_history(console, detector.history())


@cli.command()
@click.option("--toggle-view", is_flag=True, help="Switch between current and history view.")
@click.option("--toggle-collapse", is_flag=True, help="Collapse or expand the panel.")
@click.pass_context
def show(ctx: click.Context, toggle_view: bool, toggle_collapse: bool) -> None:
    """Render the panel in its saved view."""
    _settings, store, detector = _load(ctx)
    state = load_panel_state(store)

    if toggle_view or toggle_collapse:
        if toggle_view:
            state.history_view = not state.history_view
        if toggle_collapse:
            state.collapsed = not state.collapsed
        save_panel_state(store, state)

    render_header(console, state)
    if state.collapsed:
        return

    if state.history_view:
        render_history(console, detector.history())
        return

    address = detector.current_address()
    entry = detector.ledger.get(address) if address else None
    metadata = entry.metadata if entry else None
    if address and metadata is None:
        # Not resolved yet, look it up once
        metadata = _run_async(detector.resolver.resolve(address))
    render_current(console, address, metadata)


@cli.group()
def token() -> None:
    """Manage the metadata lookup token."""


@token.command("set")
@click.option("--token", "value", prompt=True, hide_input=True, help="ipinfo.io API token.")
def token_set(value: str) -> None:
    """Store the lookup token in the system keyring."""
    try:
        TokenStore.save(value.strip())
    except keyring.errors.KeyringError as exc:
        console.print(f"[red]Could not save token: {exc}[/red]")
        sys.exit(1)
    console.print("[green]Token saved to keyring.[/green]")


@token.command("clear")
def token_clear() -> None:
    """Remove the stored lookup token."""
    TokenStore.delete()
    console.print("[green]Token removed.[/green]")


if __name__ == "__main__":
    cli()
