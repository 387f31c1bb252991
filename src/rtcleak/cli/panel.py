"""Terminal presentation of the current address and the history ledger."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from rtcleak.core.base import UNKNOWN, HistoryEntry, ResolvedMetadata
from rtcleak.core.store import KEY_PANEL_STATE, StateStore

PANEL_TITLE = "Advanced IP Geolocation"


class PanelState(BaseModel):
    """View preferences persisted alongside the history."""

    history_view: bool = False
    collapsed: bool = False


def load_panel_state(store: StateStore) -> PanelState:
    raw = store.get(KEY_PANEL_STATE, {})
    try:
        return PanelState.model_validate(raw or {})
    except ValidationError:
        return PanelState()


def save_panel_state(store: StateStore, state: PanelState) -> None:
    store.set(KEY_PANEL_STATE, state.model_dump())


def format_timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def metadata_table(metadata: ResolvedMetadata) -> Table:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="dim")
    table.add_column("Value", overflow="fold")
    for key, value in metadata.as_table().items():
        table.add_row(key, escape(value))
    return table


def render_current(
    console: Console, address: str | None, metadata: ResolvedMetadata | None
) -> None:
    if address is None:
        console.print("Waiting for WebRTC IP detection...")
        return
    if metadata is None:
        console.print(f"[yellow]Could not retrieve geolocation for {escape(address)}.[/yellow]")
        return
    console.print(f"[bold cyan]Current Detected IP: {escape(address)}[/bold cyan]")
    console.print(metadata_table(metadata))


def render_history(console: Console, entries: list[HistoryEntry]) -> None:
    if not entries:
        console.print("No IP history recorded yet.")
        return

    table = Table(title="IP Detection History")
    table.add_column("IP")
    table.add_column("Country")
    table.add_column("City")
    table.add_column("ISP")
    table.add_column("Last seen", style="dim")

    for entry in entries:
        meta = entry.metadata
        table.add_row(
            escape(entry.address),
            escape(meta.country_name) if meta else UNKNOWN,
            escape(meta.city) if meta else UNKNOWN,
            escape(meta.organization) if meta else UNKNOWN,
            format_timestamp(entry.last_seen_at),
        )
    console.print(table)


def render_header(console: Console, state: PanelState) -> None:
    view = "history" if state.history_view else "current"
    suffix = " (collapsed)" if state.collapsed else ""
    console.print(Panel(f"[bold]{PANEL_TITLE}[/bold] | {view} view{suffix}", style="blue"))
