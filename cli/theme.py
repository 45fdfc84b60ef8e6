"""Unified Rich theme and reusable UI helper functions for the CLI."""

from datetime import datetime

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

STUDIO_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "stat.label": "dim",
    "stat.value": "bold",
    "page.num": "blue",
    "character.name": "bold cyan",
    "sync.code": "bold magenta",
})


def get_console() -> Console:
    """Return a Console instance with the studio theme applied."""
    return Console(theme=STUDIO_THEME)


def app_header(title: str = "comicstudio") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "Generate strip").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def _short(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _when(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def sessions_table(sessions: list, active_id: str) -> Table:
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("", width=1)
    table.add_column("ID", style="muted")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Series", justify="right")
    table.add_column("Strips", justify="right")
    table.add_column("Last modified", style="muted")
    for s in sessions:
        marker = "[success]*[/]" if s.id == active_id else ""
        table.add_row(
            marker,
            s.id,
            s.name,
            str(len(s.snapshot.series_profiles)),
            str(len(s.snapshot.strips)),
            _when(s.last_modified),
        )
    return table


def series_table(profiles: list, active_id: str) -> Table:
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("", width=1)
    table.add_column("ID", style="muted")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Style")
    table.add_column("Cast", justify="right")
    for p in profiles:
        marker = "[success]*[/]" if p.id == active_id else ""
        table.add_row(marker, p.id, p.name, _short(p.art_style_directive, 50), str(len(p.characters)))
    return table


def series_panel(profile) -> Panel:
    """Return a Panel summarizing one series with its cast and locations."""
    lines = [
        f"  [stat.label]Style:[/] {profile.art_style_directive}",
        f"  [stat.label]Background:[/] {profile.background_color}  "
        f"[muted]|[/]  [stat.label]Panels:[/] [stat.value]{profile.default_panel_count}[/]",
        "",
        "  [bold]Characters[/]",
    ]
    for c in profile.characters:
        ref = " [muted](ref)[/]" if c.reference_image else ""
        lines.append(f"    [character.name]{c.name}[/]{ref}: {_short(c.description, 60)}")
    if not profile.characters:
        lines.append("    [muted]none[/]")
    lines += ["", "  [bold]Environments[/]"]
    for e in profile.environments:
        lines.append(f"    [accent]{e.name}[/]: {_short(e.description, 60)}")
    if not profile.environments:
        lines.append("    [muted]none[/]")
    return Panel(
        "\n".join(lines),
        title=f"[bold]{profile.name}[/] [muted](ID: {profile.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def strips_table(strips: list) -> Table:
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("ID", style="muted")
    table.add_column("Sync code", style="sync.code")
    table.add_column("Series")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Panels", justify="right")
    table.add_column("Export", justify="center")
    table.add_column("Created", style="muted")
    for s in strips:
        table.add_row(
            s.id,
            s.ar_target_id,
            s.series_id,
            s.name,
            str(s.panel_count),
            "[success]yes[/]" if s.export_image else "[muted]-[/]",
            _when(s.created_at),
        )
    return table


def script_table(panels: list) -> Table:
    """Build a Rich Table of a panel script."""
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("#", style="page.num", justify="right")
    table.add_column("Visual")
    table.add_column("Dialogue")
    for p in panels:
        spoken = "\n".join(f"[character.name]{d.character}[/]: {d.text}" for d in p.dialogue)
        table.add_row(str(p.panel_number), p.visual_description, spoken or "[muted](silent)[/]")
    return table


def volume_tree(volume, pages: list) -> Tree:
    """Build a Rich Tree showing a volume's resolved page sequence.

    Args:
        volume: Volume model.
        pages: ResolvedPage list from volume.resolve_pages().
    """
    tree = Tree(
        f"[bold]{volume.title}[/] [muted]{volume.width}x{volume.height} "
        f"{volume.orientation.value}[/]"
    )
    if volume.cover_image:
        tree.add("[accent]cover[/]")
    for number, page in enumerate(pages, start=1):
        if page.strip is not None:
            tree.add(f"[page.num]p{number}[/] {page.strip.name} [muted]({page.strip.id})[/]")
        else:
            tree.add(f"[page.num]p{number}[/] [muted]external[/] {_short(page.external_url, 60)}")
    dangling = len(volume.page_order) - sum(1 for p in pages if p.strip is not None)
    if dangling:
        tree.add(f"[warning]{dangling} missing strip(s) skipped[/]")
    if not pages:
        tree.add("[muted]no pages[/]")
    return tree
