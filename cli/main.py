"""CLI entry point for the comicstudio production workspace.

Usage:
  comicstudio sessions list            show your workspaces
  comicstudio series list              show series in the active workspace
  comicstudio generate -p "..."        script, render and save a strip
  comicstudio volume export c1        export a series volume as PDF
  comicstudio --help                   all commands
"""

import asyncio
import logging
import mimetypes
import os
import sys
from pathlib import Path

# Ensure UTF-8 output on Windows so Rich can print any series text
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click

from cli.theme import (
    get_console,
    app_header,
    command_panel,
    success_panel,
    sessions_table,
    series_table,
    series_panel,
    strips_table,
    script_table,
    volume_tree,
)
from config.exceptions import ComicStudioError
from config.logging_config import setup_logging
from config.settings import IMAGE_MODELS, Settings
from models.enums import PageNumberPosition, RenderMode
from tools.image_utils import to_data_url
from workflow.callbacks import RichProgressCallback
from workspace import Workspace

console = get_console()
logger = logging.getLogger(__name__)


def _init_logging(verbose: bool, settings: Settings):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def _fail(message: str, code: int = 1):
    console.print(f"[error]{message}[/]")
    sys.exit(code)


def _read_image(path: Path) -> str:
    mime_type = mimetypes.guess_type(str(path))[0] or "image/png"
    return to_data_url(path.read_bytes(), mime_type)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--user", "-u", envvar="COMICSTUDIO_USER", default="local", show_default=True,
              help="Workspace owner id")
@click.pass_context
def cli(ctx, verbose, user):
    """comicstudio: AI comic strip production workspace.

    \b
    Typical flow:
      comicstudio series use c1
      comicstudio generate -p "The detective loses his hat" --bake --add-to-volume
      comicstudio volume export c1 --mode export
    """
    settings = Settings()
    _init_logging(verbose, settings)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["user"] = user


def _workspace(ctx) -> Workspace:
    if "workspace" not in ctx.obj:
        try:
            ctx.obj["workspace"] = Workspace.open(ctx.obj["user"], ctx.obj["settings"])
        except ComicStudioError as e:
            _fail(f"Cannot open workspace: {e}")
    return ctx.obj["workspace"]


# ---------------------------------------------------------------------------
# sessions
# ---------------------------------------------------------------------------

@cli.group()
def sessions():
    """Manage workspaces (chronicles)."""


@sessions.command(name="list")
@click.pass_context
def sessions_list(ctx):
    """List your workspaces; * marks the active one."""
    ws = _workspace(ctx)
    try:
        items = ws.list_sessions()
        console.print(sessions_table(items, ws.session.id))
    except ComicStudioError as e:
        _fail(str(e))


@sessions.command(name="new")
@click.argument("name", required=False)
@click.pass_context
def sessions_new(ctx, name):
    """Create a fresh workspace and switch to it."""
    ws = _workspace(ctx)
    try:
        session = ws.new_session(name)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Created[/] {session.name} [muted]({session.id})[/]")


@sessions.command(name="rename")
@click.argument("session_id")
@click.argument("name")
@click.pass_context
def sessions_rename(ctx, session_id, name):
    """Rename a workspace."""
    ws = _workspace(ctx)
    try:
        session = ws.rename_session(session_id, name)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Renamed[/] {session.id} -> {session.name}")


@sessions.command(name="switch")
@click.argument("session_id")
@click.pass_context
def sessions_switch(ctx, session_id):
    """Make another workspace active."""
    ws = _workspace(ctx)
    try:
        session = ws.switch_session(session_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Active:[/] {session.name} [muted]({session.id})[/]")


@sessions.command(name="delete")
@click.argument("session_id")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
@click.pass_context
def sessions_delete(ctx, session_id, force):
    """Delete a workspace (your last one cannot be deleted)."""
    ws = _workspace(ctx)
    if not force and not click.confirm(f"Delete workspace {session_id}?"):
        console.print("[muted]Cancelled[/]")
        return
    try:
        ws.delete_session(session_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Deleted[/] {session_id}")


@sessions.command(name="export")
@click.argument("session_id", required=False)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to a file instead of stdout")
@click.pass_context
def sessions_export(ctx, session_id, output):
    """Export a workspace (default: active) as a JSON document."""
    ws = _workspace(ctx)
    try:
        document = ws.export_session(session_id)
    except ComicStudioError as e:
        _fail(str(e))
    if output is None:
        click.echo(document)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(document, encoding="utf-8")
    console.print(f"[success]Exported to[/] {output}")


@sessions.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def sessions_import(ctx, path):
    """Import a workspace document as a new active workspace."""
    ws = _workspace(ctx)
    try:
        session = ws.import_session(path.read_text(encoding="utf-8"))
    except ComicStudioError as e:
        errors = getattr(e, "errors", [])
        console.print(f"[error]Import rejected: {e.message}[/]")
        for err in errors[:10]:
            console.print(f"  [muted]{err}[/]")
        sys.exit(1)
    console.print(success_panel("Imported", (
        f"  [stat.label]Name:[/] [stat.value]{session.name}[/]\n"
        f"  [stat.label]ID:[/] {session.id}\n"
        f"  [stat.label]Strips:[/] [stat.value]{len(session.snapshot.strips)}[/]"
    )))


# ---------------------------------------------------------------------------
# series
# ---------------------------------------------------------------------------

@cli.group()
def series():
    """Browse and edit comic series."""


@series.command(name="list")
@click.pass_context
def series_list(ctx):
    """List series; * marks the active one."""
    ws = _workspace(ctx)
    console.print(series_table(ws.snapshot.series_profiles, ws.snapshot.active_series_id))


@series.command(name="show")
@click.argument("series_id", required=False)
@click.pass_context
def series_show(ctx, series_id):
    """Show a series (default: active) with its cast and locations."""
    ws = _workspace(ctx)
    try:
        console.print(series_panel(ws.series(series_id)))
    except ComicStudioError as e:
        _fail(str(e))


@series.command(name="use")
@click.argument("series_id")
@click.pass_context
def series_use(ctx, series_id):
    """Set the active series."""
    ws = _workspace(ctx)
    try:
        profile = ws.set_active_series(series_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Active series:[/] {profile.name}")


@series.command(name="add-character")
@click.argument("series_id")
@click.argument("name")
@click.option("--description", "-d", default="", help="Visual description")
@click.option("--image", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Reference image file")
@click.pass_context
def series_add_character(ctx, series_id, name, description, image):
    """Add a recurring character to a series."""
    ws = _workspace(ctx)
    try:
        ref = ws.add_character(series_id, name, description, _read_image(image) if image else None)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Added character[/] {ref.name} [muted]({ref.id})[/]")


@series.command(name="add-environment")
@click.argument("series_id")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Visual description")
@click.option("--describe", is_flag=True, help="Write the description with the AI from the name")
@click.pass_context
def series_add_environment(ctx, series_id, name, description, describe):
    """Add a recurring location to a series."""
    ws = _workspace(ctx)
    try:
        if describe and not description:
            description = _describe(ctx, name)
        ref = ws.add_environment(series_id, name, description or "")
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Added environment[/] {ref.name}: {ref.description}")


def _describe(ctx, theme: str) -> str:
    from agents.script_agent import ScriptAgent

    agent = ScriptAgent(settings=ctx.obj["settings"])
    with console.status("[dim]Describing...[/]"):
        return asyncio.run(agent.describe_environment(theme))


@series.command(name="describe-environment")
@click.argument("theme")
@click.pass_context
def series_describe_environment(ctx, theme):
    """Print an AI-written description for a location theme."""
    try:
        console.print(_describe(ctx, theme))
    except ComicStudioError as e:
        _fail(str(e))


# ---------------------------------------------------------------------------
# generate command
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--series", "-s", "series_id", default=None, help="Series id (default: active series)")
@click.option("--prompt", "-p", default="", help="Plot for the strip")
@click.option("--random", "randomize", is_flag=True, help="Ignore the prompt and invent a situation")
@click.option("--panels", "-n", type=int, default=None, help="Panel count (default: series setting)")
@click.option("--name", default=None, help="Strip name")
@click.option("--model", type=click.Choice(IMAGE_MODELS), default=None, help="Image model")
@click.option("--bake", is_flag=True, help="Also produce the text-free export image")
@click.option("--add-to-volume", is_flag=True, help="Append the saved strip to the series volume")
@click.option("--csv", "csv_dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Also write the dialogue sheet to this directory")
@click.option("--assets-zip", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also archive the master images of this run")
@click.pass_context
def generate(ctx, series_id, prompt, randomize, panels, name, model, bake, add_to_volume, csv_dir,
             assets_zip):
    """Script, render, optionally bake, and save one strip.

    Example:
      comicstudio generate -s c1 -p "The detective loses his hat" --bake
    """
    from workflow.pipeline import GenerationPipeline

    if not prompt and not randomize:
        _fail("Give a --prompt or use --random")

    settings = ctx.obj["settings"]
    ws = _workspace(ctx)
    try:
        profile = ws.series(series_id)
    except ComicStudioError as e:
        _fail(str(e))

    console.print(app_header())
    console.print()
    console.print(command_panel("Generate strip", {
        "Series": f"{profile.name} ({profile.id})",
        "Plot": "random" if randomize else prompt,
        "Panels": str(profile.default_panel_count if panels is None else panels),
        "Model": model or settings.image_model,
    }))
    console.print()

    cb = RichProgressCallback(console=console)
    pipeline = GenerationPipeline(profile, settings=settings, callback=cb)
    pipeline.art_model = model

    async def _run():
        await pipeline.generate(prompt, panels, randomize)
        if bake:
            await pipeline.bake()

    try:
        with cb:
            asyncio.run(_run())
        strip = ws.save_strip(pipeline, name)
        if add_to_volume:
            ws.add_page(profile.id, strip.id)
    except KeyboardInterrupt:
        console.print("\n[warning]Interrupted[/]")
        sys.exit(130)
    except ComicStudioError as e:
        console.print(f"\n[error]Generation failed: {e}[/]")
        logger.debug("Generation failed", exc_info=True)
        sys.exit(1)

    console.print(script_table(strip.panel_script))
    console.print(success_panel("Strip saved", (
        f"  [stat.label]ID:[/] {strip.id}\n"
        f"  [stat.label]Sync code:[/] [sync.code]{strip.ar_target_id}[/]\n"
        f"  [stat.label]Export image:[/] {'yes' if strip.export_image else 'no'}\n"
        + _usage_line(pipeline)
    )))
    if csv_dir is not None:
        from publisher.csv_export import export_dialogue_csv

        path = export_dialogue_csv(strip.name, strip.panel_script, csv_dir)
        console.print(f"Dialogue sheet: [info]{path}[/]")
    if assets_zip is not None:
        from publisher.bundle import export_session_assets

        try:
            path = export_session_assets(pipeline.session_assets, assets_zip)
        except ComicStudioError as e:
            _fail(str(e))
        console.print(f"Session assets: [info]{path}[/]")


# ---------------------------------------------------------------------------
# strips
# ---------------------------------------------------------------------------

@cli.group()
def strips():
    """Browse and rework saved strips."""


@strips.command(name="list")
@click.option("--series", "-s", "series_id", default=None, help="Only strips of this series")
@click.pass_context
def strips_list(ctx, series_id):
    """List saved strips, newest first."""
    ws = _workspace(ctx)
    items = ws.strips(series_id)
    if not items:
        console.print("[muted]No strips saved yet[/]")
        return
    console.print(strips_table(items))


@strips.command(name="csv")
@click.argument("strip_id")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory for the CSV (default: export dir)")
@click.pass_context
def strips_csv(ctx, strip_id, output_dir):
    """Write the dialogue sheet of a saved strip."""
    from publisher.csv_export import export_dialogue_csv

    ws = _workspace(ctx)
    try:
        strip = ws.strip(strip_id)
    except ComicStudioError as e:
        _fail(str(e))
    path = export_dialogue_csv(strip.name, strip.panel_script, output_dir or ctx.obj["settings"].export_dir)
    console.print(f"[success]Wrote[/] {path}")


def _usage_line(pipeline) -> str:
    usage = pipeline.usage_summary()
    return f"  [stat.label]AI calls:[/] {usage['script_calls']} script, {usage['image_calls']} image"


def _strip_pipeline(ctx, ws: Workspace, strip_id: str, model, cb):
    from workflow.pipeline import GenerationPipeline

    try:
        profile = ws.series(ws.strip(strip_id).series_id)
    except ComicStudioError as e:
        _fail(str(e))
    pipeline = GenerationPipeline(profile, settings=ctx.obj["settings"], callback=cb)
    pipeline.art_model = model
    return pipeline


def _run_strip_action(cb, action):
    try:
        with cb:
            return asyncio.run(action())
    except KeyboardInterrupt:
        console.print("\n[warning]Interrupted[/]")
        sys.exit(130)
    except ComicStudioError as e:
        console.print(f"\n[error]Failed: {e}[/]")
        logger.debug("Strip action failed", exc_info=True)
        sys.exit(1)


@strips.command(name="bake")
@click.argument("strip_id")
@click.option("--model", type=click.Choice(IMAGE_MODELS), default=None, help="Image model")
@click.pass_context
def strips_bake(ctx, strip_id, model):
    """Produce the text-free export image of a saved strip, in place."""
    ws = _workspace(ctx)
    cb = RichProgressCallback(console=console)
    pipeline = _strip_pipeline(ctx, ws, strip_id, model, cb)
    strip = _run_strip_action(cb, lambda: ws.bake_strip(pipeline, strip_id))
    console.print(success_panel("Export image attached", (
        f"  [stat.label]ID:[/] {strip.id}\n"
        f"  [stat.label]Sync code:[/] [sync.code]{strip.ar_target_id}[/]\n"
        + _usage_line(pipeline)
    )))


@strips.command(name="regenerate")
@click.argument("strip_id")
@click.option("--name", default=None, help="Name of the new strip (default: same name)")
@click.option("--model", type=click.Choice(IMAGE_MODELS), default=None, help="Image model")
@click.option("--bake", is_flag=True, help="Also produce the text-free export image")
@click.option("--add-to-volume", is_flag=True, help="Append the new strip to the series volume")
@click.pass_context
def strips_regenerate(ctx, strip_id, name, model, bake, add_to_volume):
    """Re-render a saved strip from its script and save it as a new strip."""
    ws = _workspace(ctx)
    cb = RichProgressCallback(console=console)
    pipeline = _strip_pipeline(ctx, ws, strip_id, model, cb)
    strip = _run_strip_action(cb, lambda: ws.regenerate_strip(pipeline, strip_id, name, bake))
    if add_to_volume:
        ws.add_page(strip.series_id, strip.id)
    console.print(success_panel("Strip saved", (
        f"  [stat.label]ID:[/] {strip.id}\n"
        f"  [stat.label]From:[/] {strip_id}\n"
        f"  [stat.label]Export image:[/] {'yes' if strip.export_image else 'no'}\n"
        + _usage_line(pipeline)
    )))


# ---------------------------------------------------------------------------
# volume
# ---------------------------------------------------------------------------

@cli.group()
def volume():
    """Assemble and export series volumes."""


@volume.command(name="show")
@click.argument("series_id", required=False)
@click.pass_context
def volume_show(ctx, series_id):
    """Show a volume's page sequence."""
    ws = _workspace(ctx)
    try:
        vol = ws.volume(series_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(volume_tree(vol, vol.resolve_pages(ws.asset_store())))
    console.print(
        f"[stat.label]Page numbers:[/] "
        f"{vol.page_number_position.value if vol.show_page_numbers else 'off'}  "
        f"[stat.label]Logo:[/] {'yes' if vol.logo_image else 'no'}"
    )


@volume.command(name="read")
@click.argument("series_id")
@click.pass_context
def volume_read(ctx, series_id):
    """List the pages a reader would page through."""
    ws = _workspace(ctx)
    try:
        pages = ws.reader_pages(series_id)
    except ComicStudioError as e:
        _fail(str(e))
    for number, page in enumerate(pages, start=1):
        label = page.strip.name if page.strip is not None else page.external_url
        console.print(f"[page.num]{number:>3}[/] {label}")


@volume.command(name="add")
@click.argument("series_id")
@click.argument("strip_id")
@click.pass_context
def volume_add(ctx, series_id, strip_id):
    """Append a saved strip to a volume (no-op if already bound)."""
    ws = _workspace(ctx)
    try:
        vol = ws.add_page(series_id, strip_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Volume has {len(vol.page_order)} page(s)[/]")


@volume.command(name="remove")
@click.argument("series_id")
@click.argument("strip_id")
@click.pass_context
def volume_remove(ctx, series_id, strip_id):
    """Remove a strip from a volume."""
    ws = _workspace(ctx)
    try:
        vol = ws.remove_page(series_id, strip_id)
    except ComicStudioError as e:
        _fail(str(e))
    console.print(f"[success]Volume has {len(vol.page_order)} page(s)[/]")


@volume.command(name="move")
@click.argument("series_id")
@click.argument("from_index", type=int)
@click.argument("to_index", type=int)
@click.pass_context
def volume_move(ctx, series_id, from_index, to_index):
    """Move the page at FROM_INDEX to TO_INDEX (0-based)."""
    ws = _workspace(ctx)
    try:
        vol = ws.move_page(series_id, from_index, to_index)
    except IndexError as e:
        _fail(str(e))
    except ComicStudioError as e:
        _fail(str(e))
    console.print(volume_tree(vol, vol.resolve_pages(ws.asset_store())))


@volume.command(name="settings")
@click.argument("series_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--width", type=int, default=None, help="Page width in px")
@click.option("--height", type=int, default=None, help="Page height in px")
@click.option("--page-numbers/--no-page-numbers", default=None, help="Show page numbers")
@click.option("--position", type=click.Choice([p.value for p in PageNumberPosition]), default=None,
              help="Page number position")
@click.option("--external", multiple=True, help="External page URL (repeatable, replaces the list)")
@click.option("--clear-external", is_flag=True, help="Remove all external pages")
@click.option("--logo", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Logo image file")
@click.option("--clear-logo", is_flag=True, help="Remove the logo")
@click.pass_context
def volume_settings(ctx, series_id, title, description, width, height, page_numbers, position,
                    external, clear_external, logo, clear_logo):
    """Update a volume's title, canvas, logo, external pages or page numbers."""
    ws = _workspace(ctx)
    external_pages = list(external) if external else ([] if clear_external else None)
    logo_image = _read_image(logo) if logo else ("" if clear_logo else None)
    try:
        vol = ws.update_volume(
            series_id,
            title=title,
            description=description,
            width=width,
            height=height,
            show_page_numbers=page_numbers,
            page_number_position=position,
            external_pages=external_pages,
            logo_image=logo_image,
        )
    except ComicStudioError as e:
        _fail(str(e))
    console.print(command_panel(vol.title, {
        "Canvas": f"{vol.width}x{vol.height} ({vol.orientation.value})",
        "Page numbers": vol.page_number_position.value if vol.show_page_numbers else "off",
        "External pages": str(len(vol.external_pages)),
        "Logo": "yes" if vol.logo_image else "no",
    }))


@volume.command(name="cover")
@click.argument("series_id")
@click.option("--prompt", "-p", default=None, help="Cover directive")
@click.option("--model", type=click.Choice(IMAGE_MODELS), default=None, help="Image model")
@click.option("--image", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Use an existing image instead of generating")
@click.pass_context
def volume_cover(ctx, series_id, prompt, model, image):
    """Generate (or set) the cover of a volume."""
    from workflow.cover import CoverGenerator

    ws = _workspace(ctx)
    try:
        if image is not None:
            ws.set_cover(series_id, _read_image(image))
        else:
            cb = RichProgressCallback(console=console)
            generator = CoverGenerator(settings=ctx.obj["settings"], callback=cb)
            with cb:
                asyncio.run(ws.generate_cover(series_id, generator, prompt, model))
    except ComicStudioError as e:
        _fail(f"Cover failed: {e}")
    console.print("[success]Cover updated[/]")


@volume.command(name="export")
@click.argument("series_id")
@click.option("--mode", "-m", type=click.Choice(["master", "export", "bundle"]), default="master",
              show_default=True, help="PDF from master or export images, or a flat ZIP bundle")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Output directory (default: export dir)")
@click.pass_context
def volume_export(ctx, series_id, mode, output_dir):
    """Export a volume as a PDF or a ZIP bundle."""
    ws = _workspace(ctx)
    try:
        with console.status("[dim]Assembling...[/]"):
            if mode == "bundle":
                path = ws.export_bundle(series_id, output_dir)
            else:
                path = ws.export_pdf(series_id, RenderMode(mode), output_dir)
    except ComicStudioError as e:
        console.print(f"[error]Export failed: {e.message}[/]")
        for failure in getattr(e, "failures", [])[:10]:
            console.print(f"  [muted]{failure}[/]")
        sys.exit(1)
    console.print(f"[success]Wrote[/] {path}")


if __name__ == "__main__":
    cli()
