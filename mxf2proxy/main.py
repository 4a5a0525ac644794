import typer
from pathlib import Path
from typing import Optional, List

from pydantic import ValidationError
from rich.console import Console

from mxf2proxy.config.loader import load_config
from mxf2proxy.config.models import AppConfig
from mxf2proxy.config.settings_store import SettingsStore
from mxf2proxy.domain.models import DuplicateVerdict
from mxf2proxy.infrastructure.logging import setup_logging
from mxf2proxy.infrastructure.event_bus import EventBus
from mxf2proxy.infrastructure.file_scanner import FileScanner
from mxf2proxy.infrastructure.ffprobe import FFprobeAdapter
from mxf2proxy.infrastructure.lut_library import LutLibrary
from mxf2proxy.infrastructure.prepass import FFmpegPrepass
from mxf2proxy.infrastructure.subprocess_runner import SubprocessRunner
from mxf2proxy.pipeline.batch import BatchOrchestrator
from mxf2proxy.pipeline.clip_converter import ClipConverter
from mxf2proxy.pipeline.counter import OutstandingClips
from mxf2proxy.pipeline.job_queue import JobQueueManager
from mxf2proxy.pipeline.negotiator import DuplicateNegotiator
from mxf2proxy.ui.manager import UIManager
from mxf2proxy.ui.prompts import ConsolePrompter, ScriptedPrompter
from mxf2proxy.ui.state import UIState

app = typer.Typer(help="mxf2proxy - MXF/MOV proxy batch converter")

DEFAULT_SETTINGS_PATH = Path("~/.mxf2proxy/settings.yaml")
WATERMARK_CHOICES = ("none", "default", "custom")


def _load_app_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is None:
        return AppConfig()
    return load_config(config_path)


@app.command()
def convert(
    sources: List[Path] = typer.Argument(..., help="Folders or MXF/MOV files to convert"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    settings_path: Path = typer.Option(DEFAULT_SETTINGS_PATH, "--settings", help="Path to persisted settings"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="Output container: mov or mxf"),
    lut: Optional[bool] = typer.Option(None, "--lut/--no-lut", help="Enable/disable the LUT stage"),
    lut_file: Optional[str] = typer.Option(None, "--lut-file", help="LUT name in the library or absolute path"),
    watermark: Optional[str] = typer.Option(None, "--watermark", help="Watermark: none, default or custom"),
    text: Optional[str] = typer.Option(None, "--text", help="Custom watermark text"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not prompt; use defaults and --on-duplicate"),
    destination: Optional[Path] = typer.Option(None, "--destination", "-d", help="Destination directory (with --yes)"),
    on_duplicate: str = typer.Option("skip", "--on-duplicate", help="Verdict for existing outputs (with --yes)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Queue sources and convert every clip to a proxy."""
    console = Console()
    queue = None

    missing = [str(s) for s in sources if not s.exists()]
    if missing:
        typer.secho(f"Error: {', '.join(missing)} does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        config = _load_app_config(config_path)
        if debug: config.general.debug = True

        try:
            verdict = DuplicateVerdict(on_duplicate)
        except ValueError:
            choices = ", ".join(v.value for v in DuplicateVerdict)
            typer.secho(f"Error: --on-duplicate must be one of: {choices}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        if watermark is not None and watermark not in WATERMARK_CHOICES:
            typer.secho(f"Error: --watermark must be one of: {', '.join(WATERMARK_CHOICES)}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

        store = SettingsStore(settings_path, defaults=config.settings)
        watermark_mode = watermark if watermark != "none" else None
        if output_format is not None or watermark_mode is not None:
            store.remember_output(output_format=output_format, watermark_mode=watermark_mode)
        changes = {}
        if lut is not None: changes["lut_enabled"] = lut
        if lut_file is not None: changes["lut_file"] = lut_file
        if text is not None: changes["watermark_text"] = text
        if watermark is not None: changes["watermark_enabled"] = watermark != "none"
        if changes:
            store.update(**changes)

        log_path = Path(config.general.log_path) if config.general.log_path else None
        logger = setup_logging(log_path, debug=config.general.debug)
        settings = store.snapshot()
        logger.info(
            f"Config: format={settings.output_format}, lut={settings.lut_enabled}, "
            f"watermark={settings.watermark_enabled}/{settings.watermark_mode}, ffmpeg={config.general.ffmpeg_path}"
        )

        bus = EventBus()
        ui_state = UIState(activity_feed_max_items=config.ui.activity_feed_max_items)
        UIManager(bus, ui_state, console=console)

        if yes:
            prompter = ScriptedPrompter(duplicate_verdict=verdict, destination=destination)
        else:
            prompter = ConsolePrompter(console)

        runner = SubprocessRunner()
        scanner = FileScanner(extensions=config.general.extensions)
        counter = OutstandingClips(bus)
        converter = ClipConverter(
            config=config.general,
            runner=runner,
            prepass=FFmpegPrepass(runner, ffmpeg_path=config.general.ffmpeg_path),
            negotiator=DuplicateNegotiator(prompter),
            counter=counter,
            event_bus=bus,
        )
        orchestrator = BatchOrchestrator(
            config=config.general,
            settings_store=store,
            prompter=prompter,
            file_scanner=scanner,
            ffprobe_adapter=FFprobeAdapter(config.general.ffprobe_path),
            clip_converter=converter,
            lut_library=LutLibrary(Path(config.general.lut_dir)),
            event_bus=bus,
        )
        queue = JobQueueManager(orchestrator, scanner, counter, bus)

        for source in sources:
            if not queue.submit(source):
                console.print(f"[dim]Already queued: {source}[/dim]")

        queue.wait_until_idle()
        console.print(
            f"Done: {ui_state.completed_count} converted, {ui_state.failed_count} failed, "
            f"{ui_state.skipped_count} skipped (items in queue: {queue.outstanding_clips})"
        )

    except KeyboardInterrupt:
        typer.secho("\nStopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        if queue is not None:
            queue.shutdown()
            typer.secho("Waiting for the running encode to finish...", fg=typer.colors.YELLOW)
            queue.join()
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except (FileNotFoundError, ValidationError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command()
def luts(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
):
    """List the LUTs available in the library."""
    config = _load_app_config(config_path)
    library = LutLibrary(Path(config.general.lut_dir))
    names = library.available()
    if not names:
        typer.echo(f"No LUTs in {library.directory}")
        return
    for name in names:
        typer.echo(name)


@app.command("add-lut")
def add_lut(
    lut_path: Path = typer.Argument(..., help=".cube file to copy into the library"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    settings_path: Path = typer.Option(DEFAULT_SETTINGS_PATH, "--settings", help="Path to persisted settings"),
):
    """Copy a LUT into the library and select it."""
    if not lut_path.is_file():
        typer.secho(f"Error: {lut_path} does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    config = _load_app_config(config_path)
    library = LutLibrary(Path(config.general.lut_dir))
    try:
        name = library.add(lut_path)
    except (OSError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    SettingsStore(settings_path, defaults=config.settings).update(lut_file=name, lut_enabled=True)
    typer.echo(f"Selected LUT: {name}")


if __name__ == "__main__":
    app()
