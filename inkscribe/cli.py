"""
inkscribe.cli - Typer CLI entry point.

Thin host around the transcription pipeline: runs it on a worker thread
and renders its progress channel with rich.
"""

from __future__ import annotations

import json
import queue
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from inkscribe import __version__
from inkscribe.config import (
    AUDIO_FORMATS,
    CONFIG_FILENAME,
    LANGUAGES,
    MODELS,
    VIDEO_FORMATS,
    InkscribeConfig,
    TranscribeOptions,
    create_default_config,
    load_config,
    write_config,
)
from inkscribe.exceptions import (
    CancelledError,
    ConfigError,
    InkscribeError,
    ToolUnavailableError,
)
from inkscribe.logging import configure_logging
from inkscribe.models import TranscriptionResult
from inkscribe.pipeline import TranscriptionPipeline
from inkscribe.transcribe.engine import is_model_downloaded, resolve_model_path
from inkscribe.utils import format_size

T = TypeVar("T")

app = typer.Typer(
    name="inkscribe",
    help="Transcribe audio and video files with Whisper.\n\n"
    "Long files are split into chunks; audio can be sped up before "
    "transcription to trade fidelity for speed.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"inkscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Inkscribe - chunked Whisper transcription."""
    configure_logging(verbose)


def _load_config(config_path: str | None) -> InkscribeConfig:
    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _build_options(
    config: InkscribeConfig,
    model: str | None,
    language: str | None,
    timestamps: bool,
    speed: float,
) -> TranscribeOptions:
    try:
        return config.options(
            model=model,
            language=language,
            include_timestamps=timestamps,
            speed=speed,
        )
    except ValidationError as e:
        message = e.errors()[0]["msg"].removeprefix("Value error, ")
        console.print(f"[red]Error: {message}[/red]")
        raise typer.Exit(1)


def _run_with_progress(
    pipeline: TranscriptionPipeline,
    job: Callable[[threading.Event], T],
    echo_text: bool,
) -> T:
    """Run a pipeline job on a worker thread while rendering its events.

    Ctrl-C requests cancellation; the job stops at the next chunk boundary.
    """
    cancel = threading.Event()
    outcome: dict[str, object] = {}

    def worker() -> None:
        try:
            outcome["result"] = job(cancel)
        except BaseException as e:
            outcome["error"] = e
        finally:
            pipeline.channel.close()

    thread = threading.Thread(target=worker, name="inkscribe-pipeline", daemon=True)

    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=1.0)
        thread.start()
        while True:
            try:
                event = pipeline.channel.get(timeout=0.1)
            except queue.Empty:
                continue
            except KeyboardInterrupt:
                cancel.set()
                progress.console.print("[yellow]Cancelling after the current chunk...[/yellow]")
                continue
            if event is None:
                break
            progress.update(task, completed=event.progress, description=event.message)
            if echo_text and event.chunk_text:
                progress.console.print(event.chunk_text)

    thread.join()
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["result"]  # type: ignore[return-value]


def _write_output(result: TranscriptionResult, output: Path, source: str) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".json":
        data = {"source": source, **result.to_dict()}
        output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    else:
        output.write_text(result.text + "\n", encoding="utf-8")


def _print_summary(result: TranscriptionResult) -> None:
    info = result.audio_info
    duration = info.duration_str if info else "-"
    console.print(
        f"\n[green]✓[/green] Transcribed {duration} of audio in "
        f"{result.processing_time:.1f}s "
        f"[dim](language: {result.detected_language or 'unknown'}, "
        f"{result.word_count} words)[/dim]"
    )


def _report_error(error: InkscribeError) -> None:
    if isinstance(error, CancelledError):
        console.print(f"[yellow]{error}[/yellow]")
    elif isinstance(error, ToolUnavailableError):
        console.print(f"[red]Error: {error.tool} {error.message}[/red]")
        if error.install_hint:
            console.print(f"[dim]{error.install_hint}[/dim]")
    else:
        console.print(f"[red]Error: {error}[/red]")


@app.command("transcribe")
def transcribe(
    file: str = typer.Argument(..., help="Audio or video file to transcribe"),
    model: str | None = typer.Option(None, "--model", "-m", help="Whisper model"),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Language code or 'auto'"
    ),
    timestamps: bool = typer.Option(
        False, "--timestamps", "-t", help="Prefix segments with [HH:MM:SS]"
    ),
    speed: float = typer.Option(
        1.0, "--speed", "-s", help="Speed up audio before transcribing (1.0-2.0)"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write transcript to file (.json for full result)"
    ),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Transcribe a local audio or video file."""
    config = _load_config(config_path)
    options = _build_options(config, model, language, timestamps, speed)
    pipeline = TranscriptionPipeline(config)
    source = Path(file).expanduser()

    try:
        result = _run_with_progress(
            pipeline,
            lambda cancel: pipeline.transcribe_file(source, options, cancel),
            echo_text=output is None,
        )
    except InkscribeError as e:
        _report_error(e)
        raise typer.Exit(1)

    if output:
        _write_output(result, Path(output), str(source))
        console.print(f"[dim]  Wrote {output}[/dim]")
    _print_summary(result)


@app.command("url")
def transcribe_url(
    url: str = typer.Argument(..., help="Remote media URL"),
    model: str | None = typer.Option(None, "--model", "-m", help="Whisper model"),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Language code or 'auto'"
    ),
    timestamps: bool = typer.Option(
        False, "--timestamps", "-t", help="Prefix segments with [HH:MM:SS]"
    ),
    speed: float = typer.Option(
        1.0, "--speed", "-s", help="Speed up audio before transcribing (1.0-2.0)"
    ),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write transcript to file (.json for full result)"
    ),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Download remote media with yt-dlp and transcribe it."""
    config = _load_config(config_path)
    options = _build_options(config, model, language, timestamps, speed)
    pipeline = TranscriptionPipeline(config)

    try:
        result, title = _run_with_progress(
            pipeline,
            lambda cancel: pipeline.transcribe_url(url, options, cancel),
            echo_text=output is None,
        )
    except InkscribeError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(f"[cyan]{title}[/cyan]")
    if output:
        _write_output(result, Path(output), title)
        console.print(f"[dim]  Wrote {output}[/dim]")
    _print_summary(result)


@app.command("formats")
def list_formats() -> None:
    """List supported input formats."""
    table = Table(title="Supported Formats")
    table.add_column("Kind", style="cyan")
    table.add_column("Extensions", style="green")
    table.add_row("Audio", ", ".join(AUDIO_FORMATS))
    table.add_row("Video", ", ".join(VIDEO_FORMATS))
    console.print(table)


@app.command("languages")
def list_languages() -> None:
    """List languages that can be forced instead of auto-detection."""
    table = Table(title="Languages")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="green")
    table.add_row("auto", "Auto-detect")
    for code, name in LANGUAGES.items():
        table.add_row(code, name)
    console.print(table)


@app.command("models")
def list_models(
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List models and whether they are present in the models directory."""
    config = _load_config(config_path)

    table = Table(title=f"Models ({config.models_dir})")
    table.add_column("Model", style="cyan")
    table.add_column("Size", style="green")
    table.add_column("Status", style="yellow")

    for name in MODELS:
        if is_model_downloaded(name, config.models_dir):
            model_dir = resolve_model_path(name, config.models_dir)
            size = sum(p.stat().st_size for p in model_dir.rglob("*") if p.is_file())
            table.add_row(name, format_size(size), "[green]✓ Downloaded[/green]")
        else:
            table.add_row(name, "-", "[dim]Not downloaded[/dim]")

    console.print(table)


@app.command("init-config")
def init_config(
    path: str = typer.Argument(CONFIG_FILENAME, help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    config_file = Path(path)
    if config_file.exists() and not force:
        console.print(f"[red]Error: '{config_file}' already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_file)
    console.print(f"[green]✓[/green] Wrote {config_file}")
