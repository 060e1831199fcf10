"""Pass input through to stdout while saving the collected aggregate."""

import typer
from pathlib import Path
from typing import Optional

from ..engine.collector import Collector
from ..engine.config import OutputFormat, resolve_chunk_size, resolve_format, resolve_objects
from ..engine.logging import setup_logging, log_step
from ..engine.streaming import StreamHandler, feed, render

app = typer.Typer()

@app.callback(invoke_without_command=True)
def tee(
    save: Path = typer.Option(..., "--save", "-s", help="File that receives the aggregate"),
    objects: Optional[bool] = typer.Option(None, "--objects/--binary", help="Collect JSON Lines values instead of raw bytes"),
    fmt: Optional[OutputFormat] = typer.Option(None, "--format", "-f", help="Format of the saved aggregate"),
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", help="Input file to read (defaults to stdin)"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Bytes per binary read"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Write JSONL execution log"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Stream every item to stdout as it arrives; save the aggregate at the end."""
    setup_logging(log_file, verbose)
    use_objects = resolve_objects(objects)
    try:
        output_format = resolve_format(fmt)
        size = resolve_chunk_size(chunk_size)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    passthrough = StreamHandler(objects=use_objects, buffer=False)
    saved = StreamHandler(stream=False, file=open(save, "wb"))

    collector = Collector(
        lambda err, value: saved.write(render(collector, value, output_format)),
        objects=use_objects,
    )
    collector.pipe(passthrough)

    with saved.capture():
        try:
            if input_file:
                with open(input_file, "rb") as source:
                    count = feed(collector, source, size)
            else:
                count = feed(collector, typer.get_binary_stream("stdin"), size)
        except ValueError as e:
            typer.echo(f"[tee] Invalid JSON line: {e}", err=True)
            raise typer.Exit(10)
        collector.end()

    if verbose:
        typer.echo(f"[tee] {count} items passed through, ended={passthrough.ended}", err=True)
    if log_file:
        log_step("tee", {"mode": collector.mode.value, "items": count, "save": save}, log_file)
