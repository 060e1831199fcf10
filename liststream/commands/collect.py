"""Collect a stream into one aggregate value."""

import typer
from pathlib import Path
from typing import Optional

from ..engine.collector import Collector
from ..engine.config import OutputFormat, resolve_chunk_size, resolve_format, resolve_objects
from ..engine.logging import setup_logging, log_step
from ..engine.streaming import StreamHandler, feed, render

app = typer.Typer()

@app.callback(invoke_without_command=True)
def collect(
    objects: Optional[bool] = typer.Option(
        None,
        "--objects/--binary",
        help="Collect JSON Lines values instead of raw bytes",
    ),
    fmt: Optional[OutputFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format (default: raw)",
    ),
    input_file: Optional[Path] = typer.Option(
        None,
        "--input",
        "-i",
        help="Input file to read (defaults to stdin)",
    ),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the aggregate here instead of stdout",
    ),
    chunk_size: Optional[int] = typer.Option(
        None,
        "--chunk-size",
        help="Bytes per binary read",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log",
        help="Write JSONL execution log",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Read all input, then write the collected aggregate once."""
    setup_logging(log_file, verbose)
    use_objects = resolve_objects(objects)
    try:
        output_format = resolve_format(fmt)
        size = resolve_chunk_size(chunk_size)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    def on_complete(err, value):
        handler.write(render(collector, value, output_format))

    collector = Collector(on_complete, objects=use_objects)

    # input first, so a missing input never leaves an output file behind
    source = open(input_file, "rb") if input_file else typer.get_binary_stream("stdin")
    try:
        handler = StreamHandler(
            stream=output_file is None,
            file=open(output_file, "wb") if output_file else None,
        )
        with handler.capture():
            try:
                count = feed(collector, source, size)
            except ValueError as e:
                typer.echo(f"[collect] Invalid JSON line: {e}", err=True)
                raise typer.Exit(10)
            collector.end()
    finally:
        if input_file:
            source.close()

    if verbose:
        typer.echo(f"[collect] {count} items ({collector.mode.value})", err=True)
    if log_file:
        log_step(
            "collect",
            {
                "mode": collector.mode.value,
                "items": count,
                "format": output_format.value,
                "output": output_file,
            },
            log_file,
        )
