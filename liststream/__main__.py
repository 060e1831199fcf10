"""CLI entry point for the liststream package."""

import typer

app = typer.Typer(
    name="liststream",
    help="Collect a stream of chunks or JSON values into a list",
    add_completion=False,
)

# Import commands
from liststream.commands.collect import app as collect_app
from liststream.commands.tee import app as tee_app

# Register subcommands
app.add_typer(collect_app, name="collect")
app.add_typer(tee_app, name="tee")

def main():
    """Entry point for the liststream CLI."""
    app()

if __name__ == "__main__":
    main()
