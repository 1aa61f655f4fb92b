import logging
import os
from typing import Annotated

import typer
from rich.logging import RichHandler

from apicize_extract.cli.extract import extract, metadata, stats

app = typer.Typer(
    name="apicize-extract",
    help="Apicize extract CLI: recover suites, tests and metadata from TypeScript API tests.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    level = "DEBUG" if verbose else os.getenv("APICIZE_EXTRACT_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


app.command("extract")(extract)
app.command("metadata")(metadata)
app.command("stats")(stats)


def main() -> None:
    app()
