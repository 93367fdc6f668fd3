"""docensemble CLI — Typer application."""
from __future__ import annotations

import typer

from docensemble.cli.extract_cmd import extract
from docensemble.cli.merge_cmd import merge

app = typer.Typer(
    name="docensemble",
    help="docensemble: dual-model document extraction with field-level consensus.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """docensemble: dual-model document extraction with field-level consensus."""


app.command(name="extract")(extract)
app.command(name="merge")(merge)
