"""docensemble merge — reconcile two saved extraction records offline."""
from __future__ import annotations

from pathlib import Path

import typer

from docensemble.core.enums import DocumentType


def merge(
    fast: Path | None = typer.Option(  # noqa: B008
        None, "--fast", help="Fast-model record JSON (omit if the fast model failed)."
    ),
    expert: Path | None = typer.Option(  # noqa: B008
        None, "--expert", help="Expert-model record JSON (omit if not run or failed)."
    ),
    document_type: DocumentType = typer.Option(  # noqa: B008
        DocumentType.INVOICE, "--type", "-t", help="Document type of both records."
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="models.yaml config file (weights, penalties)."
    ),
    output: Path | None = typer.Option(  # noqa: B008
        None, "--output", "-o", help="Write the consensus result to this JSON file."
    ),
) -> None:
    """Reconcile two records field by field and report conflicts."""
    from docensemble.cli.output import print_consensus  # noqa: PLC0415
    from docensemble.config import load_config, load_default_config  # noqa: PLC0415
    from docensemble.core.exceptions import (  # noqa: PLC0415
        RecordParseError,
        UnsupportedFormatError,
    )
    from docensemble.ensemble.consensus import ConsensusEngine  # noqa: PLC0415
    from docensemble.io.readers import read_record  # noqa: PLC0415
    from docensemble.io.writers import write_consensus  # noqa: PLC0415

    cfg = load_config(config) if config else load_default_config()
    engine = ConsensusEngine.from_config(cfg)

    try:
        fast_record = read_record(fast, document_type) if fast else None
        expert_record = read_record(expert, document_type) if expert else None
    except (UnsupportedFormatError, RecordParseError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    consensus = engine.merge(fast_record, expert_record)
    print_consensus(consensus)

    if output is not None:
        out_path = write_consensus(consensus, output)
        typer.echo(f"[merge] Result saved to {out_path}")

    report = consensus.report_or_none()
    if report is not None and report.has_critical:
        raise typer.Exit(code=3)
