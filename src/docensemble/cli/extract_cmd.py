"""docensemble extract — run both agents over a document and reconcile."""
from __future__ import annotations

from pathlib import Path

import typer

from docensemble.core.enums import DocumentType


def extract(
    pages: list[Path] = typer.Argument(  # noqa: B008
        ..., help="Page images of ONE document, in page order."
    ),
    document_type: DocumentType = typer.Option(  # noqa: B008
        DocumentType.INVOICE, "--type", "-t", help="Document type to extract."
    ),
    sequential: bool = typer.Option(  # noqa: B008
        False, "--sequential", help="Run the fast model first; expert only as fallback."
    ),
    max_agents: int | None = typer.Option(  # noqa: B008
        None, "--max-agents", min=1, help="Concurrent agent calls for this document."
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="models.yaml config file."
    ),
    output: Path = typer.Option(  # noqa: B008
        Path("results") / "consensus.json", "--output", "-o", help="Output JSON path."
    ),
    dry_run: bool = typer.Option(  # noqa: B008
        False, "--dry-run", help="Validate inputs without calling any model."
    ),
) -> None:
    """Extract one document with both models and write the consensus JSON."""
    from docensemble.config import load_config, load_default_config  # noqa: PLC0415
    from docensemble.core.exceptions import UnsupportedFormatError  # noqa: PLC0415
    from docensemble.io.readers import read_page_images  # noqa: PLC0415

    cfg = load_config(config) if config else load_default_config()

    try:
        images = read_page_images(pages)
    except (UnsupportedFormatError, FileNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    policy = cfg.policy.model_copy(
        update={
            "run_parallel": cfg.policy.run_parallel and not sequential,
            "max_concurrent_agents": max_agents or cfg.policy.max_concurrent_agents,
        }
    )

    typer.echo(f"[extract] Pages: {len(images)}  Type: {document_type.value}")
    typer.echo(
        f"[extract] Mode: {'parallel' if policy.run_parallel else 'sequential'}"
        f"  Max agents: {policy.max_concurrent_agents}"
    )
    if dry_run:
        typer.echo("Dry-run validation passed.")
        return

    import asyncio  # noqa: PLC0415

    from docensemble.agents.factory import create_agents  # noqa: PLC0415
    from docensemble.cli.output import print_consensus  # noqa: PLC0415
    from docensemble.core.exceptions import ConfigError  # noqa: PLC0415
    from docensemble.core.models import DocumentConsensus  # noqa: PLC0415
    from docensemble.ensemble.consensus import ConsensusEngine  # noqa: PLC0415
    from docensemble.ensemble.coordinator import ExtractionEnsemble  # noqa: PLC0415
    from docensemble.ensemble.pipeline import process_document  # noqa: PLC0415
    from docensemble.io.writers import write_consensus  # noqa: PLC0415

    engine = ConsensusEngine.from_config(cfg)

    async def _run() -> DocumentConsensus:
        fast_agent, expert_agent = create_agents(cfg)
        try:
            ensemble = ExtractionEnsemble.from_config(cfg, fast_agent, expert_agent)
            return await process_document(images, document_type, ensemble, engine, policy)
        finally:
            for agent in (fast_agent, expert_agent):
                close = getattr(agent, "close", None)
                if close is not None:
                    await close()

    try:
        result = asyncio.run(_run())
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    print_consensus(result.consensus)
    out_path = write_consensus(result, output)
    typer.echo(f"\n[extract] Done. Result saved to {out_path}")
