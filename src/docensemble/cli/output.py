"""Terminal rendering of consensus results."""
from __future__ import annotations

from rich.console import Console
from rich.table import Table

from docensemble.core.models import ConsensusResult

console = Console()


def print_consensus(consensus: ConsensusResult) -> None:
    """Print the consensus kind, merged confidence and any conflicts."""
    record = consensus.data_or_none()
    if record is None:
        console.print("[bold red]No data[/bold red]: neither agent produced a record.")
        return

    console.print(
        f"[bold]Consensus:[/bold] {consensus.kind}  "
        f"[bold]Confidence:[/bold] {record.confidence:.3f}"
    )

    report = consensus.report_or_none()
    if report is None:
        return

    table = Table(title=f"Field conflicts ({len(report.conflicts)})")
    table.add_column("Field", style="cyan")
    table.add_column("Fast")
    table.add_column("Expert")
    table.add_column("Chosen")
    table.add_column("Source")
    table.add_column("Severity")
    for conflict in report.conflicts:
        severity_style = "red" if conflict.severity == "critical" else "yellow"
        table.add_row(
            conflict.field,
            conflict.fast_value or "-",
            conflict.expert_value or "-",
            conflict.chosen_value or "-",
            str(conflict.chosen_source),
            f"[{severity_style}]{conflict.severity}[/{severity_style}]",
        )
    console.print(table)
