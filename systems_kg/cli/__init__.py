"""
Command-Line Interface

CLI commands for SystemsKG operations.

Commands:
    systems-kg ingest          - Process documents into a knowledge base
    systems-kg map             - Show the systems map for documents
    systems-kg duplicates      - List duplicate name candidates for a document
    systems-kg quality         - Show a document's extraction quality report
    systems-kg corpus-quality  - Show quality across the whole knowledge base

Usage:
    # Process two documents
    systems-kg ingest plan.txt review.txt --kb ./my_kb

    # Systems map as JSON
    systems-kg map <doc-id> --kb ./my_kb --json

    # Corpus quality
    systems-kg corpus-quality --kb ./my_kb
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

__all__ = ["main", "app"]

app = typer.Typer(
    name="systems-kg",
    help="Embedded systems knowledge base for document review",
    no_args_is_help=True,
)
console = Console()

KB_OPTION = typer.Option(Path("./kb"), "--kb", "-k", help="Knowledge base directory")


@app.callback()
def _setup(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file", exists=True
    ),
) -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = config


def _open(kb: Path, config_path: Optional[Path], create: bool = False):
    from systems_kg.api.systems_kg import SystemsKG
    from systems_kg.config import SKGConfig

    config = SKGConfig.from_file(config_path) if config_path else SKGConfig()
    return SystemsKG(kb, config, create=create)


@app.command()
def ingest(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files to process", exists=True, dir_okay=False),
    kb: Path = KB_OPTION,
    job_type: str = typer.Option("extraction", "--type", "-t", help="extraction, analysis or chunking"),
    priority: Optional[str] = typer.Option(None, "--priority", "-p", help="Override size-based priority"),
) -> None:
    """Submit documents for processing and wait for the jobs to finish."""

    async def _run() -> None:
        async with _open(kb, ctx.obj, create=True) as skg:
            job_ids = []
            for path in files:
                job_ids.append(
                    await skg.submit_job(
                        path.read_bytes(),
                        filename=path.name,
                        job_type=job_type,
                        priority=priority,
                    )
                )

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task(f"Processing {len(job_ids)} document(s)...")
                await skg.drain()
                progress.update(task, completed=True)

            table = Table(title="Jobs")
            table.add_column("Document", style="cyan")
            table.add_column("Document ID", style="dim")
            table.add_column("Status")
            table.add_column("Time (ms)", justify="right")
            table.add_column("Error", style="red")

            for path, job_id in zip(files, job_ids):
                job = skg.get_job_status(job_id)
                if job is None:
                    table.add_row(path.name, "", "[yellow]unknown[/]", "", "")
                    continue
                colour = "green" if job.status == "completed" else "red"
                table.add_row(
                    path.name,
                    job.document_id,
                    f"[{colour}]{job.status}[/]",
                    str(job.processing_time_ms or ""),
                    job.error or "",
                )
                for warning in job.warnings:
                    console.print(f"[yellow]{path.name}: {warning}[/]")

            console.print(table)

    asyncio.run(_run())


@app.command(name="map")
def systems_map(
    ctx: typer.Context,
    document_ids: list[str] = typer.Argument(..., help="Document IDs to include"),
    kb: Path = KB_OPTION,
    entity_type: Optional[list[str]] = typer.Option(None, "--type", "-t", help="Entity types to keep"),
    min_confidence: Optional[float] = typer.Option(None, "--min-confidence", help="Confidence floor"),
    as_json: bool = typer.Option(False, "--json", help="Print the map as JSON"),
) -> None:
    """Show the systems map for a set of documents."""

    async def _run() -> None:
        async with _open(kb, ctx.obj) as skg:
            graph = await skg.get_systems_map(
                document_ids,
                {"entity_types": entity_type or None, "min_confidence": min_confidence},
            )

        if as_json:
            typer.echo(graph.model_dump_json(indent=2))
            return

        nodes = Table(title=f"Nodes ({len(graph.nodes)})")
        nodes.add_column("Name", style="cyan")
        nodes.add_column("Type")
        nodes.add_column("Confidence", justify="right", style="green")
        nodes.add_column("Documents", justify="right")
        for node in graph.nodes:
            nodes.add_row(node.label, node.type, f"{node.confidence:.2f}", str(len(node.documents)))
        console.print(nodes)

        labels = {node.id: node.label for node in graph.nodes}
        edges = Table(title=f"Edges ({len(graph.edges)})")
        edges.add_column("From", style="cyan")
        edges.add_column("Type")
        edges.add_column("To", style="cyan")
        edges.add_column("Strength")
        for edge in graph.edges:
            edges.add_row(labels[edge.source], edge.type, labels[edge.target], edge.strength)
        console.print(edges)

    asyncio.run(_run())


@app.command()
def duplicates(
    ctx: typer.Context,
    document_id: str = typer.Argument(..., help="Document ID"),
    kb: Path = KB_OPTION,
) -> None:
    """List likely duplicate entity names within a document."""

    async def _run() -> None:
        async with _open(kb, ctx.obj) as skg:
            candidates = await skg.get_duplicate_candidates(document_id)

        if not candidates:
            console.print("[green]No duplicate candidates found.[/]")
            return

        table = Table(title="Duplicate Candidates")
        table.add_column("Keep", style="green")
        table.add_column("Review", style="yellow")
        table.add_column("Similarity", justify="right")
        table.add_column("Action", style="dim")
        for c in candidates:
            table.add_row(c.keep, c.review, f"{c.similarity_percent}%", c.recommended_action)
        console.print(table)

    asyncio.run(_run())


@app.command()
def quality(
    ctx: typer.Context,
    document_id: str = typer.Argument(..., help="Document ID"),
    kb: Path = KB_OPTION,
) -> None:
    """Show the extraction quality report for one document."""

    async def _run() -> None:
        async with _open(kb, ctx.obj) as skg:
            report = await skg.get_quality_report(document_id)

        table = Table(title=f"Quality: {document_id}")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="green")
        table.add_row("Quality score", str(report.quality_score))
        table.add_row("Entities", str(report.total_extracted))
        table.add_row("Quotes", str(report.total_quotes))
        table.add_row("Average confidence", f"{report.average_confidence:.2f}")
        table.add_row(
            "Keyword coverage",
            f"{report.expected_keywords_found}/{report.expected_keywords_total} ({report.keyword_coverage}%)",
        )
        table.add_row("Specific / generic", f"{report.specific_themes} / {report.generic_themes}")
        table.add_row("Needs review", str(report.confidence.needs_review))
        table.add_row("Duplicate candidates", str(len(report.duplicates)))
        console.print(table)

    asyncio.run(_run())


@app.command(name="corpus-quality")
def corpus_quality(
    ctx: typer.Context,
    kb: Path = KB_OPTION,
) -> None:
    """Show extraction quality across every document in the knowledge base."""

    async def _run() -> None:
        async with _open(kb, ctx.obj) as skg:
            report = await skg.get_corpus_quality()

        table = Table(title="Corpus Quality")
        table.add_column("Category", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Avg confidence", justify="right", style="green")
        for stats in report.categories:
            table.add_row(stats.category, str(stats.count), f"{stats.average_confidence:.2f}")
        console.print(table)

        lines = [
            f"Quality score: {report.quality_score}",
            f"Extracted: {report.total_extracted} (high confidence {report.high_confidence}, "
            f"needs review {report.needs_review})",
            f"Models used: {report.models_used}",
        ]
        if report.recommendations:
            lines.append("")
            lines.extend(f"- {r}" for r in report.recommendations)
        console.print(Panel("\n".join(lines), title="Summary"))

    asyncio.run(_run())


def main() -> None:
    """Entry point for the CLI."""
    app()
