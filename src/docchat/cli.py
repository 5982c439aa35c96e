"""Command line interface for docchat."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from docchat.config import AppConfig
from docchat.index.search import Searcher
from docchat.ingestion.text_loader import DocumentLoadError
from docchat.web.app import app as web_app
from docchat.web.app import build_services, install_services


console = Console()
app = typer.Typer(help="docchat - question answering over a single text document")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_searcher(config: AppConfig) -> Searcher:
    searcher = Searcher(
        chunk_size=config.chunk_size,
        chunk_overlap=config.chunk_overlap,
        weights=config.weights,
    )
    try:
        searcher.load_document(config.resolve_document_path(Path.cwd()))
    except DocumentLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return searcher


@app.command()
def search(
    query: str = typer.Argument(..., help="Question or search text"),
    document: Path = typer.Option(None, "--document", "-d", help="Text document to search"),
    top_k: int = typer.Option(AppConfig().top_k, help="Number of results to display"),
    chunk_size: int = typer.Option(AppConfig().chunk_size, help="Chunk size in characters"),
    overlap: int = typer.Option(AppConfig().chunk_overlap, help="Chunk overlap"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Rank document passages against a query."""
    _setup_logging(verbose)
    config = AppConfig(document_path=document, chunk_size=chunk_size, chunk_overlap=overlap)
    searcher = _load_searcher(config)

    results = searcher.similarity_search(query, top_k=top_k)
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Chunk")
    table.add_column("Section")
    table.add_column("Snippet")

    for result in results:
        snippet = result.chunk.content.replace("\n", " ")
        table.add_row(
            f"{result.score:.4f}",
            str(result.chunk.chunk_index),
            result.chunk.section or "-",
            snippet[:180],
        )

    console.print(table)


@app.command()
def sections(
    document: Path = typer.Option(None, "--document", "-d", help="Text document to inspect"),
) -> None:
    """List the section headings detected in the document."""
    searcher = _load_searcher(AppConfig(document_path=document))
    labels = searcher.get_sections()
    if not labels:
        console.print("[yellow]No sections detected.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Section")
    table.add_column("Chunks")
    for label in labels:
        table.add_row(label, str(len(searcher.get_chunks_by_section(label))))
    console.print(table)


@app.command()
def stats(
    document: Path = typer.Option(None, "--document", "-d", help="Text document to inspect"),
    chunk_size: int = typer.Option(AppConfig().chunk_size, help="Chunk size in characters"),
    overlap: int = typer.Option(AppConfig().chunk_overlap, help="Chunk overlap"),
) -> None:
    """Show chunking and vocabulary statistics."""
    config = AppConfig(document_path=document, chunk_size=chunk_size, chunk_overlap=overlap)
    searcher = _load_searcher(config)
    summary = searcher.get_document_stats()

    console.print(f"Chunks: [bold]{summary.total_chunks}[/bold]")
    console.print(f"Words: {summary.total_words} (average {summary.average_chunk_size} per chunk)")
    console.print(f"Vocabulary: {summary.vocabulary_size} terms")
    console.print(f"Sections: {', '.join(summary.sections) or 'none'}")
    console.print(f"Top words: {', '.join(searcher.top_words(10))}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(5001, help="Server port"),
    document: Path = typer.Option(None, "--document", "-d", help="Text document to serve"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    _setup_logging(False)
    config = AppConfig(document_path=document)
    try:
        searcher, chat = build_services(config, Path.cwd())
    except DocumentLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc
    install_services(searcher, chat, config)

    console.print(
        f"Starting web interface on http://{host}:{port} "
        f"(document: {config.resolve_document_path(Path.cwd())})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
