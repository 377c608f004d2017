"""
CLI entrypoint for the rag_vector_store build/load and query pipeline.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import Config
from .constants import METADATA_CHUNK_INDEX, METADATA_FILENAME
from .embedding import build_embedding_client
from .errors import RagStoreError
from .initializer import build_initializer
from .logging_utils import configure_logging, get_logger
from .retrieval import Retriever


app = typer.Typer(help="Source document → chunks → embeddings → persisted vector store")
console = Console()
logger = get_logger(__name__)


def _load_config(source: Optional[str], index: Optional[str]) -> Config:
    cfg = Config()
    if source:
        cfg.source_document_path = source
    if index:
        cfg.vector_store_path = index
    try:
        cfg.validate()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    configure_logging(cfg.log_level)
    return cfg


@app.command()
def init(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="Source document to build from (defaults to config)."
    ),
    index: Optional[str] = typer.Option(
        None, "--index", "-i", help="Persisted index path (defaults to config)."
    ),
    rebuild: bool = typer.Option(
        False, "--rebuild", help="Build the index again, replacing the existing one once saved."
    ),
) -> None:
    """
    Load the persisted index, or build and save it if it does not exist.
    """
    cfg = _load_config(source, index)

    console.print("[bold cyan]Initialising vector store...[/bold cyan]")
    console.print(f"[bold]Index:[/bold] {cfg.vector_store_path}")
    console.print(f"[bold]Source:[/bold] {cfg.source_document_path}")
    console.print(f"[bold]Chunking:[/bold] {cfg.chunking_strategy} ({cfg.chunk_size}/{cfg.chunk_overlap})")
    console.print(f"[bold]Model:[/bold] {cfg.embedding_provider}:{cfg.embedding_model}")

    initializer = build_initializer(cfg, rebuild=rebuild)
    try:
        store = initializer.initialize()
    except RagStoreError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    console.print(
        f"[bold green]Vector store {initializer.state.value} with {len(store)} chunks "
        f"(dimension={store.dimension}).[/bold green]"
    )


@app.command()
def query(
    text: str = typer.Argument(..., help="Natural language query."),
    top_k: Optional[int] = typer.Option(
        None, "--top-k", "-k", help="Number of chunks to return (defaults to config)."
    ),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Minimum cosine similarity (defaults to config)."
    ),
    index: Optional[str] = typer.Option(
        None, "--index", "-i", help="Persisted index path (defaults to config)."
    ),
) -> None:
    """
    Retrieve the chunks most similar to a query.
    """
    cfg = _load_config(None, index)
    client = build_embedding_client(cfg)
    initializer = build_initializer(cfg, embedding_client=client)

    try:
        store = initializer.initialize()
        retriever = Retriever(
            store,
            client,
            top_k=cfg.retrieval_top_k if top_k is None else top_k,
            similarity_threshold=cfg.similarity_threshold if threshold is None else threshold,
        )
        results = retriever.retrieve(text)
    except (RagStoreError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No chunks matched the query.[/yellow]")
        return

    table = Table(title=f"Top {len(results)} chunks")
    table.add_column("#", justify="right")
    table.add_column("Score", style="yellow")
    table.add_column("File", style="green")
    table.add_column("Chunk", style="magenta", justify="right")
    table.add_column("Text", overflow="fold", max_width=60)

    for rank, hit in enumerate(results, start=1):
        preview = hit.text[:200] + "..." if len(hit.text) > 200 else hit.text
        table.add_row(
            str(rank),
            f"{hit.score:.4f}",
            hit.metadata.get(METADATA_FILENAME, ""),
            hit.metadata.get(METADATA_CHUNK_INDEX, ""),
            preview,
        )

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
