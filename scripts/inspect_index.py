"""
Inspect a persisted vector store index without loading an embedding model.

Examples:
  python scripts/inspect_index.py
  python scripts/inspect_index.py --path data/vectorstore.json --format detailed --limit 10
  python scripts/inspect_index.py --format numpy --save embeddings.npy
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from collections import Counter

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

from rag_vector_store.config import Config
from rag_vector_store.constants import METADATA_FILENAME
from rag_vector_store.errors import RagStoreError
from rag_vector_store.logging_utils import configure_logging
from rag_vector_store.models import Chunk
from rag_vector_store.vector_store import JsonVectorStore


app = typer.Typer(help="Inspect a persisted vector store index")
console = Console()


@app.command()
def inspect(
    index_path: str = typer.Option(
        None,
        "--path",
        "-p",
        help="Path to the persisted index (defaults to config value)",
    ),
    output_format: str = typer.Option(
        "summary",
        "--format",
        "-f",
        help="Output format: 'summary', 'detailed' or 'numpy'",
    ),
    limit: int = typer.Option(
        None,
        "--limit",
        "-l",
        help="Limit number of chunks to display (for detailed view)",
    ),
    save_path: str = typer.Option(
        None,
        "--save",
        "-s",
        help="Save embeddings to .npy file (optional)",
    ),
) -> None:
    """
    Load the index from disk and display its contents.
    """
    if output_format not in ("summary", "detailed", "numpy"):
        raise typer.BadParameter("Format must be one of: summary, detailed, numpy")

    cfg = Config()
    configure_logging(cfg.log_level)

    path = index_path or cfg.vector_store_path
    console.print(f"[bold cyan]Loading index from:[/bold cyan] {path}")

    if not Path(path).is_file():
        console.print(f"[red]Error:[/red] no index at {path}")
        raise typer.Exit(1)

    store = JsonVectorStore()
    try:
        store.load(path)
    except RagStoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    chunks = store.chunks()
    if not chunks:
        console.print("[yellow]The index is empty.[/yellow]")
        return

    embeddings = np.asarray([c.embedding for c in chunks], dtype=np.float32)

    if save_path:
        np.save(save_path, embeddings)
        console.print(f"[green]Saved embeddings to:[/green] {save_path}")

    if output_format == "summary":
        _display_summary(embeddings, chunks)
    elif output_format == "detailed":
        _display_detailed(chunks, limit)
    else:
        _display_numpy(embeddings)


def _display_summary(embeddings: np.ndarray, chunks: list[Chunk]) -> None:
    """Display summary statistics."""
    console.print("\n[bold green]=== Index Summary ===[/bold green]\n")

    table = Table(title="Index Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    lengths = [len(c.text) for c in chunks]
    files = Counter(c.metadata.get(METADATA_FILENAME, "<unknown>") for c in chunks)

    table.add_row("Total Chunks", str(len(chunks)))
    table.add_row("Embedding Dimension", str(embeddings.shape[1]))
    table.add_row("Memory Size (MB)", f"{embeddings.nbytes / (1024 * 1024):.2f}")
    table.add_row("Avg Text Length", f"{sum(lengths) / len(lengths):.1f}")
    table.add_row("Max Text Length", str(max(lengths)))
    table.add_row("Source Files", ", ".join(f"{name} ({n})" for name, n in files.most_common(5)))

    sample_keys = list(chunks[0].metadata.keys())
    if sample_keys:
        table.add_row("Metadata Keys", ", ".join(sample_keys[:5]))

    console.print(table)

    console.print("\n[bold green]=== Sample Chunks (first 3) ===[/bold green]\n")
    for chunk in chunks[:3]:
        console.print(f"[cyan]ID:[/cyan] {chunk.id}")
        text_preview = chunk.text[:100] + "..." if len(chunk.text) > 100 else chunk.text
        console.print(f"[cyan]Text:[/cyan] {text_preview}")
        console.print(f"[cyan]First 5 values:[/cyan] {list(chunk.embedding[:5])}")
        console.print(f"[cyan]Metadata:[/cyan] {dict(chunk.metadata)}")
        console.print()


def _display_detailed(chunks: list[Chunk], limit: int | None) -> None:
    """Display one row per chunk."""
    display_count = min(limit or len(chunks), len(chunks))

    table = Table(title=f"Chunks (showing {display_count} of {len(chunks)})")
    table.add_column("ID", style="cyan")
    table.add_column("Text Preview", style="yellow", max_width=50)
    table.add_column("Length", style="green", justify="right")
    table.add_column("Metadata", style="magenta", max_width=40)

    for chunk in chunks[:display_count]:
        text_preview = chunk.text[:50] + "..." if len(chunk.text) > 50 else chunk.text
        table.add_row(chunk.id, text_preview, str(len(chunk.text)), str(dict(chunk.metadata)))

    console.print(table)


def _display_numpy(embeddings: np.ndarray) -> None:
    """Display numpy array information."""
    console.print("\n[bold green]=== NumPy Array Information ===[/bold green]\n")
    norms = np.linalg.norm(embeddings, axis=1)
    console.print(f"Shape: {embeddings.shape}")
    console.print(f"Min value: {embeddings.min():.6f}")
    console.print(f"Max value: {embeddings.max():.6f}")
    console.print(f"Mean value: {embeddings.mean():.6f}")
    console.print(f"Std deviation: {embeddings.std():.6f}")
    console.print(f"Norm range: {norms.min():.6f} .. {norms.max():.6f}")


if __name__ == "__main__":
    app()
