# === NAVMAP v1 ===
# {
#   "module": "WordVectors.cli",
#   "purpose": "Typer CLI for loading word vectors and running queries",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "info", "name": "info", "anchor": "function-info", "kind": "function"},
#     {"id": "nearest", "name": "nearest", "anchor": "function-nearest", "kind": "function"},
#     {"id": "analogy", "name": "analogy", "anchor": "function-analogy", "kind": "function"},
#     {"id": "similarity", "name": "similarity", "anchor": "function-similarity", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line interface for word vector queries.

Global options select the artifacts and settings; each subcommand loads the
table once and runs a single query:

    wordvec --vocab vocab.json --vectors vectors.f32.part0 --vectors vectors.f32.part1 nearest cat
    wordvec --base-url https://example.org/model/ --top-k 5 analogy man king woman
    wordvec --config wordvec.yaml similarity cat dog

Exit codes: ``0`` on success (including unknown query words, which only print
a notice), ``1`` when settings are invalid or the table cannot be loaded.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from . import __version__, load_word_vectors
from .errors import WordVectorsError
from .logging_config import setup_logging
from .settings import LoaderSettings, load_settings
from .VectorSearch import ScoredWord, WordVectorStore

_console = Console()
_err_console = Console(stderr=True)


class CliContext:
    """Per-invocation state shared by the subcommands.

    Holds the resolved settings, the console, and the lazily loaded store so a
    command only pays for ingestion when it actually queries.
    """

    def __init__(self, settings: LoaderSettings, *, show_progress: bool = True) -> None:
        self.settings = settings
        self.show_progress = show_progress
        self.console = _console
        self._store: Optional[WordVectorStore] = None

    def store(self) -> WordVectorStore:
        """Load (once) and return the word vector store."""
        if self._store is None:
            self._store = self._load()
        return self._store

    def _load(self) -> WordVectorStore:
        try:
            if not self.show_progress:
                return load_word_vectors(settings=self.settings)
            with Progress(
                TextColumn("[bold blue]loading vectors"),
                BarColumn(),
                TaskProgressColumn(),
                console=_err_console,
                transient=True,
            ) as progress:
                task = progress.add_task("load", total=1.0)
                return load_word_vectors(
                    settings=self.settings,
                    on_progress=lambda ratio: progress.update(task, completed=ratio),
                )
        except WordVectorsError as exc:
            _err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
            raise typer.Exit(1) from exc


app = typer.Typer(
    name="wordvec",
    help="Load word vectors and run exact similarity, nearest-neighbour and analogy queries",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Return the context created by :func:`main`.

    Raises:
        RuntimeError: If the callback has not run yet.
    """
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wordvec {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="WORDVEC_CONFIG",
        help="Settings file (JSON or YAML)",
    ),
    vocab: Optional[str] = typer.Option(None, "--vocab", help="Vocabulary JSON location"),
    vectors: Optional[List[str]] = typer.Option(
        None, "--vectors", help="Vector part location (repeat for multi-part blobs, in order)"
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Fetch relative locations over HTTP from this base URL"
    ),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", min=1, help="Number of results per query"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write JSON-lines logs here"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a load progress bar"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Word vector query CLI.

    Global options go before the subcommand:

        wordvec --vocab vocab.json --vectors vectors.f32 nearest cat
    """
    global _context

    try:
        settings = load_settings(config)
        overrides = {
            "vocabulary_location": vocab,
            "vector_locations": list(vectors) if vectors else None,
            "base_url": base_url,
            "default_top_k": top_k,
            "log_level": log_level,
        }
        updates = {key: value for key, value in overrides.items() if value is not None}
        if updates:
            settings = LoaderSettings.from_mapping({**settings.model_dump(), **updates})
    except WordVectorsError as exc:
        _err_console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    setup_logging(settings.log_level, log_file)
    _context = CliContext(settings, show_progress=progress)


def _print_results(title: str, results: List[ScoredWord]) -> None:
    ctx = get_context()
    table = Table(title=escape(title))
    table.add_column("#", justify="right")
    table.add_column("word")
    table.add_column("score", justify="right")
    for rank, hit in enumerate(results, start=1):
        table.add_row(str(rank), escape(hit.word), f"{hit.score:.6f}")
    ctx.console.print(table)


def _report_unknown(store: WordVectorStore, *words: str) -> bool:
    missing = [word for word in words if not store.has(word)]
    if missing:
        get_context().console.print(f"[yellow]Unknown word(s): {escape(', '.join(missing))}[/yellow]")
        return True
    return False


@app.command()
def info() -> None:
    """Show vocabulary size, dimensionality and buffer size."""
    ctx = get_context()
    store = ctx.store()
    ctx.console.print(f"words: {len(store)}")
    ctx.console.print(f"dim: {store.dim}")
    ctx.console.print(f"parts: {len(ctx.settings.vector_locations)}")
    ctx.console.print(f"bytes: {store.table.vectors.nbytes}")


@app.command()
def nearest(
    word: str = typer.Argument(..., help="Query word"),
) -> None:
    """List the highest dot-product neighbours of WORD."""
    ctx = get_context()
    store = ctx.store()
    if _report_unknown(store, word):
        return
    results = store.nearest(word, ctx.settings.default_top_k)
    _print_results(f"nearest to {word}", results)


@app.command()
def analogy(
    a: str = typer.Argument(..., help="A in A : B :: C : ?"),
    b: str = typer.Argument(..., help="B in A : B :: C : ?"),
    c: str = typer.Argument(..., help="C in A : B :: C : ?"),
) -> None:
    """Complete the analogy A : B :: C : ? using B - A + C."""
    ctx = get_context()
    store = ctx.store()
    if _report_unknown(store, a, b, c):
        return
    results = store.analogy(a, b, c, ctx.settings.default_top_k)
    _print_results(f"{a} : {b} :: {c} : ?", results)


@app.command()
def similarity(
    a: str = typer.Argument(..., help="First word"),
    b: str = typer.Argument(..., help="Second word"),
) -> None:
    """Print the raw dot product between A and B."""
    ctx = get_context()
    store = ctx.store()
    if _report_unknown(store, a, b):
        return
    score = store.similarity(a, b)
    if score is None:
        ctx.console.print("[yellow]similarity is not finite[/yellow]")
        return
    ctx.console.print(f"{score:.6f}")


__all__ = ["app", "CliContext", "get_context", "main"]
