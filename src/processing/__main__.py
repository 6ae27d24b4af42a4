"""
Main entry point for processing module.

Run with: python -m src.processing FILE [--strategy NAME] [--html]
"""

import argparse
import logging
import os
import re
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from bs4 import BeautifulSoup
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.ingestion.extracted_content import ExtractedContent
from src.processing.chunkers import (
    AutoChunkingConfig,
    ChunkingOptions,
    ChunkingStrategyFactory,
    InvalidStrategyNameError
)

DEFAULT_CONFIG_PATH = "config/chunking_config.yaml"

_MARKDOWN_HEADING = re.compile(r'^#{1,6}\s+(.+?)\s*#*$', re.MULTILINE)


class ProcessingConsole:
    """Simplified console output for processing module."""

    def __init__(self):
        self.console = Console()

    def header(self, title: str, description: str):
        """Display a prominent header."""
        color = "green"
        self.console.print()
        self.console.print(Panel(
            f"[bold {color}]{title}[/bold {color}]\n\n"
            f"[dim]{description}[/dim]",
            border_style=color,
            padding=(1, 2)
        ))
        self.console.print()

    def summary_table(self, title: str, data: Dict[str, Any]):
        """Display a summary statistics table."""
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        for key, value in data.items():
            table.add_row(str(key), str(value))
        self.console.print(table)
        self.console.print()

    def info(self, message: str):
        """Print an info message."""
        self.console.print(f"[cyan]{message}[/cyan]")

    def success(self, message: str):
        """Print a success message."""
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str):
        """Print a warning message."""
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str):
        """Print an error message."""
        self.console.print(f"[bold red]{message}[/bold red]")

    @contextmanager
    def spinner(self, message: str):
        """Context manager for showing a spinner during operations."""
        with self.console.status(f"[bold green]{message}...", spinner="dots"):
            yield

    def display_chunks(self, chunks: List[Dict]):
        """Display sample chunks."""
        self.console.print("[bold]Sample Chunks:[/bold]\n")
        for chunk in chunks:
            self.console.print(
                f"[cyan]Chunk {chunk['index']}[/cyan] "
                f"([yellow]{chunk['type']}[/yellow], {chunk['size']} chars, quality {chunk['quality']})"
            )
            self.console.print(f"  Heading: [green]{chunk['heading']}[/green]")
            self.console.print(f"  Preview: {chunk['preview']}")
            self.console.print()


def load_auto_config(console: ProcessingConsole) -> AutoChunkingConfig:
    """Load Auto strategy settings from CHUNKING_CONFIG_PATH or the default file."""
    config_path = os.getenv("CHUNKING_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    if not Path(config_path).exists():
        console.warning(f"Config file {config_path} not found, using built-in defaults")
        return AutoChunkingConfig()
    return AutoChunkingConfig.from_yaml(config_path)


def read_content(path: Path, is_html: bool, url: Optional[str]) -> ExtractedContent:
    """Build an ExtractedContent record from a local file."""
    raw = path.read_text(encoding="utf-8")
    source_url = url or path.resolve().as_uri()

    if is_html:
        soup = BeautifulSoup(raw, 'html.parser')
        title_tag = soup.find('title')
        return ExtractedContent(
            text=soup.get_text("\n"),
            url=source_url,
            title=title_tag.get_text(strip=True) if title_tag else None,
            headings=[h.get_text(strip=True) for h in soup.find_all(['h1', 'h2', 'h3', 'h4', 'h5', 'h6'])],
            image_urls=[img['src'] for img in soup.find_all('img', src=True)],
            original_html=raw
        )

    return ExtractedContent(
        text=raw,
        url=source_url,
        title=path.stem,
        headings=_MARKDOWN_HEADING.findall(raw)
    )


def main():
    """Run chunking as a module with rich console output."""
    parser = argparse.ArgumentParser(
        description="Chunk a local text, markdown or HTML file for RAG indexing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Let the engine pick a strategy
  python -m src.processing page.md

  # DOM-aware chunking of a saved page
  python -m src.processing page.html --html --strategy DomStructure

  # Only show the recommendation
  python -m src.processing page.md --recommend
        """,
    )

    parser.add_argument("file", help="Path to the file to chunk")
    parser.add_argument(
        "--strategy",
        default="Auto",
        help="Chunking strategy name (default: Auto)",
    )
    parser.add_argument(
        "--html",
        action="store_true",
        help="Treat the file as raw HTML",
    )
    parser.add_argument(
        "--url",
        help="Source URL to record on every chunk (default: file URI)",
    )
    parser.add_argument("--chunk-size", type=int, help="Target chunk size in characters")
    parser.add_argument("--min-chunk-size", type=int, help="Minimum chunk size in characters")
    parser.add_argument("--max-chunk-size", type=int, help="Maximum chunk size in characters")
    parser.add_argument(
        "--recommend",
        action="store_true",
        help="Print the recommended strategy and exit",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=3,
        help="Number of sample chunks to display (default: 3)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    load_dotenv()

    console = ProcessingConsole()

    path = Path(args.file)
    if not path.exists():
        console.error(f"File not found: {path}")
        sys.exit(1)

    content = read_content(path, args.html, args.url)
    options = ChunkingOptions(
        chunk_size=args.chunk_size,
        min_chunk_size=args.min_chunk_size,
        max_chunk_size=args.max_chunk_size
    )
    try:
        auto_config = load_auto_config(console)
    except ValueError as e:
        console.error(f"Invalid chunking config: {e}")
        sys.exit(1)
    factory = ChunkingStrategyFactory(auto_config=auto_config)

    recommended = factory.recommend_strategy(content, options)
    if args.recommend:
        console.success(f"Recommended strategy: {recommended}")
        info = factory.get_strategy_info(recommended)
        console.summary_table(f"{info.name} Strategy", {
            "Description": info.description,
            "Performance": info.performance_class,
            "Memory usage": info.memory_usage,
            "Content types": ", ".join(info.suitable_content_types),
            "Use cases": ", ".join(info.use_cases),
        })
        return

    try:
        chunker = factory.create_strategy(args.strategy)
    except InvalidStrategyNameError as e:
        console.error(str(e))
        sys.exit(1)

    console.header(
        title=f"Chunking {path.name}",
        description=f"{chunker.name}: {chunker.description}"
    )

    with console.spinner("Chunking content"):
        chunks = chunker.chunk(content, options)

    if not chunks:
        console.warning("No chunks produced (empty content)")
        return

    stats = chunker.calculate_chunk_stats(chunks)
    strategy_used = chunks[0].strategy_info.parameters.get("auto_selected_strategy", chunks[0].strategy_info.strategy_name)

    console.summary_table("Chunking Summary", {
        "Strategy": strategy_used,
        "Recommended": recommended,
        "Total chunks created": stats['total_chunks'],
        "Chunks by type": ", ".join(f"{k}={v}" for k, v in stats['chunks_by_type'].items()),
        "Avg chunk size": f"{stats['avg_chunk_size']:,} chars",
        "Min chunk size": f"{stats['min_chunk_size']:,} chars",
        "Max chunk size": f"{stats['max_chunk_size']:,} chars",
        "Avg quality": stats['avg_quality'],
        "Processing time": f"{chunks[0].strategy_info.processing_time_ms} ms",
    })

    if args.samples > 0:
        console.display_chunks(chunker.get_sample_chunks(chunks, args.samples))

    console.success("Chunking completed successfully!")


if __name__ == "__main__":
    main()
