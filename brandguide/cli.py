"""
CLI Interface
=============
Command-line interface for the brand guideline extraction engine.

Usage:
    python -m brandguide extract <text_path> [options]
    python -m brandguide sections <text_path>
    python -m brandguide normalize-color <value>
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .coordinator import ExtractionCoordinator, ExtractorConfig
from .errors import BrandExtractionError, InputError
from .preprocessor import TextPreprocessor
from .segmenter import SectionSegmenter
from .synonyms import normalize_color_to_hex

console = Console()


@click.group()
@click.version_option(version="1.0.0", prog_name="brandguide")
def cli():
    """Brand Guideline Extraction Engine - structured brand rules from PDF text."""
    pass


@cli.command()
@click.argument("text_path", type=click.Path(exists=True))
@click.option("--brand", "-b", default="", help="Brand name hint")
@click.option(
    "--output", "-o",
    default=None,
    help="Write the guideline JSON to this file",
)
@click.option(
    "--no-llm",
    is_flag=True,
    default=False,
    help="Skip the LLM enhancement pass",
)
@click.option(
    "--debug-dir",
    default=None,
    help="Directory for per-stage debug artifacts",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Print the guideline JSON to stdout instead of tables",
)
def extract(
    text_path: str,
    brand: str,
    output: str,
    no_llm: bool,
    debug_dir: str,
    log_level: str,
    json_output: bool,
):
    """Extract a brand guideline from a flattened PDF text file."""

    text = Path(text_path).read_text(encoding="utf-8", errors="replace")

    overrides = {"log_level": log_level}
    if no_llm:
        overrides["enable_llm"] = False
    if debug_dir:
        overrides["debug_dir"] = debug_dir
    config = ExtractorConfig.from_env(**overrides)

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Brand Guideline Extractor v1.0.0[/]\n"
                f"[dim]Extracting: {os.path.basename(text_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        coordinator = ExtractionCoordinator(config)
        if not json_output:
            with console.status("Extracting guideline..."):
                guideline = coordinator.extract(text, brand_name=brand)
        else:
            guideline = coordinator.extract(text, brand_name=brand)

    except InputError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except BrandExtractionError as e:
        console.print(f"[red]Extraction failed:[/] {e}")
        sys.exit(1)

    payload = guideline.to_json_dict()

    if output:
        out_path = Path(output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

    if json_output:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    _display_guideline(guideline)
    if output:
        console.print(f"[green]Saved:[/] {output}")
        console.print()


@cli.command()
@click.argument("text_path", type=click.Path(exists=True))
def sections(text_path: str):
    """Show how the cleaned text is split into category sections."""

    text = Path(text_path).read_text(encoding="utf-8", errors="replace")
    cleaned = TextPreprocessor().clean(text)
    found = SectionSegmenter().segment(cleaned)

    console.print()
    table = Table(title="Sections", border_style="cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Category", style="bold")
    table.add_column("Source")
    table.add_column("Headers")
    table.add_column("Chars", justify="right")

    for i, section in enumerate(found, 1):
        table.add_row(
            str(i),
            section.category.value,
            section.source,
            ", ".join(section.headers[:3]) or "-",
            str(len(section.text)),
        )

    console.print(table)
    console.print()


@cli.command(name="normalize-color")
@click.argument("value")
def normalize_color(value: str):
    """Normalize a color notation (hex, rgb, cmyk, Pantone) to hex."""

    result = normalize_color_to_hex(value)
    if result is None:
        console.print(f"[yellow]Not a color:[/] {value}")
        sys.exit(1)
    console.print(result)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_guideline(guideline):
    """Display an extracted guideline as rich tables."""

    colors = guideline.colors
    table = Table(title="Colors", border_style="cyan")
    table.add_column("Role", style="bold")
    table.add_column("Hex")
    table.add_column("Name")
    table.add_column("Severity")
    for role, color in colors.semantic.items():
        table.add_row(role, color.hex, color.name or "-", color.severity.value)
    for color in colors.neutral:
        table.add_row("neutral", color.hex, color.name or "-", color.severity.value)
    console.print(table)
    if colors.palette:
        console.print(f"[dim]Palette: {', '.join(colors.palette)}[/]")
    if colors.unresolved:
        console.print(f"[yellow]Unresolved: {', '.join(colors.unresolved)}[/]")
    console.print()

    fonts = guideline.typography.fonts
    table = Table(title="Typography", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Primary", fonts.primary or "-")
    table.add_row("Secondary", fonts.secondary or "-")
    table.add_row("Families", ", ".join(fonts.families) or "-")
    table.add_row("Weights", ", ".join(guideline.typography.weights) or "-")
    table.add_row("Sizes", ", ".join(guideline.typography.sizes) or "-")
    console.print(table)
    console.print()

    table = Table(title="Other Categories", border_style="cyan")
    table.add_column("Category", style="bold")
    table.add_column("Summary")
    logo = guideline.logo
    table.add_row(
        "Logo",
        f"{len(logo.rules)} rules, {len(logo.forbidden)} forbidden, "
        f"clearspace={logo.clearspace or '-'}",
    )
    spacing = guideline.spacing
    table.add_row(
        "Spacing",
        f"grid={spacing.grid or '-'}, base={spacing.base_unit or '-'}, "
        f"gaps={spacing.section_gap or '-'}/{spacing.component_gap or '-'}, "
        f"{len(spacing.rules)} rules",
    )
    table.add_row("Tone", ", ".join(guideline.tone.descriptors) or "-")
    table.add_row("Imagery", ", ".join(guideline.imagery.style_descriptors) or "-")
    console.print(table)
    console.print()

    _display_confidence(guideline)


def _display_confidence(guideline):
    """Per-category confidence with color-coded status."""

    def status(score: float) -> str:
        if score >= 0.7:
            return f"[green]{score:.2f}[/]"
        if score >= 0.4:
            return f"[yellow]{score:.2f}[/]"
        return f"[red]{score:.2f}[/]"

    table = Table(title="Confidence", border_style="cyan")
    table.add_column("Category", style="bold")
    table.add_column("Score", justify="right")
    for category, score in guideline.confidence.per_category.items():
        table.add_row(category, status(score))
    table.add_row("[bold]overall[/]", status(guideline.confidence.overall))
    console.print(table)

    meta = guideline.metadata
    defaulted = ", ".join(meta.defaulted_categories) or "none"
    console.print(
        f"[dim]Method: {meta.extraction_method.value} | "
        f"Text: {meta.text_length} chars | "
        f"Defaulted: {defaulted} | "
        f"Timestamp: {meta.timestamp}[/]"
    )
    console.print()


# ─── Entry point (for python -m brandguide.cli) ───────────────────────────────


if __name__ == "__main__":
    cli()
