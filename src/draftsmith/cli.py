"""
Command-line interface for draftsmith.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from draftsmith.config import DraftsmithConfig
from draftsmith.cost import CostTracker, ProjectCostStore
from draftsmith.directives import extract_directives
from draftsmith.draft_body import normalize_draft_body
from draftsmith.frontmatter import parse_frontmatter
from draftsmith.logging import setup_logging
from draftsmith.model_registry import ModelRegistry, PricingTier
from draftsmith.planning import format_cost
from draftsmith.richtext import markdown_to_tree, tree_from_dict, tree_to_dict, tree_to_markdown
from draftsmith.storage import next_versioned_name

console = Console()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Turn model replies into committed documents",
        prog="draftsmith",
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to a draftsmith YAML config file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # normalize
    normalize_parser = subparsers.add_parser(
        "normalize", help="Reduce a model reply to its draft body"
    )
    normalize_parser.add_argument("file", nargs="?", default="-", help="Input file (default: stdin)")

    # directives
    directives_parser = subparsers.add_parser(
        "directives", help="List apply directives found in a model reply"
    )
    directives_parser.add_argument("file", nargs="?", default="-", help="Input file (default: stdin)")
    directives_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # frontmatter
    frontmatter_parser = subparsers.add_parser(
        "frontmatter", help="Show a document's metadata header"
    )
    frontmatter_parser.add_argument("file", nargs="?", default="-", help="Input file (default: stdin)")
    frontmatter_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # convert
    convert_parser = subparsers.add_parser(
        "convert", help="Convert markdown to the editor tree (or back with --to-markdown)"
    )
    convert_parser.add_argument("file", nargs="?", default="-", help="Input file (default: stdin)")
    convert_parser.add_argument(
        "--to-markdown",
        action="store_true",
        help="Read a JSON tree and print markdown",
    )

    # cost
    cost_parser = subparsers.add_parser("cost", help="Price a request")
    cost_parser.add_argument("model", help="Model ID")
    cost_parser.add_argument("input_tokens", type=int, help="Input token count")
    cost_parser.add_argument("output_tokens", type=int, help="Output token count")
    cost_parser.add_argument(
        "--record",
        metavar="PROJECT_DIR",
        help="Add the cost to the project's running total",
    )

    # next-name
    next_name_parser = subparsers.add_parser(
        "next-name", help="Next free versioned file name in a directory"
    )
    next_name_parser.add_argument("directory", help="Directory to scan")
    next_name_parser.add_argument("name", help="Base file name, e.g. overview.md")

    # models
    models_parser = subparsers.add_parser("models", help="List known models and pricing")
    models_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    # Setup logging based on verbosity
    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING")

    if args.command == "normalize":
        cmd_normalize(args)
    elif args.command == "directives":
        cmd_directives(args)
    elif args.command == "frontmatter":
        cmd_frontmatter(args)
    elif args.command == "convert":
        cmd_convert(args)
    elif args.command == "cost":
        cmd_cost(args)
    elif args.command == "next-name":
        cmd_next_name(args)
    elif args.command == "models":
        cmd_models(args)
    else:
        parser.print_help()


def _read_input(file: str) -> str:
    if file == "-":
        return sys.stdin.read()
    path = Path(file)
    if not path.is_file():
        console.print(f"[red]File not found: {file}[/red]")
        sys.exit(1)
    return path.read_text(encoding="utf-8")


def _load_config(args: argparse.Namespace) -> DraftsmithConfig:
    if args.config:
        return DraftsmithConfig.from_yaml(Path(args.config))
    return DraftsmithConfig()


def _create_registry(config: DraftsmithConfig) -> ModelRegistry:
    """Build the pricing source: built-in catalog plus any models file."""
    registry = ModelRegistry(
        long_context_threshold=config.long_context_threshold,
        fallback=PricingTier(input=config.fallback_input_rate, output=config.fallback_output_rate),
    )
    registry.load_defaults()
    if config.models_file is not None:
        if config.models_file.is_file():
            registry.load_from_yaml(config.models_file)
        else:
            console.print(f"[yellow]Models file not found: {config.models_file}[/yellow]")
    return registry


def _print_raw(text: str) -> None:
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def cmd_normalize(args: argparse.Namespace) -> None:
    """Print the canonical draft body of a reply."""
    _print_raw(normalize_draft_body(_read_input(args.file)))


def cmd_directives(args: argparse.Namespace) -> None:
    """List apply directives in a reply."""
    directives, display_text = extract_directives(_read_input(args.file))

    if args.json:
        data = {
            "directives": [
                {
                    "target": d.target,
                    "action": d.action.value,
                    "section": d.section,
                    "syntax": d.syntax,
                    "actionable": d.is_actionable,
                    "metadata": d.metadata,
                    "content": d.content,
                }
                for d in directives
            ],
            "display_text": display_text,
        }
        _print_raw(json.dumps(data, indent=2, ensure_ascii=False))
        return

    table = Table(title="Apply Directives")
    table.add_column("Target", style="cyan")
    table.add_column("Action")
    table.add_column("Section")
    table.add_column("Syntax", style="dim")
    table.add_column("Words", justify="right")

    for d in directives:
        target = d.target if d.is_actionable else f"[dim]{d.target}[/dim]"
        table.add_row(target, d.action.value, d.section or "", d.syntax, str(len(d.content.split())))

    console.print(table)
    console.print(f"\n[dim]Total: {len(directives)} directives[/dim]")
    if display_text:
        console.print("\n[bold]Prose:[/bold]")
        _print_raw(display_text)


def cmd_frontmatter(args: argparse.Namespace) -> None:
    """Show a document's metadata header."""
    metadata, body = parse_frontmatter(_read_input(args.file))

    if args.json:
        _print_raw(json.dumps({"metadata": metadata, "body": body}, indent=2, ensure_ascii=False))
        return

    if not metadata:
        console.print("[dim]No metadata header.[/dim]")
        return

    table = Table(title="Metadata")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Type", style="dim")
    for key, value in metadata.items():
        table.add_row(key, json.dumps(value, ensure_ascii=False), type(value).__name__)
    console.print(table)


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert between markdown and the editor tree."""
    text = _read_input(args.file)
    if args.to_markdown:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON tree: {e}[/red]")
            sys.exit(1)
        _print_raw(tree_to_markdown(tree_from_dict(data)).rstrip("\n"))
        return
    _print_raw(json.dumps(tree_to_dict(markdown_to_tree(text)), indent=2, ensure_ascii=False))


def cmd_cost(args: argparse.Namespace) -> None:
    """Price a request."""
    config = _load_config(args)
    registry = _create_registry(config)
    breakdown = registry.cost_breakdown(args.model, args.input_tokens, args.output_tokens)

    console.print(f"[bold]{args.model}[/bold] [dim]({breakdown.tier} pricing)[/dim]")
    console.print(f"  Input:  {format_cost(breakdown.input)}")
    console.print(f"  Output: {format_cost(breakdown.output)}")
    console.print(f"  Total:  {format_cost(breakdown.total)}")

    if args.record:
        tracker = CostTracker(ProjectCostStore(Path(args.record), config.cost_file))
        tracker.add_cost(breakdown.total)
        console.print(f"  Project total: {format_cost(tracker.project_total)}")


def cmd_next_name(args: argparse.Namespace) -> None:
    """Print the next free versioned name."""
    directory = Path(args.directory)
    existing = [p.name for p in directory.iterdir() if p.is_file()] if directory.is_dir() else []
    _print_raw(next_versioned_name(args.name, existing))


def cmd_models(args: argparse.Namespace) -> None:
    """List known models."""
    registry = _create_registry(_load_config(args))
    models = registry.all()

    if args.json:
        data = [
            {
                "id": m.id,
                "provider": m.provider,
                "display_name": m.display_name,
                "context_window": m.context_window,
                "pricing": {
                    "standard": {"input": m.pricing.standard.input, "output": m.pricing.standard.output},
                    "long_context": (
                        {"input": m.pricing.long_context.input, "output": m.pricing.long_context.output}
                        if m.pricing.long_context
                        else None
                    ),
                },
            }
            for m in models
        ]
        _print_raw(json.dumps(data, indent=2))
        return

    table = Table(title="Models")
    table.add_column("ID", style="cyan")
    table.add_column("Provider", style="dim")
    table.add_column("Context", justify="right")
    table.add_column("Input $/M", justify="right")
    table.add_column("Output $/M", justify="right")
    table.add_column("Long context $/M", justify="right")

    for m in models:
        long_context = m.pricing.long_context
        table.add_row(
            m.id,
            m.provider,
            f"{m.context_window:,}",
            f"{m.pricing.standard.input:g}",
            f"{m.pricing.standard.output:g}",
            f"{long_context.input:g} / {long_context.output:g}" if long_context else "",
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(models)} models[/dim]")


if __name__ == "__main__":
    main()
