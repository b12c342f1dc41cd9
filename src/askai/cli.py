"""Command line interface for the ask-ai gateway."""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from .config import settings
from .models.patches import PatchMarkers
from .providers import build_registry
from .server import run_server
from .services.patch_engine import apply_patches
from .utils.logging_setup import setup_logging


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug mode")
@click.option("--log-level", default=None, help="Set log level")
def cli(debug: bool, log_level: Optional[str]):
    """ask-ai gateway CLI."""
    settings.debug = debug
    if log_level:
        settings.logging.level = log_level.upper()
    elif debug:
        settings.logging.level = "DEBUG"

    setup_logging()


@cli.command()
@click.option("--host", default=None, help="Server host")
@click.option("--port", default=None, type=int, help="Server port")
def serve(host: Optional[str], port: Optional[int]):
    """Start the gateway server."""
    click.echo("Starting ask-ai gateway...")

    try:
        run_server(host=host, port=port)
    except KeyboardInterrupt:
        click.echo("\nServer stopped by user")


@cli.command()
def providers():
    """List the registered providers."""
    registry = build_registry(settings)
    for name in registry.names():
        click.echo(name)


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("response", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the patched document here instead of printing it")
def patch(document: Path, response: Path, output: Optional[Path]):
    """Apply a saved AI response to DOCUMENT and print the result as JSON."""
    markers = PatchMarkers(
        settings.prompts.search_start,
        settings.prompts.divider,
        settings.prompts.replace_end,
    )
    result = apply_patches(
        document.read_text(encoding="utf-8"),
        response.read_text(encoding="utf-8"),
        markers,
    )

    payload = {
        "updatedLines": result.updated_lines(),
        "skippedBlocks": result.skipped_blocks,
    }
    if output is not None:
        output.write_text(result.document, encoding="utf-8")
        payload["output"] = str(output)
    else:
        payload["html"] = result.document

    click.echo(json.dumps(payload, indent=2))
    if result.skipped_blocks and not result.changed_ranges:
        sys.exit(1)


if __name__ == "__main__":
    cli()
