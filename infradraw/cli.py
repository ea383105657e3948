"""Command line interface: inspect or convert a configuration without the GUI.

Usage:
  python -m infradraw versions
  python -m infradraw inspect https://github.com/owner/repo/tree/main/infra
  python -m infradraw inspect ./infra
  python -m infradraw generate ./infra -o ./out
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO, Tuple, Union

from .config import AppConfig
from .generator import write_configuration
from .importer import INVALID_URL_MESSAGE, ImportOutcome, run_import
from .logging_config import configure_logging
from .parser import ConfigurationParser
from .schema import SchemaCatalog
from .sources import GithubSource, LocalDirectorySource, parse_github_url

logger = logging.getLogger(__name__)

Source = Union[GithubSource, LocalDirectorySource]


def source_for(location: str, config: AppConfig) -> Optional[Source]:
    """A local directory when ``location`` is one, otherwise a GitHub URL (or None)."""
    if Path(location).is_dir():
        return LocalDirectorySource(location)
    repo_info = parse_github_url(location)
    if repo_info is None:
        return None
    return GithubSource(repo_info, token=config.github_token, timeout=config.request_timeout)


def _import(location: str, config: AppConfig, catalog: SchemaCatalog) -> Tuple[Optional[ImportOutcome], str]:
    source = source_for(location, config)
    if source is None:
        return None, INVALID_URL_MESSAGE
    outcome = run_import(source, ConfigurationParser(catalog))
    if outcome.error:
        return None, outcome.error
    return outcome, ""


def print_outcome(outcome: ImportOutcome, out: TextIO) -> None:
    labels = {block.id: block.label for block in outcome.blocks}
    out.write(f"Blocks ({len(outcome.blocks)}):\n")
    for block in outcome.blocks:
        out.write(f"  {block.label} [{block.type_name}, {block.category.value}] at ({block.x:g}, {block.y:g})\n")
    out.write(f"Connections ({len(outcome.connections)}):\n")
    for connection in outcome.connections:
        out.write(f"  {labels[connection.source_block_id]} -> {labels[connection.target_block_id]}\n")
    out.write(f"Variables ({len(outcome.variables)}):\n")
    for variable in outcome.variables:
        default = "" if variable.default is None else f" = {variable.default}"
        out.write(f"  {variable.name}: {variable.type.value}{default}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="infradraw", description="Terraform block diagram tools.")
    parser.add_argument("--log-level", help="Logging level (default: INFRADRAW_LOG_LEVEL or INFO).")
    parser.add_argument("--schema-version", help="Provider schema version (default: latest bundled).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("versions", help="List available provider schema versions.")

    inspect = subparsers.add_parser("inspect", help="Import a configuration and print the resulting graph.")
    inspect.add_argument("source", help="GitHub URL or local directory.")

    generate = subparsers.add_parser("generate", help="Import a configuration and write generated Terraform.")
    generate.add_argument("source", help="GitHub URL or local directory.")
    generate.add_argument("-o", "--output", required=True, help="Output directory.")
    return parser


def main(argv: Optional[List[str]] = None, out: TextIO = sys.stdout) -> int:
    args = build_parser().parse_args(argv)
    config = AppConfig()
    if args.schema_version:
        config.provider_version = args.schema_version
    configure_logging(args.log_level or config.log_level)

    catalog = SchemaCatalog(schema_dir=config.schema_dir)

    if args.command == "versions":
        versions = catalog.available_versions()
        if not versions:
            out.write(f"No schema versions found in {catalog.schema_dir}\n")
            return 1
        latest = catalog.latest_version()
        for version in versions:
            out.write(f"{version}{' (latest)' if version == latest else ''}\n")
        return 0

    catalog.reload(config.provider_version)
    outcome, error = _import(args.source, config, catalog)
    if outcome is None:
        out.write(f"Error: {error}\n")
        return 1

    if args.command == "inspect":
        print_outcome(outcome, out)
        return 0

    written = write_configuration(
        args.output,
        outcome.blocks,
        outcome.connections,
        outcome.variables,
        catalog=catalog,
    )
    for path in written:
        out.write(f"Wrote {path}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
