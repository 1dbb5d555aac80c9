#!/usr/bin/env python3
"""
Command-line entry point for the catalog resolver.

Resolves model files against the configured catalogs and prints the resulting
metadata records as JSON on stdout; logs go to stderr and the rotating log file.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from catalog_resolver.__version__ import __version__
from catalog_resolver.exceptions import ModelResolverError
from catalog_resolver.logging_config import get_logger, reset_logging, setup_logging
from catalog_resolver.manager import MetadataManager, default_metadata_path
from catalog_resolver.naming import is_model_file
from catalog_resolver.providers.civitai import CivitaiClient
from catalog_resolver.providers.huggingface import HuggingFaceClient
from catalog_resolver.store import MetadataStore

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-resolver",
        description="Resolve local model files to CivitAI / Hugging Face catalog entries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--metadata-file",
        type=Path,
        default=None,
        help="Metadata document (default: ./resolver-data/model-metadata.json)",
    )
    parser.add_argument("--civitai-key", default=None, help="CivitAI API key")
    parser.add_argument("--hf-token", default=None, help="Hugging Face access token")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log file level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve one or more model files")
    resolve.add_argument("paths", nargs="+", type=Path)
    resolve.add_argument("--force", action="store_true", help="Ignore fresh cached records")
    resolve.add_argument(
        "--provider",
        choices=["civitai", "huggingface"],
        default=None,
        help="Query only this provider",
    )

    batch = subparsers.add_parser("batch", help="Resolve every model file under a directory")
    batch.add_argument("directory", type=Path)

    search = subparsers.add_parser("search", help="Search both catalogs by name")
    search.add_argument("query")

    lookup = subparsers.add_parser("lookup", help="Fetch one catalog entry by id")
    lookup.add_argument("model_id")
    lookup.add_argument("--provider", choices=["civitai", "huggingface"], required=True)

    subparsers.add_parser("cleanup", help="Drop stored records for non-model files")
    return parser


def scan_model_files(directory: Path) -> List[Path]:
    """Recursively list model files under ``directory`` in a stable order."""
    return sorted(path for path in directory.rglob("*") if path.is_file() and is_model_file(path))


async def run(args: argparse.Namespace) -> Any:
    store = MetadataStore(args.metadata_file or default_metadata_path())
    manager = MetadataManager(
        store,
        civitai_client=CivitaiClient(api_key=args.civitai_key),
        huggingface_client=HuggingFaceClient(api_key=args.hf_token),
    )
    try:
        if args.command == "resolve":
            results: Dict[str, Any] = {}
            for path in args.paths:
                if args.provider:
                    record = await manager.resolve_with_provider(
                        path, args.provider, force_refresh=args.force
                    )
                else:
                    record = await manager.resolve(path, force_refresh=args.force)
                results[str(path)] = record.to_dict()
            return results

        if args.command == "batch":
            records = await manager.batch_resolve(scan_model_files(args.directory))
            return {path: record.to_dict() for path, record in records.items()}

        if args.command == "search":
            found = await manager.search_all(args.query)
            return {
                provider.value: [entry.to_dict() for entry in entries]
                for provider, entries in found.items()
            }

        if args.command == "lookup":
            entry = await manager.get_entry(args.model_id, args.provider)
            return entry.to_dict() if entry is not None else None

        return {"removed": manager.cleanup_non_model_entries()}
    finally:
        for client in manager.clients.values():
            await client.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the catalog resolver CLI."""
    args = build_parser().parse_args(argv)

    reset_logging()
    setup_logging(log_level=args.log_level, console_level="WARNING")

    try:
        result = asyncio.run(run(args))
    except ModelResolverError as e:
        logger.error("%s", e)
        return 1

    json.dump(result, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
