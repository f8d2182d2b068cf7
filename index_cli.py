#!/usr/bin/env python3
"""
Build source snapshots and query them from the command line.

Examples:
    python index_cli.py index docs
    python index_cli.py index knowledge --source-dir context --incremental
    python index_cli.py index discord --input exports/messages.jsonl
    python index_cli.py search "how do we deploy" --sources docs knowledge --hybrid
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from kb_search.core.config import settings, setup_logging
from kb_search.core.errors import SearchError
from kb_search.ingestion.corpus import read_docs, read_jsonl, read_knowledge
from kb_search.models.document import SourceDocument
from kb_search.services.search_service import SearchService
from kb_search.services.sources import SOURCE_ADAPTERS

logger = logging.getLogger("index_cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Knowledge base semantic search CLI.")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL.")
    commands = parser.add_subparsers(dest="command", required=True)

    index = commands.add_parser("index", help="Embed a source and save its snapshot.")
    index.add_argument("source", choices=list(SOURCE_ADAPTERS))
    index.add_argument("--source-dir", type=Path, default=None, help="Markdown root (docs/knowledge).")
    index.add_argument("--input", type=Path, default=None, help="JSONL export of documents (discord).")
    index.add_argument(
        "--incremental",
        action="store_true",
        help="Merge into the existing snapshot instead of rebuilding it.",
    )

    search = commands.add_parser("search", help="Run a unified search and print JSON.")
    search.add_argument("query")
    search.add_argument("--sources", nargs="+", default=None, choices=list(SOURCE_ADAPTERS))
    search.add_argument("--hybrid", action="store_true", help="Blend keyword matches into the score.")
    search.add_argument("--limit", type=int, default=settings.DEFAULT_LIMIT)
    search.add_argument("--semantic-weight", type=float, default=settings.DEFAULT_SEMANTIC_WEIGHT)
    return parser.parse_args(argv)


def load_documents(args: argparse.Namespace) -> List[SourceDocument]:
    if args.source == "discord":
        if args.input is None:
            raise SystemExit("index discord requires --input FILE.jsonl")
        return read_jsonl(args.input)
    if args.source == "docs":
        return read_docs(args.source_dir or Path(settings.DOCS_DIR))
    return read_knowledge(args.source_dir or Path(settings.KNOWLEDGE_DIR))


async def run_index(svc: SearchService, args: argparse.Namespace) -> None:
    documents = load_documents(args)
    if not documents:
        logger.warning(f"No documents found for '{args.source}', nothing to index")
        return

    with tqdm(total=len(documents), desc=f"Indexing {args.source}", unit="docs") as bar:

        def on_progress(progress: Dict[str, int]) -> None:
            bar.update(progress["current"] - bar.n)

        descriptor = await svc.index_source(
            args.source, documents, incremental=args.incremental, on_progress=on_progress
        )

    path = svc.adapter(args.source).snapshot_path
    print(f"✓ Saved {descriptor.total_vectors} vectors ({descriptor.dimensions} dims) to {path}")


async def run_search(svc: SearchService, args: argparse.Namespace) -> None:
    response = await svc.unified_search(
        args.query,
        sources=args.sources,
        limit=args.limit,
        mode="hybrid" if args.hybrid else "semantic",
        semantic_weight=args.semantic_weight,
    )
    print(response.model_dump_json(indent=2))


async def run(args: argparse.Namespace) -> None:
    svc = SearchService()
    try:
        if args.command == "index":
            await run_index(svc, args)
        else:
            await run_search(svc, args)
    finally:
        await svc.provider.aclose()


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        asyncio.run(run(args))
    except SearchError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
