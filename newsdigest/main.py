#!/usr/bin/env python3
"""
Local News Digest Pipeline

Entry point for the news digest system.
Fetches regional news, removes duplicates, rewrites relevant stories with
a local angle and builds digests.

Usage:
    python -m newsdigest.main run                 # Scrape, dedupe, rewrite
    python -m newsdigest.main scrape              # Only fetch and store
    python -m newsdigest.main dedupe --limit 50   # Deduplicate recent articles
    python -m newsdigest.main rewrite --count 5   # Rewrite up to 5 articles
    python -m newsdigest.main digest              # Corpus digest
    python -m newsdigest.main categories          # Category digests
    python -m newsdigest.main clear-rewrites --files
    python -m newsdigest.main serve --port 3000
"""

import argparse
import asyncio
import logging
import sys

from .config.settings import settings
from .services import Services, build_services

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Regional news digest pipeline")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("run", help="Scrape, deduplicate and rewrite")
    commands.add_parser("scrape", help="Fetch sources and store new articles")

    dedupe = commands.add_parser("dedupe", help="Remove duplicate stories")
    dedupe.add_argument(
        "--limit",
        type=int,
        default=settings.dedupe_batch_size,
        help=f"Recent articles to compare (default: {settings.dedupe_batch_size})",
    )

    rewrite = commands.add_parser("rewrite", help="Relevance-check and rewrite articles")
    rewrite.add_argument(
        "--count",
        type=int,
        default=settings.max_daily_rewrites,
        help=f"Articles to consider (default: {settings.max_daily_rewrites})",
    )

    commands.add_parser("digest", help="Build the corpus digest")
    commands.add_parser("categories", help="Build one digest per category")

    clear = commands.add_parser("clear-rewrites", help="Delete all rewritten articles")
    clear.add_argument("--files", action="store_true", help="Also delete JSON backup files")

    serve = commands.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    return parser.parse_args(argv)


async def run_command(args: argparse.Namespace, services: Services) -> int:
    """Dispatch one command; returns the process exit code."""
    needs_oracle = {"dedupe", "rewrite", "digest", "categories"}
    if args.command in needs_oracle and services.oracle is None:
        print(f"❌ '{args.command}' needs an oracle credential (see GEMINI_API_KEY / ANTHROPIC_API_KEY)")
        return 1

    orchestrator = services.orchestrator

    if args.command == "run":
        summary = await services.run_pipeline()
        print("\n✅ Run complete")
        print(f"   Found: {summary.found}  Saved: {summary.saved}  Skipped: {summary.skipped}")
        print(f"   Duplicates removed: {summary.duplicates_removed}  Rewritten: {summary.rewritten}")
        if services.disabled:
            print(f"   Disabled stages: {', '.join(services.disabled)}")
        if summary.costs:
            print(f"   Oracle cost: ${summary.costs['total_cost_usd']:.4f}")
        for error in summary.errors:
            print(f"   ⚠️  {error}")
        return 0

    if args.command == "scrape":
        result = await orchestrator.scrape()
        print(f"\n📰 {result.found} found, {result.saved} new, {result.skipped} already stored")
        return 0

    if args.command == "dedupe":
        candidates = await services.repository.recent_raw(args.limit)
        result = await orchestrator.deduplicate(candidates)
        print(f"\n🔍 {result.checked} checked, {len(result.kept)} kept, {len(result.removed)} removed")
        return 0

    if args.command == "rewrite":
        result = await orchestrator.rewrite_articles(limit=args.count)
        print(f"\n✍️  {result.rewritten} rewritten, {result.skipped} skipped")
        return 0

    if args.command == "digest":
        digest = await services.aggregator.build_corpus_digest()
        if digest is None:
            print("\n❌ No rewritten articles to digest")
            return 1
        print(f"\n🗞️  Digest over {digest.article_count} articles")
        for story in digest.top_stories:
            print(f"   {story.rank}. {story.headline}")
        return 0

    if args.command == "categories":
        digests = await services.aggregator.build_category_digests()
        print(f"\n🗂️  Built {len(digests)} category digests: {', '.join(digests) or 'none'}")
        return 0

    if args.command == "clear-rewrites":
        cleared = await services.clear_rewrites(include_backup_files=args.files)
        print(f"\n🗑️  Cleared {cleared} rewritten articles")
        return 0

    raise ValueError(f"Unknown command {args.command!r}")


async def main(argv=None) -> int:
    args = parse_args(argv)
    services = build_services(settings)
    try:
        return await run_command(args, services)
    finally:
        await services.close()


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("newsdigest.app.main:app", host=host, port=port)


def cli() -> None:
    """Console script entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        serve(args.host, args.port)
        return

    try:
        sys.exit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        print("\n\nInterrupted")
        sys.exit(1)


if __name__ == "__main__":
    cli()
