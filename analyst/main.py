"""Application entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from analyst.config import Settings, load_settings
from analyst.db import StatsDatabase
from analyst.functions.catalog import load_catalog
from analyst.functions.registry import build_registry
from analyst.llm.openrouter import OpenRouterProvider
from analyst.orchestrator import QueryOrchestrator
from analyst.store import DataStoreAccessor

LOGGER = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> QueryOrchestrator:
    """Wire store, registry and model provider into an orchestrator.

    Catalog and registry errors surface here, at startup, and are fatal.
    """

    db = StatsDatabase(settings.database_path)
    db.initialize()

    accessor = DataStoreAccessor(db, timeout_seconds=settings.store_timeout_seconds)
    registry = build_registry(load_catalog(settings.function_catalog_path), accessor)
    LOGGER.info("Registered functions: %s", [spec.name for spec in registry.specs()])

    return QueryOrchestrator(
        llm=OpenRouterProvider(settings),
        registry=registry,
        request_timeout_seconds=settings.request_timeout_seconds,
    )


def seed_database(settings: Settings, seed_path: Path) -> None:
    db = StatsDatabase(settings.database_path)
    db.initialize()
    db.load_seed(json.loads(seed_path.read_text(encoding="utf-8")))
    LOGGER.info("Loaded seed data from %s into %s", seed_path, settings.database_path)


async def run(settings: Settings, question: str | None) -> None:
    """Answer one question, or read questions from stdin until EOF."""

    orchestrator = build_orchestrator(settings)

    if question:
        print(await orchestrator.answer(question))
        return

    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        if not line.strip():
            continue
        print(await orchestrator.answer(line.strip()))
    LOGGER.info("Analyst shutdown complete")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="analyst", description="Ask sports analytics questions.")
    parser.add_argument("question", nargs="*", help="Question to answer; omit for an interactive prompt.")
    parser.add_argument("--seed", type=Path, help="JSON file with teams, standings and matches to load first.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    args = _parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())

    if args.seed:
        seed_database(settings, args.seed)

    asyncio.run(run(settings, " ".join(args.question) or None))


if __name__ == "__main__":
    main()
