"""Main entry point for News Brief.

Orchestrates the pipeline for whoever is due:
  1. Load config + seed → 2. Pick users → 3. Aggregate → 4. Compose → 5. Send
"""

import asyncio
import json
import logging
import sys

from .aggregator import NewsAggregator
from .cache import NewsCache
from .composer import BriefComposer
from .config import AppConfig, Settings, load_config
from .errors import NewsBriefError
from .fetcher import NewsFetcher
from .llm import LlmClient
from .output import OutputDirSender, save_brief
from .pipeline import BriefPipeline
from .stores import Stores, load_seed
from .synthesizer import Synthesizer

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging to stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_pipeline(
    config: AppConfig,
    settings: Settings,
    stores: Stores,
    cache: NewsCache,
    llm: LlmClient,
) -> BriefPipeline:
    fetcher = NewsFetcher.from_config(config.news, settings)
    aggregator = NewsAggregator(
        subscriptions=stores.subscriptions,
        topics=stores.topics,
        fetcher=fetcher,
        cache=cache,
        config=config,
    )
    synthesizer = Synthesizer(llm, config)
    composer = BriefComposer(synthesizer, llm, config)
    return BriefPipeline(
        users=stores.users,
        subscriptions=stores.subscriptions,
        events=stores.events,
        briefs=stores.briefs,
        aggregator=aggregator,
        composer=composer,
        sender=OutputDirSender(config.output.dir),
        config=config,
    )


async def save_briefs(
    pipeline: BriefPipeline,
    stores: Stores,
    user_ids: list[str],
    output_dir: str,
) -> int:
    """Dry run: generate and save briefs locally instead of sending them.

    A user who cannot be briefed is logged and skipped. Returns the exit code.
    """
    failed = 0
    for user_id in user_ids:
        try:
            brief = await pipeline.generate_brief_for_user(user_id)
        except NewsBriefError as e:
            logger.error("Skipping %s: %s", user_id, e)
            failed += 1
            continue
        user = await stores.users.get_user(user_id)
        save_brief(brief, user.email or user_id, output_dir)
    return 1 if failed else 0


async def _run(args, config: AppConfig, settings: Settings) -> int:
    stores = await load_seed(args.seed or config.seed)
    llm = LlmClient(config.llm, settings)

    async with NewsCache(config.cache.ttl, config.cache.sweep_interval) as cache:
        pipeline = build_pipeline(config, settings, stores, cache, llm)
        try:
            if args.command == "preview":
                articles = await pipeline.aggregator.fetch_by_topic_id(args.topic)
                for a in articles:
                    print(json.dumps(
                        {"score": round(a.score, 3), "title": a.title, "source": a.source, "url": a.url},
                        ensure_ascii=False,
                    ))
                return 0

            if args.user:
                user_ids = args.user
            elif args.all:
                user_ids = [u.id for u in await stores.users.list_users()]
            else:
                user_ids = [u.id for u in await pipeline.users_due_now()]

            if not user_ids:
                logger.info("No users due for a brief right now")
                return 0

            if args.dry_run:
                return await save_briefs(pipeline, stores, user_ids, config.output.dir)

            result = await pipeline.process_brief_batch(user_ids)
            for err in result.errors:
                logger.error("  %s: %s", err.user_id, err.error)
            return 1 if result.failed else 0
        except NewsBriefError as e:
            logger.error("%s", e)
            return 1
        finally:
            await llm.close()


def cli() -> None:
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="News Brief - personalized daily news briefs")
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to config.yaml (default: config.yaml)",
    )
    parser.add_argument("--seed", help="Seed YAML with topics/users (default: config seed)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Generate and send briefs")
    run.add_argument("--user", action="append", help="User id (repeatable)")
    run.add_argument("--all", action="store_true", help="Every user, ignoring delivery hour")
    run.add_argument("--dry-run", action="store_true", help="Save briefs, don't send")

    preview = sub.add_parser("preview", help="Show scored articles for one topic")
    preview.add_argument("--topic", required=True, help="Topic id")

    args = parser.parse_args()
    _setup_logging(args.verbose)

    config, settings = load_config(args.config)
    logger.info("Config loaded: source=%s, model=%s", config.news.source, config.llm.model)
    sys.exit(asyncio.run(_run(args, config, settings)))


if __name__ == "__main__":
    cli()
