"""
Command-line interface for the news video pipeline.
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from openai import AsyncOpenAI

from .config import Settings
from .models import NewsItem
from .pexels import PexelsClient
from .pipeline import VideoPipeline
from .storage import VideoStore

logger = logging.getLogger("newsreel")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Turn a news item into a narrated, captioned short video")

    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--prompt", help="Topic prompt for the narration")
    src.add_argument(
        "--news-json",
        help="JSON file with one news item (title, description, content, url, source, publishedAt); "
        "its description is used as the prompt",
    )

    ap.add_argument("--workdir", default=None, help="Working/cache directory (default: NEWSREEL_WORKDIR or .work)")
    ap.add_argument("--use-cache", action="store_true", help="Reuse stage outputs already in the workdir")
    ap.add_argument("--db", default=None, help="SQLite file for video records (default: NEWSREEL_DB)")
    ap.add_argument("--stt", choices=["local", "openai"], default=None, help="Speech-to-text backend")
    ap.add_argument("--env-file", default=None, help="Path to a .env file")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return ap.parse_args(argv)


def load_news(path: str) -> NewsItem:
    with open(path, encoding="utf-8") as f:
        return NewsItem.from_dict(json.load(f))


async def main_async(argv: list[str] | None = None) -> None:
    """Main async CLI entry point."""
    args = parse_args(argv)
    settings = Settings.from_env(args.env_file)
    setup_logging(args.verbose)

    if args.workdir:
        settings.work_dir = Path(args.workdir)
    if args.use_cache:
        settings.use_cache = True
    if args.db:
        settings.db_path = Path(args.db)
    if args.stt:
        settings.stt_backend = args.stt

    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY is not set. Put it in .env or environment.")

    news = None
    if args.news_json:
        news = load_news(args.news_json)
        prompt = news.description or news.title
    else:
        prompt = args.prompt

    client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
    with VideoStore(str(settings.db_path)) as store:
        async with PexelsClient(settings.pexels_api_key) as pexels:
            pipeline = VideoPipeline(settings, store, llm_client=client, pexels=pexels)
            result = await pipeline.run(prompt, news)

    logger.info(f"Video {result.record.global_id}: {result.final_path}")


def main() -> None:
    """Main CLI entry point."""
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
