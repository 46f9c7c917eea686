"""
Command-line interface for brewpress.
"""
import sys
import argparse
import logging
import asyncio
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from brewpress.config import Config, load_config
from brewpress.core.errors import ConfigError
from brewpress.core.gateway import AIGateway, OpenAIBackend
from brewpress.core.images import ImageResolver
from brewpress.core.importer import ImportCoordinator
from brewpress.core.processor import ArticleEnricher, BatchProcessor
from brewpress.core.resolver import CategoryResolver
from brewpress.fetchers.wordpress import WordPressClient
from brewpress.utils.http import ImageDownloader, RateLimiter

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

COMMANDS = ('import-news', 'process-news', 'fetch-news', 'process-post')

USAGE = """使用方法:
  brewpress import-news        # ニュースインポート実行
  brewpress process-news       # ニュース処理実行
  brewpress fetch-news         # インポート+処理実行
  brewpress process-post [ID]  # 個別投稿処理
"""


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure root logging for a CLI run.

    Args:
        verbose: Log at DEBUG instead of INFO
        log_file: Log file path; None uses a dated file, '' disables it
    """
    if log_file is None:
        log_file = f"brewpress_{datetime.now().strftime('%Y%m%d')}.log"

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # Keep third-party request logging out of DEBUG output
    for name in ('openai', 'httpx', 'httpcore', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments; anything unrecognized is collected in `extra`
    """
    parser = argparse.ArgumentParser(
        prog='brewpress',
        description="AI enrichment for pending WordPress news posts",
        usage=USAGE,
    )
    parser.add_argument("command", nargs="?", help="import-news | process-news | fetch-news | process-post")
    parser.add_argument("post_id", nargs="?", help="Post id for process-post")
    parser.add_argument("--config", help="Path to a YAML or JSON config file")
    parser.add_argument("--log-file", help="Log file path ('' disables file logging)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args, extra = parser.parse_known_args(argv)
    args.extra = extra
    return args


def build_processor(config: Config, store: WordPressClient, downloader: ImageDownloader) -> BatchProcessor:
    """
    Wire up the enrichment pipeline from configuration.
    """
    backend = OpenAIBackend(
        api_key=config.get('ai.api_key'),
        model=config.get('ai.model'),
        base_url=config.get('ai.base_url'),
    )
    gateway = AIGateway(
        backend,
        cooldown=config.get('ai.cooldown_seconds'),
        base_wait=config.get('ai.rate_limit_base_wait'),
        max_retries=config.get('ai.max_retries'),
    )
    categories = CategoryResolver(
        category_map=config.get('categories.map'),
        default_category=config.get('categories.default'),
        featured_category=config.get('categories.featured_id'),
        featured_threshold=config.get('categories.featured_threshold'),
    )
    images = ImageResolver(gateway, store, downloader)
    enricher = ArticleEnricher(gateway, store, categories, images)
    return BatchProcessor(store, enricher, page_size=config.get('wordpress.page_size'))


def run_import(config: Config) -> None:
    """
    Run every configured import job and wait for each to finish.
    """
    import_key = config.get('import.key')
    if not import_key:
        logger.error("IMPORT_KEY is not set, skipping news import")
        return

    logger.info("Starting news import")
    coordinator = ImportCoordinator(
        poll_interval=config.get('import.poll_interval_seconds'),
        max_attempts=config.get('import.max_attempts'),
        timeout=config.get('import.request_timeout_seconds'),
    )
    results = coordinator.import_all(config.site_url, config.get('import.ids'), import_key)
    failed = [import_id for import_id, success in results.items() if not success]
    if failed:
        logger.error(f"Imports failed: {failed}")
    logger.info("News import finished")


async def run_processing(config: Config, post_id: Optional[int] = None) -> None:
    """
    Enrich all pending posts, or a single post when post_id is given.
    """
    store = WordPressClient(
        config.get('wordpress.url'),
        config.get('wordpress.auth'),
        timeout=config.get('wordpress.timeout_seconds'),
    )
    downloader = ImageDownloader(
        timeout=config.get('images.download_timeout_seconds'),
        rate_limiter=RateLimiter(min_interval=config.get('images.min_interval_seconds')),
    )
    try:
        processor = build_processor(config, store, downloader)
        if post_id is None:
            await processor.run()
        else:
            logger.info(f"Processing post {post_id}")
            await processor.process_one(post_id)
            logger.info(f"Finished post {post_id}")
    finally:
        await store.close_session()
        await downloader.close_session()


async def async_main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the application.
    """
    # Explicitly reload environment variables from .env file
    load_dotenv(override=True)

    args = parse_args(argv)
    if args.command not in COMMANDS or args.extra:
        print(USAGE)
        return 0

    configure_logging(args.verbose, args.log_file)

    try:
        config = load_config(args.config)
        config.require_credentials()
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.command == 'process-post':
        if not args.post_id:
            logger.error("No post id given")
            return 0
        if not args.post_id.isdigit():
            logger.error(f"Post id must be numeric: {args.post_id}")
            return 0
        await run_processing(config, int(args.post_id))
        return 0

    if args.command in ('import-news', 'fetch-news'):
        await asyncio.to_thread(run_import, config)

    if args.command in ('process-news', 'fetch-news'):
        await run_processing(config)

    logger.info("All processing finished")
    return 0


def main():
    """
    Entry point for the command-line script.
    """
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
