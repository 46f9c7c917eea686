"""
Article enrichment for brewpress.

ArticleEnricher walks one article through analysis, classification, image
resolution, rendering and write-back. BatchProcessor feeds it every pending
article, one at a time, in shuffled order.
"""
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from tqdm import tqdm

from brewpress.core.article import (
    AnalysisResult,
    CategoryAssignment,
    ImageOutcome,
    RawArticle,
    UpdatePayload,
)
from brewpress.core.errors import EnrichmentError, WriteError
from brewpress.core.parser import parse_analysis
from brewpress.core.prompts import build_analysis_prompt
from brewpress.core.resolver import CategoryResolver, decide_status
from brewpress.formatters.html import render_post_content

logger = logging.getLogger(__name__)

JST = timezone(timedelta(hours=9), 'JST')


class ArticleState(Enum):
    FETCHED = "fetched"
    ANALYZED = "analyzed"
    CLASSIFIED = "classified"
    IMAGE_RESOLVED = "image_resolved"
    RENDERED = "rendered"
    SUBMITTED = "submitted"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EnrichmentOutcome:
    """
    What happened to one article.
    """
    article_id: int
    state: ArticleState = ArticleState.FETCHED
    error: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    categories: List[int] = field(default_factory=list)
    image: Optional[ImageOutcome] = None
    history: List[ArticleState] = field(default_factory=lambda: [ArticleState.FETCHED])

    def advance(self, state: ArticleState) -> None:
        logger.debug(f"Post {self.article_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: EnrichmentError) -> "EnrichmentOutcome":
        self.error = error.kind
        self.reason = str(error)
        self.advance(ArticleState.FAILED)
        return self

    def skip(self, reason: str) -> "EnrichmentOutcome":
        self.reason = reason
        self.advance(ArticleState.SKIPPED)
        return self


def parse_pubdate(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the original publication date of a feed item.

    Accepts RFC 2822 (RSS) and ISO 8601 dates.

    Returns:
        Datetime, or None if the value is missing or unparseable
    """
    if not value or not str(value).strip():
        return None
    value = str(value).strip()
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ArticleEnricher:
    """
    Turns one pending article into an enriched, categorized post.
    """
    def __init__(
        self,
        gateway,
        store,
        categories: CategoryResolver,
        images,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the ArticleEnricher.

        Args:
            gateway: AIGateway for the analysis call
            store: Content store client used for the final update
            categories: CategoryResolver
            images: ImageResolver
            clock: Source of the current time (timezone aware)
        """
        self.gateway = gateway
        self.store = store
        self.categories = categories
        self.images = images
        self.clock = clock

    async def enrich(self, article: RawArticle) -> EnrichmentOutcome:
        """
        Enrich a single article and write it back.

        Per-article errors end up in the outcome; they are never raised.

        Args:
            article: The pending article

        Returns:
            EnrichmentOutcome in a terminal state
        """
        outcome = EnrichmentOutcome(article_id=article.id)
        logger.info(f"Processing post {article.id}: {article.title or '(no title)'}")

        content = article.source_content
        if not content:
            logger.warning(f"Post {article.id} has no content to analyze, skipping")
            return outcome.skip("no-content")

        try:
            response = await self.gateway.analyze(
                build_analysis_prompt(content, self.categories.category_names)
            )
            outcome.advance(ArticleState.ANALYZED)

            analysis = parse_analysis(response)
            assignment = self.categories.resolve(analysis)
            if assignment is None:
                logger.info(f"Post {article.id} is out of domain, skipping without update")
                return outcome.skip("not-relevant")
            outcome.categories = assignment.ids
            outcome.advance(ArticleState.CLASSIFIED)
            if assignment.featured is not None:
                logger.info(f"Post {article.id}: importance {analysis.importance}, adding featured category")

            image = await self.images.resolve(article)
            outcome.image = image
            outcome.status = decide_status(article.has_cover_image, image)
            outcome.advance(ArticleState.IMAGE_RESOLVED)

            content_html = render_post_content(analysis, article)
            outcome.advance(ArticleState.RENDERED)

            payload = self.build_payload(article, analysis, assignment, content_html, outcome.status)
            response = await self.store.update(article.id, payload.to_wp())
            outcome.advance(ArticleState.SUBMITTED)

            if not response.get('id'):
                raise WriteError(f"Update response for post {article.id} has no id")
        except EnrichmentError as e:
            logger.error(f"Post {article.id} failed in state {outcome.state.value}: {e.kind}: {e}")
            return outcome.fail(e)

        outcome.advance(ArticleState.DONE)
        logger.info(f"Updated post {article.id} (status: {outcome.status})")
        return outcome

    def publish_date(self, article: RawArticle) -> str:
        """Original publication date when valid, otherwise now."""
        parsed = parse_pubdate(article.pubdate)
        if parsed is None:
            if article.pubdate:
                logger.warning(f"Post {article.id}: could not parse pubdate {article.pubdate!r}")
            parsed = self.clock()
        return parsed.isoformat()

    def build_payload(
        self,
        article: RawArticle,
        analysis: AnalysisResult,
        assignment: CategoryAssignment,
        content_html: str,
        status: str,
    ) -> UpdatePayload:
        """
        Assemble the write-back record.

        Returns:
            UpdatePayload whose metadata is the article's prior meta merged
            with the AI fields
        """
        points = analysis.summary_points
        metadata: Dict[str, Any] = dict(article.meta)
        metadata.update({
            'last_processed': self.clock().astimezone(JST).isoformat(),
            'ai_summary_points': '\n'.join(points) if isinstance(points, list) else points,
            'ai_importance': analysis.importance,
            'ai_sentiment': analysis.sentiment,
            'ai_target_audience': analysis.target_audience,
            'ai_tags_suggest': ','.join(analysis.tags),
            'content_description': analysis.description,
        })
        return UpdatePayload(
            categories=assignment.ids,
            date=self.publish_date(article),
            content=content_html,
            metadata=metadata,
            excerpt=analysis.description,
            status=status,
        )


@dataclass
class BatchReport:
    outcomes: List[EnrichmentOutcome] = field(default_factory=list)

    def _count(self, state: ArticleState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is state)

    @property
    def done(self) -> int:
        return self._count(ArticleState.DONE)

    @property
    def skipped(self) -> int:
        return self._count(ArticleState.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(ArticleState.FAILED)


class BatchProcessor:
    """
    Sequential processing of every pending article.

    Articles are shuffled and then drained from a queue one at a time; no two
    articles ever have network calls in flight together.
    """
    def __init__(self, store, enricher: ArticleEnricher, page_size: int = 100,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.enricher = enricher
        self.page_size = page_size
        self.rng = rng or random.Random()

    async def fetch_all(self) -> List[RawArticle]:
        """
        Page through all pending articles.

        Stops at the first empty or short page.
        """
        articles: List[RawArticle] = []
        page = 1
        while True:
            batch = await self.store.fetch_pending(page, self.page_size)
            if not batch:
                break
            articles.extend(batch)
            logger.info(f"Page {page}: fetched {len(batch)} posts ({len(articles)} total)")
            if len(batch) < self.page_size:
                break
            page += 1
        return articles

    async def _process(self, article: RawArticle) -> EnrichmentOutcome:
        try:
            return await self.enricher.enrich(article)
        except Exception as e:
            logger.exception(f"Unexpected error processing post {article.id}: {e}")
            outcome = EnrichmentOutcome(article_id=article.id, error=type(e).__name__, reason=str(e))
            outcome.advance(ArticleState.FAILED)
            return outcome

    async def run(self, articles: Optional[List[RawArticle]] = None) -> BatchReport:
        """
        Enrich all pending articles.

        Args:
            articles: Articles to process; fetched from the store when omitted

        Returns:
            BatchReport with one outcome per article
        """
        if articles is None:
            try:
                articles = await self.fetch_all()
            except EnrichmentError as e:
                logger.error(f"Could not fetch pending posts: {e}")
                return BatchReport()

        logger.info(f"Fetched {len(articles)} pending posts")
        pending = list(articles)
        self.rng.shuffle(pending)
        queue: Deque[RawArticle] = deque(pending)

        report = BatchReport()
        with tqdm(total=len(queue), desc="Enriching posts") as pbar:
            while queue:
                article = queue.popleft()
                report.outcomes.append(await self._process(article))
                pbar.update(1)

        logger.info(
            f"Batch finished: {report.done} updated, {report.skipped} skipped, "
            f"{report.failed} failed"
        )
        return report

    async def process_one(self, post_id: int) -> Optional[EnrichmentOutcome]:
        """
        Fetch and enrich a single post by id.

        Returns:
            The outcome, or None if the post could not be fetched
        """
        try:
            article = await self.store.fetch_by_id(post_id)
        except EnrichmentError as e:
            logger.error(f"Could not fetch post {post_id}: {e}")
            return None
        if article is None:
            logger.error(f"Post {post_id} not found or not accessible")
            return None

        logger.info(f"Fetched post {post_id} (status: {article.status or 'unknown'})")
        return await self._process(article)
