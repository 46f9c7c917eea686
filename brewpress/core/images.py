"""
Cover image resolution for posts that arrive without one.
"""
import logging
import time
from typing import Callable, Optional
from urllib.parse import urljoin, urlparse

from brewpress.core.article import ImageOutcome, RawArticle
from brewpress.core.errors import EnrichmentError
from brewpress.core.parser import parse_image_lookup
from brewpress.core.prompts import build_image_prompt

logger = logging.getLogger(__name__)

NO_IMAGE_FOUND = "no-image-found"
DOWNLOAD_FAILED = "download-failed"
UPLOAD_FAILED = "upload-failed"


def absolute_image_url(url: str, base: str) -> Optional[str]:
    """
    Resolve a possibly relative image URL against the article's original link.

    Returns:
        An http(s) URL, or None if none can be formed
    """
    if base:
        url = urljoin(base, url)
    if urlparse(url).scheme not in ('http', 'https'):
        return None
    return url


class ImageResolver:
    """
    Finds an image in the source HTML, copies it into the media library and
    sets it as the post's cover.
    """
    def __init__(self, gateway, store, downloader, clock: Callable[[], float] = time.time):
        """
        Initialize the ImageResolver.

        Args:
            gateway: AIGateway used to pick the image URL
            store: Content store client (upload_media, update)
            downloader: Object with an async fetch(url) -> bytes method
            clock: Timestamp source for uploaded file names
        """
        self.gateway = gateway
        self.store = store
        self.downloader = downloader
        self.clock = clock

    async def find_image_url(self, article: RawArticle) -> Optional[str]:
        html = article.image_search_html
        if not html:
            return None
        try:
            response = await self.gateway.analyze(build_image_prompt(html))
            url = parse_image_lookup(response)
        except EnrichmentError as e:
            logger.warning(f"Post {article.id}: image lookup failed: {e}")
            return None
        if not url:
            return None
        return absolute_image_url(url, article.link)

    async def resolve(self, article: RawArticle) -> ImageOutcome:
        """
        Resolve a cover image for an article.

        Args:
            article: The article being enriched

        Returns:
            NOT_NEEDED when a cover already exists, RESOLVED with the media id
            after a successful upload, SKIPPED with a reason otherwise
        """
        if article.has_cover_image:
            logger.info(f"Post {article.id} already has a cover image")
            return ImageOutcome.not_needed()

        logger.info(f"Post {article.id} has no cover image, looking for one in the source")
        image_url = await self.find_image_url(article)
        if not image_url:
            logger.warning(f"Post {article.id}: no image found in source content")
            return ImageOutcome.skipped(NO_IMAGE_FOUND)

        logger.info(f"Post {article.id}: downloading image {image_url}")
        try:
            data = await self.downloader.fetch(image_url)
        except EnrichmentError as e:
            logger.warning(f"Post {article.id}: image download failed: {e}")
            return ImageOutcome.skipped(DOWNLOAD_FAILED)

        filename = f"image_{article.id}_{int(self.clock() * 1000)}.jpg"
        label = f"投稿ID {article.id} の画像"
        try:
            uploaded = await self.store.upload_media(data, filename, label, label)
        except EnrichmentError as e:
            logger.warning(f"Post {article.id}: image upload failed: {e}")
            return ImageOutcome.skipped(UPLOAD_FAILED)

        media_id = uploaded.get('id')
        if not media_id:
            logger.warning(f"Post {article.id}: image upload returned no media id")
            return ImageOutcome.skipped(UPLOAD_FAILED)

        logger.info(f"Post {article.id}: uploaded image as media {media_id}")
        attached = await self._attach(article.id, media_id)
        return ImageOutcome.resolved(media_id, attached=attached)

    async def _attach(self, post_id: int, media_id: int) -> bool:
        # The upload stands even if this write fails; nothing is rolled back.
        try:
            response = await self.store.update(post_id, {'featured_media': media_id})
        except EnrichmentError as e:
            logger.warning(f"Post {post_id}: could not set media {media_id} as cover: {e}")
            return False
        if not response.get('id'):
            logger.warning(f"Post {post_id}: cover update for media {media_id} returned no id")
            return False
        logger.info(f"Post {post_id}: set media {media_id} as cover image")
        return True
