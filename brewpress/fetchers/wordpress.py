"""
WordPress REST API client for brewpress.
"""
import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
import backoff

from brewpress.core.article import RawArticle
from brewpress.core.errors import NetworkError

# Configure logging
logger = logging.getLogger(__name__)

EDIT_CONTEXT = "_embed&context=edit&acf_format=standard"


class WordPressClient:
    """
    Reads pending posts from WordPress and writes enriched posts back.
    """
    def __init__(self, base_url: str, auth: str, timeout: float = 30):
        """
        Initialize the WordPressClient.

        Args:
            base_url: REST API root, e.g. https://example.com/wp-json/wp/v2
            auth: "user:application-password" credentials
            timeout: Total timeout for each request in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.headers = {
            'Authorization': 'Basic ' + base64.b64encode(auth.encode('utf-8')).decode('ascii'),
        }
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """
        Lazy initialization of aiohttp session.

        Returns:
            aiohttp.ClientSession: The HTTP session
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=self.headers, timeout=self.timeout)
        return self._session

    async def close_session(self):
        """Close aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _request(self, path: str, method: str = 'GET', **kwargs) -> Any:
        """
        Perform a request and decode the JSON body.

        Raises:
            aiohttp.ClientError: On transport failures
            NetworkError: If the response is not JSON
        """
        url = f"{self.base_url}{path}"
        async with self.session.request(method, url, **kwargs) as response:
            content_type = response.headers.get('Content-Type', '')
            if 'application/json' not in content_type:
                raise NetworkError(
                    f"Invalid response type: {content_type or 'none'}. Status: {response.status}"
                )
            try:
                return await response.json(content_type=None)
            except json.JSONDecodeError as e:
                raise NetworkError(f"Invalid JSON from {method} {path}: {e}") from e

    @backoff.on_exception(
        backoff.expo,
        (aiohttp.ClientError, asyncio.TimeoutError),
        max_tries=3
    )
    async def _get(self, path: str) -> Any:
        return await self._request(path)

    async def _call(self, path: str, method: str = 'GET', **kwargs) -> Any:
        try:
            if method == 'GET':
                return await self._get(path)
            return await self._request(path, method, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

    async def fetch_pending(self, page: int, per_page: int) -> List[RawArticle]:
        """
        Fetch one page of pending posts.

        Args:
            page: 1-based page number
            per_page: Page size

        Returns:
            Articles on the page; empty when the page is past the end
        """
        data = await self._call(
            f"/posts?status=pending&{EDIT_CONTEXT}&per_page={per_page}&page={page}"
        )
        if not isinstance(data, list):
            # WordPress answers out-of-range pages with an error object
            logger.debug(f"No posts list on page {page}: {data}")
            return []
        articles = []
        for item in data:
            if not isinstance(item, dict) or not item.get('id'):
                continue
            try:
                articles.append(RawArticle.from_wp(item))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed post {item.get('id')!r} on page {page}: {e}")
        return articles

    async def fetch_by_id(self, post_id: int) -> Optional[RawArticle]:
        """
        Fetch a single post.

        Returns:
            The article, or None if it does not exist or is not accessible
        """
        data = await self._call(f"/posts/{post_id}?status=pending&{EDIT_CONTEXT}")
        if not isinstance(data, dict) or not data.get('id'):
            return None
        try:
            return RawArticle.from_wp(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Post {post_id} could not be read: {e}")
            return None

    async def update(self, post_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a post.

        Args:
            post_id: Post to update
            body: Fields to write

        Returns:
            Decoded response; carries `id` on success
        """
        data = await self._call(f"/posts/{post_id}", 'POST', json=body)
        return data if isinstance(data, dict) else {}

    async def upload_media(self, data: bytes, filename: str, title: str, alt_text: str) -> Dict[str, Any]:
        """
        Upload an image to the media library.

        Returns:
            Decoded response; carries the media `id` on success
        """
        form = aiohttp.FormData()
        form.add_field('file', data, filename=filename, content_type='image/jpeg')
        form.add_field('title', title)
        form.add_field('alt_text', alt_text)

        result = await self._call('/media', 'POST', data=form)
        return result if isinstance(result, dict) else {}
