import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from brewpress.core.errors import NetworkError
from brewpress.utils.http import ImageDownloader, RateLimiter

JPEG = b"\xff\xd8\xff\xe0jpeg-bytes"


@pytest.fixture
def app():
    async def image(request):
        return web.Response(body=JPEG, content_type="image/jpeg")

    async def empty(request):
        return web.Response(body=b"", content_type="image/jpeg")

    async def missing(request):
        return web.Response(status=404, text="not found")

    async def slow(request):
        await asyncio.sleep(0.5)
        return web.Response(body=JPEG, content_type="image/jpeg")

    application = web.Application()
    application.router.add_get("/image.jpg", image)
    application.router.add_get("/empty.jpg", empty)
    application.router.add_get("/missing.jpg", missing)
    application.router.add_get("/slow.jpg", slow)
    return application


def _download(app, path, timeout=5):
    limiter = RateLimiter(min_interval=0)

    async def main():
        async with TestServer(app) as server:
            downloader = ImageDownloader(timeout=timeout, rate_limiter=limiter)
            try:
                return await downloader.fetch(str(server.make_url(path)))
            finally:
                await downloader.close_session()

    return asyncio.run(main()), limiter


def test_download_returns_bytes(app):
    data, limiter = _download(app, "/image.jpg")

    assert data == JPEG
    assert sum(limiter.failure_counts.values()) == 0


@pytest.mark.parametrize("path", ["/empty.jpg", "/missing.jpg"])
def test_empty_or_failed_download_is_network_error(app, path):
    with pytest.raises(NetworkError):
        _download(app, path)


def test_download_timeout_is_network_error(app):
    with pytest.raises(NetworkError):
        _download(app, "/slow.jpg", timeout=0.05)


def test_failures_raise_backoff_and_success_relaxes_it():
    limiter = RateLimiter(min_interval=1.0, failure_threshold=3)

    limiter.report_failure("images.example.com")
    limiter.report_failure("images.example.com")
    assert limiter.backoff_times["images.example.com"] == 1.0

    limiter.report_failure("images.example.com")
    assert limiter.backoff_times["images.example.com"] == 2.0
    limiter.report_failure("images.example.com")
    assert limiter.backoff_times["images.example.com"] == 4.0

    limiter.report_success("images.example.com")
    assert limiter.failure_counts["images.example.com"] == 0
    assert limiter.backoff_times["images.example.com"] == pytest.approx(3.2)


def test_acquire_spaces_requests_to_the_same_domain(no_sleep):
    limiter = RateLimiter(min_interval=1.0)

    async def main():
        await limiter.acquire("images.example.com")
        await limiter.acquire("images.example.com")
        await limiter.acquire("other.example.com")

    asyncio.run(main())

    assert len(no_sleep) == 1
    assert 0.9 < no_sleep[0] <= 1.0
