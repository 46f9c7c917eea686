import asyncio
import base64

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from brewpress.core.errors import NetworkError
from brewpress.fetchers.wordpress import WordPressClient

API = "/wp-json/wp/v2"
AUTH = "editor:app-password"


def _post(post_id, **overrides):
    data = {
        "id": post_id,
        "status": "pending",
        "title": {"rendered": f"Post {post_id}"},
        "content": {"rendered": "<p>body</p>", "raw": "<p>body</p>"},
        "featured_media": 0,
        "meta": {},
        "acf": {},
    }
    data.update(overrides)
    return data


def _run(app, scenario):
    async def main():
        async with TestServer(app()) as server:
            client = WordPressClient(str(server.make_url(API)), AUTH, timeout=5)
            try:
                return await scenario(client)
            finally:
                await client.close_session()

    return asyncio.run(main())


@pytest.fixture
def received():
    return []


@pytest.fixture
def app(received):
    async def posts(request):
        received.append(("GET", dict(request.query), request.headers.get("Authorization")))
        page = int(request.query["page"])
        if page == 1:
            return web.json_response([_post(1), _post(2), {"code": "broken"}, _post("abc")])
        return web.json_response(
            {"code": "rest_post_invalid_page_number", "data": {"status": 400}}, status=400
        )

    async def post_by_id(request):
        post_id = request.match_info["post_id"]
        if post_id == "5":
            return web.json_response(_post(5))
        return web.json_response({"code": "rest_post_invalid_id"}, status=404)

    async def update(request):
        received.append(("POST", request.match_info["post_id"], await request.json()))
        return web.json_response({"id": int(request.match_info["post_id"])})

    async def media(request):
        form = await request.post()
        upload = form["file"]
        received.append({
            "filename": upload.filename,
            "content_type": upload.content_type,
            "data": upload.file.read(),
            "title": form["title"],
            "alt_text": form["alt_text"],
        })
        return web.json_response({"id": 900}, status=201)

    async def html_page(request):
        return web.Response(text="<html>maintenance</html>", content_type="text/html")

    def build():
        # A fresh Application per _run: aiohttp binds an app to one event loop.
        application = web.Application()
        application.router.add_get(f"{API}/posts", posts)
        application.router.add_get(f"{API}/posts/{{post_id}}", post_by_id)
        application.router.add_post(f"{API}/posts/{{post_id}}", update)
        application.router.add_post(f"{API}/media", media)
        application.router.add_get(f"{API}/html", html_page)
        return application

    return build


def test_fetch_pending_parses_posts_and_skips_malformed_items(app, received):
    articles = _run(app, lambda client: client.fetch_pending(1, 100))

    assert [a.id for a in articles] == [1, 2]
    assert articles[0].title == "Post 1"
    [(_, query, authorization)] = received
    assert query["status"] == "pending"
    assert query["context"] == "edit"
    assert query["per_page"] == "100"
    assert authorization == "Basic " + base64.b64encode(AUTH.encode()).decode()


def test_error_object_page_ends_pagination(app):
    assert _run(app, lambda client: client.fetch_pending(9, 100)) == []


def test_fetch_by_id(app):
    article = _run(app, lambda client: client.fetch_by_id(5))
    assert article.id == 5

    assert _run(app, lambda client: client.fetch_by_id(404)) is None


def test_update_sends_json_body(app, received):
    response = _run(app, lambda client: client.update(42, {"status": "draft", "categories": [2084]}))

    assert response == {"id": 42}
    assert received == [("POST", "42", {"status": "draft", "categories": [2084]})]


def test_upload_media_sends_multipart_fields(app, received):
    response = _run(
        app, lambda client: client.upload_media(b"\xff\xd8jpeg", "image_42_1000.jpg", "投稿ID 42 の画像", "alt")
    )

    assert response == {"id": 900}
    assert received == [{
        "filename": "image_42_1000.jpg",
        "content_type": "image/jpeg",
        "data": b"\xff\xd8jpeg",
        "title": "投稿ID 42 の画像",
        "alt_text": "alt",
    }]


def test_non_json_response_is_network_error(app):
    with pytest.raises(NetworkError, match="text/html"):
        _run(app, lambda client: client._call("/html"))


def test_connection_failure_is_network_error(no_sleep):
    async def main():
        client = WordPressClient(f"http://127.0.0.1:{unused_port()}{API}", AUTH, timeout=5)
        try:
            with pytest.raises(NetworkError):
                await client.update(1, {"status": "draft"})
            with pytest.raises(NetworkError):
                await client.fetch_pending(1, 100)
        finally:
            await client.close_session()

    asyncio.run(main())

    # GETs are retried before giving up
    assert len(no_sleep) >= 2
