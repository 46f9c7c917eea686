import json
from datetime import datetime, timezone

import pytest

from brewpress.core.article import RawArticle
from brewpress.core.resolver import CategoryResolver

CATEGORY_MAP = {
    "選ぶ": 2082,
    "体験する": 2083,
    "深掘り": 2084,
    "買う": 2085,
    "コミュニティ": 2086,
}
FEATURED_ID = 1677
FIXED_NOW = datetime(2026, 10, 18, 3, 0, tzinfo=timezone.utc)


class FakeGateway:
    """Returns queued responses in order; queued exceptions are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def analyze(self, prompt):
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("unexpected AI call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeStore:
    def __init__(self, pages=None, posts=None, update_response=None, upload_response=None,
                 attach_response=None):
        self.pages = pages or []
        self.posts = posts or {}
        self.update_response = {"id": 1} if update_response is None else update_response
        self.attach_response = attach_response
        self.upload_response = {"id": 900} if upload_response is None else upload_response
        self.updates = []
        self.uploads = []
        self.page_requests = []

    async def fetch_pending(self, page, per_page):
        self.page_requests.append((page, per_page))
        if page > len(self.pages):
            return []
        return self.pages[page - 1]

    async def fetch_by_id(self, post_id):
        return self.posts.get(post_id)

    async def update(self, post_id, body):
        self.updates.append((post_id, body))
        response = self.update_response
        if set(body) == {"featured_media"} and self.attach_response is not None:
            response = self.attach_response
        if isinstance(response, Exception):
            raise response
        return response

    async def upload_media(self, data, filename, title, alt_text):
        self.uploads.append((data, filename, title, alt_text))
        if isinstance(self.upload_response, Exception):
            raise self.upload_response
        return self.upload_response

    @property
    def content_updates(self):
        return [(post_id, body) for post_id, body in self.updates if "content" in body]


class FakeDownloader:
    def __init__(self, result=b"\xff\xd8jpeg-bytes"):
        self.result = result
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def analysis_json(**overrides):
    data = {
        "ai_summary": "<p>新しいクラフトビールが発売されました。</p>",
        "ai_summary_points": "要点1 要点2 要点3",
        "ai_importance": 3,
        "ai_sentiment": "positive",
        "ai_target_audience": "ビール愛好家",
        "ai_tags_suggest": ["クラフトビール", "新商品"],
        "selected_category": "選ぶ",
        "is_beer_related": True,
        "content_description": "新作ビールの紹介",
    }
    data.update(overrides)
    return json.dumps(data, ensure_ascii=False)


def image_json(found=True, url="https://example.com/img/cover.jpg"):
    return json.dumps({"found": found, "image_url": url})


def make_article(**overrides):
    values = {
        "id": 42,
        "title": "New craft beer",
        "content_rendered": '<p>Body <img src="https://example.com/img/cover.jpg"></p>',
        "content_raw": "",
        "featured_media": 0,
        "status": "pending",
        "meta": {"pubdate": "Tue, 14 Oct 2025 09:30:00 +0900"},
        "acf": {
            "source_name": "Beer Times",
            "source_url": "https://beertimes.example.com",
            "link": "https://beertimes.example.com/news/1",
        },
    }
    values.update(overrides)
    return RawArticle(**values)


@pytest.fixture
def categories():
    return CategoryResolver(CATEGORY_MAP, "深掘り", FEATURED_ID, featured_threshold=4)


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def fake_store():
    return FakeStore


@pytest.fixture
def fake_downloader():
    return FakeDownloader


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace asyncio.sleep with a recorder that returns immediately."""
    import asyncio

    waits = []

    async def fake_sleep(seconds, *args, **kwargs):
        waits.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return waits


@pytest.fixture(name="make_article")
def make_article_fixture():
    return make_article


@pytest.fixture(name="analysis_json")
def analysis_json_fixture():
    return analysis_json


@pytest.fixture(name="image_json")
def image_json_fixture():
    return image_json


@pytest.fixture
def fixed_now():
    return FIXED_NOW
