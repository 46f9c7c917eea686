"""
Article data model for brewpress.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from bs4 import BeautifulSoup


def _rendered(value: Any, key: str = "rendered") -> str:
    """Pull the rendered/raw string out of a WordPress `{rendered, raw}` field."""
    if isinstance(value, dict):
        return value.get(key) or ""
    if isinstance(value, str) and key == "rendered":
        return value
    return ""


def html_to_text(value: str) -> str:
    """
    Strip markup and entities from a short HTML fragment.

    Args:
        value: HTML fragment such as a rendered post title

    Returns:
        Plain text with surrounding whitespace removed
    """
    if not value:
        return ""
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)


@dataclass(frozen=True)
class RawArticle:
    """
    A pending post as delivered by the content store.

    Instances are never mutated; everything derived from them is built fresh
    for each enrichment run.
    """
    id: int
    title: str = ""
    content_rendered: str = ""
    content_raw: str = ""
    excerpt: str = ""
    featured_media: int = 0
    status: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)
    acf: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wp(cls, data: Dict[str, Any]) -> "RawArticle":
        """
        Build an article from a WordPress REST `posts` object.

        Args:
            data: Decoded JSON for a single post

        Returns:
            RawArticle instance
        """
        try:
            featured_media = int(data.get("featured_media") or 0)
        except (TypeError, ValueError):
            featured_media = 0

        return cls(
            id=int(data["id"]),
            title=html_to_text(_rendered(data.get("title"))),
            content_rendered=_rendered(data.get("content")),
            content_raw=_rendered(data.get("content"), "raw"),
            excerpt=_rendered(data.get("excerpt")),
            featured_media=featured_media,
            status=data.get("status") or "",
            meta=dict(data.get("meta") or {}),
            acf=dict(data.get("acf") or {}),
        )

    @property
    def source_name(self) -> str:
        return self.acf.get("source_name") or ""

    @property
    def source_url(self) -> str:
        return self.acf.get("source_url") or ""

    @property
    def link(self) -> str:
        return self.acf.get("link") or ""

    @property
    def pubdate(self) -> Optional[str]:
        return self.meta.get("pubdate") or None

    @property
    def has_cover_image(self) -> bool:
        return self.featured_media > 0

    @property
    def source_content(self) -> str:
        """Text handed to the analysis prompt, first non-empty candidate wins."""
        candidates = (
            self.content_rendered,
            self.content_raw,
            self.meta.get("content_encoded") or "",
            self.title,
            self.excerpt,
        )
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate
        return ""

    @property
    def image_search_html(self) -> str:
        return self.content_raw or self.content_rendered


@dataclass
class AnalysisResult:
    """
    Structured record extracted from the AI analysis response.

    When `relevant` is False none of the other fields are trusted.
    """
    summary: str = ""
    summary_points: Union[str, List[str]] = ""
    importance: Optional[int] = None
    sentiment: Optional[str] = None
    target_audience: str = ""
    tags: List[str] = field(default_factory=list)
    category: Optional[str] = None
    relevant: bool = True
    description: str = ""


@dataclass(frozen=True)
class CategoryAssignment:
    primary: int
    featured: Optional[int] = None

    @property
    def ids(self) -> List[int]:
        if self.featured is None or self.featured == self.primary:
            return [self.primary]
        return [self.primary, self.featured]


class ImageOutcomeKind(Enum):
    NOT_NEEDED = "not_needed"
    RESOLVED = "resolved"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ImageOutcome:
    """
    Result of cover image resolution.

    `attached` only matters for RESOLVED outcomes: the media item was uploaded
    either way, the flag says whether setting it as the cover also worked.
    """
    kind: ImageOutcomeKind
    media_id: Optional[int] = None
    reason: Optional[str] = None
    attached: bool = False

    @classmethod
    def not_needed(cls) -> "ImageOutcome":
        return cls(ImageOutcomeKind.NOT_NEEDED)

    @classmethod
    def resolved(cls, media_id: int, attached: bool = True) -> "ImageOutcome":
        return cls(ImageOutcomeKind.RESOLVED, media_id=media_id, attached=attached)

    @classmethod
    def skipped(cls, reason: str) -> "ImageOutcome":
        return cls(ImageOutcomeKind.SKIPPED, reason=reason)

    @property
    def is_resolved(self) -> bool:
        return self.kind is ImageOutcomeKind.RESOLVED


@dataclass
class UpdatePayload:
    """
    Write-back record for one enriched post.
    """
    categories: List[int]
    date: str
    content: str
    metadata: Dict[str, Any]
    excerpt: str
    status: str

    def to_wp(self) -> Dict[str, Any]:
        """
        Convert to the body of a WordPress `POST /posts/<id>` request.

        Returns:
            JSON-serializable dict
        """
        return {
            "categories": list(self.categories),
            "date": self.date,
            "content": self.content,
            "acf": dict(self.metadata),
            "excerpt": self.excerpt,
            "status": self.status,
        }
