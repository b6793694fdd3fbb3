"""
Core data types for the WikiAtlas client.

This module defines the records that flow between the gateway, the
search engine, the deduplication filter and the auto-save coordinator:
- Identity: The authenticated user, passed explicitly where needed
- Article: A published or draft article as surfaced to the UI
- DraftSnapshot: Client-held editable copy of an article
- Comment, Community, Profile: Secondary records served by the API
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any


LANGUAGES = ("uz", "en", "ru")
STATUSES = ("draft", "published", "review")
VISIBILITIES = ("public", "private", "link-only")
COMMUNITY_VISIBILITIES = ("public", "private", "invite")
SOURCE_TYPES = ("reference", "opinion", "scientific", "other")

EXCERPT_CHARS = 150
WORDS_PER_MINUTE = 200


class ArticleCategory(str, Enum):
    """Category vocabulary shown in the editor (display values are Uzbek)."""

    SCIENCE = "Fan"
    HISTORY = "Tarix"
    TECHNOLOGY = "Texnologiya"
    CULTURE = "Madaniyat"
    ART = "San'at"
    GEOGRAPHY = "Geografiya"
    BIOGRAPHY = "Biografiya"
    LITERATURE = "Adabiyot"
    PHILOSOPHY = "Falsafa"
    ECONOMY = "Iqtisodiyot"
    HEALTH = "Salomatlik"
    SOCIETY = "Jamiyat"
    NATURE = "Tabiat"
    MATHEMATICS = "Matematika"
    PHYSICS = "Fizika"
    CHEMISTRY = "Kimyo"
    BIOLOGY = "Biologiya"
    ASTRONOMY = "Astronomiya"
    MEDICINE = "Tibbiyot"
    ENGINEERING = "Muhandislik"
    ARCHITECTURE = "Arxitektura"
    MUSIC = "Musiqa"
    CINEMA = "Kino"
    EDUCATION = "Ta'lim"
    POLITICS = "Siyosat"
    LAW = "Huquq"
    RELIGION = "Din"
    PSYCHOLOGY = "Psixologiya"
    BUSINESS = "Biznes"
    ENVIRONMENT = "Atrof-muhit"
    SPACE = "Kosmos"
    AI = "Sun'iy intellekt"
    PROGRAMMING = "Dasturlash"
    LINGUISTICS = "Tilshunoslik"
    ARCHAEOLOGY = "Arxeologiya"
    MYTHOLOGY = "Mifologiya"
    POETRY = "She'riyat"
    JOURNALISM = "Jurnalistika"
    OTHER = "Boshqa"


@dataclass
class Identity:
    """The authenticated user as reported by the auth endpoints."""

    id: str
    email: str = ""
    username: str | None = None


@dataclass
class ArticleSource:
    """A citation attached to an article."""

    title: str
    url: str | None = None
    description: str | None = None
    type: str = "reference"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title, "type": self.type}
        if self.url:
            payload["url"] = self.url
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass
class Comment:
    id: str
    article_id: str
    author_id: str = ""
    content: str = ""
    created_at: str = ""
    author_name: str | None = None
    is_flagged: bool = False


@dataclass
class Article:
    """An article as surfaced to the UI.

    Attributes:
        id: Backend identifier; None when the backend record had none
        title: Headline
        content: Markdown body
        excerpt: First characters of content, derived
        category: Display category (see ArticleCategory)
        language: One of LANGUAGES
        status: One of STATUSES
        visibility: One of VISIBILITIES
        audience_tags: Free-form audience labels
        user_id: Owner id (legacy column)
        author_id: Owner id
        reading_time: Estimated minutes, derived
        sources: Optional citations
        comments: Only populated by single-article fetches
    """

    id: str | None
    title: str
    content: str = ""
    excerpt: str = ""
    category: str = ArticleCategory.OTHER.value
    language: str = "uz"
    status: str = "published"
    visibility: str = "public"
    audience_tags: list[str] = field(default_factory=list)
    user_id: str | None = None
    author_id: str | None = None
    author_email: str | None = None
    author_name: str | None = None
    image_url: str | None = None
    target_age: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    reading_time: int = 1
    sources: list[ArticleSource] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)

    def owned_by(self, identity: Identity) -> bool:
        return identity.id in (self.author_id, self.user_id)


@dataclass
class DraftSnapshot:
    """Client-held copy of an article's editable fields.

    Created when the editor opens, replaced on every edit and discarded
    on navigation away or after publishing. ``dirty`` marks edits that
    have not been persisted yet.
    """

    title: str = ""
    content: str = ""
    id: str | None = None
    category: str = ArticleCategory.OTHER.value
    language: str = "uz"
    visibility: str = "public"
    status: str = "draft"
    audience_tags: list[str] = field(default_factory=list)
    sources: list[ArticleSource] = field(default_factory=list)
    image_url: str | None = None
    target_age: str | None = None
    dirty: bool = False

    @classmethod
    def from_article(cls, article: Article) -> DraftSnapshot:
        return cls(
            title=article.title,
            content=article.content,
            id=article.id,
            category=article.category,
            language=article.language,
            visibility=article.visibility,
            status=article.status,
            audience_tags=list(article.audience_tags),
            sources=list(article.sources),
            image_url=article.image_url,
            target_age=article.target_age,
        )

    def to_payload(self, identity: Identity) -> dict[str, Any]:
        """Build the JSON body for create/update requests."""
        payload: dict[str, Any] = {
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "language": self.language,
            "visibility": self.visibility,
            "status": self.status,
            "audience_tags": list(self.audience_tags),
            "sources": [source.to_payload() for source in self.sources],
            "user_id": identity.id,
        }
        if self.id:
            payload["id"] = self.id
        if self.image_url:
            payload["image_url"] = self.image_url
        if self.target_age:
            payload["target_age"] = self.target_age
        return payload


@dataclass
class Community:
    id: str
    name: str
    slug: str
    description: str = ""
    visibility: str = "public"
    members_count: int = 0
    creator_id: str | None = None
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    cover_url: str | None = None
    created_at: str | None = None


@dataclass
class Profile:
    id: str
    username: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    updated_at: str | None = None
    is_verified: bool = False
    donation_link: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for key in ("username", "bio", "avatar_url", "donation_link"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def make_excerpt(content: str | None, max_chars: int = EXCERPT_CHARS) -> str:
    if not content:
        return ""
    return content[:max_chars] + "..."


def reading_time(content: str | None) -> int:
    """Estimate reading time in whole minutes at 200 words per minute."""
    if not content or not content.strip():
        return 1
    words = len(content.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))
