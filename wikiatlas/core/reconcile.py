"""Coerce loosely-typed API records into strict client types.

The backend schema drifts: joins may or may not be present, optional
columns appear and disappear, and the list endpoint has been seen to
return duplicates. Everything coming out of the gateway passes through
this module so the rest of the package only sees the dataclasses in
``core.types``. Unknown keys are dropped; missing or malformed values
get defaults.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .types import (
    COMMUNITY_VISIBILITIES,
    LANGUAGES,
    SOURCE_TYPES,
    STATUSES,
    VISIBILITIES,
    Article,
    ArticleCategory,
    ArticleSource,
    Comment,
    Community,
    Identity,
    Profile,
    make_excerpt,
    reading_time,
)

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Noma'lum muallif"
UNKNOWN_COMMENTER = "Noma'lum"


def reconcile_articles(rows: Iterable[Any]) -> list[Article]:
    """Reconcile a list payload, skipping entries that are not objects."""
    articles: list[Article] = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Skipping non-object article record: %r", row)
            continue
        articles.append(reconcile_article(row))
    return articles


def reconcile_article(raw: dict[str, Any]) -> Article:
    content = _str(raw.get("content"))
    author_name = _str_or_none(raw.get("author_name")) or _joined_username(raw) or UNKNOWN_AUTHOR
    comments_raw = raw.get("comments")
    comments = [
        reconcile_comment(item) for item in comments_raw if isinstance(item, dict)
    ] if isinstance(comments_raw, list) else []

    return Article(
        id=_id(raw.get("id")),
        title=_str(raw.get("title")),
        content=content,
        excerpt=make_excerpt(content),
        category=_str(raw.get("category")) or ArticleCategory.OTHER.value,
        language=_choice(raw.get("language"), LANGUAGES, "uz"),
        status=_choice(raw.get("status"), STATUSES, "published"),
        visibility=_choice(raw.get("visibility"), VISIBILITIES, "public"),
        audience_tags=_str_list(raw.get("audience_tags")),
        user_id=_id(raw.get("user_id")),
        author_id=_id(raw.get("author_id")),
        author_email=_str_or_none(raw.get("author_email")),
        author_name=author_name,
        image_url=_str_or_none(raw.get("image_url")),
        target_age=_str_or_none(raw.get("target_age")),
        created_at=_str_or_none(raw.get("created_at")),
        updated_at=_str_or_none(raw.get("updated_at")),
        reading_time=reading_time(content),
        sources=_sources(raw.get("sources")),
        comments=comments,
    )


def reconcile_comment(raw: dict[str, Any]) -> Comment:
    return Comment(
        id=_id(raw.get("id")) or "",
        article_id=_id(raw.get("article_id")) or "",
        author_id=_id(raw.get("author_id")) or "",
        content=_str(raw.get("content")),
        created_at=_str(raw.get("created_at")),
        author_name=_str_or_none(raw.get("author_name")) or _joined_username(raw) or UNKNOWN_COMMENTER,
        is_flagged=bool(raw.get("is_flagged")),
    )


def reconcile_community(raw: dict[str, Any]) -> Community:
    return Community(
        id=_id(raw.get("id")) or "",
        name=_str(raw.get("name")),
        slug=_str(raw.get("slug")),
        description=_str(raw.get("description")),
        visibility=_choice(raw.get("visibility"), COMMUNITY_VISIBILITIES, "public"),
        members_count=_int(raw.get("members_count")),
        creator_id=_id(raw.get("creator_id")),
        category=_str_or_none(raw.get("category")),
        tags=_str_list(raw.get("tags")),
        cover_url=_str_or_none(raw.get("cover_url")),
        created_at=_str_or_none(raw.get("created_at")),
    )


def reconcile_profile(raw: dict[str, Any], user_id: str) -> Profile:
    return Profile(
        id=_id(raw.get("id")) or user_id,
        username=_str_or_none(raw.get("username")),
        bio=_str_or_none(raw.get("bio")),
        avatar_url=_str_or_none(raw.get("avatar_url")),
        updated_at=_str_or_none(raw.get("updated_at")),
        is_verified=bool(raw.get("is_verified")),
        donation_link=_str_or_none(raw.get("donation_link")),
    )


def reconcile_identity(raw: Any) -> Identity | None:
    """Read the ``{"user": {...}}`` envelope used by the auth endpoints."""
    if not isinstance(raw, dict):
        return None
    user = raw.get("user", raw)
    if not isinstance(user, dict):
        return None
    user_id = _id(user.get("id"))
    if not user_id:
        return None
    return Identity(
        id=user_id,
        email=_str(user.get("email")),
        username=_str_or_none(user.get("username")),
    )


def _joined_username(raw: dict[str, Any]) -> str | None:
    profiles = raw.get("profiles")
    if isinstance(profiles, dict):
        return _str_or_none(profiles.get("username"))
    return None


def _sources(value: Any) -> list[ArticleSource]:
    if not isinstance(value, list):
        return []
    sources: list[ArticleSource] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        title = _str(item.get("title")).strip()
        if not title:
            continue
        sources.append(
            ArticleSource(
                title=title,
                url=_str_or_none(item.get("url")),
                description=_str_or_none(item.get("description")),
                type=_choice(item.get("type"), SOURCE_TYPES, "other"),
            )
        )
    return sources


def _id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = _str(value)
    return text or None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value in allowed:
        return value
    return default


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
