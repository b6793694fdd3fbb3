"""
Async client for the WikiAtlas HTTP JSON API.

Each public coroutine maps to exactly one endpoint. The session is an
HTTP-only cookie kept in the client's cookie jar; no token is ever put
in a request body. Operations that act on behalf of a user take the
:class:`Identity` explicitly and validate their input before touching
the network.

Failure policy:
- list/read operations degrade to an archive, an empty list, a stub
  profile or None, and log a warning;
- write operations raise a :class:`GatewayError` subclass whose message
  comes from the server payload when there is one.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ..config import GatewayConfig
from ..core.reconcile import (
    reconcile_article,
    reconcile_articles,
    reconcile_comment,
    reconcile_community,
    reconcile_identity,
    reconcile_profile,
)
from ..core.types import Article, Comment, Community, DraftSnapshot, Identity, Profile
from ..errors import (
    AuthenticationError,
    GatewayError,
    MissingIdentifierError,
    NotFoundError,
    PermissionDeniedError,
    SchemaMismatchError,
    ValidationError,
)
from ..utils.logging import log_event
from .fallback import archive_articles

logger = logging.getLogger(__name__)

SAVE_FAILED = "Atlas sync failed. Please check network connection."
DELETE_FAILED = "Failed to delete the article."
COMMENT_FAILED = "Failed to post the comment."
COMMUNITY_FAILED = "Failed to create the community."
PROFILE_FAILED = "Failed to update the profile."
AUTH_FAILED = "Authentication failed."
CLEANUP_FAILED = "Cleanup failed."

_QUOTED_RE = re.compile(r"'([^']+)'")


class AtlasGateway:
    """Stateless request/response wrapper around the WikiAtlas API.

    Use as an async context manager, or call :meth:`aclose` when done.
    Pass ``transport`` to route requests somewhere other than the network.
    """

    def __init__(self, cfg: GatewayConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url.rstrip("/") + "/",
            timeout=cfg.timeout_seconds,
            trust_env=cfg.trust_env,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> AtlasGateway:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # Articles

    async def list_articles(self) -> list[Article]:
        """Fetch every visible article, newest first as ordered by the server."""
        try:
            data = await self._request("GET", "articles", "Failed to load articles.")
        except GatewayError as exc:
            return self._archive_fallback(exc)

        if not isinstance(data, list):
            logger.error("API did not return an array for articles: %r", data)
            return []
        articles = reconcile_articles(data)
        log_event(logger, "Articles fetched", level=logging.DEBUG, event="articles_fetched", count=len(articles))
        return articles

    async def get_article(self, article_id: str) -> Article | None:
        """Fetch one article with its comments, or None if it cannot be loaded."""
        try:
            data = await self._request("GET", f"articles/{article_id}", "Article not found.")
        except GatewayError as exc:
            logger.warning("Could not load article %s: %s", article_id, exc.message)
            return None
        if not isinstance(data, dict):
            return None
        return reconcile_article(data)

    async def create_article(self, draft: DraftSnapshot, identity: Identity | None) -> Article:
        identity = _require_identity(identity)
        _validate_draft(draft)
        data = await self._request("POST", "articles", SAVE_FAILED, json=draft.to_payload(identity))
        return self._article_from_write(data, draft, identity)

    async def update_article(self, draft: DraftSnapshot, identity: Identity | None) -> Article:
        identity = _require_identity(identity)
        if not draft.id:
            raise ValidationError("Cannot update an article without an id.")
        _validate_draft(draft)
        data = await self._request("PUT", f"articles/{draft.id}", SAVE_FAILED, json=draft.to_payload(identity))
        return self._article_from_write(data, draft, identity)

    async def save_article(self, draft: DraftSnapshot, identity: Identity | None) -> Article:
        """Create the article if the draft has no id yet, otherwise update it."""
        if draft.id:
            return await self.update_article(draft, identity)
        return await self.create_article(draft, identity)

    async def delete_article(self, article_id: str, identity: Identity | None) -> None:
        _require_identity(identity)
        if not article_id:
            raise ValidationError("Cannot delete an article without an id.")
        await self._request("DELETE", f"articles/{article_id}", DELETE_FAILED)
        log_event(logger, "Article deleted", event="article_deleted", article_id=article_id)

    async def add_comment(self, article_id: str, content: str, identity: Identity | None) -> Comment:
        _require_identity(identity)
        if not content or not content.strip():
            raise ValidationError("Comment must not be empty.")
        data = await self._request(
            "POST",
            f"articles/{article_id}/comments",
            COMMENT_FAILED,
            json={"content": content},
        )
        if not isinstance(data, dict):
            raise GatewayError(COMMENT_FAILED)
        return reconcile_comment(data)

    # Communities

    async def list_communities(self) -> list[Community]:
        try:
            data = await self._request("GET", "communities", "Failed to fetch communities.")
        except GatewayError as exc:
            logger.warning("Communities unavailable: %s", exc.message)
            return []
        if not isinstance(data, list):
            return []
        return [reconcile_community(row) for row in data if isinstance(row, dict)]

    async def create_community(
        self,
        name: str,
        identity: Identity | None,
        description: str = "",
        slug: str | None = None,
        visibility: str = "public",
        tags: list[str] | None = None,
        category: str | None = None,
    ) -> Community:
        _require_identity(identity)
        if not name or not name.strip():
            raise ValidationError("Community name must not be empty.")
        payload: dict[str, Any] = {
            "name": name.strip(),
            "slug": slug or slugify(name),
            "description": description,
            "visibility": visibility,
            "tags": list(tags or []),
        }
        if category:
            payload["category"] = category
        data = await self._request("POST", "communities", COMMUNITY_FAILED, json=payload)
        if not isinstance(data, dict):
            raise GatewayError(COMMUNITY_FAILED)
        return reconcile_community(data)

    # Profiles

    async def get_profile(self, user_id: str) -> Profile:
        try:
            data = await self._request("GET", f"profiles/{user_id}", "Profile not found.")
        except GatewayError as exc:
            logger.warning("Profile %s unavailable: %s", user_id, exc.message)
            return Profile(id=user_id, username="Anonymous")
        if not isinstance(data, dict):
            return Profile(id=user_id, username="Anonymous")
        return reconcile_profile(data, user_id)

    async def update_profile(self, profile: Profile, identity: Identity | None) -> None:
        identity = _require_identity(identity)
        if profile.id != identity.id:
            raise PermissionDeniedError("You can only edit your own profile.", status_code=None)
        await self._request("PUT", f"profiles/{profile.id}", PROFILE_FAILED, json=profile.to_payload())

    # Auth

    async def register(self, email: str, password: str, username: str) -> Identity:
        if not email or not password or not username:
            raise ValidationError("Missing fields")
        return await self._authenticate(
            "auth/register",
            {"email": email, "password": password, "username": username},
        )

    async def login(self, email: str, password: str) -> Identity:
        if not email or not password:
            raise ValidationError("Email and password are required.")
        return await self._authenticate("auth/login", {"email": email, "password": password})

    async def logout(self) -> None:
        try:
            await self._request("POST", "auth/logout", AUTH_FAILED)
        finally:
            self._client.cookies.clear()

    async def me(self) -> Identity | None:
        """Return the identity bound to the current session, or None."""
        try:
            data = await self._request("GET", "auth/me", AUTH_FAILED)
        except (AuthenticationError, PermissionDeniedError):
            return None
        return reconcile_identity(data)

    # Maintenance

    async def admin_cleanup(self, identity: Identity | None) -> int:
        """Ask the server to sweep garbage articles; returns how many it deleted."""
        _require_identity(identity)
        data = await self._request("POST", "admin/cleanup", CLEANUP_FAILED)
        deleted = 0
        if isinstance(data, dict):
            try:
                deleted = int(data.get("deletedCount") or 0)
            except (TypeError, ValueError):
                deleted = 0
        log_event(logger, "Cleanup finished", event="admin_cleanup", deleted=deleted)
        return deleted

    # Internals

    async def _authenticate(self, path: str, body: dict[str, Any]) -> Identity:
        resp = await self._send("POST", path, AUTH_FAILED, json=body)
        # Keep the session cookie even when the server marks it Secure over plain http.
        for cookie_name, cookie_value in resp.cookies.items():
            self._client.cookies.set(cookie_name, cookie_value)
        identity = reconcile_identity(_json_or_none(resp))
        if identity is None:
            raise AuthenticationError(AUTH_FAILED, status_code=resp.status_code)
        log_event(logger, "Signed in", event="auth_ok", user_id=identity.id)
        return identity

    async def _request(self, method: str, path: str, fallback_message: str, **kwargs: Any) -> Any:
        resp = await self._send(method, path, fallback_message, **kwargs)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError(fallback_message, status_code=resp.status_code) from exc

    async def _send(self, method: str, path: str, fallback_message: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %s", method, path, exc)
            raise GatewayError(
                fallback_message,
                context={"path": path, "error": f"{type(exc).__name__}: {exc}"},
            ) from exc
        if resp.is_error:
            raise error_from_response(resp, fallback_message)
        return resp

    def _archive_fallback(self, exc: GatewayError) -> list[Article]:
        if not self.cfg.fallback_archive:
            logger.warning("Backend unreachable, no articles available: %s", exc.message)
            return []
        logger.warning("Backend unreachable, using local archive: %s", exc.message)
        return archive_articles()

    @staticmethod
    def _article_from_write(data: Any, draft: DraftSnapshot, identity: Identity) -> Article:
        record = data if isinstance(data, dict) else {}
        if record.get("id") is not None:
            return reconcile_article(record)
        if not draft.id:
            raise MissingIdentifierError(SAVE_FAILED, details=data, context={"reason": "create returned no id"})
        # Updates may be answered with an empty body; echo the draft under its known id.
        return reconcile_article({**draft.to_payload(identity), "author_id": identity.id, **record, "id": draft.id})


def error_from_response(resp: httpx.Response, fallback_message: str) -> GatewayError:
    """Build a typed error from a non-2xx response."""
    details = _json_or_none(resp)
    message = server_message(details) or fallback_message
    status = resp.status_code

    column = _missing_column(details)
    if column is not None:
        return SchemaMismatchError(message, column=column, status_code=status, details=details)
    if status == 401:
        return AuthenticationError(message, status_code=status, details=details)
    if status == 403:
        return PermissionDeniedError(message, status_code=status, details=details)
    if status == 404:
        return NotFoundError(message, status_code=status, details=details)
    return GatewayError(message, status_code=status, details=details)


def server_message(details: Any) -> str | None:
    """Pick the human-readable message out of an error payload."""
    if not isinstance(details, dict):
        return None
    for key in ("details", "error", "message"):
        value = details.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "community"


def _missing_column(details: Any) -> str | None:
    if not isinstance(details, dict):
        return None
    for value in details.values():
        if not isinstance(value, str):
            continue
        lowered = value.lower()
        if "column" not in lowered or ("not found" not in lowered and "could not find" not in lowered):
            continue
        match = _QUOTED_RE.search(value)
        if match:
            return match.group(1)
    return None


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _require_identity(identity: Identity | None) -> Identity:
    if identity is None or not identity.id:
        raise ValidationError("You must be signed in to do that.")
    return identity


def _validate_draft(draft: DraftSnapshot) -> None:
    if not draft.title.strip() or not draft.content.strip():
        raise ValidationError("Title and content must not be empty.")
