"""
Debounced, single-flight auto-save for article drafts.

The editor calls :meth:`AutosaveCoordinator.observe` on every change.
Each call cancels the pending timer and arms a new one, so a save only
happens after ``delay_seconds`` without edits. At most one save runs at
a time; a timer that fires while a save is in flight is remembered and
served as soon as that save finishes, using the latest snapshot. The
first save of a new draft creates the article, and every later save
updates it under the identifier the backend assigned.

Auto-save is best effort: failures are logged and never reach the editor.
One failure pauses it instead: a create the backend accepted without
returning an id. Creating again could duplicate the article, so timers
stop until the editor calls :meth:`AutosaveCoordinator.flush`.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Awaitable, Callable

from ..errors import MissingIdentifierError
from ..utils.logging import log_event
from .types import Article, DraftSnapshot, Identity

logger = logging.getLogger(__name__)

PersistFn = Callable[[DraftSnapshot, Identity], Awaitable[Article]]
SavedCallback = Callable[[Article], None]


class AutosaveState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SAVING = "saving"
    PAUSED = "paused"


def can_autosave(draft: DraftSnapshot, identity: Identity | None) -> bool:
    """Auto-save needs a title, a body and a signed-in user."""
    if identity is None or not identity.id:
        return False
    return bool(draft.title.strip()) and bool(draft.content.strip())


class AutosaveCoordinator:
    """Persist the latest draft after a quiet period, one save at a time.

    Must be used from within a running event loop.
    """

    def __init__(
        self,
        persist: PersistFn,
        delay_seconds: float = 10.0,
        on_saved: SavedCallback | None = None,
    ):
        self._persist = persist
        self.delay_seconds = delay_seconds
        self._on_saved = on_saved
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: asyncio.Task | None = None
        self._owed = False
        self._paused = False
        self._draft: DraftSnapshot | None = None
        self._identity: Identity | None = None
        self._revision = 0
        self._saved_revision = 0
        self.article_id: str | None = None
        self.last_saved_at: datetime | None = None

    @property
    def state(self) -> AutosaveState:
        if self._inflight is not None:
            return AutosaveState.SAVING
        if self._timer is not None:
            return AutosaveState.DEBOUNCING
        if self._paused:
            return AutosaveState.PAUSED
        return AutosaveState.IDLE

    @property
    def draft(self) -> DraftSnapshot | None:
        return self._draft

    @property
    def has_unsaved_changes(self) -> bool:
        return self._draft is not None and self._revision > self._saved_revision

    def observe(self, draft: DraftSnapshot, identity: Identity | None) -> None:
        """Record an edit and re-arm the debounce timer."""
        self._cancel_timer()
        if not can_autosave(draft, identity):
            return

        self._revision += 1
        snapshot = replace(draft, dirty=True)
        if snapshot.id is None and self.article_id is not None:
            snapshot = replace(snapshot, id=self.article_id)
        self._draft = snapshot
        self._identity = identity
        if self._paused:
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay_seconds, self._on_timer)

    def discard(self) -> None:
        """Forget the draft (editor closed or article published)."""
        self._cancel_timer()
        self._owed = False
        self._paused = False
        self._draft = None
        self._identity = None
        self._saved_revision = self._revision

    async def flush(self) -> Article | None:
        """Persist any unsaved revision now instead of waiting for the timer.

        This is also the only way to resume a paused coordinator.
        """
        self._cancel_timer()
        await self.wait_idle()
        self._paused = False
        if not self.has_unsaved_changes:
            return None
        task = self._start_save()
        return await task

    async def wait_idle(self) -> None:
        """Wait until no save is in flight, including owed follow-up saves."""
        while self._inflight is not None:
            await asyncio.shield(self._inflight)

    def _on_timer(self) -> None:
        self._timer = None
        if self._paused:
            return
        if self._inflight is not None:
            self._owed = True
            return
        self._start_save()

    def _start_save(self) -> asyncio.Task:
        draft = self._draft
        identity = self._identity
        revision = self._revision
        if draft.id is None and self.article_id is not None:
            draft = replace(draft, id=self.article_id)
        self._inflight = asyncio.get_running_loop().create_task(self._save(draft, identity, revision))
        return self._inflight

    async def _save(self, draft: DraftSnapshot, identity: Identity, revision: int) -> Article | None:
        saved: Article | None = None
        try:
            saved = await self._persist(draft, identity)
            if draft.id is None and (saved is None or not saved.id):
                raise MissingIdentifierError("Draft was created but no article id came back.")
        except MissingIdentifierError as exc:
            saved = None
            self._paused = True
            self._cancel_timer()
            logger.error("Auto-save paused to avoid duplicate articles: %s", exc.message)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Auto-save failed silently: %s", exc)
        else:
            self._record_success(saved, revision)
        finally:
            self._inflight = None
            if self._owed:
                self._owed = False
                if not self._paused and self._timer is None and self.has_unsaved_changes:
                    self._start_save()
        return saved

    def _record_success(self, saved: Article, revision: int) -> None:
        if self.article_id is None and saved is not None and saved.id:
            self.article_id = saved.id
            if self._draft is not None and self._draft.id is None:
                self._draft = replace(self._draft, id=saved.id)
            log_event(logger, "Draft created", event="autosave_created", article_id=saved.id)
        self._saved_revision = max(self._saved_revision, revision)
        if self._draft is not None and not self.has_unsaved_changes:
            self._draft = replace(self._draft, dirty=False)
        self.last_saved_at = datetime.now(timezone.utc)
        log_event(logger, "Draft auto-saved", event="autosave_saved", article_id=self.article_id, revision=revision)
        if self._on_saved is not None and saved is not None:
            self._on_saved(saved)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
