"""Tests for the debounced, single-flight draft auto-save."""

from __future__ import annotations

import asyncio

from wikiatlas.core.autosave import AutosaveCoordinator, AutosaveState, can_autosave
from wikiatlas.core.types import Article, DraftSnapshot, Identity
from wikiatlas.errors import GatewayError

USER = Identity(id="user-1", email="olim@wikiatlas.uz")


class _FakeBackend:
    """Records persist calls and assigns an id on first create."""

    def __init__(self, fail: bool = False):
        self.calls: list[DraftSnapshot] = []
        self.active = 0
        self.max_active = 0
        self.gate: asyncio.Event | None = None
        self.fail = fail

    async def persist(self, draft: DraftSnapshot, identity: Identity) -> Article:
        self.calls.append(draft)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail:
                raise GatewayError("Atlas sync failed. Please check network connection.")
            return Article(id=draft.id or "new-1", title=draft.title, content=draft.content)
        finally:
            self.active -= 1


def _draft(title: str = "Amir Temur", content: str = "Sohibqiron haqida.") -> DraftSnapshot:
    return DraftSnapshot(title=title, content=content)


def test_edits_within_window_produce_one_save_after_last_edit():
    backend = _FakeBackend()

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.2)
        coordinator.observe(_draft(content="v1"), USER)
        await asyncio.sleep(0.06)
        coordinator.observe(_draft(content="v2"), USER)
        await asyncio.sleep(0.06)
        coordinator.observe(_draft(content="v3"), USER)
        # A timer armed by the first edit alone would have fired by now.
        await asyncio.sleep(0.1)
        saves_before_quiet_period = len(backend.calls)
        await asyncio.sleep(0.2)
        await coordinator.wait_idle()
        return coordinator, saves_before_quiet_period

    coordinator, saves_before_quiet_period = asyncio.run(scenario())

    assert saves_before_quiet_period == 0
    assert [d.content for d in backend.calls] == ["v3"]
    assert coordinator.state is AutosaveState.IDLE
    assert not coordinator.has_unsaved_changes


def test_first_save_creates_and_later_saves_update_same_article():
    backend = _FakeBackend()
    saved: list[Article] = []

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.02, on_saved=saved.append)
        coordinator.observe(_draft(content="first"), USER)
        await asyncio.sleep(0.08)
        await coordinator.wait_idle()
        coordinator.observe(_draft(content="second"), USER)
        await asyncio.sleep(0.08)
        await coordinator.wait_idle()
        return coordinator

    coordinator = asyncio.run(scenario())

    assert [d.id for d in backend.calls] == [None, "new-1"]
    assert coordinator.article_id == "new-1"
    assert coordinator.draft.id == "new-1"
    assert coordinator.last_saved_at is not None
    assert [a.content for a in saved] == ["first", "second"]


def test_timer_firing_during_save_waits_for_it_then_saves_latest():
    backend = _FakeBackend()

    async def scenario():
        backend.gate = asyncio.Event()
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.01)
        coordinator.observe(_draft(content="one"), USER)
        await asyncio.sleep(0.05)
        assert coordinator.state is AutosaveState.SAVING

        coordinator.observe(_draft(content="two"), USER)
        await asyncio.sleep(0.05)
        coordinator.observe(_draft(content="three"), USER)
        await asyncio.sleep(0.05)
        calls_while_blocked = len(backend.calls)

        backend.gate.set()
        await coordinator.wait_idle()
        return coordinator, calls_while_blocked

    coordinator, calls_while_blocked = asyncio.run(scenario())

    assert calls_while_blocked == 1
    assert backend.max_active == 1
    assert [d.content for d in backend.calls] == ["one", "three"]
    assert backend.calls[1].id == "new-1"
    assert coordinator.draft.content == "three"
    assert not coordinator.has_unsaved_changes


def test_drafts_without_title_content_or_identity_are_not_saved():
    backend = _FakeBackend()

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.01)
        coordinator.observe(_draft(title="   "), USER)
        coordinator.observe(_draft(content=""), USER)
        coordinator.observe(_draft(), None)
        coordinator.observe(_draft(), Identity(id=""))
        state = coordinator.state
        await asyncio.sleep(0.05)
        return state

    state = asyncio.run(scenario())

    assert state is AutosaveState.IDLE
    assert backend.calls == []
    assert not can_autosave(_draft(title=""), USER)
    assert can_autosave(_draft(), USER)


def test_invalid_edit_cancels_pending_save():
    backend = _FakeBackend()

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.03)
        coordinator.observe(_draft(), USER)
        coordinator.observe(_draft(content="  "), USER)
        await asyncio.sleep(0.08)

    asyncio.run(scenario())

    assert backend.calls == []


def test_failed_save_is_swallowed_and_retried_on_next_edit():
    backend = _FakeBackend(fail=True)

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.01)
        coordinator.observe(_draft(content="one"), USER)
        await asyncio.sleep(0.05)
        await coordinator.wait_idle()
        unsaved_after_failure = coordinator.has_unsaved_changes

        backend.fail = False
        coordinator.observe(_draft(content="two"), USER)
        await asyncio.sleep(0.05)
        await coordinator.wait_idle()
        return coordinator, unsaved_after_failure

    coordinator, unsaved_after_failure = asyncio.run(scenario())

    assert unsaved_after_failure
    assert [d.id for d in backend.calls] == [None, None]
    assert coordinator.article_id == "new-1"
    assert not coordinator.has_unsaved_changes


def test_flush_saves_immediately_and_is_idempotent():
    backend = _FakeBackend()

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=10.0)
        coordinator.observe(_draft(content="final"), USER)
        first = await coordinator.flush()
        second = await coordinator.flush()
        return coordinator, first, second

    coordinator, first, second = asyncio.run(scenario())

    assert first.content == "final"
    assert second is None
    assert len(backend.calls) == 1
    assert coordinator.state is AutosaveState.IDLE


def test_discard_cancels_pending_save():
    backend = _FakeBackend()

    async def scenario():
        coordinator = AutosaveCoordinator(backend.persist, delay_seconds=0.02)
        coordinator.observe(_draft(), USER)
        coordinator.discard()
        await asyncio.sleep(0.06)
        return coordinator

    coordinator = asyncio.run(scenario())

    assert backend.calls == []
    assert coordinator.draft is None
    assert not coordinator.has_unsaved_changes


def test_create_without_returned_id_pauses_instead_of_creating_again():
    calls: list[DraftSnapshot] = []
    saved: list[Article] = []

    async def persist(draft, identity):
        calls.append(draft)
        return Article(id=draft.id, title=draft.title, content=draft.content)

    async def scenario():
        coordinator = AutosaveCoordinator(persist, delay_seconds=0.01, on_saved=saved.append)
        for content in ("one", "two", "three"):
            coordinator.observe(_draft(content=content), USER)
            await asyncio.sleep(0.05)
            await coordinator.wait_idle()
        return coordinator

    coordinator = asyncio.run(scenario())

    assert len(calls) == 1
    assert saved == []
    assert coordinator.article_id is None
    assert coordinator.state is AutosaveState.PAUSED
    assert coordinator.has_unsaved_changes
    assert coordinator.draft.content == "three"


def test_flush_resumes_a_paused_coordinator():
    backend = _FakeBackend()
    answers = iter([None, "new-7"])

    async def persist(draft, identity):
        backend.calls.append(draft)
        return Article(id=draft.id or next(answers), title=draft.title, content=draft.content)

    async def scenario():
        coordinator = AutosaveCoordinator(persist, delay_seconds=0.01)
        coordinator.observe(_draft(content="one"), USER)
        await asyncio.sleep(0.05)
        await coordinator.wait_idle()
        paused = coordinator.state
        result = await coordinator.flush()
        return coordinator, paused, result

    coordinator, paused, result = asyncio.run(scenario())

    assert paused is AutosaveState.PAUSED
    assert result.id == "new-7"
    assert coordinator.article_id == "new-7"
    assert coordinator.state is AutosaveState.IDLE
    assert len(backend.calls) == 2
