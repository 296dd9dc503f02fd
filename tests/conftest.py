"""Pytest fixtures for Notesync tests."""

from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from notesync.models.note import Note
from notesync.services.crypto_codec import CryptoCodec
from notesync.services.document_model import DocumentModel

# Keeps key derivation fast; production uses the configured iteration count
FAST_ITERATIONS = 1_000


class FakeTimer:
    """Handle returned by FakeScheduler.call_later."""

    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual clock with the call_later/time subset of an asyncio loop."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._timers: list[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self.now + delay, self._seq, callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target


def make_note(
    note_id: str = "srv-1",
    title: str = "Test Note",
    content: str = "<p>Hello</p>",
    is_pinned: bool = False,
    tags: list = None,
    updated_at: datetime = None,
) -> Note:
    """Helper to create a persisted note."""
    stamp = updated_at or datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Note(
        id=note_id,
        title=title,
        content=content,
        is_pinned=is_pinned,
        tags=tags or [],
        created_at=stamp,
        updated_at=stamp,
    )


def server_copy(note: Note, note_id: str = None) -> Note:
    """What the API would return after storing ``note``."""
    saved = note.clone()
    saved.id = note_id or note.id
    saved.is_new = False
    saved.updated_at = datetime(2024, 6, 1, tzinfo=timezone.utc)
    return saved


@pytest.fixture
def scheduler():
    """Provide a virtual-clock scheduler."""
    return FakeScheduler()


@pytest.fixture
def codec():
    """Provide a CryptoCodec with fast key derivation."""
    return CryptoCodec(iterations=FAST_ITERATIONS)


@pytest.fixture
def document_model(codec):
    """Provide a DocumentModel backed by the fast codec."""
    return DocumentModel(codec=codec)


@pytest.fixture
def mock_store():
    """Create a mocked notes API that echoes what it is given."""
    store = MagicMock()
    store.create.side_effect = lambda note: server_copy(note, "srv-new")

    def update(note_id, fields):
        if isinstance(fields, Note):
            return server_copy(fields, note_id)
        saved = make_note(note_id)
        for key, value in fields.items():
            setattr(saved, key, value)
        return saved

    store.update.side_effect = update
    store.delete.return_value = True
    store.list.return_value = []
    store.search.return_value = []
    return store
