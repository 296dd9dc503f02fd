"""Synchronization of the edited note with the notes API."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from notesync.errors import NotFound, PersistenceFailure, ValidationError
from notesync.models.note import TEMP_ID_PREFIX, Note, SaveStatus, is_temporary_id, utcnow
from notesync.services.autosave import AutosavePolicy
from notesync.services.document_model import DocumentModel
from notesync.services.note_index import NoteIndex

logger = logging.getLogger(__name__)


class EditingSession:
    """One open note: its source, its working copy and its autosave timers.

    A session is created when a note is selected and closed (all timers
    cancelled) when another note is selected or the note is deleted.
    """

    def __init__(self, selected: Note, policy: AutosavePolicy):
        self.selected = selected
        self.working = selected.clone()
        self.policy = policy
        self.saving = False
        self.generation = 0  # Bumped on every local edit
        self.last_saved_time: Optional[datetime] = None

    @property
    def note_id(self) -> str:
        return self.working.id

    @property
    def has_unsaved_changes(self) -> bool:
        return self.policy.dirty

    @property
    def save_status(self) -> SaveStatus:
        if self.saving:
            return SaveStatus.SAVING
        if self.has_unsaved_changes:
            return SaveStatus.UNSAVED
        return SaveStatus.SAVED

    @property
    def closed(self) -> bool:
        return self.policy.closed

    def close(self) -> None:
        self.policy.close()


class SyncController:
    """Owns the notes list and the editing session.

    Handles the logic for:
    - Selecting notes into a working copy, with discard confirmation
    - Applying edits and scheduling autosaves
    - Creating provisional notes and swapping in their server ids
    - Saving, deleting and pinning against the notes API

    ``store`` is the persistence collaborator (see
    :class:`~notesync.services.notes_api.NotesApiClient`); its blocking calls
    run in a worker thread so timers keep firing while a request is pending.
    At most one save is in flight per session.
    """

    MAX_RECENT_SEARCHES = 5

    def __init__(
        self,
        store: Any,
        document_model: Optional[DocumentModel] = None,
        confirm_discard: Optional[Callable[[], bool]] = None,
        autosave_delay: float = 2.0,
        force_save_interval: float = 30.0,
        scheduler: Optional[Any] = None,
        temp_id_prefix: str = TEMP_ID_PREFIX,
    ):
        """Initialize the controller.

        Args:
            store: Persistence collaborator with list/create/update/delete/search
            document_model: DocumentModel for note transformations
            confirm_discard: Asked before unsaved changes are thrown away;
                declines by default
            autosave_delay: Debounce delay in seconds
            force_save_interval: Force-save ceiling in seconds
            scheduler: Timer source passed to each AutosavePolicy
            temp_id_prefix: Prefix of provisional note ids
        """
        self.store = store
        self.temp_id_prefix = temp_id_prefix
        self.documents = document_model or DocumentModel(temp_id_prefix=temp_id_prefix)
        self.confirm_discard = confirm_discard or (lambda: False)
        self.autosave_delay = autosave_delay
        self.force_save_interval = force_save_interval
        self.scheduler = scheduler
        self.notes = NoteIndex()
        self.session: Optional[EditingSession] = None
        self.recent_searches: list[str] = []
        self._tasks: set[asyncio.Task] = set()
        self._creating: set[str] = set()  # Provisional ids with a create in flight
        self._deleted_while_creating: set[str] = set()

    # ==================== Derived state ====================

    @property
    def working_copy(self) -> Optional[Note]:
        return self.session.working if self.session else None

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.session and self.session.has_unsaved_changes)

    @property
    def save_status(self) -> SaveStatus:
        return self.session.save_status if self.session else SaveStatus.SAVED

    @property
    def is_saving(self) -> bool:
        return bool(self.session and self.session.saving)

    @property
    def last_saved_time(self) -> Optional[datetime]:
        return self.session.last_saved_time if self.session else None

    def _require_session(self) -> EditingSession:
        if self.session is None:
            raise ValidationError("No note is selected")
        return self.session

    # ==================== Loading ====================

    async def load(self) -> list[Note]:
        """Fetch all notes; unsaved provisional notes stay on top."""
        fetched = await asyncio.to_thread(self.store.list)
        provisional = [n for n in self.notes if n.is_new]
        self.notes.reset(provisional + list(fetched))
        return self.notes.ordered()

    async def search(self, query: str) -> list[Note]:
        """Replace the list with search results; an empty query reloads all notes."""
        query = query.strip()
        if not query:
            return await self.load()

        self.recent_searches = [query] + [q for q in self.recent_searches if q != query]
        del self.recent_searches[self.MAX_RECENT_SEARCHES :]

        results = await asyncio.to_thread(self.store.search, query)
        self.notes.reset(results)
        return list(results)

    def clear_recent_searches(self) -> None:
        self.recent_searches = []

    # ==================== Session lifecycle ====================

    def _open_session(self, note: Note) -> EditingSession:
        session: Optional[EditingSession] = None

        def trigger(immediate: bool) -> None:
            if session is not None:
                self._spawn_flush(session, immediate)

        policy = AutosavePolicy(
            trigger,
            delay=self.autosave_delay,
            force_interval=self.force_save_interval,
            scheduler=self.scheduler,
        )
        session = EditingSession(note, policy)
        return session

    def _close_session(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def _may_discard(self) -> bool:
        if self.session is None or not self.session.has_unsaved_changes:
            return True
        return bool(self.confirm_discard())

    def select(self, note: Note) -> bool:
        """Open a note for editing.

        Args:
            note: Note to select

        Returns:
            False if unsaved changes exist and the user declined to discard them
        """
        if not self._may_discard():
            return False
        self._close_session()
        self.session = self._open_session(note)
        logger.debug("Selected note %s", note.id)
        return True

    def deselect(self) -> bool:
        """Close the current session without selecting another note."""
        if not self._may_discard():
            return False
        self._close_session()
        return True

    def create_note(self) -> Optional[Note]:
        """Add a provisional note at the top of the list and select it.

        Returns:
            The provisional note, or None if the user kept unsaved changes
        """
        if not self._may_discard():
            return None
        note = self.documents.create_provisional()
        self.notes.add_front(note)
        self._close_session()
        self.session = self._open_session(note)
        self.session.policy.record_edit()
        return note

    def discard(self) -> None:
        """Reset the working copy to the selected note."""
        session = self._require_session()
        if not session.has_unsaved_changes:
            return
        session.working = session.selected.clone()
        session.policy.reset()
        entry = self.notes.get(session.note_id)
        if entry is not None and entry.title != session.selected.title:
            self.notes.replace(replace(entry, title=session.selected.title))

    def page_exit(self) -> bool:
        """Handle the page closing; returns True if the user must be warned."""
        if self.session is None:
            return False
        return self.session.policy.page_exit()

    # ==================== Editing ====================

    def _apply_local(self, session: EditingSession, note: Note) -> None:
        session.working = note
        session.generation += 1
        session.policy.record_edit()

    def edit(self, fields: dict[str, Any]) -> Note:
        """Apply an edit to the working copy and schedule an autosave.

        Raises:
            ValidationError: If nothing is selected or the patch is illegal
        """
        session = self._require_session()
        patched = self.documents.patch(session.working, fields)  # type: ignore[assignment]
        self._apply_local(session, patched)

        if "title" in fields:
            entry = self.notes.get(session.note_id)
            if entry is not None:
                self.notes.replace(replace(entry, title=patched.title))
        return patched

    def encrypt(self, passphrase: str) -> Note:
        """Encrypt the working copy's body.

        Raises:
            ValidationError: If the passphrase is empty or the note is already encrypted
        """
        session = self._require_session()
        self._apply_local(session, self.documents.encrypt(session.working, passphrase))
        return session.working

    def decrypt(self, passphrase: str) -> Note:
        """Decrypt the working copy's body.

        Raises:
            DecryptionFailure: If the passphrase is wrong; nothing changes
        """
        session = self._require_session()
        self._apply_local(session, self.documents.decrypt(session.working, passphrase))
        return session.working

    # ==================== Saving ====================

    def _spawn_flush(self, session: EditingSession, immediate: bool) -> None:
        logger.debug("Autosave requested for %s (immediate=%s)", session.note_id, immediate)
        # Nothing awaits a background task, so page-exit flushes report
        # failures through the save status like any other autosave
        task = asyncio.get_running_loop().create_task(self._flush_session(session, False))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for background saves to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def flush(self, immediate: bool = False) -> Optional[Note]:
        """Persist the working copy of the current session.

        Args:
            immediate: True for a user-initiated save, whose failures are raised

        Returns:
            The saved note, or None if nothing was saved
        """
        if self.session is None:
            return None
        return await self._flush_session(self.session, immediate)

    async def save(self) -> Optional[Note]:
        """Explicit save: skip pending timers and flush now.

        Raises:
            PersistenceFailure: If the save fails; the note stays dirty
        """
        session = self._require_session()
        if not session.has_unsaved_changes:
            return None
        if not session.policy.request_save():
            return None
        return await self._flush_session(session, True)

    async def _flush_session(self, session: EditingSession, immediate: bool) -> Optional[Note]:
        if session.closed or not session.has_unsaved_changes:
            return None
        if session.saving:
            logger.debug("Save already in flight for %s, dropping request", session.note_id)
            return None

        session.saving = True
        session.policy.flush_started()
        snapshot = session.working.clone()
        generation = session.generation

        try:
            if snapshot.is_new:
                self._creating.add(snapshot.id)
                saved = await asyncio.to_thread(self.store.create, snapshot)
            else:
                saved = await asyncio.to_thread(self.store.update, snapshot.id, snapshot)
        except (PersistenceFailure, ValidationError) as e:
            session.saving = False
            session.policy.flush_failed()
            if immediate:
                logger.warning("Save of %s failed: %s", snapshot.id, e)
                raise
            logger.warning("Autosave of %s failed: %s", snapshot.id, e)
            return None
        finally:
            self._creating.discard(snapshot.id)
            deleted = snapshot.id in self._deleted_while_creating
            self._deleted_while_creating.discard(snapshot.id)

        session.saving = False
        if deleted:
            await self._delete_created(saved, immediate)
            return None
        self._apply_saved(session, snapshot.id, saved, generation)
        return saved

    async def _delete_created(self, saved: Note, immediate: bool) -> None:
        """Remove a note whose provisional copy was deleted while it was being created."""
        logger.debug("Note %s was deleted during its create, removing it", saved.id)
        try:
            await asyncio.to_thread(self.store.delete, saved.id)
        except PersistenceFailure as e:
            logger.warning("Delete of %s failed: %s", saved.id, e)
            if immediate:
                raise

    def _apply_saved(self, session: EditingSession, old_id: str, saved: Note, generation: int) -> None:
        if self.notes.rekey(old_id, saved) and old_id != saved.id:
            logger.debug("Provisional note %s is now %s", old_id, saved.id)

        if session.closed:
            # Session ended while saving; only the list entry is updated
            return

        session.selected = saved
        session.last_saved_time = utcnow()
        still_dirty = session.generation != generation and session.has_unsaved_changes
        if still_dirty:
            session.working = self.documents.reconcile(session.working, saved)
            entry = self.notes.get(saved.id)
            if entry is not None:
                self.notes.replace(
                    replace(entry, title=session.working.title, is_pinned=session.working.is_pinned)
                )
        else:
            session.working = saved.clone()
        session.policy.flush_succeeded(still_dirty=still_dirty)

    # ==================== List operations ====================

    async def delete(self, note_id: str) -> None:
        """Delete a note; provisional notes are only removed locally.

        Raises:
            PersistenceFailure: If the API call fails; the note stays listed
        """
        if note_id in self._creating:
            # The server copy is removed once its create returns
            self._deleted_while_creating.add(note_id)
        elif not is_temporary_id(note_id, self.temp_id_prefix):
            try:
                await asyncio.to_thread(self.store.delete, note_id)
            except PersistenceFailure as e:
                logger.warning("Delete of %s failed: %s", note_id, e)
                raise

        self.notes.remove(note_id)
        if self.session is not None and self.session.note_id == note_id:
            self._close_session()

    async def toggle_pin(self, note_id: str) -> Note:
        """Flip a note's pinned flag.

        Provisional notes change locally and become dirty; saved notes are
        updated on the server right away, bypassing the debounce. While a
        save of the note is in flight the pin is applied locally instead and
        carried by the next save, so the older save cannot revert it.

        Raises:
            NotFound: If the note is neither listed nor selected
            PersistenceFailure: If the server update fails
        """
        session = self.session if self.session and self.session.note_id == note_id else None
        source = self.notes.get(note_id) or (session.working if session else None)
        if source is None:
            raise NotFound(f"Note {note_id} not found")

        saving = session is not None and session.saving
        if saving or is_temporary_id(note_id, self.temp_id_prefix):
            toggled = self.documents.toggle_pin(source)
            self.notes.replace(toggled)
            if session is not None:
                pinned = self.documents.patch(session.working, {"is_pinned": toggled.is_pinned})
                self._apply_local(session, pinned)  # type: ignore[arg-type]
            return toggled

        result = await asyncio.to_thread(
            self.store.update, note_id, {"is_pinned": not source.is_pinned}
        )
        self.notes.replace(result)
        if session is not None and not session.closed:
            pin_fields = {"is_pinned": result.is_pinned, "updated_at": result.updated_at}
            session.selected = replace(session.selected, **pin_fields)
            session.working = replace(session.working.clone(), **pin_fields)
        return result
