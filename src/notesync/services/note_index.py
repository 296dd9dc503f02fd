"""Ordered, re-keyable collection of the notes shown in the sidebar."""

import re
from typing import Iterable, Iterator, Optional

from notesync.models.note import Note

_TAG_RE = re.compile(r"<[^>]+>")


def plain_text(markup: str) -> str:
    """Strip markup tags from a rich-text body."""
    return _TAG_RE.sub("", markup or "")


class NoteIndex:
    """Notes keyed by id, kept in display order.

    Replacing a provisional note by its saved counterpart is a single
    :meth:`rekey` call that keeps the entry's position.
    """

    def __init__(self, notes: Optional[Iterable[Note]] = None):
        self._notes: dict[str, Note] = {}
        for note in notes or []:
            self._notes[note.id] = note

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._notes

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(list(self._notes.values()))

    def get(self, note_id: str) -> Optional[Note]:
        return self._notes.get(note_id)

    def ids(self) -> list[str]:
        return list(self._notes)

    def add_front(self, note: Note) -> None:
        """Insert a note at the top of the list."""
        self._notes = {note.id: note, **{k: v for k, v in self._notes.items() if k != note.id}}

    def replace(self, note: Note) -> bool:
        """Replace the entry with the same id.

        Returns:
            True if an entry was replaced, False if the id is unknown
        """
        if note.id not in self._notes:
            return False
        self._notes[note.id] = note
        return True

    def rekey(self, old_id: str, note: Note) -> bool:
        """Swap the entry under ``old_id`` for ``note``, keyed by its own id.

        Any other entry already holding ``note.id`` is dropped so the id
        appears exactly once.

        Returns:
            True if ``old_id`` was present
        """
        if old_id not in self._notes:
            return False
        rebuilt: dict[str, Note] = {}
        for key, value in self._notes.items():
            if key == old_id:
                rebuilt[note.id] = note
            elif key != note.id:
                rebuilt[key] = value
        self._notes = rebuilt
        return True

    def remove(self, note_id: str) -> Optional[Note]:
        return self._notes.pop(note_id, None)

    def reset(self, notes: Iterable[Note]) -> None:
        self._notes = {note.id: note for note in notes}

    def ordered(self) -> list[Note]:
        """Pinned notes first, then most recently updated."""
        by_recency = sorted(self._notes.values(), key=lambda n: n.updated_at, reverse=True)
        return [n for n in by_recency if n.is_pinned] + [n for n in by_recency if not n.is_pinned]

    def filter(self, text: str = "", pinned_only: bool = False) -> list[Note]:
        """Case-insensitive substring filter over title and body text.

        Args:
            text: Substring to look for (empty matches everything)
            pinned_only: Only return pinned notes

        Returns:
            Matching notes in display order
        """
        needle = text.lower()
        results = []
        for note in self.ordered():
            if pinned_only and not note.is_pinned:
                continue
            haystacks = (note.title.lower(), plain_text(note.content).lower())
            if needle and not any(needle in h for h in haystacks):
                continue
            results.append(note)
        return results
