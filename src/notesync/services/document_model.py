"""Pure transformations over Note values."""

import uuid
from dataclasses import replace
from typing import Any, Optional

from notesync.errors import ValidationError
from notesync.models.note import TEMP_ID_PREFIX, Note, utcnow
from notesync.services.crypto_codec import CryptoCodec


class DocumentModel:
    """Applies edits and encryption transitions to notes without I/O.

    Every operation returns a new Note; inputs are never mutated. Generic
    patches cannot touch the encryption fields, so a note only moves between
    plaintext and ciphertext through :meth:`encrypt` and :meth:`decrypt`,
    and ``content`` and ``encrypted_content`` are never both non-empty.
    """

    EDITABLE_FIELDS = frozenset({"title", "content", "tags", "summary", "is_pinned"})
    SERVER_FIELDS = ("id", "created_at", "updated_at")

    def __init__(self, codec: Optional[CryptoCodec] = None, temp_id_prefix: str = TEMP_ID_PREFIX):
        """Initialize the document model.

        Args:
            codec: CryptoCodec used for encrypt/decrypt transitions
            temp_id_prefix: Prefix for provisional note ids
        """
        self.codec = codec or CryptoCodec()
        self.temp_id_prefix = temp_id_prefix

    def create_provisional(self) -> Note:
        """Build a blank local note with a temporary id."""
        now = utcnow()
        return Note(
            id=f"{self.temp_id_prefix}{uuid.uuid4().hex}",
            created_at=now,
            updated_at=now,
            is_new=True,
        )

    def patch(self, note: Optional[Note], fields: dict[str, Any]) -> Optional[Note]:
        """Shallow-merge fields into a note and stamp ``updated_at``.

        Args:
            note: Note to patch; None makes this a no-op
            fields: snake_case field values to apply

        Returns:
            The patched copy, or None if there was no note

        Raises:
            ValidationError: If a field is not editable, or plaintext is
                written into an encrypted note
        """
        if note is None:
            return None

        illegal = set(fields) - self.EDITABLE_FIELDS
        if illegal:
            raise ValidationError(f"Fields cannot be patched: {', '.join(sorted(illegal))}")

        if note.is_encrypted and fields.get("content"):
            raise ValidationError("Cannot edit the body of an encrypted note")

        if "title" in fields and fields["title"] is None:
            raise ValidationError("Title must not be empty")

        updates = dict(fields)
        if "tags" in updates:
            updates["tags"] = list(updates["tags"])
        return replace(note.clone(), **updates, updated_at=utcnow())

    def toggle_pin(self, note: Note) -> Note:
        """Flip the pinned flag."""
        return self.patch(note, {"is_pinned": not note.is_pinned})  # type: ignore[return-value]

    def encrypt(self, note: Note, passphrase: str) -> Note:
        """Move the body from ``content`` into ``encrypted_content``.

        Raises:
            ValidationError: If the passphrase is empty or the note is already encrypted
        """
        if note.is_encrypted:
            raise ValidationError("Note is already encrypted")

        blob = self.codec.encrypt(note.content, passphrase)
        return replace(
            note.clone(),
            content="",
            encrypted_content=blob,
            is_encrypted=True,
            updated_at=utcnow(),
        )

    def decrypt(self, note: Note, passphrase: str) -> Note:
        """Move the body from ``encrypted_content`` back into ``content``.

        Raises:
            ValidationError: If the passphrase is empty or the note is not encrypted
            DecryptionFailure: If the passphrase is wrong; the note is left untouched
        """
        if not note.is_encrypted:
            raise ValidationError("Note is not encrypted")

        plaintext = self.codec.decrypt(note.encrypted_content, passphrase)
        return replace(
            note.clone(),
            content=plaintext,
            encrypted_content="",
            is_encrypted=False,
            updated_at=utcnow(),
        )

    def reconcile(self, local: Note, server_copy: Note) -> Note:
        """Adopt the server's identity and timestamps on a local note.

        Used after a save when the local note kept changing while the save
        was in flight; the local body and metadata are preserved.
        """
        server_values = {name: getattr(server_copy, name) for name in self.SERVER_FIELDS}
        return replace(local.clone(), is_new=False, **server_values)
