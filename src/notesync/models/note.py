"""Note model for Notesync."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

TEMP_ID_PREFIX = "temp-"
DEFAULT_TITLE = "Untitled Note"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_temporary_id(note_id: str, prefix: str = TEMP_ID_PREFIX) -> bool:
    """Check whether an id was generated client-side for an unsaved note."""
    return note_id.startswith(prefix)


def _parse_timestamp(value: Any) -> datetime:
    if not value:
        return utcnow()
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    # Naive timestamps from the API are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SaveStatus(str, Enum):
    """Save state shown next to the editor."""

    SAVED = "saved"  # Working copy matches the server
    SAVING = "saving"  # A save is in flight
    UNSAVED = "unsaved"  # Local edits not yet persisted


@dataclass
class Note:
    """A note as stored by the notes API, or a local provisional note."""

    id: str
    title: str = DEFAULT_TITLE
    content: str = ""  # Rich-text markup; empty while encrypted
    encrypted_content: str = ""  # Ciphertext blob; empty while not encrypted
    is_encrypted: bool = False
    is_pinned: bool = False
    tags: list[str] = field(default_factory=list)
    summary: str = ""

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # Client-only: never round-tripped through the API
    is_new: bool = False

    def clone(self) -> "Note":
        """Independent copy, safe to mutate without touching the original."""
        return replace(self, tags=list(self.tags))

    @property
    def body_preview(self) -> str:
        """Short plain-text-ish preview of the body for listings."""
        if self.is_encrypted:
            return "(encrypted)"
        return self.content[:60] if self.content else "No content"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Note":
        """Build a Note from the API's camelCase JSON document.

        Args:
            data: Note document as returned by the notes API

        Returns:
            Note with the server-assigned id
        """
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            title=data.get("title") or DEFAULT_TITLE,
            content=data.get("content") or "",
            encrypted_content=data.get("encryptedContent") or "",
            is_encrypted=bool(data.get("isEncrypted", False)),
            is_pinned=bool(data.get("isPinned", False)),
            tags=list(data.get("tags") or []),
            summary=data.get("summary") or "",
            created_at=_parse_timestamp(data.get("createdAt")),
            updated_at=_parse_timestamp(data.get("updatedAt")),
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize the client-writable fields for create/update requests.

        The id, timestamps and the ``is_new`` flag are never sent; the
        server owns them.
        """
        return {
            "title": self.title,
            "content": self.content,
            "encryptedContent": self.encrypted_content,
            "isEncrypted": self.is_encrypted,
            "isPinned": self.is_pinned,
            "tags": list(self.tags),
            "summary": self.summary,
        }


# Maps snake_case Note attributes to the API's camelCase keys
PAYLOAD_KEYS: dict[str, str] = {
    "title": "title",
    "content": "content",
    "encrypted_content": "encryptedContent",
    "is_encrypted": "isEncrypted",
    "is_pinned": "isPinned",
    "tags": "tags",
    "summary": "summary",
}


def fields_to_payload(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate a partial snake_case field mapping to API keys.

    Unknown and server-owned fields are dropped.
    """
    return {PAYLOAD_KEYS[k]: v for k, v in fields.items() if k in PAYLOAD_KEYS}
