"""Data models for Notesync."""

from notesync.models.ai import AIAction, GlossaryEntry, GrammarIssue
from notesync.models.note import Note, SaveStatus

__all__ = ["AIAction", "GlossaryEntry", "GrammarIssue", "Note", "SaveStatus"]
