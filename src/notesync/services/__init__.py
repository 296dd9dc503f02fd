"""Services for Notesync."""

from notesync.services.ai_assistant import AIAssistant
from notesync.services.autosave import AutosavePolicy, AutosaveState
from notesync.services.crypto_codec import CryptoCodec
from notesync.services.document_model import DocumentModel
from notesync.services.editor_surface import EditorCommand, EditorSurface
from notesync.services.note_index import NoteIndex
from notesync.services.notes_api import NotesApiClient
from notesync.services.ollama_service import OllamaService
from notesync.services.sync_controller import EditingSession, SyncController

__all__ = [
    "AIAssistant",
    "AutosavePolicy",
    "AutosaveState",
    "CryptoCodec",
    "DocumentModel",
    "EditingSession",
    "EditorCommand",
    "EditorSurface",
    "NoteIndex",
    "NotesApiClient",
    "OllamaService",
    "SyncController",
]
