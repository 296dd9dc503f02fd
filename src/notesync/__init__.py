"""Notesync - rich-text note editing engine with encrypted bodies and autosave."""

__version__ = "0.1.0"
