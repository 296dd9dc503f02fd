"""AI result models for Notesync."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AIAction(str, Enum):
    """Content operations offered by the AI assistant."""

    GLOSSARY = "glossary"  # Key terms with short definitions
    SUMMARY = "summary"  # One or two line summary
    TAGS = "tags"  # 3-5 suggested tags
    GRAMMAR = "grammar"  # Grammar issues with corrections
    TRANSLATE = "translate"  # Full translation into a target language


@dataclass
class GlossaryEntry:
    """A key term found in a note body."""

    term: str
    definition: str


@dataclass
class GrammarIssue:
    """A grammatical problem and its suggested correction."""

    text: str  # The incorrect text
    suggestion: str  # The correction
    explanation: Optional[str] = None
