"""AI-assisted content operations on note bodies."""

import html
import json
import logging
import re
from typing import Any, Callable, Optional, Union

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from notesync.errors import AIServiceError
from notesync.models.ai import AIAction, GlossaryEntry, GrammarIssue
from notesync.services.ollama_service import OllamaService

logger = logging.getLogger(__name__)

AIResult = Union[list[GlossaryEntry], list[GrammarIssue], list[str], str]

_FENCE_RE = re.compile(r"```(?:json)?\s*")


def parse_json_reply(reply: Optional[str]) -> Any:
    """Parse a JSON reply, tolerating markdown code fences.

    Args:
        reply: Raw model output

    Returns:
        The decoded value, or None if the reply is empty or not JSON
    """
    if not reply:
        return None
    cleaned = _FENCE_RE.sub("", reply).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        # Fall back to the first JSON array embedded in prose
        match = re.search(r"\[[\s\S]*\]", cleaned)
        if not match:
            return None
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            return None


class AIAssistant:
    """Runs glossary, summary, tag, grammar and translation requests.

    Every action has exactly one handler in a dispatch table keyed by
    :class:`AIAction`. Replies that cannot be parsed, or have the wrong
    shape, degrade to an empty result instead of raising.
    """

    def __init__(self, llm: OllamaService, default_target_language: str = "Spanish"):
        """Initialize the assistant.

        Args:
            llm: OllamaService instance for completions
            default_target_language: Language used when translate gets none
        """
        self.llm = llm
        self.default_target_language = default_target_language
        self._handlers: dict[AIAction, Callable[[str, Optional[str]], AIResult]] = {
            AIAction.GLOSSARY: lambda text, _: self.glossary(text),
            AIAction.SUMMARY: lambda text, _: self.summary(text),
            AIAction.TAGS: lambda text, _: self.tags(text),
            AIAction.GRAMMAR: lambda text, _: self.grammar(text),
            AIAction.TRANSLATE: self.translate,
        }

    def run(self, action: AIAction, text: str, target_language: Optional[str] = None) -> AIResult:
        """Dispatch an action by kind.

        Args:
            action: Operation to perform
            text: Note body
            target_language: Only used by translation

        Returns:
            The action's result

        Raises:
            AIServiceError: If the model cannot be reached
        """
        return self._handlers[AIAction(action)](text, target_language)

    @retry(
        retry=retry_if_exception_type(AIServiceError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _complete(self, system: str, prompt: str, max_tokens: int) -> str:
        return self.llm.generate(prompt, system=system, max_tokens=max_tokens)

    def glossary(self, text: str) -> list[GlossaryEntry]:
        """Identify key terms with short definitions."""
        reply = self._complete(
            "You are a helpful assistant that identifies key terms in text and provides "
            "concise definitions. Return ONLY a JSON array of objects with 'term' and "
            "'definition' properties. No explanations or markdown.",
            f"Identify the key terms in this text and provide short definitions for each: {text}",
            max_tokens=1024,
        )
        data = parse_json_reply(reply)
        if not isinstance(data, list):
            logger.warning("Discarding malformed glossary reply")
            return []

        entries = []
        for item in data:
            if not isinstance(item, dict):
                continue
            term = str(item.get("term") or "").strip()
            definition = str(item.get("definition") or "").strip()
            if term and definition:
                entries.append(GlossaryEntry(term=term, definition=definition))
        return entries

    def summary(self, text: str) -> str:
        """Summarize a body in one or two lines."""
        reply = self._complete(
            "You are a helpful assistant that summarizes text concisely in 1-2 lines. "
            "Return ONLY the summary text.",
            f"Summarize this text in 1-2 lines: {text}",
            max_tokens=100,
        )
        return (reply or "").strip()

    def tags(self, text: str) -> list[str]:
        """Suggest 3-5 tags."""
        reply = self._complete(
            "You are a helpful assistant that suggests 3-5 relevant tags for a text. "
            "Return ONLY a JSON array of strings.",
            f"Suggest 3-5 relevant tags for this text: {text}",
            max_tokens=100,
        )
        data = parse_json_reply(reply)
        if not isinstance(data, list):
            logger.warning("Discarding malformed tags reply")
            return []
        return [str(tag).strip() for tag in data if isinstance(tag, str) and tag.strip()]

    def grammar(self, text: str) -> list[GrammarIssue]:
        """Find grammatical errors and suggest corrections."""
        reply = self._complete(
            "You are a helpful assistant that identifies grammatical errors in text. "
            "Return ONLY a JSON array of objects with 'text' (the incorrect text), "
            "'suggestion' (the correction) and optionally 'explanation'.",
            f"Identify grammatical errors in this text and provide corrections: {text}",
            max_tokens=1024,
        )
        data = parse_json_reply(reply)
        if not isinstance(data, list):
            logger.warning("Discarding malformed grammar reply")
            return []

        issues = []
        for item in data:
            if not isinstance(item, dict) or not item.get("text") or not item.get("suggestion"):
                continue
            explanation = item.get("explanation")
            issues.append(
                GrammarIssue(
                    text=str(item["text"]),
                    suggestion=str(item["suggestion"]),
                    explanation=str(explanation) if explanation else None,
                )
            )
        return issues

    def translate(self, text: str, target_language: Optional[str] = None) -> str:
        """Translate a body into the target language."""
        language = target_language or self.default_target_language
        reply = self._complete(
            f"You are a helpful assistant that translates text to {language}. "
            "Return ONLY the translated text.",
            f"Translate this text to {language}: {text}",
            max_tokens=1024,
        )
        return (reply or "").strip()


def highlight_glossary(content: str, entries: list[GlossaryEntry]) -> str:
    """Wrap whole-word occurrences of glossary terms in a highlight span.

    Matching is case-insensitive and keeps the original casing of the match.
    Text inside markup tags is left alone.
    """
    if not entries:
        return content

    terms = sorted({e.term for e in entries if e.term}, key=len, reverse=True)
    if not terms:
        return content
    pattern = re.compile(
        r"\b(" + "|".join(re.escape(t) for t in terms) + r")\b",
        re.IGNORECASE,
    )

    def wrap(match: re.Match) -> str:
        word = match.group(0)
        return (
            f'<span class="glossary-term" data-term="{html.escape(word.lower())}">'
            f"{word}</span>"
        )

    # Only substitute in text segments, never inside tags
    parts = re.split(r"(<[^>]+>)", content)
    return "".join(part if part.startswith("<") else pattern.sub(wrap, part) for part in parts)


def result_to_fields(action: AIAction, result: AIResult, content: str = "") -> dict[str, Any]:
    """Turn an AI result into a note patch, where the action has one.

    Args:
        action: The action that produced the result
        result: Its result
        content: Current body, needed for glossary highlighting

    Returns:
        Fields to apply through the editing session (empty if the result
        is informational only)
    """
    if action == AIAction.SUMMARY and result:
        return {"summary": result}
    if action == AIAction.TAGS and result:
        return {"tags": list(result)}  # type: ignore[arg-type]
    if action == AIAction.GLOSSARY and result:
        return {"content": highlight_glossary(content, result)}  # type: ignore[arg-type]
    return {}
