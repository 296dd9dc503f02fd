"""Unit tests for AIAssistant."""

from unittest.mock import MagicMock, patch

import pytest

from notesync.errors import AIServiceError
from notesync.models.ai import AIAction, GlossaryEntry, GrammarIssue
from notesync.services.ai_assistant import (
    AIAssistant,
    highlight_glossary,
    parse_json_reply,
    result_to_fields,
)


@pytest.fixture
def mock_llm():
    """Create a mocked OllamaService."""
    return MagicMock()


@pytest.fixture
def assistant(mock_llm):
    """Create an AIAssistant with a mocked model."""
    return AIAssistant(mock_llm, default_target_language="Spanish")


class TestParseJsonReply:
    """Tests for reply parsing."""

    def test_plain_json(self):
        """Test a bare JSON array."""
        assert parse_json_reply('["a", "b"]') == ["a", "b"]

    def test_fenced_json(self):
        """Test that markdown fences are removed."""
        assert parse_json_reply('```json\n["a"]\n```') == ["a"]

    def test_embedded_array(self):
        """Test an array surrounded by prose."""
        assert parse_json_reply('Here you go: ["x", "y"] Enjoy!') == ["x", "y"]

    @pytest.mark.parametrize("reply", [None, "", "not json", "[broken"])
    def test_unparseable(self, reply):
        """Test that garbage yields None."""
        assert parse_json_reply(reply) is None


class TestGlossary:
    """Tests for glossary extraction."""

    def test_glossary(self, assistant, mock_llm):
        """Test parsing glossary entries."""
        mock_llm.generate.return_value = (
            '[{"term": "Photosynthesis", "definition": "Light to energy"},'
            ' {"term": "", "definition": "dropped"}, "junk"]'
        )

        entries = assistant.glossary("<p>Photosynthesis happens</p>")

        assert entries == [GlossaryEntry(term="Photosynthesis", definition="Light to energy")]
        call_kwargs = mock_llm.generate.call_args[1]
        assert call_kwargs["max_tokens"] == 1024
        assert "JSON array" in call_kwargs["system"]

    def test_glossary_malformed(self, assistant, mock_llm):
        """Test that a malformed reply yields no entries."""
        mock_llm.generate.return_value = "I could not find any terms."
        assert assistant.glossary("text") == []

    def test_glossary_wrong_shape(self, assistant, mock_llm):
        """Test that a JSON object instead of an array yields no entries."""
        mock_llm.generate.return_value = '{"term": "x", "definition": "y"}'
        assert assistant.glossary("text") == []


class TestSummaryAndTags:
    """Tests for summaries and tags."""

    def test_summary(self, assistant, mock_llm):
        """Test summarizing."""
        mock_llm.generate.return_value = "  A short summary. "
        assert assistant.summary("text") == "A short summary."
        assert mock_llm.generate.call_args[1]["max_tokens"] == 100

    def test_tags(self, assistant, mock_llm):
        """Test tag suggestions."""
        mock_llm.generate.return_value = '```json\n["science", " biology ", "", 3]\n```'
        assert assistant.tags("text") == ["science", "biology"]

    def test_tags_malformed(self, assistant, mock_llm):
        """Test that a malformed reply yields no tags."""
        mock_llm.generate.return_value = "science, biology"
        assert assistant.tags("text") == []


class TestGrammar:
    """Tests for grammar checks."""

    def test_grammar(self, assistant, mock_llm):
        """Test parsing grammar issues."""
        mock_llm.generate.return_value = (
            '[{"text": "they was", "suggestion": "they were", "explanation": "Agreement"},'
            ' {"text": "its", "suggestion": "it\'s"},'
            ' {"text": "missing suggestion"}]'
        )

        issues = assistant.grammar("text")

        assert issues == [
            GrammarIssue(text="they was", suggestion="they were", explanation="Agreement"),
            GrammarIssue(text="its", suggestion="it's", explanation=None),
        ]

    def test_grammar_malformed(self, assistant, mock_llm):
        """Test that a malformed reply yields no issues."""
        mock_llm.generate.return_value = "Looks fine to me"
        assert assistant.grammar("text") == []


class TestTranslate:
    """Tests for translation."""

    def test_translate_default_language(self, assistant, mock_llm):
        """Test that the default language is used."""
        mock_llm.generate.return_value = "Hola"
        assert assistant.translate("Hello") == "Hola"
        assert "Spanish" in mock_llm.generate.call_args[0][0]

    def test_translate_explicit_language(self, assistant, mock_llm):
        """Test translating into a given language."""
        mock_llm.generate.return_value = "Bonjour"
        assistant.translate("Hello", "French")
        assert "French" in mock_llm.generate.call_args[0][0]
        assert "French" in mock_llm.generate.call_args[1]["system"]


class TestRun:
    """Tests for action dispatch."""

    @pytest.mark.parametrize(
        "action, reply, expected",
        [
            (AIAction.SUMMARY, "Short", "Short"),
            (AIAction.TAGS, '["a"]', ["a"]),
            (AIAction.TRANSLATE, "Hola", "Hola"),
            ("grammar", "[]", []),
        ],
    )
    def test_run_dispatches(self, assistant, mock_llm, action, reply, expected):
        """Test that each action reaches its handler."""
        mock_llm.generate.return_value = reply
        assert assistant.run(action, "text") == expected

    def test_run_translate_language(self, assistant, mock_llm):
        """Test that the target language reaches translation."""
        mock_llm.generate.return_value = "Hallo"
        assistant.run(AIAction.TRANSLATE, "Hello", "German")
        assert "German" in mock_llm.generate.call_args[0][0]

    def test_run_unknown_action(self, assistant):
        """Test that unknown actions are rejected."""
        with pytest.raises(ValueError):
            assistant.run("poem", "text")

    @patch("tenacity.nap.time.sleep")
    def test_service_errors_retried_then_raised(self, mock_sleep, assistant, mock_llm):
        """Test that unreachable models raise after retries."""
        mock_llm.generate.side_effect = AIServiceError("Cannot connect")
        with pytest.raises(AIServiceError):
            assistant.run(AIAction.SUMMARY, "text")
        assert mock_llm.generate.call_count == 3

    @patch("tenacity.nap.time.sleep")
    def test_transient_error_recovers(self, mock_sleep, assistant, mock_llm):
        """Test that a single failure is retried."""
        mock_llm.generate.side_effect = [AIServiceError("timed out"), "Summary"]
        assert assistant.run(AIAction.SUMMARY, "text") == "Summary"


class TestHighlightGlossary:
    """Tests for glossary highlighting."""

    def test_highlight_terms(self):
        """Test that whole-word matches are wrapped."""
        result = highlight_glossary(
            "<p>Cells use ATP. atp is energy.</p>",
            [GlossaryEntry(term="ATP", definition="Energy carrier")],
        )
        assert '<span class="glossary-term" data-term="atp">ATP</span>' in result
        assert '<span class="glossary-term" data-term="atp">atp</span>' in result

    def test_highlight_skips_tags_and_partial_words(self):
        """Test that markup and substrings are left alone."""
        content = '<a href="cell.html">Cellular cell</a>'
        result = highlight_glossary(content, [GlossaryEntry(term="cell", definition="Unit")])
        assert 'href="cell.html"' in result
        assert "Cellular" in result
        assert result.count("glossary-term") == 1

    def test_highlight_no_entries(self):
        """Test that no entries means no change."""
        assert highlight_glossary("<p>x</p>", []) == "<p>x</p>"


class TestResultToFields:
    """Tests for applying AI results to notes."""

    def test_summary_fields(self):
        """Test summary results."""
        assert result_to_fields(AIAction.SUMMARY, "Sum") == {"summary": "Sum"}

    def test_tags_fields(self):
        """Test tag results."""
        assert result_to_fields(AIAction.TAGS, ["a", "b"]) == {"tags": ["a", "b"]}

    def test_glossary_fields(self):
        """Test that glossary results highlight the body."""
        fields = result_to_fields(
            AIAction.GLOSSARY, [GlossaryEntry("ATP", "x")], "<p>ATP</p>"
        )
        assert "glossary-term" in fields["content"]

    def test_informational_results(self):
        """Test that grammar, translation and empty results change nothing."""
        assert result_to_fields(AIAction.GRAMMAR, [GrammarIssue("a", "b")]) == {}
        assert result_to_fields(AIAction.TRANSLATE, "Hola") == {}
        assert result_to_fields(AIAction.SUMMARY, "") == {}
