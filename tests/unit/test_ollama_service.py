"""Unit tests for OllamaService."""

from unittest.mock import MagicMock, patch

import pytest

from notesync.errors import AIServiceError
from notesync.services.ollama_service import OllamaService


@pytest.fixture
def mock_client():
    """Create a mocked Ollama Client."""
    with patch("notesync.services.ollama_service.Client") as mock:
        yield mock


@pytest.fixture
def ollama_service(mock_client):
    """Create an OllamaService instance with mocked client."""
    mock_instance = MagicMock()
    mock_client.return_value = mock_instance
    service = OllamaService(
        model_name="llama3.1:8b",
        host="https://ollama.com",
        api_key="test-api-key",
        temperature=0.3,
    )
    return service


class TestOllamaServiceInit:
    """Tests for OllamaService initialization."""

    def test_init_default_values(self, mock_client, monkeypatch):
        """Test default initialization."""
        monkeypatch.delenv("OLLAMA_API_KEY", raising=False)
        mock_client.return_value = MagicMock()
        service = OllamaService()
        assert service.model_name == "llama3.1:8b"
        assert service.host == "https://ollama.com"
        assert service.temperature == 0.3
        assert mock_client.call_args[1]["headers"] is None

    def test_init_custom_values(self, mock_client):
        """Test custom initialization."""
        mock_client.return_value = MagicMock()
        service = OllamaService(
            model_name="mistral",
            host="http://localhost:11434",
            api_key="custom-key",
            temperature=0.7,
        )
        assert service.model_name == "mistral"
        assert service.host == "http://localhost:11434"
        assert service.api_key == "custom-key"
        assert service.temperature == 0.7

    def test_init_creates_client_with_auth(self, mock_client):
        """Test that client is created with authorization header."""
        mock_client.return_value = MagicMock()
        OllamaService(api_key="test-key")
        mock_client.assert_called_once()
        call_kwargs = mock_client.call_args[1]
        assert call_kwargs["headers"]["Authorization"] == "Bearer test-key"

    def test_init_reads_env_api_key(self, mock_client, monkeypatch):
        """Test that the API key falls back to the environment."""
        monkeypatch.setenv("OLLAMA_API_KEY", "env-key")
        mock_client.return_value = MagicMock()
        assert OllamaService().api_key == "env-key"


class TestCheckConnection:
    """Tests for connection checking."""

    def test_check_connection_success(self, ollama_service):
        """Test successful connection check."""
        ollama_service.client.list.return_value = {"models": []}
        assert ollama_service.check_connection() is True

    def test_check_connection_failure(self, ollama_service):
        """Test failed connection check."""
        ollama_service.client.list.side_effect = Exception("Connection error")
        assert ollama_service.check_connection() is False


class TestGenerate:
    """Tests for content generation."""

    def test_generate_success(self, ollama_service):
        """Test successful generation."""
        ollama_service.client.chat.return_value = {"message": {"content": "Generated text"}}

        result = ollama_service.generate("Test prompt")

        assert result == "Generated text"
        call_kwargs = ollama_service.client.chat.call_args[1]
        assert call_kwargs["model"] == "llama3.1:8b"
        assert call_kwargs["stream"] is False
        assert call_kwargs["messages"] == [{"role": "user", "content": "Test prompt"}]

    def test_generate_passes_sampling_options(self, ollama_service):
        """Test that temperature and token limit are sent."""
        ollama_service.client.chat.return_value = {"message": {"content": "ok"}}

        ollama_service.generate("Test", max_tokens=100)

        options = ollama_service.client.chat.call_args[1]["options"]
        assert options == {"temperature": 0.3, "num_predict": 100}

    def test_generate_with_system_prompt(self, ollama_service):
        """Test generation with system prompt."""
        ollama_service.client.chat.return_value = {"message": {"content": "Response"}}

        ollama_service.generate("User prompt", system="System prompt")

        messages = ollama_service.client.chat.call_args[1]["messages"]
        assert messages[0] == {"role": "system", "content": "System prompt"}
        assert messages[1]["role"] == "user"

    def test_generate_strips_response(self, ollama_service):
        """Test that response is stripped."""
        ollama_service.client.chat.return_value = {
            "message": {"content": "  Response with whitespace  \n"}
        }
        assert ollama_service.generate("Test") == "Response with whitespace"

    def test_generate_empty_response(self, ollama_service):
        """Test that a missing reply becomes an empty string."""
        ollama_service.client.chat.return_value = {"message": {"content": None}}
        assert ollama_service.generate("Test") == ""

    def test_generate_connection_error(self, ollama_service):
        """Test generation with connection error."""
        ollama_service.client.chat.side_effect = Exception("connection refused")
        with pytest.raises(AIServiceError, match="Cannot connect"):
            ollama_service.generate("Test")

    def test_generate_timeout_error(self, ollama_service):
        """Test generation with timeout."""
        ollama_service.client.chat.side_effect = Exception("timeout exceeded")
        with pytest.raises(AIServiceError, match="timed out"):
            ollama_service.generate("Test")

    def test_generate_other_error(self, ollama_service):
        """Test generation with general error."""
        ollama_service.client.chat.side_effect = Exception("Some other error")
        with pytest.raises(AIServiceError, match="request failed"):
            ollama_service.generate("Test")
