"""Ollama service for LLM interactions."""

import os
from typing import Any, Optional

from ollama import Client  # type: ignore[import-untyped]

from notesync.errors import AIServiceError


class OllamaService:
    """Service for interacting with Ollama LLM.

    Uses the ollama Python package for API interactions.
    """

    DEFAULT_MODEL = "llama3.1:8b"
    DEFAULT_HOST = "https://ollama.com"

    def __init__(
        self,
        model_name: Optional[str] = None,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.3,
    ):
        """Initialize the Ollama service.

        Args:
            model_name: Model to use (default: llama3.1:8b)
            host: Ollama API host (default: https://ollama.com)
            api_key: API key for authentication (default: from OLLAMA_API_KEY env var)
            temperature: Sampling temperature for every request
        """
        self.model_name = model_name or self.DEFAULT_MODEL
        self.host = host or self.DEFAULT_HOST
        self.api_key = api_key or os.environ.get("OLLAMA_API_KEY", "")
        self.temperature = temperature

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self._client = Client(host=self.host, headers=headers if headers else None)

    @property
    def client(self) -> Client:
        """Get the Ollama client."""
        return self._client

    def check_connection(self) -> bool:
        """Check if Ollama is available.

        Returns:
            True if connected, False otherwise
        """
        try:
            self.client.list()
            return True
        except Exception:
            return False

    def generate(self, prompt: str, system: Optional[str] = None, max_tokens: int = 1024) -> str:
        """Generate content using Ollama chat API.

        Args:
            prompt: The prompt to send
            system: Optional system prompt
            max_tokens: Upper bound on generated tokens

        Returns:
            Generated text response

        Raises:
            AIServiceError: If the request fails
        """
        messages: list[dict[str, Any]] = []

        if system:
            messages.append({"role": "system", "content": system})

        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat(
                model=self.model_name,
                messages=messages,
                stream=False,
                options={"temperature": self.temperature, "num_predict": max_tokens},
            )
            return (response["message"]["content"] or "").strip()
        except Exception as e:
            error_msg = str(e)
            if "connection" in error_msg.lower():
                raise AIServiceError(
                    f"Cannot connect to Ollama at {self.host}. "
                    "Check your connection and API key."
                ) from e
            elif "timeout" in error_msg.lower():
                raise AIServiceError("Ollama request timed out") from e
            else:
                raise AIServiceError(f"Ollama request failed: {e}") from e
