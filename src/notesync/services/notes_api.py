"""HTTP client for the notes storage API.

Uses the notes REST API directly via requests library.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from notesync.errors import NotFound, PersistenceFailure, ValidationError
from notesync.models.note import Note, fields_to_payload

logger = logging.getLogger(__name__)


class NotesApiClient:
    """Client for the notes CRUD and search endpoints.

    Args:
        base_url (str): API base URL, e.g. ``http://localhost:4000/api``
        timeout (float): Request timeout in seconds

    Attributes:
        base_url (str): API base URL without trailing slash
        timeout (float): Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:4000/api", timeout: float = 30.0):
        """Initialize the notes API client.

        Args:
            base_url: API base URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and decode the JSON response.

        Args:
            method (str): HTTP method
            endpoint (str): Path below the base URL (e.g., "/notes")
            payload (dict[str, Any], optional): JSON body
            params (dict[str, Any], optional): Query parameters

        Returns:
            Any: Parsed JSON response

        Raises:
            NotFound: If the API answers 404
            PersistenceFailure: On any other transport or HTTP error
        """
        try:
            response = requests.request(
                method,
                f"{self.base_url}{endpoint}",
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise PersistenceFailure(f"Cannot connect to notes API at {self.base_url}") from e
        except requests.exceptions.Timeout as e:
            raise PersistenceFailure("Notes API request timed out") from e
        except requests.exceptions.RequestException as e:
            raise PersistenceFailure(f"Notes API request failed: {e}") from e

        if response.status_code == 404:
            raise NotFound()
        if response.status_code >= 400:
            try:
                message = response.json().get("message", "Unknown error")
            except (ValueError, AttributeError):
                message = response.text or "Unknown error"
            raise PersistenceFailure(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise PersistenceFailure("Notes API returned invalid JSON") from e

    @retry(
        retry=retry_if_exception_type(PersistenceFailure),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def list(self) -> list[Note]:
        """Fetch all notes, pinned first then most recently updated."""
        data = self._request("GET", "/notes")
        return [Note.from_api(item) for item in data or []]

    @retry(
        retry=retry_if_exception_type(PersistenceFailure),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def search(self, query: str) -> list[Note]:
        """Case-insensitive substring search over titles and bodies."""
        data = self._request("GET", "/notes/search", params={"q": query})
        return [Note.from_api(item) for item in data or []]

    def create(self, note: Note) -> Note:
        """Create a note; the server assigns the id and timestamps.

        Args:
            note: Note to persist (its temporary id is not sent)

        Returns:
            The stored note with its server id

        Raises:
            ValidationError: If the title is empty
        """
        if not note.title.strip():
            raise ValidationError("Title must not be empty")
        logger.debug("Creating note from %s", note.id)
        return Note.from_api(self._request("POST", "/notes", payload=note.to_payload()))

    def update(self, note_id: str, fields: Union[Note, dict[str, Any]]) -> Note:
        """Update a note with a full Note or a partial snake_case mapping.

        Raises:
            NotFound: If the note does not exist
        """
        payload = fields.to_payload() if isinstance(fields, Note) else fields_to_payload(fields)
        return Note.from_api(self._request("PATCH", f"/notes/{note_id}", payload=payload))

    def delete(self, note_id: str) -> bool:
        """Delete a note.

        Raises:
            NotFound: If the note does not exist
        """
        self._request("DELETE", f"/notes/{note_id}")
        return True
