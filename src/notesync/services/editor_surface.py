"""Editor surface turning user input and commands into note patches."""

import html
from enum import Enum
from typing import Any, Callable

from notesync.errors import ValidationError
from notesync.models.note import Note
from notesync.services.sync_controller import SyncController


class EditorCommand(str, Enum):
    """Insert commands that generate body markup."""

    INSERT_LINK = "insert_link"
    INSERT_IMAGE = "insert_image"
    INSERT_TABLE = "insert_table"
    FORMAT_BLOCK = "format_block"
    HORIZONTAL_RULE = "horizontal_rule"


BLOCK_TAGS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre"})


def _link(url: str = "", text: str = "") -> str:
    if not url:
        raise ValidationError("Link URL must not be empty")
    label = html.escape(text or url)
    return f'<a href="{html.escape(url, quote=True)}">{label}</a>'


def _image(url: str = "") -> str:
    if not url:
        raise ValidationError("Image URL must not be empty")
    return f'<img src="{html.escape(url, quote=True)}" />'


def _table(rows: Any = 2, cols: Any = 2) -> str:
    if not isinstance(rows, int) or not isinstance(cols, int) or rows < 1 or cols < 1:
        raise ValidationError("Table rows and columns must be positive integers")
    cell = '<td style="border: 1px solid #ddd; padding: 8px;">&nbsp;</td>'
    row = "<tr>" + cell * cols + "</tr>"
    return '<table style="border-collapse: collapse; width: 100%;">' + row * rows + "</table>"


def _block(tag: str = "p", text: str = "") -> str:
    tag = tag.strip("<>/ ").lower()
    if tag not in BLOCK_TAGS:
        raise ValidationError(f"Unsupported block format: {tag}")
    return f"<{tag}>{html.escape(text)}</{tag}>"


def _rule() -> str:
    return "<hr />"


class EditorSurface:
    """The editable body of the selected note.

    Holds no note of its own: each call reads the controller's current
    working copy and hands a patch back through :meth:`SyncController.edit`.
    All input is refused while the note is encrypted.
    """

    def __init__(self, controller: SyncController):
        self.controller = controller
        self._commands: dict[EditorCommand, Callable[..., str]] = {
            EditorCommand.INSERT_LINK: _link,
            EditorCommand.INSERT_IMAGE: _image,
            EditorCommand.INSERT_TABLE: _table,
            EditorCommand.FORMAT_BLOCK: _block,
            EditorCommand.HORIZONTAL_RULE: _rule,
        }

    def _editable_note(self) -> Note:
        note = self.controller.working_copy
        if note is None:
            raise ValidationError("No note is selected")
        if note.is_encrypted:
            raise ValidationError("Note is encrypted; decrypt it to edit")
        return note

    def input(self, markup: str) -> Note:
        """Replace the body with the surface's serialized markup."""
        self._editable_note()
        return self.controller.edit({"content": markup})

    def set_title(self, title: str) -> Note:
        return self.controller.edit({"title": title})

    def paste(self, text: str) -> Note:
        """Append clipboard text as plain, escaped text."""
        note = self._editable_note()
        return self.controller.edit({"content": note.content + html.escape(text)})

    def execute(self, command: EditorCommand, **args: Any) -> Note:
        """Run an insert command and append its markup to the body.

        Raises:
            ValidationError: On bad arguments, or while the note is encrypted
        """
        note = self._editable_note()
        try:
            markup = self._commands[EditorCommand(command)](**args)
        except TypeError as e:
            raise ValidationError(f"Invalid arguments for {command}: {e}") from e
        return self.controller.edit({"content": note.content + markup})

    def encrypt(self, passphrase: str) -> Note:
        return self.controller.encrypt(passphrase)

    def decrypt(self, passphrase: str) -> Note:
        return self.controller.decrypt(passphrase)
