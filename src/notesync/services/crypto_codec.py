"""Passphrase-based encryption of note bodies."""

import base64
import binascii
import os

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from notesync.errors import DecryptionFailure, ValidationError


class CryptoCodec:
    """Symmetric, authenticated encryption keyed by a user passphrase.

    Each blob carries its own random salt, so the same plaintext encrypts
    differently every time. The Fernet HMAC makes a wrong passphrase or a
    tampered blob detectable exactly, including for an empty body.

    Blob format::

        v1$<urlsafe-b64 salt>$<fernet token>
    """

    VERSION = "v1"
    SEPARATOR = "$"
    SALT_BYTES = 16
    DEFAULT_ITERATIONS = 390_000

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        """Initialize the codec.

        Args:
            iterations: PBKDF2 iterations used for key derivation
        """
        self.iterations = iterations

    def _derive_key(self, passphrase: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))

    def encrypt(self, plaintext: str, passphrase: str) -> str:
        """Encrypt a note body.

        Args:
            plaintext: Body markup to encrypt (may be empty)
            passphrase: User passphrase, must be non-empty

        Returns:
            Ciphertext blob

        Raises:
            ValidationError: If the passphrase is empty
        """
        if not passphrase:
            raise ValidationError("Passphrase must not be empty")

        salt = os.urandom(self.SALT_BYTES)
        token = Fernet(self._derive_key(passphrase, salt)).encrypt(plaintext.encode("utf-8"))
        return self.SEPARATOR.join(
            [
                self.VERSION,
                base64.urlsafe_b64encode(salt).decode("ascii"),
                token.decode("ascii"),
            ]
        )

    def decrypt(self, blob: str, passphrase: str) -> str:
        """Decrypt a blob produced by :meth:`encrypt`.

        Args:
            blob: Ciphertext blob
            passphrase: User passphrase

        Returns:
            The original plaintext

        Raises:
            ValidationError: If the passphrase is empty
            DecryptionFailure: If the passphrase is wrong or the blob is corrupt
        """
        if not passphrase:
            raise ValidationError("Passphrase must not be empty")

        parts = blob.split(self.SEPARATOR) if blob else []
        if len(parts) != 3 or parts[0] != self.VERSION:
            raise DecryptionFailure()

        try:
            salt = base64.urlsafe_b64decode(parts[1].encode("ascii"))
            data = Fernet(self._derive_key(passphrase, salt)).decrypt(parts[2].encode("ascii"))
            return data.decode("utf-8")
        except (InvalidToken, binascii.Error, UnicodeError, ValueError) as e:
            raise DecryptionFailure() from e
