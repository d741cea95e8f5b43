"""Authenticated encryption for stored images."""

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from seren_capture.domain.errors import IntegrityError

NONCE_SIZE = 16
TAG_SIZE = 16
ASSOCIATED_DATA = b"seren-capture"


@dataclass
class ImageCipher:
    """AES-256-GCM cipher producing ``nonce || tag || ciphertext`` blobs."""

    key: bytes
    associated_data: bytes = ASSOCIATED_DATA

    def __post_init__(self) -> None:
        self._aead = AESGCM(self.key)

    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt bytes under a fresh random nonce."""
        nonce = secrets.token_bytes(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext, self.associated_data)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return nonce + tag + ciphertext

    def decrypt(self, blob: bytes) -> bytes:
        """Verify and decrypt a blob; never returns unauthenticated bytes."""
        if len(blob) < NONCE_SIZE + TAG_SIZE:
            raise IntegrityError("Encrypted image is truncated")
        nonce = blob[:NONCE_SIZE]
        tag = blob[NONCE_SIZE : NONCE_SIZE + TAG_SIZE]
        ciphertext = blob[NONCE_SIZE + TAG_SIZE :]
        try:
            return self._aead.decrypt(nonce, ciphertext + tag, self.associated_data)
        except InvalidTag as exc:
            raise IntegrityError("Image failed authentication check") from exc
