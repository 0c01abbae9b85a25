"""
ReadLater Backend — Encryption Service
=======================================

What:  Per-user key derivation and authenticated encryption of content fields.
Why:   Article bodies and summaries may be stored encrypted at rest with a key
       only the account subsystem holds. The store never sees a derived key
       and never persists a master key.
How:   PBKDF2-HMAC-SHA256 turns (master key, fresh salt) into a 256-bit key;
       AES-256-GCM seals the payload under a fresh nonce. Both come from the
       `cryptography` package.
Who:   StorageService for content/summary fields; anything else holding a
       user's master key.

SealedBlob format (closed, same engine on both ends):

    base64( salt[16] ++ nonce[12] ++ ciphertext[n] ++ tag[16] )

    - salt:       input to PBKDF2 for this blob only
    - nonce:      AES-GCM nonce for this blob only
    - ciphertext: same length as the plaintext (may be empty)
    - tag:        GCM authentication tag (AESGCM appends it to the ciphertext)

    Standard base64 alphabet with padding. No associated data. The iteration
    count is NOT stored; it is a deployment constant.

Error mapping:
    malformed base64 / non UTF-8 plaintext → EncodingError
    bad master key or salt                 → KeyDerivationError
    decoded blob shorter than 44 bytes     → StructuralError
    tag does not verify                    → AuthenticationError
"""

import base64
import logging
import secrets
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from readlater.exceptions import (
    AuthenticationError,
    EncodingError,
    KeyDerivationError,
    StructuralError,
)

logger = logging.getLogger(__name__)

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

# Smallest decodable blob: header plus tag around an empty ciphertext
MIN_BLOB_SIZE = SALT_SIZE + NONCE_SIZE + TAG_SIZE


def _b64decode(value: Union[str, bytes]) -> bytes:
    """Strict standard-alphabet base64 decode; raises ValueError/TypeError."""
    return base64.b64decode(value, validate=True)


class EncryptionService:
    """
    Stateless encryption engine configured with a PBKDF2 work factor.

    One instance is built at startup and injected into StorageService.
    The only state is `iterations`, which never changes after construction.
    """

    def __init__(self, iterations: int = 100_000):
        if iterations < 1:
            raise ValueError("iterations must be a positive integer")
        self._iterations = iterations

    @property
    def iterations(self) -> int:
        return self._iterations

    def generate_user_key(self) -> str:
        """
        Generate a new 256-bit master key for a user.

        Returns:
            Base64 text, safe to store in the account record or send over JSON.
        """
        return base64.b64encode(secrets.token_bytes(KEY_SIZE)).decode("ascii")

    def derive_key(self, master_key: str, salt: Union[str, bytes]) -> bytes:
        """
        Derive the 32-byte AES key for one blob.

        Args:
            master_key: Base64-encoded user master key
            salt: Base64 text, or the raw 16 salt bytes

        Returns:
            Derived key bytes. Same inputs always give the same key.

        Raises:
            KeyDerivationError: master key or salt is malformed
        """
        try:
            master_key_bytes = _b64decode(master_key)
        except (TypeError, ValueError) as e:
            raise KeyDerivationError(
                message="Master key is not valid base64",
                context={"error": str(e)},
            ) from e
        if not master_key_bytes:
            raise KeyDerivationError(message="Master key is empty")

        if isinstance(salt, str):
            try:
                salt_bytes = _b64decode(salt)
            except ValueError as e:
                raise KeyDerivationError(
                    message="Salt is not valid base64",
                    context={"error": str(e)},
                ) from e
        else:
            salt_bytes = bytes(salt)
        if len(salt_bytes) != SALT_SIZE:
            raise KeyDerivationError(
                message=f"Salt must be {SALT_SIZE} bytes",
                context={"salt_size": len(salt_bytes)},
            )

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt_bytes,
            iterations=self._iterations,
        )
        return kdf.derive(master_key_bytes)

    def _seal(self, data: bytes, master_key: str) -> bytes:
        salt = secrets.token_bytes(SALT_SIZE)
        nonce = secrets.token_bytes(NONCE_SIZE)
        key = self.derive_key(master_key, salt)
        # AESGCM.encrypt returns ciphertext with the tag appended
        return salt + nonce + AESGCM(key).encrypt(nonce, data, None)

    def _open(self, blob: Union[str, bytes], master_key: str) -> bytes:
        try:
            data = _b64decode(blob)
        except (TypeError, ValueError) as e:
            raise EncodingError(
                message="Encrypted data is not valid base64",
                context={"error": str(e)},
            ) from e

        if len(data) < MIN_BLOB_SIZE:
            raise StructuralError(
                context={"blob_size": len(data), "min_size": MIN_BLOB_SIZE},
            )

        salt = data[:SALT_SIZE]
        nonce = data[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
        sealed = data[SALT_SIZE + NONCE_SIZE:]

        key = self.derive_key(master_key, salt)
        try:
            return AESGCM(key).decrypt(nonce, sealed, None)
        except InvalidTag as e:
            logger.warning("Authenticated decryption failed (%d byte blob)", len(data))
            raise AuthenticationError(context={"blob_size": len(data)}) from e

    def encrypt(self, plaintext: Union[str, bytes], master_key: str) -> str:
        """
        Encrypt a content field.

        Args:
            plaintext: Text (encoded as UTF-8) or raw bytes; may be empty
            master_key: Base64-encoded user master key

        Returns:
            SealedBlob string. Two calls with the same input never return
            the same blob (fresh salt and nonce each time).
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        return base64.b64encode(self._seal(plaintext, master_key)).decode("ascii")

    def decrypt(self, blob: str, master_key: str) -> str:
        """
        Decrypt a SealedBlob produced by encrypt().

        Returns:
            The original text.

        Raises:
            EncodingError, StructuralError, KeyDerivationError, AuthenticationError
        """
        plaintext = self._open(blob, master_key)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(
                message="Decrypted content is not valid UTF-8 text",
                context={"error": str(e)},
            ) from e

    def encrypt_file(self, content: bytes, master_key: str) -> bytes:
        """Binary-safe variant of encrypt(); returns the blob as ASCII bytes."""
        return base64.b64encode(self._seal(content, master_key))

    def decrypt_file(self, encrypted_content: bytes, master_key: str) -> bytes:
        """Binary-safe variant of decrypt(); returns the raw plaintext bytes."""
        return self._open(encrypted_content, master_key)
