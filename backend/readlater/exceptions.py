"""
ReadLater Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the content vault.
Why:   The calling article service must tell "wrong key" apart from
       "article missing" apart from "disk broken". Each failure therefore has
       its own type, and global handlers (main.py) map each type to a status code.
How:   Each exception carries a message and an optional context dict.
       Low-level errors (binascii, InvalidTag, OSError) are translated into
       these types at the service boundary.

Exception Hierarchy:
    ReadLaterError (base)
    ├── ValidationError           → 400 Bad Request
    ├── NotFoundError             → 404 Not Found
    ├── SerializationError        → 500 (stored record does not parse)
    ├── StorageIOError            → 500 (read/write/namespace failure)
    └── EncryptionError
        ├── EncodingError         → 400 (malformed base64 / UTF-8)
        ├── KeyDerivationError    → 400 (invalid key or salt material)
        └── AuthenticationError   → 403 (tag mismatch: wrong key or tampering)
            └── StructuralError   → 403 (blob too short to hold a header)

Design Decision:
    StructuralError subclasses AuthenticationError. A truncated blob is one
    more way a blob fails to open, so callers that only care about "cannot
    decrypt" catch a single type, while the distinct kind is still reported.
"""

from typing import Any, Dict, Optional


class ReadLaterError(Exception):
    """
    Base exception for all ReadLater application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ReadLaterError):
    """
    Raised when caller input fails validation.

    When:    Identifier not usable as a storage name, content too large.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(ReadLaterError):
    """
    Raised when no record exists for a (user, article) pair.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class SerializationError(ReadLaterError):
    """Raised when a stored record does not parse as an ArticleContent."""

    def __init__(
        self,
        message: str = "Stored content record is not valid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageIOError(ReadLaterError):
    """
    Raised when file system operations fail.

    What:    Could not read, write, list or delete on the storage volume.
    When:    Disk full, permission denied, namespace directory not creatable.
    HTTP:    500 Internal Server Error

    Recovery:
        Nothing is retried here. The OS error is kept in context for the
        server log; the client only sees a generic message.
    """

    def __init__(
        self,
        message: str = "Content storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EncryptionError(ReadLaterError):
    """Base for every failure raised by the encryption engine."""

    def __init__(
        self,
        message: str = "Encryption operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EncodingError(EncryptionError):
    """Raised for malformed base64 input or plaintext that is not UTF-8."""

    def __init__(
        self,
        message: str = "Encrypted data is not validly encoded",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class KeyDerivationError(EncryptionError):
    """Raised when the master key or salt cannot be used to derive a key."""

    def __init__(
        self,
        message: str = "Could not derive an encryption key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(EncryptionError):
    """
    Raised when authenticated decryption fails.

    What:    The GCM tag did not verify.
    When:    Wrong master key, corrupted or truncated blob.
    HTTP:    403 Forbidden

    This is the only tamper / wrong-key signal. No plaintext is ever returned
    alongside it.
    """

    def __init__(
        self,
        message: str = "Content could not be decrypted with the supplied key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StructuralError(AuthenticationError):
    """Raised when a blob is shorter than salt + nonce + tag."""

    def __init__(
        self,
        message: str = "Encrypted data is too short to be valid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
