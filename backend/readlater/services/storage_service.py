"""
ReadLater Backend — Content Storage Service
============================================

What:  Persists article content records per user, optionally encrypted.
Why:   Centralizes every file system operation on the content volume, and is
       the only place that decides whether a field is plaintext or a SealedBlob.
How:   One JSON file per article under a per-user directory. Content and
       summary go through EncryptionService when the caller supplies a key.
Who:   Called by the content routes (and by any other holder of a user's key).

Directory Structure:
    <storage_root>/
    └── users/
        └── <user_id>/              ← namespace, created on first save
            ├── <article_id>.json
            └── <article_id>.json

Consistency Model:
    - No in-process cache or index: the directory listing IS the index.
    - Writes go to a temp file in the same directory and are moved over the
      record with os.replace, so readers see either the old or the new record.
    - Concurrent saves of the same article are last-write-wins. There is no
      locking or version check.

Security Model:
    - User and article ids become path components, so they must match
      [A-Za-z0-9_-]{1,128}. Anything else is rejected before touching disk.
    - Master keys are used for one call and never stored or logged.
"""

import asyncio
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from readlater.exceptions import (
    NotFoundError,
    SerializationError,
    StorageIOError,
    ValidationError,
)
from readlater.schemas.content import ArticleContent, StorageStats
from readlater.services.encryption_service import EncryptionService

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
USERS_DIR = "users"

_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")


class StorageService:
    """
    Manages the lifecycle of content records on the storage volume.

    Lifecycle of a record:
        1. save_content() creates it (and the user's namespace if needed)
        2. Later saves overwrite it; created_at is carried over
        3. get_content() / get_decrypted_content() / list_user_content() read it
        4. delete_content() removes it

    Encryption state:
        Plaintext → Encrypted: save_content() with a master key
        Encrypted → Plaintext: get_decrypted_content(), in memory only.
                               The file keeps its SealedBlobs until re-saved.
    """

    def __init__(
        self,
        storage_root: str,
        encryption: EncryptionService,
        max_content_size: int = 52_428_800,
    ):
        """
        Args:
            storage_root: Directory holding the users/ tree. Not created here;
                          namespaces are created lazily on first save.
            encryption: Engine used for every encrypted field.
            max_content_size: Byte limit for content and summary, each.
        """
        self.storage_root = Path(storage_root).resolve()
        self.encryption = encryption
        self.max_content_size = max_content_size
        logger.info("StorageService initialized with storage_root=%s", self.storage_root)

    # ── Addressing ────────────────────────────────────────────────────────

    @staticmethod
    def _validate_id(value: str, field: str) -> str:
        if not isinstance(value, str) or not _ID_PATTERN.fullmatch(value):
            raise ValidationError(
                message=f"Invalid {field}: use 1-128 letters, digits, '-' or '_'",
                field=field,
            )
        return value

    def _user_dir(self, user_id: str) -> Path:
        return self.storage_root / USERS_DIR / self._validate_id(user_id, "user_id")

    def _record_path(self, user_id: str, article_id: str) -> Path:
        article_id = self._validate_id(article_id, "article_id")
        return self._user_dir(user_id) / f"{article_id}{RECORD_SUFFIX}"

    async def _record_paths(self, user_id: str) -> List[Path]:
        """Addressable record files in the namespace, sorted by article id. [] if no namespace."""
        user_dir = self._user_dir(user_id)
        try:
            names = await aiofiles.os.listdir(user_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Failed to list namespace %s: %s", user_dir, str(e))
            raise StorageIOError(
                message="Failed to list stored content.",
                context={"path": str(user_dir), "os_error": str(e)},
            ) from e
        return [
            user_dir / name
            for name in sorted(names)
            if name.endswith(RECORD_SUFFIX)
            and _ID_PATTERN.fullmatch(name[: -len(RECORD_SUFFIX)])
        ]

    # ── Raw record I/O ────────────────────────────────────────────────────

    async def _read_bytes(self, path: Path) -> bytes:
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise NotFoundError(resource="article content", resource_id=path.stem) from e
        except OSError as e:
            logger.error("Failed to read record %s: %s", path, str(e))
            raise StorageIOError(
                message="Failed to read stored content.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

    @staticmethod
    def _parse(raw: bytes, path: Path) -> ArticleContent:
        try:
            return ArticleContent.model_validate_json(raw)
        except PydanticValidationError as e:
            raise SerializationError(
                message=f"Stored record for article '{path.stem}' is not valid",
                context={"path": str(path), "errors": e.error_count()},
            ) from e

    async def _read_record(self, path: Path) -> ArticleContent:
        """Parse the record at `path`. Its ids are taken from where it is stored."""
        record = self._parse(await self._read_bytes(path), path)
        return record.model_copy(update={"id": path.stem, "user_id": path.parent.name})

    async def _write_record(self, path: Path, record: ArticleContent) -> int:
        """Atomically replace `path` with the serialized record. Returns bytes written."""
        data = record.model_dump_json().encode("utf-8")
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to write record %s: %s", path, str(e))
            await self._discard(tmp_path)
            raise StorageIOError(
                message="Failed to save content. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e
        return len(data)

    async def _discard(self, path: Path) -> None:
        """Best-effort removal of a leftover temp file."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to clean up temp file %s: %s", path.name, str(e))

    # ── Field encryption (CPU-bound, run off the event loop) ──────────────

    def _encrypt_fields(self, record: ArticleContent, master_key: str) -> ArticleContent:
        update = {
            "content": self.encryption.encrypt(record.content, master_key),
            "is_encrypted": True,
        }
        if record.summary:
            update["summary"] = self.encryption.encrypt(record.summary, master_key)
        return record.model_copy(update=update)

    def _decrypt_fields(self, record: ArticleContent, master_key: str) -> ArticleContent:
        update = {
            "content": self.encryption.decrypt(record.content, master_key),
            "is_encrypted": False,
        }
        if record.summary:
            update["summary"] = self.encryption.decrypt(record.summary, master_key)
        return record.model_copy(update=update)

    def _validate_size(self, record: ArticleContent) -> None:
        for field in ("content", "summary"):
            size = len(getattr(record, field).encode("utf-8"))
            if size > self.max_content_size:
                max_mb = self.max_content_size / (1024 * 1024)
                raise ValidationError(
                    message=f"{field.capitalize()} exceeds maximum of {max_mb:.0f}MB.",
                    field=field,
                    context={"size": size, "max_size": self.max_content_size},
                )

    # ── Public API ────────────────────────────────────────────────────────

    async def save_content(
        self,
        user_id: str,
        article_id: str,
        record: ArticleContent,
        master_key: Optional[str] = None,
    ) -> str:
        """
        Store (or overwrite) the content record for one article.

        `record.content` and `record.summary` are treated as plaintext. With a
        master key they are replaced by SealedBlobs and is_encrypted is set;
        without one they are stored as given and is_encrypted is cleared.
        The caller's record object is not modified.

        Returns:
            Location of the stored record (opaque to callers).

        Raises:
            ValidationError: bad identifier or oversized content
            KeyDerivationError: master key is malformed
            StorageIOError: namespace or file could not be written
        """
        path = self._record_path(user_id, article_id)
        self._validate_size(record)

        now = datetime.now(timezone.utc)
        created_at = record.created_at or await self._stored_created_at(path) or now

        stored = record.model_copy(
            update={
                "id": article_id,
                "user_id": user_id,
                "created_at": created_at,
                "updated_at": now,
                "is_encrypted": False,
            }
        )
        if master_key is not None:
            stored = await asyncio.to_thread(self._encrypt_fields, stored, master_key)

        size = await self._write_record(path, stored)
        logger.info(
            "Content saved: user=%s article=%s encrypted=%s (%d bytes)",
            user_id,
            article_id,
            stored.is_encrypted,
            size,
        )
        return str(path)

    async def _stored_created_at(self, path: Path) -> Optional[datetime]:
        try:
            existing = await self._read_record(path)
        except (NotFoundError, SerializationError):
            return None
        return existing.created_at

    async def get_content(self, user_id: str, article_id: str) -> ArticleContent:
        """
        Load a record exactly as stored (content may still be SealedBlobs).

        Raises:
            NotFoundError: no record for this (user, article)
            SerializationError: the file is not a valid record
            StorageIOError: the file could not be read
        """
        record = await self._read_record(self._record_path(user_id, article_id))
        logger.debug("Content retrieved: user=%s article=%s", user_id, article_id)
        return record

    async def get_decrypted_content(
        self, user_id: str, article_id: str, master_key: str
    ) -> ArticleContent:
        """
        Load a record and return a plaintext copy.

        Plaintext records come back unchanged. Encrypted ones have content and
        (non-empty) summary decrypted and is_encrypted cleared. The file on
        disk is not touched.

        Raises:
            Everything get_content() raises, plus AuthenticationError (wrong
            key or tampered blob) and the other EncryptionError kinds.
        """
        record = await self.get_content(user_id, article_id)
        if not record.is_encrypted:
            return record
        return await asyncio.to_thread(self._decrypt_fields, record, master_key)

    async def delete_content(self, user_id: str, article_id: str) -> None:
        """
        Remove a stored record. Not idempotent: a second call raises NotFoundError.
        """
        path = self._record_path(user_id, article_id)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError as e:
            raise NotFoundError(resource="article content", resource_id=article_id) from e
        except OSError as e:
            logger.error("Failed to delete record %s: %s", path, str(e))
            raise StorageIOError(
                message="Failed to delete content.",
                context={"path": str(path), "os_error": str(e)},
            ) from e
        logger.info("Content deleted: user=%s article=%s", user_id, article_id)

    async def list_user_content(self, user_id: str) -> AsyncIterator[ArticleContent]:
        """
        Yield every record in the user's namespace, in article id order.

        Each call starts a fresh walk of the directory. A missing namespace
        yields nothing. Records that cannot be read or parsed are skipped
        with a warning so one corrupt file does not hide the rest.
        """
        for path in await self._record_paths(user_id):
            try:
                record = await self._read_record(path)
            except (NotFoundError, SerializationError, StorageIOError) as e:
                logger.warning("Skipping unreadable record %s: %s", path.name, e.message)
                continue
            yield record

    async def get_storage_stats(self, user_id: str) -> StorageStats:
        """
        Walk the namespace once and total record count, bytes, and encrypted records.

        Every record file counts toward total_records and total_bytes; only
        records that parse can count toward encrypted_records.
        """
        stats = StorageStats()
        for path in await self._record_paths(user_id):
            try:
                raw = await self._read_bytes(path)
            except (NotFoundError, StorageIOError):
                # Deleted or unreadable since the listing
                continue

            stats.total_records += 1
            stats.total_bytes += len(raw)

            try:
                record = self._parse(raw, path)
            except SerializationError:
                logger.warning("Stats: unparsable record %s", path.name)
                continue
            if record.is_encrypted:
                stats.encrypted_records += 1

        return stats

    async def rotate_user_key(self, user_id: str, old_key: str, new_key: str) -> int:
        """
        Re-encrypt every encrypted record of a user under a new master key.

        Two phases: all encrypted records are first decrypted in memory with
        `old_key`, so a wrong key fails with AuthenticationError before any
        file is rewritten. Each one is then saved with `new_key`. Plaintext
        records are left as they are. Unparsable records are skipped, as in
        list_user_content(). Each record is rewritten at the file it was read
        from, whatever its stored `id` field says.

        Returns:
            Number of records re-encrypted.
        """
        decrypted: List[Tuple[str, ArticleContent]] = []
        for path in await self._record_paths(user_id):
            try:
                record = await self._read_record(path)
            except (NotFoundError, SerializationError, StorageIOError) as e:
                logger.warning("Rotation: skipping unreadable record %s: %s", path.name, e.message)
                continue
            if record.is_encrypted:
                plain = await asyncio.to_thread(self._decrypt_fields, record, old_key)
                decrypted.append((path.stem, plain))

        for article_id, record in decrypted:
            await self.save_content(user_id, article_id, record, new_key)

        logger.info("Key rotated: user=%s records=%d", user_id, len(decrypted))
        return len(decrypted)
