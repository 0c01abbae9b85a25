"""
ReadLater Backend — FastAPI Dependencies
=========================================

What:  Resolves the services built in create_app() for route handlers.
Why:   Services are constructed once per app with explicit configuration
       and stored on app.state; tests build an app with their own settings.
"""

from typing import Optional

from fastapi import Header, Request

from readlater.services.encryption_service import EncryptionService
from readlater.services.storage_service import StorageService


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


def get_encryption_service(request: Request) -> EncryptionService:
    return request.app.state.encryption_service


def get_master_key(
    x_master_key: Optional[str] = Header(
        default=None,
        description="Base64 user master key. Omit to store/read without encryption.",
    ),
) -> Optional[str]:
    """The caller's master key for this request, or None. Never logged."""
    return x_master_key or None
