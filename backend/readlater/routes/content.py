"""
ReadLater Backend — Content Route Handlers
===========================================

What:  HTTP access to a user's stored article content.
Why:   The article service (and the extension backend) store and read content
       through these endpoints instead of touching the volume directly.
How:   Thin handlers: extract ids, body and X-Master-Key, call StorageService.

Endpoints:
    PUT    /api/users/{user_id}/articles/{article_id}/content   save (201)
    GET    /api/users/{user_id}/articles/{article_id}/content   read
    DELETE /api/users/{user_id}/articles/{article_id}/content   delete (204)
    GET    /api/users/{user_id}/articles                        list
    GET    /api/users/{user_id}/stats                           usage stats
    POST   /api/users/{user_id}/keys/rotate                     re-encrypt

Key handling:
    X-Master-Key present on PUT  → content and summary stored encrypted
    X-Master-Key present on GET  → content returned decrypted
    X-Master-Key absent on GET   → record returned exactly as stored
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from readlater.dependencies import get_master_key, get_storage_service
from readlater.schemas.content import (
    ArticleContent,
    ArticleContentCreate,
    ErrorResponse,
    RotateKeyRequest,
    RotateKeyResponse,
    SaveResponse,
    StorageStats,
)
from readlater.services.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users/{user_id}", tags=["Content"])


@router.put(
    "/articles/{article_id}/content",
    status_code=201,
    response_model=SaveResponse,
    responses={
        400: {"description": "Invalid id, key or oversized content", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Store article content, encrypted when a master key is supplied",
)
async def save_content(
    user_id: str,
    article_id: str,
    body: ArticleContentCreate,
    master_key: Optional[str] = Depends(get_master_key),
    storage: StorageService = Depends(get_storage_service),
) -> SaveResponse:
    await storage.save_content(user_id, article_id, body.to_record(), master_key)
    return SaveResponse(article_id=article_id, is_encrypted=master_key is not None)


@router.get(
    "/articles/{article_id}/content",
    response_model=ArticleContent,
    responses={
        403: {"description": "Master key does not decrypt this content", "model": ErrorResponse},
        404: {"description": "No content stored for this article", "model": ErrorResponse},
    },
    summary="Read article content",
)
async def get_content(
    user_id: str,
    article_id: str,
    response: Response,
    master_key: Optional[str] = Depends(get_master_key),
    storage: StorageService = Depends(get_storage_service),
) -> ArticleContent:
    if master_key is None:
        record = await storage.get_content(user_id, article_id)
    else:
        record = await storage.get_decrypted_content(user_id, article_id, master_key)

    # Decrypted personal content must not land in shared caches
    response.headers["Cache-Control"] = "private, no-store"
    return record


@router.delete(
    "/articles/{article_id}/content",
    status_code=204,
    responses={404: {"description": "No content stored for this article", "model": ErrorResponse}},
    summary="Delete article content",
)
async def delete_content(
    user_id: str,
    article_id: str,
    storage: StorageService = Depends(get_storage_service),
) -> Response:
    await storage.delete_content(user_id, article_id)
    return Response(status_code=204)


@router.get(
    "/articles",
    response_model=List[ArticleContent],
    summary="List all stored content records for a user (as stored)",
)
async def list_content(
    user_id: str,
    response: Response,
    storage: StorageService = Depends(get_storage_service),
) -> List[ArticleContent]:
    records = [record async for record in storage.list_user_content(user_id)]
    response.headers["X-Total-Count"] = str(len(records))
    return records


@router.get(
    "/stats",
    response_model=StorageStats,
    summary="Storage usage for a user",
)
async def get_stats(
    user_id: str,
    storage: StorageService = Depends(get_storage_service),
) -> StorageStats:
    return await storage.get_storage_stats(user_id)


@router.post(
    "/keys/rotate",
    response_model=RotateKeyResponse,
    responses={403: {"description": "Old key does not decrypt stored content", "model": ErrorResponse}},
    summary="Re-encrypt all encrypted content under a new master key",
)
async def rotate_key(
    user_id: str,
    body: RotateKeyRequest,
    storage: StorageService = Depends(get_storage_service),
) -> RotateKeyResponse:
    rotated = await storage.rotate_user_key(user_id, body.old_key, body.new_key)
    return RotateKeyResponse(rotated=rotated)
