"""
ReadLater Backend — Master Key Route
=====================================

What:  POST /api/keys issues a fresh 256-bit master key.
Who:   The account service, once per new user. It stores the key; this
       service forgets it as soon as the response is sent.
"""

from fastapi import APIRouter, Depends, Response

from readlater.dependencies import get_encryption_service
from readlater.schemas.content import UserKeyResponse
from readlater.services.encryption_service import EncryptionService

router = APIRouter(prefix="/api", tags=["Keys"])


@router.post(
    "/keys",
    status_code=201,
    response_model=UserKeyResponse,
    summary="Generate a new user master key",
)
async def generate_key(
    response: Response,
    encryption: EncryptionService = Depends(get_encryption_service),
) -> UserKeyResponse:
    response.headers["Cache-Control"] = "no-store"
    return UserKeyResponse(key=encryption.generate_user_key())
