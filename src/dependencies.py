# src/dependencies.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request

from src.richmenu.application.publish_service import PublishService
from src.richmenu.domain.protocols import ImageLoader
from src.richmenu.infrastructure.image_loader import HttpImageLoader
from src.richmenu.infrastructure.line_client import line_client_factory
from src.richmenu.infrastructure.publish_lock import get_publish_lock
from src.richmenu.infrastructure.repositories import (
    SqlAlchemyDraftRepository,
    SqlAlchemyLineChannelRepository,
    SqlAlchemyPublishJobRepository,
    SqlAlchemyRichMenuVersionRepository,
)
from src.shared import security
from src.shared.database import get_session
from src.shared.error_codes import ERROR_CODES
from src.shared.exceptions import AuthenticationError


# --- JWT parsing helper (used in main.py middleware and below) ---
def extract_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip()


# --- Current user ---
async def get_current_user_id(request: Request) -> UUID:
    """Publisher account id from the bearer token's `sub` claim."""
    token = extract_bearer_token(request)
    if not token:
        data = ERROR_CODES["unauthorized"]
        raise AuthenticationError(data["message"], code="unauthorized")
    claims = security.decode_token(token)
    try:
        return UUID(str(claims["sub"]))
    except ValueError as e:
        raise AuthenticationError("Token subject is not a user id", code="invalid_token") from e


# --- Collaborators ---
def get_image_loader() -> ImageLoader:
    return HttpImageLoader()


def get_publish_service(images: ImageLoader = Depends(get_image_loader)) -> PublishService:
    session_factory = get_session()
    return PublishService(
        channels=SqlAlchemyLineChannelRepository(session_factory, security.get_token_cipher()),
        gateway_factory=line_client_factory,
        jobs=SqlAlchemyPublishJobRepository(session_factory),
        versions=SqlAlchemyRichMenuVersionRepository(session_factory),
        images=images,
        drafts=SqlAlchemyDraftRepository(session_factory),
        lock=get_publish_lock(),
    )
