# src/shared/security.py
from __future__ import annotations

import base64
import functools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union
from uuid import UUID

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from jose import JWTError, jwt

from src.shared.config import get_settings
from src.shared.exceptions import AuthenticationError
from src.shared.logging import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


# ---------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------

def create_access_token(
    sub: Union[str, UUID],
    *,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for a publisher account.

    Args:
        sub: Subject (user ID)
        email: Optional email claim
        expires_delta: Token lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: Dict[str, Any] = {
        "sub": str(sub),
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "typ": "access",
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a bearer token.

    Raises:
        AuthenticationError: If the token is malformed, expired or lacks a subject
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token", code="invalid_token") from e
    if not claims.get("sub"):
        raise AuthenticationError("Token has no subject", code="invalid_token")
    return claims


# ---------------------------------------------------------------------
# LINE channel token encryption
# ---------------------------------------------------------------------

class TokenCipher:
    """Fernet cipher for LINE channel access tokens stored at rest."""

    def __init__(self, secret_key: str, salt: bytes = b"rm_line_channels"):
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode()))
        self.fernet = Fernet(key)

    def encrypt(self, data: str) -> str:
        return self.fernet.encrypt(data.encode()).decode()

    def decrypt(self, encrypted_data: str) -> str:
        try:
            return self.fernet.decrypt(encrypted_data.encode()).decode()
        except InvalidToken as e:
            logger.error("Stored LINE channel token could not be decrypted")
            raise AuthenticationError(
                "Stored LINE channel token is unreadable",
                code="line_channel_not_configured",
            ) from e


@functools.lru_cache(maxsize=1)
def get_token_cipher() -> TokenCipher:
    return TokenCipher(get_settings().token_encryption_secret)
