"""JWT authentication and shared-secret utilities."""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from agentline.config import get_settings

security = HTTPBearer(auto_error=True)
cron_security = HTTPBearer(auto_error=False)


def create_access_token(client_id: str, email: str | None = None) -> str:
    """Create a JWT access token for the given client."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.auth_token_expiry_minutes
    )
    payload = {
        "sub": client_id,
        "email": email,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


async def get_current_client(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> dict[str, Any]:
    """Validate JWT token and return the calling client.

    Raises:
        HTTPException: If token is invalid, expired, or wrong type
    """
    settings = get_settings()
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    client_id = payload.get("sub")
    if client_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: no subject claim",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {
        "id": client_id,
        "email": payload.get("email"),
    }


async def verify_cron_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(cron_security)],
) -> None:
    """Require `Authorization: Bearer <cron_secret>` on worker endpoints."""
    settings = get_settings()
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured",
        )

    supplied = credentials.credentials if credentials else ""
    if not hmac.compare_digest(supplied.encode("utf-8"), settings.cron_secret.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Dependency for protected routes
CurrentClient = Annotated[dict[str, Any], Depends(get_current_client)]
