"""
Bearer Token Validation

Validates ID tokens issued by the external identity provider. Signatures are
checked against the provider's published keys (JWKS); audience and issuer are
checked only when configured.
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientError

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

# Security scheme for extracting Bearer tokens
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (fetches the provider's public keys)
_jwks_client: Optional[PyJWKClient] = None


def get_jwks_client() -> PyJWKClient:
    """Get cached JWKS client for fetching the provider's public keys."""
    global _jwks_client
    if _jwks_client is None:
        jwks_url = get_settings().AUTH_JWKS_URL
        _jwks_client = PyJWKClient(jwks_url)
        logger.info(f"[AUTH] Initialized JWKS client: {jwks_url}")
    return _jwks_client


def validate_token(token: str) -> Optional[dict]:
    """
    Validate a bearer JWT.

    Args:
        token: Encoded JWT from the Authorization header

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    settings = get_settings()
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.AUTH_AUDIENCE,
            issuer=settings.AUTH_ISSUER,
            options={
                "verify_aud": settings.AUTH_AUDIENCE is not None,
                "verify_iss": settings.AUTH_ISSUER is not None,
            },
        )
        return payload

    except jwt.ExpiredSignatureError:
        logger.warning("[AUTH] Token expired")
        return None

    except PyJWKClientError as e:
        logger.warning(f"[AUTH] Signing key lookup failed: {e}")
        return None

    except jwt.InvalidTokenError as e:
        logger.warning(f"[AUTH] Invalid token: {e}")
        return None


def user_from_payload(payload: dict) -> Optional[dict]:
    """
    Build the user dict routers depend on.

    Returns:
        Dict with keys sub, email, name; None if the token has no subject
    """
    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        return None
    return {
        "sub": user_id,
        "email": payload.get("email"),
        "name": payload.get("name"),
    }


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Authentication dependency for owner-only endpoints.

    Raises:
        HTTPException: 401 if no valid token was presented
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = validate_token(credentials.credentials)
    user = user_from_payload(payload) if payload else None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug(f"[AUTH] Authenticated {user['sub']}")
    return user
