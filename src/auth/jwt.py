"""
Session Token Validation

Validates signed session JWTs (HS256 by default) issued by the web
application's sign-in flow, using the shared AUTH_SECRET.
"""

import logging
from typing import Dict, Any

import jwt
from jwt import PyJWTError

from src.auth.config import AuthConfig, get_auth_config

logger = logging.getLogger(__name__)


class JWTError(Exception):
    """Custom JWT validation error."""
    pass


def verify_session_token(token: str, config: AuthConfig = None) -> Dict[str, Any]:
    """
    Verify and decode a session JWT.

    Args:
        token: The JWT from the session cookie or Authorization header
        config: Auth config (defaults to the cached environment config)

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid, expired, or malformed
    """
    config = config or get_auth_config()

    if not config.auth_secret:
        raise JWTError("AUTH_SECRET not configured")

    try:
        payload = jwt.decode(
            token,
            config.auth_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise JWTError("Token has expired")
    except jwt.InvalidSignatureError:
        raise JWTError("Invalid token signature")
    except jwt.DecodeError as e:
        raise JWTError(f"Token decode error: {str(e)}")
    except PyJWTError as e:
        raise JWTError(f"Token validation error: {str(e)}")

    # Validate required claims
    if not payload.get("sub"):
        raise JWTError("Token missing 'sub' claim (user ID)")

    return payload


def extract_user_info(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract user information from a verified JWT payload.

    Payload structure:
    {
        "sub": "user-uuid",
        "email": "user@example.com",
        "name": "Jane Doe",
        "picture": "https://...",
        "exp": 1234567890,
        "iat": 1234567800
    }
    """
    return {
        "id": str(payload.get("sub")),
        "email": payload.get("email"),
        "name": payload.get("name"),
        "image": payload.get("picture") or payload.get("image"),
    }
