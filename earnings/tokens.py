"""
Session tokens: signed, time-limited bearer tokens carrying identity claims.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict
import logging

import jwt  # PyJWT
from flask import current_app

from earnings.errors import AuthError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


def _secret() -> str:
    secret = current_app.config.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET not configured")
    return secret


def generate_token(account) -> str:
    """Issue a token embedding {id, email, isPremium}."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": account.id,
        "email": account.email,
        "isPremium": account.is_premium,
        "iat": now,
        "exp": now + timedelta(days=current_app.config.get("JWT_EXPIRES_DAYS", 30)),
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Dict:
    try:
        return jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired session token")
        raise AuthError("Invalid token")
    except jwt.InvalidTokenError:
        logger.warning("Rejected malformed session token")
        raise AuthError("Invalid token")


def bearer_token(header_value):
    """Extract the token from an Authorization header, or None."""
    if not header_value:
        return None
    token = header_value.replace("Bearer ", "", 1).strip()
    return token or None
