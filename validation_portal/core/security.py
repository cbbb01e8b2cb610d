from __future__ import annotations

import logging

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from validation_portal.core.config import settings

logger = logging.getLogger("validation_portal.security")

# Stateless access tokens. The auth service signs {"user_id": ...} with the
# shared SECRET_KEY; this service only reads them.
serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="validation_portal_sid")


def issue_token(user_id: int) -> str:
    """Local tooling only (sample data, tests); real tokens come from the auth service."""
    return serializer.dumps({"user_id": int(user_id)})


def read_token(token: str, max_age_seconds: int | None = None) -> int | None:
    """User id carried by a token, or None when it is expired, forged or malformed."""
    try:
        payload = serializer.loads(token, max_age=max_age_seconds or settings.SESSION_MAX_AGE_SECONDS)
    except SignatureExpired:
        logger.info("Rejected expired access token")
        return None
    except BadSignature:
        logger.warning("Rejected access token with a bad signature")
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return int(payload["user_id"])
    except (KeyError, TypeError, ValueError):
        return None
