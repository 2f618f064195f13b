"""
Unverified JWT claim inspection.

These helpers decode the payload segment of a token WITHOUT checking its
signature. They exist only to read routing hints (the issuer's user pool id,
the expiry time) from a token the auth server just handed us. Never use the
result for a trust or authorization decision.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional

from ..errors import TokenFormatError

logger = logging.getLogger(__name__)


def peek_claims(token: str) -> Dict[str, Any]:
    """
    Decode a JWT payload without verifying it.

    Args:
        token: Compact-serialised JWT (``header.payload.signature``)

    Returns:
        The payload claims

    Raises:
        TokenFormatError: If the token has fewer than two segments or the
            payload is not a base64url-encoded JSON object
    """
    parts = (token or "").split(".")
    if len(parts) < 2:
        raise TokenFormatError("Invalid ID token format")

    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise TokenFormatError(f"Unreadable ID token payload: {e}") from e

    if not isinstance(payload, dict):
        raise TokenFormatError("ID token payload is not a JSON object")
    return payload


def user_pool_id_from_token(token: str) -> str:
    """
    Extract the Cognito user pool id from a token's ``iss`` claim.

    The issuer looks like ``https://cognito-idp.<region>.amazonaws.com/<pool-id>``;
    the pool id is its last path segment.
    """
    issuer = peek_claims(token).get("iss")
    if not isinstance(issuer, str) or not issuer.rstrip("/"):
        raise TokenFormatError("ID token has no issuer claim")

    user_pool_id = issuer.rstrip("/").split("/")[-1]
    logger.info(f"Extracted user pool ID: {user_pool_id}")
    return user_pool_id


def expiry_from_token(token: Optional[str]) -> Optional[float]:
    """Return the ``exp`` claim as epoch seconds, or None if it cannot be read."""
    if not token:
        return None
    try:
        exp = peek_claims(token).get("exp")
    except TokenFormatError as e:
        logger.debug(f"Could not read token expiry: {e}")
        return None
    if isinstance(exp, (int, float)) and not isinstance(exp, bool):
        return float(exp)
    return None
