"""
Sign-in session and identity pool credentials.
"""

from .broker import CredentialBroker, CredentialSet
from .claims import peek_claims, user_pool_id_from_token
from .session import AuthSession, SessionTokens

__all__ = [
    "CredentialBroker",
    "CredentialSet",
    "peek_claims",
    "user_pool_id_from_token",
    "AuthSession",
    "SessionTokens",
]
