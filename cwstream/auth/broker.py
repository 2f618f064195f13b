"""
Temporary AWS credentials from a Cognito identity pool.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .claims import user_pool_id_from_token
from ..errors import BrokerError

logger = logging.getLogger(__name__)


@dataclass
class CredentialSet:
    """Temporary credential triple for the log service."""
    access_key: str
    secret_key: str
    session_token: str
    expiration: Optional[datetime] = None

    def expires_within(self, seconds: float, now: Optional[datetime] = None) -> bool:
        """True when the credentials expire less than ``seconds`` from ``now``."""
        if self.expiration is None:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        expiration = self.expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return (expiration - now).total_seconds() < seconds


class CredentialBroker:
    """
    Exchanges an identity token, or nothing at all, for temporary credentials.

    With a token the pool's authenticated role is assumed; without one the
    pool must allow unauthenticated identities.
    """

    def __init__(self, identity_pool_id: str, region: str, client=None):
        self.identity_pool_id = identity_pool_id
        self.region = region
        self._client = client

    def _get_cognito_client(self):
        """Lazy initialization of the Cognito Identity client."""
        if self._client is None:
            self._client = boto3.client("cognito-identity", region_name=self.region)
        return self._client

    def logins_for(self, id_token: str) -> Dict[str, str]:
        """
        Build the ``Logins`` map for an identity token.

        Raises:
            TokenFormatError: If the token cannot be decoded
        """
        provider = f"cognito-idp.{self.region}.amazonaws.com/{user_pool_id_from_token(id_token)}"
        return {provider: id_token}

    def credentials_for(self, id_token: Optional[str] = None) -> CredentialSet:
        """
        Resolve an identity and exchange it for credentials.

        Args:
            id_token: Identity token for authenticated mode, None for anonymous

        Returns:
            CredentialSet

        Raises:
            TokenFormatError: If the token is malformed
            BrokerError: If the federation service call fails
        """
        extra: Dict[str, Any] = {}
        if id_token:
            extra["Logins"] = self.logins_for(id_token)

        client = self._get_cognito_client()
        logger.info("Requesting credentials from identity pool...")
        try:
            identity = client.get_id(IdentityPoolId=self.identity_pool_id, **extra)
            response = client.get_credentials_for_identity(
                IdentityId=identity["IdentityId"], **extra
            )
        except (ClientError, BotoCoreError) as e:
            raise BrokerError(f"Failed to get AWS credentials: {e}") from e

        credentials = response.get("Credentials") or {}
        try:
            return CredentialSet(
                access_key=credentials["AccessKeyId"],
                secret_key=credentials["SecretKey"],
                session_token=credentials["SessionToken"],
                expiration=credentials.get("Expiration"),
            )
        except KeyError as e:
            raise BrokerError(f"Identity pool returned incomplete credentials: missing {e}") from e

    def logs_client(self, credentials: CredentialSet):
        """Build a CloudWatch Logs client signed with the given credentials."""
        logger.info("Setting up CloudWatch client...")
        return boto3.client(
            "logs",
            region_name=self.region,
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            aws_session_token=credentials.session_token,
        )
