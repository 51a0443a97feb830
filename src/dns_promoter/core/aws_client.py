"""Centralized AWS client management with session handling.

This module provides a centralized way to manage AWS clients across
different regions and accounts. A manager wraps one boto3 session; the
credential broker (`assume_role`) derives a new manager whose session
carries the temporary credentials of an assumed role.
"""

import logging
from typing import Dict, Optional
import boto3
from botocore.exceptions import (
    BotoCoreError,
    NoCredentialsError,
    ClientError,
    ProfileNotFound,
)

from .errors import CredentialError, ProviderReadError, error_code


logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
DEFAULT_SESSION_NAME = "dns-promoter"

# STS error codes meaning the role is missing or does not trust us.
ROLE_NOT_ASSUMABLE_CODES = frozenset({
    "AccessDenied",
    "AccessDeniedException",
    "NoSuchEntity",
    "InvalidClientTokenId",
})


class AWSClientManager:
    """Centralized AWS client management with session handling.

    This class provides a centralized way to manage AWS clients across
    different regions while maintaining session consistency and proper
    error handling.
    """

    def __init__(
        self,
        profile_name: Optional[str] = None,
        region_name: Optional[str] = None,
        session: Optional[boto3.Session] = None,
        validate: bool = True,
    ) -> None:
        """Initialize AWS client manager.

        Args:
            profile_name: Optional AWS profile name for credentials
            region_name: Optional region overriding the session default
            session: Pre-built boto3 session (used for assumed roles)
            validate: Whether to verify credentials with STS on creation

        Raises:
            NoCredentialsError: When AWS credentials are not available
            ProfileNotFound: When specified profile doesn't exist
        """
        self._session: Optional[boto3.Session] = session
        self._clients: Dict[str, boto3.client] = {}
        self._profile_name = profile_name
        self._region_name = region_name
        if validate:
            self._validate_credentials()

    def _validate_credentials(self) -> None:
        """Validate AWS credentials are available and working.

        Raises:
            NoCredentialsError: When AWS credentials are not available
            ProfileNotFound: When specified profile doesn't exist
        """
        try:
            session = self._get_session()
            sts_client = session.client("sts")
            sts_client.get_caller_identity()
        except NoCredentialsError:
            raise
        except ProfileNotFound:
            raise ProfileNotFound(profile=self._profile_name)
        except ClientError as e:
            if error_code(e) == "InvalidUserID.NotFound":
                raise NoCredentialsError()
            raise

    def _get_session(self) -> boto3.Session:
        """Get or create boto3 session.

        Returns:
            Configured boto3 session
        """
        if self._session is None:
            kwargs = {}
            if self._profile_name:
                kwargs["profile_name"] = self._profile_name
            if self._region_name:
                kwargs["region_name"] = self._region_name
            self._session = boto3.Session(**kwargs)
        return self._session

    def get_client(self, service_name: str, region_name: Optional[str] = None) -> boto3.client:
        """Get AWS service client for specified region.

        Args:
            service_name: AWS service name (e.g., 'route53', 'acm')
            region_name: AWS region name, defaults to the current region

        Returns:
            Configured boto3 client for the service and region
        """
        region_name = region_name or self.get_current_region()
        client_key = f"{service_name}_{region_name}"

        if client_key not in self._clients:
            session = self._get_session()
            self._clients[client_key] = session.client(
                service_name, region_name=region_name
            )

        return self._clients[client_key]

    def get_current_region(self) -> str:
        """Get current AWS region from session.

        Returns:
            Current AWS region name
        """
        if self._region_name:
            return self._region_name
        session = self._get_session()
        return session.region_name or DEFAULT_REGION

    def assume_role(
        self,
        role_arn: str,
        region_name: Optional[str] = None,
        session_name: str = DEFAULT_SESSION_NAME,
    ) -> "AWSClientManager":
        """Obtain a client manager scoped to an assumed role.

        Args:
            role_arn: ARN of the role to assume
            region_name: Optional region to pin the new session to
            session_name: RoleSessionName recorded in CloudTrail

        Returns:
            New AWSClientManager backed by the temporary credentials

        Raises:
            CredentialError: When the role does not exist or is not assumable
            ProviderReadError: When STS fails for any other reason
                (throttling, connectivity, expired base credentials)
        """
        region_name = region_name or self.get_current_region()
        try:
            sts_client = self.get_client("sts", region_name)
            response = sts_client.assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
            )
        except ClientError as e:
            code = error_code(e)
            if code in ROLE_NOT_ASSUMABLE_CODES:
                raise CredentialError(f"Unable to assume role {role_arn}: {e}", code=code)
            raise ProviderReadError(
                f"STS failed while assuming role {role_arn}: {e}", code=code
            )
        except BotoCoreError as e:
            raise ProviderReadError(f"STS failed while assuming role {role_arn}: {e}")

        credentials = response["Credentials"]
        session = boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=region_name,
        )
        logger.debug("Assumed role %s in %s", role_arn, region_name)
        return AWSClientManager(
            region_name=region_name, session=session, validate=False
        )
