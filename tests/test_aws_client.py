"""Unit tests for AWS Client Manager."""

import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)

from dns_promoter.core.aws_client import AWSClientManager
from dns_promoter.core.errors import CredentialError, ProviderReadError


def _session_with_sts(mock_session_class, region="us-east-1"):
    mock_session = Mock()
    mock_session.region_name = region
    mock_sts_client = Mock()
    mock_sts_client.get_caller_identity.return_value = {
        "Account": "123456789012"
    }
    mock_session.client.return_value = mock_sts_client
    mock_session_class.return_value = mock_session
    return mock_session, mock_sts_client


class TestAWSClientManager:
    """Test cases for AWSClientManager class."""

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_init_success(self, mock_session_class):
        """Test successful initialization."""
        _, mock_sts_client = _session_with_sts(mock_session_class)

        manager = AWSClientManager()

        assert manager._profile_name is None
        mock_sts_client.get_caller_identity.assert_called_once()

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_init_with_profile(self, mock_session_class):
        """Test initialization with profile."""
        _session_with_sts(mock_session_class)

        manager = AWSClientManager(profile_name="test-profile")

        assert manager._profile_name == "test-profile"
        mock_session_class.assert_called_with(profile_name="test-profile")

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_init_no_credentials(self, mock_session_class):
        """Test initialization with no credentials."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.get_caller_identity.side_effect = NoCredentialsError()

        with pytest.raises(NoCredentialsError):
            AWSClientManager()

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_init_profile_not_found(self, mock_session_class):
        """Test initialization with invalid profile."""
        mock_session_class.side_effect = ProfileNotFound(profile="invalid")

        with pytest.raises(ProfileNotFound):
            AWSClientManager(profile_name="invalid")

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_init_without_validation(self, mock_session_class):
        """Test that validation can be skipped."""
        AWSClientManager(validate=False)

        mock_session_class.assert_not_called()

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_get_client_caching(self, mock_session_class):
        """Test client caching per service and region."""
        mock_session, mock_sts_client = _session_with_sts(mock_session_class)
        route53_clients = {}

        def client_side_effect(service_name, region_name=None):
            if service_name == "sts":
                return mock_sts_client
            return route53_clients.setdefault(region_name, Mock())

        mock_session.client.side_effect = client_side_effect

        manager = AWSClientManager()

        client1 = manager.get_client("route53", "us-east-1")
        client2 = manager.get_client("route53", "us-east-1")
        client3 = manager.get_client("route53", "eu-west-1")

        assert client1 is client2
        assert client1 is not client3

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_get_client_default_region(self, mock_session_class):
        """Test get_client falls back to the session region."""
        mock_session, _ = _session_with_sts(mock_session_class, region="eu-central-1")

        manager = AWSClientManager()
        manager.get_client("acm")

        mock_session.client.assert_called_with("acm", region_name="eu-central-1")

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_get_current_region_default(self, mock_session_class):
        """Test getting current region with default fallback."""
        _session_with_sts(mock_session_class, region=None)

        manager = AWSClientManager()

        assert manager.get_current_region() == "us-east-1"

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_get_current_region_explicit(self, mock_session_class):
        """Test an explicit region wins over the session region."""
        _session_with_sts(mock_session_class, region="us-west-2")

        manager = AWSClientManager(region_name="ap-southeast-2")

        assert manager.get_current_region() == "ap-southeast-2"


class TestAssumeRole:
    """Test cases for the credential broker."""

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_success(self, mock_session_class):
        """Test assuming a role builds a session from the temporary credentials."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.return_value = {
            "Credentials": {
                "AccessKeyId": "AKIA",
                "SecretAccessKey": "secret",
                "SessionToken": "token",
            }
        }

        manager = AWSClientManager()
        assumed = manager.assume_role(
            "arn:aws:iam::111111111111:role/dns", region_name="eu-west-1"
        )

        mock_sts_client.assume_role.assert_called_once_with(
            RoleArn="arn:aws:iam::111111111111:role/dns",
            RoleSessionName="dns-promoter",
        )
        mock_session_class.assert_called_with(
            aws_access_key_id="AKIA",
            aws_secret_access_key="secret",
            aws_session_token="token",
            region_name="eu-west-1",
        )
        assert isinstance(assumed, AWSClientManager)
        assert assumed.get_current_region() == "eu-west-1"

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_access_denied(self, mock_session_class):
        """Test a role that cannot be assumed raises CredentialError."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "not authorized"}},
            "AssumeRole",
        )

        manager = AWSClientManager()

        with pytest.raises(CredentialError) as exc_info:
            manager.assume_role("arn:aws:iam::111111111111:role/missing")

        assert exc_info.value.code == "AccessDenied"

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_missing_role(self, mock_session_class):
        """Test a role that does not exist raises CredentialError."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.side_effect = ClientError(
            {"Error": {"Code": "NoSuchEntity", "Message": "no such role"}},
            "AssumeRole",
        )

        manager = AWSClientManager()

        with pytest.raises(CredentialError):
            manager.assume_role("arn:aws:iam::111111111111:role/missing")

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_throttled(self, mock_session_class):
        """Test STS throttling is a read failure, not an unassumable role."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.side_effect = ClientError(
            {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
            "AssumeRole",
        )

        manager = AWSClientManager()

        with pytest.raises(ProviderReadError) as exc_info:
            manager.assume_role("arn:aws:iam::111111111111:role/dns")

        assert not isinstance(exc_info.value, CredentialError)
        assert exc_info.value.code == "Throttling"

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_expired_base_credentials(self, mock_session_class):
        """Test expired base credentials are not mistaken for a missing role."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.side_effect = ClientError(
            {"Error": {"Code": "ExpiredToken", "Message": "expired"}},
            "AssumeRole",
        )

        manager = AWSClientManager()

        with pytest.raises(ProviderReadError) as exc_info:
            manager.assume_role("arn:aws:iam::111111111111:role/dns")

        assert exc_info.value.code == "ExpiredToken"

    @patch("dns_promoter.core.aws_client.boto3.Session")
    def test_assume_role_endpoint_unreachable(self, mock_session_class):
        """Test a connection failure to STS raises ProviderReadError."""
        _, mock_sts_client = _session_with_sts(mock_session_class)
        mock_sts_client.assume_role.side_effect = EndpointConnectionError(
            endpoint_url="https://sts.amazonaws.com"
        )

        manager = AWSClientManager()

        with pytest.raises(ProviderReadError) as exc_info:
            manager.assume_role("arn:aws:iam::111111111111:role/dns")

        assert exc_info.value.code is None
