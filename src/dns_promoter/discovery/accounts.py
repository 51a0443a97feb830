"""Account discovery for the reconciler.

This module lists the subordinate accounts whose zones and certificates
are promoted into the root zone. In organization mode every active
account is returned together with its environment tag; in static mode
the configured role ARNs are used as-is.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional
from botocore.exceptions import BotoCoreError, ClientError

from ..core.aws_client import AWSClientManager
from ..core.errors import DiscoveryError, error_code


logger = logging.getLogger(__name__)

ROLE_ARN_PATTERN = re.compile(r"^arn:aws[\w-]*:iam::(\d{12}):role/.+$")


@dataclass(frozen=True)
class Account:
    """A subordinate account and the role used to reach it."""

    id: str
    role_arn: str
    environment: Optional[str] = None
    name: Optional[str] = None

    def expected_zone_name(self, root_domain: str) -> Optional[str]:
        """Zone name this account is expected to own, with trailing dot.

        Returns None when the account carries no environment tag.
        """
        if not self.environment:
            return None
        return f"{self.environment}.{root_domain.rstrip('.')}."


def role_arn_for(account_id: str, discover_role: str) -> str:
    """Build the role ARN to assume in a discovered account.

    Args:
        account_id: Twelve digit account ID
        discover_role: Role name, or an ARN template containing {account_id}

    Returns:
        Role ARN for the account
    """
    if discover_role.startswith("arn:"):
        return discover_role.format(account_id=account_id)
    return f"arn:aws:iam::{account_id}:role/{discover_role}"


class StaticAccountSource:
    """Accounts reached through an explicit list of role ARNs.

    No environment tag is inferred, so zones are not checked against a
    naming convention.
    """

    def __init__(self, sub_roles: List[str]) -> None:
        self.sub_roles = list(sub_roles)

    def discover(self, aws_client: Optional[AWSClientManager] = None) -> List[Account]:
        accounts = []
        for role in self.sub_roles:
            match = ROLE_ARN_PATTERN.match(role)
            account_id = match.group(1) if match else role
            accounts.append(Account(id=account_id, role_arn=role))
        return accounts


class AccountDiscoverer:
    """Discovers subordinate accounts from AWS Organizations.

    Only ACTIVE accounts are returned. The environment label is read from
    the account tags (case-insensitive key match).
    """

    def __init__(self, discover_role: str, environment_tag: str = "environment") -> None:
        """Initialize account discoverer.

        Args:
            discover_role: Role name (or ARN template) assumed in each account
            environment_tag: Tag key holding the environment label
        """
        self.discover_role = discover_role
        self.environment_tag = environment_tag

    def discover(self, aws_client: AWSClientManager) -> List[Account]:
        """List accounts of the organization visible to the root credential.

        Args:
            aws_client: Client manager for the root (management) credential

        Returns:
            List of Account entries

        Raises:
            DiscoveryError: When the organization listing fails
        """
        try:
            client = aws_client.get_client("organizations")
            paginator = client.get_paginator("list_accounts")

            accounts = []
            for page in paginator.paginate():
                for entry in page.get("Accounts", []):
                    if not self._is_active(entry):
                        logger.debug(
                            "Skipping inactive account %s", entry.get("Id")
                        )
                        continue
                    account_id = entry["Id"]
                    accounts.append(
                        Account(
                            id=account_id,
                            role_arn=role_arn_for(account_id, self.discover_role),
                            environment=self._get_environment(client, account_id),
                            name=entry.get("Name"),
                        )
                    )
        except ClientError as e:
            raise DiscoveryError(
                f"Failed to list organization accounts: {e}", code=error_code(e)
            )
        except BotoCoreError as e:
            raise DiscoveryError(f"Failed to list organization accounts: {e}")

        logger.info("Discovered %d active accounts", len(accounts))
        return accounts

    @staticmethod
    def _is_active(entry: dict) -> bool:
        state = entry.get("State") or entry.get("Status")
        return state is None or state == "ACTIVE"

    def _get_environment(self, client: Any, account_id: str) -> Optional[str]:
        """Read the environment tag of an account.

        Args:
            client: Organizations client
            account_id: Account to look up

        Returns:
            Tag value, or None when the account is untagged
        """
        wanted = self.environment_tag.lower()
        paginator = client.get_paginator("list_tags_for_resource")
        for page in paginator.paginate(ResourceId=account_id):
            for tag in page.get("Tags", []):
                if tag.get("Key", "").lower() == wanted and tag.get("Value"):
                    return tag["Value"]
        return None
