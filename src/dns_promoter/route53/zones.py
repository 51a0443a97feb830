"""Hosted zone enumeration and NS delegation changes.

This module resolves the root hosted zone once per cycle and, for each
subordinate account, turns its public hosted zones into NS delegation
records for the root zone.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, List, Optional, Tuple
from botocore.exceptions import BotoCoreError, ClientError

from ..core.aws_client import AWSClientManager
from ..core.config import ConfigurationError
from ..core.errors import ProviderReadError, error_code
from ..discovery.accounts import Account
from .changes import DesiredChange, RootZoneRef


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostedZone:
    """Read-only view of a Route53 hosted zone.

    `name_servers` is empty until the delegation set has been fetched.
    """

    id: str
    name: str
    is_private: bool = False
    name_servers: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def bare_name(self) -> str:
        """Zone name without the trailing dot."""
        return self.name.rstrip(".")

    @classmethod
    def from_api(cls, data: dict) -> "HostedZone":
        return cls(
            id=data["Id"],
            name=data["Name"],
            is_private=bool(data.get("Config", {}).get("PrivateZone", False)),
        )

    def delegation(self) -> DesiredChange:
        """NS record delegating this zone from its parent."""
        return DesiredChange.ns(self.name, self.name_servers)


def list_zones(route53_client: Any) -> Iterator[HostedZone]:
    """Page through every hosted zone visible to the client.

    Raises:
        ProviderReadError: When a listing page cannot be fetched
    """
    try:
        paginator = route53_client.get_paginator("list_hosted_zones")
        for page in paginator.paginate():
            for data in page.get("HostedZones", []):
                yield HostedZone.from_api(data)
    except ClientError as e:
        raise ProviderReadError(f"Failed to list hosted zones: {e}", code=error_code(e))
    except BotoCoreError as e:
        raise ProviderReadError(f"Failed to list hosted zones: {e}")


def get_delegation_set(route53_client: Any, zone_id: str) -> List[str]:
    """Fetch the authoritative name servers of a hosted zone.

    Raises:
        ProviderReadError: When the zone cannot be described
    """
    try:
        response = route53_client.get_hosted_zone(Id=zone_id)
    except ClientError as e:
        raise ProviderReadError(
            f"Failed to get delegation set of zone {zone_id}: {e}", code=error_code(e)
        )
    except BotoCoreError as e:
        raise ProviderReadError(f"Failed to get delegation set of zone {zone_id}: {e}")
    return list(response.get("DelegationSet", {}).get("NameServers", []))


def resolve_root_zone(
    route53_client: Any,
    root_domain: str,
    log: Optional[logging.Logger] = None,
) -> RootZoneRef:
    """Find the public hosted zone serving the root domain.

    The first public zone whose name starts with the root domain is used,
    unless one matches it exactly.

    Args:
        route53_client: Route53 client holding root zone credentials
        root_domain: Root domain, with or without trailing dot
        log: Logger to report the resolved zone to

    Returns:
        Reference to the root zone

    Raises:
        ConfigurationError: When no hosted zone matches the root domain
        ProviderReadError: When the zones cannot be listed
    """
    log = log or logger
    root_domain = root_domain.rstrip(".").lower()
    candidate = None
    for zone in list_zones(route53_client):
        if zone.is_private or not zone.name.lower().startswith(root_domain):
            continue
        if zone.bare_name.lower() == root_domain:
            candidate = zone
            break
        if candidate is None:
            candidate = zone

    if candidate is None:
        raise ConfigurationError(
            f"No public hosted zone found for root domain {root_domain}"
        )

    log.info("Found root zone %s (%s)", candidate.id, candidate.name)
    return RootZoneRef(id=candidate.id, name=candidate.name)


class ZoneSynchronizer:
    """Computes NS delegation changes for one subordinate account.

    With `enforce_naming` set, only the zone named after the account's
    environment (`{environment}.{root_domain}.`) is delegated.
    """

    def __init__(
        self, enforce_naming: bool = True, log: Optional[logging.Logger] = None
    ) -> None:
        self.enforce_naming = enforce_naming
        self.log = log or logger

    def sync(
        self,
        aws_client: AWSClientManager,
        account: Account,
        root_domain: str,
    ) -> Tuple[List[str], List[DesiredChange]]:
        """Build NS changes for the account's public hosted zones.

        Args:
            aws_client: Client manager scoped to the account's role
            account: Account being processed
            root_domain: Root domain

        Returns:
            Tuple of (promoted subdomains, lowercased and without trailing
            dot, NS changes)

        Raises:
            ProviderReadError: When listing zones or a delegation set fails
        """
        route53 = aws_client.get_client("route53")
        expected = account.expected_zone_name(root_domain)

        promoted: List[str] = []
        changes: List[DesiredChange] = []

        for zone in list_zones(route53):
            if zone.is_private:
                self.log.debug("Skipping private zone %s (%s)", zone.name, zone.id)
                continue

            if self.enforce_naming and (
                expected is None or zone.name.lower() != expected.lower()
            ):
                self.log.warning(
                    "Zone %s in account %s does not match expected name %s, skipping",
                    zone.name,
                    account.id,
                    expected,
                )
                continue

            promoted.append(zone.bare_name.lower())

            zone = replace(
                zone, name_servers=tuple(get_delegation_set(route53, zone.id))
            )
            if not zone.name_servers:
                self.log.warning(
                    "Zone %s in account %s has no name servers, not delegating",
                    zone.name,
                    account.id,
                )
                continue

            changes.append(zone.delegation())

        return promoted, changes
