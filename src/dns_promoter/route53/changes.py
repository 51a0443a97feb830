"""Desired root zone records and the applier that upserts them.

Every change is an UPSERT: the record set named by (name, type) is
created or fully replaced, never merged with existing values.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import ApplyError, error_code


logger = logging.getLogger(__name__)

RECORD_TTL = 86400
NS_RECORD = "NS"


@dataclass(frozen=True)
class DesiredChange:
    """A record set that must exist in the root zone."""

    record_type: str
    name: str
    values: Tuple[str, ...] = field(default_factory=tuple)
    ttl: int = RECORD_TTL

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    @classmethod
    def ns(cls, name: str, name_servers: Sequence[str]) -> "DesiredChange":
        """Delegation record for a subordinate zone."""
        return cls(record_type=NS_RECORD, name=name, values=tuple(name_servers))

    def to_change(self) -> Dict[str, Any]:
        """Render as a Route53 UPSERT change entry."""
        return {
            "Action": "UPSERT",
            "ResourceRecordSet": {
                "Name": self.name,
                "Type": self.record_type,
                "TTL": self.ttl,
                "ResourceRecords": [{"Value": value} for value in self.values],
            },
        }

    def __str__(self) -> str:
        return f"{self.record_type} {self.name} -> {', '.join(self.values)} (ttl {self.ttl})"


@dataclass(frozen=True)
class RootZoneRef:
    """The root hosted zone that receives all changes."""

    id: str
    name: str = ""

    def __str__(self) -> str:
        return f"{self.name} ({self.id})" if self.name else self.id


def unique_changes(changes: Iterable[DesiredChange]) -> List[DesiredChange]:
    """Drop repeated changes while keeping first-seen order."""
    seen = set()
    result = []
    for change in changes:
        if change in seen:
            continue
        seen.add(change)
        result.append(change)
    return result


class ChangeApplier:
    """Applies desired changes to the root hosted zone.

    Changes are sent one at a time. In dry-run mode nothing is sent;
    the change is only logged. Either way it is kept in `recorded`.
    """

    def __init__(
        self,
        route53_client: Any,
        dry_run: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize change applier.

        Args:
            route53_client: Route53 client holding root zone credentials
            dry_run: Only log the changes that would be made
            log: Logger receiving one line per change
        """
        self.route53_client = route53_client
        self.dry_run = dry_run
        self.log = log or logger
        self.recorded: List[DesiredChange] = []

    def apply(self, root_zone: RootZoneRef, changes: Iterable[DesiredChange]) -> int:
        """Upsert changes into the root zone.

        Args:
            root_zone: Root hosted zone reference
            changes: Desired record sets

        Returns:
            Number of changes applied (or that would be applied in dry-run)

        Raises:
            ApplyError: When an upsert fails; remaining changes are not sent
        """
        count = 0
        for change in unique_changes(changes):
            if self.dry_run:
                self.log.info("Would upsert %s in zone %s", change, root_zone)
            else:
                self._upsert(root_zone.id, change)
                self.log.info("Upserted %s in zone %s", change, root_zone)
            self.recorded.append(change)
            count += 1
        return count

    def _upsert(self, zone_id: str, change: DesiredChange) -> None:
        try:
            self.route53_client.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={
                    "Comment": "dns-promoter upsert",
                    "Changes": [change.to_change()],
                },
            )
        except ClientError as e:
            raise ApplyError(
                f"Failed to upsert {change.record_type} {change.name}: {e}",
                code=error_code(e),
            )
        except BotoCoreError as e:
            raise ApplyError(
                f"Failed to upsert {change.record_type} {change.name}: {e}"
            )
