"""DNS validation records of ACM certificates.

Certificates requested in a subordinate account for names directly under
the root domain can only be validated through the root zone. This module
finds their validation records and turns them into root zone changes.
Names under a delegated subdomain are left alone; that subdomain's own
zone answers for them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple
from botocore.exceptions import BotoCoreError, ClientError

from ..core.aws_client import AWSClientManager
from ..core.errors import ProviderReadError, error_code
from ..route53.changes import DesiredChange


logger = logging.getLogger(__name__)

DNS_VALIDATION = "DNS"

# ListCertificates only returns RSA_2048 certificates unless asked otherwise.
ALL_KEY_TYPES = [
    "RSA_1024",
    "RSA_2048",
    "RSA_3072",
    "RSA_4096",
    "EC_prime256v1",
    "EC_secp384r1",
    "EC_secp521r1",
]


@dataclass(frozen=True)
class ResourceRecord:
    type: str
    name: str
    value: str


@dataclass(frozen=True)
class DomainValidationOption:
    """Validation state of one domain name on a certificate."""

    domain: str
    method: Optional[str] = None
    resource_record: Optional[ResourceRecord] = None

    @classmethod
    def from_api(cls, data: dict) -> "DomainValidationOption":
        record = data.get("ResourceRecord")
        return cls(
            domain=data["DomainName"],
            method=data.get("ValidationMethod"),
            resource_record=ResourceRecord(
                type=record["Type"], name=record["Name"], value=record["Value"]
            )
            if record
            else None,
        )

    @property
    def is_actionable(self) -> bool:
        return self.method == DNS_VALIDATION and self.resource_record is not None


@dataclass(frozen=True)
class Certificate:
    arn: str
    domain_validation_options: Tuple[DomainValidationOption, ...] = field(
        default_factory=tuple
    )

    @classmethod
    def from_api(cls, data: dict) -> "Certificate":
        return cls(
            arn=data["CertificateArn"],
            domain_validation_options=tuple(
                DomainValidationOption.from_api(option)
                for option in data.get("DomainValidationOptions", [])
            ),
        )


def should_promote(
    option: DomainValidationOption,
    root_domain: str,
    promoted_subdomains: Sequence[str],
) -> bool:
    """Decide whether a validation record belongs in the root zone.

    The record is promoted when its domain ends with the root domain and
    does not end with any subdomain delegated in this cycle. Both checks
    are plain string suffix tests, case-insensitive like DNS names.
    """
    if not option.is_actionable:
        return False
    domain = option.domain.lower()
    if not domain.endswith(root_domain.lower()):
        return False
    return not any(domain.endswith(sub.lower()) for sub in promoted_subdomains)


class ValidationFinder:
    """Finds certificate validation records that must live in the root zone."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def find_validations(
        self,
        aws_client: AWSClientManager,
        regions: Iterable[str],
        root_domain: str,
        promoted_subdomains: Sequence[str],
    ) -> List[DesiredChange]:
        """Collect validation record changes across regions.

        Args:
            aws_client: Client manager scoped to the account's role
            regions: Regions whose certificates are inspected
            root_domain: Root domain without trailing dot
            promoted_subdomains: Subdomains delegated for this account

        Returns:
            List of validation record changes

        Raises:
            ProviderReadError: When listing or describing certificates fails
        """
        root_domain = root_domain.rstrip(".")
        changes: List[DesiredChange] = []

        for region in regions:
            acm = aws_client.get_client("acm", region)
            for certificate in self._certificates(acm, region):
                for option in certificate.domain_validation_options:
                    if not should_promote(option, root_domain, promoted_subdomains):
                        continue
                    record = option.resource_record
                    self.log.debug(
                        "Promoting validation of %s from %s", option.domain, certificate.arn
                    )
                    changes.append(
                        DesiredChange(
                            record_type=record.type,
                            name=record.name,
                            values=(record.value,),
                        )
                    )

        return changes

    def _certificates(self, acm: Any, region: str) -> Iterator[Certificate]:
        try:
            paginator = acm.get_paginator("list_certificates")
            for page in paginator.paginate(Includes={"keyTypes": ALL_KEY_TYPES}):
                for summary in page.get("CertificateSummaryList", []):
                    yield self._describe(acm, summary["CertificateArn"])
        except ClientError as e:
            raise ProviderReadError(
                f"Failed to list certificates in {region}: {e}", code=error_code(e)
            )
        except BotoCoreError as e:
            raise ProviderReadError(f"Failed to list certificates in {region}: {e}")

    @staticmethod
    def _describe(acm: Any, arn: str) -> Certificate:
        try:
            response = acm.describe_certificate(CertificateArn=arn)
        except ClientError as e:
            raise ProviderReadError(
                f"Failed to describe certificate {arn}: {e}", code=error_code(e)
            )
        except BotoCoreError as e:
            raise ProviderReadError(f"Failed to describe certificate {arn}: {e}")
        return Certificate.from_api(response["Certificate"])
