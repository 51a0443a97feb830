"""Shared in-memory AWS fakes for reconciler tests."""

import pytest
from botocore.exceptions import ClientError

from dns_promoter.core.errors import CredentialError


class _Paginator:
    def __init__(self, pages, error=None):
        self._pages = pages
        self._error = error
        self.calls = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._pages(**kwargs) if callable(self._pages) else self._pages


class FakeRoute53:
    """Route53 with UPSERT semantics keyed by (name, type)."""

    def __init__(self, zones=None, name_servers=None, list_error=None):
        self.zones = list(zones or [])
        self.name_servers = dict(name_servers or {})
        self.list_error = list_error
        self.upsert_error = None
        self.records = {}
        self.change_calls = []

    def add_zone(self, zone_id, name, private=False, name_servers=None):
        self.zones.append({"Id": zone_id, "Name": name, "Config": {"PrivateZone": private}})
        if name_servers is not None:
            self.name_servers[zone_id] = list(name_servers)

    def get_paginator(self, operation):
        assert operation == "list_hosted_zones"
        return _Paginator([{"HostedZones": list(self.zones)}], self.list_error)

    def get_hosted_zone(self, Id):
        return {
            "HostedZone": {"Id": Id},
            "DelegationSet": {"NameServers": list(self.name_servers.get(Id, []))},
        }

    def change_resource_record_sets(self, HostedZoneId, ChangeBatch):
        self.change_calls.append((HostedZoneId, ChangeBatch))
        if self.upsert_error is not None:
            raise self.upsert_error
        zone = self.records.setdefault(HostedZoneId, {})
        for change in ChangeBatch["Changes"]:
            assert change["Action"] == "UPSERT"
            rrset = change["ResourceRecordSet"]
            zone[(rrset["Name"], rrset["Type"])] = (
                rrset["TTL"],
                tuple(record["Value"] for record in rrset["ResourceRecords"]),
            )
        return {"ChangeInfo": {"Status": "PENDING"}}


class FakeACM:
    def __init__(self, certificates=None):
        self.certificates = dict(certificates or {})

    def add_dns_validation(self, arn, domain, name, value, record_type="CNAME"):
        self.certificates.setdefault(arn, []).append({
            "DomainName": domain,
            "ValidationMethod": "DNS",
            "ResourceRecord": {"Name": name, "Type": record_type, "Value": value},
        })

    def get_paginator(self, operation):
        assert operation == "list_certificates"
        return _Paginator([{
            "CertificateSummaryList": [
                {"CertificateArn": arn} for arn in self.certificates
            ]
        }])

    def describe_certificate(self, CertificateArn):
        return {
            "Certificate": {
                "CertificateArn": CertificateArn,
                "DomainValidationOptions": self.certificates[CertificateArn],
            }
        }


class FakeOrganizations:
    def __init__(self, accounts=None, tags=None, error=None):
        self.accounts = list(accounts or [])
        self.tags = dict(tags or {})
        self.error = error

    def add_account(self, account_id, environment=None, status="ACTIVE"):
        self.accounts.append({"Id": account_id, "Name": account_id, "Status": status})
        if environment:
            self.tags[account_id] = [{"Key": "environment", "Value": environment}]

    def get_paginator(self, operation):
        if operation == "list_accounts":
            return _Paginator([{"Accounts": list(self.accounts)}], self.error)
        return _Paginator(lambda ResourceId: [{"Tags": self.tags.get(ResourceId, [])}])


class FakeAWS:
    """Stand-in for AWSClientManager backed by fake service clients."""

    def __init__(self, region="us-east-1"):
        self.region = region
        self.clients = {}
        self.roles = {}
        self.assumed = []
        self.role_errors = {}

    def with_client(self, service, client, region=None):
        self.clients[(service, region or self.region)] = client
        return client

    def with_role(self, role_arn, target):
        self.roles[role_arn] = target
        return target

    def get_client(self, service_name, region_name=None):
        return self.clients[(service_name, region_name or self.region)]

    def get_current_region(self):
        return self.region

    def assume_role(self, role_arn, region_name=None, session_name="dns-promoter"):
        self.assumed.append(role_arn)
        if role_arn in self.role_errors:
            raise self.role_errors[role_arn]
        if role_arn not in self.roles:
            raise CredentialError(f"Unable to assume role {role_arn}", code="AccessDenied")
        return self.roles[role_arn]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep configuration from picking up the caller's environment or files."""
    for variable in (
        "DNS_PROMOTER_ROOT_DOMAIN",
        "DNS_PROMOTER_ROOT_ROLE",
        "DNS_PROMOTER_DISCOVER_ROLE",
        "DNS_PROMOTER_SUB_ROLES",
        "DNS_PROMOTER_REGIONS",
        "DNS_PROMOTER_DRY_RUN",
        "DNS_PROMOTER_LOG_LEVEL",
        "AWS_PROFILE",
    ):
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.chdir(tmp_path)


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def fakes():
    """Namespace of fake AWS building blocks."""

    class Fakes:
        Route53 = FakeRoute53
        ACM = FakeACM
        Organizations = FakeOrganizations
        AWS = FakeAWS
        error = staticmethod(client_error)

    return Fakes
