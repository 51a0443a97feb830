"""Reconciliation loop keeping the root zone in sync with subordinate accounts.

One cycle discovers the accounts, resolves the root hosted zone, and then
processes every account in turn: assume its role, compute NS delegation
changes, compute certificate validation changes, and upsert them into the
root zone. Failures are contained at the account boundary; only discovery
and configuration failures reach the loop.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .acm.validations import ValidationFinder
from .core.aws_client import AWSClientManager
from .core.config import Configuration, ConfigurationError
from .core.errors import ApplyError, CredentialError, DiscoveryError, ProviderReadError
from .discovery.accounts import Account, AccountDiscoverer, StaticAccountSource
from .route53.changes import ChangeApplier, RootZoneRef
from .route53.zones import ZoneSynchronizer, resolve_root_zone


logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """Outcome of a single reconciliation cycle."""

    accounts_seen: int = 0
    accounts_skipped: List[str] = field(default_factory=list)
    accounts_failed: List[str] = field(default_factory=list)
    changes_computed: int = 0
    changes_applied: int = 0

    def summary(self) -> str:
        return (
            f"{self.accounts_seen} accounts, {len(self.accounts_skipped)} skipped, "
            f"{len(self.accounts_failed)} failed, {self.changes_computed} changes computed, "
            f"{self.changes_applied} applied"
        )


class Reconciler:
    """Drives reconciliation cycles on a fixed interval."""

    def __init__(
        self,
        config: Configuration,
        aws_client: AWSClientManager,
        log: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            config: Loaded configuration
            aws_client: Client manager for the base credentials
            log: Logger receiving cycle events; zone, validation and
                change events go to its children
            sleep: Function used to wait between cycles
            rng: Random source for the discovery backoff
        """
        self.config = config
        self.aws_client = aws_client
        self.log = log or logger
        self._sleep = sleep
        self._rng = rng or random.Random()

        if config.is_discovery_mode():
            self.account_source = AccountDiscoverer(
                config.get_discover_role(), config.get_environment_tag()
            )
        else:
            self.account_source = StaticAccountSource(config.get_sub_roles())
        self.zone_synchronizer = ZoneSynchronizer(
            enforce_naming=config.is_discovery_mode(),
            log=self.log.getChild("zones"),
        )
        self.validation_finder = ValidationFinder(log=self.log.getChild("validations"))

    def run(self) -> int:
        """Run cycles until stopped, or once when configured.

        Returns:
            Exit code (0 on success, 1 when a single run could not complete)

        Raises:
            ConfigurationError: When the root zone or root role is unusable
        """
        while True:
            completed = True
            try:
                report = self.run_cycle()
                self.log.info("Cycle finished: %s", report.summary())
                delay = float(self.config.get_interval_seconds())
            except DiscoveryError as e:
                completed = False
                low, high = self.config.get_discovery_backoff()
                delay = self._rng.uniform(low, high)
                self.log.warning(
                    "Account discovery failed, retrying in %.0f seconds: %s", delay, e
                )
            except ProviderReadError as e:
                completed = False
                delay = float(self.config.get_interval_seconds())
                self.log.error("Root zone unavailable: %s", e)

            if self.config.is_once():
                return 0 if completed else 1

            self._sleep(delay)

    def run_cycle(self) -> CycleReport:
        """Run one reconciliation pass over all accounts.

        Returns:
            CycleReport describing what was done

        Raises:
            DiscoveryError: When the account listing fails
            ConfigurationError: When the root zone cannot be resolved
            ProviderReadError: When the root zone listing or root role
                assumption fails transiently
        """
        report = CycleReport()
        root_client = self._root_client()

        accounts = self.account_source.discover(root_client)
        report.accounts_seen = len(accounts)

        root_zone = resolve_root_zone(
            root_client.get_client("route53"),
            self.config.get_root_domain(),
            log=self.log.getChild("zones"),
        )
        applier = ChangeApplier(
            root_client.get_client("route53"),
            dry_run=self.config.is_dry_run(),
            log=self.log.getChild("changes"),
        )

        for account in accounts:
            self._process_account(account, root_zone, applier, report)

        return report

    def _root_client(self) -> AWSClientManager:
        root_role = self.config.get_root_role()
        if not root_role:
            self.log.debug("No root role configured, using base credentials")
            return self.aws_client

        self.log.debug("Using root role %s", root_role)
        try:
            return self.aws_client.assume_role(
                root_role, session_name=self.config.get_session_name()
            )
        except CredentialError as e:
            raise ConfigurationError(f"Root role {root_role} is not assumable: {e}")

    def _regions(self) -> List[str]:
        return self.config.get_regions() or [self.aws_client.get_current_region()]

    def _process_account(
        self,
        account: Account,
        root_zone: RootZoneRef,
        applier: ChangeApplier,
        report: CycleReport,
    ) -> None:
        """Reconcile one account; every failure stays inside this account."""
        if self.config.is_discovery_mode() and not account.environment:
            self.log.debug("Account %s has no environment tag, skipping", account.id)
            report.accounts_skipped.append(account.id)
            return

        try:
            account_client = self.aws_client.assume_role(
                account.role_arn, session_name=self.config.get_session_name()
            )
        except CredentialError as e:
            self.log.debug("Role %s not assumable, skipping: %s", account.role_arn, e)
            report.accounts_skipped.append(account.id)
            return
        except ProviderReadError as e:
            self.log.warning("Failed to obtain credentials for account %s: %s", account.id, e)
            report.accounts_failed.append(account.id)
            return

        root_domain = self.config.get_root_domain()
        try:
            promoted, ns_changes = self.zone_synchronizer.sync(
                account_client, account, root_domain
            )
            validation_changes = self.validation_finder.find_validations(
                account_client, self._regions(), root_domain, promoted
            )
            changes = ns_changes + validation_changes
            report.changes_computed += len(changes)
            report.changes_applied += applier.apply(root_zone, changes)
        except ProviderReadError as e:
            self.log.warning("Failed to read resources of account %s: %s", account.id, e)
            report.accounts_failed.append(account.id)
        except ApplyError as e:
            self.log.error("Failed to apply changes for account %s: %s", account.id, e)
            report.accounts_failed.append(account.id)
        except Exception:
            self.log.exception("Unexpected failure processing account %s", account.id)
            report.accounts_failed.append(account.id)
