"""Assemble one report run from the aggregator and classifiers."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from sonarad.classifiers import (
    PrivilegedAccountClassifier, StaleAccountClassifier, WeakPolicyClassifier
)
from sonarad.computer_enum import ComputerEnumerator
from sonarad.domain_enum import DomainEnumerator
from sonarad.exceptions import DirectoryQueryError
from sonarad.group_enum import GroupEnumerator
from sonarad.ldap_connector import LDAPConnector
from sonarad.metrics import MetricAggregator
from sonarad.models import DegradedWarning, DirectoryAccount, Report, ReportMetrics
from sonarad.user_enum import UserEnumerator
from sonarad import config


class ReportAssembler:
    """Query the directory and build an immutable Report."""
    
    def __init__(self, ldap_conn: LDAPConnector, stale_days: Optional[int] = None,
                 privileged_groups: Optional[List[str]] = None,
                 now: Optional[datetime] = None):
        """
        Initialize report assembler.
        
        Args:
            ldap_conn: Active LDAP connection
            stale_days: Staleness threshold in days
            privileged_groups: Administrative groups to resolve
            now: Reference time for the run
        """
        self.ldap = ldap_conn
        self.stale_days = config.STALE_SETTINGS['threshold_days'] if stale_days is None else stale_days
        self.privileged_groups = privileged_groups or config.PRIVILEGED_GROUPS
        self.now = now or datetime.now(timezone.utc)
        self.logger = logging.getLogger(__name__)
        
        self.users = UserEnumerator(ldap_conn)
        self.groups = GroupEnumerator(ldap_conn)
        self.computers = ComputerEnumerator(ldap_conn)
        self.domain = DomainEnumerator(ldap_conn)
    
    def assemble(self) -> Report:
        """
        Run every query and classifier.
        
        Returns:
            Report with metrics, detail lists and degraded warnings
        
        Raises:
            DirectoryQueryError: if a mandatory query fails
        """
        domain_name = self.domain.get_domain_name()
        self.logger.info(f"Building report for {domain_name}")
        
        counts = MetricAggregator(self.users, self.groups, self.computers, self.domain).aggregate()
        warnings = list(counts.warnings)
        
        self.logger.info("Classifying privileged accounts...")
        privileged = PrivilegedAccountClassifier(
            self.groups, self.users, self.privileged_groups
        ).classify()
        warnings.extend(privileged.warnings)
        
        self.logger.info("Classifying stale accounts...")
        enabled_accounts = self._safe_enumerate(
            'stale_accounts', self.users.enumerate_enabled_accounts, warnings
        )
        stale = StaleAccountClassifier(self.stale_days, now=self.now).classify(enabled_accounts)
        
        self.logger.info("Classifying weak-policy accounts...")
        candidates = self._safe_enumerate(
            'weak_policy_accounts', self.users.enumerate_weak_policy_candidates, warnings
        )
        weak = WeakPolicyClassifier().classify(candidates)
        
        metrics = ReportMetrics(
            domain_name=domain_name,
            generated_at=self.now,
            enabled_users=counts.enabled_users,
            disabled_users=counts.disabled_users,
            enabled_privileged_count=privileged.enabled_count,
            disabled_privileged_count=privileged.disabled_count,
            stale_count=stale.count,
            weak_policy_count=weak.count,
            stale_threshold_days=self.stale_days,
            **counts.optional,
        )
        
        if warnings:
            self.logger.warning(f"Report is partial: {len(warnings)} queries degraded")
        
        return Report(
            metrics=metrics,
            privileged_accounts=privileged.accounts,
            stale_accounts=stale.accounts,
            weak_policy_accounts=weak.accounts,
            warnings=tuple(warnings),
        )
    
    def _safe_enumerate(self, source: str, query: Callable[[], List[DirectoryAccount]],
                        warnings: List[DegradedWarning]) -> List[DirectoryAccount]:
        try:
            return query()
        except DirectoryQueryError as e:
            self.logger.warning(f"{source} enumeration failed, reporting none: {e}")
            warnings.append(DegradedWarning(source, str(e)))
            return []
