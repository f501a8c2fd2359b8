"""Scalar metric aggregation."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple
from sonarad.computer_enum import ComputerEnumerator
from sonarad.domain_enum import DomainEnumerator
from sonarad.exceptions import DirectoryQueryError
from sonarad.group_enum import GroupEnumerator
from sonarad.models import DegradedWarning, Outcome
from sonarad.user_enum import UserEnumerator


@dataclass(frozen=True)
class MetricCounts:
    enabled_users: int
    disabled_users: int
    optional: Dict[str, int] = field(default_factory=dict)
    warnings: Tuple[DegradedWarning, ...] = ()


class MetricAggregator:
    """Count raw query results into scalar metrics."""
    
    def __init__(self, users: UserEnumerator, groups: GroupEnumerator,
                 computers: ComputerEnumerator, domain: DomainEnumerator):
        self.users = users
        self.groups = groups
        self.computers = computers
        self.domain = domain
        self.logger = logging.getLogger(__name__)
    
    def aggregate(self) -> MetricCounts:
        """
        Run every count query.
        
        Enabled and disabled user counts are mandatory and their failure
        propagates. Every other count falls back to 0 with a warning.
        
        Returns:
            Mandatory counts, optional counts and warnings
        
        Raises:
            DirectoryQueryError: if a mandatory count fails
        """
        self.logger.info("Counting users...")
        enabled_users = self.users.count_users(enabled=True)
        disabled_users = self.users.count_users(enabled=False)
        
        optional_queries: Dict[str, Callable[[], int]] = {
            'total_groups': self.groups.count_groups,
            'total_computers': self.computers.count_computers,
            'total_ous': self.domain.count_ous,
            'domain_controllers': self.computers.count_domain_controllers,
            'gpo_count': self.domain.count_gpos,
            'cert_template_count': self.domain.count_cert_templates,
        }
        
        counts = {}
        warnings = []
        for name, query in optional_queries.items():
            outcome = self.safe_count(name, query)
            counts[name] = outcome.value
            if not outcome.ok:
                warnings.append(outcome.warning)
        
        return MetricCounts(
            enabled_users=enabled_users,
            disabled_users=disabled_users,
            optional=counts,
            warnings=tuple(warnings),
        )
    
    def safe_count(self, name: str, query: Callable[[], int]) -> Outcome:
        """Run one optional count, defaulting to 0 on failure."""
        try:
            return Outcome(query())
        except DirectoryQueryError as e:
            self.logger.warning(f"Metric {name} unavailable, defaulting to 0: {e}")
            return Outcome.degraded(0, name, str(e))
