"""Immutable records produced by one report run."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DirectoryAccount:
    """Snapshot of a user account as read from the directory.
    
    ``last_auth_timestamp`` holds the raw directory value (a FILETIME integer
    or its string form) or an aware datetime. Interpreting it is left to the
    stale-account classifier.
    """
    
    account_id: str
    display_name: str
    enabled: bool
    last_auth_timestamp: Any = None
    password_not_required: bool = False


@dataclass(frozen=True)
class PrivilegedAccount:
    account_id: str
    display_name: str
    enabled: bool
    member_of_groups: Tuple[str, ...] = ()
    
    @property
    def groups_display(self) -> str:
        return ', '.join(self.member_of_groups)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_id': self.account_id,
            'display_name': self.display_name,
            'enabled': self.enabled,
            'groups': self.groups_display,
        }


@dataclass(frozen=True)
class StaleAccount:
    account_id: str
    display_name: str
    enabled: bool = True
    last_auth_timestamp: Optional[datetime] = None
    days_since_auth: Optional[int] = None
    
    @property
    def never_authenticated(self) -> bool:
        return self.last_auth_timestamp is None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_id': self.account_id,
            'display_name': self.display_name,
            'enabled': self.enabled,
            'last_auth': self.last_auth_timestamp.isoformat() if self.last_auth_timestamp else None,
            'days_since_auth': self.days_since_auth,
        }


@dataclass(frozen=True)
class WeakPolicyAccount:
    account_id: str
    display_name: str
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DegradedWarning:
    """A query or lookup that failed without aborting the run."""
    
    source: str
    reason: str
    
    def __str__(self) -> str:
        return f"{self.source}: {self.reason}"


@dataclass(frozen=True)
class Outcome:
    """Value of an optional query, with the reason it was defaulted if it failed."""
    
    value: Any
    warning: Optional[DegradedWarning] = None
    
    @property
    def ok(self) -> bool:
        return self.warning is None
    
    @classmethod
    def degraded(cls, default: Any, source: str, reason: str) -> 'Outcome':
        return cls(default, DegradedWarning(source, reason))


@dataclass(frozen=True)
class ReportMetrics:
    domain_name: str
    generated_at: datetime
    enabled_users: int
    disabled_users: int
    total_groups: int = 0
    total_computers: int = 0
    total_ous: int = 0
    domain_controllers: int = 0
    gpo_count: int = 0
    cert_template_count: int = 0
    enabled_privileged_count: int = 0
    disabled_privileged_count: int = 0
    stale_count: int = 0
    weak_policy_count: int = 0
    stale_threshold_days: int = 180
    
    @property
    def total_users(self) -> int:
        return self.enabled_users + self.disabled_users
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['generated_at'] = self.generated_at.isoformat()
        data['total_users'] = self.total_users
        return data


@dataclass(frozen=True)
class Report:
    """Aggregate root handed to the renderer."""
    
    metrics: ReportMetrics
    privileged_accounts: Tuple[PrivilegedAccount, ...] = ()
    stale_accounts: Tuple[StaleAccount, ...] = ()
    weak_policy_accounts: Tuple[WeakPolicyAccount, ...] = ()
    warnings: Tuple[DegradedWarning, ...] = field(default_factory=tuple)
    
    @property
    def is_partial(self) -> bool:
        return bool(self.warnings)
