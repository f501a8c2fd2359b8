"""Account classification: privileged, stale and weak-policy accounts."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sonarad.exceptions import DirectoryQueryError, GroupNotFoundError
from sonarad.models import (
    DegradedWarning, DirectoryAccount, PrivilegedAccount, StaleAccount, WeakPolicyAccount
)
from sonarad.utils import filetime_to_datetime
from sonarad import config

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class PrivilegedResult:
    enabled_count: int
    disabled_count: int
    accounts: Tuple[PrivilegedAccount, ...]
    warnings: Tuple[DegradedWarning, ...] = ()


@dataclass(frozen=True)
class StaleResult:
    count: int
    accounts: Tuple[StaleAccount, ...]


@dataclass(frozen=True)
class WeakPolicyResult:
    count: int
    accounts: Tuple[WeakPolicyAccount, ...]


class PrivilegedAccountClassifier:
    """Resolve recursive membership of administrative groups into unique accounts."""
    
    def __init__(self, group_source, account_source, group_names: Optional[List[str]] = None):
        """
        Initialize privileged account classifier.
        
        Args:
            group_source: Object providing get_nested_members(group_name)
            account_source: Object providing get_account(account_id)
            group_names: Groups to resolve (defaults to config.PRIVILEGED_GROUPS)
        """
        self.group_source = group_source
        self.account_source = account_source
        self.group_names = list(group_names or config.PRIVILEGED_GROUPS)
        self.logger = logging.getLogger(__name__)
    
    def classify(self) -> PrivilegedResult:
        """
        Build the deduplicated privileged account list.
        
        Returns:
            Enabled/disabled counts, detail list and lookup warnings
        """
        warnings = []
        membership: Dict[str, List[str]] = {}
        
        for group_name in self.group_names:
            try:
                members = self.group_source.get_nested_members(group_name)
            except (GroupNotFoundError, DirectoryQueryError) as e:
                self.logger.warning(f"Could not resolve {group_name}: {e}")
                warnings.append(DegradedWarning(f"group:{group_name}", str(e)))
                continue
            
            for member in members:
                if not self._is_user(member):
                    continue
                groups = membership.setdefault(member['account_id'], [])
                if group_name not in groups:
                    groups.append(group_name)
        
        accounts = []
        for account_id, groups in membership.items():
            try:
                account = self.account_source.get_account(account_id)
            except DirectoryQueryError as e:
                self.logger.warning(f"Could not read account {account_id}: {e}")
                warnings.append(DegradedWarning(f"account:{account_id}", str(e)))
                continue
            
            if account is None:
                # Removed between the membership query and now
                self.logger.debug(f"Account {account_id} no longer exists, skipping")
                continue
            
            accounts.append(PrivilegedAccount(
                account_id=account.account_id,
                display_name=account.display_name,
                enabled=account.enabled,
                member_of_groups=tuple(groups),
            ))
        
        enabled_count = sum(1 for a in accounts if a.enabled)
        self.logger.info(f"Found {len(accounts)} privileged accounts ({enabled_count} enabled)")
        
        return PrivilegedResult(
            enabled_count=enabled_count,
            disabled_count=len(accounts) - enabled_count,
            accounts=tuple(accounts),
            warnings=tuple(warnings),
        )
    
    @staticmethod
    def _is_user(member: Dict[str, Any]) -> bool:
        classes = member.get('object_classes') or []
        return bool(member.get('account_id')) and 'user' in classes and 'computer' not in classes


class StaleAccountClassifier:
    """Flag enabled accounts with no authentication inside the threshold."""
    
    def __init__(self, threshold_days: Optional[int] = None, now: Optional[datetime] = None,
                 epoch_floor: Optional[datetime] = None):
        """
        Initialize stale account classifier.
        
        Args:
            threshold_days: Days without authentication before an account is stale
            now: Reference time (defaults to the current UTC time)
            epoch_floor: Timestamps before this are treated as never set
        """
        if threshold_days is None:
            threshold_days = config.STALE_SETTINGS['threshold_days']
        if threshold_days < 0:
            raise ValueError("threshold_days must not be negative")
        
        self.threshold_days = threshold_days
        self.now = now or datetime.now(timezone.utc)
        self.epoch_floor = epoch_floor or config.STALE_SETTINGS['epoch_floor']
        self.cutoff = self.now - timedelta(days=threshold_days)
        self.logger = logging.getLogger(__name__)
    
    def classify(self, accounts: Iterable[DirectoryAccount]) -> StaleResult:
        """
        Classify accounts by last authentication time.
        
        Args:
            accounts: Accounts to scan; disabled ones are ignored
        
        Returns:
            Stale count and detail list (unsorted)
        """
        stale = []
        seen = set()
        
        for account in accounts:
            if not account.enabled or account.account_id in seen:
                continue
            seen.add(account.account_id)
            
            last_auth = self._to_datetime(account)
            if last_auth is None:
                stale.append(StaleAccount(account.account_id, account.display_name, True))
            elif last_auth < self.cutoff:
                days = round((self.now - last_auth).total_seconds() / SECONDS_PER_DAY)
                stale.append(StaleAccount(
                    account.account_id, account.display_name, True, last_auth, days
                ))
        
        self.logger.info(
            f"Found {len(stale)} stale accounts (threshold {self.threshold_days} days)"
        )
        return StaleResult(count=len(stale), accounts=tuple(stale))
    
    def _to_datetime(self, account: DirectoryAccount) -> Optional[datetime]:
        """Return a plausible aware timestamp, or None for never/invalid values."""
        raw = account.last_auth_timestamp
        if raw is None or raw == '':
            return None
        
        if isinstance(raw, datetime):
            value = raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
        else:
            try:
                value = filetime_to_datetime(raw)
            except (ValueError, TypeError) as e:
                self.logger.debug(f"Unreadable last authentication for {account.account_id}: {e}")
                return None
        
        if value is None or value < self.epoch_floor:
            return None
        return value


class WeakPolicyClassifier:
    """Flag enabled accounts exempt from the password requirement."""
    
    def __init__(self):
        self.logger = logging.getLogger(__name__)
    
    def classify(self, accounts: Iterable[DirectoryAccount]) -> WeakPolicyResult:
        seen = set()
        weak = []
        for account in accounts:
            if account.enabled and account.password_not_required and account.account_id not in seen:
                seen.add(account.account_id)
                weak.append(WeakPolicyAccount(account.account_id, account.display_name))
        
        self.logger.info(f"Found {len(weak)} accounts with password not required")
        return WeakPolicyResult(count=len(weak), accounts=tuple(weak))
