"""User account enumeration module."""

import logging
from typing import Any, Dict, List, Optional
from sonarad.ldap_connector import LDAPConnector
from sonarad.models import DirectoryAccount
from sonarad.utils import escape_filter_chars, get_attr, parse_user_account_control
from sonarad import config


class UserEnumerator:
    """Enumerate user accounts."""
    
    def __init__(self, ldap_conn: LDAPConnector, last_auth_attribute: str = None):
        """
        Initialize user enumerator.
        
        Args:
            ldap_conn: Active LDAP connection
            last_auth_attribute: Attribute read as last authentication time
        """
        self.ldap = ldap_conn
        self.last_auth_attribute = last_auth_attribute or config.LAST_AUTH_ATTRIBUTE
        self.logger = logging.getLogger(__name__)
    
    @property
    def attributes(self) -> List[str]:
        attributes = [a for a in config.USER_ATTRIBUTES if a != config.LAST_AUTH_ATTRIBUTE]
        return attributes + [self.last_auth_attribute]
    
    def count_users(self, enabled: bool) -> int:
        """
        Count enabled or disabled user accounts.
        
        Args:
            enabled: Count enabled accounts when True, disabled otherwise
        
        Returns:
            Number of matching accounts
        """
        key = 'enabled_users' if enabled else 'disabled_users'
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS[key],
            attributes=config.COUNT_ATTRIBUTES
        )
        self.logger.info(f"Found {len(results)} {'enabled' if enabled else 'disabled'} users")
        return len(results)
    
    def enumerate_enabled_accounts(self) -> List[DirectoryAccount]:
        """
        Enumerate every enabled user account with its last authentication value.
        
        Returns:
            List of parsed accounts
        """
        self.logger.info("Enumerating enabled users...")
        
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['enabled_users'],
            attributes=self.attributes
        )
        accounts = [self._parse_account(result) for result in results]
        
        self.logger.info(f"Scanned {len(accounts)} enabled users")
        return accounts
    
    def enumerate_weak_policy_candidates(self) -> List[DirectoryAccount]:
        """
        Enumerate enabled accounts with PASSWD_NOTREQD set.
        
        Returns:
            List of parsed accounts
        """
        self.logger.info("Enumerating accounts with password not required...")
        
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['weak_policy_users'],
            attributes=self.attributes
        )
        return [self._parse_account(result) for result in results]
    
    def get_account(self, account_id: str) -> Optional[DirectoryAccount]:
        """
        Fetch current attributes of one account.
        
        Args:
            account_id: sAMAccountName
        
        Returns:
            Parsed account, or None if it no longer exists
        """
        search_filter = config.LDAP_FILTERS['account_by_name'].format(
            account_id=escape_filter_chars(account_id)
        )
        results = self.ldap.search(search_filter=search_filter, attributes=self.attributes)
        if not results:
            return None
        return self._parse_account(results[0])
    
    def _parse_account(self, attrs: Dict[str, Any]) -> DirectoryAccount:
        """
        Parse raw user attributes into a DirectoryAccount.
        
        Args:
            attrs: Raw LDAP attributes
        
        Returns:
            Parsed account
        """
        account_id = get_attr(attrs, 'sAMAccountName') or get_attr(attrs, 'distinguishedName')
        display_name = get_attr(attrs, 'displayName') or get_attr(attrs, 'name') or account_id
        
        uac_flags = parse_user_account_control(get_attr(attrs, 'userAccountControl', as_int=True))
        
        return DirectoryAccount(
            account_id=account_id,
            display_name=display_name,
            enabled=not uac_flags['ACCOUNTDISABLE'],
            last_auth_timestamp=get_attr(attrs, self.last_auth_attribute),
            password_not_required=uac_flags['PASSWD_NOTREQD'],
        )
