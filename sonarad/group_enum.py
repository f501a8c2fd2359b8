"""Group enumeration module."""

import logging
from typing import Any, Dict, List
from sonarad.ldap_connector import LDAPConnector
from sonarad.exceptions import GroupNotFoundError
from sonarad.utils import escape_filter_chars, get_attr
from sonarad import config


class GroupEnumerator:
    """Enumerate groups and resolve their membership."""
    
    def __init__(self, ldap_conn: LDAPConnector):
        """
        Initialize group enumerator.
        
        Args:
            ldap_conn: Active LDAP connection
        """
        self.ldap = ldap_conn
        self.logger = logging.getLogger(__name__)
    
    def count_groups(self) -> int:
        """Count all groups in the domain."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['all_groups'],
            attributes=config.COUNT_ATTRIBUTES
        )
        self.logger.info(f"Found {len(results)} groups")
        return len(results)
    
    def get_group_dn(self, group_name: str) -> str:
        """
        Look up a group by name.
        
        Args:
            group_name: sAMAccountName of the group
        
        Returns:
            Distinguished name of the group
        
        Raises:
            GroupNotFoundError: if no such group is visible
        """
        search_filter = config.LDAP_FILTERS['group_by_name'].format(
            name=escape_filter_chars(group_name)
        )
        results = self.ldap.search(search_filter=search_filter, attributes=['distinguishedName'])
        if not results:
            raise GroupNotFoundError(group_name)
        return get_attr(results[0], 'distinguishedName')
    
    def get_nested_members(self, group_name: str) -> List[Dict[str, Any]]:
        """
        Resolve direct and nested members of a group.
        
        The directory expands the nesting server-side through the in-chain
        matching rule, so cycles are handled by the DC.
        
        Args:
            group_name: sAMAccountName of the group
        
        Returns:
            List of member dictionaries with account_id, dn and object_classes
        """
        self.logger.info(f"Resolving members of {group_name}...")
        
        group_dn = self.get_group_dn(group_name)
        search_filter = config.LDAP_FILTERS['nested_members'].format(
            group_dn=escape_filter_chars(group_dn)
        )
        results = self.ldap.search(search_filter=search_filter, attributes=config.MEMBER_ATTRIBUTES)
        
        members = []
        for result in results:
            members.append({
                'account_id': get_attr(result, 'sAMAccountName'),
                'dn': get_attr(result, 'distinguishedName'),
                'object_classes': [c.lower() for c in get_attr(result, 'objectClass', multi=True)],
            })
        
        self.logger.info(f"Found {len(members)} nested members in {group_name}")
        return members
