"""Computer enumeration module."""

import logging
from sonarad.ldap_connector import LDAPConnector
from sonarad import config


class ComputerEnumerator:
    """Count computer accounts and domain controllers."""
    
    def __init__(self, ldap_conn: LDAPConnector):
        """
        Initialize computer enumerator.
        
        Args:
            ldap_conn: Active LDAP connection
        """
        self.ldap = ldap_conn
        self.logger = logging.getLogger(__name__)
    
    def count_computers(self) -> int:
        """Count all computer accounts."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['all_computers'],
            attributes=config.COUNT_ATTRIBUTES
        )
        self.logger.info(f"Found {len(results)} computers")
        return len(results)
    
    def count_domain_controllers(self) -> int:
        """Count computers flagged SERVER_TRUST_ACCOUNT."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['domain_controllers'],
            attributes=config.COUNT_ATTRIBUTES
        )
        self.logger.info(f"Found {len(results)} domain controllers")
        return len(results)
