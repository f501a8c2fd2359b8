"""Domain-level enumeration module."""

import logging
from sonarad.ldap_connector import LDAPConnector
from sonarad.exceptions import DirectoryQueryError
from sonarad.utils import extract_domain_from_dn, get_attr
from sonarad import config


class DomainEnumerator:
    """Enumerate domain metadata and configuration objects."""
    
    def __init__(self, ldap_conn: LDAPConnector):
        """
        Initialize domain enumerator.
        
        Args:
            ldap_conn: Active LDAP connection
        """
        self.ldap = ldap_conn
        self.logger = logging.getLogger(__name__)
    
    def get_domain_name(self) -> str:
        """
        Look up the DNS name of the domain.
        
        Falls back to the name used to connect when the domain object
        cannot be read.
        
        Returns:
            Domain in DNS format
        """
        try:
            results = self.ldap.search(
                search_filter=config.LDAP_FILTERS['domain'],
                attributes=config.DOMAIN_ATTRIBUTES
            )
        except DirectoryQueryError as e:
            self.logger.warning(f"Domain lookup failed, using {self.ldap.domain}: {e}")
            return self.ldap.domain
        
        if results:
            dn = get_attr(results[0], 'distinguishedName')
            if dn:
                return extract_domain_from_dn(dn)
        
        return self.ldap.domain
    
    def count_ous(self) -> int:
        """Count organizational units."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['all_ous'],
            attributes=config.COUNT_ATTRIBUTES
        )
        self.logger.info(f"Found {len(results)} organizational units")
        return len(results)
    
    def count_gpos(self) -> int:
        """Count group policy containers under CN=Policies."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['gpos'],
            attributes=config.COUNT_ATTRIBUTES,
            search_base=config.SEARCH_BASES['gpos'].format(base_dn=self.ldap.base_dn)
        )
        self.logger.info(f"Found {len(results)} group policy objects")
        return len(results)
    
    def count_cert_templates(self) -> int:
        """Count certificate templates in the configuration partition."""
        results = self.ldap.search(
            search_filter=config.LDAP_FILTERS['cert_templates'],
            attributes=config.COUNT_ATTRIBUTES,
            search_base=config.SEARCH_BASES['cert_templates'].format(base_dn=self.ldap.base_dn)
        )
        self.logger.info(f"Found {len(results)} certificate templates")
        return len(results)
