"""LDAP connection manager using impacket."""

import logging
from typing import Any, Dict, List, Optional
from impacket.ldap import ldap, ldapasn1
from sonarad import config
from sonarad.exceptions import DirectoryQueryError, DirectoryUnavailableError
from sonarad.utils import domain_to_base_dn


class LDAPConnector:
    """Manages LDAP connections to Active Directory."""
    
    def __init__(self, domain: str, username: str, password: str,
                 dc_ip: str, use_kerberos: bool = False, lmhash: str = '', nthash: str = '',
                 use_ssl: Optional[bool] = None):
        """
        Initialize LDAP connector.
        
        Args:
            domain: Target domain name
            username: Username for authentication
            password: Password for authentication
            dc_ip: Domain controller IP address
            use_kerberos: Use Kerberos authentication
            lmhash: LM hash for pass-the-hash
            nthash: NT hash for pass-the-hash
            use_ssl: Connect over LDAPS (defaults to config.LDAP_SETTINGS)
        """
        self.domain = domain
        self.username = username
        self.password = password
        self.dc_ip = dc_ip
        self.use_kerberos = use_kerberos
        self.lmhash = lmhash
        self.nthash = nthash
        self.use_ssl = config.LDAP_SETTINGS['use_ssl'] if use_ssl is None else use_ssl
        self.ldap_conn = None
        self.base_dn = domain_to_base_dn(domain)
        
        self.logger = logging.getLogger(__name__)
    
    def connect(self) -> bool:
        """
        Establish LDAP connection.
        
        Returns:
            True if successful, False otherwise
        """
        scheme = 'ldaps' if self.use_ssl else 'ldap'
        
        try:
            # Kerberos needs the DNS name for the SPN
            target = self.domain if self.use_kerberos else self.dc_ip
            self.ldap_conn = ldap.LDAPConnection(f'{scheme}://{target}', self.base_dn, self.dc_ip)
            
            if self.use_kerberos:
                self.ldap_conn.kerberosLogin(
                    self.username, self.password, self.domain,
                    self.lmhash, self.nthash, kdcHost=self.dc_ip
                )
            else:
                self.ldap_conn.login(
                    user=self.username,
                    password=self.password,
                    domain=self.domain,
                    lmhash=self.lmhash,
                    nthash=self.nthash
                )
            
            self.logger.info(f"Successfully connected to {self.dc_ip} ({scheme})")
            return True
        
        except Exception as e:
            self.logger.error(f"Failed to connect to LDAP: {e}")
            self.ldap_conn = None
            return False
    
    def search(self, search_filter: str, attributes: List[str],
               search_base: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Perform LDAP search with automatic paging.
        
        Args:
            search_filter: LDAP filter string
            attributes: List of attributes to retrieve
            search_base: Custom search base (uses domain base DN if None)
        
        Returns:
            List of result dictionaries, attribute name to list of raw bytes
        
        Raises:
            DirectoryUnavailableError: if no connection is established
            DirectoryQueryError: if the search fails
        """
        if not self.ldap_conn:
            raise DirectoryUnavailableError("LDAP connection not established")
        
        search_base = search_base or self.base_dn
        self.logger.debug(f"Searching {search_base} with {search_filter}")
        
        paged_control = ldapasn1.SimplePagedResultsControl(
            criticality=True,
            size=config.LDAP_SETTINGS['page_size']
        )
        
        try:
            # impacket follows the paging cookie internally
            resp = self.ldap_conn.search(
                searchBase=search_base,
                searchFilter=search_filter,
                attributes=attributes,
                searchControls=[paged_control]
            )
        except ldap.LDAPSearchError as e:
            raise DirectoryQueryError(f"LDAP search failed: {e}", search_filter) from e
        except Exception as e:
            raise DirectoryQueryError(f"LDAP search error: {e}", search_filter) from e
        
        results = []
        for item in resp:
            if not isinstance(item, ldapasn1.SearchResultEntry):
                continue
            entry = {}
            for attr in item['attributes']:
                attr_name = str(attr['type'])
                entry[attr_name] = [val.asOctets() for val in attr['vals']]
            if 'distinguishedName' not in entry:
                entry['distinguishedName'] = [str(item['objectName']).encode('utf-8')]
            results.append(entry)
        
        return results
    
    def close(self):
        """Close LDAP connection."""
        if self.ldap_conn:
            try:
                self.ldap_conn.close()
                self.logger.info("LDAP connection closed")
            except Exception as e:
                self.logger.error(f"Error closing connection: {e}")
            finally:
                self.ldap_conn = None
