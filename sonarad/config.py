"""Configuration settings for SonarAD."""

from datetime import datetime, timezone

# userAccountControl bits used in filters
UAC_ACCOUNTDISABLE = 0x0002
UAC_PASSWD_NOTREQD = 0x0020
UAC_SERVER_TRUST_ACCOUNT = 0x2000

# LDAP matching rules
MATCHING_RULE_BIT_AND = '1.2.840.113556.1.4.803'
MATCHING_RULE_IN_CHAIN = '1.2.840.113556.1.4.1941'

# LDAP Search Filters
LDAP_FILTERS = {
    'enabled_users': '(&(objectCategory=person)(objectClass=user)'
                     f'(!(userAccountControl:{MATCHING_RULE_BIT_AND}:={UAC_ACCOUNTDISABLE})))',
    'disabled_users': '(&(objectCategory=person)(objectClass=user)'
                      f'(userAccountControl:{MATCHING_RULE_BIT_AND}:={UAC_ACCOUNTDISABLE}))',
    'weak_policy_users': '(&(objectCategory=person)(objectClass=user)'
                         f'(!(userAccountControl:{MATCHING_RULE_BIT_AND}:={UAC_ACCOUNTDISABLE}))'
                         f'(userAccountControl:{MATCHING_RULE_BIT_AND}:={UAC_PASSWD_NOTREQD}))',
    'all_groups': '(objectClass=group)',
    'all_computers': '(objectClass=computer)',
    'all_ous': '(objectClass=organizationalUnit)',
    'domain_controllers': '(&(objectCategory=computer)'
                          f'(userAccountControl:{MATCHING_RULE_BIT_AND}:={UAC_SERVER_TRUST_ACCOUNT}))',
    'gpos': '(objectClass=groupPolicyContainer)',
    'cert_templates': '(objectClass=pKICertificateTemplate)',
    'domain': '(objectClass=domain)',
    # Templates, values are escaped before formatting
    'group_by_name': '(&(objectClass=group)(sAMAccountName={name}))',
    'nested_members': f'(memberOf:{MATCHING_RULE_IN_CHAIN}:={{group_dn}})',
    'account_by_name': '(&(objectCategory=person)(objectClass=user)(sAMAccountName={account_id}))',
}

# Containers searched outside the domain naming context default
SEARCH_BASES = {
    'gpos': 'CN=Policies,CN=System,{base_dn}',
    'cert_templates': 'CN=Certificate Templates,CN=Public Key Services,CN=Services,CN=Configuration,{base_dn}',
}

# Attribute used for "last successful authentication".
# lastLogonTimestamp is replicated to every DC but may lag up to ~14 days;
# lastLogon is exact but only per DC.
LAST_AUTH_ATTRIBUTE = 'lastLogonTimestamp'

# User Attributes
USER_ATTRIBUTES = [
    'sAMAccountName', 'displayName', 'name', 'distinguishedName',
    'userAccountControl', LAST_AUTH_ATTRIBUTE,
]

# Attributes needed to count objects
COUNT_ATTRIBUTES = ['distinguishedName']

# Attributes returned for recursive group members
MEMBER_ATTRIBUTES = ['sAMAccountName', 'distinguishedName', 'objectClass']

# Domain Attributes
DOMAIN_ATTRIBUTES = ['distinguishedName', 'name']

# Tier-0 groups whose recursive membership is reported
PRIVILEGED_GROUPS = [
    'Domain Admins',
    'Enterprise Admins',
    'Schema Admins',
]

# Stale account detection
STALE_SETTINGS = {
    'threshold_days': 180,
    'epoch_floor': datetime(2000, 1, 1, tzinfo=timezone.utc),
}

# Report Settings
REPORT_SETTINGS = {
    'default_output': 'ADMetricsReport.html',
    'template': 'report_template.html',
    'title': 'AD Metrics Report',
    'csv_timestamp_format': '%Y-%m-%d-%H%M%S',
}

# LDAP Connection Settings
LDAP_SETTINGS = {
    'page_size': 1000,       # LDAP paging size
    'use_ssl': False,        # Use LDAPS by default
}

# Host shell settings
SHELL_SETTINGS = {
    'generation_timeout': 300,   # seconds before a generation child is killed
    'domain_timeout': 60,        # seconds for the domain lookup child
    'host': '127.0.0.1',
    'port': 5050,
}

# Environment overrides for CLI defaults
PASSWORD_ENV_VAR = 'SONARAD_PASSWORD'
STALE_DAYS_ENV_VAR = 'SONARAD_STALE_DAYS'
