"""Utility functions for directory attribute handling."""

import datetime
from typing import Any, Dict, List, Optional

# FILETIME epoch is 1601-01-01
FILETIME_EPOCH = datetime.datetime(1601, 1, 1, tzinfo=datetime.timezone.utc)
FILETIME_NEVER = 0x7FFFFFFFFFFFFFFF


def filetime_to_datetime(filetime: int) -> Optional[datetime.datetime]:
    """
    Convert Windows FILETIME to an aware UTC datetime.
    
    Args:
        filetime: Windows FILETIME (100-nanosecond intervals since 1601-01-01)
    
    Returns:
        datetime object or None for the "never" sentinels
    
    Raises:
        ValueError: if the value is not an integer or out of range
    """
    filetime = int(filetime)
    if filetime == 0 or filetime == FILETIME_NEVER:
        return None
    if filetime < 0:
        raise ValueError(f"Negative FILETIME: {filetime}")
    
    try:
        return FILETIME_EPOCH + datetime.timedelta(microseconds=filetime // 10)
    except OverflowError as e:
        raise ValueError(f"FILETIME out of range: {filetime}") from e


def parse_user_account_control(uac: int) -> Dict[str, bool]:
    """
    Parse userAccountControl bitmask.
    
    Args:
        uac: userAccountControl integer value
    
    Returns:
        Dictionary of UAC flags and their boolean values
    """
    flags = {
        'SCRIPT': 0x0001,
        'ACCOUNTDISABLE': 0x0002,
        'HOMEDIR_REQUIRED': 0x0008,
        'LOCKOUT': 0x0010,
        'PASSWD_NOTREQD': 0x0020,
        'PASSWD_CANT_CHANGE': 0x0040,
        'NORMAL_ACCOUNT': 0x0200,
        'WORKSTATION_TRUST_ACCOUNT': 0x1000,
        'SERVER_TRUST_ACCOUNT': 0x2000,
        'DONT_EXPIRE_PASSWORD': 0x10000,
        'SMARTCARD_REQUIRED': 0x40000,
        'DONT_REQ_PREAUTH': 0x400000,
        'PASSWORD_EXPIRED': 0x800000,
    }
    
    uac = uac or 0
    return {name: bool(uac & value) for name, value in flags.items()}


def get_attr(attrs: Dict[str, List[Any]], name: str, as_int: bool = False,
             multi: bool = False) -> Any:
    """
    Extract an attribute value from a raw search result.
    
    Args:
        attrs: Raw entry, attribute name to list of values
        name: Attribute name
        as_int: Convert the first value to int (0 when not numeric)
        multi: Return every value as a list of strings
    
    Returns:
        Decoded value, list of values, or None/[] when absent
    """
    if name not in attrs or not attrs[name]:
        return [] if multi else None
    
    values = attrs[name]
    
    if multi:
        decoded_values = []
        for value in values:
            if isinstance(value, bytes):
                try:
                    decoded_values.append(value.decode('utf-8'))
                except UnicodeDecodeError:
                    decoded_values.append(value.hex())
            else:
                decoded_values.append(str(value))
        return decoded_values
    
    value = values[0]
    
    if isinstance(value, bytes):
        try:
            value = value.decode('utf-8')
        except UnicodeDecodeError:
            return value
    
    if as_int:
        try:
            return int(value)
        except (ValueError, TypeError):
            return 0
    
    return value


def escape_filter_chars(value: str) -> str:
    """
    Escape a value for use inside an LDAP search filter (RFC 4515).
    
    Args:
        value: Raw assertion value
    
    Returns:
        Escaped value
    """
    replacements = {
        '\\': r'\5c',
        '*': r'\2a',
        '(': r'\28',
        ')': r'\29',
        '\x00': r'\00',
    }
    return ''.join(replacements.get(char, char) for char in value)


def extract_domain_from_dn(dn: str) -> str:
    """
    Extract domain name from distinguished name.
    
    Args:
        dn: Distinguished name
    
    Returns:
        Domain in DNS format (e.g., example.com)
    """
    parts = [p.split('=', 1)[1] for p in dn.split(',') if p.strip().upper().startswith('DC=')]
    return '.'.join(part.strip() for part in parts)


def domain_to_base_dn(domain: str) -> str:
    """Build the default naming context from a DNS domain name."""
    return ','.join(f'DC={part}' for part in domain.split('.') if part)
