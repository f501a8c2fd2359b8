"""Shared pytest fixtures for the SonarAD test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from sonarad import config
from sonarad.models import DirectoryAccount
from sonarad.utils import FILETIME_EPOCH, domain_to_base_dn

NOW = datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def datetime_to_filetime(value: datetime) -> int:
    """Convert an aware datetime to a Windows FILETIME integer."""
    delta = value - FILETIME_EPOCH
    return (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


# ---------------------------------------------------------------------------
# Fake directory
# ---------------------------------------------------------------------------


class FakeLDAP:
    """Stands in for LDAPConnector, answering searches from a filter table."""

    def __init__(self, domain: str = "corp.example.com") -> None:
        self.domain = domain
        self.base_dn = domain_to_base_dn(domain)
        self.responses: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.closed = False

    def set(self, search_filter: str, result: Any) -> None:
        self.responses[search_filter] = result

    def search(self, search_filter: str, attributes: List[str], search_base: Optional[str] = None):
        self.calls.append((search_filter, search_base))
        result = self.responses.get(search_filter, [])
        if isinstance(result, Exception):
            raise result
        return [dict(entry) for entry in result]

    def close(self) -> None:
        self.closed = True


def user_entry(
    sam: str,
    display_name: Optional[str] = None,
    uac: int = 512,
    last_logon: Optional[datetime] = None,
    raw_last_logon: Optional[bytes] = None,
) -> Dict[str, List[bytes]]:
    entry = {
        "sAMAccountName": [sam.encode()],
        "distinguishedName": [f"CN={sam},CN=Users,DC=corp,DC=example,DC=com".encode()],
        "userAccountControl": [str(uac).encode()],
        "objectClass": [b"top", b"person", b"organizationalPerson", b"user"],
    }
    if display_name is not None:
        entry["displayName"] = [display_name.encode()]
    if last_logon is not None:
        entry[config.LAST_AUTH_ATTRIBUTE] = [str(datetime_to_filetime(last_logon)).encode()]
    if raw_last_logon is not None:
        entry[config.LAST_AUTH_ATTRIBUTE] = [raw_last_logon]
    return entry


def computer_entry(name: str) -> Dict[str, List[bytes]]:
    return {
        "sAMAccountName": [f"{name}$".encode()],
        "distinguishedName": [f"CN={name},CN=Computers,DC=corp,DC=example,DC=com".encode()],
        "objectClass": [b"top", b"person", b"organizationalPerson", b"user", b"computer"],
    }


def count_entries(n: int) -> List[Dict[str, List[bytes]]]:
    return [{"distinguishedName": [f"CN=obj{i},DC=corp,DC=example,DC=com".encode()]} for i in range(n)]


def group_dn(name: str) -> str:
    return f"CN={name},CN=Users,DC=corp,DC=example,DC=com"


def add_group(fake: FakeLDAP, name: str, members: List[Dict[str, List[bytes]]]) -> None:
    fake.set(
        config.LDAP_FILTERS["group_by_name"].format(name=name),
        [{"distinguishedName": [group_dn(name).encode()]}],
    )
    fake.set(config.LDAP_FILTERS["nested_members"].format(group_dn=group_dn(name)), members)


def add_account(fake: FakeLDAP, entry: Dict[str, List[bytes]]) -> None:
    sam = entry["sAMAccountName"][0].decode()
    fake.set(config.LDAP_FILTERS["account_by_name"].format(account_id=sam), [entry])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def fake_ldap() -> FakeLDAP:
    return FakeLDAP()


@pytest.fixture
def populated_ldap(fake_ldap: FakeLDAP) -> FakeLDAP:
    """A small directory with every query answered."""
    alice = user_entry("alice", "Alice Admin", last_logon=NOW - timedelta(days=3))
    bob = user_entry("bob", "Bob Old", last_logon=NOW - timedelta(days=200))
    carol = user_entry("carol", "Carol Never")
    dave = user_entry("dave", "Dave Disabled", uac=512 | config.UAC_ACCOUNTDISABLE)
    erin = user_entry("erin", 'Erin "Weak", Jr.', uac=512 | config.UAC_PASSWD_NOTREQD,
                      last_logon=NOW - timedelta(days=1))

    fake_ldap.set(config.LDAP_FILTERS["domain"], [{"distinguishedName": [b"DC=corp,DC=example,DC=com"]}])
    fake_ldap.set(config.LDAP_FILTERS["enabled_users"], [alice, bob, carol, erin])
    fake_ldap.set(config.LDAP_FILTERS["disabled_users"], [dave])
    fake_ldap.set(config.LDAP_FILTERS["weak_policy_users"], [erin])
    fake_ldap.set(config.LDAP_FILTERS["all_groups"], count_entries(42))
    fake_ldap.set(config.LDAP_FILTERS["all_computers"], count_entries(17))
    fake_ldap.set(config.LDAP_FILTERS["all_ous"], count_entries(9))
    fake_ldap.set(config.LDAP_FILTERS["domain_controllers"], count_entries(2))
    fake_ldap.set(config.LDAP_FILTERS["gpos"], count_entries(5))
    fake_ldap.set(config.LDAP_FILTERS["cert_templates"], count_entries(33))

    add_group(fake_ldap, "Domain Admins", [alice, dave, computer_entry("DC01")])
    add_group(fake_ldap, "Enterprise Admins", [alice])
    add_group(fake_ldap, "Schema Admins", [alice])
    for entry in (alice, bob, carol, dave, erin):
        add_account(fake_ldap, entry)

    return fake_ldap


@pytest.fixture
def make_account() -> Callable[..., DirectoryAccount]:
    def _make(
        account_id: str = "user1",
        display_name: Optional[str] = None,
        enabled: bool = True,
        last_auth: Any = None,
        password_not_required: bool = False,
    ) -> DirectoryAccount:
        return DirectoryAccount(
            account_id=account_id,
            display_name=display_name or account_id.title(),
            enabled=enabled,
            last_auth_timestamp=last_auth,
            password_not_required=password_not_required,
        )

    return _make
