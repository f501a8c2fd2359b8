"""Tests for LDAPConnector with the impacket connection replaced."""

from __future__ import annotations

import pytest

from sonarad import ldap_connector
from sonarad.exceptions import DirectoryQueryError, DirectoryUnavailableError
from sonarad.ldap_connector import LDAPConnector


class FakeConnection:
    def __init__(self, url, base_dn, dst_ip, fail_login=False, fail_search=False):
        self.url = url
        self.base_dn = base_dn
        self.logins = []
        self.closed = False
        self.fail_login = fail_login
        self.fail_search = fail_search

    def login(self, **kwargs):
        if self.fail_login:
            raise OSError("invalidCredentials")
        self.logins.append(("password", kwargs))

    def kerberosLogin(self, *args, **kwargs):
        self.logins.append(("kerberos", args))

    def search(self, **kwargs):
        if self.fail_search:
            raise ldap_connector.ldap.LDAPSearchError(errorString="operationsError")
        return []

    def close(self):
        self.closed = True


def patch_connection(monkeypatch, **behaviour):
    created = []

    def factory(url, base_dn, dst_ip):
        conn = FakeConnection(url, base_dn, dst_ip, **behaviour)
        created.append(conn)
        return conn

    monkeypatch.setattr(ldap_connector.ldap, "LDAPConnection", factory)
    return created


def connector(**kwargs) -> LDAPConnector:
    return LDAPConnector("corp.example.com", "auditor", "secret", "10.0.0.1", **kwargs)


def test_base_dn_from_domain() -> None:
    assert connector().base_dn == "DC=corp,DC=example,DC=com"


def test_search_without_connection_raises() -> None:
    with pytest.raises(DirectoryUnavailableError):
        connector().search("(objectClass=*)", ["cn"])


def test_password_login(monkeypatch) -> None:
    created = patch_connection(monkeypatch)
    conn = connector()

    assert conn.connect() is True
    assert created[0].url == "ldap://10.0.0.1"
    assert created[0].logins[0][0] == "password"
    assert conn.search("(objectClass=*)", ["cn"]) == []

    conn.close()
    assert created[0].closed
    assert conn.ldap_conn is None


def test_ldaps_and_kerberos(monkeypatch) -> None:
    created = patch_connection(monkeypatch)
    assert connector(use_ssl=True, use_kerberos=True).connect() is True
    assert created[0].url == "ldaps://corp.example.com"
    assert created[0].logins[0][0] == "kerberos"


def test_failed_login_returns_false(monkeypatch) -> None:
    patch_connection(monkeypatch, fail_login=True)
    conn = connector()
    assert conn.connect() is False
    with pytest.raises(DirectoryUnavailableError):
        conn.search("(objectClass=*)", ["cn"])


def test_search_failure_raises_query_error(monkeypatch) -> None:
    patch_connection(monkeypatch, fail_search=True)
    conn = connector()
    conn.connect()
    with pytest.raises(DirectoryQueryError) as exc:
        conn.search("(objectClass=user)", ["cn"])
    assert exc.value.search_filter == "(objectClass=user)"
