"""Tests for MetricAggregator and ReportAssembler."""

from __future__ import annotations

import pytest

from sonarad import config
from sonarad.assembler import ReportAssembler
from sonarad.computer_enum import ComputerEnumerator
from sonarad.domain_enum import DomainEnumerator
from sonarad.exceptions import DirectoryQueryError
from sonarad.group_enum import GroupEnumerator
from sonarad.metrics import MetricAggregator
from sonarad.user_enum import UserEnumerator


def aggregator(ldap) -> MetricAggregator:
    return MetricAggregator(UserEnumerator(ldap), GroupEnumerator(ldap),
                            ComputerEnumerator(ldap), DomainEnumerator(ldap))


def test_aggregate_counts(populated_ldap) -> None:
    counts = aggregator(populated_ldap).aggregate()

    assert counts.enabled_users == 4
    assert counts.disabled_users == 1
    assert counts.optional == {
        "total_groups": 42,
        "total_computers": 17,
        "total_ous": 9,
        "domain_controllers": 2,
        "gpo_count": 5,
        "cert_template_count": 33,
    }
    assert counts.warnings == ()


def test_optional_metric_failure_defaults_to_zero(populated_ldap) -> None:
    populated_ldap.set(config.LDAP_FILTERS["cert_templates"], DirectoryQueryError("noSuchObject"))
    counts = aggregator(populated_ldap).aggregate()

    assert counts.optional["cert_template_count"] == 0
    assert counts.optional["gpo_count"] == 5
    assert [w.source for w in counts.warnings] == ["cert_template_count"]


def test_mandatory_metric_failure_propagates(populated_ldap) -> None:
    populated_ldap.set(config.LDAP_FILTERS["disabled_users"], DirectoryQueryError("busy"))
    with pytest.raises(DirectoryQueryError):
        aggregator(populated_ldap).aggregate()


def test_assemble_full_report(populated_ldap, now) -> None:
    report = ReportAssembler(populated_ldap, stale_days=180, now=now).assemble()
    metrics = report.metrics

    assert metrics.domain_name == "corp.example.com"
    assert metrics.generated_at == now
    assert metrics.enabled_users == 4
    assert metrics.total_groups == 42

    privileged = {a.account_id: a for a in report.privileged_accounts}
    assert set(privileged) == {"alice", "dave"}
    assert privileged["alice"].member_of_groups == ("Domain Admins", "Enterprise Admins", "Schema Admins")
    assert metrics.enabled_privileged_count == 1
    assert metrics.disabled_privileged_count == 1

    stale = {a.account_id: a for a in report.stale_accounts}
    assert set(stale) == {"bob", "carol"}
    assert stale["bob"].days_since_auth == 200
    assert stale["carol"].never_authenticated
    assert metrics.stale_count == 2

    assert [a.account_id for a in report.weak_policy_accounts] == ["erin"]
    assert metrics.weak_policy_count == 1
    assert report.warnings == ()
    assert not report.is_partial


def test_degraded_queries_still_produce_report(populated_ldap, now) -> None:
    populated_ldap.set(config.LDAP_FILTERS["gpos"], DirectoryQueryError("denied"))
    populated_ldap.set(
        config.LDAP_FILTERS["group_by_name"].format(name="Domain Admins"), DirectoryQueryError("denied")
    )
    populated_ldap.set(config.LDAP_FILTERS["weak_policy_users"], DirectoryQueryError("timeout"))

    report = ReportAssembler(populated_ldap, now=now).assemble()

    sources = {w.source for w in report.warnings}
    assert sources == {"gpo_count", "group:Domain Admins", "weak_policy_accounts"}
    assert report.metrics.gpo_count == 0
    assert report.weak_policy_accounts == ()
    assert {a.account_id for a in report.privileged_accounts} == {"alice"}
    assert report.is_partial


def test_mandatory_failure_aborts_assembly(populated_ldap, now) -> None:
    populated_ldap.set(config.LDAP_FILTERS["enabled_users"], DirectoryQueryError("unavailable"))
    with pytest.raises(DirectoryQueryError):
        ReportAssembler(populated_ldap, now=now).assemble()


def test_default_threshold(populated_ldap, now) -> None:
    report = ReportAssembler(populated_ldap, now=now).assemble()
    assert report.metrics.stale_threshold_days == config.STALE_SETTINGS["threshold_days"]
