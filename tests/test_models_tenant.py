import pytest

from kioskhub.models.tenant import Tenant, TenantPlan, TenantQuota, TenantStatus, get_default_quota


def test_enterprise_quota():
    assert get_default_quota(TenantPlan.ENTERPRISE) == TenantQuota(
        max_devices=10000,
        max_users=100,
        max_groups=500,
        retention_days=90,
        api_rate_limit=10000,
        storage_gb=500,
    )


def test_professional_quota_from_string():
    quota = get_default_quota("professional")
    assert quota.max_devices == 1000
    assert quota.max_users == 20
    assert quota.retention_days == 31
    assert quota.api_rate_limit == 5000


def test_starter_quota():
    quota = get_default_quota(TenantPlan.STARTER)
    assert quota.max_devices == 10
    assert quota.max_users == 3
    assert quota.retention_days == 7


def test_unknown_plan_gets_starter():
    assert get_default_quota("gold") == get_default_quota(TenantPlan.STARTER)


def test_quota_is_immutable():
    quota = get_default_quota(TenantPlan.STARTER)
    with pytest.raises(AttributeError):
        quota.max_devices = 99
    assert quota.max_devices == 10
    assert get_default_quota(TenantPlan.STARTER).max_devices == 10


def test_plan_and_status_from_value():
    assert TenantPlan("enterprise") is TenantPlan.ENTERPRISE
    assert TenantStatus("suspended") is TenantStatus.SUSPENDED
    with pytest.raises(ValueError):
        TenantStatus("archived")


def test_tenant_settings_are_independent():
    first = Tenant("t1", "One", "one")
    second = Tenant("t2", "Two", "two")
    first.settings["theme"] = "dark"
    assert second.settings == {}