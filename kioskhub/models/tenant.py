"""Tenants and the resource limits of their plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass
class Tenant:
    """An organisation owning devices."""

    id: str
    name: str
    slug: str
    plan: str = ""
    status: str = ""
    settings: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TenantPlan(str, Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


@dataclass(frozen=True)
class TenantQuota:
    """Resource limits of a tenant."""

    max_devices: int
    max_users: int
    max_groups: int
    retention_days: int
    api_rate_limit: int
    storage_gb: int


_QUOTAS = {
    TenantPlan.ENTERPRISE.value: TenantQuota(
        max_devices=10000,
        max_users=100,
        max_groups=500,
        retention_days=90,
        api_rate_limit=10000,
        storage_gb=500,
    ),
    TenantPlan.PROFESSIONAL.value: TenantQuota(
        max_devices=1000,
        max_users=20,
        max_groups=100,
        retention_days=31,
        api_rate_limit=5000,
        storage_gb=100,
    ),
}

_STARTER_QUOTA = TenantQuota(
    max_devices=10,
    max_users=3,
    max_groups=10,
    retention_days=7,
    api_rate_limit=1000,
    storage_gb=10,
)


def get_default_quota(plan: TenantPlan | str) -> TenantQuota:
    """Return the limits of ``plan``; unknown plans get the starter limits."""
    key = plan.value if isinstance(plan, TenantPlan) else plan
    return _QUOTAS.get(key, _STARTER_QUOTA)