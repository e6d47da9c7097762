"""
Plan catalog and subscription contracts.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, NonNegativeInt, field_validator, model_validator


UNLIMITED = "unlimited"

Limit = Union[Literal["unlimited"], NonNegativeInt]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LimitName(str, Enum):
    """Numeric plan limits."""
    MAX_STUDENTS = "maxStudents"
    MAX_TEACHERS = "maxTeachers"
    MAX_DOCUMENTS = "maxDocuments"
    MAX_STORAGE_MB = "maxStorageMB"
    MAX_EMAILS = "maxEmails"
    MAX_SMS = "maxSMS"
    MAX_CAMPUSES = "maxCampuses"


class FeatureName(str, Enum):
    """Boolean plan features."""
    MESSAGING = "messaging"
    REPORTS = "reports"
    ADVANCED_ANALYTICS = "advancedAnalytics"
    MULTIPLE_SCHOOLS = "multipleSchools"
    PAYMENTS = "payments"
    HOMEWORK = "homework"
    API = "api"
    SMS = "sms"


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def period(self) -> timedelta:
        return timedelta(days=365) if self is BillingInterval.YEARLY else timedelta(days=30)


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    UNPAID = "UNPAID"


class Plan(BaseModel):
    """Tenant-independent catalog entry."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, max_length=64)
    display_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = "XOF"
    interval: BillingInterval = BillingInterval.MONTHLY
    trial_days: int = Field(0, ge=0)
    limits: Dict[LimitName, Limit]
    features: Dict[FeatureName, bool] = Field(default_factory=dict)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _all_limits_present(self) -> "Plan":
        missing = [name.value for name in LimitName if name not in self.limits]
        if missing:
            raise ValueError(f"plan is missing limits: {', '.join(missing)}")
        return self

    def to_limits(self) -> "PlanLimits":
        return PlanLimits(
            plan_id=self.id,
            plan_name=self.name,
            display_name=self.display_name,
            limits=dict(self.limits),
            features=dict(self.features),
        )


class PlanLimits(BaseModel):
    """Resolved entitlement view of a plan: limits plus feature flags."""
    plan_id: str
    plan_name: str
    display_name: str
    limits: Dict[LimitName, Limit]
    features: Dict[FeatureName, bool]


class Subscription(BaseModel):
    """A tenant's subscription to one plan."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    plan_id: str
    status: SubscriptionStatus = SubscriptionStatus.TRIAL
    current_period_end: datetime
    trial_ends_at: Optional[datetime] = None
    # Time of the last billing event applied; guards webhook redelivery
    status_effective_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EntitlementState(str, Enum):
    SUBSCRIBED = "subscribed"
    NO_SUBSCRIPTION = "no_subscription"


class Entitlement(BaseModel):
    """What a tenant is entitled to right now, as served to collaborators."""
    tenant_id: str
    state: EntitlementState = EntitlementState.SUBSCRIBED
    plan: Optional[PlanLimits] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_active: bool = False
    current_period_end: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None

    @classmethod
    def no_subscription(cls, tenant_id: str) -> "Entitlement":
        return cls(tenant_id=tenant_id, state=EntitlementState.NO_SUBSCRIPTION)
