"""
Request and response models for the Entitlements Service API.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AwareDatetime, BaseModel, Field, NonNegativeInt, model_validator

from shared.contracts import (
    BillingInterval, EntitlementState, FeatureName, Limit, LimitName, Subscription, SubscriptionStatus,
)


class FeatureState(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN_FEATURE = "unknown_feature"
    NO_SUBSCRIPTION = "no_subscription"


class FeatureCheckResponse(BaseModel):
    tenant_id: str
    feature: str
    enabled: bool
    state: FeatureState
    plan_name: Optional[str] = None


class LimitCheckRequest(BaseModel):
    """Admission check for adding one more item against a limit."""
    limit: str = Field(..., description="Limit name, e.g. maxStudents")
    usage: NonNegativeInt = Field(..., description="Current usage counted by the caller")


class LimitUsage(BaseModel):
    limit: LimitName
    usage: int
    max_value: Limit
    percentage: float
    over_limit: bool
    approaching: bool


class AdmissionState(str, Enum):
    ALLOWED = "allowed"
    OVER_LIMIT = "over_limit"
    SUBSCRIPTION_INACTIVE = "subscription_inactive"
    NO_SUBSCRIPTION = "no_subscription"


class LimitCheckResponse(BaseModel):
    """Admission decision; without a subscription only the state is set."""
    tenant_id: str
    limit: LimitName
    usage: int
    allowed: bool
    state: AdmissionState
    plan_name: Optional[str] = None
    subscription_status: Optional[SubscriptionStatus] = None
    max_value: Optional[Limit] = None
    percentage: float = 0.0
    over_limit: bool = False
    approaching: bool = False


class UsageReportRequest(BaseModel):
    usage: Dict[str, NonNegativeInt] = Field(default_factory=dict)


class UsageReportResponse(BaseModel):
    tenant_id: str
    state: EntitlementState = EntitlementState.SUBSCRIBED
    plan_name: Optional[str] = None
    subscription_active: bool = False
    limits: List[LimitUsage] = Field(default_factory=list)


class TrialStartRequest(BaseModel):
    plan_name: Optional[str] = Field(None, description="Defaults to the configured trial plan")


class PlanChangeRequest(BaseModel):
    """Upgrade or downgrade to another plan."""
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    expected_plan_id: Optional[str] = Field(
        None, description="Plan the caller believes is current; stale values are rejected"
    )

    @model_validator(mode="after")
    def _target_given(self) -> "PlanChangeRequest":
        if not self.plan_id and not self.plan_name:
            raise ValueError("plan_id or plan_name is required")
        return self


class PlanChangeResponse(BaseModel):
    subscription: Subscription
    previous_plan_id: str
    changed: bool
    added_features: List[FeatureName] = Field(default_factory=list)


class BillingEvent(BaseModel):
    """Status transition delivered by the payment provider."""
    tenant_id: str
    status: SubscriptionStatus
    effective_at: AwareDatetime
    event_id: Optional[str] = None


class BillingEventResponse(BaseModel):
    tenant_id: str
    applied: bool


class PlanCreateRequest(BaseModel):
    name: str
    display_name: str
    description: Optional[str] = None
    price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = "XOF"
    interval: BillingInterval = BillingInterval.MONTHLY
    trial_days: int = Field(0, ge=0)
    limits: Dict[LimitName, Limit]
    features: Dict[FeatureName, bool] = Field(default_factory=dict)


class PlanUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = None
    interval: Optional[BillingInterval] = None
    trial_days: Optional[int] = Field(None, ge=0)
    limits: Optional[Dict[LimitName, Limit]] = None
    features: Optional[Dict[FeatureName, bool]] = None
    is_active: Optional[bool] = None
