"""
Soft UI gates.

The gates only decide what the UI renders. Each service re-checks every
mutation, so a stale or tampered gate never grants anything.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from shared import gating
from shared.contracts import (
    EffectivePermissions, Entitlement, EntitlementState, FeatureName, Role,
)


# Navigation entry -> plan feature it needs (None: available on every plan)
NAVIGATION: Dict[str, Optional[FeatureName]] = {
    "students": None,
    "teachers": None,
    "staff": None,
    "modules": None,
    "filieres": None,
    "timetable": None,
    "finance": FeatureName.PAYMENTS,
    "grades": None,
    "attendance": None,
    "homework": FeatureName.HOMEWORK,
    "reporting": FeatureName.REPORTS,
    "communication": FeatureName.MESSAGING,
    "calendar": None,
    "polls": None,
    "settings": None,
    "parents": None,
}


class HiddenReason(str, Enum):
    NO_PERMISSION = "no_permission"
    FEATURE_UNAVAILABLE = "feature_unavailable"
    NO_SUBSCRIPTION = "no_subscription"


class NavigationGate(BaseModel):
    category: str
    visible: bool
    required_feature: Optional[FeatureName] = None
    hidden_reason: Optional[HiddenReason] = None


class UiGates(BaseModel):
    user_id: str
    role: Role
    tenant_id: str
    all_access: bool
    plan_name: Optional[str] = None
    subscription_state: EntitlementState
    subscription_active: bool
    navigation: List[NavigationGate]
    features: Dict[FeatureName, bool]


def _navigation_gate(effective: EffectivePermissions, entitlement: Entitlement,
                     category: str, feature: Optional[FeatureName]) -> NavigationGate:
    if not gating.has_any_permission(effective, category):
        reason = HiddenReason.NO_PERMISSION
    elif feature is None:
        reason = None
    elif entitlement.plan is None:
        reason = HiddenReason.NO_SUBSCRIPTION
    elif not gating.has_feature(entitlement.plan, feature):
        reason = HiddenReason.FEATURE_UNAVAILABLE
    else:
        reason = None

    return NavigationGate(
        category=category,
        visible=reason is None,
        required_feature=feature,
        hidden_reason=reason
    )


def build_ui_gates(effective: EffectivePermissions, entitlement: Entitlement) -> UiGates:
    """Navigation visibility and feature flags for one user in one school."""
    if entitlement.plan is None:
        features = {feature: False for feature in FeatureName}
    else:
        features = {feature: gating.has_feature(entitlement.plan, feature) for feature in FeatureName}

    return UiGates(
        user_id=effective.user_id,
        role=effective.role,
        tenant_id=entitlement.tenant_id,
        all_access=effective.all_access,
        plan_name=entitlement.plan.plan_name if entitlement.plan else None,
        subscription_state=entitlement.state,
        subscription_active=entitlement.subscription_active,
        navigation=[
            _navigation_gate(effective, entitlement, category, feature)
            for category, feature in NAVIGATION.items()
        ],
        features=features
    )
