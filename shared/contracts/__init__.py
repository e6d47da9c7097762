"""
Data contracts shared by the entitlement and authorization services.

- plans: Plan catalog rows, subscriptions and the resolved PlanLimits view.
- access: Roles, principals, permissions, grants and effective permission sets.

These models are serialized as-is over HTTP so UI clients decode exactly
what the services evaluate.
"""

from .plans import (
    UNLIMITED, Limit, LimitName, FeatureName, BillingInterval, SubscriptionStatus,
    Plan, PlanLimits, Subscription, Entitlement, EntitlementState, utcnow,
)
from .access import (
    Role, FULL_ADMIN_ROLES, Principal, Permission, UserPermissionGrant, Grant,
    EffectivePermissions, UserAccount,
)

__all__ = [
    "UNLIMITED", "Limit", "LimitName", "FeatureName", "BillingInterval",
    "SubscriptionStatus", "Plan", "PlanLimits", "Subscription", "Entitlement",
    "EntitlementState", "utcnow",
    "Role", "FULL_ADMIN_ROLES", "Principal", "Permission", "UserPermissionGrant",
    "Grant", "EffectivePermissions", "UserAccount",
]
