"""
Canonical plan tiers.

Plans are data: these rows seed an empty catalog, after which tiers are
managed through the plan administration API.
"""

from decimal import Decimal
from typing import Dict, List

from shared.contracts import UNLIMITED, BillingInterval, FeatureName, LimitName, Plan


STARTER = "STARTER"
PROFESSIONAL = "PROFESSIONAL"
BUSINESS = "BUSINESS"
ENTERPRISE = "ENTERPRISE"

CANONICAL_TIERS = (STARTER, PROFESSIONAL, BUSINESS, ENTERPRISE)


def _features(*enabled: FeatureName) -> Dict[FeatureName, bool]:
    return {feature: feature in enabled for feature in FeatureName}


_STARTER_FEATURES = (FeatureName.REPORTS, FeatureName.PAYMENTS, FeatureName.HOMEWORK)
_PROFESSIONAL_FEATURES = _STARTER_FEATURES + (FeatureName.MESSAGING,)
_BUSINESS_FEATURES = _PROFESSIONAL_FEATURES + (
    FeatureName.ADVANCED_ANALYTICS,
    FeatureName.SMS,
    FeatureName.API,
    FeatureName.MULTIPLE_SCHOOLS,
)


def default_plans() -> List[Plan]:
    """Seed rows for the four canonical tiers (prices in XOF)."""
    return [
        Plan(
            id="plan-starter",
            name=STARTER,
            display_name="Starter",
            description="Free trial tier for small schools",
            price=Decimal("5000"),
            interval=BillingInterval.MONTHLY,
            trial_days=30,
            limits={
                LimitName.MAX_STUDENTS: 100,
                LimitName.MAX_TEACHERS: 10,
                LimitName.MAX_DOCUMENTS: 300,
                LimitName.MAX_STORAGE_MB: 1024,
                LimitName.MAX_EMAILS: 50,
                LimitName.MAX_SMS: 0,
                LimitName.MAX_CAMPUSES: 1,
            },
            features=_features(*_STARTER_FEATURES),
        ),
        Plan(
            id="plan-professional",
            name=PROFESSIONAL,
            display_name="Professional",
            description="Growing schools with internal messaging",
            price=Decimal("12500"),
            interval=BillingInterval.MONTHLY,
            limits={
                LimitName.MAX_STUDENTS: 500,
                LimitName.MAX_TEACHERS: 50,
                LimitName.MAX_DOCUMENTS: 1000,
                LimitName.MAX_STORAGE_MB: 10240,
                LimitName.MAX_EMAILS: 500,
                LimitName.MAX_SMS: 0,
                LimitName.MAX_CAMPUSES: 1,
            },
            features=_features(*_PROFESSIONAL_FEATURES),
        ),
        Plan(
            id="plan-business",
            name=BUSINESS,
            display_name="Business",
            description="Large schools and multi-campus groups",
            price=Decimal("25000"),
            interval=BillingInterval.MONTHLY,
            limits={
                LimitName.MAX_STUDENTS: UNLIMITED,
                LimitName.MAX_TEACHERS: UNLIMITED,
                LimitName.MAX_DOCUMENTS: UNLIMITED,
                LimitName.MAX_STORAGE_MB: 102400,
                LimitName.MAX_EMAILS: UNLIMITED,
                LimitName.MAX_SMS: UNLIMITED,
                LimitName.MAX_CAMPUSES: UNLIMITED,
            },
            features=_features(*_BUSINESS_FEATURES),
        ),
        Plan(
            id="plan-enterprise",
            name=ENTERPRISE,
            display_name="Enterprise",
            description="Custom quote",
            price=Decimal("0"),
            interval=BillingInterval.MONTHLY,
            limits={name: UNLIMITED for name in LimitName},
            features=_features(*FeatureName),
        ),
    ]
