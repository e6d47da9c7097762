"""
Entitlements Service package for the Schooly Access Layer.

This package resolves a school's subscription to its plan's limits and
feature flags. It provides:

- app.main: API surface for entitlement checks, subscriptions and plans.
- app.plans: Plan catalog, entitlement engine and plan administration.
- app.subscriptions: Trial onboarding, plan changes and billing status.
- app.cache: Redis-backed caching for plan rows.
- app.persistence: PostgreSQL storage for plans and subscriptions.

Guidelines:
- Subscriptions are read fresh on every resolution; only plans are cached.
- Plan changes use conditional updates; a lost race is reported, not merged.
- Keep checks deterministic and observable (metrics + logs).
"""
