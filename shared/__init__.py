"""
Shared utilities for the Schooly Access Layer.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Bounded retry with backoff
- contracts: Plan, subscription and permission data contracts
- gating: Entitlement and permission decision primitives
- session: Bearer session resolution

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
