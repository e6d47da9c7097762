"""
Plan entitlements package.

Resolves a tenant's current subscription to its plan's limits and feature
flags and answers admission-control questions against caller-supplied usage.

Modules of interest:
- catalog: The canonical plan tiers used as seed rows.
- engine: Entitlement resolution and checks.
- models: Request and response bodies of the HTTP API.
"""
