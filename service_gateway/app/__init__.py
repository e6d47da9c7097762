"""
API Gateway Service package for the Schooly Access Layer.

The gateway serves the UI's soft gates:
- Effective permissions: via the Auth service
- Entitlements: via the Entitlements service
- Retries with backoff for resilient downstream calls

Structure:
- app.main: FastAPI app, routes, and dependency wiring.
- app.adapters: HTTP clients for internal services.
- app.domain: UI gate computation over the shared gating primitives.
"""
