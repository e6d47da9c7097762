"""
Adapters package for the Gateway Service.

Contains HTTP client wrappers for internal dependencies (Auth,
Entitlements). These adapters encapsulate:

- Base URLs and request shapes
- Retry policies for transient failures
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .authorization_client import AuthorizationClient
from .entitlements_client import EntitlementsClient

__all__ = [
    "AuthorizationClient",
    "EntitlementsClient",
]
