"""
Domain utilities for the Gateway Service.

UI gating: navigation visibility and feature flags computed from a user's
effective permissions and the school's entitlement.
"""

from .gates import NAVIGATION, NavigationGate, UiGates, build_ui_gates

__all__ = [
    "NAVIGATION",
    "NavigationGate",
    "UiGates",
    "build_ui_gates",
]
