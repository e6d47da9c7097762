"""
Cache package for Entitlements Service.

Holds plan catalog rows in Redis for a short TTL. Subscriptions are never
cached, so a plan change is visible on the next resolution.
"""
