"""
Persistence package for Entitlements Service.

Stores plan catalog rows and tenant subscriptions in PostgreSQL. Plan
changes and billing status events are applied with conditional updates so
concurrent writers cannot silently overwrite each other.
"""
