"""
Role and permission-grant authorization.

Modules of interest:
- catalog: Default permission rows seeded at startup.
- engine: Effective permission resolution, checks and grant management.
- models: Request and response bodies of the HTTP API.
"""
