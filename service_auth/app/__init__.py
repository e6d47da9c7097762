"""
Auth Service package for the Schooly Access Layer.

This package answers "can this user perform {action} in {category}?" and
exposes a user's effective permission set for UI rendering:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.permissions: Authorization engine, permission catalog and API models.
- app.persistence: PostgreSQL storage for users, permissions and grants.
- app.validation: Session token verification for collaborators.

Design notes:
- Module import must not perform network calls. All IO happens in route
  handlers or explicit startup hooks.
- Admin roles are all-access; never enumerate their permissions.
- Sessions are issued upstream; this service only verifies them.
"""
