"""
Session resolution: bearer token -> Principal.

Tokens are issued by the external authentication provider. A request without
a valid session is always rejected; there is no guest role.
"""

from typing import Any, Dict, List, Optional

import jwt
import pydantic

from .contracts import Principal, Role
from .errors import DataIntegrityError, Unauthenticated
from .logging import get_logger


class SessionResolver:
    """Validates bearer tokens and maps their claims to a Principal."""

    def __init__(self, secret: str, algorithms: Optional[List[str]] = None):
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]
        self.logger = get_logger("session.resolver")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                options={"require": ["sub", "role"]}
            )
        except jwt.PyJWTError as e:
            self.logger.warning("Token verification failed", error=str(e))
            raise Unauthenticated("Invalid or expired session")

    def principal_from_claims(self, claims: Dict[str, Any]) -> Principal:
        role = Role.parse(claims.get("role"))
        try:
            return Principal(
                user_id=str(claims["sub"]),
                role=role,
                tenant_id=claims.get("tenant_id")
            )
        except pydantic.ValidationError as e:
            raise DataIntegrityError(
                "Session principal is inconsistent",
                details={"role": role.value, "error": str(e)}
            )

    def resolve(self, authorization: Optional[str]) -> Optional[Principal]:
        """Principal for an Authorization header value, or None when absent."""
        if not authorization:
            return None

        if not authorization.startswith("Bearer "):
            raise Unauthenticated("Invalid authorization header format")

        return self.principal_from_claims(self.decode(authorization[7:]))

    def require(self, authorization: Optional[str]) -> Principal:
        principal = self.resolve(authorization)
        if principal is None:
            raise Unauthenticated()
        return principal


def issue_token(principal: Principal, secret: str, algorithm: str = "HS256",
                extra_claims: Optional[Dict[str, Any]] = None) -> str:
    """Sign a session token for ``principal`` (used by tooling and tests)."""
    claims: Dict[str, Any] = {"sub": principal.user_id, "role": principal.role.value}
    if principal.tenant_id:
        claims["tenant_id"] = principal.tenant_id
    claims.update(extra_claims or {})
    return jwt.encode(claims, secret, algorithm=algorithm)
