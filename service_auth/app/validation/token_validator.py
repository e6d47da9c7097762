"""
Session token verification for Auth service.
"""

from shared.errors import DataIntegrityError, Unauthenticated
from shared.logging import get_logger
from shared.session import SessionResolver

from ..permissions.models import TokenVerificationResponse


class TokenValidator:
    """Verifies session tokens on behalf of collaborators."""

    def __init__(self, sessions: SessionResolver):
        self.sessions = sessions
        self.logger = get_logger("auth.validator")

    def verify_token(self, token: str) -> TokenVerificationResponse:
        """Verify a session token; failures are reported, not raised."""
        # Remove Bearer prefix if present
        if token.startswith("Bearer "):
            token = token[7:]

        try:
            principal = self.sessions.principal_from_claims(self.sessions.decode(token))
        except (Unauthenticated, DataIntegrityError) as e:
            self.logger.warning("Token verification failed", code=e.code)
            return TokenVerificationResponse(valid=False, error=e.message)

        return TokenVerificationResponse(valid=True, principal=principal)
