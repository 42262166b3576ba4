"""
Handshake authentication for sync connections.

A client presents a JWT (normally as the ``token`` query parameter).  The
token is verified once, when the connection opens; an invalid or missing
token closes the connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from .config import SyncSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """A verified user."""
    user_id: str
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class JWTAuthenticator:
    """Verify HMAC-signed JWTs with python-jose.

    The user id is read from ``settings.jwt_user_claim`` (``userId`` by
    default) and falls back to the standard ``sub`` claim.
    """

    def __init__(self, settings: SyncSettings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.user_claim = settings.jwt_user_claim

    def authenticate(self, token: Optional[str]) -> Optional[UserIdentity]:
        """Return the identity carried by *token*, or ``None`` if invalid."""
        if not token:
            logger.info("Rejecting connection: no token")
            return None
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info("Rejecting connection: invalid token (%s)", e)
            return None

        user_id = claims.get(self.user_claim) or claims.get("sub")
        if user_id is None or user_id == "":
            logger.info("Rejecting connection: token has no %s/sub claim", self.user_claim)
            return None
        return UserIdentity(user_id=str(user_id), claims=claims)

    def issue(self, user_id: Any, **extra_claims: Any) -> str:
        """Sign a token for *user_id*.  Used by tooling and tests."""
        claims = {self.user_claim: str(user_id), **extra_claims}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)
