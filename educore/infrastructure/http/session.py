"""In-memory auth session held by a transport client instance.

The bearer token lives only here (never in module state). Claims are read
without signature verification; the client uses them only to discover
the tenant scope, never for authorization decisions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from jose import JWTError, jwt

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    """Mutable holder for the current access token."""

    access_token: str | None = None

    def set_token(self, token: str | None) -> None:
        """Replace the token (None signs out)."""
        self.access_token = token or None

    def clear(self) -> None:
        """Forget the token, e.g. after a 401 response."""
        self.access_token = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def authorization_header(self) -> dict[str, str]:
        """Return the Authorization header for the current token, or {} when signed out."""
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def unverified_claims(self) -> dict[str, Any]:
        """Decode the token payload without verifying it.

        Returns:
            Claims dict; {} when there is no token or it is malformed.
        """
        if not self.access_token:
            return {}
        try:
            return jwt.get_unverified_claims(self.access_token)
        except JWTError as e:
            logger.warning("Could not decode access token claims: %s", e)
            return {}
