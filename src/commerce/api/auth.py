"""Bearer-token authentication for the commerce API.

Identity is owned elsewhere; this module only turns a bearer token into an
`Actor` through a pluggable verifier. The fake verifier (AUTH_ADAPTER=fake,
the default) accepts tokens of the form `<role>:<user_id>`, e.g.
`admin:u-1` or `customer:u-42`.
"""

import os
from abc import ABC, abstractmethod

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from commerce.access import Actor, Role
from commerce.errors import Unauthenticated


class TokenVerifier(ABC):
    @abstractmethod
    def verify(self, token: str) -> Actor:
        """Return the actor the token was issued to, or raise `Unauthenticated`."""
        ...


class FakeTokenVerifier(TokenVerifier):
    def verify(self, token: str) -> Actor:
        role, _, user_id = token.partition(":")
        if not user_id:
            raise Unauthenticated("Malformed bearer token")
        try:
            return Actor(user_id=user_id, role=Role(role.lower()))
        except ValueError as exc:
            raise Unauthenticated(f"Unknown role '{role}'") from exc


_current_verifier: TokenVerifier | None = None


def get_token_verifier() -> TokenVerifier:
    global _current_verifier
    if _current_verifier is None:
        adapter = os.environ.get("AUTH_ADAPTER", "fake")
        if adapter != "fake":
            raise ValueError(f"Unknown auth adapter: {adapter}")
        _current_verifier = FakeTokenVerifier()
    return _current_verifier


def set_token_verifier(verifier: TokenVerifier) -> None:
    """Override the active token verifier (useful for tests)."""
    global _current_verifier
    _current_verifier = verifier


def reset_token_verifier() -> None:
    global _current_verifier
    _current_verifier = None


_bearer = HTTPBearer(auto_error=False)


async def current_actor(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> Actor:
    """FastAPI dependency resolving the authenticated caller."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    return get_token_verifier().verify(credentials.credentials)
