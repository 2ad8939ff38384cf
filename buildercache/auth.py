"""Token scopes for the remote cache-admin endpoint.

Two pre-shared tokens are recognised over streamable HTTP. The admin token
(``MCP_AUTH_TOKEN``) may read and invalidate caches; the optional read-only
token (``MCP_READONLY_TOKEN``) may only inspect them. Local stdio sessions
carry no token and keep full access.
"""

import hmac

from fastmcp.server.auth import AccessToken, TokenVerifier
from fastmcp.server.dependencies import get_access_token

from buildercache.errors import PermissionDeniedError

READ_SCOPE = "cache:read"
ADMIN_SCOPE = "cache:admin"

_MIN_TOKEN_LENGTH = 32


def _check_length(label: str, token: str | None) -> str:
    if not token or len(token) < _MIN_TOKEN_LENGTH:
        raise ValueError(
            f"{label} must be at least {_MIN_TOKEN_LENGTH} characters, "
            f"got {len(token) if token else 0}"
        )
    return token


class BearerTokenVerifier(TokenVerifier):
    """Map the admin and read-only tokens to their scopes.

    Args:
        token: Admin token, granted ``cache:read`` and ``cache:admin``.
        readonly_token: Optional token granted ``cache:read`` only.

    Raises:
        ValueError: If a configured token is shorter than 32 characters.
    """

    def __init__(self, token: str, readonly_token: str | None = None) -> None:
        super().__init__()
        self._grants: list[tuple[bytes, list[str]]] = [
            (_check_length("MCP auth token", token).encode(), [READ_SCOPE, ADMIN_SCOPE])
        ]
        if readonly_token:
            self._grants.append(
                (_check_length("MCP read-only token", readonly_token).encode(), [READ_SCOPE])
            )

    async def verify_token(self, token: str) -> AccessToken | None:
        presented = token.encode()
        for expected, scopes in self._grants:
            if hmac.compare_digest(presented, expected):
                return AccessToken(token=token, client_id="cache-operator", scopes=list(scopes))
        return None


def require_scope(scope: str) -> None:
    """Raise unless the current request's token carries *scope*.

    Requests without a token (stdio, in-process clients) are not restricted.

    Raises:
        PermissionDeniedError: If the token lacks *scope*.
    """
    try:
        access_token = get_access_token()
    except RuntimeError:
        # No HTTP request in scope
        access_token = None
    if access_token is not None and scope not in access_token.scopes:
        raise PermissionDeniedError(scope)
