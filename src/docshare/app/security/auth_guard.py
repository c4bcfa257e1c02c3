"""Session-token authentication for mutating routes.

Auth transport: ``Authorization: Bearer <session token>``, where the token
is the one returned by ``POST /login``. The token is resolved through the
``CredentialService`` stored on ``app.state.deps``.

Routes opt in with ``Depends(get_auth_identity)``; public routes (listing,
shared index, password verification, blob download) take no identity.
"""

from __future__ import annotations

from starlette.requests import Request

from ..accounts.model import AuthIdentity
from ..errors import AuthError


def extract_bearer_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header, if any."""
    header = request.headers.get('authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


async def get_auth_identity(request: Request) -> AuthIdentity:
    """FastAPI dependency that returns the authenticated identity.

    Raises:
        AuthError: No bearer token, or the session is unknown/expired.
    """
    token = extract_bearer_token(request)
    if token is None:
        raise AuthError('Authentication required')
    identity = await request.app.state.deps.credentials.resolve_session(token)
    request.state.auth_identity = identity
    return identity
