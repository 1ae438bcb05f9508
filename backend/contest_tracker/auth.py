"""Role gate and FastAPI security dependencies.

`authorize` is the pure check the router runs before every handler: it
decides from the route's minimum role and the bearer token alone whether
the request may proceed, and returns the verified claims. `session_user`
exposes those claims to handlers that need the caller.
"""

from typing import Optional

from fastapi import Request
from fastapi.security import HTTPBearer

from . import errors, models
from .security import JWTGenerator, SessionClaims, SessionUser

bearer_scheme = HTTPBearer(auto_error=False)


def authorize(min_role: Optional[models.Role], token: Optional[str], jwt_generator: JWTGenerator) -> Optional[SessionClaims]:
    """Return the verified claims for `token`, or raise `Unauthorized`.

    Routes without a minimum role accept anyone: an absent or bad token
    yields None there. Otherwise the token must verify and carry a role of
    at least `min_role`.
    """
    if min_role is None or min_role <= models.Role.GUEST:
        if not token:
            return None
        try:
            return jwt_generator.parse(token)
        except errors.Unauthorized:
            return None
    if not token:
        raise errors.Unauthorized("missing bearer token")
    claims = jwt_generator.parse(token)
    if claims.role < min_role:
        raise errors.Unauthorized("insufficient role")
    return claims


def session_user(request: Request) -> SessionUser:
    """FastAPI dependency that returns the authenticated caller.

    Only usable on routes with a minimum role, where the router has
    already verified the token.
    """
    claims: Optional[SessionClaims] = getattr(request.state, "claims", None)
    if claims is None:
        raise errors.Unauthorized()
    return claims.user
