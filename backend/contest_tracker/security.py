"""Password hashing and session token services.

`PasswordHasher` wraps a passlib `CryptContext`; `JWTGenerator` signs and
verifies the stateless session tokens. Both are immutable after
construction and safe to share between request threads.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from . import errors, models


class PasswordHasher:
    """Salted, slow one-way hashing of passwords."""
    def __init__(self, schemes=("pbkdf2_sha256",)):
        self._ctx = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, plaintext: str) -> str:
        return self._ctx.hash(plaintext)

    def compare(self, hashed: str, plaintext: str) -> bool:
        """Check `plaintext` against `hashed` in constant time.

        Empty or unrecognised hashes never match.
        """
        if not hashed:
            return False
        try:
            return self._ctx.verify(plaintext, hashed)
        except (ValueError, TypeError):
            return False

    def is_hashed(self, value: str) -> bool:
        return bool(value) and self._ctx.identify(value) is not None


class SessionUser(BaseModel):
    """Password-free snapshot of a user embedded in a token."""
    id: int
    email: str
    display_name: str
    role: models.Role
    preferences: models.Preferences = models.Preferences()

    @classmethod
    def from_user(cls, user: models.User) -> "SessionUser":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=models.Role(user.role),
            preferences=user.settings(),
        )


class SessionClaims(BaseModel):
    user: SessionUser
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def role(self) -> models.Role:
        return self.user.role


class JWTGenerator:
    """Issue and verify signed, self-contained session tokens."""
    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def new_token(self, lifetime: timedelta, claims: SessionClaims, now: Optional[datetime] = None) -> str:
        """Sign `claims` with an expiry of `now + lifetime`.

        Raises `InternalError` when the secret is missing or signing fails.
        """
        if not self.secret:
            raise errors.InternalError("token signing secret is not configured")
        issued = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires = issued + lifetime
        claims.issued_at = issued
        claims.expires_at = expires
        payload = {
            "user": claims.user.model_dump(mode="json"),
            "iat": int(issued.timestamp()),
            "exp": int(expires.timestamp()),
        }
        try:
            return jwt.encode(payload, self.secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, TypeError, ValueError, NotImplementedError) as e:
            raise errors.wrap_error(e, "could not sign session token") from e

    def parse(self, token: str) -> SessionClaims:
        """Verify the signature and expiry of `token` and return its claims.

        Raises `Unauthorized` on any verification failure.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise errors.Unauthorized("token expired")
        except jwt.PyJWTError:
            raise errors.Unauthorized("invalid token")
        try:
            return SessionClaims(
                user=SessionUser.model_validate(payload.get("user") or {}),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValidationError):
            raise errors.Unauthorized("invalid token payload")
