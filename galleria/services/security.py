import datetime as dt
from dataclasses import dataclass
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt
from jose.exceptions import JWTError, ExpiredSignatureError

from galleria.config import settings
from galleria.core.errors import Unauthorized, Forbidden


bearer = HTTPBearer(auto_error=False)
ph = PasswordHasher()

ALGORITHM = "HS256"


@dataclass(frozen=True)
class AuthUser:
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_token(email: str, role: str) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    exp = now + dt.timedelta(minutes=settings.ACCESS_TOKEN_EXPIRES_MIN)
    payload = {
        "sub": email,
        "email": email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def verify_token(token: str) -> AuthUser:
    """Token -> identity + role, or Unauthorized."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            options={"leeway": 30},
        )
    except ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except JWTError:
        raise Unauthorized("Invalid token")
    email = payload.get("email") or payload.get("sub")
    if not email:
        raise Unauthorized("Invalid token")
    return AuthUser(email=str(email), role=str(payload.get("role") or "user"))


def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return ph.verify(pw_hash, pw)
    except (VerificationError, InvalidHashError):
        return False


def hash_password(pw: str) -> str:
    return ph.hash(pw)


async def require_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> AuthUser:
    if not creds or not creds.credentials:
        raise Unauthorized("Authentication required")
    return verify_token(creds.credentials)


async def require_admin(user: AuthUser = Depends(require_user)) -> AuthUser:
    if not user.is_admin:
        raise Forbidden("Insufficient permissions")
    return user
