# galleria/routers/auth.py
import logging
from datetime import timedelta

from fastapi import APIRouter, Body, Depends, Request

from galleria.config import settings
from galleria.core.deps import get_index_store
from galleria.core.errors import Unauthorized
from galleria.core.rate_limit import limiter
from galleria.core.responses import ok
from galleria.schemas.auth import LoginOut, LoginPayload, RegisterPayload, UserOut
from galleria.services import users
from galleria.services.index_store import IndexStore
from galleria.services.security import AuthUser, create_token, require_user

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

AUTH_COOKIE = "auth_token"


def _cookie_settings():
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "path": "/",
    }


@router.post("/register", status_code=201)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,
    payload: RegisterPayload = Body(...),
    index: IndexStore = Depends(get_index_store),
):
    """Create an account. Duplicate emails are rejected with 400."""
    user = await users.register_user(index, payload.email, payload.password, payload.role)
    return ok(UserOut(email=user.email, role=user.role, created_at=user.created_at), status_code=201)


@router.post("/login")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginPayload = Body(...),
    index: IndexStore = Depends(get_index_store),
):
    """Email + password -> bearer token (also set as an httponly cookie)."""
    user = await users.authenticate(index, payload.email, payload.password)
    token = create_token(user.email, user.role)
    response = ok(LoginOut(
        user=UserOut(email=user.email, role=user.role, created_at=user.created_at),
        token=token,
    ))
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        max_age=int(timedelta(minutes=settings.ACCESS_TOKEN_EXPIRES_MIN).total_seconds()),
        **_cookie_settings(),
    )
    log.info("Login: %s", user.email)
    return response


@router.post("/logout")
async def logout():
    response = ok()
    response.delete_cookie(AUTH_COOKIE, **_cookie_settings())
    return response


@router.get("/check")
async def check(
    auth: AuthUser = Depends(require_user),
    index: IndexStore = Depends(get_index_store),
):
    user = await users.get_user(index, auth.email)
    if not user:
        raise Unauthorized("User not found")
    return ok(UserOut(email=user.email, role=user.role, created_at=user.created_at))
