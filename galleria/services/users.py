"""Accounts stored in the index store under `user:<email>`."""

import datetime as dt
import logging
from typing import Optional

from pydantic import ValidationError

from galleria.core.errors import InvalidInput, Unauthorized
from galleria.schemas.auth import UserRecord
from galleria.services.index_store import IndexStore
from galleria.services.security import hash_password, verify_password

log = logging.getLogger(__name__)


def user_key(email: str) -> str:
    return f"user:{email.strip().lower()}"


async def get_user(index: IndexStore, email: str) -> Optional[UserRecord]:
    raw = await index.get(user_key(email))
    if raw is None:
        return None
    try:
        return UserRecord.model_validate_json(raw)
    except ValidationError as e:
        log.error("Unreadable account record for %s: %s", email, e)
        return None


async def register_user(index: IndexStore, email: str, password: str, role: str = "user") -> UserRecord:
    user = UserRecord(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        created_at=dt.datetime.now(dt.timezone.utc),
    )
    created = await index.set_if_absent(user_key(email), user.model_dump_json(by_alias=True))
    if not created:
        raise InvalidInput("User already exists")
    log.info("Registered %s (%s)", user.email, user.role)
    return user


async def save_user(index: IndexStore, user: UserRecord) -> None:
    await index.set(user_key(user.email), user.model_dump_json(by_alias=True))


async def authenticate(index: IndexStore, email: str, password: str) -> UserRecord:
    user = await get_user(index, email)
    if not user or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    return user
