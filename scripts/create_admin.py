"""
Create an admin account, or promote an existing one.

    python scripts/create_admin.py admin@example.com 'a-long-password'
"""

import argparse
import asyncio
import logging

from galleria.config import settings
from galleria.core.errors import InvalidInput
from galleria.services import users
from galleria.services.index_store import IndexStore

log = logging.getLogger("create_admin")


async def main(email: str, password: str, promote: bool) -> int:
    index = await IndexStore.connect(
        settings.REDIS_URL,
        max_retries=settings.REDIS_CONNECT_RETRIES,
        delay_seconds=settings.REDIS_RETRY_DELAY,
    )
    try:
        try:
            user = await users.register_user(index, email, password, role="admin")
            log.info("Created admin %s", user.email)
            return 0
        except InvalidInput:
            if not promote:
                log.error("%s already exists; pass --promote to make it an admin", email)
                return 1
        user = await users.get_user(index, email)
        if user is None:
            log.error("Account record for %s is unreadable", email)
            return 1
        await users.save_user(index, user.model_copy(update={"role": "admin"}))
        log.info("Promoted %s to admin", user.email)
        return 0
    finally:
        await index.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--promote", action="store_true", help="promote an existing account instead of failing")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.email, args.password, args.promote)))
