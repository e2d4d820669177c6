"""
Create a user account for HTTP Basic authentication.

Run once per account after the schema exists (``CREATE_SCHEMA=true`` on first
start, or ``init_models`` by hand). Existing usernames are left untouched.

Usage:
    python -m scripts.seed_users USERNAME PASSWORD [AUTHORITIES]

AUTHORITIES is a comma-separated role list and defaults to ``ROLE_USER``,
e.g. ``ROLE_ADMIN,ROLE_USER`` for an administrator.
"""
import asyncio
import sys

from anime_api.config import get_settings
from anime_api.crud.user import UserRepository
from anime_api.database import create_engine, create_session_factory, init_models
from anime_api.domain.ports.user import UserPort
from anime_api.security.authentication import normalize_roles
from anime_api.security.passwords import DEFAULT_ROUNDS, hash_password

DEFAULT_AUTHORITIES = "ROLE_USER"


async def seed_user(
    user_port: UserPort,
    username: str,
    password: str,
    authorities: str = DEFAULT_AUTHORITIES,
    *,
    rounds: int = DEFAULT_ROUNDS,
) -> bool:
    """Create the account unless the username is taken. Returns True when created."""
    if not username or not password:
        raise ValueError("username and password must not be empty")

    existing = await user_port.get_by_username(username)
    if existing is not None:
        print(f"  User '{username}' already exists, skipping...")
        return False

    roles = normalize_roles(authorities)
    stored_authorities = ",".join(f"ROLE_{role}" for role in sorted(roles))
    await user_port.create(username, hash_password(password, rounds=rounds), stored_authorities)
    print(f"  Created user: {username} ({stored_authorities or 'no roles'})")
    return True


async def main(argv: list[str]) -> int:
    if len(argv) not in (2, 3):
        print(__doc__)
        return 2

    username, password = argv[0], argv[1]
    authorities = argv[2] if len(argv) == 3 else DEFAULT_AUTHORITIES

    engine = create_engine(get_settings())
    try:
        await init_models(engine)
        await seed_user(UserRepository(create_session_factory(engine)), username, password, authorities)
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
