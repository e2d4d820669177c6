"""Password hashing with bcrypt.

bcrypt is deliberately slow, so callers on the event loop go through the
``*_async`` helpers, which run the work in the thread pool.
"""
import bcrypt
from starlette.concurrency import run_in_threadpool

DEFAULT_ROUNDS = 12

# Pre-computed hash for timing-safe checks when the user does not exist
_DUMMY_HASH = bcrypt.hashpw(b"dummy", bcrypt.gensalt(rounds=DEFAULT_ROUNDS)).decode()


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a plaintext password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


async def verify_password_async(password: str, password_hash: str | None) -> bool:
    if password_hash is None:
        await run_in_threadpool(verify_password, password, _DUMMY_HASH)
        return False
    return await run_in_threadpool(verify_password, password, password_hash)
