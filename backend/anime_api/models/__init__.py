from .base import Base
from .anime import AnimeRow
from .user import User

__all__ = [
    "Base",
    "AnimeRow",
    "User",
]
