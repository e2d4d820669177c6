from __future__ import annotations

from typing import Protocol


class UserData(Protocol):
    id: int
    username: str
    password_hash: str
    authorities: str


class UserPort(Protocol):
    async def get_by_username(self, username: str) -> UserData | None:
        ...

    async def create(
        self, username: str, password_hash: str, authorities: str
    ) -> UserData:
        ...
